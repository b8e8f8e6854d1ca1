from pydantic import BaseModel, Field, ConfigDict
from typing import Literal, Optional
from datetime import datetime

from prize_engine.schemas.spin import UserCouponResponse


# Request schemas
class StoreCouponCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=40, description="Promo code, e.g. SALE10")
    discount_type: Literal["percentage", "fixed"] = "percentage"
    discount_value: float = Field(..., gt=0, description="Discount percentage or fixed amount")
    min_order_amount: Optional[float] = Field(default=None, ge=0)
    max_uses: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = Field(default=True)
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None


class StoreCouponUpdate(BaseModel):
    discount_type: Optional[Literal["percentage", "fixed"]] = None
    discount_value: Optional[float] = Field(None, gt=0)
    min_order_amount: Optional[float] = Field(None, ge=0)
    max_uses: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = Field(None, description="Whether coupon is active")
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None


# Response schemas
class StoreCouponResponse(BaseModel):
    id: int
    code: str
    discount_type: str
    discount_value: float
    min_order_amount: Optional[float] = None
    max_uses: Optional[int] = None
    used_count: int
    is_active: bool
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CodeLookupRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=40)
    subtotal: float = Field(..., ge=0)


class CodeLookupResponse(BaseModel):
    kind: Literal["store", "user"]
    store_coupon: Optional[StoreCouponResponse] = None
    user_coupon: Optional[UserCouponResponse] = None
