from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime


# Cart related schemas
class CartItem(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0, description="Price per unit")
    name: Optional[str] = None
    is_gift: bool = False
    gift_coupon_id: Optional[int] = Field(default=None, description="User coupon that added this gift line")


class Cart(BaseModel):
    items: List[CartItem]


class CouponSelection(BaseModel):
    """Coupons chosen for this order attempt. Sent with every request."""

    user_coupon_id: Optional[int] = None
    store_coupon_code: Optional[str] = Field(default=None, max_length=40)


class PreviewRequest(BaseModel):
    cart: Cart
    selection: CouponSelection = Field(default_factory=CouponSelection)


class DiscountPreview(BaseModel):
    state: str
    subtotal: float
    user_coupon_discount: float
    store_coupon_discount: float
    discount_amount: float
    final_price: float
    line_items: List[CartItem]


class ReleaseRequest(BaseModel):
    cart: Cart
    selection: CouponSelection = Field(default_factory=CouponSelection)


class ReleaseResponse(BaseModel):
    state: str
    line_items: List[CartItem]


class OrderDraft(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: Optional[str] = Field(default=None, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=64)
    delivery_address: Optional[str] = Field(default=None, max_length=500)
    comment: Optional[str] = None


class CommitOrderRequest(BaseModel):
    cart: Cart
    selection: CouponSelection = Field(default_factory=CouponSelection)
    order: OrderDraft


class OrderItemResponse(BaseModel):
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    price: float
    is_gift: bool

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    id: int
    order_number: str
    user_id: Optional[str] = None
    customer_name: str
    subtotal: float
    discount_amount: float
    total: float
    user_coupon_code: Optional[str] = None
    store_coupon_code: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    items: List[OrderItemResponse]

    model_config = ConfigDict(from_attributes=True)
