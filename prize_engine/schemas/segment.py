from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal, Optional
from datetime import datetime


class SegmentCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=120)
    color: str = Field(default="#FF6B6B", max_length=32, description="Display only")
    prize_type: Literal["discount", "gift"] = "discount"
    discount_type: Literal["percentage", "fixed"] = "percentage"
    discount_value: float = Field(default=0, ge=0)
    gift_product_id: Optional[int] = Field(default=None, gt=0)
    probability: float = Field(default=1.0, ge=0, description="Unnormalized draw weight")
    is_active: bool = True
    sort_order: int = 0


class SegmentUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=1, max_length=120)
    color: Optional[str] = Field(None, max_length=32)
    prize_type: Optional[Literal["discount", "gift"]] = None
    discount_type: Optional[Literal["percentage", "fixed"]] = None
    discount_value: Optional[float] = Field(None, ge=0)
    gift_product_id: Optional[int] = Field(None, gt=0)
    probability: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class SegmentResponse(BaseModel):
    id: int
    label: str
    color: str
    prize_type: str
    discount_type: str
    discount_value: float
    gift_product_id: Optional[int] = None
    probability: float
    is_active: bool
    sort_order: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WheelResponse(BaseModel):
    enabled: bool
    segments: List[SegmentResponse]
