from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Literal, Optional
from datetime import datetime

from prize_engine.schemas.segment import SegmentResponse


class SpinIdentity(BaseModel):
    """Who is spinning: an account, or an anonymous wheel session."""

    user_id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    session_id: Optional[str] = Field(default=None, min_length=1, max_length=64)

    @model_validator(mode="after")
    def _require_one(self):
        if not self.user_id and not self.session_id:
            raise ValueError("either user_id or session_id is required")
        return self

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def key(self) -> str:
        """Stable key for the eligibility slot of this identity."""
        return f"user:{self.user_id}" if self.is_authenticated else f"session:{self.session_id}"

    def describe(self) -> str:
        return self.key


class UserCouponResponse(BaseModel):
    id: int
    user_id: str
    code: str
    prize_type: str
    discount_type: str
    discount_value: float
    gift_product_id: Optional[int] = None
    gift_product_name: Optional[str] = None
    gift_product_image: Optional[str] = None
    is_used: bool
    used_at: Optional[datetime] = None
    order_id: Optional[int] = None
    expires_at: datetime
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PendingSpinResponse(BaseModel):
    id: int
    session_id: str
    segment_id: int
    prize_type: str
    discount_type: Optional[str] = None
    discount_value: Optional[float] = None
    gift_product_id: Optional[int] = None
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class IssuedPrize(BaseModel):
    kind: Literal["user_coupon", "pending_spin"]
    user_coupon: Optional[UserCouponResponse] = None
    pending_spin: Optional[PendingSpinResponse] = None


class SpinResponse(BaseModel):
    segment: SegmentResponse
    issued_prize: IssuedPrize


class EligibilityResponse(BaseModel):
    can_spin: bool
    next_spin_at: Optional[datetime] = None


class ReconcileRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=64)


class ReconcileResponse(BaseModel):
    coupon: Optional[UserCouponResponse] = None
