from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class RecentSpin(BaseModel):
    id: int
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    segment_label: str
    prize_type: str
    coupon_code: Optional[str] = None
    spun_at: datetime


class WheelStats(BaseModel):
    total_spins: int
    unique_users: int
    anonymous_spins: int
    open_pending_spins: int
    total_coupons: int
    used_coupons: int
    expired_coupons: int
    discount_coupons: int
    gift_coupons: int
    recent_spins: List[RecentSpin]
