from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from prize_engine.database import Base, utcnow


class SpinRecord(Base):
    __tablename__ = "user_wheel_spins"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=True)
    session_id = Column(String(64), nullable=True)
    segment_id = Column(Integer, ForeignKey("wheel_segments.id"), nullable=False)
    coupon_id = Column(Integer, ForeignKey("user_coupons.id"), nullable=True)
    pending_spin_id = Column(Integer, ForeignKey("pending_wheel_spins.id", ondelete="SET NULL"), nullable=True)
    spun_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    segment = relationship("WheelSegment")
    coupon = relationship("UserCoupon")

    __table_args__ = (
        Index("ix_user_wheel_spins_user_spun", "user_id", "spun_at"),
        Index("ix_user_wheel_spins_session_spun", "session_id", "spun_at"),
    )
