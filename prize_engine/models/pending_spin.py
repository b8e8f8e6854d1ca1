from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Index
from prize_engine.database import Base, utcnow
from prize_engine.models.common import prize_type_enum, discount_type_enum


class PendingSpin(Base):
    """Claim ticket for a prize won before the session signed in."""

    __tablename__ = "pending_wheel_spins"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(64), nullable=False, unique=True)
    segment_id = Column(Integer, ForeignKey("wheel_segments.id"), nullable=False)
    prize_type = Column(prize_type_enum(), nullable=False)
    discount_type = Column(discount_type_enum(), nullable=True)
    discount_value = Column(Numeric(12, 2), nullable=True)
    gift_product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    claimed_by_user_id = Column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_pending_wheel_spins_expires", "expires_at"),
    )
