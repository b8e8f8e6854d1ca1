from sqlalchemy import Column, Integer, String, Boolean, Float, Numeric, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship
from prize_engine.database import Base, utcnow
from prize_engine.models.common import prize_type_enum, discount_type_enum


class WheelSegment(Base):
    __tablename__ = "wheel_segments"

    id = Column(Integer, primary_key=True, index=True)
    label = Column(String(120), nullable=False)
    color = Column(String(32), nullable=False, default="#FF6B6B")
    prize_type = Column(prize_type_enum(), nullable=False, default="discount")
    discount_type = Column(discount_type_enum(), nullable=False, default="percentage")
    discount_value = Column(Numeric(12, 2), nullable=False, default=0)
    gift_product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    probability = Column(Float, nullable=False, default=1.0)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    gift_product = relationship("Product")

    __table_args__ = (
        Index("ix_wheel_segments_active_sort", "is_active", "sort_order"),
        CheckConstraint("probability >= 0", name="ck_wheel_segments_probability"),
    )
