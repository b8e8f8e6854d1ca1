from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime, ForeignKey, Index, CheckConstraint
from prize_engine.database import Base, utcnow
from prize_engine.models.common import prize_type_enum, discount_type_enum


class UserCoupon(Base):
    __tablename__ = "user_coupons"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    code = Column(String(40), nullable=False, unique=True)
    prize_type = Column(prize_type_enum(), nullable=False, default="discount")
    discount_type = Column(discount_type_enum(), nullable=False, default="percentage")
    discount_value = Column(Numeric(12, 2), nullable=False, default=0)
    gift_product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    gift_product_name = Column(String(255), nullable=True)
    gift_product_image = Column(String(500), nullable=True)
    is_used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    pending_spin_id = Column(Integer, ForeignKey("pending_wheel_spins.id"), nullable=True, unique=True)

    __table_args__ = (
        Index("ix_user_coupons_user_available", "user_id", "is_used", "expires_at"),
        CheckConstraint(
            "(NOT is_used AND used_at IS NULL AND order_id IS NULL) OR (is_used AND used_at IS NOT NULL)",
            name="ck_user_coupons_usage",
        ),
    )
