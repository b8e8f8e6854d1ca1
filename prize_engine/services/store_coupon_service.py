
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from fastapi import HTTPException
from prize_engine.database import as_utc, utcnow
from prize_engine.errors import CouponExpired, CouponNotApplicable
from prize_engine.models.store_coupon import StoreCoupon
from prize_engine.schemas.coupon import StoreCouponCreate, StoreCouponUpdate
from prize_engine.services.discount_calculator import D


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


class StoreCouponService:
    """Service class for CRUD operations on store promo codes"""

    NULLABLE_FIELDS = {"min_order_amount", "max_uses", "valid_from", "valid_to"}

    @staticmethod
    def create_coupon(db: Session, coupon_data: StoreCouponCreate) -> StoreCoupon:
        StoreCouponService._validate_coupon(
            coupon_data.discount_type, coupon_data.discount_value, coupon_data.valid_from, coupon_data.valid_to
        )
        code = normalize_code(coupon_data.code)
        if StoreCouponService.get_by_code(db, code):
            raise HTTPException(status_code=400, detail=f"Coupon code '{code}' already exists")
        db_coupon = StoreCoupon(
            code=code,
            discount_type=coupon_data.discount_type,
            discount_value=coupon_data.discount_value,
            min_order_amount=coupon_data.min_order_amount,
            max_uses=coupon_data.max_uses,
            used_count=0,
            is_active=True if coupon_data.is_active is None else coupon_data.is_active,
            valid_from=coupon_data.valid_from,
            valid_to=coupon_data.valid_to,
        )
        db.add(db_coupon)
        db.commit()
        db.refresh(db_coupon)
        return db_coupon

    @staticmethod
    def get_coupon(db: Session, coupon_id: int) -> Optional[StoreCoupon]:
        return db.query(StoreCoupon).filter(StoreCoupon.id == coupon_id).first()

    @staticmethod
    def get_by_code(db: Session, code: str) -> Optional[StoreCoupon]:
        return db.query(StoreCoupon).filter(StoreCoupon.code == normalize_code(code)).first()

    @staticmethod
    def get_coupons(db: Session, skip: int = 0, limit: int = 100) -> List[StoreCoupon]:
        limit = min(max(limit, 1), 500)
        return db.query(StoreCoupon).order_by(StoreCoupon.id).offset(skip).limit(limit).all()

    @staticmethod
    def update_coupon(db: Session, coupon_id: int, coupon_data: StoreCouponUpdate) -> Optional[StoreCoupon]:
        db_coupon = db.query(StoreCoupon).filter(StoreCoupon.id == coupon_id).first()
        if not db_coupon:
            return None

        # Compute final fields then validate; null only clears nullable columns
        changes = {
            k: v for k, v in coupon_data.model_dump(exclude_unset=True).items()
            if v is not None or k in StoreCouponService.NULLABLE_FIELDS
        }
        final_type = changes.get("discount_type") or db_coupon.discount_type
        final_value = changes.get("discount_value") or db_coupon.discount_value
        final_from = changes["valid_from"] if "valid_from" in changes else db_coupon.valid_from
        final_to = changes["valid_to"] if "valid_to" in changes else db_coupon.valid_to
        StoreCouponService._validate_coupon(final_type, final_value, final_from, final_to)

        for field, value in changes.items():
            setattr(db_coupon, field, value)

        db.commit()
        db.refresh(db_coupon)
        return db_coupon

    @staticmethod
    def delete_coupon(db: Session, coupon_id: int) -> bool:
        db_coupon = db.query(StoreCoupon).filter(StoreCoupon.id == coupon_id).first()
        if not db_coupon:
            return False
        if db_coupon.used_count:
            # Redeemed codes stay for the audit trail; switch them off instead
            raise HTTPException(status_code=400, detail="Coupon has been used; deactivate it instead")
        db.delete(db_coupon)
        db.commit()
        return True

    @staticmethod
    def _validate_coupon(discount_type: str, discount_value, valid_from, valid_to) -> None:
        if discount_type not in ('percentage', 'fixed'):
            raise HTTPException(status_code=400, detail="discount_type must be 'percentage' or 'fixed'")
        if discount_value is None or discount_value <= 0:
            raise HTTPException(status_code=400, detail="discount_value must be a positive number")
        if discount_type == 'percentage' and discount_value > 100:
            raise HTTPException(status_code=400, detail="percentage discount_value cannot exceed 100")
        if valid_from and valid_to and as_utc(valid_from) >= as_utc(valid_to):
            raise HTTPException(status_code=400, detail="valid_from must be earlier than valid_to")

    @staticmethod
    def ensure_applicable(coupon: StoreCoupon, subtotal: Decimal, now: Optional[datetime] = None) -> None:
        now = now or utcnow()
        if not coupon.is_active:
            raise CouponNotApplicable("Coupon is inactive")
        if coupon.valid_from is not None and as_utc(coupon.valid_from) > now:
            raise CouponNotApplicable("Coupon is not active yet")
        if coupon.valid_to is not None and as_utc(coupon.valid_to) <= now:
            raise CouponExpired()
        if coupon.max_uses is not None and (coupon.used_count or 0) >= coupon.max_uses:
            raise CouponNotApplicable("Coupon redemption limit reached")
        if coupon.min_order_amount is not None and subtotal < D(coupon.min_order_amount):
            raise CouponNotApplicable(f"Minimum order amount for this coupon is {coupon.min_order_amount}")
