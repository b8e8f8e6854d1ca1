
from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from prize_engine.database import as_utc, utcnow
from prize_engine.models.pending_spin import PendingSpin
from prize_engine.models.segment import WheelSegment
from prize_engine.models.spin_record import SpinRecord
from prize_engine.models.user_coupon import UserCoupon
from prize_engine.schemas.stats import RecentSpin, WheelStats


class WheelStatsService:
    """Reporting over the spin history and the coupons it produced"""

    @staticmethod
    def get_stats(db: Session, now: Optional[datetime] = None, recent_limit: int = 20) -> WheelStats:
        now = now or utcnow()

        total_spins = db.query(func.count(SpinRecord.id)).scalar() or 0
        unique_users = (
            db.query(func.count(func.distinct(SpinRecord.user_id)))
            .filter(SpinRecord.user_id.isnot(None))
            .scalar() or 0
        )
        anonymous_spins = db.query(func.count(SpinRecord.id)).filter(SpinRecord.user_id.is_(None)).scalar() or 0
        open_pending = (
            db.query(func.count(PendingSpin.id))
            .filter(PendingSpin.claimed_at.is_(None), PendingSpin.expires_at > now)
            .scalar() or 0
        )

        def count_coupons(*criteria) -> int:
            return db.query(func.count(UserCoupon.id)).filter(*criteria).scalar() or 0

        rows = (
            db.query(SpinRecord, WheelSegment.label, WheelSegment.prize_type, UserCoupon.code)
            .join(WheelSegment, WheelSegment.id == SpinRecord.segment_id)
            .outerjoin(UserCoupon, UserCoupon.id == SpinRecord.coupon_id)
            .order_by(SpinRecord.spun_at.desc(), SpinRecord.id.desc())
            .limit(min(max(recent_limit, 1), 100))
            .all()
        )
        recent = [
            RecentSpin(
                id=record.id,
                user_id=record.user_id,
                session_id=record.session_id,
                segment_label=label,
                prize_type=prize_type,
                coupon_code=code,
                spun_at=as_utc(record.spun_at),
            )
            for record, label, prize_type, code in rows
        ]

        return WheelStats(
            total_spins=total_spins,
            unique_users=unique_users,
            anonymous_spins=anonymous_spins,
            open_pending_spins=open_pending,
            total_coupons=count_coupons(),
            used_coupons=count_coupons(UserCoupon.is_used.is_(True)),
            expired_coupons=count_coupons(UserCoupon.is_used.is_(False), UserCoupon.expires_at <= now),
            discount_coupons=count_coupons(UserCoupon.prize_type == "discount"),
            gift_coupons=count_coupons(UserCoupon.prize_type == "gift"),
            recent_spins=recent,
        )
