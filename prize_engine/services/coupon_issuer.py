
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional
from sqlalchemy.orm import Session
from prize_engine import config
from prize_engine.errors import CodeGenerationExhausted, DuplicateCode
from prize_engine.models.pending_spin import PendingSpin
from prize_engine.models.segment import WheelSegment
from prize_engine.models.user_coupon import UserCoupon
from prize_engine.schemas.spin import SpinIdentity
from prize_engine.services.product_catalog import ProductCatalog

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_coupon_code(prefix: str = config.COUPON_CODE_PREFIX, length: int = config.COUPON_CODE_LENGTH) -> str:
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    return f"{prefix}-{suffix}" if prefix else suffix


@dataclass
class PrizeFields:
    """The part of a segment that travels with the prize it produced."""

    segment_id: int
    prize_type: str
    discount_type: Optional[str]
    discount_value: Optional[object]
    gift_product_id: Optional[int]

    @classmethod
    def from_segment(cls, segment: WheelSegment) -> "PrizeFields":
        return cls(
            segment_id=segment.id,
            prize_type=segment.prize_type,
            discount_type=segment.discount_type,
            discount_value=segment.discount_value,
            gift_product_id=segment.gift_product_id if segment.prize_type == "gift" else None,
        )

    @classmethod
    def from_pending_spin(cls, pending: PendingSpin) -> "PrizeFields":
        return cls(
            segment_id=pending.segment_id,
            prize_type=pending.prize_type,
            discount_type=pending.discount_type,
            discount_value=pending.discount_value,
            gift_product_id=pending.gift_product_id,
        )


@dataclass
class IssuedPrizeRecord:
    user_coupon: Optional[UserCoupon] = None
    pending_spin: Optional[PendingSpin] = None

    @property
    def kind(self) -> str:
        return "user_coupon" if self.user_coupon is not None else "pending_spin"


class CouponIssuer:
    """Turns a drawn segment into something redeemable.

    Accounts get a ``UserCoupon`` with a fresh code right away. Anonymous
    sessions get a short-lived ``PendingSpin`` ticket and no code; the code is
    minted only when the ticket is reconciled into an account.

    Nothing here commits. Callers own the transaction.
    """

    def __init__(
        self,
        code_generator: Callable[[], str] = generate_coupon_code,
        validity: timedelta = config.COUPON_VALIDITY,
        pending_ttl: timedelta = config.PENDING_SPIN_TTL,
        max_attempts: int = config.COUPON_CODE_MAX_ATTEMPTS,
    ):
        self.code_generator = code_generator
        self.validity = validity
        self.pending_ttl = pending_ttl
        self.max_attempts = max_attempts

    def issue(self, db: Session, identity: SpinIdentity, segment: WheelSegment, now: datetime) -> IssuedPrizeRecord:
        prize = PrizeFields.from_segment(segment)
        if identity.is_authenticated:
            coupon = self.mint_user_coupon(db, identity.user_id, prize, now)
            return IssuedPrizeRecord(user_coupon=coupon)
        pending = self.create_pending_spin(db, identity.session_id, prize, now)
        return IssuedPrizeRecord(pending_spin=pending)

    def mint_user_coupon(
        self,
        db: Session,
        user_id: str,
        prize: PrizeFields,
        now: datetime,
        pending_spin_id: Optional[int] = None,
    ) -> UserCoupon:
        gift_name = gift_image = None
        if prize.prize_type == "gift" and prize.gift_product_id:
            product = ProductCatalog.get_product(db, prize.gift_product_id)
            if product:
                gift_name, gift_image = product.name, product.image_url

        coupon = UserCoupon(
            user_id=user_id,
            code=self.generate_unique_code(db),
            prize_type=prize.prize_type,
            discount_type=prize.discount_type or "percentage",
            discount_value=prize.discount_value or 0,
            gift_product_id=prize.gift_product_id,
            gift_product_name=gift_name,
            gift_product_image=gift_image,
            is_used=False,
            expires_at=now + self.validity,
            created_at=now,
            pending_spin_id=pending_spin_id,
        )
        db.add(coupon)
        db.flush()
        logger.info("Issued coupon %s (%s) to user %s", coupon.code, coupon.prize_type, user_id)
        return coupon

    def create_pending_spin(self, db: Session, session_id: str, prize: PrizeFields, now: datetime) -> PendingSpin:
        # Stale, unclaimed tickets of this session give up their slot
        discarded = (
            db.query(PendingSpin)
            .filter(
                PendingSpin.session_id == session_id,
                PendingSpin.claimed_at.is_(None),
                PendingSpin.expires_at <= now,
            )
            .delete(synchronize_session=False)
        )
        if discarded:
            logger.info("Discarded %d expired pending spin(s) for session %s", discarded, session_id)

        pending = PendingSpin(
            session_id=session_id,
            segment_id=prize.segment_id,
            prize_type=prize.prize_type,
            discount_type=prize.discount_type if prize.prize_type == "discount" else None,
            discount_value=prize.discount_value if prize.prize_type == "discount" else None,
            gift_product_id=prize.gift_product_id,
            created_at=now,
            expires_at=now + self.pending_ttl,
        )
        db.add(pending)
        db.flush()
        logger.info("Saved pending spin %s for session %s", pending.id, session_id)
        return pending

    def generate_unique_code(self, db: Session) -> str:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self._try_code(db)
            except DuplicateCode as exc:
                logger.warning("Coupon code collision on attempt %d: %s", attempt, exc)
        logger.error("Coupon code generation exhausted after %d attempts", self.max_attempts)
        raise CodeGenerationExhausted()

    def _try_code(self, db: Session) -> str:
        candidate = self.code_generator().strip().upper()
        if db.query(UserCoupon.id).filter(UserCoupon.code == candidate).first():
            raise DuplicateCode(candidate)
        return candidate
