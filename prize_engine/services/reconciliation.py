
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from prize_engine import config
from prize_engine.database import as_utc, utcnow
from prize_engine.errors import CodeGenerationExhausted
from prize_engine.models.pending_spin import PendingSpin
from prize_engine.models.spin_record import SpinRecord
from prize_engine.models.user_coupon import UserCoupon
from prize_engine.schemas.spin import SpinIdentity
from prize_engine.services.coupon_issuer import CouponIssuer, PrizeFields
from prize_engine.services.spin_ledger import SpinLedger

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Hands a prize won by an anonymous session to the account that signs in.

    Runs once per successful login. The claim on the ticket is a single
    conditional write, so duplicate or concurrent calls for the same session
    converge on one coupon. Claimed tickets are kept, which means a session id
    can never produce a second coupon.
    """

    def __init__(
        self,
        issuer: Optional[CouponIssuer] = None,
        ledger: Optional[SpinLedger] = None,
        max_attempts: int = config.COUPON_CODE_MAX_ATTEMPTS,
    ):
        self.issuer = issuer or CouponIssuer()
        self.ledger = ledger or SpinLedger()
        self.max_attempts = max_attempts

    def reconcile(self, db: Session, session_id: str, user_id: str, now: Optional[datetime] = None) -> Optional[UserCoupon]:
        now = now or utcnow()
        for attempt in range(1, self.max_attempts + 1):
            try:
                coupon = self._reconcile_once(db, session_id, user_id, now)
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                logger.warning("Reconciliation of session %s retried (attempt %d): %s", session_id, attempt, exc.orig)
                continue
            except Exception:
                db.rollback()
                raise
            if coupon is not None:
                db.refresh(coupon)
            return coupon

        # Every attempt collided; nothing was claimed, the ticket stays for a later login
        logger.error("Reconciliation of session %s gave up after %d attempts", session_id, self.max_attempts)
        raise CodeGenerationExhausted()

    def _reconcile_once(self, db: Session, session_id: str, user_id: str, now: datetime) -> Optional[UserCoupon]:
        self._discard_expired(db, session_id, now)

        pending = (
            db.query(PendingSpin)
            .filter(
                PendingSpin.session_id == session_id,
                PendingSpin.claimed_at.is_(None),
                PendingSpin.expires_at > now,
            )
            .order_by(PendingSpin.created_at.desc())
            .first()
        )
        if pending is None:
            logger.info("No pending spin to reconcile for session %s", session_id)
            return None

        if not self._claim(db, pending.id, user_id, now):
            logger.info("Pending spin %s was already claimed", pending.id)
            return None

        coupon = self.issuer.mint_user_coupon(
            db, user_id, PrizeFields.from_pending_spin(pending), now, pending_spin_id=pending.id
        )
        self._link_spin_record(db, pending.id, user_id, coupon.id)
        self.ledger.mark_spun(db, SpinIdentity(user_id=user_id), as_utc(pending.created_at))
        logger.info("Reconciled pending spin %s of session %s into coupon %s for user %s",
                    pending.id, session_id, coupon.code, user_id)
        return coupon

    def _claim(self, db: Session, pending_spin_id: int, user_id: str, now: datetime) -> bool:
        result = db.execute(
            update(PendingSpin)
            .where(PendingSpin.id == pending_spin_id, PendingSpin.claimed_at.is_(None))
            .values(claimed_at=now, claimed_by_user_id=user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _discard_expired(self, db: Session, session_id: str, now: datetime) -> None:
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

    @staticmethod
    def _link_spin_record(db: Session, pending_spin_id: int, user_id: str, coupon_id: int) -> None:
        # The anonymous record joins the account history; this also starts the account's cooldown
        db.execute(
            update(SpinRecord)
            .where(SpinRecord.pending_spin_id == pending_spin_id, SpinRecord.user_id.is_(None))
            .values(user_id=user_id, coupon_id=coupon_id)
            .execution_options(synchronize_session=False)
        )
