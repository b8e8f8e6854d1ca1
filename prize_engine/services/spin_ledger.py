
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import or_, update
from sqlalchemy.orm import Session
from prize_engine import config
from prize_engine.database import as_utc
from prize_engine.errors import IneligibleToSpin
from prize_engine.models.pending_spin import PendingSpin
from prize_engine.models.spin_eligibility import SpinEligibility
from prize_engine.models.segment import WheelSegment
from prize_engine.models.spin_record import SpinRecord
from prize_engine.schemas.spin import SpinIdentity

logger = logging.getLogger(__name__)


class SpinLedger:
    """Append-only spin history and the one-spin-per-window rule.

    Accounts are limited by every record linked to their ``user_id``,
    including anonymous spins reconciled into the account. Anonymous sessions
    are limited by their own records and by any claim ticket they still hold.

    The checks above are reads for fast rejection and display. The rule itself
    is enforced by ``claim_slot`` inside the spin transaction.
    """

    def __init__(self, cooldown: timedelta = config.SPIN_COOLDOWN):
        self.cooldown = cooldown

    def last_spin_at(self, db: Session, identity: SpinIdentity) -> Optional[datetime]:
        q = db.query(SpinRecord.spun_at)
        if identity.is_authenticated:
            q = q.filter(SpinRecord.user_id == identity.user_id)
        else:
            q = q.filter(SpinRecord.session_id == identity.session_id)
        row = q.order_by(SpinRecord.spun_at.desc()).first()
        return as_utc(row[0]) if row else None

    def next_spin_at(self, db: Session, identity: SpinIdentity, now: datetime) -> Optional[datetime]:
        """When the identity may spin again, or None if it may spin now."""
        last = self.last_spin_at(db, identity)
        if last is not None and last + self.cooldown > now:
            return last + self.cooldown
        return None

    def _holds_ticket(self, db: Session, session_id: str, now: datetime) -> bool:
        ticket = (
            db.query(PendingSpin.id)
            .filter(
                PendingSpin.session_id == session_id,
                or_(PendingSpin.claimed_at.isnot(None), PendingSpin.expires_at > now),
            )
            .first()
        )
        return ticket is not None

    def can_spin(self, db: Session, identity: SpinIdentity, now: datetime) -> bool:
        if self.next_spin_at(db, identity, now) is not None:
            return False
        if not identity.is_authenticated and self._holds_ticket(db, identity.session_id, now):
            return False
        return True

    def ensure_can_spin(self, db: Session, identity: SpinIdentity, now: datetime) -> None:
        if self.can_spin(db, identity, now):
            return
        logger.warning("Spin rejected for %s: inside eligibility window", identity.describe())
        next_at = self.next_spin_at(db, identity, now)
        if next_at is not None:
            raise IneligibleToSpin(f"Next spin available at {next_at.isoformat()}")
        raise IneligibleToSpin()

    def claim_slot(self, db: Session, identity: SpinIdentity, now: datetime) -> None:
        """Take this window's spin for the identity, or raise IneligibleToSpin.

        A single conditional UPDATE decides between concurrent spins; a first
        spin inserts the row and a concurrent first spin fails on its key.
        Must be the first write of the spin transaction.
        """
        key = identity.key
        result = db.execute(
            update(SpinEligibility)
            .where(SpinEligibility.identity_key == key, SpinEligibility.last_spun_at <= now - self.cooldown)
            .values(last_spun_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return
        if db.query(SpinEligibility.identity_key).filter(SpinEligibility.identity_key == key).first():
            logger.warning("Spin rejected for %s: window already claimed", key)
            raise IneligibleToSpin()
        db.add(SpinEligibility(identity_key=key, last_spun_at=now))
        db.flush()

    def mark_spun(self, db: Session, identity: SpinIdentity, spun_at: datetime) -> None:
        """Move the identity's window forward to a spin it inherited."""
        key = identity.key
        result = db.execute(
            update(SpinEligibility)
            .where(SpinEligibility.identity_key == key, SpinEligibility.last_spun_at < spun_at)
            .values(last_spun_at=spun_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return
        if db.query(SpinEligibility.identity_key).filter(SpinEligibility.identity_key == key).first():
            return
        db.add(SpinEligibility(identity_key=key, last_spun_at=spun_at))
        db.flush()

    def record_spin(
        self,
        db: Session,
        identity: SpinIdentity,
        segment: WheelSegment,
        now: datetime,
        coupon_id: Optional[int] = None,
        pending_spin_id: Optional[int] = None,
    ) -> SpinRecord:
        # Flush only: the caller commits this together with the issued prize
        record = SpinRecord(
            user_id=identity.user_id,
            session_id=identity.session_id,
            segment_id=segment.id,
            coupon_id=coupon_id,
            pending_spin_id=pending_spin_id,
            spun_at=now,
        )
        db.add(record)
        db.flush()
        return record
