
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from prize_engine import config
from prize_engine.database import utcnow
from prize_engine.errors import CatalogEmpty, CodeGenerationExhausted
from prize_engine.models.segment import WheelSegment
from prize_engine.schemas.spin import SpinIdentity
from prize_engine.services.coupon_issuer import CouponIssuer, IssuedPrizeRecord
from prize_engine.services.prize_drawer import PrizeDrawer
from prize_engine.services.segment_catalog import SegmentCatalog
from prize_engine.services.spin_ledger import SpinLedger

logger = logging.getLogger(__name__)


@dataclass
class SpinOutcome:
    segment: WheelSegment
    prize: IssuedPrizeRecord


class SpinService:
    """Eligibility check, draw, issuance and spin record in one transaction."""

    def __init__(
        self,
        ledger: Optional[SpinLedger] = None,
        drawer: Optional[PrizeDrawer] = None,
        issuer: Optional[CouponIssuer] = None,
        max_attempts: int = config.COUPON_CODE_MAX_ATTEMPTS,
    ):
        self.ledger = ledger or SpinLedger()
        self.drawer = drawer or PrizeDrawer()
        self.issuer = issuer or CouponIssuer()
        self.max_attempts = max_attempts

    def wheel(self, db: Session) -> List[WheelSegment]:
        """Segments to display; empty when the wheel should be hidden."""
        try:
            return SegmentCatalog.active_segments(db)
        except CatalogEmpty:
            return []

    def spin(self, db: Session, identity: SpinIdentity, now: Optional[datetime] = None) -> SpinOutcome:
        now = now or utcnow()
        self.ledger.ensure_can_spin(db, identity, now)
        segment = self.drawer.draw(SegmentCatalog.active_segments(db))

        for attempt in range(1, self.max_attempts + 1):
            try:
                self.ledger.claim_slot(db, identity, now)
                prize = self.issuer.issue(db, identity, segment, now)
                self.ledger.record_spin(
                    db,
                    identity,
                    segment,
                    now,
                    coupon_id=prize.user_coupon.id if prize.user_coupon else None,
                    pending_spin_id=prize.pending_spin.id if prize.pending_spin else None,
                )
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                logger.warning("Spin for %s hit a constraint on attempt %d: %s", identity.describe(), attempt, exc.orig)
                # A concurrent spin of the same identity shows up here as ineligible
                self.ledger.ensure_can_spin(db, identity, now)
                continue
            except Exception:
                db.rollback()
                raise
            logger.info("%s won segment %s (%s)", identity.describe(), segment.id, prize.kind)
            return SpinOutcome(segment=segment, prize=prize)

        logger.error("Spin for %s failed after %d attempts", identity.describe(), self.max_attempts)
        raise CodeGenerationExhausted()
