
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from prize_engine.database import get_db, utcnow
from prize_engine.routers.deps import get_identity, get_spin_service
from prize_engine.schemas.segment import SegmentResponse, WheelResponse
from prize_engine.schemas.spin import (
    EligibilityResponse, IssuedPrize, PendingSpinResponse, SpinIdentity, SpinResponse, UserCouponResponse,
)
from prize_engine.schemas.stats import WheelStats
from prize_engine.services.spin_service import SpinService
from prize_engine.services.wheel_stats import WheelStatsService

router = APIRouter(prefix="/wheel", tags=["wheel"])


@router.get("", response_model=WheelResponse)
def get_wheel(db: Session = Depends(get_db), service: SpinService = Depends(get_spin_service)):
    segments = service.wheel(db)
    return WheelResponse(enabled=bool(segments), segments=[SegmentResponse.model_validate(s) for s in segments])


@router.get("/eligibility", response_model=EligibilityResponse)
def get_eligibility(
    identity: SpinIdentity = Depends(get_identity),
    db: Session = Depends(get_db),
    service: SpinService = Depends(get_spin_service),
):
    now = utcnow()
    return EligibilityResponse(
        can_spin=service.ledger.can_spin(db, identity, now),
        next_spin_at=service.ledger.next_spin_at(db, identity, now),
    )


@router.post("/spin", response_model=SpinResponse, status_code=201)
def spin(
    identity: SpinIdentity = Depends(get_identity),
    db: Session = Depends(get_db),
    service: SpinService = Depends(get_spin_service),
):
    outcome = service.spin(db, identity)
    prize = outcome.prize
    if prize.user_coupon is not None:
        issued = IssuedPrize(kind="user_coupon", user_coupon=UserCouponResponse.model_validate(prize.user_coupon))
    else:
        issued = IssuedPrize(kind="pending_spin", pending_spin=PendingSpinResponse.model_validate(prize.pending_spin))
    return SpinResponse(segment=SegmentResponse.model_validate(outcome.segment), issued_prize=issued)


@router.get("/stats", response_model=WheelStats)
def get_stats(limit: int = 20, db: Session = Depends(get_db)):
    return WheelStatsService.get_stats(db, recent_limit=limit)
