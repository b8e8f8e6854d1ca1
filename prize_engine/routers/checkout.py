
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
from prize_engine.database import get_db
from prize_engine.routers.deps import get_optional_user_id, get_reconciliation_service, get_redemption_engine, get_user_id
from prize_engine.schemas.cart import (
    CommitOrderRequest, DiscountPreview, OrderResponse, PreviewRequest, ReleaseRequest, ReleaseResponse,
)
from prize_engine.schemas.spin import ReconcileRequest, ReconcileResponse, UserCouponResponse
from prize_engine.services.reconciliation import ReconciliationService
from prize_engine.services.redemption import RedemptionEngine

router = APIRouter(prefix="", tags=["checkout"])


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile(
    body: ReconcileRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    coupon = service.reconcile(db, body.session_id, user_id)
    return ReconcileResponse(coupon=UserCouponResponse.model_validate(coupon) if coupon else None)


@router.post("/cart/preview", response_model=DiscountPreview)
def preview_discount(
    body: PreviewRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_optional_user_id),
    engine: RedemptionEngine = Depends(get_redemption_engine),
):
    return engine.preview_discount(db, body.cart, body.selection, user_id)


@router.post("/cart/release", response_model=ReleaseResponse)
def release_selection(body: ReleaseRequest, engine: RedemptionEngine = Depends(get_redemption_engine)):
    return engine.release(body.cart, body.selection)


@router.post("/orders", response_model=OrderResponse, status_code=201)
def commit_order(
    body: CommitOrderRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_optional_user_id),
    engine: RedemptionEngine = Depends(get_redemption_engine),
):
    return engine.commit_order(db, body.cart, body.selection, body.order, user_id)
