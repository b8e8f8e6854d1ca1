
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from prize_engine.database import get_db
from prize_engine.routers.deps import get_optional_user_id, get_redemption_engine, get_user_id
from prize_engine.schemas.coupon import (
    CodeLookupRequest, CodeLookupResponse, StoreCouponCreate, StoreCouponResponse, StoreCouponUpdate,
)
from prize_engine.schemas.spin import UserCouponResponse
from prize_engine.services.redemption import RedemptionEngine
from prize_engine.services.store_coupon_service import StoreCouponService

router = APIRouter(prefix="", tags=["coupons"])


@router.post("/coupons", response_model=StoreCouponResponse, status_code=201)
def create_coupon(coupon: StoreCouponCreate, db: Session = Depends(get_db)):
    created = StoreCouponService.create_coupon(db, coupon)
    return created


@router.get("/coupons", response_model=List[StoreCouponResponse])
def list_coupons(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    return StoreCouponService.get_coupons(db, skip, limit)


@router.post("/coupons/lookup", response_model=CodeLookupResponse)
def lookup_code(
    body: CodeLookupRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_optional_user_id),
    engine: RedemptionEngine = Depends(get_redemption_engine),
):
    kind, coupon = engine.lookup_code(db, body.code, body.subtotal, user_id)
    if kind == "store":
        return CodeLookupResponse(kind=kind, store_coupon=StoreCouponResponse.model_validate(coupon))
    return CodeLookupResponse(kind=kind, user_coupon=UserCouponResponse.model_validate(coupon))


@router.get("/coupons/{coupon_id}", response_model=StoreCouponResponse)
def get_coupon(coupon_id: int, db: Session = Depends(get_db)):
    c = StoreCouponService.get_coupon(db, coupon_id)
    if not c:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return c


@router.put("/coupons/{coupon_id}", response_model=StoreCouponResponse)
def update_coupon(coupon_id: int, payload: StoreCouponUpdate, db: Session = Depends(get_db)):
    updated = StoreCouponService.update_coupon(db, coupon_id, payload)
    if not updated:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return updated


@router.delete("/coupons/{coupon_id}", status_code=204)
def delete_coupon(coupon_id: int, db: Session = Depends(get_db)):
    ok = StoreCouponService.delete_coupon(db, coupon_id)
    if not ok:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return


@router.get("/me/coupons", response_model=List[UserCouponResponse])
def list_available_coupons(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    engine: RedemptionEngine = Depends(get_redemption_engine),
):
    return engine.list_available_coupons(db, user_id)
