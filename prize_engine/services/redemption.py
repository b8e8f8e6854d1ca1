
import enum
import logging
from datetime import datetime
from typing import List, Optional, Tuple, Union
from sqlalchemy import or_, update
from sqlalchemy.orm import Session
from prize_engine.database import as_utc, utcnow
from prize_engine.errors import (
    AuthenticationRequired, CouponAlreadyConsumed, CouponExpired, CouponNotApplicable, CouponNotFound,
    InvalidRedemptionTransition, ProductNotFound,
)
from prize_engine.models.order import Order
from prize_engine.models.store_coupon import CouponUse, StoreCoupon
from prize_engine.models.user_coupon import UserCoupon
from prize_engine.schemas.cart import Cart, CartItem, CouponSelection, DiscountPreview, OrderDraft, ReleaseResponse
from prize_engine.services.discount_calculator import D, DiscountCalculator, round2
from prize_engine.services.order_service import OrderService
from prize_engine.services.product_catalog import ProductCatalog
from prize_engine.services.store_coupon_service import StoreCouponService, normalize_code

logger = logging.getLogger(__name__)


class RedemptionState(str, enum.Enum):
    NONE_SELECTED = "none_selected"
    DISCOUNT_COUPON_SELECTED = "discount_coupon_selected"
    GIFT_COUPON_APPLIED = "gift_coupon_applied"
    CONSUMED = "consumed"
    RELEASED = "released"


_TRANSITIONS = {
    RedemptionState.NONE_SELECTED: {RedemptionState.DISCOUNT_COUPON_SELECTED, RedemptionState.GIFT_COUPON_APPLIED},
    RedemptionState.DISCOUNT_COUPON_SELECTED: {RedemptionState.CONSUMED, RedemptionState.RELEASED},
    RedemptionState.GIFT_COUPON_APPLIED: {RedemptionState.CONSUMED, RedemptionState.RELEASED},
    RedemptionState.CONSUMED: set(),
    RedemptionState.RELEASED: set(),
}


def advance(current: RedemptionState, target: RedemptionState) -> RedemptionState:
    if target not in _TRANSITIONS[current]:
        raise InvalidRedemptionTransition(f"Cannot move from {current.value} to {target.value}")
    return target


def selection_state(user_coupon: Optional[UserCoupon], store_coupon: Optional[StoreCoupon]) -> RedemptionState:
    if user_coupon is not None and user_coupon.prize_type == "gift":
        return RedemptionState.GIFT_COUPON_APPLIED
    if user_coupon is not None or store_coupon is not None:
        return RedemptionState.DISCOUNT_COUPON_SELECTED
    return RedemptionState.NONE_SELECTED


class RedemptionEngine:
    """Prices a cart against the selected coupons and consumes them at checkout.

    At most one wheel coupon (``UserCoupon``) and one store promo code may be
    selected. Discounts are computed independently on the original subtotal,
    summed, and capped at the subtotal. A gift coupon adds one free line.

    Selection is request-scoped: callers send it with every preview and commit.
    ``preview_discount`` and ``release`` never write. ``commit_order`` is the
    only mutating entry point; each coupon is consumed with one conditional
    UPDATE so concurrent checkouts cannot both use it.
    """

    def list_available_coupons(self, db: Session, user_id: str, now: Optional[datetime] = None) -> List[UserCoupon]:
        now = now or utcnow()
        return (
            db.query(UserCoupon)
            .filter(UserCoupon.user_id == user_id, UserCoupon.is_used.is_(False), UserCoupon.expires_at > now)
            .order_by(UserCoupon.created_at.desc(), UserCoupon.id.desc())
            .all()
        )

    def lookup_code(
        self, db: Session, code: str, subtotal, user_id: Optional[str] = None, now: Optional[datetime] = None
    ) -> Tuple[str, Union[StoreCoupon, UserCoupon]]:
        """Resolve a typed promo code. Active store codes take precedence over wheel codes."""
        now = now or utcnow()
        normalized = normalize_code(code)

        # Switched-off store codes do not shadow a wheel code with the same text
        store_coupon = StoreCouponService.get_by_code(db, normalized)
        if store_coupon is not None and store_coupon.is_active:
            StoreCouponService.ensure_applicable(store_coupon, D(subtotal), now)
            return "store", store_coupon

        if user_id is not None:
            user_coupon = (
                db.query(UserCoupon)
                .filter(UserCoupon.code == normalized, UserCoupon.user_id == user_id)
                .first()
            )
            if user_coupon is not None:
                self._ensure_usable(user_coupon, now)
                return "user", user_coupon

        raise CouponNotFound("Promo code not found")

    def preview_discount(
        self,
        db: Session,
        cart: Cart,
        selection: CouponSelection,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DiscountPreview:
        now = now or utcnow()
        _, _, preview = self._evaluate(db, cart, selection, user_id, now)
        return preview

    def release(self, cart: Cart, selection: CouponSelection) -> ReleaseResponse:
        """Drop the selection before checkout; gift lines it added go with it."""
        has_gift = any(item.is_gift for item in cart.items)
        if has_gift:
            current = RedemptionState.GIFT_COUPON_APPLIED
        elif selection.user_coupon_id is not None or selection.store_coupon_code:
            current = RedemptionState.DISCOUNT_COUPON_SELECTED
        else:
            return ReleaseResponse(state=RedemptionState.NONE_SELECTED.value, line_items=list(cart.items))

        state = advance(current, RedemptionState.RELEASED)
        return ReleaseResponse(state=state.value, line_items=self._apply_gift(cart.items, None))

    def commit_order(
        self,
        db: Session,
        cart: Cart,
        selection: CouponSelection,
        draft: OrderDraft,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        now = now or utcnow()
        if not any(not item.is_gift for item in cart.items):
            raise CouponNotApplicable("Cart is empty")

        try:
            user_coupon, store_coupon, preview = self._evaluate(db, cart, selection, user_id, now)
            state = RedemptionState(preview.state)
            order = OrderService.create_order(
                db,
                preview,
                draft,
                now,
                user_id=user_id,
                user_coupon_code=user_coupon.code if user_coupon is not None else None,
                store_coupon_code=store_coupon.code if store_coupon is not None else None,
            )
            if user_coupon is not None:
                self._consume_user_coupon(db, user_coupon.id, user_id, order.id, now)
            if store_coupon is not None:
                self._consume_store_coupon(db, store_coupon.id, user_id, order.id)
            db.commit()
        except Exception:
            db.rollback()
            raise

        if state is not RedemptionState.NONE_SELECTED:
            advance(state, RedemptionState.CONSUMED)
        db.refresh(order)
        logger.info("Order %s committed (subtotal=%s discount=%s user_coupon=%s store_coupon=%s)",
                    order.order_number, order.subtotal, order.discount_amount,
                    order.user_coupon_code, order.store_coupon_code)
        return order

    # -- internals ---------------------------------------------------------

    def _evaluate(
        self, db: Session, cart: Cart, selection: CouponSelection, user_id: Optional[str], now: datetime
    ) -> Tuple[Optional[UserCoupon], Optional[StoreCoupon], DiscountPreview]:
        subtotal = DiscountCalculator.calculate_cart_total(cart)

        user_coupon = None
        if selection.user_coupon_id is not None:
            user_coupon = self._load_user_coupon(db, selection.user_coupon_id, user_id, now)

        store_coupon = None
        if selection.store_coupon_code:
            store_coupon = StoreCouponService.get_by_code(db, selection.store_coupon_code)
            if store_coupon is None:
                raise CouponNotFound("Promo code not found")
            StoreCouponService.ensure_applicable(store_coupon, subtotal, now)

        user_discount = D(0)
        if user_coupon is not None and user_coupon.prize_type == "discount":
            user_discount = DiscountCalculator.calculate_discount(
                user_coupon.discount_type, user_coupon.discount_value, subtotal
            )
        store_discount = D(0)
        if store_coupon is not None:
            store_discount = DiscountCalculator.calculate_discount(
                store_coupon.discount_type, store_coupon.discount_value, subtotal
            )
        discount = DiscountCalculator.combine(subtotal, [user_discount, store_discount])

        preview = DiscountPreview(
            state=self._preview_state(user_coupon, store_coupon).value,
            subtotal=float(subtotal),
            user_coupon_discount=float(user_discount),
            store_coupon_discount=float(store_discount),
            discount_amount=float(discount),
            final_price=float(round2(subtotal - discount)),
            line_items=self._apply_gift(cart.items, user_coupon),
        )
        return user_coupon, store_coupon, preview

    @staticmethod
    def _preview_state(user_coupon: Optional[UserCoupon], store_coupon: Optional[StoreCoupon]) -> RedemptionState:
        target = selection_state(user_coupon, store_coupon)
        if target is RedemptionState.NONE_SELECTED:
            return target
        return advance(RedemptionState.NONE_SELECTED, target)

    def _load_user_coupon(self, db: Session, coupon_id: int, user_id: Optional[str], now: datetime) -> UserCoupon:
        if user_id is None:
            raise AuthenticationRequired("Sign in to use your wheel coupons")
        coupon = (
            db.query(UserCoupon)
            .filter(UserCoupon.id == coupon_id, UserCoupon.user_id == user_id)
            .first()
        )
        if coupon is None:
            raise CouponNotFound()
        self._ensure_usable(coupon, now)
        if coupon.prize_type == "gift":
            try:
                ProductCatalog.require_product(db, coupon.gift_product_id)
            except ProductNotFound:
                raise CouponNotApplicable("The gift product is no longer available")
        return coupon

    @staticmethod
    def _ensure_usable(coupon: UserCoupon, now: datetime) -> None:
        if coupon.is_used:
            raise CouponAlreadyConsumed()
        if as_utc(coupon.expires_at) <= now:
            raise CouponExpired()

    @staticmethod
    def _apply_gift(items: List[CartItem], user_coupon: Optional[UserCoupon]) -> List[CartItem]:
        # Gift lines only exist while their coupon is selected, and at most once
        lines = [item for item in items if not item.is_gift and item.gift_coupon_id is None]
        if user_coupon is not None and user_coupon.prize_type == "gift":
            lines.append(CartItem(
                product_id=user_coupon.gift_product_id,
                quantity=1,
                price=0,
                name=user_coupon.gift_product_name,
                is_gift=True,
                gift_coupon_id=user_coupon.id,
            ))
        return lines

    @staticmethod
    def _consume_user_coupon(db: Session, coupon_id: int, user_id: str, order_id: int, now: datetime) -> None:
        result = db.execute(
            update(UserCoupon)
            .where(
                UserCoupon.id == coupon_id,
                UserCoupon.user_id == user_id,
                UserCoupon.is_used.is_(False),
                UserCoupon.expires_at > now,
            )
            .values(is_used=True, used_at=now, order_id=order_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        current = (
            db.query(UserCoupon.is_used, UserCoupon.expires_at)
            .filter(UserCoupon.id == coupon_id)
            .first()
        )
        if current is not None and not current.is_used and as_utc(current.expires_at) <= now:
            raise CouponExpired()
        logger.warning("Coupon %s was consumed by a concurrent checkout; order %s rolled back", coupon_id, order_id)
        raise CouponAlreadyConsumed()

    @staticmethod
    def _consume_store_coupon(db: Session, coupon_id: int, user_id: Optional[str], order_id: int) -> None:
        result = db.execute(
            update(StoreCoupon)
            .where(
                StoreCoupon.id == coupon_id,
                StoreCoupon.is_active.is_(True),
                or_(StoreCoupon.max_uses.is_(None), StoreCoupon.used_count < StoreCoupon.max_uses),
            )
            .values(used_count=StoreCoupon.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning("Store coupon %s hit its usage limit during checkout; order %s rolled back",
                           coupon_id, order_id)
            raise CouponNotApplicable("Coupon redemption limit reached")
        db.add(CouponUse(coupon_id=coupon_id, user_id=user_id, order_id=order_id))
        db.flush()
