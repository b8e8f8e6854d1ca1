import threading
from datetime import datetime, timedelta, timezone

from prize_engine.errors import CouponAlreadyConsumed, IneligibleToSpin
from prize_engine.models.order import Order
from prize_engine.models.spin_record import SpinRecord
from prize_engine.models.user_coupon import UserCoupon
from prize_engine.schemas.cart import Cart, CartItem, CouponSelection, OrderDraft
from prize_engine.schemas.spin import SpinIdentity
from prize_engine.services.reconciliation import ReconciliationService
from prize_engine.services.redemption import RedemptionEngine
from prize_engine.services.spin_service import SpinService

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def run_together(count, work):
    """Start `count` threads at once; collect results and raised errors."""
    barrier = threading.Barrier(count)
    lock = threading.Lock()
    results, errors = [], []

    def runner():
        barrier.wait()
        try:
            outcome = work()
        except Exception as exc:
            with lock:
                errors.append(exc)
        else:
            with lock:
                results.append(outcome)

    threads = [threading.Thread(target=runner) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results, errors


def in_session(session_factory, work):
    def call():
        session = session_factory()
        try:
            return work(session)
        finally:
            session.close()
    return call


def count(session_factory, model):
    session = session_factory()
    try:
        return session.query(model).count()
    finally:
        session.close()


def test_concurrent_account_spins_single_winner(session_factory, make_segment):
    """Test a double-clicked spin of one account issues one prize"""
    make_segment()
    service = SpinService()

    def spin(session):
        return service.spin(session, SpinIdentity(user_id="user-1"), now=T0).prize.user_coupon.id

    results, errors = run_together(8, in_session(session_factory, spin))

    assert len(results) == 1
    assert len(errors) == 7
    assert all(isinstance(exc, IneligibleToSpin) for exc in errors)
    assert count(session_factory, SpinRecord) == 1
    assert count(session_factory, UserCoupon) == 1


def test_concurrent_session_spins_single_winner(session_factory, make_segment):
    """Test simultaneous anonymous spins of one session issue one ticket"""
    make_segment()
    service = SpinService()

    def spin(session):
        return service.spin(session, SpinIdentity(session_id="sess-1"), now=T0).prize.pending_spin.id

    results, errors = run_together(8, in_session(session_factory, spin))

    assert len(results) == 1
    assert all(isinstance(exc, IneligibleToSpin) for exc in errors)
    assert count(session_factory, SpinRecord) == 1


def test_concurrent_reconcile_single_coupon(session_factory, make_segment):
    """Test simultaneous sign-ins for one session mint one coupon"""
    make_segment()
    setup = session_factory()
    try:
        SpinService().spin(setup, SpinIdentity(session_id="sess-1"), now=T0)
    finally:
        setup.close()
    service = ReconciliationService()

    def reconcile(session):
        coupon = service.reconcile(session, "sess-1", "user-1", now=T0 + timedelta(minutes=1))
        return coupon.id if coupon is not None else None

    results, errors = run_together(20, in_session(session_factory, reconcile))

    assert errors == []
    assert len([r for r in results if r is not None]) == 1
    assert count(session_factory, UserCoupon) == 1


def test_concurrent_commit_single_order(session_factory, make_user_coupon):
    """Test simultaneous checkouts with one coupon create one order"""
    coupon_id = make_user_coupon().id
    engine = RedemptionEngine()
    cart = Cart(items=[CartItem(product_id=1, quantity=1, price=1000)])
    selection = CouponSelection(user_coupon_id=coupon_id)
    draft = OrderDraft(customer_name="Anna")
    now = T0 + timedelta(days=1)

    def commit(session):
        return engine.commit_order(session, cart, selection, draft, "user-1", now).id

    results, errors = run_together(8, in_session(session_factory, commit))

    assert len(results) == 1
    assert len(errors) == 7
    assert all(isinstance(exc, CouponAlreadyConsumed) for exc in errors)
    assert count(session_factory, Order) == 1
