from datetime import datetime, timedelta, timezone

import pytest

from prize_engine.database import as_utc
from prize_engine.errors import CatalogEmpty, CodeGenerationExhausted, IneligibleToSpin, NoEligibleSegment
from prize_engine.models.pending_spin import PendingSpin
from prize_engine.models.spin_record import SpinRecord
from prize_engine.models.user_coupon import UserCoupon
from prize_engine.schemas.spin import SpinIdentity
from prize_engine.services.coupon_issuer import CouponIssuer, generate_coupon_code
from prize_engine.services.spin_ledger import SpinLedger
from prize_engine.services.spin_service import SpinService

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def sequence_generator(*codes):
    pending = list(codes)

    def generate():
        return pending.pop(0)
    return generate


def test_generated_code_format():
    """Test wheel codes look like WHEEL-XXXXXX"""
    code = generate_coupon_code()
    prefix, suffix = code.split("-")
    assert prefix == "WHEEL"
    assert len(suffix) == 6
    assert suffix.isalnum() and suffix.upper() == suffix


def test_authenticated_spin_issues_coupon(db, make_segment):
    """Test an account spin mints a coupon and records the spin"""
    segment = make_segment(discount_value=20)
    service = SpinService()

    outcome = service.spin(db, SpinIdentity(user_id="user-1"), now=T0)

    assert outcome.segment.id == segment.id
    assert outcome.prize.kind == "user_coupon"
    coupon = outcome.prize.user_coupon
    assert coupon.code.startswith("WHEEL-")
    assert coupon.user_id == "user-1"
    assert coupon.is_used is False
    assert float(coupon.discount_value) == 20
    assert as_utc(coupon.expires_at) == T0 + timedelta(days=30)

    record = db.query(SpinRecord).one()
    assert record.user_id == "user-1"
    assert record.coupon_id == coupon.id
    assert record.segment_id == segment.id


def test_anonymous_spin_creates_pending_ticket(db, make_segment):
    """Test an anonymous spin stores a claim ticket and no coupon code"""
    make_segment()
    outcome = SpinService().spin(db, SpinIdentity(session_id="sess-1"), now=T0)

    assert outcome.prize.kind == "pending_spin"
    pending = outcome.prize.pending_spin
    assert pending.session_id == "sess-1"
    assert as_utc(pending.expires_at) == T0 + timedelta(hours=24)
    assert pending.claimed_at is None
    assert db.query(UserCoupon).count() == 0

    record = db.query(SpinRecord).one()
    assert record.user_id is None
    assert record.session_id == "sess-1"
    assert record.pending_spin_id == pending.id


def test_gift_spin_copies_product_details(db, make_product, make_segment):
    """Test gift coupons carry the product name and image"""
    product = make_product(name="Rose bouquet")
    make_segment(label="Free roses", prize_type="gift", discount_value=0, gift_product_id=product.id)

    coupon = SpinService().spin(db, SpinIdentity(user_id="user-1"), now=T0).prize.user_coupon

    assert coupon.prize_type == "gift"
    assert coupon.gift_product_id == product.id
    assert coupon.gift_product_name == "Rose bouquet"
    assert coupon.gift_product_image == product.image_url


def test_second_spin_inside_cooldown_rejected(db, make_segment):
    """Test the same account cannot spin twice inside the window"""
    make_segment()
    service = SpinService()
    identity = SpinIdentity(user_id="user-1")
    service.spin(db, identity, now=T0)

    with pytest.raises(IneligibleToSpin):
        service.spin(db, identity, now=T0 + timedelta(days=14))

    assert db.query(SpinRecord).count() == 1
    assert db.query(UserCoupon).count() == 1


def test_spin_allowed_after_cooldown(db, make_segment):
    """Test the window is rolling from the last spin"""
    make_segment()
    service = SpinService()
    identity = SpinIdentity(user_id="user-1")
    service.spin(db, identity, now=T0)

    assert service.ledger.next_spin_at(db, identity, T0 + timedelta(days=1)) == T0 + timedelta(days=15)
    service.spin(db, identity, now=T0 + timedelta(days=15))
    assert db.query(SpinRecord).count() == 2


def test_anonymous_session_cannot_spin_twice(db, make_segment):
    """Test a session holding a ticket is not eligible again"""
    make_segment()
    service = SpinService()
    identity = SpinIdentity(session_id="sess-1")
    service.spin(db, identity, now=T0)

    with pytest.raises(IneligibleToSpin):
        service.spin(db, identity, now=T0 + timedelta(minutes=5))


def test_cooldown_is_per_identity(db, make_segment):
    """Test other accounts are unaffected by someone else's spin"""
    make_segment()
    service = SpinService()
    service.spin(db, SpinIdentity(user_id="user-1"), now=T0)

    assert service.ledger.can_spin(db, SpinIdentity(user_id="user-2"), T0) is True
    assert service.ledger.can_spin(db, SpinIdentity(user_id="user-1"), T0) is False


def test_custom_cooldown(db, make_segment):
    """Test the cooldown length is configurable"""
    make_segment()
    service = SpinService(ledger=SpinLedger(cooldown=timedelta(hours=1)))
    identity = SpinIdentity(user_id="user-1")
    service.spin(db, identity, now=T0)
    service.spin(db, identity, now=T0 + timedelta(hours=1))
    assert db.query(SpinRecord).count() == 2


def test_empty_catalog(db, make_segment):
    """Test spinning with no active segments"""
    make_segment(is_active=False)
    service = SpinService()

    with pytest.raises(CatalogEmpty):
        service.spin(db, SpinIdentity(user_id="user-1"), now=T0)
    assert service.wheel(db) == []
    assert db.query(SpinRecord).count() == 0


def test_all_zero_weights(db, make_segment):
    """Test a wheel where every active segment has zero weight"""
    make_segment(probability=0)
    make_segment(label="10% off", discount_value=10, probability=0)

    with pytest.raises(NoEligibleSegment):
        SpinService().spin(db, SpinIdentity(user_id="user-1"), now=T0)
    assert db.query(SpinRecord).count() == 0


def test_code_collision_is_retried(db, make_segment, make_user_coupon):
    """Test a colliding code is regenerated before anything is stored"""
    make_segment()
    make_user_coupon(user_id="someone-else", code="WHEEL-AAAAAA")
    issuer = CouponIssuer(code_generator=sequence_generator("WHEEL-AAAAAA", "wheel-aaaaaa", "WHEEL-BBBBBB"))

    outcome = SpinService(issuer=issuer).spin(db, SpinIdentity(user_id="user-1"), now=T0)

    assert outcome.prize.user_coupon.code == "WHEEL-BBBBBB"
    assert db.query(UserCoupon).count() == 2


def test_code_generation_exhausted(db, make_segment, make_user_coupon):
    """Test the spin fails cleanly when every candidate code is taken"""
    make_segment()
    make_user_coupon(user_id="someone-else", code="WHEEL-AAAAAA")
    issuer = CouponIssuer(code_generator=lambda: "WHEEL-AAAAAA", max_attempts=3)

    with pytest.raises(CodeGenerationExhausted):
        SpinService(issuer=issuer).spin(db, SpinIdentity(user_id="user-1"), now=T0)

    assert db.query(SpinRecord).count() == 0
    assert db.query(UserCoupon).count() == 1


def test_expired_ticket_frees_the_session(db, make_segment):
    """Test an unclaimed, expired ticket is replaced on the next spin"""
    make_segment()
    service = SpinService(
        ledger=SpinLedger(cooldown=timedelta(hours=1)),
        issuer=CouponIssuer(pending_ttl=timedelta(hours=1)),
    )
    identity = SpinIdentity(session_id="sess-1")
    service.spin(db, identity, now=T0)

    outcome = service.spin(db, identity, now=T0 + timedelta(hours=2))

    assert db.query(PendingSpin).count() == 1
    assert db.query(PendingSpin).one().id == outcome.prize.pending_spin.id
    assert db.query(SpinRecord).count() == 2


def test_spin_window_is_claimed_once(db, make_segment):
    """Test a second claim inside the window is refused even when the read check passed"""
    make_segment()
    ledger = SpinLedger()
    identity = SpinIdentity(user_id="user-1")

    ledger.claim_slot(db, identity, T0)
    db.commit()

    with pytest.raises(IneligibleToSpin):
        ledger.claim_slot(db, identity, T0 + timedelta(days=1))
    db.rollback()

    ledger.claim_slot(db, identity, T0 + timedelta(days=15))
    db.commit()
