import os
from datetime import datetime, timedelta, timezone

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from prize_engine.main import app
from prize_engine.database import Base, build_engine, get_db
from prize_engine.models.product import Product
from prize_engine.models.segment import WheelSegment
from prize_engine.models.store_coupon import StoreCoupon
from prize_engine.models.user_coupon import UserCoupon

# Load environment so TEST_DATABASE_URL can be read from .env
load_dotenv()

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine(tmp_path):
    """Fresh schema for each test."""
    url = os.getenv("TEST_DATABASE_URL") or f"sqlite:///{tmp_path / 'prize_engine_test.db'}"
    test_engine = build_engine(url)
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    # Override the app's DB dependency to use the test engine/session
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_product(db):
    def _make(name="Teddy bear", price=1500, image_url="https://cdn.example.com/teddy.jpg"):
        product = Product(name=name, price=price, image_url=image_url, is_active=True)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make


@pytest.fixture
def make_segment(db):
    def _make(label="20% off", prize_type="discount", discount_type="percentage", discount_value=20,
              probability=1.0, gift_product_id=None, is_active=True, sort_order=0):
        segment = WheelSegment(
            label=label,
            prize_type=prize_type,
            discount_type=discount_type,
            discount_value=discount_value,
            gift_product_id=gift_product_id,
            probability=probability,
            is_active=is_active,
            sort_order=sort_order,
        )
        db.add(segment)
        db.commit()
        db.refresh(segment)
        return segment
    return _make


@pytest.fixture
def make_user_coupon(db):
    def _make(user_id="user-1", code="WHEEL-TEST01", prize_type="discount", discount_type="percentage",
              discount_value=20, gift_product_id=None, gift_product_name=None, created_at=T0,
              expires_at=None, is_used=False):
        coupon = UserCoupon(
            user_id=user_id,
            code=code,
            prize_type=prize_type,
            discount_type=discount_type,
            discount_value=discount_value,
            gift_product_id=gift_product_id,
            gift_product_name=gift_product_name,
            is_used=is_used,
            used_at=created_at if is_used else None,
            created_at=created_at,
            expires_at=expires_at or created_at + timedelta(days=30),
        )
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon
    return _make


@pytest.fixture
def make_store_coupon(db):
    def _make(code="SALE10", discount_type="percentage", discount_value=10, min_order_amount=None,
              max_uses=None, used_count=0, is_active=True, valid_from=None, valid_to=None):
        coupon = StoreCoupon(
            code=code,
            discount_type=discount_type,
            discount_value=discount_value,
            min_order_amount=min_order_amount,
            max_uses=max_uses,
            used_count=used_count,
            is_active=is_active,
            valid_from=valid_from,
            valid_to=valid_to,
        )
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon
    return _make
