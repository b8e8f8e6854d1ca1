from typing import Optional
from fastapi import Header
from pydantic import ValidationError

from prize_engine.errors import AuthenticationRequired
from prize_engine.schemas.spin import SpinIdentity
from prize_engine.services.reconciliation import ReconciliationService
from prize_engine.services.redemption import RedemptionEngine
from prize_engine.services.spin_service import SpinService

_spin_service = SpinService()
_reconciliation_service = ReconciliationService()
_redemption_engine = RedemptionEngine()


def get_identity(
    x_user_id: Optional[str] = Header(default=None),
    x_session_id: Optional[str] = Header(default=None),
) -> SpinIdentity:
    try:
        return SpinIdentity(user_id=x_user_id or None, session_id=x_session_id or None)
    except ValidationError:
        raise AuthenticationRequired("Send X-User-Id or X-Session-Id")


def get_optional_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id or None


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id:
        raise AuthenticationRequired()
    return x_user_id


def get_spin_service() -> SpinService:
    return _spin_service


def get_reconciliation_service() -> ReconciliationService:
    return _reconciliation_service


def get_redemption_engine() -> RedemptionEngine:
    return _redemption_engine
