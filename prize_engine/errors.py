from fastapi import HTTPException


class PrizeEngineError(HTTPException):
    """Base for engine errors; rendered by the app's HTTPException handler."""

    status_code = 400
    code = "prize_engine_error"
    default_detail = "Prize engine error"

    def __init__(self, detail: str = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class IneligibleToSpin(PrizeEngineError):
    status_code = 429
    code = "ineligible_to_spin"
    default_detail = "You have already spun the wheel recently"


class CatalogEmpty(PrizeEngineError):
    status_code = 503
    code = "catalog_empty"
    default_detail = "The prize wheel is not available right now"


class NoEligibleSegment(PrizeEngineError):
    status_code = 503
    code = "no_eligible_segment"
    default_detail = "The prize wheel is not available right now"


class CouponNotFound(PrizeEngineError):
    status_code = 404
    code = "coupon_not_found"
    default_detail = "Coupon not found"


class CouponExpired(PrizeEngineError):
    status_code = 410
    code = "coupon_expired"
    default_detail = "Coupon is expired"


class CouponAlreadyConsumed(PrizeEngineError):
    status_code = 409
    code = "coupon_already_consumed"
    default_detail = "Coupon has already been used"


class CouponNotApplicable(PrizeEngineError):
    status_code = 422
    code = "coupon_not_applicable"
    default_detail = "Coupon cannot be applied to this order"


class CodeGenerationExhausted(PrizeEngineError):
    status_code = 500
    code = "code_generation_exhausted"
    default_detail = "Failed to generate coupon code"


class AuthenticationRequired(PrizeEngineError):
    status_code = 401
    code = "authentication_required"
    default_detail = "Sign in to continue"


class InvalidSegment(PrizeEngineError):
    status_code = 400
    code = "invalid_segment"
    default_detail = "Invalid wheel segment"


class ProductNotFound(PrizeEngineError):
    status_code = 404
    code = "product_not_found"
    default_detail = "Product not found"


class InvalidRedemptionTransition(PrizeEngineError):
    status_code = 409
    code = "invalid_redemption_transition"
    default_detail = "Coupon selection cannot change at this stage"


class DuplicateCode(Exception):
    """A generated coupon code is already taken. Never leaves the issuer."""
