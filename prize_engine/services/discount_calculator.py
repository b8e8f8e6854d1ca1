
from decimal import Decimal, ROUND_HALF_UP, getcontext
from typing import Iterable
from prize_engine.schemas.cart import Cart

getcontext().prec = 28


def D(x) -> Decimal:
    return Decimal(str(x))


def round2(x: Decimal) -> Decimal:
    return x.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


class DiscountCalculator:
    """Money arithmetic for coupon discounts. No I/O, no state."""

    @staticmethod
    def calculate_cart_total(cart: Cart) -> Decimal:
        # Gift lines are free and never count towards the subtotal
        return round2(sum((D(item.quantity) * D(item.price) for item in cart.items if not item.is_gift), D(0)))

    @staticmethod
    def calculate_discount(discount_type: str, discount_value, subtotal: Decimal) -> Decimal:
        value = D(discount_value)
        if subtotal <= 0 or value <= 0:
            return D(0)
        if discount_type == 'percentage':
            return round2((subtotal * value) / D(100))
        else:
            return min(round2(value), subtotal)

    @staticmethod
    def combine(subtotal: Decimal, amounts: Iterable[Decimal]) -> Decimal:
        """Sum independent discounts, never past the subtotal."""
        total = sum(amounts, D(0))
        return round2(min(total, subtotal))
