
import secrets
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from prize_engine.models.order import Order, OrderItem
from prize_engine.schemas.cart import DiscountPreview, OrderDraft


def generate_order_number(now: datetime) -> str:
    return f"ORD-{now:%y%m%d}-{secrets.token_hex(3).upper()}"


class OrderService:
    """Order persistence for checkout. Flushes only; the caller commits."""

    @staticmethod
    def create_order(
        db: Session,
        preview: DiscountPreview,
        draft: OrderDraft,
        now: datetime,
        user_id: Optional[str] = None,
        user_coupon_code: Optional[str] = None,
        store_coupon_code: Optional[str] = None,
    ) -> Order:
        order = Order(
            order_number=generate_order_number(now),
            user_id=user_id,
            customer_name=draft.customer_name,
            customer_email=draft.customer_email,
            customer_phone=draft.customer_phone,
            delivery_address=draft.delivery_address,
            comment=draft.comment,
            subtotal=preview.subtotal,
            discount_amount=preview.discount_amount,
            total=preview.final_price,
            user_coupon_code=user_coupon_code,
            store_coupon_code=store_coupon_code,
            status="new",
            created_at=now,
        )
        for line in preview.line_items:
            order.items.append(OrderItem(
                product_id=line.product_id,
                product_name=line.name,
                quantity=line.quantity,
                price=line.price,
                is_gift=line.is_gift,
            ))
        db.add(order)
        db.flush()
        return order
