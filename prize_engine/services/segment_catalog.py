
import logging
from sqlalchemy.orm import Session
from typing import List, Optional
from prize_engine.errors import CatalogEmpty, InvalidSegment
from prize_engine.models.segment import WheelSegment
from prize_engine.models.product import Product
from prize_engine.schemas.segment import SegmentCreate, SegmentUpdate

logger = logging.getLogger(__name__)


class SegmentCatalog:
    """Prize segments of the wheel and their draw weights"""

    NULLABLE_FIELDS = {"gift_product_id"}

    @staticmethod
    def active_segments(db: Session) -> List[WheelSegment]:
        segments = (
            db.query(WheelSegment)
            .filter(WheelSegment.is_active.is_(True))
            .order_by(WheelSegment.sort_order, WheelSegment.id)
            .all()
        )
        if not segments:
            logger.warning("Wheel has no active segments; treating it as disabled")
            raise CatalogEmpty()
        return segments

    @staticmethod
    def create_segment(db: Session, data: SegmentCreate) -> WheelSegment:
        SegmentCatalog._validate_segment(db, data.model_dump())
        segment = WheelSegment(**data.model_dump())
        db.add(segment)
        db.commit()
        db.refresh(segment)
        logger.info("Created wheel segment %s (%s, weight=%s)", segment.id, segment.label, segment.probability)
        return segment

    @staticmethod
    def get_segment(db: Session, segment_id: int) -> Optional[WheelSegment]:
        return db.query(WheelSegment).filter(WheelSegment.id == segment_id).first()

    @staticmethod
    def list_segments(db: Session) -> List[WheelSegment]:
        return db.query(WheelSegment).order_by(WheelSegment.sort_order, WheelSegment.id).all()

    @staticmethod
    def update_segment(db: Session, segment_id: int, data: SegmentUpdate) -> Optional[WheelSegment]:
        segment = SegmentCatalog.get_segment(db, segment_id)
        if not segment:
            return None

        # Compute final fields then validate; null only clears nullable columns
        changes = {
            k: v for k, v in data.model_dump(exclude_unset=True).items()
            if v is not None or k in SegmentCatalog.NULLABLE_FIELDS
        }
        final = {
            "prize_type": segment.prize_type,
            "discount_type": segment.discount_type,
            "discount_value": segment.discount_value,
            "gift_product_id": segment.gift_product_id,
            "probability": segment.probability,
        }
        final.update({k: v for k, v in changes.items() if k in final})
        SegmentCatalog._validate_segment(db, final)

        for field, value in changes.items():
            setattr(segment, field, value)
        db.commit()
        db.refresh(segment)
        return segment

    @staticmethod
    def _validate_segment(db: Session, fields: dict) -> None:
        probability = fields.get("probability")
        if probability is None or probability < 0:
            raise InvalidSegment("probability must be a non-negative number")

        if fields["prize_type"] == "gift":
            product_id = fields.get("gift_product_id")
            if not product_id:
                raise InvalidSegment("gift segments need a gift_product_id")
            if not db.query(Product.id).filter(Product.id == product_id).first():
                raise InvalidSegment(f"gift product {product_id} does not exist")
        elif fields["prize_type"] == "discount":
            value = fields.get("discount_value") or 0
            if value <= 0:
                raise InvalidSegment("discount_value must be a positive number")
            if fields["discount_type"] == "percentage" and value > 100:
                raise InvalidSegment("percentage discount_value cannot exceed 100")
            if fields.get("gift_product_id"):
                raise InvalidSegment("gift_product_id is only allowed on gift segments")
        else:
            raise InvalidSegment(f"Unsupported prize type: {fields['prize_type']}")
