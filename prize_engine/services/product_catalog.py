
from sqlalchemy.orm import Session
from typing import Optional
from prize_engine.errors import ProductNotFound
from prize_engine.models.product import Product


class ProductCatalog:
    """Product lookups the engine needs for gift prizes"""

    @staticmethod
    def get_product(db: Session, product_id: int) -> Optional[Product]:
        return db.query(Product).filter(Product.id == product_id).first()

    @staticmethod
    def require_product(db: Session, product_id: int) -> Product:
        product = ProductCatalog.get_product(db, product_id)
        if not product or not product.is_active:
            raise ProductNotFound(f"Product {product_id} is not available")
        return product
