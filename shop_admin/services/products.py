import logging
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import or_, and_
from typing import List, Optional

from shop_admin.models.products import Product
from shop_admin.schemas.products import ProductFields, ProductFilters, ProductResponse
from shop_admin.services.uploads import ImageStore, ImageUpload
from shop_admin.core.exceptions import ResourceNotFoundError

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"

def escape_like(term: str) -> str:
    """Make LIKE wildcards in a user-supplied term match literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )

class ProductService:
    def __init__(self, db: Session, images: ImageStore, base_url: str = ""):
        self.db = db
        self.images = images
        self.base_url = base_url

    def _to_response(self, product: Product) -> ProductResponse:
        return ProductResponse.from_product(product, self.base_url)

    def _get_or_404(self, product_id: int) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise ResourceNotFoundError("Product", product_id)
        return product

    def list_products(self, filters: Optional[ProductFilters] = None) -> List[ProductResponse]:
        """
        All products matching the optional filters, newest first.
        Search is a case-insensitive substring match on name or description.
        """
        query = self.db.query(Product)
        conditions = []

        if filters is not None:
            if filters.category:
                conditions.append(Product.category == filters.category)
            if filters.featured is not None:
                conditions.append(Product.featured == filters.featured)
            if filters.search:
                search_term = f"%{escape_like(filters.search)}%"
                conditions.append(
                    or_(
                        Product.name.ilike(search_term, escape=LIKE_ESCAPE),
                        Product.description.ilike(search_term, escape=LIKE_ESCAPE)
                    )
                )

        if conditions:
            query = query.filter(and_(*conditions))

        products = query.order_by(Product.created_at.desc(), Product.id.desc()).all()
        logger.info(f"Found {len(products)} products")
        return [self._to_response(p) for p in products]

    def get_product(self, product_id: int) -> ProductResponse:
        return self._to_response(self._get_or_404(product_id))

    def create_product(self, fields: ProductFields, image: Optional[ImageUpload] = None) -> ProductResponse:
        fields.require_for_create()

        image_path = self.images.save(image) if image is not None else None

        values = fields.supplied()
        db_product = Product(
            name=values["name"],
            description=values.get("description"),
            price=values["price"],
            image=image_path,
            category=values.get("category"),
            stock=values.get("stock") or 0,
            featured=bool(values.get("featured", False)),
        )
        try:
            self.db.add(db_product)
            self.db.commit()
        except Exception:
            self.db.rollback()
            # The row never landed; do not leave its image behind
            self.images.delete(image_path)
            raise
        self.db.refresh(db_product)
        logger.info(f"Product created with id {db_product.id}")
        return self._to_response(db_product)

    def update_product(
        self,
        product_id: int,
        fields: ProductFields,
        image: Optional[ImageUpload] = None
    ) -> ProductResponse:
        db_product = self._get_or_404(product_id)

        if image is not None:
            new_image = self.images.save(image)
            old_image = db_product.image
            if old_image:
                self.images.delete(old_image)
            db_product.image = new_image

        # Fields that were not submitted keep their stored values
        for key, value in fields.supplied().items():
            setattr(db_product, key, value)
        db_product.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(db_product)
        logger.info(f"Product {product_id} updated")
        return self._to_response(db_product)

    def delete_product(self, product_id: int) -> int:
        db_product = self._get_or_404(product_id)

        if db_product.image:
            self.images.delete(db_product.image)

        self.db.delete(db_product)
        self.db.commit()
        logger.info(f"Product {product_id} deleted")
        return product_id
