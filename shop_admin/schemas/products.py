import math
from decimal import Decimal, InvalidOperation
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator
from typing import Any, Dict, Optional
from datetime import datetime

from shop_admin.core.exceptions import ValidationError

TRUE_VALUES = {"true", "1", "on"}
FALSE_VALUES = {"false", "0", "off"}
# Largest value an SQLite INTEGER column holds
MAX_STOCK = 2 ** 63 - 1


def parse_bool(value: Any) -> bool:
    """
    Decode a form/query boolean. Accepts true/false, 1/0 and on/off
    (case-insensitive); an empty string means false.
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES or text == "":
        return False
    raise ValueError("must be one of true, false, 1, 0, on, off")


def _first_error(exc: PydanticValidationError) -> str:
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error["loc"])
    message = error["msg"]
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{field}: {message}" if field else message


class ProductFields(BaseModel):
    """
    Product fields decoded from a multipart form. Only the fields that were
    actually submitted count as set, so the same model serves create and
    partial update.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    stock: Optional[int] = None
    featured: Optional[bool] = None

    @field_validator('name', mode='before')
    @classmethod
    def validate_name(cls, v):
        if v is None or not str(v).strip():
            raise ValueError('Product name is required')
        return str(v).strip()

    @field_validator('description', 'category', mode='before')
    @classmethod
    def strip_optional_text(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator('price', mode='before')
    @classmethod
    def validate_price(cls, v):
        if isinstance(v, bool):
            raise ValueError('Price must be a non-negative number')
        try:
            price = Decimal(str(v).strip())
        except InvalidOperation:
            raise ValueError('Price must be a non-negative number')
        if not price.is_finite() or price < 0 or math.isinf(float(price)):
            raise ValueError('Price must be a non-negative number')
        return float(price)

    @field_validator('stock', mode='before')
    @classmethod
    def validate_stock(cls, v):
        if isinstance(v, bool):
            raise ValueError('Stock must be a non-negative integer')
        if isinstance(v, int):
            stock = v
        else:
            text = str(v).strip()
            if text == "":
                return 0
            if not text.lstrip("+").isdigit():
                raise ValueError('Stock must be a non-negative integer')
            stock = int(text)
        if stock < 0 or stock > MAX_STOCK:
            raise ValueError('Stock must be a non-negative integer')
        return stock

    @field_validator('featured', mode='before')
    @classmethod
    def validate_featured(cls, v):
        return parse_bool(v)

    @classmethod
    def from_form(cls, **raw: Optional[Any]) -> "ProductFields":
        """
        Decode submitted form values. ``None`` means the field was not sent.
        """
        supplied = {key: value for key, value in raw.items() if value is not None}
        try:
            return cls(**supplied)
        except PydanticValidationError as exc:
            raise ValidationError(_first_error(exc))

    def require_for_create(self) -> None:
        if self.name is None:
            raise ValidationError("name: Product name is required")
        if self.price is None:
            raise ValidationError("price: Price must be a non-negative number")

    def supplied(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ProductFilters(BaseModel):
    category: Optional[str] = Field(None, description="Exact product category")
    featured: Optional[bool] = Field(None, description="Only featured (true) or non-featured (false) products")
    search: Optional[str] = Field(None, description="Substring of the product name or description")

    @field_validator('featured', mode='before')
    @classmethod
    def validate_featured(cls, v):
        if v is None:
            return None
        return parse_bool(v)

    @field_validator('category', 'search', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @classmethod
    def from_query(cls, **raw: Optional[str]) -> "ProductFilters":
        try:
            return cls(**raw)
        except PydanticValidationError as exc:
            raise ValidationError(_first_error(exc))


class ProductResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    image: Optional[str] = None
    category: Optional[str] = None
    stock: int = 0
    featured: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_product(cls, product, base_url: str = "") -> "ProductResponse":
        """
        Normalize a stored row: integer flags become booleans, a missing
        stock becomes 0, price is numeric and a relative image reference is
        qualified with ``base_url``.
        """
        image = product.image
        if image and not image.startswith(("http://", "https://")):
            image = f"{base_url.rstrip('/')}{image}"
        try:
            price = float(product.price)
        except (TypeError, ValueError):
            price = 0.0
        if math.isnan(price):
            price = 0.0
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=price,
            image=image or None,
            category=product.category,
            stock=product.stock or 0,
            featured=bool(product.featured),
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


class DeleteResponse(BaseModel):
    message: str
    deletedId: int
