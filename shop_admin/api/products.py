from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from typing import List, Optional

from shop_admin.api.deps import get_product_service, require_admin
from shop_admin.schemas.auth import AdminPublic
from shop_admin.schemas.products import DeleteResponse, ProductFields, ProductFilters, ProductResponse
from shop_admin.services.products import ProductService
from shop_admin.services.uploads import ImageUpload

router = APIRouter()

def read_upload(image: Optional[UploadFile], max_bytes: int) -> Optional[ImageUpload]:
    # Browsers submit an empty, unnamed part when no file was chosen
    if image is None or not image.filename:
        return None
    # One byte over the ceiling is enough to reject it
    data = image.file.read(max_bytes + 1)
    return ImageUpload(filename=image.filename, content_type=image.content_type, data=data)

@router.get("", response_model=List[ProductResponse])
def list_products(
    category: Optional[str] = Query(None, description="Exact product category"),
    featured: Optional[str] = Query(None, description="true/false, 1/0 or on/off"),
    search: Optional[str] = Query(None, description="Substring of name or description (case-insensitive)"),
    product_service: ProductService = Depends(get_product_service)
):
    """
    List products, newest first.
    - category: exact match
    - featured: only featured (true) or non-featured (false) products
    - search: case-insensitive substring of the name or description
    """
    filters = ProductFilters.from_query(category=category, featured=featured, search=search)
    return product_service.list_products(filters)

@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: int,
    product_service: ProductService = Depends(get_product_service)
):
    """Get a product by ID"""
    return product_service.get_product(product_id)

PRODUCT_FORM_FIELDS = ("name", "description", "price", "category", "stock", "featured")

async def read_product_fields(request: Request) -> ProductFields:
    """
    Decode the product text fields of a form body. A field missing from the
    form stays unset; a field sent empty reaches the decoder as "".
    """
    form = await request.form()
    raw = {}
    for key in PRODUCT_FORM_FIELDS:
        value = form.get(key)
        if isinstance(value, str):
            raw[key] = value
    return ProductFields.from_form(**raw)

@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    admin: AdminPublic = Depends(require_admin),
    fields: ProductFields = Depends(read_product_fields),
    image: Optional[UploadFile] = File(None),
    product_service: ProductService = Depends(get_product_service)
):
    """
    Create a product from a multipart form.
    - name and price are required; price must be a non-negative number
    - name, description and category are stored trimmed of surrounding whitespace
    - stock defaults to 0, featured to false
    - image (optional): jpeg, jpg, png, gif or webp
    """
    upload = read_upload(image, product_service.images.max_bytes)
    return product_service.create_product(fields, upload)

@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: int,
    admin: AdminPublic = Depends(require_admin),
    fields: ProductFields = Depends(read_product_fields),
    image: Optional[UploadFile] = File(None),
    product_service: ProductService = Depends(get_product_service)
):
    """
    Update a product. Every field is optional; fields that are not sent keep
    their current value. An empty description or category clears it, an
    empty name or price is rejected. A new image replaces (and deletes) the
    old one.
    """
    upload = read_upload(image, product_service.images.max_bytes)
    return product_service.update_product(product_id, fields, upload)

@router.delete("/{product_id}", response_model=DeleteResponse)
def delete_product(
    product_id: int,
    admin: AdminPublic = Depends(require_admin),
    product_service: ProductService = Depends(get_product_service)
):
    """Delete a product and its stored image"""
    deleted_id = product_service.delete_product(product_id)
    return DeleteResponse(message="Product deleted", deletedId=deleted_id)
