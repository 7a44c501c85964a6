"""Product API endpoints."""

from fastapi import APIRouter, HTTPException, Query

from quickorder.api.deps import Store
from quickorder.errors import NotFound
from quickorder.middleware.cache import invalidate_cache
from quickorder.schemas.common import MessageResponse
from quickorder.schemas.product import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)

router = APIRouter()


@router.get("", response_model=ProductListResponse)
async def list_products(
    store: Store,
    search: str | None = Query(None, description="Search in name, brand, type and category"),
    category: str | None = Query(None, description="Filter by category"),
    sub_category: str | None = Query(None, description="Filter by subcategory"),
    brand: str | None = Query(None, description="Filter by brand"),
    type: str | None = Query(None, description="Filter by product type"),
) -> ProductListResponse:
    """List the products of a mirror. Filters ignore case and surrounding spaces."""
    products = await store.products.filter(
        search=search,
        category=category,
        sub_category=sub_category,
        brand=brand,
        type=type,
    )
    return ProductListResponse(
        products=[ProductResponse.model_validate(p) for p in products],
        count=len(products),
    )


@router.get("/values/{field}")
async def list_field_values(store: Store, field: str) -> dict:
    """Distinct values of brand, type, category or sub_category."""
    try:
        values = await store.products.unique_values(field)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "field": field, "values": values, "count": len(values)}


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(store: Store, data: ProductCreate) -> ProductResponse:
    """Add a product by hand."""
    if data.id and await store.products.get_by_id(data.id):
        raise HTTPException(status_code=409, detail=f"Product {data.id} already exists")
    product = await store.products.create(data)
    invalidate_cache(store.context)
    return ProductResponse.model_validate(product)


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_products(store: Store, request: BulkDeleteRequest) -> BulkDeleteResponse:
    """Delete several products at once."""
    if not request.ids:
        raise HTTPException(status_code=400, detail="No product ids given")
    deleted, not_found = await store.products.delete_many(request.ids)
    invalidate_cache(store.context)
    return BulkDeleteResponse(
        message=f"Deleted {deleted} of {len(request.ids)} products",
        deleted_count=deleted,
        failed_count=not_found,
    )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(store: Store, product_id: str) -> ProductResponse:
    """Get a single product by id."""
    product = await store.products.get_by_id(product_id)
    if product is None:
        raise NotFound("Product not found")
    return ProductResponse.model_validate(product)


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(store: Store, product_id: str, update_data: ProductUpdate) -> ProductResponse:
    """Update product fields."""
    product = await store.products.update(product_id, update_data)
    if product is None:
        raise NotFound("Product not found")
    invalidate_cache(store.context)
    return ProductResponse.model_validate(product)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(store: Store, product_id: str) -> MessageResponse:
    """Delete a product from the mirror."""
    if not await store.products.delete(product_id):
        raise NotFound("Product not found")
    invalidate_cache(store.context)
    return MessageResponse(message=f"Product {product_id} deleted")
