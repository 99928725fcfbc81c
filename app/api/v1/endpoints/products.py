"""
Product catalog endpoints.
"""

from fastapi import APIRouter, Query, status

from app.api.deps import DbSession, CurrentUser
from app.schemas.base import MessageResponse, PaginatedResponse
from app.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
)
from app.services.product import ProductService


router = APIRouter()


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create product",
    description="Add a product or service to the catalog",
)
async def create_product(
    data: ProductCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> ProductResponse:
    service = ProductService(db)
    product = await service.create(current_user, data)
    return ProductResponse.model_validate(product)


@router.get(
    "",
    response_model=ProductListResponse,
    summary="List products",
    description="Get the paginated product catalog",
)
async def list_products(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    search: str | None = Query(None, description="Search by name, description or SKU"),
    category: str | None = Query(None, description="Filter by category"),
    include_inactive: bool = Query(False, description="Include deactivated products"),
) -> ProductListResponse:
    service = ProductService(db)
    skip = (page - 1) * per_page

    products, total = await service.list(
        owner_id=current_user.id,
        skip=skip,
        limit=per_page,
        search=search,
        category=category,
        include_inactive=include_inactive,
    )

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        page=page,
        per_page=per_page,
        pages=PaginatedResponse.page_count(total, per_page),
    )


@router.get(
    "/search",
    response_model=list[ProductResponse],
    summary="Quick product search",
    description="Up to 10 active products matching the query, most used first",
)
async def search_products(
    current_user: CurrentUser,
    db: DbSession,
    q: str = Query(..., min_length=1, description="Search term"),
) -> list[ProductResponse]:
    service = ProductService(db)
    products = await service.search(current_user.id, q)
    return [ProductResponse.model_validate(p) for p in products]


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Product details",
)
async def get_product(
    product_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> ProductResponse:
    service = ProductService(db)
    product = await service.get_or_404(product_id, current_user.id)
    return ProductResponse.model_validate(product)


@router.patch(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update product",
    description="Update catalog data; existing line items are not changed",
)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> ProductResponse:
    service = ProductService(db)
    product = await service.get_or_404(product_id, current_user.id)
    product = await service.update(product, data)
    return ProductResponse.model_validate(product)


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    summary="Deactivate product",
    description="Deactivate a product (soft delete)",
)
async def delete_product(
    product_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    service = ProductService(db)
    product = await service.get_or_404(product_id, current_user.id)
    await service.delete(product)
    return MessageResponse(message="Product deactivated")
