"""
Product service.
Handles the product catalog and resolves catalog references on line items.
"""

from __future__ import annotations

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from fastapi import HTTPException, status

from app.models.product import Product
from app.models.user import User
from app.schemas.invoice import LineItemCreate
from app.schemas.product import ProductCreate, ProductUpdate


logger = logging.getLogger(__name__)

# Quick search returns the most used matches first
SEARCH_LIMIT = 10


class ProductService:
    """Service for product operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, owner: User, data: ProductCreate) -> Product:
        product = Product(
            owner_id=owner.id,
            **data.model_dump(),
        )

        self.db.add(product)
        await self.db.flush()
        await self.db.refresh(product)

        return product

    async def get_by_id(self, product_id: int, owner_id: int) -> Product | None:
        """
        Get product by ID, ensuring owner access.

        Args:
            product_id: Product ID
            owner_id: Owner's user ID

        Returns:
            Product if found and owned by user, None otherwise
        """
        result = await self.db.execute(
            select(Product).where(
                Product.id == product_id,
                Product.owner_id == owner_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_or_404(self, product_id: int, owner_id: int) -> Product:
        product = await self.get_by_id(product_id, owner_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    async def list(
        self,
        owner_id: int,
        skip: int = 0,
        limit: int = 20,
        search: str | None = None,
        category: str | None = None,
        include_inactive: bool = False,
    ) -> tuple[list[Product], int]:
        """
        List products with pagination and filters, ordered by name.

        Args:
            owner_id: Owner's user ID
            skip: Number of records to skip
            limit: Maximum records to return
            search: Search term for name, description or SKU
            category: Exact category filter
            include_inactive: Also return deactivated products

        Returns:
            Tuple of (products list, total count)
        """
        conditions = [Product.owner_id == owner_id]
        if not include_inactive:
            conditions.append(Product.is_active.is_(True))
        if category:
            conditions.append(Product.category == category)
        if search:
            conditions.append(self._matches(search))

        total_result = await self.db.execute(select(func.count(Product.id)).where(*conditions))
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(Product)
            .where(*conditions)
            .order_by(Product.name, Product.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def search(self, owner_id: int, query: str) -> list[Product]:
        """Active products matching ``query``, most used first."""
        result = await self.db.execute(
            select(Product)
            .where(
                Product.owner_id == owner_id,
                Product.is_active.is_(True),
                self._matches(query),
            )
            .order_by(Product.usage_count.desc(), Product.name)
            .limit(SEARCH_LIMIT)
        )
        return list(result.scalars().all())

    @staticmethod
    def _matches(term: str):
        pattern = f"%{term}%"
        return or_(
            Product.name.ilike(pattern),
            Product.description.ilike(pattern),
            Product.sku.ilike(pattern),
        )

    async def update(self, product: Product, data: ProductUpdate) -> Product:
        update_data = data.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            setattr(product, field, value)

        await self.db.flush()
        await self.db.refresh(product)

        return product

    async def delete(self, product: Product) -> None:
        """
        Deactivate a product. Existing line items keep their copy of the
        description and rate.
        """
        product.is_active = False
        await self.db.flush()
        logger.info(f"Deactivated product {product.id}")

    async def resolve_line_items(self, owner_id: int, items: list[LineItemCreate]) -> list[LineItemCreate]:
        """
        Fill catalog defaults into lines that reference a product and count the usage.

        Lines carry their own description and rate once created; later
        product edits do not change them.

        Raises:
            HTTPException: 404 for an unknown product, 400 for a deactivated one
        """
        resolved = []
        for item in items:
            if item.product_id is None:
                resolved.append(item)
                continue

            product = await self.get_or_404(item.product_id, owner_id)
            if not product.is_active:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Product '{product.name}' is no longer available",
                )
            resolved.append(item.model_copy(update={
                "description": item.description or product.line_description,
                "rate": item.rate if item.rate is not None else product.rate,
            }))
            product.usage_count += 1

        await self.db.flush()
        return resolved
