"""
Expense service.
Expense categories, expenses, statistics and billable expense linking.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from fastapi import HTTPException, status

from app.models.client import Client
from app.models.expense import Expense, ExpenseCategory
from app.models.invoice import Invoice
from app.models.user import User
from app.schemas.expense import (
    CategoryCreate,
    CategoryTotal,
    ExpenseCreate,
    ExpenseStats,
    ExpenseUpdate,
)


logger = logging.getLogger(__name__)


class ExpenseService:
    """Service for expense operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # Categories

    async def list_categories(self, owner_id: int) -> List[ExpenseCategory]:
        result = await self.db.execute(
            select(ExpenseCategory)
            .where(ExpenseCategory.owner_id == owner_id)
            .order_by(ExpenseCategory.name)
        )
        return list(result.scalars().all())

    async def create_category(self, owner: User, data: CategoryCreate) -> ExpenseCategory:
        category = ExpenseCategory(owner_id=owner.id, **data.model_dump())
        self.db.add(category)
        await self.db.flush()
        await self.db.refresh(category)
        return category

    async def get_category_or_404(self, category_id: int, owner_id: int) -> ExpenseCategory:
        result = await self.db.execute(
            select(ExpenseCategory).where(
                ExpenseCategory.id == category_id,
                ExpenseCategory.owner_id == owner_id,
            )
        )
        category = result.scalar_one_or_none()
        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Expense category not found",
            )
        return category

    async def delete_category(self, category: ExpenseCategory) -> None:
        """
        Raises:
            HTTPException: 400 while expenses still use the category
        """
        result = await self.db.execute(
            select(func.count(Expense.id)).where(Expense.category_id == category.id)
        )
        if result.scalar():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete a category that has expenses",
            )
        await self.db.delete(category)
        await self.db.flush()

    # Expenses

    async def _check_client(self, client_id: int | None, owner_id: int) -> None:
        if client_id is None:
            return
        result = await self.db.execute(
            select(Client.id).where(Client.id == client_id, Client.owner_id == owner_id)
        )
        if result.scalar_one_or_none() is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Client not found",
            )

    async def create(self, owner: User, data: ExpenseCreate) -> Expense:
        await self.get_category_or_404(data.category_id, owner.id)
        await self._check_client(data.client_id, owner.id)

        expense = Expense(owner_id=owner.id, **data.model_dump())
        self.db.add(expense)
        await self.db.flush()

        return await self.get_or_404(expense.id, owner.id)

    async def get_by_id(self, expense_id: int, owner_id: int) -> Expense | None:
        result = await self.db.execute(
            select(Expense)
            .where(
                Expense.id == expense_id,
                Expense.owner_id == owner_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_or_404(self, expense_id: int, owner_id: int) -> Expense:
        expense = await self.get_by_id(expense_id, owner_id)
        if not expense:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Expense not found",
            )
        return expense

    async def list(
        self,
        owner_id: int,
        skip: int = 0,
        limit: int = 20,
        category_id: int | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
        is_billable: bool | None = None,
        client_id: int | None = None,
    ) -> tuple[list[Expense], int]:
        conditions = [Expense.owner_id == owner_id]
        if category_id:
            conditions.append(Expense.category_id == category_id)
        if from_date:
            conditions.append(Expense.date >= from_date)
        if to_date:
            conditions.append(Expense.date <= to_date)
        if is_billable is not None:
            conditions.append(Expense.is_billable.is_(is_billable))
        if client_id:
            conditions.append(Expense.client_id == client_id)

        total_result = await self.db.execute(select(func.count(Expense.id)).where(*conditions))
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(Expense)
            .where(*conditions)
            .order_by(Expense.date.desc(), Expense.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def update(self, expense: Expense, data: ExpenseUpdate) -> Expense:
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("category_id"):
            await self.get_category_or_404(update_data["category_id"], expense.owner_id)
        if "client_id" in update_data:
            await self._check_client(update_data["client_id"], expense.owner_id)

        for field, value in update_data.items():
            setattr(expense, field, value)

        await self.db.flush()
        return await self.get_or_404(expense.id, expense.owner_id)

    async def delete(self, expense: Expense) -> None:
        await self.db.delete(expense)
        await self.db.flush()

    async def get_stats(self, owner_id: int, months: int = 12, today: date | None = None) -> ExpenseStats:
        """Totals over the last ``months`` months, overall and per category."""
        today = today or date.today()
        since = today - timedelta(days=months * 30)
        window = (Expense.owner_id == owner_id, Expense.date >= since)

        totals = await self.db.execute(
            select(
                func.coalesce(func.sum(Expense.amount), 0),
                func.coalesce(func.sum(Expense.tax_amount), 0),
                func.count(Expense.id),
            ).where(*window)
        )
        total_amount, total_tax, count = totals.one()

        billable = await self.db.execute(
            select(func.coalesce(func.sum(Expense.amount), 0)).where(
                *window, Expense.is_billable.is_(True)
            )
        )

        per_category = await self.db.execute(
            select(
                ExpenseCategory.id,
                ExpenseCategory.name,
                ExpenseCategory.color,
                func.coalesce(func.sum(Expense.amount), 0),
                func.count(Expense.id),
            )
            .join(Expense, Expense.category_id == ExpenseCategory.id)
            .where(*window)
            .group_by(ExpenseCategory.id, ExpenseCategory.name, ExpenseCategory.color)
            .order_by(func.sum(Expense.amount).desc())
        )

        return ExpenseStats(
            months=months,
            total_amount=Decimal(str(total_amount)),
            total_tax=Decimal(str(total_tax)),
            billable_amount=Decimal(str(billable.scalar() or 0)),
            count=count,
            by_category=[
                CategoryTotal(
                    category_id=category_id,
                    category_name=name,
                    color=color,
                    total=Decimal(str(total)),
                    count=category_count,
                )
                for category_id, name, color, total, category_count in per_category.all()
            ],
        )

    async def list_unbilled(self, owner_id: int, client_id: int) -> List[Expense]:
        """Billable expenses for a client that are not on an invoice yet."""
        result = await self.db.execute(
            select(Expense)
            .where(
                Expense.owner_id == owner_id,
                Expense.client_id == client_id,
                Expense.is_billable.is_(True),
                Expense.invoice_id.is_(None),
            )
            .order_by(Expense.date)
        )
        return list(result.scalars().all())

    async def link_to_invoice(self, owner_id: int, expense_ids: List[int], invoice_id: int) -> int:
        """
        Mark billable expenses as billed on an invoice.

        Raises:
            HTTPException: 404 for an unknown invoice
        """
        invoice = await self.db.execute(
            select(Invoice.id).where(Invoice.id == invoice_id, Invoice.owner_id == owner_id)
        )
        if invoice.scalar_one_or_none() is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invoice not found",
            )

        result = await self.db.execute(
            update(Expense)
            .where(
                Expense.owner_id == owner_id,
                Expense.id.in_(expense_ids),
                Expense.is_billable.is_(True),
                Expense.invoice_id.is_(None),
            )
            .values(invoice_id=invoice_id)
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()
        logger.info(f"Linked {result.rowcount} expenses to invoice {invoice_id}")
        return result.rowcount or 0
