"""
Dashboard Service.
Provides statistics and analytics for the business.
"""

from datetime import date
from decimal import Decimal
from typing import List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.models.invoice import Invoice, InvoiceStatus
from app.models.payment import Payment, PaymentStatus
from app.models.client import Client
from app.models.expense import Expense
from app.schemas.dashboard import DashboardOverview, MonthlyRevenue
from app.services.invoice import OPEN_STATUSES


def month_windows(months: int, today: date | None = None) -> list[tuple[date, date]]:
    """First day of each of the last ``months`` months plus the first day of the next one, oldest first."""
    today = today or date.today()
    year, month = today.year, today.month
    windows = []
    for _ in range(months):
        start = date(year, month, 1)
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        windows.append((start, end))
        year, month = (year - 1, 12) if month == 1 else (year, month - 1)
    return list(reversed(windows))


class DashboardService:
    """Service for dashboard statistics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _sum(self, column, *conditions) -> Decimal:
        result = await self.db.execute(select(func.coalesce(func.sum(column), 0)).where(*conditions))
        return Decimal(str(result.scalar() or 0))

    async def get_overview(self, owner_id: int) -> DashboardOverview:
        """
        Get business overview statistics.

        Revenue is the sum of completed payments; outstanding balance covers
        sent and overdue invoices.
        """
        total_revenue = await self._sum(
            Payment.amount,
            Payment.owner_id == owner_id,
            Payment.status == PaymentStatus.COMPLETED,
        )
        outstanding = await self._sum(
            Invoice.total - Invoice.amount_paid,
            Invoice.owner_id == owner_id,
            Invoice.status.in_(OPEN_STATUSES),
        )
        total_expenses = await self._sum(Expense.amount, Expense.owner_id == owner_id)

        invoice_counts = await self.get_invoice_status_distribution(owner_id)

        client_count = await self.db.execute(
            select(func.count(Client.id)).where(Client.owner_id == owner_id)
        )

        return DashboardOverview(
            total_revenue=total_revenue,
            outstanding_balance=outstanding,
            overdue_count=invoice_counts[InvoiceStatus.OVERDUE.value],
            invoice_counts=invoice_counts,
            total_clients=client_count.scalar() or 0,
            total_expenses=total_expenses,
            net_profit=total_revenue - total_expenses,
        )

    async def get_monthly_revenue(
        self,
        owner_id: int,
        months: int = 12,
        today: date | None = None,
    ) -> List[MonthlyRevenue]:
        """
        Get revenue and expenses per month.

        Args:
            owner_id: User ID
            months: Number of months to report, ending with the current one

        Returns:
            One entry per month, oldest first, labelled ``YYYY-MM``
        """
        monthly_data = []
        for start, end in month_windows(months, today):
            revenue = await self._sum(
                Payment.amount,
                Payment.owner_id == owner_id,
                Payment.status == PaymentStatus.COMPLETED,
                Payment.payment_date >= start,
                Payment.payment_date < end,
            )
            expenses = await self._sum(
                Expense.amount,
                Expense.owner_id == owner_id,
                Expense.date >= start,
                Expense.date < end,
            )
            monthly_data.append(MonthlyRevenue(
                month=start.strftime("%Y-%m"),
                revenue=revenue,
                expenses=expenses,
            ))

        return monthly_data

    async def get_invoice_status_distribution(self, owner_id: int) -> Dict[str, int]:
        """Get invoice count by status."""
        result = await self.db.execute(
            select(Invoice.status, func.count(Invoice.id))
            .where(Invoice.owner_id == owner_id)
            .group_by(Invoice.status)
        )
        distribution = {s.value: 0 for s in InvoiceStatus}
        for invoice_status, count in result.all():
            distribution[invoice_status.value] = count
        return distribution

    async def get_top_clients(self, owner_id: int, limit: int = 5) -> List[Dict[str, Any]]:
        """Get top clients by amount paid."""
        result = await self.db.execute(
            select(
                Client.id,
                Client.name,
                func.sum(Invoice.amount_paid).label('total_revenue'),
                func.count(Invoice.id).label('invoice_count'),
            )
            .join(Invoice, Invoice.client_id == Client.id)
            .where(Client.owner_id == owner_id)
            .group_by(Client.id, Client.name)
            .order_by(func.sum(Invoice.amount_paid).desc())
            .limit(limit)
        )

        return [
            {
                "id": row.id,
                "name": row.name,
                "total_revenue": float(row.total_revenue or 0),
                "invoice_count": row.invoice_count,
            }
            for row in result
        ]
