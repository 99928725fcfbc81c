"""
Dashboard schemas.
"""

from decimal import Decimal

from app.schemas.base import BaseSchema


class DashboardOverview(BaseSchema):
    total_revenue: Decimal
    outstanding_balance: Decimal
    overdue_count: int
    invoice_counts: dict[str, int]
    total_clients: int
    total_expenses: Decimal
    net_profit: Decimal


class MonthlyRevenue(BaseSchema):
    month: str
    revenue: Decimal
    expenses: Decimal
