"""
API v1 router - aggregates all endpoint routers.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    users,
    clients,
    invoices,
    estimates,
    products,
    recurring_invoices,
    expenses,
    payments,
    email_history,
    quickbooks,
    dashboard,
)

api_router = APIRouter()

api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)

api_router.include_router(
    users.router,
    prefix="/users",
    tags=["Users"],
)

api_router.include_router(
    clients.router,
    prefix="/clients",
    tags=["Clients"],
)

api_router.include_router(
    invoices.router,
    prefix="/invoices",
    tags=["Invoices"],
)

api_router.include_router(
    estimates.router,
    prefix="/estimates",
    tags=["Estimates"],
)

api_router.include_router(
    products.router,
    prefix="/products",
    tags=["Products"],
)

api_router.include_router(
    recurring_invoices.router,
    prefix="/recurring-invoices",
    tags=["Recurring invoices"],
)

api_router.include_router(
    expenses.router,
    prefix="/expenses",
    tags=["Expenses"],
)

api_router.include_router(
    payments.router,
    prefix="/payments",
    tags=["Payments"],
)

api_router.include_router(
    email_history.router,
    prefix="/email-history",
    tags=["Email history"],
)

api_router.include_router(
    quickbooks.router,
    prefix="/quickbooks",
    tags=["QuickBooks"],
)

api_router.include_router(
    dashboard.router,
    prefix="/dashboard",
    tags=["Dashboard"],
)
