"""
Pydantic schemas for request/response validation.
"""

from app.schemas.user import (
    UserUpdate,
    UserResponse,
    UsageResponse,
)
from app.schemas.client import (
    ClientCreate,
    ClientUpdate,
    ClientResponse,
)
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceResponse,
    LineItemCreate,
    LineItemResponse,
)
from app.schemas.estimate import (
    EstimateCreate,
    EstimateUpdate,
    EstimateResponse,
)
from app.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
)
from app.schemas.recurring import (
    RecurringInvoiceCreate,
    RecurringInvoiceUpdate,
    RecurringInvoiceResponse,
)
from app.schemas.expense import (
    CategoryCreate,
    CategoryResponse,
    ExpenseCreate,
    ExpenseUpdate,
    ExpenseResponse,
)
from app.schemas.payment import (
    PaymentCreate,
    PaymentResponse,
)
from app.schemas.auth import (
    Token,
    TokenPair,
    LoginRequest,
    RegisterRequest,
    RefreshTokenRequest,
)

__all__ = [
    # User
    "UserUpdate",
    "UserResponse",
    "UsageResponse",
    # Client
    "ClientCreate",
    "ClientUpdate",
    "ClientResponse",
    # Invoice
    "InvoiceCreate",
    "InvoiceUpdate",
    "InvoiceResponse",
    "LineItemCreate",
    "LineItemResponse",
    # Estimate
    "EstimateCreate",
    "EstimateUpdate",
    "EstimateResponse",
    # Product
    "ProductCreate",
    "ProductUpdate",
    "ProductResponse",
    # Recurring invoice
    "RecurringInvoiceCreate",
    "RecurringInvoiceUpdate",
    "RecurringInvoiceResponse",
    # Expense
    "CategoryCreate",
    "CategoryResponse",
    "ExpenseCreate",
    "ExpenseUpdate",
    "ExpenseResponse",
    # Payment
    "PaymentCreate",
    "PaymentResponse",
    # Auth
    "Token",
    "TokenPair",
    "LoginRequest",
    "RegisterRequest",
    "RefreshTokenRequest",
]
