"""
Database models module.
All SQLAlchemy models are exported from here for easy imports.
"""

from app.models.user import User
from app.models.client import Client
from app.models.invoice import Invoice, InvoiceLineItem, InvoiceStatus
from app.models.estimate import Estimate, EstimateLineItem, EstimateStatus
from app.models.product import Product
from app.models.recurring import (
    RecurringInvoice,
    RecurringInvoiceLineItem,
    RecurringGenerationLog,
    RecurringFrequency,
    GenerationStatus,
)
from app.models.expense import Expense, ExpenseCategory, ExpensePaymentMethod
from app.models.payment import Payment, PaymentMethod, PaymentStatus
from app.models.email_log import EmailLog, EmailType, DeliveryStatus
from app.models.quickbooks import (
    QuickBooksConnection,
    QuickBooksEntityMapping,
    QuickBooksEntityType,
)


__all__ = [
    "User",
    "Client",
    "Invoice",
    "InvoiceLineItem",
    "InvoiceStatus",
    "Estimate",
    "EstimateLineItem",
    "EstimateStatus",
    "Product",
    "RecurringInvoice",
    "RecurringInvoiceLineItem",
    "RecurringGenerationLog",
    "RecurringFrequency",
    "GenerationStatus",
    "Expense",
    "ExpenseCategory",
    "ExpensePaymentMethod",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "EmailLog",
    "EmailType",
    "DeliveryStatus",
    "QuickBooksConnection",
    "QuickBooksEntityMapping",
    "QuickBooksEntityType",
]
