"""
Subscription plans and feature gates.
"""

from dataclasses import dataclass, field
from enum import Enum


class SubscriptionStatus(str, Enum):
    """Billing status of an account."""
    FREE = "free"
    ACTIVE = "active"
    TRIALING = "trialing"
    CANCELED = "canceled"
    PAST_DUE = "past_due"


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    price: int
    invoice_limit: int | None
    features: frozenset[str] = field(default_factory=frozenset)


ALL_FEATURES = frozenset({
    "pdf_generation",
    "basic_templates",
    "stripe_payments",
    "email_sending",
    "analytics",
    "custom_branding",
    "priority_support",
})

FREE_PLAN = Plan(
    id="free",
    name="Free",
    price=0,
    invoice_limit=3,
    features=frozenset({"pdf_generation", "basic_templates"}),
)

PRO_PLAN = Plan(
    id="pro",
    name="Pro",
    price=12,
    invoice_limit=None,
    features=ALL_FEATURES,
)


def is_pro(status: SubscriptionStatus | str | None) -> bool:
    """Active and trialing accounts get the Pro plan."""
    return status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)


def get_plan(status: SubscriptionStatus | str | None) -> Plan:
    return PRO_PLAN if is_pro(status) else FREE_PLAN


def can_create_invoice(status: SubscriptionStatus | str | None, current_month_count: int) -> bool:
    """Free accounts are capped per calendar month, Pro is unlimited."""
    limit = get_plan(status).invoice_limit
    return limit is None or current_month_count < limit


def can_use_feature(status: SubscriptionStatus | str | None, feature: str) -> bool:
    return feature in get_plan(status).features
