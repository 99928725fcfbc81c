"""
Plan and limit tests.
"""

from app.core.subscription import (
    FREE_PLAN,
    PRO_PLAN,
    SubscriptionStatus,
    can_create_invoice,
    can_use_feature,
    get_plan,
    is_pro,
)


def test_pro_statuses():
    assert is_pro(SubscriptionStatus.ACTIVE)
    assert is_pro("trialing")
    assert not is_pro(SubscriptionStatus.PAST_DUE)
    assert not is_pro(None)


def test_plan_lookup():
    assert get_plan(SubscriptionStatus.FREE) is FREE_PLAN
    assert get_plan(SubscriptionStatus.ACTIVE) is PRO_PLAN


def test_free_plan_allows_three_invoices_per_month():
    assert can_create_invoice(SubscriptionStatus.FREE, 2)
    assert not can_create_invoice(SubscriptionStatus.FREE, 3)
    assert can_create_invoice(SubscriptionStatus.ACTIVE, 1000)


def test_features():
    assert can_use_feature(SubscriptionStatus.FREE, "pdf_generation")
    assert not can_use_feature(SubscriptionStatus.CANCELED, "email_sending")
    assert can_use_feature(SubscriptionStatus.TRIALING, "email_sending")
