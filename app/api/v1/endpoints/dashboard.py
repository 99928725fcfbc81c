"""
Dashboard endpoints.
Business statistics and analytics.
"""

from fastapi import APIRouter, Query

from app.api.deps import DbSession, CurrentUser
from app.schemas.dashboard import DashboardOverview, MonthlyRevenue
from app.services.dashboard import DashboardService


router = APIRouter()


@router.get(
    "/overview",
    response_model=DashboardOverview,
    summary="Overview",
    description="Revenue, outstanding balance, invoice counts and net profit",
)
async def get_overview(
    current_user: CurrentUser,
    db: DbSession,
) -> DashboardOverview:
    service = DashboardService(db)
    return await service.get_overview(current_user.id)


@router.get(
    "/monthly-revenue",
    response_model=list[MonthlyRevenue],
    summary="Monthly revenue",
    description="Payments received and expenses per month, oldest first",
)
async def get_monthly_revenue(
    current_user: CurrentUser,
    db: DbSession,
    months: int = Query(12, ge=1, le=36, description="Number of months"),
) -> list[MonthlyRevenue]:
    service = DashboardService(db)
    return await service.get_monthly_revenue(current_user.id, months)


@router.get(
    "/top-clients",
    summary="Top clients",
    description="Clients ranked by amount paid",
)
async def get_top_clients(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(5, ge=1, le=50, description="Number of clients"),
) -> list[dict]:
    service = DashboardService(db)
    return await service.get_top_clients(current_user.id, limit)
