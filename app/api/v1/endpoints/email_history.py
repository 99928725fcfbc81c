"""
Email history endpoints.
Sent email log, delivery statistics and manual retries.
"""

from fastapi import APIRouter, Query

from app.api.deps import DbSession, CurrentUser
from app.models.email_log import DeliveryStatus, EmailType
from app.schemas.base import PaginatedResponse
from app.schemas.email_log import (
    EmailLogListResponse,
    EmailLogResponse,
    EmailStats,
    RetryResult,
    RetryStatus,
)
from app.services.email_retry import EmailRetryService
from app.utils.email_retry import get_retry_status


router = APIRouter()


@router.get(
    "",
    response_model=EmailLogListResponse,
    summary="List sent emails",
)
async def list_emails(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    email_type: EmailType | None = Query(None, description="Filter by email type"),
    delivery_status: DeliveryStatus | None = Query(None, description="Filter by delivery status"),
    search: str | None = Query(None, description="Search recipient or subject"),
) -> EmailLogListResponse:
    service = EmailRetryService(db)
    skip = (page - 1) * per_page

    logs, total = await service.list(
        owner_id=current_user.id,
        skip=skip,
        limit=per_page,
        email_type=email_type,
        delivery_status=delivery_status,
        search=search,
    )

    return EmailLogListResponse(
        items=[EmailLogResponse.model_validate(log) for log in logs],
        total=total,
        page=page,
        per_page=per_page,
        pages=PaginatedResponse.page_count(total, per_page),
    )


@router.get(
    "/stats",
    response_model=EmailStats,
    summary="Email statistics",
)
async def get_email_stats(
    current_user: CurrentUser,
    db: DbSession,
) -> EmailStats:
    service = EmailRetryService(db)
    return await service.get_stats(current_user.id)


@router.get(
    "/{log_id}",
    response_model=EmailLogResponse,
    summary="Email details",
)
async def get_email(
    log_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> EmailLogResponse:
    service = EmailRetryService(db)
    log = await service.get_or_404(log_id, current_user.id)
    return EmailLogResponse.model_validate(log)


@router.get(
    "/{log_id}/retry-status",
    response_model=RetryStatus,
    summary="Retry status",
    description="Whether a failed email can still be retried",
)
async def get_email_retry_status(
    log_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> RetryStatus:
    service = EmailRetryService(db)
    log = await service.get_or_404(log_id, current_user.id)
    retry_status = get_retry_status(log.success, log.retry_count, log.next_retry_at)
    return RetryStatus(**vars(retry_status))


@router.post(
    "/{log_id}/retry",
    response_model=RetryResult,
    summary="Retry email",
    description="Re-send a failed email now",
)
async def retry_email(
    log_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> RetryResult:
    service = EmailRetryService(db)
    log = await service.get_or_404(log_id, current_user.id)
    return await service.retry_email(log)
