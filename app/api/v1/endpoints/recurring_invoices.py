"""
Recurring invoice endpoints.
Template CRUD, generation runs and the generation log.
"""

from fastapi import APIRouter, Query, status

from app.api.deps import DbSession, CurrentUser
from app.schemas.base import MessageResponse, PaginatedResponse
from app.schemas.recurring import (
    GenerationLogResponse,
    GenerationResult,
    RecurringInvoiceCreate,
    RecurringInvoiceListResponse,
    RecurringInvoiceResponse,
    RecurringInvoiceUpdate,
)
from app.services.recurring import RecurringInvoiceService


router = APIRouter()


@router.post(
    "",
    response_model=RecurringInvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create recurring invoice",
    description="Create a template that issues a draft invoice every period, starting on start_date",
)
async def create_recurring_invoice(
    data: RecurringInvoiceCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> RecurringInvoiceResponse:
    service = RecurringInvoiceService(db)
    template = await service.create(current_user, data)
    return RecurringInvoiceResponse.model_validate(template)


@router.get(
    "",
    response_model=RecurringInvoiceListResponse,
    summary="List recurring invoices",
)
async def list_recurring_invoices(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    is_active: bool | None = Query(None, description="Filter by active status"),
    client_id: int | None = Query(None, description="Filter by client"),
) -> RecurringInvoiceListResponse:
    service = RecurringInvoiceService(db)
    skip = (page - 1) * per_page

    templates, total = await service.list(
        owner_id=current_user.id,
        skip=skip,
        limit=per_page,
        is_active=is_active,
        client_id=client_id,
    )

    return RecurringInvoiceListResponse(
        items=[RecurringInvoiceResponse.model_validate(t) for t in templates],
        total=total,
        page=page,
        per_page=per_page,
        pages=PaginatedResponse.page_count(total, per_page),
    )


@router.post(
    "/generate",
    response_model=GenerationResult,
    summary="Generate due invoices",
    description="Issue draft invoices for every active template whose next invoice date has arrived",
)
async def generate_due_invoices(
    current_user: CurrentUser,
    db: DbSession,
) -> GenerationResult:
    service = RecurringInvoiceService(db)
    return await service.generate_due(owner_id=current_user.id)


@router.get(
    "/{recurring_id}",
    response_model=RecurringInvoiceResponse,
    summary="Recurring invoice details",
)
async def get_recurring_invoice(
    recurring_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> RecurringInvoiceResponse:
    service = RecurringInvoiceService(db)
    template = await service.get_or_404(recurring_id, current_user.id)
    return RecurringInvoiceResponse.model_validate(template)


@router.patch(
    "/{recurring_id}",
    response_model=RecurringInvoiceResponse,
    summary="Update recurring invoice",
    description="Update a template; line items are replaced when given. Pause or resume with is_active",
)
async def update_recurring_invoice(
    recurring_id: int,
    data: RecurringInvoiceUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> RecurringInvoiceResponse:
    service = RecurringInvoiceService(db)
    template = await service.get_or_404(recurring_id, current_user.id)
    template = await service.update(template, data)
    return RecurringInvoiceResponse.model_validate(template)


@router.delete(
    "/{recurring_id}",
    response_model=MessageResponse,
    summary="Delete recurring invoice",
    description="Delete a template; invoices it already generated are kept",
)
async def delete_recurring_invoice(
    recurring_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    service = RecurringInvoiceService(db)
    template = await service.get_or_404(recurring_id, current_user.id)
    await service.delete(template)
    return MessageResponse(message="Recurring invoice deleted")


@router.get(
    "/{recurring_id}/logs",
    response_model=list[GenerationLogResponse],
    summary="Generation log",
    description="Generation attempts for a template, newest first",
)
async def get_generation_logs(
    recurring_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> list[GenerationLogResponse]:
    service = RecurringInvoiceService(db)
    template = await service.get_or_404(recurring_id, current_user.id)
    logs = await service.get_logs(template)
    return [GenerationLogResponse.model_validate(log) for log in logs]
