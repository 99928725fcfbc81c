"""
Estimate endpoints.
CRUD, client responses and conversion to invoices.
"""

from fastapi import APIRouter, Query, status
from fastapi.responses import FileResponse

from app.api.deps import DbSession, CurrentUser
from app.models.estimate import EstimateStatus
from app.schemas.base import MessageResponse, PaginatedResponse
from app.schemas.estimate import (
    EstimateConversionResponse,
    EstimateCreate,
    EstimateListResponse,
    EstimateResponse,
    EstimateUpdate,
)
from app.services.estimate import EstimateService
from app.services.pdf import PDFService


router = APIRouter()


@router.post(
    "",
    response_model=EstimateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create estimate",
    description="Create a draft estimate with its line items",
)
async def create_estimate(
    data: EstimateCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> EstimateResponse:
    service = EstimateService(db)
    estimate = await service.create(current_user, data)
    return EstimateResponse.model_validate(estimate)


@router.get(
    "",
    response_model=EstimateListResponse,
    summary="List estimates",
    description="Get the paginated estimate list; stale estimates are expired first",
)
async def list_estimates(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    status: EstimateStatus | None = Query(None, description="Filter by status"),
    client_id: int | None = Query(None, description="Filter by client"),
) -> EstimateListResponse:
    service = EstimateService(db)
    skip = (page - 1) * per_page

    estimates, total = await service.list(
        owner_id=current_user.id,
        skip=skip,
        limit=per_page,
        status=status,
        client_id=client_id,
    )

    return EstimateListResponse(
        items=[EstimateResponse.model_validate(e) for e in estimates],
        total=total,
        page=page,
        per_page=per_page,
        pages=PaginatedResponse.page_count(total, per_page),
    )


@router.get(
    "/{estimate_id}",
    response_model=EstimateResponse,
    summary="Estimate details",
)
async def get_estimate(
    estimate_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> EstimateResponse:
    service = EstimateService(db)
    estimate = await service.get_or_404(estimate_id, current_user.id)
    return EstimateResponse.model_validate(estimate)


@router.patch(
    "/{estimate_id}",
    response_model=EstimateResponse,
    summary="Update estimate",
    description="Update a draft estimate; line items are replaced when given",
)
async def update_estimate(
    estimate_id: int,
    data: EstimateUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> EstimateResponse:
    service = EstimateService(db)
    estimate = await service.get_or_404(estimate_id, current_user.id)
    estimate = await service.update(estimate, data)
    return EstimateResponse.model_validate(estimate)


@router.delete(
    "/{estimate_id}",
    response_model=MessageResponse,
    summary="Delete estimate",
)
async def delete_estimate(
    estimate_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    service = EstimateService(db)
    estimate = await service.get_or_404(estimate_id, current_user.id)
    await service.delete(estimate)
    return MessageResponse(message="Estimate deleted successfully")


@router.post(
    "/{estimate_id}/send",
    response_model=EstimateResponse,
    summary="Send estimate",
    description="Generate the PDF and email the estimate to the client",
)
async def send_estimate(
    estimate_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> EstimateResponse:
    service = EstimateService(db)
    estimate = await service.get_or_404(estimate_id, current_user.id)
    estimate = await service.send(estimate, current_user)
    return EstimateResponse.model_validate(estimate)


@router.post(
    "/{estimate_id}/viewed",
    response_model=EstimateResponse,
    summary="Mark estimate viewed",
)
async def mark_estimate_viewed(
    estimate_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> EstimateResponse:
    service = EstimateService(db)
    estimate = await service.get_or_404(estimate_id, current_user.id)
    estimate = await service.mark_viewed(estimate)
    return EstimateResponse.model_validate(estimate)


@router.post(
    "/{estimate_id}/accept",
    response_model=EstimateResponse,
    summary="Accept estimate",
)
async def accept_estimate(
    estimate_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> EstimateResponse:
    service = EstimateService(db)
    estimate = await service.get_or_404(estimate_id, current_user.id)
    estimate = await service.accept(estimate)
    return EstimateResponse.model_validate(estimate)


@router.post(
    "/{estimate_id}/reject",
    response_model=EstimateResponse,
    summary="Reject estimate",
)
async def reject_estimate(
    estimate_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> EstimateResponse:
    service = EstimateService(db)
    estimate = await service.get_or_404(estimate_id, current_user.id)
    estimate = await service.reject(estimate)
    return EstimateResponse.model_validate(estimate)


@router.post(
    "/{estimate_id}/convert",
    response_model=EstimateConversionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Convert to invoice",
    description="Create a draft invoice from the estimate",
)
async def convert_estimate(
    estimate_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> EstimateConversionResponse:
    """
    Convert an estimate into a draft invoice due in 30 days.

    Counts against the monthly invoice limit of the free plan.
    """
    service = EstimateService(db)
    estimate = await service.get_or_404(estimate_id, current_user.id)
    invoice = await service.convert_to_invoice(estimate, current_user)
    return EstimateConversionResponse(
        estimate_id=estimate.id,
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
    )


@router.get(
    "/{estimate_id}/pdf",
    summary="Download PDF",
    response_class=FileResponse,
)
async def download_estimate_pdf(
    estimate_id: int,
    current_user: CurrentUser,
    db: DbSession,
):
    service = EstimateService(db)
    estimate = await service.get_or_404(estimate_id, current_user.id)
    pdf_path = await PDFService().generate_estimate_pdf(estimate, current_user)
    return FileResponse(
        path=pdf_path,
        filename=f"{estimate.estimate_number}.pdf",
        media_type="application/pdf",
    )
