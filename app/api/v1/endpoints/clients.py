"""
Client management endpoints.
CRUD operations, bulk delete, CSV import/export and VAT validation.
"""

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from app.api.deps import DbSession, CurrentUser
from app.schemas.base import MessageResponse, PaginatedResponse
from app.schemas.client import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    ClientCreate,
    ClientImportRequest,
    ClientImportResponse,
    ClientListResponse,
    ClientResponse,
    ClientUpdate,
    CSVPreviewResponse,
    CSVRowError,
    ImportedClient,
    VATValidationRequest,
    VATValidationResponse,
)
from app.services.client import ClientService
from app.utils.csv_parser import generate_sample_csv, parse_csv


router = APIRouter()


async def read_csv_upload(file: UploadFile) -> str:
    raw = await file.read()
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV file must be UTF-8 encoded",
        )


def csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "",
    response_model=ClientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create client",
    description="Create a new client",
)
async def create_client(
    data: ClientCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> ClientResponse:
    """Create a new client."""
    service = ClientService(db)
    client = await service.create(current_user, data)
    return ClientResponse.model_validate(client)


@router.get(
    "",
    response_model=ClientListResponse,
    summary="List clients",
    description="Get the paginated client list",
)
async def list_clients(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    search: str | None = Query(None, description="Search by name, email or company"),
) -> ClientListResponse:
    """List all clients with pagination."""
    service = ClientService(db)
    skip = (page - 1) * per_page

    clients, total = await service.list(
        owner_id=current_user.id,
        skip=skip,
        limit=per_page,
        search=search,
    )

    return ClientListResponse(
        items=[ClientResponse.model_validate(c) for c in clients],
        total=total,
        page=page,
        per_page=per_page,
        pages=PaginatedResponse.page_count(total, per_page),
    )


@router.post(
    "/bulk-delete",
    response_model=BulkDeleteResponse,
    summary="Delete several clients",
    description="Delete the given clients; refused if any of them has invoices or estimates",
)
async def bulk_delete_clients(
    data: BulkDeleteRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> BulkDeleteResponse:
    service = ClientService(db)
    deleted = await service.bulk_delete(current_user.id, data.ids)
    return BulkDeleteResponse(deleted=deleted)


@router.get(
    "/export",
    summary="Export clients",
    description="Download all clients as CSV",
)
async def export_clients(
    current_user: CurrentUser,
    db: DbSession,
) -> Response:
    service = ClientService(db)
    return csv_response(await service.export_csv(current_user.id), "clients.csv")


@router.get(
    "/import/template",
    summary="CSV template",
    description="Download a sample CSV with the expected headers",
)
async def download_import_template(
    current_user: CurrentUser,
) -> Response:
    return csv_response(generate_sample_csv(), "clients_template.csv")


@router.post(
    "/import/preview",
    response_model=CSVPreviewResponse,
    summary="Preview CSV import",
    description="Parse and validate a CSV file without saving anything",
)
async def preview_import(
    current_user: CurrentUser,
    file: UploadFile = File(...),
) -> CSVPreviewResponse:
    result = parse_csv(await read_csv_upload(file))
    return CSVPreviewResponse(
        success=result.success,
        clients=[ImportedClient(**c.to_dict()) for c in result.clients],
        errors=[CSVRowError(**vars(e)) for e in result.errors],
        total_rows=result.total_rows,
        valid_rows=result.valid_rows,
        duplicates=result.duplicates,
    )


@router.post(
    "/import",
    response_model=ClientImportResponse,
    summary="Import clients from CSV",
    description="Import the valid rows of an uploaded CSV file",
)
async def import_clients_csv(
    current_user: CurrentUser,
    db: DbSession,
    file: UploadFile = File(...),
    skip_duplicates: bool = Form(True),
) -> ClientImportResponse:
    """
    Import clients from a CSV file.

    Rows with errors are reported and skipped. Emails already on file are
    skipped when ``skip_duplicates`` is set.
    """
    service = ClientService(db)
    content = await read_csv_upload(file)
    return await service.import_csv(current_user, content, skip_duplicates)


@router.post(
    "/import/json",
    response_model=ClientImportResponse,
    summary="Import parsed clients",
    description="Import clients already parsed and reviewed on the client side",
)
async def import_clients_json(
    data: ClientImportRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> ClientImportResponse:
    service = ClientService(db)
    return await service.import_clients(current_user, data.clients, data.skip_duplicates)


@router.post(
    "/validate-vat",
    response_model=VATValidationResponse,
    summary="Validate VAT number",
    description="Check an EU VAT number against VIES",
)
async def validate_vat(
    data: VATValidationRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> VATValidationResponse:
    service = ClientService(db)
    result = await service.validate_vat(data.vat_number)
    return VATValidationResponse(**vars(result))


@router.get(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Client details",
    description="Get a client by id",
)
async def get_client(
    client_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> ClientResponse:
    service = ClientService(db)
    client = await service.get_or_404(client_id, current_user.id)
    return ClientResponse.model_validate(client)


@router.patch(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Update client",
    description="Update a client's details",
)
async def update_client(
    client_id: int,
    data: ClientUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> ClientResponse:
    """Update a client."""
    service = ClientService(db)
    client = await service.get_or_404(client_id, current_user.id)
    client = await service.update(client, data)
    return ClientResponse.model_validate(client)


@router.delete(
    "/{client_id}",
    response_model=MessageResponse,
    summary="Delete client",
    description="Delete a client without invoices or estimates",
)
async def delete_client(
    client_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    """Delete a client."""
    service = ClientService(db)
    client = await service.get_or_404(client_id, current_user.id)
    await service.delete(client)
    return MessageResponse(message="Client deleted successfully")
