"""
Expense endpoints.
Categories, expenses, statistics and billable expenses.
"""

from datetime import date
from fastapi import APIRouter, Query, status

from app.api.deps import DbSession, CurrentUser
from app.schemas.base import MessageResponse, PaginatedResponse
from app.schemas.expense import (
    CategoryCreate,
    CategoryResponse,
    ExpenseCreate,
    ExpenseListResponse,
    ExpenseResponse,
    ExpenseStats,
    ExpenseUpdate,
    LinkExpensesRequest,
)
from app.services.expense import ExpenseService


router = APIRouter()


# Categories

@router.get(
    "/categories",
    response_model=list[CategoryResponse],
    summary="List categories",
)
async def list_categories(
    current_user: CurrentUser,
    db: DbSession,
) -> list[CategoryResponse]:
    service = ExpenseService(db)
    categories = await service.list_categories(current_user.id)
    return [CategoryResponse.model_validate(c) for c in categories]


@router.post(
    "/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
)
async def create_category(
    data: CategoryCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> CategoryResponse:
    service = ExpenseService(db)
    category = await service.create_category(current_user, data)
    return CategoryResponse.model_validate(category)


@router.delete(
    "/categories/{category_id}",
    response_model=MessageResponse,
    summary="Delete category",
    description="Delete a category that no expense uses",
)
async def delete_category(
    category_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    service = ExpenseService(db)
    category = await service.get_category_or_404(category_id, current_user.id)
    await service.delete_category(category)
    return MessageResponse(message="Category deleted successfully")


# Expenses

@router.post(
    "",
    response_model=ExpenseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create expense",
)
async def create_expense(
    data: ExpenseCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> ExpenseResponse:
    service = ExpenseService(db)
    expense = await service.create(current_user, data)
    return ExpenseResponse.model_validate(expense)


@router.get(
    "",
    response_model=ExpenseListResponse,
    summary="List expenses",
    description="Get the paginated expense list, most recent first",
)
async def list_expenses(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    category_id: int | None = Query(None, description="Filter by category"),
    from_date: date | None = Query(None, description="On or after"),
    to_date: date | None = Query(None, description="On or before"),
    is_billable: bool | None = Query(None, description="Filter billable expenses"),
    client_id: int | None = Query(None, description="Filter by client"),
) -> ExpenseListResponse:
    service = ExpenseService(db)
    skip = (page - 1) * per_page

    expenses, total = await service.list(
        owner_id=current_user.id,
        skip=skip,
        limit=per_page,
        category_id=category_id,
        from_date=from_date,
        to_date=to_date,
        is_billable=is_billable,
        client_id=client_id,
    )

    return ExpenseListResponse(
        items=[ExpenseResponse.model_validate(e) for e in expenses],
        total=total,
        page=page,
        per_page=per_page,
        pages=PaginatedResponse.page_count(total, per_page),
    )


@router.get(
    "/stats",
    response_model=ExpenseStats,
    summary="Expense statistics",
    description="Totals over the last months, overall and per category",
)
async def get_expense_stats(
    current_user: CurrentUser,
    db: DbSession,
    months: int = Query(12, ge=1, le=60, description="Months to cover"),
) -> ExpenseStats:
    service = ExpenseService(db)
    return await service.get_stats(current_user.id, months)


@router.get(
    "/billable",
    response_model=list[ExpenseResponse],
    summary="Unbilled expenses",
    description="Billable expenses for a client not yet on an invoice",
)
async def list_unbilled_expenses(
    current_user: CurrentUser,
    db: DbSession,
    client_id: int = Query(..., description="Client to bill"),
) -> list[ExpenseResponse]:
    service = ExpenseService(db)
    expenses = await service.list_unbilled(current_user.id, client_id)
    return [ExpenseResponse.model_validate(e) for e in expenses]


@router.post(
    "/link-invoice",
    response_model=MessageResponse,
    summary="Link expenses to invoice",
    description="Mark billable expenses as billed on an invoice",
)
async def link_expenses(
    data: LinkExpensesRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    service = ExpenseService(db)
    linked = await service.link_to_invoice(current_user.id, data.expense_ids, data.invoice_id)
    return MessageResponse(message=f"{linked} expenses linked to invoice")


@router.get(
    "/{expense_id}",
    response_model=ExpenseResponse,
    summary="Expense details",
)
async def get_expense(
    expense_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> ExpenseResponse:
    service = ExpenseService(db)
    expense = await service.get_or_404(expense_id, current_user.id)
    return ExpenseResponse.model_validate(expense)


@router.patch(
    "/{expense_id}",
    response_model=ExpenseResponse,
    summary="Update expense",
)
async def update_expense(
    expense_id: int,
    data: ExpenseUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> ExpenseResponse:
    service = ExpenseService(db)
    expense = await service.get_or_404(expense_id, current_user.id)
    expense = await service.update(expense, data)
    return ExpenseResponse.model_validate(expense)


@router.delete(
    "/{expense_id}",
    response_model=MessageResponse,
    summary="Delete expense",
)
async def delete_expense(
    expense_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    service = ExpenseService(db)
    expense = await service.get_or_404(expense_id, current_user.id)
    await service.delete(expense)
    return MessageResponse(message="Expense deleted successfully")
