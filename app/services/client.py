"""
Client service.
Handles client CRUD, CSV import/export and VAT lookups.
"""

import logging
from typing import Iterable, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete, or_
from fastapi import HTTPException, status

from app.models.client import Client
from app.models.estimate import Estimate
from app.models.invoice import Invoice
from app.models.recurring import RecurringInvoice
from app.models.user import User
from app.schemas.client import (
    ClientCreate,
    ClientUpdate,
    ClientImportResponse,
    CSVRowError,
    ImportedClient,
)
from app.utils.csv_parser import clients_to_csv, parse_csv
from app.utils.vat import VATValidationResult, validate_vat_number


logger = logging.getLogger(__name__)


class ClientService:
    """Service for client operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, owner: User, data: ClientCreate) -> Client:
        """Create a new client for ``owner``."""
        client = Client(
            owner_id=owner.id,
            **data.model_dump(),
        )

        self.db.add(client)
        await self.db.flush()
        await self.db.refresh(client)

        return client

    async def get_by_id(self, client_id: int, owner_id: int) -> Client | None:
        """Get client by ID, ensuring owner access."""
        result = await self.db.execute(
            select(Client).where(
                Client.id == client_id,
                Client.owner_id == owner_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_or_404(self, client_id: int, owner_id: int) -> Client:
        """
        Get client by ID or raise 404.

        Raises:
            HTTPException: If client not found
        """
        client = await self.get_by_id(client_id, owner_id)
        if not client:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Client not found",
            )
        return client

    async def list(
        self,
        owner_id: int,
        skip: int = 0,
        limit: int = 20,
        search: str | None = None,
    ) -> tuple[list[Client], int]:
        """
        List clients with pagination and search.

        Args:
            owner_id: Owner's user ID
            skip: Number of records to skip
            limit: Maximum records to return
            search: Matched against name, email and company

        Returns:
            Tuple of (clients list, total count)
        """
        query = select(Client).where(Client.owner_id == owner_id)
        count_query = select(func.count(Client.id)).where(Client.owner_id == owner_id)

        if search:
            search_filter = f"%{search}%"
            condition = or_(
                Client.name.ilike(search_filter),
                Client.email.ilike(search_filter),
                Client.company_name.ilike(search_filter),
            )
            query = query.where(condition)
            count_query = count_query.where(condition)

        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(Client.name).offset(skip).limit(limit)
        result = await self.db.execute(query)
        clients = list(result.scalars().all())

        return clients, total

    async def list_all(self, owner_id: int) -> List[Client]:
        result = await self.db.execute(
            select(Client).where(Client.owner_id == owner_id).order_by(Client.name)
        )
        return list(result.scalars().all())

    async def update(self, client: Client, data: ClientUpdate) -> Client:
        """Apply the fields set on ``data``."""
        update_data = data.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            setattr(client, field, value)

        await self.db.flush()
        await self.db.refresh(client)

        return client

    async def _has_documents(self, client_ids: Iterable[int]) -> bool:
        ids = list(client_ids)
        invoices = await self.db.execute(
            select(func.count(Invoice.id)).where(Invoice.client_id.in_(ids))
        )
        estimates = await self.db.execute(
            select(func.count(Estimate.id)).where(Estimate.client_id.in_(ids))
        )
        templates = await self.db.execute(
            select(func.count(RecurringInvoice.id)).where(RecurringInvoice.client_id.in_(ids))
        )
        return any(count.scalar() for count in (invoices, estimates, templates))

    async def delete(self, client: Client) -> None:
        """
        Delete client.

        Raises:
            HTTPException: 400 if invoices, estimates or recurring invoices reference the client
        """
        if await self._has_documents([client.id]):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete a client with existing invoices, estimates or recurring invoices",
            )

        await self.db.delete(client)
        await self.db.flush()

    async def bulk_delete(self, owner_id: int, client_ids: List[int]) -> int:
        """Delete several clients at once. Unknown ids are ignored."""
        result = await self.db.execute(
            select(Client.id).where(
                Client.owner_id == owner_id,
                Client.id.in_(client_ids),
            )
        )
        owned = list(result.scalars().all())
        if not owned:
            return 0

        if await self._has_documents(owned):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete clients with existing invoices, estimates or recurring invoices",
            )

        await self.db.execute(delete(Client).where(Client.id.in_(owned)))
        await self.db.flush()
        logger.info(f"Bulk deleted {len(owned)} clients for user {owner_id}")
        return len(owned)

    async def _existing_emails(self, owner_id: int) -> set[str]:
        result = await self.db.execute(
            select(func.lower(Client.email)).where(
                Client.owner_id == owner_id,
                Client.email.is_not(None),
            )
        )
        return set(result.scalars().all())

    async def import_clients(
        self,
        owner: User,
        clients: List[ImportedClient],
        skip_duplicates: bool = True,
    ) -> ClientImportResponse:
        """
        Insert parsed clients.

        With ``skip_duplicates`` an email already known for the owner, or
        seen earlier in the same batch, is skipped (case-insensitive).
        """
        existing = await self._existing_emails(owner.id) if skip_duplicates else set()
        imported = 0
        skipped = 0
        duplicate_emails: list[str] = []

        for entry in clients:
            email = entry.email.lower() if entry.email else None
            if skip_duplicates and email and email in existing:
                skipped += 1
                duplicate_emails.append(entry.email)
                continue

            self.db.add(Client(owner_id=owner.id, **entry.model_dump()))
            imported += 1
            if email:
                existing.add(email)

        await self.db.flush()
        logger.info(f"Imported {imported} clients for user {owner.id} ({skipped} skipped)")

        return ClientImportResponse(
            imported=imported,
            skipped=skipped,
            duplicate_emails=duplicate_emails,
        )

    async def import_csv(
        self,
        owner: User,
        content: str,
        skip_duplicates: bool = True,
    ) -> ClientImportResponse:
        """
        Parse a CSV export and import its valid rows.

        Raises:
            HTTPException: 400 when the file cannot be imported at all
        """
        parsed = parse_csv(content)
        errors = [CSVRowError(**vars(e)) for e in parsed.errors]

        if not parsed.clients:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "No valid clients found in CSV",
                    "errors": [e.model_dump() for e in errors],
                },
            )

        response = await self.import_clients(
            owner,
            [ImportedClient(**c.to_dict()) for c in parsed.clients],
            skip_duplicates=skip_duplicates,
        )
        response.errors = errors
        return response

    async def export_csv(self, owner_id: int) -> str:
        return clients_to_csv(await self.list_all(owner_id))

    async def validate_vat(self, vat_number: str) -> VATValidationResult:
        result = await validate_vat_number(vat_number)
        logger.info(f"VAT lookup for {vat_number}: valid={result.valid}")
        return result
