"""
User service.
Handles profile management, logo upload and plan usage.
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.security import get_password_hash, verify_password
from app.core.subscription import get_plan, is_pro, can_create_invoice
from app.models.invoice import Invoice
from app.models.user import User
from app.schemas.user import UserUpdate, UsageResponse, LogoUploadResponse
from app.utils.images import (
    ImageOptimizationError,
    optimize_image,
    get_file_extension,
)


logger = logging.getLogger(__name__)


def month_start(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class UserService:
    """Service for user operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: int) -> User | None:
        """Get user by ID."""
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def update(self, user: User, data: UserUpdate) -> User:
        """Update user profile."""
        update_data = data.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            setattr(user, field, value)

        await self.db.flush()
        await self.db.refresh(user)

        return user

    async def change_password(
        self,
        user: User,
        current_password: str,
        new_password: str,
    ) -> User:
        """
        Change user password.

        Raises:
            HTTPException: If current password is incorrect
        """
        if not verify_password(current_password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is incorrect",
            )

        user.hashed_password = get_password_hash(new_password)

        await self.db.flush()
        await self.db.refresh(user)

        return user

    async def count_invoices_this_month(self, user_id: int) -> int:
        """Invoices created since the first day of the current month."""
        result = await self.db.execute(
            select(func.count(Invoice.id)).where(
                Invoice.owner_id == user_id,
                Invoice.created_at >= month_start(),
            )
        )
        return result.scalar() or 0

    async def get_usage(self, user: User) -> UsageResponse:
        count = await self.count_invoices_this_month(user.id)
        plan = get_plan(user.subscription_status)
        return UsageResponse(
            plan=plan.id,
            is_pro=is_pro(user.subscription_status),
            invoices_this_month=count,
            invoice_limit=plan.invoice_limit,
            can_create_invoice=can_create_invoice(user.subscription_status, count),
        )

    async def upload_logo(self, user: User, data: bytes, filename: str) -> LogoUploadResponse:
        """
        Optimize an uploaded logo and store it under LOGO_STORAGE_PATH.

        Raises:
            HTTPException: 400 if the file is not a supported image
        """
        try:
            optimized = await run_in_threadpool(optimize_image, data, filename)
        except ImageOptimizationError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e),
            )

        extension = get_file_extension(optimized.format)
        storage = Path(settings.LOGO_STORAGE_PATH)
        storage.mkdir(parents=True, exist_ok=True)
        path = storage / f"user_{user.id}_{uuid.uuid4().hex[:12]}.{extension}"
        path.write_bytes(optimized.data)

        user.logo_url = str(path)
        await self.db.flush()

        logger.info(
            f"Logo stored for user {user.id}: {optimized.original_size} -> "
            f"{optimized.optimized_size} bytes"
        )
        return LogoUploadResponse(
            logo_url=user.logo_url,
            format=optimized.format,
            original_size=optimized.original_size,
            optimized_size=optimized.optimized_size,
            compression_ratio=optimized.compression_ratio,
        )
