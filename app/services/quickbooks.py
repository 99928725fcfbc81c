"""
QuickBooks Online connection service.
Runs the OAuth 2.0 flow with intuit-oauth and keeps tokens encrypted at rest.
"""

import base64
import binascii
import json
import logging
import time
from datetime import datetime, timedelta, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from fastapi import HTTPException, status
from intuitlib.client import AuthClient
from intuitlib.enums import Scopes
from intuitlib.exceptions import AuthClientError
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.encryption import decrypt, encrypt, EncryptionError
from app.models.quickbooks import QuickBooksConnection
from app.models.user import User
from app.schemas.quickbooks import AuthUrlResponse, QuickBooksStatus


logger = logging.getLogger(__name__)

# OAuth state older than this is rejected
STATE_MAX_AGE_SECONDS = 10 * 60


def encode_state(user_id: int, timestamp: float | None = None) -> str:
    payload = {"user_id": user_id, "timestamp": int((timestamp or time.time()) * 1000)}
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def decode_state(state: str) -> dict:
    """
    Raises:
        ValueError: If the state is not base64 encoded JSON with a user id and timestamp
    """
    try:
        payload = json.loads(base64.b64decode(state, validate=True))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError("Malformed OAuth state") from exc
    if not isinstance(payload, dict):
        raise ValueError("Malformed OAuth state")
    user_id, timestamp = payload.get("user_id"), payload.get("timestamp")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise ValueError("Malformed OAuth state")
    if not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
        raise ValueError("Malformed OAuth state")
    return payload


class QuickBooksService:
    """Service for the QuickBooks connection of an account."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _auth_client(self) -> AuthClient:
        if not settings.quickbooks_configured:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="QuickBooks integration is not configured",
            )
        return AuthClient(
            client_id=settings.QUICKBOOKS_CLIENT_ID,
            client_secret=settings.QUICKBOOKS_CLIENT_SECRET,
            redirect_uri=settings.QUICKBOOKS_REDIRECT_URI,
            environment=settings.QUICKBOOKS_ENVIRONMENT,
        )

    async def get_connection(self, owner_id: int) -> QuickBooksConnection | None:
        result = await self.db.execute(
            select(QuickBooksConnection).where(QuickBooksConnection.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def get_status(self, owner_id: int) -> QuickBooksStatus:
        connection = await self.get_connection(owner_id)
        if connection is None or not connection.is_active:
            return QuickBooksStatus(
                configured=settings.quickbooks_configured,
                connected=False,
            )
        return QuickBooksStatus(
            configured=settings.quickbooks_configured,
            connected=True,
            company_name=connection.company_name,
            realm_id=connection.realm_id,
            environment=connection.environment,
            last_sync_at=connection.last_sync_at,
        )

    def get_auth_url(self, user: User) -> AuthUrlResponse:
        auth_client = self._auth_client()
        state = encode_state(user.id)
        url = auth_client.get_authorization_url([Scopes.ACCOUNTING], state_token=state)
        return AuthUrlResponse(url=url, state=state)

    def verify_state(self, state: str, user: User, now: float | None = None) -> None:
        """
        Raises:
            HTTPException: 400 if the state is malformed, belongs to another
                user or is older than STATE_MAX_AGE_SECONDS
        """
        try:
            payload = decode_state(state)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc),
            )

        if payload["user_id"] != user.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="OAuth state does not match the current user",
            )

        age = (now or time.time()) - payload["timestamp"] / 1000
        if age > STATE_MAX_AGE_SECONDS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="OAuth state has expired, please reconnect",
            )

    async def handle_callback(self, user: User, code: str, realm_id: str, state: str) -> QuickBooksStatus:
        """Exchange the authorization code and store the connection."""
        self.verify_state(state, user)
        auth_client = self._auth_client()

        try:
            await run_in_threadpool(auth_client.get_bearer_token, code, realm_id=realm_id)
        except AuthClientError as exc:
            logger.warning(f"QuickBooks token exchange failed for user {user.id}: {exc}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Could not connect to QuickBooks",
            )

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=auth_client.expires_in or 3600)
        connection = await self.get_connection(user.id)
        if connection is None:
            connection = QuickBooksConnection(owner_id=user.id)
            self.db.add(connection)

        connection.realm_id = realm_id
        connection.environment = settings.QUICKBOOKS_ENVIRONMENT
        connection.access_token_encrypted = encrypt(auth_client.access_token)
        connection.refresh_token_encrypted = encrypt(auth_client.refresh_token)
        connection.token_expires_at = expires_at
        connection.is_active = True

        await self.db.flush()
        logger.info(f"QuickBooks company {realm_id} connected for user {user.id}")
        return await self.get_status(user.id)

    async def disconnect(self, owner_id: int) -> None:
        """Revoke the refresh token when possible and deactivate the connection."""
        connection = await self.get_connection(owner_id)
        if connection is None or not connection.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No active QuickBooks connection",
            )

        if settings.quickbooks_configured:
            try:
                refresh_token = decrypt(connection.refresh_token_encrypted)
                await run_in_threadpool(self._auth_client().revoke, token=refresh_token)
            except (AuthClientError, EncryptionError) as exc:
                logger.warning(f"Could not revoke QuickBooks token for user {owner_id}: {exc}")

        connection.is_active = False
        await self.db.flush()
        logger.info(f"QuickBooks disconnected for user {owner_id}")
