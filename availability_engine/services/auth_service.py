"""Admin token authentication for rule and rate management endpoints."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Optional

from availability_engine.utils.clock import Clock, utc_now
from availability_engine.utils.config import Settings, get_settings


class AuthenticationError(Exception):
    """Base authentication failure."""


class AdminTokenNotConfiguredError(AuthenticationError):
    """Raised when ADMIN_TOKEN is missing."""


class InvalidAdminTokenError(AuthenticationError):
    """Raised when a provided token is wrong or its session has expired."""


class AuthService:
    """Exchanges the configured admin token for a short-lived bearer session."""

    def __init__(self, settings: Optional[Settings] = None, clock: Clock = utc_now) -> None:
        self._settings = settings or get_settings()
        self._clock = clock
        self._session_token: str | None = None
        self._session_expires_at: datetime | None = None

    @property
    def auth_enabled(self) -> bool:
        return bool(self._settings.admin_token)

    def login(self, provided_admin_token: str) -> str:
        if not self._settings.admin_token:
            raise AdminTokenNotConfiguredError(
                "ADMIN_TOKEN is not configured. Set ADMIN_TOKEN in environment variables."
            )
        if not secrets.compare_digest(provided_admin_token, self._settings.admin_token):
            raise InvalidAdminTokenError("Invalid admin token")
        self._session_token = secrets.token_urlsafe(32)
        self._session_expires_at = self._clock() + timedelta(
            seconds=self._settings.admin_session_ttl_seconds
        )
        return self._session_token

    def validate_bearer_token(self, bearer_token: str) -> None:
        if not self.auth_enabled:
            return
        if self._session_token is None or self._session_expires_at is None:
            raise InvalidAdminTokenError("No active session. Login first.")
        if self._clock() >= self._session_expires_at:
            self._session_token = None
            self._session_expires_at = None
            raise InvalidAdminTokenError("Session expired. Login again.")
        if not secrets.compare_digest(bearer_token, self._session_token):
            raise InvalidAdminTokenError("Invalid bearer token")
