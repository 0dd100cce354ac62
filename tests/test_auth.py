from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from availability_engine.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from availability_engine.utils.config import Settings


class _MovableClock:
    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment


def test_login_issues_session_that_expires():
    clock = _MovableClock(datetime(2026, 5, 1, tzinfo=timezone.utc))
    settings = replace(Settings(), admin_token="owner-secret", admin_session_ttl_seconds=60)
    auth = AuthService(settings=settings, clock=clock)

    bearer = auth.login("owner-secret")
    auth.validate_bearer_token(bearer)

    clock.moment += timedelta(seconds=61)
    with pytest.raises(InvalidAdminTokenError):
        auth.validate_bearer_token(bearer)


def test_wrong_token_is_rejected():
    auth = AuthService(settings=replace(Settings(), admin_token="owner-secret"))

    with pytest.raises(InvalidAdminTokenError):
        auth.login("guess")
    with pytest.raises(InvalidAdminTokenError):
        auth.validate_bearer_token("anything")


def test_login_requires_configured_token():
    auth = AuthService(settings=replace(Settings(), admin_token=""))

    assert auth.auth_enabled is False
    with pytest.raises(AdminTokenNotConfiguredError):
        auth.login("owner-secret")
