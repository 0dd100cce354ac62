"""Controller layer for owner/admin management of rules and base rates."""

from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, model_validator

from availability_engine.controllers.availability_controller import RuleRow, rule_row
from availability_engine.controllers.dependencies import (
    availability_http_error,
    get_auth_service,
    get_availability_service,
    require_admin,
)
from availability_engine.domain.errors import AvailabilityError
from availability_engine.domain.models import RuleType
from availability_engine.repository.data_repository import StoreError
from availability_engine.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from availability_engine.services.availability_service import AvailabilityService
from availability_engine.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["admin"])


class LoginRequest(BaseModel):
    admin_token: str = Field(min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class CreateRuleRequest(BaseModel):
    type: Literal["blocked", "price_override", "minimum_stay", "maximum_stay"]
    start_date: date
    end_date: date
    value: Optional[float] = Field(default=None, gt=0.0)
    reason: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def validate_window(self) -> "CreateRuleRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self


class BaseRateRequest(BaseModel):
    nightly_rate: float = Field(gt=0.0)


class BaseRateResponse(BaseModel):
    property_id: str
    nightly_rate: float = Field(gt=0.0)


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    try:
        bearer = auth_service.login(payload.admin_token)
        return LoginResponse(access_token=bearer)
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


@router.get(
    "/properties/{property_id}/rules",
    response_model=list[RuleRow],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
def list_rules(
    property_id: str,
    service: AvailabilityService = Depends(get_availability_service),
) -> list[RuleRow]:
    try:
        return [rule_row(rule) for rule in service.list_rules(property_id)]
    except StoreError as exc:
        logger.error("Rule listing failed | property_id=%s | error=%s", property_id, exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Availability store is unavailable",
        ) from exc


@router.post(
    "/properties/{property_id}/rules",
    response_model=RuleRow,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def add_rule(
    property_id: str,
    payload: CreateRuleRequest,
    service: AvailabilityService = Depends(get_availability_service),
) -> RuleRow:
    try:
        rule = service.add_rule(
            property_id,
            RuleType(payload.type),
            payload.start_date,
            payload.end_date,
            value=payload.value,
            reason=payload.reason,
        )
        return rule_row(rule)
    except AvailabilityError as exc:
        raise availability_http_error(exc) from exc
    except StoreError as exc:
        logger.error("Rule creation failed | property_id=%s | error=%s", property_id, exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Availability store is unavailable",
        ) from exc


@router.delete(
    "/properties/{property_id}/rules/{rule_id}",
    response_model=RuleRow,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
def remove_rule(
    property_id: str,
    rule_id: str,
    service: AvailabilityService = Depends(get_availability_service),
) -> RuleRow:
    try:
        return rule_row(service.remove_rule(property_id, rule_id))
    except AvailabilityError as exc:
        raise availability_http_error(exc) from exc
    except StoreError as exc:
        logger.error("Rule removal failed | property_id=%s | error=%s", property_id, exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Availability store is unavailable",
        ) from exc


@router.put(
    "/properties/{property_id}/base-rate",
    response_model=BaseRateResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
def set_base_rate(
    property_id: str,
    payload: BaseRateRequest,
    service: AvailabilityService = Depends(get_availability_service),
) -> BaseRateResponse:
    try:
        rate = service.set_base_rate(property_id, payload.nightly_rate)
        return BaseRateResponse(property_id=property_id, nightly_rate=rate)
    except AvailabilityError as exc:
        raise availability_http_error(exc) from exc
    except StoreError as exc:
        logger.error("Base rate update failed | property_id=%s | error=%s", property_id, exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Availability store is unavailable",
        ) from exc
