"""Pydantic schemas for API request/response."""
import ipaddress
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gateway.domain.token_service import mask_token


Environment = Literal["production", "staging", "development", "test"]


def _validate_allowlist(addresses: list[str] | None) -> list[str] | None:
    if addresses is None:
        return None
    cleaned = []
    for address in addresses:
        address = address.strip()
        if not address:
            continue
        ipaddress.ip_address(address)  # raises ValueError
        cleaned.append(address)
    return cleaned


def _clean_filter_field(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


# ===== Admin Auth Schemas =====


class AdminLoginRequest(BaseModel):
    """Admin login request."""

    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)


class AdminResponse(BaseModel):
    """Admin account as shown to the admin plane."""

    id: UUID
    username: str
    email: str
    full_name: str | None
    role: str
    is_active: bool
    last_login_at: datetime | None
    last_login_ip: str | None

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    """Session issued on login."""

    session_token: str
    expires_at: datetime
    admin: AdminResponse


# ===== API Token Schemas =====


class TokenCreateRequest(BaseModel):
    """Request to create an API token.

    Omitted rate limits take the configured defaults; an explicit 0 means
    unlimited for that window.
    """

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    environment: Environment = "production"
    expires_at: datetime | None = None
    ip_allowlist: list[str] = Field(default_factory=list)
    rate_limit_per_minute: int | None = Field(default=None, ge=0)
    rate_limit_per_hour: int | None = Field(default=None, ge=0)
    rate_limit_per_day: int | None = Field(default=None, ge=0)
    vendor_name: str | None = Field(default=None, max_length=100)
    filter_column: str | None = Field(default=None, max_length=100)
    filter_value: str | None = Field(default=None, max_length=255)
    is_super: bool = False

    @field_validator("ip_allowlist")
    @classmethod
    def validate_ip_allowlist(cls, v: list[str]) -> list[str]:
        return _validate_allowlist(v)

    @field_validator("filter_column", "filter_value")
    @classmethod
    def strip_filter_fields(cls, v: str | None) -> str | None:
        return _clean_filter_field(v)


class TokenUpdateRequest(BaseModel):
    """Partial update of an API token; only fields sent are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    environment: Environment | None = None
    expires_at: datetime | None = None
    ip_allowlist: list[str] | None = None
    rate_limit_per_minute: int | None = Field(default=None, ge=0)
    rate_limit_per_hour: int | None = Field(default=None, ge=0)
    rate_limit_per_day: int | None = Field(default=None, ge=0)
    vendor_name: str | None = Field(default=None, max_length=100)
    filter_column: str | None = Field(default=None, max_length=100)
    filter_value: str | None = Field(default=None, max_length=255)
    is_super: bool | None = None

    @field_validator("ip_allowlist")
    @classmethod
    def validate_ip_allowlist(cls, v: list[str] | None) -> list[str] | None:
        return _validate_allowlist(v)

    @field_validator("filter_column", "filter_value")
    @classmethod
    def strip_filter_fields(cls, v: str | None) -> str | None:
        return _clean_filter_field(v)


class TokenRevokeRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=255)


class TokenCreateResponse(BaseModel):
    """Response after creating a token (includes full token, shown only once)."""

    id: UUID
    name: str
    token: str  # Full token, only returned at creation
    token_hint: str
    environment: str
    expires_at: datetime | None
    is_super: bool
    vendor_name: str | None
    filter_column: str | None
    filter_value: str | None
    rate_limit_per_minute: int
    rate_limit_per_hour: int
    rate_limit_per_day: int
    created_at: datetime


class TokenResponse(BaseModel):
    """Token as listed to administrators. ``token`` is always masked."""

    id: UUID
    name: str
    description: str | None
    environment: str
    token: str = Field(validation_alias="token_hint")
    token_prefix: str
    is_active: bool
    expires_at: datetime | None
    revoked_at: datetime | None
    revoked_by: UUID | None
    revoked_reason: str | None
    ip_allowlist: list[str]
    rate_limit_per_minute: int
    rate_limit_per_hour: int
    rate_limit_per_day: int
    vendor_name: str | None
    filter_column: str | None
    filter_value: str | None
    is_super: bool
    last_used_at: datetime | None
    last_used_ip: str | None
    last_used_endpoint: str | None
    total_requests: int
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def mask_secret(self) -> "TokenResponse":
        self.token = mask_token(self.token, self.token_prefix)
        return self


class TokenListResponse(BaseModel):
    tokens: list[TokenResponse]
    total: int


# ===== Log Schemas =====


class UsageLogResponse(BaseModel):
    id: UUID
    token_id: UUID | None
    scope_kind: str | None
    method: str
    endpoint: str
    full_url: str | None
    status_code: int
    response_time_ms: int
    ip_address: str | None
    user_agent: str | None
    referer: str | None
    request_id: str | None
    error_message: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogResponse(BaseModel):
    id: UUID
    admin_id: UUID | None
    action: str
    resource_type: str
    resource_id: str | None
    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None
    ip_address: str | None
    user_agent: str | None
    description: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ===== Data Plane Schemas =====


class DataRow(BaseModel):
    """One ticket row as emitted by the query builder projection."""

    terminal_id: str
    terminal_name: str | None = None
    priority: str | None = None
    mode: str | None = None
    initial_problem: str | None = None
    current_problem: str | None = None
    incident_start_datetime: datetime | None = None
    count: int | None = None
    status: str | None = None
    remarks: str | None = None
    balance: float | None = None
    condition: str | None = None
    tickets_no: str | None = None
    tickets_duration: int | None = None
    open_time: datetime | None = None
    close_time: datetime | None = None
    problem_history: str | None = None
    mode_history: str | None = None
    flm_name: str | None = None
    flm: str | None = None
    slm: str | None = None
    net: str | None = None


class DataUpdateRequest(BaseModel):
    """Fields a data-plane caller may change on a ticket."""

    priority: str | None = None
    mode: str | None = None
    current_problem: str | None = None
    status: str | None = None
    remarks: str | None = None
    condition: str | None = None
    close_time: datetime | None = None
    problem_history: str | None = None
    mode_history: str | None = None

    model_config = ConfigDict(extra="forbid")


class MetadataResponse(BaseModel):
    status: list[str]
    mode: list[str]
    priority: list[str]
