from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SystemInfo(CamelModel):
    platform: str
    architecture: str
    hostname: str
    uptime: float
    load_average: list[float]
    cpu_count: int
    cpu_model: str


class SystemMetrics(CamelModel):
    timestamp: datetime
    cpu_usage: float = Field(ge=0, le=100)
    memory_usage: float = Field(ge=0, le=100)
    disk_usage: float = 0.0
    network_activity: float = 0.0
    health_score: int
    total_memory: int
    free_memory: int
    used_memory: int
    system_info: SystemInfo
    security_alerts: int = 0
    active_connections: int = 0
    blocked_threats: int = 0

    @field_serializer("timestamp")
    def _iso_timestamp(self, value: datetime) -> str:
        return value.isoformat().replace("+00:00", "Z")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    token: str = Field(repr=False)


class FieldReportCreate(BaseModel):
    """Field report payload; unknown columns pass straight through to the store."""

    model_config = ConfigDict(extra="allow")

    report_number: str = Field(min_length=1)
    project_name: str = Field(min_length=1)
    report_date: str = Field(min_length=1)
    organization_id: str | None = None


class VBAProjectCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    project_name: str = Field(min_length=1)
    project_number: str | None = None
    organization_id: str | None = None


class ActivityLogCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    action: str = Field(min_length=1)
    user_id: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: str | None = None


class MemberCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str | None = None
    name: str | None = None
    role: str | None = None


class UserProfile(CamelModel):
    name: str
    email: str
    phone: str = ""
    title: str
    company: str = ""
    address: str = ""
    role: str
    is_admin: bool


class SuccessResponse(BaseModel):
    success: bool = True


class BulkDeleteResponse(SuccessResponse):
    deleted: int


class BulkUpdateResponse(SuccessResponse):
    updated: int
    data: list[dict[str, Any]]


class OrganizationUpdate(CamelModel):
    """Company settings; camelCase on the wire, snake_case columns in ``organizations``."""

    company_name: str | None = None
    legal_name: str | None = None
    tax_id: str | None = None
    license_number: str | None = None
    founded_year: int | None = None
    company_type: str | None = None
    logo_url: str | None = None
    main_phone: str | None = None
    main_email: str | None = None
    support_email: str | None = None
    website: str | None = None
    street_address: str | None = None
    suite: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None
    number_of_employees: str | None = None
    annual_revenue: str | None = None
    primary_industry: str | None = None
    secondary_industries: list[str] | None = None
    certifications: list[str] | None = None
    billing_address: str | None = None
    billing_city: str | None = None
    billing_state: str | None = None
    billing_zip: str | None = None
    payment_method: str | None = None
    billing_email: str | None = None
    timezone: str | None = None
    date_format: str | None = None
    currency: str | None = None
    language: str | None = None
