"""
schemas/company.py
------------------
Pydantic request/response models for companies.

Naming convention:
  CompanyCreate  → onboarding request body
  CompanyUpdate  → partial profile update (profile fields only; status,
                   rejection_reason and tracking columns cannot be set here)
  CompanyRead    → outbound response body
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from welo.models.company import CompanyStatus, ScriptStatus


class _ProfileFields(BaseModel):
    @field_validator("company_name", "country", mode="before", check_fields=False)
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class CompanyCreate(_ProfileFields):
    company_name: str = Field(..., min_length=2, max_length=255, examples=["Acme Corp"])
    email: EmailStr
    website_url: str = Field(..., min_length=4, max_length=2048, examples=["https://acme.com"])
    country: str = Field(..., min_length=2, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=50)
    date_of_incorporation: Optional[date] = None
    description: Optional[str] = Field(default=None, max_length=5000)
    terms_url: Optional[str] = Field(default=None, max_length=2048)
    privacy_url: Optional[str] = Field(default=None, max_length=2048)
    plan_type: Optional[str] = Field(default=None, max_length=20)


class CompanyUpdate(_ProfileFields):
    company_name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    website_url: Optional[str] = Field(default=None, min_length=4, max_length=2048)
    country: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=50)
    date_of_incorporation: Optional[date] = None
    description: Optional[str] = Field(default=None, max_length=5000)
    terms_url: Optional[str] = Field(default=None, max_length=2048)
    privacy_url: Optional[str] = Field(default=None, max_length=2048)


class CompanyRead(BaseModel):
    id: str
    user_id: str
    company_name: str
    email: str
    website_url: str
    country: str
    phone_number: Optional[str] = None
    date_of_incorporation: Optional[date] = None
    description: Optional[str] = None
    terms_url: Optional[str] = None
    privacy_url: Optional[str] = None
    plan_type: Optional[str] = None
    status: CompanyStatus
    rejection_reason: Optional[str] = None
    tracking_id: Optional[str] = None
    public_url: Optional[str] = None
    script_installed: bool
    script_status: ScriptStatus
    views_count: int
    last_tracking_event: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CompanyStatusRead(BaseModel):
    """Flags the dashboard needs to decide what to show."""
    has_company: bool
    status: Optional[CompanyStatus] = None
    is_approved: bool
    has_script_installed: bool
    script_status: ScriptStatus


class BrandingCreate(BaseModel):
    logo_url: Optional[str] = Field(default=None, max_length=2048)
    cover_url: Optional[str] = Field(default=None, max_length=2048)
    primary_color: str = Field(default="#3b82f6", pattern=r"^#[0-9a-fA-F]{6}$")
    display_text: Optional[str] = Field(default=None, max_length=500)


class BrandingRead(BrandingCreate):
    id: str
    company_id: str
    created_at: datetime

    model_config = {"from_attributes": True}


class DocumentCreate(BaseModel):
    file_name: str = Field(..., min_length=1, max_length=255)
    file_type: str = Field(..., min_length=1, max_length=100, examples=["application/pdf"])
    file_url: str = Field(..., min_length=1, max_length=2048)


class DocumentRead(DocumentCreate):
    id: str
    company_id: str
    created_at: datetime

    model_config = {"from_attributes": True}


class DashboardRead(BaseModel):
    company: CompanyRead
    views_count: int
    public_url: Optional[str] = None
