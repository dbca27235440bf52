from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ..models.models import LicenseStatus


class LicenseCreate(BaseModel):
    facility_id: str
    license_number: str = Field(min_length=1, max_length=100)
    license_type: str = Field(min_length=1, max_length=255)
    issuing_authority: str = Field(min_length=1, max_length=255)
    issue_date: date
    expiry_date: date
    notes: Optional[str] = None
    document_url: Optional[str] = None
    image_url: Optional[str] = None
    # Derived from expiry_date when omitted
    status: Optional[LicenseStatus] = None

    @model_validator(mode="after")
    def check_dates_in_order(self):
        if self.expiry_date < self.issue_date:
            raise ValueError("La date d'expiration précède la date d'émission")
        return self


class LicenseUpdate(BaseModel):
    license_number: Optional[str] = Field(default=None, min_length=1, max_length=100)
    license_type: Optional[str] = Field(default=None, min_length=1, max_length=255)
    issuing_authority: Optional[str] = Field(default=None, min_length=1, max_length=255)
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: Optional[LicenseStatus] = None
    notes: Optional[str] = None
    document_url: Optional[str] = None
    image_url: Optional[str] = None
