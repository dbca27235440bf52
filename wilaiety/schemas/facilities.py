from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.models import (
    FacilitySector,
    FacilityStatus,
    JurisdictionType,
    LegalDomain,
    OwnershipType,
)
from ..services.geo import is_valid_gps_input


def _check_gps(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not is_valid_gps_input(v):
        raise ValueError("Format de coordonnées invalide (exemple: 36.7538, 3.0588)")
    return v or None


class FacilityCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    name_fr: Optional[str] = Field(default=None, max_length=100)
    short_name: str = Field(min_length=2, max_length=20)
    legal_name: str = Field(min_length=5, max_length=150)
    sector: FacilitySector
    activity_type: str = Field(min_length=3, max_length=100)
    facility_type: str = Field(min_length=1, max_length=100)
    jurisdiction_type: JurisdictionType
    created_date: date
    description: str = Field(min_length=10, max_length=500)
    gps_coordinates: Optional[str] = None
    location_accuracy: Optional[str] = None
    region: Optional[str] = Field(default=None, min_length=2, max_length=50)
    address: str = Field(min_length=5, max_length=200)
    ownership: OwnershipType
    legal_domain: LegalDomain
    status: FacilityStatus = FacilityStatus.ACTIVE
    website_url: Optional[str] = Field(default=None, max_length=1024)
    # Pre-fills region and coordinates when those are left empty
    division_id: Optional[str] = None

    @field_validator("gps_coordinates")
    @classmethod
    def validate_gps(cls, v):
        return _check_gps(v)


class FacilityUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    name_fr: Optional[str] = Field(default=None, max_length=100)
    short_name: Optional[str] = Field(default=None, min_length=2, max_length=20)
    legal_name: Optional[str] = Field(default=None, min_length=5, max_length=150)
    sector: Optional[FacilitySector] = None
    activity_type: Optional[str] = Field(default=None, min_length=3, max_length=100)
    facility_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    jurisdiction_type: Optional[JurisdictionType] = None
    created_date: Optional[date] = None
    description: Optional[str] = Field(default=None, min_length=10, max_length=500)
    gps_coordinates: Optional[str] = None
    location_accuracy: Optional[str] = None
    region: Optional[str] = Field(default=None, min_length=2, max_length=50)
    address: Optional[str] = Field(default=None, min_length=5, max_length=200)
    ownership: Optional[OwnershipType] = None
    legal_domain: Optional[LegalDomain] = None
    status: Optional[FacilityStatus] = None
    website_url: Optional[str] = Field(default=None, max_length=1024)
    division_id: Optional[str] = None

    @field_validator("gps_coordinates")
    @classmethod
    def validate_gps(cls, v):
        return _check_gps(v)


class LocationUpdate(BaseModel):
    gps_coordinates: Optional[str] = None
    # Position captured from a map click or the device, stored at capture precision
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    location_accuracy: Optional[str] = None

    @field_validator("gps_coordinates")
    @classmethod
    def validate_gps(cls, v):
        return _check_gps(v)

    @model_validator(mode="after")
    def check_position_pair(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude et longitude vont ensemble")
        return self
