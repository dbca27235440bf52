from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..models.models import DivisionType
from ..services.geo import parse_gps


def _check_coords(v: Optional[str]) -> Optional[str]:
    if v is None or v.strip() == "":
        return None
    if parse_gps(v) is None:
        raise ValueError("Format de coordonnées invalide")
    return v.strip()


class DivisionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    name_fr: str = Field(min_length=1, max_length=255)
    gps_coordinates: Optional[str] = None
    division_type: DivisionType = DivisionType.COMMUNE
    parent_id: Optional[str] = None
    is_active: bool = True

    @field_validator("gps_coordinates")
    @classmethod
    def validate_coords(cls, v):
        return _check_coords(v)


class DivisionUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    name_fr: Optional[str] = Field(default=None, min_length=1, max_length=255)
    gps_coordinates: Optional[str] = None
    division_type: Optional[DivisionType] = None
    parent_id: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("gps_coordinates")
    @classmethod
    def validate_coords(cls, v):
        return _check_coords(v)
