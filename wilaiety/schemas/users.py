from pydantic import BaseModel, EmailStr, Field
from typing import Optional

from ..models.models import AppRole


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    full_name: str = Field(min_length=1, max_length=255)
    phone: Optional[str] = None
    job_title: Optional[str] = None
    department: Optional[str] = None
    role: AppRole = AppRole.USER


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = None
    job_title: Optional[str] = None
    department: Optional[str] = None
    role: Optional[AppRole] = None
    is_active: Optional[bool] = None


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = None
    job_title: Optional[str] = None
    department: Optional[str] = None
