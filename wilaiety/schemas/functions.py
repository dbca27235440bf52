from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ActivityLogRequest(BaseModel):
    user_id: str
    user_email: Optional[str] = None
    action: str = Field(min_length=1, max_length=100)
    details: Optional[Dict[str, Any]] = None


class ResetPasswordRequest(BaseModel):
    target_user_id: str
    new_password: Optional[str] = None
