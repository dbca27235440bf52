"""
Authorization policy.

Every privileged operation, whether an API route or a function endpoint,
asks this module. The caller's role is always re-read from ``user_roles``;
nothing the client sends about its own role is trusted.
"""
import enum
from typing import Dict, Set

import structlog
from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import AppRole, User, UserRole
from ..auth.security import get_current_user
from .i18n import Translator, get_translator

logger = structlog.get_logger(__name__)


class Action(str, enum.Enum):
    VIEW_REGISTRY = "view_registry"
    EDIT_REGISTRY = "edit_registry"
    DELETE_LICENSE = "delete_license"
    MANAGE_DIVISIONS = "manage_divisions"
    VIEW_USERS = "view_users"
    MANAGE_USERS = "manage_users"
    RESET_PASSWORD = "reset_password"
    VIEW_ALL_ACTIVITY = "view_all_activity"
    REFRESH_LICENSE_STATUS = "refresh_license_status"


_EVERYONE = {AppRole.ADMIN.value, AppRole.USER.value}
_ADMINS = {AppRole.ADMIN.value}

POLICY: Dict[Action, Set[str]] = {
    Action.VIEW_REGISTRY: _EVERYONE,
    Action.EDIT_REGISTRY: _EVERYONE,
    Action.DELETE_LICENSE: _ADMINS,
    Action.MANAGE_DIVISIONS: _ADMINS,
    Action.VIEW_USERS: _ADMINS,
    Action.MANAGE_USERS: _ADMINS,
    Action.RESET_PASSWORD: _ADMINS,
    Action.VIEW_ALL_ACTIVITY: _ADMINS,
    Action.REFRESH_LICENSE_STATUS: _ADMINS,
}


class PolicyDenied(Exception):
    def __init__(self, action: Action, role: str):
        super().__init__(f"{role} may not {action.value}")
        self.action = action
        self.role = role


def role_of(db: Session, user_id) -> str:
    """A user without a role row is a plain user."""
    row = db.query(UserRole).filter(UserRole.user_id == user_id).first()
    if row is None or row.role not in _EVERYONE:
        return AppRole.USER.value
    return row.role


def is_allowed(role: str, action: Action) -> bool:
    return role in POLICY.get(action, set())


def allowed_actions(role: str) -> list:
    return sorted(a.value for a in Action if is_allowed(role, a))


def authorize(db: Session, user: User, action: Action) -> str:
    """Return the caller's role, or raise PolicyDenied."""
    role = role_of(db, user.id)
    if not is_allowed(role, action):
        logger.warning("policy_denied", user_id=str(user.id), role=role, action=action.value)
        raise PolicyDenied(action, role)
    return role


def require(action: Action):
    def _dep(
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
        tr: Translator = Depends(get_translator),
    ) -> User:
        try:
            authorize(db, user, action)
        except PolicyDenied:
            raise HTTPException(
                status_code=403,
                detail=tr.t("Cette action est réservée aux administrateurs", "هذا الإجراء متاح للمدراء فقط"),
            )
        return user

    return _dep
