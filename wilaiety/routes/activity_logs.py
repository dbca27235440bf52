from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..config import settings
from ..db import get_db
from ..models.models import ActivityLog, User
from ..services.activity import list_activity_logs
from ..services.i18n import Translator, get_translator
from ..services.policy import Action, is_allowed, role_of
from .common import iso


router = APIRouter(prefix="/api/activity-logs", tags=["activity"])


def _log_to_dict(row: ActivityLog, tr: Translator) -> dict:
    return {
        "id": str(row.id),
        "user_id": str(row.user_id),
        "user_email": row.user_email,
        "action": row.action,
        "action_label": tr.label("action", row.action),
        "details": row.details,
        "ip_address": row.ip_address,
        "user_agent": row.user_agent,
        "created_at": iso(row.created_at),
    }


@router.get("")
def list_logs(
    q: Optional[str] = None,
    action: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    tr: Translator = Depends(get_translator),
):
    """Admins see every row; everyone else only their own."""
    see_all = is_allowed(role_of(db, user.id), Action.VIEW_ALL_ACTIVITY)
    scope = None if see_all else user.id
    rows = list_activity_logs(db, user_id=scope, q=q, action=action, limit=settings.activity_log_limit)

    actions_query = db.query(ActivityLog.action).distinct()
    if scope is not None:
        actions_query = actions_query.filter(ActivityLog.user_id == scope)
    actions = sorted(a for (a,) in actions_query.all())
    return {
        "items": [_log_to_dict(r, tr) for r in rows],
        "actions": [{"value": a, "label": tr.label("action", a)} for a in actions],
        "scope": "all" if see_all else "own",
    }
