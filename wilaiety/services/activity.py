"""
Activity logging service.
Append-only record of security relevant user actions.
"""
from typing import Optional, Dict, Any, List

import structlog
from sqlalchemy import or_, func
from sqlalchemy.orm import Session
from starlette.requests import Request

from ..models.models import ActivityLog

logger = structlog.get_logger(__name__)

LOGIN = "login"
LOGOUT = "logout"
PASSWORD_CHANGE = "password_change"
PASSWORD_RESET_BY_ADMIN = "password_reset_by_admin"
USER_CREATED = "user_created"
ROLE_CHANGED = "role_changed"


def client_ip(headers) -> str:
    return headers.get("x-forwarded-for") or headers.get("cf-connecting-ip") or "unknown"


def client_user_agent(headers) -> str:
    return headers.get("user-agent") or "unknown"


def create_activity_log(
    db: Session,
    user_id,
    action: str,
    user_email: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> ActivityLog:
    """
    Append one activity row and commit.

    Args:
        db: Database session
        user_id: Acting user
        action: Action tag (login|logout|password_change|password_reset_by_admin|...)
        user_email: Acting user's e-mail, denormalized for display
        details: Free-form JSON context
        ip_address: Caller address as reported by the proxy headers
        user_agent: Caller user agent

    Returns:
        Created ActivityLog object
    """
    entry = ActivityLog(
        user_id=user_id,
        user_email=user_email,
        action=action,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info("activity_logged", action=action, user_id=str(user_id))
    return entry


def log_request_activity(db: Session, request: Request, user, action: str, details: Optional[Dict[str, Any]] = None) -> Optional[ActivityLog]:
    """Best effort: a failed log write is reported but never fails the caller."""
    try:
        return create_activity_log(
            db,
            user_id=user.id,
            user_email=user.email,
            action=action,
            details=details,
            ip_address=client_ip(request.headers),
            user_agent=client_user_agent(request.headers),
        )
    except Exception as e:
        db.rollback()
        logger.warning("activity_log_failed", action=action, error=str(e))
        return None


def list_activity_logs(
    db: Session,
    user_id=None,
    q: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 100,
) -> List[ActivityLog]:
    """
    Newest activity first.

    ``user_id`` scopes the rows to one user; None returns everyone's rows.
    """
    query = db.query(ActivityLog)
    if user_id is not None:
        query = query.filter(ActivityLog.user_id == user_id)
    if action and action != "all":
        query = query.filter(ActivityLog.action == action)
    if q:
        like = f"%{q.lower()}%"
        query = query.filter(
            or_(
                func.lower(ActivityLog.user_email).like(like),
                func.lower(ActivityLog.action).like(like),
            )
        )
    return query.order_by(ActivityLog.created_at.desc()).limit(limit).all()
