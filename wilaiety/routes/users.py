from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth.security import get_password_hash, password_policy_error
from ..db import get_db
from ..logging import structlog
from ..models.models import AppRole, Profile, User, UserRole
from ..schemas.users import UserCreate, UserUpdate
from ..services import activity
from ..services.i18n import Translator, get_translator
from ..services.policy import Action, require
from .common import iso, parse_uuid


router = APIRouter(prefix="/api/users", tags=["users"])
logger = structlog.get_logger(__name__)

USER_NOT_FOUND = ("Utilisateur introuvable", "المستخدم غير موجود")
PROFILE_FIELDS = ("full_name", "phone", "job_title", "department")


def _role(u: User) -> str:
    row = u.role_row
    return row.role if row and row.role else AppRole.USER.value


def _user_to_dict(u: User, tr: Translator) -> dict:
    p = u.profile
    role = _role(u)
    return {
        "id": str(u.id),
        "email": u.email,
        "is_active": u.is_active,
        "role": role,
        "role_label": tr.label("role", role),
        "full_name": p.full_name if p else None,
        "phone": p.phone if p else None,
        "job_title": p.job_title if p else None,
        "department": p.department if p else None,
        "avatar_url": p.avatar_url if p else None,
        "created_at": iso(u.created_at),
        "last_login_at": iso(u.last_login_at),
    }


def _get_user(db: Session, user_id: str, tr: Translator) -> User:
    uid = parse_uuid(user_id, tr, USER_NOT_FOUND)
    user = db.query(User).filter(User.id == uid).first()
    if not user:
        raise HTTPException(status_code=404, detail=tr.t(*USER_NOT_FOUND))
    return user


@router.get("")
def list_users(
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_USERS)),
):
    """
    Users merged with their profile and role.

    Args:
        q: Search on full name, job title, department or e-mail
    """
    everyone = db.query(User).all()
    admins = sum(1 for u in everyone if _role(u) == AppRole.ADMIN.value)

    query = db.query(User).outerjoin(Profile, Profile.user_id == User.id)
    if q:
        like = f"%{q}%"
        query = query.filter(
            or_(
                Profile.full_name.ilike(like),
                Profile.job_title.ilike(like),
                Profile.department.ilike(like),
                User.email.ilike(like),
            )
        )
    rows = query.order_by(User.created_at.desc()).all()
    return {
        "items": [_user_to_dict(u, tr) for u in rows],
        "counts": {"total": len(everyone), "admins": admins, "users": len(everyone) - admins},
    }


@router.post("", status_code=201)
def create_user(
    req: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    admin: User = Depends(require(Action.MANAGE_USERS)),
):
    error = password_policy_error(req.password, tr)
    if error:
        raise HTTPException(status_code=400, detail=error)
    email = req.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail=tr.t("Cet e-mail est déjà utilisé", "البريد الإلكتروني مستخدم بالفعل"))
    user = User(email=email, password_hash=get_password_hash(req.password), is_active=True)
    user.profile = Profile(
        full_name=req.full_name,
        phone=req.phone,
        job_title=req.job_title,
        department=req.department,
    )
    user.role_row = UserRole(role=req.role.value)
    db.add(user)
    db.commit()
    db.refresh(user)
    activity.log_request_activity(
        db, request, admin, activity.USER_CREATED,
        details={"target_user_id": str(user.id), "email": email, "role": req.role.value},
    )
    return _user_to_dict(user, tr)


@router.patch("/{user_id}")
def update_user(
    user_id: str,
    req: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    admin: User = Depends(require(Action.MANAGE_USERS)),
):
    user = _get_user(db, user_id, tr)
    data = req.model_dump(exclude_unset=True)
    if user.profile is None:
        user.profile = Profile()
    for key in PROFILE_FIELDS:
        if key in data:
            setattr(user.profile, key, data[key])
    if data.get("is_active") is not None:
        user.is_active = data["is_active"]

    previous_role = _role(user)
    new_role = req.role.value if req.role else None
    if new_role and new_role != previous_role:
        if user.role_row is None:
            user.role_row = UserRole(role=new_role)
        else:
            user.role_row.role = new_role
    db.commit()
    db.refresh(user)
    if new_role and new_role != previous_role:
        activity.log_request_activity(
            db, request, admin, activity.ROLE_CHANGED,
            details={"target_user_id": str(user.id), "from": previous_role, "to": new_role},
        )
    return _user_to_dict(user, tr)


@router.delete("/{user_id}", status_code=204)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    admin: User = Depends(require(Action.MANAGE_USERS)),
):
    user = _get_user(db, user_id, tr)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail=tr.t("Vous ne pouvez pas supprimer votre propre compte", "لا يمكنك حذف حسابك"))
    db.delete(user)
    db.commit()
    logger.info("user_deleted", target_user_id=user_id, user_id=str(admin.id))
    return Response(status_code=204)
