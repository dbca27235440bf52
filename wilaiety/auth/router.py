import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import User, Profile
from ..schemas.auth import (
    LoginRequest,
    RefreshRequest,
    TokenResponse,
    PasswordChangeRequest,
    MeResponse,
    ProfileOut,
)
from ..services import activity
from ..services.i18n import Translator, get_translator
from ..services.policy import role_of, allowed_actions
from .security import (
    InvalidToken,
    get_password_hash,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
    password_policy_error,
)
from ..logging import structlog


router = APIRouter(prefix="/auth", tags=["auth"])
logger = structlog.get_logger(__name__)


def _profile_out(profile: Profile) -> ProfileOut:
    if profile is None:
        return ProfileOut()
    return ProfileOut(
        full_name=profile.full_name,
        phone=profile.phone,
        job_title=profile.job_title,
        department=profile.department,
        avatar_url=profile.avatar_url,
    )


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, request: Request, db: Session = Depends(get_db), tr: Translator = Depends(get_translator)):
    user = db.query(User).filter(User.email == req.email.lower()).first()
    if not user or not verify_password(req.password, user.password_hash):
        logger.warning("login_failed", email=req.email)
        raise HTTPException(status_code=401, detail=tr.t("Identifiants invalides", "بيانات الدخول غير صحيحة"))
    if not user.is_active:
        raise HTTPException(status_code=403, detail=tr.t("Compte désactivé", "الحساب معطل"))
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    activity.log_request_activity(db, request, user, activity.LOGIN)
    return TokenResponse(access_token=create_access_token(str(user.id)), refresh_token=create_refresh_token(str(user.id)))


@router.post("/refresh", response_model=TokenResponse)
def refresh(req: RefreshRequest, db: Session = Depends(get_db), tr: Translator = Depends(get_translator)):
    invalid = HTTPException(status_code=401, detail=tr.t("Jeton de rafraîchissement invalide", "رمز التحديث غير صالح"))
    try:
        payload = decode_token(req.refresh_token)
    except InvalidToken:
        raise invalid
    if payload.get("type") != "refresh":
        raise invalid
    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise invalid
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        raise invalid
    return TokenResponse(access_token=create_access_token(str(user.id)), refresh_token=create_refresh_token(str(user.id)))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(request: Request, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    # Tokens are stateless; logging out only leaves a trace
    activity.log_request_activity(db, request, user, activity.LOGOUT)


@router.get("/me", response_model=MeResponse)
def me(db: Session = Depends(get_db), user: User = Depends(get_current_user), tr: Translator = Depends(get_translator)):
    role = role_of(db, user.id)
    return MeResponse(
        id=str(user.id),
        email=user.email,
        role=role,
        role_label=tr.label("role", role),
        is_admin=role == "admin",
        allowed_actions=allowed_actions(role),
        profile=_profile_out(user.profile),
    )


@router.post("/password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    req: PasswordChangeRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    tr: Translator = Depends(get_translator),
):
    if req.new_password != req.confirm_password:
        raise HTTPException(status_code=400, detail=tr.t("Les mots de passe ne correspondent pas", "كلمة المرور الجديدة غير متطابقة"))
    error = password_policy_error(req.new_password, tr)
    if error:
        raise HTTPException(status_code=400, detail=error)
    user.password_hash = get_password_hash(req.new_password)
    db.commit()
    activity.log_request_activity(db, request, user, activity.PASSWORD_CHANGE)
