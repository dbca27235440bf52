"""
Function endpoints called directly by the dashboard.

Both answer CORS preflights themselves and report every failure as
HTTP 400 ``{"error": "..."}``.
"""
import uuid

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..auth.security import get_password_hash, password_policy_error, user_from_token
from ..db import get_db
from ..logging import structlog
from ..models.models import User
from ..schemas.functions import ActivityLogRequest, ResetPasswordRequest
from ..services import activity
from ..services.i18n import Translator, get_translator
from ..services.policy import Action, PolicyDenied, authorize


router = APIRouter(prefix="/functions/v1", tags=["functions"])
logger = structlog.get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


class FunctionError(Exception):
    """Failure reported to the caller as-is."""


def _ok() -> JSONResponse:
    return JSONResponse({"success": True}, headers=CORS_HEADERS)


def _error(message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=400, headers=CORS_HEADERS)


async def _json_body(request: Request, tr: Translator) -> dict:
    try:
        payload = await request.json()
    except ValueError:
        raise FunctionError(tr.t("Corps de requête invalide", "بيانات الطلب غير صالحة"))
    if not isinstance(payload, dict):
        raise FunctionError(tr.t("Corps de requête invalide", "بيانات الطلب غير صالحة"))
    return payload


def _unknown_error(tr: Translator) -> str:
    return tr.t("Erreur inconnue", "خطأ غير معروف")


@router.options("/log-activity")
@router.options("/reset-user-password")
def preflight():
    return Response(headers=CORS_HEADERS)


@router.post("/log-activity")
async def log_activity(request: Request, db: Session = Depends(get_db), tr: Translator = Depends(get_translator)):
    try:
        payload = await _json_body(request, tr)
        try:
            req = ActivityLogRequest.model_validate(payload)
        except ValidationError:
            raise FunctionError(tr.t("Données d'activité invalides", "بيانات النشاط غير صالحة"))
        try:
            user_id = uuid.UUID(req.user_id)
        except ValueError:
            raise FunctionError(tr.t("Identifiant utilisateur invalide", "معرف المستخدم غير صالح"))
        activity.create_activity_log(
            db,
            user_id=user_id,
            user_email=req.user_email,
            action=req.action,
            details=req.details,
            ip_address=activity.client_ip(request.headers),
            user_agent=activity.client_user_agent(request.headers),
        )
    except FunctionError as e:
        logger.warning("log_activity_rejected", error=str(e))
        return _error(str(e))
    except Exception as e:
        db.rollback()
        logger.exception("log_activity_failed", error=str(e))
        return _error(_unknown_error(tr))
    return _ok()


@router.post("/reset-user-password")
async def reset_user_password(request: Request, db: Session = Depends(get_db), tr: Translator = Depends(get_translator)):
    """
    Admin-only password reset of another user.

    Checks run in a fixed order: password length, caller authentication,
    caller role, then the target user.
    """
    try:
        payload = await _json_body(request, tr)
        error = password_policy_error(payload.get("new_password"), tr)
        if error:
            raise FunctionError(error)

        unauthorized = tr.t("Non autorisé", "غير مصرح")
        auth = request.headers.get("authorization") or ""
        if not auth.lower().startswith("bearer "):
            raise FunctionError(unauthorized)
        caller = user_from_token(db, auth[7:].strip())
        if caller is None:
            raise FunctionError(unauthorized)

        try:
            authorize(db, caller, Action.RESET_PASSWORD)
        except PolicyDenied:
            raise FunctionError(tr.t("Cette action est réservée aux administrateurs", "هذا الإجراء متاح للمدراء فقط"))

        try:
            req = ResetPasswordRequest.model_validate(payload)
            target_id = uuid.UUID(req.target_user_id)
        except (ValidationError, ValueError):
            raise FunctionError(tr.t("Utilisateur introuvable", "المستخدم غير موجود"))
        target = db.query(User).filter(User.id == target_id).first()
        if target is None:
            raise FunctionError(tr.t("Utilisateur introuvable", "المستخدم غير موجود"))

        target.password_hash = get_password_hash(req.new_password)
        db.commit()
        activity.log_request_activity(
            db, request, caller, activity.PASSWORD_RESET_BY_ADMIN,
            details={"target_user_id": str(target.id)},
        )
        logger.info("password_reset_by_admin", target_user_id=str(target.id), user_id=str(caller.id))
    except FunctionError as e:
        logger.warning("reset_password_rejected", error=str(e))
        return _error(str(e))
    except Exception as e:
        db.rollback()
        logger.exception("reset_password_failed", error=str(e))
        return _error(_unknown_error(tr))
    return _ok()
