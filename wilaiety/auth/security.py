import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..models.models import User
from ..services.i18n import Translator, get_translator


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)


class InvalidToken(Exception):
    """Raised when a bearer token cannot be decoded or has expired."""


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


def _create_token(sub: str, ttl_seconds: int, extra: Optional[dict] = None) -> str:
    now = datetime.now(tz=timezone.utc)
    payload = {
        "sub": sub,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str) -> str:
    return _create_token(user_id, settings.jwt_ttl_seconds, extra={"type": "access"})


def create_refresh_token(user_id: str) -> str:
    return _create_token(user_id, settings.refresh_ttl_seconds, extra={"type": "refresh"})


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.InvalidTokenError as e:
        raise InvalidToken(str(e)) from e


def user_from_token(db: Session, token: str) -> Optional[User]:
    """Resolve an active user from an access token, or None."""
    try:
        payload = decode_token(token)
    except InvalidToken:
        return None
    if payload.get("type") == "refresh":
        return None
    try:
        user_uuid = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        return None
    user = db.query(User).filter(User.id == user_uuid).first()
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
) -> User:
    if creds is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=tr.t("Non authentifié", "غير مصرح"))
    user = user_from_token(db, creds.credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=tr.t("Session invalide ou expirée", "جلسة غير صالحة أو منتهية"),
        )
    return user


def password_policy_error(password: Optional[str], tr: Translator) -> Optional[str]:
    """Message explaining why the password is refused, or None when it is acceptable."""
    if not password or len(password) < settings.min_password_length:
        return tr.t(
            f"Le mot de passe doit contenir au moins {settings.min_password_length} caractères",
            f"كلمة المرور يجب أن تكون {settings.min_password_length} أحرف على الأقل",
        )
    return None
