from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..config import settings
from ..db import get_db
from ..logging import structlog
from ..models.models import Profile, User
from ..schemas.users import ProfileUpdate
from ..services.i18n import Translator, get_translator, label_tables
from ..services.policy import role_of
from ..storage import get_storage
from ..storage.provider import AVATARS, StorageProvider
from .common import read_image_upload


router = APIRouter(prefix="/api", tags=["settings"])
logger = structlog.get_logger(__name__)


def _profile_dict(user: User, role: str, tr: Translator) -> dict:
    p = user.profile
    return {
        "id": str(user.id),
        "email": user.email,
        "role": role,
        "role_label": tr.label("role", role),
        "full_name": p.full_name if p else None,
        "phone": p.phone if p else None,
        "job_title": p.job_title if p else None,
        "department": p.department if p else None,
        "avatar_url": p.avatar_url if p else None,
    }


@router.get("/settings/profile")
def get_profile(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    tr: Translator = Depends(get_translator),
):
    return _profile_dict(user, role_of(db, user.id), tr)


@router.put("/settings/profile")
def update_profile(
    req: ProfileUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    tr: Translator = Depends(get_translator),
):
    # Role changes only go through /api/users
    if user.profile is None:
        user.profile = Profile()
    for key, value in req.model_dump(exclude_unset=True).items():
        setattr(user.profile, key, value)
    db.commit()
    db.refresh(user)
    return _profile_dict(user, role_of(db, user.id), tr)


@router.post("/settings/avatar")
async def upload_avatar(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    tr: Translator = Depends(get_translator),
    storage: StorageProvider = Depends(get_storage),
):
    data, ext, content_type = await read_image_upload(file, tr)
    key = f"{user.id}/avatar.{ext}"
    storage.upload(AVATARS, key, data, content_type, upsert=True)
    if user.profile is None:
        user.profile = Profile()
    user.profile.avatar_url = storage.public_url(AVATARS, key)
    db.commit()
    logger.info("avatar_uploaded", user_id=str(user.id), key=key)
    return {"avatar_url": user.profile.avatar_url}


@router.get("/site-config")
def site_config(tr: Translator = Depends(get_translator)):
    return {**settings.site_config(), "language": tr.language, "dir": tr.dir}


@router.get("/i18n/labels")
def labels(tr: Translator = Depends(get_translator)):
    return {"language": tr.language, "dir": tr.dir, "labels": label_tables(tr.language)}
