import enum
import os
import uuid
from typing import Optional, Tuple

from fastapi import HTTPException, UploadFile
from pydantic import BaseModel
from slugify import slugify

from ..config import settings
from ..services.i18n import Translator

PDF_FONT_MISSING = (
    "Aucune police arabe disponible pour les PDF (PDF_FONT_PATH)",
    "لا يتوفر خط عربي لإنشاء ملفات PDF (PDF_FONT_PATH)",
)


def parse_uuid(value: Optional[str], tr: Translator, not_found: Optional[Tuple[str, str]] = None) -> uuid.UUID:
    """Ids that are not UUIDs cannot name a row, so they are reported as missing."""
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        fr, ar = not_found or ("Introuvable", "غير موجود")
        raise HTTPException(status_code=404, detail=tr.t(fr, ar))


def optional_uuid(value: Optional[str], tr: Translator) -> Optional[uuid.UUID]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise HTTPException(status_code=400, detail=tr.t("Identifiant invalide", "معرف غير صالح"))


def column_values(req: BaseModel, exclude_unset: bool = False, exclude=None) -> dict:
    """Pydantic payload as plain column values (enums stored by value)."""
    data = req.model_dump(exclude_unset=exclude_unset, exclude=exclude)
    return {k: (v.value if isinstance(v, enum.Enum) else v) for k, v in data.items()}


def iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def image_extension(filename: Optional[str], content_type: str) -> str:
    ext = slugify(os.path.splitext(filename or "")[1].lstrip("."))
    if not ext:
        ext = slugify(content_type.split("/", 1)[-1]) or "img"
    return ext.lower()


async def read_image_upload(file: UploadFile, tr: Translator) -> Tuple[bytes, str, str]:
    """Read an uploaded image, enforcing type and size. Returns (data, ext, content_type)."""
    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(
            status_code=415,
            detail=tr.t("Veuillez sélectionner une image", "يرجى اختيار صورة"),
        )
    data = await file.read()
    if len(data) > settings.max_image_bytes:
        max_mb = settings.max_image_bytes // (1024 * 1024)
        raise HTTPException(
            status_code=413,
            detail=tr.t(f"La taille de l'image doit être inférieure à {max_mb} Mo", f"حجم الصورة يجب أن يكون أقل من {max_mb} ميغابايت"),
        )
    return data, image_extension(file.filename, content_type), content_type
