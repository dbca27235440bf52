import time
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from slugify import slugify
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from ..logging import structlog
from ..models.models import Facility, License, User
from ..reports.pdf_builder import PdfFontUnavailable, build_license_certificate
from ..schemas.licenses import LicenseCreate, LicenseUpdate
from ..services.i18n import Translator, get_translator
from ..services.licensing import (
    derive_status,
    describe_days_remaining,
    refresh_statuses,
    regional_today,
    status_badge,
)
from ..services.policy import Action, require
from ..services.stats import license_stats
from ..storage import get_storage
from ..storage.provider import LICENSE_IMAGES, StorageProvider
from .common import PDF_FONT_MISSING, column_values, iso, parse_uuid, read_image_upload


router = APIRouter(prefix="/api/licenses", tags=["licenses"])
logger = structlog.get_logger(__name__)

LICENSE_NOT_FOUND = ("Licence introuvable", "الرخصة غير موجودة")


def license_to_dict(lic: License, tr: Translator, today: Optional[date] = None) -> dict:
    f = lic.facility
    return {
        "id": str(lic.id),
        "facility_id": str(lic.facility_id),
        "license_number": lic.license_number,
        "license_type": lic.license_type,
        "issuing_authority": lic.issuing_authority,
        "issue_date": iso(lic.issue_date),
        "expiry_date": iso(lic.expiry_date),
        "issue_date_label": tr.date(lic.issue_date),
        "expiry_date_label": tr.date(lic.expiry_date),
        "status": lic.status,
        "status_label": tr.label("license_status", lic.status),
        "badge": status_badge(lic.status),
        "days_remaining": describe_days_remaining(lic.expiry_date, tr, today),
        "notes": lic.notes,
        "document_url": lic.document_url,
        "image_url": lic.image_url,
        "facility": {
            "id": str(f.id),
            "name": f.name,
            "sector": f.sector,
            "sector_label": tr.label("sector", f.sector),
            "region": f.region,
        } if f else None,
        "created_at": iso(lic.created_at),
        "updated_at": iso(lic.updated_at),
    }


def _get_license(db: Session, license_id: str, tr: Translator) -> License:
    lid = parse_uuid(license_id, tr, LICENSE_NOT_FOUND)
    lic = db.query(License).filter(License.id == lid).first()
    if not lic:
        raise HTTPException(status_code=404, detail=tr.t(*LICENSE_NOT_FOUND))
    return lic


@router.get("")
def list_licenses(
    q: Optional[str] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    """
    Licenses with their facility, soonest expiry first.

    Args:
        q: Matches license number, license type or facility name
        status: Stored license status; "all" disables the filter
    """
    query = db.query(License).join(Facility, License.facility_id == Facility.id)
    if status and status != "all":
        query = query.filter(License.status == status)
    if q:
        like = f"%{q}%"
        query = query.filter(
            or_(
                License.license_number.ilike(like),
                License.license_type.ilike(like),
                Facility.name.ilike(like),
            )
        )
    today = regional_today()
    rows = query.order_by(License.expiry_date.asc()).all()
    return [license_to_dict(lic, tr, today) for lic in rows]


@router.get("/stats")
def stats(db: Session = Depends(get_db), _=Depends(require(Action.VIEW_REGISTRY))):
    return license_stats(db)


@router.post("/refresh-status")
def refresh_status(db: Session = Depends(get_db), _=Depends(require(Action.REFRESH_LICENSE_STATUS))):
    return {"changed": refresh_statuses(db)}


@router.get("/{license_id}")
def get_license(
    license_id: str,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    return license_to_dict(_get_license(db, license_id, tr), tr)


@router.post("", status_code=201)
def create_license(
    req: LicenseCreate,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    user: User = Depends(require(Action.EDIT_REGISTRY)),
):
    facility_id = parse_uuid(req.facility_id, tr, ("Établissement introuvable", "المنشأة غير موجودة"))
    if not db.query(Facility).filter(Facility.id == facility_id).first():
        raise HTTPException(status_code=404, detail=tr.t("Établissement introuvable", "المنشأة غير موجودة"))
    data = column_values(req, exclude={"facility_id", "status"})
    lic = License(
        facility_id=facility_id,
        status=derive_status(req.expiry_date, current=req.status.value if req.status else None),
        **data,
    )
    db.add(lic)
    db.commit()
    db.refresh(lic)
    logger.info("license_created", license_id=str(lic.id), facility_id=str(facility_id), user_id=str(user.id))
    return license_to_dict(lic, tr)


@router.patch("/{license_id}")
def update_license(
    license_id: str,
    req: LicenseUpdate,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    user: User = Depends(require(Action.EDIT_REGISTRY)),
):
    lic = _get_license(db, license_id, tr)
    data = column_values(req, exclude_unset=True)
    for key, value in data.items():
        if value is None and key in ("license_number", "license_type", "issuing_authority", "issue_date", "expiry_date", "status"):
            continue
        setattr(lic, key, value)
    if lic.expiry_date < lic.issue_date:
        db.rollback()
        raise HTTPException(
            status_code=400,
            detail=tr.t("La date d'expiration précède la date d'émission", "تاريخ الانتهاء يسبق تاريخ الإصدار"),
        )
    if "expiry_date" in data or "status" in data:
        lic.status = derive_status(lic.expiry_date, current=lic.status)
    db.commit()
    db.refresh(lic)
    logger.info("license_updated", license_id=str(lic.id), fields=sorted(data.keys()), user_id=str(user.id))
    return license_to_dict(lic, tr)


@router.delete("/{license_id}", status_code=204)
def delete_license(
    license_id: str,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    user: User = Depends(require(Action.DELETE_LICENSE)),
):
    lic = _get_license(db, license_id, tr)
    db.delete(lic)
    db.commit()
    logger.info("license_deleted", license_id=license_id, user_id=str(user.id))
    return Response(status_code=204)


@router.post("/{license_id}/image")
async def upload_image(
    license_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    storage: StorageProvider = Depends(get_storage),
    _=Depends(require(Action.EDIT_REGISTRY)),
):
    """Scanned license document shown on the certificate."""
    lic = _get_license(db, license_id, tr)
    data, ext, content_type = await read_image_upload(file, tr)
    key = f"{lic.id}/{int(time.time() * 1000)}.{ext}"
    storage.upload(LICENSE_IMAGES, key, data, content_type, upsert=True)
    lic.image_url = storage.public_url(LICENSE_IMAGES, key)
    db.commit()
    logger.info("license_image_uploaded", license_id=str(lic.id), key=key, size=len(data))
    return {"image_url": lic.image_url, "key": key}


@router.delete("/{license_id}/image")
def remove_image(
    license_id: str,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.EDIT_REGISTRY)),
):
    lic = _get_license(db, license_id, tr)
    lic.image_url = None
    db.commit()
    return {"image_url": None}


@router.get("/{license_id}/pdf")
def license_pdf(
    license_id: str,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    storage: StorageProvider = Depends(get_storage),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    lic = _get_license(db, license_id, tr)
    try:
        pdf = build_license_certificate(lic, tr, storage)
    except PdfFontUnavailable as e:
        logger.error("pdf_font_unavailable", error=str(e))
        raise HTTPException(status_code=503, detail=tr.t(*PDF_FONT_MISSING))
    filename = f"license-{slugify(lic.license_number) or lic.id}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
