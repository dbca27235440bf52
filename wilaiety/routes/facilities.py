import time
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from ..logging import structlog
from ..models.models import AdministrativeDivision, Facility, FacilitySector, License, User
from ..schemas.facilities import FacilityCreate, FacilityUpdate, LocationUpdate
from ..services.geo import facilities_geojson, format_gps, parse_gps
from ..services.i18n import Translator, get_translator
from ..services.licensing import facility_card_state, regional_today
from ..services.policy import Action, require
from ..services.stats import facility_stats, sector_overview
from ..storage import get_storage
from ..storage.provider import FACILITY_IMAGES, StorageProvider
from .common import column_values, iso, optional_uuid, parse_uuid, read_image_upload
from .licenses import license_to_dict


router = APIRouter(prefix="/api", tags=["facilities"])
logger = structlog.get_logger(__name__)

FACILITY_NOT_FOUND = ("Établissement introuvable", "المنشأة غير موجودة")


def facility_to_dict(f: Facility, tr: Translator) -> dict:
    coords = parse_gps(f.gps_coordinates)
    division = f.division
    return {
        "id": str(f.id),
        "name": f.name,
        "name_fr": f.name_fr,
        "display_name": (f.name_fr if tr.language == "fr" and f.name_fr else f.name),
        "short_name": f.short_name,
        "legal_name": f.legal_name,
        "sector": f.sector,
        "sector_label": tr.label("sector", f.sector),
        "activity_type": f.activity_type,
        "facility_type": f.facility_type,
        "jurisdiction_type": f.jurisdiction_type,
        "jurisdiction_label": tr.label("jurisdiction", f.jurisdiction_type),
        "created_date": iso(f.created_date),
        "created_date_label": tr.date(f.created_date),
        "description": f.description,
        "gps_coordinates": f.gps_coordinates,
        "location": {"lat": coords[0], "lng": coords[1]} if coords else None,
        "location_accuracy": f.location_accuracy,
        "region": f.region,
        "address": f.address,
        "ownership": f.ownership,
        "ownership_label": tr.label("ownership", f.ownership),
        "legal_domain": f.legal_domain,
        "legal_domain_label": tr.label("legal_domain", f.legal_domain),
        "status": f.status,
        "status_label": tr.label("facility_status", f.status),
        "card_state": facility_card_state(f.status),
        "image_url": f.image_url,
        "website_url": f.website_url,
        "division": {
            "id": str(division.id),
            "name": tr.t(division.name_fr, division.name),
        } if division else None,
        "created_at": iso(f.created_at),
        "updated_at": iso(f.updated_at),
    }


def _get_facility(db: Session, facility_id: str, tr: Translator) -> Facility:
    fid = parse_uuid(facility_id, tr, FACILITY_NOT_FOUND)
    facility = db.query(Facility).filter(Facility.id == fid).first()
    if not facility:
        raise HTTPException(status_code=404, detail=tr.t(*FACILITY_NOT_FOUND))
    return facility


def _get_division(db: Session, division_id: Optional[str], tr: Translator) -> Optional[AdministrativeDivision]:
    did = optional_uuid(division_id, tr)
    if did is None:
        return None
    division = db.query(AdministrativeDivision).filter(AdministrativeDivision.id == did).first()
    if not division:
        raise HTTPException(status_code=400, detail=tr.t("Division administrative introuvable", "التقسيم الإداري غير موجود"))
    return division


@router.get("/facilities")
def list_facilities(
    q: Optional[str] = None,
    sector: Optional[str] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    """
    Facilities, newest first.

    Args:
        q: Case-insensitive match on name, region or short name
        sector: Stored sector value; "all" disables the filter
        status: Stored facility status; "all" disables the filter
    """
    query = db.query(Facility)
    if sector and sector != "all":
        query = query.filter(Facility.sector == sector)
    if status and status != "all":
        query = query.filter(Facility.status == status)
    if q:
        like = f"%{q}%"
        query = query.filter(
            or_(
                Facility.name.ilike(like),
                Facility.region.ilike(like),
                Facility.short_name.ilike(like),
            )
        )
    rows = query.order_by(Facility.created_at.desc()).all()
    return [facility_to_dict(f, tr) for f in rows]


@router.get("/facilities/stats")
def stats(db: Session = Depends(get_db), _=Depends(require(Action.VIEW_REGISTRY))):
    return facility_stats(db)


@router.get("/facilities/{facility_id}")
def get_facility(
    facility_id: str,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    return facility_to_dict(_get_facility(db, facility_id, tr), tr)


@router.post("/facilities", status_code=201)
def create_facility(
    req: FacilityCreate,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    user: User = Depends(require(Action.EDIT_REGISTRY)),
):
    division = _get_division(db, req.division_id, tr)
    data = column_values(req, exclude={"division_id"})
    if division is not None:
        # Empty region/coordinates are filled in from the chosen division
        if not data.get("region"):
            data["region"] = division.name[:50]
        if not data.get("gps_coordinates") and division.gps_coordinates:
            data["gps_coordinates"] = division.gps_coordinates
    if not data.get("region"):
        raise HTTPException(status_code=400, detail=tr.t("La région est obligatoire", "المنطقة مطلوبة"))
    facility = Facility(division_id=division.id if division else None, **data)
    db.add(facility)
    db.commit()
    db.refresh(facility)
    logger.info("facility_created", facility_id=str(facility.id), sector=facility.sector, user_id=str(user.id))
    return facility_to_dict(facility, tr)


@router.patch("/facilities/{facility_id}")
def update_facility(
    facility_id: str,
    req: FacilityUpdate,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    user: User = Depends(require(Action.EDIT_REGISTRY)),
):
    facility = _get_facility(db, facility_id, tr)
    data = column_values(req, exclude_unset=True)
    if "division_id" in data:
        division = _get_division(db, data.pop("division_id"), tr)
        facility.division_id = division.id if division else None
    required = {
        "name", "short_name", "legal_name", "sector", "activity_type", "facility_type",
        "jurisdiction_type", "created_date", "region", "address", "ownership", "legal_domain", "status",
    }
    for key, value in data.items():
        if value is None and key in required:
            continue
        setattr(facility, key, value)
    db.commit()
    db.refresh(facility)
    logger.info("facility_updated", facility_id=str(facility.id), fields=sorted(data.keys()), user_id=str(user.id))
    return facility_to_dict(facility, tr)


@router.put("/facilities/{facility_id}/location")
def update_location(
    facility_id: str,
    req: LocationUpdate,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.EDIT_REGISTRY)),
):
    facility = _get_facility(db, facility_id, tr)
    if req.latitude is not None:
        facility.gps_coordinates = format_gps(req.latitude, req.longitude)
    else:
        facility.gps_coordinates = req.gps_coordinates
    facility.location_accuracy = req.location_accuracy
    db.commit()
    db.refresh(facility)
    return facility_to_dict(facility, tr)


@router.post("/facilities/{facility_id}/image")
async def upload_image(
    facility_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    storage: StorageProvider = Depends(get_storage),
    _=Depends(require(Action.EDIT_REGISTRY)),
):
    facility = _get_facility(db, facility_id, tr)
    data, ext, content_type = await read_image_upload(file, tr)
    key = f"{facility.id}/{int(time.time() * 1000)}.{ext}"
    storage.upload(FACILITY_IMAGES, key, data, content_type, upsert=True)
    facility.image_url = storage.public_url(FACILITY_IMAGES, key)
    db.commit()
    logger.info("facility_image_uploaded", facility_id=str(facility.id), key=key, size=len(data))
    return {"image_url": facility.image_url, "key": key}


@router.delete("/facilities/{facility_id}/image")
def remove_image(
    facility_id: str,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.EDIT_REGISTRY)),
):
    facility = _get_facility(db, facility_id, tr)
    facility.image_url = None
    db.commit()
    return {"image_url": None}


@router.get("/facilities/{facility_id}/licenses")
def facility_licenses(
    facility_id: str,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    facility = _get_facility(db, facility_id, tr)
    today = regional_today()
    rows = (
        db.query(License)
        .filter(License.facility_id == facility.id)
        .order_by(License.expiry_date.desc())
        .all()
    )
    return [license_to_dict(lic, tr, today) for lic in rows]


@router.get("/sectors")
def list_sectors(
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    return sector_overview(db, tr.language)


@router.get("/sectors/{sector}/facilities")
def sector_facilities(
    sector: str,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    if sector not in {s.value for s in FacilitySector}:
        raise HTTPException(status_code=404, detail=tr.t("Secteur inconnu", "قطاع غير معروف"))
    rows = (
        db.query(Facility)
        .filter(Facility.sector == sector)
        .order_by(Facility.created_at.desc())
        .all()
    )
    return {
        "sector": sector,
        "label": tr.label("sector", sector),
        "facilities": [facility_to_dict(f, tr) for f in rows],
    }


@router.get("/map/facilities")
def map_facilities(
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    return facilities_geojson(db.query(Facility).all(), tr.language)
