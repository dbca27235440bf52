from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..db import get_db
from ..logging import structlog
from ..models.models import AdministrativeDivision, Facility, User
from ..schemas.divisions import DivisionCreate, DivisionUpdate
from ..services.geo import nearest_division, parse_gps
from ..services.i18n import Translator, get_translator
from ..services.policy import Action, require
from .common import column_values, iso, optional_uuid, parse_uuid


router = APIRouter(prefix="/api/divisions", tags=["divisions"])
logger = structlog.get_logger(__name__)

DIVISION_NOT_FOUND = ("Division administrative introuvable", "التقسيم الإداري غير موجود")


def division_to_dict(d: AdministrativeDivision, tr: Translator) -> dict:
    return {
        "id": str(d.id),
        "name": d.name,
        "name_fr": d.name_fr,
        "display_name": tr.t(d.name_fr, d.name),
        "gps_coordinates": d.gps_coordinates,
        "division_type": d.division_type,
        "division_type_label": tr.label("division_type", d.division_type),
        "parent_id": str(d.parent_id) if d.parent_id else None,
        "is_active": d.is_active,
        "created_at": iso(d.created_at),
    }


def _get_division(db: Session, division_id: str, tr: Translator) -> AdministrativeDivision:
    did = parse_uuid(division_id, tr, DIVISION_NOT_FOUND)
    division = db.query(AdministrativeDivision).filter(AdministrativeDivision.id == did).first()
    if not division:
        raise HTTPException(status_code=404, detail=tr.t(*DIVISION_NOT_FOUND))
    return division


def _resolve_parent(db: Session, parent_id: Optional[str], tr: Translator, child_id=None):
    pid = optional_uuid(parent_id, tr)
    if pid is None:
        return None
    if child_id is not None and pid == child_id:
        raise HTTPException(status_code=400, detail=tr.t("Une division ne peut pas être son propre parent", "لا يمكن أن يكون التقسيم تابعا لنفسه"))
    if not db.query(AdministrativeDivision).filter(AdministrativeDivision.id == pid).first():
        raise HTTPException(status_code=400, detail=tr.t("Division parente introuvable", "التقسيم الأصلي غير موجود"))
    return pid


@router.get("")
def list_active(
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    rows = (
        db.query(AdministrativeDivision)
        .filter(AdministrativeDivision.is_active.is_(True))
        .order_by(AdministrativeDivision.name.asc())
        .all()
    )
    return [division_to_dict(d, tr) for d in rows]


@router.get("/all")
def list_all(
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    rows = db.query(AdministrativeDivision).order_by(AdministrativeDivision.name.asc()).all()
    return [division_to_dict(d, tr) for d in rows]


@router.get("/nearest")
def nearest(
    gps: str,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    """Closest active division to a ``lat,lng`` point, used to pre-fill the facility form."""
    coords = parse_gps(gps)
    if coords is None:
        raise HTTPException(status_code=400, detail=tr.t("Format de coordonnées invalide", "صيغة الإحداثيات غير صالحة"))
    active = db.query(AdministrativeDivision).filter(AdministrativeDivision.is_active.is_(True)).all()
    found = nearest_division(coords[0], coords[1], active)
    if found is None:
        return {"division": None, "distance_m": None}
    division, distance = found
    return {"division": division_to_dict(division, tr), "distance_m": round(distance)}


@router.post("", status_code=201)
def create_division(
    req: DivisionCreate,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    user: User = Depends(require(Action.MANAGE_DIVISIONS)),
):
    data = column_values(req, exclude={"parent_id"})
    division = AdministrativeDivision(parent_id=_resolve_parent(db, req.parent_id, tr), **data)
    db.add(division)
    db.commit()
    db.refresh(division)
    logger.info("division_created", division_id=str(division.id), user_id=str(user.id))
    return division_to_dict(division, tr)


@router.patch("/{division_id}")
def update_division(
    division_id: str,
    req: DivisionUpdate,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    user: User = Depends(require(Action.MANAGE_DIVISIONS)),
):
    division = _get_division(db, division_id, tr)
    data = column_values(req, exclude_unset=True)
    if "parent_id" in data:
        division.parent_id = _resolve_parent(db, data.pop("parent_id"), tr, child_id=division.id)
    for key, value in data.items():
        if value is None and key in ("name", "name_fr", "division_type", "is_active"):
            continue
        setattr(division, key, value)
    db.commit()
    db.refresh(division)
    logger.info("division_updated", division_id=str(division.id), user_id=str(user.id))
    return division_to_dict(division, tr)


@router.delete("/{division_id}", status_code=204)
def delete_division(
    division_id: str,
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    user: User = Depends(require(Action.MANAGE_DIVISIONS)),
):
    division = _get_division(db, division_id, tr)
    # Detach dependants explicitly; not every backend enforces ON DELETE SET NULL
    db.query(Facility).filter(Facility.division_id == division.id).update({Facility.division_id: None})
    db.query(AdministrativeDivision).filter(AdministrativeDivision.parent_id == division.id).update(
        {AdministrativeDivision.parent_id: None}
    )
    db.delete(division)
    db.commit()
    logger.info("division_deleted", division_id=division_id, user_id=str(user.id))
    return Response(status_code=204)
