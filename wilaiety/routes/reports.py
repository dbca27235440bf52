from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..db import get_db
from ..logging import structlog
from ..models.models import Facility, License
from ..reports.excel_builder import facilities_workbook, licenses_workbook
from ..reports.pdf_builder import PdfFontUnavailable, build_summary_report
from ..services.i18n import Translator, get_translator
from ..services.policy import Action, require
from ..services.stats import report_summary
from .common import PDF_FONT_MISSING


router = APIRouter(prefix="/api/reports", tags=["reports"])
logger = structlog.get_logger(__name__)

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _attachment(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/summary")
def summary(
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    return report_summary(db, tr.language)


@router.get("/facilities.xlsx")
def export_facilities(
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    rows = db.query(Facility).order_by(Facility.created_at.desc()).all()
    logger.info("export_facilities", rows=len(rows), language=tr.language)
    return _attachment(facilities_workbook(rows, tr), XLSX, "facilities.xlsx")


@router.get("/licenses.xlsx")
def export_licenses(
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    rows = db.query(License).order_by(License.expiry_date.asc()).all()
    logger.info("export_licenses", rows=len(rows), language=tr.language)
    return _attachment(licenses_workbook(rows, tr), XLSX, "licenses.xlsx")


@router.get("/summary.pdf")
def summary_pdf(
    db: Session = Depends(get_db),
    tr: Translator = Depends(get_translator),
    _=Depends(require(Action.VIEW_REGISTRY)),
):
    data = report_summary(db, tr.language)
    facilities = db.query(Facility).order_by(Facility.name.asc()).all()
    try:
        pdf = build_summary_report(data, facilities, tr)
    except PdfFontUnavailable as e:
        logger.error("pdf_font_unavailable", error=str(e))
        raise HTTPException(status_code=503, detail=tr.t(*PDF_FONT_MISSING))
    return _attachment(pdf, "application/pdf", "registry-report.pdf")
