"""
Spreadsheet exports of the registry tables.
"""
import io
from typing import Callable, Iterable, List, Tuple

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from ..config import settings
from ..models.models import Facility, License
from ..services.i18n import Translator
from ..services.licensing import days_remaining, regional_today

Column = Tuple[str, str, Callable]


def _build(title: str, columns: List[Column], rows: Iterable, tr: Translator) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]
    ws.sheet_view.rightToLeft = tr.dir == "rtl"

    header_fill = PatternFill("solid", fgColor=settings.brand_primary.lstrip("#"))
    ws.append([tr.t(fr, ar) for fr, ar, _ in columns])
    for cell in ws[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center")
    ws.freeze_panes = "A2"

    for row in rows:
        ws.append([getter(row) for _, _, getter in columns])

    for idx, (fr, ar, _) in enumerate(columns, start=1):
        longest = max((len(str(c.value)) for c in ws[get_column_letter(idx)] if c.value is not None), default=10)
        ws.column_dimensions[get_column_letter(idx)].width = min(max(longest + 2, 12), 50)

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def facilities_workbook(facilities: Iterable[Facility], tr: Translator) -> bytes:
    columns: List[Column] = [
        ("Nom", "الاسم", lambda f: f.name),
        ("Nom court", "الاسم المختصر", lambda f: f.short_name),
        ("Raison sociale", "الاسم القانوني", lambda f: f.legal_name),
        ("Secteur", "القطاع", lambda f: tr.label("sector", f.sector)),
        ("Type d'activité", "نوع النشاط", lambda f: f.activity_type),
        ("Type d'établissement", "نوع المنشأة", lambda f: f.facility_type),
        ("Juridiction", "نوع الاختصاص", lambda f: tr.label("jurisdiction", f.jurisdiction_type)),
        ("Date de création", "تاريخ الإنشاء", lambda f: f.created_date),
        ("Région", "المنطقة", lambda f: f.region),
        ("Adresse", "العنوان", lambda f: f.address),
        ("Coordonnées GPS", "الإحداثيات", lambda f: f.gps_coordinates),
        ("Propriété", "الملكية", lambda f: tr.label("ownership", f.ownership)),
        ("Domaine juridique", "المجال القانوني", lambda f: tr.label("legal_domain", f.legal_domain)),
        ("Statut", "الحالة", lambda f: tr.label("facility_status", f.status)),
    ]
    return _build(tr.t("Établissements", "المنشآت"), columns, facilities, tr)


def licenses_workbook(licenses: Iterable[License], tr: Translator) -> bytes:
    today = regional_today()
    columns: List[Column] = [
        ("Numéro", "رقم الرخصة", lambda l: l.license_number),
        ("Établissement", "المنشأة", lambda l: l.facility.name if l.facility else ""),
        ("Type", "نوع الرخصة", lambda l: l.license_type),
        ("Autorité", "جهة الإصدار", lambda l: l.issuing_authority),
        ("Émission", "تاريخ الإصدار", lambda l: l.issue_date),
        ("Expiration", "تاريخ الانتهاء", lambda l: l.expiry_date),
        ("Jours restants", "الأيام المتبقية", lambda l: days_remaining(l.expiry_date, today)),
        ("Statut", "الحالة", lambda l: tr.label("license_status", l.status)),
    ]
    return _build(tr.t("Licences", "الرخص"), columns, licenses, tr)
