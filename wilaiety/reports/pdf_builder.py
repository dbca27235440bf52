"""
PDF documents: the one-page license certificate and the paginated registry report.

Registry data is Arabic whatever the document language, so every document
needs a TTF with Arabic glyphs: PDF_FONT_PATH, else one of the usual system
fonts. Arabic runs are reshaped into joined presentation forms and put in
visual order before they reach the canvas.
"""
import io
import os
import re
from typing import Dict, Iterable, Optional, Tuple
from urllib.parse import unquote

import arabic_reshaper
import structlog
from bidi.algorithm import get_display
from PIL import Image as PILImage
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from ..config import settings
from ..models.models import Facility, License
from ..services.i18n import Translator
from ..services.licensing import describe_days_remaining, regional_today
from ..storage.provider import BUCKETS, StorageProvider

logger = structlog.get_logger(__name__)

MARGIN = 50
ROW_HEIGHT = 18

SYSTEM_FONTS = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/noto/NotoNaskhArabic-Regular.ttf",
    "/usr/share/fonts/truetype/noto/NotoSansArabic-Regular.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSerif.ttf",
    "/Library/Fonts/Arial Unicode.ttf",
    "C:/Windows/Fonts/arial.ttf",
)

ARABIC_RE = re.compile("[\u0600-\u06ff\u0750-\u077f\u08a0-\u08ff\ufb50-\ufdff\ufe70-\ufeff]")

# font file path -> registered font name
_registered: Dict[str, str] = {}


class PdfFontUnavailable(Exception):
    """No font able to draw Arabic text could be found."""


def shape_text(text: Optional[str], rtl: bool = True) -> str:
    """Arabic letters joined and laid out in visual order; other text is returned as is."""
    if not text:
        return ""
    if not ARABIC_RE.search(text):
        return text
    return get_display(arabic_reshaper.reshape(text), base_dir="R" if rtl else "L")


def _font_path() -> str:
    configured = settings.pdf_font_path
    if configured:
        if not os.path.exists(configured):
            raise PdfFontUnavailable(f"PDF_FONT_PATH does not exist: {configured}")
        return configured
    for path in SYSTEM_FONTS:
        if os.path.exists(path):
            return path
    raise PdfFontUnavailable("no Arabic-capable font found; set PDF_FONT_PATH to a TTF file")


def _register(path: str) -> str:
    name = _registered.get(path)
    if name is None:
        name = "Registry-" + os.path.splitext(os.path.basename(path))[0].replace(" ", "")
        try:
            font = TTFont(name, path)
        except Exception as e:
            raise PdfFontUnavailable(f"{path}: {e}") from e
        if ord("\u0627") not in getattr(font.face, "charToGlyph", {}):
            logger.warning("pdf_font_lacks_arabic", path=path)
        pdfmetrics.registerFont(font)
        _registered[path] = name
    return name


def _register_fonts() -> Tuple[str, str]:
    """Returns (regular, bold) font names. Raises PdfFontUnavailable."""
    path = _font_path()
    regular = _register(path)
    bold_path = settings.pdf_font_bold_path
    if not bold_path:
        base, ext = os.path.splitext(path)
        bold_path = f"{base}-Bold{ext}"
    if os.path.exists(bold_path):
        return regular, _register(bold_path)
    return regular, regular


class _Writer:
    """Thin canvas wrapper that lays lines out top to bottom in the document direction."""

    def __init__(self, c: canvas.Canvas, tr: Translator, font: str, bold: str):
        self.c = c
        self.tr = tr
        self.font = font
        self.bold = bold
        self.rtl = tr.dir == "rtl"
        self.width, self.height = A4
        self.y = self.height - MARGIN

    def _draw(self, x: float, text: str, align: str = "start"):
        text = shape_text(text, self.rtl)
        if align == "center":
            self.c.drawCentredString(x, self.y, text)
        elif self.rtl:
            self.c.drawRightString(x, self.y, text)
        else:
            self.c.drawString(x, self.y, text)

    def line(self, text: str, size: int = 11, bold: bool = False, gap: int = 6):
        self.c.setFont(self.bold if bold else self.font, size)
        self._draw(self.width - MARGIN if self.rtl else MARGIN, text)
        self.y -= size + gap

    def centered(self, text: str, size: int = 16, bold: bool = True, gap: int = 10):
        self.c.setFont(self.bold if bold else self.font, size)
        self._draw(self.width / 2, text, align="center")
        self.y -= size + gap

    def rule(self, gap: int = 12):
        self.c.setStrokeColor(colors.HexColor(settings.brand_accent))
        self.c.line(MARGIN, self.y + 4, self.width - MARGIN, self.y + 4)
        self.y -= gap

    def field(self, label: str, value: Optional[str]):
        self.line(f"{label}: {value or '-'}")

    def columns(self, cells: Iterable[str], widths: Iterable[float], size: int = 9, bold: bool = False):
        self.c.setFont(self.bold if bold else self.font, size)
        step = -1 if self.rtl else 1
        x = self.width - MARGIN if self.rtl else MARGIN
        for cell, w in zip(cells, widths):
            self._draw(x, _clip(cell, w, size))
            x += step * w
        self.y -= ROW_HEIGHT

    def footer(self, text: str):
        self.c.setFont(self.font, 8)
        y, self.y = self.y, MARGIN / 2
        self._draw(self.width - MARGIN if self.rtl else MARGIN, text)
        self.y = y

    def new_page(self):
        self.c.showPage()
        self.y = self.height - MARGIN


def _clip(text: Optional[str], width: float, size: int) -> str:
    text = text or ""
    max_chars = max(int(width / (size * 0.55)), 4)
    return text if len(text) <= max_chars else text[: max_chars - 1] + "…"


def _stored_image(storage: Optional[StorageProvider], url: Optional[str]) -> Optional[ImageReader]:
    """Image behind a public URL of one of our buckets, re-encoded for the PDF."""
    if storage is None or not url:
        return None
    for bucket in BUCKETS:
        marker = f"/{bucket}/"
        if marker in url:
            key = unquote(url.split(marker, 1)[1].split("?", 1)[0])
            break
    else:
        return None
    data = storage.read(bucket, key)
    if not data:
        return None
    try:
        pil_im = PILImage.open(io.BytesIO(data))
        if pil_im.mode in ("RGBA", "P"):
            pil_im = pil_im.convert("RGB")
        img_buf = io.BytesIO()
        pil_im.save(img_buf, format="JPEG", quality=85)
        img_buf.seek(0)
        return ImageReader(img_buf)
    except OSError as e:
        logger.warning("pdf_image_unreadable", bucket=bucket, key=key, error=str(e))
        return None


def build_license_certificate(lic: License, tr: Translator, storage: Optional[StorageProvider] = None) -> bytes:
    """Render a one-page certificate for a license, with its scanned image when one is stored."""
    font, bold = _register_fonts()
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"license-{lic.license_number}")
    w = _Writer(c, tr, font, bold)

    w.centered(settings.site_name, size=12, bold=False)
    w.centered(tr.t("Certificat de licence", "شهادة رخصة"), size=20)
    w.rule()

    days = describe_days_remaining(lic.expiry_date, tr)
    w.field(tr.t("Numéro de licence", "رقم الرخصة"), lic.license_number)
    w.field(tr.t("Type de licence", "نوع الرخصة"), lic.license_type)
    w.field(tr.t("Autorité de délivrance", "جهة الإصدار"), lic.issuing_authority)
    w.field(tr.t("Date d'émission", "تاريخ الإصدار"), tr.date(lic.issue_date))
    w.field(tr.t("Date d'expiration", "تاريخ الانتهاء"), tr.date(lic.expiry_date))
    w.field(tr.t("Statut", "الحالة"), tr.label("license_status", lic.status))
    w.field(tr.t("Validité", "الصلاحية"), days["message"])
    if lic.notes:
        w.field(tr.t("Notes", "ملاحظات"), lic.notes)

    facility = lic.facility
    if facility is not None:
        w.y -= 10
        w.line(tr.t("Établissement", "المنشأة"), size=14, bold=True)
        w.rule()
        w.field(tr.t("Nom", "الاسم"), facility.name)
        w.field(tr.t("Secteur", "القطاع"), tr.label("sector", facility.sector))
        w.field(tr.t("Région", "المنطقة"), facility.region)
        w.field(tr.t("Adresse", "العنوان"), facility.address)

    image = _stored_image(storage, lic.image_url)
    if image is not None:
        img_w, img_h = 260, 180
        w.y -= 10
        c.drawImage(image, (w.width - img_w) / 2, max(w.y - img_h, MARGIN + 20), width=img_w, height=img_h, preserveAspectRatio=True)

    w.footer(f"{tr.t('Édité le', 'صدر بتاريخ')} {tr.date(regional_today())}")
    c.showPage()
    c.save()
    return buf.getvalue()


def build_summary_report(summary: dict, facilities: Iterable[Facility], tr: Translator) -> bytes:
    """Summary figures on the first page, then the facility table across as many pages as needed."""
    font, bold = _register_fonts()
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle("registry-report")
    w = _Writer(c, tr, font, bold)

    w.centered(tr.t("Rapport du registre des établissements", "تقرير سجل المنشآت"), size=18)
    w.centered(tr.date(regional_today()), size=10, bold=False)
    w.rule()

    fs, ls, ind = summary["facilities"], summary["licenses"], summary["indicators"]
    w.line(tr.t("Établissements", "المنشآت"), size=13, bold=True)
    w.field(tr.t("Total", "المجموع"), str(fs["total"]))
    w.field(tr.t("Actifs", "نشطة"), str(fs["active"]))
    w.field(tr.t("En attente", "قيد الانتظار"), str(fs["pending"]))
    w.field(tr.t("Inactifs", "غير نشطة"), str(fs["inactive"]))
    w.line(tr.t("Licences", "الرخص"), size=13, bold=True)
    w.field(tr.t("Total", "المجموع"), str(ls["total"]))
    w.field(tr.t("Valides", "سارية"), str(ls["active"]))
    w.field(tr.t("Expirent bientôt", "قريبة الانتهاء"), str(ls["expiring_soon"]))
    w.field(tr.t("Expirées", "منتهية"), str(ls["expired"]))
    w.field(tr.t("Annulées", "ملغاة"), str(ls["cancelled"]))
    w.line(tr.t("Indicateurs", "المؤشرات"), size=13, bold=True)
    w.field(tr.t("Établissements actifs", "المنشآت النشطة"), f"{ind['active_facility_pct']}%")
    w.field(tr.t("Licences valides", "الرخص السارية"), f"{ind['valid_license_pct']}%")
    w.field(tr.t("Licences par établissement", "الرخص لكل منشأة"), str(ind["licenses_per_facility"]))
    if summary.get("sectors"):
        w.line(tr.t("Répartition par secteur", "التوزيع حسب القطاع"), size=13, bold=True)
        for s in summary["sectors"]:
            w.field(tr.label("sector", s["sector"]), str(s["count"]))

    widths = [170, 90, 110, 125]
    header = [
        tr.t("Nom", "الاسم"),
        tr.t("Secteur", "القطاع"),
        tr.t("Région", "المنطقة"),
        tr.t("Statut", "الحالة"),
    ]
    w.new_page()
    w.line(tr.t("Liste des établissements", "قائمة المنشآت"), size=13, bold=True)
    w.columns(header, widths, bold=True)
    for f in facilities:
        if w.y < MARGIN + ROW_HEIGHT:
            w.new_page()
            w.columns(header, widths, bold=True)
        w.columns(
            [f.name, tr.label("sector", f.sector), f.region, tr.label("facility_status", f.status)],
            widths,
        )
    c.showPage()
    c.save()
    return buf.getvalue()
