import arabic_reshaper
import pytest
from reportlab.pdfgen.canvas import Canvas

from wilaiety.config import settings
from wilaiety.reports import pdf_builder
from wilaiety.reports.pdf_builder import PdfFontUnavailable, shape_text
from wilaiety.services.i18n import Translator

from conftest import make_facility, make_license


def _presentation_forms(text):
    return [ch for ch in text if "\ufb50" <= ch <= "\ufeff"]


def test_shape_text_joins_letters_in_visual_order():
    name = "مستشفى نواذيبو"
    shaped = shape_text(name)
    assert shaped == arabic_reshaper.reshape(name)[::-1]
    assert _presentation_forms(shaped)
    assert name not in shaped


def test_shape_text_leaves_latin_text_alone():
    assert shape_text("Port Hospital") == "Port Hospital"
    assert shape_text(None) == ""
    assert shape_text("LIC-001", rtl=False) == "LIC-001"


@pytest.fixture
def drawn(monkeypatch):
    """Every string handed to the canvas."""
    seen = []
    for method in ("drawString", "drawRightString", "drawCentredString"):
        original = getattr(Canvas, method)

        def spy(self, x, y, text, *args, _original=original, **kwargs):
            seen.append(text)
            return _original(self, x, y, text, *args, **kwargs)

        monkeypatch.setattr(Canvas, method, spy)
    return seen


def test_summary_pdf_draws_arabic_facility_data_shaped(client, db, member_headers, pdf_font, drawn):
    make_facility(db, name="مستشفى نواذيبو", region="نواذيبو")

    resp = client.get("/api/reports/summary.pdf?lang=fr", headers=member_headers)
    assert resp.status_code == 200
    assert shape_text("مستشفى نواذيبو", rtl=False) in drawn
    assert shape_text("نواذيبو", rtl=False) in drawn
    assert "مستشفى نواذيبو" not in drawn
    assert "Liste des établissements" in drawn


def test_arabic_report_labels_are_shaped(client, db, member_headers, pdf_font, drawn):
    make_facility(db)
    resp = client.get("/api/reports/summary.pdf", headers=member_headers)
    assert resp.status_code == 200
    assert shape_text("قائمة المنشآت") in drawn


def test_certificate_draws_arabic_fields_shaped(client, db, member_headers, pdf_font, drawn):
    lic = make_license(db, make_facility(db), number="LIC-AR")
    resp = client.get(f"/api/licenses/{lic.id}/pdf", headers=member_headers)
    assert resp.status_code == 200
    assert shape_text("الاسم: مستشفى نواذيبو") in drawn
    assert shape_text("شهادة رخصة") in drawn


def test_missing_font_is_reported(client, db, member_headers, monkeypatch):
    monkeypatch.setattr(settings, "pdf_font_path", None)
    monkeypatch.setattr(pdf_builder, "SYSTEM_FONTS", ())
    lic = make_license(db, make_facility(db))

    resp = client.get("/api/reports/summary.pdf", headers=member_headers)
    assert resp.status_code == 503
    assert "PDF_FONT_PATH" in resp.json()["detail"]
    assert client.get(f"/api/licenses/{lic.id}/pdf", headers=member_headers).status_code == 503

    monkeypatch.setattr(settings, "pdf_font_path", "/nonexistent/font.ttf")
    with pytest.raises(PdfFontUnavailable):
        pdf_builder.build_summary_report({}, [], Translator("fr"))
