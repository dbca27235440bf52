from datetime import date

import pytest

from wilaiety.models.models import (
    AppRole,
    DivisionType,
    FacilitySector,
    FacilityStatus,
    JurisdictionType,
    LegalDomain,
    LicenseStatus,
    OwnershipType,
)
from wilaiety.services.i18n import (
    LABEL_TABLES,
    Translator,
    format_date,
    label,
    normalize_language,
    t,
)


@pytest.mark.parametrize("fr_text,ar_text", [("Bonjour", "مرحبا"), ("", "x"), ("a", "")])
def test_t_picks_text_for_language(fr_text, ar_text):
    assert t(fr_text, ar_text, "fr") == fr_text
    assert t(fr_text, ar_text, "ar") == ar_text


@pytest.mark.parametrize("value,expected", [
    ("fr", "fr"), ("FR", "fr"), ("fr-FR", "fr"), ("fr_CA", "fr"),
    ("ar", "ar"), ("en", "ar"), (None, "ar"), ("", "ar"),
])
def test_normalize_language_defaults_to_arabic(value, expected):
    assert normalize_language(value) == expected


def test_translator_direction():
    assert Translator("ar").dir == "rtl"
    assert Translator("fr").dir == "ltr"
    assert Translator("fr").t("Oui", "نعم") == "Oui"


@pytest.mark.parametrize("kind,enum_cls", [
    ("sector", FacilitySector),
    ("facility_status", FacilityStatus),
    ("license_status", LicenseStatus),
    ("ownership", OwnershipType),
    ("legal_domain", LegalDomain),
    ("jurisdiction", JurisdictionType),
    ("division_type", DivisionType),
    ("role", AppRole),
])
def test_every_stored_value_has_both_labels(kind, enum_cls):
    """Each enumeration value resolves in both languages."""
    table = LABEL_TABLES[kind]
    for member in enum_cls:
        assert member.value in table
        assert table[member.value]["fr"]
        assert table[member.value]["ar"]


def test_label_falls_back_to_raw_value():
    assert label("sector", "صحية", "fr") == "Santé"
    assert label("sector", "صحية", "ar") == "صحية"
    assert label("sector", "غير معروف", "fr") == "غير معروف"
    assert label("division_type", DivisionType.FREE_ZONE, "fr") == "Zone Franche"


def test_format_date_in_both_languages():
    assert format_date(date(2024, 3, 5), "fr") == "05 mars 2024"
    assert format_date(date(2024, 3, 5), "ar") == "05 مارس 2024"
    assert format_date("2024-12-31", "fr") == "31 décembre 2024"
    assert format_date(None, "fr") == ""


def test_request_language_resolution_order(client):
    assert client.get("/api/site-config").json()["language"] == "ar"
    assert client.get("/api/site-config", headers={"Accept-Language": "fr-FR,fr;q=0.9"}).json()["language"] == "fr"
    assert client.get("/api/site-config", headers={"X-Language": "fr"}).json()["dir"] == "ltr"
    # Query parameter wins over the header
    resp = client.get("/api/site-config?lang=ar", headers={"X-Language": "fr"})
    assert resp.json()["language"] == "ar"


def test_site_config_defaults(client):
    body = client.get("/api/site-config").json()
    assert body["client_key"] == "wilaiety-template"
    assert body["brand"] == {"primary": "#0B6B3A", "accent": "#C5A059"}
    assert body["dir"] == "rtl"


def test_label_tables_endpoint(client):
    body = client.get("/api/i18n/labels?lang=fr").json()
    assert body["labels"]["sector"]["صحية"] == "Santé"
    assert body["labels"]["action"]["password_reset_by_admin"] == "Réinitialisation du mot de passe"
