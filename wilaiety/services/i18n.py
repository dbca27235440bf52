"""
Bilingual (French / Arabic) text resolution.

Every user-facing string in the registry is written as a pair and resolved
against the request language with ``t(fr, ar)``. Arabic is the default.
"""
from datetime import date, datetime
from typing import Dict, Optional, Union

from fastapi import Request

from ..config import settings
from ..models.models import (
    AppRole,
    DivisionType,
    FacilitySector,
    FacilityStatus,
    JurisdictionType,
    LegalDomain,
    LicenseStatus,
    OwnershipType,
)


AR = "ar"
FR = "fr"
LANGUAGES = (AR, FR)


def normalize_language(value: Optional[str]) -> str:
    """Only an explicit French tag selects French; anything else is Arabic."""
    if not value:
        return AR
    tag = str(value).strip().lower().replace("_", "-").split("-")[0]
    return FR if tag == FR else AR


def t(fr_text: str, ar_text: str, language: str) -> str:
    return fr_text if language == FR else ar_text


class Translator:
    def __init__(self, language: Optional[str] = None):
        self.language = normalize_language(language)

    @property
    def dir(self) -> str:
        return "rtl" if self.language == AR else "ltr"

    def t(self, fr_text: str, ar_text: str) -> str:
        return t(fr_text, ar_text, self.language)

    def label(self, kind: str, value) -> str:
        return label(kind, value, self.language)

    def date(self, value) -> str:
        return format_date(value, self.language)


def resolve_language(request: Request) -> str:
    """Query ``lang`` > ``X-Language`` > ``language`` cookie > Accept-Language > default."""
    for candidate in (
        request.query_params.get("lang"),
        request.headers.get("X-Language"),
        request.cookies.get("language"),
    ):
        if candidate:
            return normalize_language(candidate)
    accept = request.headers.get("Accept-Language")
    if accept:
        first = accept.split(",")[0].split(";")[0]
        if first.strip() and first.strip() != "*":
            return normalize_language(first)
    return normalize_language(settings.default_language)


def get_translator(request: Request) -> Translator:
    return Translator(resolve_language(request))


def _pairs(mapping: Dict[str, str]) -> Dict[str, Dict[str, str]]:
    return {value: {"fr": fr, "ar": value} for value, fr in mapping.items()}


SECTOR_LABELS = _pairs({
    FacilitySector.HEALTH.value: "Santé",
    FacilitySector.EDUCATION.value: "Éducation",
    FacilitySector.INDUSTRY.value: "Industrie",
    FacilitySector.AGRICULTURE.value: "Agriculture",
    FacilitySector.SPORT.value: "Sport",
    FacilitySector.CULTURE.value: "Culture",
    FacilitySector.SOCIAL.value: "Social",
    FacilitySector.RELIGIOUS.value: "Religieux",
    FacilitySector.TRANSPORT.value: "Transport",
    FacilitySector.COMMERCE.value: "Commerce",
    FacilitySector.TOURISM.value: "Tourisme",
    FacilitySector.ADMINISTRATIVE.value: "Administratif",
    FacilitySector.JUDICIAL.value: "Judiciaire",
    FacilitySector.POLITICAL.value: "Politique",
    FacilitySector.FINANCE.value: "Finance",
    FacilitySector.ELECTRICITY.value: "Électricité",
    FacilitySector.WATER.value: "Eau",
    FacilitySector.TECHNOLOGY.value: "Technologie",
    FacilitySector.ENVIRONMENT.value: "Environnement",
})

FACILITY_STATUS_LABELS = _pairs({
    FacilityStatus.ACTIVE.value: "Actif",
    FacilityStatus.INACTIVE.value: "Inactif",
    FacilityStatus.UNDER_CONSTRUCTION.value: "En construction",
    FacilityStatus.SUSPENDED.value: "Suspendu",
})

LICENSE_STATUS_LABELS = _pairs({
    LicenseStatus.VALID.value: "Valide",
    LicenseStatus.EXPIRING_SOON.value: "Expire bientôt",
    LicenseStatus.EXPIRED.value: "Expiré",
    LicenseStatus.CANCELLED.value: "Annulé",
})

OWNERSHIP_LABELS = _pairs({
    OwnershipType.FULL.value: "Propriété totale",
    OwnershipType.RENTAL.value: "Location",
    OwnershipType.PARTNERSHIP.value: "Partenariat",
    OwnershipType.CO_OWNED.value: "Copropriété",
})

LEGAL_DOMAIN_LABELS = _pairs({
    LegalDomain.PUBLIC.value: "Domaine public",
    LegalDomain.PRIVATE.value: "Domaine privé",
    LegalDomain.OUTSIDE.value: "Hors propriété",
})

JURISDICTION_LABELS = _pairs({
    JurisdictionType.PRIVATE.value: "Privé",
    JurisdictionType.DELEGATED.value: "Délégué",
    JurisdictionType.COORDINATION.value: "Coordination",
})

DIVISION_TYPE_LABELS = _pairs({
    DivisionType.WILAYA.value: "Wilaya",
    DivisionType.MOUGHATAA.value: "Moughataa",
    DivisionType.COMMUNE.value: "Commune",
    DivisionType.FREE_ZONE.value: "Zone Franche",
})

ROLE_LABELS = {
    AppRole.ADMIN.value: {"fr": "Administrateur", "ar": "مدير"},
    AppRole.USER.value: {"fr": "Utilisateur", "ar": "مستخدم"},
}

ACTION_LABELS = {
    "login": {"fr": "Connexion", "ar": "تسجيل الدخول"},
    "logout": {"fr": "Déconnexion", "ar": "تسجيل الخروج"},
    "password_change": {"fr": "Changement de mot de passe", "ar": "تغيير كلمة المرور"},
    "password_reset_by_admin": {"fr": "Réinitialisation du mot de passe", "ar": "إعادة تعيين كلمة المرور"},
    "user_created": {"fr": "Création d'utilisateur", "ar": "إنشاء مستخدم"},
    "role_changed": {"fr": "Changement de rôle", "ar": "تغيير الدور"},
}

LABEL_TABLES = {
    "sector": SECTOR_LABELS,
    "facility_status": FACILITY_STATUS_LABELS,
    "license_status": LICENSE_STATUS_LABELS,
    "ownership": OWNERSHIP_LABELS,
    "legal_domain": LEGAL_DOMAIN_LABELS,
    "jurisdiction": JURISDICTION_LABELS,
    "division_type": DIVISION_TYPE_LABELS,
    "role": ROLE_LABELS,
    "action": ACTION_LABELS,
}


def label(kind: str, value, language: str) -> str:
    if value is None:
        return ""
    raw = value.value if hasattr(value, "value") else str(value)
    entry = LABEL_TABLES.get(kind, {}).get(raw)
    if not entry:
        return raw
    return t(entry["fr"], entry["ar"], language)


def label_tables(language: str) -> Dict[str, Dict[str, str]]:
    return {
        kind: {value: t(pair["fr"], pair["ar"], language) for value, pair in table.items()}
        for kind, table in LABEL_TABLES.items()
    }


MONTHS_FR = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]
MONTHS_AR = [
    "يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو",
    "يوليو", "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر",
]


def month_name(month: int, language: str) -> str:
    return t(MONTHS_FR[month - 1], MONTHS_AR[month - 1], language)


def format_date(value: Union[date, datetime, str, None], language: str) -> str:
    """``dd MMMM yyyy`` in the requested language; unparseable strings are returned as-is."""
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value
    return f"{value.day:02d} {month_name(value.month, language)} {value.year}"
