"""
License expiry helpers: days-remaining display, status derivation and badges.
"""
from datetime import date, datetime
from typing import Optional

import pytz
import structlog
from sqlalchemy.orm import Session

from ..config import settings
from ..models.models import License, LicenseStatus, FacilityStatus
from .i18n import Translator

logger = structlog.get_logger(__name__)


LICENSE_BADGES = {
    LicenseStatus.VALID.value: "success",
    LicenseStatus.EXPIRING_SOON.value: "warning",
    LicenseStatus.EXPIRED.value: "critical",
    LicenseStatus.CANCELLED.value: "muted",
}


def regional_today() -> date:
    tz = pytz.timezone(settings.tz_default)
    return datetime.now(tz).date()


def days_remaining(expiry: date, today: Optional[date] = None) -> int:
    today = today or regional_today()
    return (expiry - today).days


def describe_days_remaining(expiry: date, translator: Translator, today: Optional[date] = None) -> dict:
    days = days_remaining(expiry, today)
    if days < 0:
        variant = "expired"
        message = translator.t(f"Expiré depuis {abs(days)} jours", f"منتهي منذ {abs(days)} يوم")
    elif days == 0:
        variant = "today"
        message = translator.t("Expire aujourd'hui", "ينتهي اليوم")
    else:
        variant = "warning" if days <= settings.license_warning_days else "normal"
        message = translator.t(f"{days} jours restants", f"{days} يوم متبقي")
    return {"days": days, "variant": variant, "message": message}


def status_badge(status: str) -> str:
    return LICENSE_BADGES.get(status, "muted")


def facility_card_state(status: str) -> str:
    if status == FacilityStatus.ACTIVE.value:
        return "active"
    if status == FacilityStatus.INACTIVE.value:
        return "expired"
    return "pending"


def derive_status(expiry: date, today: Optional[date] = None, current: Optional[str] = None) -> str:
    """Cancelled is a manual decision and is never overwritten."""
    if current == LicenseStatus.CANCELLED.value:
        return current
    days = days_remaining(expiry, today)
    if days < 0:
        return LicenseStatus.EXPIRED.value
    if days <= settings.license_warning_days:
        return LicenseStatus.EXPIRING_SOON.value
    return LicenseStatus.VALID.value


def refresh_statuses(db: Session, today: Optional[date] = None) -> int:
    """Recompute every stored license status. Returns how many rows changed."""
    today = today or regional_today()
    changed = 0
    for lic in db.query(License).filter(License.status != LicenseStatus.CANCELLED.value).all():
        new_status = derive_status(lic.expiry_date, today, lic.status)
        if new_status != lic.status:
            lic.status = new_status
            changed += 1
    db.commit()
    logger.info("license_statuses_refreshed", changed=changed, today=today.isoformat())
    return changed
