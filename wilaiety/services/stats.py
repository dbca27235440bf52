"""
Dashboard and report figures.
"""
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..models.models import Facility, FacilitySector, FacilityStatus, License, LicenseStatus
from .i18n import label, month_name
from .licensing import regional_today


def facility_stats(db: Session) -> dict:
    rows = db.query(Facility.sector, Facility.status).all()
    sector_counts: Dict[str, int] = {}
    for sector, _status in rows:
        sector_counts[sector] = sector_counts.get(sector, 0) + 1
    statuses = [s for _sector, s in rows]
    return {
        "total": len(rows),
        "active": statuses.count(FacilityStatus.ACTIVE.value),
        "pending": statuses.count(FacilityStatus.UNDER_CONSTRUCTION.value) + statuses.count(FacilityStatus.SUSPENDED.value),
        "inactive": statuses.count(FacilityStatus.INACTIVE.value),
        "sector_counts": sector_counts,
    }


def license_stats(db: Session) -> dict:
    statuses = [s for (s,) in db.query(License.status).all()]
    return {
        "total": len(statuses),
        "active": statuses.count(LicenseStatus.VALID.value),
        "expiring_soon": statuses.count(LicenseStatus.EXPIRING_SOON.value),
        "expired": statuses.count(LicenseStatus.EXPIRED.value),
        "cancelled": statuses.count(LicenseStatus.CANCELLED.value),
    }


def sector_overview(db: Session, language: str) -> List[dict]:
    counts = facility_stats(db)["sector_counts"]
    return [
        {
            "sector": sector.value,
            "label": label("sector", sector, language),
            "count": counts.get(sector.value, 0),
        }
        for sector in FacilitySector
    ]


def _percent(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


def _last_months(today: date, count: int) -> List[tuple]:
    months = []
    year, month = today.year, today.month
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


def monthly_trend(db: Session, language: str, months: int = 6, today: Optional[date] = None) -> List[dict]:
    """Records created per calendar month, oldest month first."""
    today = today or regional_today()
    buckets = {ym: {"facilities": 0, "licenses": 0} for ym in _last_months(today, months)}
    for (created,) in db.query(Facility.created_at).all():
        if created and (created.year, created.month) in buckets:
            buckets[(created.year, created.month)]["facilities"] += 1
    for (created,) in db.query(License.created_at).all():
        if created and (created.year, created.month) in buckets:
            buckets[(created.year, created.month)]["licenses"] += 1
    return [
        {"year": y, "month": m, "label": month_name(m, language), **counts}
        for (y, m), counts in buckets.items()
    ]


def report_summary(db: Session, language: str, today: Optional[date] = None) -> dict:
    facilities = facility_stats(db)
    licenses = license_stats(db)
    sectors = [s for s in sector_overview(db, language) if s["count"] > 0]
    return {
        "facilities": facilities,
        "licenses": licenses,
        "indicators": {
            "active_facility_pct": _percent(facilities["active"], facilities["total"]),
            "valid_license_pct": _percent(licenses["active"], licenses["total"]),
            "licenses_per_facility": round(licenses["total"] / facilities["total"], 1) if facilities["total"] else 0,
        },
        "sectors": sectors,
        "trend": monthly_trend(db, language, today=today),
    }
