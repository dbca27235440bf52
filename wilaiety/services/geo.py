"""
GPS string handling and distance helpers.
Coordinates are stored as a single ``"lat,lng"`` string.
"""
import math
import re
from typing import Iterable, List, Optional, Tuple

from .i18n import label

GPS_INPUT_RE = re.compile(r"^-?\d+\.?\d*,\s*-?\d+\.?\d*$")
# Leading decimal number of a coordinate; trailing text such as "N" or "°W" is ignored
NUMBER_PREFIX_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
# Precision of coordinates captured from a map click or a device fix
CAPTURE_DECIMALS = 4


def _leading_number(text: str) -> Optional[float]:
    match = NUMBER_PREFIX_RE.match(text)
    if not match:
        return None
    return float(match.group(0))


def parse_gps(value: Optional[str]) -> Optional[Tuple[float, float]]:
    """
    Parse ``"lat,lng"`` into a float pair.

    Each part is read up to its first non-numeric character, so
    ``"20.94N,-17.04W"`` still gives a position. Returns None unless the
    string splits into exactly two parts that both start with a finite number.
    """
    if not value:
        return None
    parts = [p.strip() for p in str(value).split(",")]
    if len(parts) != 2:
        return None
    lat = _leading_number(parts[0])
    lng = _leading_number(parts[1])
    if lat is None or lng is None:
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    return lat, lng


def format_gps(lat: float, lng: float, decimals: int = CAPTURE_DECIMALS) -> str:
    return f"{lat:.{decimals}f},{lng:.{decimals}f}"


def is_valid_gps_input(value: Optional[str]) -> bool:
    """Form rule for manually typed coordinates; empty means "not provided"."""
    if value is None or value == "":
        return True
    return bool(GPS_INPUT_RE.match(value))


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Returns:
        Distance in meters
    """
    R = 6371000

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2 +
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def nearest_division(lat: float, lng: float, divisions: Iterable) -> Optional[Tuple[object, float]]:
    """
    Pick the division whose coordinates are closest to the point.

    Divisions without parseable coordinates are ignored.
    Returns (division, distance_m) or None.
    """
    best = None
    for division in divisions:
        coords = parse_gps(getattr(division, "gps_coordinates", None))
        if not coords:
            continue
        distance = haversine_distance(lat, lng, coords[0], coords[1])
        if best is None or distance < best[1]:
            best = (division, distance)
    return best


def facilities_geojson(facilities: Iterable, language: str) -> dict:
    features: List[dict] = []
    for f in facilities:
        coords = parse_gps(f.gps_coordinates)
        if not coords:
            continue
        lat, lng = coords
        features.append({
            "type": "Feature",
            # GeoJSON positions are [lng, lat]
            "geometry": {"type": "Point", "coordinates": [lng, lat]},
            "properties": {
                "id": str(f.id),
                "name": f.name,
                "short_name": f.short_name,
                "region": f.region,
                "sector": f.sector,
                "sector_label": label("sector", f.sector, language),
                "status": f.status,
                "status_label": label("facility_status", f.status, language),
                "image_url": f.image_url,
            },
        })
    return {"type": "FeatureCollection", "features": features}
