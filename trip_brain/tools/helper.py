# helper.py
# Helpers: clamping, normalisation, haversine geometry, free-text matching, clock strings.
import re
from math import radians, degrees, cos, sin, asin, atan2, sqrt
from typing import Iterable, Optional

EARTH_RADIUS_M = 6371000.0


def _clamp(x: float, lo: float = 0.0, hi: float = 1.0) -> float:
    if x != x:  # NaN
        return lo
    if x < lo:
        return lo
    if x > hi:
        return hi
    return x


def _haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    dlat, dlon = radians(lat2 - lat1), radians(lon2 - lon1)
    a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * asin(sqrt(min(1.0, a)))


def _initial_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = radians(lat1), radians(lat2)
    dlon = radians(lon2 - lon1)
    y = sin(dlon) * cos(phi2)
    x = cos(phi1) * sin(phi2) - sin(phi1) * cos(phi2) * cos(dlon)
    return (degrees(atan2(y, x)) + 360.0) % 360.0


def normalize_token(tok: str) -> str:
    """
    Normalize a single tag token:
      - lowercase
      - replace hyphens with underscore
      - collapse whitespace
    """
    if not tok:
        return ""
    s = tok.lower().strip()
    s = s.replace("-", "_")
    return re.sub(r"\s+", " ", s)


def _contains_any(text: str, keywords: Iterable[str]) -> Optional[str]:
    """Return the first keyword found as a substring of text, or None."""
    for kw in keywords:
        if kw and kw in text:
            return kw
    return None


def _any_type_contains(types: Iterable[str], keywords: Iterable[str]) -> bool:
    kws = tuple(keywords)
    return any(_contains_any(str(t).lower(), kws) for t in types or [])


def search_text(activity) -> str:
    """Lowercased haystack for keyword matching: name, description, category and type tags."""
    category = getattr(activity.category, "value", activity.category)
    parts = [activity.name or "", activity.description or "", str(category)]
    parts.extend(activity.types or [])
    return " ".join(parts).lower()


def _parse_clock_minutes(clock: Optional[str]) -> Optional[int]:
    """'21:30' -> 1290 minutes after midnight. Returns None for missing or unparseable input."""
    if not clock:
        return None
    m = re.match(r"^\s*(\d{1,2})(?::(\d{2}))?\s*$", clock)
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2) or 0)
    if not (0 <= hour <= 24 and 0 <= minute < 60):
        return None
    return hour * 60 + minute
