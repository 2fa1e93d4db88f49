# brain_core/distance.py
from __future__ import annotations

import logging
import math
from collections import OrderedDict
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from trip_brain.brain_core.schema import Activity, Coordinates
from trip_brain.tools.helper import _clamp, _haversine_m, _initial_bearing
from trip_brain.tools.config import MAX_DISTANCE_METERS

logger = logging.getLogger(__name__)


class DecayCurve(str, Enum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    INVERSE = "inverse"
    STEPPED = "stepped"


class DistanceBracket(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    max_distance: float
    label: str
    short_label: str
    multiplier: float


DEFAULT_DISTANCE_BRACKETS: Tuple[DistanceBracket, ...] = (
    DistanceBracket(name="immediate", max_distance=100, label="Right here", short_label="Here", multiplier=1.0),
    DistanceBracket(name="very_close", max_distance=300, label="Very close", short_label="Close", multiplier=0.95),
    DistanceBracket(name="walking", max_distance=800, label="Short walk", short_label="Walk", multiplier=0.85),
    DistanceBracket(name="moderate_walk", max_distance=1500, label="Walking distance", short_label="Walk", multiplier=0.70),
    DistanceBracket(name="long_walk", max_distance=3000, label="Longer walk", short_label="Long walk", multiplier=0.50),
    DistanceBracket(name="short_drive", max_distance=5000, label="Short drive", short_label="Drive", multiplier=0.35),
    DistanceBracket(name="moderate_drive", max_distance=15000, label="Drive required", short_label="Drive", multiplier=0.20),
    DistanceBracket(name="far", max_distance=math.inf, label="Far away", short_label="Far", multiplier=0.10),
)


class DistanceConfig(BaseModel):
    max_distance: float = MAX_DISTANCE_METERS
    decay: DecayCurve = DecayCurve.EXPONENTIAL
    half_life: float = 1000.0
    immediate_threshold: float = 100.0
    walking_speed: float = 80.0     # m/min
    cycling_speed: float = 250.0    # m/min
    driving_speed: float = 500.0    # m/min
    driving_overhead_minutes: int = 2
    penalize_unknown_distance: bool = False
    unknown_distance_score: float = 0.5
    brackets: Tuple[DistanceBracket, ...] = DEFAULT_DISTANCE_BRACKETS


DEFAULT_DISTANCE_CONFIG = DistanceConfig()


# ----------------------------
# 1) geometry
# ----------------------------

def distance(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance in meters on a spherical Earth."""
    return _haversine_m(a.lat, a.lng, b.lat, b.lng)


def bearing(a: Coordinates, b: Coordinates) -> float:
    """Initial bearing from a to b in degrees, [0, 360)."""
    return _initial_bearing(a.lat, a.lng, b.lat, b.lng) % 360.0


_CARDINALS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


def cardinal_direction(degrees_: float) -> str:
    return _CARDINALS[int(round((degrees_ % 360.0) / 45.0)) % 8]


def activity_distance(origin: Optional[Coordinates], activity: Activity) -> Optional[float]:
    if origin is None or activity.coordinates is None:
        return None
    return distance(origin, activity.coordinates)


# ----------------------------
# 2) scoring
# ----------------------------

def get_bracket(meters: float, config: DistanceConfig = DEFAULT_DISTANCE_CONFIG) -> DistanceBracket:
    d = max(0.0, meters)
    for br in config.brackets:
        if br.max_distance >= d:
            return br
    return config.brackets[-1]


def score(meters: Optional[float], config: DistanceConfig = DEFAULT_DISTANCE_CONFIG) -> float:
    """
    Proximity score in [0, 1] for a distance in meters.
    None (no coordinates on either side) scores the configured neutral value,
    or 0 when unknown distances are penalised.
    """
    if meters is None or meters != meters:
        return 0.0 if config.penalize_unknown_distance else _clamp(config.unknown_distance_score)

    d = max(0.0, float(meters))
    if d <= config.immediate_threshold:
        return 1.0
    if d > config.max_distance:
        return 0.0

    if config.decay == DecayCurve.LINEAR:
        s = 1.0 - d / config.max_distance if config.max_distance > 0 else 0.0
    elif config.decay == DecayCurve.EXPONENTIAL:
        s = math.exp(-math.log(2) * d / max(config.half_life, 1e-9))
    elif config.decay == DecayCurve.INVERSE:
        s = 1.0 / (1.0 + d / max(config.half_life, 1e-9))
    else:
        s = get_bracket(d, config).multiplier
    return _clamp(s)


# ----------------------------
# 3) travel estimates
# ----------------------------

def walking_minutes(meters: float, config: DistanceConfig = DEFAULT_DISTANCE_CONFIG) -> int:
    return int(math.ceil(max(0.0, meters) / config.walking_speed))


def cycling_minutes(meters: float, config: DistanceConfig = DEFAULT_DISTANCE_CONFIG) -> int:
    return int(math.ceil(max(0.0, meters) / config.cycling_speed))


def driving_minutes(meters: float, config: DistanceConfig = DEFAULT_DISTANCE_CONFIG) -> int:
    return int(math.ceil(max(0.0, meters) / config.driving_speed)) + config.driving_overhead_minutes


def recommend_travel_mode(meters: float, config: DistanceConfig = DEFAULT_DISTANCE_CONFIG) -> Dict[str, object]:
    d = max(0.0, meters)
    if d < 800:
        return {"mode": "walk", "minutes": walking_minutes(d, config), "reason": "Quick walk"}
    if d < 3000:
        return {"mode": "walk", "minutes": walking_minutes(d, config), "reason": "Pleasant walk"}
    if d < 8000:
        return {"mode": "cycle", "minutes": cycling_minutes(d, config), "reason": "Great for cycling"}
    return {"mode": "drive", "minutes": driving_minutes(d, config), "reason": "Drive recommended"}


def format_distance(meters: float, config: DistanceConfig = DEFAULT_DISTANCE_CONFIG) -> str:
    d = max(0.0, meters)
    if d < config.immediate_threshold:
        return "Right here"
    if d < 1000:
        return f"{int(round(d))}m"
    if d < 10000:
        return f"{d / 1000:.1f}km"
    return f"{int(round(d / 1000))}km"


def distance_reason(meters: float, config: DistanceConfig = DEFAULT_DISTANCE_CONFIG) -> str:
    d = max(0.0, meters)
    if d < 100:
        return "Right around the corner"
    if d < 300:
        return f"{int(round(d))}m away"
    if d < 1000:
        return f"{walking_minutes(d, config)} min walk"
    if d < 3000:
        return f"{walking_minutes(d, config)} min walk from you"
    return f"{d / 1000:.1f}km away"


# ----------------------------
# 4) batch helpers
# ----------------------------

def sort_by_distance(activities: List[Activity], origin: Optional[Coordinates]) -> List[Activity]:
    """Nearest first; activities without coordinates go last in their original order."""
    if origin is None:
        return list(activities)
    def _key(a: Activity):
        d = activity_distance(origin, a)
        return (d is None, d if d is not None else 0.0)
    return sorted(activities, key=_key)


def filter_by_distance(activities: List[Activity], origin: Optional[Coordinates],
                       max_meters: float) -> List[Activity]:
    out = []
    for a in activities:
        d = activity_distance(origin, a)
        if d is not None and d <= max_meters:
            out.append(a)
    return out


def group_by_bracket(activities: List[Activity], origin: Optional[Coordinates],
                     config: DistanceConfig = DEFAULT_DISTANCE_CONFIG) -> "OrderedDict[str, List[Activity]]":
    groups: "OrderedDict[str, List[Activity]]" = OrderedDict((br.name, []) for br in config.brackets)
    groups["unknown"] = []
    for a in activities:
        d = activity_distance(origin, a)
        if d is None:
            groups["unknown"].append(a)
        else:
            groups[get_bracket(d, config).name].append(a)
    return groups


def nearest(activities: List[Activity], origin: Optional[Coordinates], n: int = 3) -> List[Activity]:
    located = [a for a in activities if activity_distance(origin, a) is not None]
    return sort_by_distance(located, origin)[:max(0, n)]
