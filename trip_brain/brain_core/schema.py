# brain_core/schema.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from trip_brain.tools.helper import _clamp, _any_type_contains
from trip_brain.tools.keywords import DEFAULT_VENUE_KEYWORDS, VenueKeywords


class Category(str, Enum):
    DINING = "dining"
    CULTURE = "culture"
    NATURE = "nature"
    NIGHTLIFE = "nightlife"
    SHOPPING = "shopping"
    LEISURE_ACTIVITY = "leisure-activity"
    WELLNESS = "wellness"
    OTHER = "other"


# labels used by older catalog exports
CATEGORY_ALIASES = {
    "food_drink": Category.DINING,
    "food": Category.DINING,
    "restaurant": Category.DINING,
    "activities": Category.LEISURE_ACTIVITY,
    "activity": Category.LEISURE_ACTIVITY,
    "leisure_activity": Category.LEISURE_ACTIVITY,
}


def coerce_category(value) -> Category:
    if isinstance(value, Category):
        return value
    key = str(value or "").strip().lower()
    if key in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[key]
    try:
        return Category(key)
    except ValueError:
        return Category.OTHER


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float

    @field_validator("lat")
    @classmethod
    def _clamp_lat(cls, v):
        return _clamp(float(v), -90.0, 90.0)

    @field_validator("lng")
    @classmethod
    def _clamp_lng(cls, v):
        return _clamp(float(v), -180.0, 180.0)


# ----------------------------
# Activity
# ----------------------------

def classify_capabilities(category: Category, types: List[str],
                          keywords: VenueKeywords = DEFAULT_VENUE_KEYWORDS) -> FrozenSet[str]:
    """
    Indoor/outdoor is decided by category first and falls back to type tags.
    Cooling, warming, viewpoint and scenic come from type tags only.
    """
    caps = set()
    cat = category.value
    if cat in keywords.outdoor_categories:
        caps.add("outdoor")
    elif cat in keywords.indoor_categories:
        caps.add("indoor")
    else:
        if _any_type_contains(types, keywords.outdoor_types):
            caps.add("outdoor")
        if _any_type_contains(types, keywords.indoor_types):
            caps.add("indoor")
    if _any_type_contains(types, keywords.cooling_types):
        caps.add("cooling")
    if _any_type_contains(types, keywords.warming_types):
        caps.add("warming")
    if _any_type_contains(types, keywords.viewpoint_types):
        caps.add("viewpoint")
    if _any_type_contains(types, keywords.scenic_types):
        caps.add("scenic")
    if _any_type_contains(types, keywords.golden_hour_types):
        caps.add("golden_hour")
    return frozenset(caps)


class Activity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: Category = Category.OTHER
    coordinates: Optional[Coordinates] = None
    description: Optional[str] = ""
    types: List[str] = []
    rating: Optional[float] = None
    price_level: Optional[int] = None
    is_hidden_gem: bool = False
    hidden_gem_score: Optional[float] = None
    review_count: int = 0
    is_favourited: bool = False
    is_open: Optional[bool] = None
    opens_at: Optional[str] = None
    closes_at: Optional[str] = None
    capabilities: FrozenSet[str] = frozenset()

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v):
        return coerce_category(v)

    @field_validator("rating")
    @classmethod
    def _rating_range(cls, v):
        return None if v is None else _clamp(float(v), 0.0, 5.0)

    @field_validator("price_level", mode="before")
    @classmethod
    def _price_range(cls, v):
        if v is None:
            return None
        return int(round(_clamp(float(v), 0.0, 4.0)))

    @field_validator("hidden_gem_score")
    @classmethod
    def _gem_range(cls, v):
        return None if v is None else _clamp(float(v))

    @field_validator("review_count", mode="before")
    @classmethod
    def _reviews(cls, v):
        return max(0, int(v or 0))

    @model_validator(mode="before")
    @classmethod
    def _derive_capabilities(cls, data):
        if isinstance(data, dict) and not data.get("capabilities"):
            data = dict(data)
            data["capabilities"] = classify_capabilities(
                coerce_category(data.get("category")), list(data.get("types") or []))
        return data

    @property
    def hidden_gem(self) -> bool:
        return self.is_hidden_gem or (self.hidden_gem_score or 0.0) > 0.6

    def has(self, capability: str) -> bool:
        return capability in self.capabilities


# ----------------------------
# Weather
# ----------------------------

class WeatherCondition(str, Enum):
    SUNNY = "sunny"
    PARTLY_CLOUDY = "partly_cloudy"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    STORMY = "stormy"
    SNOWY = "snowy"
    FOGGY = "foggy"
    WINDY = "windy"


class WeatherContext(BaseModel):
    condition: WeatherCondition
    temperature_celsius: float
    feels_like: Optional[float] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    precipitation_chance: float = 0.0
    uv_index: Optional[float] = None
    sunrise: Optional[datetime] = None
    sunset: Optional[datetime] = None
    is_daylight: bool = True
    description: str = ""

    @field_validator("precipitation_chance")
    @classmethod
    def _pct(cls, v):
        return _clamp(float(v), 0.0, 100.0)

    @field_validator("humidity")
    @classmethod
    def _humidity(cls, v):
        return None if v is None else _clamp(float(v), 0.0, 100.0)

    @property
    def is_clear(self) -> bool:
        return self.condition in (WeatherCondition.SUNNY, WeatherCondition.PARTLY_CLOUDY)


# ----------------------------
# Preferences
# ----------------------------

class PreferenceSource(str, Enum):
    STATED = "stated"
    OBSERVED = "observed"
    HISTORICAL = "historical"


class BudgetLevel(str, Enum):
    BUDGET = "budget"
    MODERATE = "moderate"
    COMFORT = "comfort"
    LUXURY = "luxury"


class DiningStyle(str, Enum):
    STREET_FOOD = "street_food"
    CASUAL = "casual"
    MIXED = "mixed"
    FINE_DINING = "fine_dining"


class InterestCategories(BaseModel):
    food: float = 0.5
    culture: float = 0.5
    nature: float = 0.5
    nightlife: float = 0.5
    shopping: float = 0.5
    adventure: float = 0.5
    relaxation: float = 0.5
    photography: float = 0.5
    beach: float = 0.5
    local_experiences: float = 0.5

    @field_validator("*")
    @classmethod
    def _unit(cls, v):
        return _clamp(float(v))

    def level(self, key: str) -> float:
        return float(getattr(self, key, 0.5))


class SpecificInterest(BaseModel):
    tag: str
    confidence: float = 1.0
    source: PreferenceSource = PreferenceSource.STATED

    @field_validator("confidence")
    @classmethod
    def _unit(cls, v):
        return _clamp(float(v))


class Avoidance(BaseModel):
    tag: str
    strength: float = 1.0
    source: PreferenceSource = PreferenceSource.STATED
    reason: Optional[str] = None

    @field_validator("strength")
    @classmethod
    def _unit(cls, v):
        return _clamp(float(v))


class UserPreferences(BaseModel):
    interests: InterestCategories = InterestCategories()
    specific_interests: List[SpecificInterest] = []
    avoidances: List[Avoidance] = []
    budget: BudgetLevel = BudgetLevel.MODERATE
    dining_style: DiningStyle = DiningStyle.MIXED
    prefers_hidden_gems: bool = False
    hidden_gem_confidence: float = 0.0
    overall_confidence: float = 0.5

    @field_validator("hidden_gem_confidence", "overall_confidence")
    @classmethod
    def _unit(cls, v):
        return _clamp(float(v))


# ----------------------------
# Context
# ----------------------------

class Context(BaseModel):
    hour: int = 12
    location: Optional[Coordinates] = None
    weather: Optional[WeatherContext] = None
    completed_ids: FrozenSet[str] = frozenset()
    skipped_ids: FrozenSet[str] = frozenset()
    scheduled_ids: FrozenSet[str] = frozenset()
    current_city: Optional[str] = None
    day_number: Optional[int] = None

    @field_validator("hour", mode="before")
    @classmethod
    def _hour(cls, v):
        return int(v) % 24


# ----------------------------
# Scores & explanations
# ----------------------------

COMPONENTS = ("time", "distance", "preference", "serendipity", "rating", "weather")


class ScoreComponent(BaseModel):
    value: float
    weight: float
    contribution: float
    reason: Optional[str] = None


class ScoreBreakdown(BaseModel):
    time: ScoreComponent
    distance: ScoreComponent
    preference: ScoreComponent
    serendipity: ScoreComponent
    rating: ScoreComponent
    weather: ScoreComponent
    final_score: float
    confidence: float

    def components(self) -> Dict[str, ScoreComponent]:
        return {name: getattr(self, name) for name in COMPONENTS}


class WhyNowCategory(str, Enum):
    DISTANCE = "distance"
    TIME = "time"
    PREFERENCE = "preference"
    WEATHER = "weather"
    SERENDIPITY = "serendipity"
    TIMING = "timing"
    CROWD = "crowd"
    SCHEDULED = "scheduled"
    TRENDING = "trending"
    SPECIAL = "special"


class ReasonLine(BaseModel):
    category: WhyNowCategory
    text: str


class Tip(BaseModel):
    text: str
    source: Optional[str] = None


class Urgency(BaseModel):
    text: str
    expires_at: Optional[datetime] = None


class WhyNowReason(BaseModel):
    primary: ReasonLine
    secondary: Optional[ReasonLine] = None
    tip: Optional[Tip] = None
    urgency: Optional[Urgency] = None


class RankedActivity(BaseModel):
    activity: Activity
    breakdown: ScoreBreakdown
    rank: int = 0
    why_now: Optional[WhyNowReason] = None
    distance_meters: Optional[float] = None

    @property
    def score(self) -> float:
        return self.breakdown.final_score


# ----------------------------
# Proactive messages
# ----------------------------

class MessageType(str, Enum):
    LOCATION_TRIGGER = "location_trigger"
    TIME_TRIGGER = "time_trigger"
    WEATHER_ALERT = "weather_alert"
    ACTIVITY_REMINDER = "activity_reminder"
    RECOMMENDATION = "recommendation"
    DISCOVERY = "discovery"
    ENCOURAGEMENT = "encouragement"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class MessageAction(BaseModel):
    label: str
    type: str = "view"
    payload: Optional[str] = None


class ProactiveMessage(BaseModel):
    id: str
    type: MessageType
    message: str
    detail: Optional[str] = None
    priority: Priority = Priority.LOW
    related_activity_id: Optional[str] = None
    action: Optional[MessageAction] = None
    created_at: datetime
    expires_at: datetime
    dismissed: bool = False
    trigger: Optional[str] = None
    subject_key: Optional[str] = None


# ----------------------------
# Allocation
# ----------------------------

class Pace(str, Enum):
    RELAXED = "relaxed"
    BALANCED = "balanced"
    PACKED = "packed"


class AllocationCity(BaseModel):
    name: str
    place_count: int = 0
    favourite_count: int = 0
    category_breakdown: Dict[str, int] = {}
    is_origin: bool = False
    is_destination: bool = False
    interest_match_score: Optional[float] = None

    @field_validator("place_count", "favourite_count", mode="before")
    @classmethod
    def _non_negative(cls, v):
        return max(0, int(v or 0))

    @field_validator("interest_match_score")
    @classmethod
    def _unit(cls, v):
        return None if v is None else _clamp(float(v))


class FactorBreakdown(BaseModel):
    size: float
    interest_match: float
    favourites: float
    position: float


class CityAllocation(BaseModel):
    name: str
    days: float
    nights: int
    importance_score: float
    factors: FactorBreakdown


class AllocationStats(BaseModel):
    average_days: float = 0.0
    min_days: float = 0.0
    max_days: float = 0.0
    pace: Pace = Pace.BALANCED


class AllocationResult(BaseModel):
    allocations: List[CityAllocation] = []
    total_days: float = 0.0
    total_nights: int = 0
    stats: AllocationStats = Field(default_factory=AllocationStats)
