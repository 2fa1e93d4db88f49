# brain_core/time_filter.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from trip_brain.brain_core.schema import Activity, Category
from trip_brain.tools.helper import _contains_any, search_text
from trip_brain.tools.keywords import DEFAULT_TIME_KEYWORDS, TimeKeywords

logger = logging.getLogger(__name__)


class TimePeriod(str, Enum):
    EARLY_MORNING = "early_morning"
    MORNING = "morning"
    LUNCH = "lunch"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


APPROPRIATE_SCORE = 1.0
MARGINAL_SCORE = 0.6
INAPPROPRIATE_SCORE = 0.2
UNLISTED_SCORE = 0.5
DAYLIGHT_ONLY_SCORE = 0.1
LATE_NIGHT_SCORE = 0.9

_C = Category


class PeriodRule(BaseModel):
    appropriate: Tuple[Category, ...] = ()
    marginal: Tuple[Category, ...] = ()
    inappropriate: Tuple[Category, ...] = ()


DEFAULT_PERIOD_RULES: Dict[TimePeriod, PeriodRule] = {
    TimePeriod.EARLY_MORNING: PeriodRule(
        appropriate=(_C.DINING, _C.NATURE, _C.WELLNESS),
        marginal=(_C.LEISURE_ACTIVITY,),
        inappropriate=(_C.CULTURE, _C.NIGHTLIFE, _C.SHOPPING),
    ),
    TimePeriod.MORNING: PeriodRule(
        appropriate=(_C.DINING, _C.CULTURE, _C.NATURE, _C.LEISURE_ACTIVITY, _C.WELLNESS, _C.SHOPPING),
        inappropriate=(_C.NIGHTLIFE,),
    ),
    TimePeriod.LUNCH: PeriodRule(
        appropriate=(_C.DINING, _C.SHOPPING, _C.CULTURE),
        marginal=(_C.LEISURE_ACTIVITY, _C.NATURE, _C.WELLNESS),
        inappropriate=(_C.NIGHTLIFE,),
    ),
    TimePeriod.AFTERNOON: PeriodRule(
        appropriate=(_C.CULTURE, _C.LEISURE_ACTIVITY, _C.NATURE, _C.SHOPPING, _C.DINING, _C.WELLNESS),
        inappropriate=(_C.NIGHTLIFE,),
    ),
    TimePeriod.EVENING: PeriodRule(
        appropriate=(_C.DINING, _C.NIGHTLIFE, _C.CULTURE),
        marginal=(_C.LEISURE_ACTIVITY, _C.NATURE, _C.SHOPPING, _C.WELLNESS),
    ),
    TimePeriod.NIGHT: PeriodRule(
        appropriate=(_C.DINING, _C.NIGHTLIFE),
        inappropriate=(_C.CULTURE, _C.NATURE, _C.SHOPPING, _C.LEISURE_ACTIVITY, _C.WELLNESS),
    ),
}

CATEGORY_DISPLAY = {
    _C.DINING: "Dining",
    _C.CULTURE: "Cultural attractions",
    _C.NATURE: "Outdoor activities",
    _C.NIGHTLIFE: "Nightlife",
    _C.SHOPPING: "Shopping",
    _C.LEISURE_ACTIVITY: "Activities",
    _C.WELLNESS: "Wellness",
    _C.OTHER: "This",
}

PERIOD_DISPLAY = {
    TimePeriod.EARLY_MORNING: "early morning",
    TimePeriod.MORNING: "the morning",
    TimePeriod.LUNCH: "lunchtime",
    TimePeriod.AFTERNOON: "the afternoon",
    TimePeriod.EVENING: "the evening",
    TimePeriod.NIGHT: "late night",
}


class TimeFilterConfig(BaseModel):
    keywords: TimeKeywords = DEFAULT_TIME_KEYWORDS
    rules: Dict[TimePeriod, PeriodRule] = DEFAULT_PERIOD_RULES
    late_evening_hour: int = 20


DEFAULT_TIME_CONFIG = TimeFilterConfig()


class TimeAppropriateness(BaseModel):
    is_appropriate: bool
    score: float
    reason: str
    period: TimePeriod


def get_time_period(hour: int) -> TimePeriod:
    h = int(hour) % 24
    if 5 <= h < 8:
        return TimePeriod.EARLY_MORNING
    if 8 <= h < 12:
        return TimePeriod.MORNING
    if 12 <= h < 14:
        return TimePeriod.LUNCH
    if 14 <= h < 17:
        return TimePeriod.AFTERNOON
    if 17 <= h < 21:
        return TimePeriod.EVENING
    return TimePeriod.NIGHT


def is_meal_time(hour: int) -> Optional[str]:
    h = int(hour) % 24
    if 7 <= h < 10:
        return "breakfast"
    if 12 <= h < 14:
        return "lunch"
    if 18 <= h < 21:
        return "dinner"
    return None


def time_greeting(hour: int) -> str:
    period = get_time_period(hour)
    if period in (TimePeriod.EARLY_MORNING, TimePeriod.MORNING):
        return "Good morning"
    if period in (TimePeriod.LUNCH, TimePeriod.AFTERNOON):
        return "Good afternoon"
    if period == TimePeriod.EVENING:
        return "Good evening"
    return "Still up?"


def appropriateness(activity: Activity, hour: int,
                    config: TimeFilterConfig = DEFAULT_TIME_CONFIG) -> TimeAppropriateness:
    """
    Keyword checks run before category rules and always win:
      night / late evening -> nightlife 1.0, late-night friendly 0.9
      night / early morning -> daylight-only 0.1
      early morning -> early-open 1.0
    """
    h = int(hour) % 24
    period = get_time_period(h)
    text = search_text(activity)
    kw = config.keywords

    is_night = period == TimePeriod.NIGHT or (period == TimePeriod.EVENING and h >= config.late_evening_hour)

    if is_night:
        if _contains_any(text, kw.nightlife):
            return TimeAppropriateness(is_appropriate=True, score=APPROPRIATE_SCORE,
                                       reason="Nightlife activity - perfect for this time", period=period)
        if _contains_any(text, kw.late_night):
            return TimeAppropriateness(is_appropriate=True, score=LATE_NIGHT_SCORE,
                                       reason="Open late - available at this hour", period=period)

    if period in (TimePeriod.NIGHT, TimePeriod.EARLY_MORNING) and _contains_any(text, kw.daylight_only):
        reason = "Typically closed at night" if period == TimePeriod.NIGHT else "Not open this early"
        return TimeAppropriateness(is_appropriate=False, score=DAYLIGHT_ONLY_SCORE, reason=reason, period=period)

    if period == TimePeriod.EARLY_MORNING and _contains_any(text, kw.early_open):
        return TimeAppropriateness(is_appropriate=True, score=APPROPRIATE_SCORE,
                                   reason="Opens early - great morning option", period=period)

    rule = config.rules.get(period, PeriodRule())
    cat_name = CATEGORY_DISPLAY.get(activity.category, "This")
    period_name = PERIOD_DISPLAY[period]
    if activity.category in rule.appropriate:
        return TimeAppropriateness(is_appropriate=True, score=APPROPRIATE_SCORE,
                                   reason=f"{cat_name} is ideal for {period_name}", period=period)
    if activity.category in rule.marginal:
        return TimeAppropriateness(is_appropriate=True, score=MARGINAL_SCORE,
                                   reason=f"{cat_name} is okay for {period_name}", period=period)
    if activity.category in rule.inappropriate:
        return TimeAppropriateness(is_appropriate=False, score=INAPPROPRIATE_SCORE,
                                   reason=f"{cat_name} is not ideal for {period_name}", period=period)
    return TimeAppropriateness(is_appropriate=True, score=UNLISTED_SCORE,
                               reason="May be available at this time", period=period)


def time_score(activity: Activity, hour: int, config: TimeFilterConfig = DEFAULT_TIME_CONFIG) -> float:
    return appropriateness(activity, hour, config).score


def suggested_categories(hour: int, config: TimeFilterConfig = DEFAULT_TIME_CONFIG) -> List[Category]:
    return list(config.rules.get(get_time_period(hour), PeriodRule()).appropriate)


def filter_by_time(activities: Iterable[Activity], hour: int, min_score: float = 0.3,
                   always_include: Iterable[str] = (), always_exclude: Iterable[str] = (),
                   config: TimeFilterConfig = DEFAULT_TIME_CONFIG) -> List[Activity]:
    include, exclude = set(always_include), set(always_exclude)
    out = []
    for a in activities:
        if a.id in exclude:
            continue
        if a.id in include or appropriateness(a, hour, config).score >= min_score:
            out.append(a)
    return out
