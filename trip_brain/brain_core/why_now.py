# brain_core/why_now.py
from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from trip_brain.brain_core.schema import (
    Activity, Category, Context, ReasonLine, ScoreBreakdown, Tip, Urgency,
    WeatherCondition, WhyNowCategory, WhyNowReason, COMPONENTS,
)
from trip_brain.brain_core.time_filter import is_meal_time
from trip_brain.tools.helper import _parse_clock_minutes

logger = logging.getLogger(__name__)


class MessageStyle(str, Enum):
    SHORT = "short"
    DETAILED = "detailed"
    CONVERSATIONAL = "conversational"


class WhyNowConfig(BaseModel):
    style: MessageStyle = MessageStyle.SHORT
    include_tips: bool = True
    include_urgency: bool = True
    closing_soon_minutes: int = 60
    rain_urgency_chance: float = 60.0


DEFAULT_WHY_NOW_CONFIG = WhyNowConfig()

COMPONENT_CATEGORY: Dict[str, WhyNowCategory] = {
    "distance": WhyNowCategory.DISTANCE,
    "time": WhyNowCategory.TIME,
    "preference": WhyNowCategory.PREFERENCE,
    "serendipity": WhyNowCategory.SERENDIPITY,
    "rating": WhyNowCategory.TRENDING,
    "weather": WhyNowCategory.WEATHER,
}

WHY_NOW_ICONS: Dict[WhyNowCategory, str] = {
    WhyNowCategory.DISTANCE: "MapPin",
    WhyNowCategory.TIME: "Clock",
    WhyNowCategory.PREFERENCE: "Heart",
    WhyNowCategory.WEATHER: "Cloud",
    WhyNowCategory.SERENDIPITY: "Sparkles",
    WhyNowCategory.TIMING: "Sunrise",
    WhyNowCategory.CROWD: "Users",
    WhyNowCategory.SCHEDULED: "Calendar",
    WhyNowCategory.TRENDING: "TrendingUp",
    WhyNowCategory.SPECIAL: "Star",
}

DISTANCE_TEMPLATES = {
    MessageStyle.SHORT: {
        "immediate": "Right here",
        "very_close": "{distance} away",
        "walking": "{time} min walk",
        "nearby": "{distance} · {time} min",
    },
    MessageStyle.DETAILED: {
        "immediate": "Right around the corner from you",
        "very_close": "Just {distance} away from your location",
        "walking": "A pleasant {time} minute walk from here",
        "nearby": "{distance} away, about {time} minutes on foot",
    },
    MessageStyle.CONVERSATIONAL: {
        "immediate": "You're practically there already!",
        "very_close": "It's just {distance} away - super close!",
        "walking": "A nice {time} minute stroll from where you are",
        "nearby": "About {time} minutes away - perfect walking distance",
    },
}

TIME_TEMPLATES = {
    MessageStyle.SHORT: {
        "golden_hour": "Golden hour soon",
        "meal_time": "Great for {meal}",
        "happy_hour": "Happy hour!",
        "before_crowd": "Beat the crowds",
        "closing_soon": "Closes in {time}",
    },
    MessageStyle.DETAILED: {
        "golden_hour": "Golden hour lighting in about {time} minutes",
        "meal_time": "Perfect timing for {meal}",
        "happy_hour": "Happy hour is on right now",
        "before_crowd": "Get there before the crowds arrive",
        "closing_soon": "Closing in {time} - still time to visit",
    },
    MessageStyle.CONVERSATIONAL: {
        "golden_hour": "The light will be amazing there in about {time} minutes",
        "meal_time": "Great timing if you're thinking about {meal}",
        "happy_hour": "They've got happy hour going on!",
        "before_crowd": "Go now and you'll beat the crowds",
        "closing_soon": "Heads up - they close in {time}",
    },
}

CATEGORY_TIPS: Dict[Category, Tuple[str, ...]] = {
    Category.DINING: (
        "Try asking for the daily special",
        "The outdoor seating has great views",
        "Reservations recommended for dinner",
        "Known for their homemade desserts",
        "Popular brunch spot on weekends",
    ),
    Category.CULTURE: (
        "Audio guides available at the entrance",
        "Free admission on the first Sunday of the month",
        "The gift shop has unique local crafts",
        "Guided tours start every hour",
        "Photography allowed without flash",
    ),
    Category.NATURE: (
        "Bring water and sunscreen",
        "Best views from the upper trail",
        "Early morning has fewer crowds",
        "Sunset is spectacular from here",
        "Watch for wildlife in the early morning",
    ),
    Category.NIGHTLIFE: (
        "Best atmosphere after 10pm",
        "Happy hour ends at 7pm",
        "Live music on weekends",
        "No cover charge before 9pm",
        "Known for their craft cocktails",
    ),
    Category.SHOPPING: (
        "Bargaining is expected at this market",
        "Best selection in the morning",
        "Local artisans sell here on weekends",
        "Tax refund available for tourists",
        "Unique handmade items upstairs",
    ),
    Category.LEISURE_ACTIVITY: (
        "Book in advance during peak season",
        "Comfortable shoes recommended",
        "Great for photos",
        "Family-friendly activity",
        "Best experienced in small groups",
    ),
    Category.WELLNESS: (
        "Booking recommended",
        "Arrive 15 minutes early",
        "Couples treatments available",
        "Bring your own yoga mat",
        "Towels and robes provided",
    ),
}

HIDDEN_GEM_TIPS: Tuple[str, ...] = (
    "A local favorite that most tourists miss",
    "Discovered by only a handful of travelers",
    "The kind of place locals keep to themselves",
    "Off the beaten path but worth the visit",
    "Not in the guidebooks - that's the beauty of it",
)


def icon_for(category: WhyNowCategory) -> str:
    return WHY_NOW_ICONS.get(category, "Info")


# ----------------------------
# component reason text
# ----------------------------

def distance_text(meters: Optional[float], walking_minutes: Optional[int] = None,
                  style: MessageStyle = MessageStyle.SHORT) -> Optional[str]:
    if meters is None:
        return None
    t = DISTANCE_TEMPLATES[MessageStyle(style)]
    d = max(0.0, meters)
    minutes = walking_minutes if walking_minutes else int(-(-d // 80))
    if d < 100:
        return t["immediate"]
    if d < 300:
        return t["very_close"].format(distance=f"{int(round(d))}m")
    if minutes <= 15:
        return t["walking"].format(time=minutes)
    label = f"{int(round(d))}m" if d < 1000 else f"{d / 1000:.1f}km"
    return t["nearby"].format(distance=label, time=minutes)


def minutes_until_close(activity: Activity, hour: int) -> Optional[int]:
    """Minutes from the top of `hour` until the venue closes, wrapping past midnight."""
    close = _parse_clock_minutes(activity.closes_at)
    if not activity.is_open or close is None:
        return None
    return (close - (int(hour) % 24) * 60) % (24 * 60)


def time_text(activity: Activity, context: Context,
              style: MessageStyle = MessageStyle.SHORT) -> Optional[ReasonLine]:
    """Moment-specific timing reason: closing soon, golden hour, meal time, happy hour, before the crowds."""
    t = TIME_TEMPLATES[MessageStyle(style)]
    hour = context.hour

    minutes = minutes_until_close(activity, hour)
    if minutes is not None and 0 < minutes <= 60:
        return ReasonLine(category=WhyNowCategory.TIME, text=t["closing_soon"].format(time=f"{minutes} min"))

    weather = context.weather
    if weather is not None and weather.sunset is not None:
        to_sunset = (weather.sunset.hour - hour) * 60
        if 30 < to_sunset <= 120 and (activity.category == Category.NATURE
                                      or activity.has("viewpoint") or activity.has("scenic")):
            return ReasonLine(category=WhyNowCategory.TIMING, text=t["golden_hour"].format(time=to_sunset))

    if activity.category == Category.DINING:
        meal = is_meal_time(hour)
        if meal:
            return ReasonLine(category=WhyNowCategory.TIME, text=t["meal_time"].format(meal=meal))

    if activity.category == Category.NIGHTLIFE or any("bar" in x.lower() for x in activity.types):
        if 16 <= hour < 19:
            return ReasonLine(category=WhyNowCategory.TIME, text=t["happy_hour"])

    if activity.category in (Category.CULTURE, Category.LEISURE_ACTIVITY) and 9 <= hour < 11:
        return ReasonLine(category=WhyNowCategory.CROWD, text=t["before_crowd"])
    return None


# ----------------------------
# tips & urgency
# ----------------------------

def pick_tip(activity: Activity, rng: random.Random) -> Optional[Tip]:
    if activity.hidden_gem:
        return Tip(text=rng.choice(HIDDEN_GEM_TIPS), source="Hidden gem")
    if (activity.rating or 0) >= 4.5 and activity.review_count > 100:
        return Tip(text=f"Consistently excellent with {activity.review_count}+ reviews", source="Reviews")
    tips = CATEGORY_TIPS.get(activity.category)
    if tips:
        return Tip(text=rng.choice(tips), source="Pro tip")
    return None


def urgency_for(activity: Activity, context: Context, config: WhyNowConfig = DEFAULT_WHY_NOW_CONFIG,
                now: Optional[datetime] = None) -> Optional[Urgency]:
    minutes = minutes_until_close(activity, context.hour)
    if minutes is not None and 0 < minutes <= config.closing_soon_minutes:
        expires = now + timedelta(minutes=minutes) if now is not None else None
        return Urgency(text=f"Closes in {minutes} minutes", expires_at=expires)

    weather = context.weather
    if (weather is not None
            and weather.precipitation_chance > config.rain_urgency_chance
            and weather.condition not in (WeatherCondition.RAINY, WeatherCondition.STORMY)
            and activity.category in (Category.NATURE, Category.LEISURE_ACTIVITY)):
        return Urgency(text="Rain expected later - go now")
    return None


# ----------------------------
# explain
# ----------------------------

def explain(activity: Activity, breakdown: ScoreBreakdown, context: Context,
            config: WhyNowConfig = DEFAULT_WHY_NOW_CONFIG, rng: Optional[random.Random] = None,
            now: Optional[datetime] = None) -> WhyNowReason:
    """
    Primary/secondary come from the components carrying both a reason and a
    positive contribution, strongest first. Always returns a primary line.
    """
    rng = rng or random.Random(activity.id)
    comps = breakdown.components()
    qualifying: List[Tuple[float, str]] = [
        (comps[c].contribution, c) for c in COMPONENTS
        if comps[c].reason and comps[c].contribution > 0
    ]
    qualifying.sort(key=lambda x: x[0], reverse=True)

    lines = [ReasonLine(category=COMPONENT_CATEGORY[c], text=comps[c].reason) for _, c in qualifying]
    if not lines:
        if activity.id in context.scheduled_ids:
            lines = [ReasonLine(category=WhyNowCategory.SCHEDULED, text="On your itinerary today")]
        else:
            lines = [ReasonLine(category=WhyNowCategory.SCHEDULED, text="Recommended for you")]

    tip = pick_tip(activity, rng) if config.include_tips else None
    urgency = urgency_for(activity, context, config, now) if config.include_urgency else None
    return WhyNowReason(primary=lines[0], secondary=lines[1] if len(lines) > 1 else None,
                        tip=tip, urgency=urgency)


def why_now_summary(reason: WhyNowReason) -> str:
    if reason.secondary:
        return f"{reason.primary.text} · {reason.secondary.text}"
    return reason.primary.text
