# brain_core/weather.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from pydantic import BaseModel

from trip_brain.brain_core.schema import Activity, WeatherCondition, WeatherContext
from trip_brain.tools.helper import _clamp

logger = logging.getLogger(__name__)

W = WeatherCondition


class WeatherScorerConfig(BaseModel):
    neutral_score: float = 0.5
    perfect_bonus: float = 0.3
    poor_penalty: float = 0.3
    cold_below: float = 10.0
    hot_above: float = 30.0
    precip_threshold: float = 40.0


DEFAULT_WEATHER_CONFIG = WeatherScorerConfig()


class WeatherScore(BaseModel):
    score: float
    multiplier: float = 1.0
    reason: str
    tip: Optional[str] = None
    is_appropriate: bool = True
    urgency: Optional[str] = None


def temperature_comfort(temp: float, config: WeatherScorerConfig = DEFAULT_WEATHER_CONFIG) -> str:
    if temp < config.cold_below:
        return "cold"
    if temp > config.hot_above:
        return "hot"
    return "comfortable"


def is_outdoor_friendly(weather: Optional[WeatherContext]) -> bool:
    if weather is None:
        return True
    if weather.condition in (W.RAINY, W.STORMY, W.SNOWY):
        return False
    return weather.precipitation_chance < 40 and 5 < weather.temperature_celsius < 38


def score(activity: Activity, weather: Optional[WeatherContext],
          config: WeatherScorerConfig = DEFAULT_WEATHER_CONFIG) -> WeatherScore:
    """
    Rule cascade over the activity's capability set. Later rules may move the
    multiplier but an is_appropriate=False verdict is never flipped back.
    """
    if weather is None:
        return WeatherScore(score=config.neutral_score, multiplier=1.0,
                            reason="Weather conditions unknown", is_appropriate=True)

    outdoor = activity.has("outdoor")
    indoor = activity.has("indoor")
    cooling = activity.has("cooling")
    warming = activity.has("warming")
    comfort = temperature_comfort(weather.temperature_celsius, config)
    cond = weather.condition

    s = config.neutral_score
    mult = 1.0
    reason = ""
    tip = None
    urgency = None
    appropriate = True

    # 1) active rain / storm  2) rain likely
    raining = cond in (W.RAINY, W.STORMY)
    if raining:
        if outdoor:
            s -= config.poor_penalty
            mult = 0.6
            reason = "Not ideal for rainy weather"
            appropriate = False
            urgency = "Consider indoor alternatives"
        elif indoor:
            s += config.perfect_bonus
            mult = 1.3
            reason = "Great choice to stay dry"
            tip = "Perfect spot to wait out the rain"
    elif weather.precipitation_chance >= config.precip_threshold and outdoor:
        s -= config.poor_penalty * 0.5
        mult = 0.85
        reason = "Rain may be coming"
        tip = "Check the forecast - rain possible"
        urgency = f"{int(round(weather.precipitation_chance))}% chance of rain"

    # 3) clear skies
    if weather.is_clear and outdoor:
        if comfort == "comfortable":
            s += config.perfect_bonus
            mult = 1.4
            reason = "Perfect weather for this"
            tip = "Ideal conditions - enjoy!"
        elif comfort == "hot":
            s += config.perfect_bonus * 0.3
            mult = 1.1
            reason = "Good weather, might be warm"
            tip = "Bring water and sunscreen"

    # 4) heat
    if comfort == "hot":
        if cooling:
            s += config.perfect_bonus
            mult = max(mult, 1.3)
            reason = "Great spot to cool down"
            tip = "A refreshing escape from the heat"
        elif outdoor:
            s -= config.poor_penalty * 0.4
            mult = min(mult, 0.9)
            reason = reason or "May be quite warm outside"
            tip = "Seek shade and stay hydrated"

    # 5) cold
    if comfort == "cold":
        if warming:
            s += config.perfect_bonus
            mult = max(mult, 1.3)
            reason = "Cozy spot to warm up"
            tip = "A perfect place to get cozy"
        elif outdoor:
            s -= config.poor_penalty * 0.5
            mult = min(mult, 0.85)
            reason = reason or "May be quite cold outside"
            tip = "Dress in layers"

    # 6) storm
    if cond == W.STORMY:
        if outdoor:
            s -= config.poor_penalty
            mult = 0.4
            reason = "Not safe during storms"
            appropriate = False
            urgency = "Seek shelter - storms expected"
        elif indoor:
            s += config.perfect_bonus
            mult = 1.5
            reason = "Safe and cozy inside"

    # 7) fog
    if cond == W.FOGGY and (activity.has("viewpoint") or activity.has("scenic")):
        s -= config.poor_penalty * 0.7
        mult = 0.7
        reason = "Limited visibility in fog"
        tip = "Views may be obscured"

    # 8) snow
    if cond == W.SNOWY:
        if outdoor:
            s -= config.poor_penalty * 0.6
            mult = 0.75
            reason = "Snowy conditions outside"
            tip = "Watch for slippery surfaces"
        elif indoor:
            s += config.perfect_bonus * 0.5
            mult = 1.2
            reason = "Warm inside while it snows"

    if not reason:
        reason = "Pleasant weather" if comfort == "comfortable" and not raining else "Weather considered"

    return WeatherScore(score=_clamp(s), multiplier=mult, reason=reason, tip=tip,
                        is_appropriate=appropriate, urgency=urgency)


def filter_by_weather(activities: Iterable[Activity], weather: Optional[WeatherContext],
                      config: WeatherScorerConfig = DEFAULT_WEATHER_CONFIG) -> List[Activity]:
    if weather is None:
        return list(activities)
    return [a for a in activities if score(a, weather, config).is_appropriate]


def weather_boosted(activities: Iterable[Activity], weather: Optional[WeatherContext],
                    config: WeatherScorerConfig = DEFAULT_WEATHER_CONFIG) -> List[Activity]:
    if weather is None:
        return []
    return [a for a in activities if score(a, weather, config).score > 0.6]
