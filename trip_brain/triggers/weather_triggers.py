# triggers/weather_triggers.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from pydantic import BaseModel

from trip_brain.brain_core.schema import (
    Category, Context, MessageType, Priority, RankedActivity, WeatherCondition, WeatherContext,
)
from trip_brain.triggers.engine import MessageDraft, Trigger, TriggerRuntime, view_action


class WeatherTriggerConfig(BaseModel):
    min_precip_chance: float = 50.0
    heat_warning_temp: float = 32.0
    cooldown_seconds: float = 30 * 60
    golden_hour_minutes: int = 45
    golden_hour_earliest: int = 15
    perfect_temp_min: float = 18.0
    perfect_temp_max: float = 28.0


DEFAULT_WEATHER_TRIGGER_CONFIG = WeatherTriggerConfig()


def minutes_until_sunset(w: WeatherContext, now: datetime) -> Optional[int]:
    if w.sunset is None:
        return None
    sunset = w.sunset
    if sunset.tzinfo is None:
        sunset = sunset.replace(tzinfo=timezone.utc)
    return int((sunset - now).total_seconds() // 60)


def _first(candidates: Sequence[RankedActivity], pred) -> Optional[RankedActivity]:
    for c in candidates:
        if pred(c):
            return c
    return None


class RainIncomingTrigger(Trigger):
    name = "rain_incoming"
    type = MessageType.WEATHER_ALERT
    priority = Priority.HIGH

    def __init__(self, runtime: TriggerRuntime, config: WeatherTriggerConfig = DEFAULT_WEATHER_TRIGGER_CONFIG):
        super().__init__(runtime)
        self.config = config
        self.cooldown_seconds = config.cooldown_seconds

    def matches(self, context: Context, candidates: Sequence[RankedActivity]) -> bool:
        w = context.weather
        if w is None or w.precipitation_chance < self.config.min_precip_chance:
            return False
        return w.condition not in (WeatherCondition.RAINY, WeatherCondition.STORMY)

    def draft(self, context: Context, candidates: Sequence[RankedActivity]) -> MessageDraft:
        w = context.weather
        indoor = _first(candidates, lambda c: c.activity.has("indoor"))
        return MessageDraft(
            message=f"Rain likely in the next few hours ({int(round(w.precipitation_chance))}% chance)",
            detail=(f"{indoor.activity.name} is a great indoor option nearby" if indoor
                    else "Consider moving outdoor plans earlier"),
            priority=Priority.MEDIUM,
            related=indoor,
            action=view_action("View indoor option", indoor),
            expires_in_seconds=2 * 60 * 60,
        )


class PerfectWeatherTrigger(Trigger):
    name = "perfect_weather"
    type = MessageType.RECOMMENDATION
    priority = Priority.MEDIUM

    def __init__(self, runtime: TriggerRuntime, config: WeatherTriggerConfig = DEFAULT_WEATHER_TRIGGER_CONFIG):
        super().__init__(runtime)
        self.config = config
        self.cooldown_seconds = config.cooldown_seconds * 2

    def matches(self, context: Context, candidates: Sequence[RankedActivity]) -> bool:
        w = context.weather
        if w is None or not w.is_clear:
            return False
        if not (self.config.perfect_temp_min <= w.temperature_celsius <= self.config.perfect_temp_max):
            return False
        return _first(candidates, lambda c: c.activity.has("outdoor")) is not None

    def draft(self, context: Context, candidates: Sequence[RankedActivity]) -> MessageDraft:
        w = context.weather
        outdoor = _first(candidates, lambda c: c.activity.has("outdoor"))
        desc = w.description or w.condition.value.replace("_", " ")
        return MessageDraft(
            message=f"Perfect weather for outdoor activities ({int(round(w.temperature_celsius))}°C, {desc})",
            detail=(f"{outdoor.activity.name} would be ideal right now" if outdoor
                    else "Great conditions for exploring outside"),
            priority=Priority.LOW,
            related=outdoor,
            action=view_action("View suggestion", outdoor),
            expires_in_seconds=3 * 60 * 60,
        )


class HeatWarningTrigger(Trigger):
    name = "heat_warning"
    type = MessageType.WEATHER_ALERT
    priority = Priority.MEDIUM

    def __init__(self, runtime: TriggerRuntime, config: WeatherTriggerConfig = DEFAULT_WEATHER_TRIGGER_CONFIG):
        super().__init__(runtime)
        self.config = config
        self.cooldown_seconds = config.cooldown_seconds * 2

    def matches(self, context: Context, candidates: Sequence[RankedActivity]) -> bool:
        w = context.weather
        return w is not None and w.temperature_celsius >= self.config.heat_warning_temp

    def draft(self, context: Context, candidates: Sequence[RankedActivity]) -> MessageDraft:
        w = context.weather
        cool = _first(candidates, lambda c: c.activity.has("cooling") or c.activity.has("indoor")
                      or c.activity.category == Category.WELLNESS)
        return MessageDraft(
            message=f"It's quite hot out there ({int(round(w.temperature_celsius))}°C)",
            detail=(f"{cool.activity.name} would be a refreshing break" if cool
                    else "Stay hydrated and seek shade when you can"),
            related=cool,
            action=view_action("Cool down here", cool),
            expires_in_seconds=4 * 60 * 60,
        )


class GoldenHourTrigger(Trigger):
    name = "golden_hour"
    type = MessageType.TIME_TRIGGER
    priority = Priority.MEDIUM
    cooldown_seconds = 60 * 60

    def __init__(self, runtime: TriggerRuntime, config: WeatherTriggerConfig = DEFAULT_WEATHER_TRIGGER_CONFIG):
        super().__init__(runtime)
        self.config = config

    def matches(self, context: Context, candidates: Sequence[RankedActivity]) -> bool:
        w = context.weather
        if w is None or not w.is_daylight or not w.is_clear:
            return False
        minutes = minutes_until_sunset(w, self.runtime.now())
        if minutes is None or not (self.config.golden_hour_earliest <= minutes <= self.config.golden_hour_minutes):
            return False
        return _first(candidates, lambda c: c.activity.has("golden_hour")) is not None

    def draft(self, context: Context, candidates: Sequence[RankedActivity]) -> MessageDraft:
        minutes = minutes_until_sunset(context.weather, self.runtime.now()) or 30
        spot = _first(candidates, lambda c: c.activity.has("golden_hour"))
        return MessageDraft(
            message=f"Golden hour in about {minutes} minutes",
            detail=(f"The light at {spot.activity.name} will be magical" if spot
                    else "Great time for photos anywhere with a view"),
            related=spot,
            action=view_action("Catch the light", spot),
            expires_in_seconds=max(60, minutes * 60),
        )


class StormWarningTrigger(Trigger):
    name = "storm_warning"
    type = MessageType.WEATHER_ALERT
    priority = Priority.HIGH
    cooldown_seconds = 60 * 60

    def matches(self, context: Context, candidates: Sequence[RankedActivity]) -> bool:
        return context.weather is not None and context.weather.condition == WeatherCondition.STORMY

    def draft(self, context: Context, candidates: Sequence[RankedActivity]) -> MessageDraft:
        shelter = _first(candidates, lambda c: c.activity.has("indoor"))
        return MessageDraft(
            message="Storms in the area - best to stay sheltered",
            detail=(f"{shelter.activity.name} is safe and nearby" if shelter
                    else "Find indoor shelter until it passes"),
            priority=Priority.HIGH,
            related=shelter,
            action=view_action("Find shelter", shelter),
            expires_in_seconds=2 * 60 * 60,
        )


def weather_triggers(runtime: TriggerRuntime,
                     config: WeatherTriggerConfig = DEFAULT_WEATHER_TRIGGER_CONFIG) -> List[Trigger]:
    return [
        RainIncomingTrigger(runtime, config),
        PerfectWeatherTrigger(runtime, config),
        HeatWarningTrigger(runtime, config),
        GoldenHourTrigger(runtime, config),
        StormWarningTrigger(runtime),
    ]
