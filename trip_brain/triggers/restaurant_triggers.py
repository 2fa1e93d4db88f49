# triggers/restaurant_triggers.py
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from trip_brain.brain_core.schema import (
    Activity, Category, Context, MessageAction, MessageType, Priority, RankedActivity,
)
from trip_brain.tools.helper import _any_type_contains
from trip_brain.tools.keywords import DEFAULT_VENUE_KEYWORDS
from trip_brain.triggers.engine import MessageDraft, Trigger, TriggerRuntime


class RestaurantTriggerConfig(BaseModel):
    cooldown_seconds: float = 4 * 60 * 60
    hours_before_meal: int = 2
    meal_times: Dict[str, int] = {"breakfast": 9, "lunch": 13, "dinner": 19}
    popular_score: float = 0.75
    popular_rating: float = 4.3


DEFAULT_RESTAURANT_TRIGGER_CONFIG = RestaurantTriggerConfig()


def is_dining(activity: Activity) -> bool:
    if activity.category == Category.DINING:
        return True
    return _any_type_contains(activity.types, DEFAULT_VENUE_KEYWORDS.dining_words)


def meal_for_hour(hour: int) -> Optional[str]:
    if 7 <= hour < 11:
        return "breakfast"
    if 11 <= hour < 15:
        return "lunch"
    if 17 <= hour < 22:
        return "dinner"
    return None


def _reserve_action(item: RankedActivity) -> MessageAction:
    return MessageAction(label="Make reservation", type="book", payload=item.activity.id)


class MealTimeTrigger(Trigger):
    """Suggests a dining candidate shortly before the next meal, at most once per venue per cooldown."""
    name = "meal_time"
    type = MessageType.RECOMMENDATION
    priority = Priority.LOW

    def __init__(self, runtime: TriggerRuntime, config: RestaurantTriggerConfig = DEFAULT_RESTAURANT_TRIGGER_CONFIG):
        super().__init__(runtime)
        self.config = config
        self.cooldown_seconds = config.cooldown_seconds

    def upcoming_meal(self, hour: int) -> Optional[str]:
        for meal, meal_hour in self.config.meal_times.items():
            if 0 < meal_hour - hour <= self.config.hours_before_meal:
                return meal
        return None

    def venue_key(self, city: str, item: RankedActivity) -> str:
        return f"{city}-{item.activity.id}"

    def _pick(self, context: Context, candidates: Sequence[RankedActivity]) -> Optional[RankedActivity]:
        if not context.current_city:
            return None
        for c in candidates:
            if not is_dining(c.activity):
                continue
            key = self.venue_key(context.current_city, c)
            if self.runtime.recently_suggested(key) or self.runtime.is_dismissed(key):
                continue
            return c
        return None

    def subject_key(self, context: Context, candidates: Sequence[RankedActivity]) -> str:
        pick = self._pick(context, candidates)
        return self.venue_key(context.current_city, pick) if pick else self.name

    def matches(self, context: Context, candidates: Sequence[RankedActivity]) -> bool:
        if not context.current_city or self.upcoming_meal(context.hour) is None:
            return False
        return self._pick(context, candidates) is not None

    def draft(self, context: Context, candidates: Sequence[RankedActivity]) -> MessageDraft:
        meal = self.upcoming_meal(context.hour) or meal_for_hour(context.hour + 2) or "dinner"
        pick = self._pick(context, candidates)
        if pick is None:
            return MessageDraft(message=f"Time for {meal}?", detail="Find a great restaurant nearby",
                                expires_in_seconds=2 * 60 * 60)
        key = self.venue_key(context.current_city, pick)
        self.runtime.record_suggestion(key, self.config.cooldown_seconds)
        return MessageDraft(
            message=f"{pick.activity.name} for {meal}?",
            detail="Reserve a table in advance",
            related=pick,
            action=_reserve_action(pick),
            expires_in_seconds=3 * 60 * 60,
            subject_key=key,
        )


class PopularRestaurantTrigger(MealTimeTrigger):
    name = "popular_restaurant"

    def venue_key(self, city: str, item: RankedActivity) -> str:
        return f"popular-{city}-{item.activity.id}"

    def _popular(self, item: RankedActivity) -> bool:
        return item.score >= self.config.popular_score or (item.activity.rating or 0) >= self.config.popular_rating

    def _pick(self, context: Context, candidates: Sequence[RankedActivity]) -> Optional[RankedActivity]:
        popular = [c for c in candidates if self._popular(c)]
        return super()._pick(context, popular)

    def matches(self, context: Context, candidates: Sequence[RankedActivity]) -> bool:
        return bool(context.current_city) and self._pick(context, candidates) is not None

    def draft(self, context: Context, candidates: Sequence[RankedActivity]) -> MessageDraft:
        pick = self._pick(context, candidates)
        if pick is None:
            return MessageDraft(message="Popular restaurants nearby", detail="Book in advance for the best spots",
                                expires_in_seconds=4 * 60 * 60)
        key = self.venue_key(context.current_city, pick)
        self.runtime.record_suggestion(key, self.config.cooldown_seconds * 2)
        rating = f" ({pick.activity.rating:.1f}⭐)" if pick.activity.rating else ""
        return MessageDraft(
            message=f"{pick.activity.name}{rating}",
            detail="Popular spot - consider reserving ahead",
            related=pick,
            action=_reserve_action(pick),
            expires_in_seconds=6 * 60 * 60,
            subject_key=key,
        )


def restaurant_triggers(runtime: TriggerRuntime,
                        config: RestaurantTriggerConfig = DEFAULT_RESTAURANT_TRIGGER_CONFIG) -> List[Trigger]:
    return [MealTimeTrigger(runtime, config), PopularRestaurantTrigger(runtime, config)]
