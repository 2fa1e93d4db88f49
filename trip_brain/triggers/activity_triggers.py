# triggers/activity_triggers.py
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel

from trip_brain.brain_core.schema import Activity, Context, MessageAction, MessageType, Priority, RankedActivity
from trip_brain.tools.helper import _any_type_contains
from trip_brain.triggers.engine import MessageDraft, Trigger, TriggerRuntime

DAY_SECONDS = 24 * 60 * 60


class ActivityTriggerConfig(BaseModel):
    cooldown_seconds: float = 6 * 60 * 60
    morning_hour: int = 8
    morning_window_hours: int = 2
    popular_score: float = 0.7
    # venues that usually sell tickets ahead
    bookable_words: Tuple[str, ...] = (
        "museum", "gallery", "landmark", "monument", "attraction", "experience", "tour",
        "viewpoint", "castle", "palace", "church", "temple",
    )


DEFAULT_ACTIVITY_TRIGGER_CONFIG = ActivityTriggerConfig()


def is_bookable(activity: Activity, config: ActivityTriggerConfig = DEFAULT_ACTIVITY_TRIGGER_CONFIG) -> bool:
    return _any_type_contains([activity.category.value] + list(activity.types), config.bookable_words)


def _book_action(item: RankedActivity) -> MessageAction:
    return MessageAction(label="Book tickets", type="book", payload=item.activity.id)


class PopularAttractionTrigger(Trigger):
    """Nudges advance booking for a highly ranked bookable attraction, once per venue per cooldown."""
    name = "popular_attraction"
    type = MessageType.RECOMMENDATION
    priority = Priority.LOW

    def __init__(self, runtime: TriggerRuntime, config: ActivityTriggerConfig = DEFAULT_ACTIVITY_TRIGGER_CONFIG):
        super().__init__(runtime)
        self.config = config
        self.cooldown_seconds = config.cooldown_seconds

    def venue_key(self, city: str, item: RankedActivity) -> str:
        return f"attraction-{city}-{item.activity.id}"

    def _pick(self, context: Context, candidates: Sequence[RankedActivity]) -> Optional[RankedActivity]:
        if not context.current_city:
            return None
        for c in candidates:
            if not is_bookable(c.activity, self.config) or c.score < self.config.popular_score:
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
        return self._pick(context, candidates) is not None

    def draft(self, context: Context, candidates: Sequence[RankedActivity]) -> MessageDraft:
        pick = self._pick(context, candidates)
        if pick is None:
            return MessageDraft(message=f"Tours available in {context.current_city}",
                                detail="Skip the lines with advance booking",
                                expires_in_seconds=4 * 60 * 60)
        key = self.venue_key(context.current_city, pick)
        self.runtime.record_suggestion(key, self.config.cooldown_seconds)
        return MessageDraft(
            message=f"{pick.activity.name} is popular",
            detail="Consider booking in advance to skip lines",
            related=pick,
            action=_book_action(pick),
            expires_in_seconds=6 * 60 * 60,
            subject_key=key,
        )


class MorningBookingTrigger(Trigger):
    """Early in the day, counts today's bookable attractions. At most once per city per day."""
    name = "morning_booking"
    type = MessageType.RECOMMENDATION
    priority = Priority.LOW

    def __init__(self, runtime: TriggerRuntime, config: ActivityTriggerConfig = DEFAULT_ACTIVITY_TRIGGER_CONFIG):
        super().__init__(runtime)
        self.config = config
        self.cooldown_seconds = config.cooldown_seconds

    def day_key(self, context: Context) -> str:
        day = context.day_number if context.day_number is not None else self.runtime.now().date().isoformat()
        return f"morning-{context.current_city}-{day}"

    def subject_key(self, context: Context, candidates: Sequence[RankedActivity]) -> str:
        return self.day_key(context) if context.current_city else self.name

    def _bookable(self, candidates: Sequence[RankedActivity]) -> List[RankedActivity]:
        return [c for c in candidates if is_bookable(c.activity, self.config)]

    def matches(self, context: Context, candidates: Sequence[RankedActivity]) -> bool:
        if not context.current_city:
            return False
        start = self.config.morning_hour
        if not start <= context.hour <= start + self.config.morning_window_hours:
            return False
        if not self._bookable(candidates):
            return False
        return not self.runtime.recently_suggested(self.day_key(context))

    def draft(self, context: Context, candidates: Sequence[RankedActivity]) -> MessageDraft:
        key = self.day_key(context)
        self.runtime.record_suggestion(key, DAY_SECONDS)
        count = len(self._bookable(candidates))
        return MessageDraft(
            message=f"{count} attraction{'s' if count != 1 else ''} today",
            detail="Book tickets online to save time",
            action=MessageAction(label="Browse options", type="view", payload=context.current_city),
            expires_in_seconds=8 * 60 * 60,
            subject_key=key,
        )


def activity_triggers(runtime: TriggerRuntime,
                      config: ActivityTriggerConfig = DEFAULT_ACTIVITY_TRIGGER_CONFIG) -> List[Trigger]:
    return [PopularAttractionTrigger(runtime, config), MorningBookingTrigger(runtime, config)]
