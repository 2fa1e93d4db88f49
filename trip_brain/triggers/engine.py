# triggers/engine.py
from __future__ import annotations

import logging
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel

from trip_brain.brain_core.schema import (
    Context, MessageAction, MessageType, Priority, PRIORITY_ORDER, ProactiveMessage, RankedActivity,
)
from trip_brain.grafana.dashboard import TRIGGERS_FIRED, TRIGGERS_SUPPRESSED
from trip_brain.tools.config import MAX_MESSAGES_PER_POLL
from trip_brain.tools.s3io import InMemoryKeyValueStore, KeyValueStore

logger = logging.getLogger(__name__)

DISMISSED_PREFIX = "dismissed"
SUGGESTED_PREFIX = "suggested"


class CooldownTracker:
    """Last-fired timestamps for one session's triggers."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last: Dict[str, float] = {}
        self._lock = threading.Lock()

    def remaining(self, name: str, cooldown_seconds: float) -> float:
        with self._lock:
            last = self._last.get(name)
        if last is None:
            return 0.0
        return max(0.0, cooldown_seconds - (self._clock() - last))

    def active(self, name: str, cooldown_seconds: float) -> bool:
        return self.remaining(name, cooldown_seconds) > 0

    def mark(self, name: str) -> None:
        with self._lock:
            self._last[name] = self._clock()

    def reset(self, name: Optional[str] = None) -> None:
        with self._lock:
            if name is None:
                self._last.clear()
            else:
                self._last.pop(name, None)


class TriggerRuntime:
    """Per-session state shared by a set of triggers: clock, cooldowns and the dismissal store."""

    def __init__(self, store: Optional[KeyValueStore] = None, clock: Callable[[], float] = time.time):
        self.clock = clock
        self.cooldowns = CooldownTracker(clock)
        self.store = store if store is not None else InMemoryKeyValueStore(clock)

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc)

    def is_dismissed(self, subject_key: str) -> bool:
        return self.store.contains(f"{DISMISSED_PREFIX}/{subject_key}")

    def dismiss(self, subject_key: str) -> None:
        self.store.put(f"{DISMISSED_PREFIX}/{subject_key}", {"dismissed_at": self.clock()})

    def clear_dismissal(self, subject_key: str) -> None:
        self.store.delete(f"{DISMISSED_PREFIX}/{subject_key}")

    def recently_suggested(self, subject_key: str) -> bool:
        return self.store.contains(f"{SUGGESTED_PREFIX}/{subject_key}")

    def record_suggestion(self, subject_key: str, ttl_seconds: float) -> None:
        self.store.put(f"{SUGGESTED_PREFIX}/{subject_key}", {"suggested_at": self.clock()}, ttl_seconds)


class MessageDraft(BaseModel):
    message: str
    detail: Optional[str] = None
    priority: Optional[Priority] = None
    related: Optional[RankedActivity] = None
    action: Optional[MessageAction] = None
    expires_in_seconds: float = 2 * 60 * 60
    subject_key: Optional[str] = None


class Trigger:
    """
    A single proactive rule. `condition` is false while the trigger is cooling
    down or its subject was dismissed; `generate_message` starts the cooldown.
    """
    name = "trigger"
    type = MessageType.RECOMMENDATION
    priority = Priority.LOW
    cooldown_seconds: float = 30 * 60

    def __init__(self, runtime: TriggerRuntime):
        self.runtime = runtime

    def subject_key(self, context: Context, candidates: Sequence[RankedActivity]) -> str:
        return self.name

    def matches(self, context: Context, candidates: Sequence[RankedActivity]) -> bool:
        raise NotImplementedError

    def draft(self, context: Context, candidates: Sequence[RankedActivity]) -> MessageDraft:
        raise NotImplementedError

    def condition(self, context: Context, candidates: Sequence[RankedActivity]) -> bool:
        if self.runtime.cooldowns.active(self.name, self.cooldown_seconds):
            TRIGGERS_SUPPRESSED.labels(trigger=self.name, reason="cooldown").inc()
            return False
        if self.runtime.is_dismissed(self.subject_key(context, candidates)):
            TRIGGERS_SUPPRESSED.labels(trigger=self.name, reason="dismissed").inc()
            return False
        return self.matches(context, candidates)

    def generate_message(self, context: Context, candidates: Sequence[RankedActivity]) -> ProactiveMessage:
        self.runtime.cooldowns.mark(self.name)
        d = self.draft(context, candidates)
        now = self.runtime.now()
        return ProactiveMessage(
            id=f"{self.name}-{int(now.timestamp())}-{uuid.uuid4().hex[:6]}",
            type=self.type,
            message=d.message,
            detail=d.detail,
            priority=d.priority or self.priority,
            related_activity_id=d.related.activity.id if d.related else None,
            action=d.action,
            created_at=now,
            expires_at=now + timedelta(seconds=d.expires_in_seconds),
            trigger=self.name,
            subject_key=d.subject_key or self.subject_key(context, candidates),
        )


def view_action(label: str, item: Optional[RankedActivity]) -> Optional[MessageAction]:
    if item is None:
        return None
    return MessageAction(label=label, type="view", payload=item.activity.id)


class TriggerEngineConfig(BaseModel):
    max_messages_per_poll: int = MAX_MESSAGES_PER_POLL


class TriggerEngine:
    """
    Polls a session's triggers against the latest context. One engine per user
    session; nothing here is shared across sessions.
    """

    def __init__(self, triggers_factory: Optional[Callable[[TriggerRuntime], List[Trigger]]] = None,
                 store: Optional[KeyValueStore] = None, clock: Callable[[], float] = time.time,
                 config: TriggerEngineConfig = TriggerEngineConfig()):
        self.runtime = TriggerRuntime(store=store, clock=clock)
        self.config = config
        if triggers_factory is None:
            from trip_brain.triggers.weather_triggers import weather_triggers
            from trip_brain.triggers.restaurant_triggers import restaurant_triggers
            from trip_brain.triggers.activity_triggers import activity_triggers
            self.triggers = (weather_triggers(self.runtime) + restaurant_triggers(self.runtime)
                             + activity_triggers(self.runtime))
        else:
            self.triggers = list(triggers_factory(self.runtime))

    def evaluate(self, context: Context, candidates: Sequence[RankedActivity]) -> List[ProactiveMessage]:
        messages: List[ProactiveMessage] = []
        ordered = sorted(self.triggers, key=lambda t: PRIORITY_ORDER[t.priority])
        for trig in ordered:
            if len(messages) >= self.config.max_messages_per_poll:
                break
            if trig.condition(context, candidates):
                msg = trig.generate_message(context, candidates)
                TRIGGERS_FIRED.labels(trigger=trig.name).inc()
                logger.info("Trigger %s fired: %s", trig.name, msg.message)
                messages.append(msg)
        messages.sort(key=lambda m: PRIORITY_ORDER[m.priority])
        return messages

    def dismiss(self, message: ProactiveMessage) -> ProactiveMessage:
        key = message.subject_key or message.trigger
        if key:
            self.runtime.dismiss(key)
        return message.model_copy(update={"dismissed": True})

    def clear_dismissal(self, subject_key: str) -> None:
        self.runtime.clear_dismissal(subject_key)

    def reset_cooldowns(self) -> None:
        self.runtime.cooldowns.reset()
