# brain_core/brain.py
from __future__ import annotations

import logging
import random
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from trip_brain.brain_core import combined, distance, preference, time_filter, weather, why_now
from trip_brain.brain_core.combined import CombinedScorerConfig, ScoreContext, ScoreInputs, ScoringMode
from trip_brain.brain_core.distance import DistanceConfig
from trip_brain.brain_core.preference import PreferenceScorerConfig
from trip_brain.brain_core.time_filter import TimeFilterConfig
from trip_brain.brain_core.weather import WeatherScorerConfig
from trip_brain.brain_core.why_now import WhyNowConfig
from trip_brain.brain_core.schema import (
    Activity, Category, Context, Coordinates, ProactiveMessage, RankedActivity, ScoreBreakdown,
    UserPreferences, WeatherContext,
)
from trip_brain.grafana.dashboard import ACTIVE_SESSIONS, ENRICHMENT_CACHE, RECOMMENDATIONS_SERVED
from trip_brain.tools.config import DEFAULT_RECOMMENDATION_COUNT, ENRICHMENT_CACHE_SECONDS, MINIMUM_SCORE
from trip_brain.tools.s3io import KeyValueStore
from trip_brain.triggers.engine import TriggerEngine

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

HIDDEN_GEM_SERENDIPITY = 0.8
DEFAULT_SERENDIPITY = 0.4


class TripBrainConfig(BaseModel):
    cache_seconds: float = ENRICHMENT_CACHE_SECONDS
    default_count: int = DEFAULT_RECOMMENDATION_COUNT
    minimum_score: float = MINIMUM_SCORE
    location_precision: int = 4
    distance_config: DistanceConfig = DistanceConfig()
    time_config: TimeFilterConfig = TimeFilterConfig()
    weather_config: WeatherScorerConfig = WeatherScorerConfig()
    preference_config: PreferenceScorerConfig = PreferenceScorerConfig()
    combined_config: CombinedScorerConfig = CombinedScorerConfig()
    why_now_config: WhyNowConfig = WhyNowConfig()


class EnrichedActivity(BaseModel):
    activity: Activity
    distance_meters: Optional[float] = None
    distance_text: Optional[str] = None
    walking_minutes: Optional[int] = None
    breakdown: ScoreBreakdown
    time_fit: time_filter.TimeAppropriateness
    weather_fit: weather.WeatherScore
    preference_fit: preference.PreferenceScoreResult
    tags: List[str] = []


class SerendipityResult(BaseModel):
    activity: RankedActivity
    reason: str
    serendipity_score: float


class CravingResult(BaseModel):
    query: str
    results: List[RankedActivity] = []
    total_matches: int = 0
    interpretation: str = ""


class ProgressStats(BaseModel):
    total: int
    completed: int
    skipped: int
    remaining: int
    percent_complete: int


# ----------------------------
# stateless scoring
# ----------------------------

def score_activity(activity: Activity, context: Context, preferences: Optional[UserPreferences],
                   config: TripBrainConfig = TripBrainConfig()) -> EnrichedActivity:
    """Run the four component models plus rating/serendipity and combine them. No hidden state."""
    d = distance.activity_distance(context.location, activity)
    dist_score = distance.score(d, config.distance_config)
    walk = distance.walking_minutes(d, config.distance_config) if d is not None else None

    t_fit = time_filter.appropriateness(activity, context.hour, config.time_config)
    w_fit = weather.score(activity, context.weather, config.weather_config)
    p_fit = preference.score(activity, preferences, config.preference_config)
    serendipity = HIDDEN_GEM_SERENDIPITY if activity.hidden_gem else DEFAULT_SERENDIPITY
    rating = activity.rating / 5.0 if activity.rating is not None else 0.5

    style = config.why_now_config.style
    moment = why_now.time_text(activity, context, style)
    reasons = {
        "time": moment.text if moment else (t_fit.reason if t_fit.score >= 0.6 else None),
        "distance": why_now.distance_text(d, walk, style) if d is not None and dist_score >= 0.5 else None,
        "preference": preference.preference_reason(p_fit),
        "serendipity": "Hidden gem discovery" if activity.hidden_gem else None,
        "rating": f"{activity.rating:.1f} stars" if (activity.rating or 0) >= 4.0 else None,
        "weather": w_fit.reason if context.weather is not None and w_fit.score > 0.5 else None,
    }
    inputs = ScoreInputs(time=t_fit.score, distance=dist_score, preference=p_fit.score,
                         serendipity=serendipity, rating=rating, weather=w_fit.score)
    sctx = ScoreContext(
        has_location=context.location is not None,
        has_weather=context.weather is not None,
        has_preferences=preferences is not None,
        preference_confidence=p_fit.confidence,
        is_hidden_gem=activity.hidden_gem,
        has_rating=activity.rating is not None,
    )
    breakdown = combined.combine(inputs, sctx, reasons, config.combined_config)

    tags = [activity.category.value]
    if activity.hidden_gem:
        tags.append("hidden-gem")
    if activity.is_favourited:
        tags.append("favourited")
    if activity.price_level is not None:
        tags.append(f"price-{activity.price_level}")

    return EnrichedActivity(
        activity=activity,
        distance_meters=d,
        distance_text=distance.format_distance(d, config.distance_config) if d is not None else None,
        walking_minutes=walk,
        breakdown=breakdown,
        time_fit=t_fit,
        weather_fit=w_fit,
        preference_fit=p_fit,
        tags=tags,
    )


# ----------------------------
# session
# ----------------------------

class TripBrain:
    """
    One traveller's session: today's activities, live context, progress and
    an enrichment cache. Not shared between users.
    """

    def __init__(self, activities: Iterable[Activity] = (), config: TripBrainConfig = TripBrainConfig(),
                 clock: Callable[[], float] = time.time, rng: Optional[random.Random] = None,
                 trigger_store: Optional[KeyValueStore] = None):
        self.config = config
        self._clock = clock
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        self._activities: List[Activity] = list(activities)
        self._location: Optional[Coordinates] = None
        self._weather: Optional[WeatherContext] = None
        self._preferences: Optional[UserPreferences] = None
        self._completed: set = set()
        self._skipped: Dict[str, Dict[str, object]] = {}
        self._cache: Dict[Tuple, Tuple[float, EnrichedActivity]] = {}
        self._generation = 0
        self._triggers = TriggerEngine(store=trigger_store, clock=clock)
        self._closed = False
        ACTIVE_SESSIONS.inc()

    # -- context updates --

    def _invalidate(self) -> None:
        # caller holds the lock; in-flight enrichments see the bump and skip their cache write
        self._generation += 1
        self._cache.clear()

    def load_day(self, activities: Iterable[Activity]) -> None:
        with self._lock:
            self._activities = list(activities)
            self._invalidate()

    def update_location(self, location: Optional[Coordinates]) -> None:
        with self._lock:
            self._location = location
            self._invalidate()

    def update_weather(self, weather_ctx: Optional[WeatherContext]) -> None:
        with self._lock:
            self._weather = weather_ctx
            self._invalidate()

    def update_preferences(self, prefs: Optional[UserPreferences]) -> None:
        with self._lock:
            self._preferences = prefs
            self._invalidate()

    # -- progress --

    def record_completion(self, activity_id: str) -> None:
        with self._lock:
            self._completed.add(activity_id)
            self._skipped.pop(activity_id, None)

    def record_skip(self, activity_id: str, reason: Optional[str] = None) -> None:
        with self._lock:
            self._skipped[activity_id] = {"reason": reason, "skipped_at": self._clock()}

    def undo_skip(self, activity_id: str) -> None:
        with self._lock:
            self._skipped.pop(activity_id, None)

    def undo_completion(self, activity_id: str) -> None:
        with self._lock:
            self._completed.discard(activity_id)

    def reset_progress(self) -> None:
        with self._lock:
            self._completed.clear()
            self._skipped.clear()
            self._invalidate()

    def context(self, hour: int, current_city: Optional[str] = None, day_number: Optional[int] = None) -> Context:
        return Context(
            hour=hour,
            location=self._location,
            weather=self._weather,
            completed_ids=frozenset(self._completed),
            skipped_ids=frozenset(self._skipped),
            scheduled_ids=frozenset(a.id for a in self._activities),
            current_city=current_city,
            day_number=day_number,
        )

    # -- enrichment --

    def _cache_key(self, activity: Activity, hour: int, mode: ScoringMode) -> Tuple:
        loc = self._location
        p = self.config.location_precision
        rounded = (round(loc.lat, p), round(loc.lng, p)) if loc else None
        return activity.id, rounded, int(hour) % 24, mode.value

    def enrich(self, activity: Activity, hour: int, mode: Optional[ScoringMode] = None) -> EnrichedActivity:
        cfg = self.config if mode is None else self.config.model_copy(
            update={"combined_config": self.config.combined_config.model_copy(update={"mode": mode})})
        now = self._clock()
        with self._lock:
            key = self._cache_key(activity, hour, cfg.combined_config.mode)
            hit = self._cache.get(key)
            if hit is not None and now - hit[0] < self.config.cache_seconds:
                ENRICHMENT_CACHE.labels(result="hit").inc()
                return hit[1]
            generation = self._generation
            ctx = self.context(hour)
            prefs = self._preferences
        ENRICHMENT_CACHE.labels(result="miss").inc()
        enriched = score_activity(activity, ctx, prefs, cfg)
        with self._lock:
            if self._generation == generation:
                self._cache[key] = (now, enriched)
        return enriched

    def _ranked(self, enriched: List[EnrichedActivity], hour: int) -> List[RankedActivity]:
        ctx = self.context(hour)
        items = [RankedActivity(activity=e.activity, breakdown=e.breakdown, distance_meters=e.distance_meters)
                 for e in enriched]
        ranked = combined.rank(items, self.config.combined_config.tie_breaker, self.config.combined_config.tie_epsilon)
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        return [r.model_copy(update={"why_now": why_now.explain(r.activity, r.breakdown, ctx,
                                                                  self.config.why_now_config, now=now)})
                for r in ranked]

    def _open_activities(self, include_completed: bool = False, include_skipped: bool = False) -> List[Activity]:
        out = []
        for a in self._activities:
            if not include_completed and a.id in self._completed:
                continue
            if not include_skipped and a.id in self._skipped:
                continue
            out.append(a)
        return out

    # -- recommendation surfaces --

    def recommendations(self, hour: int, count: Optional[int] = None, mode: str = "choice",
                        category: Optional[Category] = None, include_completed: bool = False,
                        include_skipped: bool = False, minimum_score: Optional[float] = None,
                        scoring_mode: Optional[ScoringMode] = None) -> List[RankedActivity]:
        """
        mode 'choice' keeps only time-appropriate activities, 'nearby' only those
        with a known distance, 'all' applies no extra filter.
        """
        count = self.config.default_count if count is None else count
        minimum = self.config.minimum_score if minimum_score is None else minimum_score
        pool = self._open_activities(include_completed, include_skipped)
        if category is not None:
            pool = [a for a in pool if a.category == category]

        enriched = [self.enrich(a, hour, scoring_mode) for a in pool]
        if mode == "choice":
            enriched = [e for e in enriched if e.time_fit.is_appropriate]
        elif mode == "nearby":
            enriched = [e for e in enriched if e.distance_meters is not None]
        enriched = [e for e in enriched if e.breakdown.final_score >= minimum]

        result = self._ranked(enriched, hour)[:max(0, count)]
        RECOMMENDATIONS_SERVED.labels(mode=mode).inc()
        logger.debug("recommendations(%s, hour=%s): %d of %d", mode, hour, len(result), len(pool))
        return result

    def search_craving(self, query: str, hour: int, limit: int = 5, max_distance: Optional[float] = None,
                       require_open: bool = False) -> CravingResult:
        q = (query or "").strip().lower()
        if not self._activities:
            return CravingResult(query=query, interpretation="No trip data loaded")
        matches = [
            a for a in self._open_activities()
            if q and (q in a.name.lower() or q in (a.description or "").lower()
                      or q in a.category.value or any(q in t.lower() for t in a.types))
        ]
        enriched = [self.enrich(a, hour) for a in matches]
        if max_distance is not None:
            enriched = [e for e in enriched if e.distance_meters is not None and e.distance_meters <= max_distance]
        if require_open:
            enriched = [e for e in enriched if e.activity.is_open is not False]
        ranked = self._ranked(enriched, hour)
        total = len(ranked)
        results = ranked[:max(0, limit)]
        if not results:
            interpretation = f'No matches found for "{query}"'
        elif len(results) == 1:
            interpretation = f'Found a great match for "{query}"'
        else:
            interpretation = f'Found {total} options for "{query}"'
        return CravingResult(query=query, results=results, total_matches=total, interpretation=interpretation)

    def serendipity(self, hour: int) -> Optional[SerendipityResult]:
        """Random pick among untouched hidden gems, else among anything not yet done."""
        available = self._open_activities()
        if not available:
            return None
        gems = [a for a in available if a.hidden_gem]
        if gems:
            pick, reason, s = self._rng.choice(gems), "A hidden gem the locals love", 0.9
        else:
            pick, reason, s = self._rng.choice(available), "Something different to try", 0.5
        ranked = self._ranked([self.enrich(pick, hour)], hour)[0]
        return SerendipityResult(activity=ranked, reason=reason, serendipity_score=s)

    def proactive_messages(self, hour: int, current_city: Optional[str] = None,
                           day_number: Optional[int] = None) -> List[ProactiveMessage]:
        candidates = self.recommendations(hour, count=len(self._activities), mode="all", minimum_score=0.0)
        return self._triggers.evaluate(self.context(hour, current_city, day_number), candidates)

    def dismiss_message(self, message: ProactiveMessage) -> ProactiveMessage:
        return self._triggers.dismiss(message)

    def stats(self) -> ProgressStats:
        ids = [a.id for a in self._activities]
        total = len(ids)
        completed = sum(1 for i in ids if i in self._completed)
        skipped = sum(1 for i in ids if i in self._skipped)
        return ProgressStats(
            total=total, completed=completed, skipped=skipped,
            remaining=total - completed - skipped,
            percent_complete=int(round(completed / total * 100)) if total else 0,
        )

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._cache.clear()
            self._activities = []
        ACTIVE_SESSIONS.dec()
