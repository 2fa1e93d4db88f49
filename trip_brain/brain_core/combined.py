# brain_core/combined.py
from __future__ import annotations

import functools
import logging
import time
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, field_validator

from trip_brain.brain_core.schema import (
    COMPONENTS, Activity, RankedActivity, ScoreBreakdown, ScoreComponent,
)
from trip_brain.grafana.dashboard import RANKING_DURATION, SCORING_RUNS
from trip_brain.tools.config import MINIMUM_SCORE
from trip_brain.tools.helper import _clamp

logger = logging.getLogger(__name__)


class ScoringMode(str, Enum):
    BALANCED = "balanced"
    NEARBY = "nearby"
    PERSONALIZED = "personalized"
    SPONTANEOUS = "spontaneous"
    QUALITY = "quality"
    TIME_SENSITIVE = "time_sensitive"
    EXPLORER = "explorer"
    CUSTOM = "custom"


class TieBreaker(str, Enum):
    DISTANCE = "distance"
    RATING = "rating"
    SERENDIPITY = "serendipity"


class ScoringWeights(BaseModel):
    time: float
    distance: float
    preference: float
    serendipity: float
    rating: float
    weather: float

    def total(self) -> float:
        return sum(getattr(self, c) for c in COMPONENTS)


MODE_WEIGHTS: Dict[ScoringMode, ScoringWeights] = {
    ScoringMode.BALANCED: ScoringWeights(time=0.20, distance=0.25, preference=0.25, serendipity=0.10, rating=0.10, weather=0.10),
    ScoringMode.NEARBY: ScoringWeights(time=0.15, distance=0.40, preference=0.15, serendipity=0.10, rating=0.10, weather=0.10),
    ScoringMode.PERSONALIZED: ScoringWeights(time=0.15, distance=0.15, preference=0.40, serendipity=0.10, rating=0.10, weather=0.10),
    ScoringMode.SPONTANEOUS: ScoringWeights(time=0.15, distance=0.15, preference=0.15, serendipity=0.35, rating=0.10, weather=0.10),
    ScoringMode.QUALITY: ScoringWeights(time=0.15, distance=0.15, preference=0.20, serendipity=0.05, rating=0.35, weather=0.10),
    ScoringMode.TIME_SENSITIVE: ScoringWeights(time=0.40, distance=0.20, preference=0.15, serendipity=0.05, rating=0.10, weather=0.10),
    ScoringMode.EXPLORER: ScoringWeights(time=0.15, distance=0.20, preference=0.20, serendipity=0.20, rating=0.15, weather=0.10),
}

MODE_DESCRIPTIONS: Dict[ScoringMode, Tuple[str, str]] = {
    ScoringMode.BALANCED: ("Balanced", "A bit of everything: close, timely and to your taste"),
    ScoringMode.NEARBY: ("Nearby", "What is closest to you right now"),
    ScoringMode.PERSONALIZED: ("For you", "Picked around your interests"),
    ScoringMode.SPONTANEOUS: ("Surprise me", "Hidden gems and unexpected finds"),
    ScoringMode.QUALITY: ("Top rated", "The best-reviewed places around"),
    ScoringMode.TIME_SENSITIVE: ("Right now", "Places that are best at this hour"),
    ScoringMode.EXPLORER: ("Explorer", "Mix of discovery and highlights"),
    ScoringMode.CUSTOM: ("Custom", "Your own weighting"),
}


class CombinedScorerConfig(BaseModel):
    mode: ScoringMode = ScoringMode.BALANCED
    custom_weights: Optional[ScoringWeights] = None
    minimum_score: float = MINIMUM_SCORE
    hidden_gem_boost: float = 0.1
    missing_data_penalty: float = 0.1
    normalize_weights: bool = True
    tie_breaker: TieBreaker = TieBreaker.DISTANCE
    tie_epsilon: float = 0.01

    @field_validator("mode", mode="before")
    @classmethod
    def _known_mode(cls, v):
        try:
            return ScoringMode(v)
        except ValueError:
            logger.warning("Unknown scoring mode %r, using balanced", v)
            return ScoringMode.BALANCED


DEFAULT_COMBINED_CONFIG = CombinedScorerConfig()


class ScoreInputs(BaseModel):
    time: float = 0.5
    distance: float = 0.5
    preference: float = 0.5
    serendipity: float = 0.5
    rating: float = 0.5
    weather: float = 0.5


class ScoreContext(BaseModel):
    has_location: bool = False
    has_weather: bool = False
    has_preferences: bool = False
    preference_confidence: float = 0.0
    is_hidden_gem: bool = False
    has_rating: bool = False


# ----------------------------
# 1) weights
# ----------------------------

def normalize_weights(weights: ScoringWeights) -> ScoringWeights:
    vals = {c: max(0.0, getattr(weights, c)) for c in COMPONENTS}
    total = sum(vals.values())
    if total <= 0:
        return MODE_WEIGHTS[ScoringMode.BALANCED]
    return ScoringWeights(**{c: v / total for c, v in vals.items()})


def weights_for_mode(mode, custom: Optional[ScoringWeights] = None) -> ScoringWeights:
    """Unknown modes and a custom mode without weights fall back to balanced."""
    try:
        mode = ScoringMode(mode)
    except ValueError:
        logger.warning("Unknown scoring mode %r, using balanced", mode)
        return MODE_WEIGHTS[ScoringMode.BALANCED]
    if mode == ScoringMode.CUSTOM:
        return custom if custom is not None else MODE_WEIGHTS[ScoringMode.BALANCED]
    return MODE_WEIGHTS[mode]


def resolve_weights(config: CombinedScorerConfig) -> ScoringWeights:
    weights = weights_for_mode(config.mode, config.custom_weights)
    if config.normalize_weights:
        weights = normalize_weights(weights)
    elif abs(weights.total() - 1.0) > 1e-6:
        logger.warning("Weights for %s sum to %.3f, using balanced", config.mode, weights.total())
        weights = MODE_WEIGHTS[ScoringMode.BALANCED]
    return weights


# ----------------------------
# 2) combine
# ----------------------------

def confidence_for(context: ScoreContext) -> float:
    """Data completeness, independent of how high the score is."""
    c = 0.5
    if context.has_location:
        c += 0.2
    if context.has_weather:
        c += 0.1
    if context.has_preferences:
        c += 0.15 * _clamp(context.preference_confidence)
    if context.has_rating:
        c += 0.05
    return min(1.0, c)


def combine(inputs: ScoreInputs, context: ScoreContext,
            reasons: Optional[Dict[str, Optional[str]]] = None,
            config: CombinedScorerConfig = DEFAULT_COMBINED_CONFIG) -> ScoreBreakdown:
    reasons = reasons or {}
    weights = resolve_weights(config)

    values = {c: _clamp(float(getattr(inputs, c))) for c in COMPONENTS}
    if config.mode == ScoringMode.SPONTANEOUS and context.is_hidden_gem:
        values["serendipity"] = _clamp(values["serendipity"] + config.hidden_gem_boost)

    comps: Dict[str, ScoreComponent] = {}
    total = 0.0
    for c in COMPONENTS:
        w = getattr(weights, c)
        contribution = values[c] * w
        total += contribution
        comps[c] = ScoreComponent(value=values[c], weight=w, contribution=contribution, reason=reasons.get(c))

    if not context.has_location:
        total -= config.missing_data_penalty * weights.distance
    if not context.has_weather:
        total -= config.missing_data_penalty * weights.weather * 0.5

    SCORING_RUNS.labels(mode=ScoringMode(config.mode).value).inc()
    return ScoreBreakdown(**comps, final_score=_clamp(total), confidence=confidence_for(context))


# ----------------------------
# 3) ranking
# ----------------------------

def _tie_value(item: RankedActivity, tie_breaker: TieBreaker) -> float:
    return getattr(item.breakdown, TieBreaker(tie_breaker).value).value


def rank(items: Sequence[RankedActivity], tie_breaker: TieBreaker = TieBreaker.DISTANCE,
         epsilon: float = 0.01) -> List[RankedActivity]:
    """
    Sort by final score descending. Scores within epsilon are ordered by the
    tie-break component value descending; the sort is stable so equal items keep input order.
    Ranks are 1-based.
    """
    started = time.perf_counter()

    def _cmp(a: RankedActivity, b: RankedActivity) -> int:
        diff = b.score - a.score
        if abs(diff) > epsilon:
            return 1 if diff > 0 else -1
        ta, tb = _tie_value(a, tie_breaker), _tie_value(b, tie_breaker)
        if ta == tb:
            return 0
        return 1 if tb > ta else -1

    ordered = sorted(items, key=functools.cmp_to_key(_cmp))
    ranked = [it.model_copy(update={"rank": i + 1}) for i, it in enumerate(ordered)]
    RANKING_DURATION.observe(time.perf_counter() - started)
    return ranked


def filter_and_rank(items: Sequence[RankedActivity],
                    config: CombinedScorerConfig = DEFAULT_COMBINED_CONFIG,
                    limit: Optional[int] = None) -> List[RankedActivity]:
    kept = [it for it in items if it.score >= config.minimum_score]
    ranked = rank(kept, config.tie_breaker, config.tie_epsilon)
    return ranked if limit is None else ranked[:max(0, limit)]


# ----------------------------
# 4) inspection helpers
# ----------------------------

def dominant_factor(breakdown: ScoreBreakdown) -> Tuple[str, float]:
    comps = breakdown.components()
    name = max(COMPONENTS, key=lambda c: comps[c].contribution)
    return name, comps[name].contribution


def compare_scores(a: float, b: float, threshold: float = 0.05) -> int:
    """1 if a is meaningfully better, -1 if worse, 0 when within threshold."""
    if abs(a - b) < threshold:
        return 0
    return 1 if a > b else -1


def score_category(final_score: float) -> str:
    if final_score >= 0.8:
        return "excellent"
    if final_score >= 0.6:
        return "good"
    if final_score >= 0.4:
        return "fair"
    return "poor"


def meets_minimum(final_score: float, config: CombinedScorerConfig = DEFAULT_COMBINED_CONFIG) -> bool:
    return final_score >= config.minimum_score


def suggest_mode(has_location: bool, has_preferences: bool, hour: int,
                 wants_surprise: bool = False) -> ScoringMode:
    if wants_surprise:
        return ScoringMode.SPONTANEOUS
    if hour >= 21 or hour < 7:
        return ScoringMode.TIME_SENSITIVE
    if has_preferences and not has_location:
        return ScoringMode.PERSONALIZED
    if has_location and not has_preferences:
        return ScoringMode.NEARBY
    return ScoringMode.BALANCED


def mode_description(mode) -> Dict[str, str]:
    try:
        mode = ScoringMode(mode)
    except ValueError:
        mode = ScoringMode.BALANCED
    label, text = MODE_DESCRIPTIONS[mode]
    return {"mode": mode.value, "label": label, "description": text}


def batch_score(activities: Sequence[Activity],
                scorer: Callable[[Activity], ScoreBreakdown]) -> List[RankedActivity]:
    return [RankedActivity(activity=a, breakdown=scorer(a)) for a in activities]
