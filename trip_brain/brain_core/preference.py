# brain_core/preference.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from trip_brain.brain_core.schema import (
    Activity, Avoidance, BudgetLevel, Category, DiningStyle, InterestCategories,
    PreferenceSource, SpecificInterest, UserPreferences,
)
from trip_brain.tools.helper import _clamp, normalize_token, search_text
from trip_brain.tools.keywords import DEFAULT_PREFERENCE_KEYWORDS, PreferenceKeywords

logger = logging.getLogger(__name__)

# category -> ((interest key, sub-weight), ...)
CATEGORY_INTEREST_MAP: Dict[Category, Tuple[Tuple[str, float], ...]] = {
    Category.DINING: (("food", 1.0),),
    Category.CULTURE: (("culture", 1.0),),
    Category.NATURE: (("nature", 0.8), ("adventure", 0.2)),
    Category.NIGHTLIFE: (("nightlife", 1.0),),
    Category.SHOPPING: (("shopping", 0.8), ("local_experiences", 0.2)),
    Category.LEISURE_ACTIVITY: (("adventure", 0.6), ("local_experiences", 0.4)),
    Category.WELLNESS: (("relaxation", 1.0),),
    Category.OTHER: (("local_experiences", 0.5),),
}

BUDGET_PRICE_MAP: Dict[BudgetLevel, Tuple[int, int, int]] = {
    # (min, max, ideal)
    BudgetLevel.BUDGET: (1, 2, 1),
    BudgetLevel.MODERATE: (1, 3, 2),
    BudgetLevel.COMFORT: (2, 4, 3),
    BudgetLevel.LUXURY: (3, 4, 4),
}


class PreferenceWeights(BaseModel):
    category: float = 0.35
    specific_interest: float = 0.25
    avoidance: float = 0.15
    hidden_gem: float = 0.10
    budget: float = 0.10
    dining_style: float = 0.05

    def normalized(self) -> "PreferenceWeights":
        vals = {k: max(0.0, v) for k, v in self.model_dump().items()}
        total = sum(vals.values())
        if total <= 0:
            return PreferenceWeights()
        return PreferenceWeights(**{k: v / total for k, v in vals.items()})


class PreferenceScorerConfig(BaseModel):
    weights: PreferenceWeights = PreferenceWeights()
    minimum_confidence: float = 0.3
    default_score: float = 0.5
    avoidance_penalty_multiplier: float = 0.5
    should_avoid_threshold: float = 0.7
    keywords: PreferenceKeywords = DEFAULT_PREFERENCE_KEYWORDS


DEFAULT_PREFERENCE_CONFIG = PreferenceScorerConfig()


class SubScore(BaseModel):
    score: float
    weight: float
    contribution: float
    matched: List[str] = []


class PreferenceBreakdown(BaseModel):
    category: SubScore
    specific_interest: SubScore
    avoidance: SubScore
    hidden_gem: SubScore
    budget: SubScore
    dining_style: SubScore


class PreferenceScoreResult(BaseModel):
    score: float
    confidence: float
    breakdown: PreferenceBreakdown
    reasons: List[str] = []
    is_strong_match: bool = False
    should_avoid: bool = False
    category_interest: float = 0.5


# ----------------------------
# sub-scores
# ----------------------------

def category_interest_score(category: Category, interests: InterestCategories) -> float:
    mapping = CATEGORY_INTEREST_MAP.get(category)
    if not mapping:
        return 0.5
    return _clamp(sum(interests.level(key) * w for key, w in mapping))


def match_interest_tag(text: str, tag: str,
                       keywords: PreferenceKeywords = DEFAULT_PREFERENCE_KEYWORDS) -> float:
    """Match strength of one interest tag against a search text: 1.0 direct, 0.8 synonym, 0.5 partial word, else 0."""
    tag_l = tag.lower().strip()
    if not tag_l:
        return 0.0
    if tag_l in text:
        return 1.0
    for kw in keywords.interest_synonyms.get(normalize_token(tag_l), ()):
        if kw in text:
            return 0.8
    for word in tag_l.split():
        if len(word) > 3 and word in text:
            return 0.5
    return 0.0


def specific_interest_score(text: str, interests: List[SpecificInterest],
                            keywords: PreferenceKeywords = DEFAULT_PREFERENCE_KEYWORDS) -> Tuple[float, List[str]]:
    if not interests:
        return 0.5, []
    matched, total_strength, total_conf = [], 0.0, 0.0
    for it in interests:
        strength = match_interest_tag(text, it.tag, keywords)
        if strength > 0:
            matched.append(it.tag)
            total_strength += strength * it.confidence
            total_conf += it.confidence
    if not matched or total_conf <= 0:
        return 0.5, matched
    return _clamp(0.5 + (total_strength / total_conf) * 0.5), matched


def match_avoidance(text: str, category: Category, avoidance: Avoidance,
                    keywords: PreferenceKeywords = DEFAULT_PREFERENCE_KEYWORDS) -> float:
    tag_l = avoidance.tag.lower().strip()
    if not tag_l:
        return 0.0
    if tag_l in text:
        return avoidance.strength
    for kw in keywords.avoidance_synonyms.get(normalize_token(tag_l), ()):
        if kw in text:
            return avoidance.strength * 0.8
    # category-level avoidance: the tag names the category itself
    if category.value == tag_l:
        return avoidance.strength
    return 0.0


def avoidance_penalty(text: str, category: Category, avoidances: List[Avoidance],
                      keywords: PreferenceKeywords = DEFAULT_PREFERENCE_KEYWORDS) -> Tuple[float, List[str]]:
    penalty, matched = 0.0, []
    for av in avoidances or []:
        strength = match_avoidance(text, category, av, keywords)
        if strength > 0:
            matched.append(av.tag)
            penalty = max(penalty, strength)
    return penalty, matched


def budget_score(price_level: Optional[int], budget: BudgetLevel) -> float:
    if price_level is None:
        return 0.5
    lo, hi, ideal = BUDGET_PRICE_MAP.get(budget, (1, 3, 2))
    p = int(round(_clamp(float(price_level), 0.0, 4.0)))
    if p == ideal:
        return 1.0
    if lo <= p <= hi:
        return 1.0 - abs(p - ideal) * 0.2
    dist = lo - p if p < lo else p - hi
    return max(0.2, 0.5 - dist * 0.15)


def dining_style_score(activity: Activity, style: DiningStyle, text: Optional[str] = None,
                       keywords: PreferenceKeywords = DEFAULT_PREFERENCE_KEYWORDS) -> float:
    if activity.category != Category.DINING:
        return 0.5
    if style == DiningStyle.MIXED:
        return 0.6
    text = text if text is not None else search_text(activity)
    for kw in keywords.dining_styles.get(style.value, ()):
        if kw in text:
            return 0.9
    p = activity.price_level
    if p is not None:
        if style == DiningStyle.FINE_DINING and p >= 3:
            return 0.8
        if style == DiningStyle.STREET_FOOD and p <= 1:
            return 0.8
        if style == DiningStyle.CASUAL and p <= 2:
            return 0.7
    return 0.5


def hidden_gem_score(activity: Activity, prefers_hidden_gems: bool) -> float:
    gem = activity.hidden_gem
    if prefers_hidden_gems:
        return 1.0 if gem else 0.4
    return 0.5 if gem else 0.6


# ----------------------------
# score
# ----------------------------

def _sub(score_: float, weight: float, matched: Optional[List[str]] = None) -> SubScore:
    return SubScore(score=score_, weight=weight, contribution=score_ * weight, matched=matched or [])


def neutral_result(config: PreferenceScorerConfig = DEFAULT_PREFERENCE_CONFIG) -> PreferenceScoreResult:
    w = config.weights.normalized()
    return PreferenceScoreResult(
        score=config.default_score,
        confidence=0.0,
        breakdown=PreferenceBreakdown(
            category=_sub(0.5, w.category),
            specific_interest=_sub(0.5, w.specific_interest),
            avoidance=_sub(1.0, w.avoidance),
            hidden_gem=_sub(0.5, w.hidden_gem),
            budget=_sub(0.5, w.budget),
            dining_style=_sub(0.5, w.dining_style),
        ),
        reasons=["No preference data available"],
    )


def score(activity: Activity, preferences: Optional[UserPreferences],
          config: PreferenceScorerConfig = DEFAULT_PREFERENCE_CONFIG) -> PreferenceScoreResult:
    if preferences is None:
        return neutral_result(config)

    w = config.weights.normalized()
    kw = config.keywords
    text = search_text(activity)
    reasons: List[str] = []

    cat_level = category_interest_score(activity.category, preferences.interests)
    if cat_level > 0.7:
        reasons.append(f"Matches your love for {activity.category.value.replace('-', ' ')}")

    interest_score, interest_matched = specific_interest_score(text, preferences.specific_interests, kw)
    if interest_matched:
        reasons.append("Matches: " + ", ".join(interest_matched[:2]))

    penalty, avoided = avoidance_penalty(text, activity.category, preferences.avoidances, kw)
    avoid_score = _clamp(1.0 - penalty * config.avoidance_penalty_multiplier)
    if avoided:
        reasons.append(f"Note: You typically avoid {avoided[0]}")

    gem_score = hidden_gem_score(activity, preferences.prefers_hidden_gems)
    if preferences.prefers_hidden_gems and activity.hidden_gem:
        reasons.append("Hidden gem - just your style")

    bud_score = budget_score(activity.price_level, preferences.budget)
    dine_score = dining_style_score(activity, preferences.dining_style, text, kw)

    breakdown = PreferenceBreakdown(
        category=_sub(cat_level, w.category),
        specific_interest=_sub(interest_score, w.specific_interest, interest_matched),
        avoidance=_sub(avoid_score, w.avoidance, avoided),
        hidden_gem=_sub(gem_score, w.hidden_gem),
        budget=_sub(bud_score, w.budget),
        dining_style=_sub(dine_score, w.dining_style),
    )
    parts = (breakdown.category, breakdown.specific_interest, breakdown.avoidance,
             breakdown.hidden_gem, breakdown.budget, breakdown.dining_style)
    total_weight = sum(p.weight for p in parts) or 1.0
    final = _clamp(sum(p.contribution for p in parts) / total_weight)

    confidence = min(1.0, (preferences.overall_confidence
                           + (0.2 if preferences.specific_interests else 0.0)
                           + (0.1 if preferences.avoidances else 0.0)) / 1.3)

    return PreferenceScoreResult(
        score=final,
        confidence=confidence,
        breakdown=breakdown,
        reasons=reasons,
        is_strong_match=final > 0.7 and confidence >= config.minimum_confidence,
        should_avoid=penalty >= config.should_avoid_threshold,
        category_interest=cat_level,
    )


def preference_reason(result: PreferenceScoreResult) -> Optional[str]:
    """Short human reason for the combined breakdown; None when nothing stands out."""
    if result.should_avoid or result.confidence <= 0:
        return None
    for r in result.reasons:
        if not r.startswith("Note:"):
            return r
    if result.score > 0.6:
        return "Matches your interests"
    return None


# ----------------------------
# batch helpers
# ----------------------------

def filter_out_avoidances(activities: Iterable[Activity], preferences: Optional[UserPreferences],
                          strictness: float = 0.7,
                          config: PreferenceScorerConfig = DEFAULT_PREFERENCE_CONFIG) -> List[Activity]:
    if preferences is None or not preferences.avoidances:
        return list(activities)
    out = []
    for a in activities:
        penalty, _ = avoidance_penalty(search_text(a), a.category, preferences.avoidances, config.keywords)
        if penalty < strictness:
            out.append(a)
    return out


def top_preference_matches(activities: Iterable[Activity], preferences: Optional[UserPreferences],
                           n: int = 5,
                           config: PreferenceScorerConfig = DEFAULT_PREFERENCE_CONFIG) -> List[Tuple[Activity, PreferenceScoreResult]]:
    scored = [(a, score(a, preferences, config)) for a in activities]
    scored = [x for x in scored if not x[1].should_avoid]
    scored.sort(key=lambda x: x[1].score, reverse=True)
    return scored[:max(0, n)]


class LearnedPreferences(BaseModel):
    """Adjustments learned from completions and skips, before they are applied to a profile."""
    interest_adjustments: Dict[str, float] = {}
    discovered_interests: List[SpecificInterest] = []
    potential_avoidances: List[Avoidance] = []
    hidden_gem_adjustment: float = 0.0
    confidence: float = 0.0
    sample_size: int = 0


HISTORY_MIN_CATEGORY_SAMPLES = 2
HISTORY_SKIPS_TO_AVOID = 3
HISTORY_MAX_DISCOVERED = 5


def learn_from_history(completed: Iterable[Activity], skipped: Iterable[Activity],
                       keywords: PreferenceKeywords = DEFAULT_PREFERENCE_KEYWORDS) -> LearnedPreferences:
    """
    Per category with at least two samples, interests move by
    (completion rate - 0.5) * 0.3. Three skips of one category make it an
    observed avoidance. Each hidden gem completed adds 0.1 to hidden-gem affinity.
    """
    completed, skipped = list(completed), list(skipped)
    done: Dict[Category, int] = {}
    passed: Dict[Category, int] = {}
    discovered: List[SpecificInterest] = []
    seen = set()
    gem_adjustment = 0.0

    for a in completed:
        done[a.category] = done.get(a.category, 0) + 1
        if a.hidden_gem:
            gem_adjustment += 0.1
        for t in (a.types or [])[:3]:
            tag = normalize_token(t)
            if tag and tag not in seen and tag in keywords.interest_synonyms:
                seen.add(tag)
                discovered.append(SpecificInterest(tag=tag, confidence=0.6, source=PreferenceSource.OBSERVED))

    avoidances: List[Avoidance] = []
    for a in skipped:
        passed[a.category] = passed.get(a.category, 0) + 1
        if passed[a.category] == HISTORY_SKIPS_TO_AVOID:
            avoidances.append(Avoidance(tag=a.category.value, strength=0.5, source=PreferenceSource.OBSERVED,
                                        reason="Frequently skipped"))

    adjustments: Dict[str, float] = {}
    for cat in set(done) | set(passed):
        total = done.get(cat, 0) + passed.get(cat, 0)
        if total < HISTORY_MIN_CATEGORY_SAMPLES:
            continue
        shift = (done.get(cat, 0) / total - 0.5) * 0.3
        for key, w in CATEGORY_INTEREST_MAP.get(cat, ()):
            adjustments[key] = adjustments.get(key, 0.0) + shift * w

    samples = len(completed) + len(skipped)
    return LearnedPreferences(
        interest_adjustments=adjustments,
        discovered_interests=discovered[:HISTORY_MAX_DISCOVERED],
        potential_avoidances=avoidances,
        hidden_gem_adjustment=_clamp(gem_adjustment, -0.3, 0.3),
        confidence=min(1.0, samples / 20.0),
        sample_size=samples,
    )


def preferences_from_history(completed: Iterable[Activity], skipped: Iterable[Activity],
                             base: Optional[UserPreferences] = None,
                             keywords: PreferenceKeywords = DEFAULT_PREFERENCE_KEYWORDS) -> UserPreferences:
    """Apply what `learn_from_history` found on top of `base` (or a default profile)."""
    base = base or UserPreferences()
    learned = learn_from_history(completed, skipped, keywords)

    levels = base.interests.model_dump()
    for key, shift in learned.interest_adjustments.items():
        levels[key] = _clamp(levels[key] + shift)

    known = {si.tag.lower() for si in base.specific_interests}
    interests = list(base.specific_interests) + [
        si for si in learned.discovered_interests if si.tag not in known]

    avoided = {av.tag.lower() for av in base.avoidances}
    avoidances = list(base.avoidances) + [
        av for av in learned.potential_avoidances if av.tag not in avoided]

    gem_confidence = _clamp(base.hidden_gem_confidence + learned.hidden_gem_adjustment)
    return base.model_copy(update={
        "interests": InterestCategories(**levels),
        "specific_interests": interests,
        "avoidances": avoidances,
        "hidden_gem_confidence": gem_confidence,
        "prefers_hidden_gems": base.prefers_hidden_gems or gem_confidence >= 0.5,
        "overall_confidence": max(base.overall_confidence, learned.confidence),
    })
