# brain_core/allocation.py
from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from trip_brain.brain_core.schema import (
    AllocationCity, AllocationResult, AllocationStats, Category, CityAllocation,
    FactorBreakdown, InterestCategories, Pace, coerce_category,
)
from trip_brain.grafana.dashboard import ALLOCATIONS

logger = logging.getLogger(__name__)


class AllocationError(ValueError):
    """Structurally invalid allocation input."""


PACE_MULTIPLIERS: Dict[Pace, float] = {
    Pace.RELAXED: 1.15,
    Pace.BALANCED: 1.0,
    Pace.PACKED: 0.85,
}

CATEGORY_INTERESTS: Dict[Category, tuple] = {
    Category.DINING: ("food",),
    Category.CULTURE: ("culture",),
    Category.NATURE: ("nature", "adventure", "beach"),
    Category.NIGHTLIFE: ("nightlife",),
    Category.SHOPPING: ("shopping",),
    Category.LEISURE_ACTIVITY: ("adventure", "local_experiences"),
    Category.WELLNESS: ("relaxation",),
}

# cities per trip length bracket (<=5 days, <=10 days, longer)
CITY_COUNT_BY_PACE: Dict[Pace, tuple] = {
    Pace.RELAXED: (1, 2, 3),
    Pace.BALANCED: (2, 3, 4),
    Pace.PACKED: (3, 4, 5),
}


class FactorWeights(BaseModel):
    size: float = 0.3
    interest_match: float = 0.3
    favourites: float = 0.25
    position: float = 0.15


class AllocationOptions(BaseModel):
    pace: Pace = Pace.BALANCED
    min_days_regular: float = 1.0
    min_days_origin: float = 0.5
    min_days_destination: float = 0.5
    weights: FactorWeights = FactorWeights()
    interests: Optional[InterestCategories] = None


DEFAULT_ALLOCATION_OPTIONS = AllocationOptions()


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


# ----------------------------
# 1) factors
# ----------------------------

def size_factor(count: int, lo: int, hi: int) -> float:
    if hi <= lo:
        return 1.0
    return 0.5 + (count - lo) / (hi - lo)


def favourites_factor(count: int, most: int) -> float:
    if most <= 0:
        return 0.5
    return 0.5 + count / most


def position_factor(city: AllocationCity) -> float:
    return 0.7 if (city.is_origin or city.is_destination) else 1.0


def interest_factor(city: AllocationCity, interests: Optional[InterestCategories]) -> float:
    """Precomputed score when supplied, else the count-weighted best interest level per category."""
    if city.interest_match_score is not None:
        return city.interest_match_score
    if not city.category_breakdown:
        return 0.5
    total, weighted = 0, 0.0
    for raw_cat, count in city.category_breakdown.items():
        count = max(0, int(count))
        if count == 0:
            continue
        keys = CATEGORY_INTERESTS.get(coerce_category(raw_cat), ())
        if interests is not None and keys:
            level = max(interests.level(k) for k in keys)
        else:
            level = 0.5
        weighted += level * count
        total += count
    return weighted / total if total else 0.5


def _min_days(city: AllocationCity, options: AllocationOptions) -> float:
    if city.is_origin:
        return options.min_days_origin
    if city.is_destination:
        return options.min_days_destination
    return options.min_days_regular


# ----------------------------
# 2) allocate
# ----------------------------

def allocate(cities: Sequence[AllocationCity], total_days: float,
             options: AllocationOptions = DEFAULT_ALLOCATION_OPTIONS) -> AllocationResult:
    """
    Distribute total_days across cities in proportion to an importance score.

    Base share = score/sum(scores) * total_days * pace multiplier, floored at the
    city minimum. Over-allocation is scaled back (respecting minimums), shortfall is
    spread by score, and any residual lands on the highest-scored city so the days
    always sum to total_days exactly.
    """
    if total_days is None or total_days != total_days or total_days < 0:
        ALLOCATIONS.labels(status="rejected").inc()
        raise AllocationError(f"total_days must be a non-negative number, got {total_days!r}")

    cities = list(cities)
    pace = Pace(options.pace)
    if not cities:
        ALLOCATIONS.labels(status="empty").inc()
        return AllocationResult(allocations=[], total_days=0.0, stats=AllocationStats(pace=pace))

    if len(cities) == 1:
        c = cities[0]
        neutral = FactorBreakdown(size=1.0, interest_match=interest_factor(c, options.interests),
                                  favourites=1.0, position=position_factor(c))
        alloc = CityAllocation(name=c.name, days=float(total_days),
                               nights=max(0, _round_half_up(total_days) - 1),
                               importance_score=1.0, factors=neutral)
        ALLOCATIONS.labels(status="ok").inc()
        return _result([alloc], total_days, pace)

    counts = [c.place_count for c in cities]
    lo, hi = min(counts), max(counts)
    most_fav = max(c.favourite_count for c in cities)
    w = options.weights

    factors: List[FactorBreakdown] = []
    scores: List[float] = []
    for c in cities:
        f = FactorBreakdown(
            size=size_factor(c.place_count, lo, hi),
            interest_match=interest_factor(c, options.interests),
            favourites=favourites_factor(c.favourite_count, most_fav),
            position=position_factor(c),
        )
        factors.append(f)
        scores.append(max(0.0, w.size * f.size + w.interest_match * f.interest_match
                          + w.favourites * f.favourites + w.position * f.position))

    total_score = sum(scores)
    if total_score <= 0:
        scores = [1.0] * len(cities)
        total_score = float(len(cities))

    mins = [_min_days(c, options) for c in cities]
    if sum(mins) > total_days:
        # not enough days to honour minimums; fall back to pure proportional shares
        logger.info("Minimum stays (%.1f days) exceed trip length %.1f, allocating proportionally",
                    sum(mins), total_days)
        mins = [0.0] * len(cities)

    mult = PACE_MULTIPLIERS[pace]
    days = [max(m, s / total_score * total_days * mult) for s, m in zip(scores, mins)]

    current = sum(days)
    if current > total_days and current > 0:
        scale = total_days / current
        days = [max(m, d * scale) for d, m in zip(days, mins)]
    elif current < total_days:
        shortfall = total_days - current
        days = [d + shortfall * s / total_score for d, s in zip(days, scores)]

    days = _settle_residual(days, mins, scores, total_days)

    allocations = []
    last = len(cities) - 1
    for i, c in enumerate(cities):
        nights = _round_half_up(days[i])
        if i == last:
            nights = max(0, nights - 1)
        allocations.append(CityAllocation(name=c.name, days=days[i], nights=nights,
                                          importance_score=scores[i], factors=factors[i]))

    ALLOCATIONS.labels(status="ok").inc()
    logger.info("Allocated %.1f days across %d cities (%s)", total_days, len(cities), pace.value)
    return _result(allocations, total_days, pace)


def _settle_residual(days: List[float], floors: List[float], scores: List[float],
                     total_days: float) -> List[float]:
    residual = total_days - sum(days)
    if abs(residual) <= 1e-12:
        return days
    order = sorted(range(len(days)), key=lambda i: scores[i], reverse=True)
    days = list(days)
    if residual > 0:
        days[order[0]] += residual
    else:
        need = -residual
        for i in order:
            room = days[i] - floors[i]
            take = min(room, need)
            if take > 0:
                days[i] -= take
                need -= take
            if need <= 1e-12:
                break
    # absorb float dust so the sum is exact
    days[order[0]] += total_days - sum(days)
    return days


def _result(allocations: List[CityAllocation], total_days: float, pace: Pace) -> AllocationResult:
    ds = [a.days for a in allocations]
    stats = AllocationStats(
        average_days=sum(ds) / len(ds) if ds else 0.0,
        min_days=min(ds) if ds else 0.0,
        max_days=max(ds) if ds else 0.0,
        pace=pace,
    )
    return AllocationResult(allocations=allocations, total_days=float(total_days),
                            total_nights=sum(a.nights for a in allocations), stats=stats)


# ----------------------------
# 3) helpers
# ----------------------------

def quick_allocate(city_names: Sequence[str], total_days: float, pace: Pace = Pace.BALANCED) -> AllocationResult:
    """Allocation from names only: first city is the origin, last the destination."""
    names = list(city_names)
    cities = [
        AllocationCity(name=n, is_origin=(i == 0 and len(names) > 1),
                       is_destination=(i == len(names) - 1 and len(names) > 1))
        for i, n in enumerate(names)
    ]
    return allocate(cities, total_days, AllocationOptions(pace=pace))


def suggest_city_count(total_days: float, pace: Pace = Pace.BALANCED) -> int:
    small, medium, large = CITY_COUNT_BY_PACE[Pace(pace)]
    if total_days <= 5:
        return small
    if total_days <= 10:
        return medium
    return large


def validate_allocation(result: AllocationResult, total_days: float, tolerance: float = 0.01) -> List[str]:
    problems = []
    total = sum(a.days for a in result.allocations)
    if result.allocations and abs(total - total_days) > tolerance:
        problems.append(f"Allocated {total:.2f} days but trip has {total_days:.2f}")
    for a in result.allocations:
        if a.days < 0:
            problems.append(f"{a.name} has a negative allocation")
        if a.nights < 0:
            problems.append(f"{a.name} has negative nights")
    return problems


def _plural(n, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def format_allocation(allocation: CityAllocation) -> str:
    d = allocation.days
    days_txt = str(int(d)) if abs(d - round(d)) < 1e-9 else f"{d:.1f}"
    day_word = "day" if days_txt == "1" else "days"
    return f"{allocation.name}: {days_txt} {day_word} ({_plural(allocation.nights, 'night')})"


def format_allocation_summary(result: AllocationResult) -> str:
    if not result.allocations:
        return "No cities to allocate"
    lines = [format_allocation(a) for a in result.allocations]
    lines.append(f"Total: {result.total_days:g} days, {result.stats.pace.value} pace")
    return "\n".join(lines)
