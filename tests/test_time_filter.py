import pytest

from trip_brain.brain_core import time_filter
from trip_brain.brain_core.schema import Category
from trip_brain.brain_core.time_filter import TimeFilterConfig, TimePeriod
from trip_brain.tools.keywords import TimeKeywords

from conftest import make_activity


@pytest.mark.parametrize("hour,period", [
    (4, TimePeriod.NIGHT),
    (5, TimePeriod.EARLY_MORNING),
    (8, TimePeriod.MORNING),
    (12, TimePeriod.LUNCH),
    (14, TimePeriod.AFTERNOON),
    (17, TimePeriod.EVENING),
    (21, TimePeriod.NIGHT),
    (25, TimePeriod.NIGHT),
])
def test_period_boundaries(hour, period):
    assert time_filter.get_time_period(hour) == period


def test_nightlife_keyword_beats_category_rule_at_night():
    # a cultural venue with a bar is still a good late-night pick
    jazz = make_activity(name="Jazz Cellar", category="culture", types=["bar"])
    fit = time_filter.appropriateness(jazz, 23)
    assert fit.is_appropriate
    assert fit.score >= 0.9


def test_late_evening_counts_as_night_for_keywords():
    venue = make_activity(name="Le Comptoir", category="culture", types=["wine bar"])
    assert time_filter.appropriateness(venue, 20).score == 1.0


def test_late_night_keyword():
    kebab = make_activity(name="Kebab corner")
    fit = time_filter.appropriateness(kebab, 1)
    assert fit.score == pytest.approx(0.9)
    assert fit.is_appropriate


def test_daylight_only_at_night_and_early_morning():
    museum = make_activity(name="Musée d'Orsay", category="culture", types=["museum"])
    night = time_filter.appropriateness(museum, 23)
    assert not night.is_appropriate
    assert night.score == pytest.approx(0.1)
    assert time_filter.appropriateness(museum, 6).score == pytest.approx(0.1)
    assert time_filter.appropriateness(museum, 10).score == 1.0


def test_early_open_keyword():
    bakery = make_activity(name="Le Fournil", category="shopping", types=["bakery"])
    fit = time_filter.appropriateness(bakery, 6)
    assert fit.is_appropriate
    assert fit.score == 1.0


def test_category_rules():
    assert time_filter.time_score(make_activity(category="nightlife"), 10) == pytest.approx(0.2)
    assert time_filter.time_score(make_activity(category="culture"), 15) == 1.0
    assert time_filter.time_score(make_activity(category="nature"), 18) == pytest.approx(0.6)
    assert time_filter.time_score(make_activity(category="other"), 15) == pytest.approx(0.5)
    fit = time_filter.appropriateness(make_activity(category="dining"), 19)
    assert fit.reason == "Dining is ideal for the evening"


def test_keyword_tables_are_injectable():
    cfg = TimeFilterConfig(keywords=TimeKeywords(nightlife=("karaoke",), late_night=(), daylight_only=(), early_open=()))
    bar_museum = make_activity(name="Bar museum", category="culture")
    assert time_filter.appropriateness(bar_museum, 23, cfg).score == pytest.approx(0.2)
    karaoke = make_activity(name="Karaoke box", category="culture")
    assert time_filter.appropriateness(karaoke, 23, cfg).score == 1.0


def test_helpers():
    assert time_filter.is_meal_time(19) == "dinner"
    assert time_filter.is_meal_time(16) is None
    assert time_filter.time_greeting(9) == "Good morning"
    assert time_filter.time_greeting(2) == "Still up?"
    assert Category.NIGHTLIFE in time_filter.suggested_categories(22)

    acts = [
        make_activity(id="club", category="nightlife"),
        make_activity(id="park", category="nature"),
        make_activity(id="shop", category="shopping"),
    ]
    kept = time_filter.filter_by_time(acts, 10, always_include=["club"], always_exclude=["shop"])
    assert [a.id for a in kept] == ["club", "park"]
