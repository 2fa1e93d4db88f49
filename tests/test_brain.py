import random

import pytest

from trip_brain.brain_core import brain as brain_module
from trip_brain.brain_core.brain import TripBrain, TripBrainConfig, score_activity
from trip_brain.brain_core.combined import ScoringMode
from trip_brain.brain_core.schema import (
    Category, InterestCategories, SpecificInterest, UserPreferences, WeatherCondition, WeatherContext,
    WhyNowCategory,
)

from conftest import PARIS, make_activity, offset

BISTRO = make_activity(id="bistro", name="Le Petit Bistro", category="food_drink", at=offset(PARIS, 50),
                       types=["restaurant"], price_level=2, rating=4.5)
OPERA = make_activity(id="opera", name="Palais Garnier", category="culture", at=offset(PARIS, 3000),
                      types=["opera house"], rating=4.7)
CLUB = make_activity(id="club", name="Rex Club", category="nightlife", at=offset(PARIS, 800))
ATELIER = make_activity(id="atelier", name="Atelier secret", category="culture", is_hidden_gem=True)

FOODIE = UserPreferences(
    interests=InterestCategories(food=0.9),
    specific_interests=[SpecificInterest(tag="restaurant", confidence=1.0)],
)
SUNNY = WeatherContext(condition=WeatherCondition.SUNNY, temperature_celsius=22)


@pytest.fixture
def brain(clock):
    b = TripBrain([BISTRO, OPERA, CLUB, ATELIER], clock=clock, rng=random.Random(11))
    b.update_location(PARIS)
    b.update_weather(SUNNY)
    b.update_preferences(FOODIE)
    yield b
    b.close()


def test_nearby_dinner_spot_wins_at_dinner_time(brain):
    recs = brain.recommendations(19)
    top = recs[0]
    assert top.activity.id == "bistro"
    assert top.rank == 1
    assert top.score == pytest.approx(0.85625, abs=1e-3)
    assert top.score > 0.75

    bd = top.breakdown
    assert bd.time.value == 1.0
    assert bd.time.reason == "Great for dinner"
    assert bd.distance.value == 1.0
    assert bd.distance.reason == "Right here"
    assert bd.preference.value == pytest.approx(0.905)
    assert bd.weather.value == 0.5

    assert top.why_now.primary.category == WhyNowCategory.DISTANCE
    assert top.why_now.primary.text == "Right here"
    assert top.distance_meters < 100


def test_scoring_is_pure(brain):
    ctx = brain.context(19)
    a = score_activity(BISTRO, ctx, FOODIE)
    b = score_activity(BISTRO, ctx, FOODIE)
    assert a.model_dump() == b.model_dump()
    assert a.tags == ["dining", "price-2"]
    assert a.distance_text == "Right here"


def test_enrichment_is_cached_until_context_changes(brain, clock):
    first = brain.enrich(BISTRO, 19)
    assert brain.enrich(BISTRO, 19) is first
    assert brain.enrich(BISTRO, 20) is not first

    clock.advance(301)
    second = brain.enrich(BISTRO, 19)
    assert second is not first
    assert brain.enrich(BISTRO, 19) is second

    brain.update_location(offset(PARIS, 2000))
    moved = brain.enrich(BISTRO, 19)
    assert moved is not second
    assert moved.breakdown.distance.value < 1.0


def test_preference_change_while_scoring_is_not_cached(brain, monkeypatch):
    culture_lover = UserPreferences(interests=InterestCategories(culture=1.0))
    real_score = brain_module.score_activity
    calls = []

    def score_then_update(activity, context, prefs, config):
        result = real_score(activity, context, prefs, config)
        if not calls:
            calls.append(activity.id)
            brain.update_preferences(culture_lover)
        return result

    monkeypatch.setattr(brain_module, "score_activity", score_then_update)
    stale = brain.enrich(OPERA, 15)
    current = brain.enrich(OPERA, 15)
    expected = real_score(OPERA, brain.context(15), culture_lover, brain.config)

    assert current is not stale
    assert current.preference_fit.score == pytest.approx(expected.preference_fit.score)
    assert current.preference_fit.score > stale.preference_fit.score
    assert brain.enrich(OPERA, 15) is current


def test_scoring_mode_override(brain):
    nearby = brain.enrich(OPERA, 19, ScoringMode.NEARBY)
    balanced = brain.enrich(OPERA, 19)
    assert nearby.breakdown.distance.weight == pytest.approx(0.40)
    assert balanced.breakdown.distance.weight == pytest.approx(0.25)


def test_choice_mode_drops_time_inappropriate(brain):
    ids_choice = {r.activity.id for r in brain.recommendations(10, count=10)}
    ids_all = {r.activity.id for r in brain.recommendations(10, count=10, mode="all")}
    assert "club" not in ids_choice
    assert "club" in ids_all


def test_nearby_mode_needs_coordinates(brain):
    ids = {r.activity.id for r in brain.recommendations(15, count=10, mode="nearby")}
    assert "atelier" not in ids
    assert "opera" in ids


def test_count_category_and_minimum(brain):
    assert len(brain.recommendations(15, count=2, mode="all")) == 2
    only_culture = brain.recommendations(15, count=10, mode="all", category=Category.CULTURE)
    assert {r.activity.id for r in only_culture} == {"opera", "atelier"}
    assert brain.recommendations(15, mode="all", minimum_score=0.99) == []


def test_progress_filters_recommendations(brain):
    brain.record_completion("bistro")
    brain.record_skip("opera", reason="too far")
    ids = {r.activity.id for r in brain.recommendations(19, count=10, mode="all")}
    assert "bistro" not in ids and "opera" not in ids
    assert "bistro" in {r.activity.id for r in brain.recommendations(19, count=10, include_completed=True)}

    brain.undo_skip("opera")
    assert "opera" in {r.activity.id for r in brain.recommendations(19, count=10, mode="all")}

    stats = brain.stats()
    assert (stats.total, stats.completed, stats.skipped, stats.remaining) == (4, 1, 0, 3)
    assert stats.percent_complete == 25

    brain.undo_completion("bistro")
    brain.reset_progress()
    assert brain.stats().completed == 0


def test_search_craving(brain):
    one = brain.search_craving("bistro", 19)
    assert [r.activity.id for r in one.results] == ["bistro"]
    assert one.interpretation == 'Found a great match for "bistro"'

    culture = brain.search_craving("culture", 15)
    assert culture.total_matches == 2
    assert culture.interpretation == 'Found 2 options for "culture"'

    near = brain.search_craving("culture", 15, max_distance=1000)
    assert near.results == []
    assert near.interpretation == 'No matches found for "culture"'

    empty = TripBrain()
    assert empty.search_craving("pizza", 12).interpretation == "No trip data loaded"
    empty.close()


def test_serendipity_prefers_untouched_hidden_gems(brain):
    pick = brain.serendipity(15)
    assert pick.activity.activity.id == "atelier"
    assert pick.reason == "A hidden gem the locals love"

    brain.record_completion("atelier")
    other = brain.serendipity(15)
    assert other.activity.activity.id in {"bistro", "opera", "club"}
    assert other.serendipity_score == pytest.approx(0.5)


def test_serendipity_without_activities():
    b = TripBrain()
    assert b.serendipity(12) is None
    b.close()


def test_proactive_restaurant_nudges(brain):
    msgs = brain.proactive_messages(17, current_city="Paris")
    by_trigger = {m.trigger: m for m in msgs}
    assert by_trigger["meal_time"].message == "Le Petit Bistro for dinner?"
    assert by_trigger["popular_restaurant"].subject_key == "popular-Paris-bistro"

    dismissed = brain.dismiss_message(by_trigger["meal_time"])
    assert dismissed.dismissed
    assert brain.proactive_messages(17, current_city="Paris") == []


def test_morning_booking_nudge_is_day_scoped(clock):
    louvre = make_activity(id="louvre", name="Louvre", category="culture", types=["museum"])
    b = TripBrain([louvre], clock=clock)
    first = {m.trigger: m for m in b.proactive_messages(9, current_city="Paris", day_number=1)}
    assert first["morning_booking"].message == "1 attraction today"
    assert first["morning_booking"].subject_key == "morning-Paris-1"
    again = {m.trigger for m in b.proactive_messages(9, current_city="Paris", day_number=1)}
    assert "morning_booking" not in again
    b.close()


def test_missing_context_still_scores(clock):
    b = TripBrain([BISTRO, ATELIER], clock=clock)
    recs = b.recommendations(15, mode="all", minimum_score=0.0)
    assert len(recs) == 2
    for r in recs:
        assert 0.0 <= r.score <= 1.0
        assert r.why_now.primary.text
    b.close()


def test_config_overrides(clock):
    cfg = TripBrainConfig(default_count=1, minimum_score=0.0)
    b = TripBrain([BISTRO, OPERA, CLUB], config=cfg, clock=clock)
    assert len(b.recommendations(19, mode="all")) == 1
    b.close()
