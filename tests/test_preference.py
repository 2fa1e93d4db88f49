import pytest

from trip_brain.brain_core import preference
from trip_brain.brain_core.schema import (
    Avoidance, BudgetLevel, Category, DiningStyle, InterestCategories, PreferenceSource, SpecificInterest,
    UserPreferences,
)

from conftest import make_activity

BISTRO = make_activity(id="bistro", name="Le Petit Bistro", category="food_drink", types=["restaurant"],
                       price_level=2, rating=4.5)
GALLERY = make_activity(id="gallery", name="Galerie Vivienne", category="culture", types=["gallery"])
CLUB = make_activity(id="club", name="Rex Club", category="nightlife", types=["club"])


def test_no_preferences_is_neutral_with_zero_confidence():
    res = preference.score(BISTRO, None)
    assert res.score == 0.5
    assert res.confidence == 0.0
    assert not res.should_avoid
    assert res.reasons == ["No preference data available"]


def test_strong_food_match():
    prefs = UserPreferences(
        interests=InterestCategories(food=0.9),
        specific_interests=[SpecificInterest(tag="restaurant", confidence=1.0)],
    )
    res = preference.score(BISTRO, prefs)
    assert res.score == pytest.approx(0.905)
    assert res.is_strong_match
    assert res.breakdown.specific_interest.matched == ["restaurant"]
    assert preference.preference_reason(res) == "Matches your love for dining"


def test_interest_tag_strengths():
    text = "le petit bistro dining restaurant espresso"
    assert preference.match_interest_tag(text, "restaurant") == 1.0
    assert preference.match_interest_tag(text, "coffee") == 0.8
    assert preference.match_interest_tag(text, "petit four") == 0.5
    assert preference.match_interest_tag(text, "sushi") == 0.0


def test_avoidance_marks_should_avoid():
    prefs = UserPreferences(avoidances=[Avoidance(tag="nightlife", strength=0.9)])
    res = preference.score(CLUB, prefs)
    assert res.should_avoid
    assert res.breakdown.avoidance.score == pytest.approx(0.55)
    assert preference.preference_reason(res) is None


def test_avoidance_threshold_is_inclusive():
    prefs = UserPreferences(avoidances=[Avoidance(tag="club", strength=0.7)])
    assert preference.score(CLUB, prefs).should_avoid


def test_synonym_avoidance_is_weaker():
    penalty, matched = preference.avoidance_penalty("galerie vivienne culture gallery", Category.CULTURE,
                                                    [Avoidance(tag="museums", strength=1.0)])
    assert penalty == pytest.approx(0.8)
    assert matched == ["museums"]


@pytest.mark.parametrize("price,budget,expected", [
    (None, BudgetLevel.MODERATE, 0.5),
    (2, BudgetLevel.MODERATE, 1.0),
    (3, BudgetLevel.MODERATE, 0.8),
    (4, BudgetLevel.MODERATE, 0.35),
    (4, BudgetLevel.BUDGET, 0.2),
    (4, BudgetLevel.LUXURY, 1.0),
])
def test_budget_score(price, budget, expected):
    assert preference.budget_score(price, budget) == pytest.approx(expected)


def test_dining_style():
    assert preference.dining_style_score(GALLERY, DiningStyle.FINE_DINING) == 0.5
    assert preference.dining_style_score(BISTRO, DiningStyle.MIXED) == 0.6
    assert preference.dining_style_score(BISTRO, DiningStyle.CASUAL) == 0.9
    fancy = make_activity(name="Maison", category="dining", price_level=4)
    assert preference.dining_style_score(fancy, DiningStyle.FINE_DINING) == 0.8


def test_hidden_gem_preference():
    gem = make_activity(name="Secret courtyard", hidden_gem_score=0.8)
    assert gem.hidden_gem
    assert preference.hidden_gem_score(gem, True) == 1.0
    assert preference.hidden_gem_score(GALLERY, True) == 0.4


def test_confidence_grows_with_signal():
    plain = preference.score(GALLERY, UserPreferences(overall_confidence=0.5)).confidence
    richer = preference.score(GALLERY, UserPreferences(
        overall_confidence=0.5,
        specific_interests=[SpecificInterest(tag="art")],
        avoidances=[Avoidance(tag="crowds")],
    )).confidence
    assert 0.0 < plain < richer <= 1.0


def test_batch_helpers():
    prefs = UserPreferences(interests=InterestCategories(culture=1.0),
                            avoidances=[Avoidance(tag="club", strength=1.0)])
    acts = [BISTRO, GALLERY, CLUB]
    assert [a.id for a in preference.filter_out_avoidances(acts, prefs)] == ["bistro", "gallery"]
    top = preference.top_preference_matches(acts, prefs, n=1)
    assert top[0][0].id == "gallery"


def test_preferences_from_history():
    learned = preference.preferences_from_history(
        completed=[GALLERY, make_activity(id="w", name="Cave", category="dining", types=["wine"])],
        skipped=[CLUB],
    )
    # one sample per category is not enough to move an interest
    assert learned.interests == InterestCategories()
    assert [si.tag for si in learned.specific_interests] == ["wine"]
    assert learned.specific_interests[0].source == PreferenceSource.OBSERVED
    assert learned.avoidances == []
    assert learned.overall_confidence == pytest.approx(0.5)


def test_history_moves_interests_by_completion_rate():
    orsay = make_activity(id="orsay", name="Musée d'Orsay", category="culture")
    learned = preference.learn_from_history([GALLERY, orsay, orsay], [GALLERY])
    assert set(learned.interest_adjustments) == {"culture"}
    assert learned.interest_adjustments["culture"] == pytest.approx(0.075)
    assert learned.sample_size == 4
    assert learned.confidence == pytest.approx(0.2)

    prefs = preference.preferences_from_history([GALLERY, orsay, orsay], [GALLERY])
    assert prefs.interests.culture == pytest.approx(0.575)


def test_repeated_skips_become_a_category_avoidance():
    learned = preference.preferences_from_history([], [CLUB, CLUB, CLUB])
    assert [(a.tag, a.strength, a.source) for a in learned.avoidances] == [
        ("nightlife", 0.5, PreferenceSource.OBSERVED)]
    assert learned.avoidances[0].reason == "Frequently skipped"
    assert learned.interests.nightlife == pytest.approx(0.35)

    res = preference.score(CLUB, learned)
    assert res.breakdown.avoidance.matched == ["nightlife"]
    assert not res.should_avoid

    assert preference.preferences_from_history([], [CLUB, CLUB]).avoidances == []
    stated = UserPreferences(avoidances=[Avoidance(tag="nightlife")])
    again = preference.preferences_from_history([], [CLUB] * 4, stated)
    assert [(a.tag, a.strength) for a in again.avoidances] == [("nightlife", 1.0)]


def test_hidden_gem_completions_raise_affinity():
    gem = make_activity(id="passage", name="Passage des Panoramas", is_hidden_gem=True)
    assert preference.learn_from_history([gem] * 5, []).hidden_gem_adjustment == pytest.approx(0.3)

    prefs = preference.preferences_from_history([gem] * 5, [])
    assert prefs.hidden_gem_confidence == pytest.approx(0.3)
    assert not prefs.prefers_hidden_gems

    warmed = UserPreferences(hidden_gem_confidence=0.3)
    assert preference.preferences_from_history([gem] * 3, [], warmed).prefers_hidden_gems
