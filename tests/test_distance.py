import pytest

from trip_brain.brain_core import distance
from trip_brain.brain_core.distance import DecayCurve, DistanceConfig
from trip_brain.brain_core.schema import Coordinates

from conftest import PARIS, make_activity, offset


@pytest.mark.parametrize("curve", list(DecayCurve))
def test_score_non_increasing_for_every_curve(curve):
    cfg = DistanceConfig(decay=curve)
    samples = [0, 50, 100, 101, 250, 500, 900, 1500, 2500, 4000, 4999, 5000, 5001, 20000]
    scores = [distance.score(d, cfg) for d in samples]
    assert all(0.0 <= s <= 1.0 for s in scores)
    for a, b in zip(scores, scores[1:]):
        assert b <= a


def test_immediate_and_beyond_max():
    assert distance.score(0) == 1.0
    assert distance.score(100) == 1.0
    assert distance.score(5000.1) == 0.0
    assert distance.score(-30) == 1.0


def test_exponential_half_life():
    cfg = DistanceConfig(decay=DecayCurve.EXPONENTIAL, half_life=1000)
    assert distance.score(1000, cfg) == pytest.approx(0.5)


def test_unknown_distance_neutral_or_penalised():
    assert distance.score(None) == 0.5
    assert distance.score(None, DistanceConfig(penalize_unknown_distance=True)) == 0.0
    assert distance.score(float("nan")) == 0.5


def test_haversine_one_degree_latitude():
    a = Coordinates(lat=0, lng=0)
    b = Coordinates(lat=1, lng=0)
    assert distance.distance(a, b) == pytest.approx(111_195, rel=1e-3)
    assert distance.distance(a, a) == 0.0


def test_bearing_range_and_cardinals():
    north = offset(PARIS, 1000)
    assert distance.bearing(PARIS, north) == pytest.approx(0.0, abs=1e-6)
    east = Coordinates(lat=PARIS.lat, lng=PARIS.lng + 0.01)
    b = distance.bearing(PARIS, east)
    assert 0.0 <= b < 360.0
    assert distance.cardinal_direction(b) == "E"
    assert distance.cardinal_direction(359) == "N"
    assert distance.cardinal_direction(225) == "SW"


def test_activity_distance_requires_both_points():
    located = make_activity(at=offset(PARIS, 500))
    unlocated = make_activity(id="a2")
    assert distance.activity_distance(PARIS, located) == pytest.approx(500, rel=1e-3)
    assert distance.activity_distance(None, located) is None
    assert distance.activity_distance(PARIS, unlocated) is None


def test_brackets():
    assert distance.get_bracket(50).name == "immediate"
    assert distance.get_bracket(700).name == "walking"
    assert distance.get_bracket(10_000).name == "moderate_drive"
    assert distance.get_bracket(1e9).name == "far"


def test_travel_estimates():
    assert distance.walking_minutes(800) == 10
    assert distance.walking_minutes(801) == 11
    assert distance.cycling_minutes(2500) == 10
    assert distance.driving_minutes(5000) == 12
    assert distance.recommend_travel_mode(500)["mode"] == "walk"
    assert distance.recommend_travel_mode(5000)["mode"] == "cycle"
    assert distance.recommend_travel_mode(12000)["mode"] == "drive"


def test_format_distance():
    assert distance.format_distance(40) == "Right here"
    assert distance.format_distance(450) == "450m"
    assert distance.format_distance(2340) == "2.3km"
    assert distance.format_distance(12600) == "13km"
    assert distance.distance_reason(650) == "9 min walk"


def test_batch_helpers():
    far = make_activity(id="far", at=offset(PARIS, 2500))
    near = make_activity(id="near", at=offset(PARIS, 200))
    nowhere = make_activity(id="nowhere")
    acts = [far, nowhere, near]

    assert [a.id for a in distance.sort_by_distance(acts, PARIS)] == ["near", "far", "nowhere"]
    assert [a.id for a in distance.filter_by_distance(acts, PARIS, 1000)] == ["near"]
    assert [a.id for a in distance.nearest(acts, PARIS, n=1)] == ["near"]

    groups = distance.group_by_bracket(acts, PARIS)
    assert [a.id for a in groups["very_close"]] == ["near"]
    assert [a.id for a in groups["long_walk"]] == ["far"]
    assert [a.id for a in groups["unknown"]] == ["nowhere"]
