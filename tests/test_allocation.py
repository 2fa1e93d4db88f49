import pytest

from trip_brain.brain_core import allocation
from trip_brain.brain_core.allocation import AllocationError, AllocationOptions, FactorWeights
from trip_brain.brain_core.schema import AllocationCity, InterestCategories, Pace

INTEREST_ONLY = FactorWeights(size=0, interest_match=1, favourites=0, position=0)


def test_days_proportional_to_importance():
    cities = [
        AllocationCity(name="Lyon", interest_match_score=1.0),
        AllocationCity(name="Dijon", interest_match_score=0.5),
    ]
    result = allocation.allocate(cities, 10, AllocationOptions(weights=INTEREST_ONLY))
    lyon, dijon = result.allocations
    assert lyon.days / dijon.days == pytest.approx(2.0)
    assert lyon.days + dijon.days == pytest.approx(10, abs=1e-9)
    assert (lyon.nights, dijon.nights) == (7, 2)
    assert result.total_nights == 9


@pytest.mark.parametrize("total", [1.5, 3, 7, 10, 21.5])
@pytest.mark.parametrize("pace", list(Pace))
def test_days_sum_to_total(total, pace):
    cities = [
        AllocationCity(name="Paris", place_count=40, favourite_count=6, is_origin=True),
        AllocationCity(name="Lyon", place_count=15, favourite_count=2),
        AllocationCity(name="Annecy", place_count=5),
        AllocationCity(name="Nice", place_count=22, favourite_count=3, is_destination=True),
    ]
    result = allocation.allocate(cities, total, AllocationOptions(pace=pace))
    assert sum(a.days for a in result.allocations) == pytest.approx(total, abs=1e-9)
    assert all(a.days >= 0 for a in result.allocations)
    assert all(a.nights >= 0 for a in result.allocations)
    assert allocation.validate_allocation(result, total) == []


def test_minimums_respected_when_affordable():
    cities = [
        AllocationCity(name="Big", place_count=100, favourite_count=10),
        AllocationCity(name="Tiny", place_count=1),
        AllocationCity(name="Home", place_count=1, is_origin=True),
    ]
    result = allocation.allocate(cities, 6)
    by_name = {a.name: a for a in result.allocations}
    assert by_name["Tiny"].days >= 1.0 - 1e-9
    assert by_name["Home"].days >= 0.5 - 1e-9
    assert by_name["Big"].days > by_name["Tiny"].days


def test_minimums_dropped_when_trip_too_short():
    cities = [AllocationCity(name=n, place_count=5) for n in ("A", "B", "C")]
    result = allocation.allocate(cities, 2)
    assert sum(a.days for a in result.allocations) == pytest.approx(2)
    assert all(a.days == pytest.approx(2 / 3) for a in result.allocations)


def test_single_city_takes_everything():
    result = allocation.allocate([AllocationCity(name="Rome", place_count=12)], 5)
    only = result.allocations[0]
    assert only.days == 5
    assert only.nights == 4
    assert result.total_nights == 4
    assert allocation.format_allocation(only) == "Rome: 5 days (4 nights)"


def test_no_cities():
    result = allocation.allocate([], 7)
    assert result.allocations == []
    assert result.total_nights == 0
    assert allocation.format_allocation_summary(result) == "No cities to allocate"


@pytest.mark.parametrize("bad", [-1, float("nan")])
def test_invalid_total_days_raises(bad):
    with pytest.raises(AllocationError):
        allocation.allocate([AllocationCity(name="Oslo")], bad)


def test_zero_days():
    result = allocation.allocate([AllocationCity(name="A"), AllocationCity(name="B")], 0)
    assert sum(a.days for a in result.allocations) == 0
    assert all(a.nights == 0 for a in result.allocations)


def test_last_city_has_one_night_less():
    result = allocation.quick_allocate(["Madrid", "Seville"], 6)
    madrid, seville = result.allocations
    assert madrid.days == pytest.approx(3)
    assert (madrid.nights, seville.nights) == (3, 2)
    assert result.total_nights == 5


def test_interest_factor_from_category_breakdown():
    interests = InterestCategories(culture=1.0, nightlife=0.0)
    city = AllocationCity(name="Vienna", category_breakdown={"culture": 3, "nightlife": 1})
    assert allocation.interest_factor(city, interests) == pytest.approx(0.75)
    assert allocation.interest_factor(city, None) == pytest.approx(0.5)
    assert allocation.interest_factor(AllocationCity(name="Empty"), interests) == 0.5


def test_factor_helpers():
    assert allocation.size_factor(5, 5, 5) == 1.0
    assert allocation.size_factor(10, 0, 10) == 1.5
    assert allocation.favourites_factor(3, 0) == 0.5
    assert allocation.favourites_factor(2, 4) == 1.0
    assert allocation.position_factor(AllocationCity(name="O", is_origin=True)) == 0.7


def test_suggest_city_count():
    assert allocation.suggest_city_count(4, Pace.RELAXED) == 1
    assert allocation.suggest_city_count(8) == 3
    assert allocation.suggest_city_count(14, Pace.PACKED) == 5


def test_summary_format():
    result = allocation.quick_allocate(["Porto", "Lisbon"], 4, Pace.RELAXED)
    lines = allocation.format_allocation_summary(result).splitlines()
    assert lines[0] == "Porto: 2 days (2 nights)"
    assert lines[1] == "Lisbon: 2 days (1 night)"
    assert lines[-1] == "Total: 4 days, relaxed pace"
