import pytest

from trip_brain.brain_core.schema import Activity, Coordinates

PARIS = Coordinates(lat=48.8566, lng=2.3522)


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def offset(origin: Coordinates, north_m: float = 0.0) -> Coordinates:
    # ~111.2 km per degree of latitude
    return Coordinates(lat=origin.lat + north_m / 111_195.0, lng=origin.lng)


def make_activity(id="a1", name="Somewhere", category="other", at=None, **kw) -> Activity:
    return Activity(id=id, name=name, category=category, coordinates=at, **kw)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def here():
    return PARIS
