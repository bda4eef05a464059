import pytest

from vedic_chart.core import ChartAssembler, Location, Moment

J2000_MOMENT = Moment(2000, 1, 1, 12, 0, 0)


@pytest.fixture
def assembler():
    return ChartAssembler()


@pytest.fixture
def delhi():
    return Location(28.6139, 77.2090)


@pytest.fixture
def j2000_moment():
    return J2000_MOMENT
