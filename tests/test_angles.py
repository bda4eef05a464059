import pytest

from vedic_chart.core.angles import (
    degree_in_sign,
    nakshatra_of,
    normalize_degrees,
    sign_index,
    wrap_difference,
)


@pytest.mark.parametrize(
    "value, expected",
    [(0.0, 0.0), (360.0, 0.0), (725.0, 5.0), (-30.0, 330.0), (-720.0, 0.0), (359.5, 359.5)],
)
def test_normalize_degrees(value, expected):
    assert normalize_degrees(value) == pytest.approx(expected)


def test_normalize_never_returns_full_circle():
    assert normalize_degrees(-1e-17) < 360.0
    assert normalize_degrees(-1e-17) >= 0.0


@pytest.mark.parametrize(
    "later, earlier, expected",
    [(10.0, 350.0, 20.0), (350.0, 10.0, -20.0), (90.0, 45.0, 45.0), (0.0, 0.0, 0.0)],
)
def test_wrap_difference(later, earlier, expected):
    assert wrap_difference(later, earlier) == pytest.approx(expected)


def test_sign_helpers():
    assert sign_index(0.0) == 0
    assert sign_index(29.999) == 0
    assert sign_index(30.0) == 1
    assert sign_index(359.0) == 11
    assert degree_in_sign(47.5) == pytest.approx(17.5)


def test_nakshatra_boundaries():
    assert nakshatra_of(0.0) == (0, 1)
    assert nakshatra_of(360.0 / 27.0) == (1, 1)
    assert nakshatra_of(359.999) == (26, 4)
