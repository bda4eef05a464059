from datetime import datetime, timedelta, timezone

import pytest

from vedic_chart.core.angles import normalize_degrees, wrap_difference
from vedic_chart.core.errors import ErrorClass, InvalidMoment
from vedic_chart.core.timescales import (
    J2000_JD,
    Moment,
    SiderealTimeModel,
    TimeConverter,
    julian_centuries,
)

converter = TimeConverter()


def test_j2000_noon_is_exact_reference_julian_day():
    assert converter.to_julian_day(Moment(2000, 1, 1, 12, 0, 0)) == 2451545.0


@pytest.mark.parametrize(
    "moment, expected",
    [
        (Moment(2000, 1, 1), 2451544.5),
        (Moment(1999, 1, 1), 2451179.5),
        (Moment(1987, 4, 10), 2446895.5),
        (Moment(1957, 10, 4, 19, 26, 24), 2436116.31),
        (Moment(1600, 12, 31), 2305812.5),
        (Moment(2100, 3, 1, 6), 2488128.75),
    ],
)
def test_known_julian_days(moment, expected):
    assert converter.to_julian_day(moment) == pytest.approx(expected, abs=1e-8)


def test_utc_offset_is_removed():
    ist = Moment(2000, 1, 1, 17, 30, 0, utc_offset_minutes=330)
    assert converter.to_julian_day(ist) == pytest.approx(J2000_JD, abs=1e-9)


def test_offset_crossing_a_year_boundary():
    local = Moment(2000, 1, 1, 2, 0, 0, utc_offset_minutes=300)
    utc = Moment(1999, 12, 31, 21, 0, 0)
    assert converter.to_julian_day(local) == pytest.approx(converter.to_julian_day(utc), abs=1e-9)


def test_from_datetime_uses_its_own_offset():
    dt = datetime(2000, 1, 1, 17, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    moment = Moment.from_datetime(dt)
    assert moment.utc_offset_minutes == 330
    assert converter.to_julian_day(moment) == pytest.approx(J2000_JD, abs=1e-9)


def test_from_naive_datetime_is_utc():
    moment = Moment.from_datetime(datetime(2000, 1, 1, 12, 0, 0, 500000))
    assert moment.utc_offset_minutes == 0
    assert moment.second == 0.5


def test_parse_date_and_time_with_offset_suffix():
    moment = Moment.parse("2000-01-01", "17:30:00+05:30")
    assert (moment.year, moment.month, moment.day, moment.hour, moment.minute) == (2000, 1, 1, 17, 30)
    assert moment.utc_offset_minutes == 330
    assert converter.to_julian_day(moment) == pytest.approx(J2000_JD, abs=1e-9)


def test_parse_fractional_seconds_and_explicit_offset():
    moment = Moment.parse("2010-06-30", "23:59:59.25Z", utc_offset_minutes=-240)
    assert moment.second == pytest.approx(59.25)
    assert moment.utc_offset_minutes == -240


@pytest.mark.parametrize("date_str, time_str", [("2000/01/01", "12:00"), ("2000-01-01", "noon")])
def test_parse_rejects_malformed_input(date_str, time_str):
    with pytest.raises(InvalidMoment):
        Moment.parse(date_str, time_str)


@pytest.mark.parametrize(
    "moment, field",
    [
        (Moment(2001, 13, 1), "month"),
        (Moment(2001, 0, 1), "month"),
        (Moment(2001, 2, 29), "day"),
        (Moment(2001, 4, 31), "day"),
        (Moment(2001, 1, 1, 24), "hour"),
        (Moment(2001, 1, 1, 10, 60), "minute"),
        (Moment(2001, 1, 1, 10, 0, 60.0), "second"),
        (Moment(2001, 1, 1, 10, 0, float("nan")), "second"),
        (Moment(2001, 1, 1, utc_offset_minutes=15 * 60), "utc_offset_minutes"),
        (Moment(2001, 1.5, 1), "month"),
        (Moment(1500, 6, 1), "year"),
        (Moment(1582, 10, 14), "year"),
    ],
)
def test_invalid_moments_name_the_field(moment, field):
    with pytest.raises(InvalidMoment) as excinfo:
        converter.to_julian_day(moment)
    assert excinfo.value.field == field
    assert excinfo.value.error_class == ErrorClass.INVALID_MOMENT


def test_leap_day_and_gregorian_start_are_accepted():
    assert converter.to_julian_day(Moment(2000, 2, 29)) == pytest.approx(2451603.5)
    assert converter.to_julian_day(Moment(1582, 10, 15)) == pytest.approx(2299160.5)


def test_gmst_at_j2000():
    gmst = converter.julian_day_to_gmst(J2000_JD)
    assert gmst == pytest.approx(280.46, abs=0.01)
    assert gmst == pytest.approx(280.46061837, abs=1e-9)


def test_gmst_meeus_example():
    # 1987-04-10 0h UT: 13h10m46.3668s
    gmst = converter.julian_day_to_gmst(2446895.5)
    assert gmst == pytest.approx(197.693195, abs=1e-5)


@pytest.mark.parametrize("jd", [2440000.5, J2000_JD, 2460000.25, 2470123.9])
def test_sidereal_time_gains_about_one_degree_per_day(jd):
    advance = normalize_degrees(converter.julian_day_to_gmst(jd + 1.0) - converter.julian_day_to_gmst(jd))
    assert advance == pytest.approx(0.98564736629, abs=1e-6)


def test_gmst_is_normalized():
    for step in range(0, 400):
        gmst = converter.julian_day_to_gmst(J2000_JD + step * 0.37)
        assert 0.0 <= gmst < 360.0


def test_local_sidereal_time_adds_east_longitude():
    assert converter.local_sidereal_time(J2000_JD, 100.0) == pytest.approx(20.46061837, abs=1e-9)
    assert converter.local_sidereal_time(J2000_JD, -90.0) == pytest.approx(190.46061837, abs=1e-9)


@pytest.mark.parametrize("model", [SiderealTimeModel.MEEUS, SiderealTimeModel.IAU2006])
@pytest.mark.parametrize("longitude", [77.209, -122.4194, 179.9])
def test_local_sidereal_time_advances_at_the_sidereal_rate(model, longitude):
    times = TimeConverter(model)
    ten_minutes = 10.0 / 1440.0
    start = 2460310.75
    previous = times.local_sidereal_time(start, longitude)
    next_day = times.local_sidereal_time(start + 1.0, longitude)
    assert normalize_degrees(next_day - previous) == pytest.approx(0.98564736629, abs=1e-5)
    for step in range(1, 150):
        jd = start + step * ten_minutes
        lst = times.local_sidereal_time(jd, longitude)
        assert 0.0 <= lst < 360.0
        assert wrap_difference(lst, previous) == pytest.approx(360.98564736629 * ten_minutes, abs=1e-5)
        gmst = times.julian_day_to_gmst(jd)
        assert wrap_difference(lst, gmst) == pytest.approx(wrap_difference(longitude, 0.0), abs=1e-9)
        previous = lst


def test_iau2006_model_agrees_with_polynomial():
    iau = TimeConverter(SiderealTimeModel.IAU2006)
    for jd in (J2000_JD, 2455197.5, 2460310.75):
        diff = wrap_difference(iau.julian_day_to_gmst(jd), converter.julian_day_to_gmst(jd))
        assert abs(diff) < 0.01


def test_julian_centuries():
    assert julian_centuries(J2000_JD) == 0.0
    assert julian_centuries(J2000_JD + 36525.0) == pytest.approx(1.0)
