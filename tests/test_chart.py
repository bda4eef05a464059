import dataclasses
import json
import pickle
from concurrent.futures import ProcessPoolExecutor

import pytest

from vedic_chart.core import (
    ChartAssembler,
    ChartConfig,
    EphemerisSource,
    InvalidLocation,
    InvalidMoment,
    Location,
    Moment,
    PlanetName,
    UnsupportedLatitude,
    ZodiacMode,
    assemble_chart,
)
from vedic_chart.core.angles import normalize_degrees
from vedic_chart.core.ephemeris import SOURCE_BODIES
from vedic_chart.core.errors import ErrorClass
from vedic_chart.core.chart import PlanetPosition


class FixedSource(EphemerisSource):
    name = "fixed"

    def tropical_longitudes(self, jd):
        positions = {body: 40.0 * i for i, body in enumerate(SOURCE_BODIES)}
        positions[PlanetName.RAHU] = 10.0
        return positions


def test_j2000_at_null_island(assembler, j2000_moment):
    chart = assembler.assemble(j2000_moment, Location(0.0, 0.0))
    assert chart.julian_day == 2451545.0
    assert chart.sidereal_time == pytest.approx(280.46, abs=0.01)


def test_latitude_out_of_range_is_rejected(assembler, j2000_moment):
    with pytest.raises(InvalidLocation) as excinfo:
        assembler.assemble(j2000_moment, Location(95.0, 0.0))
    assert excinfo.value.field == "latitude"
    assert "latitude 95.0 out of range [-90, 90]" in str(excinfo.value)
    assert excinfo.value.error_class == ErrorClass.INVALID_LOCATION


@pytest.mark.parametrize(
    "location, field",
    [
        (Location(0.0, 181.0), "longitude"),
        (Location(0.0, -180.5), "longitude"),
        (Location(float("nan"), 0.0), "latitude"),
        (Location("north", 0.0), "latitude"),
    ],
)
def test_invalid_locations(assembler, j2000_moment, location, field):
    with pytest.raises(InvalidLocation) as excinfo:
        assembler.assemble(j2000_moment, location)
    assert excinfo.value.field == field


def test_polar_location_is_unsupported(assembler, j2000_moment):
    with pytest.raises(UnsupportedLatitude):
        assembler.assemble(j2000_moment, Location(78.2, 15.6))


def test_invalid_moment_propagates(assembler, delhi):
    with pytest.raises(InvalidMoment):
        assembler.assemble(Moment(2001, 2, 29, 10), delhi)


def test_chart_invariants(assembler, delhi):
    chart = assembler.assemble(Moment(1990, 5, 25, 10, 30, 0, utc_offset_minutes=330), delhi)

    assert set(chart.planets) == set(PlanetName)
    assert chart.houses[0] == pytest.approx(chart.ascendant)
    assert chart.ayanamsa == pytest.approx(assembler.ayanamsa_corrector.ayanamsa_for(chart.julian_day))
    assert 0.0 <= chart.ascendant < 360.0
    assert 0.0 <= chart.midheaven < 360.0

    rahu = chart.planets[PlanetName.RAHU].longitude
    assert chart.planets[PlanetName.KETU].longitude == pytest.approx(normalize_degrees(rahu + 180.0))

    for name, position in chart.planets.items():
        assert position.name is name
        assert 0.0 <= position.longitude < 360.0
        assert 1 <= position.house <= 12
        assert position.house == assembler.house_calculator.house_for_longitude(position.longitude, chart.houses)
        assert position.longitude == pytest.approx(
            normalize_degrees(position.tropical_longitude - chart.ayanamsa)
        )

    assert sum(len(chart.planets_in_house(h)) for h in range(1, 13)) == 9


def test_sun_sign_in_late_may_is_sidereal_taurus(assembler, delhi):
    chart = assembler.assemble(Moment(1990, 5, 25, 10, 30, 0, utc_offset_minutes=330), delhi)
    sun = chart.planets[PlanetName.SUN]
    assert sun.sign == "Taurus"
    assert 60.0 < sun.tropical_longitude < 70.0
    assert not sun.is_retrograde


def test_tropical_mode_skips_ayanamsa(delhi):
    moment = Moment(2024, 3, 20, 6, 0, 0)
    sidereal = ChartAssembler().assemble(moment, delhi)
    tropical = ChartAssembler(ChartConfig(zodiac=ZodiacMode.TROPICAL)).assemble(moment, delhi)

    assert tropical.zodiac == ZodiacMode.TROPICAL
    assert tropical.ayanamsa == pytest.approx(sidereal.ayanamsa)
    assert tropical.ascendant == pytest.approx(normalize_degrees(sidereal.ascendant + sidereal.ayanamsa))
    for name in PlanetName:
        assert tropical.planets[name].longitude == pytest.approx(tropical.planets[name].tropical_longitude)


def test_chart_is_immutable(assembler, delhi, j2000_moment):
    chart = assembler.assemble(j2000_moment, delhi)
    with pytest.raises(dataclasses.FrozenInstanceError):
        chart.julian_day = 0.0
    with pytest.raises(TypeError):
        chart.planets[PlanetName.SUN] = None


def test_to_dict_is_json_serializable(assembler, delhi, j2000_moment):
    record = assembler.assemble(j2000_moment, delhi).to_dict()
    decoded = json.loads(json.dumps(record))

    assert decoded["julian_day"] == 2451545.0
    assert len(decoded["houses"]) == 12
    assert set(decoded["planets"]) == {name.value for name in PlanetName}
    assert decoded["meta"] == {
        "zodiac": "sidereal",
        "ayanamsa_model": "lahiri",
        "house_system": "equal",
        "ephemeris_source": "low_precision",
    }
    assert decoded["planets"]["Moon"]["nakshatra_pada"] in (1, 2, 3, 4)
    assert decoded["panchanga"]["vara"] == "Shanivara"
    assert 1 <= decoded["panchanga"]["tithi"] <= 30


def test_injected_ephemeris_source(delhi, j2000_moment):
    chart = assemble_chart(
        j2000_moment, delhi, ChartConfig(include_speeds=False), ephemeris=FixedSource()
    )
    assert chart.ephemeris_source == "fixed"
    assert chart.planets[PlanetName.SUN].tropical_longitude == 0.0
    assert chart.planets[PlanetName.KETU].tropical_longitude == 190.0
    assert chart.planets[PlanetName.SUN].speed_deg_per_day is None
    assert not chart.planets[PlanetName.SUN].is_retrograde


def test_whole_sign_chart(delhi, j2000_moment):
    chart = ChartAssembler(ChartConfig(house_system="whole_sign")).assemble(j2000_moment, delhi)
    assert all(cusp % 30.0 == 0.0 for cusp in chart.houses)
    assert chart.houses[0] == (chart.ascendant // 30.0) * 30.0


def test_porphyry_chart_places_midheaven_on_tenth_cusp(delhi, j2000_moment):
    chart = ChartAssembler(ChartConfig(house_system="porphyry")).assemble(j2000_moment, delhi)
    assert chart.houses[9] == pytest.approx(chart.midheaven)
    assert chart.houses.system == "porphyry"


def test_assemble_many_keeps_request_order(assembler, delhi):
    requests = [(Moment(2020, 1, day, 12), delhi) for day in range(1, 11)]
    charts = assembler.assemble_many(requests, max_workers=4)
    assert [c.moment.day for c in charts] == list(range(1, 11))
    days = [c.julian_day for c in charts]
    assert days == sorted(days)
    assert charts[0].to_dict() == assembler.assemble(*requests[0]).to_dict()


def test_assemble_many_reraises_errors(assembler, delhi):
    requests = [(Moment(2020, 1, 1), delhi), (Moment(2020, 1, 2), Location(91.0, 0.0))]
    with pytest.raises(InvalidLocation):
        assembler.assemble_many(requests)


@pytest.mark.parametrize(
    "longitude, nakshatra, pada",
    [(0.0, "Ashwini", 1), (13.5, "Bharani", 1), (359.9, "Revati", 4), (123.0, "Magha", 1)],
)
def test_nakshatra_placement(longitude, nakshatra, pada):
    position = PlanetPosition(PlanetName.MOON, longitude, 1, longitude)
    assert position.nakshatra == nakshatra
    assert position.nakshatra_pada == pada


def test_placidus_chart_keeps_angles_on_cusps(delhi, j2000_moment):
    chart = ChartAssembler(ChartConfig(house_system="placidus")).assemble(j2000_moment, delhi)
    assert chart.houses.system == "placidus"
    assert chart.houses[0] == pytest.approx(chart.ascendant)
    assert chart.houses[9] == pytest.approx(chart.midheaven)
    for i in range(6):
        assert (chart.houses[i + 6] - chart.houses[i]) % 360.0 == pytest.approx(180.0)
    assert all(1 <= pos.house <= 12 for pos in chart.planets.values())


def test_placidus_cusps_shift_with_the_zodiac(delhi, j2000_moment):
    sidereal = assemble_chart(j2000_moment, delhi, ChartConfig(house_system="placidus"))
    tropical = assemble_chart(
        j2000_moment, delhi, ChartConfig(house_system="placidus", zodiac=ZodiacMode.TROPICAL)
    )
    for trop, sid in zip(tropical.houses, sidereal.houses):
        assert (trop - sid) % 360.0 == pytest.approx(sidereal.ayanamsa)


def test_placidus_chart_refuses_latitudes_equal_houses_accept(j2000_moment):
    tromso = Location(63.0, 18.9)
    assert len(assemble_chart(j2000_moment, tromso).houses) == 12
    with pytest.raises(UnsupportedLatitude):
        assemble_chart(j2000_moment, tromso, ChartConfig(house_system="placidus"))


def test_chart_survives_pickling(assembler, delhi, j2000_moment):
    chart = assembler.assemble(j2000_moment, delhi)
    restored = pickle.loads(pickle.dumps(chart))
    assert restored == chart
    assert restored.to_dict() == chart.to_dict()
    with pytest.raises(TypeError):
        restored.planets[PlanetName.SUN] = None


def test_chart_is_hashable(assembler, delhi, j2000_moment):
    chart = assembler.assemble(j2000_moment, delhi)
    same = assembler.assemble(j2000_moment, delhi)
    later = assembler.assemble(Moment(2000, 1, 2, 12), delhi)
    assert hash(chart) == hash(same)
    assert len({chart, same, later}) == 2
    assert {chart: "j2000"}[pickle.loads(pickle.dumps(same))] == "j2000"


def test_chart_crosses_process_boundary(delhi, j2000_moment):
    with ProcessPoolExecutor(max_workers=1) as pool:
        chart = pool.submit(assemble_chart, j2000_moment, delhi).result()
    assert chart == assemble_chart(j2000_moment, delhi)


def test_assemble_many_in_worker_processes(assembler, delhi):
    requests = [(Moment(2020, 1, day, 12), delhi) for day in range(1, 5)]
    charts = assembler.assemble_many(requests, max_workers=2, processes=True)
    assert charts == [assembler.assemble(*request) for request in requests]


def test_panchanga_from_injected_positions(delhi, j2000_moment):
    chart = assemble_chart(
        j2000_moment, delhi, ChartConfig(include_speeds=False), ephemeris=FixedSource()
    )
    panchanga = chart.panchanga
    assert panchanga.tithi == 4
    assert panchanga.tithi_name == "Chaturthi"
    assert panchanga.paksha == "shukla"
    assert panchanga.karana == 7
    assert panchanga.karana_name == "Vanija"
    assert panchanga.yoga_name == "Vaidhriti"
    assert panchanga.nakshatra == "Bharani"
    assert panchanga.vara == "Shanivara"


def test_panchanga_near_full_and_new_moon(delhi):
    full = assemble_chart(Moment(2024, 1, 25, 12), delhi).panchanga
    assert full.tithi_name == "Purnima"
    assert full.vara == "Guruvara"
    new = assemble_chart(Moment(2024, 1, 11, 0), delhi).panchanga
    assert new.tithi_name == "Amavasya"
    assert new.paksha == "krishna"


def test_panchanga_is_the_same_in_either_zodiac(delhi, j2000_moment):
    sidereal = assemble_chart(j2000_moment, delhi).panchanga
    tropical = assemble_chart(j2000_moment, delhi, ChartConfig(zodiac=ZodiacMode.TROPICAL)).panchanga
    assert tropical == sidereal
