"""Unit tests for the clock/ring geocoder."""
import pytest

from geo.geocoder import (
    ORIGIN,
    distance_to_address,
    is_valid_address,
    resolve_address,
)
from geo.layout import CITY_ROTATION_DEG, FT2M
from geo.spherical import (
    Coordinate,
    ParseError,
    bearing_from_clock,
    destination_point,
    format_distance,
    haversine_distance,
    radius_feet_for_ring,
    radius_for_ring,
)


class TestBearingFromClock:
    """Test cases for clock notation parsing."""

    def test_twelve_and_zero_equal_rotation(self):
        assert bearing_from_clock("12:00") == CITY_ROTATION_DEG % 360
        assert bearing_from_clock("0") == CITY_ROTATION_DEG % 360
        assert bearing_from_clock("12") == bearing_from_clock("0")

    def test_six_is_opposite_twelve(self):
        difference = (bearing_from_clock("6") - bearing_from_clock("12")) % 360
        assert difference == pytest.approx(180)

    @pytest.mark.parametrize("notation", ["9:30", "930", "9.5", " 9 : 30 "])
    def test_equivalent_notations(self, notation):
        assert bearing_from_clock(notation) == pytest.approx(330)

    def test_four_digit_notation(self):
        # 12:30 -> 0:30 on the clock face
        assert bearing_from_clock("1230") == pytest.approx(60)

    def test_decimal_hours(self):
        assert bearing_from_clock("6.5") == pytest.approx(240)
        assert bearing_from_clock(6.5) == pytest.approx(240)

    def test_numeric_input(self):
        assert bearing_from_clock(3) == pytest.approx(135)

    def test_result_in_range(self):
        for hour in range(13):
            bearing = bearing_from_clock(str(hour))
            assert 0 <= bearing < 360

    @pytest.mark.parametrize("notation", ["", "noon", "6:00PM", "6:0:0", "D"])
    def test_unrecognized_notation(self, notation):
        with pytest.raises(ParseError):
            bearing_from_clock(notation)


class TestRadiusForRing:
    """Test cases for ring radius calculation."""

    def test_esplanade(self):
        assert radius_feet_for_ring("Esplanade") == 2500
        assert radius_feet_for_ring("ESPL") == 2500

    def test_first_ring(self):
        # 2500 + 40/2 + 400 + 30/2
        assert radius_feet_for_ring("A") == 2935

    def test_d_ring(self):
        # 2520 + (400+30) + (250+30) + (250+30) + (250+15)
        assert radius_feet_for_ring("D") == 3775
        assert radius_feet_for_ring(" d ") == 3775

    def test_radius_increases_outward(self):
        radii = [radius_feet_for_ring(letter) for letter in "ABCDEFGHIJK"]
        assert radii == sorted(radii)
        assert radius_feet_for_ring("A") > radius_feet_for_ring("Esplanade")

    def test_meters(self):
        assert radius_for_ring("D") == pytest.approx(3775 * FT2M)

    @pytest.mark.parametrize("name", ["L", "Z", "AB", "", "6:00"])
    def test_unknown_ring(self, name):
        with pytest.raises(ParseError):
            radius_feet_for_ring(name)


class TestSphericalMath:
    """Test cases for great-circle helpers."""

    def test_haversine_zero_for_same_point(self):
        point = Coordinate(lat=40.78, lon=-119.2)
        assert haversine_distance(point, point) == 0

    def test_haversine_symmetric(self):
        a = Coordinate(lat=40.786958, lon=-119.202994)
        b = Coordinate(lat=40.7741, lon=-119.2137)
        assert haversine_distance(a, b) == pytest.approx(haversine_distance(b, a))

    @pytest.mark.parametrize("distance", [10, 999, 1001, 5000])
    @pytest.mark.parametrize("bearing", [0, 45, 180, 300])
    def test_destination_round_trip(self, distance, bearing):
        target = destination_point(ORIGIN, distance, bearing)
        assert haversine_distance(ORIGIN, target) == pytest.approx(distance, abs=1e-6)

    def test_destination_north_increases_latitude(self):
        target = destination_point(ORIGIN, 1000, 0)
        assert target.lat > ORIGIN.lat
        assert target.lon == pytest.approx(ORIGIN.lon)

    def test_format_distance(self):
        assert format_distance(850.4) == "850m"
        assert format_distance(999.5) == "1000m"
        assert format_distance(1234) == "1.2km"


class TestResolveAddress:
    """Test cases for address grammars."""

    @pytest.mark.parametrize("clock", ["6:00", "9:30", "4:45", "1200", "7.5"])
    @pytest.mark.parametrize("ring", ["A", "D", "K", "Esplanade"])
    def test_intersection_matches_direct_projection(self, clock, ring):
        expected = destination_point(
            ORIGIN, radius_for_ring(ring), bearing_from_clock(clock)
        )
        assert resolve_address(f"{clock} & {ring}") == expected
        assert resolve_address(f"{ring} & {clock}") == expected

    def test_center_camp_plaza(self):
        expected = destination_point(
            ORIGIN, radius_for_ring("ESPLANADE"), bearing_from_clock("6:00")
        )
        assert resolve_address("Center Camp Plaza") == expected
        assert resolve_address("Center Camp Plaza @ 7:30") == expected

    def test_ring_plaza(self):
        expected = destination_point(
            ORIGIN, radius_for_ring("B"), bearing_from_clock("8:15")
        )
        assert resolve_address("9:00 B Plaza @ 8:15") == expected

    def test_portal(self):
        expected = destination_point(
            ORIGIN, radius_for_ring("ESPLANADE"), bearing_from_clock("7:30")
        )
        assert resolve_address("7:30 Portal") == expected
        assert resolve_address("6 Portal") == resolve_address("6:00 Portal")

    def test_portal_with_ampersand_uses_intersection(self):
        with pytest.raises(ParseError):
            resolve_address("6:00 Portal & D")

    @pytest.mark.parametrize("address", [
        "",
        "Somewhere in the deep playa",
        "6:00 & 9:00",
        "D & E",
        "6:00 & D & E",
        "6:00 &",
        "6:00 & Z",
        "Q Plaza @ 4:00",
    ])
    def test_invalid_addresses(self, address):
        with pytest.raises(ParseError):
            resolve_address(address)

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            resolve_address("nowhere")

    def test_is_valid_address(self):
        assert is_valid_address("6:00 & D")
        assert not is_valid_address("Camp Nowhere")

    def test_distance_to_address(self):
        target = resolve_address("3:00 & C")
        assert distance_to_address(target, "3:00 & C") == pytest.approx(0)
        assert distance_to_address(ORIGIN, "3:00 & C") == pytest.approx(
            radius_for_ring("C")
        )
