import pytest
from checkout.errors import InvalidLocation
from checkout.location.counties import (
    COUNTIES,
    COUNTY_TO_PROVINCE,
    PROVINCES,
    DeliveryLocation,
    resolve_location,
    resolve_province,
)


class TestCountyTable:
    def test_all_forty_seven_counties_are_known(self):
        assert len(COUNTIES) == 47

    def test_every_county_maps_to_a_known_province(self):
        assert set(COUNTY_TO_PROVINCE.values()) <= set(PROVINCES)

    def test_every_province_has_a_county(self):
        assert set(COUNTY_TO_PROVINCE.values()) == set(PROVINCES)


class TestResolveProvince:
    @pytest.mark.parametrize(
        "county,province",
        [
            ("Nairobi", "Central"),
            ("Kiambu", "Central"),
            ("Mombasa", "Coast"),
            ("Kisumu", "Nyanza"),
            ("Nakuru", "Rift Valley"),
        ],
    )
    def test_known_county(self, county, province):
        assert resolve_province(county) == province

    def test_surrounding_whitespace_is_ignored(self):
        assert resolve_province("  Kiambu ") == "Central"

    @pytest.mark.parametrize("county", ["Atlantis", "", None, "kiambu"])
    def test_unknown_county_is_rejected(self, county):
        with pytest.raises(InvalidLocation) as exc:
            resolve_province(county)
        assert exc.value.code == "invalid_location"
        assert "delivery_location" in exc.value.messages


class TestResolveLocation:
    def test_returns_county_and_province(self):
        assert resolve_location("Mombasa") == DeliveryLocation(county="Mombasa", province="Coast")
