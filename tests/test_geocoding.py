"""
Unit tests for the static German city geocoder.
"""

import pytest

from jobboard.geocoding import GERMANY_CENTER, StaticGeocoder
from jobboard.models import Coordinate


@pytest.fixture
def geocoder():
    return StaticGeocoder()


class TestStaticGeocoder:
    """Tests for StaticGeocoder.geocode."""

    def test_plain_city(self, geocoder):
        coord = geocoder.geocode("Berlin")

        assert (coord.latitude, coord.longitude) == (52.5200, 13.4050)
        assert coord.label == "Berlin, Germany"

    @pytest.mark.parametrize("label", ["Deutschland", "Germany", " deutschland "])
    def test_whole_country(self, geocoder, label):
        assert geocoder.geocode(label) == GERMANY_CENTER
        assert GERMANY_CENTER.label == "Germany (Multiple Cities)"

    def test_city_with_country_suffix(self, geocoder):
        coord = geocoder.geocode("Köln, Deutschland")

        assert (coord.latitude, coord.longitude) == (50.9375, 6.9603)

    def test_english_alias(self, geocoder):
        assert geocoder.geocode("Cologne") == Coordinate(50.9375, 6.9603, "Cologne, Germany")
        assert geocoder.geocode("Munich").latitude == geocoder.geocode("München").latitude

    def test_accents_and_case_are_ignored(self, geocoder):
        assert geocoder.geocode("munchen").label == "München, Germany"
        assert geocoder.geocode("DÜSSELDORF").label == "Düsseldorf, Germany"

    def test_district_then_city(self, geocoder):
        """The city is taken from the last part, else the second-to-last."""
        assert geocoder.geocode("Mitte, Berlin").label == "Berlin, Germany"
        assert geocoder.geocode("Berlin, Mitte").label == "Berlin, Germany"
        assert geocoder.geocode("Altstadt, Hamburg, Deutschland").label == "Hamburg, Germany"

    def test_unknown(self, geocoder):
        assert geocoder.geocode("Atlantis") is None
        assert geocoder.geocode("Mitte, Atlantis, Nowhere") is None
        assert geocoder.geocode("") is None
        assert geocoder.geocode(" , ") is None


class TestGeocodeMany:
    """Tests for batch geocoding and its stats."""

    def test_stats(self, geocoder):
        result = geocoder.geocode_many(["Berlin", "Atlantis", "Deutschland"])

        assert set(result.coordinates) == {"Berlin", "Deutschland"}
        assert (result.stats.total, result.stats.successful, result.stats.failed) == (3, 2, 1)

    def test_only_first_twenty_are_processed(self, geocoder):
        labels = ["Berlin"] * 15 + ["Atlantis"] * 10

        result = geocoder.geocode_many(labels)

        assert result.stats.total == 20
        assert result.stats.successful == 15
        assert result.stats.failed == 5

    def test_custom_table(self):
        geocoder = StaticGeocoder({"Gießen": (50.5841, 8.6784)})

        assert geocoder.geocode("Giessen").latitude == 50.5841
        assert geocoder.geocode("GIESSEN").label == "Gießen, Germany"
        assert geocoder.geocode("Berlin") is None
