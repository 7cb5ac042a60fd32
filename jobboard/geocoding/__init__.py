from .base import GeocoderBase, GeocodingResult, GeocodingStats
from .static import GERMANY_CENTER, StaticGeocoder

__all__ = [
    "GeocoderBase", "GeocodingResult", "GeocodingStats",
    "StaticGeocoder", "GERMANY_CENTER",
]
