"""Job locations for the map page: a per-country summary of location groups,
and the postings behind one selected group."""
from __future__ import annotations

import enum
from typing import Any

from jobboard.errors import ApiError
from jobboard.geocoding import GeocoderBase, GeocodingStats
from jobboard.http_client import ApiClient
from jobboard.log import get_logger
from jobboard.models import Coordinate, JobPosting, LocationGroup

log = get_logger(__name__)

COORDINATES_PATH = "/api/Adzuna/get-job-posts-with-coordinates"
DEFAULT_COUNTRY = "DE"
GEOCODE_LIMIT = 20

COUNTRY_CENTERS: dict[str, tuple[float, float]] = {
    "DE": (51.1657, 10.4515),
    "GB": (54.7023, -3.2765),
    "US": (39.8283, -98.5795),
    "NL": (52.1326, 5.2913),
    "BE": (50.8503, 4.3517),
    "AT": (47.5162, 14.5501),
    "CH": (46.8182, 8.2275),
    "NO": (63.0472, 10.4405),
    "DK": (56.2639, 9.5018),
}
COUNTRY_ZOOMS: dict[str, int] = {
    "DE": 6, "GB": 6, "US": 4, "NL": 7, "BE": 8, "AT": 7, "CH": 7, "NO": 5, "DK": 7,
}


class MapState(enum.Enum):
    IDLE = "idle"
    LOADING_SUMMARY = "loading_summary"
    SUMMARY_LOADED = "summary_loaded"
    LOADING_LOCATION_JOBS = "loading_location_jobs"
    LOCATION_JOBS_LOADED = "location_jobs_loaded"
    FAILED = "failed"


def initial_view(country: str) -> tuple[float, float, int]:
    lat, lng = COUNTRY_CENTERS.get(country, COUNTRY_CENTERS[DEFAULT_COUNTRY])
    return lat, lng, COUNTRY_ZOOMS.get(country, 6)


class MapViewController:
    def __init__(
        self,
        client: ApiClient,
        geocoder: GeocoderBase | None = None,
        *,
        country: str = DEFAULT_COUNTRY,
        timeframe_in_weeks: int = 1,
        geocode_limit: int = GEOCODE_LIMIT,
    ) -> None:
        self.client = client
        self.geocoder = geocoder
        self.geocode_limit = geocode_limit
        self.country = country
        self.timeframe_in_weeks = timeframe_in_weeks
        self.state = MapState.IDLE
        self.error: str | None = None
        self.groups: list[LocationGroup] = []
        self.selected: LocationGroup | None = None
        self.selected_jobs: list[JobPosting] = []
        self.geocoding_stats = GeocodingStats()

    def _groups(self, params: dict[str, Any]) -> list[LocationGroup]:
        data = self.client.get_json(COORDINATES_PATH, params=params) or {}
        return [LocationGroup.from_api(g) for g in data.get("locationGroups") or []]

    def load(self) -> MapState:
        self.state = MapState.LOADING_SUMMARY
        self.error = None
        self.selected = None
        self.selected_jobs = []
        params = {
            "countryCode": self.country,
            "summaryMode": "true",
            "groupByLocation": "true",
            "getAll": "true",
            "timeframeInWeeks": self.timeframe_in_weeks,
        }
        try:
            self.groups = self._groups(params)
        except ApiError as exc:
            log.error("Error loading location summary: %s", exc)
            self.groups = []
            self.error = f"Failed to load job locations: {exc}"
            self.state = MapState.FAILED
            return self.state
        log.info("Loaded %d location group(s) for %s", len(self.groups), self.country)
        self.state = MapState.SUMMARY_LOADED
        return self.state

    def set_country(self, country: str) -> MapState:
        self.country = country
        return self.load()

    def set_timeframe(self, weeks: int) -> MapState:
        self.timeframe_in_weeks = weeks
        return self.load()

    def select_location(self, group: LocationGroup) -> MapState:
        if not group.location_id:
            return self.state
        self.state = MapState.LOADING_LOCATION_JOBS
        self.selected = group
        params = {
            "countryCode": self.country,
            "locationId": group.location_id,
            "groupByLocation": "false",
            "getAll": "true",
            "timeframeInWeeks": self.timeframe_in_weeks,
        }
        try:
            groups = self._groups(params)
        except ApiError as exc:
            log.error("Error loading jobs for %s: %s", group.location_name, exc)
            self.selected_jobs = []
            self.error = f"Failed to load jobs for {group.location_name}: {exc}"
            self.state = MapState.FAILED
            return self.state
        self.selected_jobs = [job for g in groups for job in g.job_posts]
        self.state = MapState.LOCATION_JOBS_LOADED
        return self.state

    def clear_selection(self) -> MapState:
        self.selected = None
        self.selected_jobs = []
        if self.state is not MapState.FAILED or self.groups:
            self.error = None
            self.state = MapState.SUMMARY_LOADED
        return self.state

    def markers(self) -> list[tuple[LocationGroup, Coordinate]]:
        """Groups that can be placed on the map, with their position."""
        placed = [
            (g, Coordinate(g.latitude, g.longitude, g.location_name))
            for g in self.groups if g.has_coordinates
        ]
        missing = [g for g in self.groups if not g.has_coordinates]
        if missing and self.geocoder is not None:
            result = self.geocoder.geocode_many(
                [g.location_name for g in missing], limit=self.geocode_limit,
            )
            self.geocoding_stats = result.stats
            log.debug(
                "Geocoded %d/%d location(s)", result.stats.successful, result.stats.total,
            )
            for g in missing:
                coord = result.coordinates.get(g.location_name)
                if coord is not None:
                    placed.append((g, coord))
        return placed
