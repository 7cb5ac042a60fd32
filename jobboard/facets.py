"""Distinct filter values (countries, skills, companies, ...) for the filter UI.

Each category loads independently, in parallel, and tracks its own status so
controls can be disabled one at a time. A failed category logs and falls
back to an empty list; it never affects the job list.
"""
from __future__ import annotations

import enum
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Iterable

from jobboard.errors import ApiError
from jobboard.http_client import ApiClient
from jobboard.log import get_logger
from jobboard.retry import retry
from jobboard.text import fold

log = get_logger(__name__)

CATEGORY_PATHS: dict[str, str] = {
    "countries": "/api/Adzuna/countries",
    "contractTypes": "/api/Adzuna/contract-types",
    "contractTimes": "/api/Adzuna/contract-times",
    "workLocations": "/api/Adzuna/work-locations",
    "companies": "/api/Adzuna/companies",
    "locations": "/api/Adzuna/locations",
    "skills": "/api/Adzuna/skills",
    "languages": "/api/Adzuna/languages",
}
COMBINED_PATH = "/api/Adzuna/filter-options"

GLOBAL_CATEGORIES: tuple[str, ...] = ("countries", "skills")
SCOPED_CATEGORIES: tuple[str, ...] = (
    "contractTypes", "contractTimes", "workLocations", "companies", "locations", "languages",
)
ALL_CATEGORIES: tuple[str, ...] = GLOBAL_CATEGORIES + SCOPED_CATEGORIES

# Categories that leave countryCode out entirely when no country is chosen.
_OMIT_BLANK_COUNTRY: frozenset[str] = frozenset({"companies", "locations"})


class FacetStatus(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


def match_options(items: Iterable[str], term: str) -> list[str]:
    """Options containing ``term``, ignoring case and accents."""
    items = list(items)
    if not term:
        return items
    needle = fold(term)
    return [item for item in items if needle in fold(item)]


class FilterOptionLoaders:
    def __init__(self, client: ApiClient, *, max_workers: int = 8) -> None:
        self.client = client
        self.max_workers = max_workers
        self.options: dict[str, list[str]] = {c: [] for c in ALL_CATEGORIES}
        self.status: dict[str, FacetStatus] = {c: FacetStatus.IDLE for c in ALL_CATEGORIES}
        self._lock = threading.Lock()

    def _params(self, category: str, country: str, timeframe_in_weeks: int) -> dict[str, Any] | None:
        if category == "countries":
            return None
        params: dict[str, Any] = {}
        if country.strip() or category not in _OMIT_BLANK_COUNTRY:
            params["countryCode"] = country
        params["timeframeInWeeks"] = timeframe_in_weeks
        return params

    @retry(max_attempts=2)
    def _fetch(self, category: str, params: dict[str, Any] | None) -> list[str]:
        data = self.client.get_json(CATEGORY_PATHS[category], params=params)
        if data is None:
            return []
        if not isinstance(data, list):
            raise TypeError(f"expected a list of {category}, got {type(data).__name__}")
        return [str(v) for v in data]

    def _load_one(self, category: str, country: str, timeframe_in_weeks: int) -> list[str]:
        try:
            values = self._fetch(category, self._params(category, country, timeframe_in_weeks))
            status = FacetStatus.LOADED
        except (ApiError, TypeError, ValueError) as exc:
            log.warning("Error loading %s: %s", category, exc)
            values, status = [], FacetStatus.FAILED
        with self._lock:
            self.options[category] = values
            self.status[category] = status
        log.debug("%s: %d option(s)", category, len(values))
        return values

    def load(
        self,
        categories: Iterable[str],
        *,
        country: str = "",
        timeframe_in_weeks: int = 1,
    ) -> dict[str, list[str]]:
        """Load ``categories`` in parallel; returns what each resolved to."""
        categories = [c for c in categories if c in CATEGORY_PATHS]
        if not categories:
            return {}
        with self._lock:
            for c in categories:
                self.status[c] = FacetStatus.LOADING

        results: dict[str, list[str]] = {}
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(categories))) as pool:
            futures = {
                pool.submit(self._load_one, c, country, timeframe_in_weeks): c
                for c in categories
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        return results

    def load_initial(self, country: str = "", timeframe_in_weeks: int = 1) -> dict[str, list[str]]:
        return self.load(ALL_CATEGORIES, country=country, timeframe_in_weeks=timeframe_in_weeks)

    def reload_scoped(self, country: str, timeframe_in_weeks: int) -> dict[str, list[str]]:
        return self.load(SCOPED_CATEGORIES, country=country, timeframe_in_weeks=timeframe_in_weeks)

    def is_loading(self, category: str) -> bool:
        return self.status.get(category) is FacetStatus.LOADING

    def any_loading(self) -> bool:
        return any(s is FacetStatus.LOADING for s in self.status.values())

    def load_combined(self, country: str = "", timeframe_in_weeks: int = 1) -> dict[str, list[str]]:
        """All categories from the single aggregate endpoint."""
        params: dict[str, Any] = {"timeframeInWeeks": timeframe_in_weeks}
        if country.strip():
            params["countryCode"] = country
        data = self.client.get_json(COMBINED_PATH, params=params) or {}
        combined = {c: [str(v) for v in data.get(c) or []] for c in ALL_CATEGORIES}
        with self._lock:
            self.options.update(combined)
            for c in ALL_CATEGORIES:
                self.status[c] = FacetStatus.LOADED
        return combined
