"""Paginated job search against the backend and response normalization."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from jobboard.errors import ApiError
from jobboard.http_client import ApiClient
from jobboard.log import get_logger
from jobboard.models import Cursor, JobPosting, PageResult, parse_timestamp
from jobboard.retry import retry

if TYPE_CHECKING:
    from jobboard.filters import FilterState

log = get_logger(__name__)

JOB_POSTS_PATH = "/api/Adzuna/get-job-posts"
JOB_DETAILS_PATH = "/api/Adzuna/job-details/{id}"
PAGE_SIZE = 10
LOAD_ERROR = "Error loading jobs. Please try again."

# Request parameter name for each single-valued string filter, in send order.
_STRING_FILTERS: tuple[tuple[str, str], ...] = (
    ("contract_type", "contractType"),
    ("contract_time", "contractTime"),
    ("work_location", "workLocation"),
    ("title", "title"),
    ("location", "location"),
    ("company", "company"),
)


def _header_int(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class JobListFetcher:
    def __init__(self, client: ApiClient, page_size: int = PAGE_SIZE) -> None:
        self.client = client
        self.page_size = page_size

    def build_params(
        self,
        state: "FilterState",
        cursor: Cursor | None = None,
        use_cursor: bool = False,
    ) -> list[tuple[str, str]]:
        """Query pairs for ``state``; unset filters are left out entirely."""
        params: list[tuple[str, str]] = []
        if state.country.strip():
            params.append(("countryCode", state.country))
        params.append(("page", str(state.page)))
        params.append(("pageSize", str(self.page_size)))
        params.append(("timeframeInWeeks", str(state.timeframe_in_weeks)))
        for attr, name in _STRING_FILTERS:
            value = getattr(state, attr)
            if value:
                params.append((name, value))
        if state.only_favorites:
            params.append(("onlyFavorites", "true"))

        if use_cursor:
            params.append(("useCursorPagination", "true"))
            if cursor is not None:
                params.append(("lastCreated", cursor.last_created.isoformat()))
                params.append(("lastJobId", str(cursor.last_job_id)))

        params.extend(("skills", s) for s in state.skills)
        params.extend(("languages", lang) for lang in state.languages)
        return params

    def fetch(
        self,
        state: "FilterState",
        cursor: Cursor | None = None,
        use_cursor: bool = False,
    ) -> PageResult:
        params = self.build_params(state, cursor=cursor, use_cursor=use_cursor)
        try:
            response = self.client.get(JOB_POSTS_PATH, params=params)
            data = response.json() if response.content else {}
        except (ApiError, ValueError) as exc:
            log.error("Error loading jobs: %s", exc)
            return PageResult.failed(LOAD_ERROR)
        result = self.normalize(data or {}, response.headers)
        log.info(
            "Loaded page %d: %d job(s) of %d",
            state.page, len(result.jobs), result.total_count,
        )
        return result

    def normalize(self, data: dict[str, Any], headers: Any = None) -> PageResult:
        headers = headers or {}
        posts = data.get("posts") or []
        if len(posts) > self.page_size:
            log.warning("Backend returned %d posts for page size %d", len(posts), self.page_size)
            posts = posts[: self.page_size]

        has_next = headers.get("x-hasnextpage")
        return PageResult(
            jobs=[JobPosting.from_api(p) for p in posts],
            total_count=int(data.get("totalCount") or 0),
            total_pages=int(data.get("totalPages") or 1),
            favorite_count=int(data.get("favoriteCount") or 0),
            message=data.get("message") or None,
            last_created=parse_timestamp(headers.get("x-lastcreated")),
            last_job_id=_header_int(headers.get("x-lastjobid")),
            has_next_page=bool(has_next) and str(has_next).lower() == "true",
        )


@retry(max_attempts=2)
def fetch_job_details(client: ApiClient, job_id: int | str) -> JobPosting:
    data = client.get_json(JOB_DETAILS_PATH.format(id=job_id)) or {}
    return JobPosting.from_api(data)
