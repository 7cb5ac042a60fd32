"""Data models for postings, result pages, sessions and map groups."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


def parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        return None


def _float_or_none(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class JobPosting:
    id: int | str
    title: str
    company_name: str
    location_name: str
    url: str = ""
    description: str = ""
    contract_type: str = ""
    contract_time: str = ""
    workplace_model: str = ""
    country_code: str = ""
    country_name: str | None = None
    company_url: str | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    full_description: str | None = None
    created: datetime | None = None
    skills: list[str] = field(default_factory=list)
    languages: list[str] = field(default_factory=list)
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "JobPosting":
        return cls(
            id=data.get("id", ""),
            title=data.get("title") or "",
            company_name=data.get("companyName") or "",
            location_name=data.get("locationName") or "",
            url=data.get("url") or "",
            description=data.get("description") or "",
            contract_type=data.get("contractType") or "",
            contract_time=data.get("contractTime") or "",
            workplace_model=data.get("workplaceModel") or "",
            country_code=data.get("countryCode") or "",
            country_name=data.get("countryName"),
            company_url=data.get("companyUrl"),
            salary_min=_float_or_none(data.get("salaryMin")),
            salary_max=_float_or_none(data.get("salaryMax")),
            full_description=data.get("fullDescription"),
            created=parse_timestamp(data.get("created")),
            skills=list(data.get("skills") or []),
            languages=list(data.get("languages") or []),
            raw=data,
        )

    @property
    def display_description(self) -> str:
        return self.full_description or self.description


@dataclass(frozen=True)
class Cursor:
    last_created: datetime
    last_job_id: int


@dataclass
class PageResult:
    jobs: list[JobPosting] = field(default_factory=list)
    total_count: int = 0
    total_pages: int = 1
    favorite_count: int = 0
    message: str | None = None
    error: str | None = None
    last_created: datetime | None = None
    last_job_id: int | None = None
    has_next_page: bool = False

    @classmethod
    def failed(cls, error: str) -> "PageResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_empty(self) -> bool:
        """No jobs and no failure: rendered as an empty state, not an error."""
        return self.ok and not self.jobs

    def next_cursor(self) -> Cursor | None:
        if not self.has_next_page or self.last_created is None or self.last_job_id is None:
            return None
        return Cursor(self.last_created, self.last_job_id)


@dataclass(frozen=True)
class AuthSession:
    user_id: str
    email: str
    token: str
    expires_at: float


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float
    label: str = ""


@dataclass
class LocationGroup:
    location_name: str
    location_id: int | str | None = None
    latitude: float | None = None
    longitude: float | None = None
    job_count: int = 0
    job_posts: list[JobPosting] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "LocationGroup":
        return cls(
            location_name=data.get("locationName") or "",
            location_id=data.get("locationId"),
            latitude=_float_or_none(data.get("latitude")),
            longitude=_float_or_none(data.get("longitude")),
            job_count=int(data.get("jobCount") or 0),
            job_posts=[JobPosting.from_api(p) for p in data.get("jobPosts") or []],
        )

    @property
    def has_coordinates(self) -> bool:
        # 0.0 counts as missing
        return bool(self.latitude) and bool(self.longitude)
