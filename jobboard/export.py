"""Bulk export of the filtered postings to CSV or JSON files."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from jobboard.errors import ApiError, ExportError, ValidationError
from jobboard.filters import FilterState
from jobboard.http_client import ApiClient
from jobboard.log import get_logger

log = get_logger(__name__)

EXPORT_PATHS: dict[str, str] = {
    "csv": "/api/Adzuna/export-job-posts-csv",
    "json": "/api/Adzuna/export-job-posts-json",
}
MIME_TYPES: dict[str, str] = {"csv": "text/csv", "json": "application/json"}
EXPORT_TIMEOUT = 600


@dataclass(frozen=True)
class ExportResult:
    filename: str
    path: Path
    content: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def validate_export(state: FilterState, fmt: str) -> None:
    errors: list[str] = []
    if fmt not in EXPORT_PATHS:
        errors.append(f"Unsupported format {fmt!r}")
    if state.timeframe_in_weeks < 1:
        errors.append("Timeframe must be at least 1 week")
    if errors:
        raise ValidationError(f"Validation failed: {', '.join(errors)}")


def export_params(state: FilterState) -> list[tuple[str, str]]:
    params: list[tuple[str, str]] = []
    if state.country.strip():
        params.append(("countryCode", state.country.strip()))
    params.append(("timeframeInWeeks", str(state.timeframe_in_weeks)))
    for name, value in (
        ("contractType", state.contract_type),
        ("contractTime", state.contract_time),
        ("workLocation", state.work_location),
        ("title", state.title),
        ("location", state.location),
        ("company", state.company),
    ):
        if value.strip():
            params.append((name, value.strip()))
    if state.only_favorites:
        params.append(("onlyFavorites", "true"))
    params.extend(("skills", s.strip()) for s in state.skills if s.strip())
    params.extend(("languages", lang.strip()) for lang in state.languages if lang.strip())
    return params


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExportOrchestrator:
    def __init__(
        self,
        client: ApiClient,
        exports_dir: Path,
        *,
        timeout: float = EXPORT_TIMEOUT,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.client = client
        self.exports_dir = Path(exports_dir)
        self.timeout = timeout
        self.clock = clock

    def filename_for(self, state: FilterState, fmt: str) -> str:
        label = state.country.strip() or "AllCountries"
        stamp = self.clock().strftime("%Y-%m-%dT%H-%M-%S")
        return f"JobPosts_{label}_{stamp}.{fmt}"

    def _free_path(self, filename: str) -> Path:
        path = self.exports_dir / filename
        n = 1
        while path.exists():
            stem, _, ext = filename.rpartition(".")
            path = self.exports_dir / f"{stem}-{n}.{ext}"
            n += 1
        return path

    def export(self, state: FilterState, fmt: str = "csv") -> ExportResult:
        fmt = (fmt or "").lower()
        validate_export(state, fmt)

        params = export_params(state)
        label = state.country.strip() or "AllCountries"
        log.info("Starting %s export (country: %s)", fmt.upper(), label)
        try:
            response = self.client.get(EXPORT_PATHS[fmt], params=params, timeout=self.timeout)
        except ApiError as exc:
            raise ExportError(f"Failed to export job posts as {fmt.upper()}: {exc}") from exc

        content = response.content or b""
        if not content:
            raise ExportError("Export returned empty response")

        self.exports_dir.mkdir(parents=True, exist_ok=True)
        path = self._free_path(self.filename_for(state, fmt))
        path.write_bytes(content)
        log.info("%s export completed: %s (%d bytes)", fmt.upper(), path.name, len(content))
        return ExportResult(filename=path.name, path=path, content=content, mime_type=MIME_TYPES[fmt])
