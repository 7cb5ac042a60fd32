"""
Unit tests for the export orchestrator.
"""

from datetime import datetime, timezone

import pytest
import requests

from jobboard.errors import ExportError, ValidationError
from jobboard.export import ExportOrchestrator, export_params
from jobboard.filters import FilterState

BASE = "https://api.test"
FIXED_NOW = datetime(2024, 5, 1, 10, 30, 45, tzinfo=timezone.utc)


@pytest.fixture
def exporter(client, tmp_path):
    return ExportOrchestrator(client, tmp_path / "exports", clock=lambda: FIXED_NOW)


class TestExportParams:
    """Tests for export parameter construction."""

    def test_no_pagination_and_trimmed_values(self):
        state = FilterState(
            country="DE", page=4, title="  Dev ", location=" ",
            skills=("React", " "), languages=(" German ",), only_favorites=True,
        )

        params = export_params(state)

        assert params == [
            ("countryCode", "DE"),
            ("timeframeInWeeks", "1"),
            ("title", "Dev"),
            ("onlyFavorites", "true"),
            ("skills", "React"),
            ("languages", "German"),
        ]
        assert not any(k in ("page", "pageSize") for k, _ in params)


class TestExportOrchestrator:
    """Tests for ExportOrchestrator.export."""

    def test_csv_export(self, exporter, http, make_response):
        http.request.return_value = make_response(200, content=b"id,title\n1,Dev\n")

        result = exporter.export(FilterState(country="DE"), "csv")

        assert result.filename == "JobPosts_DE_2024-05-01T10-30-45.csv"
        assert result.path.read_bytes() == b"id,title\n1,Dev\n"
        assert result.size == len(b"id,title\n1,Dev\n")
        assert result.mime_type == "text/csv"
        args, kwargs = http.request.call_args
        assert args == ("GET", BASE + "/api/Adzuna/export-job-posts-csv")
        assert kwargs["timeout"] == 600

    def test_json_export_all_countries(self, exporter, http, make_response):
        http.request.return_value = make_response(200, [{"id": 1}])

        result = exporter.export(FilterState(), "json")

        assert result.filename == "JobPosts_AllCountries_2024-05-01T10-30-45.json"
        assert http.request.call_args.args[1] == BASE + "/api/Adzuna/export-job-posts-json"

    def test_name_collision_gets_suffix(self, exporter, http, make_response):
        http.request.return_value = make_response(200, content=b"a")

        first = exporter.export(FilterState(), "csv")
        second = exporter.export(FilterState(), "csv")

        assert first.filename == "JobPosts_AllCountries_2024-05-01T10-30-45.csv"
        assert second.filename == "JobPosts_AllCountries_2024-05-01T10-30-45-1.csv"
        assert first.path.exists() and second.path.exists()

    def test_timeframe_validated_before_request(self, exporter, http):
        with pytest.raises(ValidationError, match="Timeframe must be at least 1 week"):
            exporter.export(FilterState(timeframe_in_weeks=0), "csv")

        http.request.assert_not_called()

    def test_unknown_format(self, exporter, http):
        with pytest.raises(ValidationError):
            exporter.export(FilterState(), "xlsx")

        http.request.assert_not_called()

    def test_empty_payload(self, exporter, http, make_response, tmp_path):
        http.request.return_value = make_response(200, content=b"")

        with pytest.raises(ExportError, match="Export returned empty response"):
            exporter.export(FilterState(), "csv")

        assert not (tmp_path / "exports").exists()

    def test_request_failure(self, exporter, http):
        http.request.side_effect = requests.Timeout("read timed out")

        with pytest.raises(ExportError, match="Failed to export job posts as JSON"):
            exporter.export(FilterState(), "json")
