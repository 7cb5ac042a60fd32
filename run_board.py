#!/usr/bin/env python3
"""Query the job board from the command line.

  python run_board.py "country=DE&skills=React&page=2"
  python run_board.py "country=DE&timeframe=2" --export csv
  python run_board.py "country=GB" --facets

The query string uses the same parameters as the web UI's address bar.
Requests carry the token saved by the last login in the web UI, if any.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from urllib.parse import parse_qsl

sys.path.insert(0, str(Path(__file__).resolve().parent))

from jobboard import display
from jobboard.auth import SessionController
from jobboard.config import EXPORTS_DIR, SESSION_PATH, ensure_dirs, get_env, load_settings, resolve_base_url
from jobboard.errors import JobBoardError
from jobboard.events import EventBus
from jobboard.export import ExportOrchestrator
from jobboard.facets import FilterOptionLoaders
from jobboard.filters import FilterStateController, ListStatus, MemoryQuerySync
from jobboard.http_client import ApiClient
from jobboard.jobs import JobListFetcher
from jobboard.log import get_logger
from jobboard.token_store import TokenStore

log = get_logger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Search job posts on the job board backend.")
    parser.add_argument("query", nargs="?", default="", help="filters as a query string, e.g. 'country=DE&skills=React'")
    parser.add_argument("--export", choices=("csv", "json"), help="export all matching posts to data/exports")
    parser.add_argument("--facets", action="store_true", help="list the available filter values for the query's scope")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    ensure_dirs()
    settings = load_settings()

    events = EventBus()
    store = TokenStore(SESSION_PATH)
    client = ApiClient(
        resolve_base_url(get_env("JOBBOARD_HOST"), settings),
        store,
        events,
        timeout=settings["api"]["request_timeout"],
    )
    session = SessionController(store, events, grace_seconds=settings["board"]["token_grace_seconds"])
    if session.initialize() is None:
        log.info("Not logged in; favorites filters will be ignored by the backend")

    filters = FilterStateController(
        JobListFetcher(client, page_size=settings["board"]["page_size"]),
        MemoryQuerySync(dict(parse_qsl(args.query.lstrip("?")))),
    )
    state = filters.state

    if args.facets:
        options = FilterOptionLoaders(client).load_combined(state.country, state.timeframe_in_weeks)
        for category, values in options.items():
            log.info("%s (%d): %s", category, len(values), ", ".join(values[:15]))

    if args.export:
        try:
            result = ExportOrchestrator(
                client, EXPORTS_DIR, timeout=settings["api"]["export_timeout"],
            ).export(state.without_pagination(), args.export)
        except JobBoardError as exc:
            log.error("%s", exc)
            return 1
        log.info("Export saved: %s (%d bytes)", result.path, result.size)
        return 0

    filters.start()
    view = filters.view
    if view.status is ListStatus.FAILED:
        log.error("%s", view.result.error)
        return 1

    result = view.result
    log.info(
        "Page %d/%d, %d job(s) total, filters: %s",
        state.page, max(result.total_pages, 1), result.total_count,
        "; ".join(label for _, label in filters.active_filters()),
    )
    for job in result.jobs:
        salary = display.salary_text(job, state.country)
        log.info(
            "  [%s] %s | %s | %s%s",
            job.id, job.title, job.company_name, job.location_name,
            f" | {salary}" if salary else "",
        )
    if result.is_empty:
        log.info("No jobs match these filters.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
