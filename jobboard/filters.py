"""Filter state, its query-string form, and the controller that keeps
state, address bar and the displayed result page in step.

Every named action produces a new ``FilterState``. Unless the action is a
page change, the page goes back to 1. When the state actually changed, the
query string is replaced with the non-default fields and a fetch is issued.
Fetches are numbered; a response is shown only if no newer fetch was issued
after it, so a slow answer for an old filter set never replaces a newer one.
"""
from __future__ import annotations

import enum
import threading
from concurrent.futures import Executor
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Callable, Mapping, Protocol

from jobboard import display
from jobboard.errors import ValidationError
from jobboard.jobs import JobListFetcher
from jobboard.log import get_logger
from jobboard.models import PageResult

log = get_logger(__name__)

FILTER_KEYS: tuple[str, ...] = (
    "timeframe", "country", "title", "company", "location", "contractType",
    "contractTime", "workLocation", "skills", "languages", "favorites",
)


def _positive_int(value: Any, default: int = 1) -> int:
    try:
        n = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return n if n >= 1 else default


def _split_list(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    seen: dict[str, None] = {}
    for item in str(value).split(","):
        item = item.strip()
        if item:
            seen.setdefault(item, None)
    return tuple(seen)


def _toggle(values: tuple[str, ...], value: str) -> tuple[str, ...]:
    if value in values:
        return tuple(v for v in values if v != value)
    return values + (value,)


@dataclass(frozen=True)
class FilterState:
    country: str = ""
    page: int = 1
    timeframe_in_weeks: int = 1
    contract_type: str = ""
    contract_time: str = ""
    work_location: str = ""
    title: str = ""
    location: str = ""
    company: str = ""
    skills: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    only_favorites: bool = False

    def to_query(self) -> dict[str, str]:
        """Query parameters for the address bar; defaults are omitted."""
        params: dict[str, str] = {}
        if self.country:
            params["country"] = self.country
        if self.page > 1:
            params["page"] = str(self.page)
        if self.timeframe_in_weeks != 1:
            params["timeframe"] = str(self.timeframe_in_weeks)
        if self.contract_type:
            params["contractType"] = self.contract_type
        if self.contract_time:
            params["contractTime"] = self.contract_time
        if self.work_location:
            params["workLocation"] = self.work_location
        if self.title:
            params["title"] = self.title
        if self.location:
            params["location"] = self.location
        if self.company:
            params["company"] = self.company
        if self.skills:
            params["skills"] = ",".join(self.skills)
        if self.languages:
            params["languages"] = ",".join(self.languages)
        if self.only_favorites:
            params["favorites"] = "true"
        return params

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> "FilterState":
        def text(key: str) -> str:
            return str(query.get(key) or "").strip()

        return cls(
            country=text("country"),
            page=_positive_int(query.get("page")),
            timeframe_in_weeks=_positive_int(query.get("timeframe")),
            contract_type=text("contractType"),
            contract_time=text("contractTime"),
            work_location=text("workLocation"),
            title=text("title"),
            location=text("location"),
            company=text("company"),
            skills=_split_list(query.get("skills")),
            languages=_split_list(query.get("languages")),
            only_favorites=text("favorites") == "true",
        )

    def without_pagination(self) -> "FilterState":
        return replace(self, page=1)


class QuerySync(Protocol):
    def read(self) -> Mapping[str, str]: ...

    def replace(self, params: dict[str, str]) -> None: ...


class MemoryQuerySync:
    """Query string held in memory, for tests and the command line."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self.params: dict[str, str] = dict(initial or {})
        self.writes = 0

    def read(self) -> Mapping[str, str]:
        return dict(self.params)

    def replace(self, params: dict[str, str]) -> None:
        self.params = dict(params)
        self.writes += 1


class Debouncer:
    """Runs ``fn`` once, ``delay`` seconds after the last ``call``."""

    def __init__(self, delay: float, fn: Callable[..., Any]) -> None:
        self.delay = delay
        self.fn = fn
        self._timer: threading.Timer | None = None
        self._pending: tuple[tuple, dict] | None = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def call(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = (args, kwargs)
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            pending, self._pending, self._timer = self._pending, None, None
        if pending is not None:
            args, kwargs = pending
            self.fn(*args, **kwargs)

    def flush(self) -> None:
        """Run the pending call now instead of waiting for the timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
        self._fire()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None


class ListStatus(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class ListView:
    """What the job list shows. ``result`` belongs to ``state``."""

    status: ListStatus = ListStatus.IDLE
    result: PageResult = field(default_factory=PageResult)
    state: FilterState | None = None
    seq: int = 0


class FilterStateController:
    def __init__(
        self,
        fetcher: JobListFetcher,
        query_sync: QuerySync,
        *,
        on_scope_change: Callable[[FilterState], None] | None = None,
        executor: Executor | None = None,
        debounce_seconds: float = 0.0,
    ) -> None:
        self.fetcher = fetcher
        self.query_sync = query_sync
        self.on_scope_change = on_scope_change
        self.executor = executor
        self._state = FilterState.from_query(query_sync.read())
        self._lock = threading.Lock()
        self._seq = 0
        self.view = ListView()
        self._debouncer = Debouncer(debounce_seconds, self._issue) if debounce_seconds > 0 else None

    @property
    def state(self) -> FilterState:
        return self._state

    @property
    def latest_seq(self) -> int:
        return self._seq

    # ── lifecycle ───────────────────────────────────────────────────────

    def start(self) -> int:
        """Cold load: normalize the URL, load scoped facets, fetch page."""
        self._sync_url()
        self._notify_scope()
        return self._issue()

    def refresh(self) -> int:
        """Re-issue the fetch for the current state (retry affordance)."""
        return self._issue()

    def flush(self) -> None:
        """Send a debounced fetch now instead of when the timer fires."""
        if self._debouncer is not None and self._debouncer.pending:
            self._debouncer.flush()

    # ── effects ─────────────────────────────────────────────────────────

    def _sync_url(self) -> None:
        self.query_sync.replace(self._state.to_query())

    def _notify_scope(self) -> None:
        if self.on_scope_change is None:
            return
        try:
            self.on_scope_change(self._state)
        except Exception as exc:
            log.error("Scope change handler failed: %s", exc)

    def _update(self, *, reset_page: bool = True, **changes: Any) -> bool:
        previous = self._state
        if reset_page:
            changes["page"] = 1
        new = replace(previous, **changes)
        if new == previous:
            return False
        self._state = new
        self._sync_url()
        if self._debouncer is not None:
            self._debouncer.call()
        else:
            self._issue()
        if (new.country, new.timeframe_in_weeks) != (previous.country, previous.timeframe_in_weeks):
            self._notify_scope()
        return True

    def _issue(self) -> int:
        with self._lock:
            self._seq += 1
            seq = self._seq
            state = self._state
            self.view = replace(self.view, status=ListStatus.LOADING)
        log.debug("Fetch #%d issued for %s", seq, state.to_query())
        if self.executor is not None:
            self.executor.submit(self._run, seq, state)
        else:
            self._run(seq, state)
        return seq

    def _run(self, seq: int, state: FilterState) -> None:
        try:
            result = self.fetcher.fetch(state)
        except Exception as exc:
            log.error("Fetch #%d failed unexpectedly: %s", seq, exc)
            result = PageResult.failed(str(exc))
        self._apply(seq, state, result)

    def _apply(self, seq: int, state: FilterState, result: PageResult) -> bool:
        with self._lock:
            if seq != self._seq:
                log.debug("Discarding stale response #%d (latest #%d)", seq, self._seq)
                return False
            status = ListStatus.LOADED if result.ok else ListStatus.FAILED
            self.view = ListView(status=status, result=result, state=state, seq=seq)
        return True

    # ── actions ─────────────────────────────────────────────────────────

    def set_country(self, country: str) -> bool:
        return self._update(country=(country or "").strip(), location="", company="")

    def set_page(self, page: int) -> bool:
        if page < 1:
            raise ValidationError("Page must be at least 1")
        return self._update(reset_page=False, page=page)

    def next_page(self) -> bool:
        last = max(1, self.view.result.total_pages)
        return self.set_page(min(last, self._state.page + 1))

    def previous_page(self) -> bool:
        return self.set_page(max(1, self._state.page - 1))

    def set_timeframe(self, weeks: int) -> bool:
        if weeks < 1:
            raise ValidationError("Timeframe must be at least 1 week")
        return self._update(timeframe_in_weeks=weeks)

    def set_contract_type(self, value: str) -> bool:
        return self._update(contract_type=(value or "").strip())

    def set_contract_time(self, value: str) -> bool:
        return self._update(contract_time=(value or "").strip())

    def set_work_location(self, value: str) -> bool:
        return self._update(work_location=(value or "").strip())

    def set_location(self, value: str) -> bool:
        return self._update(location=(value or "").strip())

    def set_company(self, value: str) -> bool:
        return self._update(company=(value or "").strip())

    def submit_title(self, text: str) -> bool:
        return self._update(title=(text or "").strip())

    def toggle_skill(self, skill: str) -> bool:
        skill = (skill or "").strip()
        if not skill:
            return False
        return self._update(skills=_toggle(self._state.skills, skill))

    def toggle_language(self, language: str) -> bool:
        language = (language or "").strip()
        if not language:
            return False
        return self._update(languages=_toggle(self._state.languages, language))

    def set_only_favorites(self, enabled: bool) -> bool:
        return self._update(only_favorites=bool(enabled))

    def clear_filter(self, key: str) -> bool:
        if key not in FILTER_KEYS:
            raise ValueError(f"Unknown filter: {key}")
        defaults = FilterState()
        changes: dict[str, Any] = {
            "timeframe": {"timeframe_in_weeks": defaults.timeframe_in_weeks},
            "country": {"country": "", "location": "", "company": ""},
            "title": {"title": ""},
            "company": {"company": ""},
            "location": {"location": ""},
            "contractType": {"contract_type": ""},
            "contractTime": {"contract_time": ""},
            "workLocation": {"work_location": ""},
            "skills": {"skills": ()},
            "languages": {"languages": ()},
            "favorites": {"only_favorites": False},
        }[key]
        return self._update(**changes)

    def clear_all(self) -> bool:
        fields = {k: v for k, v in asdict(FilterState()).items() if k != "page"}
        return self._update(**fields)

    # ── presentation ────────────────────────────────────────────────────

    def active_filters(self) -> list[tuple[str, str]]:
        s = self._state
        weeks = s.timeframe_in_weeks
        chips = [("timeframe", f"{weeks} week{'s' if weeks > 1 else ''}")]

        def many(label: str, values: tuple[str, ...]) -> str:
            return f"{label}: {values[0] if len(values) == 1 else f'{len(values)} selected'}"

        candidates = [
            ("country", s.country, lambda: display.country_label(s.country)),
            ("title", s.title, lambda: f"Title: {s.title}"),
            ("company", s.company, lambda: f"Company: {s.company}"),
            ("location", s.location, lambda: f"Location: {s.location}"),
            ("contractType", s.contract_type, lambda: f"Contract: {s.contract_type}"),
            ("contractTime", s.contract_time, lambda: f"Time: {s.contract_time}"),
            ("workLocation", s.work_location, lambda: f"Work: {s.work_location}"),
            ("skills", s.skills, lambda: many("Skills", s.skills)),
            ("languages", s.languages, lambda: many("Languages", s.languages)),
            ("favorites", s.only_favorites, lambda: "Favorites Only"),
        ]
        chips.extend((key, label()) for key, value, label in candidates if value)
        return chips
