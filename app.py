"""Streamlit UI for the job board."""
from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import pandas as pd
import pydeck as pdk
import streamlit as st

ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT))

from jobboard import display
from jobboard.auth import SessionController, confirm_email, register_user
from jobboard.config import (
    EXPORTS_DIR,
    SESSION_PATH,
    ensure_dirs,
    get_env,
    load_settings,
    resolve_base_url,
)
from jobboard.errors import ApiError, ExportError, JobBoardError, ValidationError
from jobboard.events import EventBus
from jobboard.export import ExportOrchestrator
from jobboard.facets import GLOBAL_CATEGORIES, FilterOptionLoaders, match_options
from jobboard.favorites import FavoritesController
from jobboard.filters import FilterStateController, ListStatus
from jobboard.geocoding import StaticGeocoder
from jobboard.guard import LOGIN_PATH, Navigator, RouteGuard
from jobboard.http_client import ApiClient
from jobboard.jobs import LOAD_ERROR, JobListFetcher, fetch_job_details
from jobboard.log import get_logger
from jobboard.map_view import COUNTRY_CENTERS, MapState, MapViewController, initial_view
from jobboard.models import JobPosting
from jobboard.token_store import TokenStore

log = get_logger(__name__)

_GLASS_CSS = """
<style>
[data-testid="stAppViewContainer"] {
    background: linear-gradient(135deg, #e8eaf6 0%, #f3e5f5 40%, #e0f2f1 100%);
}
[data-testid="stSidebar"] {
    background: rgba(255,255,255,0.55);
    backdrop-filter: blur(16px);
    -webkit-backdrop-filter: blur(16px);
    border-right: 1px solid rgba(255,255,255,0.3);
}
.block-container {
    padding-top: 2rem;
}
[data-testid="stMetric"] {
    background: rgba(255,255,255,0.6);
    padding: 0.75rem 1rem;
    border-radius: 12px;
    border: 1px solid rgba(255,255,255,0.4);
}
/* job cards */
[data-testid="stVerticalBlockBorderWrapper"] {
    background: rgba(255,255,255,0.65);
    border-radius: 12px;
}
[data-testid="stForm"],
[data-testid="stExpander"] {
    background: rgba(255,255,255,0.5);
    border-radius: 12px;
}
.stButton > button[kind="primary"] {
    border-radius: 8px;
    font-weight: 600;
}
h1, h2, h3 {
    color: #1a1a2e;
}
</style>
"""

# ── Wiring ───────────────────────────────────────────────────────────────


class StreamlitQuerySync:
    """The browser address bar, through ``st.query_params``."""

    def read(self) -> dict[str, str]:
        return st.query_params.to_dict()

    def replace(self, params: dict[str, str]) -> None:
        if st.query_params.to_dict() != params:
            st.query_params.from_dict(params)


@dataclass
class Board:
    settings: dict[str, Any]
    events: EventBus
    client: ApiClient
    session: SessionController
    guard: RouteGuard
    navigator: Navigator
    facets: FilterOptionLoaders
    favorites: FavoritesController
    exporter: ExportOrchestrator
    map: MapViewController
    filters: FilterStateController | None = None


def _queue_redirect(path: str) -> None:
    st.session_state["_redirect"] = path


def _build_board() -> Board:
    ensure_dirs()
    settings = load_settings()
    api, opts = settings["api"], settings["board"]

    events = EventBus()
    store = TokenStore(SESSION_PATH)
    client = ApiClient(
        resolve_base_url(get_env("JOBBOARD_HOST"), settings),
        store,
        events,
        timeout=api["request_timeout"],
    )
    session = SessionController(store, events, grace_seconds=opts["token_grace_seconds"])
    session.initialize()

    favorites = FavoritesController(client, session)
    session.subscribe(lambda _s: favorites.forget())

    facets = FilterOptionLoaders(client)
    facets.load(GLOBAL_CATEGORIES)

    log.info("Job board ready (backend %s)", client.base_url)
    return Board(
        settings=settings,
        events=events,
        client=client,
        session=session,
        guard=RouteGuard(session),
        navigator=Navigator(events, on_navigate=_queue_redirect),
        facets=facets,
        favorites=favorites,
        exporter=ExportOrchestrator(client, EXPORTS_DIR, timeout=api["export_timeout"]),
        map=MapViewController(client, StaticGeocoder(), geocode_limit=opts["geocode_limit"]),
    )


def _board() -> Board:
    if "_board" not in st.session_state:
        st.session_state["_board"] = _build_board()
    return st.session_state["_board"]


def _filters(board: Board) -> FilterStateController:
    """Created on the first visit to the list so it starts from that URL."""
    if board.filters is None:
        facets = board.facets
        board.filters = FilterStateController(
            JobListFetcher(board.client, page_size=board.settings["board"]["page_size"]),
            StreamlitQuerySync(),
            on_scope_change=lambda s: facets.reload_scoped(s.country, s.timeframe_in_weeks),
        )
        board.filters.start()
    return board.filters


# ── Helpers ──────────────────────────────────────────────────────────────


def _notice() -> None:
    message = st.session_state.pop("_notice", None)
    if message:
        st.warning(message)


def _select(label: str, options: list[str], current: str, **kwargs: Any) -> str:
    options = [""] + [o for o in options if o]
    if current and current not in options:
        options.append(current)
    kwargs.setdefault("format_func", lambda v: v or "Any")
    return st.selectbox(label, options, index=options.index(current), **kwargs)


def _open_job(job_id: int | str) -> None:
    st.session_state["job_id"] = str(job_id)
    st.switch_page(PAGES["/job-details"])


def _favorite_button(board: Board, job_id: int | str, *, key: str) -> None:
    marked = board.favorites.is_favorite(job_id)
    if st.button(
        "★" if marked else "☆",
        key=key,
        help="Remove from favorites" if marked else "Add to favorites",
        use_container_width=True,
    ):
        outcome = board.favorites.toggle(job_id)
        if outcome.notice:
            st.session_state["_notice"] = outcome.notice
        st.rerun()


def _job_card(board: Board, job: JobPosting, country_code: str, *, prefix: str) -> None:
    with st.container(border=True):
        c1, c2 = st.columns([6, 1])
        with c1:
            st.markdown(f"**{job.title or 'Untitled'}**")
            st.caption(" · ".join(p for p in (job.company_name, job.location_name) if p))
            tags = [
                t for t in (
                    display.contract_type_label(job.contract_type),
                    display.contract_time_label(job.contract_time),
                    job.workplace_model,
                ) if t
            ]
            salary = display.salary_text(job, country_code)
            if salary:
                tags.append(salary)
            if tags:
                st.write(" · ".join(tags))
            if job.description:
                snippet = job.description[:280]
                st.write(snippet + ("…" if len(job.description) > 280 else ""))
        with c2:
            _favorite_button(board, job.id, key=f"{prefix}_fav_{job.id}")
            if st.button("Details", key=f"{prefix}_details_{job.id}", use_container_width=True):
                _open_job(job.id)


# ── Page: Jobs ───────────────────────────────────────────────────────────


def _filter_controls(board: Board, filters: FilterStateController) -> None:
    state = filters.state
    facets = board.facets
    opts = facets.options
    changed = False

    with st.form("title_search"):
        c1, c2 = st.columns([5, 1])
        title = c1.text_input(
            "Job title", value=state.title, placeholder="e.g. React Developer",
            label_visibility="collapsed",
        )
        if c2.form_submit_button("Search", type="primary", use_container_width=True):
            changed |= filters.submit_title(title)

    c1, c2, c3, c4 = st.columns(4)
    with c1:
        country = _select(
            "Country", opts["countries"], state.country,
            format_func=lambda c: display.country_label(c) if c else "All countries",
            disabled=facets.is_loading("countries"),
        )
    with c2:
        choices = sorted(set(display.TIMEFRAME_CHOICES) | {state.timeframe_in_weeks})
        weeks = st.selectbox(
            "Timeframe", choices,
            index=choices.index(state.timeframe_in_weeks),
            format_func=display.timeframe_label,
        )
    with c3:
        contract_type = _select(
            "Contract type", opts["contractTypes"], state.contract_type,
            format_func=lambda v: display.contract_type_label(v) or "Any",
            disabled=facets.is_loading("contractTypes"),
        )
    with c4:
        contract_time = _select(
            "Contract time", opts["contractTimes"], state.contract_time,
            format_func=lambda v: display.contract_time_label(v) or "Any",
            disabled=facets.is_loading("contractTimes"),
        )

    with st.expander("More filters", expanded=bool(
        state.location or state.company or state.skills or state.languages or state.work_location
    )):
        c1, c2, c3 = st.columns(3)
        with c1:
            work_location = _select(
                "Work location", opts["workLocations"], state.work_location,
                disabled=facets.is_loading("workLocations"),
            )
            loc_term = st.text_input("Search locations", key="loc_term")
            location = _select(
                "Location", match_options(opts["locations"], loc_term), state.location,
                disabled=facets.is_loading("locations"),
            )
        with c2:
            company_term = st.text_input("Search companies", key="company_term")
            company = _select(
                "Company", match_options(opts["companies"], company_term), state.company,
                disabled=facets.is_loading("companies"),
            )
            only_favorites = st.toggle(
                "Favorites only", value=state.only_favorites,
                disabled=not board.session.is_authenticated,
            )
        with c3:
            skill_term = st.text_input("Search skills", key="skill_term")
            skills = st.multiselect(
                "Skills",
                list(dict.fromkeys(list(state.skills) + match_options(opts["skills"], skill_term))),
                default=list(state.skills),
            )
            languages = st.multiselect(
                "Languages",
                list(dict.fromkeys(list(state.languages) + opts["languages"])),
                default=list(state.languages),
                disabled=facets.is_loading("languages"),
            )

    # compare against the snapshot; an action may already have moved state
    if country != state.country:
        changed |= filters.set_country(country)
    if weeks != state.timeframe_in_weeks:
        changed |= filters.set_timeframe(weeks)
    if contract_type != state.contract_type:
        changed |= filters.set_contract_type(contract_type)
    if contract_time != state.contract_time:
        changed |= filters.set_contract_time(contract_time)
    if work_location != state.work_location:
        changed |= filters.set_work_location(work_location)
    if location != state.location and country == state.country:
        changed |= filters.set_location(location)
    if company != state.company and country == state.country:
        changed |= filters.set_company(company)
    if only_favorites != state.only_favorites:
        changed |= filters.set_only_favorites(only_favorites)
    for skill in [s for s in state.skills if s not in skills] + [s for s in skills if s not in state.skills]:
        changed |= filters.toggle_skill(skill)
    for lang in [s for s in state.languages if s not in languages] + [s for s in languages if s not in state.languages]:
        changed |= filters.toggle_language(lang)

    if changed:
        st.rerun()


def _active_chips(filters: FilterStateController) -> None:
    chips = filters.active_filters()
    cols = st.columns(len(chips) + 1)
    for col, (key, label) in zip(cols, chips):
        if col.button(f"{label} ✕", key=f"chip_{key}"):
            filters.clear_filter(key)
            st.rerun()
    if len(chips) > 1 and cols[-1].button("Reset all", key="chip_reset"):
        filters.clear_all()
        st.rerun()


def _pagination(filters: FilterStateController) -> None:
    total = max(filters.view.result.total_pages, 1)
    if total <= 1:
        return
    page = filters.state.page
    window = display.pagination_window(page, total)
    cols = st.columns(len(window) + 2)
    if cols[0].button("‹ Prev", key="page_prev", disabled=page <= 1):
        filters.previous_page()
        st.rerun()
    for col, p in zip(cols[1:-1], window):
        if p is None:
            col.markdown("…")
        elif col.button(str(p), key=f"page_{p}", type="primary" if p == page else "secondary"):
            filters.set_page(p)
            st.rerun()
    if cols[-1].button("Next ›", key="page_next", disabled=page >= total):
        filters.next_page()
        st.rerun()


def _export_panel(board: Board, filters: FilterStateController) -> None:
    with st.expander("Export"):
        st.caption("Exports every job matching the current filters, across all pages.")
        c1, c2 = st.columns(2)
        fmt = None
        if c1.button("Export CSV", use_container_width=True):
            fmt = "csv"
        if c2.button("Export JSON", use_container_width=True):
            fmt = "json"
        if fmt:
            with st.spinner(f"Exporting {fmt.upper()}…"):
                try:
                    st.session_state["_export"] = board.exporter.export(
                        filters.state.without_pagination(), fmt,
                    )
                except (ExportError, ValidationError) as exc:
                    log.error("Export failed: %s", exc)
                    st.error(str(exc))

        result = st.session_state.get("_export")
        if result:
            st.download_button(
                f"Download {result.filename}",
                data=result.content,
                file_name=result.filename,
                mime=result.mime_type,
                use_container_width=True,
            )
            st.caption(f"{result.size:,} bytes, saved to `{result.path}`")


def page_jobs(board: Board) -> None:
    filters = _filters(board)
    filters.query_sync.replace(filters.state.to_query())

    st.header("Job Posts")
    _notice()
    _filter_controls(board, filters)
    _active_chips(filters)
    _export_panel(board, filters)

    view = filters.view
    result = view.result
    if view.status is ListStatus.FAILED:
        st.error(result.error or LOAD_ERROR)
        if st.button("Retry", type="primary"):
            filters.refresh()
            st.rerun()
        return

    c1, c2, c3 = st.columns(3)
    c1.metric("Jobs", result.total_count)
    c2.metric("Page", f"{filters.state.page} / {max(result.total_pages, 1)}")
    c3.metric("Favorites", result.favorite_count)
    if result.message:
        st.info(result.message)

    if result.is_empty:
        st.info("No jobs match these filters.")
        if st.button("Clear all filters"):
            filters.clear_all()
            st.rerun()
        return

    for job in result.jobs:
        _job_card(board, job, filters.state.country, prefix="list")
    _pagination(filters)


# ── Page: Job details ────────────────────────────────────────────────────


def page_job_details(board: Board) -> None:
    if st.button("← Back to jobs"):
        st.switch_page(PAGES["/"])

    job_id = st.query_params.get("id") or st.session_state.get("job_id")
    if not job_id:
        st.info("No job selected. Pick one from the list.")
        return
    st.query_params["id"] = str(job_id)

    try:
        with st.spinner("Loading job…"):
            job = fetch_job_details(board.client, job_id)
    except ApiError as exc:
        log.error("Could not load job %s: %s", job_id, exc)
        st.error(f"Could not load job details: {exc}")
        return

    _notice()
    c1, c2 = st.columns([6, 1])
    with c1:
        st.header(job.title or "Untitled")
        company = f"[{job.company_name}]({job.company_url})" if job.company_url else job.company_name
        place = ", ".join(p for p in (job.location_name, job.country_name) if p)
        st.markdown(" · ".join(p for p in (company, place) if p))
    with c2:
        _favorite_button(board, job.id, key=f"detail_fav_{job.id}")

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Salary", display.salary_text(job) or "-")
    c2.metric("Contract", display.contract_type_label(job.contract_type) or "-")
    c3.metric("Hours", display.contract_time_label(job.contract_time) or "-")
    c4.metric("Workplace", job.workplace_model or "-")

    if job.created:
        st.caption(f"Posted {job.created:%d.%m.%Y}")
    if job.skills:
        st.markdown("**Skills:** " + " ".join(f"`{s}`" for s in job.skills))
    if job.languages:
        st.markdown("**Languages:** " + ", ".join(job.languages))

    st.divider()
    st.markdown(job.display_description or "_No description available._")
    if job.url:
        st.link_button("Apply on the original site", job.url, type="primary")


# ── Page: Map ────────────────────────────────────────────────────────────


def _map_chart(ctl: MapViewController) -> None:
    rows = [
        {
            "lat": coord.latitude,
            "lon": coord.longitude,
            "name": coord.label or group.location_name,
            "jobs": group.job_count,
            "radius": 3000 + 1500 * math.sqrt(max(group.job_count, 1)),
        }
        for group, coord in ctl.markers()
    ]
    lat, lon, zoom = initial_view(ctl.country)
    layer = pdk.Layer(
        "ScatterplotLayer",
        data=pd.DataFrame(rows, columns=["lat", "lon", "name", "jobs", "radius"]),
        get_position="[lon, lat]",
        get_radius="radius",
        get_fill_color=[74, 144, 217, 160],
        pickable=True,
        auto_highlight=True,
    )
    tooltip = {
        "html": "<b>{name}</b><br/>{jobs} job(s)",
        "style": {"backgroundColor": "white", "color": "black"},
    }
    st.pydeck_chart(
        pdk.Deck(
            layers=[layer],
            initial_view_state=pdk.ViewState(latitude=lat, longitude=lon, zoom=zoom, pitch=0),
            tooltip=tooltip,
        ),
        use_container_width=True,
    )
    stats = ctl.geocoding_stats
    st.caption(f"{len(rows)} of {len(ctl.groups)} location(s) on the map")
    if stats.total:
        st.caption(f"Placed {stats.successful}/{stats.total} location(s) without coordinates by city name")


def page_map(board: Board) -> None:
    ctl = board.map
    st.header("Job Map")
    _notice()

    codes = list(COUNTRY_CENTERS)
    c1, c2 = st.columns([4, 1])
    country = c1.radio(
        "Country", codes, index=codes.index(ctl.country) if ctl.country in codes else 0,
        format_func=display.country_label, horizontal=True,
    )
    weeks = c2.selectbox(
        "Timeframe", display.TIMEFRAME_CHOICES,
        index=display.TIMEFRAME_CHOICES.index(ctl.timeframe_in_weeks)
        if ctl.timeframe_in_weeks in display.TIMEFRAME_CHOICES else 0,
        format_func=lambda w: f"{w} Week{'s' if w > 1 else ''}",
    )

    with st.spinner("Loading job locations…"):
        if ctl.state is MapState.IDLE:
            ctl.load()
        elif country != ctl.country:
            ctl.set_country(country)
        elif weeks != ctl.timeframe_in_weeks:
            ctl.set_timeframe(weeks)

    if ctl.error:
        st.error(ctl.error)
    _map_chart(ctl)

    groups = [g for g in ctl.groups if g.location_id]
    choice = st.selectbox(
        "Location",
        [None] + groups,
        index=next((i + 1 for i, g in enumerate(groups)
                    if ctl.selected and g.location_id == ctl.selected.location_id), 0),
        format_func=lambda g: "Select a location" if g is None else f"{g.location_name} ({g.job_count})",
    )
    selected_id = ctl.selected.location_id if ctl.selected else None
    if choice is None and ctl.selected is not None:
        ctl.clear_selection()
    elif choice is not None and choice.location_id != selected_id:
        with st.spinner(f"Loading jobs in {choice.location_name}…"):
            ctl.select_location(choice)

    if ctl.state is MapState.LOCATION_JOBS_LOADED and ctl.selected is not None:
        st.subheader(f"{ctl.selected.location_name}: {len(ctl.selected_jobs)} job(s)")
        for job in ctl.selected_jobs:
            _job_card(board, job, ctl.country, prefix="map")


# ── Pages: Auth ──────────────────────────────────────────────────────────


def page_login(board: Board) -> None:
    st.header("Log In")
    current = board.session.session
    if current is not None:
        st.info(f"Already signed in as {current.email}.")

    with st.form("login"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Log In", type="primary", use_container_width=True)

    if submitted:
        try:
            with st.spinner("Logging in..."):
                board.session.login(board.client, email.strip(), password)
        except JobBoardError as exc:
            log.warning("Login failed: %s", exc)
            st.error(str(exc) or "Login failed")
        else:
            target = board.guard.post_login_target(st.session_state.pop("_from", None))
            st.switch_page(PAGES.get(target, PAGES["/"]))

    st.page_link(PAGES["/register"], label="Don't have an account? Register")


def page_register(board: Board) -> None:
    st.header("Register")
    with st.form("register"):
        c1, c2 = st.columns(2)
        name = c1.text_input("Name")
        surname = c2.text_input("Surname")
        email = st.text_input("Email")
        phone = st.text_input("Phone number")
        c1, c2 = st.columns(2)
        password = c1.text_input("Password", type="password")
        confirm = c2.text_input("Confirm password", type="password")
        submitted = st.form_submit_button("Register", type="primary", use_container_width=True)

    if submitted:
        form = {
            "email": email.strip(),
            "password": password,
            "confirmPassword": confirm,
            "name": name.strip(),
            "surname": surname.strip(),
            "phoneNumber": phone.strip(),
        }
        try:
            user = register_user(board.client, form)
        except JobBoardError as exc:
            log.warning("Registration failed: %s", exc)
            st.error(str(exc) or "Registration failed.")
        else:
            sent_to = user.get("email") if isinstance(user, dict) else None
            st.success(f"A confirmation email has been sent to {sent_to or form['email']}.")

    st.page_link(PAGES[LOGIN_PATH], label="Already registered? Log in")


def page_confirm_email(board: Board) -> None:
    st.header("Confirm Email")
    user_id = st.query_params.get("userId", "")
    token = st.query_params.get("token", "")

    results: dict[tuple[str, str], tuple[bool, str]] = st.session_state.setdefault("_confirmed", {})
    if (user_id, token) not in results:
        try:
            with st.spinner("Confirming your email…"):
                reply = confirm_email(board.client, user_id, token)
            message = reply if isinstance(reply, str) and reply else "Your email has been confirmed."
            results[(user_id, token)] = (True, message)
        except JobBoardError as exc:
            results[(user_id, token)] = (False, str(exc))

    ok, message = results[(user_id, token)]
    if ok:
        st.success(message)
        if st.button("Go to Login", type="primary"):
            st.switch_page(PAGES[LOGIN_PATH])
    else:
        st.error(message)
        if st.button("Back to Home"):
            st.switch_page(PAGES["/"])


# ── Main ─────────────────────────────────────────────────────────────────


def _inject_css() -> None:
    st.markdown(_GLASS_CSS, unsafe_allow_html=True)


def _sidebar_status(board: Board) -> None:
    with st.sidebar:
        st.divider()
        current = board.session.session
        if current is not None:
            st.markdown(f"✅  Signed in as **{current.email}**")
            if st.button("Log out", use_container_width=True):
                board.session.logout()
                st.session_state.pop("_export", None)
                st.switch_page(PAGES[LOGIN_PATH])
        else:
            st.markdown("⬜  Not signed in")
        st.caption(f"Backend: `{board.client.base_url}`")


def _follow_redirect() -> None:
    target = st.session_state.pop("_redirect", None)
    if target in PAGES:
        st.switch_page(PAGES[target])


def _run_page(path: str, render: Callable[[Board], None]) -> None:
    _inject_css()
    board = _board()
    board.navigator.current_path = path
    decision = board.guard.check(path)
    if not decision.allowed:
        st.session_state["_from"] = decision.from_path
        st.switch_page(PAGES[decision.redirect_to])
    _sidebar_status(board)
    render(board)
    _follow_redirect()


def _wrap_jobs():
    _run_page("/", page_jobs)


def _wrap_job_details():
    _run_page("/job-details", page_job_details)


def _wrap_map():
    _run_page("/map", page_map)


def _wrap_login():
    _run_page("/login", page_login)


def _wrap_register():
    _run_page("/register", page_register)


def _wrap_confirm_email():
    _run_page("/confirm-email", page_confirm_email)


PAGES = {
    "/": st.Page(_wrap_jobs, title="Jobs", icon="💼", url_path="jobs", default=True),
    "/job-details": st.Page(_wrap_job_details, title="Job Details", icon="📄", url_path="job-details"),
    "/map": st.Page(_wrap_map, title="Map", icon="🗺️", url_path="map"),
    "/login": st.Page(_wrap_login, title="Log In", icon="🔑", url_path="login"),
    "/register": st.Page(_wrap_register, title="Register", icon="📝", url_path="register"),
    "/confirm-email": st.Page(_wrap_confirm_email, title="Confirm Email", icon="✉️", url_path="confirm-email"),
}

nav = st.navigation({
    "Board": [PAGES["/"], PAGES["/job-details"], PAGES["/map"]],
    "Account": [PAGES["/login"], PAGES["/register"], PAGES["/confirm-email"]],
})
nav.run()
