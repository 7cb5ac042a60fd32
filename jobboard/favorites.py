"""Per-posting favorite marks with optimistic toggling."""
from __future__ import annotations

from dataclasses import dataclass

from jobboard.auth import SessionController
from jobboard.errors import ApiError
from jobboard.http_client import ApiClient
from jobboard.log import get_logger

log = get_logger(__name__)

CHECK_PATH = "/api/favorites/check/{id}"
ADD_PATH = "/api/favorites/add-to-favorites"
REMOVE_PATH = "/api/favorites/remove-from-favorites"

LOGIN_REQUIRED = "Login required to favorite jobs"


@dataclass(frozen=True)
class ToggleOutcome:
    ok: bool
    is_favorite: bool
    notice: str | None = None


class FavoritesController:
    """Favorite marks, fetched lazily per posting.

    Marks are not reconciled with the server after the first check, so a
    change made in another tab shows up only after ``forget``.
    """

    def __init__(self, client: ApiClient, session: SessionController) -> None:
        self.client = client
        self.session = session
        self.marks: dict[int | str, bool] = {}

    def is_favorite(self, job_id: int | str) -> bool:
        if job_id in self.marks:
            return self.marks[job_id]
        if not self.session.is_authenticated:
            return False
        try:
            data = self.client.get_json(CHECK_PATH.format(id=job_id)) or {}
            mark = bool(data.get("isFavorite"))
        except ApiError as exc:
            log.warning("Favorite check for %s failed: %s", job_id, exc)
            return False
        self.marks[job_id] = mark
        return mark

    def toggle(self, job_id: int | str) -> ToggleOutcome:
        if not self.session.is_authenticated:
            return ToggleOutcome(ok=False, is_favorite=self.marks.get(job_id, False), notice=LOGIN_REQUIRED)

        was = self.is_favorite(job_id)
        self.marks[job_id] = not was
        try:
            if was:
                self.client.delete(REMOVE_PATH, json=[job_id])
            else:
                self.client.post(ADD_PATH, json=[job_id])
        except ApiError as exc:
            log.error("Favorite toggle for %s failed: %s", job_id, exc)
            self.marks[job_id] = was
            return ToggleOutcome(ok=False, is_favorite=was, notice="Could not update favorites. Please try again.")
        log.info("%s favorite %s", "Removed" if was else "Added", job_id)
        return ToggleOutcome(ok=True, is_favorite=not was)

    def forget(self, job_id: int | str | None = None) -> None:
        if job_id is None:
            self.marks.clear()
        else:
            self.marks.pop(job_id, None)
