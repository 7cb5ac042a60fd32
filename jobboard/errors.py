"""Error taxonomy for the job board client."""
from __future__ import annotations


class JobBoardError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(JobBoardError):
    """Input rejected client-side; no request was sent."""


class ApiError(JobBoardError):
    """Transport failure (status None) or non-2xx backend response."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class UnauthorizedError(ApiError):
    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status=401)


class ExportError(JobBoardError):
    """Bulk export failed or returned nothing."""
