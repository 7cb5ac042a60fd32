"""Formatting helpers shared by the list, detail and map views."""
from __future__ import annotations

from jobboard.models import JobPosting

COUNTRY_NAMES: dict[str, str] = {
    "DE": "Germany",
    "GB": "United Kingdom",
    "US": "USA",
    "NL": "Netherlands",
    "BE": "Belgium",
    "AT": "Austria",
    "CH": "Switzerland",
    "NO": "Norway",
    "DK": "Denmark",
}

_CURRENCY: dict[str, str] = {
    "GB": "£",
    "CH": "CHF",
    "US": "$",
    "NO": "NOK",
    "DK": "DKK",
}

_CONTRACT_TYPES: dict[str, str] = {"permanent": "Permanent", "contract": "Contract"}
_CONTRACT_TIMES: dict[str, str] = {"full_time": "Full Time", "part_time": "Part Time"}

TIMEFRAME_CHOICES: tuple[int, ...] = (1, 2, 3, 4)


def flag_emoji(country_code: str) -> str:
    if not country_code:
        return ""
    return "".join(chr(127397 + ord(c)) for c in country_code.upper())


def country_label(country_code: str) -> str:
    name = COUNTRY_NAMES.get(country_code.upper(), country_code)
    return f"{flag_emoji(country_code)} {name}"


def currency_symbol(country_code: str) -> str:
    return _CURRENCY.get((country_code or "").upper(), "€")


def format_amount(value: float | None) -> str:
    """German-style decimal: 1234.5 -> '1.234,50'; None -> '-'."""
    if value is None:
        return "-"
    us = f"{value:,.2f}"
    return us.replace(",", "_").replace(".", ",").replace("_", ".")


def salary_text(job: JobPosting, country_code: str | None = None) -> str | None:
    currency = currency_symbol(country_code or job.country_code)
    if job.salary_min and job.salary_max:
        return f"{currency}{format_amount(job.salary_min)} - {currency}{format_amount(job.salary_max)}"
    if job.salary_min:
        return f"{currency}{format_amount(job.salary_min)}+"
    if job.salary_max:
        return f"Up to {currency}{format_amount(job.salary_max)}"
    return None


def contract_type_label(value: str) -> str:
    return _CONTRACT_TYPES.get(value, value or "")


def contract_time_label(value: str) -> str:
    return _CONTRACT_TIMES.get(value, value or "")


def timeframe_label(weeks: int) -> str:
    if weeks == 1:
        return "This Week"
    if weeks == 2:
        return "Last Week"
    return f"{weeks - 1} Weeks Ago"


def pagination_window(page: int, total_pages: int) -> list[int | None]:
    """Page buttons to show: first, last, current ±1; None marks an ellipsis."""
    out: list[int | None] = []
    for p in range(1, max(total_pages, 1) + 1):
        if p == 1 or p == total_pages or page - 1 <= p <= page + 1:
            out.append(p)
        elif p in (page - 2, page + 2):
            out.append(None)
    return out
