import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from dateutil import parser as date_parser

DESCRIPTION_LIMIT = 500

_RELATIVE_DATE = re.compile(r"(\d+)\s*(minute|hour|day|week|month)s?\s*ago")
_UNIT_SECONDS = {
    "minute": 60,
    "hour": 60 * 60,
    "day": 24 * 60 * 60,
    "week": 7 * 24 * 60 * 60,
    "month": 30 * 24 * 60 * 60,
}


def clean_text(text: Optional[str]) -> str:
    """Trims and collapses internal whitespace."""
    if not text:
        return ""
    return " ".join(text.split())


def clean_html(raw_html: Optional[str]) -> str:
    """Removes HTML tags and cleans up whitespace."""
    if not raw_html:
        return ""
    # Remove HTML tags
    clean = re.sub(r"<[^>]+>", " ", raw_html)
    # Decode HTML entities (basic)
    clean = clean.replace("&amp;", "&").replace("&nbsp;", " ").replace("&gt;", ">").replace("&lt;", "<")
    return clean_text(clean)


def truncate(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    return text[:limit]


def parse_salary_amount(salary_str: Optional[str]) -> float:
    """
    Pulls the first number out of a salary string like '$50k - $80k' or '₹12,00,000'.
    A 'k' anywhere in the string multiplies the value by 1000.
    Returns 0.0 when nothing numeric is found.
    """
    if not salary_str:
        return 0.0

    cleaned = re.sub(r"[$,]", "", salary_str)
    match = re.search(r"(\d+(?:\.\d+)?)", cleaned)
    if not match:
        return 0.0

    value = float(match.group(1))
    if "k" in cleaned.lower():
        value *= 1000
    return value


def parse_minimum_salary(value: str) -> Optional[int]:
    """
    Filter-side salary parsing: strips everything that is not a digit and
    expands a 'k' suffix, so "50k", "$50,000" and "50000+" all give 50000.
    """
    digits = re.sub(r"[^\d]", "", value)
    if not digits:
        return None
    amount = int(digits)
    if value.strip().lower().rstrip("+").endswith("k"):
        amount *= 1000
    return amount or None


def parse_posted_at(value: Union[str, int, float, datetime, None], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Accepts ISO strings, epoch seconds, "3 days ago" style strings or datetimes.
    Always returns a timezone-aware datetime (UTC when the input has no zone), or None.
    """
    if value is None or value == "":
        return None

    now = now or datetime.now(timezone.utc)

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)

    lowered = value.strip().lower()
    if "just now" in lowered or "today" in lowered or lowered == "recent":
        return now

    match = _RELATIVE_DATE.search(lowered)
    if match:
        amount = int(match.group(1))
        return now - timedelta(seconds=amount * _UNIT_SECONDS[match.group(2)])

    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
