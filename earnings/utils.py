import re
import unicodedata
from datetime import date
from typing import Any, Optional

_CURRENCY_PATTERN = re.compile(r"[,₹$£]|(?<![A-Za-z])rs\.?", re.IGNORECASE)
_NUMBER_PATTERN = re.compile(r"(-?\s*\d+(?:\.\d{1,2})?)")
_DATE_PATTERN = re.compile(r"(?<!\d)(\d{4}[-/]\d{1,2}[-/]\d{1,2}|\d{1,2}[-/]\d{1,2}[-/]\d{4})(?!\d)")
_RATING_PATTERN = re.compile(r"(\d\.\d|\d)/\d")


def num_from(text: str) -> Optional[float]:
    cleaned = _CURRENCY_PATTERN.sub("", text or "")
    match = _NUMBER_PATTERN.search(cleaned)
    if not match:
        return None
    return float(re.sub(r"\s", "", match.group(1)))


def extract_date(text: str) -> Optional[str]:
    match = _DATE_PATTERN.search(text or "")
    if match:
        return match.group(1)
    return None


def normalize_date(raw: Optional[str]) -> Optional[str]:
    """Render a raw date token as ISO YYYY-MM-DD, or None when day/month order is ambiguous."""
    if not raw:
        return None
    parts = re.split(r"[-/]", raw)
    if len(parts) != 3:
        return None

    if len(parts[0]) == 4:
        year, month, day = (int(part) for part in parts)
    else:
        first, second, year = (int(part) for part in parts)
        if first > 12 >= second:
            day, month = first, second
        elif second > 12 >= first:
            month, day = first, second
        elif first == second:
            day = month = first
        else:
            return None

    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def extract_rating(text: str) -> Optional[float]:
    match = _RATING_PATTERN.search(text or "")
    if match:
        return float(match.group(1))
    return None


def normalize_line(text: str) -> str:
    normalized = unicodedata.normalize("NFKC", text or "")
    normalized = re.sub(r"\s+", " ", normalized)
    return normalized.strip()


def to_amount(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return num_from(value)
    return None
