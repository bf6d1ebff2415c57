import re
from datetime import datetime, timezone
from typing import Any, Optional, Set

from .config import Config

_NON_ALPHANUMERIC = re.compile(r'[^a-z0-9\s]')
_WHITESPACE = re.compile(r'\s+')


def normalize_text(text) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    if not text or not isinstance(text, str):
        return ""

    text = text.lower()
    text = _NON_ALPHANUMERIC.sub(' ', text)
    text = _WHITESPACE.sub(' ', text).strip()
    return text


def tokenize(text, min_length: int = Config.MIN_TOKEN_LENGTH) -> Set[str]:
    """Split normalized text into a set of words, dropping short noise words."""
    return {word for word in normalize_text(text).split() if len(word) >= min_length}


def safe_float(value, default: float = 0.0) -> float:
    """Safely convert a value to float, handling strings and None."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (ValueError, TypeError):
        return default
    if result != result:  # NaN
        return default
    return result


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an API timestamp into an aware UTC datetime, or None."""
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith('Z') or raw.endswith('z'):
            raw = raw[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_profit(profit: float) -> str:
    return f"{profit * 100:.2f}%"


def format_risk(risk: float) -> str:
    return f"{risk * 100:.1f}%"
