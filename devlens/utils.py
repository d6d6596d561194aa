import os
import re
from typing import Iterable, List

from dotenv import load_dotenv

from .errors import InvalidInputError

# Usernames: alphanumerics and single hyphens, no leading/trailing hyphen, max 39 chars
_USERNAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9]|-(?=[A-Za-z0-9])){0,38}$")


def load_env():
    # Load .env from project root if present
    load_dotenv()


def env_str(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def cache_key(identifier: str) -> str:
    """Cache and de-duplication key for a candidate identifier."""
    return identifier.strip().lower()


def clean_identifier(identifier: str) -> str:
    """Strip an identifier and check it has the shape of a GitHub username.

    Original casing is kept for display; use `cache_key` for lookups.
    """
    value = (identifier or "").strip().lstrip("@")
    if not value:
        raise InvalidInputError("Username is required")
    if not _USERNAME_RE.match(value):
        raise InvalidInputError(f"'{value}' is not a valid GitHub username")
    return value


def dedupe_casefold(items: Iterable[str]) -> List[str]:
    """Trim strings and drop case-insensitive duplicates, keeping first-seen order."""
    seen = set()
    out: List[str] = []
    for item in items:
        if not isinstance(item, str):
            continue
        s = item.strip()
        if not s or s.lower() in seen:
            continue
        seen.add(s.lower())
        out.append(s)
    return out


def truncate_text(text: str, max_chars: int) -> str:
    if not text:
        return ""
    text = text.strip()
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars] + "\n...[truncated]"
