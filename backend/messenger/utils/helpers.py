"""Helper utilities."""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Get current UTC datetime as a naive value, the way it is stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_datetime(dt: Optional[datetime]) -> str:
    """Format datetime for console output."""
    return dt.strftime("%Y-%m-%d %H:%M:%S") if dt else ""


def truncate_string(s: str, max_length: int) -> str:
    """Truncate string to max length."""
    if len(s) <= max_length:
        return s
    return s[:max_length-3] + "..."
