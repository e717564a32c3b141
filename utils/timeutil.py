from datetime import datetime, time, timezone


def utc_now() -> datetime:
    # Stored timestamps are naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso(value) -> datetime:
    """
    Parse an ISO-8601 timestamp ("2026-01-20T18:00:00", "...Z", "...+05:30")
    into a naive UTC datetime. Raises ValueError on bad input.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("timestamp must be a non-empty string")
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_clock(value: str) -> time:
    # "HH:MM"
    return time.fromisoformat(value.strip())


def iso(dt):
    if dt is None:
        return None
    return dt.isoformat() + "Z"
