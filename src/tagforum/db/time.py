"""Time utilities shared by models and upstream parsing."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def parse_timestamp(value: object) -> datetime | None:
    """Parse an upstream ISO-8601 timestamp into an aware UTC datetime.

    Naive values are assumed to be UTC. Returns None for anything that is not
    a parseable string, since upstream records are not guaranteed well formed.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
