from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as naive UTC, the form every stored timestamp uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    # If value is timezone-naive, assume it's already UTC
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
