from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return current UTC time as naive datetime (for PostgreSQL TIMESTAMP).

    Database columns use TIMESTAMP WITHOUT TIME ZONE, so we strip tzinfo.
    All times are stored in UTC by convention.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Normalize a caller-supplied timestamp to naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)
