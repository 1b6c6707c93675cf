from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in both SQL and Mongo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
