# app/utils/datetime_utils.py
from datetime import datetime, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_utc_aware(dt):
    # Mongo hands back naive datetimes that are already UTC
    if dt is None:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def epoch_millis(dt: datetime) -> int:
    return int(to_utc_aware(dt).timestamp() * 1000)
