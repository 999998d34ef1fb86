"""
Free redownload window policy.

A paid download opens a window of ``FREE_REDOWNLOAD_WINDOW_MS`` during which
the same preset can be fetched again without charge. Free redownloads inherit
the window of the paid download that granted them (``window_started_at``), so
chaining free redownloads never extends access.
"""

import time
from typing import Iterable, List, Optional

from app.config import settings
from app.models import UserDownload

FREE_REDOWNLOAD_WINDOW_MS = settings.FREE_REDOWNLOAD_WINDOW_MS

MS_PER_MINUTE = 60 * 1000
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR

EXPIRED_LABEL = "Expired"


def now_ms() -> int:
    return int(time.time() * 1000)


def is_expired(
    timestamp: int,
    now: Optional[int] = None,
    grace_period: int = FREE_REDOWNLOAD_WINDOW_MS,
) -> bool:
    now = now_ms() if now is None else now
    return now - timestamp > grace_period


def remaining_ms(
    timestamp: int,
    now: Optional[int] = None,
    grace_period: int = FREE_REDOWNLOAD_WINDOW_MS,
) -> int:
    now = now_ms() if now is None else now
    return max(0, grace_period - (now - timestamp))


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def remaining_label(
    timestamp: int,
    now: Optional[int] = None,
    grace_period: int = FREE_REDOWNLOAD_WINDOW_MS,
) -> str:
    """Human readable time left in the window, or "Expired" once it closed."""
    now = now_ms() if now is None else now
    if is_expired(timestamp, now, grace_period):
        return EXPIRED_LABEL

    remaining = remaining_ms(timestamp, now, grace_period)
    days = remaining // MS_PER_DAY
    hours = (remaining % MS_PER_DAY) // MS_PER_HOUR
    minutes = (remaining % MS_PER_HOUR) // MS_PER_MINUTE

    if days > 0:
        return f"{_plural(days, 'day')} {_plural(hours, 'hour')} left"
    if hours > 0:
        return f"{_plural(hours, 'hour')} {_plural(minutes, 'minute')} left"
    if minutes > 0:
        return f"{_plural(minutes, 'minute')} left"
    return "Less than 1 minute left"


def window_start(record: UserDownload) -> int:
    return record.window_started_at or record.download_time


def is_record_expired(record: UserDownload, now: Optional[int] = None) -> bool:
    return is_expired(window_start(record), now)


def is_paid(record: UserDownload) -> bool:
    return (record.credits or 0) > 0


def expired_records(
    records: Iterable[UserDownload], now: Optional[int] = None
) -> List[UserDownload]:
    now = now_ms() if now is None else now
    return [record for record in records if is_record_expired(record, now)]


def active_records(
    records: Iterable[UserDownload], now: Optional[int] = None
) -> List[UserDownload]:
    now = now_ms() if now is None else now
    return [record for record in records if not is_record_expired(record, now)]


def find_open_window(
    records: Iterable[UserDownload], preset_id: str, now: Optional[int] = None
) -> Optional[UserDownload]:
    """Most recent paid download of the preset whose window is still open."""
    now = now_ms() if now is None else now
    paid = [
        record
        for record in records
        if record.preset_id == preset_id and is_paid(record)
    ]
    if not paid:
        return None

    latest = max(paid, key=lambda record: record.download_time)
    if is_expired(latest.download_time, now):
        return None
    return latest
