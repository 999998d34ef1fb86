"""Pure reducers behind the admin dashboard; inputs are already fetched records."""

import csv
import io
from collections import Counter
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.api.download.service import format_download_time, order_categories
from app.api.preset.filters import FILTER_DIMENSIONS, to_list
from app.api.preset.service import PresetMetadata
from app.models import PaymentRecord, UserDownload

CSV_HEADERS = [
    "User ID",
    "User Email",
    "Category",
    "Preset Name",
    "Filename",
    "Credit Cost",
    "Download Time",
]


class TimeRange(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


WINDOW_DAYS = {
    TimeRange.DAY: 1,
    TimeRange.WEEK: 7,
    TimeRange.MONTH: 30,
    TimeRange.YEAR: 365,
}


def to_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def window_bounds(time_range: TimeRange, now: Optional[datetime] = None) -> Tuple[int, int]:
    """Window covering today plus the previous N-1 whole UTC days."""
    now = now or datetime.now(timezone.utc)
    start = start_of_day(now) - timedelta(days=WINDOW_DAYS[time_range] - 1)
    return to_ms(start), to_ms(now)


def in_window(timestamp: int, bounds: Tuple[int, int]) -> bool:
    start, end = bounds
    return start <= timestamp <= end


def daily_counts(
    timestamps: Iterable[int], days: int, now: Optional[datetime] = None
) -> List[int]:
    """Count timestamps per UTC day over the last ``days`` days, oldest first."""
    now = now or datetime.now(timezone.utc)
    today = start_of_day(now)
    first_day = today - timedelta(days=days - 1)
    counts = [0] * days

    for timestamp in timestamps:
        day = start_of_day(datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc))
        index = (day - first_day).days
        if 0 <= index < days:
            counts[index] += 1

    return counts


def frequency_table(values: Iterable[str]) -> List[Dict[str, Any]]:
    counts = Counter(values)
    return [
        {"label": label, "count": count}
        for label, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def filter_frequency_tables(
    presets: Iterable[PresetMetadata],
) -> Dict[str, List[Dict[str, Any]]]:
    """One frequency table per tag dimension; list-valued tags count once per element."""
    presets = list(presets)
    return {
        dimension: frequency_table(
            value
            for preset in presets
            for value in to_list(preset.filters.get(dimension))
        )
        for dimension in FILTER_DIMENSIONS
    }


def summarize_metrics(
    downloads: Sequence[UserDownload],
    payments: Sequence[PaymentRecord],
    time_range: TimeRange,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    bounds = window_bounds(time_range, now)
    days = WINDOW_DAYS[time_range]

    window_downloads = [d for d in downloads if in_window(d.download_time, bounds)]
    window_payments = [p for p in payments if in_window(p.purchase_time, bounds)]

    total_revenue = sum(payment.price_amount or 0 for payment in window_payments)
    downloads_by_category = Counter(d.preset_category for d in window_downloads)
    payments_by_type = Counter(
        getattr(p.price_type, "value", p.price_type) for p in window_payments
    )

    return {
        "time_range": time_range.value,
        "total_downloads": len(window_downloads),
        "total_payments": len(window_payments),
        "total_revenue": round(total_revenue, 2),
        "avg_order_value": round(total_revenue / (len(window_payments) or 1), 2),
        "one_time_purchases": payments_by_type.get("one-time", 0),
        "downloads_by_category": {
            category: downloads_by_category[category]
            for category in order_categories(downloads_by_category)
        },
        "payments_by_type": dict(payments_by_type),
        "daily_downloads": daily_counts(
            (d.download_time for d in window_downloads), days, now
        ),
        "daily_payments": daily_counts(
            (p.purchase_time for p in window_payments), days, now
        ),
    }


def category_counts(
    presets_by_category: Mapping[str, List[PresetMetadata]],
) -> List[Dict[str, Any]]:
    return [
        {"label": category.replace("_", " "), "count": len(presets)}
        for category, presets in presets_by_category.items()
    ]


def top_presets(
    downloads: Iterable[UserDownload],
    metadata_by_id: Mapping[str, PresetMetadata],
    limit: int = 10,
) -> List[Dict[str, Any]]:
    stats: Dict[str, Dict[str, Any]] = {}
    for download in downloads:
        entry = stats.setdefault(
            download.preset_id,
            {
                "id": download.preset_id,
                "title": download.preset_name or download.preset_id,
                "category": download.preset_category,
                "download_count": 0,
                "credits_used": 0,
                "filters": None,
            },
        )
        entry["download_count"] += 1
        entry["credits_used"] += download.credits or 0

    for preset_id, entry in stats.items():
        metadata = metadata_by_id.get(preset_id)
        if metadata:
            entry["title"] = metadata.name
            entry["filters"] = metadata.filters.dict()

    ranked = sorted(stats.values(), key=lambda entry: -entry["download_count"])
    return ranked[:limit]


def filter_download_table(
    downloads: Iterable[UserDownload],
    search: Optional[str] = None,
    category: Optional[str] = None,
    date_range: Optional[TimeRange] = None,
    now: Optional[datetime] = None,
) -> List[UserDownload]:
    results = list(downloads)

    if search:
        query = search.lower()
        results = [
            d
            for d in results
            if query in (d.user_email or "").lower()
            or query in (d.preset_name or "").lower()
            or query in (d.file_name or "").lower()
        ]

    if category:
        results = [d for d in results if d.preset_category == category]

    if date_range:
        bounds = window_bounds(date_range, now)
        results = [d for d in results if d.download_time >= bounds[0]]

    return results


def downloads_to_csv(downloads: Iterable[UserDownload]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    for download in downloads:
        writer.writerow(
            [
                download.user_id,
                download.user_email or "Unknown",
                download.preset_category,
                download.preset_name,
                download.file_name or "Unknown",
                "N/A" if download.credits is None else download.credits,
                format_download_time(download.download_time),
            ]
        )

    return buffer.getvalue()
