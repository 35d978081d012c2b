from __future__ import annotations

import json
import logging
import math
import time
from collections import Counter
from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

from backend.models import (
    AnalyticsSnapshot,
    DailyBucket,
    DomainStat,
    HourlyBucket,
    IntentType,
    ScanEvent,
    TypeStat,
)

logger = logging.getLogger("qrhub.analytics")

DAY_MS = 24 * 60 * 60 * 1000
DAILY_WINDOW = 7
TOP_DOMAIN_LIMIT = 10
INVALID_URL = "Invalid URL"


def _local(ts_ms: int, tz: Optional[tzinfo]) -> datetime:
    """Epoch ms → wall-clock datetime in the evaluating timezone (host local if None)."""
    if tz is None:
        return datetime.fromtimestamp(ts_ms / 1000)
    return datetime.fromtimestamp(ts_ms / 1000, tz)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _percentage(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(count / total * 100, 1)


def _ranked(counts: Dict[str, int]) -> List[Tuple[str, int]]:
    # count descending, name ascending on ties
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def extract_host(data: str) -> str:
    """Hostname of a scanned URL, or the "Invalid URL" bucket when it won't parse."""
    candidate = data if data.startswith("http") else "https://" + data
    # browsers read "\\" as "/" in http(s) URLs
    candidate = candidate.replace("\\", "/")
    try:
        host = urlsplit(candidate).hostname
    except ValueError:
        return INVALID_URL
    if not host or any(ch.isspace() for ch in host):
        return INVALID_URL
    return host


def daily_buckets(
    events: Sequence[ScanEvent], now: int, tz: Optional[tzinfo] = None
) -> List[DailyBucket]:
    today = _local(now, tz).date()
    days: List[date] = [today - timedelta(days=i) for i in range(DAILY_WINDOW - 1, -1, -1)]
    counts: Counter = Counter()
    for event in events:
        counts[_local(event.timestamp, tz).date()] += 1
    return [
        DailyBucket(date=day.isoformat(), label=day.strftime("%b %d"), scans=counts.get(day, 0))
        for day in days
    ]


def hourly_buckets(events: Sequence[ScanEvent], tz: Optional[tzinfo] = None) -> List[HourlyBucket]:
    counts: Counter = Counter(_local(event.timestamp, tz).hour for event in events)
    return [HourlyBucket(hour=hour, count=counts.get(hour, 0)) for hour in range(24)]


def domain_counts(events: Sequence[ScanEvent]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for event in events:
        if event.type is not IntentType.URL:
            continue
        host = extract_host(event.data)
        counts[host] = counts.get(host, 0) + 1
    return counts


def analyze(
    events: Sequence[ScanEvent],
    now: Optional[int] = None,
    tz: Optional[tzinfo] = None,
) -> Optional[AnalyticsSnapshot]:
    """
    Aggregate the full scan history into an AnalyticsSnapshot.

    Returns None for an empty history; callers branch on that instead of
    reading zeroed fields. Recomputed from scratch on every call.
    """
    if not events:
        return None

    now_ms = int(time.time() * 1000) if now is None else int(now)
    total = len(events)

    # Type distribution (stored type only, never re-classified)
    type_stats: Dict[str, int] = {}
    for event in events:
        key = event.type.value
        type_stats[key] = type_stats.get(key, 0) + 1
    type_breakdown = [
        TypeStat(type=name, count=count, percentage=_percentage(count, total))
        for name, count in _ranked(type_stats)
    ]

    last_7_days = daily_buckets(events, now_ms, tz)
    hourly_stats = hourly_buckets(events, tz)
    peak_hour = max(hourly_stats, key=lambda b: b.count)
    peak_day = max(last_7_days, key=lambda b: b.scans)

    domain_stats = domain_counts(events)
    url_total = sum(domain_stats.values())
    top_domains = [
        DomainStat(domain=domain, count=count, percentage=_percentage(count, url_total))
        for domain, count in _ranked(domain_stats)[:TOP_DOMAIN_LIMIT]
    ]

    last_24_hours = sum(1 for event in events if event.timestamp > now_ms - DAY_MS)

    first_scan = min(event.timestamp for event in events)
    days_tracked = max(1, math.ceil((now_ms - first_scan) / DAY_MS))
    avg_per_day = _round_half_up(total / days_tracked)

    snapshot = AnalyticsSnapshot(
        type_stats=type_stats,
        type_breakdown=type_breakdown,
        most_used_type=type_breakdown[0],
        last_7_days=last_7_days,
        hourly_stats=hourly_stats,
        peak_hour=peak_hour,
        peak_day=peak_day,
        domain_stats=domain_stats,
        top_domains=top_domains,
        last_24_hours=last_24_hours,
        avg_per_day=avg_per_day,
        days_tracked=days_tracked,
        total_scans=total,
        unique_types=len(type_stats),
        first_scan=first_scan,
    )

    logger.debug(
        json.dumps(
            {
                "event": "analytics_computed",
                "total_scans": total,
                "unique_types": len(type_stats),
                "url_events": url_total,
            }
        )
    )
    return snapshot
