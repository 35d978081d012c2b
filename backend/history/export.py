# backend/history/export.py

"""
History browsing helpers: search/filter/sort and CSV export.
"""

from __future__ import annotations

import csv
import io
from datetime import date, datetime, tzinfo
from typing import Iterable, List, Optional, Sequence

from backend.models import ScanEvent

CSV_HEADER = "Timestamp,Type,Data,Format"
SORT_ORDERS = ("newest", "oldest", "type", "data")


def filter_history(
    events: Sequence[ScanEvent],
    search: str = "",
    type_filter: str = "all",
    sort_by: str = "newest",
) -> List[ScanEvent]:
    filtered = list(events)

    if search:
        needle = search.lower()
        filtered = [
            e for e in filtered
            if needle in e.data.lower() or needle in e.type.value.lower()
        ]

    if type_filter and type_filter.lower() != "all":
        wanted = type_filter.lower()
        filtered = [e for e in filtered if e.type.value.lower() == wanted]

    if sort_by == "newest":
        filtered.sort(key=lambda e: e.timestamp, reverse=True)
    elif sort_by == "oldest":
        filtered.sort(key=lambda e: e.timestamp)
    elif sort_by == "type":
        filtered.sort(key=lambda e: e.type.value.lower())
    elif sort_by == "data":
        filtered.sort(key=lambda e: e.data.lower())
    else:
        raise ValueError(f"Unknown sort order: {sort_by!r} (expected one of {', '.join(SORT_ORDERS)})")

    return filtered


def unique_types(events: Iterable[ScanEvent]) -> List[str]:
    return sorted({e.type.value for e in events})


def format_timestamp(ts_ms: int, tz: Optional[tzinfo] = None) -> str:
    moment = datetime.fromtimestamp(ts_ms / 1000, tz) if tz else datetime.fromtimestamp(ts_ms / 1000)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def to_csv(events: Sequence[ScanEvent], tz: Optional[tzinfo] = None) -> str:
    """
    Header row plus one fully quoted row per event, in the order given.
    Embedded double quotes are doubled; rows are joined with a bare newline.
    """
    out = io.StringIO()
    writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for e in events:
        writer.writerow([format_timestamp(e.timestamp, tz), e.type.value, e.data, e.format])
    rows = out.getvalue()[:-1]
    return CSV_HEADER + ("\n" + rows if rows else "")


def export_filename(selected: bool = False, today: Optional[date] = None) -> str:
    day = (today or date.today()).isoformat()
    infix = "-selected" if selected else ""
    return f"qr-scan-history{infix}-{day}.csv"


def today_in(tz: Optional[tzinfo] = None, now_ms: Optional[int] = None) -> date:
    """Calendar date of ``now`` in the evaluating timezone (host local if None)."""
    now = datetime.now(tz) if now_ms is None else datetime.fromtimestamp(now_ms / 1000, tz)
    return now.date()
