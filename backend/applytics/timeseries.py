"""Bucketed time series rebuilt on demand from the raw event log.

Bucket labels are UTC and sort lexicographically in chronological order:

    hour   2024-03-01 14:00
    day    2024-03-01
    week   2024-09   (``%W``: Monday-first weeks, days before the first
                      Monday of the year fall in week 00)
    month  2024-03
"""
from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import ValidationError
from .metric_key import split_metric_key
from .models import Event

PERIOD_FORMATS = {
    "hour": "%Y-%m-%d %H:00",
    "day": "%Y-%m-%d",
    "week": "%Y-%W",
    "month": "%Y-%m",
}
DEFAULT_PERIOD = "day"
DEFAULT_LIMIT = 30
DEFAULT_RANGE_SECONDS = 30 * 24 * 60 * 60
MAX_COMPARED_METRICS = 5
BUCKET_COLUMN = "time_period"


@dataclass
class SeriesPoint:
    time_period: str
    total: int


@dataclass
class TimeseriesResult:
    app_id: str
    metric: str
    period: str
    from_ts: int
    to_ts: int
    country: Optional[str]
    data: List[SeriesPoint] = field(default_factory=list)


@dataclass
class ComparisonResult:
    """Dense table: every row carries ``time_period`` plus one total per metric."""

    app_id: str
    metrics: List[str]
    period: str
    from_ts: int
    to_ts: int
    country: Optional[str]
    data: List[Dict[str, Any]] = field(default_factory=list)


def bucket_label(timestamp: int, period: str) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(PERIOD_FORMATS[period])


def _validate_window(period: str, limit: int) -> None:
    if period not in PERIOD_FORMATS:
        raise ValidationError("Invalid period parameter")
    if limit < 1:
        raise ValidationError("limit must be at least 1")


def _resolve_range(from_ts: Optional[int], to_ts: Optional[int], now: Optional[int]):
    now = int(time.time()) if now is None else now
    if to_ts is None:
        to_ts = now
    if from_ts is None:
        from_ts = now - DEFAULT_RANGE_SECONDS
    return from_ts, to_ts


def metric_series(
    db: Session,
    app_id: str,
    metric: str,
    period: str,
    from_ts: int,
    to_ts: int,
    country: Optional[str] = None,
) -> Dict[str, int]:
    """Sum event values per bucket for one metric, keyed by bucket label."""

    if not metric:
        raise ValidationError("Missing metric parameter")
    event_type, qualifier = split_metric_key(metric)

    stmt = select(Event.timestamp, Event.value).where(
        Event.app_id == app_id,
        Event.event_type == event_type,
        Event.timestamp >= from_ts,
        Event.timestamp <= to_ts,
    )
    if qualifier is None:
        stmt = stmt.where(Event.qualifier.is_(None))
    else:
        stmt = stmt.where(Event.qualifier == qualifier)
    if country:
        stmt = stmt.where(Event.country == country)

    totals: Dict[str, int] = defaultdict(int)
    for timestamp, value in db.execute(stmt):
        totals[bucket_label(timestamp, period)] += value
    return dict(totals)


def query_timeseries(
    db: Session,
    app_id: str,
    metric: str,
    period: str = DEFAULT_PERIOD,
    from_ts: Optional[int] = None,
    to_ts: Optional[int] = None,
    country: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
    now: Optional[int] = None,
) -> TimeseriesResult:
    """Series for one metric: the latest ``limit`` buckets, oldest first."""

    _validate_window(period, limit)
    from_ts, to_ts = _resolve_range(from_ts, to_ts, now)

    totals = metric_series(db, app_id, metric, period, from_ts, to_ts, country)
    buckets = sorted(totals)[-limit:]
    return TimeseriesResult(
        app_id=app_id,
        metric=metric,
        period=period,
        from_ts=from_ts,
        to_ts=to_ts,
        country=country or None,
        data=[SeriesPoint(time_period=bucket, total=totals[bucket]) for bucket in buckets],
    )


def compare_timeseries(
    db: Session,
    app_id: str,
    metrics: Sequence[str],
    period: str = DEFAULT_PERIOD,
    from_ts: Optional[int] = None,
    to_ts: Optional[int] = None,
    country: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
    now: Optional[int] = None,
) -> ComparisonResult:
    """Series for up to five metrics on a shared time axis.

    Absent metric/bucket combinations are filled with ``0``.
    """

    _validate_window(period, limit)
    names = list(dict.fromkeys(metric.strip() for metric in metrics if metric and metric.strip()))
    if not 1 <= len(names) <= MAX_COMPARED_METRICS:
        raise ValidationError(
            f"Please provide between 1 and {MAX_COMPARED_METRICS} metrics to compare"
        )
    if BUCKET_COLUMN in names:
        raise ValidationError(f"{BUCKET_COLUMN!r} cannot be compared; it names the bucket column")
    from_ts, to_ts = _resolve_range(from_ts, to_ts, now)

    series = {
        name: metric_series(db, app_id, name, period, from_ts, to_ts, country) for name in names
    }
    buckets = sorted(set().union(*series.values()))[-limit:]

    rows: List[Dict[str, Any]] = []
    for bucket in buckets:
        row: Dict[str, Any] = {BUCKET_COLUMN: bucket}
        for name in names:
            row[name] = series[name].get(bucket, 0)
        rows.append(row)

    return ComparisonResult(
        app_id=app_id,
        metrics=names,
        period=period,
        from_ts=from_ts,
        to_ts=to_ts,
        country=country or None,
        data=rows,
    )


def query(
    db: Session,
    app_id: str,
    metric_or_metrics: Union[str, Sequence[str]],
    period: str = DEFAULT_PERIOD,
    from_ts: Optional[int] = None,
    to_ts: Optional[int] = None,
    country: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
    now: Optional[int] = None,
) -> Union[TimeseriesResult, ComparisonResult]:
    if isinstance(metric_or_metrics, str):
        return query_timeseries(db, app_id, metric_or_metrics, period, from_ts, to_ts, country, limit, now)
    return compare_timeseries(db, app_id, metric_or_metrics, period, from_ts, to_ts, country, limit, now)
