"""Read-only queries against the cumulative stats table."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .categories import DEFAULT_CATEGORY
from .errors import ValidationError
from .metric_key import split_metric_key
from .models import Event, Stat

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20
MAX_TOP_LIMIT = 100
FORMATS = ("simple", "detailed")


@dataclass
class StatFilters:
    prefix: Optional[str] = None
    category: Optional[str] = None


@dataclass
class Pagination:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        self.page = max(1, self.page)
        self.page_size = min(MAX_PAGE_SIZE, max(1, self.page_size))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class PageInfo:
    page: int
    page_size: int
    total_items: int
    total_pages: int


@dataclass
class StatRow:
    metric: str
    value: int
    category: str
    last_updated: int


@dataclass
class StatListing:
    app_id: str
    filters: StatFilters
    data: List[StatRow] = field(default_factory=list)
    pagination: Optional[PageInfo] = None


@dataclass
class TopMetrics:
    app_id: str
    category: str
    sort: str
    metrics: List[StatRow] = field(default_factory=list)


@dataclass
class MetricInfo:
    name: str
    last_updated: int
    has_qualifiers: bool


def _row(stat: Stat) -> StatRow:
    return StatRow(
        metric=stat.metric,
        value=stat.value,
        category=stat.category or DEFAULT_CATEGORY,
        last_updated=stat.last_updated,
    )


def list_stats(
    db: Session,
    app_id: str,
    filters: Optional[StatFilters] = None,
    pagination: Optional[Pagination] = None,
    fmt: str = "simple",
) -> Union[Dict[str, int], StatListing]:
    """List counters alphabetically by metric.

    ``simple`` yields a ``{metric: value}`` mapping; ``detailed`` yields a
    :class:`StatListing` that carries page metadata when ``pagination`` is set.
    """

    if fmt not in FORMATS:
        raise ValidationError(f"Invalid format {fmt!r}; expected one of {', '.join(FORMATS)}")
    filters = filters or StatFilters()

    conditions = [Stat.app_id == app_id]
    if filters.prefix:
        conditions.append(Stat.metric.startswith(filters.prefix, autoescape=True))
    if filters.category:
        conditions.append(Stat.category == filters.category)

    stmt = select(Stat).where(*conditions).order_by(Stat.metric.asc())
    page_info = None
    if pagination is not None:
        total = db.execute(select(func.count()).select_from(Stat).where(*conditions)).scalar_one()
        page_info = PageInfo(
            page=pagination.page,
            page_size=pagination.page_size,
            total_items=total,
            total_pages=math.ceil(total / pagination.page_size),
        )
        stmt = stmt.offset(pagination.offset).limit(pagination.page_size)

    stats = db.execute(stmt).scalars().all()
    if fmt == "simple":
        return {stat.metric: stat.value for stat in stats}
    return StatListing(
        app_id=app_id,
        filters=filters,
        data=[_row(stat) for stat in stats],
        pagination=page_info,
    )


def group_by_category(db: Session, app_id: str) -> Dict[str, int]:
    stmt = (
        select(Stat.category, func.sum(Stat.value))
        .where(Stat.app_id == app_id)
        .group_by(Stat.category)
    )
    totals: Dict[str, int] = {}
    for category, total in db.execute(stmt):
        key = category or DEFAULT_CATEGORY
        totals[key] = totals.get(key, 0) + (total or 0)
    return totals


def top_metrics(
    db: Session,
    app_id: str,
    category: Optional[str] = None,
    limit: int = 10,
    sort: str = "desc",
) -> TopMetrics:
    """Return counters ordered by value; ties follow storage order."""

    limit = min(MAX_TOP_LIMIT, max(1, limit))
    sort = "asc" if (sort or "").lower() == "asc" else "desc"

    stmt = select(Stat).where(Stat.app_id == app_id)
    if category:
        stmt = stmt.where(Stat.category == category)
    order = Stat.value.asc() if sort == "asc" else Stat.value.desc()
    stats = db.execute(stmt.order_by(order).limit(limit)).scalars().all()
    return TopMetrics(
        app_id=app_id,
        category=category or "all",
        sort=sort,
        metrics=[_row(stat) for stat in stats],
    )


def metrics_metadata(db: Session, app_id: str) -> Dict[str, List[MetricInfo]]:
    """Describe every known metric, grouped by category."""

    qualified_types = set(
        db.execute(
            select(Event.event_type)
            .where(Event.app_id == app_id, Event.qualifier.is_not(None))
            .distinct()
        ).scalars()
    )
    stats = db.execute(
        select(Stat).where(Stat.app_id == app_id).order_by(Stat.category, Stat.metric)
    ).scalars()

    grouped: Dict[str, List[MetricInfo]] = {}
    for stat in stats:
        event_type, _ = split_metric_key(stat.metric)
        grouped.setdefault(stat.category or DEFAULT_CATEGORY, []).append(
            MetricInfo(
                name=stat.metric,
                last_updated=stat.last_updated,
                has_qualifiers=event_type in qualified_types,
            )
        )
    return grouped
