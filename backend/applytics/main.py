"""FastAPI application entrypoint for the Applytics API."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import apps, history, recorder, schemas, stats, timeseries
from .auth import verify_api_key
from .database import SessionLocal, engine
from .errors import CapacityError, StorageError, ValidationError
from .models import Base

logger = logging.getLogger(__name__)

STATS_VIEWS = ("default", "category", "top")

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Applytics API",
    description="API for tracking application events and retrieving stats and timeseries.",
    version="0.1.0",
)


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def translate_errors(action: str):
    """Map core error kinds onto HTTP responses without leaking storage details."""
    try:
        yield
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except CapacityError as exc:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc)) from exc
    except StorageError as exc:
        logger.error("Failed to %s: %s", action, exc)
        raise HTTPException(status_code=500, detail=f"Failed to {action}") from exc
    except SQLAlchemyError as exc:
        logger.exception("Failed to %s", action)
        raise HTTPException(status_code=500, detail=f"Failed to {action}") from exc


def _to_unix(value: Optional[datetime]) -> Optional[int]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


@app.post("/track", response_model=schemas.TrackOut, status_code=status.HTTP_201_CREATED)
def track_event(
    event_in: schemas.EventIn,
    app_id: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
) -> schemas.TrackOut:
    with translate_errors("track event"):
        result = recorder.record_event(
            db,
            app_id,
            event_in.event_type,
            qualifier=event_in.qualifier,
            value=event_in.value,
            category=event_in.category,
            timestamp=event_in.timestamp,
            country=event_in.country,
        )
    return schemas.TrackOut.model_validate(result)


@app.post("/track/batch", response_model=schemas.BatchTrackOut, status_code=status.HTTP_201_CREATED)
def track_batch(
    batch_in: schemas.BatchEventsIn,
    app_id: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
) -> schemas.BatchTrackOut:
    with translate_errors("track batch events"):
        result = recorder.record_batch(
            db,
            app_id,
            [event.model_dump() for event in batch_in.events],
            default_country=batch_in.country,
        )
    return schemas.BatchTrackOut.model_validate(result)


@app.get("/events", response_model=schemas.EventHistoryOut)
def event_history(
    event_type: Optional[str] = Query(None, alias="type"),
    category: Optional[str] = Query(None),
    country: Optional[str] = Query(None),
    from_: Optional[datetime] = Query(None, alias="from"),
    limit: int = Query(50, ge=1, le=100),
    app_id: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
) -> schemas.EventHistoryOut:
    with translate_errors("retrieve event history"):
        result = history.list_events(
            db,
            app_id,
            event_type=event_type,
            category=category,
            country=country,
            from_ts=_to_unix(from_),
            limit=limit,
        )
    return schemas.EventHistoryOut.model_validate(result)


@app.get("/stats", response_model=None)
def stats_query(
    view: str = Query("default"),
    prefix: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    fmt: str = Query("simple", alias="format"),
    paginate: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(stats.DEFAULT_PAGE_SIZE, alias="pageSize", ge=1, le=stats.MAX_PAGE_SIZE),
    limit: int = Query(10, ge=1, le=stats.MAX_TOP_LIMIT),
    sort: str = Query("desc"),
    app_id: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    if view not in STATS_VIEWS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid view {view!r}; expected one of {', '.join(STATS_VIEWS)}",
        )
    if view == "category":
        return category_grouping(app_id=app_id, db=db)
    if view == "top":
        return top_metrics(category=category, limit=limit, sort=sort, app_id=app_id, db=db)

    with translate_errors("retrieve stats"):
        result = stats.list_stats(
            db,
            app_id,
            filters=stats.StatFilters(prefix=prefix, category=category),
            pagination=stats.Pagination(page=page, page_size=page_size) if paginate else None,
            fmt=fmt,
        )
    if isinstance(result, dict):
        return result
    return schemas.StatListOut.model_validate(result)


def category_grouping(app_id: str, db: Session) -> schemas.CategoryGroupOut:
    with translate_errors("retrieve stats"):
        totals = stats.group_by_category(db, app_id)
    return schemas.CategoryGroupOut(app_id=app_id, data=totals)


@app.get("/stats/top", response_model=schemas.TopMetricsOut)
def top_metrics(
    category: Optional[str] = Query(None),
    limit: int = Query(10, ge=1, le=stats.MAX_TOP_LIMIT),
    sort: str = Query("desc"),
    app_id: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
) -> schemas.TopMetricsOut:
    with translate_errors("retrieve top metrics"):
        result = stats.top_metrics(db, app_id, category=category, limit=limit, sort=sort)
    return schemas.TopMetricsOut.model_validate(result)


@app.get("/metrics", response_model=schemas.MetricsMetadataOut)
def metrics_metadata(
    app_id: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
) -> schemas.MetricsMetadataOut:
    with translate_errors("retrieve metrics metadata"):
        grouped = stats.metrics_metadata(db, app_id)
    categories = {
        category: [schemas.MetricInfoOut.model_validate(info) for info in infos]
        for category, infos in grouped.items()
    }
    return schemas.MetricsMetadataOut(app_id=app_id, categories=categories)


@app.get("/timeseries", response_model=None)
def timeseries_query(
    metric: Optional[str] = Query(None),
    metrics: Optional[str] = Query(None, description="Comma separated list of up to 5 metrics"),
    period: str = Query(timeseries.DEFAULT_PERIOD),
    from_: Optional[datetime] = Query(None, alias="from"),
    to: Optional[datetime] = Query(None),
    country: Optional[str] = Query(None),
    limit: int = Query(timeseries.DEFAULT_LIMIT, ge=1),
    app_id: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
):
    if not metric and not metrics:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing metric or metrics parameter",
        )
    requested = metric if metric else metrics.split(",")

    with translate_errors("retrieve timeseries data"):
        result = timeseries.query(
            db,
            app_id,
            requested,
            period=period,
            from_ts=_to_unix(from_),
            to_ts=_to_unix(to),
            country=country,
            limit=limit,
        )
    if isinstance(result, timeseries.ComparisonResult):
        return schemas.ComparisonOut.model_validate(result)
    return schemas.TimeseriesOut.model_validate(result)


@app.get("/timeseries/compare", response_model=schemas.ComparisonOut)
def timeseries_compare(
    metrics: str = Query(..., description="Comma separated list of up to 5 metrics"),
    period: str = Query(timeseries.DEFAULT_PERIOD),
    from_: Optional[datetime] = Query(None, alias="from"),
    to: Optional[datetime] = Query(None),
    country: Optional[str] = Query(None),
    limit: int = Query(timeseries.DEFAULT_LIMIT, ge=1),
    app_id: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
) -> schemas.ComparisonOut:
    with translate_errors("retrieve comparison data"):
        result = timeseries.compare_timeseries(
            db,
            app_id,
            metrics.split(","),
            period=period,
            from_ts=_to_unix(from_),
            to_ts=_to_unix(to),
            country=country,
            limit=limit,
        )
    return schemas.ComparisonOut.model_validate(result)


@app.get("/apps", response_model=schemas.AppsOut)
def list_apps(
    with_stats: bool = Query(False, alias="stats"),
    _: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
) -> schemas.AppsOut:
    with translate_errors("list apps"):
        listed = apps.list_apps(db, with_stats=with_stats)
    if with_stats:
        return schemas.AppsOut(apps=[schemas.AppSummaryOut.model_validate(summary) for summary in listed])
    return schemas.AppsOut(apps=listed)


@app.get("/app/summary", response_model=schemas.AppSummaryOut)
def app_summary(
    app_id: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
) -> schemas.AppSummaryOut:
    with translate_errors("retrieve app information"):
        summary = apps.app_summary(db, app_id)
        recent = history.recent_events(db, app_id)
    out = schemas.AppSummaryOut.model_validate(summary)
    out.recent_events = [schemas.EventRecordOut.model_validate(event) for event in recent]
    return out


@app.get("/app/dashboard", response_model=schemas.AppDashboardOut)
def app_dashboard(
    app_id: str = Depends(verify_api_key),
    db: Session = Depends(get_db),
) -> schemas.AppDashboardOut:
    with translate_errors("retrieve app dashboard"):
        dashboard = apps.app_dashboard(db, app_id)
    return schemas.AppDashboardOut.model_validate(dashboard)
