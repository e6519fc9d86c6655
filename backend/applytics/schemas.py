"""Pydantic models for request and response bodies."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EventIn(BaseModel):
    # Optional here so the recorder reports a missing event_type itself.
    event_type: Optional[str] = Field(None, description="Type of the event, e.g. purchase or screen_view")
    qualifier: Optional[str] = Field(None, description="Optional sub-dimension, e.g. premium_upgrade")
    value: int = Field(1, description="Amount added to the event's counter")
    category: Optional[str] = Field(None, description="Explicit category; derived from event_type when omitted")
    timestamp: Optional[int] = Field(None, description="Unix seconds; defaults to the time of ingestion")
    country: Optional[str] = Field(None, description="ISO country code")


class BatchEventsIn(BaseModel):
    events: List[EventIn] = Field(default_factory=list)
    country: Optional[str] = Field(None, description="Default country for events that omit one")


class ResponseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class TrackOut(ResponseModel):
    success: bool = True
    app_id: str
    metric: str
    category: str
    value: int
    timestamp: int
    country: Optional[str] = None


class BatchItemOut(ResponseModel):
    event_type: str
    qualifier: Optional[str] = None
    metric: str
    category: str
    value: int
    timestamp: int
    country: Optional[str] = None


class BatchTrackOut(ResponseModel):
    success: bool = True
    app_id: str
    processed: int
    events: List[BatchItemOut]


class EventRecordOut(ResponseModel):
    id: int
    event_type: str
    event_category: str
    qualifier: Optional[str] = None
    value: int
    country: Optional[str] = None
    timestamp: datetime


class EventHistoryOut(ResponseModel):
    app_id: str
    from_ts: datetime = Field(serialization_alias="from")
    count: int
    events: List[EventRecordOut]


class StatOut(ResponseModel):
    metric: str
    value: int
    category: str
    last_updated: datetime


class StatFiltersOut(ResponseModel):
    prefix: Optional[str] = None
    category: Optional[str] = None


class PaginationOut(ResponseModel):
    page: int
    page_size: int = Field(serialization_alias="pageSize")
    total_items: int = Field(serialization_alias="totalItems")
    total_pages: int = Field(serialization_alias="totalPages")


class StatListOut(ResponseModel):
    app_id: str
    filters: StatFiltersOut
    data: List[StatOut]
    pagination: Optional[PaginationOut] = None


class CategoryGroupOut(ResponseModel):
    app_id: str
    group_by: str = Field("category", serialization_alias="groupBy")
    data: Dict[str, int]


class TopMetricsOut(ResponseModel):
    app_id: str
    category: str
    sort: str
    metrics: List[StatOut]


class MetricInfoOut(ResponseModel):
    name: str
    last_updated: datetime
    has_qualifiers: bool


class MetricsMetadataOut(ResponseModel):
    app_id: str
    categories: Dict[str, List[MetricInfoOut]]


class SeriesPointOut(ResponseModel):
    time_period: str
    total: int


class TimeseriesOut(ResponseModel):
    app_id: str
    metric: str
    period: str
    from_ts: datetime = Field(serialization_alias="from")
    to_ts: datetime = Field(serialization_alias="to")
    country: Optional[str] = None
    data: List[SeriesPointOut]


class ComparisonOut(ResponseModel):
    app_id: str
    metrics: List[str]
    period: str
    from_ts: datetime = Field(serialization_alias="from")
    to_ts: datetime = Field(serialization_alias="to")
    country: Optional[str] = None
    data: List[Dict[str, Any]]


class AppSummaryOut(ResponseModel):
    app_id: str
    event_count: int
    metric_count: int
    last_activity: Optional[datetime] = None
    categories: Dict[str, int]
    recent_events: Optional[List[EventRecordOut]] = None


class AppsOut(ResponseModel):
    apps: List[Union[str, AppSummaryOut]]


class CategoryTotalOut(ResponseModel):
    category: str
    total: int


class EventTypeCountOut(ResponseModel):
    event_type: str
    event_count: int


class CountryBreakdownOut(ResponseModel):
    country: str
    event_count: int
    value_sum: int


class AppDashboardOut(ResponseModel):
    app_id: str
    summary: AppSummaryOut
    last_24h_events: int
    last_24h_value: int
    top_event_types: List[EventTypeCountOut]
    categories: List[CategoryTotalOut]
    top_countries: List[CountryBreakdownOut]
