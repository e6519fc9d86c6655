import pytest

from backend.applytics import recorder, stats
from backend.applytics.errors import ValidationError

TS = 1709294400


@pytest.fixture
def seeded(session):
    for event_type, qualifier, value in [
        ("install", None, 1),
        ("install", None, 1),
        ("purchase", "premium", 500),
        ("purchase", "basic", 100),
        ("page_view", None, 30),
        ("button_click", None, 12),
    ]:
        recorder.record_event(session, "app1", event_type, qualifier=qualifier, value=value, timestamp=TS)
    recorder.record_event(session, "app2", "install", value=9, timestamp=TS)
    return session


def test_list_stats_simple_format(seeded):
    result = stats.list_stats(seeded, "app1")
    assert result == {
        "button_click": 12,
        "install": 2,
        "page_view": 30,
        "purchase.basic": 100,
        "purchase.premium": 500,
    }
    assert list(result) == sorted(result)


def test_list_stats_detailed_format(seeded):
    listing = stats.list_stats(seeded, "app1", fmt="detailed")
    assert listing.app_id == "app1"
    assert listing.pagination is None
    assert [row.metric for row in listing.data] == [
        "button_click",
        "install",
        "page_view",
        "purchase.basic",
        "purchase.premium",
    ]
    premium = listing.data[-1]
    assert premium.category == "revenue"
    assert premium.last_updated == TS


def test_list_stats_filters(seeded):
    by_prefix = stats.list_stats(seeded, "app1", stats.StatFilters(prefix="purchase"))
    assert by_prefix == {"purchase.basic": 100, "purchase.premium": 500}

    by_category = stats.list_stats(seeded, "app1", stats.StatFilters(category="lifecycle"))
    assert by_category == {"install": 2}


def test_list_stats_prefix_escapes_wildcards(session):
    recorder.record_event(session, "app1", "a_b", timestamp=TS)
    recorder.record_event(session, "app1", "axb", timestamp=TS)
    recorder.record_event(session, "app1", "a%c", timestamp=TS)

    assert stats.list_stats(session, "app1", stats.StatFilters(prefix="a_")) == {"a_b": 1}
    assert stats.list_stats(session, "app1", stats.StatFilters(prefix="a%")) == {"a%c": 1}


def test_list_stats_pagination(seeded):
    listing = stats.list_stats(
        seeded, "app1", pagination=stats.Pagination(page=2, page_size=2), fmt="detailed"
    )
    assert [row.metric for row in listing.data] == ["page_view", "purchase.basic"]
    assert listing.pagination == stats.PageInfo(page=2, page_size=2, total_items=5, total_pages=3)


def test_pagination_clamps_bounds():
    pagination = stats.Pagination(page=0, page_size=500)
    assert pagination.page == 1
    assert pagination.page_size == stats.MAX_PAGE_SIZE
    assert pagination.offset == 0


def test_list_stats_rejects_unknown_format(seeded):
    with pytest.raises(ValidationError):
        stats.list_stats(seeded, "app1", fmt="csv")


def test_list_stats_unknown_app_is_empty(seeded):
    assert stats.list_stats(seeded, "missing") == {}


def test_group_by_category(seeded):
    assert stats.group_by_category(seeded, "app1") == {
        "lifecycle": 2,
        "revenue": 600,
        "engagement": 30,
        "interaction": 12,
    }
    assert stats.group_by_category(seeded, "missing") == {}


def test_top_metrics(seeded):
    top = stats.top_metrics(seeded, "app1", limit=3)
    assert top.category == "all"
    assert top.sort == "desc"
    assert [row.metric for row in top.metrics] == ["purchase.premium", "purchase.basic", "page_view"]

    bottom = stats.top_metrics(seeded, "app1", limit=2, sort="ASC")
    assert bottom.sort == "asc"
    assert [row.metric for row in bottom.metrics] == ["install", "button_click"]

    revenue = stats.top_metrics(seeded, "app1", category="revenue", sort="sideways")
    assert revenue.sort == "desc"
    assert revenue.category == "revenue"
    assert [row.value for row in revenue.metrics] == [500, 100]


def test_top_metrics_limit_is_capped(seeded):
    top = stats.top_metrics(seeded, "app1", limit=1000)
    assert len(top.metrics) == 5


def test_metrics_metadata(seeded):
    grouped = stats.metrics_metadata(seeded, "app1")
    assert sorted(grouped) == ["engagement", "interaction", "lifecycle", "revenue"]
    assert [info.name for info in grouped["revenue"]] == ["purchase.basic", "purchase.premium"]
    assert all(info.has_qualifiers for info in grouped["revenue"])
    assert grouped["lifecycle"][0].has_qualifiers is False
    assert grouped["lifecycle"][0].last_updated == TS
