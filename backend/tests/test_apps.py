from backend.applytics import apps, recorder

HOUR = 60 * 60
DAY = 24 * HOUR
NOW = 1709294400


def _track(session, app_id, event_type, timestamp, value=1, country=None, qualifier=None):
    recorder.record_event(
        session, app_id, event_type, qualifier=qualifier, value=value, timestamp=timestamp, country=country
    )


def test_list_apps_is_alphabetical(session):
    _track(session, "zeta", "install", NOW)
    _track(session, "alpha", "install", NOW)
    _track(session, "alpha", "purchase", NOW)

    assert apps.list_apps(session) == ["alpha", "zeta"]

    summaries = apps.list_apps(session, with_stats=True)
    assert [summary.app_id for summary in summaries] == ["alpha", "zeta"]
    assert summaries[0].metric_count == 2


def test_list_apps_empty_store(session):
    assert apps.list_apps(session) == []


def test_app_summary(session):
    _track(session, "app1", "install", NOW - DAY)
    _track(session, "app1", "install", NOW - HOUR)
    _track(session, "app1", "purchase", NOW, value=250, qualifier="premium")
    _track(session, "app2", "install", NOW + DAY)

    summary = apps.app_summary(session, "app1")
    assert summary.event_count == 3
    assert summary.metric_count == 2
    assert summary.last_activity == NOW
    assert summary.categories == {"lifecycle": 2, "revenue": 250}


def test_app_summary_for_unknown_app(session):
    summary = apps.app_summary(session, "ghost")
    assert summary.event_count == 0
    assert summary.metric_count == 0
    assert summary.last_activity is None
    assert summary.categories == {}


def test_app_dashboard(session):
    _track(session, "app1", "page_view", NOW - HOUR, country="US")
    _track(session, "app1", "page_view", NOW - 2 * HOUR, country="US")
    _track(session, "app1", "purchase", NOW - 3 * HOUR, value=100, country="DE")
    _track(session, "app1", "install", NOW - 3 * DAY)
    _track(session, "app1", "install", NOW - 4 * DAY)
    _track(session, "app1", "install", NOW - 5 * DAY)
    _track(session, "app1", "crash", NOW - 20 * DAY)

    dashboard = apps.app_dashboard(session, "app1", now=NOW)

    assert dashboard.summary.event_count == 7
    assert dashboard.last_24h_events == 3
    assert dashboard.last_24h_value == 102
    assert [(item.event_type, item.event_count) for item in dashboard.top_event_types] == [
        ("install", 3),
        ("page_view", 2),
        ("purchase", 1),
    ]
    assert [(item.category, item.total) for item in dashboard.categories] == [
        ("revenue", 100),
        ("lifecycle", 3),
        ("engagement", 2),
        ("error", 1),
    ]
    assert [(item.country, item.event_count, item.value_sum) for item in dashboard.top_countries] == [
        ("US", 2, 2),
        ("DE", 1, 100),
    ]


def test_app_dashboard_without_events(session):
    dashboard = apps.app_dashboard(session, "ghost", now=NOW)
    assert dashboard.last_24h_events == 0
    assert dashboard.last_24h_value == 0
    assert dashboard.top_event_types == []
    assert dashboard.categories == []
    assert dashboard.top_countries == []


def test_app_dashboard_windows_end_at_now(session):
    _track(session, "app1", "page_view", NOW - HOUR)
    _track(session, "app1", "purchase", NOW + HOUR, value=50)
    _track(session, "app1", "purchase", NOW + 2 * DAY, value=50)

    dashboard = apps.app_dashboard(session, "app1", now=NOW)

    assert dashboard.last_24h_events == 1
    assert dashboard.last_24h_value == 1
    assert [(item.event_type, item.event_count) for item in dashboard.top_event_types] == [
        ("page_view", 1),
    ]
    assert dashboard.summary.event_count == 3
