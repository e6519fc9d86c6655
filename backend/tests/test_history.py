from backend.applytics import history, recorder

HOUR = 60 * 60
NOW = 1709294400


def _track(session, event_type, timestamp, **kwargs):
    recorder.record_event(session, "app1", event_type, timestamp=timestamp, **kwargs)


def test_list_events_defaults_to_last_day_newest_first(session):
    _track(session, "install", NOW - 30 * HOUR)
    _track(session, "page_view", NOW - 2 * HOUR, qualifier="home")
    _track(session, "purchase", NOW - HOUR, value=5, country="US")

    result = history.list_events(session, "app1", now=NOW)
    assert result.from_ts == NOW - history.DEFAULT_HISTORY_SECONDS
    assert result.count == 2
    assert [event.event_type for event in result.events] == ["purchase", "page_view"]
    assert result.events[0].value == 5
    assert result.events[0].country == "US"
    assert result.events[1].qualifier == "home"
    assert result.events[1].event_category == "engagement"


def test_list_events_filters(session):
    _track(session, "install", NOW, country="US")
    _track(session, "install", NOW, country="DE")
    _track(session, "purchase", NOW, country="US")

    since = NOW - HOUR
    assert history.list_events(session, "app1", event_type="install", from_ts=since).count == 2
    assert history.list_events(session, "app1", category="revenue", from_ts=since).count == 1
    assert history.list_events(session, "app1", country="US", from_ts=since).count == 2
    assert history.list_events(session, "app1", from_ts=since, limit=1).count == 1
    assert history.list_events(session, "other", from_ts=since).count == 0


def test_recent_events(session):
    for offset in range(7):
        _track(session, "tap", NOW + offset)

    recent = history.recent_events(session, "app1")
    assert [event.timestamp for event in recent] == [NOW + offset for offset in range(6, 1, -1)]
