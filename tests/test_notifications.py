from __future__ import annotations

from datetime import timedelta

from dashcache.services.errors import NotFoundError, TransportError
from dashcache.services.events import CACHE_WARNING, EventBus
from dashcache.services.notifications import Notifier, describe_error


def test_describe_error_lists_json_fields() -> None:
    error = TransportError(422, "Unprocessable Entity", '{"name": "is required", "budget": "must be positive"}')
    assert describe_error(error) == "Operation failed (code: 422)\nName: is required\nBudget: must be positive"


def test_describe_error_falls_back_to_raw_body() -> None:
    error = TransportError(500, "Internal Server Error", "database locked")
    assert describe_error(error).split("\n") == ["Operation failed (code: 500)", "Details: database locked"]


def test_describe_error_without_status() -> None:
    assert describe_error(TransportError(None, "ConnectError")) == "Operation failed: Network error: ConnectError"
    assert describe_error(NotFoundError("Client", 9)) == "Operation failed: Client not found: 9"


def test_notices_expire_by_level(clock) -> None:
    notifier = Notifier(clock)

    notifier.show_success("Client saved")
    assert notifier.current().level == "success"
    assert notifier.current(clock.now + timedelta(seconds=3)) is None

    notice = notifier.show_error(TransportError(404, "Not Found"))
    assert notice.duration_ms == 5000
    assert notice.lines == ["Operation failed (code: 404)"]
    assert notifier.current(clock.now + timedelta(seconds=4)) is notice


def test_new_notice_replaces_current(clock) -> None:
    notifier = Notifier(clock)
    notifier.show_error(RuntimeError("boom"))
    notifier.show_success("Done")
    assert notifier.current().message == "Done"


def test_bind_turns_cache_warnings_into_notices(clock) -> None:
    events = EventBus()
    notifier = Notifier(clock)
    unbind = notifier.bind(events)

    events.emit(CACHE_WARNING, {"message": "Using local cache, backend unavailable", "status": 503})
    notice = notifier.current()
    assert notice.level == "warning"
    assert notice.duration_ms == 8000
    assert notice.message == "Using local cache, backend unavailable"

    unbind()
    events.emit(CACHE_WARNING, {"message": "again"})
    assert notifier.current().message == "Using local cache, backend unavailable"
