from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Literal, Optional

from dashcache.services.errors import TransportError
from dashcache.services.events import CACHE_WARNING, EventBus

Level = Literal["success", "error", "warning"]

# Milliseconds; offline warnings outlive both confirmations and errors.
DURATIONS_MS: dict[str, int] = {"success": 3000, "error": 5000, "warning": 8000}


@dataclass(frozen=True)
class Notice:
    message: str
    level: Level
    duration_ms: int
    shown_at: datetime

    @property
    def lines(self) -> list[str]:
        return self.message.split("\n")

    def expired(self, now: datetime) -> bool:
        return now >= self.shown_at + timedelta(milliseconds=self.duration_ms)


def describe_error(error: BaseException) -> str:
    message = "Operation failed"
    if isinstance(error, TransportError):
        if error.status is not None:
            message += f" (code: {error.status})"
        else:
            message += f": {error}"
        if error.body:
            details = error.json_body()
            if details is None:
                message += f"\nDetails: {error.body}"
            else:
                for key, value in details.items():
                    message += f"\n{key[:1].upper()}{key[1:]}: {value}"
    else:
        message += f": {error}"
    return message


class Notifier:
    """Single-slot banner: each new notice replaces the previous one."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._current: Optional[Notice] = None

    def _show(self, message: str, level: Level) -> Notice:
        notice = Notice(message=message, level=level, duration_ms=DURATIONS_MS[level], shown_at=self._clock())
        self._current = notice
        return notice

    def show_success(self, message: str) -> Notice:
        return self._show(message, "success")

    def show_error(self, error: BaseException) -> Notice:
        return self._show(describe_error(error), "error")

    def show_warning(self, message: str) -> Notice:
        return self._show(message, "warning")

    def current(self, now: Optional[datetime] = None) -> Optional[Notice]:
        if self._current is None:
            return None
        if self._current.expired(now or self._clock()):
            self._current = None
        return self._current

    def bind(self, events: EventBus) -> Callable[[], None]:
        def on_warning(detail: dict[str, Any]) -> None:
            self.show_warning(str(detail.get("message", "Backend unavailable")))

        return events.subscribe(CACHE_WARNING, on_warning)
