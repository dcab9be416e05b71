"""Single transient status banner (loading / error) shown over the map.

Only one status exists at a time; every signal replaces the previous one. Errors clear
themselves after `dismiss_after_seconds`. Dismiss timers are never cancelled, so each timer
remembers the generation it was armed for and does nothing if a newer status has been shown
since.
"""

from __future__ import annotations

import asyncio
import html
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)

LOADING_MESSAGE = "Fetching latest traffic data..."
DEFAULT_ERROR_MESSAGE = (
    "Unable to load traffic data. Please check your connection or try again later."
)

TimerFactory = Callable[[float, Callable[[], None]], Any]
StatusListener = Callable[["UIStatus"], None]


class StatusKind(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


@dataclass(frozen=True)
class UIStatus:
    kind: StatusKind = StatusKind.IDLE
    message: Optional[str] = None

    def banner_html(self) -> Optional[str]:
        text = html.escape(self.message or "")
        if self.kind is StatusKind.LOADING:
            return f'<div class="loading-message"><strong>Loading:</strong> {text}</div>'
        if self.kind is StatusKind.ERROR:
            return f'<div class="error-message"><strong>Connection Issue:</strong> {text}</div>'
        return None


def _loop_call_later(delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class StatusBanner:
    def __init__(
        self,
        dismiss_after_seconds: float = 10.0,
        call_later: Optional[TimerFactory] = None,
    ) -> None:
        self.dismiss_after_seconds = dismiss_after_seconds
        self._call_later = call_later or _loop_call_later
        self._status = UIStatus()
        self._generation = 0
        self._listeners: list[StatusListener] = []

    @property
    def current(self) -> UIStatus:
        return self._status

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def _set(self, status: UIStatus) -> int:
        self._generation += 1
        self._status = status
        for listener in list(self._listeners):
            listener(status)
        return self._generation

    def show_loading(self) -> None:
        self._set(UIStatus(StatusKind.LOADING, LOADING_MESSAGE))

    def show_error(self, message: Optional[str] = None) -> None:
        text = message or DEFAULT_ERROR_MESSAGE
        logger.error("Status error: %s", text)
        armed_for = self._set(UIStatus(StatusKind.ERROR, text))
        self._call_later(self.dismiss_after_seconds, lambda: self._dismiss(armed_for))

    def hide(self) -> None:
        if self._status.kind is not StatusKind.IDLE:
            self._set(UIStatus())

    def _dismiss(self, armed_for: int) -> None:
        # A newer status owns the banner now.
        if armed_for != self._generation:
            return
        self.hide()
