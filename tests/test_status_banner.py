from __future__ import annotations

import asyncio

from causewaypulse.display.status import LOADING_MESSAGE, StatusBanner, StatusKind


class _FakeTimers:
    def __init__(self) -> None:
        self.armed: list[tuple[float, object]] = []

    def __call__(self, delay, callback):
        self.armed.append((delay, callback))
        return None

    def fire_all(self) -> None:
        for _, callback in list(self.armed):
            callback()


def test_error_clears_after_dismiss_timer() -> None:
    timers = _FakeTimers()
    banner = StatusBanner(dismiss_after_seconds=10.0, call_later=timers)

    banner.show_error("boom")
    assert banner.current.kind is StatusKind.ERROR
    assert banner.current.message == "boom"
    assert timers.armed[0][0] == 10.0

    timers.fire_all()
    assert banner.current.kind is StatusKind.IDLE


def test_stale_dismiss_does_not_clear_newer_status() -> None:
    timers = _FakeTimers()
    banner = StatusBanner(call_later=timers)

    banner.show_error("first")
    banner.show_loading()
    timers.fire_all()

    assert banner.current.kind is StatusKind.LOADING
    assert banner.current.message == LOADING_MESSAGE


def test_second_error_survives_first_timer() -> None:
    timers = _FakeTimers()
    banner = StatusBanner(call_later=timers)

    banner.show_error("first")
    banner.show_error("second")
    first_callback = timers.armed[0][1]
    first_callback()
    assert banner.current.message == "second"

    timers.armed[1][1]()
    assert banner.current.kind is StatusKind.IDLE


def test_listeners_see_every_change_and_banner_html() -> None:
    timers = _FakeTimers()
    banner = StatusBanner(call_later=timers)
    seen = []
    banner.subscribe(lambda status: seen.append(status.kind))

    banner.show_loading()
    assert "Loading:" in banner.current.banner_html()
    banner.show_error("<bad>")
    assert "&lt;bad&gt;" in banner.current.banner_html()
    banner.hide()
    assert banner.current.banner_html() is None

    assert seen == [StatusKind.LOADING, StatusKind.ERROR, StatusKind.IDLE]


def test_error_clears_on_a_real_event_loop() -> None:
    async def scenario() -> tuple[StatusKind, StatusKind]:
        banner = StatusBanner(dismiss_after_seconds=0.05)
        banner.show_error("boom")
        shown = banner.current.kind
        await asyncio.sleep(0.15)
        return shown, banner.current.kind

    shown, later = asyncio.run(scenario())
    assert shown is StatusKind.ERROR
    assert later is StatusKind.IDLE


def test_real_timer_leaves_newer_status_alone() -> None:
    async def scenario() -> StatusKind:
        banner = StatusBanner(dismiss_after_seconds=0.05)
        banner.show_error("boom")
        banner.show_loading()
        await asyncio.sleep(0.15)
        return banner.current.kind

    assert asyncio.run(scenario()) is StatusKind.LOADING
