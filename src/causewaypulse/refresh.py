"""Session state and the periodic fetch -> process -> render loop.

`MapSession` holds everything the page shows (surface, view mode, status banner, timestamp,
legend visibility). `RefreshScheduler` drives refresh cycles against one session.

Cycles are not serialized: every tick launches a new cycle task even if the previous one is
still waiting on the network. Each cycle replaces layer contents wholesale, so a late response
can overwrite a newer one until the next tick corrects it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from causewaypulse.display.folium_surface import FoliumSurface
from causewaypulse.display.status import StatusBanner, StatusKind, TimerFactory
from causewaypulse.display.view_state import HEAT_LAYER, LINES_LAYER, ViewMode, ViewStateController
from causewaypulse.ingestion.datamall_client import DataMallFetcher
from causewaypulse.ingestion.errors import FetchFailure, InvalidShape
from causewaypulse.processing.bands import legend_entries
from causewaypulse.processing.region import BoundingRegion
from causewaypulse.processing.traffic import process
from causewaypulse.settings import AppConfig, get_config


logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%d/%m/%Y, %H:%M:%S"


class SessionState(BaseModel):
    mode: ViewMode
    toggle_label: str
    status: StatusKind
    status_message: Optional[str] = None
    last_updated: Optional[str] = None
    legend_visible: bool
    line_count: int
    heat_point_count: int
    revision: int = 0


class MapSession:
    def __init__(
        self,
        config: Optional[AppConfig] = None,
        surface: Optional[Any] = None,
        call_later: Optional[TimerFactory] = None,
    ) -> None:
        self.config = config or get_config()
        self.surface = surface or FoliumSurface(self.config.map)
        self.region = BoundingRegion.from_config(self.config.region)
        self.view = ViewStateController(self.surface)
        self.status = StatusBanner(
            dismiss_after_seconds=self.config.refresh.error_dismiss_seconds,
            call_later=call_later,
        )
        self.timezone = ZoneInfo(self.config.app.timezone)
        self.last_updated: Optional[datetime] = None
        self.legend_visible = True
        # Bumped on every status change and user command; the page reloads when it moves.
        self.revision = 0
        self.status.subscribe(lambda _status: self._bump())

        self.surface.add_overlay("topcenter", lambda: self.status.current.banner_html())
        self.surface.add_overlay("topright", self._controls_html)
        self.surface.add_overlay("bottomright", self._legend_html)
        self.surface.add_overlay("bottomleft", self._timestamp_html)
        self.surface.add_script(self._live_update_js)

    def _bump(self) -> None:
        self.revision += 1

    def stamp(self, now: Optional[datetime] = None) -> None:
        self.last_updated = now or datetime.now(self.timezone)

    def timestamp_text(self) -> str:
        moment = self.last_updated or datetime.now(self.timezone)
        return f"Last updated: {moment.astimezone(self.timezone).strftime(TIMESTAMP_FORMAT)}"

    def toggle_view(self) -> ViewMode:
        mode = self.view.toggle()
        self._bump()
        return mode

    def toggle_legend(self) -> bool:
        self.legend_visible = not self.legend_visible
        self._bump()
        return self.legend_visible

    def snapshot(self) -> SessionState:
        current = self.status.current
        lines = self.surface.collection(LINES_LAYER).lines
        heat = self.surface.collection(HEAT_LAYER).heat_points
        return SessionState(
            mode=self.view.mode,
            toggle_label=self.view.toggle_label(),
            status=current.kind,
            status_message=current.message,
            last_updated=self.timestamp_text() if self.last_updated else None,
            legend_visible=self.legend_visible,
            line_count=len(lines),
            heat_point_count=len(heat),
            revision=self.revision,
        )

    def _legend_html(self) -> Optional[str]:
        if not self.legend_visible:
            return None
        rows = [
            f'<i style="background:{entry.color}; width:18px; height:18px; display:inline-block; '
            f'margin-right:8px; border:1px solid #ccc;"></i>{entry.label}'
            for entry in legend_entries()
        ]
        return f'<div id="legend-box"><strong>Speed Bands</strong><br>{"<br>".join(rows)}</div>'

    def _timestamp_html(self) -> str:
        return f'<div id="map-timestamp">{self.timestamp_text()}</div>'

    def _live_update_js(self) -> str:
        return (
            f"var renderedRevision = {self.revision};\n"
            "var statusStream = new EventSource('/stream/status');\n"
            "statusStream.onmessage = function (event) {\n"
            "    var state = JSON.parse(event.data);\n"
            "    if (state.revision !== renderedRevision) { location.reload(); }\n"
            "};\n"
        )

    def _controls_html(self) -> str:
        return (
            "<button onclick=\"fetch('/legend/toggle',{method:'POST'}).then(()=>location.reload())\">"
            "Toggle Legend</button><br>"
            "<button onclick=\"fetch('/view/toggle',{method:'POST'}).then(()=>location.reload())\">"
            f"{self.view.toggle_label()}</button><br>"
            "<button onclick=\"fetch('/refresh',{method:'POST'})\">Refresh</button>"
        )


class RefreshScheduler:
    def __init__(
        self,
        fetcher: DataMallFetcher,
        session: MapSession,
        period_seconds: Optional[float] = None,
        initial_delay_seconds: Optional[float] = None,
    ) -> None:
        refresh = session.config.refresh
        self.fetcher = fetcher
        self.session = session
        self.period_seconds = refresh.period_seconds if period_seconds is None else period_seconds
        self.initial_delay_seconds = (
            refresh.initial_delay_seconds if initial_delay_seconds is None else initial_delay_seconds
        )
        self._loop_task: Optional[asyncio.Task[None]] = None
        self._cycles: set[asyncio.Task[bool]] = set()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def run_cycle(self) -> bool:
        """One fetch -> process -> render pass; failures end as an ERROR status."""

        session = self.session
        session.status.show_loading()
        session.stamp()

        outcome = await self.fetcher.fetch()
        if isinstance(outcome, FetchFailure):
            session.status.show_error(outcome.message)
            return False

        try:
            layers = process(outcome.dataset, session.region)
        except InvalidShape as exc:
            logger.error("Unexpected data structure from %s transport: %s", outcome.transport, exc)
            session.status.show_error(str(exc))
            return False

        session.view.render(layers)
        session.status.hide()
        return True

    def _spawn_cycle(self) -> asyncio.Task[bool]:
        task = asyncio.create_task(self.run_cycle())
        self._cycles.add(task)
        task.add_done_callback(self._cycle_done)
        return task

    def _cycle_done(self, task: asyncio.Task[bool]) -> None:
        self._cycles.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Refresh cycle crashed: %r", exc, exc_info=exc)
            self.session.status.show_error()

    async def run(self, max_cycles: Optional[int] = None) -> None:
        """Run cycles every `period_seconds` after the initial delay; forever unless capped."""

        await asyncio.sleep(self.initial_delay_seconds)
        launched = 0
        while max_cycles is None or launched < max_cycles:
            self._spawn_cycle()
            launched += 1
            if max_cycles is not None and launched >= max_cycles:
                break
            await asyncio.sleep(self.period_seconds)
        await self.drain()

    def start(self) -> asyncio.Task[None]:
        if not self.running:
            logger.info(
                "Starting refresh loop (period=%.0fs, initial delay=%.1fs).",
                self.period_seconds,
                self.initial_delay_seconds,
            )
            self._loop_task = asyncio.create_task(self.run())
        assert self._loop_task is not None
        return self._loop_task

    async def stop(self) -> None:
        if self._loop_task is None:
            return
        self._loop_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._loop_task
        self._loop_task = None

    async def drain(self) -> None:
        """Wait for cycles already in flight; nothing new is launched by this call."""

        while self._cycles:
            await asyncio.gather(*list(self._cycles), return_exceptions=True)

    async def shutdown(self) -> None:
        # In-flight fetches are never cancelled; they finish before the HTTP client closes.
        await self.stop()
        await self.drain()

    async def refresh_now(self) -> bool:
        return await self.run_cycle()
