"""Map page and the user commands that drive it.

The browser sees rendered HTML, a small JSON state document and an event stream of that
state (the page reloads itself when the stream reports a new revision); every command
(view toggle, legend toggle, manual refresh) mutates the one `MapSession` owned by the app.
"""

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse, StreamingResponse

from causewaypulse.refresh import MapSession, RefreshScheduler, SessionState


# This router is imported and included by `causewaypulse.api.app:create_app()`.
router = APIRouter()


def _session(request: Request) -> MapSession:
    return request.app.state.session


def _scheduler(request: Request) -> RefreshScheduler:
    return request.app.state.scheduler


@router.get("/", response_class=HTMLResponse)
def map_page(request: Request) -> HTMLResponse:
    return HTMLResponse(_session(request).surface.render_html())


@router.get("/state", response_model=SessionState)
def session_state(request: Request) -> SessionState:
    return _session(request).snapshot()


@router.post("/view/toggle", response_model=SessionState)
def toggle_view(request: Request) -> SessionState:
    session = _session(request)
    session.toggle_view()
    return session.snapshot()


@router.post("/legend/toggle", response_model=SessionState)
def toggle_legend(request: Request) -> SessionState:
    session = _session(request)
    session.toggle_legend()
    return session.snapshot()


@router.post("/refresh", response_model=SessionState)
async def refresh(request: Request) -> SessionState:
    # Runs on the event loop so the status banner can arm its dismiss timer.
    await _scheduler(request).refresh_now()
    return _session(request).snapshot()


@router.get("/stream/status")
def stream_status(
    request: Request,
    poll_seconds: float = Query(default=1.0, gt=0, le=60),
    max_events: int | None = Query(default=None, ge=1, le=1000),
) -> StreamingResponse:
    session = _session(request)

    async def event_stream():
        sent = 0
        last_revision: int | None = None
        while True:
            state = session.snapshot()
            # Only changes are pushed; the first event always goes out.
            if state.revision != last_revision:
                last_revision = state.revision
                payload = json.dumps(state.model_dump(mode="json"), ensure_ascii=False)
                yield f"data: {payload}\n\n".encode("utf-8")
                sent += 1
                if max_events is not None and sent >= int(max_events):
                    return
            await asyncio.sleep(float(poll_seconds))

    return StreamingResponse(event_stream(), media_type="text/event-stream")
