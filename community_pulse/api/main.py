from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import json
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field
from sse_starlette.sse import EventSourceResponse

from community_pulse.config import settings
from community_pulse.core.models import USERS, find_user
from community_pulse.kg.graph import TopicGraph
from community_pulse.runtime.orchestrator import DiscussionOrchestrator, build_orchestrator

OrchestratorFactory = Callable[[], DiscussionOrchestrator]


class MessageRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    text: str


def get_orchestrator(request: Request) -> DiscussionOrchestrator:
    return request.app.state.orchestrator


async def discussion_events(
    graph: TopicGraph,
    queue: asyncio.Queue,
    *,
    interval: float,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[Dict[str, Any]]:
    """Interleave session events with layout frames.

    A layout frame is due every ``interval`` seconds and is sent only when the
    graph revision moved. The deadline is checked before each event, so a busy
    event queue cannot hold layout frames back.
    """

    loop = asyncio.get_running_loop()
    last_revision = -1
    next_frame = loop.time()
    while True:
        if is_disconnected is not None and await is_disconnected():
            break
        if loop.time() >= next_frame:
            next_frame = loop.time() + interval
            snapshot = graph.snapshot
            if snapshot.revision != last_revision:
                last_revision = snapshot.revision
                yield {"event": "layout", "data": json.dumps(snapshot.to_dict(), ensure_ascii=False)}
        if queue.empty():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=max(next_frame - loop.time(), 0.0))
            except asyncio.TimeoutError:
                continue
        else:
            event = queue.get_nowait()
        yield {"id": str(event.seq), "event": event.type, "data": json.dumps(event.payload, ensure_ascii=False)}


def create_app(factory: Optional[OrchestratorFactory] = None) -> FastAPI:
    """Build the HTTP surface; one orchestrator lives for the app lifespan."""

    build = factory or build_orchestrator

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        orchestrator = build()
        orchestrator.start()
        app.state.orchestrator = orchestrator
        try:
            yield
        finally:
            await orchestrator.dispose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173", "*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=False,
    )

    @app.get("/", include_in_schema=False)
    def root():
        return RedirectResponse("/docs")

    @app.get("/health", include_in_schema=False)
    async def health():
        return {"status": "ok"}

    @app.get("/api/v1/status", summary="Status")
    async def status(orchestrator: DiscussionOrchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
        snapshot = orchestrator.graph.snapshot
        return {
            "app": settings.app_name,
            "running": orchestrator.running,
            "nodes": len(snapshot.nodes),
            "links": len(snapshot.links),
            "users": [user.to_dict() for user in USERS],
        }

    @app.post("/api/v1/messages", summary="Send Message")
    async def send_message(
        payload: MessageRequest,
        orchestrator: DiscussionOrchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        user = find_user(payload.user_id)
        if user is None or user not in USERS:
            raise HTTPException(status_code=404, detail="Unknown user")
        if not payload.text.strip():
            raise HTTPException(status_code=400, detail="Message text is empty")
        message = await orchestrator.send_message(user, payload.text)
        if message is None:
            raise HTTPException(status_code=503, detail="Discussion is closed")
        return {"status": "accepted", "message": message.to_dict()}

    @app.get("/api/v1/messages", summary="Transcript")
    async def messages(orchestrator: DiscussionOrchestrator = Depends(get_orchestrator)):
        return orchestrator.session.to_dict()

    @app.get("/api/v1/graph", summary="Topic Graph")
    async def graph(orchestrator: DiscussionOrchestrator = Depends(get_orchestrator)):
        return orchestrator.graph.snapshot.to_dict()

    @app.post("/api/v1/graph/insight", summary="Graph Insight")
    async def graph_insight(orchestrator: DiscussionOrchestrator = Depends(get_orchestrator)):
        return {"insight": await orchestrator.analyze_graph()}

    @app.get("/api/v1/tasks", summary="Tasks")
    async def tasks(orchestrator: DiscussionOrchestrator = Depends(get_orchestrator)):
        return {"tasks": orchestrator.tasks.to_list()}

    @app.post("/api/v1/tasks/{task_id}/toggle", summary="Toggle Task")
    async def toggle_task(task_id: int, orchestrator: DiscussionOrchestrator = Depends(get_orchestrator)):
        task = orchestrator.toggle_task(task_id)
        if task is None:
            raise HTTPException(status_code=404, detail="Unknown task")
        return task.to_dict()

    @app.delete("/api/v1/tasks/{task_id}", summary="Delete Task")
    async def delete_task(task_id: int, orchestrator: DiscussionOrchestrator = Depends(get_orchestrator)):
        if not orchestrator.delete_task(task_id):
            raise HTTPException(status_code=404, detail="Unknown task")
        return {"status": "deleted", "id": task_id}

    @app.delete("/api/v1/tasks", summary="Clear Tasks")
    async def clear_tasks(orchestrator: DiscussionOrchestrator = Depends(get_orchestrator)):
        orchestrator.clear_tasks()
        return {"status": "cleared"}

    @app.get("/api/v1/activity", summary="Activity Tail")
    async def activity(tail: int = 20, orchestrator: DiscussionOrchestrator = Depends(get_orchestrator)):
        return {"entries": [entry.to_dict() for entry in orchestrator.journal.tail(tail)]}

    @app.get("/api/v1/stream", summary="Discussion Stream")
    async def stream(request: Request, orchestrator: DiscussionOrchestrator = Depends(get_orchestrator)):
        """
        SSE stream of session events plus layout frames.
        A reconnecting client sends ``Last-Event-ID`` to replay only what it missed.
        """
        session = orchestrator.session
        last_event_id = request.headers.get("last-event-id", "")
        since = int(last_event_id) if last_event_id.isdigit() else None
        queue = session.add_listener(since=since)

        async def event_generator():
            try:
                async for frame in discussion_events(
                    orchestrator.graph,
                    queue,
                    interval=settings.graph_push_interval,
                    is_disconnected=request.is_disconnected,
                ):
                    yield frame
            finally:
                session.remove_listener(queue)

        return EventSourceResponse(event_generator(), ping=int(settings.sse_heartbeat))

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    return app


app = create_app()

__all__ = ["app", "create_app", "discussion_events"]
