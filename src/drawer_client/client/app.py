from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import Response

from .sessions import Session, SessionRegistry


def create_app(session_factory: Callable[[str], Session] | None = None) -> FastAPI:
    """
    Viewer app: a session is addressed by the SceneId path segment.

    - **GET /viewer/{scene_id}.png**: current surface (starts the session on first access)
    - **GET /viewer/{scene_id}/state**: cursor, objects, counters, notices
    """
    factory = session_factory or Session.create

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.sessions = SessionRegistry(factory)
        try:
            yield
        finally:
            await app.state.sessions.close()

    app = FastAPI(lifespan=lifespan)

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    @app.get("/viewer/{scene_id}.png")
    async def viewer_png(scene_id: str, request: Request):
        session = await request.app.state.sessions.get_session(scene_id)
        return Response(session.surface.to_png(), media_type="image/png")

    @app.get("/viewer/{scene_id}/state")
    async def viewer_state(scene_id: str, request: Request):
        session = await request.app.state.sessions.get_session(scene_id)
        return session.state()

    return app


app = create_app()
