"""
FastAPI application entry point for the chat web surfaces.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.config import Settings, get_settings
from backend.dependencies import build_context, use_in_memory_backends
from backend.routes import router
from backend.web import BrowserSessions
from chat.identity import InMemoryAccountDirectory


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    account_directory = (
        InMemoryAccountDirectory() if use_in_memory_backends(settings) else None
    )
    context = build_context(settings, account_directory)
    sessions = BrowserSessions(context, idle_seconds=settings.session_idle_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        sessions.close_all()
        context.shutdown()

    app = FastAPI(title="Easy Chat", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.context = context
    app.state.sessions = sessions
    app.state.account_directory = account_directory
    app.include_router(router)
    return app


app = create_app()
