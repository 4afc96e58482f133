"""
Dependency wiring for the FastAPI app.

The application context is built once in `create_app` and stored on
`app.state`; route handlers receive the browser sessions built on it
through `get_sessions`.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import firebase_admin
from fastapi import Request

from backend.config import Settings
from backend.web import BrowserSessions
from chat.context import AppContext
from chat.identity import (
    AuthClient,
    FirebaseAuthClient,
    InMemoryAccountDirectory,
    InMemoryAuthClient,
)
from chat.session import SurfaceUrls
from chat.store import FirestoreMessageStore, InMemoryMessageStore, MessageStore

logger = logging.getLogger(__name__)


def use_in_memory_backends(settings: Settings) -> bool:
    return settings.use_in_memory_backends or not settings.firebase_web_api_key


def build_message_store(settings: Settings) -> MessageStore:
    if use_in_memory_backends(settings):
        return InMemoryMessageStore()
    try:
        firebase_admin.get_app()
    except ValueError:
        firebase_admin.initialize_app()
    return FirestoreMessageStore()


def build_auth_factory(
    settings: Settings, account_directory: Optional[InMemoryAccountDirectory] = None
):
    if account_directory is not None:

        def _in_memory_auth() -> AuthClient:
            return InMemoryAuthClient(account_directory)

        return _in_memory_auth

    def _firebase_auth() -> AuthClient:
        return FirebaseAuthClient(
            settings.firebase_web_api_key,
            timeout=settings.auth_request_timeout_seconds,
        )

    return _firebase_auth


def build_context(
    settings: Settings, account_directory: Optional[InMemoryAccountDirectory] = None
) -> AppContext:
    """
    Builds the application context. Auth is in-memory when an account
    directory is given, Firebase otherwise.
    """
    return AppContext(
        store=build_message_store(settings),
        auth_factory=build_auth_factory(settings, account_directory),
        executor=ThreadPoolExecutor(
            max_workers=settings.executor_max_workers, thread_name_prefix="chat"
        ),
        urls=SurfaceUrls(
            login=settings.login_url,
            chat=settings.chat_url,
            failure=settings.failure_url,
        ),
        default_avatar=settings.default_avatar_url,
        failure_delay=settings.failure_redirect_delay_seconds,
    )


def get_sessions(request: Request) -> BrowserSessions:
    return request.app.state.sessions


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
