"""
HTTP routes for the chat web surfaces.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import AsyncIterator, Callable, Optional, Tuple

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response, StreamingResponse

from backend import pages
from backend.config import Settings
from backend.dependencies import get_app_settings, get_sessions
from backend.schemas import MessageAccepted, MessageRequest
from backend.web import BrowserSession, BrowserSessions
from chat.render import FeedPatch, HtmlFeedView
from shared.constants import SIGN_IN_REQUIRED_NOTICE

logger = logging.getLogger(__name__)

router = APIRouter()

EMPTY_MESSAGE_DETAIL = "Message text must not be empty."


def _existing_session(
    request: Request, sessions: BrowserSessions, settings: Settings
) -> Tuple[Optional[str], Optional[BrowserSession]]:
    session_id = request.cookies.get(settings.session_cookie_name)
    return session_id, sessions.get(session_id)


def _browser_session(
    request: Request, sessions: BrowserSessions, settings: Settings
) -> Tuple[str, BrowserSession, bool]:
    """Returns (session_id, session, created) for the request's cookie."""
    session_id, session = _existing_session(request, sessions, settings)
    if session is not None:
        return session_id, session, False
    session_id, session = sessions.open()
    return session_id, session, True


def _respond(
    response: Response, session_id: str, created: bool, settings: Settings
) -> Response:
    if created:
        # No max-age: the session ends when the browser closes.
        response.set_cookie(
            settings.session_cookie_name, session_id, httponly=True, samesite="lax"
        )
    return response


def _arrive(session: BrowserSession, url: str) -> Optional[str]:
    """Lands the session on `url`; returns where the session manager sends it instead."""
    session.navigator.arrive(url)
    session.client.session.check()
    redirect = session.navigator.take()
    return redirect.url if redirect else None


@router.get("/")
def index(settings: Settings = Depends(get_app_settings)):
    return RedirectResponse(settings.chat_url, status_code=303)


@router.get("/login", response_class=HTMLResponse)
def login_page(
    request: Request,
    sessions: BrowserSessions = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
):
    _, session = _existing_session(request, sessions, settings)
    target = _arrive(session, settings.login_url) if session else None
    if target:
        return RedirectResponse(target, status_code=303)
    return HTMLResponse(pages.login_page())


@router.post("/login", response_class=HTMLResponse)
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    sessions: BrowserSessions = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
):
    session_id, session, created = _browser_session(request, sessions, settings)
    session.navigator.arrive(settings.login_url)

    outcome = session.client.login.submit(email, password)
    redirect = session.navigator.take()
    if outcome.ok:
        response = RedirectResponse(
            redirect.url if redirect else settings.chat_url, status_code=303
        )
    elif redirect:
        response = HTMLResponse(
            pages.login_page(outcome.message, field=outcome.field, refresh=redirect),
            status_code=401,
        )
    else:
        response = HTMLResponse(pages.login_page(outcome.message), status_code=400)
    if created and not outcome.ok:
        # Only a signed-in browser keeps a session.
        sessions.close(session_id)
        return response
    return _respond(response, session_id, created, settings)


@router.post("/login/reset", response_class=HTMLResponse)
def reset_password(
    request: Request,
    email: str = Form(""),
    sessions: BrowserSessions = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
):
    session_id, session, created = _browser_session(request, sessions, settings)
    try:
        outcome = session.client.login.request_password_reset(email)
    finally:
        if created:
            sessions.close(session_id)
    return HTMLResponse(
        pages.login_page(outcome.message), status_code=200 if outcome.ok else 400
    )


@router.get("/login/failed", response_class=HTMLResponse)
def login_failed(settings: Settings = Depends(get_app_settings)):
    return HTMLResponse(pages.failure_page(settings.login_url))


@router.get("/chat", response_class=HTMLResponse)
def chat_page(
    request: Request,
    sessions: BrowserSessions = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
):
    _, session = _existing_session(request, sessions, settings)
    if session is None:
        return RedirectResponse(settings.login_url, status_code=303)
    target = _arrive(session, settings.chat_url)
    identity = session.client.session.current_identity()
    if target or identity is None:
        return RedirectResponse(target or settings.login_url, status_code=303)
    return HTMLResponse(
        pages.chat_page(identity, session.client.context.default_avatar)
    )


@router.post("/chat/sign-out")
def sign_out(
    request: Request,
    sessions: BrowserSessions = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
):
    session_id = request.cookies.get(settings.session_cookie_name)
    session = sessions.get(session_id)
    target = settings.login_url
    if session is not None:
        session.navigator.arrive(settings.chat_url)
        session.client.session.sign_out()
        redirect = session.navigator.take()
        target = redirect.url if redirect else target
        sessions.close(session_id)
    response = RedirectResponse(target, status_code=303)
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.post("/api/messages", response_model=MessageAccepted, status_code=202)
def post_message(
    payload: MessageRequest,
    request: Request,
    sessions: BrowserSessions = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
):
    session = sessions.get(request.cookies.get(settings.session_cookie_name))
    if session is None:
        raise HTTPException(status_code=401, detail=SIGN_IN_REQUIRED_NOTICE)

    pending = session.client.composer.submit(payload.text)
    notices = session.notices.drain()
    if notices:
        raise HTTPException(status_code=401, detail=notices[0][0])
    if pending is None:
        raise HTTPException(status_code=400, detail=EMPTY_MESSAGE_DETAIL)
    return MessageAccepted()


async def _feed_events(
    request: Request,
    session: BrowserSession,
    keepalive_seconds: float,
    clock: Callable[[], float] = time.monotonic,
) -> AsyncIterator[str]:
    client = session.client
    loop = asyncio.get_running_loop()
    patches: asyncio.Queue[FeedPatch] = asyncio.Queue()

    # Store callbacks may arrive on another thread.
    view = HtmlFeedView(
        sink=lambda patch: loop.call_soon_threadsafe(patches.put_nowait, patch)
    )
    feed = client.open_feed(view)
    try:
        # The client closes on sign-out from another tab or when reaped.
        while not client.closed and not await request.is_disconnected():
            session.touch(clock())
            try:
                patch = await asyncio.wait_for(patches.get(), timeout=keepalive_seconds)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield f"event: patch\ndata: {json.dumps(patch.as_dict())}\n\n"
    finally:
        feed.teardown()
        logger.debug("Feed stream closed")


@router.get("/chat/stream")
def feed_stream(
    request: Request,
    sessions: BrowserSessions = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
):
    session = sessions.get(request.cookies.get(settings.session_cookie_name))
    if session is None or session.client.session.current_identity() is None:
        raise HTTPException(status_code=401, detail=SIGN_IN_REQUIRED_NOTICE)
    return StreamingResponse(
        _feed_events(
            request, session, settings.stream_keepalive_seconds, sessions.clock
        ),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
