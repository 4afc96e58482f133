"""
Request-driven adapters for the chat client: navigation, notices and the
per-browser client registry.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from chat.context import AppContext, ChatClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Redirect:
    url: str
    replace: bool = False
    delay: float = 0.0


class WebNavigator:
    """
    Navigator for server-rendered pages.

    Navigation requested while handling a request is recorded and turned into
    a redirect (or a delayed refresh) by the route handler.
    """

    def __init__(self, current_url: str = ""):
        self.current_url = current_url
        self.pending: Optional[Redirect] = None

    def arrive(self, url: str) -> None:
        self.current_url = url
        self.pending = None

    def navigate(self, url: str, *, replace: bool = False, delay: float = 0.0) -> None:
        self.pending = Redirect(url=url, replace=replace, delay=delay)
        if not delay:
            self.current_url = url

    def take(self) -> Optional[Redirect]:
        pending, self.pending = self.pending, None
        return pending


class WebNotices:
    """Collects transient notices to return with the current response."""

    def __init__(self):
        self.messages: List[Tuple[str, int]] = []

    def show(self, message: str, timeout_ms: int) -> None:
        self.messages.append((message, timeout_ms))

    def drain(self) -> List[Tuple[str, int]]:
        messages, self.messages = self.messages, []
        return messages


@dataclass
class BrowserSession:
    client: ChatClient
    navigator: WebNavigator
    notices: WebNotices
    last_seen: float = field(default_factory=time.monotonic)

    def touch(self, now: float) -> None:
        self.last_seen = now


class BrowserSessions:
    """
    Chat clients keyed by the browser's session cookie. Owns the clients and
    closes each one (releasing its subscriptions) when the session ends: on
    sign-out, on shutdown, or once it has been idle for `idle_seconds`.
    """

    def __init__(
        self,
        context: AppContext,
        idle_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.context = context
        self.idle_seconds = idle_seconds
        self.clock = clock
        self._sessions: Dict[str, BrowserSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: Optional[str]) -> Optional[BrowserSession]:
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
        if session is not None:
            session.touch(self.clock())
        return session

    def open(self, current_url: str = "") -> Tuple[str, BrowserSession]:
        self.reap_idle()
        navigator = WebNavigator(current_url)
        notices = WebNotices()
        session = BrowserSession(
            client=self.context.open_client(navigator, notices),
            navigator=navigator,
            notices=notices,
            last_seen=self.clock(),
        )
        session_id = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[session_id] = session
        return session_id, session

    def reap_idle(self) -> int:
        """Closes the sessions idle for longer than `idle_seconds`."""
        if self.idle_seconds is None:
            return 0
        cutoff = self.clock() - self.idle_seconds
        with self._lock:
            idle = [sid for sid, s in self._sessions.items() if s.last_seen < cutoff]
            sessions = [self._sessions.pop(sid) for sid in idle]
        for session in sessions:
            session.client.close()
        if sessions:
            logger.info("Closed %d idle browser sessions", len(sessions))
        return len(sessions)

    def close(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session:
            session.client.close()

    def close_all(self) -> None:
        with self._lock:
            sessions, self._sessions = list(self._sessions.values()), {}
        for session in sessions:
            session.client.close()
        logger.info("Closed %d browser sessions", len(sessions))
