# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""Application context and the per-browser chat client built from it."""

import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Callable

from chat.composer import Composer, NoticeSink
from chat.feed import FeedSynchronizer, FeedView
from chat.identity import AuthClient
from chat.session import LoginController, Navigator, SessionManager, SurfaceUrls
from chat.store import MessageStore
from chat.subscriptions import DisposerGroup
from shared.constants import DEFAULT_AVATAR_URL, FAILURE_REDIRECT_DELAY_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """
    Everything the chat client needs, built once at startup and passed
    explicitly to whoever needs it.
    """

    store: MessageStore
    auth_factory: Callable[[], AuthClient]
    executor: Executor
    urls: SurfaceUrls = field(default_factory=SurfaceUrls)
    default_avatar: str = DEFAULT_AVATAR_URL
    failure_delay: float = FAILURE_REDIRECT_DELAY_SECONDS

    def open_client(self, navigator: Navigator, notices: NoticeSink) -> "ChatClient":
        client = ChatClient(self, navigator, notices)
        client.start()
        return client

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False)


class ChatClient:
    """
    One browser's chat client: auth, session manager, login form, composer
    and feeds. Owns every subscription it opens and releases them on close().
    """

    def __init__(self, context: AppContext, navigator: Navigator, notices: NoticeSink):
        self.context = context
        self.navigator = navigator
        self.auth = context.auth_factory()
        self.session = SessionManager(
            self.auth, navigator, context.urls, context.executor
        )
        self.login = LoginController(
            self.auth, navigator, context.urls, failure_delay=context.failure_delay
        )
        self.composer = Composer(
            self.auth,
            context.store,
            notices,
            context.executor,
            default_avatar=context.default_avatar,
        )
        self._disposers = DisposerGroup()
        self.closed = False

    def start(self) -> None:
        self._disposers.add(self.session.start())

    def open_feed(self, view: FeedView) -> FeedSynchronizer:
        """Activates a feed for `view`; it is torn down at the latest by close()."""
        feed = FeedSynchronizer(self.context.store, view)
        self._disposers.add(feed.activate())
        return feed

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._disposers.dispose_all()
        logger.debug("Chat client closed")
