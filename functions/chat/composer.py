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
"""Message composer: input state, validation and submission."""

import logging
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from chat.identity import AuthClient, display_label, resolve_avatar
from chat.store import MessageStore
from shared.constants import (
    DEFAULT_AVATAR_URL,
    SIGN_IN_REQUIRED_NOTICE,
    SIGN_IN_REQUIRED_NOTICE_TIMEOUT_MS,
)
from shared.types import NewMessage

logger = logging.getLogger(__name__)


class NoticeSink(Protocol):
    """Transient user-visible notices (a snackbar in the browser)."""

    def show(self, message: str, timeout_ms: int) -> None:
        ...


@dataclass
class ComposerInput:
    value: str = ""
    submit_enabled: bool = False

    def set_value(self, value: str) -> bool:
        self.value = value
        self.submit_enabled = bool(value)
        return self.submit_enabled

    def clear(self) -> None:
        self.set_value("")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Composer:
    def __init__(
        self,
        auth: AuthClient,
        store: MessageStore,
        notices: NoticeSink,
        executor: Executor,
        default_avatar: str = DEFAULT_AVATAR_URL,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.auth = auth
        self.store = store
        self.notices = notices
        self.executor = executor
        self.default_avatar = default_avatar
        self.clock = clock
        self.input = ComposerInput()

    def on_input(self, value: str) -> bool:
        """Records a keystroke or change; returns whether submit is enabled."""
        return self.input.set_value(value)

    def submit(self, text: Optional[str] = None) -> Optional[Future]:
        """
        Issues a create request for the message text.

        Returns the pending create, or None when nothing was submitted. The
        input is cleared as soon as the request is issued, and is not
        restored if the create later fails.
        """
        if text is None:
            text = self.input.value
        if not text:
            return None

        identity = self.auth.current_identity
        if identity is None:
            self.notices.show(SIGN_IN_REQUIRED_NOTICE, SIGN_IN_REQUIRED_NOTICE_TIMEOUT_MS)
            return None

        message = NewMessage(
            author=display_label(identity),
            body=text,
            avatar_ref=resolve_avatar(identity, self.default_avatar),
            created_at=self.clock(),
        )
        future = self.executor.submit(self.store.add, message)
        future.add_done_callback(_log_create_result)
        self.input.clear()
        return future


def _log_create_result(future: Future) -> None:
    error = future.exception()
    if error is not None:
        logger.error("Error adding message: %s", error)
    else:
        logger.info("Added message %s", future.result())
