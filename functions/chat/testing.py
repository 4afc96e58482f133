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
"""Test doubles for the chat client's UI collaborators."""

from datetime import datetime, timedelta, timezone
from typing import List, Tuple

from shared.types import ChangeBatch, ChangeType, Message, MessageChange

EPOCH = datetime(2025, 4, 1, 9, 0, 0, tzinfo=timezone.utc)


class RecordingNavigator:
    def __init__(self, current_url: str = ""):
        self.current_url = current_url
        self.navigations: List[Tuple[str, bool, float]] = []

    def navigate(self, url: str, *, replace: bool = False, delay: float = 0.0) -> None:
        self.navigations.append((url, replace, delay))
        self.current_url = url


class RecordingNotices:
    def __init__(self):
        self.shown: List[Tuple[str, int]] = []

    def show(self, message: str, timeout_ms: int) -> None:
        self.shown.append((message, timeout_ms))


def make_message(message_id: str, seconds: int = 0, **fields) -> Message:
    values = {
        "author": "alice",
        "body": f"body of {message_id}",
        "created_at": EPOCH + timedelta(seconds=seconds),
    }
    values.update(fields)
    return Message(id=message_id, **values)


def added(*messages: Message) -> ChangeBatch:
    return ChangeBatch(tuple(MessageChange(ChangeType.ADDED, m) for m in messages))
