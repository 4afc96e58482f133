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

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Optional, Tuple


class AuthErrorKind(StrEnum):
    INVALID_EMAIL = "invalid-email"
    USER_NOT_FOUND = "user-not-found"
    WRONG_PASSWORD = "wrong-password"
    TOO_MANY_REQUESTS = "too-many-requests"
    NETWORK = "network-request-failed"
    OTHER = "other"


class ChangeType(StrEnum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class Identity:
    """The authenticated principal of a session."""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


@dataclass(frozen=True)
class NewMessage:
    """A message as written by the composer, before the store assigns an id."""

    author: str
    body: str
    created_at: datetime
    avatar_ref: Optional[str] = None


@dataclass(frozen=True)
class Message:
    """A stored chat message. Messages are never updated or deleted."""

    id: str
    author: str
    body: str
    created_at: datetime
    avatar_ref: Optional[str] = None


@dataclass(frozen=True)
class MessageChange:
    type: ChangeType
    message: Message


@dataclass(frozen=True)
class ChangeBatch:
    """Changes delivered together by one realtime notification."""

    changes: Tuple[MessageChange, ...] = field(default_factory=tuple)

    def added(self) -> Tuple[Message, ...]:
        return tuple(
            change.message for change in self.changes if change.type == ChangeType.ADDED
        )
