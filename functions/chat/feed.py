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
"""Realtime message feed: a pure reducer plus a synchronizer that renders it."""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Optional, Protocol, Tuple

from chat.store import MessageStore
from chat.subscriptions import Subscription
from shared.types import ChangeBatch, Message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedEntry:
    """Client-side projection of a message, keyed by message id."""

    id: str
    author: str
    body: str
    avatar_ref: Optional[str] = None

    @classmethod
    def from_message(cls, message: Message) -> "FeedEntry":
        return cls(
            id=message.id,
            author=message.author,
            body=message.body,
            avatar_ref=message.avatar_ref,
        )


@dataclass(frozen=True)
class FeedState:
    entries: Tuple[FeedEntry, ...] = field(default_factory=tuple)

    def ids(self) -> Tuple[str, ...]:
        return tuple(entry.id for entry in self.entries)

    def get(self, entry_id: str) -> Optional[FeedEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None


def reduce_feed(state: FeedState, batch: ChangeBatch) -> FeedState:
    """
    Applies the additions of a change batch to the feed.

    An added message whose id is already in the feed refreshes that entry in
    place; any other addition is appended. Modifications and removals are
    ignored because messages are immutable.
    """
    entries = list(state.entries)
    positions = {entry.id: i for i, entry in enumerate(entries)}
    for message in batch.added():
        entry = FeedEntry.from_message(message)
        index = positions.get(entry.id)
        if index is None:
            positions[entry.id] = len(entries)
            entries.append(entry)
        else:
            entries[index] = entry
    return replace(state, entries=tuple(entries))


class FeedView(Protocol):
    def render(self, state: FeedState) -> None:
        ...


class FeedSynchronizer:
    """
    Keeps a FeedView in sync with the `messages` collection.

    Batches may be delivered on a store thread; reduce and render run under a
    lock so concurrent deliveries are applied one at a time.
    """

    def __init__(self, store: MessageStore, view: FeedView):
        self.store = store
        self.view = view
        self.state = FeedState()
        self._subscription: Optional[Subscription] = None
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._subscription is not None and not self._subscription.disposed

    def activate(self) -> Subscription:
        if self.active:
            return self._subscription
        self._subscription = self.store.subscribe(self._on_batch, self._on_error)
        return self._subscription

    def teardown(self) -> None:
        if self._subscription:
            self._subscription.dispose()

    def apply(self, batch: ChangeBatch) -> FeedState:
        with self._lock:
            self.state = reduce_feed(self.state, batch)
            # Only additions change the feed; other batches are not rendered.
            if batch.added():
                self.view.render(self.state)
            return self.state

    def _on_batch(self, batch: ChangeBatch) -> None:
        self.apply(batch)

    def _on_error(self, error: Exception) -> None:
        # No retry here; the store client owns reconnects.
        logger.error("Message feed subscription failed: %s", error)

    def __enter__(self) -> "FeedSynchronizer":
        self.activate()
        return self

    def __exit__(self, *exc_info) -> None:
        self.teardown()
