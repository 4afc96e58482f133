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
"""Message store abstraction for Firestore and an in-memory test implementation."""

import logging
import threading
import uuid
from dataclasses import asdict
from typing import Any, Callable, List, Optional, Protocol

from dacite import Config, from_dict
from firebase_admin import firestore

from chat.subscriptions import ListenerRegistry, Subscription
from shared.constants import ANONYMOUS_AUTHOR
from shared.firebase_constants import MESSAGES_COLLECTION, MESSAGE_ORDER_FIELD
from shared.json_utils import convert_keys
from shared.types import ChangeBatch, ChangeType, Message, MessageChange, NewMessage

logger = logging.getLogger(__name__)

BatchListener = Callable[[ChangeBatch], None]
ErrorListener = Callable[[Exception], None]


class MessageStore(Protocol):
    """The `messages` collection as seen by the chat client."""

    def add(self, message: NewMessage) -> str:
        ...

    def subscribe(
        self, on_batch: BatchListener, on_error: Optional[ErrorListener] = None
    ) -> Subscription:
        ...


def message_to_document(message: NewMessage) -> dict:
    return convert_keys(asdict(message), "snake_to_camel")


def message_from_document(doc_id: str, data: Optional[dict]) -> Message:
    fields = convert_keys(data or {}, "camel_to_snake")
    fields["id"] = doc_id
    if not fields.get("author"):
        fields["author"] = ANONYMOUS_AUTHOR
    fields.setdefault("body", "")
    fields.setdefault("created_at", None)
    return from_dict(data_class=Message, data=fields, config=Config(check_types=False))


def _sort_key(message: Message):
    return (message.created_at, message.id)


class InMemoryMessageStore:
    """
    Ordered in-memory collection for development and tests.

    A new subscription first receives one batch with every existing message,
    mirroring the initial snapshot of a Firestore listener.
    """

    def __init__(self):
        self.messages: List[Message] = []
        self._listeners = ListenerRegistry()
        self._lock = threading.RLock()

    def add(self, message: NewMessage) -> str:
        stored = Message(
            id=uuid.uuid4().hex,
            author=message.author,
            body=message.body,
            created_at=message.created_at,
            avatar_ref=message.avatar_ref,
        )
        with self._lock:
            self.messages.append(stored)
            self.messages.sort(key=_sort_key)
            self._listeners.emit(
                ChangeBatch((MessageChange(ChangeType.ADDED, stored),))
            )
        return stored.id

    def subscribe(
        self, on_batch: BatchListener, on_error: Optional[ErrorListener] = None
    ) -> Subscription:
        with self._lock:
            initial = self._snapshot_batch()
            subscription = self._listeners.add(on_batch)
            if initial.changes:
                on_batch(initial)
        return subscription

    def replay(self) -> None:
        """Redeliver every message as added, as a reconnecting listener would."""
        with self._lock:
            batch = self._snapshot_batch()
            if batch.changes:
                self._listeners.emit(batch)

    def _snapshot_batch(self) -> ChangeBatch:
        return ChangeBatch(
            tuple(MessageChange(ChangeType.ADDED, m) for m in self.messages)
        )

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)


class FirestoreMessageStore:
    """MessageStore backed by the Firestore `messages` collection."""

    def __init__(self, client: Any = None):
        self._client = client or firestore.client()

    def _collection(self):
        return self._client.collection(MESSAGES_COLLECTION)

    def add(self, message: NewMessage) -> str:
        _, doc_ref = self._collection().add(message_to_document(message))
        return doc_ref.id

    def subscribe(
        self, on_batch: BatchListener, on_error: Optional[ErrorListener] = None
    ) -> Subscription:
        query = self._collection().order_by(
            MESSAGE_ORDER_FIELD, direction=firestore.Query.ASCENDING
        )

        def _on_snapshot(docs, changes, read_time) -> None:
            try:
                batch = ChangeBatch(
                    tuple(
                        MessageChange(
                            ChangeType(change.type.name.lower()),
                            message_from_document(
                                change.document.id, change.document.to_dict()
                            ),
                        )
                        for change in changes
                    )
                )
            except Exception as e:
                logger.error("Failed to read message snapshot: %s", e)
                if on_error:
                    on_error(e)
                return
            on_batch(batch)

        watch = query.on_snapshot(_on_snapshot)
        return Subscription(watch.unsubscribe)
