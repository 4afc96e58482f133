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

import unittest
from datetime import timedelta
from unittest.mock import MagicMock, patch

from chat.store import (
    FirestoreMessageStore,
    InMemoryMessageStore,
    message_from_document,
    message_to_document,
)
from chat.subscriptions import DisposerGroup, ListenerRegistry, Subscription
from chat.testing import EPOCH
from shared.constants import ANONYMOUS_AUTHOR
from shared.types import ChangeType, NewMessage


def _new(body: str, seconds: int = 0, author: str = "alice") -> NewMessage:
    return NewMessage(
        author=author, body=body, created_at=EPOCH + timedelta(seconds=seconds)
    )


def _change(kind: str, doc_id: str, data: dict) -> MagicMock:
    change = MagicMock()
    change.type.name = kind
    change.document.id = doc_id
    change.document.to_dict.return_value = data
    return change


class DocumentConversionTest(unittest.TestCase):

    def test_to_document_uses_camel_case(self):
        doc = message_to_document(
            NewMessage("alice", "hi", EPOCH, avatar_ref="https://p/a.png")
        )
        self.assertEqual(
            doc,
            {
                "author": "alice",
                "body": "hi",
                "createdAt": EPOCH,
                "avatarRef": "https://p/a.png",
            },
        )

    def test_from_document(self):
        message = message_from_document(
            "m1", {"author": "bob", "body": "yo", "createdAt": EPOCH}
        )
        self.assertEqual(message.id, "m1")
        self.assertEqual(message.created_at, EPOCH)
        self.assertIsNone(message.avatar_ref)

    def test_from_document_defaults_missing_fields(self):
        message = message_from_document("m2", None)
        self.assertEqual(message.author, ANONYMOUS_AUTHOR)
        self.assertEqual(message.body, "")
        self.assertIsNone(message.created_at)


class InMemoryMessageStoreTest(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryMessageStore()
        self.batches = []

    def test_subscription_receives_existing_messages_in_order(self):
        self.store.add(_new("second", seconds=2))
        self.store.add(_new("first", seconds=1))

        self.store.subscribe(self.batches.append)

        self.assertEqual(len(self.batches), 1)
        self.assertEqual(
            [m.body for m in self.batches[0].added()], ["first", "second"]
        )

    def test_ties_are_broken_by_id(self):
        ids = sorted([self.store.add(_new("a")), self.store.add(_new("b"))])
        self.assertEqual([m.id for m in self.store.messages], ids)

    def test_new_messages_are_delivered_as_added(self):
        self.store.subscribe(self.batches.append)
        message_id = self.store.add(_new("hello"))

        self.assertEqual(len(self.batches), 1)
        change = self.batches[0].changes[0]
        self.assertEqual(change.type, ChangeType.ADDED)
        self.assertEqual(change.message.id, message_id)

    def test_dispose_stops_delivery(self):
        subscription = self.store.subscribe(self.batches.append)
        subscription.dispose()
        subscription.dispose()
        self.store.add(_new("late"))
        self.assertEqual(self.batches, [])
        self.assertEqual(self.store.subscriber_count, 0)


class FirestoreMessageStoreTest(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.collection = self.client.collection.return_value
        self.query = self.collection.order_by.return_value
        self.store = FirestoreMessageStore(self.client)

    def test_add_returns_document_id(self):
        self.collection.add.return_value = (None, MagicMock(id="doc-1"))

        self.assertEqual(self.store.add(_new("hi")), "doc-1")

        self.client.collection.assert_called_with("messages")
        self.assertEqual(self.collection.add.call_args[0][0]["body"], "hi")

    def test_subscribe_orders_by_creation_time(self):
        self.store.subscribe(MagicMock())
        self.assertEqual(self.collection.order_by.call_args[0][0], "createdAt")

    def test_snapshot_changes_become_batches(self):
        batches = []
        self.store.subscribe(batches.append)
        on_snapshot = self.query.on_snapshot.call_args[0][0]

        on_snapshot(
            [],
            [
                _change("ADDED", "m1", {"author": "a", "body": "x", "createdAt": EPOCH}),
                _change("MODIFIED", "m1", {"author": "a", "body": "y", "createdAt": EPOCH}),
            ],
            EPOCH,
        )

        self.assertEqual(
            [c.type for c in batches[0].changes],
            [ChangeType.ADDED, ChangeType.MODIFIED],
        )
        self.assertEqual([m.body for m in batches[0].added()], ["x"])

    def test_unreadable_snapshot_goes_to_error_listener(self):
        on_batch, on_error = MagicMock(), MagicMock()
        self.store.subscribe(on_batch, on_error)
        on_snapshot = self.query.on_snapshot.call_args[0][0]

        with self.assertLogs("chat.store", level="ERROR"):
            on_snapshot([], [_change("UNKNOWN", "m1", {})], EPOCH)

        on_batch.assert_not_called()
        on_error.assert_called_once()

    def test_dispose_unsubscribes_once(self):
        watch = self.query.on_snapshot.return_value
        subscription = self.store.subscribe(MagicMock())

        subscription.dispose()
        subscription.dispose()

        watch.unsubscribe.assert_called_once_with()

    @patch("chat.store.firestore")
    def test_default_client(self, mock_firestore):
        FirestoreMessageStore()
        mock_firestore.client.assert_called_once_with()


class SubscriptionsTest(unittest.TestCase):

    def test_group_disposes_everything_once(self):
        disposer = MagicMock()
        group = DisposerGroup()
        group.add(Subscription(disposer))
        group.add(Subscription(disposer))

        group.dispose_all()
        group.dispose_all()

        self.assertEqual(disposer.call_count, 2)
        self.assertEqual(len(group), 0)

    def test_group_drops_already_disposed_subscriptions(self):
        group = DisposerGroup()
        first = group.add(Subscription())
        first.dispose()
        group.add(Subscription())
        self.assertEqual(len(group), 1)

    def test_registry_keeps_failing_listener(self):
        registry = ListenerRegistry()
        seen = []

        def broken(value):
            raise RuntimeError(value)

        registry.add(broken)
        registry.add(seen.append)

        with self.assertLogs("chat.subscriptions", level="ERROR"):
            registry.emit(1)
        self.assertEqual(seen, [1])
        self.assertEqual(len(registry), 2)


if __name__ == "__main__":
    unittest.main()
