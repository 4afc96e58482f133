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
"""Helpers for building fake Firestore events in tests."""

from datetime import datetime, timezone
from unittest.mock import MagicMock


def create_mock_message_data(**overrides) -> dict:
    data = {
        "author": "alice@example.com",
        "body": "Hello <b>team</b>\nsee you & bye",
        "avatarRef": "/images/profile_placeholder.png",
        "createdAt": datetime(2025, 4, 1, 9, 30, 0, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return data


def create_mock_snapshot(data: dict | None) -> MagicMock:
    snapshot = MagicMock()
    snapshot.to_dict.return_value = data
    return snapshot


def create_mock_event(snapshot, message_id: str = "msg-1") -> MagicMock:
    event = MagicMock()
    event.data = snapshot
    event.params = {"messageId": message_id}
    return event
