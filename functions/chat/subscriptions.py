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
"""Scoped subscriptions and listener fan-out."""

import logging
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

Disposer = Callable[[], None]


class Subscription:
    """Handle for a standing subscription. `dispose()` is idempotent."""

    def __init__(self, disposer: Optional[Disposer] = None):
        self._disposer = disposer
        self._lock = threading.Lock()
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            disposer, self._disposer = self._disposer, None
        if disposer:
            disposer()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()


class DisposerGroup:
    """Owns a set of subscriptions and releases all of them together."""

    def __init__(self):
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def add(self, subscription: Subscription) -> Subscription:
        with self._lock:
            self._subscriptions = [s for s in self._subscriptions if not s.disposed]
            self._subscriptions.append(subscription)
        return subscription

    def __len__(self) -> int:
        return len(self._subscriptions)

    def dispose_all(self) -> None:
        with self._lock:
            subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in reversed(subscriptions):
            try:
                subscription.dispose()
            except Exception:
                logger.exception("Failed to dispose subscription")


class ListenerRegistry:
    """
    Thread-safe fan-out of events to listeners.

    A listener that raises is logged and stays registered.
    """

    def __init__(self):
        self._listeners: List[Callable[..., None]] = []
        self._lock = threading.Lock()

    def add(self, listener: Callable[..., None]) -> Subscription:
        with self._lock:
            self._listeners.append(listener)
        return Subscription(lambda: self._remove(listener))

    def _remove(self, listener: Callable[..., None]) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def __len__(self) -> int:
        return len(self._listeners)

    def emit(self, *args) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener %r failed", listener)
