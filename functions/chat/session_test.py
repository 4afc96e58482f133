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
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

from chat.identity import InMemoryAccountDirectory, InMemoryAuthClient
from chat.session import (
    LOGIN_ERROR_MESSAGES,
    MISSING_CREDENTIALS_MESSAGE,
    LoginController,
    SessionManager,
    SurfaceUrls,
)
from chat.testing import RecordingNavigator
from shared.types import AuthErrorKind

URLS = SurfaceUrls(login="/login", chat="/chat", failure="/login/failed")


class SessionManagerTest(unittest.TestCase):

    def setUp(self):
        self.directory = InMemoryAccountDirectory()
        self.directory.create_account("x@example.com", "pw")
        self.directory.create_account("named@example.com", "pw", display_name="Nao")
        self.auth = InMemoryAuthClient(self.directory)
        self.executor = ThreadPoolExecutor(max_workers=1)
        self.addCleanup(self.executor.shutdown)

    def _manager(self, current_url: str) -> tuple[SessionManager, RecordingNavigator]:
        navigator = RecordingNavigator(current_url)
        manager = SessionManager(self.auth, navigator, URLS, self.executor)
        self.addCleanup(manager.close)
        return manager, navigator

    def test_signed_out_on_chat_redirects_to_login(self):
        manager, navigator = self._manager("/chat")
        manager.start()
        self.assertEqual(navigator.navigations, [("/login", False, 0.0)])

    def test_signed_out_on_login_stays(self):
        manager, navigator = self._manager("/login")
        manager.start()
        self.assertEqual(navigator.navigations, [])

    def test_sign_in_on_login_redirects_to_chat(self):
        manager, navigator = self._manager("/login")
        manager.start()

        self.auth.sign_in("named@example.com", "pw")

        self.assertEqual(navigator.current_url, "/chat")
        self.assertEqual(manager.current_identity().display_name, "Nao")

    def test_sign_out_redirects_to_login(self):
        manager, navigator = self._manager("/login")
        manager.start()
        self.auth.sign_in("named@example.com", "pw")

        manager.sign_out()

        self.assertEqual(navigator.current_url, "/login")
        self.assertIsNone(manager.current_identity())

    def test_transition_listeners_see_previous_and_current(self):
        manager, _ = self._manager("/login")
        transitions = []
        manager.add_listener(lambda prev, cur: transitions.append((prev, cur)))
        manager.start()

        identity = self.auth.sign_in("named@example.com", "pw")
        self.auth.sign_out()

        self.assertEqual(transitions, [(None, identity), (identity, None)])

    def test_patches_missing_display_name_once(self):
        manager, _ = self._manager("/login")
        manager.start()

        with patch.object(
            self.auth, "update_display_name", wraps=self.auth.update_display_name
        ) as update:
            self.auth.sign_in("x@example.com", "pw")
            self.auth.sign_out()
            self.auth.sign_in("x@example.com", "pw")
            self.executor.shutdown(wait=True)

        update.assert_called_once()
        self.assertEqual(
            self.directory.accounts["x@example.com"].display_name, "x@example.com"
        )

    def test_profile_patch_failure_is_logged(self):
        manager, navigator = self._manager("/login")
        manager.start()

        with patch.object(
            self.auth, "update_display_name", side_effect=RuntimeError("offline")
        ):
            with self.assertLogs("chat.session", level="WARNING"):
                self.auth.sign_in("x@example.com", "pw")
                self.executor.shutdown(wait=True)

        self.assertEqual(navigator.current_url, "/chat")

    def test_failing_listener_keeps_manager_subscribed(self):
        manager, navigator = self._manager("/login")

        def broken(prev, cur):
            raise ValueError("boom")

        manager.add_listener(broken)
        manager.start()

        with self.assertLogs("chat.subscriptions", level="ERROR"):
            self.auth.sign_in("named@example.com", "pw")
        self.auth.sign_out()

        self.assertEqual(navigator.current_url, "/login")

    def test_close_releases_subscription(self):
        manager, navigator = self._manager("/login")
        manager.start()
        manager.close()
        manager.close()

        self.auth.sign_in("named@example.com", "pw")

        self.assertEqual(navigator.navigations, [])

    def test_check_reapplies_redirect(self):
        manager, navigator = self._manager("/login")
        manager.start()
        self.auth.sign_in("named@example.com", "pw")

        navigator.current_url = "/login"
        manager.check()

        self.assertEqual(navigator.navigations[-1], ("/chat", False, 0.0))


class LoginControllerTest(unittest.TestCase):

    def setUp(self):
        self.directory = InMemoryAccountDirectory(max_failed_attempts=3)
        self.directory.create_account("x@example.com", "secret")
        self.auth = InMemoryAuthClient(self.directory)
        self.navigator = RecordingNavigator("/login")
        self.login = LoginController(self.auth, self.navigator, URLS, failure_delay=2.0)

    def _assert_failure(self, outcome, kind, field=None):
        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.error_kind, kind)
        self.assertEqual(outcome.message, LOGIN_ERROR_MESSAGES[kind])
        self.assertEqual(outcome.field, field)
        self.assertEqual(self.navigator.navigations[-1], ("/login/failed", True, 2.0))

    def test_malformed_email(self):
        outcome = self.login.submit("not-an-email", "secret")
        self._assert_failure(outcome, AuthErrorKind.INVALID_EMAIL, "email")

    def test_unknown_account(self):
        outcome = self.login.submit("nobody@example.com", "secret")
        self._assert_failure(outcome, AuthErrorKind.USER_NOT_FOUND, "email")

    def test_wrong_password(self):
        outcome = self.login.submit("x@example.com", "nope")
        self._assert_failure(outcome, AuthErrorKind.WRONG_PASSWORD, "password")

    def test_rate_limited_after_repeated_failures(self):
        for _ in range(3):
            self.login.submit("x@example.com", "nope")
        outcome = self.login.submit("x@example.com", "secret")
        self._assert_failure(outcome, AuthErrorKind.TOO_MANY_REQUESTS)

    def test_unreachable_provider(self):
        self.directory.available = False
        outcome = self.login.submit("x@example.com", "secret")
        self._assert_failure(outcome, AuthErrorKind.NETWORK)

    def test_missing_credentials_are_validated_locally(self):
        with patch.object(self.auth, "sign_in") as sign_in:
            outcome = self.login.submit("  ", "secret")
        sign_in.assert_not_called()
        self.assertEqual(outcome.message, MISSING_CREDENTIALS_MESSAGE)
        self.assertEqual(self.navigator.navigations, [])

    def test_success_is_followed_to_chat_by_session_manager(self):
        executor = ThreadPoolExecutor(max_workers=1)
        self.addCleanup(executor.shutdown)
        with SessionManager(self.auth, self.navigator, URLS, executor):
            outcome = self.login.submit(" x@example.com ", "secret")

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.identity.email, "x@example.com")
        self.assertEqual(self.navigator.current_url, "/chat")

    def test_password_reset(self):
        self.assertTrue(self.login.request_password_reset("x@example.com").ok)
        self.assertEqual(self.directory.password_resets, ["x@example.com"])

    def test_password_reset_failure(self):
        outcome = self.login.request_password_reset("nobody@example.com")
        self.assertFalse(outcome.ok)
        self.assertFalse(self.login.request_password_reset("").ok)


if __name__ == "__main__":
    unittest.main()
