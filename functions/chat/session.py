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
"""Session manager and login form controller."""

import logging
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Set

from chat.identity import AuthClient, AuthError
from chat.subscriptions import ListenerRegistry, Subscription
from shared.constants import FAILURE_REDIRECT_DELAY_SECONDS
from shared.types import AuthErrorKind, Identity

logger = logging.getLogger(__name__)

TransitionListener = Callable[[Optional[Identity], Optional[Identity]], None]


@dataclass(frozen=True)
class SurfaceUrls:
    login: str = "/login"
    chat: str = "/chat"
    failure: str = "/login/failed"


class Navigator(Protocol):
    current_url: str

    def navigate(self, url: str, *, replace: bool = False, delay: float = 0.0) -> None:
        ...


class SessionManager:
    """
    Observes the signed-in identity and keeps the UI on the right surface.

    Signed out anywhere but the login or failure surface redirects to login;
    signed in on the login surface redirects to chat.
    """

    def __init__(
        self,
        auth: AuthClient,
        navigator: Navigator,
        urls: SurfaceUrls,
        executor: Executor,
    ):
        self.auth = auth
        self.navigator = navigator
        self.urls = urls
        self.executor = executor
        self._identity: Optional[Identity] = None
        self._profile_patched: Set[str] = set()
        self._listeners = ListenerRegistry()
        self._subscription: Optional[Subscription] = None

    def current_identity(self) -> Optional[Identity]:
        return self.auth.current_identity

    def add_listener(self, listener: TransitionListener) -> Subscription:
        return self._listeners.add(listener)

    def start(self) -> Subscription:
        if self._subscription is None or self._subscription.disposed:
            self._subscription = self.auth.on_identity_changed(self._on_identity_changed)
        return self._subscription

    def close(self) -> None:
        if self._subscription:
            self._subscription.dispose()

    def __enter__(self) -> "SessionManager":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def sign_out(self) -> None:
        self.auth.sign_out()

    def check(self) -> None:
        """Applies the redirect rule for the current identity and surface."""
        self._redirect(self.auth.current_identity)

    def _on_identity_changed(self, identity: Optional[Identity]) -> None:
        previous, self._identity = self._identity, identity
        if identity is not None:
            self._maybe_patch_profile(identity)
        self._redirect(identity)
        if previous != identity:
            self._listeners.emit(previous, identity)

    def _redirect(self, identity: Optional[Identity]) -> None:
        current = self.navigator.current_url
        if identity is None:
            if current not in (self.urls.login, self.urls.failure):
                self.navigator.navigate(self.urls.login)
        elif current == self.urls.login:
            self.navigator.navigate(self.urls.chat)

    def _maybe_patch_profile(self, identity: Identity) -> Optional[Future]:
        if identity.display_name or not identity.email:
            return None
        if identity.uid in self._profile_patched:
            return None
        self._profile_patched.add(identity.uid)
        future = self.executor.submit(
            self.auth.update_display_name, identity, identity.email
        )
        future.add_done_callback(_log_profile_patch)
        return future


def _log_profile_patch(future: Future) -> None:
    error = future.exception()
    if error is not None:
        logger.warning("updateProfile failed: %s", error)


LOGIN_ERROR_MESSAGES = {
    AuthErrorKind.INVALID_EMAIL: "The email address is not valid.",
    AuthErrorKind.USER_NOT_FOUND: "No account exists for this email address.",
    AuthErrorKind.WRONG_PASSWORD: "The password is incorrect.",
    AuthErrorKind.TOO_MANY_REQUESTS: "Too many attempts. Please try again later.",
    AuthErrorKind.NETWORK: "Could not reach the server. Check your connection.",
    AuthErrorKind.OTHER: "Sign-in failed. Please try again.",
}

_ERROR_FIELDS = {
    AuthErrorKind.INVALID_EMAIL: "email",
    AuthErrorKind.USER_NOT_FOUND: "email",
    AuthErrorKind.WRONG_PASSWORD: "password",
}

MISSING_CREDENTIALS_MESSAGE = "Enter your email and password."
MISSING_RESET_EMAIL_MESSAGE = "Enter your email address."
RESET_SENT_MESSAGE = "A password reset email has been sent."
RESET_FAILED_MESSAGE = "Could not send the password reset email."


@dataclass(frozen=True)
class LoginOutcome:
    identity: Optional[Identity] = None
    error_kind: Optional[AuthErrorKind] = None
    message: str = ""
    field: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.identity is not None


@dataclass(frozen=True)
class ResetOutcome:
    ok: bool
    message: str


class LoginController:
    """
    The email/password sign-in form.

    A successful sign-in is followed to the chat surface by the session
    manager; every failure shows its message and then moves to the failure
    surface after `failure_delay` seconds.
    """

    def __init__(
        self,
        auth: AuthClient,
        navigator: Navigator,
        urls: SurfaceUrls,
        failure_delay: float = FAILURE_REDIRECT_DELAY_SECONDS,
    ):
        self.auth = auth
        self.navigator = navigator
        self.urls = urls
        self.failure_delay = failure_delay

    def submit(self, email: Optional[str], password: Optional[str]) -> LoginOutcome:
        email = (email or "").strip()
        password = password or ""
        if not email or not password:
            return LoginOutcome(message=MISSING_CREDENTIALS_MESSAGE)

        try:
            identity = self.auth.sign_in(email, password)
        except AuthError as e:
            logger.error("Sign-in failed (%s): %s", e.kind.value, e)
            self.navigator.navigate(
                self.urls.failure, replace=True, delay=self.failure_delay
            )
            return LoginOutcome(
                error_kind=e.kind,
                message=LOGIN_ERROR_MESSAGES[e.kind],
                field=_ERROR_FIELDS.get(e.kind),
            )
        return LoginOutcome(identity=identity)

    def request_password_reset(self, email: Optional[str]) -> ResetOutcome:
        email = (email or "").strip()
        if not email:
            return ResetOutcome(ok=False, message=MISSING_RESET_EMAIL_MESSAGE)
        try:
            self.auth.send_password_reset(email)
        except AuthError as e:
            logger.error("Password reset failed (%s): %s", e.kind.value, e)
            return ResetOutcome(ok=False, message=RESET_FAILED_MESSAGE)
        return ResetOutcome(ok=True, message=RESET_SENT_MESSAGE)
