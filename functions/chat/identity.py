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
"""Email/password identity providers."""

import logging
import re
import threading
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Protocol

import requests

from chat.subscriptions import ListenerRegistry, Subscription
from shared.constants import ANONYMOUS_AUTHOR, DEFAULT_AVATAR_URL
from shared.types import AuthErrorKind, Identity

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[Identity]], None]

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthError(Exception):
    """An identity-provider failure, classified by kind."""

    def __init__(self, kind: AuthErrorKind, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind


def display_label(identity: Optional[Identity]) -> str:
    """Display name, else email, else the anonymous sentinel."""
    if identity is None:
        return ANONYMOUS_AUTHOR
    return identity.display_name or identity.email or ANONYMOUS_AUTHOR


def resolve_avatar(
    identity: Optional[Identity], default: str = DEFAULT_AVATAR_URL
) -> str:
    return (identity and identity.photo_url) or default


class AuthClient(Protocol):
    """A single browser's view of the identity provider."""

    @property
    def current_identity(self) -> Optional[Identity]:
        ...

    def sign_in(self, email: str, password: str) -> Identity:
        ...

    def sign_out(self) -> None:
        ...

    def send_password_reset(self, email: str) -> None:
        ...

    def update_display_name(self, identity: Identity, name: str) -> Identity:
        ...

    def on_identity_changed(self, listener: IdentityListener) -> Subscription:
        ...


class _ObservableIdentity:
    """Holds the current identity and notifies listeners when it changes."""

    def __init__(self):
        self._identity: Optional[Identity] = None
        self._listeners = ListenerRegistry()

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._identity

    def on_identity_changed(self, listener: IdentityListener) -> Subscription:
        subscription = self._listeners.add(listener)
        # Like the Firebase SDK, a new listener immediately sees the current state.
        try:
            listener(self._identity)
        except Exception:
            logger.exception("Identity listener %r failed", listener)
        return subscription

    def _set_identity(self, identity: Optional[Identity], notify: bool = True) -> None:
        self._identity = identity
        if notify:
            self._listeners.emit(identity)


@dataclass
class Account:
    uid: str
    email: str
    password: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None

    def to_identity(self) -> Identity:
        return Identity(
            uid=self.uid,
            email=self.email,
            display_name=self.display_name,
            photo_url=self.photo_url,
        )


class InMemoryAccountDirectory:
    """Account database shared by every InMemoryAuthClient (dev and tests)."""

    def __init__(self, max_failed_attempts: int = 5):
        self.accounts: Dict[str, Account] = {}
        self.failed_attempts: Dict[str, int] = {}
        self.password_resets: List[str] = []
        self.max_failed_attempts = max_failed_attempts
        self.available = True
        self._lock = threading.Lock()

    def create_account(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Account:
        account = Account(
            uid=uuid.uuid4().hex,
            email=email.lower(),
            password=password,
            display_name=display_name,
            photo_url=photo_url,
        )
        with self._lock:
            self.accounts[account.email] = account
        return account

    def _check_reachable(self) -> None:
        if not self.available:
            raise AuthError(AuthErrorKind.NETWORK, "Identity provider unreachable")

    def authenticate(self, email: str, password: str) -> Identity:
        self._check_reachable()
        if not _EMAIL_PATTERN.match(email):
            raise AuthError(AuthErrorKind.INVALID_EMAIL)
        key = email.lower()
        with self._lock:
            if self.failed_attempts.get(key, 0) >= self.max_failed_attempts:
                raise AuthError(AuthErrorKind.TOO_MANY_REQUESTS)
            account = self.accounts.get(key)
            if account is None:
                raise AuthError(AuthErrorKind.USER_NOT_FOUND)
            if account.password != password:
                self.failed_attempts[key] = self.failed_attempts.get(key, 0) + 1
                raise AuthError(AuthErrorKind.WRONG_PASSWORD)
            self.failed_attempts.pop(key, None)
            return account.to_identity()

    def request_password_reset(self, email: str) -> None:
        self._check_reachable()
        if not _EMAIL_PATTERN.match(email):
            raise AuthError(AuthErrorKind.INVALID_EMAIL)
        if email.lower() not in self.accounts:
            raise AuthError(AuthErrorKind.USER_NOT_FOUND)
        self.password_resets.append(email.lower())

    def update_display_name(self, uid: str, name: str) -> Identity:
        self._check_reachable()
        with self._lock:
            for account in self.accounts.values():
                if account.uid == uid:
                    account.display_name = name
                    return account.to_identity()
        raise AuthError(AuthErrorKind.USER_NOT_FOUND)


class InMemoryAuthClient(_ObservableIdentity):
    """AuthClient backed by an InMemoryAccountDirectory."""

    def __init__(self, directory: InMemoryAccountDirectory):
        super().__init__()
        self.directory = directory

    def sign_in(self, email: str, password: str) -> Identity:
        identity = self.directory.authenticate(email, password)
        self._set_identity(identity)
        return identity

    def sign_out(self) -> None:
        self._set_identity(None)

    def send_password_reset(self, email: str) -> None:
        self.directory.request_password_reset(email)

    def update_display_name(self, identity: Identity, name: str) -> Identity:
        updated = self.directory.update_display_name(identity.uid, name)
        # Profile updates do not count as an identity transition.
        if self.current_identity and self.current_identity.uid == identity.uid:
            self._set_identity(updated, notify=False)
        return updated


IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# Identity Toolkit error messages look like "EMAIL_NOT_FOUND" or
# "TOO_MANY_ATTEMPTS_TRY_LATER : Access to this account ...".
_REST_ERROR_KINDS = {
    "INVALID_EMAIL": AuthErrorKind.INVALID_EMAIL,
    "MISSING_EMAIL": AuthErrorKind.INVALID_EMAIL,
    "EMAIL_NOT_FOUND": AuthErrorKind.USER_NOT_FOUND,
    "USER_NOT_FOUND": AuthErrorKind.USER_NOT_FOUND,
    "INVALID_PASSWORD": AuthErrorKind.WRONG_PASSWORD,
    "INVALID_LOGIN_CREDENTIALS": AuthErrorKind.WRONG_PASSWORD,
    "TOO_MANY_ATTEMPTS_TRY_LATER": AuthErrorKind.TOO_MANY_REQUESTS,
}


class FirebaseAuthClient(_ObservableIdentity):
    """
    AuthClient talking to Firebase Auth through the Identity Toolkit REST API.

    The client keeps the ID token of the signed-in user in memory only, so a
    session never outlives the process or browser session that owns it.
    """

    def __init__(
        self,
        api_key: str,
        http: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__()
        self.api_key = api_key
        self.http = http or requests.Session()
        self.timeout = timeout
        self._id_token: Optional[str] = None

    def _post(self, endpoint: str, payload: dict) -> dict:
        url = f"{IDENTITY_TOOLKIT_URL}/accounts:{endpoint}"
        try:
            response = self.http.post(
                url, params={"key": self.api_key}, json=payload, timeout=self.timeout
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise AuthError(AuthErrorKind.NETWORK, str(e)) from e

        if response.status_code >= 400:
            raise _auth_error_from_response(response)
        return response.json()

    def sign_in(self, email: str, password: str) -> Identity:
        data = self._post(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        self._id_token = data.get("idToken")
        identity = Identity(
            uid=data["localId"],
            email=data.get("email") or email,
            display_name=data.get("displayName") or None,
            photo_url=data.get("profilePicture") or None,
        )
        self._set_identity(identity)
        return identity

    def sign_out(self) -> None:
        self._id_token = None
        self._set_identity(None)

    def send_password_reset(self, email: str) -> None:
        self._post("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})

    def update_display_name(self, identity: Identity, name: str) -> Identity:
        if not self._id_token:
            raise AuthError(AuthErrorKind.OTHER, "No signed-in user to update")
        self._post(
            "update",
            {"idToken": self._id_token, "displayName": name, "returnSecureToken": False},
        )
        updated = replace(identity, display_name=name)
        if self.current_identity and self.current_identity.uid == identity.uid:
            self._set_identity(updated, notify=False)
        return updated


def _auth_error_from_response(response: requests.Response) -> AuthError:
    try:
        message = response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        message = response.text
    code = str(message).split(" ", 1)[0]
    return AuthError(_REST_ERROR_KINDS.get(code, AuthErrorKind.OTHER), str(message))
