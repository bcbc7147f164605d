"""
Admin authentication against the hosted auth provider.

Sessions are issued and verified by the provider; this module only asks it
who a bearer token belongs to and forwards admin sign-ups.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests

from shared.errors import InvalidRequestError, UpstreamError
from shared.types import AuthUser

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15  # seconds
MIN_PASSWORD_LENGTH = 6


class AuthClient(Protocol):
    def get_user(self, access_token: str) -> Optional[AuthUser]:
        ...

    def sign_up(
        self, email: str, password: str, redirect_to: Optional[str] = None
    ) -> AuthUser:
        ...


@dataclass
class InMemoryAuthClient:
    """Static token map for development and tests."""

    tokens: dict = field(default_factory=dict)
    users: dict = field(default_factory=dict)

    def add_token(self, token: str, email: str) -> AuthUser:
        user = AuthUser(id=uuid.uuid4().hex, email=email)
        self.tokens[token] = user
        return user

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        return self.tokens.get(access_token)

    def sign_up(
        self, email: str, password: str, redirect_to: Optional[str] = None
    ) -> AuthUser:
        if email in self.users:
            raise InvalidRequestError("User already registered")
        user = AuthUser(id=uuid.uuid4().hex, email=email)
        self.users[email] = (user, password)
        return user


@dataclass
class HostedAuthClient:
    """Client for a GoTrue-compatible auth REST API."""

    base_url: str
    api_key: str

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/auth/v1/{path}"

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text or response.reason
        return (
            payload.get("msg")
            or payload.get("error_description")
            or payload.get("message")
            or payload.get("error")
            or response.reason
        )

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        try:
            response = requests.get(
                self._url("user"),
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {access_token}",
                },
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise UpstreamError(f"Auth provider unreachable: {e}") from e
        if response.status_code in (401, 403):
            return None
        if not response.ok:
            raise UpstreamError(self._error_message(response))
        payload = response.json()
        return AuthUser(id=payload["id"], email=payload.get("email"))

    def sign_up(
        self, email: str, password: str, redirect_to: Optional[str] = None
    ) -> AuthUser:
        params = {"redirect_to": redirect_to} if redirect_to else None
        try:
            response = requests.post(
                self._url("signup"),
                params=params,
                json={"email": email, "password": password},
                headers={"apikey": self.api_key},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise UpstreamError(f"Auth provider unreachable: {e}") from e
        if 400 <= response.status_code < 500:
            raise InvalidRequestError(self._error_message(response))
        if not response.ok:
            raise UpstreamError(self._error_message(response))
        payload = response.json()
        user = payload.get("user") or payload
        return AuthUser(id=user["id"], email=user.get("email", email))


def create_admin_user(
    auth: AuthClient, email: str, password: str, redirect_to: Optional[str] = None
) -> AuthUser:
    email = (email or "").strip()
    if not email or not password:
        raise InvalidRequestError("Please fill in all fields")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidRequestError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    user = auth.sign_up(email, password, redirect_to=redirect_to)
    logger.info("Created admin user %s", user.email)
    return user
