# tastybroker/backend/broker/session.py
from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from loguru import logger

from tastybroker.backend.broker.client import (
    ApiClient,
    Endpoint,
    decode_data,
    decode_json,
    error_details,
    raise_for_status,
)
from tastybroker.backend.broker.errors import AuthenticationFailed, TwoFactorRequired
from tastybroker.config import Settings, settings as default_settings
from tastybroker.domain.credentials import Credential, LoginFlow, StaticToken
from tastybroker.domain.interfaces import HttpTransport
from tastybroker.domain.models import UserProfile, WireModel
from tastybroker.infra.httpx_transport import HttpxTransport

SESSIONS_PATH = "sessions"
OTP_HEADER = "X-Tastyworks-OTP"
# error codes the login endpoint uses when a one-time code is missing
OTP_REQUIRED_CODES = frozenset({"otp_required", "two_factor_required", "invalid_otp"})


@dataclass(frozen=True)
class SessionState:
    """Snapshot of what a request needs. Replaced whole, never edited."""

    token: str = field(repr=False)
    expires_at: Optional[datetime] = None
    remember_token: Optional[str] = field(default=None, repr=False)


class _LoginData(WireModel):
    session_token: str
    session_expiration: Optional[datetime] = None
    remember_token: Optional[str] = None
    user: Optional[UserProfile] = None


class Session:
    """
    Resolved credential shared by every request of its owner.

    The held SessionState is swapped atomically by rotate(); readers just take
    the current reference. Nothing here re-authenticates on its own: on
    AuthenticationFailed the caller builds a new Session.
    """

    def __init__(
        self,
        state: SessionState,
        *,
        credential: Credential,
        api: ApiClient,
        user: Optional[UserProfile] = None,
        owns_transport: bool = False,
    ) -> None:
        if isinstance(credential, LoginFlow):
            # keep who logged in, not the secrets
            credential = replace(credential, password="", otp=None)
        self._state = state
        self._lock = threading.Lock()
        self.credential = credential
        self.api = api
        self.user = user
        self._owns_transport = owns_transport

    # ---------- STATE ----------

    @property
    def token(self) -> str:
        return self._state.token

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._state.expires_at

    @property
    def remember_token(self) -> Optional[str]:
        return self._state.remember_token

    def is_expired(self) -> bool:
        """Static-token sessions carry no expiry and are never considered expired."""
        remaining = self.time_to_expiry()
        return remaining is not None and remaining <= 0

    def time_to_expiry(self) -> Optional[float]:
        expires_at = self._state.expires_at
        if expires_at is None:
            return None
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        delta = expires_at - datetime.now(timezone.utc)
        return max(0.0, delta.total_seconds())

    def rotate(
        self,
        token: str,
        expires_at: Optional[datetime] = None,
        remember_token: Optional[str] = None,
    ) -> SessionState:
        """Swap in a new token. Concurrent readers see either the old or the new snapshot."""
        if not token:
            raise AuthenticationFailed("Refusing to rotate to an empty token")
        with self._lock:
            current = self._state
            self._state = SessionState(
                token=token,
                expires_at=expires_at,
                remember_token=remember_token if remember_token is not None else current.remember_token,
            )
            new_state = self._state
        logger.debug("Session token rotated (expires_at={})", expires_at)
        return new_state

    # ---------- LIFECYCLE ----------

    async def renew(self) -> SessionState:
        """
        Trade the remember-token from a remember_me login for a fresh session
        token. Explicit only; never called behind the caller's back.
        """
        state = self._state
        if not isinstance(self.credential, LoginFlow) or not state.remember_token:
            raise AuthenticationFailed("Session has no remember-token to renew with")
        body = {
            "login": self.credential.login,
            "remember-token": state.remember_token,
            "remember-me": True,
        }
        data = await _exchange(self.api, body, otp=None)
        return self.rotate(data.session_token, data.session_expiration, data.remember_token)

    async def logout(self) -> None:
        """Invalidate the token server side."""
        await self.api.execute(Endpoint("DELETE", SESSIONS_PATH), self)
        logger.debug("Session logged out")

    async def close(self) -> None:
        if self._owns_transport:
            await self.api.transport.aclose()

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"Session(credential={self.credential!r}, expires_at={self.expires_at!r})"


# ===== Credential resolution =====

async def _exchange(api: ApiClient, body: Dict[str, Any], otp: Optional[str]) -> _LoginData:
    """One POST to the sessions endpoint; maps the login-specific statuses."""
    extra = {OTP_HEADER: otp} if otp else None
    response, url = await api.send(Endpoint("POST", SESSIONS_PATH, body=body), extra_headers=extra)

    if response.status in (401, 403):
        code, message = error_details(response)
        if otp is None and code in OTP_REQUIRED_CODES:
            raise TwoFactorRequired(
                message or "A one-time code is required for this login",
                status=response.status,
                code=code,
                url=url,
            )
        raise AuthenticationFailed(
            message or "Invalid login credentials",
            status=response.status,
            code=code,
            url=url,
        )
    raise_for_status(response, url)
    return decode_data(decode_json(response, url), _LoginData, url)


def _client_for(transport: Optional[HttpTransport], cfg: Settings) -> ApiClient:
    return ApiClient(transport or HttpxTransport(cfg), cfg=cfg)


async def resolve_by_login(
    login: str,
    password: str,
    otp: Optional[str] = None,
    *,
    remember_me: bool = False,
    transport: Optional[HttpTransport] = None,
    cfg: Optional[Settings] = None,
) -> Session:
    """
    Exchange login + password (+ otp) for a session token.

    Raises AuthenticationFailed for rejected credentials, TwoFactorRequired
    when the account wants a code that was not given, TransportError when
    no readable answer came back.
    """
    cfg = cfg or default_settings
    owns_transport = transport is None
    api = _client_for(transport, cfg)
    credential = LoginFlow(login=login, password=password, otp=otp, remember_me=remember_me)

    body: Dict[str, Any] = {"login": login, "password": password, "remember-me": remember_me}
    if otp:
        body["otp"] = otp

    session: Optional[Session] = None
    try:
        data = await _exchange(api, body, otp or None)
        session = Session(
            SessionState(
                token=data.session_token,
                expires_at=data.session_expiration,
                remember_token=data.remember_token,
            ),
            credential=credential,
            api=api,
            user=data.user,
            owns_transport=owns_transport,
        )
    finally:
        if session is None and owns_transport:
            await api.transport.aclose()

    logger.debug("Logged in as {} (expires_at={})", login, session.expires_at)
    return session


def resolve_by_token(
    token: str,
    *,
    transport: Optional[HttpTransport] = None,
    cfg: Optional[Settings] = None,
) -> Session:
    """Wrap a ready token. No network call; a bad token shows up on first use."""
    if not token or not token.strip():
        raise AuthenticationFailed("Empty session token")
    cfg = cfg or default_settings
    return Session(
        SessionState(token=token.strip()),
        credential=StaticToken(token=token.strip()),
        api=_client_for(transport, cfg),
        owns_transport=transport is None,
    )


async def resolve(
    credential: Credential,
    *,
    transport: Optional[HttpTransport] = None,
    cfg: Optional[Settings] = None,
) -> Session:
    if isinstance(credential, StaticToken):
        return resolve_by_token(credential.token, transport=transport, cfg=cfg)
    if isinstance(credential, LoginFlow):
        return await resolve_by_login(
            credential.login,
            credential.password,
            credential.otp,
            remember_me=credential.remember_me,
            transport=transport,
            cfg=cfg,
        )
    raise TypeError(f"Unsupported credential: {type(credential).__name__}")
