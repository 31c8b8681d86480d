# tastybroker/backend/broker/client.py
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from tastybroker.backend.broker.errors import (
    ApiError,
    AuthenticationFailed,
    NotFound,
    RateLimited,
    SchemaMismatch,
    TransportError,
)
from tastybroker.config import Settings, settings as default_settings
from tastybroker.domain.interfaces import HttpResponse, HttpTransport
from tastybroker.domain.models import Pagination

if TYPE_CHECKING:
    from tastybroker.backend.broker.session import Session

_ACCOUNTS = "accounts/"


def obfuscate_account_url(url: str) -> str:
    """Mask the account number in ".../accounts/<number>/..." before it hits a log or error."""
    idx = url.find(_ACCOUNTS)
    if idx < 0:
        return url
    start = idx + len(_ACCOUNTS)
    end = len(url)
    for sep in ("/", "?"):
        pos = url.find(sep, start)
        if 0 <= pos < end:
            end = pos
    return url[:start] + "*" * (end - start) + url[end:]


@dataclass(frozen=True)
class Endpoint:
    method: str
    path: str
    params: Optional[Mapping[str, Any]] = None
    body: Optional[Mapping[str, Any]] = None


# ===== Envelope helpers =====

def decode_json(response: HttpResponse, url: str) -> Any:
    """JSON body with floats kept as Decimal; None for an empty body."""
    if not response.body.strip():
        return None
    try:
        return json.loads(response.body, parse_float=Decimal)
    except ValueError as e:  # JSONDecodeError and UnicodeDecodeError
        raise TransportError(f"Unreadable response body: {e}", status=response.status, url=url) from e


def error_details(response: HttpResponse) -> Tuple[Optional[str], str]:
    """(code, message) from an {"error": {...}} envelope, tolerating non-JSON bodies."""
    try:
        payload = json.loads(response.body) if response.body.strip() else None
    except ValueError:
        return None, response.body[:200].decode("utf-8", "replace").strip()
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        code = error.get("code")
        return (str(code) if code is not None else None), str(error.get("message") or "")
    if isinstance(error, str):
        return None, error
    return None, ""


def _retry_after(response: HttpResponse) -> Optional[float]:
    headers = {k.lower(): v for k, v in response.headers.items()}
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if math.isfinite(seconds) and seconds >= 0 else None


def raise_for_status(response: HttpResponse, url: str) -> None:
    if response.ok:
        return
    code, message = error_details(response)
    status = response.status
    if status == 401:
        raise AuthenticationFailed(message or "Invalid or expired session token", status=status, code=code, url=url)
    if status == 404:
        raise NotFound(message or "Resource not found", status=status, code=code, url=url)
    if status == 429:
        raise RateLimited(
            message or "Rate limit exceeded",
            retry_after=_retry_after(response),
            status=status,
            code=code,
            url=url,
        )
    raise ApiError(message or f"HTTP {status}", status=status, code=code, url=url)


@lru_cache(maxsize=64)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


def decode_data(payload: Any, shape: Any, url: str) -> Any:
    if not isinstance(payload, dict) or "data" not in payload:
        raise SchemaMismatch("Response has no 'data' envelope", url=url)
    data = payload["data"]
    if shape is None:
        return data
    try:
        return _adapter(shape).validate_python(data)
    except ValidationError as e:
        raise SchemaMismatch(f"Unexpected response shape: {e}", url=url) from e


def decode_pagination(payload: Any, url: str) -> Optional[Pagination]:
    raw = payload.get("pagination") if isinstance(payload, dict) else None
    if raw is None:
        return None
    try:
        return _adapter(Pagination).validate_python(raw)
    except ValidationError as e:
        raise SchemaMismatch(f"Unexpected pagination block: {e}", url=url) from e


class ApiClient:
    """
    Authenticated request executor.

    One call = one round trip through the transport. Nothing is retried;
    status codes are mapped to typed errors and the caller decides what next.
    """

    def __init__(
        self,
        transport: HttpTransport,
        base_url: Optional[str] = None,
        *,
        cfg: Optional[Settings] = None,
    ) -> None:
        self.cfg = cfg or default_settings
        self.transport = transport
        self.base_url = (base_url or self.cfg.TASTY_API_BASE_URL).rstrip("/")

    def url_for(self, endpoint: Endpoint) -> str:
        url = f"{self.base_url}/{endpoint.path.lstrip('/')}"
        if endpoint.params:
            url = f"{url}?{urlencode(endpoint.params)}"
        return url

    def headers(self, token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": self.cfg.TASTY_USER_AGENT,
        }
        if token is not None:
            scheme = self.cfg.TASTY_AUTH_SCHEME.strip()
            headers["Authorization"] = f"{scheme} {token}" if scheme else token
        return headers

    async def send(
        self,
        endpoint: Endpoint,
        token: Optional[str] = None,
        extra_headers: Optional[Mapping[str, str]] = None,
    ) -> Tuple[HttpResponse, str]:
        """Single dispatch. Returns the raw response and the masked URL for messages."""
        url = self.url_for(endpoint)
        masked = obfuscate_account_url(url)
        headers = self.headers(token)
        if extra_headers:
            headers.update(extra_headers)
        body = json.dumps(endpoint.body).encode("utf-8") if endpoint.body is not None else None

        try:
            response = await self.transport.send(endpoint.method, url, headers, body)
        except TransportError as e:
            e.url = e.url or masked
            raise
        logger.debug("{} {} -> {}", endpoint.method, masked, response.status)
        return response, masked

    async def execute(self, endpoint: Endpoint, session: "Session", shape: Any = None) -> Any:
        """Run the call with the session's current token and return the decoded 'data'."""
        data, _ = await self.execute_page(endpoint, session, shape)
        return data

    async def execute_page(
        self, endpoint: Endpoint, session: "Session", shape: Any = None
    ) -> Tuple[Any, Optional[Pagination]]:
        """Like execute, plus the top-level 'pagination' block list endpoints send."""
        response, url = await self.send(endpoint, session.token)
        raise_for_status(response, url)
        payload = decode_json(response, url)
        if payload is None:
            return None, None
        return decode_data(payload, shape, url), decode_pagination(payload, url)
