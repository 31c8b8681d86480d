# tastybroker/infra/httpx_transport.py
from __future__ import annotations

from typing import Mapping, Optional

import httpx

from tastybroker.backend.broker.errors import TransportError
from tastybroker.config import Settings, settings as default_settings
from tastybroker.domain.interfaces import HttpResponse, HttpTransport


class HttpxTransport(HttpTransport):
    """
    HttpTransport on top of httpx.AsyncClient.

    Hands back every status code as is; only failures without a response
    (connect errors, timeouts, protocol errors) become TransportError.
    """

    def __init__(
        self,
        cfg: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.cfg = cfg or default_settings
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.cfg.TASTY_TIMEOUT,
            headers={"User-Agent": self.cfg.TASTY_USER_AGENT},
        )

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> HttpResponse:
        try:
            response = await self.client.request(method, url, headers=dict(headers), content=body)
        except httpx.TimeoutException as e:
            raise TransportError(f"Timeout: {e.__class__.__name__}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Network error: {e.__class__.__name__}: {e}") from e

        return HttpResponse(
            status=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
