"""
Shared HTTP plumbing for the order service clients.

Wraps an httpx.AsyncClient and maps every failure onto the qrmenu error
taxonomy:
  - connection errors and timeouts -> TransportError(status_code=None)
  - 404                            -> NotFoundError
  - any other non-2xx              -> TransportError(status_code=...)
  - unparseable / unexpected body  -> TransportError(status_code=<2xx>)
The underlying cause is logged; callers only see the mapped error.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from qrmenu.config import Settings, get_settings
from qrmenu.errors import NotFoundError, TransportError

logger = logging.getLogger(__name__)


def path_segment(value: Any) -> str:
    """Percent-encode untrusted text for use as a single URL path segment."""
    return quote(str(value), safe="")


def build_http_client(settings: Optional[Settings] = None) -> httpx.AsyncClient:
    """Create the AsyncClient used by a SessionContext."""
    settings = settings or get_settings()
    return httpx.AsyncClient(
        base_url=settings.api_base,
        timeout=settings.http_timeout,
        headers={"Accept": "application/json"},
    )


class ServiceClient:
    """Base class for clients of the order service contract."""

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.http.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            logger.error(f"{method} {path} timed out: {exc!r}")
            raise TransportError(f"{method} {path} timed out") from exc
        except httpx.RequestError as exc:
            logger.error(f"{method} {path} failed: {exc!r}")
            raise TransportError(f"{method} {path} unreachable: {exc}") from exc

        if response.status_code == 404:
            logger.info(f"{method} {path} -> 404")
            raise NotFoundError(f"{method} {path} not found")
        if not response.is_success:
            logger.error(f"{method} {path} -> {response.status_code}: {response.text[:200]}")
            raise TransportError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response

    async def _json(self, method: str, path: str, **kwargs) -> Any:
        response = await self._send(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            logger.error(f"{method} {path} returned a non-JSON body")
            raise TransportError(
                f"{method} {path} returned malformed JSON",
                status_code=response.status_code,
            ) from exc

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._json("GET", path, params=params)

    async def _post(self, path: str, body: Any) -> Any:
        return await self._json("POST", path, json=body)

    async def _patch(self, path: str, body: Any) -> Any:
        return await self._json("PATCH", path, json=body)

    async def _get_bytes(self, path: str) -> bytes:
        response = await self._send("GET", path)
        return response.content

    @staticmethod
    def _malformed(what: str, exc: Optional[Exception] = None, status_code: int = 200) -> TransportError:
        # Only raised after a 2xx reply, so this is never a network error
        logger.error(f"malformed {what} from order service: {exc!r}")
        return TransportError(f"malformed {what} from order service", status_code=status_code)
