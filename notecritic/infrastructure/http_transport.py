"""HTTP Transport — opens a vendor stream with httpx and yields raw text lines.

Invariants:
    - Rate limits (429) and overload/5xx: exponential backoff with jitter, Retry-After respected
    - Connection failures before the first byte: retried up to max_retries
    - Other HTTP status >= 400: immediate TransportError carrying the vendor's message
    - Failures after the body started streaming are never retried (lines already consumed)
    - The response is always closed when the generator ends, errors, or is cancelled

Design Decisions:
    - httpx stream=True + aiter_lines(): one transport for every vendor's SSE dialect
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
    - Client injectable: tests swap in httpx.MockTransport without patching
"""

import asyncio
import logging
import random
from collections.abc import AsyncIterator

import httpx

from notecritic.core.errors import ErrorContext, TransportError
from notecritic.core.repository_protocols import ProviderRequest

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({408, 429, 500, 502, 503, 504, 529})
_CONNECT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.RemoteProtocolError)


def _error_detail(response: httpx.Response) -> str:
    """Best-effort short message from an error response body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str):
            return err
    return response.text[:500]


class HttpTransport:
    """Transport implementation over httpx.AsyncClient."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 60_000,
        timeout_seconds: int = 300,
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def open_stream(self, request: ProviderRequest) -> AsyncIterator[str]:
        response = await self._send_with_retry(request)
        try:
            async for line in response.aiter_lines():
                yield line
        except httpx.HTTPError as e:
            raise TransportError(f"Stream interrupted: {e}") from e
        finally:
            await response.aclose()

    async def _send_with_retry(self, request: ProviderRequest) -> httpx.Response:
        ctx = ErrorContext(debug_info={"url": request.url})
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.send(
                    self.client.build_request(
                        request.method, request.url,
                        headers=request.headers, json=request.body,
                    ),
                    stream=True,
                )
            except _CONNECT_ERRORS as e:
                if attempt >= self.max_retries:
                    raise TransportError(
                        f"Connection failed after {attempt + 1} attempts: {e}",
                        context=ctx,
                    ) from e
                await self._sleep(self._backoff(attempt), attempt, str(e))
                continue
            except httpx.HTTPError as e:
                raise TransportError(f"Request failed: {e}", context=ctx) from e

            if response.status_code < 400:
                return response

            await response.aread()
            await response.aclose()
            status = response.status_code
            if status in _RETRYABLE_STATUS and attempt < self.max_retries:
                delay = self._retry_after(response) or self._backoff(attempt)
                await self._sleep(delay, attempt, f"HTTP {status}")
                continue
            raise TransportError(
                f"HTTP {status}: {_error_detail(response)}",
                status_code=status, context=ctx,
            )
        raise TransportError("Retries exhausted", context=ctx)

    async def _sleep(self, delay_ms: int, attempt: int, reason: str) -> None:
        logger.warning(
            "Transient transport failure (%s), retry after %dms", reason, delay_ms,
            extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(delay_ms / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    @staticmethod
    def _retry_after(response: httpx.Response) -> int | None:
        """Retry-After header in milliseconds, if numeric."""
        val = response.headers.get("retry-after")
        if val and val.isdigit():
            return int(val) * 1000
        return None
