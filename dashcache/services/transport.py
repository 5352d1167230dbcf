from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from dashcache.services.errors import TransportError

logger = logging.getLogger(__name__)

TEMPORARY_STATUSES = frozenset({408, 409, 425, 429})


def is_temporary(exc: BaseException) -> bool:
    if not isinstance(exc, TransportError):
        return False
    if exc.status is None:
        return True
    return exc.status >= 500 or exc.status in TEMPORARY_STATUSES


class ApiClient:
    """JSON-over-HTTP access to the dashboard backend.

    Every request carries a timeout. Only ``fetch_snapshot`` is retried: pushes
    are not idempotent and a retried POST could create duplicates.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        retry_attempts: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.retry_attempts = max(1, retry_attempts)
        self._transport = transport

    def url_for(self, path: str) -> str:
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")

    async def request(self, method: str, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        url = self.url_for(path)
        timeout = httpx.Timeout(self.timeout_seconds)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.request(
                    method,
                    url,
                    json=body,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise TransportError(None, f"{type(exc).__name__}: {exc}") from exc

        if response.status_code >= 400:
            raise TransportError(response.status_code, response.reason_phrase, response.text)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(response.status_code, "Invalid JSON body", response.text) from exc

    async def fetch_snapshot(self) -> dict[str, Any]:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(is_temporary),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
            stop=stop_after_attempt(self.retry_attempts),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info("Retrying snapshot fetch (attempt %d)", attempt.retry_state.attempt_number)
                data = await self.request("GET", "/all-data")
        if not isinstance(data, dict):
            raise TransportError(200, "Snapshot is not a JSON object", str(data)[:300])
        return data

    async def post(self, path: str, body: dict[str, Any]) -> Any:
        return await self.request("POST", path, body)

    async def put(self, path: str, body: dict[str, Any]) -> Any:
        return await self.request("PUT", path, body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
