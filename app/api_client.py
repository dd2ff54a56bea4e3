"""Outbound client for the hosted backend with per-category client-side throttling."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from app.security.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


class ApiRateLimited(Exception):
    """Raised locally when a category has exhausted its quota."""

    def __init__(self, category: str, retry_after_ms: int) -> None:
        super().__init__(f"rate limit exceeded for category={category}")
        self.category = category
        self.retry_after_ms = retry_after_ms


class BackendError(Exception):
    """Raised when the backend answers with an error status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"backend returned {status_code}")
        self.status_code = status_code
        self.body = body


class BackendClient:
    """Dispatch JSON requests to the backend once the category limiter admits them."""

    def __init__(
        self,
        base_url: str,
        limiter: RateLimiter,
        *,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._limiter = limiter
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            transport=transport,
            timeout=timeout,
        )

    async def request(self, category: str, method: str, path: str, **kwargs: Any) -> Any:
        if not self._limiter.is_allowed(category):
            retry_after_ms = self._limiter.retry_after_ms(category)
            logger.warning(
                "Backend call aborted locally",
                extra={"category": category, "method": method, "url_path": path},
            )
            raise ApiRateLimited(category, retry_after_ms)

        response = await self._client.request(method, path, **kwargs)
        if response.status_code >= 400:
            raise BackendError(response.status_code, response.text)
        if not response.content:
            return None
        return response.json()

    async def get(self, category: str, path: str, **kwargs: Any) -> Any:
        return await self.request(category, "GET", path, **kwargs)

    async def post(self, category: str, path: str, **kwargs: Any) -> Any:
        return await self.request(category, "POST", path, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
