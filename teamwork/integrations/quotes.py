"""
Teamwork Quote Provider — Daily motivational quote from a public HTTP API.

Uses httpx.AsyncClient. Any failure (transport error, non-2xx status,
malformed payload, open circuit) falls back to a random entry from a fixed
list, so callers always receive a Quote.

Circuit breaker:
    CLOSED     → requests flow normally
    OPEN       → fail fast to the fallback list (no outbound call)
    HALF_OPEN  → one trial request allowed after recovery_timeout; success closes it
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from teamwork.engine.errors import TeamworkExternalFetchFailed
from teamwork.engine.logging import log, log_integration_call

logger = logging.getLogger("teamwork.integrations.quotes")

DEFAULT_API_URL = "https://korean-advice-open-api.vercel.app/api/advice"


class Quote(BaseModel):
    message: str = Field(min_length=1)
    author: str = ""

    def __str__(self) -> str:
        return f'"{self.message}" - {self.author}' if self.author else f'"{self.message}"'


FALLBACK_QUOTES: List[Quote] = [
    Quote(message="시작이 반이다.", author="속담"),
    Quote(message="늦었다고 생각할 때가 가장 빠르다.", author="속담"),
    Quote(message="팀워크는 꿈을 현실로 만든다.", author="존 맥스웰"),
    Quote(message="천리길도 한 걸음부터.", author="노자"),
    Quote(message="혼자 가면 빨리 가고, 함께 가면 멀리 간다.", author="아프리카 속담"),
    Quote(message="실패는 성공의 어머니이다.", author="에디슨"),
    Quote(message="중요한 것은 꺾이지 않는 마음이다.", author="미상"),
]


class CircuitBreaker:
    """Consecutive-failure circuit breaker for one outbound API."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        recovery_timeout: float = 60.0,
    ):
        self.name = name
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._state = self.CLOSED
        self._failure_count = 0
        self._last_failure_time = 0.0

    @property
    def state(self) -> str:
        if self._state == self.OPEN:
            if time.time() - self._last_failure_time >= self._recovery_timeout:
                self._state = self.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state != self.OPEN

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = self.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.time()
        if self._state == self.HALF_OPEN or self._failure_count >= self._failure_threshold:
            self._state = self.OPEN
            logger.warning(
                f"Circuit breaker OPEN for '{self.name}': "
                f"{self._failure_count} consecutive failures"
            )


class QuoteProvider:
    """
    Fetches ``{message, author}`` from the quote API.

    The httpx client is created lazily and reused; pass one in to share a
    connection pool or to plug in a mock transport.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: float = 5.0,
        failure_threshold: int = 3,
        recovery_timeout: float = 60.0,
        enabled: bool = True,
        client: Optional[httpx.AsyncClient] = None,
        rng: Optional[random.Random] = None,
    ):
        self._api_url = api_url
        self._timeout = timeout_seconds
        self._enabled = enabled
        self._client = client
        self._owns_client = client is None
        self._rng = rng or random.Random()
        self.breaker = CircuitBreaker(
            "quotes",
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=min(self._timeout, 10.0)),
                follow_redirects=True,
            )
        return self._client

    def fallback(self) -> Quote:
        return self._rng.choice(FALLBACK_QUOTES)

    async def fetch(self) -> Quote:
        """
        One call to the API.

        Raises:
            TeamworkExternalFetchFailed: on any failure, including an open circuit.
        """
        if not self._enabled:
            raise TeamworkExternalFetchFailed("Quote API disabled", source="quotes")
        if not self.breaker.allow_request():
            raise TeamworkExternalFetchFailed(
                "Quote API circuit open, request skipped", source="quotes",
            )

        start = time.perf_counter()
        status_code: Optional[int] = None
        try:
            response = await self._get_client().get(self._api_url)
            status_code = response.status_code
            response.raise_for_status()
            quote = Quote.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            self.breaker.record_failure()
            duration_ms = (time.perf_counter() - start) * 1000
            log(log_integration_call(
                "quotes", "GET", self._api_url, duration_ms,
                success=False, status_code=status_code, error=str(e), used_fallback=True,
            ))
            raise TeamworkExternalFetchFailed(
                f"Quote API call failed: {e}",
                source="quotes",
                status_code=status_code,
            ) from e

        self.breaker.record_success()
        duration_ms = (time.perf_counter() - start) * 1000
        log(log_integration_call(
            "quotes", "GET", self._api_url, duration_ms, success=True, status_code=status_code,
        ))
        return quote

    async def get_quote(self) -> Quote:
        """A quote from the API, or from the fallback list when the API fails."""
        try:
            return await self.fetch()
        except TeamworkExternalFetchFailed as e:
            logger.info(f"Using fallback quote: {e.message}")
            return self.fallback()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "QuoteProvider":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
