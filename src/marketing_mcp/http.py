"""Resilient HTTP access to the upstream content providers.

Wraps httpx.AsyncClient with:
- A fixed per-request timeout
- Exponential backoff retry with jitter for transient failures
- A circuit breaker that fails fast while an upstream is unhealthy

Every failure leaves this module as an UpstreamError so the source
adapters can recover at a single boundary.
"""

from __future__ import annotations

import asyncio
import logging
import random
import threading
from enum import Enum
from time import monotonic
from typing import Any

import httpx

from .config import Config
from .errors import CircuitOpenError, UpstreamError

# HTTP status codes that indicate transient failures
TRANSIENT_HTTP_CODES = frozenset({408, 429, 500, 502, 503, 504})

USER_AGENT = "SODAX-Marketing-MCP/1.0"

logger = logging.getLogger(__name__)


# =============================================================================
# Circuit Breaker
# =============================================================================


class CircuitState(Enum):
    """Circuit breaker states for type-safe state management."""

    CLOSED = "closed"  # Normal operation, requests go through
    OPEN = "open"  # Service unhealthy, requests fail immediately
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitBreaker:
    """Circuit breaker pattern for failing fast on unhealthy upstreams.

    States:
    - CLOSED: Normal operation, requests go through
    - OPEN: Service unhealthy, requests fail immediately
    - HALF_OPEN: Testing if service recovered

    Uses monotonic time to be immune to system clock adjustments.
    """

    def __init__(self, failure_threshold: int, recovery_timeout: float) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        with self._lock:
            if self._state == CircuitState.OPEN:
                if monotonic() - self._last_failure_time >= self.recovery_timeout:
                    self._state = CircuitState.HALF_OPEN
            return self._state

    def allow_request(self) -> bool:
        """Check if request should be allowed."""
        return self.state != CircuitState.OPEN

    def record_success(self) -> None:
        """Record a successful request."""
        with self._lock:
            self._failure_count = 0
            self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        """Record a failed request."""
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = monotonic()

            if self._failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                logger.warning(
                    "Circuit breaker opened",
                    extra={
                        "failures": self._failure_count,
                        "threshold": self.failure_threshold,
                        "recovery_timeout": self.recovery_timeout,
                    },
                )


# =============================================================================
# Upstream Client
# =============================================================================


class UpstreamClient:
    """JSON-over-HTTP client for one upstream service.

    The underlying httpx.AsyncClient is created lazily so a client can be
    constructed outside a running event loop. Pass ``transport`` to route
    requests through an httpx.MockTransport in tests.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        *,
        timeout: float,
        headers: dict[str, str] | None = None,
        max_retries: int = 2,
        retry_base_delay: float = 0.5,
        retry_max_delay: float = 10.0,
        circuit_breaker_threshold: int = 5,
        circuit_breaker_timeout: float = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self._headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
            **(headers or {}),
        }
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._circuit_breaker = CircuitBreaker(
            failure_threshold=circuit_breaker_threshold,
            recovery_timeout=circuit_breaker_timeout,
        )

    @classmethod
    def from_config(
        cls,
        name: str,
        base_url: str,
        config: Config,
        *,
        timeout: float,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> UpstreamClient:
        return cls(
            name,
            base_url,
            timeout=timeout,
            headers=headers,
            max_retries=config.max_retries,
            retry_base_delay=config.retry_base_delay,
            retry_max_delay=config.retry_max_delay,
            circuit_breaker_threshold=config.circuit_breaker_threshold,
            circuit_breaker_timeout=config.circuit_breaker_timeout,
            transport=transport,
        )

    @property
    def circuit_state(self) -> CircuitState:
        return self._circuit_breaker.state

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post_json(self, path: str, body: dict[str, Any]) -> Any:
        return await self.request("POST", path, json=body)

    def _calculate_backoff(self, attempt: int) -> float:
        """Calculate exponential backoff delay with jitter.

        Uses exponential backoff: base_delay * 2^attempt
        Capped at retry_max_delay.
        """
        delay = self.retry_base_delay * (2**attempt)
        delay = min(delay, self.retry_max_delay)

        # 10-20% jitter to prevent synchronized retries
        jitter = delay * random.uniform(0.1, 0.2)
        return delay + jitter

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            CircuitOpenError: circuit breaker is open
            UpstreamError: request failed after retries, non-transient
                status, or undecodable body
        """
        if not self._circuit_breaker.allow_request():
            logger.warning("Circuit breaker open, failing fast", extra={"upstream": self.name})
            raise CircuitOpenError(f"{self.name} unavailable (circuit breaker open)")

        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                response = await client.request(method, path, **kwargs)
            except httpx.TransportError as e:
                # Connect errors, timeouts, dropped connections
                error = UpstreamError(f"{self.name} {method} {path} failed: {type(e).__name__}: {e}")
            except httpx.HTTPError as e:
                # Undecodable bodies, redirect loops and other protocol errors
                self._circuit_breaker.record_failure()
                raise UpstreamError(
                    f"{self.name} {method} {path} failed: {type(e).__name__}: {e}"
                ) from e
            else:
                if response.is_success:
                    try:
                        payload = response.json()
                    except ValueError as e:
                        self._circuit_breaker.record_failure()
                        raise UpstreamError(
                            f"{self.name} {method} {path} returned invalid JSON: {e}"
                        ) from e
                    self._circuit_breaker.record_success()
                    return payload

                status = response.status_code
                error = UpstreamError(
                    f"{self.name} {method} {path} returned HTTP {status}",
                    status_code=status,
                )
                if status not in TRANSIENT_HTTP_CODES:
                    # Auth failures are configuration problems, not upstream health
                    if status not in (401, 403):
                        self._circuit_breaker.record_failure()
                    raise error

            logger.warning(
                f"Transient failure (attempt {attempt + 1}/{self.max_retries + 1})",
                extra={"upstream": self.name, "path": path, "error": str(error)},
            )

            if attempt >= self.max_retries:
                self._circuit_breaker.record_failure()
                logger.error(
                    "Max retries exhausted",
                    extra={"upstream": self.name, "attempts": attempt + 1},
                )
                raise error

            delay = self._calculate_backoff(attempt)
            logger.info(f"Retrying in {delay:.2f}s...")
            await asyncio.sleep(delay)

        raise UpstreamError("Unexpected retry loop exit")
