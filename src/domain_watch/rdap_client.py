"""
RDAP Client for domain registration lookups.

This module provides the registration prober: an async RDAP client that
issues a HEAD request per domain and maps the answer onto a boolean.

Lookup policy:
- 200 or 401 (object exists, possibly access-protected) -> registered
- 404 -> not registered
- 429 -> wait a fixed backoff and retry exactly once
- anything else, timeouts and transport errors -> not registered

The prober is fail-closed: absence of proof is reported as "not
registered" and no exception ever reaches the caller.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx

from .config import RegistryConfig, RetryConfig
from .enums import LogLevel, RegistrationOutcome
from .retry_manager import RetryManager
from .scan_logger import ScanLogger


# HTTP status -> outcome. Statuses missing from the table map to UNKNOWN.
REGISTRATION_POLICY: dict[int, RegistrationOutcome] = {
    200: RegistrationOutcome.REGISTERED,
    401: RegistrationOutcome.REGISTERED,
    404: RegistrationOutcome.NOT_REGISTERED,
    429: RegistrationOutcome.RATE_LIMITED,
}

TIMEOUT_ERROR = "timeout"

# Request failures that resolve to a negative result instead of propagating.
PROBE_EXCEPTIONS = (httpx.HTTPError, httpx.InvalidURL, ValueError, asyncio.TimeoutError)


def classify_status(status_code: int) -> RegistrationOutcome:
    """Look up the outcome for an RDAP HTTP status code."""
    return REGISTRATION_POLICY.get(status_code, RegistrationOutcome.UNKNOWN)


def classify_exception(error: Exception) -> str:
    """Short diagnostic for a failed request ('timeout' or the message)."""
    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError)):
        return TIMEOUT_ERROR
    return str(error) or type(error).__name__


@dataclass
class RDAPResponse:
    """Outcome of a single RDAP HEAD request."""

    outcome: RegistrationOutcome
    http_status_code: Optional[int] = None
    error: Optional[str] = None
    response_time_ms: float = 0.0


@dataclass
class RegistrationCheck:
    """Final result of a registration lookup, including any retry."""

    domain: str
    registered: bool
    outcome: RegistrationOutcome
    http_status_code: Optional[int]
    attempts: int
    error: Optional[str] = None


class RDAPClient:
    """
    Async RDAP registration prober.

    Can be used as an async context manager, in which case it owns its
    HTTP client. A shared ``httpx.AsyncClient`` may be passed instead.
    """

    COMPONENT = "RDAPClient"

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[ScanLogger] = None,
    ) -> None:
        """
        Initialize the RDAP client.

        Args:
            config: Registry endpoint and timeout
            retry_config: Backoff and retry budget for HTTP 429
            client: Optional shared HTTP client
            logger: Optional scan logger
        """
        self._config = config or RegistryConfig()
        self._retry_manager = RetryManager(retry_config or RetryConfig())
        self._client = client
        self._owns_client = False
        self._logger = logger

    async def __aenter__(self) -> "RDAPClient":
        if self._client is None:
            self._client = self._build_client()
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.timeout_seconds),
            follow_redirects=True,
        )

    def lookup_url(self, domain: str) -> str:
        """RDAP URL for a domain: ``{base}/domain/{url-encoded domain}``."""
        base = self._config.rdap_base_url.rstrip("/")
        return f"{base}/domain/{quote(domain, safe='')}"

    async def query(self, domain: str) -> RDAPResponse:
        """
        Issue one HEAD request and classify the answer.

        Never raises; transport failures become UNKNOWN with an error text.
        """
        if self._client is None:
            self._client = self._build_client()
            self._owns_client = True

        url = self.lookup_url(domain)
        start_time = time.perf_counter()
        try:
            # httpx timeouts are per phase; wait_for bounds the whole request.
            response = await asyncio.wait_for(
                self._client.head(
                    url,
                    headers={"Accept": "application/rdap+json, application/json"},
                    timeout=self._config.timeout_seconds,
                ),
                timeout=self._config.timeout_seconds,
            )
        except PROBE_EXCEPTIONS as e:
            return RDAPResponse(
                outcome=RegistrationOutcome.UNKNOWN,
                error=classify_exception(e),
                response_time_ms=self._elapsed_ms(start_time),
            )

        return RDAPResponse(
            outcome=classify_status(response.status_code),
            http_status_code=response.status_code,
            response_time_ms=self._elapsed_ms(start_time),
        )

    async def check(self, domain: str) -> RegistrationCheck:
        """
        Determine the registration status of a domain.

        Retries once after a fixed backoff when rate limited; the retry's
        outcome is final.
        """
        retry = await self._retry_manager.execute(
            lambda: self.query(domain),
            lambda response: response.outcome == RegistrationOutcome.RATE_LIMITED,
        )
        response = retry.result
        registered = response.outcome == RegistrationOutcome.REGISTERED

        self._log(
            LogLevel.DEBUG,
            f"Registration lookup for {domain}: {response.outcome.value}",
            {
                "domain": domain,
                "http_status": response.http_status_code,
                "attempts": retry.attempts,
                "error": response.error,
                "response_time_ms": round(response.response_time_ms, 1),
            },
        )

        return RegistrationCheck(
            domain=domain,
            registered=registered,
            outcome=response.outcome,
            http_status_code=response.http_status_code,
            attempts=retry.attempts,
            error=response.error,
        )

    async def is_registered(self, domain: str) -> bool:
        """Boolean form of :meth:`check`."""
        result = await self.check(domain)
        return result.registered

    def _elapsed_ms(self, start_time: float) -> float:
        """Calculate elapsed time in milliseconds."""
        return (time.perf_counter() - start_time) * 1000

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        if self._owns_client:
            self._client = None
            self._owns_client = False
