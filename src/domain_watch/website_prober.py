"""
Website Prober for registered domains.

Determines whether a reachable website answers at a domain. Each scheme is
tried independently, https first:

1. HEAD ``scheme://domain/``
2. on 403 or 405 (method rejected) retry the same URL once with GET
3. the site is present iff the final status is in [200, 400)
4. timeouts record ``error="timeout"``, other failures the error message

The first present attempt wins. When neither scheme is present, the https
attempt is reported if it got a status code from a server, then the http
attempt if it did; otherwise a generic "not reachable" result is returned.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from .classifier import PlaceholderClassifier
from .config import WebsiteProbeConfig
from .enums import LogLevel, Scheme
from .exceptions import ClassifierError
from .models import WebsiteProbeResult
from .rdap_client import PROBE_EXCEPTIONS, classify_exception
from .scan_logger import ScanLogger


# Statuses on which a HEAD request is repeated as GET.
METHOD_REJECTED_STATUSES = frozenset({403, 405})

SCHEME_ORDER = (Scheme.HTTPS, Scheme.HTTP)

NOT_REACHABLE_ERROR = "not reachable"
PLACEHOLDER_ERROR = "placeholder"


def is_present_status(status_code: int) -> bool:
    return 200 <= status_code < 400


def select_result(
    https_result: WebsiteProbeResult,
    http_result: WebsiteProbeResult,
) -> WebsiteProbeResult:
    """
    Pick the result to report from the two scheme attempts.

    https wins ties: among absent results the https attempt is preferred
    whenever it carries a status code.
    """
    if https_result.present:
        return https_result
    if http_result.present:
        return http_result
    if https_result.status_code is not None:
        return https_result
    if http_result.status_code is not None:
        return http_result
    return WebsiteProbeResult(present=False, error=NOT_REACHABLE_ERROR)


@dataclass
class SchemeAttempt:
    """One scheme's probe, plus the GET body when one was fetched."""

    result: WebsiteProbeResult
    method: str = "HEAD"
    body: Optional[str] = None
    response_time_ms: float = 0.0


class WebsiteProber:
    """
    Async website reachability prober.

    Only invoked for registered domains. Never raises: every failure is
    folded into the returned WebsiteProbeResult.
    """

    COMPONENT = "WebsiteProber"

    def __init__(
        self,
        config: Optional[WebsiteProbeConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        classifier: Optional[PlaceholderClassifier] = None,
        logger: Optional[ScanLogger] = None,
    ) -> None:
        """
        Initialize the website prober.

        Args:
            config: Timeout and user agent for probe requests
            client: Optional shared HTTP client
            classifier: Optional placeholder page classifier
            logger: Optional scan logger
        """
        self._config = config or WebsiteProbeConfig()
        self._client = client
        self._owns_client = False
        self._classifier = classifier
        self._logger = logger

    async def __aenter__(self) -> "WebsiteProber":
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

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = self._build_client()
            self._owns_client = True
        return self._client

    @staticmethod
    def url_for(scheme: Scheme, domain: str) -> str:
        return f"{scheme.value}://{domain}/"

    async def _request(self, method: str, url: str) -> httpx.Response:
        return await asyncio.wait_for(
            self._get_client().request(
                method,
                url,
                headers={"User-Agent": self._config.user_agent},
                timeout=self._config.timeout_seconds,
            ),
            timeout=self._config.timeout_seconds,
        )

    async def probe_scheme(self, domain: str, scheme: Scheme) -> SchemeAttempt:
        """Probe one scheme: HEAD, escalating to GET on 403/405."""
        url = self.url_for(scheme, domain)
        start_time = time.perf_counter()
        method = "HEAD"
        body = None

        try:
            response = await self._request(method, url)
            if response.status_code in METHOD_REJECTED_STATUSES:
                method = "GET"
                response = await self._request(method, url)
                body = response.text
        except PROBE_EXCEPTIONS as e:
            return SchemeAttempt(
                result=WebsiteProbeResult(
                    present=False,
                    url_tried=url,
                    error=classify_exception(e),
                ),
                method=method,
                response_time_ms=self._elapsed_ms(start_time),
            )

        return SchemeAttempt(
            result=WebsiteProbeResult(
                present=is_present_status(response.status_code),
                protocol=scheme.value,
                status_code=response.status_code,
                url_tried=url,
            ),
            method=method,
            body=body,
            response_time_ms=self._elapsed_ms(start_time),
        )

    async def probe(self, domain: str) -> WebsiteProbeResult:
        """
        Determine website presence for a registered domain.

        Tries https, then http (skipped when https is already present),
        selects the result to report and runs the placeholder check on a
        present result.
        """
        attempts: dict[Scheme, SchemeAttempt] = {}
        for scheme in SCHEME_ORDER:
            attempt = await self.probe_scheme(domain, scheme)
            attempts[scheme] = attempt
            self._log(
                LogLevel.DEBUG,
                f"{attempt.method} {attempt.result.url_tried}: "
                f"{attempt.result.status_code or attempt.result.error}",
                {
                    "domain": domain,
                    "scheme": scheme.value,
                    "present": attempt.result.present,
                    "response_time_ms": round(attempt.response_time_ms, 1),
                },
            )
            if attempt.result.present:
                break

        https_attempt = attempts[Scheme.HTTPS]
        http_attempt = attempts.get(Scheme.HTTP)
        if http_attempt is None:
            selected = https_attempt.result
        else:
            selected = select_result(https_attempt.result, http_attempt.result)

        if selected.present and self._classifier is not None:
            chosen = next(a for a in attempts.values() if a.result is selected)
            selected = await self._apply_classifier(domain, chosen)

        return selected

    async def _apply_classifier(
        self, domain: str, attempt: SchemeAttempt
    ) -> WebsiteProbeResult:
        """Demote a present result whose page is a hosting placeholder."""
        result = attempt.result
        html = attempt.body
        if html is None:
            try:
                response = await self._request("GET", result.url_tried)
                html = response.text
            except PROBE_EXCEPTIONS as e:
                self._log(
                    LogLevel.WARN,
                    f"Could not fetch page for classification: {domain}",
                    {"domain": domain, "error": classify_exception(e)},
                )
                return result

        try:
            is_real_site = await self._classifier.classify(html)
        except ClassifierError as e:
            self._log(
                LogLevel.WARN,
                f"Classifier failed for {domain}: {e.message}",
                {"domain": domain, "code": e.code},
            )
            is_real_site = False
        except Exception as e:
            self._log(
                LogLevel.WARN,
                f"Classifier failed for {domain}: {e}",
                {"domain": domain, "code": "unexpected_error", "error_type": type(e).__name__},
            )
            is_real_site = False

        if is_real_site:
            return result

        self._log(
            LogLevel.INFO,
            f"Placeholder page detected for {domain}",
            {"domain": domain, "url": result.url_tried},
        )
        return WebsiteProbeResult(
            present=False,
            protocol=result.protocol,
            status_code=result.status_code,
            url_tried=result.url_tried,
            error=PLACEHOLDER_ERROR,
        )

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
