"""
Placeholder page classification.

Registrars and hosting providers park freshly registered domains behind a
generic landing page. Such a page answers with HTTP 200 but is not a real
website. The website prober hands the page HTML to a classifier to tell
the two apart.

Any object with an async ``classify(html) -> bool`` method can serve as the
classifier; ``True`` means the page is a real site.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

import httpx

from .config import ClassifierConfig
from .exceptions import ClassifierError
from .scan_logger import ScanLogger


PROMPT = (
    "Only answer with Yes or No. Does the following HTML content indicate that "
    "the website is a placeholder page of a hosting company or domain registrar "
    "(for example Hostpoint, Hoststar, Infomaniak, GoDaddy) rather than a real "
    "website of its owner?\n\n"
)


@runtime_checkable
class PlaceholderClassifier(Protocol):
    """Decides whether fetched HTML belongs to a real website."""

    async def classify(self, html: str) -> bool:
        ...


class StaticClassifier:
    """Classifier with a fixed answer, for tests and offline runs."""

    def __init__(self, present: bool = True) -> None:
        self.present = present
        self.calls: list[str] = []

    async def classify(self, html: str) -> bool:
        self.calls.append(html)
        return self.present


class LLMPlaceholderClassifier:
    """
    Asks an OpenAI-compatible chat completion API whether a page is a
    hosting placeholder.

    Only a clear "No" (not a placeholder) counts as a real site. A "Yes",
    an unparseable answer or a failed request all yield ``False``.
    """

    def __init__(
        self,
        config: ClassifierConfig,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[ScanLogger] = None,
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None
        self._logger = logger

    async def __aenter__(self) -> "LLMPlaceholderClassifier":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout_seconds)
            self._owns_client = True
        return self._client

    async def ask(self, html: str) -> str:
        """
        Send the prompt and return the raw answer text.

        Raises:
            ClassifierError: If the API call fails or returns no content
        """
        snippet = html[: self._config.max_html_chars]
        try:
            response = await self._get_client().post(
                self._config.api_url,
                headers={
                    "Authorization": f"Bearer {self._config.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self._config.model,
                    "messages": [{"role": "user", "content": PROMPT + snippet}],
                    "max_tokens": 5,
                    "temperature": 0,
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ClassifierError(
                code="api_error",
                message=f"Classifier API error: {e.response.status_code}",
                details={"status_code": e.response.status_code},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ClassifierError(
                code="request_failed",
                message=f"Classifier request failed: {e}",
            ) from e

        try:
            return str(data["choices"][0]["message"]["content"] or "")
        except (KeyError, IndexError, TypeError) as e:
            raise ClassifierError(
                code="parse_error",
                message="Classifier response has no message content",
            ) from e

    async def classify(self, html: str) -> bool:
        try:
            answer = await self.ask(html)
        except ClassifierError as e:
            if self._logger:
                self._logger.warn(
                    "Classifier",
                    f"Placeholder classification failed: {e.message}",
                    {"code": e.code, **e.details},
                )
            return False
        return parse_answer(answer)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def parse_answer(answer: str) -> bool:
    """
    Map the model's Yes/No answer to "is a real site".

    "Yes" means placeholder (False), "No" means real site (True); anything
    else is treated as a placeholder.
    """
    word = answer.strip().strip(".!").lower()
    return word == "no"
