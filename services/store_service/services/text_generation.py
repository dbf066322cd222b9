"""Text generation client for product copy and analytics Q&A.

Calls the Gemini ``generateContent`` REST endpoint with httpx. The generator
never raises into a request: without an API key, or when the upstream call
fails, it returns a canned placeholder instead.
"""

import time
from typing import Optional

import httpx
from libs.common.config import Settings
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)

PREVIEW_CHARS = 120
UNAVAILABLE_TEXT = "AI service temporarily unavailable. Please try again."
EMPTY_TEXT = "No response generated"


class GeneratedText:
    """Outcome of a generation call."""

    def __init__(self, text: str, generated: bool, latency_ms: int = 0):
        self.text = text
        # False when the text is a placeholder rather than model output
        self.generated = generated
        self.latency_ms = latency_ms

    def __repr__(self):
        return f"<GeneratedText generated={self.generated} len={len(self.text)}>"


def mock_response(prompt: str, *, error: bool = False) -> str:
    prefix = "Mock response (error contacting AI)" if error else "Mock response"
    return f"{prefix} for prompt: {prompt[:PREVIEW_CHARS]}..."


def _extract_text(payload: dict) -> str:
    try:
        return payload["candidates"][0]["content"]["parts"][0]["text"] or EMPTY_TEXT
    except (KeyError, IndexError, TypeError):
        return EMPTY_TEXT


class TextGenerator:
    """Gemini REST client, built once at startup from settings."""

    def __init__(
        self,
        *,
        api_key: Optional[str],
        model: str,
        api_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "TextGenerator":
        return cls(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            api_url=settings.GEMINI_API_URL,
            timeout=settings.AI_TIMEOUT_SECONDS,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/{self.model}:generateContent"

    async def generate(self, prompt: str) -> GeneratedText:
        if not self.configured:
            return GeneratedText(mock_response(prompt), generated=False)

        headers = {"x-goog-api-key": self.api_key}
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id
        body = {"contents": [{"parts": [{"text": prompt}]}]}

        start = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.endpoint, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error(
                f"Text generation request failed: {e}",
                extra={"extra_fields": {"model": self.model}},
            )
            return GeneratedText(mock_response(prompt, error=True), generated=False)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if response.is_error:
            logger.warning(
                "Text generation upstream returned %s: %s",
                response.status_code,
                response.text[:500],
            )
            return GeneratedText(UNAVAILABLE_TEXT, generated=False, latency_ms=elapsed_ms)

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Text generation upstream returned a non-JSON body")
            return GeneratedText(UNAVAILABLE_TEXT, generated=False, latency_ms=elapsed_ms)

        return GeneratedText(_extract_text(payload), generated=True, latency_ms=elapsed_ms)
