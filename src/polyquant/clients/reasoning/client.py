"""Async HTTP client for the Gemini ``generateContent`` REST endpoint.

Send a single prompt with the ``google_search`` tool enabled and return
the answer text together with the web sources the model grounded on.
Rate-limit responses (HTTP 429, ``RESOURCE_EXHAUSTED`` or quota errors)
are raised as ``ReasoningRateLimitError`` so callers can back off.
"""

import logging
from typing import Any, cast

import httpx

from polyquant.clients.reasoning.exceptions import ReasoningAPIError, ReasoningRateLimitError
from polyquant.clients.reasoning.models import GroundedResponse, GroundingSource

logger = logging.getLogger(__name__)

_HTTP_BAD_REQUEST = 400
_HTTP_UNAUTHORIZED = 401
_HTTP_TOO_MANY_REQUESTS = 429
_RATE_LIMIT_MARKERS = ("resource_exhausted", "quota", "429")


class GeminiClient:
    """Async client for search-grounded Gemini text generation.

    Args:
        api_key: Google AI Studio API key.
        model: Model name (e.g. ``"gemini-2.0-flash"``).
        base_url: Base URL of the Generative Language API.
        timeout: Request timeout in seconds.
        temperature: Sampling temperature sent with every request.

    """

    BASE_URL = "https://generativelanguage.googleapis.com"
    DEFAULT_MODEL = "gemini-2.0-flash"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = BASE_URL,
        timeout: float = 60.0,
        temperature: float = 0.2,
    ) -> None:
        """Initialize the Gemini client.

        Args:
            api_key: Google AI Studio API key.
            model: Model name.
            base_url: Base URL of the Generative Language API.
            timeout: Request timeout in seconds.
            temperature: Sampling temperature.

        """
        self._api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._temperature = temperature
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def generate_grounded(self, prompt: str) -> GroundedResponse:
        """Generate an answer to ``prompt`` with Google Search grounding.

        Args:
            prompt: Full user prompt.

        Returns:
            The first candidate's text and its grounding sources.

        Raises:
            ReasoningRateLimitError: When the provider rate-limits the call.
            ReasoningAPIError: For a missing key, transport failures, other
                error responses or a response without candidates.

        """
        if not self._api_key:
            raise ReasoningAPIError(
                msg="Reasoning API key is not configured (set GEMINI_API_KEY)",
                status_code=_HTTP_UNAUTHORIZED,
            )
        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "tools": [{"google_search": {}}],
            "generationConfig": {"temperature": self._temperature},
        }
        payload = await self._post(f"/v1beta/models/{self.model}:generateContent", body)
        return self._parse_response(payload, self.model)

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        """Send a POST request and return the parsed JSON object.

        Args:
            path: Request path relative to base_url.
            body: JSON request body.

        Returns:
            Parsed JSON response.

        Raises:
            ReasoningRateLimitError: On rate-limit responses.
            ReasoningAPIError: On transport failures, other error responses or
                a body that is not JSON.

        """
        url = f"{self.base_url}{path}"
        try:
            response = await self._http_client.request(
                "POST",
                url,
                json=body,
                headers={"x-goog-api-key": self._api_key},
            )
        except httpx.HTTPError as exc:
            raise ReasoningAPIError(msg=f"HTTP request failed: {exc}", status_code=0) from exc

        if response.status_code >= _HTTP_BAD_REQUEST:
            self._handle_error(response)

        try:
            result: Any = response.json()
        except ValueError as exc:
            raise ReasoningAPIError(
                msg=f"Response is not valid JSON: {exc}",
                status_code=response.status_code,
            ) from exc
        if not isinstance(result, dict):
            raise ReasoningAPIError(
                msg=f"Unexpected response payload: {type(result).__name__}",
                status_code=response.status_code,
            )
        return cast("dict[str, Any]", result)

    @staticmethod
    def _handle_error(response: httpx.Response) -> None:
        """Raise the typed error matching an error response.

        Args:
            response: HTTP response with a non-2xx status code.

        Raises:
            ReasoningRateLimitError: For 429, ``RESOURCE_EXHAUSTED`` or quota errors.
            ReasoningAPIError: For every other error response.

        """
        status_text = ""
        try:
            error = response.json().get("error", {})
            msg = str(error.get("message") or f"HTTP {response.status_code}")
            status_text = str(error.get("status") or "")
        except Exception:
            msg = f"HTTP {response.status_code}"

        combined = f"{status_text} {msg}".lower()
        if response.status_code == _HTTP_TOO_MANY_REQUESTS or any(
            marker in combined for marker in _RATE_LIMIT_MARKERS
        ):
            raise ReasoningRateLimitError(msg=msg, status_code=response.status_code)
        raise ReasoningAPIError(msg=msg, status_code=response.status_code)

    @staticmethod
    def _parse_response(payload: dict[str, Any], model: str) -> GroundedResponse:
        """Extract text and grounding sources from a ``generateContent`` payload.

        Args:
            payload: Parsed response body.
            model: Model name to record on the result.

        Returns:
            Typed grounded response.

        Raises:
            ReasoningAPIError: When the payload has no candidates.

        """
        candidates: list[dict[str, Any]] = payload.get("candidates") or []
        if not candidates:
            feedback = payload.get("promptFeedback", {})
            raise ReasoningAPIError(
                msg=f"No candidates returned (feedback: {feedback})",
                status_code=200,
            )
        candidate = candidates[0]
        parts: list[dict[str, Any]] = (candidate.get("content") or {}).get("parts") or []
        text = "".join(str(part.get("text", "")) for part in parts).strip()

        chunks: list[dict[str, Any]] = (
            (candidate.get("groundingMetadata") or {}).get("groundingChunks") or []
        )
        sources: list[GroundingSource] = []
        for chunk in chunks:
            web = chunk.get("web")
            if not web:
                continue
            sources.append(
                GroundingSource(
                    title=str(web.get("title") or "Source"),
                    uri=str(web.get("uri") or ""),
                )
            )
        return GroundedResponse(text=text, sources=tuple(sources), model=model)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http_client.aclose()

    async def __aenter__(self) -> "GeminiClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()
