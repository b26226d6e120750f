"""Edge estimator: ask a search-grounded model for a market's probability.

One reasoning-service call per market, retried with exponential backoff
only when the provider rate-limits. The answer is parsed leniently: a
JSON object is preferred, labelled free text (``PROBABILITY: 62%``) is
accepted, and anything without a usable probability yields no signal.
There is never a neutral default.
"""

import asyncio
import json
import logging
import re
from collections.abc import Awaitable, Callable
from decimal import Decimal, InvalidOperation
from typing import Any, TypeAlias, cast

from polyquant.apps.agent.models import MarketSnapshot, Signal, Source
from polyquant.apps.agent.protocols import ReasoningService
from polyquant.clients.reasoning.exceptions import ReasoningRateLimitError
from polyquant.clients.reasoning.models import GroundedResponse
from polyquant.core.models import HUNDRED, ONE, ZERO

logger = logging.getLogger(__name__)

_DEFAULT_MAX_ATTEMPTS = 3
_DEFAULT_INITIAL_DELAY = 3.0

_PROBABILITY_KEYS = ("impliedProbability", "implied_probability", "probability")
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_FLAT_OBJECT_RE = re.compile(r"\{[^{}]*\}", re.DOTALL)
_PROBABILITY_RE = re.compile(
    r"(?:implied\s*)?probability[\"']?\s*[:=]\s*[\"']?(\d+(?:\.\d+)?)\s*(%?)", re.IGNORECASE
)
_CONFIDENCE_RE = re.compile(
    r"confidence[\"']?\s*[:=]\s*[\"']?(\d+(?:\.\d+)?)\s*(%?)", re.IGNORECASE
)
_REASONING_RE = re.compile(r"reasoning\s*[:=]\s*(.+)", re.IGNORECASE | re.DOTALL)

PROMPT_TEMPLATE = """\
Analyze the probability of this prediction market outcome: "{question}".
Description: {description}
Provide a quantitative probability estimate for the YES outcome based on the
latest available news and search data. Be objective and look for contrarian
data points.

Respond with only a JSON object of the form:
{{"impliedProbability": <0.0-1.0>, "confidence": <0.0-1.0>, "reasoning": "<one paragraph>"}}
"""

Sleeper: TypeAlias = Callable[[float], Awaitable[None]]


def build_prompt(market: MarketSnapshot) -> str:
    """Render the estimation prompt for ``market``."""
    description = market.description.strip() or "(no description)"
    return PROMPT_TEMPLATE.format(question=market.question, description=description)


def _normalise(value: Any, *, percent: bool = False) -> Decimal | None:
    """Convert a raw number to a probability in [0, 1].

    Values marked as percentages, or in (1, 100], are divided by 100.

    Returns:
        The probability, or ``None`` for non-numeric or out-of-range input.

    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip().rstrip("%"))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    if percent or (ONE < number <= HUNDRED):
        number = number / HUNDRED
    if not (ZERO <= number <= ONE):
        return None
    return number


def _json_candidates(text: str) -> list[str]:
    """Return substrings of ``text`` that may hold the answer object."""
    candidates: list[str] = [m.group(1) for m in _FENCE_RE.finditer(text)]
    whole = _OBJECT_RE.search(text)
    if whole:
        candidates.append(whole.group(0))
    candidates.extend(m.group(0) for m in _FLAT_OBJECT_RE.finditer(text))
    return candidates


def _parse_json(text: str) -> tuple[Decimal, Decimal | None, str] | None:
    for candidate in _json_candidates(text):
        try:
            data: Any = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if not isinstance(data, dict):
            continue
        payload = cast("dict[str, Any]", data)
        raw_prob = next((payload[k] for k in _PROBABILITY_KEYS if k in payload), None)
        probability = _normalise(raw_prob)
        if probability is None:
            continue
        confidence = _normalise(payload.get("confidence"))
        reasoning = str(payload.get("reasoning") or "").strip()
        return probability, confidence, reasoning
    return None


def _parse_labelled(text: str) -> tuple[Decimal, Decimal | None, str] | None:
    prob_match = _PROBABILITY_RE.search(text)
    if prob_match is None:
        return None
    probability = _normalise(prob_match.group(1), percent=bool(prob_match.group(2)))
    if probability is None:
        return None
    confidence = None
    conf_match = _CONFIDENCE_RE.search(text)
    if conf_match is not None:
        confidence = _normalise(conf_match.group(1), percent=bool(conf_match.group(2)))
    reasoning_match = _REASONING_RE.search(text)
    reasoning = reasoning_match.group(1).strip() if reasoning_match else ""
    return probability, confidence, reasoning


def parse_signal(market_id: str, response: GroundedResponse) -> Signal | None:
    """Parse a model answer into a ``Signal``.

    Try a JSON object first, then labelled free-text fields. A missing or
    unusable confidence becomes zero so the signal cannot pass a
    confidence gate.

    Args:
        market_id: Condition id the answer is about.
        response: Model answer with grounding sources.

    Returns:
        The signal, or ``None`` when no probability in [0, 1] can be found.

    """
    parsed = _parse_json(response.text) or _parse_labelled(response.text)
    if parsed is None:
        return None
    probability, confidence, reasoning = parsed
    return Signal(
        market_id=market_id,
        implied_probability=probability,
        confidence=confidence if confidence is not None else ZERO,
        reasoning=reasoning,
        sources=tuple(Source(title=s.title, uri=s.uri) for s in response.sources),
    )


class EdgeEstimator:
    """Turn markets into probability signals via a reasoning service.

    Args:
        service: Search-grounded model client.
        max_attempts: Total attempts when the provider rate-limits.
        initial_delay: Seconds before the first retry; doubles on each retry.
        sleep: Awaitable sleep, injectable for tests.

    """

    def __init__(
        self,
        service: ReasoningService,
        *,
        max_attempts: int = _DEFAULT_MAX_ATTEMPTS,
        initial_delay: float = _DEFAULT_INITIAL_DELAY,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Initialize the estimator."""
        self._service = service
        self._max_attempts = max(1, max_attempts)
        self._initial_delay = initial_delay
        self._sleep = sleep

    async def estimate_signal(self, market: MarketSnapshot) -> Signal | None:
        """Estimate the probability of the positive outcome of ``market``.

        Args:
            market: Market to estimate.

        Returns:
            The parsed signal, or ``None`` when the answer has no usable
            probability.

        Raises:
            ReasoningRateLimitError: When every attempt was rate-limited.
            ReasoningAPIError: For any other provider failure, without retry.

        """
        response = await self._generate_with_retry(build_prompt(market))
        signal = parse_signal(market.condition_id, response)
        if signal is None:
            logger.info(
                "No usable probability for %s in reply: %.120s",
                market.short_id,
                response.text,
            )
        return signal

    async def _generate_with_retry(self, prompt: str) -> GroundedResponse:
        for attempt in range(self._max_attempts):
            try:
                return await self._service.generate_grounded(prompt)
            except ReasoningRateLimitError:
                if attempt == self._max_attempts - 1:
                    raise
                delay = self._initial_delay * (2**attempt)
                logger.warning(
                    "Reasoning service rate limited; retrying in %.1fs (attempt %d/%d)",
                    delay,
                    attempt + 1,
                    self._max_attempts,
                )
                await self._sleep(delay)
        msg = "unreachable: retry loop exited without returning"
        raise AssertionError(msg)
