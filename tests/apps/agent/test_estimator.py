"""Tests for the edge estimator."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from polyquant.apps.agent.estimator import EdgeEstimator, build_prompt, parse_signal
from polyquant.apps.agent.models import MarketSnapshot
from polyquant.clients.reasoning.exceptions import ReasoningAPIError, ReasoningRateLimitError
from polyquant.clients.reasoning.models import GroundedResponse, GroundingSource

_MARKET_ID = "0xmarket0001"
_RATE_LIMITED = ReasoningRateLimitError(msg="RESOURCE_EXHAUSTED", status_code=429)
_INITIAL_DELAY = 3.0
_MAX_ATTEMPTS = 3


def _make_response(text: str, *sources: GroundingSource) -> GroundedResponse:
    """Create a GroundedResponse with the given text and sources."""
    return GroundedResponse(text=text, sources=sources, model="gemini-test")


def _make_snapshot(description: str = "Resolves YES if it rains in London.") -> MarketSnapshot:
    """Create a MarketSnapshot to estimate."""
    return MarketSnapshot(
        condition_id=_MARKET_ID,
        question="Will it rain in London tomorrow?",
        description=description,
        category="Weather",
        yes_token_id="yes",
        no_token_id="no",
        price=Decimal("0.55"),
    )


def _make_estimator(service: MagicMock, sleep: AsyncMock) -> EdgeEstimator:
    """Create an estimator with an injected sleep."""
    return EdgeEstimator(
        service,
        max_attempts=_MAX_ATTEMPTS,
        initial_delay=_INITIAL_DELAY,
        sleep=sleep,
    )


class TestBuildPrompt:
    """Tests for build_prompt."""

    def test_includes_question_and_description(self) -> None:
        """Embed the question and resolution text and ask for JSON."""
        prompt = build_prompt(_make_snapshot())
        assert '"Will it rain in London tomorrow?"' in prompt
        assert "Resolves YES if it rains in London." in prompt
        assert '"impliedProbability"' in prompt

    def test_blank_description(self) -> None:
        """Mark a missing description explicitly."""
        assert "(no description)" in build_prompt(_make_snapshot(description="  "))


class TestParseSignal:
    """Tests for parse_signal."""

    def test_plain_json(self) -> None:
        """Parse a bare JSON object."""
        text = '{"impliedProbability": 0.62, "confidence": 0.8, "reasoning": "Forecast wet."}'
        signal = parse_signal(_MARKET_ID, _make_response(text))
        assert signal is not None
        assert signal.implied_probability == Decimal("0.62")
        assert signal.confidence == Decimal("0.8")
        assert signal.reasoning == "Forecast wet."
        assert signal.market_id == _MARKET_ID

    def test_fenced_json_with_prose(self) -> None:
        """Find the object inside a fenced block surrounded by prose."""
        text = (
            "Here is my analysis.\n```json\n"
            '{"implied_probability": 0.3, "confidence": 0.75, "reasoning": "Dry spell."}\n'
            "```\nHope this helps."
        )
        signal = parse_signal(_MARKET_ID, _make_response(text))
        assert signal is not None
        assert signal.implied_probability == Decimal("0.3")

    def test_percent_values_normalised(self) -> None:
        """Treat values in (1, 100] as percentages."""
        text = '{"probability": 62, "confidence": "85%"}'
        signal = parse_signal(_MARKET_ID, _make_response(text))
        assert signal is not None
        assert signal.implied_probability == Decimal("0.62")
        assert signal.confidence == Decimal("0.85")

    def test_labelled_free_text(self) -> None:
        """Fall back to labelled fields when there is no JSON."""
        text = "PROBABILITY: 62%\nCONFIDENCE: 0.8\nREASONING: Models agree on rain."
        signal = parse_signal(_MARKET_ID, _make_response(text))
        assert signal is not None
        assert signal.implied_probability == Decimal("0.62")
        assert signal.confidence == Decimal("0.8")
        assert signal.reasoning == "Models agree on rain."

    def test_missing_confidence_is_zero(self) -> None:
        """Use zero confidence, never a neutral default."""
        signal = parse_signal(_MARKET_ID, _make_response('{"impliedProbability": 0.7}'))
        assert signal is not None
        assert signal.confidence == Decimal(0)

    def test_sources_copied(self) -> None:
        """Copy grounding sources onto the signal."""
        source = GroundingSource(title="Met Office", uri="https://metoffice.gov.uk")
        signal = parse_signal(_MARKET_ID, _make_response('{"probability": 0.5}', source))
        assert signal is not None
        assert signal.sources[0].title == "Met Office"
        assert signal.sources[0].uri == "https://metoffice.gov.uk"

    @pytest.mark.parametrize(
        "text",
        [
            "I cannot determine this.",
            '{"impliedProbability": "unknown", "confidence": 0.9}',
            '{"impliedProbability": 150}',
            '{"impliedProbability": -0.2}',
            '{"impliedProbability": true}',
            "",
        ],
    )
    def test_no_usable_probability(self, text: str) -> None:
        """Return None rather than defaulting to 0.5."""
        assert parse_signal(_MARKET_ID, _make_response(text)) is None


class TestEdgeEstimator:
    """Tests for EdgeEstimator retry behaviour."""

    @pytest.mark.asyncio
    async def test_returns_signal(self) -> None:
        """Call the service once and parse its answer."""
        service = MagicMock()
        service.generate_grounded = AsyncMock(
            return_value=_make_response('{"impliedProbability": 0.6, "confidence": 0.9}')
        )
        sleep = AsyncMock()

        signal = await _make_estimator(service, sleep).estimate_signal(_make_snapshot())

        assert signal is not None
        assert signal.implied_probability == Decimal("0.6")
        service.generate_grounded.assert_awaited_once()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_rate_limit_with_backoff(self) -> None:
        """Back off 3s then 6s before succeeding on the third attempt."""
        service = MagicMock()
        service.generate_grounded = AsyncMock(
            side_effect=[_RATE_LIMITED, _RATE_LIMITED, _make_response('{"probability": 0.4}')]
        )
        sleep = AsyncMock()

        signal = await _make_estimator(service, sleep).estimate_signal(_make_snapshot())

        assert signal is not None
        assert [c.args[0] for c in sleep.await_args_list] == [3.0, 6.0]

    @pytest.mark.asyncio
    async def test_rate_limit_exhausted_raises(self) -> None:
        """Re-raise after the last attempt without a trailing sleep."""
        service = MagicMock()
        service.generate_grounded = AsyncMock(side_effect=_RATE_LIMITED)
        sleep = AsyncMock()

        with pytest.raises(ReasoningRateLimitError):
            await _make_estimator(service, sleep).estimate_signal(_make_snapshot())

        assert service.generate_grounded.await_count == _MAX_ATTEMPTS
        assert sleep.await_count == _MAX_ATTEMPTS - 1

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self) -> None:
        """Propagate non-rate-limit failures immediately."""
        service = MagicMock()
        service.generate_grounded = AsyncMock(
            side_effect=ReasoningAPIError(msg="bad request", status_code=400)
        )
        sleep = AsyncMock()

        with pytest.raises(ReasoningAPIError, match="bad request"):
            await _make_estimator(service, sleep).estimate_signal(_make_snapshot())

        service.generate_grounded.assert_awaited_once()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unparseable_answer_is_none(self) -> None:
        """Return None when the answer carries no probability."""
        service = MagicMock()
        service.generate_grounded = AsyncMock(return_value=_make_response("No idea."))

        signal = await _make_estimator(service, AsyncMock()).estimate_signal(_make_snapshot())

        assert signal is None
