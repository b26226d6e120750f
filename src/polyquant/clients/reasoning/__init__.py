"""Client for the search-grounded reasoning service (Gemini)."""

from polyquant.clients.reasoning.client import GeminiClient
from polyquant.clients.reasoning.exceptions import (
    ReasoningAPIError,
    ReasoningError,
    ReasoningRateLimitError,
)
from polyquant.clients.reasoning.models import GroundedResponse, GroundingSource

__all__ = [
    "GeminiClient",
    "GroundedResponse",
    "GroundingSource",
    "ReasoningAPIError",
    "ReasoningError",
    "ReasoningRateLimitError",
]
