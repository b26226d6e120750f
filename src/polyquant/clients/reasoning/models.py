"""Typed results returned by the reasoning-service client."""

from dataclasses import dataclass


@dataclass(frozen=True)
class GroundingSource:
    """Web page the model cited while answering.

    Args:
        title: Page title as reported by the provider.
        uri: Link to the page.

    """

    title: str
    uri: str


@dataclass(frozen=True)
class GroundedResponse:
    """Text answer of a search-grounded generation call.

    Args:
        text: Concatenated text parts of the first candidate.
        sources: Grounding sources attached to the first candidate.
        model: Model that produced the answer.

    """

    text: str
    sources: tuple[GroundingSource, ...]
    model: str
