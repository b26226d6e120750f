"""Exception hierarchy for reasoning-service errors.

Rate limiting gets its own subclass because it is the only failure the
edge estimator retries.
"""


class ReasoningError(Exception):
    """Base exception for all reasoning-service client errors."""


class ReasoningAPIError(ReasoningError):
    """Error returned by a reasoning-service call.

    Args:
        msg: Human-readable description of the error.
        status_code: HTTP status code, or ``0`` for transport failures.

    """

    def __init__(self, msg: str, status_code: int) -> None:
        """Initialize reasoning API error.

        Args:
            msg: Human-readable description of the error.
            status_code: HTTP status code, or ``0`` for transport failures.

        """
        super().__init__(f"[{status_code}] {msg}")
        self.msg = msg
        self.status_code = status_code


class ReasoningRateLimitError(ReasoningAPIError):
    """The provider refused the call because of rate limits or exhausted quota."""
