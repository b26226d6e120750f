"""Exception hierarchy for Polymarket client errors.

Every failure in the REST, CLOB and wallet layers surfaces as a
``PolymarketAPIError`` so callers handle one type per exchange.
"""


class PolymarketError(Exception):
    """Base exception for all Polymarket client errors."""


class PolymarketAPIError(PolymarketError):
    """Error returned by a Polymarket API, CLOB SDK or Polygon RPC call.

    Args:
        msg: Human-readable description of the error.
        status_code: HTTP status code of the failed call, or ``0`` when the
            failure did not come from an HTTP response.

    """

    def __init__(self, msg: str, status_code: int) -> None:
        """Initialize Polymarket API error.

        Args:
            msg: Human-readable description of the error.
            status_code: HTTP status code, or ``0`` for non-HTTP failures.

        """
        super().__init__(f"[{status_code}] {msg}")
        self.msg = msg
        self.status_code = status_code
