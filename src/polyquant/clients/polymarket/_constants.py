"""Shared constants for the Polymarket client modules."""

from decimal import Decimal

HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404
HTTP_INTERNAL_ERROR = 500

# Cursor value the CLOB returns once the last page of markets has been served
TERMINAL_CURSOR = "LTE="

USDC_DECIMALS = Decimal("1e6")
POLYGON_CHAIN_ID = 137
TICK_SIZE = "0.01"
