"""Custom exceptions for the funding rate arbitrage engine.

Venue and execution exceptions are raised inside adapters and executors and
converted at their boundary (empty batch, Error state, failed leg), so none of
them ever reaches the aggregator or the scheduler.
"""


class ArbEngineError(Exception):
    """Base exception for all engine errors."""


class VenueError(ArbEngineError):
    """Raised when a venue request fails (network, timeout, non-2xx status)."""


class PayloadError(ArbEngineError):
    """Raised when a venue response does not match the expected schema."""


class DiscoveryError(ArbEngineError):
    """Raised when stream market discovery cannot produce a usable map."""


class InvalidTradeRequest(ArbEngineError):
    """Raised when a trade selection or its parameters are not acceptable."""


class LegExecutionError(ArbEngineError):
    """Raised by a leg executor when a single leg cannot be placed."""
