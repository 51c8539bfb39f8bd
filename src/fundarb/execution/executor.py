"""Abstract leg executor interface.

One LegExecutor per venue places a single side of an arbitrage trade. The
gateway depends only on this interface, so a contract- or API-backed
implementation can replace the simulated one without touching the engine.
"""

from abc import ABC, abstractmethod

from fundarb.models import LegOrder, Venue


class LegExecutor(ABC):
    """Abstract base class for per-venue leg executors."""

    venue: Venue

    @abstractmethod
    async def execute_leg(self, order: LegOrder) -> str:
        """Place one leg and return its transaction hash.

        Args:
            order: Venue, symbol, side, collateral, leverage and optional
                stop-loss / take-profit percentages.

        Returns:
            Transaction hash (or venue order id) of the placed leg.

        Raises:
            LegExecutionError: If the venue rejects or fails the leg.
        """
        ...
