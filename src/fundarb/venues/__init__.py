"""Venue adapters -- one poll or stream adapter per funding rate source."""

from fundarb.venues.aster import AsterAdapter
from fundarb.venues.base import PollVenueAdapter, StreamVenueAdapter, normalize_symbol
from fundarb.venues.based import BasedAdapter
from fundarb.venues.lighter import LighterStream, MarketDiscoveryMap
from fundarb.venues.variational import VariationalAdapter

__all__ = [
    "AsterAdapter",
    "BasedAdapter",
    "LighterStream",
    "MarketDiscoveryMap",
    "PollVenueAdapter",
    "StreamVenueAdapter",
    "VariationalAdapter",
    "normalize_symbol",
]
