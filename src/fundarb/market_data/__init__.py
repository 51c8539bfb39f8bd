"""Market data layer -- rate aggregation, opportunity detection, and refresh scheduling."""

from fundarb.market_data.aggregator import RateAggregator
from fundarb.market_data.opportunity_engine import OpportunityEngine
from fundarb.market_data.scheduler import Scheduler

__all__ = ["OpportunityEngine", "RateAggregator", "Scheduler"]
