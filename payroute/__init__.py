"""PayRoute - payment routing agent."""

from payroute.routing.aggregator import RouteAggregator

__version__ = "0.1.0"
__all__ = ["RouteAggregator", "__version__"]
