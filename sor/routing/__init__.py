"""Route finding: the engine adapter and the reference single-hop finder."""

from sor.routing.engine import RoutingEngineAdapter
from sor.routing.single_hop import SingleHopRouteFinder

__all__ = ["RoutingEngineAdapter", "SingleHopRouteFinder"]
