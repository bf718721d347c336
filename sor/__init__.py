"""Smart order routing for token swaps across liquidity pools."""

from sor.orchestrator import TradeOrchestrator
from sor.routing.engine import RoutingEngineAdapter

__version__ = "0.1.0"
__all__ = ["RoutingEngineAdapter", "TradeOrchestrator", "__version__"]
