"""Error taxonomy for smart order routing.

"No route" and "stale result" are deliberately absent: the first is a
regular ``RouteResult`` with ``has_route=False`` and the second is a silent
generation mismatch inside the orchestrator.
"""


class SorError(Exception):
    """Base error for smart order routing operations."""

    pass


class InvalidAmount(SorError, ValueError):
    """Amount is not a non-negative decimal representable at the token's precision."""

    pass


class ExternalQueryFailed(SorError):
    """A read query against an external collaborator failed.

    Covers pool fetches, wrap-rate queries, price lookups and batch
    simulations. Never retried automatically.
    """

    pass


class RoutingEngineError(ExternalQueryFailed):
    """Routing engine rejected its input or failed internally."""

    pass


class ExecutionFailed(SorError):
    """Transaction submission was rejected, declined or reverted."""

    pass
