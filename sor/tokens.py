"""In-memory token metadata service."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Sequence

import structlog

from sor.errors import ExternalQueryFailed
from sor.models.tokens import Token
from sor.models.types import normalize_address

logger = structlog.get_logger()

TokenResolver = Callable[[list[str]], Awaitable[Iterable[Token]]]


class TokenRegistry:
    """Token metadata keyed by lowercase address.

    Args:
        tokens: Initially known tokens
        resolver: Looks up metadata for unknown addresses on injection
    """

    def __init__(
        self,
        tokens: Iterable[Token] = (),
        resolver: TokenResolver | None = None,
    ) -> None:
        self._tokens: dict[str, Token] = {}
        self._resolver = resolver
        for token in tokens:
            self.add(token)

    def __len__(self) -> int:
        return len(self._tokens)

    def add(self, token: Token) -> None:
        self._tokens[token.address] = token

    def get_token(self, address: str) -> Token | None:
        if not address:
            return None
        return self._tokens.get(normalize_address(address))

    async def inject_tokens(self, addresses: Sequence[str]) -> None:
        """Resolve and register metadata for addresses not yet known.

        Raises:
            ExternalQueryFailed: If the resolver fails
        """
        unknown = [normalize_address(a) for a in addresses if a and self.get_token(a) is None]
        if not unknown:
            return
        if self._resolver is None:
            logger.warning("unknown_tokens_unresolved", tokens=unknown)
            return

        try:
            resolved = list(await self._resolver(unknown))
        except Exception as err:
            raise ExternalQueryFailed(f"Token metadata lookup failed: {err}") from err

        for token in resolved:
            self.add(token)
        logger.info("tokens_injected", requested=len(unknown), resolved=len(resolved))
