"""Tests for wrap/unwrap detection and quoting."""

from decimal import Decimal

import pytest

from sor.config import MAINNET, NetworkConfig
from sor.errors import ExternalQueryFailed
from sor.models.trade import WrapKind
from sor.wrapping import StaticWrapRateSource, WrapAdapter, get_wrap_kind, wrapper_for
from tests.conftest import MockWrapRateSource
from tests.helpers import DAI, ETH, STETH, USDC, WETH, WSTETH


class TestGetWrapKind:
    """Pair classification."""

    @pytest.mark.parametrize(
        "token_in,token_out,expected",
        [
            (ETH, WETH, WrapKind.WRAP),
            (WETH, ETH, WrapKind.UNWRAP),
            (STETH, WSTETH, WrapKind.WRAP),
            (WSTETH, STETH, WrapKind.UNWRAP),
            (WETH, USDC, WrapKind.NON_WRAP),
            (ETH, USDC, WrapKind.NON_WRAP),
            (STETH, WETH, WrapKind.NON_WRAP),
            (WSTETH, WETH, WrapKind.NON_WRAP),
            ("", WETH, WrapKind.NON_WRAP),
        ],
    )
    def test_classification(self, token_in, token_out, expected):
        assert get_wrap_kind(token_in, token_out, MAINNET) is expected

    def test_case_insensitive(self):
        assert get_wrap_kind(ETH, "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2") is WrapKind.WRAP

    def test_network_without_staking_tokens(self):
        network = NetworkConfig(key="testnet", chain_id=5)
        assert get_wrap_kind(STETH, WSTETH, network) is WrapKind.NON_WRAP


class TestWrapperFor:
    def test_wrap_uses_output_token(self):
        assert wrapper_for(WrapKind.WRAP, ETH, WETH) == WETH

    def test_unwrap_uses_input_token(self):
        assert wrapper_for(WrapKind.UNWRAP, WSTETH, STETH) == WSTETH

    def test_non_wrap_raises(self):
        with pytest.raises(ValueError):
            wrapper_for(WrapKind.NON_WRAP, WETH, USDC)


class TestWrapAdapter:
    """Tests for WrapAdapter quoting."""

    @pytest.mark.asyncio
    async def test_wrapped_native_is_one_to_one(self, wrap_adapter, wrap_rates):
        assert await wrap_adapter.quote_wrap(WETH, 10**18) == 10**18
        assert await wrap_adapter.quote_unwrap(WETH, 7) == 7
        assert wrap_rates.calls == []

    @pytest.mark.asyncio
    async def test_wrap_uses_rate_source(self, wrap_adapter):
        # 1.25 stETH per wstETH
        assert await wrap_adapter.quote_wrap(WSTETH, 10**18) == 8 * 10**17
        assert await wrap_adapter.quote_unwrap(WSTETH, 10**18) == 125 * 10**16

    @pytest.mark.asyncio
    async def test_quote_exact_out_uses_inverse(self, wrap_adapter, wrap_rates):
        """Editing the wstETH output of a wrap asks how much stETH it takes."""
        required = await wrap_adapter.quote(WrapKind.WRAP, WSTETH, 10**18, exact_in=False)
        assert required == 125 * 10**16
        assert wrap_rates.calls[-1][1] is WrapKind.UNWRAP

    @pytest.mark.asyncio
    async def test_non_wrap_raises(self, wrap_adapter):
        with pytest.raises(ValueError):
            await wrap_adapter.get_wrap_output(WETH, WrapKind.NON_WRAP, 1)

    @pytest.mark.asyncio
    async def test_rate_failure_raises_external_query_failed(self):
        adapter = WrapAdapter(MockWrapRateSource(error=RuntimeError("rpc down")))
        with pytest.raises(ExternalQueryFailed, match="rpc down"):
            await adapter.quote_wrap(WSTETH, 10**18)

    @pytest.mark.asyncio
    async def test_failure_is_not_retried(self):
        rates = MockWrapRateSource(error=RuntimeError("rpc down"))
        adapter = WrapAdapter(rates)
        with pytest.raises(ExternalQueryFailed):
            await adapter.quote_unwrap(WSTETH, 10**18)
        assert len(rates.calls) == 1

    def test_is_wrapped_collateral(self, wrap_adapter):
        assert wrap_adapter.is_wrapped_collateral(WSTETH)
        assert not wrap_adapter.is_wrapped_collateral(STETH)
        assert not wrap_adapter.is_wrapped_collateral(DAI)

    @pytest.mark.asyncio
    async def test_to_canonical(self, wrap_adapter):
        assert await wrap_adapter.to_canonical(WSTETH, 10**18) == 125 * 10**16
        assert await wrap_adapter.to_canonical(USDC, 1_000_000) == 1_000_000


class TestStaticWrapRateSource:
    @pytest.mark.asyncio
    async def test_rates(self):
        source = StaticWrapRateSource({WSTETH: Decimal("1.1")})
        assert await source.get_wrap_output(WSTETH, WrapKind.UNWRAP, 10**18) == 11 * 10**17
        assert await source.get_wrap_output(WSTETH, WrapKind.WRAP, 11 * 10**17) == 10**18

    @pytest.mark.asyncio
    async def test_unknown_wrapper_raises(self):
        with pytest.raises(ExternalQueryFailed):
            await StaticWrapRateSource().get_wrap_output(WSTETH, WrapKind.WRAP, 1)
