"""Unit tests for InstrumentReader: variant selection and data availability."""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from market_core.config import NATIVE_PRICE_KEY, ProtocolConfig
from market_core.errors import DataUnavailable, RpcError
from market_core.models import NativeInstrument, TokenInstrument
from market_core.services.instruments import InstrumentReader

from ..fakes import NATIVE_MARKET, ONE_DOLLAR, TOKEN_MARKET, USDC


@pytest.fixture()
def reader(mock_chain: AsyncMock, sample_protocol_config: ProtocolConfig) -> InstrumentReader:
    return InstrumentReader(mock_chain, sample_protocol_config)


class TestReadToken:
    @pytest.mark.asyncio
    async def test_builds_token_instrument(
        self, reader: InstrumentReader, sample_prices: dict[str, int]
    ) -> None:
        inst = await reader.read(TOKEN_MARKET, sample_prices)

        assert isinstance(inst, TokenInstrument)
        assert inst.underlying == USDC
        assert inst.decimals == 6
        assert inst.symbol == "USDC"
        assert inst.name == "USD Coin"
        assert inst.price == ONE_DOLLAR
        assert inst.supply_principal == 1_000_000
        assert inst.borrow_principal == 500_000
        assert inst.exchange_rate == 10**18

    @pytest.mark.asyncio
    async def test_missing_price_raises(self, reader: InstrumentReader) -> None:
        with pytest.raises(DataUnavailable) as exc:
            await reader.read(TOKEN_MARKET, {})
        assert exc.value.market == TOKEN_MARKET
        assert "no price" in exc.value.reason

    @pytest.mark.asyncio
    async def test_chain_failure_becomes_data_unavailable(
        self, reader: InstrumentReader, mock_chain: AsyncMock, sample_prices: dict[str, int]
    ) -> None:
        mock_chain.total_supply.side_effect = RpcError("All RPC endpoints failed")

        with pytest.raises(DataUnavailable, match="chain read failed"):
            await reader.read(TOKEN_MARKET, sample_prices)


class TestReadNative:
    @pytest.mark.asyncio
    async def test_builds_native_instrument_without_probe(
        self, reader: InstrumentReader, mock_chain: AsyncMock, sample_prices: dict[str, int]
    ) -> None:
        inst = await reader.read(NATIVE_MARKET, sample_prices)

        assert isinstance(inst, NativeInstrument)
        assert inst.decimals == 18
        assert inst.symbol == "ETH"
        assert inst.name == "Ethereum ETH"
        assert inst.price == 2000 * ONE_DOLLAR
        mock_chain.underlying.assert_not_called()
        mock_chain.erc20_decimals.assert_not_called()

    @pytest.mark.asyncio
    async def test_native_ignores_underlying_probe_outcome(
        self, reader: InstrumentReader, mock_chain: AsyncMock, sample_prices: dict[str, int]
    ) -> None:
        # Even a chain that would answer underlying() cannot change the variant
        mock_chain.underlying.side_effect = None
        mock_chain.underlying.return_value = USDC

        inst = await reader.read(NATIVE_MARKET, sample_prices)

        assert isinstance(inst, NativeInstrument)
        assert inst.decimals == 18

    def test_only_configured_markets_are_native(self, reader: InstrumentReader) -> None:
        assert reader.is_native(NATIVE_MARKET)
        assert not reader.is_native(TOKEN_MARKET)

    @pytest.mark.asyncio
    async def test_missing_native_price_raises(self, reader: InstrumentReader) -> None:
        with pytest.raises(DataUnavailable):
            await reader.read(NATIVE_MARKET, {USDC.lower(): ONE_DOLLAR})

    @pytest.mark.asyncio
    async def test_custom_native_display(self, mock_chain: AsyncMock) -> None:
        config = ProtocolConfig(
            comptroller="0x" + "33" * 20,
            native_markets=(NATIVE_MARKET,),
            native_name="Avalanche",
            native_symbol="AVAX",
        )
        reader = InstrumentReader(mock_chain, config)

        inst = await reader.read(NATIVE_MARKET, {NATIVE_PRICE_KEY.lower(): ONE_DOLLAR})

        assert inst.symbol == "AVAX"
        assert inst.name == "Avalanche"
