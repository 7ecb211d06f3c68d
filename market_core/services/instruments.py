"""Builds Instrument values from live on-chain reads."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from ..config import ProtocolConfig
from ..errors import CallRejected, DataUnavailable, RpcError
from ..interfaces.chain import LendingChain
from ..models import Instrument, NativeInstrument, TokenInstrument

logger = logging.getLogger(__name__)


class InstrumentReader:
    """Read one market's state and pick its variant at construction time.

    Markets listed in ``native_markets`` become ``NativeInstrument`` without
    probing ``underlying()``; every other market is token-backed.
    """

    def __init__(self, chain: LendingChain, config: ProtocolConfig) -> None:
        self._chain = chain
        self._config = config
        self._native = {m.lower() for m in config.native_markets}

    def is_native(self, market: str) -> bool:
        return market.lower() in self._native

    async def read(self, market: str, prices: Mapping[str, int]) -> Instrument:
        """Fetch a fresh Instrument for ``market``.

        Raises:
            DataUnavailable: a chain read failed or no price is known.
        """
        try:
            if self.is_native(market):
                return await self._read_native(market, prices)
            return await self._read_token(market, prices)
        except (CallRejected, RpcError) as e:
            raise DataUnavailable(market, f"chain read failed: {e}") from e

    async def _market_state(self, market: str) -> tuple[int, int, int, int, int]:
        supply, exchange_rate, borrows, supply_rate, borrow_rate = await asyncio.gather(
            self._chain.total_supply(market),
            self._chain.exchange_rate_stored(market),
            self._chain.total_borrows(market),
            self._chain.supply_rate_per_block(market),
            self._chain.borrow_rate_per_block(market),
        )
        return supply, exchange_rate, borrows, supply_rate, borrow_rate

    async def _token_meta(self, market: str) -> tuple[str, int, str, str]:
        underlying = await self._chain.underlying(market)
        decimals, name, symbol = await asyncio.gather(
            self._chain.erc20_decimals(underlying),
            self._chain.erc20_name(underlying),
            self._chain.erc20_symbol(underlying),
        )
        return underlying, decimals, name, symbol

    @staticmethod
    def _price(market: str, key: str, prices: Mapping[str, int]) -> int:
        price = prices.get(key.lower())
        if price is None:
            raise DataUnavailable(market, f"no price for underlying {key}")
        return price

    async def _read_native(self, market: str, prices: Mapping[str, int]) -> NativeInstrument:
        key = self._config.native_price_key
        price = self._price(market, key, prices)
        supply, exchange_rate, borrows, supply_rate, borrow_rate = (
            await self._market_state(market)
        )
        return NativeInstrument(
            address=market,
            name=self._config.native_name,
            symbol=self._config.native_symbol,
            price_key=key.lower(),
            price=price,
            supply_principal=supply,
            borrow_principal=borrows,
            exchange_rate=exchange_rate,
            supply_rate_per_block=supply_rate,
            borrow_rate_per_block=borrow_rate,
        )

    async def _read_token(self, market: str, prices: Mapping[str, int]) -> TokenInstrument:
        meta, state = await asyncio.gather(
            self._token_meta(market), self._market_state(market)
        )
        underlying, decimals, name, symbol = meta
        supply, exchange_rate, borrows, supply_rate, borrow_rate = state
        price = self._price(market, underlying, prices)
        logger.debug("Read market %s (%s, %d decimals)", market, symbol, decimals)
        return TokenInstrument(
            address=market,
            underlying=underlying,
            decimals=decimals,
            name=name,
            symbol=symbol,
            price=price,
            supply_principal=supply,
            borrow_principal=borrows,
            exchange_rate=exchange_rate,
            supply_rate_per_block=supply_rate,
            borrow_rate_per_block=borrow_rate,
        )
