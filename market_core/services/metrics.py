"""Market metrics aggregation: per-market USD totals and APYs."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence

from ..errors import DataUnavailable
from ..fixed_point import (
    annualize,
    borrow_usd_mantissa,
    supply_usd_mantissa,
    usd,
)
from ..models import Instrument, MarketError, MarketMetric, MarketSnapshot
from .instruments import InstrumentReader

logger = logging.getLogger(__name__)


class MetricsAggregator:
    """Stateless aggregator: every call re-reads live on-chain data."""

    def __init__(
        self,
        reader: InstrumentReader,
        blocks_per_year: int,
        icons: Mapping[str, str] | None = None,
    ) -> None:
        self._reader = reader
        self._blocks_per_year = blocks_per_year
        self._icons = {k.lower(): v for k, v in (icons or {}).items()}

    @staticmethod
    def usd_mantissas(instrument: Instrument) -> tuple[int, int]:
        """Supply and borrow USD values of an instrument as 1e18 mantissas."""
        supply = supply_usd_mantissa(
            instrument.supply_principal,
            instrument.exchange_rate,
            instrument.decimals,
            instrument.price,
        )
        borrow = borrow_usd_mantissa(
            instrument.borrow_principal, instrument.decimals, instrument.price
        )
        return supply, borrow

    def build_metric(self, instrument: Instrument) -> MarketMetric:
        """Project an Instrument into its UI-ready metric row."""
        return self._metric(instrument, *self.usd_mantissas(instrument))

    def _metric(self, instrument: Instrument, supply: int, borrow: int) -> MarketMetric:
        return MarketMetric(
            instrument=instrument,
            name=instrument.name,
            symbol=instrument.symbol,
            decimals=instrument.decimals,
            icon=self._icons.get(instrument.symbol.lower()),
            total_supply_usd=usd(supply),
            total_borrow_usd=usd(borrow),
            supply_apy=annualize(instrument.supply_rate_per_block, self._blocks_per_year),
            borrow_apy=annualize(instrument.borrow_rate_per_block, self._blocks_per_year),
        )

    async def _row(
        self, market: str, prices: Mapping[str, int]
    ) -> tuple[MarketMetric | None, MarketError | None, int, int]:
        try:
            instrument = await self._reader.read(market, prices)
        except DataUnavailable as e:
            logger.warning("Skipping market %s: %s", market, e.reason)
            return None, MarketError(market=market, reason=e.reason), 0, 0

        supply, borrow = self.usd_mantissas(instrument)
        return self._metric(instrument, supply, borrow), None, supply, borrow

    async def aggregate(
        self, markets: Sequence[str], prices: Mapping[str, int]
    ) -> MarketSnapshot:
        """Build metrics for all markets concurrently and reduce the totals.

        Metrics keep the input order. Markets with missing data are reported
        in ``errors`` and left out of the totals.
        """
        rows = await asyncio.gather(*(self._row(m, prices) for m in markets))

        metrics = tuple(metric for metric, _, _, _ in rows if metric is not None)
        errors = tuple(error for _, error, _, _ in rows if error is not None)
        # Sum integer mantissas so the totals do not depend on market order
        total_supply = sum(supply for _, _, supply, _ in rows)
        total_borrow = sum(borrow for _, _, _, borrow in rows)

        logger.info(
            "Aggregated %d markets (%d unavailable): supply $%s, borrow $%s",
            len(metrics),
            len(errors),
            usd(total_supply),
            usd(total_borrow),
        )
        return MarketSnapshot(
            metrics=metrics,
            errors=errors,
            total_supply_usd=usd(total_supply),
            total_borrow_usd=usd(total_borrow),
        )
