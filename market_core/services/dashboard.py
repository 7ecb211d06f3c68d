"""Dashboard shell — wires config to the aggregator and orchestrator."""
from __future__ import annotations

import logging
from decimal import Decimal

from ..chains.evm import EvmClient
from ..config import AppConfig
from ..fixed_point import blocks_per_year
from ..interfaces.chain import LendingChain
from ..interfaces.price_oracle import PriceOracle
from ..models import (
    ActionKind,
    ActionOutcome,
    ActionRequest,
    Instrument,
    MarketSnapshot,
)
from ..oracles import PythOracle
from ..protocols.compound import CompoundMarkets
from .actions import ActionOrchestrator
from .instruments import InstrumentReader
from .metrics import MetricsAggregator

logger = logging.getLogger(__name__)


class Dashboard:
    """Holds the latest snapshot and refreshes it after every action outcome."""

    def __init__(
        self,
        config: AppConfig,
        chain: LendingChain | None = None,
        oracle: PriceOracle | None = None,
    ) -> None:
        self._config = config
        self._chain: LendingChain = chain or CompoundMarkets(
            EvmClient(config.chain), config.protocol
        )
        self._oracle: PriceOracle = oracle or PythOracle(config.price_oracle.pyth)
        self._aggregator = MetricsAggregator(
            InstrumentReader(self._chain, config.protocol),
            blocks_per_year(config.chain.block_time_seconds),
            config.icons,
        )
        self._orchestrator = ActionOrchestrator(self._chain)
        self.snapshot: MarketSnapshot | None = None
        self.last_outcome: ActionOutcome | None = None

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    async def _markets(self) -> list[str]:
        if self._config.protocol.markets:
            return list(self._config.protocol.markets)
        markets = await self._chain.all_markets()
        logger.info("Discovered %d markets from the comptroller", len(markets))
        return markets

    async def refresh(self) -> MarketSnapshot:
        """Re-read every market and replace the current snapshot."""
        markets = await self._markets()
        prices = await self._oracle.fetch_prices()
        self.snapshot = await self._aggregator.aggregate(markets, prices)
        return self.snapshot

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _instrument(self, market: str) -> Instrument:
        snapshot = self.snapshot or await self.refresh()
        for metric in snapshot.metrics:
            if metric.instrument.address.lower() == market.lower():
                return metric.instrument
        raise KeyError(f"Market {market} is not available")

    async def _act(
        self, kind: ActionKind, market: str, amount: Decimal | None
    ) -> ActionOutcome:
        if not self._config.account:
            raise ValueError("No account configured")

        if amount is None:
            amount = (
                self._config.actions.supply_amount
                if kind is ActionKind.SUPPLY
                else self._config.actions.borrow_amount
            )

        request = ActionRequest(
            kind=kind,
            instrument=await self._instrument(market),
            account=self._config.account,
            amount=amount,
        )
        outcome = await self._orchestrator.execute(request)

        # Any new outcome means on-chain state may have moved
        self.last_outcome = outcome
        await self.refresh()
        return outcome

    async def supply(self, market: str, amount: Decimal | None = None) -> ActionOutcome:
        return await self._act(ActionKind.SUPPLY, market, amount)

    async def borrow(self, market: str, amount: Decimal | None = None) -> ActionOutcome:
        return await self._act(ActionKind.BORROW, market, amount)

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    @staticmethod
    def format_snapshot(snapshot: MarketSnapshot) -> str:
        """Render the market overview as plain text."""
        lines = [
            "Market Overview",
            f"  Total Supply: ${snapshot.total_supply_usd:,.2f}",
            f"  Total Borrow: ${snapshot.total_borrow_usd:,.2f}",
            "",
            "All markets",
        ]
        for m in snapshot.metrics:
            lines.append(
                f"  {m.symbol:<8} {m.name:<24} "
                f"supply ${m.total_supply_usd:,.2f} @ {m.supply_apy:.2f}%  "
                f"borrow ${m.total_borrow_usd:,.2f} @ {m.borrow_apy:.2f}%  "
                f"[{m.instrument.address}]"
            )
        if not snapshot.metrics:
            lines.append("  No markets available.")
        for e in snapshot.errors:
            lines.append(f"  ! {e.market}: {e.reason}")
        return "\n".join(lines)
