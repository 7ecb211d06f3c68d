"""Error taxonomy for market aggregation and action execution."""
from __future__ import annotations


class MarketCoreError(Exception):
    """Base class for all errors raised by this package."""


class DataUnavailable(MarketCoreError):
    """Price or metadata for a single market could not be obtained."""

    def __init__(self, market: str, reason: str) -> None:
        super().__init__(f"{market}: {reason}")
        self.market = market
        self.reason = reason


class CallRejected(MarketCoreError):
    """An on-chain call reverted or was refused by the signer."""

    def __init__(self, step: str, reason: str) -> None:
        super().__init__(f"{step} rejected: {reason}")
        self.step = step
        self.reason = reason


class RpcError(MarketCoreError):
    """Transport-level JSON-RPC failure after all endpoints were tried."""


class FixedPointError(MarketCoreError, ArithmeticError):
    """A fixed-point conversion could not be performed exactly."""


class PrecisionLoss(FixedPointError):
    """A value has more fractional digits than its decimals allow."""


class NumericOverflow(FixedPointError):
    """A value is negative or does not fit in a uint256."""
