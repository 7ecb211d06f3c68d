"""Data models: all frozen (immutable)."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Union

from .fixed_point import NATIVE_DECIMALS


@dataclass(frozen=True)
class TokenInstrument:
    """Market backed by an ERC20 underlying (needs an approval before supply)."""

    address: str
    underlying: str
    decimals: int
    name: str
    symbol: str
    price: int
    supply_principal: int
    borrow_principal: int
    exchange_rate: int
    supply_rate_per_block: int
    borrow_rate_per_block: int

    @property
    def price_key(self) -> str:
        return self.underlying.lower()


@dataclass(frozen=True)
class NativeInstrument:
    """Market backed by the chain's native asset (no token, 18 decimals)."""

    address: str
    name: str
    symbol: str
    price_key: str
    price: int
    supply_principal: int
    borrow_principal: int
    exchange_rate: int
    supply_rate_per_block: int
    borrow_rate_per_block: int

    @property
    def decimals(self) -> int:
        return NATIVE_DECIMALS


Instrument = Union[TokenInstrument, NativeInstrument]


@dataclass(frozen=True)
class MarketMetric:
    """UI-ready projection of an instrument."""

    instrument: Instrument
    name: str
    symbol: str
    decimals: int
    icon: str | None
    total_supply_usd: Decimal
    total_borrow_usd: Decimal
    supply_apy: Decimal
    borrow_apy: Decimal


@dataclass(frozen=True)
class MarketError:
    """A market whose row could not be built during an aggregation pass."""

    market: str
    reason: str


@dataclass(frozen=True)
class MarketSnapshot:
    """Result of one aggregation pass."""

    metrics: tuple[MarketMetric, ...] = ()
    errors: tuple[MarketError, ...] = ()
    total_supply_usd: Decimal = Decimal(0)
    total_borrow_usd: Decimal = Decimal(0)


class ActionKind(str, enum.Enum):
    SUPPLY = "supply"
    BORROW = "borrow"


@dataclass(frozen=True)
class ActionRequest:
    kind: ActionKind
    instrument: Instrument
    account: str
    amount: Decimal


@dataclass(frozen=True)
class ActionOutcome:
    """End-to-end result of an action; callers use it as a refresh trigger."""

    success: bool
    receipt: dict[str, Any] | None = None
    reason: str | None = None
