"""Unit tests for data models."""
from __future__ import annotations

from decimal import Decimal

import pytest

from market_core.models import (
    ActionKind,
    ActionOutcome,
    MarketSnapshot,
    NativeInstrument,
    TokenInstrument,
)


class TestTokenInstrument:
    def test_price_key_is_lowercased_underlying(
        self, token_instrument: TokenInstrument
    ) -> None:
        assert token_instrument.price_key == token_instrument.underlying.lower()

    def test_frozen(self, token_instrument: TokenInstrument) -> None:
        with pytest.raises(AttributeError):
            token_instrument.supply_principal = 0  # type: ignore[misc]


class TestNativeInstrument:
    def test_decimals_fixed_at_18(self, native_instrument: NativeInstrument) -> None:
        assert native_instrument.decimals == 18

    def test_has_no_underlying(self, native_instrument: NativeInstrument) -> None:
        assert not hasattr(native_instrument, "underlying")

    def test_frozen(self, native_instrument: NativeInstrument) -> None:
        with pytest.raises(AttributeError):
            native_instrument.price = 1  # type: ignore[misc]


class TestMarketSnapshot:
    def test_defaults(self) -> None:
        s = MarketSnapshot()
        assert s.metrics == ()
        assert s.errors == ()
        assert s.total_supply_usd == Decimal(0)
        assert s.total_borrow_usd == Decimal(0)


class TestActionModels:
    def test_action_kind_values(self) -> None:
        assert ActionKind("supply") is ActionKind.SUPPLY
        assert ActionKind("borrow") is ActionKind.BORROW

    def test_outcome_defaults(self) -> None:
        o = ActionOutcome(success=False)
        assert o.receipt is None
        assert o.reason is None
