"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from market_core.config import (
    NATIVE_PRICE_KEY,
    ActionsConfig,
    AppConfig,
    ChainConfig,
    PriceOracleConfig,
    ProtocolConfig,
    PythConfig,
)
from market_core.models import NativeInstrument, TokenInstrument

from .fakes import (
    ACCOUNT,
    NATIVE_MARKET,
    ONE_DOLLAR,
    TOKEN_MARKET,
    USDC,
    make_chain,
)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
        block_time_seconds=15,
        receipt_timeout=5,
        receipt_poll_interval=0,
    )


@pytest.fixture()
def sample_protocol_config() -> ProtocolConfig:
    return ProtocolConfig(
        comptroller="0x" + "33" * 20,
        markets=(TOKEN_MARKET, NATIVE_MARKET),
        native_markets=(NATIVE_MARKET,),
    )


@pytest.fixture()
def sample_app_config(
    sample_chain_config: ChainConfig, sample_protocol_config: ProtocolConfig
) -> AppConfig:
    return AppConfig(
        account=ACCOUNT,
        chain=sample_chain_config,
        protocol=sample_protocol_config,
        price_oracle=PriceOracleConfig(
            provider="pyth",
            pyth=PythConfig(hermes_url="https://hermes.example.com", feeds={}),
        ),
        actions=ActionsConfig(supply_amount=Decimal("1000"), borrow_amount=Decimal("3")),
        icons={"usdc": "icons/usdc.svg", "eth": "icons/eth.svg"},
    )


# ---------------------------------------------------------------------------
# Instrument fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def token_instrument() -> TokenInstrument:
    return TokenInstrument(
        address=TOKEN_MARKET,
        underlying=USDC,
        decimals=6,
        name="USD Coin",
        symbol="USDC",
        price=ONE_DOLLAR,
        supply_principal=1_000_000,
        borrow_principal=500_000,
        exchange_rate=10**18,
        supply_rate_per_block=10**9,
        borrow_rate_per_block=2 * 10**9,
    )


@pytest.fixture()
def native_instrument() -> NativeInstrument:
    return NativeInstrument(
        address=NATIVE_MARKET,
        name="Ethereum ETH",
        symbol="ETH",
        price_key=NATIVE_PRICE_KEY.lower(),
        price=2000 * ONE_DOLLAR,
        supply_principal=10**18,
        borrow_principal=10**17,
        exchange_rate=10**18,
        supply_rate_per_block=10**9,
        borrow_rate_per_block=2 * 10**9,
    )


# ---------------------------------------------------------------------------
# Mocked contract-call layer
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_chain() -> AsyncMock:
    return make_chain()


@pytest.fixture()
def sample_prices() -> dict[str, int]:
    return {USDC.lower(): ONE_DOLLAR, NATIVE_PRICE_KEY.lower(): 2000 * ONE_DOLLAR}


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    account: "0xACCOUNT"
    chain:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
      block_time_seconds: 12
    protocol:
      comptroller: "0x3d9819210A31b4961b30EF54bE2aeD79B9c9Cd3B"
      markets:
        - "0x1111111111111111111111111111111111111111"
        - "0x2222222222222222222222222222222222222222"
      native_markets:
        - "0x2222222222222222222222222222222222222222"
    price_oracle:
      provider: pyth
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds:
          "0xAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA": "feed1"
    actions:
      supply_amount: "250.5"
      borrow_amount: 2
    icons:
      USDC: "icons/usdc.svg"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
