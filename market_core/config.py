"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Sentinel "address" used as the price key of the native asset.
NATIVE_PRICE_KEY = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30
    block_time_seconds: int = 15
    receipt_timeout: int = 300
    receipt_poll_interval: float = 2.0


@dataclass(frozen=True)
class ProtocolConfig:
    comptroller: str = ""
    markets: tuple[str, ...] = ()
    native_markets: tuple[str, ...] = ()
    native_name: str = "Ethereum ETH"
    native_symbol: str = "ETH"
    native_price_key: str = NATIVE_PRICE_KEY


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class ActionsConfig:
    supply_amount: Decimal = Decimal("1000")
    borrow_amount: Decimal = Decimal("3")


@dataclass(frozen=True)
class AppConfig:
    account: str = ""
    chain: ChainConfig = field(default_factory=ChainConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)
    actions: ActionsConfig = field(default_factory=ActionsConfig)
    icons: dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=tuple(raw.get("rpc_endpoints", [])),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        block_time_seconds=int(raw.get("block_time_seconds", 15)),
        receipt_timeout=int(raw.get("receipt_timeout", 300)),
        receipt_poll_interval=float(raw.get("receipt_poll_interval", 2.0)),
    )


def _build_protocol(raw: dict[str, Any]) -> ProtocolConfig:
    return ProtocolConfig(
        comptroller=raw.get("comptroller", ""),
        markets=tuple(raw.get("markets", [])),
        native_markets=tuple(raw.get("native_markets", [])),
        native_name=raw.get("native_name", ProtocolConfig.native_name),
        native_symbol=raw.get("native_symbol", ProtocolConfig.native_symbol),
        native_price_key=raw.get("native_price_key", NATIVE_PRICE_KEY),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "pyth"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds={k.lower(): v for k, v in pyth_raw.get("feeds", {}).items()},
        ),
    )


def _to_decimal(value: Any, name: str) -> Decimal:
    # str() first so YAML floats like 0.1 keep their written form
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount for '{name}': {value!r}") from e


def _build_actions(raw: dict[str, Any]) -> ActionsConfig:
    return ActionsConfig(
        supply_amount=_to_decimal(raw.get("supply_amount", "1000"), "supply_amount"),
        borrow_amount=_to_decimal(raw.get("borrow_amount", "3"), "borrow_amount"),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        account=raw.get("account", "") or "",
        chain=_build_chain(raw.get("chain") or {}),
        protocol=_build_protocol(raw.get("protocol") or {}),
        price_oracle=_build_price_oracle(raw.get("price_oracle") or {}),
        actions=_build_actions(raw.get("actions") or {}),
        icons={k.lower(): v for k, v in (raw.get("icons") or {}).items()},
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.chain.rpc_endpoints:
        raise ValueError("At least one RPC endpoint must be configured")
    if cfg.chain.block_time_seconds <= 0:
        raise ValueError("block_time_seconds must be positive")
    if not cfg.protocol.comptroller:
        raise ValueError("Protocol has no comptroller address")

    markets = {m.lower() for m in cfg.protocol.markets}
    for native in cfg.protocol.native_markets:
        if markets and native.lower() not in markets:
            raise ValueError(
                f"Native market '{native}' is not in the configured market list"
            )

    if cfg.actions.supply_amount <= 0:
        raise ValueError("actions.supply_amount must be positive")
    if cfg.actions.borrow_amount <= 0:
        raise ValueError("actions.borrow_amount must be positive")
