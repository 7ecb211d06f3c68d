"""Pure fixed-point conversion functions for market data (no I/O).

Raw on-chain values are plain ``int``. Conversions to ``Decimal`` only happen
at the very end (USD totals and APY percentages).

Scales:
    exchange rates and per-block rates: 1e18 mantissa
    underlying prices:                  1e18 USD per whole underlying unit
    USD mantissas:                      1e18
"""
from __future__ import annotations

from decimal import Context, Decimal, Overflow

from .errors import NumericOverflow, PrecisionLoss

EXP_SCALE = 10**18
PRICE_SCALE = 10**18
USD_DECIMALS = 18
NATIVE_DECIMALS = 18
MAX_UINT256 = 2**256 - 1

SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# Wide enough for any uint256 (78 digits) without rounding.
_EXACT = Context(prec=80)
# Working precision for the compounding power.
_RATE = Context(prec=60)


def _check_raw(value: int, name: str) -> int:
    if value < 0:
        raise NumericOverflow(f"{name} must be non-negative, got {value}")
    if value > MAX_UINT256:
        raise NumericOverflow(f"{name} exceeds uint256: {value}")
    return value


def blocks_per_year(block_time_seconds: int) -> int:
    """Number of blocks produced in a year at the given average block time."""
    if block_time_seconds <= 0:
        raise ValueError("block_time_seconds must be positive")
    return SECONDS_PER_YEAR // block_time_seconds


def parse_units(amount: Decimal | str | int, decimals: int) -> int:
    """Convert a human-readable amount into raw token units.

    Raises:
        PrecisionLoss: ``amount`` has more fractional digits than ``decimals``.
        NumericOverflow: ``amount`` is negative, not finite, or above uint256.
    """
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    if not value.is_finite():
        raise NumericOverflow(f"Amount is not finite: {amount}")
    if value < 0:
        raise NumericOverflow(f"Amount must be non-negative, got {amount}")

    scaled = value.scaleb(decimals, context=_EXACT)
    if scaled != scaled.to_integral_value(context=_EXACT):
        raise PrecisionLoss(
            f"Amount {amount} has more than {decimals} fractional digits"
        )
    return _check_raw(int(scaled), "amount")


def format_units(raw: int, decimals: int) -> Decimal:
    """Convert raw token units into an exact ``Decimal`` amount."""
    return Decimal(raw).scaleb(-decimals, context=_EXACT)


def supply_usd_mantissa(
    principal: int, exchange_rate: int, decimals: int, price: int
) -> int:
    """USD value (1e18 mantissa) of a supply principal.

    underlying = principal * exchange_rate / 1e18
    usd        = underlying * price / 10^decimals
    """
    _check_raw(principal, "supply principal")
    _check_raw(exchange_rate, "exchange rate")
    _check_raw(price, "price")
    return (principal * exchange_rate * price) // (EXP_SCALE * 10**decimals)


def borrow_usd_mantissa(principal: int, decimals: int, price: int) -> int:
    """USD value (1e18 mantissa) of a borrow principal (already in underlying)."""
    _check_raw(principal, "borrow principal")
    _check_raw(price, "price")
    return (principal * price) // 10**decimals


def usd(mantissa: int) -> Decimal:
    """Exact ``Decimal`` dollars for a 1e18 USD mantissa."""
    return Decimal(mantissa).scaleb(-USD_DECIMALS, context=_EXACT)


def annualize(rate_per_block: int, blocks: int) -> Decimal:
    """Compound a per-block rate over ``blocks`` blocks into a yearly percentage.

    apy = ((1 + rate_per_block / 1e18) ^ blocks - 1) * 100
    """
    _check_raw(rate_per_block, "rate per block")
    if rate_per_block == 0:
        return Decimal(0)

    rate = Decimal(rate_per_block).scaleb(-18, context=_RATE)
    try:
        growth = _RATE.power(_RATE.add(Decimal(1), rate), blocks)
    except Overflow as e:
        raise NumericOverflow(
            f"Rate {rate_per_block} per block overflows over {blocks} blocks"
        ) from e
    return _RATE.multiply(_RATE.subtract(growth, Decimal(1)), Decimal(100))
