"""Price oracle protocol: price feed abstraction."""
from typing import Protocol


class PriceOracle(Protocol):
    """Abstract interface for fetching fixed-point (1e18) USD prices.

    Prices are keyed by lowercased underlying-asset address.
    """

    async def fetch_prices(self, keys: list[str] | None = None) -> dict[str, int]: ...
