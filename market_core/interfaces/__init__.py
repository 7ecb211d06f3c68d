"""Protocol interfaces for the lending market core."""
from .chain import LendingChain
from .price_oracle import PriceOracle

__all__ = ["LendingChain", "PriceOracle"]
