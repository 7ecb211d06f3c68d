"""Compound v2 protocol bindings."""
from .markets import CompoundMarkets

__all__ = ["CompoundMarkets"]
