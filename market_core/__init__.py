"""Lending market core: market metrics and supply/borrow orchestration."""

__version__ = "0.1.0"
