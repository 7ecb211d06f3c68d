"""Lending protocol bindings."""
