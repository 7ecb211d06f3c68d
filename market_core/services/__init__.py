"""Service modules"""
from .actions import ActionOrchestrator
from .dashboard import Dashboard
from .instruments import InstrumentReader
from .metrics import MetricsAggregator

__all__ = ["ActionOrchestrator", "Dashboard", "InstrumentReader", "MetricsAggregator"]
