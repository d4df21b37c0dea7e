from .arbitrage_engine import ArbitrageEvaluator
from .normalizer import to_rate
from .reporter import FileSink, OpportunityReporter

__all__ = ["ArbitrageEvaluator", "OpportunityReporter", "FileSink", "to_rate"]
