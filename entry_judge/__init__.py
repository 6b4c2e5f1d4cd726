"""Entry Judge: trade entry decision support.

Public entry points::

    from entry_judge import analyze, fetch_stock_data
"""

from entry_judge.analysis.decision import analyze
from entry_judge.data_sources.fetcher import fetch_stock_data
from entry_judge.models import AnalysisResult, FetchedStock, MidInputs, ShortInputs, StockSnapshot

__all__ = [
    "analyze",
    "fetch_stock_data",
    "AnalysisResult",
    "FetchedStock",
    "MidInputs",
    "ShortInputs",
    "StockSnapshot",
]
