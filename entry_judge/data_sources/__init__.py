"""Data source adapters and the race orchestration built on them."""

from .alpha_vantage import AlphaVantageProvider
from .base import BaseProvider
from .fetcher import StockDataFetcher, build_providers, fetch_stock_data
from .index import IndexProvider
from .race import Attempt, RaceResult, race, settle_all
from .stooq import StooqProvider
from .twelve_data import TwelveDataProvider
from .yahoo import YahooChartProvider, YFinanceProvider
