"""
Cross-Platform Prediction Market Arbitrage Detector
Matches Polymarket and Kalshi markets and scores their price discrepancies
"""

from .config import Config
from .data_normalizer import DataNormalizer, Market, Platform, PricePair
from .arbitrage_engine import ArbitrageEngine, ArbitrageOpportunity, RiskLevel
from .market_analyzer import MarketAnalyzer, find_arbitrage_opportunities
from .api_clients import KalshiClient, PolymarketClient

__version__ = "1.0.0"
__all__ = [
    "Config",
    "DataNormalizer",
    "Market",
    "Platform",
    "PricePair",
    "ArbitrageEngine",
    "ArbitrageOpportunity",
    "RiskLevel",
    "MarketAnalyzer",
    "find_arbitrage_opportunities",
    "KalshiClient",
    "PolymarketClient"
]
