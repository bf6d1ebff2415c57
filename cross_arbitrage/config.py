import os
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Tuple
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class ThresholdProfile:
    """Named set of ranking/bucketing thresholds for one call site."""
    name: str
    strategy: str                            # Default match strategy name
    sort_key: str                            # "similarity" or "profit_potential"
    min_profit: float
    buckets: Tuple[Tuple[str, float], ...]   # Ordered (bucket, cut point), highest first

    def thresholds(self) -> Dict[str, float]:
        return dict(self.buckets)


class Config:
    """Configuration for the cross-platform arbitrage detector."""

    # Analysis Parameters
    MIN_PROFIT_THRESHOLD = 0.01  # 1% minimum price gap
    PRICE_TIE_TOLERANCE = 1e-9
    DEFAULT_PRICE = 0.5

    # Text similarity
    MIN_TOKEN_LENGTH = 3  # Tokens of length <= 2 are noise
    KEYWORD_BONUS = 0.1
    COMPANY_MATCH_THRESHOLD = 0.8

    ARBITRAGE_KEYWORDS = MappingProxyType({
        'fed': ('federal reserve', 'fed rate', 'jerome powell', 'interest rate'),
        'election': ('election', 'president', 'presidential', 'vote', 'candidate'),
        'economy': ('gdp', 'recession', 'inflation', 'unemployment', 'economic'),
        'technology': ('ai', 'artificial intelligence', 'spacex', 'tesla', 'apple'),
        'politics': ('congress', 'senate', 'house', 'government', 'policy'),
        'sports': ('championship', 'playoff', 'final', 'champion', 'winner'),
        'entertainment': ('movie', 'film', 'album', 'award', 'oscar', 'grammy'),
        'climate': ('climate', 'weather', 'temperature', 'global warming', 'co2'),
        'health': ('fda', 'vaccine', 'cure', 'disease', 'medical', 'healthcare'),
    })

    # Polymarket tag slug -> acceptable Kalshi categories
    CATEGORY_MAPPING = MappingProxyType({
        'business': ('Economics', 'Financials', 'Companies'),
        'politics': ('Politics', 'Elections'),
        'sports': ('Sports',),
        'entertainment': ('Entertainment',),
        'technology': ('Science and Technology',),
        'health': ('Health',),
        'climate': ('Climate and Weather',),
        'world': ('World',),
        'economics': ('Economics', 'Financials'),
        'fed': ('Economics', 'Financials'),
        'elections': ('Elections', 'Politics'),
        'companies': ('Companies', 'Financials'),
    })

    # Match scoring
    MATCH_WEIGHTS = MappingProxyType({
        'title': 0.4,
        'entities': 0.3,
        'category': 0.2,
        'date': 0.1,
    })
    DAYS_PER_MONTH = 30
    DATE_PROXIMITY_BANDS = ((3, 1.0), (6, 0.5))  # (months below, score)
    DATE_PROXIMITY_FLOOR = 0.1
    TITLE_SIMILARITY_FLOOR = 0.1  # Weighted strategy skips the full score below this title similarity

    # Acceptance floor per match strategy
    STRATEGY_THRESHOLDS = MappingProxyType({
        'weighted': 0.4,
        'jaccard': 0.6,
        'keyword': 0.3,
        'fuzzy': 0.55,
    })

    # Risk tiers on max single-leg exposure
    HIGH_RISK_THRESHOLD = 0.8
    MEDIUM_RISK_THRESHOLD = 0.5

    # Confidence and warnings
    CONFIDENCE_HORIZON_DAYS = 7
    ALIGNMENT_WARNING_SIMILARITY = 0.9
    EXPIRY_WARNING_DAYS = 1
    LOW_VOLUME_THRESHOLD = 1000
    DIVERSIFICATION_CATEGORIES = 5

    # Similarity cut points for the batch report
    SIMILARITY_THRESHOLDS = MappingProxyType({
        'exact': 0.95,
        'high': 0.80,
        'medium': 0.60,
        'low': 0.40,
    })

    # Profit-potential cut points for the live service
    PROFIT_THRESHOLDS = MappingProxyType({
        'exact': 0.05,
        'high': 0.03,
        'medium': 0.02,
        'low': 0.01,
    })

    PROFILES = MappingProxyType({
        'batch': ThresholdProfile(
            name='batch',
            strategy='weighted',
            sort_key='similarity',
            min_profit=MIN_PROFIT_THRESHOLD,
            buckets=tuple(SIMILARITY_THRESHOLDS.items()),
        ),
        'live': ThresholdProfile(
            name='live',
            strategy='keyword',
            sort_key='profit_potential',
            min_profit=MIN_PROFIT_THRESHOLD,
            buckets=tuple(PROFIT_THRESHOLDS.items()),
        ),
    })
    DEFAULT_PROFILE = 'live'

    # API Configuration
    KALSHI_API_BASE = os.getenv("KALSHI_API_BASE", "https://api.elections.kalshi.com/trade-api/v2")
    POLYMARKET_GAMMA_BASE = os.getenv("POLYMARKET_GAMMA_BASE", "https://gamma-api.polymarket.com")
    # Public read-only endpoints, no credentials needed
    KALSHI_PAGE_LIMIT = 100
    POLYMARKET_PAGE_LIMIT = 100
    MAX_PAGES = 50
    REQUEST_TIMEOUT = 15  # seconds

    # Pipeline
    MAX_WORKERS = int(os.getenv("MAX_WORKERS", "1"))
    PAIR_CHUNK_SIZE = 5000

    # Data Storage
    DATA_DIR = os.getenv("DATA_DIR", "market_data")
    POLYMARKET_FILE_PREFIX = "processed-polymarket-offset"
    KALSHI_FILE_PREFIX = "processed-kalshi-offset"
    REPORT_FILE_PREFIX = "arbitrage-opportunities"

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = "arbitrage_analysis.log"

    @classmethod
    def get_profile(cls, name: str) -> ThresholdProfile:
        """Look up a named threshold profile."""
        if name not in cls.PROFILES:
            raise ValueError(f"Invalid profile: {name}. Must be one of {list(cls.PROFILES.keys())}")
        return cls.PROFILES[name]

    @classmethod
    def setup_logging(cls):
        """Configure logging for the application."""
        os.makedirs(cls.DATA_DIR, exist_ok=True)

        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL.upper(), logging.INFO),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.StreamHandler(),
                logging.FileHandler(os.path.join(cls.DATA_DIR, cls.LOG_FILE))
            ]
        )
