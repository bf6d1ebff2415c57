"""
Unified data normalization layer for standardizing market data across platforms.

Polymarket and Kalshi records are projected into one platform-neutral
``Market`` shape, and their YES/NO prices into one canonical ``PricePair``
of probabilities, so the analysis layers never deal with source formats.
Projection is lossy and best-effort: it never raises on malformed records.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .config import Config
from .utils import parse_datetime, safe_float

logger = logging.getLogger(__name__)


class Platform(Enum):
    """Supported prediction-market platforms."""
    POLYMARKET = "polymarket"
    KALSHI = "kalshi"


class MarketStatus(Enum):
    """Standardized market status across platforms."""
    ACTIVE = "active"
    CLOSED = "closed"
    SETTLED = "settled"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PricePair:
    """YES/NO prices expressed as probabilities in [0, 1]."""
    yes: float
    no: float

    @classmethod
    def from_yes(cls, yes: float) -> "PricePair":
        return cls(yes=yes, no=1.0 - yes)

    def to_dict(self) -> Dict[str, float]:
        return {"yes": self.yes, "no": self.no}


DEFAULT_PRICES = PricePair.from_yes(Config.DEFAULT_PRICE)


@dataclass
class Market:
    """Platform-neutral view of a single binary market."""
    id: str
    platform: Platform
    title: str
    description: str = ""
    category: str = ""
    tags: Tuple[str, ...] = ()
    end_date: Optional[datetime] = None
    status: MarketStatus = MarketStatus.UNKNOWN
    active: bool = True
    closed: bool = False
    volume: float = 0.0
    volume_24h: float = 0.0
    liquidity: float = 0.0
    yes_price: float = Config.DEFAULT_PRICE
    no_price: float = 1.0 - Config.DEFAULT_PRICE
    slug: str = ""
    event_id: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        # Dates are aware UTC whatever the caller passed in
        self.end_date = parse_datetime(self.end_date)
        self.created_at = parse_datetime(self.created_at)
        self.updated_at = parse_datetime(self.updated_at)

    @property
    def prices(self) -> PricePair:
        return PricePair(yes=self.yes_price, no=self.no_price)

    def to_dict(self) -> Dict[str, Any]:
        """Slimmed representation for API responses and reports."""
        return {
            "id": self.id,
            "platform": self.platform.value,
            "title": self.title,
            "category": self.category,
            "tags": list(self.tags),
            "eventId": self.event_id,
            "slug": self.slug,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "status": self.status.value,
            "yesPrice": self.yes_price,
            "noPrice": self.no_price,
            "volume": self.volume,
            "volume24h": self.volume_24h,
            "liquidity": self.liquidity,
        }


def _probability(value) -> Optional[float]:
    """Parse a price in [0, 1], or None if unusable."""
    price = safe_float(value, default=-1.0)
    if 0.0 <= price <= 1.0:
        return price
    return None


def normalize_polymarket_prices(raw: Mapping[str, Any]) -> PricePair:
    """
    Polymarket sends ``outcomePrices`` as a JSON-encoded array string.

    Index 0 is YES and index 1 is NO. A missing NO is derived as 1 - YES, and
    a pair that does not sum to 1 is rescaled. Anything unparseable falls
    back to ``lastTradePrice`` (default 0.5) and its complement.
    """
    last_trade = _probability(raw.get('lastTradePrice'))
    fallback = PricePair.from_yes(last_trade) if last_trade else DEFAULT_PRICES

    prices = raw.get('outcomePrices', raw.get('outcome_prices'))
    if isinstance(prices, str):
        try:
            prices = json.loads(prices)
        except (ValueError, TypeError):
            logger.debug(f"Unparseable outcomePrices for Polymarket market {raw.get('id')}: {prices!r}")
            return fallback

    if not isinstance(prices, (list, tuple)) or not prices:
        return fallback

    yes = _probability(prices[0])
    if yes is None:
        return fallback

    no = _probability(prices[1]) if len(prices) > 1 else None
    if no is None:
        return PricePair.from_yes(yes)

    total = yes + no
    if total <= 0:
        return fallback
    if abs(total - 1.0) > Config.PRICE_TIE_TOLERANCE:
        return PricePair.from_yes(yes / total)
    return PricePair(yes=yes, no=no)


def _cents(value) -> Optional[float]:
    cents = safe_float(value)
    if 0.0 < cents <= 100.0:
        return cents
    return None


def normalize_kalshi_prices(raw: Mapping[str, Any]) -> PricePair:
    """Kalshi quotes integer cents; ``last_price`` wins over ``yes_ask``."""
    for key in ('last_price', 'yes_ask'):
        cents = _cents(raw.get(key))
        if cents is not None:
            return PricePair.from_yes(cents / 100.0)
    return DEFAULT_PRICES


def normalize_prices(market) -> PricePair:
    """Canonical price pair for a projected ``Market`` or a raw record."""
    if isinstance(market, Market):
        return market.prices
    if not isinstance(market, Mapping):
        return DEFAULT_PRICES
    if 'ticker' in market or 'event_ticker' in market:
        return normalize_kalshi_prices(market)
    return normalize_polymarket_prices(market)


def _text(*candidates) -> str:
    for candidate in candidates:
        if candidate and isinstance(candidate, str):
            return candidate.strip()
    return ""


def _tag_slugs(tags) -> Tuple[str, ...]:
    if not isinstance(tags, list):
        return ()
    slugs = []
    for tag in tags:
        if isinstance(tag, Mapping) and tag.get('slug'):
            slugs.append(str(tag['slug']))
        elif isinstance(tag, str) and tag:
            slugs.append(tag)
    return tuple(slugs)


class DataNormalizer:
    """Normalizes data from different platforms into standardized format."""

    KALSHI_STATUS_MAP = {
        'active': MarketStatus.ACTIVE,
        'open': MarketStatus.ACTIVE,
        'initialized': MarketStatus.ACTIVE,
        'closed': MarketStatus.CLOSED,
        'settled': MarketStatus.SETTLED,
        'finalized': MarketStatus.SETTLED,
        'determined': MarketStatus.SETTLED,
    }

    @classmethod
    def from_polymarket(cls, raw: Mapping[str, Any],
                        event: Optional[Mapping[str, Any]] = None) -> Market:
        """Project a Gamma API market (optionally with its parent event)."""
        event = event or {}
        active = raw.get('active', True) is not False
        closed = raw.get('closed', False) is True

        if closed:
            status = MarketStatus.CLOSED
        elif active:
            status = MarketStatus.ACTIVE
        else:
            status = MarketStatus.UNKNOWN

        prices = normalize_polymarket_prices(raw)

        return Market(
            id=str(raw.get('id') or raw.get('conditionId') or raw.get('slug') or ""),
            platform=Platform.POLYMARKET,
            title=_text(raw.get('question'), raw.get('title'), raw.get('description'),
                        event.get('description'), event.get('title')),
            description=_text(raw.get('description'), event.get('description')),
            category=_text(raw.get('category'), event.get('category')),
            tags=_tag_slugs(raw.get('tags')) or _tag_slugs(event.get('tags')),
            end_date=parse_datetime(raw.get('endDate') or raw.get('end_date_iso') or event.get('endDate')),
            status=status,
            active=active,
            closed=closed,
            volume=safe_float(raw.get('volumeNum', raw.get('volume'))),
            volume_24h=safe_float(raw.get('volume24hr')),
            liquidity=safe_float(raw.get('liquidityNum', raw.get('liquidity', raw.get('liquidityClob')))),
            yes_price=prices.yes,
            no_price=prices.no,
            slug=_text(raw.get('slug')),
            event_id=str(event.get('id') or ""),
            created_at=parse_datetime(raw.get('createdAt')),
            updated_at=parse_datetime(raw.get('updatedAt')),
            raw=dict(raw),
        )

    @classmethod
    def from_kalshi(cls, raw: Mapping[str, Any],
                    event: Optional[Mapping[str, Any]] = None) -> Market:
        """Project a Kalshi market (optionally with its parent event)."""
        event = event or {}
        status_str = str(raw.get('status') or '').lower()
        status = cls.KALSHI_STATUS_MAP.get(status_str, MarketStatus.UNKNOWN)

        prices = normalize_kalshi_prices(raw)

        return Market(
            id=str(raw.get('ticker') or raw.get('id') or ""),
            platform=Platform.KALSHI,
            title=_text(raw.get('title'), raw.get('yes_sub_title'),
                        event.get('title'), event.get('sub_title')),
            description=_text(raw.get('subtitle'), raw.get('sub_title'), event.get('sub_title')),
            category=_text(raw.get('category'), event.get('category')),
            tags=_tag_slugs(raw.get('tags')),
            end_date=parse_datetime(raw.get('close_date') or raw.get('close_time')
                                    or raw.get('expiration_time')),
            status=status,
            active=status in (MarketStatus.ACTIVE, MarketStatus.UNKNOWN),
            closed=status in (MarketStatus.CLOSED, MarketStatus.SETTLED),
            volume=safe_float(raw.get('dollar_volume', raw.get('volume'))),
            volume_24h=safe_float(raw.get('dollar_volume_24h', raw.get('volume_24h'))),
            liquidity=safe_float(raw.get('liquidity')),
            yes_price=prices.yes,
            no_price=prices.no,
            slug=_text(raw.get('ticker')),
            event_id=_text(raw.get('event_ticker'), event.get('event_ticker')),
            created_at=parse_datetime(raw.get('created_time')),
            updated_at=parse_datetime(raw.get('updated_time')),
            raw=dict(raw),
        )

    @classmethod
    def project(cls, platform: Platform, raw: Mapping[str, Any],
                event: Optional[Mapping[str, Any]] = None) -> Market:
        if platform == Platform.KALSHI:
            return cls.from_kalshi(raw, event)
        return cls.from_polymarket(raw, event)

    @classmethod
    def project_catalog(cls, platform: Platform, records: Optional[Iterable[Any]]) -> List[Market]:
        """Project a list of raw records, passing ``Market`` objects through."""
        markets = []
        for record in records or []:
            if isinstance(record, Market):
                markets.append(record)
            elif isinstance(record, Mapping):
                markets.append(cls.project(platform, record))
            else:
                logger.debug(f"Skipping non-mapping {platform.value} record: {record!r}")
        return markets
