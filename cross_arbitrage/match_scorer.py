"""
Composite match scoring between two markets on different platforms.

Four independent signals are combined with fixed weights: title similarity,
entity overlap, category agreement and end-date proximity. When either
market has no end date the date term and its weight are left out, so the
best attainable score for that pair is 0.9 rather than 1.0.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .categories import categories_match
from .config import Config
from .data_normalizer import Market, Platform
from .entities import DEFAULT_EXTRACTOR, EntityExtractor, compare_entities
from .similarity import calculate_similarity

logger = logging.getLogger(__name__)

REQUIRED_WEIGHTS = ('title', 'entities', 'category', 'date')


@dataclass
class MatchScore:
    """Weighted score plus the signals that produced it."""
    score: float
    factors: List[str]
    title_similarity: float
    entity_score: float
    category_match: bool
    date_proximity: Optional[float] = None
    month_difference: Optional[float] = None


@dataclass
class MatchCandidate:
    """A pair of markets judged to describe the same event."""
    market_a: Market
    market_b: Market
    similarity: float
    strategy: str
    title_similarity: float
    entity_score: Optional[float] = None
    category_match: Optional[bool] = None
    date_proximity: Optional[float] = None
    factors: List[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.market_a.id}-{self.market_b.id}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.key,
            'score': self.similarity,
            'strategy': self.strategy,
            'factors': list(self.factors),
            'breakdown': {
                'titleSimilarity': self.title_similarity,
                'entityScore': self.entity_score,
                'categoryMatch': self.category_match,
                'dateProximity': self.date_proximity,
            },
            self.market_a.platform.value: self.market_a.to_dict(),
            self.market_b.platform.value: self.market_b.to_dict(),
        }


def month_difference(date1: Optional[datetime], date2: Optional[datetime]) -> Optional[float]:
    """Absolute gap between two dates in 30-day months, or None if either is missing."""
    if date1 is None or date2 is None:
        return None
    days = abs((date1 - date2).total_seconds()) / 86400
    return days / Config.DAYS_PER_MONTH


def date_proximity(date1: Optional[datetime], date2: Optional[datetime],
                   bands: Sequence[Tuple[float, float]] = Config.DATE_PROXIMITY_BANDS,
                   floor: float = Config.DATE_PROXIMITY_FLOOR) -> Optional[float]:
    months = month_difference(date1, date2)
    if months is None:
        return None
    for limit, score in bands:
        if months < limit:
            return score
    return floor


def polymarket_first(market_a: Market, market_b: Market) -> Tuple[Market, Market]:
    if market_a.platform == Platform.KALSHI and market_b.platform == Platform.POLYMARKET:
        return market_b, market_a
    return market_a, market_b


class MatchScorer:
    """Scores how likely two markets describe the same real-world event."""

    def __init__(self,
                 weights: Mapping[str, float] = Config.MATCH_WEIGHTS,
                 keywords: Mapping[str, Sequence[str]] = Config.ARBITRAGE_KEYWORDS,
                 category_mapping: Mapping[str, Sequence[str]] = Config.CATEGORY_MAPPING,
                 entity_extractor: EntityExtractor = DEFAULT_EXTRACTOR,
                 company_threshold: float = Config.COMPANY_MATCH_THRESHOLD):
        missing = [name for name in REQUIRED_WEIGHTS if name not in weights]
        if missing:
            raise ValueError(f"Missing match weights: {missing}")
        if any(weights[name] < 0 for name in REQUIRED_WEIGHTS):
            raise ValueError("Match weights must be non-negative")

        self.weights = dict(weights)
        self.keywords = keywords
        self.category_mapping = category_mapping
        self.entity_extractor = entity_extractor
        self.company_threshold = company_threshold

    def title_similarity(self, market_a: Market, market_b: Market) -> float:
        return calculate_similarity(market_a.title, market_b.title, self.keywords)

    def score(self, market_a: Market, market_b: Market,
              title_similarity: Optional[float] = None) -> MatchScore:
        """Weighted composite score; ``factors`` are for reporting only."""
        factors = []

        if title_similarity is None:
            title_similarity = self.title_similarity(market_a, market_b)
        score = title_similarity * self.weights['title']
        factors.append(f"Title similarity: {title_similarity * 100:.1f}%")

        entities_a = self.entity_extractor.extract(market_a.title)
        entities_b = self.entity_extractor.extract(market_b.title)
        entity_score = compare_entities(entities_a, entities_b, self.company_threshold)
        score += entity_score * self.weights['entities']
        factors.append(f"Entity matching: {entity_score * 100:.1f}%")

        poly, other = polymarket_first(market_a, market_b)
        category_match = categories_match(poly.tags, other.category, self.category_mapping)
        score += float(category_match) * self.weights['category']
        factors.append(f"Category match: {'Yes' if category_match else 'No'}")

        months = month_difference(market_a.end_date, market_b.end_date)
        proximity = date_proximity(market_a.end_date, market_b.end_date)
        if proximity is not None:
            score += proximity * self.weights['date']
            factors.append(f"Date proximity: {months:.1f} months")

        return MatchScore(
            score=min(1.0, max(0.0, score)),
            factors=factors,
            title_similarity=title_similarity,
            entity_score=entity_score,
            category_match=category_match,
            date_proximity=proximity,
            month_difference=months,
        )
