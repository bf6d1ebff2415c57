"""
Market matching and arbitrage pipeline across Polymarket and Kalshi.

Pairs of markets are enumerated by a pair filter (full cross product by
default), scored by a named match strategy, then priced and analyzed by the
arbitrage engine. Pair scoring can run on a thread pool; results are always
merged in enumeration order and ranked with one stable sort.
"""

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from itertools import islice
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple, Union

from fuzzywuzzy import fuzz

from .arbitrage_engine import ArbitrageEngine, ArbitrageOpportunity
from .config import Config, ThresholdProfile
from .data_normalizer import DataNormalizer, Market, Platform
from .match_scorer import MatchCandidate, MatchScorer, polymarket_first
from .reporting import generate_report, rank
from .similarity import calculate_similarity, simple_word_overlap
from .utils import normalize_text, tokenize

logger = logging.getLogger(__name__)

PairFilter = Callable[[Sequence[Market], Sequence[Market]], Iterator[Tuple[int, int]]]


# Match strategies

class MatchStrategy:
    """Scores a market pair and keeps it when the score reaches ``threshold``."""

    name = ""

    def __init__(self, threshold: Optional[float] = None):
        self.threshold = Config.STRATEGY_THRESHOLDS[self.name] if threshold is None else threshold

    def score(self, market_a: Market, market_b: Market) -> float:
        raise NotImplementedError

    def match(self, market_a: Market, market_b: Market) -> Optional[MatchCandidate]:
        similarity = self.score(market_a, market_b)
        if similarity < self.threshold:
            return None
        return MatchCandidate(
            market_a=market_a,
            market_b=market_b,
            similarity=similarity,
            strategy=self.name,
            title_similarity=similarity,
            factors=[f"{self.name.capitalize()} similarity: {similarity * 100:.1f}%"],
        )


class WeightedStrategy(MatchStrategy):
    """Composite of title, entity, category and date signals."""

    name = "weighted"

    def __init__(self, threshold: Optional[float] = None, scorer: Optional[MatchScorer] = None,
                 title_floor: float = Config.TITLE_SIMILARITY_FLOOR):
        super().__init__(threshold)
        self.scorer = scorer or MatchScorer()
        self.title_floor = title_floor

    def score(self, market_a: Market, market_b: Market) -> float:
        return self.scorer.score(market_a, market_b).score

    def match(self, market_a: Market, market_b: Market) -> Optional[MatchCandidate]:
        title_similarity = self.scorer.title_similarity(market_a, market_b)
        if title_similarity < self.title_floor:
            return None

        result = self.scorer.score(market_a, market_b, title_similarity=title_similarity)
        if result.score < self.threshold:
            return None
        return MatchCandidate(
            market_a=market_a,
            market_b=market_b,
            similarity=result.score,
            strategy=self.name,
            title_similarity=result.title_similarity,
            entity_score=result.entity_score,
            category_match=result.category_match,
            date_proximity=result.date_proximity,
            factors=result.factors,
        )


class JaccardStrategy(MatchStrategy):
    """Plain word overlap; the better of title-title and description-title."""

    name = "jaccard"

    def score(self, market_a: Market, market_b: Market) -> float:
        poly, other = polymarket_first(market_a, market_b)
        title_score = simple_word_overlap(poly.title, other.title)
        if not poly.description:
            return title_score
        return max(title_score, simple_word_overlap(poly.description, other.title))


class KeywordStrategy(MatchStrategy):
    """Token Jaccard plus keyword-category bonus on titles."""

    name = "keyword"

    def __init__(self, threshold: Optional[float] = None,
                 keywords=Config.ARBITRAGE_KEYWORDS):
        super().__init__(threshold)
        self.keywords = keywords

    def score(self, market_a: Market, market_b: Market) -> float:
        return calculate_similarity(market_a.title, market_b.title, self.keywords)


class FuzzyStrategy(MatchStrategy):
    """Token-sort fuzzy ratio on normalized titles."""

    name = "fuzzy"

    def score(self, market_a: Market, market_b: Market) -> float:
        title_a = normalize_text(market_a.title)
        title_b = normalize_text(market_b.title)
        if not title_a or not title_b:
            return 0.0
        return fuzz.token_sort_ratio(title_a, title_b) / 100.0


STRATEGIES = {
    strategy.name: strategy
    for strategy in (WeightedStrategy, JaccardStrategy, KeywordStrategy, FuzzyStrategy)
}


def get_strategy(name: str, **kwargs) -> MatchStrategy:
    if name not in STRATEGIES:
        raise ValueError(f"Invalid strategy: {name}. Must be one of {list(STRATEGIES.keys())}")
    return STRATEGIES[name](**kwargs)


# Pair filters

def cross_product(markets_a: Sequence[Market], markets_b: Sequence[Market]) -> Iterator[Tuple[int, int]]:
    """Every (i, j) pair in row-major order."""
    for i in range(len(markets_a)):
        for j in range(len(markets_b)):
            yield i, j


class TermIndexFilter:
    """Only pairs whose titles share at least ``min_shared_terms`` key terms."""

    STOP_WORDS = frozenset({
        'will', 'the', 'for', 'and', 'but', 'then', 'than', 'when', 'where', 'how',
        'what', 'who', 'which', 'that', 'this', 'these', 'those', 'are', 'was',
        'were', 'have', 'has', 'had', 'does', 'did', 'can', 'could', 'should',
        'would', 'may', 'might', 'must', 'shall', 'from', 'before', 'after',
    })

    def __init__(self, min_shared_terms: int = 2):
        self.min_shared_terms = min_shared_terms

    def key_terms(self, title: str) -> Set[str]:
        return tokenize(title) - self.STOP_WORDS

    def __call__(self, markets_a: Sequence[Market], markets_b: Sequence[Market]) -> Iterator[Tuple[int, int]]:
        term_index = defaultdict(set)
        for j, market in enumerate(markets_b):
            for term in self.key_terms(market.title):
                term_index[term].add(j)

        for i, market in enumerate(markets_a):
            shared = defaultdict(int)
            for term in self.key_terms(market.title):
                for j in term_index.get(term, ()):
                    shared[j] += 1
            for j in sorted(j for j, count in shared.items() if count >= self.min_shared_terms):
                yield i, j


class DateWindowFilter:
    """Only pairs whose end dates are within ``max_days``; undated pairs pass."""

    def __init__(self, max_days: float = 180):
        self.max_days = max_days

    def __call__(self, markets_a: Sequence[Market], markets_b: Sequence[Market]) -> Iterator[Tuple[int, int]]:
        for i, j in cross_product(markets_a, markets_b):
            date_a, date_b = markets_a[i].end_date, markets_b[j].end_date
            if date_a is None or date_b is None:
                yield i, j
            elif abs((date_a - date_b).total_seconds()) <= self.max_days * 86400:
                yield i, j


PAIR_FILTERS = {
    'none': lambda: cross_product,
    'terms': TermIndexFilter,
    'dates': DateWindowFilter,
}


def get_pair_filter(name: str) -> PairFilter:
    if name not in PAIR_FILTERS:
        raise ValueError(f"Invalid prefilter: {name}. Must be one of {list(PAIR_FILTERS.keys())}")
    return PAIR_FILTERS[name]()


def _chunks(pairs: Iterable[Tuple[int, int]], size: int) -> Iterator[List[Tuple[int, int]]]:
    pairs = iter(pairs)
    while True:
        chunk = list(islice(pairs, size))
        if not chunk:
            return
        yield chunk


class MarketAnalyzer:
    """Matches two catalogs and analyzes the matched pairs for arbitrage."""

    def __init__(self, profile: Union[str, ThresholdProfile] = Config.DEFAULT_PROFILE,
                 strategy: Union[str, MatchStrategy, None] = None,
                 pair_filter: Union[str, PairFilter, None] = None,
                 max_workers: int = Config.MAX_WORKERS,
                 engine: Optional[ArbitrageEngine] = None,
                 chunk_size: int = Config.PAIR_CHUNK_SIZE):
        self.profile = Config.get_profile(profile) if isinstance(profile, str) else profile

        if strategy is None:
            strategy = self.profile.strategy
        self.strategy = get_strategy(strategy) if isinstance(strategy, str) else strategy

        if pair_filter is None:
            pair_filter = cross_product
        self.pair_filter = get_pair_filter(pair_filter) if isinstance(pair_filter, str) else pair_filter

        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers
        self.chunk_size = chunk_size
        self.engine = engine or ArbitrageEngine(min_profit=self.profile.min_profit)

        self.stats = {'comparisons': 0, 'matches': 0, 'opportunities': 0}

    def _match_chunk(self, markets_a: Sequence[Market], markets_b: Sequence[Market],
                     pairs: List[Tuple[int, int]]) -> List[MatchCandidate]:
        matches = []
        for i, j in pairs:
            try:
                candidate = self.strategy.match(markets_a[i], markets_b[j])
            except Exception as e:
                logger.debug(f"Error matching {markets_a[i].id} with {markets_b[j].id}: {e}")
                continue
            if candidate is not None:
                matches.append(candidate)
        return matches

    def find_matches(self, polymarkets: Iterable[Any], kalshi_markets: Iterable[Any]) -> List[MatchCandidate]:
        """Matched pairs, highest similarity first, ties in enumeration order."""
        return rank(self._collect_matches(polymarkets, kalshi_markets), 'similarity')

    def _collect_matches(self, polymarkets: Iterable[Any], kalshi_markets: Iterable[Any]) -> List[MatchCandidate]:
        """Matched pairs in enumeration order (Polymarket index, then Kalshi index)."""
        markets_a = DataNormalizer.project_catalog(Platform.POLYMARKET, polymarkets)
        markets_b = DataNormalizer.project_catalog(Platform.KALSHI, kalshi_markets)
        if not markets_a or not markets_b:
            logger.info("Nothing to compare: at least one catalog is empty")
            return []

        logger.info(f"Comparing {len(markets_a)} Polymarket x {len(markets_b)} Kalshi markets "
                    f"with '{self.strategy.name}' strategy (threshold {self.strategy.threshold})")

        chunks = list(_chunks(self.pair_filter(markets_a, markets_b), self.chunk_size))
        comparisons = sum(len(chunk) for chunk in chunks)

        if self.max_workers > 1 and len(chunks) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(lambda chunk: self._match_chunk(markets_a, markets_b, chunk), chunks))
        else:
            results = [self._match_chunk(markets_a, markets_b, chunk) for chunk in chunks]

        matches = [candidate for chunk_matches in results for candidate in chunk_matches]

        self.stats['comparisons'] += comparisons
        self.stats['matches'] += len(matches)
        logger.info(f"Found {len(matches)} matches from {comparisons} comparisons")
        return matches

    def analyze_matches(self, matches: Iterable[MatchCandidate],
                        now: Optional[datetime] = None) -> List[ArbitrageOpportunity]:
        """Priced opportunities ranked by the profile; ties keep the order of ``matches``."""
        opportunities = []
        for candidate in matches:
            opportunity = self.engine.analyze(candidate, now=now)
            if opportunity is None:
                continue
            if opportunity.profit_potential < self.profile.min_profit:
                logger.debug(f"{opportunity.id} below profit threshold: "
                             f"{opportunity.profit_potential:.4f} < {self.profile.min_profit}")
                continue
            opportunities.append(opportunity)

        self.stats['opportunities'] += len(opportunities)
        return rank(opportunities, self.profile.sort_key)

    def find_arbitrage_opportunities(self, polymarkets: Iterable[Any], kalshi_markets: Iterable[Any],
                                     now: Optional[datetime] = None) -> List[ArbitrageOpportunity]:
        matches = self._collect_matches(polymarkets, kalshi_markets)
        opportunities = self.analyze_matches(matches, now=now)
        logger.info(f"Analysis complete: {len(matches)} matches, {len(opportunities)} profitable opportunities")
        return opportunities

    def build_report(self, polymarkets: Iterable[Any], kalshi_markets: Iterable[Any],
                     now: Optional[datetime] = None,
                     generated_at: Optional[datetime] = None) -> Dict[str, Any]:
        """Bucketed report of matches (batch profile) or opportunities (live)."""
        if self.profile.sort_key == 'similarity':
            items = self.find_matches(polymarkets, kalshi_markets)
        else:
            items = self.find_arbitrage_opportunities(polymarkets, kalshi_markets, now=now)
        return generate_report(items, self.profile, generated_at=generated_at)

    def get_stats(self) -> Dict[str, Any]:
        return {
            'profile': self.profile.name,
            'strategy': self.strategy.name,
            **self.stats,
            'engine': self.engine.get_stats(),
        }


def find_arbitrage_opportunities(polymarkets: Optional[Iterable[Any]], kalshi_markets: Optional[Iterable[Any]],
                                 profile: Union[str, ThresholdProfile] = Config.DEFAULT_PROFILE,
                                 now: Optional[datetime] = None, **kwargs) -> List[ArbitrageOpportunity]:
    """Ranked opportunities for raw records or ``Market`` objects; empty input gives []."""
    analyzer = MarketAnalyzer(profile=profile, **kwargs)
    return analyzer.find_arbitrage_opportunities(polymarkets or [], kalshi_markets or [], now=now)
