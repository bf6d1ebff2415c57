"""
Cross-platform arbitrage analysis for matched prediction markets.

Given a matched pair and both platforms' normalized YES/NO prices, the engine
picks the outcome side with the larger price gap, decides where to buy and
where to sell, and scores the result:

1. Profit potential is the raw probability gap on the chosen side.
2. Max risk is the worse single-leg exposure, max(price bought, 1 - price sold).
3. Confidence decays with risk and with less than a week to expiry.

The analysis is myopic on purpose: each pair stands alone, with no fees,
slippage or cross-position correlation modelled.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from .config import Config
from .data_normalizer import Market, Platform, PricePair
from .match_scorer import MatchCandidate

logger = logging.getLogger(__name__)


class ArbitrageType(Enum):
    """Types of arbitrage opportunities."""
    PRICE_DISCREPANCY = "price_discrepancy"  # Same event priced differently across platforms


class OutcomeSide(Enum):
    YES = "yes"
    NO = "no"


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {RiskLevel.LOW: 1, RiskLevel.MEDIUM: 2, RiskLevel.HIGH: 3}


def risk_level_for(max_risk: float) -> RiskLevel:
    """Risk tier from the worst single-leg exposure."""
    if max_risk > Config.HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if max_risk > Config.MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def platform_label(platform: Platform) -> str:
    return platform.value.capitalize()


@dataclass
class TradeStrategy:
    """Buy one side on the cheaper platform, sell it on the other."""
    action: str
    buy_platform: Platform
    sell_platform: Platform
    buy_position: OutcomeSide
    sell_position: OutcomeSide
    expected_profit: float
    max_risk: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'action': self.action,
            'platform1': self.buy_platform.value,
            'platform2': self.sell_platform.value,
            'position1': self.buy_position.value,
            'position2': self.sell_position.value,
            'expectedProfit': self.expected_profit,
            'maxRisk': self.max_risk,
        }


@dataclass
class ArbitrageOpportunity:
    """Represents a detected cross-platform price discrepancy."""
    id: str
    market_a: Market
    market_b: Market
    similarity_score: float
    arbitrage_type: ArbitrageType
    profit_potential: float
    risk_level: RiskLevel
    strategy: TradeStrategy
    confidence: float
    time_to_expiry: Optional[float]          # Days, None when no end date is known
    description: str
    outcome: OutcomeSide                     # Same side is traded on both platforms
    price_a: float                           # Price of the chosen side on market_a's platform
    price_b: float
    price_difference: float
    category: str = "General"
    match_factors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.id

    @property
    def profit_percentage(self) -> float:
        return self.profit_potential * 100

    @property
    def match_score(self) -> int:
        return int(round(self.similarity_score * 100))

    @property
    def max_risk(self) -> float:
        return self.strategy.max_risk

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'similarityScore': self.similarity_score,
            'arbitrageType': self.arbitrage_type.value,
            'profitPotential': self.profit_potential,
            'profitPercentage': self.profit_percentage,
            'riskLevel': self.risk_level.value,
            'strategy': self.strategy.to_dict(),
            'confidence': self.confidence,
            'timeToExpiry': self.time_to_expiry,
            'description': self.description,
            'warnings': list(self.warnings),
            'priceDifference': self.price_difference,
            'category': self.category,
            'matchScore': self.match_score,
            'matchFactors': list(self.match_factors),
        }
        for market, price in ((self.market_a, self.price_a), (self.market_b, self.price_b)):
            name = market.platform.value
            data[f'{name}Market'] = market.to_dict()
            data[f'{name}Outcome'] = self.outcome.value
            data[f'{name}Price'] = price
        return data


class ArbitrageEngine:
    """
    Price-discrepancy analysis over matched market pairs.

    Keeps running counters of pairs analyzed and opportunities found.
    """

    def __init__(self, min_profit: float = Config.MIN_PROFIT_THRESHOLD,
                 tie_tolerance: float = Config.PRICE_TIE_TOLERANCE):
        self.min_profit = min_profit
        self.tie_tolerance = tie_tolerance
        self.stats = self._empty_stats()

        logger.debug(f"ArbitrageEngine initialized with min_profit={min_profit * 100:.2f}%")

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'pairs_analyzed': 0,
            'opportunities_found': 0,
            'below_threshold': 0,
            'total_profit_potential': 0.0,
            'by_risk': {level.value: 0 for level in RiskLevel},
        }

    def analyze(self, candidate: MatchCandidate,
                price_a: Optional[PricePair] = None,
                price_b: Optional[PricePair] = None,
                now: Optional[datetime] = None) -> Optional[ArbitrageOpportunity]:
        """
        Score one matched pair, or return None when neither side's price gap
        strictly exceeds the minimum profit. A YES/NO tie goes to YES.
        """
        market_a, market_b = candidate.market_a, candidate.market_b
        price_a = price_a or market_a.prices
        price_b = price_b or market_b.prices
        self.stats['pairs_analyzed'] += 1

        yes_diff = abs(price_a.yes - price_b.yes)
        no_diff = abs(price_a.no - price_b.no)

        if yes_diff >= no_diff - self.tie_tolerance and yes_diff > self.min_profit:
            side, side_a, side_b, profit = OutcomeSide.YES, price_a.yes, price_b.yes, yes_diff
        elif no_diff > self.min_profit:
            side, side_a, side_b, profit = OutcomeSide.NO, price_a.no, price_b.no, no_diff
        else:
            self.stats['below_threshold'] += 1
            logger.debug(f"No arbitrage for {candidate.key}: yes_diff={yes_diff:.4f}, no_diff={no_diff:.4f}")
            return None

        strategy = self._build_strategy(market_a, market_b, side, side_a, side_b, profit)
        risk_level = risk_level_for(strategy.max_risk)
        time_to_expiry = self.time_to_expiry(market_a, market_b, now)
        confidence = self.confidence(candidate.similarity, strategy.max_risk, time_to_expiry)

        opportunity = ArbitrageOpportunity(
            id=candidate.key,
            market_a=market_a,
            market_b=market_b,
            similarity_score=candidate.similarity,
            arbitrage_type=ArbitrageType.PRICE_DISCREPANCY,
            profit_potential=profit,
            risk_level=risk_level,
            strategy=strategy,
            confidence=confidence,
            time_to_expiry=time_to_expiry,
            description=(f'Arbitrage opportunity between "{market_a.title}" on {platform_label(market_a.platform)} '
                         f'and "{market_b.title}" on {platform_label(market_b.platform)}'),
            outcome=side,
            price_a=side_a,
            price_b=side_b,
            price_difference=max(yes_diff, no_diff),
            category=self._category(market_a, market_b),
            match_factors=list(candidate.factors),
            warnings=self.warnings(candidate.similarity, time_to_expiry, market_a, market_b, risk_level),
        )

        self.stats['opportunities_found'] += 1
        self.stats['total_profit_potential'] += profit
        self.stats['by_risk'][risk_level.value] += 1

        logger.info(f"🎯 {strategy.action}: {market_a.title[:50]} "
                    f"| Profit: {profit * 100:.2f}% | Risk: {risk_level.value}")
        return opportunity

    @staticmethod
    def _build_strategy(market_a: Market, market_b: Market, side: OutcomeSide,
                        side_a: float, side_b: float, profit: float) -> TradeStrategy:
        if side_a < side_b:
            buy, sell, bought, sold = market_a, market_b, side_a, side_b
        else:
            buy, sell, bought, sold = market_b, market_a, side_b, side_a

        label = side.value.upper()
        return TradeStrategy(
            action=(f"Buy {label} on {platform_label(buy.platform)}, "
                    f"Sell {label} on {platform_label(sell.platform)}"),
            buy_platform=buy.platform,
            sell_platform=sell.platform,
            buy_position=side,
            sell_position=side,
            expected_profit=profit,
            max_risk=max(bought, 1.0 - sold),
        )

    @staticmethod
    def _category(market_a: Market, market_b: Market) -> str:
        for market in (market_a, market_b):
            if market.platform == Platform.POLYMARKET and market.category:
                return market.category
        return "General"

    @staticmethod
    def time_to_expiry(market_a: Market, market_b: Market,
                       now: Optional[datetime] = None) -> Optional[float]:
        """Days until the earlier known end date, clamped at zero."""
        end_dates = [d for d in (market_a.end_date, market_b.end_date) if d is not None]
        if not end_dates:
            return None

        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        days = (min(end_dates) - now).total_seconds() / 86400
        return max(0.0, days)

    @staticmethod
    def confidence(similarity: float, max_risk: float,
                   time_to_expiry: Optional[float]) -> float:
        """similarity x (1 - max_risk) x min(1, days / 7), bounded to [0, 1]."""
        if time_to_expiry is None:
            time_factor = 1.0
        else:
            time_factor = min(1.0, time_to_expiry / Config.CONFIDENCE_HORIZON_DAYS)
        value = similarity * (1.0 - max_risk) * time_factor
        return min(1.0, max(0.0, value))

    @staticmethod
    def warnings(similarity: float, time_to_expiry: Optional[float],
                 market_a: Market, market_b: Market, risk_level: RiskLevel) -> List[str]:
        warnings = []
        if similarity < Config.ALIGNMENT_WARNING_SIMILARITY:
            warnings.append("Markets may not be perfectly aligned")
        if time_to_expiry is None:
            warnings.append("Expiry date unknown")
        elif time_to_expiry < Config.EXPIRY_WARNING_DAYS:
            warnings.append("Market expires very soon - high time risk")
        if (market_a.volume_24h < Config.LOW_VOLUME_THRESHOLD
                or market_b.volume_24h < Config.LOW_VOLUME_THRESHOLD):
            warnings.append("Low volume markets - execution risk")
        if risk_level == RiskLevel.HIGH:
            warnings.append("High risk strategy - significant potential losses")
        return warnings

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics."""
        return {
            'pairs_analyzed': self.stats['pairs_analyzed'],
            'opportunities_found': self.stats['opportunities_found'],
            'below_threshold': self.stats['below_threshold'],
            'total_profit_potential': self.stats['total_profit_potential'],
            'by_risk': dict(self.stats['by_risk']),
            'config': {
                'min_profit_pct': self.min_profit * 100,
            }
        }

    def reset_stats(self):
        """Reset statistics."""
        self.stats = self._empty_stats()


def calculate_portfolio_risk(opportunities: Iterable[ArbitrageOpportunity]) -> Dict[str, float]:
    """Aggregate exposure, category spread and return per unit of exposure."""
    opportunities = list(opportunities)
    if not opportunities:
        return {'totalExposure': 0.0, 'diversificationScore': 0.0, 'riskAdjustedReturn': 0.0}

    total_exposure = sum(opp.max_risk for opp in opportunities)

    categories = set()
    for opp in opportunities:
        for market in (opp.market_a, opp.market_b):
            if market.category:
                categories.add(market.category)
            categories.update(market.tags)
    diversification = min(1.0, len(categories) / Config.DIVERSIFICATION_CATEGORIES)

    total_profit = sum(opp.profit_potential for opp in opportunities)
    return {
        'totalExposure': total_exposure,
        'diversificationScore': diversification,
        'riskAdjustedReturn': total_profit / max(total_exposure, 0.01),
    }


def filter_by_risk(opportunities: Iterable[ArbitrageOpportunity],
                   max_risk: Union[str, RiskLevel] = RiskLevel.MEDIUM) -> List[ArbitrageOpportunity]:
    """Keep opportunities whose risk tier is no worse than ``max_risk``."""
    if not isinstance(max_risk, RiskLevel):
        try:
            max_risk = RiskLevel(max_risk)
        except ValueError:
            raise ValueError(f"Invalid risk level: {max_risk}. Must be one of {[r.value for r in RiskLevel]}")
    return [opp for opp in opportunities if opp.risk_level.rank <= max_risk.rank]
