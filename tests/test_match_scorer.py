"""Tests for the composite match scorer."""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cross_arbitrage.data_normalizer import Market, Platform
from cross_arbitrage.match_scorer import MatchCandidate, MatchScorer, date_proximity, month_difference

QUESTION = "Will Trump win the 2024 election?"
BASE_DATE = datetime(2024, 11, 5, tzinfo=timezone.utc)


def polymarket(title=QUESTION, tags=('politics',), end_date=None, **kwargs):
    return Market(id='p1', platform=Platform.POLYMARKET, title=title, tags=tags, end_date=end_date, **kwargs)


def kalshi(title=QUESTION, category='Politics', end_date=None, **kwargs):
    return Market(id='k1', platform=Platform.KALSHI, title=title, category=category, end_date=end_date, **kwargs)


class TestDateProximity:

    def test_bands(self):
        assert date_proximity(BASE_DATE, BASE_DATE + timedelta(days=89)) == 1.0
        assert date_proximity(BASE_DATE, BASE_DATE + timedelta(days=90)) == 0.5
        assert date_proximity(BASE_DATE, BASE_DATE - timedelta(days=179)) == 0.5
        assert date_proximity(BASE_DATE, BASE_DATE + timedelta(days=180)) == 0.1

    def test_missing_date(self):
        assert date_proximity(None, BASE_DATE) is None
        assert month_difference(BASE_DATE, None) is None

    def test_month_difference_uses_thirty_day_months(self):
        assert month_difference(BASE_DATE, BASE_DATE + timedelta(days=45)) == pytest.approx(1.5)


class TestMatchScorer:

    @pytest.fixture
    def scorer(self):
        return MatchScorer()

    def test_missing_dates_omit_date_term(self, scorer):
        result = scorer.score(polymarket(), kalshi())
        # 0.4 title + 0.3 entities + 0.2 category, nothing from the date term
        assert result.score == pytest.approx(0.9)
        assert result.title_similarity == 1.0
        assert result.entity_score == 1.0
        assert result.category_match is True
        assert result.date_proximity is None
        assert len(result.factors) == 3

    def test_close_dates_reach_full_score(self, scorer):
        result = scorer.score(polymarket(end_date=BASE_DATE), kalshi(end_date=BASE_DATE + timedelta(days=1)))
        assert result.score == pytest.approx(1.0)
        assert result.date_proximity == 1.0
        assert result.factors[-1] == "Date proximity: 0.0 months"

    def test_naive_end_date_compares_with_aware(self, scorer):
        result = scorer.score(polymarket(end_date=datetime(2024, 11, 5)), kalshi(end_date=BASE_DATE + timedelta(days=1)))
        assert result.date_proximity == 1.0
        assert result.score == pytest.approx(1.0)

    def test_distant_dates_lower_the_score(self, scorer):
        middle = scorer.score(polymarket(end_date=BASE_DATE), kalshi(end_date=BASE_DATE + timedelta(days=120)))
        far = scorer.score(polymarket(end_date=BASE_DATE), kalshi(end_date=BASE_DATE + timedelta(days=200)))
        assert middle.score == pytest.approx(0.95)
        assert far.score == pytest.approx(0.91)

    def test_category_mismatch(self, scorer):
        result = scorer.score(polymarket(), kalshi(category='Sports'))
        assert result.category_match is False
        assert result.score == pytest.approx(0.7)
        assert "Category match: No" in result.factors

    def test_argument_order_does_not_matter(self, scorer):
        forward = scorer.score(polymarket(), kalshi())
        backward = scorer.score(kalshi(), polymarket())
        assert forward.score == pytest.approx(backward.score)
        assert backward.category_match is True

    def test_factor_strings(self, scorer):
        result = scorer.score(polymarket(), kalshi())
        assert result.factors[0] == "Title similarity: 100.0%"
        assert result.factors[1] == "Entity matching: 100.0%"
        assert result.factors[2] == "Category match: Yes"

    def test_score_bounded(self, scorer):
        result = scorer.score(polymarket(title="Apples"), kalshi(title="Oranges", category=''))
        assert 0.0 <= result.score <= 1.0

    def test_invalid_weights(self):
        with pytest.raises(ValueError):
            MatchScorer(weights={'title': 1.0})
        with pytest.raises(ValueError):
            MatchScorer(weights={'title': 0.5, 'entities': 0.5, 'category': -0.1, 'date': 0.1})


def test_match_candidate_key_and_dict():
    candidate = MatchCandidate(
        market_a=polymarket(), market_b=kalshi(),
        similarity=0.9, strategy='weighted', title_similarity=1.0,
        category_match=True, factors=["Category match: Yes"],
    )
    assert candidate.key == 'p1-k1'
    data = candidate.to_dict()
    assert data['score'] == 0.9
    assert data['polymarket']['title'] == QUESTION
    assert data['kalshi']['category'] == 'Politics'
    assert data['breakdown']['categoryMatch'] is True


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
