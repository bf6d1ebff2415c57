"""Tests for flat-file catalog loading and saving."""

import json
import os
import sys
from datetime import datetime, timezone

import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cross_arbitrage.catalog import (
    find_latest_file,
    flatten_kalshi_events,
    flatten_polymarket_events,
    load_catalogs,
    load_events,
    save_events,
)
from cross_arbitrage.config import Config
from cross_arbitrage.data_normalizer import Platform

POLYMARKET_EVENTS = [
    {
        'id': 'e1',
        'title': 'Presidential Election',
        'tags': [{'slug': 'politics'}],
        'markets': [
            {'id': 'p1', 'question': 'Will Trump win the 2024 election?',
             'outcomePrices': '["0.65","0.35"]', 'active': True, 'closed': False},
            {'id': 'p2', 'question': 'Will Biden run?', 'active': False},
            {'id': 'p3', 'question': 'Will turnout exceed 60%?'},
        ],
    },
    'not an event',
    {'id': 'e2', 'markets': None},
]

KALSHI_EVENTS = [
    {
        'event_ticker': 'FED-25MAR',
        'title': 'Fed decision',
        'category': 'Economics',
        'markets': [
            {'ticker': 'FED-25MAR-CUT', 'yes_sub_title': 'Cut 25bps', 'last_price': 40},
            'junk',
        ],
    },
]


def write_catalog(directory, name, events):
    path = os.path.join(directory, name)
    with open(path, 'w') as f:
        json.dump({'metadata': {}, 'events': events}, f)
    return path


class TestFiles:

    def test_latest_file_by_name(self, tmp_path):
        write_catalog(tmp_path, 'processed-kalshi-offset(0-100).json', [])
        latest = write_catalog(tmp_path, 'processed-kalshi-offset(0-200).json', [])
        write_catalog(tmp_path, 'processed-polymarket-offset(0-900).json', [])
        (tmp_path / 'processed-kalshi-offset(0-300).txt').write_text('')

        assert find_latest_file(str(tmp_path), Config.KALSHI_FILE_PREFIX) == latest

    def test_missing_directory_or_files(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            find_latest_file(str(tmp_path / 'missing'), Config.KALSHI_FILE_PREFIX)
        with pytest.raises(FileNotFoundError):
            find_latest_file(str(tmp_path), Config.KALSHI_FILE_PREFIX)

    def test_load_events_accepts_both_shapes(self, tmp_path):
        wrapped = write_catalog(tmp_path, 'wrapped.json', [{'id': 'e1'}])
        bare = tmp_path / 'bare.json'
        bare.write_text(json.dumps([{'id': 'e1'}, {'id': 'e2'}]))
        odd = tmp_path / 'odd.json'
        odd.write_text(json.dumps({'events': 'nope'}))

        assert load_events(wrapped) == [{'id': 'e1'}]
        assert len(load_events(str(bare))) == 2
        assert load_events(str(odd)) == []


class TestFlatten:

    def test_polymarket_active_filter(self):
        markets = flatten_polymarket_events(POLYMARKET_EVENTS)
        assert [m.id for m in markets] == ['p1', 'p3']
        assert markets[0].platform == Platform.POLYMARKET
        assert markets[0].tags == ('politics',)
        assert markets[0].event_id == 'e1'

    def test_polymarket_all_markets(self):
        assert len(flatten_polymarket_events(POLYMARKET_EVENTS, active_only=False)) == 3

    def test_kalshi_uses_event_context(self):
        markets = flatten_kalshi_events(KALSHI_EVENTS)
        assert len(markets) == 1
        assert markets[0].title == 'Cut 25bps'
        assert markets[0].category == 'Economics'
        assert markets[0].yes_price == pytest.approx(0.4)

    def test_empty_input(self):
        assert flatten_kalshi_events(None) == []
        assert flatten_polymarket_events([]) == []


class TestRoundTrip:

    def test_save_then_load_catalogs(self, tmp_path):
        fetched_at = datetime(2025, 1, 1, tzinfo=timezone.utc)
        poly_path = save_events(POLYMARKET_EVENTS[:1], str(tmp_path), Config.POLYMARKET_FILE_PREFIX, fetched_at)
        save_events(KALSHI_EVENTS, str(tmp_path), Config.KALSHI_FILE_PREFIX, fetched_at)

        assert os.path.basename(poly_path) == 'processed-polymarket-offset(0-1).json'
        with open(poly_path) as f:
            metadata = json.load(f)['metadata']
        assert metadata == {'fetchedAt': '2025-01-01T00:00:00+00:00', 'totalEvents': 1, 'totalMarkets': 3}

        polymarkets, kalshi_markets = load_catalogs(str(tmp_path))
        assert [m.id for m in polymarkets] == ['p1', 'p3']
        assert [m.id for m in kalshi_markets] == ['FED-25MAR-CUT']


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
