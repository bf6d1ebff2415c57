"""
Tests for the Polymarket and Kalshi catalog fetchers.

Requests are stubbed at ``_get_page``; no network access is needed.
"""

import asyncio
import os
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cross_arbitrage import api_clients
from cross_arbitrage.api_clients import KalshiClient, PolymarketClient


def params_of(mock, index):
    return mock.call_args_list[index].args[2]


def fake_session(status, payload=None):
    """Session whose ``get`` yields one response with ``status``."""
    response = MagicMock(status=status)
    response.json = AsyncMock(return_value=payload)

    request = MagicMock()
    request.__aenter__ = AsyncMock(return_value=response)
    request.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.get.return_value = request
    return session


class TestGetPage:

    @pytest.mark.asyncio
    async def test_non_200_returns_none(self):
        client = PolymarketClient()
        session = fake_session(500, payload=[{'id': 1}])

        assert await client._get_page(session, 'https://example.com/events', {'limit': 1}) is None
        session.get.return_value.__aenter__.return_value.json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_200_returns_json(self):
        client = KalshiClient()
        session = fake_session(200, payload={'events': []})

        assert await client._get_page(session, 'https://example.com/events', {}) == {'events': []}
        assert session.get.call_args.kwargs['timeout'] is client.timeout

    @pytest.mark.asyncio
    async def test_failed_page_is_not_counted(self):
        client = PolymarketClient()
        assert await client._fetch_page(fake_session(503), 'https://example.com/events', {}) is None
        assert client.pages_fetched == 0


class TestPolymarketClient:

    @pytest.mark.asyncio
    async def test_offset_pagination_stops_on_short_page(self):
        client = PolymarketClient(page_limit=2)
        pages = AsyncMock(side_effect=[[{'id': 1}, {'id': 2}], [{'id': 3}]])

        with patch.object(client, '_get_page', new=pages):
            events = await client.fetch_events()

        assert [e['id'] for e in events] == [1, 2, 3]
        assert pages.call_count == 2
        assert params_of(pages, 0) == {'active': 'true', 'closed': 'false', 'limit': 2, 'offset': 0}
        assert params_of(pages, 1)['offset'] == 2
        assert client.pages_fetched == 2

    @pytest.mark.asyncio
    async def test_respects_max_pages(self):
        client = PolymarketClient(page_limit=1, max_pages=2)
        pages = AsyncMock(return_value=[{'id': 1}])

        with patch.object(client, '_get_page', new=pages):
            events = await client.fetch_events()

        assert len(events) == 2
        assert pages.call_count == 2

    @pytest.mark.asyncio
    async def test_accepts_wrapped_events(self):
        client = PolymarketClient(page_limit=5)
        with patch.object(client, '_get_page', new=AsyncMock(return_value={'events': [{'id': 'a'}]})):
            assert await client.fetch_events() == [{'id': 'a'}]

    @pytest.mark.asyncio
    async def test_client_error_keeps_partial_results(self):
        client = PolymarketClient(page_limit=2)
        pages = AsyncMock(side_effect=[[{'id': 1}, {'id': 2}], aiohttp.ClientError("connection reset")])

        with patch.object(client, '_get_page', new=pages):
            events = await client.fetch_events()

        assert len(events) == 2
        assert client.pages_fetched == 1

    @pytest.mark.asyncio
    async def test_timeout_returns_empty(self):
        client = PolymarketClient()
        with patch.object(client, '_get_page', new=AsyncMock(side_effect=asyncio.TimeoutError())):
            assert await client.fetch_events() == []

    @pytest.mark.asyncio
    async def test_http_failure_returns_empty(self):
        client = PolymarketClient()
        with patch.object(client, '_get_page', new=AsyncMock(return_value=None)):
            assert await client.fetch_events() == []


class TestKalshiClient:

    @pytest.mark.asyncio
    async def test_cursor_pagination(self):
        client = KalshiClient(page_limit=50)
        pages = AsyncMock(side_effect=[
            {'events': [{'event_ticker': 'A'}], 'cursor': 'c1'},
            {'events': [{'event_ticker': 'B'}], 'cursor': ''},
        ])

        with patch.object(client, '_get_page', new=pages):
            events = await client.fetch_events()

        assert [e['event_ticker'] for e in events] == ['A', 'B']
        assert pages.call_count == 2
        assert params_of(pages, 0) == {'limit': 50, 'with_nested_markets': 'true', 'status': 'open'}
        assert params_of(pages, 1)['cursor'] == 'c1'

    @pytest.mark.asyncio
    async def test_empty_page_ends_fetch(self):
        client = KalshiClient()
        pages = AsyncMock(side_effect=[{'events': [{'event_ticker': 'A'}], 'cursor': 'c1'}, {'events': []}])

        with patch.object(client, '_get_page', new=pages):
            events = await client.fetch_events()

        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_error_mid_fetch(self):
        client = KalshiClient()
        pages = AsyncMock(side_effect=[
            {'events': [{'event_ticker': 'A'}], 'cursor': 'c1'},
            aiohttp.ClientError("bad gateway"),
        ])

        with patch.object(client, '_get_page', new=pages):
            events = await client.fetch_events()

        assert [e['event_ticker'] for e in events] == ['A']


@pytest.mark.asyncio
async def test_fetch_catalogs_runs_both_clients():
    with patch.object(PolymarketClient, 'fetch_events', new=AsyncMock(return_value=[{'id': 'p'}])), \
            patch.object(KalshiClient, 'fetch_events', new=AsyncMock(return_value=[{'event_ticker': 'k'}])):
        polymarket_events, kalshi_events = await api_clients.fetch_catalogs(max_pages=1)

    assert polymarket_events == [{'id': 'p'}]
    assert kalshi_events == [{'event_ticker': 'k'}]


def test_base_url_trailing_slash():
    assert KalshiClient(base_url="https://example.com/api/").base_url == "https://example.com/api"


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
