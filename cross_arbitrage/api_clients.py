"""
Catalog fetchers for the public Polymarket Gamma and Kalshi REST APIs.

Both clients page through open events with nested markets and stop at
``max_pages``. HTTP and network failures end the fetch early; whatever was
collected so far is returned, since a partial catalog is valid input.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from .config import Config

logger = logging.getLogger(__name__)


class RestCatalogClient:
    """Shared paging and request handling."""

    platform = ""

    def __init__(self, base_url: str, page_limit: int, max_pages: int = Config.MAX_PAGES,
                 timeout: float = Config.REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.page_limit = page_limit
        self.max_pages = max_pages
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.pages_fetched = 0

    async def _get_page(self, session: aiohttp.ClientSession, url: str,
                        params: Dict[str, Any]) -> Optional[Any]:
        """One GET; None on a non-200 response."""
        async with session.get(url, params=params, timeout=self.timeout) as response:
            if response.status == 200:
                return await response.json()
            logger.warning(f"Failed to fetch {self.platform} page {url} ({params}): HTTP {response.status}")
            return None

    async def _fetch_page(self, session: aiohttp.ClientSession, url: str,
                          params: Dict[str, Any]) -> Optional[Any]:
        try:
            data = await self._get_page(session, url, params)
        except asyncio.TimeoutError:
            logger.warning(f"Timeout fetching {self.platform} page {self.pages_fetched + 1}")
            return None
        except aiohttp.ClientError as e:
            logger.warning(f"Error fetching {self.platform} page {self.pages_fetched + 1}: {e}")
            return None

        if data is not None:
            self.pages_fetched += 1
        return data


class PolymarketClient(RestCatalogClient):
    """Gamma API ``/events`` with offset pagination."""

    platform = "Polymarket"

    def __init__(self, base_url: str = Config.POLYMARKET_GAMMA_BASE,
                 page_limit: int = Config.POLYMARKET_PAGE_LIMIT, **kwargs):
        super().__init__(base_url, page_limit, **kwargs)

    async def fetch_events(self, max_pages: Optional[int] = None) -> List[Dict[str, Any]]:
        max_pages = max_pages or self.max_pages
        url = f"{self.base_url}/events"
        events = []
        offset = 0

        async with aiohttp.ClientSession() as session:
            for _ in range(max_pages):
                params = {'active': 'true', 'closed': 'false', 'limit': self.page_limit, 'offset': offset}
                data = await self._fetch_page(session, url, params)
                if data is None:
                    break

                if isinstance(data, dict):
                    data = data.get('events', [])
                page = data if isinstance(data, list) else []
                if not page:
                    break

                events.extend(page)
                logger.info(f"Fetched Polymarket events at offset {offset}: {len(page)}, total: {len(events)}")

                # A short page is the last one
                if len(page) < self.page_limit:
                    break
                offset += self.page_limit

        logger.info(f"Polymarket fetch complete: {len(events)} events")
        return events


class KalshiClient(RestCatalogClient):
    """Kalshi ``/events`` with nested markets and cursor pagination."""

    platform = "Kalshi"

    def __init__(self, base_url: str = Config.KALSHI_API_BASE,
                 page_limit: int = Config.KALSHI_PAGE_LIMIT, **kwargs):
        super().__init__(base_url, page_limit, **kwargs)

    async def fetch_events(self, max_pages: Optional[int] = None) -> List[Dict[str, Any]]:
        max_pages = max_pages or self.max_pages
        url = f"{self.base_url}/events"
        events = []
        cursor = None

        async with aiohttp.ClientSession() as session:
            for page_count in range(1, max_pages + 1):
                params = {'limit': self.page_limit, 'with_nested_markets': 'true', 'status': 'open'}
                if cursor:
                    params['cursor'] = cursor

                data = await self._fetch_page(session, url, params)
                if not isinstance(data, dict):
                    break

                page = data.get('events', [])
                if not page:
                    logger.info(f"No more Kalshi events after page {page_count - 1}")
                    break

                events.extend(page)
                logger.info(f"Fetched Kalshi page {page_count}, {len(page)} events, total: {len(events)}")

                cursor = data.get('cursor')
                if not cursor:
                    break

        logger.info(f"Kalshi fetch complete: {len(events)} events")
        return events


async def fetch_catalogs(max_pages: Optional[int] = None):
    """Fetch both platforms' events concurrently."""
    polymarket_events, kalshi_events = await asyncio.gather(
        PolymarketClient().fetch_events(max_pages),
        KalshiClient().fetch_events(max_pages),
    )
    return polymarket_events, kalshi_events
