"""
Flat-file market catalogs.

Catalog files hold ``{"metadata": {...}, "events": [...]}`` (or a bare list
of events), each event carrying its nested ``markets``. Files are named
``<prefix>(<first>-<last>).json``; the latest is picked by name.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .config import Config
from .data_normalizer import DataNormalizer, Market

logger = logging.getLogger(__name__)


def find_latest_file(directory: str, prefix: str) -> str:
    """Path of the last ``<prefix>*.json`` file in name order."""
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"Data directory not found: {directory}")

    files = sorted(
        name for name in os.listdir(directory)
        if name.startswith(prefix) and name.endswith('.json')
    )
    if not files:
        raise FileNotFoundError(f"No {prefix}*.json files found in {directory}")
    return os.path.join(directory, files[-1])


def load_events(path: str) -> List[Dict[str, Any]]:
    with open(path, 'r') as f:
        data = json.load(f)

    events = data.get('events', []) if isinstance(data, dict) else data
    if not isinstance(events, list):
        logger.warning(f"Unexpected events payload in {path}: {type(events).__name__}")
        return []
    logger.info(f"Loaded {len(events)} events from {path}")
    return events


def _is_open(market: Mapping[str, Any]) -> bool:
    # Processed files drop the flags; absent means the market already passed the filter
    return market.get('active', True) is True and market.get('closed', False) is False


def _event_markets(events: Iterable[Any]) -> Iterable[Tuple[Mapping[str, Any], Mapping[str, Any]]]:
    for event in events or []:
        if not isinstance(event, Mapping):
            logger.debug(f"Skipping non-mapping event: {event!r}")
            continue
        markets = event.get('markets') or []
        if not isinstance(markets, list):
            continue
        for market in markets:
            if isinstance(market, Mapping):
                yield event, market
            else:
                logger.debug(f"Skipping non-mapping market in event {event.get('id')}")


def flatten_polymarket_events(events: Iterable[Any], active_only: bool = True) -> List[Market]:
    """Project every nested Polymarket market with its event as context."""
    markets = []
    for event, market in _event_markets(events):
        if active_only and not _is_open(market):
            continue
        markets.append(DataNormalizer.from_polymarket(market, event))
    return markets


def flatten_kalshi_events(events: Iterable[Any]) -> List[Market]:
    """Project every nested Kalshi market with its event as context."""
    return [DataNormalizer.from_kalshi(market, event) for event, market in _event_markets(events)]


def load_catalogs(data_dir: str = Config.DATA_DIR) -> Tuple[List[Market], List[Market]]:
    """Latest processed Polymarket and Kalshi catalogs from ``data_dir``."""
    polymarket_file = find_latest_file(data_dir, Config.POLYMARKET_FILE_PREFIX)
    kalshi_file = find_latest_file(data_dir, Config.KALSHI_FILE_PREFIX)

    polymarkets = flatten_polymarket_events(load_events(polymarket_file))
    kalshi_markets = flatten_kalshi_events(load_events(kalshi_file))

    logger.info(f"Catalogs: {len(polymarkets)} Polymarket markets, {len(kalshi_markets)} Kalshi markets")
    return polymarkets, kalshi_markets


def save_events(events: List[Dict[str, Any]], directory: str, prefix: str,
                fetched_at: Optional[datetime] = None) -> str:
    """Write fetched events as ``<prefix>(0-<count>).json`` and return the path."""
    fetched_at = fetched_at or datetime.now(timezone.utc)
    os.makedirs(directory, exist_ok=True)

    filepath = os.path.join(directory, f"{prefix}(0-{len(events)}).json")
    data = {
        'metadata': {
            'fetchedAt': fetched_at.isoformat(),
            'totalEvents': len(events),
            'totalMarkets': sum(len(event.get('markets') or []) for event in events
                                if isinstance(event, Mapping)),
        },
        'events': events,
    }
    with open(filepath, 'w') as f:
        json.dump(data, f, indent=2, default=str)

    logger.info(f"Saved {len(events)} events to {filepath}")
    return filepath
