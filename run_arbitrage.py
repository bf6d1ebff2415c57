#!/usr/bin/env python3
"""
Cross-Platform Arbitrage Scanner for Prediction Markets

Matches Polymarket markets against Kalshi markets describing the same event,
then reports the matches (batch profile) or the price discrepancies between
them (live profile) as a bucketed JSON report.

Catalogs come from the latest processed files in the data directory, or
straight from the public APIs with --source api.
"""

import asyncio
import argparse
import dataclasses
import logging
import sys
from typing import List, Optional, Tuple

from cross_arbitrage.config import Config
from cross_arbitrage.api_clients import fetch_catalogs
from cross_arbitrage.catalog import (
    flatten_kalshi_events, flatten_polymarket_events, load_catalogs, save_events
)
from cross_arbitrage.data_normalizer import Market
from cross_arbitrage.market_analyzer import MarketAnalyzer, PAIR_FILTERS, STRATEGIES
from cross_arbitrage.reporting import save_report, summarize

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Cross-Platform Arbitrage Scanner')
    parser.add_argument('--profile', choices=list(Config.PROFILES.keys()), default=Config.DEFAULT_PROFILE,
                        help=f'Threshold profile (default: {Config.DEFAULT_PROFILE})')
    parser.add_argument('--strategy', choices=list(STRATEGIES.keys()), default=None,
                        help="Match strategy (default: the profile's own)")
    parser.add_argument('--source', choices=['files', 'api'], default='files',
                        help='Where catalogs come from (default: files)')
    parser.add_argument('--data-dir', default=Config.DATA_DIR,
                        help=f'Directory with processed catalog files (default: {Config.DATA_DIR})')
    parser.add_argument('--output-dir', default=Config.DATA_DIR,
                        help=f'Directory for the JSON report (default: {Config.DATA_DIR})')
    parser.add_argument('--prefilter', choices=list(PAIR_FILTERS.keys()), default='none',
                        help='Candidate pair pre-filter (default: none, full cross product)')
    parser.add_argument('--workers', type=int, default=Config.MAX_WORKERS,
                        help=f'Worker threads for pair scoring (default: {Config.MAX_WORKERS})')
    parser.add_argument('--min-profit', type=float, default=None,
                        help='Minimum profit percentage (default: profile value, 1.0)')
    parser.add_argument('--max-pages', type=int, default=Config.MAX_PAGES,
                        help=f'Page limit per platform with --source api (default: {Config.MAX_PAGES})')
    parser.add_argument('--top', type=int, default=10,
                        help='Entries to print in the summary (default: 10)')
    return parser


async def load_markets(args) -> Tuple[List[Market], List[Market]]:
    """Load both catalogs; raises on missing or unreadable files."""
    if args.source == 'api':
        polymarket_events, kalshi_events = await fetch_catalogs(args.max_pages)
        save_events(polymarket_events, args.data_dir, Config.POLYMARKET_FILE_PREFIX)
        save_events(kalshi_events, args.data_dir, Config.KALSHI_FILE_PREFIX)
        return flatten_polymarket_events(polymarket_events), flatten_kalshi_events(kalshi_events)

    return load_catalogs(args.data_dir)


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    Config.setup_logging()

    profile = Config.get_profile(args.profile)
    if args.min_profit is not None:
        if profile.sort_key == 'similarity':
            logger.warning(f"--min-profit has no effect with the '{profile.name}' profile, "
                           f"which reports matches without pricing them")
        profile = dataclasses.replace(profile, min_profit=args.min_profit / 100)

    logger.info("=" * 60)
    logger.info(f"CROSS-PLATFORM ARBITRAGE SCAN | profile: {profile.name} | source: {args.source}")
    logger.info("=" * 60)

    try:
        polymarkets, kalshi_markets = await load_markets(args)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load catalogs: {e}")
        print("💡 Fetch and process the catalogs first, or run with --source api")
        return 1

    analyzer = MarketAnalyzer(
        profile=profile,
        strategy=args.strategy,
        pair_filter=args.prefilter,
        max_workers=args.workers,
    )
    report = analyzer.build_report(polymarkets, kalshi_markets)

    print()
    for line in summarize(report, top=args.top):
        print(line)

    path = save_report(report, args.output_dir)
    print(f"\n💾 Report saved to: {path}")

    stats = analyzer.get_stats()
    logger.info(f"Comparisons: {stats['comparisons']} | Matches: {stats['matches']} "
                f"| Opportunities: {stats['opportunities']}")
    return 0


def cli():
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    cli()
