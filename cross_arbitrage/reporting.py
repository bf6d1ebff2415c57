"""
Ranking, bucketing and JSON reports for matches and opportunities.

The batch profile ranks and buckets on similarity; the live profile ranks
and buckets on profit potential. Both produce the same report shape.
"""

import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import Config, ThresholdProfile
from .utils import format_profit, format_risk

logger = logging.getLogger(__name__)

BUCKETS = ('exact', 'high', 'medium', 'low')


def score_of(item, sort_key: str) -> float:
    """Primary score of a match or opportunity under ``sort_key``."""
    if sort_key == 'similarity':
        value = getattr(item, 'similarity', None)
        if value is None:
            value = getattr(item, 'similarity_score', 0.0)
        return value
    if sort_key == 'profit_potential':
        return getattr(item, 'profit_potential', 0.0)
    raise ValueError(f"Invalid sort key: {sort_key}. Must be one of ['similarity', 'profit_potential']")


def rank(items: Sequence[Any], sort_key: str) -> List[Any]:
    """Descending by score; equal scores keep their input order."""
    return sorted(items, key=lambda item: score_of(item, sort_key), reverse=True)


def cut_points(profile: ThresholdProfile) -> Tuple[Tuple[str, float], ...]:
    """Bucket cut points; on profit the lowest one never exceeds ``min_profit``."""
    cuts = list(profile.buckets)
    if profile.sort_key == 'profit_potential' and cuts:
        name, cut = cuts[-1]
        cuts[-1] = (name, min(cut, profile.min_profit))
    return tuple(cuts)


def bucket(items: Sequence[Any], profile: ThresholdProfile) -> Dict[str, List[Any]]:
    """Place each item in the highest bucket whose cut point it reaches."""
    cuts = cut_points(profile)
    buckets = {name: [] for name, _ in cuts}
    for item in rank(items, profile.sort_key):
        value = score_of(item, profile.sort_key)
        for name, cut in cuts:
            if value >= cut:
                buckets[name].append(item)
                break
    return buckets


def generate_report(items: Sequence[Any], profile: ThresholdProfile,
                    generated_at: Optional[datetime] = None) -> Dict[str, Any]:
    generated_at = generated_at or datetime.now(timezone.utc)
    buckets = bucket(items, profile)

    return {
        'metadata': {
            'generatedAt': generated_at.isoformat(),
            'profile': profile.name,
            'sortKey': profile.sort_key,
            'totalOpportunities': sum(len(members) for members in buckets.values()),
            'categories': {name: len(members) for name, members in buckets.items()},
            'thresholds': dict(cut_points(profile)),
        },
        'opportunities': {
            name: [member.to_dict() for member in members]
            for name, members in buckets.items()
        },
    }


def save_report(report: Dict[str, Any], output_dir: str = Config.DATA_DIR,
                prefix: str = Config.REPORT_FILE_PREFIX) -> str:
    """Write the report as pretty-printed JSON and return its path."""
    generated_at = report.get('metadata', {}).get('generatedAt') or datetime.now(timezone.utc).isoformat()
    timestamp = re.sub(r'[:.+]', '-', generated_at)

    os.makedirs(output_dir, exist_ok=True)
    filepath = os.path.join(output_dir, f"{prefix}-{timestamp}.json")
    with open(filepath, 'w') as f:
        json.dump(report, f, indent=2, default=str)

    logger.info(f"Report saved to {filepath}")
    return filepath


def _describe(index: int, entry: Dict[str, Any]) -> str:
    if 'profitPotential' in entry:
        strategy = entry.get('strategy', {})
        return (f"  {index}. {format_profit(entry['profitPotential'])} | "
                f"risk {entry['riskLevel']} ({format_risk(strategy.get('maxRisk', 0.0))}) | "
                f"{strategy.get('action', '')}\n"
                f"     {entry.get('description', '')[:100]}")

    titles = [value['title'] for value in entry.values()
              if isinstance(value, dict) and 'title' in value]
    return f"  {index}. {entry.get('score', 0.0):.3f} | " + " <-> ".join(t[:50] for t in titles)


def summarize(report: Dict[str, Any], top: int = 5) -> List[str]:
    """Human-readable summary lines for the command line."""
    metadata = report['metadata']
    lines = [
        "=" * 60,
        f"ARBITRAGE REPORT | profile: {metadata.get('profile', '?')} | {metadata['generatedAt']}",
        "=" * 60,
        f"Total: {metadata['totalOpportunities']}",
    ]
    for name, count in metadata['categories'].items():
        lines.append(f"  {name:<7} (>= {metadata['thresholds'][name]}): {count}")

    if not metadata['totalOpportunities']:
        lines.append("\n❌ Nothing above threshold")
        return lines

    lines.append(f"\n🎯 Top {top}:")
    ranked = [entry for name in metadata['categories'] for entry in report['opportunities'][name]]
    for index, entry in enumerate(ranked[:top], start=1):
        lines.append(_describe(index, entry))
    return lines
