"""
Coarse entity extraction for secondary market matching.

The default extractor is regex based. Its proper-noun pattern treats any run
of capitalized words as a company name, so sentence-initial words ("Will")
are picked up too. Swap in another ``EntityExtractor`` to change that
without touching the match scorer.
"""

import re
from dataclasses import dataclass
from typing import Callable, Sequence, Tuple

from .config import Config
from .similarity import calculate_similarity


@dataclass(frozen=True)
class Entities:
    """Entities pulled from one piece of market text."""
    dates: Tuple[str, ...] = ()
    numbers: Tuple[str, ...] = ()
    companies: Tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not (self.dates or self.numbers or self.companies)

    def to_dict(self):
        return {
            'dates': list(self.dates),
            'numbers': list(self.numbers),
            'companies': list(self.companies),
        }


class EntityExtractor:
    """Interface for entity extraction backends."""

    def extract(self, text) -> Entities:
        raise NotImplementedError


class RegexEntityExtractor(EntityExtractor):
    """Years, numbers/percentages and capitalized-word runs."""

    DATE_PATTERN = re.compile(r'\b20\d{2}(?:-\d{2})?\b')
    NUMBER_PATTERN = re.compile(r'\b\d+(?:\.\d+)?%?')
    COMPANY_PATTERN = re.compile(r'\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b')

    def extract(self, text) -> Entities:
        if not text or not isinstance(text, str):
            return Entities()

        return Entities(
            dates=tuple(self.DATE_PATTERN.findall(text)),
            numbers=tuple(self.NUMBER_PATTERN.findall(text)),
            companies=tuple(self.COMPANY_PATTERN.findall(text)),
        )


DEFAULT_EXTRACTOR = RegexEntityExtractor()


def extract_entities(text, extractor: EntityExtractor = DEFAULT_EXTRACTOR) -> Entities:
    return extractor.extract(text)


def _overlap_ratio(items1: Sequence[str], items2: Sequence[str],
                   same: Callable[[str, str], bool]) -> float:
    matched = sum(1 for item1 in items1 if any(same(item1, item2) for item2 in items2))
    return matched / max(len(items1), len(items2))


def compare_entities(entities1: Entities, entities2: Entities,
                     company_threshold: float = Config.COMPANY_MATCH_THRESHOLD) -> float:
    """
    Average overlap ratio over the entity categories present on both sides.

    Categories with no items on either side are left out of the average
    rather than counted as zero. Dates and numbers compare exactly; company
    names compare with the similarity scorer.
    """
    ratios = []

    if entities1.dates and entities2.dates:
        ratios.append(_overlap_ratio(entities1.dates, entities2.dates, lambda a, b: a == b))

    if entities1.numbers and entities2.numbers:
        ratios.append(_overlap_ratio(entities1.numbers, entities2.numbers, lambda a, b: a == b))

    if entities1.companies and entities2.companies:
        ratios.append(_overlap_ratio(
            entities1.companies, entities2.companies,
            lambda a, b: calculate_similarity(a, b) > company_threshold
        ))

    if not ratios:
        return 0.0
    return sum(ratios) / len(ratios)
