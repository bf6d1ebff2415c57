from typing import Iterable, Mapping, Optional, Sequence, Tuple

from .config import Config


def categories_match(source_tags: Optional[Iterable[str]], target_category: Optional[str],
                     mapping: Mapping[str, Sequence[str]] = Config.CATEGORY_MAPPING) -> bool:
    """True if any source tag maps to a list containing the target category.

    Matching is exact and case-sensitive against the table's strings.
    """
    if not source_tags or not target_category:
        return False

    for tag in source_tags:
        mapped = mapping.get(tag)
        if mapped and target_category in mapped:
            return True
    return False


class CategoryMapper:
    """Maps Polymarket tag slugs onto Kalshi categories."""

    def __init__(self, mapping: Mapping[str, Sequence[str]] = Config.CATEGORY_MAPPING):
        self.mapping = mapping

    def target_categories(self, tag: str) -> Tuple[str, ...]:
        return tuple(self.mapping.get(tag, ()))

    def matches(self, source_tags: Optional[Iterable[str]], target_category: Optional[str]) -> bool:
        return categories_match(source_tags, target_category, self.mapping)
