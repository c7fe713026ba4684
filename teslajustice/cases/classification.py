"""
Keyword classification of post content into target and damage categories.

Terms match at the start of a word, so "keyed" counts as "key" but
"white" does not count as "hit".
"""

import re
from functools import lru_cache

from teslajustice.core.config import (
    BUILDING_KEYWORDS,
    DAMAGE_KEYWORDS,
    DEFAULT_DAMAGE_TYPE,
    PROPERTY_KEYWORDS,
)


@lru_cache(maxsize=256)
def _term_pattern(term: str) -> re.Pattern:
    return re.compile(r"\b" + re.escape(term), re.IGNORECASE)


def mentions(text: str, terms) -> bool:
    """True if any of ``terms`` starts a word in ``text``."""
    return any(_term_pattern(t).search(text) for t in terms)


def determine_target_type(content: str) -> str:
    if mentions(content, BUILDING_KEYWORDS):
        return "building"
    if mentions(content, PROPERTY_KEYWORDS):
        return "property"
    return "vehicle"


def determine_building_type(content: str) -> str:
    if mentions(content, ["dealership", "showroom"]):
        return "dealership"
    if mentions(content, ["supercharger", "charging"]):
        return "supercharger"
    if mentions(content, ["store"]):
        return "store"
    if mentions(content, ["factory", "gigafactory"]):
        return "factory"
    return "other"


def determine_property_type(content: str) -> str:
    if mentions(content, ["sign", "billboard"]):
        return "sign"
    if mentions(content, ["equipment"]):
        return "equipment"
    return "other"


def determine_damage_types(content: str) -> list[str]:
    """
    Return every damage category the content mentions, in a fixed order.

    Each category is checked independently. Never returns an empty list.
    """
    damage_types = []
    for tag, (terms, qualifiers) in DAMAGE_KEYWORDS.items():
        if not mentions(content, terms):
            continue
        if qualifiers and not mentions(content, qualifiers):
            continue
        damage_types.append(tag)

    if not damage_types:
        damage_types.append(DEFAULT_DAMAGE_TYPE)
    return damage_types
