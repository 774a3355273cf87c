"""
Heuristic style checks for rewritten bullets.

Four independent checks, each a simple text heuristic:
- strong verb: first word is a known action verb or a past-tense "-ed" word
- quantified: the text contains a digit or a percent sign
- no taboo: none of the company's taboo phrases appear (case-insensitive)
- target length: within -20% / +80% of the original length
"""

import re
from typing import Optional

from quiver.contexts.targeting.data_structures import CompanyProfile, StyleChecks

STRONG_VERBS = frozenset(
    [
        "achieved", "architected", "built", "created", "delivered", "designed",
        "developed", "engineered", "implemented", "improved", "increased", "launched",
        "led", "optimized", "reduced", "scaled", "shipped", "transformed",
    ]
)  # fmt: skip

LENGTH_TOLERANCE = 0.2
# Rewrites may run longer than they may run short
LONG_SIDE_FACTOR = 1.5


def has_strong_verb(text: str) -> bool:
    words = text.strip().lower().split()
    if not words:
        return False

    first_word = words[0].rstrip(".,!?;:")
    if first_word in STRONG_VERBS:
        return True
    return first_word.endswith("ed") and len(first_word) > 3


def is_quantified(text: str) -> bool:
    return bool(re.search(r"\d", text)) or "%" in text


def has_no_taboo(text: str, company_profile: Optional[CompanyProfile]) -> bool:
    if company_profile is None:
        return True

    text_lower = text.strip().lower()
    for phrase in company_profile.taboo_phrases:
        phrase = phrase.strip().lower()
        if phrase and phrase in text_lower:
            return False
    return True


def within_target_length(length: int, original_length: int) -> bool:
    if original_length == 0:
        return length > 0

    tolerance = original_length * LENGTH_TOLERANCE
    min_length = original_length - tolerance
    max_length = (original_length + tolerance) * LONG_SIDE_FACTOR
    return min_length <= length <= max_length


def validate_style(
    text: str, company_profile: Optional[CompanyProfile], original_length: int
) -> StyleChecks:
    """Run all four style checks on rewritten text."""
    return StyleChecks(
        strong_verb=has_strong_verb(text),
        quantified=is_quantified(text),
        no_taboo=has_no_taboo(text, company_profile),
        target_length=within_target_length(len(text), original_length),
    )
