"""
Keyword pre-filter applied to user text before any paid provider call.

This is a blunt screen for obvious cases, not a classifier. It is expected to
miss things.
"""

import re
from dataclasses import dataclass
from typing import Optional

INAPPROPRIATE_REASON = "Contains inappropriate language"

# Checked in order; the first match decides the category
MODERATION_PATTERNS = (
    ("hate_or_violence", re.compile(r"\b(hate|kill|murder|suicide)\b", re.IGNORECASE)),
    ("profanity", re.compile(r"\b(fuck|shit|damn|hell)\b", re.IGNORECASE)),
    ("harassment", re.compile(r"\b(harassment|threat|violence)\b", re.IGNORECASE)),
)


@dataclass(frozen=True)
class ModerationVerdict:
    is_appropriate: bool
    reason: Optional[str] = None
    category: Optional[str] = None


def moderate(text: Optional[str]) -> ModerationVerdict:
    """Return the verdict for ``text``. Never raises."""
    if not isinstance(text, str) or not text:
        return ModerationVerdict(is_appropriate=True)

    for category, pattern in MODERATION_PATTERNS:
        if pattern.search(text):
            return ModerationVerdict(
                is_appropriate=False,
                reason=f"{INAPPROPRIATE_REASON} ({category})",
                category=category,
            )

    return ModerationVerdict(is_appropriate=True)
