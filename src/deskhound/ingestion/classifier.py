"""Keyword based category and priority assignment.

Both steps are pure: they read only their arguments and log what they decide,
so the same text and rule set always produce the same result.

Category selection scores every keyword hit across every rule:

- a keyword found anywhere in the lowercased text scores its own length;
- a keyword that is also a whole whitespace-separated token gets
  ``EXACT_WORD_BONUS`` on top, so exact words beat longer partial matches.

The best score wins. Only a strictly higher score replaces the current best,
so ties keep the rule that was iterated first.

Priority is an ordered precedence list rather than a score; the first entry
whose predicate holds decides.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

import structlog

from deskhound.ingestion.types import CategoryRule, MessageCategory, MessagePriority

_logger = structlog.get_logger()

EXACT_WORD_BONUS = 100
DEFAULT_CATEGORY: str = MessageCategory.GENERAL_QUESTION

URGENCY_MARKERS: tuple[str, ...] = ("urgent", "emergency", "asap")
HIGH_PRIORITY_CATEGORIES: frozenset[str] = frozenset(
    {MessageCategory.HARDWARE_ISSUE, MessageCategory.VPN_SUPPORT}
)
MEDIUM_PRIORITY_CATEGORIES: frozenset[str] = frozenset(
    {MessageCategory.ACCESS_REQUEST, MessageCategory.SOFTWARE_INSTALL}
)

PriorityPredicate = Callable[[str, str], bool]


@dataclass(frozen=True)
class KeywordMatch:
    category: str
    keyword: str
    score: int


@dataclass(frozen=True)
class ClassificationResult:
    category: str
    priority: MessagePriority
    keyword: str | None = None
    score: int = 0


def _has_urgency_marker(lowered_text: str, _category: str) -> bool:
    return any(marker in lowered_text for marker in URGENCY_MARKERS)


def _in_high_set(_lowered_text: str, category: str) -> bool:
    return category in HIGH_PRIORITY_CATEGORIES


def _in_medium_set(_lowered_text: str, category: str) -> bool:
    return category in MEDIUM_PRIORITY_CATEGORIES


PRIORITY_PRECEDENCE: tuple[tuple[PriorityPredicate, MessagePriority], ...] = (
    (_has_urgency_marker, MessagePriority.URGENT),
    (_in_high_set, MessagePriority.HIGH),
    (_in_medium_set, MessagePriority.MEDIUM),
)


def score_keyword(keyword: str, lowered_text: str, tokens: Sequence[str]) -> int:
    """Score one keyword against already lowercased text; 0 means no match."""
    needle = keyword.lower()
    if not needle or needle not in lowered_text:
        return 0
    score = len(needle)
    if needle in tokens:
        score += EXACT_WORD_BONUS
    return score


def best_match(text: str, rules: Iterable[CategoryRule]) -> KeywordMatch | None:
    lowered = text.lower()
    tokens = lowered.split()
    best: KeywordMatch | None = None

    for rule in rules:
        for keyword in rule.keywords:
            score = score_keyword(keyword, lowered, tokens)
            if score == 0:
                continue
            if best is None or score > best.score:
                best = KeywordMatch(category=rule.category, keyword=keyword, score=score)

    return best


def classify(text: str, rules: Iterable[CategoryRule]) -> str:
    """Return the category tag of the best keyword match, or the default tag."""
    match = best_match(text, rules)
    if match is None:
        _logger.debug("category_defaulted", category=DEFAULT_CATEGORY)
        return DEFAULT_CATEGORY

    _logger.debug(
        "category_matched",
        category=match.category,
        keyword=match.keyword,
        score=match.score,
    )
    return match.category


def prioritize(text: str, category: str) -> MessagePriority:
    lowered = text.lower()
    for predicate, priority in PRIORITY_PRECEDENCE:
        if predicate(lowered, category):
            return priority
    return MessagePriority.LOW


def classify_message(text: str, rules: Sequence[CategoryRule]) -> ClassificationResult:
    match = best_match(text, rules)
    category = match.category if match else DEFAULT_CATEGORY
    priority = prioritize(text, category)
    return ClassificationResult(
        category=category,
        priority=priority,
        keyword=match.keyword if match else None,
        score=match.score if match else 0,
    )
