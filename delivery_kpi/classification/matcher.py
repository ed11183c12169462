"""
Ordered keyword-rule matching — the primitive behind depot, carrier and
forecast classification.

Precedence
----------
Rules are evaluated **in list order** and the first rule with any matching
keyword wins. There is no scoring and no longest-match preference: operators
control precedence by reordering their configuration, so the same inputs
always give the same answer.

Comparison
----------
Both the candidate and the keywords are lower-cased.

    contains    keyword is a substring of the candidate
    startsWith  candidate starts with the keyword

An empty or missing candidate matches nothing. "No match" is ``None``, never
an error; callers substitute their own fallback label.

Complexity is O(r·k) per candidate for r rules of k keywords.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional, Sequence, TypeVar

from delivery_kpi.taxonomy.delivery_taxonomy import MatchMode

R = TypeVar("R")


def _keywords_of(rule: Any) -> Iterable[str]:
    return getattr(rule, "keywords", ())


def keyword_matches(keyword: str, candidate_lower: str, mode: MatchMode | str) -> bool:
    """Compare one keyword to an already lower-cased candidate."""
    needle = keyword.strip().lower()
    if not needle:
        return False
    if mode == MatchMode.CONTAINS:
        return needle in candidate_lower
    if mode == MatchMode.STARTS_WITH:
        return candidate_lower.startswith(needle)
    raise ValueError(
        f"Unknown match mode '{mode}'. Must be one of {[m.value for m in MatchMode]}."
    )


def rule_matches(
    rule: Any,
    candidate: Optional[str],
    mode: MatchMode | str,
    keywords_of: Callable[[Any], Iterable[str]] = _keywords_of,
) -> bool:
    """True if any keyword of ``rule`` matches ``candidate``."""
    if not candidate:
        return False
    lowered = candidate.lower()
    return any(keyword_matches(k, lowered, mode) for k in keywords_of(rule))


def match(
    rules: Sequence[R],
    candidate_text: Optional[str],
    mode: MatchMode | str = MatchMode.CONTAINS,
    keywords_of: Callable[[Any], Iterable[str]] = _keywords_of,
) -> Optional[R]:
    """Return the first rule matching ``candidate_text``, or ``None``.

    Args:
        rules: Ordered rules. Each exposes its keywords via ``keywords_of``
            (default: the ``keywords`` attribute).
        candidate_text: Text to classify (hub name, round name...).
        mode: ``"contains"`` or ``"startsWith"``.
        keywords_of: Accessor for a rule's keywords.

    Returns:
        The earliest matching rule, or ``None`` when nothing matches or the
        candidate is empty.

    Raises:
        TypeError: If ``rules`` is not a list or tuple (programmer error).
        ValueError: If ``mode`` is not a known match mode.
    """
    if not isinstance(rules, (list, tuple)):
        raise TypeError(f"rules must be a list or tuple, got {type(rules).__name__}.")
    mode = MatchMode(mode)
    if not candidate_text:
        return None

    lowered = candidate_text.lower()
    for rule in rules:
        if any(keyword_matches(k, lowered, mode) for k in keywords_of(rule)):
            return rule
    return None
