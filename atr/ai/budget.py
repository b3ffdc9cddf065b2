"""Character-count budgeting.

Every size check in context assembly and summary compression goes through
``measure()``. Characters are a cheap approximation of tokens; swapping in a
real tokenizer only requires changing this module.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


def measure(text: str) -> int:
    """Return the budget cost of *text*."""
    return len(text)


def clip(text: str, limit: int) -> str:
    """Keep the first *limit* characters of *text*."""
    if measure(text) <= limit:
        return text
    return text[:limit]


def clip_at_line(text: str, limit: int) -> str:
    """Like ``clip()`` but cut back to the last complete line.

    Falls back to a hard cut when the first line alone exceeds *limit*.
    """
    if measure(text) <= limit:
        return text
    cut = text[:limit]
    # A newline right at the limit means the preceding line is whole
    if text[limit] == "\n":
        return cut
    boundary = cut.rfind("\n")
    return cut[:boundary] if boundary > 0 else cut


def keep_tail(text: str, limit: int) -> str:
    """Keep the last *limit* characters of *text*."""
    if measure(text) <= limit:
        return text
    return text[-limit:] if limit > 0 else ""


def fit_newest_lines(lines: Sequence[str], limit: int) -> list[str]:
    """Select the newest lines whose combined cost stays within *limit*.

    *lines* is ordered oldest to newest. Lines are admitted newest first and
    admission stops at the first line that would overflow, so the result is
    always a contiguous, chronologically ordered suffix of *lines*.
    """
    kept: list[str] = []
    used = 0
    for line in reversed(lines):
        cost = measure(line)
        if used + cost > limit:
            break
        kept.append(line)
        used += cost
    kept.reverse()
    return kept
