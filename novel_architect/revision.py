"""
Suggestion locating and applying.

Suggestions are anchored to literal text rather than to offsets, because the
draft may be edited freely between analysis and application. A fragment that
no longer occurs verbatim is reported as not found instead of being patched
at a drifted position.
"""

from dataclasses import dataclass, field
from typing import NamedTuple, Optional

from .models import AnalysisResult, Suggestion


class TextRange(NamedTuple):
    start: int
    end: int


class Focus(NamedTuple):
    """Selection and scroll position for jumping to a fragment."""

    selection: TextRange
    scroll_offset: int


class Replacement(NamedTuple):
    text: str
    range: Optional[TextRange]

    @property
    def found(self) -> bool:
        return self.range is not None


def locate(document: str, snippet: str) -> Optional[TextRange]:
    """Return the lowest-offset exact occurrence of snippet, or None."""
    if not snippet:
        return None
    start = document.find(snippet)
    if start == -1:
        return None
    return TextRange(start, start + len(snippet))


def focus(
    document: str,
    snippet: str,
    line_height: int = 28,
    margin: int = 100,
) -> Optional[Focus]:
    """
    Compute the selection and scroll offset that bring snippet into view.

    The scroll offset is estimated from the number of lines preceding the
    match times a fixed per-line height, minus a margin, clamped at zero.
    Returns None when the snippet is not in the document.
    """
    found = locate(document, snippet)
    if found is None:
        return None
    lines = document[:found.start].count("\n") + 1
    return Focus(found, max(0, lines * line_height - margin))


def apply_replacement(document: str, original: str, replacement: str) -> Replacement:
    """
    Replace the first occurrence of original with replacement.

    Every call re-scans the given document, so a batch of suggestions can be
    applied one after another; ones computed against an older draft simply
    come back unapplied.
    """
    found = locate(document, original)
    if found is None:
        return Replacement(document, None)
    text = document[:found.start] + replacement + document[found.end:]
    return Replacement(text, TextRange(found.start, found.start + len(replacement)))


def select_replacement(suggestion: Suggestion, candidate: str) -> str:
    if candidate not in suggestion.candidates:
        raise ValueError(
            f"{candidate!r} is not a candidate for {suggestion.original!r}"
        )
    return candidate


@dataclass(frozen=True)
class SuggestionSet:
    """Index-stable suggestions plus the set of dismissed positions.

    Dismissals are keyed by position in ``items``, never by position in the
    filtered view.
    """

    items: tuple[Suggestion, ...] = ()
    ignored: frozenset[int] = field(default_factory=frozenset)

    @classmethod
    def from_analysis(cls, result: Optional[AnalysisResult]) -> "SuggestionSet":
        if result is None:
            return cls()
        return cls(items=tuple(result.suggestions))

    def active(self) -> list[tuple[int, Suggestion]]:
        return [(i, s) for i, s in enumerate(self.items) if i not in self.ignored]

    def __len__(self) -> int:
        return len(self.items)


def ignore(suggestion_set: SuggestionSet, index: int) -> SuggestionSet:
    if not 0 <= index < len(suggestion_set.items):
        raise IndexError(f"No suggestion at index {index}")
    if index in suggestion_set.ignored:
        return suggestion_set
    return SuggestionSet(suggestion_set.items, suggestion_set.ignored | {index})


def reset_suggestion_view(suggestion_set: SuggestionSet) -> SuggestionSet:
    """Drop the current analysis and every dismissal, ready for a new run."""
    return SuggestionSet()
