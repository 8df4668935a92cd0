from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence, Union

from .dictionary import DictionaryEntry
from .kana import is_kana_text, to_hiragana

__all__ = [
    "PronunciationFallback",
    "Selection",
    "Selector",
    "STRATEGIES",
    "edit_distance",
    "exact",
    "get_selector",
    "heuristic",
    "none_tolerant",
]


@dataclass(frozen=True, slots=True)
class PronunciationFallback:
    """
    Gloss the whole surface with the analyzer's own reading.

    ``common`` marks a reading for a word the dictionary knows as common under
    another spelling, such as its dictionary form.
    """

    reading: str
    common: bool = False


Selection = Union[DictionaryEntry, PronunciationFallback, None]
Selector = Callable[[str, str, Sequence[DictionaryEntry]], Selection]


def edit_distance(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ch_a in enumerate(a, start=1):
        current = [i]
        for j, ch_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ch_a != ch_b),
                )
            )
        previous = current
    return previous[-1]


def exact(
    surface: str,
    analyzer_reading: str,
    candidates: Sequence[DictionaryEntry],
) -> DictionaryEntry | None:
    """Accept only an entry whose reading matches the analyzer's."""
    if not analyzer_reading:
        return None
    target = to_hiragana(analyzer_reading)
    for entry in candidates:
        if to_hiragana(entry.reading) == target:
            return entry
    return None


def heuristic(
    surface: str,
    analyzer_reading: str,
    candidates: Sequence[DictionaryEntry],
) -> DictionaryEntry | None:
    """
    Exact match first, then the candidate closest to the analyzer's reading.

    Closeness is the edit distance between hiragana readings; ties keep the
    dictionary's declaration order. Without an analyzer reading there is
    nothing to measure against and the first candidate wins.
    """
    if not candidates:
        return None
    matched = exact(surface, analyzer_reading, candidates)
    if matched is not None:
        return matched
    if not analyzer_reading:
        return candidates[0]
    target = to_hiragana(analyzer_reading)
    best = candidates[0]
    best_distance = edit_distance(to_hiragana(best.reading), target)
    for entry in candidates[1:]:
        distance = edit_distance(to_hiragana(entry.reading), target)
        if distance < best_distance:
            best, best_distance = entry, distance
    return best


def none_tolerant(strategy: Selector) -> Selector:
    """Fall back to the analyzer's pronunciation when ``strategy`` finds nothing."""

    def _select(
        surface: str,
        analyzer_reading: str,
        candidates: Sequence[DictionaryEntry],
    ) -> Selection:
        chosen = strategy(surface, analyzer_reading, candidates)
        if chosen is not None:
            return chosen
        if is_kana_text(analyzer_reading):
            return PronunciationFallback(to_hiragana(analyzer_reading))
        return None

    _select.__name__ = f"none_tolerant_{getattr(strategy, '__name__', 'selector')}"
    return _select


STRATEGIES: dict[str, Selector] = {
    "exact": exact,
    "heuristic": heuristic,
}


def get_selector(name: str = "heuristic") -> Selector:
    try:
        strategy = STRATEGIES[name]
    except KeyError:
        choices = ", ".join(sorted(STRATEGIES))
        raise ValueError(f"Unknown selection strategy '{name}' (choose from {choices}).") from None
    return none_tolerant(strategy)
