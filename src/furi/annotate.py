from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from functools import lru_cache
from typing import Iterable, Protocol, Sequence

from .align import align, project_entry
from .dictionary import Dictionary, DictionaryEntry, default_dictionary
from .document import Document, PlainSegment, Segment
from .kana import contains_kanji
from .logging_utils import _debug_log
from .nlp import Analyzer, Token, TokenizationError
from .select import PronunciationFallback, Selector, get_selector, heuristic

__all__ = [
    "Annotator",
    "annotate",
    "default_annotator",
]


class TokenSource(Protocol):
    def tokenize(self, text: str) -> Sequence[Token]: ...


class Annotator:
    """
    Annotates text with readings, given a dictionary.

    The dictionary is only read, so one annotator (or several sharing a
    dictionary) can annotate from many threads at once.
    """

    def __init__(
        self,
        dictionary: Dictionary,
        analyzer: TokenSource | None = None,
        selector: Selector | None = None,
    ) -> None:
        self._dictionary = dictionary
        self._analyzer = analyzer if analyzer is not None else Analyzer()
        self._selector = selector if selector is not None else get_selector("heuristic")

    @classmethod
    def with_default_dictionary(
        cls,
        analyzer: TokenSource | None = None,
        selector: Selector | None = None,
    ) -> "Annotator":
        return cls(default_dictionary(), analyzer=analyzer, selector=selector)

    @property
    def dictionary(self) -> Dictionary:
        return self._dictionary

    def annotate(self, text: str) -> Document:
        tokens = self._analyzer.tokenize(text)
        _check_partition(text, tokens)
        segments: list[Segment] = []
        for index, token in enumerate(tokens):
            segments.extend(self.annotate_token(token, index))
        return Document(text=text, segments=tuple(segments))

    def annotate_token(self, token: Token, token_index: int = 0) -> list[Segment]:
        surface = token.surface
        if not surface:
            return []
        if not contains_kanji(surface):
            return [PlainSegment(surface, token.start, token.end, token_index)]
        candidates = self._dictionary.lookup(surface)
        lemma_entries: tuple[DictionaryEntry, ...] = ()
        if not candidates and token.lemma and token.lemma != surface:
            lemma_entries = self._dictionary.lookup(token.lemma)
            projected = (project_entry(surface, entry, token.reading) for entry in lemma_entries)
            candidates = tuple(entry for entry in projected if entry is not None)
        chosen = self._selector(surface, token.reading, candidates)
        if isinstance(chosen, PronunciationFallback) and lemma_entries:
            # An inflected form is as common as its dictionary form.
            closest = heuristic(token.lemma, token.reading, lemma_entries)
            if closest is not None:
                chosen = replace(chosen, common=closest.common)
        if chosen is None:
            _debug_log(f"no reading for {surface!r} ({len(candidates)} candidates)")
            return [PlainSegment(surface, token.start, token.end, token_index)]
        _debug_log(f"{surface!r} [{token.reading}] -> {chosen!r}")
        return align(surface, chosen, start=token.start, token_index=token_index)

    def annotate_many(
        self,
        texts: Iterable[str],
        max_workers: int | None = None,
    ) -> list[Document]:
        """Annotate independent texts in parallel, keeping their order."""
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(self.annotate, texts))


def _check_partition(text: str, tokens: Sequence[Token]) -> None:
    cursor = 0
    for token in tokens:
        if token.start != cursor or token.end != token.start + len(token.surface):
            raise TokenizationError(
                f"Token {token.surface!r} at {token.start}-{token.end} breaks coverage at {cursor}"
            )
        if text[token.start : token.end] != token.surface:
            raise TokenizationError(
                f"Token {token.surface!r} does not match input at {token.start}"
            )
        cursor = token.end
    if cursor != len(text):
        raise TokenizationError(f"Tokens cover {cursor} of {len(text)} characters")


@lru_cache(maxsize=1)
def default_annotator() -> Annotator:
    return Annotator.with_default_dictionary()


def annotate(text: str) -> Document:
    """Annotate ``text`` with the installed dictionary and the UniDic analyzer."""
    return default_annotator().annotate(text)
