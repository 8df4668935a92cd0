from __future__ import annotations

import shlex
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .logging_utils import _debug_log
from .tools import get_unidic_dicdir

__all__ = [
    "Analyzer",
    "AnalyzerUnavailableError",
    "Token",
    "TokenizationError",
]


class AnalyzerUnavailableError(RuntimeError):
    """Raised when the MeCab backend cannot be initialized."""


class TokenizationError(RuntimeError):
    """Raised when analyzer tokens do not partition the input text."""


@dataclass(frozen=True, slots=True)
class Token:
    surface: str
    start: int
    end: int
    reading: str = ""
    lemma: str | None = None


def _build_tagger() -> Any:
    try:
        from fugashi import GenericTagger, Tagger  # type: ignore
        from fugashi import fugashi as fugashi_core  # type: ignore
    except ImportError as exc:
        raise AnalyzerUnavailableError(
            "Annotation requires 'fugashi' (MeCab) to be installed."
        ) from exc

    dicdir = get_unidic_dicdir()
    if dicdir:
        args = f"-d {shlex.quote(str(dicdir))}"
        feature_wrapper = getattr(fugashi_core, "UnidicFeatures29", None)
        try:
            if feature_wrapper is not None:
                return GenericTagger(args, feature_wrapper)
            return GenericTagger(args)
        except RuntimeError as exc:
            raise AnalyzerUnavailableError(
                f"Failed to initialize UniDic dictionary at '{dicdir}': {exc}"
            ) from exc
    try:
        return Tagger()
    except RuntimeError as exc:
        raise AnalyzerUnavailableError(
            "No UniDic dictionary found. Install 'unidic-lite' or set FURI_UNIDIC_DIR."
        ) from exc


class Analyzer:
    """
    Fugashi-based tokenizer producing surface spans with kana readings.

    MeCab taggers are not shared across threads; each thread builds its own
    on first use.
    """

    def __init__(self, tagger_factory: Optional[Callable[[], Any]] = None) -> None:
        self._tagger_factory = tagger_factory or _build_tagger
        self._local = threading.local()
        # Fail early on a broken installation rather than on the first call.
        self._tagger()

    def _tagger(self) -> Any:
        tagger = getattr(self._local, "tagger", None)
        if tagger is None:
            tagger = self._tagger_factory()
            self._local.tagger = tagger
        return tagger

    def tokenize(self, text: str) -> list[Token]:
        """
        Tokenize ``text`` so that the tokens cover it exactly.

        MeCab silently drops whitespace; those spans come back as tokens
        without a reading.
        """
        tokens: list[Token] = []
        if not text:
            return tokens
        pos = 0
        for raw in self._tagger()(text):
            surface = raw.surface
            if not surface:
                continue
            start = text.find(surface, pos)
            if start == -1:
                raise TokenizationError(
                    f"Analyzer token {surface!r} not found after offset {pos}"
                )
            if start > pos:
                tokens.append(Token(surface=text[pos:start], start=pos, end=start))
            end = start + len(surface)
            tokens.append(
                Token(
                    surface=surface,
                    start=start,
                    end=end,
                    reading=self._extract_reading(raw),
                    lemma=self._extract_lemma(raw),
                )
            )
            pos = end
        if pos < len(text):
            tokens.append(Token(surface=text[pos:], start=pos, end=len(text)))
        _debug_log(f"tokenized {len(text)} characters into {len(tokens)} tokens")
        return tokens

    def _extract_reading(self, token) -> str:
        feature = getattr(token, "feature", None)
        value: Optional[str] = None
        for attr in ("kana", "reading", "reading_form", "pron", "pronunciation"):
            if feature is None:
                break
            attr_val = None
            if hasattr(feature, attr):
                attr_val = getattr(feature, attr)
            else:
                try:
                    attr_val = feature[attr]
                except (KeyError, IndexError, TypeError):
                    attr_val = None
            if attr_val and attr_val != "*":
                value = attr_val
                break
        return str(value) if value else ""

    def _extract_lemma(self, token) -> str | None:
        feature = getattr(token, "feature", None)
        if feature is None:
            return None
        if hasattr(feature, "lemma"):
            return getattr(feature, "lemma") or None
        try:
            return feature["lemma"]  # type: ignore[index]
        except (KeyError, IndexError, TypeError):
            return None
