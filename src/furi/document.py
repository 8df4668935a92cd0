from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Union

if TYPE_CHECKING:
    from .render import RenderOptions

__all__ = [
    "Document",
    "FuriganaSegment",
    "PlainSegment",
    "Segment",
]


@dataclass(frozen=True, slots=True)
class PlainSegment:
    """Verbatim text that needs no reading."""

    text: str
    start: int = 0
    end: int = 0
    token_index: int = 0


@dataclass(frozen=True, slots=True)
class FuriganaSegment:
    """
    Base text glossed with a kana reading.

    ``word`` is the surface of the token the segment was cut from, so
    renderers can reason about whole words (first-occurrence filtering) even
    though a word usually yields one segment per kanji. ``source`` records
    whether the reading came from the dictionary or straight from the
    analyzer.
    """

    text: str
    reading: str
    start: int = 0
    end: int = 0
    token_index: int = 0
    word: str = ""
    common: bool = False
    source: str = "dictionary"


Segment = Union[PlainSegment, FuriganaSegment]


@dataclass(frozen=True)
class Document:
    text: str
    segments: tuple[Segment, ...] = ()

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def furigana(self) -> list[FuriganaSegment]:
        return [segment for segment in self.segments if isinstance(segment, FuriganaSegment)]

    def base_text(self) -> str:
        return "".join(segment.text for segment in self.segments)

    def render(self, format: str, options: "RenderOptions | None" = None) -> str:
        from .render import render

        return render(self, format, options)
