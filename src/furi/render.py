from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .document import Document, FuriganaSegment
from .kana import to_hiragana, to_katakana

__all__ = [
    "FORMATS",
    "RenderOptions",
    "UnsupportedFormatError",
    "escape",
    "render",
]

SCRIPTS = ("hiragana", "katakana")


class UnsupportedFormatError(ValueError):
    """Raised when a render format outside :data:`FORMATS` is requested."""


@dataclass(frozen=True)
class RenderOptions:
    gloss_common_words: bool = False
    script: str = "hiragana"
    first_occurrence_only: bool = False

    def __post_init__(self) -> None:
        if self.script not in SCRIPTS:
            raise ValueError(f"Unknown script '{self.script}' (choose from {', '.join(SCRIPTS)}).")


_MARKDOWN_ESCAPES = str.maketrans({ch: "\\" + ch for ch in "\\[]{}"})
_HTML_ESCAPES = str.maketrans({"&": "&amp;", "<": "&lt;", ">": "&gt;"})
_LATEX_ESCAPES = str.maketrans({"\\": r"\textbackslash{}", "{": r"\{", "}": r"\}"})


def _markdown_ruby(base: str, reading: str) -> str:
    return f"[{base}]{{{reading}}}"


def _html_ruby(base: str, reading: str) -> str:
    return f"<ruby>{base}<rp>(</rp><rt>{reading}</rt><rp>)</rp></ruby>"


def _latex_ruby(base: str, reading: str) -> str:
    return f"\\ruby{{{base}}}{{{reading}}}"


_RUBY: dict[str, Callable[[str, str], str]] = {
    "markdown": _markdown_ruby,
    "html": _html_ruby,
    "latex": _latex_ruby,
}
_ESCAPES = {
    "markdown": _MARKDOWN_ESCAPES,
    "html": _HTML_ESCAPES,
    "latex": _LATEX_ESCAPES,
}
FORMATS = tuple(_RUBY)


def _check_format(format: str) -> None:
    if format not in _RUBY:
        raise UnsupportedFormatError(
            f"Unsupported format '{format}' (choose from {', '.join(FORMATS)})."
        )


def escape(text: str, format: str) -> str:
    """Escape characters with syntactic meaning in ``format``."""
    _check_format(format)
    return text.translate(_ESCAPES[format])


def render(document: Document, format: str, options: RenderOptions | None = None) -> str:
    """
    Serialize ``document`` as ``markdown``, ``html`` or ``latex``.

    Plain text is escaped for the target format. Furigana segments are
    written as ruby unless the options suppress them, in which case their
    base text is emitted like plain text.
    """
    _check_format(format)
    options = options or RenderOptions()
    ruby = _RUBY[format]
    table = _ESCAPES[format]
    convert = to_katakana if options.script == "katakana" else to_hiragana

    # word -> token index of its first glossed occurrence
    first_seen: dict[str, int] = {}
    pieces: list[str] = []
    for segment in document.segments:
        base = segment.text.translate(table)
        if not isinstance(segment, FuriganaSegment):
            pieces.append(base)
            continue
        if segment.common and not options.gloss_common_words:
            pieces.append(base)
            continue
        if options.first_occurrence_only:
            first = first_seen.setdefault(segment.word or segment.text, segment.token_index)
            if first != segment.token_index:
                pieces.append(base)
                continue
        pieces.append(ruby(base, convert(segment.reading).translate(table)))
    return "".join(pieces)
