from __future__ import annotations

import unicodedata
from enum import Enum

__all__ = [
    "Grapheme",
    "classify",
    "contains_kanji",
    "is_kana_text",
    "kana_runs",
    "to_hiragana",
    "to_katakana",
]


class Grapheme(Enum):
    KANJI = "kanji"
    KANA = "kana"
    OTHER = "other"


def _is_cjk_char(ch: str) -> bool:
    code = ord(ch)
    return (
        0x4E00 <= code <= 0x9FFF
        or 0x3400 <= code <= 0x4DBF
        or 0x20000 <= code <= 0x2A6DF
        or 0x2A700 <= code <= 0x2B73F
        or 0x2B740 <= code <= 0x2B81F
        or 0x2B820 <= code <= 0x2CEAF
        or 0x2CEB0 <= code <= 0x2EBEF
        or 0x30000 <= code <= 0x3134F
        or 0xF900 <= code <= 0xFAFF
        or 0x2F800 <= code <= 0x2FA1F
        or ch in "々〆ヵヶ"
    )


def _is_kana_char(ch: str) -> bool:
    code = ord(ch)
    if ch == "・":
        return False
    return (
        0x3041 <= code <= 0x309F  # Hiragana
        or 0x30A1 <= code <= 0x30FF  # Katakana
        or 0x31F0 <= code <= 0x31FF  # Katakana phonetic extensions
        or 0xFF66 <= code <= 0xFF9F  # Half-width katakana
    )


def classify(ch: str) -> Grapheme:
    """Classify a single character."""
    if len(ch) != 1:
        raise ValueError(f"Expected a single character, got {ch!r}")
    if _is_cjk_char(ch):
        return Grapheme.KANJI
    if _is_kana_char(ch):
        return Grapheme.KANA
    return Grapheme.OTHER


def contains_kanji(text: str) -> bool:
    return any(_is_cjk_char(ch) for ch in text)


def is_kana_text(text: str) -> bool:
    """True for a non-empty string made only of kana."""
    if not text:
        return False
    return all(classify(ch) is Grapheme.KANA for ch in text)


def kana_runs(text: str) -> list[tuple[bool, str]]:
    """
    Split ``text`` into maximal runs of kana and non-kana characters.

    Returns ``(is_kana, run)`` pairs in order; joining the runs yields the
    input unchanged.
    """
    runs: list[tuple[bool, str]] = []
    for ch in text:
        kana = classify(ch) is Grapheme.KANA
        if runs and runs[-1][0] == kana:
            runs[-1] = (kana, runs[-1][1] + ch)
        else:
            runs.append((kana, ch))
    return runs


def to_katakana(text: str) -> str:
    result_chars: list[str] = []
    for ch in text:
        code = ord(ch)
        if 0x3041 <= code <= 0x3096:
            result_chars.append(chr(code + 0x60))
        elif ch == "ゝ":
            result_chars.append("ヽ")
        elif ch == "ゞ":
            result_chars.append("ヾ")
        elif ch == "ゟ":
            result_chars.append("ヿ")
        else:
            result_chars.append(ch)
    return "".join(result_chars)


def to_hiragana(text: str) -> str:
    # Half-width katakana only folds under NFKC.
    if any(0xFF66 <= ord(ch) <= 0xFF9F for ch in text):
        text = unicodedata.normalize("NFKC", text)
    result_chars: list[str] = []
    for ch in text:
        code = ord(ch)
        if 0x30A1 <= code <= 0x30F6:
            result_chars.append(chr(code - 0x60))
        elif ch == "ヽ":
            result_chars.append("ゝ")
        elif ch == "ヾ":
            result_chars.append("ゞ")
        elif ch == "ヿ":
            result_chars.append("ゟ")
        else:
            result_chars.append(ch)
    return "".join(result_chars)
