from __future__ import annotations

from typing import Sequence

from .dictionary import DictionaryEntry, ReadingPart
from .document import FuriganaSegment, PlainSegment, Segment
from .kana import contains_kanji, kana_runs, to_hiragana
from .select import PronunciationFallback

__all__ = [
    "AlignmentError",
    "align",
    "project_entry",
]


class AlignmentError(RuntimeError):
    """Raised when aligned segments do not reproduce the surface text."""


def align(
    surface: str,
    chosen: DictionaryEntry | PronunciationFallback,
    *,
    start: int = 0,
    token_index: int = 0,
) -> list[Segment]:
    """
    Split ``surface`` into plain and furigana segments.

    ``start`` is the offset of ``surface`` inside the annotated text; the
    returned segments carry absolute offsets from there.
    """
    if isinstance(chosen, PronunciationFallback):
        segments = _align_pronunciation(
            surface, chosen.reading, start, token_index, common=chosen.common
        )
    else:
        segments = _align_entry(surface, chosen, start, token_index)
    _check_segments(surface, start, segments)
    return segments


def project_entry(
    surface: str,
    entry: DictionaryEntry,
    analyzer_reading: str = "",
) -> DictionaryEntry | None:
    """
    Map an entry for a word's dictionary form onto an inflected ``surface``.

    The entry's kanji-bearing parts must sit inside the prefix both spellings
    share; whatever follows them on the surface is kept as kana. When the
    analyzer supplied a reading it has to begin with the reading of those
    parts. Returns None when the entry does not fit.
    """
    shared = 0
    for surface_ch, entry_ch in zip(surface, entry.text):
        if surface_ch != entry_ch:
            break
        shared += 1

    kanji_end = 0
    for part in entry.parts:
        if contains_kanji(entry.part_text(part)):
            kanji_end = part.end
    if kanji_end == 0 or kanji_end > shared:
        return None
    rest = surface[kanji_end:]
    if contains_kanji(rest):
        return None

    parts = [part for part in entry.parts if part.end <= kanji_end]
    stem_reading = "".join(part.reading for part in parts)
    if analyzer_reading and not to_hiragana(analyzer_reading).startswith(stem_reading):
        return None
    rest_reading = to_hiragana(rest)
    if rest:
        parts.append(ReadingPart(start=kanji_end, end=len(surface), reading=rest_reading))
    return DictionaryEntry(
        text=surface,
        reading=stem_reading + rest_reading,
        parts=tuple(parts),
        text_common=entry.text_common,
        reading_common=entry.reading_common,
    )


def _align_entry(
    surface: str,
    entry: DictionaryEntry,
    start: int,
    token_index: int,
) -> list[Segment]:
    if entry.text != surface:
        raise AlignmentError(f"Entry for {entry.text!r} applied to {surface!r}")
    segments: list[Segment] = []
    for part in entry.parts:
        if part.end == part.start:
            continue
        base = surface[part.start : part.end]
        if contains_kanji(base):
            segments.append(
                FuriganaSegment(
                    text=base,
                    reading=part.reading,
                    start=start + part.start,
                    end=start + part.end,
                    token_index=token_index,
                    word=surface,
                    common=entry.common,
                    source="dictionary",
                )
            )
        else:
            segments.append(
                PlainSegment(
                    text=base,
                    start=start + part.start,
                    end=start + part.end,
                    token_index=token_index,
                )
            )
    return segments


def _align_pronunciation(
    surface: str,
    reading: str,
    start: int,
    token_index: int,
    common: bool = False,
) -> list[Segment]:
    runs = kana_runs(surface)
    if not runs:
        return []
    if all(is_kana for is_kana, _ in runs):
        return [PlainSegment(surface, start, start + len(surface), token_index)]

    if not reading:
        raise AlignmentError(f"No reading to align with {surface!r}")
    reading = to_hiragana(reading)
    head = ""
    tail = ""
    first_kana, first_run = runs[0]
    if first_kana:
        folded = to_hiragana(first_run)
        if reading.startswith(folded) and len(folded) < len(reading):
            head = first_run
            reading = reading[len(folded) :]
    last_kana, last_run = runs[-1]
    if last_kana and len(runs) > 1:
        folded = to_hiragana(last_run)
        if reading.endswith(folded) and len(folded) < len(reading):
            tail = last_run
            reading = reading[: -len(folded)]

    middle = surface[len(head) : len(surface) - len(tail)]
    segments: list[Segment] = []
    cursor = start
    if head:
        segments.append(PlainSegment(head, cursor, cursor + len(head), token_index))
        cursor += len(head)
    segments.append(
        FuriganaSegment(
            text=middle,
            reading=reading,
            start=cursor,
            end=cursor + len(middle),
            token_index=token_index,
            word=surface,
            common=common,
            source="analyzer",
        )
    )
    cursor += len(middle)
    if tail:
        segments.append(PlainSegment(tail, cursor, cursor + len(tail), token_index))
    return segments


def _check_segments(surface: str, start: int, segments: Sequence[Segment]) -> None:
    rebuilt = "".join(segment.text for segment in segments)
    if rebuilt != surface:
        raise AlignmentError(f"Segments spell {rebuilt!r}, expected {surface!r}")
    cursor = start
    for segment in segments:
        if not segment.text:
            raise AlignmentError(f"Empty segment emitted for {surface!r}")
        if segment.start != cursor or segment.end != cursor + len(segment.text):
            raise AlignmentError(
                f"Segment {segment.text!r} spans {segment.start}-{segment.end}, expected "
                f"{cursor}-{cursor + len(segment.text)}"
            )
        cursor = segment.end
