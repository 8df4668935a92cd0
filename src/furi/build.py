"""
Offline dictionary build.

Turns the JmdictFurigana text export into :class:`furi.dictionary.Dictionary`
entries, optionally marking common words from JMdict priority tags.

Source lines look like::

    宮崎|みやざき|0:みや;1:ざき
    美味しい|おいしい|0-1:おい

Ranges are character indices with an inclusive end. Characters outside every
range (okurigana, kana words) are filled in from the full reading.
"""

from __future__ import annotations

import gzip
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable

from .dictionary import Dictionary, DictionaryEntry, ReadingPart, check_entry
from .kana import to_hiragana
from .logging_utils import _debug_log

__all__ = [
    "BuildResult",
    "COMMON_PRIORITIES",
    "DictionaryBuildError",
    "build_dictionary",
    "parse_furigana_line",
    "read_priority_flags",
]

# Tags JMdict uses to mark a kanji or reading element as common.
COMMON_PRIORITIES = frozenset({"news1", "ichi1", "spec1", "spec2", "gai1"})

_RANGE_PATTERN = re.compile(r"^(\d+)(?:-(\d+))?:(.+)$")


class DictionaryBuildError(RuntimeError):
    """Raised when the dictionary source cannot be fetched or parsed."""


@dataclass
class BuildResult:
    dictionary: Dictionary
    skipped: int = 0


def _parse_ranges(raw: str, line_number: int | None) -> list[tuple[int, int, str]]:
    ranges: list[tuple[int, int, str]] = []
    if not raw:
        return ranges
    for item in raw.split(";"):
        match = _RANGE_PATTERN.match(item)
        if match is None:
            raise DictionaryBuildError(f"line {line_number}: malformed range {item!r}")
        start = int(match.group(1))
        end = int(match.group(2)) if match.group(2) is not None else start
        ranges.append((start, end + 1, match.group(3)))
    return ranges


def parse_furigana_line(line: str, line_number: int | None = None) -> DictionaryEntry:
    """
    Parse one source line into a dictionary entry.

    Raises DictionaryBuildError for lines that do not follow the format and
    ValueError when the ranges cannot be reconciled with the reading.
    """
    fields = line.rstrip("\r\n").split("|")
    if len(fields) != 3 or not fields[0] or not fields[1]:
        raise DictionaryBuildError(f"line {line_number}: expected 'text|reading|ranges': {line!r}")
    text, raw_reading, raw_ranges = fields
    reading = to_hiragana(raw_reading)
    ranges = sorted(_parse_ranges(raw_ranges, line_number))

    parts: list[ReadingPart] = []
    cursor = 0
    reading_pos = 0
    for start, end, ruby in ranges:
        if start < cursor or end > len(text):
            raise ValueError(f"{text}: range {start}-{end - 1} overlaps or overruns")
        if start > cursor:
            gap = text[cursor:start]
            reading_pos = _fill_gap(text, gap, reading, reading_pos, cursor, parts)
        ruby = to_hiragana(ruby)
        if not reading.startswith(ruby, reading_pos):
            raise ValueError(f"{text}: {ruby} does not continue {reading} at {reading_pos}")
        parts.append(ReadingPart(start=start, end=end, reading=ruby))
        reading_pos += len(ruby)
        cursor = end
    if cursor < len(text):
        reading_pos = _fill_gap(text, text[cursor:], reading, reading_pos, cursor, parts)
    if reading_pos != len(reading):
        raise ValueError(f"{text}: reading {reading} has unassigned kana")

    entry = DictionaryEntry(text=text, reading=reading, parts=tuple(parts))
    check_entry(entry)
    return entry


def _fill_gap(
    text: str,
    gap: str,
    reading: str,
    reading_pos: int,
    start: int,
    parts: list[ReadingPart],
) -> int:
    folded = to_hiragana(gap)
    if not reading.startswith(folded, reading_pos):
        raise ValueError(f"{text}: {gap} is not spelled out in {reading}")
    parts.append(ReadingPart(start=start, end=start + len(gap), reading=folded))
    return reading_pos + len(folded)


def _open_xml(path: Path):
    if path.suffix == ".gz":
        return gzip.open(path, "rb")
    return path.open("rb")


def read_priority_flags(path: Path) -> dict[tuple[str, str], tuple[bool, bool]]:
    """
    Read JMdict and map ``(kanji text, hiragana reading)`` to
    ``(text_common, reading_common)``.
    """
    flags: dict[tuple[str, str], tuple[bool, bool]] = {}
    try:
        with _open_xml(path) as handle:
            for _, elem in ET.iterparse(handle, events=("end",)):
                if elem.tag != "entry":
                    continue
                kanji = [
                    (
                        k_ele.findtext("keb") or "",
                        any(pri.text in COMMON_PRIORITIES for pri in k_ele.iter("ke_pri")),
                    )
                    for k_ele in elem.iter("k_ele")
                ]
                readings = [
                    (
                        to_hiragana(r_ele.findtext("reb") or ""),
                        any(pri.text in COMMON_PRIORITIES for pri in r_ele.iter("re_pri")),
                    )
                    for r_ele in elem.iter("r_ele")
                ]
                for keb, keb_common in kanji:
                    for reb, reb_common in readings:
                        if keb and reb:
                            flags[(keb, reb)] = (keb_common, reb_common)
                elem.clear()
    except (ET.ParseError, OSError, EOFError) as exc:
        raise DictionaryBuildError(f"Failed to read JMdict {path}: {exc}") from exc
    _debug_log(f"read priority flags for {len(flags)} JMdict pairs")
    return flags


def build_dictionary(
    lines: Iterable[str],
    priorities: dict[tuple[str, str], tuple[bool, bool]] | None = None,
) -> BuildResult:
    entries: list[DictionaryEntry] = []
    skipped = 0
    for line_number, line in enumerate(lines, start=1):
        line = line.lstrip("\ufeff")
        if not line.strip():
            continue
        try:
            entry = parse_furigana_line(line, line_number)
        except ValueError as exc:
            skipped += 1
            _debug_log(f"skipping line {line_number}: {exc}")
            continue
        if priorities:
            text_common, reading_common = priorities.get((entry.text, entry.reading), (False, False))
            if text_common or reading_common:
                entry = replace(entry, text_common=text_common, reading_common=reading_common)
        entries.append(entry)
    return BuildResult(dictionary=Dictionary(entries), skipped=skipped)
