from __future__ import annotations

import gzip
import json
import zlib
from bisect import bisect_left
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Iterator, Mapping

__all__ = [
    "ARTIFACT_FORMAT",
    "ARTIFACT_VERSION",
    "Dictionary",
    "DictionaryEntry",
    "DictionaryLoadError",
    "ReadingPart",
    "check_entry",
    "default_dictionary",
    "load_dictionary",
    "save_dictionary",
]

ARTIFACT_FORMAT = "furi-dictionary"
ARTIFACT_VERSION = 1


class DictionaryLoadError(RuntimeError):
    """Raised when a dictionary artifact is missing or cannot be decoded."""


@dataclass(frozen=True, slots=True)
class ReadingPart:
    """Reading of the surface characters ``text[start:end]``."""

    start: int
    end: int
    reading: str


@dataclass(frozen=True, slots=True)
class DictionaryEntry:
    text: str
    reading: str
    parts: tuple[ReadingPart, ...]
    text_common: bool = False
    reading_common: bool = False

    @property
    def common(self) -> bool:
        return self.text_common or self.reading_common

    def part_text(self, part: ReadingPart) -> str:
        return self.text[part.start : part.end]


def check_entry(entry: DictionaryEntry) -> None:
    """Raise ValueError unless the entry's parts tile its text and reading."""
    cursor = 0
    readings: list[str] = []
    for part in entry.parts:
        if part.start != cursor:
            raise ValueError(
                f"{entry.text}: part starts at {part.start}, expected {cursor}"
            )
        if part.end < part.start:
            raise ValueError(f"{entry.text}: part {part.start}-{part.end} is reversed")
        if (part.end == part.start) == bool(part.reading):
            raise ValueError(
                f"{entry.text}: span {part.start}-{part.end} and reading {part.reading!r} disagree"
            )
        cursor = part.end
        readings.append(part.reading)
    if cursor != len(entry.text):
        raise ValueError(f"{entry.text}: parts cover {cursor} of {len(entry.text)} characters")
    if "".join(readings) != entry.reading:
        raise ValueError(f"{entry.text}: part readings do not spell {entry.reading}")


class Dictionary:
    """
    Read-only index from surface text to dictionary entries.

    Entries for the same surface keep their declaration order. Nothing is
    mutated after construction, so one instance can serve any number of
    threads.
    """

    def __init__(self, entries: Iterable[DictionaryEntry] = ()) -> None:
        index: dict[str, list[DictionaryEntry]] = {}
        for entry in entries:
            index.setdefault(entry.text, []).append(entry)
        self._index: dict[str, tuple[DictionaryEntry, ...]] = {
            text: tuple(items) for text, items in index.items()
        }
        self._keys: tuple[str, ...] = tuple(sorted(self._index))
        self._size = sum(len(items) for items in self._index.values())

    def __len__(self) -> int:
        return self._size

    def __contains__(self, surface: object) -> bool:
        return surface in self._index

    def __repr__(self) -> str:
        return f"Dictionary({self._size} entries)"

    def entries(self) -> Iterator[DictionaryEntry]:
        for key in self._keys:
            yield from self._index[key]

    def lookup(self, surface: str) -> tuple[DictionaryEntry, ...]:
        return self._index.get(surface, ())

    def lookup_prefixed(self, prefix: str) -> list[DictionaryEntry]:
        if not prefix:
            return list(self.entries())
        found: list[DictionaryEntry] = []
        idx = bisect_left(self._keys, prefix)
        while idx < len(self._keys) and self._keys[idx].startswith(prefix):
            found.extend(self._index[self._keys[idx]])
            idx += 1
        return found


def serialize_entry(entry: DictionaryEntry) -> dict[str, object]:
    return {
        "text": entry.text,
        "reading": entry.reading,
        "parts": [[part.start, part.end, part.reading] for part in entry.parts],
        "text_common": entry.text_common,
        "reading_common": entry.reading_common,
    }


def deserialize_entry(data: Mapping[str, object]) -> DictionaryEntry:
    text = data.get("text")
    reading = data.get("reading")
    raw_parts = data.get("parts")
    if not isinstance(text, str) or not text:
        raise ValueError(f"entry has no text: {data!r}")
    if not isinstance(reading, str):
        raise ValueError(f"{text}: reading must be a string")
    if not isinstance(raw_parts, list):
        raise ValueError(f"{text}: parts must be a list")
    parts: list[ReadingPart] = []
    for raw in raw_parts:
        if (
            not isinstance(raw, list)
            or len(raw) != 3
            or not isinstance(raw[0], int)
            or not isinstance(raw[1], int)
            or not isinstance(raw[2], str)
        ):
            raise ValueError(f"{text}: malformed part {raw!r}")
        parts.append(ReadingPart(start=raw[0], end=raw[1], reading=raw[2]))
    entry = DictionaryEntry(
        text=text,
        reading=reading,
        parts=tuple(parts),
        text_common=bool(data.get("text_common", False)),
        reading_common=bool(data.get("reading_common", False)),
    )
    check_entry(entry)
    return entry


def save_dictionary(dictionary: Dictionary, path: Path) -> Path:
    payload = {
        "format": ARTIFACT_FORMAT,
        "version": ARTIFACT_VERSION,
        "entries": [serialize_entry(entry) for entry in dictionary.entries()],
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with gzip.open(path, "wt", encoding="utf-8") as handle:
        json.dump(payload, handle, ensure_ascii=False, separators=(",", ":"))
    return path


def load_dictionary(path: Path | str) -> Dictionary:
    path = Path(path)
    try:
        with gzip.open(path, "rt", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError as exc:
        raise DictionaryLoadError(f"Dictionary not found: {path}") from exc
    except (OSError, EOFError, zlib.error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DictionaryLoadError(f"Failed to read dictionary {path}: {exc}") from exc
    if not isinstance(payload, dict) or payload.get("format") != ARTIFACT_FORMAT:
        raise DictionaryLoadError(f"{path} is not a furi dictionary.")
    version = payload.get("version")
    if version != ARTIFACT_VERSION:
        raise DictionaryLoadError(
            f"{path} has dictionary version {version!r}; expected {ARTIFACT_VERSION}."
        )
    raw_entries = payload.get("entries")
    if not isinstance(raw_entries, list):
        raise DictionaryLoadError(f"{path} has no entry list.")
    entries: list[DictionaryEntry] = []
    for position, raw in enumerate(raw_entries):
        if not isinstance(raw, dict):
            raise DictionaryLoadError(f"{path}: entry {position} is not an object.")
        try:
            entries.append(deserialize_entry(raw))
        except ValueError as exc:
            raise DictionaryLoadError(f"{path}: entry {position}: {exc}") from exc
    return Dictionary(entries)


@lru_cache(maxsize=1)
def default_dictionary() -> Dictionary:
    """Load the configured dictionary once per process."""
    from .tools import resolve_dictionary_path

    path = resolve_dictionary_path()
    if path is None:
        raise DictionaryLoadError(
            "No furigana dictionary installed. Run 'furi tools install-dictionary' "
            "or set FURI_DICTIONARY."
        )
    return load_dictionary(path)
