from __future__ import annotations

import os
import sys
import warnings
from dataclasses import dataclass
from pathlib import Path

import requests
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
)

from .build import DictionaryBuildError, build_dictionary, read_priority_flags
from .dictionary import default_dictionary, load_dictionary, save_dictionary
from .logging_utils import _debug_log

DEFAULT_DICTIONARY_URL = (
    "https://github.com/Doublevil/JmdictFurigana/releases/latest/download/JmdictFurigana.txt"
)
DEFAULT_JMDICT_URL = "http://ftp.edrdg.org/pub/Nihongo/JMdict_e.gz"
DICTIONARY_FILENAME = "furigana.json.gz"


@dataclass(slots=True)
class DictionaryStatus:
    path: Path | None
    entries: int | None
    managed: bool
    skipped: int = 0


def _share_root() -> Path:
    env_home = os.environ.get("FURI_HOME")
    if env_home:
        return Path(env_home).expanduser()
    return Path(sys.prefix) / "share" / "furi"


def managed_dictionary_path() -> Path:
    return _share_root() / DICTIONARY_FILENAME


def resolve_dictionary_path() -> Path | None:
    env_path = os.environ.get("FURI_DICTIONARY")
    if env_path:
        # An explicit override is returned even when missing so loading
        # reports it instead of quietly using another dictionary.
        return Path(env_path).expanduser()
    managed = managed_dictionary_path()
    if managed.is_file():
        return managed
    return None


def resolve_managed_dictionary() -> DictionaryStatus:
    path = managed_dictionary_path()
    if not path.is_file():
        return DictionaryStatus(path=None, entries=None, managed=False)
    dictionary = load_dictionary(path)
    return DictionaryStatus(path=path, entries=len(dictionary), managed=True)


def download_file(url: str, destination: Path, *, description: str) -> Path:
    destination.parent.mkdir(parents=True, exist_ok=True)
    _debug_log(f"downloading {url} -> {destination}")
    partial = destination.with_name(destination.name + ".part")
    try:
        with requests.get(url, stream=True, timeout=60) as response:
            response.raise_for_status()
            total = response.headers.get("Content-Length")
            total_bytes = int(total) if total and total.isdigit() else None
            progress = Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                DownloadColumn(),
                TimeRemainingColumn(),
                transient=True,
            )
            with partial.open("wb") as handle, progress:
                task = progress.add_task(description, total=total_bytes)
                for chunk in response.iter_content(chunk_size=1024 * 1024):
                    if not chunk:
                        continue
                    handle.write(chunk)
                    progress.advance(task, len(chunk))
    except requests.RequestException as exc:
        partial.unlink(missing_ok=True)
        raise DictionaryBuildError(f"Failed to download {url}: {exc}") from exc
    partial.replace(destination)
    return destination


def install_dictionary(
    *,
    url: str | None = DEFAULT_DICTIONARY_URL,
    source_path: str | Path | None = None,
    jmdict_path: str | Path | None = None,
    jmdict_url: str | None = None,
    output: str | Path | None = None,
    force: bool = False,
) -> DictionaryStatus:
    """
    Build the furigana dictionary artifact.

    The JmdictFurigana source is read from ``source_path`` or downloaded from
    ``url``. JMdict priority markers (``jmdict_path`` or ``jmdict_url``) mark
    common words; without them every entry counts as uncommon.
    """
    target = Path(output).expanduser() if output else managed_dictionary_path()
    managed = output is None
    if target.is_file() and not force:
        dictionary = load_dictionary(target)
        return DictionaryStatus(path=target, entries=len(dictionary), managed=managed)

    downloads = _share_root() / "downloads"
    if source_path is not None:
        source = Path(source_path).expanduser()
        if not source.is_file():
            raise DictionaryBuildError(f"Dictionary source not found: {source}")
    else:
        if url is None:
            raise DictionaryBuildError("No download URL provided for the dictionary source.")
        filename = url.rstrip("/").split("/")[-1] or "JmdictFurigana.txt"
        source = download_file(url, downloads / filename, description="Downloading JmdictFurigana")

    priorities = None
    jmdict: Path | None = None
    if jmdict_path is not None:
        jmdict = Path(jmdict_path).expanduser()
        if not jmdict.is_file():
            raise DictionaryBuildError(f"JMdict file not found: {jmdict}")
    elif jmdict_url is not None:
        filename = jmdict_url.rstrip("/").split("/")[-1] or "JMdict_e.gz"
        jmdict = download_file(jmdict_url, downloads / filename, description="Downloading JMdict")
    if jmdict is not None:
        priorities = read_priority_flags(jmdict)

    with source.open("r", encoding="utf-8-sig") as handle:
        result = build_dictionary(handle, priorities=priorities)
    save_dictionary(result.dictionary, target)
    if managed:
        default_dictionary.cache_clear()
    return DictionaryStatus(
        path=target,
        entries=len(result.dictionary),
        managed=managed,
        skipped=result.skipped,
    )


def get_unidic_dicdir() -> Path | None:
    env_dir = os.environ.get("FURI_UNIDIC_DIR")
    if env_dir:
        candidate = Path(env_dir).expanduser()
        if (candidate / "dicrc").exists():
            return candidate
        warnings.warn(
            f"FURI_UNIDIC_DIR={env_dir} has no dicrc; ignoring it.",
            RuntimeWarning,
            stacklevel=2,
        )
    try:
        import unidic  # type: ignore
    except ImportError:
        return None
    dicdir = Path(getattr(unidic, "DICDIR", ""))
    if dicdir and (dicdir / "dicrc").exists():
        return dicdir
    return None
