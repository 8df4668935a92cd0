from __future__ import annotations

import argparse
import os
import sys
from importlib import metadata
from pathlib import Path

import tomllib

from .annotate import Annotator
from .build import DictionaryBuildError
from .dictionary import (
    Dictionary,
    DictionaryEntry,
    DictionaryLoadError,
    default_dictionary,
    load_dictionary,
)
from .kana import contains_kanji
from .logging_utils import set_debug_logging
from .nlp import AnalyzerUnavailableError
from .render import RenderOptions
from .select import STRATEGIES, get_selector
from .tools import (
    DEFAULT_DICTIONARY_URL,
    DEFAULT_JMDICT_URL,
    get_unidic_dicdir,
    install_dictionary,
    resolve_dictionary_path,
    resolve_managed_dictionary,
)

FORMAT_ALIASES = {
    "markdown": "markdown",
    "md": "markdown",
    "html": "html",
    "latex": "latex",
    "tex": "latex",
}


def _read_local_version() -> str | None:
    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    except IndexError:  # pragma: no cover - installed without a source tree
        return None
    try:
        with pyproject_path.open("rb") as fh:
            data = tomllib.load(fh)
    except (FileNotFoundError, tomllib.TOMLDecodeError):
        return None
    return data.get("project", {}).get("version")


try:
    __version__ = metadata.version("furi")
except metadata.PackageNotFoundError:
    __version__ = _read_local_version() or "0.0.0+unknown"


def _add_version_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"furi {__version__}",
    )


def _add_dictionary_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--dictionary",
        help="Path to a dictionary artifact (defaults to FURI_DICTIONARY or the managed install).",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="furi",
        description="Add furigana to Japanese text.",
        epilog="Commands: annotate, lookup, tools. Run 'furi <command> --help' for details.",
    )
    _add_version_flag(ap)
    return ap


def build_annotate_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="furi annotate",
        description="Annotate text with furigana and render it as markdown, HTML or LaTeX.",
    )
    _add_version_flag(ap)
    ap.add_argument("input_path", nargs="?", help="File to read input from, otherwise STDIN.")
    ap.add_argument("output_path", nargs="?", help="File to write output to, otherwise STDOUT.")
    ap.add_argument(
        "-f",
        "--format",
        required=True,
        choices=sorted(FORMAT_ALIASES),
        help="Output format.",
    )
    ap.add_argument(
        "-c",
        "--include-common",
        action="store_true",
        help="Include readings for common words.",
    )
    ap.add_argument(
        "-k",
        "--katakana",
        action="store_true",
        help="Write readings in katakana instead of hiragana.",
    )
    ap.add_argument(
        "-1",
        "--only-first",
        action="store_true",
        help="Only annotate the first occurrence of a word.",
    )
    ap.add_argument(
        "--strategy",
        choices=sorted(STRATEGIES),
        default="heuristic",
        help=(
            "How to pick between dictionary readings: 'exact' requires the analyzer's reading, "
            "'heuristic' (default) falls back to the closest one."
        ),
    )
    _add_dictionary_option(ap)
    ap.add_argument("--debug", action="store_true", help="Print per-token decisions to stderr.")
    return ap


def build_lookup_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="furi lookup",
        description="Show dictionary entries for a word.",
    )
    _add_version_flag(ap)
    ap.add_argument("word", help="Surface text to look up.")
    ap.add_argument(
        "--prefix",
        action="store_true",
        help="List every entry starting with WORD instead of exact matches.",
    )
    _add_dictionary_option(ap)
    return ap


def build_tools_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="furi tools",
        description="Manage the furigana dictionary and inspect the analyzer setup.",
    )
    _add_version_flag(ap)
    sub = ap.add_subparsers(dest="tool_cmd")

    install = sub.add_parser(
        "install-dictionary",
        help="Download JmdictFurigana and build the dictionary artifact.",
    )
    install.add_argument(
        "--url",
        default=DEFAULT_DICTIONARY_URL,
        help="Download URL for JmdictFurigana.txt.",
    )
    install.add_argument("--source", help="Use a local JmdictFurigana.txt instead of downloading.")
    install.add_argument("--jmdict", help="Local JMdict XML (optionally .gz) for common-word flags.")
    install.add_argument(
        "--with-frequency",
        action="store_true",
        help=f"Download JMdict from {DEFAULT_JMDICT_URL} for common-word flags.",
    )
    install.add_argument("--output", help="Write the artifact here instead of the managed location.")
    install.add_argument("--force", action="store_true", help="Rebuild even if the artifact exists.")
    install.add_argument("--debug", action="store_true", help="Report skipped source lines.")

    sub.add_parser("dictionary-status", help="Show which dictionary artifact is in use.")
    sub.add_parser("unidic-status", help="Show which UniDic directory the analyzer uses.")
    return ap


def _load_dictionary_arg(path: str | None) -> Dictionary:
    try:
        if path:
            return load_dictionary(Path(path).expanduser())
        return default_dictionary()
    except DictionaryLoadError as exc:
        raise SystemExit(str(exc)) from exc


def _read_input(input_path: str | None) -> str:
    if input_path is None:
        return sys.stdin.read()
    path = Path(input_path)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SystemExit(f"Could not read input file {path}: {exc}") from exc


def _write_output(output_path: str | None, text: str) -> None:
    if output_path is None:
        sys.stdout.write(text)
        sys.stdout.flush()
        return
    path = Path(output_path)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise SystemExit(f"Could not write output file {path}: {exc}") from exc


def _run_annotate(args: argparse.Namespace) -> int:
    set_debug_logging(bool(getattr(args, "debug", False)))
    dictionary = _load_dictionary_arg(args.dictionary)
    try:
        annotator = Annotator(dictionary, selector=get_selector(args.strategy))
    except AnalyzerUnavailableError as exc:
        raise SystemExit(str(exc)) from exc
    text = _read_input(args.input_path)
    document = annotator.annotate(text)
    options = RenderOptions(
        gloss_common_words=args.include_common,
        script="katakana" if args.katakana else "hiragana",
        first_occurrence_only=args.only_first,
    )
    _write_output(args.output_path, document.render(FORMAT_ALIASES[args.format], options))
    return 0


def _format_range(start: int, end: int) -> str:
    last = end - 1
    return str(start) if last == start else f"{start}-{last}"


def _format_entry(entry: DictionaryEntry) -> str:
    # Same notation as the JmdictFurigana source: kana gaps are implied.
    parts = ";".join(
        f"{_format_range(part.start, part.end)}:{part.reading}"
        for part in entry.parts
        if contains_kanji(entry.part_text(part))
    )
    flags: list[str] = []
    if entry.text_common:
        flags.append("common text")
    if entry.reading_common:
        flags.append("common reading")
    suffix = f" ({', '.join(flags)})" if flags else ""
    return f"{entry.text}|{entry.reading}|{parts}{suffix}"


def _run_lookup(args: argparse.Namespace) -> int:
    dictionary = _load_dictionary_arg(args.dictionary)
    if args.prefix:
        entries = dictionary.lookup_prefixed(args.word)
    else:
        entries = list(dictionary.lookup(args.word))
    if not entries:
        print(f"No entries for {args.word}", file=sys.stderr)
        return 1
    for entry in entries:
        print(_format_entry(entry))
    return 0


def _run_tools(args: argparse.Namespace) -> int:
    if not args.tool_cmd:
        raise SystemExit("A tools subcommand is required. Use --help for options.")

    if args.tool_cmd == "install-dictionary":
        set_debug_logging(bool(getattr(args, "debug", False)))
        try:
            status = install_dictionary(
                url=args.url,
                source_path=args.source,
                jmdict_path=args.jmdict,
                jmdict_url=DEFAULT_JMDICT_URL if args.with_frequency and not args.jmdict else None,
                output=args.output,
                force=args.force,
            )
        except (DictionaryBuildError, DictionaryLoadError) as exc:
            raise SystemExit(str(exc)) from exc
        print(f"Dictionary with {status.entries} entries written to {status.path}")
        if status.skipped:
            print(f"Skipped {status.skipped} source lines whose readings could not be aligned.")
        if not status.managed:
            print("Set FURI_DICTIONARY to this path to use it by default.")
        return 0

    if args.tool_cmd == "dictionary-status":
        try:
            status = resolve_managed_dictionary()
        except DictionaryLoadError as exc:
            raise SystemExit(str(exc)) from exc
        if status.path is not None:
            print(f"Managed dictionary: {status.path}")
            print(f"Entries: {status.entries}")
        else:
            print("No managed dictionary detected. Use 'furi tools install-dictionary'.")
        env_path = os.environ.get("FURI_DICTIONARY")
        if env_path:
            print(f"FURI_DICTIONARY is set to: {env_path}")
        active = resolve_dictionary_path()
        print(f"Active dictionary: {active if active is not None else 'none'}")
        return 0

    if args.tool_cmd == "unidic-status":
        dicdir = get_unidic_dicdir()
        if dicdir is not None:
            print(f"UniDic directory: {dicdir}")
        else:
            print("No UniDic directory configured; fugashi's default dictionary (unidic-lite) is used.")
        env_dir = os.environ.get("FURI_UNIDIC_DIR")
        if env_dir:
            print(f"FURI_UNIDIC_DIR is set to: {env_dir}")
        return 0

    raise SystemExit(f"Unknown tools subcommand: {args.tool_cmd}")


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if argv and argv[0] == "annotate":
        annotate_args = build_annotate_parser().parse_args(argv[1:])
        return _run_annotate(annotate_args)
    if argv and argv[0] == "lookup":
        lookup_args = build_lookup_parser().parse_args(argv[1:])
        return _run_lookup(lookup_args)
    if argv and argv[0] == "tools":
        tools_args = build_tools_parser().parse_args(argv[1:])
        return _run_tools(tools_args)

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0
    parser.parse_args(argv)
    raise SystemExit(f"Unknown command: {argv[0]}. Use --help for options.")


if __name__ == "__main__":
    raise SystemExit(main())
