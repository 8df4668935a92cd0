from __future__ import annotations

import sys

_DEBUG_LOG = False


def set_debug_logging(enabled: bool) -> None:
    global _DEBUG_LOG
    _DEBUG_LOG = enabled


def debug_logging_enabled() -> bool:
    return _DEBUG_LOG


def _debug_log(message: str) -> None:
    # stderr keeps annotated output on stdout clean.
    if _DEBUG_LOG:
        print(f"[furi debug] {message}", file=sys.stderr)
