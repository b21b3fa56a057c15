"""
Presentation and diagnostics.

- format_size / human_size turn byte counts into du-style strings.
- Emitters receive every reported (size, label) pair from the walker and the
  reporter. ConsoleEmitter prints `<size>\t<path>` lines; CollectingEmitter
  keeps them in memory so the traversal can be checked without a terminal.
- Diagnostics is the error channel: each unreadable directory or failed stat
  is recorded, logged, and printed to stderr through a rich console.
"""

from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass
from typing import List, Optional, Protocol, TextIO, Tuple

from rich.console import Console
from rich.text import Text

from .config import DisplayConfig, TraversalConfig
from .sizes import size_in_bytes

logger = logging.getLogger(__name__)

PROG = "dutree"

_HUMAN_UNITS = ("", "K", "M", "G", "T", "P", "E")

_DIAGNOSTIC_TEMPLATES = {
    "unreadable-dir": "cannot read directory '{path}': {reason}",
    "read-failed": "error reading directory '{path}': {reason}",
    "stat-failed": "cannot access '{path}': {reason}",
    "too-deep": "directory nesting too deep at '{path}': {reason}",
}


def human_size(num_bytes: int) -> str:
    """
    Format bytes with binary suffixes the way `du -h` does: values are rounded
    up, one decimal below 10, none from 10 upwards.

    Examples:
        512 -> "512"
        1024 -> "1.0K"
        1536 -> "1.5K"
        10240 -> "10K"
    """
    if num_bytes < 1024:
        return str(num_bytes)
    value = float(num_bytes)
    idx = 0
    while value >= 1024.0 and idx < len(_HUMAN_UNITS) - 1:
        value /= 1024.0
        idx += 1
    if value < 10.0:
        rounded = math.ceil(value * 10.0) / 10.0
        if rounded < 10.0:
            return f"{rounded:.1f}{_HUMAN_UNITS[idx]}"
    whole = math.ceil(value)
    if whole >= 1024 and idx < len(_HUMAN_UNITS) - 1:
        return f"1.0{_HUMAN_UNITS[idx + 1]}"
    return f"{whole}{_HUMAN_UNITS[idx]}"


def format_size(num_bytes: int, display: DisplayConfig) -> str:
    if display.human_readable:
        return human_size(num_bytes)
    # round up to whole output units, like du
    return str(-(-num_bytes // display.block_size))


class Emitter(Protocol):
    def emit(self, size: int, label: str) -> None: ...


class ConsoleEmitter:
    """Prints one `<size>\\t<label>` line per report."""

    def __init__(self, traversal: TraversalConfig, display: DisplayConfig, stream: Optional[TextIO] = None):
        self.traversal = traversal
        self.display = display
        self._stream = stream

    def emit(self, size: int, label: str) -> None:
        text = format_size(size_in_bytes(size, self.traversal), self.display)
        # Tabs must reach the output intact, so this bypasses rich rendering.
        print(f"{text}\t{label}", file=self._stream or sys.stdout)


class CollectingEmitter:
    def __init__(self) -> None:
        self.lines: List[Tuple[int, str]] = []

    def emit(self, size: int, label: str) -> None:
        self.lines.append((size, label))

    @property
    def labels(self) -> List[str]:
        return [label for _, label in self.lines]

    def size_for(self, label: str) -> int:
        for size, seen_label in self.lines:
            if seen_label == label:
                return size
        raise KeyError(label)


@dataclass(frozen=True)
class Diagnostic:
    path: str
    kind: str
    reason: str

    def __str__(self) -> str:
        template = _DIAGNOSTIC_TEMPLATES.get(self.kind, "{path}: {reason}")
        return template.format(path=self.path, reason=self.reason)


def make_error_console() -> Console:
    try:
        if sys.stderr.isatty():
            return Console(stderr=True, highlight=False)
        return Console(stderr=True, width=200, no_color=True, highlight=False, soft_wrap=True)
    except Exception:
        return Console(stderr=True, width=200, no_color=True, highlight=False, soft_wrap=True)


class Diagnostics:
    """Collects per-path errors met during traversal and surfaces them on stderr."""

    def __init__(self, console: Optional[Console] = None, echo: bool = True):
        self.records: List[Diagnostic] = []
        self.echo = echo
        self._console = console

    @property
    def console(self) -> Console:
        if self._console is None:
            self._console = make_error_console()
        return self._console

    def record(self, path: str, kind: str, reason: str) -> Diagnostic:
        diag = Diagnostic(path=path, kind=kind, reason=reason)
        self.records.append(diag)
        logger.debug("%s: %s", kind, diag)
        if self.echo:
            self.console.print(
                Text.assemble((f"{PROG}: ", "bold red"), str(diag)),
                soft_wrap=True,
            )
        return diag

    def kinds_for(self, path: str) -> List[str]:
        return [d.kind for d in self.records if d.path == path]

    def __len__(self) -> int:
        return len(self.records)

    def __bool__(self) -> bool:
        return bool(self.records)


def describe_os_error(exc: OSError) -> str:
    return exc.strerror or str(exc)
