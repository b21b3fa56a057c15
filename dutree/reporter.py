from __future__ import annotations

import logging
import os
import stat
from typing import Iterable, Optional

from .config import DisplayConfig, TraversalConfig
from .inodes import SeenInodeSet
from .output import Diagnostics, Emitter, describe_os_error
from .sizes import size_of
from .walker import UNAVAILABLE, TreeWalker

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PARTIAL = 1


class TreeSizeReporter:
    """Sizes one command-line argument and emits its total line."""

    def __init__(self, config: TraversalConfig, emitter: Emitter, diagnostics: Diagnostics):
        self.config = config
        self.emitter = emitter
        self.diagnostics = diagnostics

    def report(self, path: str, seen: Optional[SeenInodeSet] = None) -> int:
        """
        Emit and return the total for `path`.

        Directories are walked and their own size is added to the walker's
        total; anything else (regular file, unfollowed symlink, device) is
        sized from its status alone. Unreadable arguments emit nothing and
        count as 0.
        """
        seen = SeenInodeSet() if seen is None else seen
        follow = self.config.dereference or self.config.dereference_args
        try:
            status = os.stat(path) if follow else os.lstat(path)
        except OSError as e:
            self.diagnostics.record(path, "stat-failed", describe_os_error(e))
            return 0

        if not seen.check_and_add(status.st_dev, status.st_ino):
            logger.debug("argument already counted: %s", path)
            return 0

        if stat.S_ISDIR(status.st_mode):
            walker = TreeWalker(self.config, seen, self.emitter, self.diagnostics)
            below = walker.walk(path, 0)
            if below is UNAVAILABLE:
                return 0
            size = size_of(status, self.config) + below
        else:
            size = size_of(status, self.config)

        self.emitter.emit(size, path)
        return size


def run(
    paths: Iterable[str],
    traversal: TraversalConfig,
    display: DisplayConfig,
    emitter: Emitter,
    diagnostics: Diagnostics,
) -> int:
    """Report every argument in order, then the grand total; return the exit status."""
    reporter = TreeSizeReporter(traversal, emitter, diagnostics)
    grand_total = 0
    for path in list(paths) or ["."]:
        # A fresh inode set per argument: each argument's total stands alone.
        grand_total += reporter.report(path)
    if display.grand_total:
        emitter.emit(grand_total, "total")
    return EXIT_PARTIAL if diagnostics else EXIT_OK
