"""
Depth-first traversal and size accounting.

TreeWalker.walk(path, depth) sums everything below one directory:

- entries are lstat'ed (symlinks are not followed unless dereferencing),
- each (st_dev, st_ino) is counted once per SeenInodeSet, so hard links and
  directories reached twice through followed symlinks add nothing the second
  time (this is also what ends symlink cycles),
- subdirectories are reported after their own contents (post-order),
- max_depth and summarize only restrict which nodes are reported; descent and
  accumulation always reach the bottom of the tree.

A directory that cannot be opened yields UNAVAILABLE instead of a size. The
error goes to the Diagnostics channel and the parent adds nothing for it.
"""

from __future__ import annotations

import logging
import os
import stat
from typing import List, Optional

from .config import TraversalConfig
from .inodes import SeenInodeSet
from .output import Diagnostics, Emitter, describe_os_error
from .sizes import size_of

logger = logging.getLogger(__name__)

UNAVAILABLE = None

_PSEUDO_ENTRIES = (".", "..")


class TreeWalker:
    def __init__(
        self,
        config: TraversalConfig,
        seen: SeenInodeSet,
        emitter: Emitter,
        diagnostics: Diagnostics,
    ):
        self.config = config
        self.seen = seen
        self.emitter = emitter
        self.diagnostics = diagnostics

    def should_report(self, depth: int) -> bool:
        """Whether a node `depth` levels below the argument gets its own line."""
        if self.config.summarize:
            return False
        if self.config.max_depth is not None and depth > self.config.max_depth:
            return False
        return True

    def walk(self, path: str, depth: int = 0) -> Optional[int]:
        """
        Return the total size of the entries below `path` (not counting the
        directory itself), or UNAVAILABLE if it could not be opened.
        """
        if depth > self.config.max_recursion:
            self.diagnostics.record(path, "too-deep", f"more than {self.config.max_recursion} levels")
            return UNAVAILABLE

        names = self._read_names(path)
        if names is UNAVAILABLE:
            return UNAVAILABLE
        if self.config.sort_entries:
            names.sort()

        logger.debug("walking %s (%d entries, depth %d)", path, len(names), depth)
        total = 0
        for name in names:
            total += self._visit(os.path.join(path, name), depth + 1)
        return total

    def _read_names(self, path: str) -> Optional[List[str]]:
        try:
            it = os.scandir(path)
        except OSError as e:
            self.diagnostics.record(path, "unreadable-dir", describe_os_error(e))
            return UNAVAILABLE

        names: List[str] = []
        # The handle is closed before descending, so open descriptors do not
        # grow with tree depth.
        with it:
            try:
                for entry in it:
                    if entry.name not in _PSEUDO_ENTRIES:
                        names.append(entry.name)
            except OSError as e:
                self.diagnostics.record(path, "read-failed", describe_os_error(e))
        return names

    def _visit(self, path: str, depth: int) -> int:
        """Account for one entry found `depth` levels below the argument."""
        try:
            status = os.lstat(path)
        except OSError as e:
            self.diagnostics.record(path, "stat-failed", describe_os_error(e))
            return 0

        if not self.seen.check_and_add(status.st_dev, status.st_ino):
            logger.debug("already counted: %s", path)
            return 0

        if stat.S_ISLNK(status.st_mode) and self.config.dereference:
            try:
                status = os.stat(path)
            except OSError as e:
                self.diagnostics.record(path, "stat-failed", describe_os_error(e))
                return 0
            if not self.seen.check_and_add(status.st_dev, status.st_ino):
                logger.debug("link target already counted: %s", path)
                return 0

        if stat.S_ISDIR(status.st_mode):
            below = self.walk(path, depth)
            if below is UNAVAILABLE:
                return 0
            size = size_of(status, self.config) + below
            if self.should_report(depth):
                self.emitter.emit(size, path)
            return size

        size = size_of(status, self.config)
        if self.config.all_entries and self.should_report(depth):
            self.emitter.emit(size, path)
        return size
