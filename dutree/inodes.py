"""
Device/inode bookkeeping for hard-link detection.

A file reachable through several names (hard links), or a directory reached a
second time through a followed symlink, has one (st_dev, st_ino) identity.
The walker records every identity it accounts for and skips repeats.
"""

from __future__ import annotations

from typing import Tuple

Identity = Tuple[int, int]


class SeenInodeSet:
    """Insert-only set of (device, inode) pairs."""

    def __init__(self) -> None:
        self._seen: set[Identity] = set()

    def contains(self, device: int, inode: int) -> bool:
        return (device, inode) in self._seen

    def add(self, device: int, inode: int) -> None:
        self._seen.add((device, inode))

    def check_and_add(self, device: int, inode: int) -> bool:
        """
        Record (device, inode) and report whether it was new.

        Returns False when the pair had already been seen; the caller must then
        skip the entry so it is not counted twice.
        """
        key = (device, inode)
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def __contains__(self, key: object) -> bool:
        return key in self._seen

    def __len__(self) -> int:
        return len(self._seen)
