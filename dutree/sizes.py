from __future__ import annotations

"""
Per-node size policy.

Two accounting modes:
- apparent size: st_size in bytes; directories contribute 0 of their own.
- allocated size: st_blocks, counted in 512-byte units for every file type.
"""

import math
import os
import stat

from .config import TraversalConfig

BLOCK_UNIT = 512


def allocated_blocks(status: os.stat_result) -> int:
    blocks = getattr(status, "st_blocks", None)
    if blocks is None:
        # Windows stat results carry no block count
        return math.ceil(status.st_size / BLOCK_UNIT)
    return blocks


def size_of(status: os.stat_result, config: TraversalConfig) -> int:
    """Return the size a node contributes under the configured accounting mode."""
    if config.apparent_size:
        if stat.S_ISDIR(status.st_mode):
            return 0
        return status.st_size
    return allocated_blocks(status)


def size_in_bytes(size: int, config: TraversalConfig) -> int:
    """Convert a value produced by size_of (or a sum of them) into bytes."""
    if config.apparent_size:
        return size
    return size * BLOCK_UNIT
