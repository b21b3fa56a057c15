"""Pytest fixtures and helpers for dutree tests."""
from __future__ import annotations

import os
import pathlib
from typing import Any, Callable

import pytest

from dutree.config import TraversalConfig
from dutree.inodes import SeenInodeSet
from dutree.output import CollectingEmitter, Diagnostics
from dutree.walker import TreeWalker


# ==================== Tree Builders ====================


def build_tree(root: pathlib.Path, layout: dict[str, Any]) -> pathlib.Path:
    """
    Create files and directories under `root` from a nested dict.

    int values become files of that many bytes, bytes values are written
    verbatim, dict values become subdirectories.
    """
    root.mkdir(parents=True, exist_ok=True)
    for name, value in layout.items():
        target = root / name
        if isinstance(value, dict):
            build_tree(target, value)
        elif isinstance(value, bytes):
            target.write_bytes(value)
        else:
            target.write_bytes(b"x" * int(value))
    return root


@pytest.fixture
def make_tree(tmp_path) -> Callable[..., pathlib.Path]:
    """Factory: make_tree({"a.txt": 10, "sub": {"b.txt": 20}}) -> path of tree root."""
    def _make(layout: dict[str, Any], name: str = "root") -> pathlib.Path:
        return build_tree(tmp_path / name, layout)
    return _make


@pytest.fixture
def sample_tree(make_tree) -> pathlib.Path:
    """root/a.txt (10 bytes) and root/sub/b.txt (20 bytes)."""
    return make_tree({"a.txt": 10, "sub": {"b.txt": 20}})


# ==================== Walker Fixtures ====================


@pytest.fixture
def collector() -> CollectingEmitter:
    return CollectingEmitter()


@pytest.fixture
def diagnostics() -> Diagnostics:
    return Diagnostics(echo=False)


@pytest.fixture
def apparent() -> TraversalConfig:
    return TraversalConfig(apparent_size=True, sort_entries=True)


@pytest.fixture
def make_walker(collector, diagnostics) -> Callable[..., TreeWalker]:
    """
    Factory for a TreeWalker over `root` with the root's identity already
    recorded, the way TreeSizeReporter starts a walk.
    """
    def _make(root: pathlib.Path, config: TraversalConfig) -> TreeWalker:
        seen = SeenInodeSet()
        st = os.stat(root)
        seen.add(st.st_dev, st.st_ino)
        return TreeWalker(config, seen, collector, diagnostics)
    return _make


# ==================== Environment ====================


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch, tmp_path):
    """Keep user config files and block-size variables out of every test."""
    monkeypatch.delenv("DUTREE_CONFIG", raising=False)
    monkeypatch.delenv("DUTREE_BLOCK_SIZE", raising=False)
    monkeypatch.delenv("BLOCKSIZE", raising=False)

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("APPDATA", str(home))
