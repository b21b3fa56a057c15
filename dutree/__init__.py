"""dutree: estimate file space usage of directory trees, du-style."""

__version__ = "0.1.0"

from .config import ConfigError, DisplayConfig, Settings, TraversalConfig, load_settings
from .inodes import SeenInodeSet
from .output import CollectingEmitter, ConsoleEmitter, Diagnostic, Diagnostics, format_size, human_size
from .reporter import TreeSizeReporter, run
from .sizes import size_in_bytes, size_of
from .walker import UNAVAILABLE, TreeWalker

__all__ = [
    "__version__",
    "ConfigError",
    "DisplayConfig",
    "Settings",
    "TraversalConfig",
    "load_settings",
    "SeenInodeSet",
    "CollectingEmitter",
    "ConsoleEmitter",
    "Diagnostic",
    "Diagnostics",
    "format_size",
    "human_size",
    "TreeSizeReporter",
    "run",
    "size_in_bytes",
    "size_of",
    "UNAVAILABLE",
    "TreeWalker",
]
