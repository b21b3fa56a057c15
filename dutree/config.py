from __future__ import annotations

import dataclasses as dc
import logging
import os
import pathlib
import typing as t

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]


PathLikeStr = str | os.PathLike[str]
ConfigDict = dict[str, t.Any]

CONFIG_ENV = "DUTREE_CONFIG"
BLOCK_SIZE_ENVS = ("DUTREE_BLOCK_SIZE", "BLOCKSIZE")

DEFAULT_BLOCK_SIZE = 1024
# Each directory level costs two interpreter frames in the walker.
DEFAULT_MAX_RECURSION = 300

_UNIT_MAP = {
    "": 1,
    "b": 1,
    "k": 1024,
    "kb": 1024,
    "kib": 1024,
    "m": 1024**2,
    "mb": 1024**2,
    "mib": 1024**2,
    "g": 1024**3,
    "gb": 1024**3,
    "gib": 1024**3,
    "t": 1024**4,
    "tb": 1024**4,
    "tib": 1024**4,
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Invalid option or configuration value; fatal before any traversal."""


def parse_block_size(raw: str | int) -> int:
    """
    Parse a block size such as "512", "1K", "1M", "4KiB" into bytes.

    Raises ConfigError for malformed, unknown or non-positive values.
    """
    if isinstance(raw, bool):
        raise ConfigError(f"invalid block size: {raw!r}")
    if isinstance(raw, int):
        if raw <= 0:
            raise ConfigError(f"invalid block size: {raw}")
        return raw

    s = str(raw).strip()
    i = 0
    while i < len(s) and s[i].isdigit():
        i += 1
    num_str = s[:i]
    unit_str = s[i:].strip().lower()

    if unit_str not in _UNIT_MAP:
        raise ConfigError(f"invalid block size unit in {raw!r}; expected K, M, G or T")
    # A bare unit ("K") means one of that unit.
    value = int(num_str) if num_str else (1 if unit_str else 0)
    size = value * _UNIT_MAP[unit_str]
    if size <= 0:
        raise ConfigError(f"invalid block size: {raw!r}")
    return size


def parse_max_depth(raw: str | int) -> int:
    if isinstance(raw, bool):
        raise ConfigError(f"invalid maximum depth: {raw!r}")
    try:
        depth = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"invalid maximum depth: {raw!r}") from None
    if depth < 0:
        raise ConfigError(f"invalid maximum depth: {raw!r} (must be 0 or greater)")
    return depth


@dc.dataclass(frozen=True)
class TraversalConfig:
    """Options the walker consumes. Built once, never mutated during a walk."""

    apparent_size: bool = False
    dereference: bool = False          # follow every symlink (-L)
    dereference_args: bool = False     # follow symlinks named as arguments (-H)
    max_depth: int | None = None
    all_entries: bool = False
    summarize: bool = False
    sort_entries: bool = False
    max_recursion: int = DEFAULT_MAX_RECURSION

    def __post_init__(self) -> None:
        if self.max_depth is not None and self.max_depth < 0:
            raise ConfigError(f"invalid maximum depth: {self.max_depth}")
        if self.max_recursion < 1:
            raise ConfigError(f"invalid recursion limit: {self.max_recursion}")
        if self.summarize and self.all_entries:
            raise ConfigError("cannot both summarize and show all entries")
        if self.summarize and self.max_depth not in (None, 0):
            raise ConfigError(f"summarizing conflicts with --max-depth={self.max_depth}")


@dc.dataclass(frozen=True)
class DisplayConfig:
    block_size: int = DEFAULT_BLOCK_SIZE
    human_readable: bool = False
    grand_total: bool = False

    def __post_init__(self) -> None:
        if self.block_size <= 0:
            raise ConfigError(f"invalid block size: {self.block_size}")


@dc.dataclass
class Settings:
    """Defaults read from the TOML config file; command-line flags win."""

    block_size: int | None = None
    human_readable: bool = False
    apparent_size: bool = False
    dereference: bool = False
    sort_entries: bool = False
    max_depth: int | None = None
    max_recursion: int = DEFAULT_MAX_RECURSION
    log_level: str = "WARNING"
    source: pathlib.Path | None = None


def platform_config_default() -> pathlib.Path:
    """
    Determine the default config path by OS:
      - Windows: %APPDATA%/dutree/config.toml
      - Others:  ~/.config/dutree/config.toml
    """
    if os.name == "nt":
        appdata = os.environ.get("APPDATA") or os.path.expanduser("~\\AppData\\Roaming")
        return pathlib.Path(appdata) / "dutree" / "config.toml"
    return pathlib.Path.home() / ".config" / "dutree" / "config.toml"


def resolve_config_path(path: PathLikeStr | None) -> tuple[pathlib.Path, bool]:
    """
    Resolve the config file path (explicit path -> DUTREE_CONFIG env -> platform default).
    The flag tells whether the path was requested explicitly.
    """
    if path:
        return pathlib.Path(path), True
    env = os.environ.get(CONFIG_ENV)
    if env:
        return pathlib.Path(env), True
    return platform_config_default(), False


def load_settings(path: PathLikeStr | None = None) -> Settings:
    """
    Load defaults from TOML. A missing default file yields plain defaults;
    a missing file that was asked for explicitly is a ConfigError.
    """
    candidate, explicit = resolve_config_path(path)
    if not candidate.exists():
        if explicit:
            raise ConfigError(f"config file not found: {candidate}")
        return Settings()

    try:
        with candidate.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"malformed config file {candidate}: {e}") from e
    except OSError as e:
        raise ConfigError(f"cannot read config file {candidate}: {e.strerror or e}") from e

    settings = _parse_settings_dict(data)
    settings.source = candidate
    return settings


def _section(d: ConfigDict, name: str) -> ConfigDict:
    value = d.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{name}] must be a table")
    return value


def _bool(section: ConfigDict, key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _parse_settings_dict(d: ConfigDict) -> Settings:
    display = _section(d, "display")
    traversal = _section(d, "traversal")
    log = _section(d, "log")

    block_size = None
    if "block_size" in display:
        block_size = parse_block_size(display["block_size"])

    max_depth = None
    if traversal.get("max_depth") is not None:
        max_depth = parse_max_depth(traversal["max_depth"])

    max_recursion = traversal.get("max_recursion", DEFAULT_MAX_RECURSION)
    if isinstance(max_recursion, bool) or not isinstance(max_recursion, int) or max_recursion < 1:
        raise ConfigError(f"max_recursion must be a positive integer, got {max_recursion!r}")

    log_level = str(log.get("level", "WARNING")).upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigError(f"unknown log level {log_level!r}; expected one of {', '.join(_LOG_LEVELS)}")

    return Settings(
        block_size=block_size,
        human_readable=_bool(display, "human_readable", False),
        apparent_size=_bool(traversal, "apparent_size", False),
        dereference=_bool(traversal, "dereference", False),
        sort_entries=_bool(traversal, "sort_entries", False),
        max_depth=max_depth,
        max_recursion=max_recursion,
        log_level=log_level,
    )


def env_block_size(environ: t.Mapping[str, str] | None = None) -> int | None:
    """Block size from DUTREE_BLOCK_SIZE, then BLOCKSIZE; None when neither is set."""
    environ = os.environ if environ is None else environ
    for name in BLOCK_SIZE_ENVS:
        raw = environ.get(name, "").strip()
        if raw:
            try:
                return parse_block_size(raw)
            except ConfigError as e:
                raise ConfigError(f"{name}: {e}") from e
    return None


def log_level_number(settings: Settings, verbose: bool) -> int:
    if verbose:
        return logging.DEBUG
    return getattr(logging, settings.log_level, logging.WARNING)
