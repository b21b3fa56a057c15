from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Mapping, Sequence

from rich.text import Text

from . import __version__
from .config import (
    DEFAULT_BLOCK_SIZE,
    ConfigError,
    DisplayConfig,
    Settings,
    TraversalConfig,
    env_block_size,
    load_settings,
    log_level_number,
    parse_block_size,
    parse_max_depth,
    platform_config_default,
)
from .output import PROG, ConsoleEmitter, Diagnostics, make_error_console
from .reporter import run

EXIT_USAGE = 2


def _epilog() -> str:
    return (
        "Examples:\n"
        "  dutree -s ~/Downloads\n"
        "  dutree -d 1 -h /var\n"
        "  dutree -ab -c src tests\n"
        "\n"
        f"Default config path: {platform_config_default()}\n"
        "Environment: DUTREE_CONFIG, DUTREE_BLOCK_SIZE (or BLOCKSIZE)\n"
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog=PROG,
        description="Summarize disk usage of each FILE, recursively for directories.",
        epilog=_epilog(),
        formatter_class=argparse.RawTextHelpFormatter,
        add_help=False,  # -h is --human-readable, as in du
    )
    p.add_argument("--help", action="help", help="Show this help message and exit")
    p.add_argument("--version", "-V", action="version", version=f"%(prog)s {__version__}")

    show = p.add_mutually_exclusive_group()
    show.add_argument("--all", "-a", dest="all_entries", action="store_true",
                      help="Report every file, not just directories")
    show.add_argument("--summarize", "-s", action="store_true",
                      help="Report only a total for each argument")

    p.add_argument("--bytes", "-b", action="store_true",
                   help="Apparent sizes in bytes (same as --apparent-size --block-size=1)")
    p.add_argument("--apparent-size", "-A", action="store_true",
                   help="Report apparent sizes instead of allocated disk usage")

    scale = p.add_mutually_exclusive_group()
    scale.add_argument("--block-size", "-B", metavar="SIZE",
                       help="Scale sizes by SIZE (e.g. 512, 1K, 1M)")
    scale.add_argument("-k", dest="kilobytes", action="store_true", help="Same as --block-size=1K")
    scale.add_argument("-m", dest="megabytes", action="store_true", help="Same as --block-size=1M")
    scale.add_argument("--human-readable", "-h", action="store_true",
                       help="Print sizes with K, M, G suffixes")

    p.add_argument("--total", "-c", dest="grand_total", action="store_true",
                   help="Print a grand total after all arguments")
    p.add_argument("--max-depth", "-d", metavar="N",
                   help="Report a directory only if it is N or fewer levels below the argument")

    links = p.add_mutually_exclusive_group()
    links.add_argument("-H", dest="dereference_args", action="store_true",
                       help="Follow symbolic links named on the command line")
    links.add_argument("--dereference", "-L", action="store_true",
                       help="Follow all symbolic links")
    links.add_argument("--no-dereference", "-P", action="store_true",
                       help="Do not follow symbolic links (default)")

    p.add_argument("--sort", "-S", dest="sort_entries", action="store_true",
                   help="Visit directory entries in name order")
    p.add_argument("--config", help="Path to config TOML (overrides DUTREE_CONFIG and the default)")
    p.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    p.add_argument("files", nargs="*", metavar="FILE", help="Files or directories (default: .)")
    return p


def build_configs(
    args: argparse.Namespace,
    settings: Settings,
    environ: Mapping[str, str] | None = None,
) -> tuple[TraversalConfig, DisplayConfig]:
    """Merge flags over environment over config-file defaults. Raises ConfigError."""
    max_depth = settings.max_depth
    if args.max_depth is not None:
        max_depth = parse_max_depth(args.max_depth)
    if args.summarize:
        if args.max_depth is not None and max_depth != 0:
            raise ConfigError(f"summarizing conflicts with --max-depth={max_depth}")
        max_depth = None

    if args.no_dereference:
        dereference = False
    else:
        dereference = args.dereference or settings.dereference

    traversal = TraversalConfig(
        apparent_size=args.apparent_size or args.bytes or settings.apparent_size,
        dereference=dereference,
        dereference_args=args.dereference_args,
        max_depth=max_depth,
        all_entries=args.all_entries,
        summarize=args.summarize,
        sort_entries=args.sort_entries or settings.sort_entries,
        max_recursion=settings.max_recursion,
    )

    explicit_scale = bool(args.block_size or args.kilobytes or args.megabytes)
    if args.block_size:
        block_size = parse_block_size(args.block_size)
    elif args.kilobytes:
        block_size = 1024
    elif args.megabytes:
        block_size = 1024**2
    elif args.bytes:
        block_size = 1
    else:
        block_size = env_block_size(environ) or settings.block_size or DEFAULT_BLOCK_SIZE

    display = DisplayConfig(
        block_size=block_size,
        human_readable=args.human_readable or (settings.human_readable and not explicit_scale),
        grand_total=args.grand_total,
    )
    return traversal, display


def setup_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def main(argv: Sequence[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)

    err_console = make_error_console()
    try:
        settings = load_settings(args.config)
        traversal, display = build_configs(args, settings, os.environ)
    except ConfigError as e:
        err_console.print(Text.assemble((f"{PROG}: ", "bold red"), str(e)), soft_wrap=True)
        err_console.print(f"Try '{PROG} --help' for more information.", markup=False, soft_wrap=True)
        return EXIT_USAGE

    setup_logging(log_level_number(settings, args.verbose))
    if settings.source:
        logging.getLogger(__name__).debug("loaded defaults from %s", settings.source)

    emitter = ConsoleEmitter(traversal, display)
    diagnostics = Diagnostics(console=err_console)
    return run(args.files, traversal, display, emitter, diagnostics)


if __name__ == "__main__":
    raise SystemExit(main())
