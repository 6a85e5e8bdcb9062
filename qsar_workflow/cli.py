"""qsar-workflow command line: global options plus the calculate and enhance subcommands."""

import argparse
import logging
from pathlib import Path
import sys

from . import calculate_cli, enhance_cli
from .config import load_config
from .errors import ConfigError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="QSAR descriptor workflow CLI")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional TOML file with cache, chemistry and enhancer settings",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    calculate_cli.register_commands(sub)
    enhance_cli.register_commands(sub)
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(getattr(args, "verbose", False))
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        parser.error(str(exc))

    for handler in (calculate_cli.handle, enhance_cli.handle):
        try:
            result = handler(args, config)
        except ConfigError as exc:
            parser.error(str(exc))
        if result is not None:
            return result

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
