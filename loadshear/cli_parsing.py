"""Command-line option parsing for the load generator."""

from __future__ import annotations

import argparse
import enum
import logging
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field

logger = logging.getLogger("loadshear")

VERSION = "1.0.0"
VERSION_STRING = f"loadshear v{VERSION}"

_UINT64_MAX = 2**64 - 1

_OPTION_HELP = (
    ("-h [ --help ]", "Show options."),
    ("-v [ --version ]", "Show version information"),
    ("-s [ --script ] arg", "Path to your script."),
    ("-d [ --dry-run ]", "Show runtime plan generated from your script and options."),
    ("-e [ --expand-envs ]", "Expand environment variables in script paths."),
    ("--acknowledge", "Automatically acknowledge legal responsibility."),
    ("--quiet", "Only show warnings/errors after acknowledgement"),
    ("--arena-init-mb arg", "Initial size of arena allocator for packet data."),
)


class ParseStatus(enum.Enum):
    """Outcome of reading the command line."""

    OK = 0
    HELP = 1
    VERSION = 2
    ERROR = 3


@dataclass
class CLIOptions:
    """Settings taken from the command line."""

    script_file: str = ""
    dry_run: bool = False
    expand_envs: bool = False
    acknowledged_responsibility: bool = False
    quiet: bool = False
    arena_init_mb: int = 0


@dataclass
class CLIParseResult:
    """Parsed options together with what the caller should do next."""

    options: CLIOptions = field(default_factory=CLIOptions)
    status: ParseStatus = ParseStatus.OK

    def good_parse(self) -> bool:
        """True when the program should go on to run the script."""
        return self.status is ParseStatus.OK

    def status_code(self) -> int:
        """The exit status for a run that stops after parsing."""
        return 1 if self.status is ParseStatus.ERROR else 0


class _ArgumentError(Exception):
    pass


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise _ArgumentError(message)


def _arena_size(text: str) -> int:
    try:
        value = int(text, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"the argument ('{text}') for option '--arena-init-mb' is invalid"
        ) from None
    if not 0 <= value <= _UINT64_MAX:
        raise argparse.ArgumentTypeError(
            f"the argument ('{text}') for option '--arena-init-mb' is invalid"
        )
    return value


def _build_parser() -> _Parser:
    parser = _Parser(prog="loadshear", add_help=False, allow_abbrev=False)
    parser.add_argument("-h", "--help", action="store_true")
    parser.add_argument("-v", "--version", action="store_true")
    parser.add_argument("-s", "--script", action="append", default=[])
    parser.add_argument("-d", "--dry-run", action="store_true")
    parser.add_argument("-e", "--expand-envs", action="store_true")
    parser.add_argument("--acknowledge", action="store_true")
    parser.add_argument("--quiet", action="store_true")
    parser.add_argument("--arena-init-mb", type=_arena_size, action="append", default=[])
    parser.add_argument("positional_script", nargs="?", default=None)
    return parser


def options_description() -> str:
    """The option list shown by --help."""
    width = max(len(flag) for flag, _ in _OPTION_HELP) + 2
    lines = ["Options:"]
    lines.extend(f"  {flag.ljust(width)}{text}" for flag, text in _OPTION_HELP)
    return "\n".join(lines) + "\n"


def usage_text() -> str:
    """The full help message."""
    return "\nUsage: loadshear <script_file> [options]\n\n" + options_description() + "\n"


def parse_cli(argv: Sequence[str] | None = None) -> CLIParseResult:
    """Read the command-line arguments (without the program name)."""
    args = list(sys.argv[1:] if argv is None else argv)
    result = CLIParseResult()

    try:
        namespace = _build_parser().parse_args(args)
        scripts = list(namespace.script)
        if namespace.positional_script is not None:
            scripts.append(namespace.positional_script)
        if len(scripts) > 1:
            raise _ArgumentError("option '--script' cannot be specified more than once")
        if len(namespace.arena_init_mb) > 1:
            raise _ArgumentError(
                "option '--arena-init-mb' cannot be specified more than once"
            )
    except _ArgumentError as error:
        logger.error("Error: %s", error)
        result.status = ParseStatus.ERROR
        return result

    result.options = CLIOptions(
        script_file=scripts[0] if scripts else "",
        dry_run=namespace.dry_run,
        expand_envs=namespace.expand_envs,
        acknowledged_responsibility=namespace.acknowledge,
        quiet=namespace.quiet,
        arena_init_mb=namespace.arena_init_mb[0] if namespace.arena_init_mb else 0,
    )

    if namespace.version:
        logger.info(VERSION_STRING)
        result.status = ParseStatus.VERSION
    elif namespace.help or not result.options.script_file:
        logger.info(usage_text())
        result.status = ParseStatus.HELP
    else:
        result.status = ParseStatus.OK
    return result