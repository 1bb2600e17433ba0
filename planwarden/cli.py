"""planwarden command line interface.

Commands:
  validate consistency         compare ROADMAP.md phases with phase directories
  validate health [--repair]   audit the planning tree, optionally repairing it
  config-ensure-section        create .planning/config.json with defaults
  state                        report which planning documents exist
  history-digest               aggregate SUMMARY frontmatter across phases
  phase info <N>               describe one phase
  phase complete <N>           mark a phase complete and advance STATE.md

``--root DIR`` may be given before or after the command. Every command
writes one JSON document to stdout and exits 0, including validations that
found problems. Usage errors and unknown phases print ``Error: <message>``
to stderr and exit 1.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .errors import NotFoundError, UsageError
from .planwarden_logging import setup_logging_from_env
from .workflow import ValidationManager

PROJECT_ROOT_ENV = "PLANWARDEN_PROJECT_ROOT"


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that raises UsageError instead of exiting."""

    def error(self, message: str):
        raise UsageError(message)


def _parse(prog: str, args: List[str], configure: Optional[Callable[[argparse.ArgumentParser], None]] = None):
    parser = _ArgumentParser(prog=f"planwarden {prog}", add_help=False)
    if configure is not None:
        configure(parser)
    return parser.parse_args(args)


def _cmd_validate(manager: ValidationManager, args: List[str]) -> Dict[str, Any]:
    if not args:
        raise UsageError("validate requires a subcommand: consistency, health")
    subcommand, rest = args[0], args[1:]

    if subcommand == "consistency":
        _parse("validate consistency", rest)
        return manager.validate_consistency()

    if subcommand == "health":
        options = _parse(
            "validate health",
            rest,
            lambda parser: parser.add_argument("--repair", action="store_true"),
        )
        return manager.validate_health(repair=options.repair)

    raise UsageError(f"Unknown validate subcommand: {subcommand}")


def _cmd_config_ensure_section(manager: ValidationManager, args: List[str]) -> Dict[str, Any]:
    _parse("config-ensure-section", args)
    return manager.config_ensure_section()


def _cmd_state(manager: ValidationManager, args: List[str]) -> Dict[str, Any]:
    _parse("state", args)
    return manager.state()


def _cmd_history_digest(manager: ValidationManager, args: List[str]) -> Dict[str, Any]:
    _parse("history-digest", args)
    return manager.history_digest()


def _cmd_phase(manager: ValidationManager, args: List[str]) -> Dict[str, Any]:
    if not args:
        raise UsageError("phase requires a subcommand: info, complete")
    subcommand, rest = args[0], args[1:]
    actions = {"info": manager.phase_info, "complete": manager.complete_phase}
    if subcommand not in actions:
        raise UsageError(f"Unknown phase subcommand: {subcommand}")

    options = _parse(
        f"phase {subcommand}",
        rest,
        lambda parser: parser.add_argument("number", nargs="?", type=int),
    )
    if options.number is None:
        raise UsageError("phase number required")
    return actions[subcommand](options.number)


COMMANDS: Dict[str, Callable[[ValidationManager, List[str]], Dict[str, Any]]] = {
    "validate": _cmd_validate,
    "config-ensure-section": _cmd_config_ensure_section,
    "state": _cmd_state,
    "history-digest": _cmd_history_digest,
    "phase": _cmd_phase,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="planwarden",
        description="Validate and repair a .planning/ project tree.",
        epilog=__doc__.split("\n\n")[1],
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--root",
        help=(
            "Project root containing .planning/, before or after the command "
            f"(default: ${PROJECT_ROOT_ENV} or the current directory)"
        ),
    )
    parser.add_argument("command", nargs="?")
    parser.add_argument("args", nargs=argparse.REMAINDER)
    return parser


def _split_root(args: List[str]) -> tuple[Optional[str], List[str]]:
    """Pull ``--root`` out of the command arguments, wherever it appears."""
    parser = _ArgumentParser(prog="planwarden", add_help=False, allow_abbrev=False)
    parser.add_argument("--root")
    options, rest = parser.parse_known_args(args)
    return options.root, rest


def resolve_root(root: Optional[str]) -> Path:
    """Explicit root, then ``PLANWARDEN_PROJECT_ROOT``, then the current directory."""
    candidate = root or os.getenv(PROJECT_ROOT_ENV)
    if not candidate:
        return Path.cwd()
    resolved = Path(candidate).expanduser().resolve()
    if not resolved.is_dir():
        raise UsageError(f"Project root '{candidate}' does not exist")
    return resolved


def run(argv: Optional[List[str]] = None) -> Dict[str, Any]:
    """Parse ``argv`` and execute the command; raises UsageError or NotFoundError."""
    options = _build_parser().parse_args(argv)
    if not options.command:
        raise UsageError(f"Usage: planwarden <command> [args]. Commands: {', '.join(COMMANDS)}")

    handler = COMMANDS.get(options.command)
    if handler is None:
        raise UsageError(f"Unknown command: {options.command}")

    root, args = _split_root(options.args)
    manager = ValidationManager(resolve_root(root or options.root))
    return handler(manager, args)


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging_from_env()
    try:
        result = run(argv)
    except (UsageError, NotFoundError) as e:
        sys.stderr.write(f"Error: {e}\n")
        return 1

    sys.stdout.write(json.dumps(result, indent=2, default=str) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
