# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from branchwarden.app import apply_protection, read_protection
from branchwarden.config import (
    DEFAULT_PRESET,
    PRESETS,
    ConfigurationError,
    configure_logging,
    get_apply_policy,
    load_preset,
    load_settings_file,
    preset_names,
    with_overrides,
)
from branchwarden.domain.errors import InvalidSettings, ProtectionError
from branchwarden.domain.model import BranchTarget, RunState, overall_state
from branchwarden.ui.report import (
    render_json,
    render_presets_json,
    render_presets_text,
    render_protection_json,
    render_protection_text,
    render_text,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

EXIT_CODES = {
    RunState.COMPLETED: 0,
    RunState.PARTIALLY_FAILED: 1,
    RunState.ABORTED: 2,
    RunState.CANCELLED: 130,
}


def exit_code_for(state: RunState) -> int:
    return EXIT_CODES[state]


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Apply GitHub branch protection presets")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every request at DEBUG level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    apply = subparsers.add_parser("apply", help="Converge branches onto a preset")
    apply.add_argument(
        "targets",
        nargs="*",
        metavar="OWNER/REPO[:BRANCH]",
        help="Branches to protect (branch defaults to main)",
    )
    source = apply.add_mutually_exclusive_group()
    source.add_argument(
        "--preset",
        type=str,
        help=f"Built-in preset: {', '.join(preset_names())} (default: {DEFAULT_PRESET})",
    )
    source.add_argument(
        "--settings",
        type=str,
        help="TOML or JSON settings document (may also list targets)",
    )
    apply.add_argument(
        "--check",
        action="append",
        default=[],
        help="Required status check context (repeatable)",
    )
    apply.add_argument(
        "--restrict",
        action="append",
        default=[],
        help="Actor allowed to push: user:LOGIN, team:SLUG or app:SLUG (repeatable)",
    )
    apply.add_argument(
        "--strict",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Require branches to be up to date before merging",
    )
    apply.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Number of targets processed at once (default: 1)",
    )
    apply.add_argument("--json", action="store_true", help="Print the report as JSON")

    show = subparsers.add_parser("show", help="Print the current protection of branches")
    show.add_argument("targets", nargs="+", metavar="OWNER/REPO[:BRANCH]")
    show.add_argument("--json", action="store_true", help="Print as JSON")

    presets = subparsers.add_parser("presets", help="List the built-in presets")
    presets.add_argument("--json", action="store_true", help="Print as JSON")

    return parser.parse_args(list(argv))


def _parse_targets(values: Sequence[str]) -> list[BranchTarget]:
    targets: list[BranchTarget] = []
    for value in values:
        target = BranchTarget.parse(value)
        if target not in targets:
            targets.append(target)
    return targets


def _run_apply(args: argparse.Namespace) -> int:
    try:
        targets = _parse_targets(args.targets)
        if args.settings:
            document = load_settings_file(args.settings)
            preset = document.preset
            targets.extend(target for target in document.targets if target not in targets)
        else:
            preset = load_preset(args.preset or DEFAULT_PRESET)
        preset = with_overrides(
            preset,
            contexts=args.check,
            restrict_push_to=args.restrict,
            strict=args.strict,
        )
        if not targets:
            raise InvalidSettings("No targets given")  # noqa: TRY301
        policy = get_apply_policy(concurrency=args.concurrency)
    except ProtectionError as exc:
        log.error("Aborted before any request: %s: %s", exc.kind, exc.message)  # noqa: TRY400
        return exit_code_for(RunState.ABORTED)
    except ValueError as exc:
        log.error("Aborted before any request: %s", exc)  # noqa: TRY400
        return exit_code_for(RunState.ABORTED)

    reports = apply_protection(targets, preset, policy=policy, cancel_on_sigint=True)
    print(render_json(reports) if args.json else render_text(reports))
    return exit_code_for(overall_state(reports))


def _run_show(args: argparse.Namespace) -> int:
    try:
        targets = _parse_targets(args.targets)
    except InvalidSettings as exc:
        log.error("%s", exc.message)  # noqa: TRY400
        return 2
    entries = read_protection(targets)
    print(render_protection_json(entries) if args.json else render_protection_text(entries))
    return 0


def _run_presets(args: argparse.Namespace) -> int:
    presets = list(PRESETS.values())
    print(render_presets_json(presets) if args.json else render_presets_text(presets))
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    if parsed_args.verbose:
        configure_logging(level=logging.DEBUG, force=True)

    try:
        if parsed_args.command == "apply":
            code = _run_apply(parsed_args)
        elif parsed_args.command == "show":
            code = _run_show(parsed_args)
        elif parsed_args.command == "presets":
            code = _run_presets(parsed_args)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except KeyboardInterrupt:
        log.info("Closed by user (Ctrl+C)")
        sys.exit(exit_code_for(RunState.CANCELLED))
    except ConfigurationError as exc:
        log.error("Configuration error: %s", exc)  # noqa: TRY400
        sys.exit(2)
    except ProtectionError as exc:
        log.error("%s: %s", exc.kind, exc.message)  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)

    if code:
        sys.exit(code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(exit_code_for(RunState.CANCELLED))


def run() -> None:
    """Console-script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
