"""Command-line entry point for the mutation bot."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Mapping, Sequence, TextIO

from mutationbot import (
    HistoryRecorder,
    MutationError,
    MutationOrchestrator,
    MutationOutcome,
    MutationService,
    MutationSettings,
    NullHistoryRecorder,
    ValidationError,
)
from mutationbot.sections import split_lines

_RULE = "-" * 50


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Request one mutation from the collaborator, apply it to the game "
            "document, validate it, and write it back."
        )
    )
    parser.add_argument(
        "--dry-run",
        "--preview",
        dest="preview",
        action="store_true",
        help="Run the full pipeline through validation without writing any file.",
    )
    parser.add_argument(
        "--root",
        type=Path,
        help="Workspace directory holding the documents. Defaults to MUTATE_ROOT or the current directory.",
    )
    parser.add_argument(
        "--no-commit",
        action="store_true",
        help="Skip recording the mutation as a git commit.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log output (-v for info, -vv for debug).",
    )
    return parser.parse_args(argv)


def _configure_logging(verbosity: int) -> None:
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def format_report(outcome: MutationOutcome) -> list[str]:
    """Return the operator-facing lines describing ``outcome``."""

    proposal = outcome.proposal
    prepared = outcome.prepared
    validation = outcome.validation
    lines = [
        f"  Current version: v{prepared.previous_version}",
        f"  Submissions: {outcome.change_request_count} line(s)",
    ]
    if outcome.model is not None:
        lines.append(f"  Model: {outcome.model}")
    lines.extend(
        [
            "",
            "  Mutation received:",
            f"    Version: v{proposal.version} ({proposal.version_class.value})",
            f"    Summary: {proposal.summary}",
            f"    Changelog: {proposal.changelog}",
            f"    Sections modified: {', '.join(proposal.changed_sections()) or '(none)'}",
        ]
    )

    if validation.errors:
        lines.append("")
        lines.append("  Validation errors:")
        lines.extend(f"    - {error}" for error in validation.errors)

    status = "valid" if validation.ok else "ERRORS"
    lines.append("")
    lines.append(f"  Result: {len(split_lines(prepared.document))} lines ({status})")

    if outcome.preview:
        lines.append("")
        lines.append("  DRY RUN: no files were modified.")
        lines.append("")
        lines.append("  Section details:")
        for change in proposal.section_changes:
            lines.append(f"    {change.section_name}: {change.line_count} lines")
        return lines

    if outcome.archive_location is not None:
        lines.append(f"  Archived: {outcome.archive_location}")
    lines.extend(f"  Written: {path.name}" for path in outcome.written)
    if outcome.history_message is not None:
        lines.append(f"  Recorded: {outcome.history_message}")
    if outcome.history_error is not None:
        lines.append(f"  Warning: {outcome.history_error}")
        lines.append("  Files were written but not recorded. You can commit manually.")
    lines.append("")
    lines.append("  Mutation applied successfully.")
    if proposal.changelog:
        lines.append(f"  {proposal.changelog}")
    return lines


def _report_error(exc: MutationError, stream: TextIO) -> None:
    if isinstance(exc, ValidationError):
        print("\n  Validation errors:", file=stream)
        for error in exc.errors:
            print(f"    - {error}", file=stream)
        print("\n  Aborting: no files were modified.", file=stream)
        return
    print(f"Error: {exc}", file=stream)


def main(
    argv: Sequence[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    service: MutationService | None = None,
    history: HistoryRecorder | None = None,
) -> None:
    """Run one mutation. Exits with status 1 on any abort."""

    args = _parse_args(argv)
    _configure_logging(args.verbose)

    try:
        settings = MutationSettings.from_env(environ, root=args.root)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    if args.no_commit and history is None:
        history = NullHistoryRecorder()

    print(f"\nGame Mutation Bot {'(DRY RUN)' if args.preview else ''}".rstrip())
    print(_RULE)

    orchestrator = MutationOrchestrator(settings, service=service, history=history)
    try:
        outcome = orchestrator.run(preview=args.preview)
    except MutationError as exc:
        _report_error(exc, sys.stderr)
        raise SystemExit(1) from exc
    except OSError as exc:
        print(f"Error during {orchestrator.phase.value}: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    for line in format_report(outcome):
        print(line)
    print(_RULE + "\n")


if __name__ == "__main__":
    main()
