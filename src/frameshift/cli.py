"""CLI entry point — ``frameshift convert`` and ``frameshift classify``."""

from __future__ import annotations

from frameshift.logging_config import setup_logging

setup_logging()

import argparse  # noqa: E402
import dataclasses  # noqa: E402
import json  # noqa: E402
import sys  # noqa: E402
import time  # noqa: E402
import uuid  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any  # noqa: E402

from frameshift import __version__  # noqa: E402
from frameshift.analysis.schemas import ParseFailure  # noqa: E402
from frameshift.config import Settings  # noqa: E402
from frameshift.constants import Category  # noqa: E402
from frameshift.logging_config import set_verbosity  # noqa: E402
from frameshift.resilience.errors import UnreadableArtifactError  # noqa: E402
from frameshift.services.transform_service import (  # noqa: E402
    TransformOptions,
    TransformResult,
    classify_source,
    transform,
)


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"frameshift {__version__}")
        return

    if getattr(args, "verbose", False):
        set_verbosity(True)

    if args.command == "convert":
        _run_convert(args)
    elif args.command == "classify":
        _run_classify(args)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="frameshift",
        description=(
            "Rewrite browser animation artifacts into "
            "frame-indexed Remotion components."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    convert = sub.add_parser(
        "convert",
        help="Transform an artifact",
    )
    convert.add_argument(
        "input",
        type=str,
        help="Path to a .jsx/.tsx artifact",
    )
    convert.add_argument(
        "--output",
        "-o",
        default=None,
        help="Write the result here (default: stdout)",
    )
    convert.add_argument(
        "--force-category",
        choices=[c.value for c in Category],
        default=None,
        help="Skip classification and use this category",
    )
    convert.add_argument(
        "--no-enhance",
        action="store_true",
        help="Disable the design prism",
    )
    convert.add_argument(
        "--max-repair-attempts",
        type=int,
        default=None,
        help="Corruption repair rounds (default: from settings)",
    )
    convert.add_argument(
        "--report",
        default=None,
        help="Write a JSON report of findings to this path",
    )
    convert.add_argument(
        "--audit-log",
        default=None,
        help="Append a JSON-lines audit record under this directory",
    )
    convert.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    classify = sub.add_parser(
        "classify",
        help="Print the classification profile of an artifact",
    )
    classify.add_argument(
        "input",
        type=str,
        help="Path to a .jsx/.tsx artifact",
    )
    classify.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    return parser


def _read_input(path_arg: str) -> bytes:
    path = Path(path_arg)
    if not path.is_file():
        print(f"Error: {path} does not exist", file=sys.stderr)
        sys.exit(1)
    return path.read_bytes()


def _run_convert(args: argparse.Namespace) -> None:
    """Execute the convert command."""
    settings = Settings()
    data = _read_input(args.input)
    options = TransformOptions(
        force_category=Category(args.force_category) if args.force_category else None,
        enable_enhancement=not args.no_enhance,
        max_repair_attempts=(
            args.max_repair_attempts
            if args.max_repair_attempts is not None
            else settings.max_repair_attempts
        ),
        filename=Path(args.input).name,
    )

    start = time.monotonic()
    try:
        result = transform(data, options, settings=settings)
    except UnreadableArtifactError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    elapsed = (time.monotonic() - start) * 1000

    if args.output:
        Path(args.output).write_text(result.output_text, encoding="utf-8")
    else:
        sys.stdout.write(result.output_text)

    if args.verbose:
        for stage in result.stages:
            print(
                f"  [{stage.status}] {stage.label} ({stage.duration_ms:.0f}ms)",
                file=sys.stderr,
            )
            if stage.error:
                print(f"    Error: {stage.error}", file=sys.stderr)

    if args.report:
        Path(args.report).write_text(
            json.dumps(report_payload(result), indent=2), encoding="utf-8"
        )
    if args.audit_log:
        from frameshift.logger import AuditLogger

        audit = AuditLogger(Path(args.audit_log), settings.log_level)
        audit.log_transform(uuid.uuid4().hex, args.input, result, elapsed)

    if result.used_fallback:
        print(
            f"Original kept: {result.fallback_reason}",
            file=sys.stderr,
        )
    else:
        print(
            f"Done: {len(result.rewritten_bindings)} bindings rewritten, "
            f"{len(result.applied_enhancements)} enhancements "
            f"({elapsed:.0f}ms)",
            file=sys.stderr,
        )


def _run_classify(args: argparse.Namespace) -> None:
    """Execute the classify command."""
    data = _read_input(args.input)
    try:
        profile = classify_source(
            data, TransformOptions(filename=Path(args.input).name)
        )
    except UnreadableArtifactError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    if isinstance(profile, ParseFailure):
        print(
            f"Error: parse failed at line {profile.line}: {profile.message}",
            file=sys.stderr,
        )
        sys.exit(1)
    print(profile.model_dump_json(indent=2))


def report_payload(result: TransformResult) -> dict[str, Any]:
    """JSON-serialisable summary of a transform run."""
    return {
        "used_fallback": result.used_fallback,
        "fallback_reason": result.fallback_reason,
        "profile": (
            result.profile.model_dump(mode="json") if result.profile else None
        ),
        "rewritten_bindings": list(result.rewritten_bindings),
        "applied_enhancements": [
            dataclasses.asdict(e) for e in result.applied_enhancements
        ],
        "corruption_findings": [
            f.model_dump(mode="json") for f in result.corruption_findings
        ],
        "findings": [f.model_dump(mode="json") for f in result.findings],
        "stages": [
            {
                "stage": s.stage_name,
                "status": s.status.value,
                "duration_ms": round(s.duration_ms, 3),
                "error": s.error,
            }
            for s in result.stages
        ],
    }


if __name__ == "__main__":
    main()
