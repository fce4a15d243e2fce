"""CLI entry point: ``docinterp index``, ``explain`` and ``health``."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from docinterp import __version__
from docinterp.config import Settings
from docinterp.context.schemas import Selection
from docinterp.logger import RequestLogger
from docinterp.logging_config import setup_logging
from docinterp.resilience.errors import InputError
from docinterp.services.workspace import Workspace


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"docinterp {__version__}")
        return 0

    if args.command is None:
        parser.print_help()
        return 0

    settings = Settings()
    setup_logging("DEBUG" if args.verbose else settings.log_level)

    workspace_root = Path(args.workspace).resolve()
    if not workspace_root.is_dir():
        print(f"Error: {workspace_root} is not a directory", file=sys.stderr)
        return 1

    if args.command == "index":
        return asyncio.run(_run_index(workspace_root, settings))
    if args.command == "explain":
        return asyncio.run(_run_explain(workspace_root, settings, args))
    return asyncio.run(_run_health(workspace_root, settings))


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="docinterp",
        description=(
            "Explain code strictly from a project's own markdown "
            "documentation."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    sub = parser.add_subparsers(dest="command")

    index = sub.add_parser(
        "index",
        help="Index README.md and docs/**/*.md",
    )
    index.add_argument("workspace", help="Workspace root")

    explain = sub.add_parser(
        "explain",
        help="Explain a range of lines in a source file",
    )
    explain.add_argument("workspace", help="Workspace root")
    explain.add_argument(
        "file",
        help="Source file, relative to the workspace or absolute",
    )
    explain.add_argument(
        "--lines",
        "-l",
        required=True,
        help="1-based inclusive line range, e.g. 10-24 or 12",
    )
    explain.add_argument(
        "--json",
        action="store_true",
        help="Print the raw result as JSON",
    )

    health = sub.add_parser(
        "health",
        help="Report index and engine health",
    )
    health.add_argument("workspace", help="Workspace root")

    return parser


def parse_line_range(value: str) -> tuple[int, int]:
    """Parse ``A-B`` or ``A`` into a 0-based inclusive pair."""
    first, _, last = value.partition("-")
    try:
        start = int(first)
        end = int(last) if last else start
    except ValueError as exc:
        raise InputError(f"invalid line range: {value!r}") from exc
    if start < 1 or end < start:
        raise InputError(f"invalid line range: {value!r}")
    return start - 1, end - 1


async def _run_index(root: Path, settings: Settings) -> int:
    async with Workspace(root, settings) as ws:
        report = await ws.index()
    print(
        f"Indexed {report.files_indexed}/{report.files_scanned} files, "
        f"{report.chunks_stored} chunks stored"
        + (f", {report.chunks_failed} failed" if report.chunks_failed else "")
    )
    for failed in report.failed_files:
        print(f"  [FAILED] {failed.file_path}: {failed.error}", file=sys.stderr)
    return 0 if not report.failed_files else 2


async def _run_explain(
    root: Path, settings: Settings, args: argparse.Namespace
) -> int:
    try:
        first, last = parse_line_range(args.lines)
    except InputError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    request_logger = RequestLogger(
        settings.log_dir if settings.log_dir.is_absolute()
        else root / settings.log_dir,
        settings.log_level,
    )
    try:
        async with Workspace(root, settings, request_logger=request_logger) as ws:
            try:
                document = ws.load_document(Path(args.file))
            except OSError as exc:
                print(f"Error: {exc}", file=sys.stderr)
                return 1
            result = await ws.explain_selection(
                document, Selection.whole_lines(first, last)
            )
    finally:
        request_logger.close()

    if args.json:
        print(result.model_dump_json(indent=2))
        return 0

    print(result.explanation)
    for citation in result.citations:
        print(f"  - {citation.format()} ({citation.relevance_score:.2f})")
    if result.has_relevant_docs:
        print(f"confidence: {result.confidence:.2f}")
    return 0


async def _run_health(root: Path, settings: Settings) -> int:
    async with Workspace(root, settings) as ws:
        report: dict[str, Any] = await ws.health_check()
    print(json.dumps(report, indent=2, default=str))
    return 0 if report["status"] == "healthy" else 1


if __name__ == "__main__":
    sys.exit(main())
