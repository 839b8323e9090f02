"""inspection_reports/cli.py — command-line front end.

Usage examples
--------------
    # Console output only, default budgets (no errors, unlimited warnings)
    inspection-reports problems.jsonl --config config/inspections.json

    # Write HTML and XML reports, allow up to 10 warnings
    inspection-reports problems.jsonl --html build/reports/inspections.html \\
        --xml build/reports/inspections.xml --max-warnings 10

Input is one JSON object per line, in the cppcheck addon format::

    {"file": "src/Main.kt", "linenr": 3, "severity": "warning",
     "message": "Variable 'x' is never used", "errorId": "UnusedSymbol",
     "highlight": "unused"}

Problems read this way carry no syntax tree, so reports show location and
message only.

Exit codes
----------
    0   Verdict passed (or failures ignored).
    1   Verdict failed: error or warning budget exceeded.
    2   Infrastructure failure (bad config, unreadable input, ...).
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from inspection_reports import __version__
from inspection_reports.config import InspectionConfig, apply_env_overrides, load_config
from inspection_reports.errors import (
    ConfigurationError,
    InspectionFailure,
)
from inspection_reports.pipeline import enforce_verdict, pipeline_from_config, run_problems
from inspection_reports.problems import HighlightKind, ProblemRecord, Severity

_log = logging.getLogger("inspection_reports")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_FAILED: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``inspection_reports`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("inspection_reports")
    root.setLevel(level)
    # Repeated calls (tests, embedding) replace the handler instead of stacking
    for old in [h for h in root.handlers if getattr(h, "_inspection_cli", False)]:
        root.removeHandler(old)
    handler._inspection_cli = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def problem_from_json(data: Dict[str, Any]) -> ProblemRecord:
    """Convert one cppcheck-style JSON object to a :class:`ProblemRecord`."""
    try:
        inspection_id = data["errorId"]
        file_path = data["file"]
    except KeyError as exc:
        raise ValueError(f"missing required field {exc.args[0]!r}") from exc
    line = data.get("linenr") or None
    if line is not None and (isinstance(line, bool) or not isinstance(line, int)):
        raise ValueError(f"linenr must be an integer, got {line!r}")
    severity = data.get("severity")
    highlight = data.get("highlight", HighlightKind.GENERIC.value)
    try:
        highlight_kind = HighlightKind(highlight)
    except ValueError as exc:
        raise ValueError(f"unknown highlight {highlight!r}") from exc
    return ProblemRecord(
        inspection_id=str(inspection_id),
        file_path=str(file_path),
        message=str(data.get("message", "")),
        line=line,
        highlight_kind=highlight_kind,
        severity=Severity.from_string(severity) if severity else None,
    )


def read_problems(path: Path) -> List[ProblemRecord]:
    """Read a JSON-lines problem file; blank lines are skipped."""
    problems: List[ProblemRecord] = []
    with open(path, "r", encoding="utf-8") as fh:
        for lineno, raw in enumerate(fh, 1):
            raw = raw.strip()
            if not raw:
                continue
            try:
                data = json.loads(raw)
                if not isinstance(data, dict):
                    raise ValueError("expected a JSON object")
                problems.append(problem_from_json(data))
            except ValueError as exc:
                raise ValueError(f"{path}:{lineno}: {exc}") from exc
    return problems


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inspection-reports",
        description="Aggregate inspection problems into reports and a build verdict.",
    )
    parser.add_argument("problems", help="JSON-lines file of problems")
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("--text", help="Write a plain text report to this path")
    parser.add_argument("--html", help="Write an HTML report to this path")
    parser.add_argument("--xml", help="Write an XML report to this path")
    parser.add_argument("--sarif", help="Write a SARIF report to this path")
    parser.add_argument("--max-errors", type=int, default=None, help="Errors tolerated (default: 0)")
    parser.add_argument("--max-warnings", type=int, default=None, help="Warnings tolerated (default: unlimited)")
    parser.add_argument("--ignore-failures", action="store_true", default=None,
                        help="Log a failed verdict instead of exiting non-zero")
    parser.add_argument("--no-show-violations", dest="show_violations", action="store_false", default=None,
                        help="Do not print each problem to the console")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _resolve_config(args: argparse.Namespace) -> InspectionConfig:
    config = load_config(args.config) if args.config else InspectionConfig()
    config = apply_env_overrides(config)
    config = config.with_reports(text=args.text, html=args.html, xml=args.xml, sarif=args.sarif)
    overrides = {
        key: value
        for key, value in (
            ("max_errors", args.max_errors),
            ("max_warnings", args.max_warnings),
            ("ignore_failures", args.ignore_failures),
            ("show_violations", args.show_violations),
        )
        if value is not None
    }
    return dataclasses.replace(config, **overrides)


# ===========================================================================
# Entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = _resolve_config(args)
    except ConfigurationError as exc:
        _log.error("configuration error: %s", exc)
        return EXIT_INFRA

    try:
        problems = read_problems(Path(args.problems))
    except (OSError, ValueError) as exc:
        _log.error("cannot read problems: %s", exc)
        return EXIT_INFRA

    pipeline = pipeline_from_config(config, tool_version=__version__)
    result = run_problems(pipeline, problems)
    for failure in result.failures:
        _log.warning("report not written: %s", failure)

    try:
        enforce_verdict(result.verdict, ignore_failures=config.ignore_failures)
    except InspectionFailure as exc:
        _log.error("%s", exc)
        return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
