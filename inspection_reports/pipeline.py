"""
inspection_reports/pipeline.py
══════════════════════════════

Routes each discovered problem to the classifier, every report generator
and the threshold evaluator, then finalizes them all.

Architecture
────────────

    submit(problem)
        │
        ▼
  ┌──────────────────┐
  │SeverityClassifier│
  └────────┬─────────┘
           │ (problem, severity, inspection id)
     ┌─────┴───────────────┬──────────────────┐
     ▼                     ▼                  ▼
  text / html / xml   console (TTY)   ThresholdEvaluator
     │                     │                  │
     └──────── finish() ───┴──────────────────┘
                   │
                   ▼
          RunResult(verdict, failures)

Lifecycle: ``OPEN → CLOSED``.  ``finish`` closes the pipeline; any later
``submit`` or ``finish`` is a :class:`PipelineStateError`.

Ordering
────────
``submit`` may be called from several engine threads.  Each submission
first reads the syntax tree without the pipeline lock, then appends to
the reports under it; reports list problems in the order their appends
acquired the lock, i.e. discovery completion order.  The pipeline lock is
never held while waiting on the engine's read guard.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, TextIO, Tuple

from inspection_reports.config import InspectionConfig
from inspection_reports.errors import (
    InspectionFailure,
    PipelineStateError,
    ReportWriteError,
)
from inspection_reports.highlight import KOTLIN_KEYWORDS, FragmentRenderer
from inspection_reports.locator import SourceLocator
from inspection_reports.problems import ProblemRecord, Severity
from inspection_reports.reporters import (
    ConsoleReportGenerator,
    HtmlReportGenerator,
    PlainTextReportGenerator,
    ReportGenerator,
    SarifReportGenerator,
    XmlReportGenerator,
)
from inspection_reports.severity import (
    SeverityClassifier,
    ThresholdEvaluator,
    Verdict,
)
from inspection_reports.syntax import ReadGuard

logger = logging.getLogger(__name__)


class PipelineState(enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class RunResult:
    """The verdict plus any report that could not be written."""
    verdict: Verdict
    failures: Tuple[ReportWriteError, ...] = ()

    @property
    def passed(self) -> bool:
        return self.verdict.passed


class ReportPipeline:
    """
    Orchestrates one report run.

    Usage
    -----
    >>> pipeline = ReportPipeline(classifier, ThresholdEvaluator(thresholds),
    ...                           [HtmlReportGenerator("report.html")])
    >>> for problem in engine.problems():
    ...     pipeline.submit(problem)
    >>> result = pipeline.finish()
    >>> result.verdict.passed

    Or as a context manager, which finishes on a clean exit::

        with ReportPipeline(classifier, evaluator, generators) as pipeline:
            pipeline.submit(problem)
        result = pipeline.result
    """

    def __init__(
        self,
        classifier: SeverityClassifier,
        evaluator: Optional[ThresholdEvaluator] = None,
        generators: Iterable[ReportGenerator] = (),
    ) -> None:
        self.classifier = classifier
        self.evaluator = evaluator or ThresholdEvaluator()
        self.generators: List[ReportGenerator] = list(generators)
        self.state = PipelineState.OPEN
        self.result: Optional[RunResult] = None
        self._lock = threading.Lock()

    def submit(self, problem: ProblemRecord) -> Severity:
        """
        Classify *problem* and hand it to every generator and the evaluator.

        Syntax-tree reads (display anchor, fragment) happen before the
        pipeline lock is taken, so a caller may hold the engine's read
        guard while submitting.  Under the lock every generator is checked
        first, so a problem is added to all reports and the evaluator or
        to none of them.
        """
        if self.state is PipelineState.CLOSED:
            raise PipelineStateError(self._closed_message(problem))
        severity = self.classifier.classify(problem.inspection_id)
        logger.debug(
            "%s at %s classified as %s", problem.inspection_id, problem.render_location(), severity.label
        )
        prepared = [
            generator.prepare(problem, severity, problem.inspection_id)
            for generator in self.generators
        ]

        with self._lock:
            if self.state is PipelineState.CLOSED:
                raise PipelineStateError(self._closed_message(problem))
            for generator in self.generators:
                generator.ensure_open()
            self.evaluator.record(severity)
            for generator, entry in zip(self.generators, prepared):
                generator.add(entry)
            return severity

    @staticmethod
    def _closed_message(problem: ProblemRecord) -> str:
        return f"submit() after finish(): {problem.inspection_id} at {problem.render_location()}"

    def finish(self) -> RunResult:
        """
        Generate every report and compute the verdict.

        A report that cannot be written is logged and recorded in
        :attr:`RunResult.failures`; the remaining reports and the verdict
        are still produced.
        """
        with self._lock:
            if self.state is PipelineState.CLOSED:
                raise PipelineStateError("finish() called twice")
            self.state = PipelineState.CLOSED

            failures: List[ReportWriteError] = []
            for generator in self.generators:
                try:
                    generator.generate()
                except ReportWriteError as exc:
                    logger.warning("%s", exc)
                    failures.append(exc)

            verdict = self.evaluator.finalize()
            logger.info("inspection verdict: %s (%s)", "passed" if verdict.passed else "failed",
                        verdict.summary_line())
            self.result = RunResult(verdict=verdict, failures=tuple(failures))
            return self.result

    # ── context manager ──────────────────────────────────────────────

    def __enter__(self) -> ReportPipeline:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is None and self.state is PipelineState.OPEN:
            self.finish()


# ═════════════════════════════════════════════════════════════════════════
#  CONSTRUCTION FROM CONFIG
# ═════════════════════════════════════════════════════════════════════════

def build_generators(
    config: InspectionConfig,
    read_guard: Optional[ReadGuard] = None,
    keywords: Iterable[str] = KOTLIN_KEYWORDS,
    console_stream: Optional[TextIO] = None,
    tool_version: str = "",
) -> List[ReportGenerator]:
    """One generator per configured report, plus the console when enabled."""
    keywords = frozenset(keywords)
    locator = SourceLocator(read_guard)
    generators: List[ReportGenerator] = []
    reports = config.reports
    if "text" in reports:
        generators.append(PlainTextReportGenerator(
            reports["text"], locator, FragmentRenderer(keywords, markup=False, read_guard=read_guard),
        ))
    if "html" in reports:
        generators.append(HtmlReportGenerator(
            reports["html"], locator, FragmentRenderer(keywords, markup=True, read_guard=read_guard),
        ))
    if "xml" in reports:
        generators.append(XmlReportGenerator(reports["xml"]))
    if "sarif" in reports:
        generators.append(SarifReportGenerator(reports["sarif"], tool_version=tool_version))
    if config.show_violations:
        generators.append(ConsoleReportGenerator(console_stream))
    return generators


def pipeline_from_config(
    config: InspectionConfig,
    read_guard: Optional[ReadGuard] = None,
    keywords: Iterable[str] = KOTLIN_KEYWORDS,
    console_stream: Optional[TextIO] = None,
    tool_version: str = "",
) -> ReportPipeline:
    """Build a ready-to-use pipeline from an :class:`InspectionConfig`."""
    return ReportPipeline(
        classifier=config.classifier(),
        evaluator=ThresholdEvaluator(config.threshold_config()),
        generators=build_generators(config, read_guard, keywords, console_stream, tool_version),
    )


def run_problems(pipeline: ReportPipeline, problems: Sequence[ProblemRecord]) -> RunResult:
    """Submit *problems* in order, then finish the pipeline."""
    for problem in problems:
        pipeline.submit(problem)
    return pipeline.finish()


# ═════════════════════════════════════════════════════════════════════════
#  BUILD OUTCOME
# ═════════════════════════════════════════════════════════════════════════

def enforce_verdict(verdict: Verdict, ignore_failures: bool = False) -> None:
    """
    Turn a failed verdict into a build failure.

    Raises :class:`InspectionFailure` unless *ignore_failures* is set, in
    which case the failure is only logged.
    """
    if verdict.passed:
        return
    message = f"Inspection failed: {verdict.failure_message()}"
    if ignore_failures:
        logger.warning("%s (failures ignored)", message)
        return
    raise InspectionFailure(message, verdict=verdict)


__all__ = [
    "PipelineState",
    "RunResult",
    "ReportPipeline",
    "build_generators",
    "pipeline_from_config",
    "run_problems",
    "enforce_verdict",
]
