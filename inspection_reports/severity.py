"""
inspection_reports/severity.py
══════════════════════════════

Severity classification and build-budget accounting.

    inspection id ──► SeverityClassifier ──► Severity ──► ThresholdEvaluator
                                                                │
                                                      finalize()▼
                                                             Verdict

The classifier is the single source of truth for "is this an error, a
warning or informational".  The evaluator counts ERROR and WARNING only;
weak warnings and information are tallied for the summary but never fail
a build.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional

from inspection_reports.errors import ConfigurationError, ProtocolError
from inspection_reports.problems import Severity

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — CLASSIFIER
# ═════════════════════════════════════════════════════════════════════════

class SeverityClassifier:
    """
    Maps inspection ids to severities by set membership.

    Unknown ids are informational; that is the policy, not an error.

    >>> c = SeverityClassifier(error_ids=["NullableProblems"], warning_ids=["UnusedSymbol"])
    >>> c.classify("UnusedSymbol")
    <Severity.WARNING: ('warning', 'yellow', 'warning', 1)>
    >>> c.classify("SomethingElse").label
    'information'
    """

    def __init__(
        self,
        error_ids: Iterable[str] = (),
        warning_ids: Iterable[str] = (),
        info_ids: Iterable[str] = (),
    ) -> None:
        self.error_ids: FrozenSet[str] = frozenset(error_ids)
        self.warning_ids: FrozenSet[str] = frozenset(warning_ids)
        self.info_ids: FrozenSet[str] = frozenset(info_ids)

        overlap = (
            (self.error_ids & self.warning_ids)
            | (self.error_ids & self.info_ids)
            | (self.warning_ids & self.info_ids)
        )
        if overlap:
            raise ConfigurationError(
                f"inspection ids configured at more than one level: {', '.join(sorted(overlap))}"
            )

    @property
    def inspection_ids(self) -> FrozenSet[str]:
        """Every explicitly configured inspection id."""
        return self.error_ids | self.warning_ids | self.info_ids

    def classify(self, inspection_id: str) -> Severity:
        if inspection_id in self.error_ids:
            return Severity.ERROR
        if inspection_id in self.warning_ids:
            return Severity.WARNING
        return Severity.INFORMATION


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — THRESHOLDS AND VERDICT
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ThresholdConfig:
    """Error and warning budgets for one run; ``max_warnings=None`` is unbounded."""
    max_errors: int = 0
    max_warnings: Optional[int] = None

    def __post_init__(self) -> None:
        _check_budget("max_errors", self.max_errors)
        if self.max_warnings is not None:
            _check_budget("max_warnings", self.max_warnings)


def _check_budget(key: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"expected a non-negative integer, got {value!r}", key=key)
    if value < 0:
        raise ConfigurationError(f"must not be negative, got {value}", key=key)


@dataclass(frozen=True)
class Verdict:
    """Outcome of a run, computed once by :meth:`ThresholdEvaluator.finalize`."""
    passed: bool
    error_count: int
    warning_count: int
    info_count: int = 0
    max_errors: int = 0
    max_warnings: Optional[int] = None

    @property
    def errors_exceeded(self) -> bool:
        return self.error_count > self.max_errors

    @property
    def warnings_exceeded(self) -> bool:
        return self.max_warnings is not None and self.warning_count > self.max_warnings

    def summary_line(self) -> str:
        parts: List[str] = []
        if self.error_count:
            parts.append(f"{self.error_count} error{'s' if self.error_count != 1 else ''}")
        if self.warning_count:
            parts.append(f"{self.warning_count} warning{'s' if self.warning_count != 1 else ''}")
        if self.info_count:
            parts.append(f"{self.info_count} info")
        if not parts:
            return "no problems found"
        return "; ".join(parts)

    def failure_message(self) -> str:
        """Which budgets were exceeded, for build-failure output."""
        reasons: List[str] = []
        if self.errors_exceeded:
            reasons.append(
                f"{self.error_count} error{'s' if self.error_count != 1 else ''} "
                f"found, max allowed {self.max_errors}"
            )
        if self.warnings_exceeded:
            reasons.append(
                f"{self.warning_count} warning{'s' if self.warning_count != 1 else ''} "
                f"found, max allowed {self.max_warnings}"
            )
        return "; ".join(reasons)


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — EVALUATOR
# ═════════════════════════════════════════════════════════════════════════

class ThresholdEvaluator:
    """
    Counts classified problems and produces the :class:`Verdict`.

    ``record`` once per problem, then ``finalize`` exactly once.
    """

    def __init__(self, thresholds: Optional[ThresholdConfig] = None) -> None:
        self.thresholds = thresholds or ThresholdConfig()
        self.error_count = 0
        self.warning_count = 0
        self.info_count = 0
        self._verdict: Optional[Verdict] = None

    @property
    def finalized(self) -> bool:
        return self._verdict is not None

    def record(self, severity: Severity) -> None:
        if self._verdict is not None:
            raise ProtocolError("record() called after finalize()")
        if not severity.is_counted:
            self.info_count += 1
        elif severity is Severity.ERROR:
            self.error_count += 1
        else:
            self.warning_count += 1

    def finalize(self) -> Verdict:
        if self._verdict is not None:
            raise ProtocolError("finalize() called twice")
        limits = self.thresholds
        passed = self.error_count <= limits.max_errors and (
            limits.max_warnings is None or self.warning_count <= limits.max_warnings
        )
        self._verdict = Verdict(
            passed=passed,
            error_count=self.error_count,
            warning_count=self.warning_count,
            info_count=self.info_count,
            max_errors=limits.max_errors,
            max_warnings=limits.max_warnings,
        )
        logger.debug("verdict: %s", self._verdict)
        return self._verdict


__all__ = [
    "SeverityClassifier",
    "ThresholdConfig",
    "Verdict",
    "ThresholdEvaluator",
]
