"""
inspection_reports/errors.py
════════════════════════════

Exception hierarchy for the inspection report pipeline.

Error Hierarchy
───────────────
    InspectionReportError (base)
    ├── ConfigurationError   - bad thresholds, class lists, report formats
    ├── ReportWriteError     - a report sink could not be written
    ├── ProtocolError        - API misuse (programming errors)
    │   ├── PipelineStateError
    │   └── ReportStateError
    └── InspectionFailure    - the verdict failed the configured budgets

Only ``ReportWriteError`` is recoverable inside a run: the pipeline logs it,
keeps going with the sibling reports and attaches it to the run result.
Everything else propagates to the caller.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union


class InspectionReportError(Exception):
    """Base exception for all inspection report errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


# ───────────────────────────────────────────────────────────────────────────────
# CONFIGURATION ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class ConfigurationError(InspectionReportError):
    """Invalid configuration, detected before the pipeline starts."""

    def __init__(self, message: str, key: str = "", **kwargs: Any) -> None:
        if key:
            message = f"{key}: {message}"
        super().__init__(message, **kwargs)
        self.key = key


# ───────────────────────────────────────────────────────────────────────────────
# SINK ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class ReportWriteError(InspectionReportError):
    """A report artifact could not be written to its destination."""

    def __init__(
        self,
        generator: str,
        destination: Optional[Union[str, Path]],
        cause: Optional[BaseException] = None,
    ) -> None:
        where = f" to {destination}" if destination is not None else ""
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{generator} report could not be written{where}{detail}", cause=cause)
        self.generator = generator
        self.destination = destination


# ───────────────────────────────────────────────────────────────────────────────
# PROTOCOL MISUSE
# ───────────────────────────────────────────────────────────────────────────────

class ProtocolError(InspectionReportError):
    """The pipeline or a report generator was driven out of order."""


class PipelineStateError(ProtocolError):
    """``submit``/``finish`` called on a closed pipeline."""


class ReportStateError(ProtocolError):
    """``report``/``generate`` called on an already generated report."""


# ───────────────────────────────────────────────────────────────────────────────
# BUILD FAILURE
# ───────────────────────────────────────────────────────────────────────────────

class InspectionFailure(InspectionReportError):
    """The inspection verdict exceeded the error or warning budget."""

    def __init__(self, message: str, verdict: Any = None) -> None:
        super().__init__(message)
        self.verdict = verdict


__all__ = [
    "InspectionReportError",
    "ConfigurationError",
    "ReportWriteError",
    "ProtocolError",
    "PipelineStateError",
    "ReportStateError",
    "InspectionFailure",
]
