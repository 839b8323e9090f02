"""
inspection_reports/problems.py
══════════════════════════════

Problem model shared by every stage of the report pipeline.

A :class:`ProblemRecord` is created by the analysis engine for each finding
and consumed read-only by the classifier, the evaluator and every report
generator.  Records are frozen; nothing in this package mutates them.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional


# ═════════════════════════════════════════════════════════════════════════
#  SEVERITY
# ═════════════════════════════════════════════════════════════════════════

class Severity(enum.Enum):
    """
    Problem severity levels.

    Each carries:
      • label: lower-case name used in reports and config files
      • color: termcolor colour name for console output
      • sarif_level: SARIF 2.1.0 ``level`` string
      • rank: bucketing order; WEAK_WARNING and INFORMATION share it
    """

    ERROR = ("error", "red", "error", 2)
    WARNING = ("warning", "yellow", "warning", 1)
    WEAK_WARNING = ("weak_warning", "cyan", "note", 0)
    INFORMATION = ("information", "white", "note", 0)

    def __init__(self, label: str, color: str, sarif_level: str, rank: int) -> None:
        self.label = label
        self.color = color
        self.sarif_level = sarif_level
        self.rank = rank

    @property
    def is_counted(self) -> bool:
        """Only errors and warnings count against the build budgets."""
        return self.rank > 0

    @classmethod
    def from_string(cls, s: str) -> Severity:
        """Parse a severity label (case-insensitive); unknown labels are informational."""
        s_low = s.strip().lower().replace("-", "_").replace(" ", "_")
        aliases = {"info": "information", "weak": "weak_warning", "warn": "warning"}
        s_low = aliases.get(s_low, s_low)
        for member in cls:
            if member.label == s_low:
                return member
        return cls.INFORMATION


class HighlightKind(enum.Enum):
    """How the engine wants the offending element highlighted."""
    GENERIC = "generic"
    UNUSED = "unused"


# ═════════════════════════════════════════════════════════════════════════
#  PROBLEM RECORD
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProblemRecord:
    """
    A single finding reported by an inspection.

    Attributes
    ----------
    inspection_id  : identifier of the inspection that produced it
    file_path      : path of the offending file
    message        : plain description
    line           : 1-based line, ``None`` for file-level problems
    anchor         : syntax node the problem is attached to, if any
    highlight_kind : highlight style hint
    severity       : severity hint from the engine; build accounting uses
                     the configured classification instead
    """
    inspection_id: str
    file_path: str
    message: str
    line: Optional[int] = None
    anchor: Optional[Any] = None
    highlight_kind: HighlightKind = HighlightKind.GENERIC
    severity: Optional[Severity] = None

    def render_location(self) -> str:
        """``path:line``, or just the path when no line is known."""
        if self.line is not None:
            return f"{self.file_path}:{self.line}"
        return self.file_path

    def render(self) -> str:
        return self.message


__all__ = [
    "Severity",
    "HighlightKind",
    "ProblemRecord",
]
