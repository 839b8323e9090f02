"""
inspection_reports — Problem Aggregation and Report Rendering
=============================================================

Turns the problem stream of an offline inspection run into a build
verdict and report artifacts.

Core modules
------------
problems
    ``ProblemRecord``, ``Severity`` and ``HighlightKind``.
syntax
    Read-only capability interface over the engine's syntax tree, plus an
    in-memory tree for engines written in Python.
locator
    Picks the enclosing statement to display for a problem.
highlight
    Flattens that statement to text with keyword and problem markers.
severity
    Inspection-id classification and error/warning budgets.
reporters
    Text, HTML, XML, SARIF and console report generators.
pipeline
    ``ReportPipeline``: submit problems, finish, get the verdict.
config
    ``InspectionConfig`` loading and validation.

Quick start
-----------
>>> from inspection_reports import (
...     ProblemRecord, ReportPipeline, SeverityClassifier, ThresholdConfig,
...     ThresholdEvaluator, HtmlReportGenerator,
... )
>>> pipeline = ReportPipeline(
...     SeverityClassifier(warning_ids=["UnusedSymbol"]),
...     ThresholdEvaluator(ThresholdConfig(max_errors=0, max_warnings=0)),
...     [HtmlReportGenerator("build/inspections.html")],
... )
>>> _ = pipeline.submit(ProblemRecord("UnusedSymbol", "Main.kt", "unused", line=3))
>>> pipeline.finish().verdict.passed
False
"""

from __future__ import annotations

import importlib
import sys
from typing import List

# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

__version__ = "0.1.0"
__license__ = "Apache-2.0"
__all__: List[str] = []          # populated below


# ---------------------------------------------------------------------------
# Public names re-exported from each submodule
# ---------------------------------------------------------------------------

_CORE_MODULES = {
    "errors": [
        "InspectionReportError",
        "ConfigurationError",
        "ReportWriteError",
        "ProtocolError",
        "PipelineStateError",
        "ReportStateError",
        "InspectionFailure",
    ],
    "problems": [
        "Severity",
        "HighlightKind",
        "ProblemRecord",
    ],
    "syntax": [
        "Document",
        "SyntaxNode",
        "TextDocument",
        "SourceNode",
        "read_scope",
        "build_file",
    ],
    "locator": [
        "SourceLocator",
    ],
    "highlight": [
        "FragmentRenderer",
        "highlight_tag",
        "KOTLIN_KEYWORDS",
    ],
    "severity": [
        "SeverityClassifier",
        "ThresholdConfig",
        "ThresholdEvaluator",
        "Verdict",
    ],
    "reporters": [
        "ReportGenerator",
        "PlainTextReportGenerator",
        "HtmlReportGenerator",
        "XmlReportGenerator",
        "SarifReportGenerator",
        "ConsoleReportGenerator",
    ],
    "config": [
        "InspectionConfig",
        "load_config",
        "apply_env_overrides",
    ],
    "pipeline": [
        "ReportPipeline",
        "RunResult",
        "pipeline_from_config",
        "enforce_verdict",
    ],
}


def _import_names(module_rel_name: str, names: List[str]) -> None:
    """Import *names* from a submodule and bind them in the package namespace."""
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        raise ImportError(
            f"inspection_reports: required submodule '{module_rel_name}' "
            f"failed to import: {exc}"
        ) from exc

    current_module = sys.modules[__name__]
    for name in names:
        obj = getattr(mod, name, None)
        if obj is None:
            raise AttributeError(f"inspection_reports.{module_rel_name} does not export '{name}'")
        setattr(current_module, name, obj)
        __all__.append(name)


for _mod, _names in _CORE_MODULES.items():
    _import_names(_mod, _names)

del _mod, _names

__all__ += ["__version__"]
