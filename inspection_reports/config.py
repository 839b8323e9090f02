"""
inspection_reports/config.py
════════════════════════════

Run configuration for the report pipeline.

Sources, later ones winning:

  1. defaults (``max_errors=0``, unbounded warnings, console output on)
  2. a JSON config file (:func:`load_config`)
  3. ``$REPORT_GENERATE_TEXT`` / ``_HTML`` / ``_XML`` / ``_SARIF``
     environment variables naming report destinations
     (:func:`apply_env_overrides`)
  4. command-line options (see :mod:`inspection_reports.cli`)

Config file example::

    {
        "errorClasses": ["NullableProblems"],
        "warningClasses": ["UnusedSymbol", "RedundantSemicolon"],
        "maxErrors": 0,
        "maxWarnings": 10,
        "reports": {"html": "build/reports/inspections.html"}
    }

Keys may be given in camelCase or snake_case.  Any invalid value raises
:class:`ConfigurationError` before the pipeline is built.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from inspection_reports.errors import ConfigurationError
from inspection_reports.severity import SeverityClassifier, ThresholdConfig

logger = logging.getLogger(__name__)

REPORT_FORMATS: Tuple[str, ...] = ("text", "html", "xml", "sarif")

ENV_REPORT_VARS: Dict[str, str] = {
    fmt: f"REPORT_GENERATE_{fmt.upper()}" for fmt in REPORT_FORMATS
}

_CAMEL_KEYS = {
    "errorClasses": "error_classes",
    "warningClasses": "warning_classes",
    "infoClasses": "info_classes",
    "maxErrors": "max_errors",
    "maxWarnings": "max_warnings",
    "showViolations": "show_violations",
    "ignoreFailures": "ignore_failures",
}


@dataclass(frozen=True)
class InspectionConfig:
    """
    Immutable settings for one inspection run.

    Attributes
    ----------
    error_classes   : inspection ids reported as errors
    warning_classes : inspection ids reported as warnings
    info_classes    : inspection ids reported as information
    max_errors      : errors tolerated before the build fails
    max_warnings    : warnings tolerated; ``None`` for no limit
    show_violations : stream each problem to the console
    ignore_failures : log a failed verdict instead of failing the build
    reports         : report format → destination path
    """
    error_classes: Tuple[str, ...] = ()
    warning_classes: Tuple[str, ...] = ()
    info_classes: Tuple[str, ...] = ()
    max_errors: int = 0
    max_warnings: Optional[int] = None
    show_violations: bool = True
    ignore_failures: bool = False
    reports: Mapping[str, Path] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = sorted(set(self.reports) - set(REPORT_FORMATS))
        if unknown:
            raise ConfigurationError(
                f"unknown report format(s) {', '.join(unknown)}; "
                f"expected one of {', '.join(REPORT_FORMATS)}",
                key="reports",
            )
        # Validates the budgets and rejects ids listed at two levels
        self.threshold_config()
        self.classifier()

    # ── derived objects ──────────────────────────────────────────────

    def threshold_config(self) -> ThresholdConfig:
        return ThresholdConfig(max_errors=self.max_errors, max_warnings=self.max_warnings)

    def classifier(self) -> SeverityClassifier:
        return SeverityClassifier(
            error_ids=self.error_classes,
            warning_ids=self.warning_classes,
            info_ids=self.info_classes,
        )

    def with_reports(self, **paths: Optional[Union[str, Path]]) -> InspectionConfig:
        """Copy with extra report destinations; ``None`` values are skipped."""
        reports = dict(self.reports)
        for fmt, path in paths.items():
            if path is not None:
                reports[fmt] = Path(path)
        return dataclasses.replace(self, reports=reports)

    # ── construction ─────────────────────────────────────────────────

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> InspectionConfig:
        """Build from a parsed config file, validating every value."""
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"expected a mapping, got {type(data).__name__}")

        kwargs: Dict[str, Any] = {}
        names = {f.name for f in dataclasses.fields(cls)}
        for raw_key, value in data.items():
            key = _CAMEL_KEYS.get(raw_key, raw_key)
            if key not in names:
                raise ConfigurationError("unknown configuration key", key=raw_key)
            kwargs[key] = value

        for key in ("error_classes", "warning_classes", "info_classes"):
            if key in kwargs:
                kwargs[key] = _id_list(key, kwargs[key])
        for key in ("show_violations", "ignore_failures"):
            if key in kwargs and not isinstance(kwargs[key], bool):
                raise ConfigurationError(f"expected true or false, got {kwargs[key]!r}", key=key)
        if "reports" in kwargs:
            kwargs["reports"] = _report_paths(kwargs["reports"])
        return cls(**kwargs)


def _id_list(key: str, value: Any) -> Tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"expected a list of inspection ids, got {value!r}", key=key)
    for item in value:
        if not isinstance(item, str) or not item:
            raise ConfigurationError(f"inspection ids must be non-empty strings, got {item!r}", key=key)
    return tuple(value)


def _report_paths(value: Any) -> Dict[str, Path]:
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"expected a format → path mapping, got {value!r}", key="reports")
    paths: Dict[str, Path] = {}
    for fmt, path in value.items():
        if not isinstance(path, str) or not path:
            raise ConfigurationError(f"expected a path, got {path!r}", key=f"reports.{fmt}")
        paths[fmt] = Path(path)
    return paths


def load_config(path: Union[str, Path]) -> InspectionConfig:
    """Read and validate a JSON config file."""
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"cannot read config file {p}: {exc}", cause=exc) from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"malformed config file {p}: {exc}", cause=exc) from exc
    logger.debug("loaded config from %s", p)
    return InspectionConfig.from_mapping(data)


def apply_env_overrides(
    config: InspectionConfig,
    environ: Optional[Mapping[str, str]] = None,
) -> InspectionConfig:
    """Add report destinations named by ``$REPORT_GENERATE_<FORMAT>``."""
    env = os.environ if environ is None else environ
    paths = {fmt: env.get(var) or None for fmt, var in ENV_REPORT_VARS.items()}
    for fmt, path in paths.items():
        if path:
            logger.debug("%s report destination from $%s: %s", fmt, ENV_REPORT_VARS[fmt], path)
    return config.with_reports(**paths)


__all__ = [
    "REPORT_FORMATS",
    "ENV_REPORT_VARS",
    "InspectionConfig",
    "load_config",
    "apply_env_overrides",
]
