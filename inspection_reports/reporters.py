"""
inspection_reports/reporters.py
═══════════════════════════════

Report generators: one problem stream, several artifacts.

Output formats
──────────────
  • text    : plain report with the offending source fragment
  • html    : self-contained styled document, fragment highlighted in context
  • xml     : structured problem list (severity, location, inspection, message)
  • sarif   : SARIF 2.1.0 JSON for code-scanning tools
  • console : one ``[file:line]: (severity) message [id]`` line per problem,
              coloured on a TTY; the ``show_violations`` output

Every generator follows the same contract::

    gen = HtmlReportGenerator("build/reports/inspections.html")
    gen.report(problem, Severity.WARNING, "UnusedSymbol")   # once per problem
    gen.generate()                                          # exactly once

The pipeline uses the two halves of ``report`` separately: ``prepare``
(tree reads, no locks of its own) and then ``add`` under its lock.

``generate`` writes the artifact.  An I/O failure surfaces as
:class:`ReportWriteError`; calling ``report`` or ``generate`` after
``generate`` raises :class:`ReportStateError`.  Each generator owns its
buffer; nothing is shared between generators.
"""

from __future__ import annotations

import io
import json
import logging
import re
import sys
import textwrap
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from pathlib import Path
from typing import (
    Any,
    ClassVar,
    Dict,
    List,
    NamedTuple,
    Optional,
    TextIO,
    Union,
)

import jinja2
from markupsafe import Markup
from termcolor import colored

from inspection_reports.errors import ReportStateError, ReportWriteError
from inspection_reports.highlight import FragmentRenderer, highlight_tag
from inspection_reports.locator import SourceLocator
from inspection_reports.problems import ProblemRecord, Severity

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TOOL_NAME = "inspection-reports"


# ═════════════════════════════════════════════════════════════════════════
#  BASE CLASS
# ═════════════════════════════════════════════════════════════════════════

class PreparedProblem(NamedTuple):
    """A problem with its syntax-tree reads already done."""
    problem: ProblemRecord
    severity: Severity
    inspection_id: str
    fragment: Optional[str] = None


class ReportGenerator(ABC):
    """
    Base class for all report generators.

    Intake is split in two so tree reads never happen under a caller's
    lock: :meth:`prepare` walks the syntax tree (under the engine's read
    guard) and :meth:`add` only appends the prepared entry.  :meth:`report`
    does both.

    Subclass Contract
    ─────────────────
      - Set ``name``
      - Implement ``_add()`` (one prepared problem) and ``_render()``
        (final artifact)
      - Override ``_prepare_fragment()`` if the report shows source
      - Override ``_write()`` for sinks other than a file
    """

    name: ClassVar[str] = "report"

    def __init__(self, destination: Optional[PathLike]) -> None:
        self.destination: Optional[Path] = Path(destination) if destination is not None else None
        self.problem_count = 0
        self._generated = False

    @property
    def generated(self) -> bool:
        return self._generated

    def ensure_open(self) -> None:
        """Raise :class:`ReportStateError` once the report has been generated."""
        if self._generated:
            raise ReportStateError(f"{self.name} report already generated; cannot add problems")

    def prepare(self, problem: ProblemRecord, severity: Severity, inspection_id: str) -> PreparedProblem:
        """Do the tree reads for one problem; touches no generator state."""
        return PreparedProblem(problem, severity, inspection_id, self._prepare_fragment(problem, severity))

    def add(self, prepared: PreparedProblem) -> None:
        """Append one prepared problem, in discovery order."""
        self.ensure_open()
        self.problem_count += 1
        self._add(prepared)

    def report(self, problem: ProblemRecord, severity: Severity, inspection_id: str) -> None:
        """Prepare and add one problem."""
        self.ensure_open()
        self.add(self.prepare(problem, severity, inspection_id))

    def generate(self) -> None:
        """Finalize and write the artifact.  Must be called exactly once."""
        if self._generated:
            raise ReportStateError(f"{self.name} report generated twice")
        self._generated = True
        content = self._render()
        self._write(content)
        if self.destination is not None:
            logger.info("%s report: %d problem(s) written to %s", self.name, self.problem_count, self.destination)

    def _prepare_fragment(self, problem: ProblemRecord, severity: Severity) -> Optional[str]:
        return None

    @abstractmethod
    def _add(self, prepared: PreparedProblem) -> None:
        ...

    @abstractmethod
    def _render(self) -> str:
        ...

    def _write(self, content: str) -> None:
        if self.destination is None:
            raise ReportWriteError(self.name, None, ValueError("no destination configured"))
        try:
            self.destination.parent.mkdir(parents=True, exist_ok=True)
            self.destination.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ReportWriteError(self.name, self.destination, exc) from exc

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} -> {self.destination}>"


class _FragmentMixin:
    """Shared display-anchor lookup and fragment rendering."""

    locator: SourceLocator
    renderer: FragmentRenderer

    def _prepare_fragment(self, problem: ProblemRecord, severity: Severity) -> Optional[str]:
        anchor = self.locator.find_display_anchor(problem.anchor)
        if anchor is None:
            return None
        tag = highlight_tag(problem.highlight_kind, severity)
        return self.renderer.render(anchor, problem.anchor, tag)


# ═════════════════════════════════════════════════════════════════════════
#  PLAIN TEXT
# ═════════════════════════════════════════════════════════════════════════

class PlainTextReportGenerator(_FragmentMixin, ReportGenerator):
    """
    Plain text report.

    With a syntax anchor::

        In file src/Main.kt:3:
            val unused = compute()
        (warning) Variable 'unused' is never used [UnusedSymbol]

    Without one, a single line::

        src/Main.kt: (error) File must end with a newline [NewlineAtEof]
    """

    name = "text"

    def __init__(
        self,
        destination: Optional[PathLike],
        locator: Optional[SourceLocator] = None,
        renderer: Optional[FragmentRenderer] = None,
    ) -> None:
        super().__init__(destination)
        self.locator = locator or SourceLocator()
        self.renderer = renderer or FragmentRenderer(markup=False)
        self._buf = io.StringIO()

    def _add(self, prepared: PreparedProblem) -> None:
        problem, severity, inspection_id, fragment = prepared
        detail = f"({severity.label}) {problem.render()} [{inspection_id}]"
        if fragment is None:
            self._buf.write(f"{problem.render_location()}: {detail}\n")
            return
        self._buf.write(f"In file {problem.render_location()}:\n")
        self._buf.write(textwrap.indent(fragment.rstrip("\n"), "    ") + "\n")
        self._buf.write(detail + "\n")

    def _render(self) -> str:
        count = self.problem_count
        return self._buf.getvalue() + f"{count} problem{'s' if count != 1 else ''} found\n"


# ═════════════════════════════════════════════════════════════════════════
#  HTML
# ═════════════════════════════════════════════════════════════════════════

_JINJA_ENV = jinja2.Environment(
    autoescape=True,
    trim_blocks=True,
    keep_trailing_newline=True,
    undefined=jinja2.StrictUndefined,
)

_HTML_HEADER = _JINJA_ENV.from_string(textwrap.dedent("""\
    <!DOCTYPE html>
    <html><head>
    <meta charset="utf-8">
    <title>{{ title }}</title>
    <style>
    error {
        background-color: red;
    }
    warning {
        background-color: yellow;
    }
    info {
        text-decoration-style: wavy;
        text-decoration: underline;
    }
    unused {
        background-color: lightgray;
    }
    keyword {
        font-weight: bold;
    }
    </style></head>
    <body>
    """))

_HTML_PROBLEM = _JINJA_ENV.from_string(textwrap.dedent("""\
    <p>
        In file <b>{{ location }}</b>:
    </p>
    {% if fragment is not none %}
    <pre>
    {{ fragment }}
    </pre>
    {% endif %}
    <p>
        <i>{{ message }}</i> <small>[{{ inspection_id }}]</small>
    </p>
    """))

_HTML_FOOTER = "</body></html>\n"


class HtmlReportGenerator(_FragmentMixin, ReportGenerator):
    """
    Styled HTML report.

    The header is rendered on construction and the footer on
    :meth:`generate`; each problem adds a block with the bolded location,
    the highlighted fragment in ``<pre>`` and the italic message.
    """

    name = "html"

    def __init__(
        self,
        destination: Optional[PathLike],
        locator: Optional[SourceLocator] = None,
        renderer: Optional[FragmentRenderer] = None,
        title: str = "Inspection Report",
    ) -> None:
        super().__init__(destination)
        self.locator = locator or SourceLocator()
        self.renderer = renderer or FragmentRenderer(markup=True)
        self._parts: List[str] = [_HTML_HEADER.render(title=title)]

    def _add(self, prepared: PreparedProblem) -> None:
        problem, severity, inspection_id, fragment = prepared
        self._parts.append(_HTML_PROBLEM.render(
            location=problem.render_location(),
            fragment=Markup(fragment) if fragment is not None else None,
            message=problem.render(),
            inspection_id=inspection_id,
        ))

    def _render(self) -> str:
        self._parts.append(_HTML_FOOTER)
        return "".join(self._parts)


# ═════════════════════════════════════════════════════════════════════════
#  XML
# ═════════════════════════════════════════════════════════════════════════

class XmlProblem(NamedTuple):
    """One ``<problem>`` element read back from an XML report."""
    severity: Severity
    inspection_id: str
    file_path: str
    line: Optional[int]
    message: str


class XmlReportGenerator(ReportGenerator):
    """
    Structured XML report::

        <?xml version="1.0" encoding="utf-8"?>
        <problems count="1">
          <problem severity="warning" inspection="UnusedSymbol" file="src/Main.kt" line="3">Variable 'unused' is never used</problem>
        </problems>

    Values an XML parser would reject or rewrite (control characters,
    ``\\r``, lone surrogates) are written backslash-escaped (``\\x1b``,
    ``\\\\``) and the element is marked ``escaped="true"``;
    :func:`parse_xml_report` undoes it.
    """

    name = "xml"

    def __init__(self, destination: Optional[PathLike]) -> None:
        super().__init__(destination)
        self._root = ET.Element("problems")

    def _add(self, prepared: PreparedProblem) -> None:
        problem, severity, inspection_id, _ = prepared
        message = problem.render()
        escaped = bool(
            _XML_TEXT_UNSAFE.search(message)
            or _XML_ATTR_UNSAFE.search(inspection_id)
            or _XML_ATTR_UNSAFE.search(problem.file_path)
        )
        attrs = {
            "severity": severity.label,
            "inspection": _xml_escape(inspection_id, _XML_ATTR_UNSAFE) if escaped else inspection_id,
            "file": _xml_escape(problem.file_path, _XML_ATTR_UNSAFE) if escaped else problem.file_path,
        }
        if problem.line is not None:
            attrs["line"] = str(problem.line)
        if escaped:
            attrs["escaped"] = "true"
        elem = ET.SubElement(self._root, "problem", attrs)
        elem.text = _xml_escape(message, _XML_TEXT_UNSAFE) if escaped else message

    def _render(self) -> str:
        self._root.set("count", str(self.problem_count))
        ET.indent(self._root)
        body = ET.tostring(self._root, encoding="unicode")
        return '<?xml version="1.0" encoding="utf-8"?>\n' + body + "\n"


def parse_xml_report(text: str) -> List[XmlProblem]:
    """Read the problems back from :class:`XmlReportGenerator` output."""
    root = ET.fromstring(text)
    problems: List[XmlProblem] = []
    for elem in root.iter("problem"):
        line = elem.get("line")
        decode = _xml_unescape if elem.get("escaped") == "true" else str
        problems.append(XmlProblem(
            severity=Severity.from_string(elem.get("severity", "")),
            inspection_id=decode(elem.get("inspection", "")),
            file_path=decode(elem.get("file", "")),
            line=int(line) if line is not None else None,
            message=decode(elem.text or ""),
        ))
    return problems


# Characters an XML 1.0 parser would reject or rewrite (\r becomes \n).
# Attribute values additionally lose \t and \n to whitespace normalization.
_XML_TEXT_UNSAFE = re.compile("[\x00-\x08\x0b-\x1f\ud800-\udfff\ufffe\uffff]")
_XML_ATTR_UNSAFE = re.compile("[\x00-\x1f\ud800-\udfff\ufffe\uffff]")
_XML_ESCAPE_SEQ = re.compile(r"\\(\\|x[0-9a-f]{2}|u[0-9a-f]{4})")


def _xml_escape(value: str, unsafe: re.Pattern) -> str:
    """Backslash-escape *value* so it survives an XML parse unchanged."""

    def _sub(match: re.Match) -> str:
        code = ord(match.group())
        return f"\\x{code:02x}" if code < 0x100 else f"\\u{code:04x}"

    return unsafe.sub(_sub, value.replace("\\", "\\\\"))


def _xml_unescape(value: str) -> str:
    def _sub(match: re.Match) -> str:
        seq = match.group(1)
        return "\\" if seq == "\\" else chr(int(seq[1:], 16))

    return _XML_ESCAPE_SEQ.sub(_sub, value)


# ═════════════════════════════════════════════════════════════════════════
#  SARIF 2.1.0
# ═════════════════════════════════════════════════════════════════════════

class SarifReportGenerator(ReportGenerator):
    """Accumulates problems and writes a SARIF 2.1.0 JSON file."""

    name = "sarif"

    SARIF_VERSION = "2.1.0"
    SARIF_SCHEMA = (
        "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/"
        "Schemata/sarif-schema-2.1.0.json"
    )

    def __init__(
        self,
        destination: Optional[PathLike],
        tool_name: str = TOOL_NAME,
        tool_version: str = "",
    ) -> None:
        super().__init__(destination)
        self.tool_name = tool_name
        self.tool_version = tool_version
        self._results: List[Dict[str, Any]] = []
        self._rules: Dict[str, Dict[str, Any]] = {}  # inspection id → rule obj

    def _add(self, prepared: PreparedProblem) -> None:
        problem, severity, inspection_id, _ = prepared
        if inspection_id not in self._rules:
            self._rules[inspection_id] = {
                "id": inspection_id,
                "shortDescription": {"text": problem.render()},
            }

        result: Dict[str, Any] = {
            "ruleId": inspection_id,
            "level": severity.sarif_level,
            "message": {"text": problem.render()},
            "properties": {"severity": severity.label},
        }
        phys: Dict[str, Any] = {"artifactLocation": {"uri": problem.file_path}}
        if problem.line is not None:
            phys["region"] = {"startLine": problem.line}
        result["locations"] = [{"physicalLocation": phys}]
        self._results.append(result)

    def _render(self) -> str:
        driver: Dict[str, Any] = {
            "name": self.tool_name,
            "rules": list(self._rules.values()),
        }
        if self.tool_version:
            driver["version"] = self.tool_version
        sarif: Dict[str, Any] = {
            "$schema": self.SARIF_SCHEMA,
            "version": self.SARIF_VERSION,
            "runs": [{"tool": {"driver": driver}, "results": self._results}],
        }
        return json.dumps(sarif, indent=2) + "\n"


# ═════════════════════════════════════════════════════════════════════════
#  CONSOLE
# ═════════════════════════════════════════════════════════════════════════

class ConsoleReportGenerator(ReportGenerator):
    """
    Streams each problem to a console as it is reported.

    Coloured with termcolor when the stream is a TTY (or *colour* is
    forced); plain otherwise.  ``generate`` writes the summary line.
    """

    name = "console"

    def __init__(self, stream: Optional[TextIO] = None, colour: Optional[bool] = None) -> None:
        super().__init__(None)
        self._stream = stream if stream is not None else sys.stderr
        if colour is None:
            colour = hasattr(self._stream, "isatty") and self._stream.isatty()
        self.colour = colour
        self._counts: Dict[Severity, int] = {}

    def _paint(self, text: str, color: Optional[str] = None, attrs: Optional[List[str]] = None) -> str:
        if not self.colour:
            return text
        # termcolor would otherwise second-guess the stream via sys.stdout
        return colored(text, color, attrs=attrs, force_color=True)

    def _add(self, prepared: PreparedProblem) -> None:
        problem, severity, inspection_id, _ = prepared
        self._counts[severity] = self._counts.get(severity, 0) + 1
        sev = self._paint(f"({severity.label})", severity.color, attrs=["bold"])
        line = f"[{problem.render_location()}]: {sev} {problem.render()} [{inspection_id}]"
        try:
            self._stream.write(line + "\n")
            self._stream.flush()
        except OSError as exc:
            logger.warning("console output failed: %s", exc)

    def _render(self) -> str:
        parts = [
            f"{count} {severity.label.replace('_', ' ')}"
            for severity, count in sorted(
                self._counts.items(), key=lambda item: (-item[0].rank, item[0].label)
            )
        ]
        summary = ", ".join(parts) if parts else "no problems found"
        if self._counts.get(Severity.ERROR):
            color = "red"
        elif self._counts:
            color = "yellow"
        else:
            color = "green"
        return self._paint(f"  ╰─ {summary}", color, attrs=["bold"]) + "\n"

    def _write(self, content: str) -> None:
        try:
            self._stream.write(content)
            self._stream.flush()
        except OSError as exc:
            raise ReportWriteError(self.name, None, exc) from exc


GENERATORS: Dict[str, type] = {
    PlainTextReportGenerator.name: PlainTextReportGenerator,
    HtmlReportGenerator.name: HtmlReportGenerator,
    XmlReportGenerator.name: XmlReportGenerator,
    SarifReportGenerator.name: SarifReportGenerator,
}


__all__ = [
    "PreparedProblem",
    "ReportGenerator",
    "PlainTextReportGenerator",
    "HtmlReportGenerator",
    "XmlReportGenerator",
    "XmlProblem",
    "parse_xml_report",
    "SarifReportGenerator",
    "ConsoleReportGenerator",
    "GENERATORS",
]
