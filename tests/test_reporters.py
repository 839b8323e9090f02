# tests/test_reporters.py
"""
Tests for the text, HTML, XML, SARIF and console report generators.
"""

import io
import json

import pytest

from inspection_reports.errors import ReportStateError, ReportWriteError
from inspection_reports.problems import HighlightKind, Severity
from inspection_reports.reporters import (
    GENERATORS,
    ConsoleReportGenerator,
    HtmlReportGenerator,
    PlainTextReportGenerator,
    SarifReportGenerator,
    XmlReportGenerator,
    parse_xml_report,
)
from tests.conftest import make_problem


class TestGeneratorContract:

    @pytest.mark.parametrize("name", sorted(GENERATORS))
    def test_generate_twice(self, name, tmp_path):
        gen = GENERATORS[name](tmp_path / f"report.{name}")
        gen.generate()
        assert gen.generated
        with pytest.raises(ReportStateError):
            gen.generate()

    @pytest.mark.parametrize("name", sorted(GENERATORS))
    def test_report_after_generate(self, name, tmp_path):
        gen = GENERATORS[name](tmp_path / f"report.{name}")
        gen.generate()
        with pytest.raises(ReportStateError):
            gen.report(make_problem(), Severity.WARNING, "UnusedSymbol")

    def test_parent_directories_are_created(self, tmp_path):
        dest = tmp_path / "build" / "reports" / "inspections.txt"
        PlainTextReportGenerator(dest).generate()
        assert dest.exists()

    def test_write_failure(self, tmp_path):
        # A directory cannot be opened for writing
        gen = XmlReportGenerator(tmp_path)
        with pytest.raises(ReportWriteError) as info:
            gen.generate()
        assert info.value.generator == "xml"
        assert info.value.destination == tmp_path
        assert isinstance(info.value.cause, OSError)

    def test_missing_destination(self):
        with pytest.raises(ReportWriteError):
            SarifReportGenerator(None).generate()

    def test_problem_count(self, tmp_path):
        gen = XmlReportGenerator(tmp_path / "r.xml")
        for _ in range(3):
            gen.report(make_problem(), Severity.WARNING, "UnusedSymbol")
        assert gen.problem_count == 3


class TestPlainTextReport:

    def test_problem_without_anchor(self, tmp_path):
        dest = tmp_path / "r.txt"
        gen = PlainTextReportGenerator(dest)
        gen.report(
            make_problem("NewlineAtEof", line=None, message="File must end with a newline"),
            Severity.ERROR, "NewlineAtEof",
        )
        gen.generate()
        assert dest.read_text(encoding="utf-8") == (
            "src/Main.kt: (error) File must end with a newline [NewlineAtEof]\n"
            "1 problem found\n"
        )

    def test_problem_with_anchor_shows_statement(self, kotlin, tmp_path):
        dest = tmp_path / "r.txt"
        gen = PlainTextReportGenerator(dest)
        gen.report(make_problem(anchor=kotlin.x), Severity.WARNING, "UnusedSymbol")
        gen.generate()
        assert dest.read_text(encoding="utf-8") == (
            "In file src/Main.kt:2:\n"
            "    {\n"
            "        val x = foo()\n"
            "        if (x) return\n"
            "    }\n"
            "(warning) Variable 'x' is never used [UnusedSymbol]\n"
            "1 problem found\n"
        )

    def test_empty_report(self, tmp_path):
        dest = tmp_path / "r.txt"
        PlainTextReportGenerator(dest).generate()
        assert dest.read_text(encoding="utf-8") == "0 problems found\n"


class TestHtmlReport:

    def test_empty_report_is_header_and_footer(self, tmp_path):
        dest = tmp_path / "r.html"
        HtmlReportGenerator(dest).generate()
        html = dest.read_text(encoding="utf-8")
        assert html.startswith("<!DOCTYPE html>\n")
        assert html.endswith("<body>\n</body></html>\n")
        assert "<p>" not in html

    def test_title_is_escaped(self, tmp_path):
        dest = tmp_path / "r.html"
        HtmlReportGenerator(dest, title="A & B").generate()
        assert "<title>A &amp; B</title>" in dest.read_text(encoding="utf-8")

    def test_problem_block(self, kotlin, tmp_path):
        dest = tmp_path / "r.html"
        gen = HtmlReportGenerator(dest)
        gen.report(
            make_problem("UnusedSymbol", anchor=kotlin.x, message="Variable x is never used",
                         highlight_kind=HighlightKind.UNUSED),
            Severity.WARNING, "UnusedSymbol",
        )
        gen.generate()
        html = dest.read_text(encoding="utf-8")
        assert (
            "<p>\n"
            "    In file <b>src/Main.kt:2</b>:\n"
            "</p>\n"
            "<pre>\n"
            "{\n"
            "    <keyword>val</keyword> <unused>x</unused> = foo()\n"
            "    <keyword>if</keyword> (x) <keyword>return</keyword>\n"
            "}\n"
            "</pre>\n"
            "<p>\n"
            "    <i>Variable x is never used</i> <small>[UnusedSymbol]</small>\n"
            "</p>\n"
        ) in html

    def test_message_is_escaped(self, tmp_path):
        dest = tmp_path / "r.html"
        gen = HtmlReportGenerator(dest)
        gen.report(make_problem(message="List<String> & co", line=None), Severity.ERROR, "Generic")
        gen.generate()
        html = dest.read_text(encoding="utf-8")
        assert "<i>List&lt;String&gt; &amp; co</i>" in html
        assert "<pre>" not in html

    def test_severity_selects_tag(self, kotlin, tmp_path):
        dest = tmp_path / "r.html"
        gen = HtmlReportGenerator(dest)
        gen.report(make_problem(anchor=kotlin.foo), Severity.ERROR, "UnresolvedReference")
        gen.generate()
        assert "<error>foo</error>()" in dest.read_text(encoding="utf-8")


class TestXmlReport:

    def test_round_trip(self, tmp_path):
        dest = tmp_path / "r.xml"
        gen = XmlReportGenerator(dest)
        gen.report(make_problem(message="a < b"), Severity.WARNING, "UnusedSymbol")
        gen.report(make_problem("NewlineAtEof", line=None, message="eof"), Severity.ERROR, "NewlineAtEof")
        gen.generate()
        text = dest.read_text(encoding="utf-8")
        assert text.startswith('<?xml version="1.0" encoding="utf-8"?>\n<problems count="2">')

        problems = parse_xml_report(text)
        assert [p.inspection_id for p in problems] == ["UnusedSymbol", "NewlineAtEof"]
        assert problems[0].severity is Severity.WARNING
        assert problems[0].line == 2
        assert problems[0].message == "a < b"
        assert problems[1].line is None
        assert problems[1].file_path == "src/Main.kt"

    def test_empty(self, tmp_path):
        dest = tmp_path / "r.xml"
        XmlReportGenerator(dest).generate()
        assert parse_xml_report(dest.read_text(encoding="utf-8")) == []

    @pytest.mark.parametrize("message", [
        "line one\r\nline two",
        "bad \x1b[0m escape",
        "tab\tand\nnewline",
        "C:\\temp\\x1b is a path, not an escape",
        "nul \x00 and backslash \\ \x07",
        "\ufffe noncharacter",
    ])
    def test_message_round_trips_exactly(self, message, tmp_path):
        dest = tmp_path / "r.xml"
        gen = XmlReportGenerator(dest)
        gen.report(make_problem(message=message), Severity.WARNING, "UnusedSymbol")
        gen.generate()
        problems = parse_xml_report(dest.read_text(encoding="utf-8"))
        assert problems[0].message == message

    def test_control_characters_in_attributes(self, tmp_path):
        dest = tmp_path / "r.xml"
        gen = XmlReportGenerator(dest)
        gen.report(make_problem(file_path="src/odd\tname\r.kt", message="m"),
                   Severity.ERROR, "Odd\x1bId")
        gen.generate()
        (problem,) = parse_xml_report(dest.read_text(encoding="utf-8"))
        assert problem.file_path == "src/odd\tname\r.kt"
        assert problem.inspection_id == "Odd\x1bId"
        assert problem.message == "m"

    def test_plain_messages_are_written_verbatim(self, tmp_path):
        dest = tmp_path / "r.xml"
        gen = XmlReportGenerator(dest)
        gen.report(make_problem(message="C:\\temp\\x1b"), Severity.WARNING, "UnusedSymbol")
        gen.generate()
        text = dest.read_text(encoding="utf-8")
        assert "escaped=" not in text
        assert ">C:\\temp\\x1b</problem>" in text
        assert parse_xml_report(text)[0].message == "C:\\temp\\x1b"


class TestSarifReport:

    def test_results_and_rules(self, tmp_path):
        dest = tmp_path / "r.sarif"
        gen = SarifReportGenerator(dest, tool_version="1.2.3")
        gen.report(make_problem(), Severity.WARNING, "UnusedSymbol")
        gen.report(make_problem(line=7), Severity.WARNING, "UnusedSymbol")
        gen.report(make_problem("Spelling", line=None, message="typo"), Severity.INFORMATION, "Spelling")
        gen.generate()

        sarif = json.loads(dest.read_text(encoding="utf-8"))
        assert sarif["version"] == "2.1.0"
        run = sarif["runs"][0]
        assert run["tool"]["driver"]["version"] == "1.2.3"
        assert [r["id"] for r in run["tool"]["driver"]["rules"]] == ["UnusedSymbol", "Spelling"]

        results = run["results"]
        assert len(results) == 3
        assert results[0]["level"] == "warning"
        assert results[1]["locations"][0]["physicalLocation"]["region"] == {"startLine": 7}
        assert results[2]["level"] == "note"
        assert results[2]["properties"]["severity"] == "information"
        assert "region" not in results[2]["locations"][0]["physicalLocation"]


class TestConsoleReport:

    def test_streams_problems_and_summary(self):
        stream = io.StringIO()
        gen = ConsoleReportGenerator(stream, colour=False)
        gen.report(make_problem(), Severity.WARNING, "UnusedSymbol")
        assert stream.getvalue() == (
            "[src/Main.kt:2]: (warning) Variable 'x' is never used [UnusedSymbol]\n"
        )
        gen.report(make_problem("NullableProblems", line=None, message="npe"), Severity.ERROR,
                   "NullableProblems")
        gen.generate()
        assert stream.getvalue().splitlines()[-1] == "  ╰─ 1 error, 1 warning"

    def test_no_problems(self):
        stream = io.StringIO()
        ConsoleReportGenerator(stream, colour=False).generate()
        assert stream.getvalue() == "  ╰─ no problems found\n"

    def test_colour(self):
        stream = io.StringIO()
        gen = ConsoleReportGenerator(stream, colour=True)
        gen.report(make_problem(), Severity.ERROR, "X")
        assert "\x1b[" in stream.getvalue()

    def test_stream_failure_at_generate(self):
        gen = ConsoleReportGenerator(_BrokenStream(), colour=False)
        with pytest.raises(ReportWriteError):
            gen.generate()

    def test_stream_failure_while_streaming_is_logged(self, caplog):
        gen = ConsoleReportGenerator(_BrokenStream(), colour=False)
        gen.report(make_problem(), Severity.WARNING, "UnusedSymbol")
        assert gen.problem_count == 1
        assert "console output failed" in caplog.text


class _BrokenStream(io.StringIO):

    def write(self, s):
        raise OSError("stream closed by peer")
