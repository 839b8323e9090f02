# tests/conftest.py
"""
Shared fixtures: a small synthetic Kotlin syntax tree and problem factories.

The tree for ``KOTLIN_SOURCE`` looks like::

    FILE
    ├── FUN                      line 1
    │   ├── fun  main  ()
    │   └── BLOCK                line 1 ("{")
    │       ├── PROPERTY         line 2  val x = foo()
    │       │   └── CALL         line 2  foo()
    │       └── IF               line 3  if (x) return
    │           └── RETURN       line 3
    └── "\\n"
"""

import threading
from types import SimpleNamespace

import pytest

from inspection_reports.problems import HighlightKind, ProblemRecord
from inspection_reports.syntax import build_file, keyword, leaf, node

KOTLIN_SOURCE = (
    "fun main() {\n"
    "    val x = foo()\n"
    "    if (x) return\n"
    "}\n"
)


def make_kotlin_file(with_document=True):
    """Build the sample tree; returns a namespace of interesting nodes."""
    n = SimpleNamespace()
    n.fun_kw = keyword("fun")
    n.main = leaf("main", "IDENT")
    n.val_kw = leaf("val")                 # keyword by text only
    n.x = leaf("x", "IDENT")
    n.foo = leaf("foo", "IDENT")
    n.call = node("CALL", n.foo, leaf("()"))
    n.prop = node(
        "PROPERTY",
        n.val_kw, leaf(" "), n.x, leaf(" "), leaf("="), leaf(" "), n.call,
    )
    n.return_kw = keyword("return")
    n.ret = node("RETURN", n.return_kw)
    n.if_kw = keyword("if")
    n.cond = leaf("x", "IDENT")
    n.if_stmt = node(
        "IF",
        n.if_kw, leaf(" "), leaf("("), n.cond, leaf(")"), leaf(" "), n.ret,
    )
    n.block = node(
        "BLOCK",
        leaf("{"), leaf("\n    "), n.prop, leaf("\n    "), n.if_stmt, leaf("\n"), leaf("}"),
    )
    n.fun = node(
        "FUN",
        n.fun_kw, leaf(" "), n.main, leaf("()"), leaf(" "), n.block,
    )
    n.root = build_file(n.fun, leaf("\n"), with_document=with_document)
    return n


def make_problem(inspection_id="UnusedSymbol", anchor=None, line=2,
                 file_path="src/Main.kt", message="Variable 'x' is never used",
                 highlight_kind=HighlightKind.GENERIC):
    return ProblemRecord(
        inspection_id=inspection_id,
        file_path=file_path,
        message=message,
        line=line,
        anchor=anchor,
        highlight_kind=highlight_kind,
    )


class CountingLock:
    """Wraps an RLock and records acquire/release calls."""

    def __init__(self):
        self._lock = threading.RLock()
        self.acquired = 0
        self.released = 0

    def acquire(self):
        self.acquired += 1
        return self._lock.acquire()

    def release(self):
        self.released += 1
        self._lock.release()


@pytest.fixture
def kotlin():
    return make_kotlin_file()


@pytest.fixture
def kotlin_no_document():
    return make_kotlin_file(with_document=False)


@pytest.fixture
def counting_lock():
    return CountingLock()
