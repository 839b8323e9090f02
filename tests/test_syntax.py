# tests/test_syntax.py
"""
Tests for the syntax tree capability layer: documents, the in-memory
tree, traversal helpers and the read scope.
"""

import pytest

from inspection_reports.syntax import (
    Document,
    SyntaxNode,
    TextDocument,
    iter_leaves,
    iter_parents,
    iter_preorder,
    node_line,
    read_scope,
)
from tests.conftest import KOTLIN_SOURCE, CountingLock


class TestTextDocument:

    def test_line_of_first_and_later_lines(self):
        doc = TextDocument("ab\ncd\n\nef")
        assert doc.line_of(0) == 1
        assert doc.line_of(2) == 1      # the newline belongs to line 1
        assert doc.line_of(3) == 2
        assert doc.line_of(6) == 3
        assert doc.line_of(7) == 4

    def test_line_count(self):
        assert TextDocument("").line_count == 1
        assert TextDocument("a\nb\n").line_count == 3

    def test_offset_out_of_range(self):
        with pytest.raises(ValueError):
            TextDocument("abc").line_of(10)

    def test_satisfies_protocol(self):
        assert isinstance(TextDocument("x"), Document)


class TestBuildFile:

    def test_file_text_round_trips_source(self, kotlin):
        assert kotlin.root.text == KOTLIN_SOURCE
        assert kotlin.root.is_file
        assert not kotlin.fun.is_file

    def test_parents_are_linked(self, kotlin):
        assert kotlin.foo.parent is kotlin.call
        assert kotlin.call.parent is kotlin.prop
        assert kotlin.fun.parent is kotlin.root
        assert kotlin.root.parent is None

    def test_offsets_and_lines(self, kotlin):
        doc = kotlin.root.document
        assert KOTLIN_SOURCE[kotlin.foo.offset:].startswith("foo()")
        assert node_line(kotlin.fun, doc) == 1
        assert node_line(kotlin.block, doc) == 1
        assert node_line(kotlin.prop, doc) == 2
        assert node_line(kotlin.if_stmt, doc) == 3
        assert node_line(kotlin.return_kw, doc) == 3

    def test_every_node_shares_the_document(self, kotlin):
        docs = {id(n.document) for n in iter_preorder(kotlin.root)}
        assert len(docs) == 1

    def test_without_document(self, kotlin_no_document):
        assert all(n.document is None for n in iter_preorder(kotlin_no_document.root))

    def test_nodes_satisfy_protocol(self, kotlin):
        assert isinstance(kotlin.call, SyntaxNode)
        assert kotlin.fun_kw.is_keyword
        assert not kotlin.val_kw.is_keyword


class TestTraversal:

    def test_preorder_leaves_rebuild_text(self, kotlin):
        assert "".join(n.text for n in iter_leaves(kotlin.root)) == KOTLIN_SOURCE

    def test_preorder_visits_parent_before_children(self, kotlin):
        order = list(iter_preorder(kotlin.prop))
        assert order[0] is kotlin.prop
        assert order.index(kotlin.call) < order.index(kotlin.foo)

    def test_iter_parents_excludes_start(self, kotlin):
        parents = list(iter_parents(kotlin.foo))
        assert parents == [kotlin.call, kotlin.prop, kotlin.block, kotlin.fun, kotlin.root]

    def test_none_is_empty(self):
        assert list(iter_parents(None)) == []
        assert list(iter_preorder(None)) == []


class TestReadScope:

    def test_no_guard(self):
        with read_scope(None):
            pass

    def test_guard_acquired_and_released(self):
        lock = CountingLock()
        with read_scope(lock):
            assert lock.acquired == 1
            assert lock.released == 0
        assert lock.released == 1

    def test_guard_released_on_error(self):
        lock = CountingLock()
        with pytest.raises(RuntimeError):
            with read_scope(lock):
                raise RuntimeError("boom")
        assert lock.acquired == lock.released == 1
