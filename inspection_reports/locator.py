"""
inspection_reports/locator.py
═════════════════════════════

Chooses which part of the syntax tree to print for a problem.

A problem is usually anchored at a single token, which is too narrow to
read on its own, while the whole file is far too much.  The locator climbs
from the anchor towards the file root and stops at the first ancestor that
starts on an earlier line than the problem, which in practice is the
enclosing statement or declaration.
"""

from __future__ import annotations

import logging
from typing import Optional

from inspection_reports.syntax import (
    Document,
    ReadGuard,
    SyntaxNode,
    iter_parents,
    node_line,
    read_scope,
)

logger = logging.getLogger(__name__)


class SourceLocator:
    """
    Finds the display anchor of a problem.

    Parameters
    ----------
    read_guard : the engine's read guard; held for the duration of each walk
    """

    def __init__(self, read_guard: Optional[ReadGuard] = None) -> None:
        self.read_guard = read_guard

    def find_display_anchor(self, problem_node: Optional[SyntaxNode]) -> Optional[SyntaxNode]:
        """
        Smallest ancestor of *problem_node* worth displaying.

        Returns ``None`` for file-level problems without a syntax anchor.
        """
        if problem_node is None:
            return None
        with read_scope(self.read_guard):
            return self._climb(problem_node)

    def _climb(self, problem_node: SyntaxNode) -> SyntaxNode:
        document = problem_node.document
        current = problem_node
        for parent in iter_parents(problem_node):
            if parent.is_file or _covers(current, problem_node, document):
                break
            current = parent
        logger.debug("display anchor for %r is %r", problem_node, current)
        return current


def _covers(candidate: SyntaxNode, problem_node: SyntaxNode, document: Optional[Document]) -> bool:
    """True when *candidate* starts on a line before the problem's line."""
    if document is None:
        return True
    return node_line(candidate, document) < node_line(problem_node, document)


__all__ = ["SourceLocator"]
