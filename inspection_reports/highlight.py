"""
inspection_reports/highlight.py
═══════════════════════════════

Flattens a display anchor back to source text, marking up keywords and
the exact element a problem points at.

Markup mode (HTML report)::

    <keyword>val</keyword> x = <warning>foo()</warning>

Plain mode (text report) emits the literal source text only.

Highlight tags
──────────────
    unused: HighlightKind.UNUSED, regardless of severity
    error: Severity.ERROR
    warning: Severity.WARNING
    info: Severity.WEAK_WARNING / Severity.INFORMATION

The highlight pair is opened before the problem element's first leaf and
closed after its last one, so it always wholly contains any keyword pair
inside it, including when the problem element is itself a keyword leaf.
"""

from __future__ import annotations

from typing import FrozenSet, Iterable, List, Optional, Tuple

from markupsafe import escape

from inspection_reports.problems import HighlightKind, Severity
from inspection_reports.syntax import ReadGuard, SyntaxNode, read_scope


KEYWORD_TAG = "keyword"

HIGHLIGHT_TAGS: FrozenSet[str] = frozenset({"error", "warning", "info", "unused"})

# Hard keywords of the Kotlin language, the default inspected source
KOTLIN_KEYWORDS: FrozenSet[str] = frozenset({
    "as", "break", "class", "continue", "do", "else", "false", "for", "fun",
    "if", "in", "interface", "is", "null", "object", "package", "return",
    "super", "this", "throw", "true", "try", "typealias", "typeof", "val",
    "var", "when", "while",
})

_SEVERITY_TAGS = {
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.WEAK_WARNING: "info",
    Severity.INFORMATION: "info",
}


def highlight_tag(kind: HighlightKind, severity: Severity) -> str:
    """Marker name for a problem; ``unused`` wins over the severity mapping."""
    if kind is HighlightKind.UNUSED:
        return "unused"
    return _SEVERITY_TAGS[severity]


class FragmentRenderer:
    """
    Renders the subtree of a display anchor.

    Parameters
    ----------
    keywords   : leaf texts treated as keywords when the engine does not
                 flag them itself
    markup     : emit HTML markers and escape leaf text; ``False`` gives
                 the literal source text
    read_guard : the engine's read guard, held for each walk
    """

    def __init__(
        self,
        keywords: Iterable[str] = KOTLIN_KEYWORDS,
        markup: bool = True,
        read_guard: Optional[ReadGuard] = None,
    ) -> None:
        self.keywords = frozenset(keywords)
        self.markup = markup
        self.read_guard = read_guard

    def render(
        self,
        anchor: SyntaxNode,
        problem_child: Optional[SyntaxNode],
        tag: str,
    ) -> str:
        """
        Flatten *anchor*, wrapping *problem_child* in ``<tag>``.

        With no *problem_child* the fragment carries no highlight marker.
        """
        if tag not in HIGHLIGHT_TAGS:
            raise ValueError(f"unknown highlight tag {tag!r}")
        with read_scope(self.read_guard):
            return "".join(self._walk(anchor, problem_child, tag))

    def is_keyword(self, leaf: SyntaxNode) -> bool:
        return bool(getattr(leaf, "is_keyword", False)) or leaf.text in self.keywords

    # ── walk ─────────────────────────────────────────────────────────

    def _walk(
        self,
        anchor: SyntaxNode,
        problem_child: Optional[SyntaxNode],
        tag: str,
    ) -> List[str]:
        parts: List[str] = []
        # (node, leaving) pairs; a node is pushed again to close its markers
        stack: List[Tuple[SyntaxNode, bool]] = [(anchor, False)]
        while stack:
            current, leaving = stack.pop()
            is_problem = problem_child is not None and current is problem_child
            if leaving:
                if is_problem:
                    parts.append(self._close(tag))
                continue
            if is_problem:
                parts.append(self._open(tag))
            stack.append((current, True))
            children = list(current.children)
            if children:
                stack.extend((child, False) for child in reversed(children))
            else:
                parts.append(self._leaf(current))
        return parts

    def _leaf(self, leaf: SyntaxNode) -> str:
        text = leaf.text
        if not self.markup:
            return text
        escaped = str(escape(text))
        if self.is_keyword(leaf):
            return f"{self._open(KEYWORD_TAG)}{escaped}{self._close(KEYWORD_TAG)}"
        return escaped

    def _open(self, tag: str) -> str:
        return f"<{tag}>" if self.markup else ""

    def _close(self, tag: str) -> str:
        return f"</{tag}>" if self.markup else ""


__all__ = [
    "KEYWORD_TAG",
    "HIGHLIGHT_TAGS",
    "KOTLIN_KEYWORDS",
    "highlight_tag",
    "FragmentRenderer",
]
