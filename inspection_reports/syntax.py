"""
inspection_reports/syntax.py
════════════════════════════

Read-only view of the analysis engine's syntax tree.

The engine owns its tree; this package only navigates it through the
narrow capability interface below:

    ┌──────────────────────────────────────────────────────────────┐
    │  SyntaxNode                                                  │
    │    • parent      (None at the tree root)                     │
    │    • children    (empty for leaves)                          │
    │    • text        (source text of the whole span)             │
    │    • offset      (start offset inside the document)          │
    │    • is_file     (True for the file root)                    │
    │    • is_keyword  (True for keyword leaves)                   │
    │    • document    (line resolver, None when unavailable)      │
    ├──────────────────────────────────────────────────────────────┤
    │  Document                                                    │
    │    • line_of(offset) -> 1-based line number                  │
    └──────────────────────────────────────────────────────────────┘

Any engine adapter that provides these attributes can be reported on.
:class:`SourceNode` and :class:`TextDocument` are a small concrete
implementation for engines that build their tree in Python, and for tests.

All tree reads happen inside :func:`read_scope`, which holds the engine's
read guard for the duration of one walk.
"""

from __future__ import annotations

import bisect
import logging
from contextlib import contextmanager
from typing import (
    Any,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

logger = logging.getLogger(__name__)

FILE_KIND = "FILE"


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — CAPABILITY INTERFACE
# ═════════════════════════════════════════════════════════════════════════

@runtime_checkable
class Document(Protocol):
    """Maps text offsets to 1-based line numbers."""

    def line_of(self, offset: int) -> int:
        ...


@runtime_checkable
class SyntaxNode(Protocol):
    """The subset of an engine syntax node the report pipeline reads."""

    @property
    def parent(self) -> Optional[SyntaxNode]:
        ...

    @property
    def children(self) -> Sequence[SyntaxNode]:
        ...

    @property
    def text(self) -> str:
        ...

    @property
    def offset(self) -> int:
        ...

    @property
    def is_file(self) -> bool:
        ...

    @property
    def is_keyword(self) -> bool:
        ...

    @property
    def document(self) -> Optional[Document]:
        ...


class ReadGuard(Protocol):
    """Anything with ``acquire``/``release``, e.g. ``threading.RLock``."""

    def acquire(self) -> Any:
        ...

    def release(self) -> None:
        ...


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — READ SCOPE
# ═════════════════════════════════════════════════════════════════════════

@contextmanager
def read_scope(guard: Optional[ReadGuard] = None) -> Iterator[None]:
    """
    Hold *guard* while the tree or its document is being read.

    ``None`` means the engine's model is not shared and needs no locking.
    The guard is released on every exit path.
    """
    if guard is None:
        yield
        return
    guard.acquire()
    try:
        yield
    finally:
        guard.release()


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — TRAVERSAL
# ═════════════════════════════════════════════════════════════════════════

def is_leaf(node: SyntaxNode) -> bool:
    return not node.children


def node_line(node: SyntaxNode, document: Document) -> int:
    """Line on which *node* starts."""
    return document.line_of(node.offset)


def iter_parents(node: Optional[SyntaxNode]) -> Iterator[SyntaxNode]:
    """
    Iterate up the parent chain to the tree root.

    Does NOT include the starting node.
    """
    if node is None:
        return
    current = node.parent
    while current is not None:
        yield current
        current = current.parent


def iter_preorder(root: Optional[SyntaxNode]) -> Iterator[SyntaxNode]:
    """Depth-first pre-order walk, children in source order."""
    if root is None:
        return
    stack: List[SyntaxNode] = [root]
    while stack:
        node = stack.pop()
        yield node
        # Push in reverse so the first child is processed first (LIFO)
        stack.extend(reversed(list(node.children)))


def iter_leaves(root: Optional[SyntaxNode]) -> Iterator[SyntaxNode]:
    """Leaf nodes of *root* in source order."""
    for node in iter_preorder(root):
        if is_leaf(node):
            yield node


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — CONCRETE TREE
# ═════════════════════════════════════════════════════════════════════════

class TextDocument:
    """Line index over a source text."""

    def __init__(self, text: str) -> None:
        self.text = text
        self._line_starts: List[int] = [0]
        for idx, ch in enumerate(text):
            if ch == "\n":
                self._line_starts.append(idx + 1)

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def line_of(self, offset: int) -> int:
        if offset < 0 or offset > len(self.text):
            raise ValueError(f"offset {offset} outside document of length {len(self.text)}")
        return bisect.bisect_right(self._line_starts, offset)

    def __repr__(self) -> str:
        return f"<TextDocument {self.line_count} lines>"


class SourceNode:
    """
    Plain in-memory syntax node.

    Leaves carry a token; inner nodes derive their text from their
    children.  Parent links, offsets and the document are assigned by
    :func:`build_file`.
    """

    def __init__(
        self,
        kind: str,
        token: Optional[str] = None,
        children: Iterable[SourceNode] = (),
        keyword: bool = False,
    ) -> None:
        self.kind = kind
        self.token = token
        self.children: List[SourceNode] = list(children)
        self.is_keyword = keyword
        self.parent: Optional[SourceNode] = None
        self.offset = 0
        self.document: Optional[TextDocument] = None
        for child in self.children:
            child.parent = self

    @property
    def is_file(self) -> bool:
        return self.kind == FILE_KIND

    @property
    def text(self) -> str:
        if not self.children:
            return self.token or ""
        return "".join(current.token or "" for current in iter_leaves(self))

    def __repr__(self) -> str:
        if self.children:
            return f"<{self.kind} @{self.offset} children={len(self.children)}>"
        return f"<{self.kind} @{self.offset} {self.token!r}>"


def leaf(text: str, kind: str = "TOKEN") -> SourceNode:
    return SourceNode(kind, token=text)


def keyword(text: str) -> SourceNode:
    return SourceNode("KEYWORD", token=text, keyword=True)


def node(kind: str, *children: SourceNode) -> SourceNode:
    return SourceNode(kind, children=children)


def build_file(*children: SourceNode, with_document: bool = True) -> SourceNode:
    """
    Wrap *children* in a file root and finish the tree.

    Assigns parent links and start offsets and, unless *with_document* is
    false, attaches a :class:`TextDocument` over the file text to every
    node.
    """
    root = SourceNode(FILE_KIND, children=children)
    document = TextDocument(root.text) if with_document else None
    # Pre-order reaches an inner node just before its first leaf
    offset = 0
    for current in iter_preorder(root):
        current.document = document
        current.offset = offset
        if not current.children:
            offset += len(current.token or "")
    logger.debug("built file tree: %d chars, document=%s", len(root.text), document)
    return root


__all__ = [
    "FILE_KIND",
    "Document",
    "SyntaxNode",
    "ReadGuard",
    "read_scope",
    "is_leaf",
    "node_line",
    "iter_parents",
    "iter_preorder",
    "iter_leaves",
    "TextDocument",
    "SourceNode",
    "leaf",
    "keyword",
    "node",
    "build_file",
]
