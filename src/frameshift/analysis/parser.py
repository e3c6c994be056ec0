"""Structural parser — artifact text to a tree-sitter syntax tree.

Grammar ``Language`` handles are immutable and cached; each parse
builds its own ``Parser`` so invocations share no mutable state.
"""

from __future__ import annotations

import functools
import importlib
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import PurePath

import tree_sitter

from frameshift.analysis.nodes import text, walk
from frameshift.analysis.schemas import ParseFailure, SourceArtifact
from frameshift.config import EXTENSION_MAP, GRAMMAR_MODULES
from frameshift.constants import EXCERPT_CHARS, Dialect
from frameshift.resilience.errors import (
    GrammarUnavailableError,
    UnsafeTransformError,
)

logger = logging.getLogger(__name__)

_TS_HINTS = re.compile(
    r"^\s*(export\s+)?(interface|type)\s+\w+"
    r"|:\s*(React\.)?FC\b"
    r"|\bas\s+const\b"
    r"|\)\s*:\s*(string|number|boolean|void|JSX\.Element)\b"
    r"|useState<",
    re.MULTILINE,
)


@dataclass(frozen=True)
class Edit:
    """Replace ``source[start:end]`` with ``text`` (insertion when equal)."""

    start: int
    end: int
    text: str

    @property
    def is_insertion(self) -> bool:
        return self.start == self.end


class SyntaxTree:
    """Parsed artifact: UTF-8 source bytes plus their tree-sitter tree."""

    def __init__(
        self, source: bytes, tree: tree_sitter.Tree, dialect: Dialect
    ) -> None:
        self._source = source
        self._tree = tree
        self.dialect = dialect

    @property
    def root(self) -> tree_sitter.Node:
        return self._tree.root_node

    @property
    def source(self) -> bytes:
        return self._source

    @property
    def text(self) -> str:
        return self._source.decode("utf-8")

    def slice(self, start: int, end: int) -> str:
        return self._source[start:end].decode("utf-8")

    def node_at(
        self, start: int, end: int, node_type: str | None = None
    ) -> tree_sitter.Node | None:
        """Node spanning exactly ``[start, end)``, optionally of a given type."""
        node = self.root.descendant_for_byte_range(start, end)
        while node is not None and node.start_byte >= start and node.end_byte <= end:
            if (
                node.start_byte == start
                and node.end_byte == end
                and node_type in (None, node.type)
            ):
                return node
            node = node.parent
        return None

    def apply(
        self, edits: Sequence[Edit], *, stage: str
    ) -> SyntaxTree:
        """Splice edits into the source and re-parse.

        Edits nested inside another replacement are dropped; partially
        overlapping edits and results that no longer parse raise
        :class:`UnsafeTransformError`.
        """
        if not edits:
            return self
        accepted = _merge_edits(edits, stage)
        pieces: list[bytes] = []
        pos = 0
        for edit in accepted:
            pieces.append(self._source[pos:edit.start])
            pieces.append(edit.text.encode("utf-8"))
            pos = edit.end
        pieces.append(self._source[pos:])
        result = parse_source(b"".join(pieces).decode("utf-8"), self.dialect)
        if isinstance(result, ParseFailure):
            logger.warning(
                "event=edit_reparse_failed stage=%s line=%d message=%s",
                stage,
                result.line,
                result.message,
            )
            raise UnsafeTransformError(
                stage,
                f"edited source no longer parses at line {result.line}:"
                f" {result.message}",
            )
        return result


def _merge_edits(edits: Sequence[Edit], stage: str) -> list[Edit]:
    ordered = sorted(
        enumerate(edits), key=lambda p: (p[1].start, -p[1].end, p[0])
    )
    accepted: list[tuple[int, Edit]] = []
    for index, edit in ordered:
        skip = False
        for _, other in accepted:
            if other.is_insertion:
                continue
            inside = other.start <= edit.start and edit.end <= other.end
            at_boundary = edit.is_insertion and edit.start in (
                other.start,
                other.end,
            )
            if inside and not at_boundary:
                skip = True
                break
            if edit.start < other.end and other.start < edit.end:
                raise UnsafeTransformError(
                    stage,
                    f"overlapping edits at bytes {other.start}-{other.end}"
                    f" and {edit.start}-{edit.end}",
                )
        if not skip:
            accepted.append((index, edit))
    accepted.sort(key=lambda p: (p[1].start, p[1].end, p[0]))
    return [edit for _, edit in accepted]


@functools.cache
def _language(dialect: Dialect) -> tree_sitter.Language:
    module_name, factory = GRAMMAR_MODULES[dialect]
    try:
        mod = importlib.import_module(module_name)
    except ImportError as exc:
        raise GrammarUnavailableError(
            f"tree-sitter grammar {module_name!r} is not installed"
        ) from exc
    return tree_sitter.Language(getattr(mod, factory)())


def detect_dialect(text: str, filename: str | None = None) -> Dialect:
    """Pick a dialect from the file extension, else from TS syntax hints."""
    if filename:
        ext = PurePath(filename).suffix.lower()
        if ext in EXTENSION_MAP:
            return EXTENSION_MAP[ext]
    if _TS_HINTS.search(text):
        return Dialect.TSX
    return Dialect.JSX


def parse_source(
    source: str, dialect: Dialect = Dialect.TSX
) -> SyntaxTree | ParseFailure:
    """Parse text, returning a tree or a typed, positioned failure."""
    data = source.encode("utf-8")
    parser = tree_sitter.Parser(_language(dialect))
    tree = parser.parse(data)
    if tree.root_node.has_error:
        return _failure(tree.root_node, data)
    return SyntaxTree(data, tree, dialect)


def parse_artifact(artifact: SourceArtifact) -> SyntaxTree | ParseFailure:
    return parse_source(artifact.text, artifact.dialect)


def first_damaged_node(root: tree_sitter.Node) -> tree_sitter.Node | None:
    """Where the damage is: the first MISSING node, else the innermost first ERROR."""
    error = None
    for node in walk(root):
        if node.is_missing:
            return node
        if error is None and node.type == "ERROR":
            error = node
    while error is not None:
        inner = next((n for n in walk(error) if n.type == "ERROR" and n != error), None)
        if inner is None:
            break
        error = inner
    return error


def _spans_input(node: tree_sitter.Node, source: bytes) -> bool:
    leading = len(source) - len(source.lstrip())
    return node.start_byte <= leading and node.end_byte >= len(source.rstrip())


def _end_of_input(source: bytes) -> ParseFailure:
    offset = max(len(source.rstrip()) - 1, 0)
    line_start = source.rfind(b"\n", 0, offset) + 1
    return ParseFailure(
        message="unexpected end of input",
        line=source.count(b"\n", 0, offset) + 1,
        column=offset - line_start + 1,
        offset=offset,
    )


def _failure(root: tree_sitter.Node, source: bytes) -> ParseFailure:
    node = first_damaged_node(root) or root
    outer = next((n for n in walk(root) if n.type == "ERROR"), None)
    if not node.is_missing and outer is not None and _spans_input(outer, source):
        # no recovery point anywhere, so the input stops short
        return _end_of_input(source)
    row, col = node.start_point
    if node.is_missing:
        message = f"missing {node.type!r}"
    elif node.type == "ERROR":
        snippet = text(node).strip().splitlines()
        near = snippet[0][:EXCERPT_CHARS] if snippet else ""
        message = f"unexpected syntax near {near!r}" if near else "unexpected end of input"
    else:
        message = "syntax error"
    return ParseFailure(
        message=message,
        line=row + 1,
        column=col + 1,
        offset=node.start_byte,
    )
