"""Import bookkeeping after a rewrite.

Adds the Remotion specifiers the derived code needs, merging them into
an existing ``remotion`` import, and drops React hook specifiers that
nothing references any more.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from frameshift.analysis.nodes import Node, identifier_references, named, string_value, text
from frameshift.analysis.parser import Edit, SyntaxTree
from frameshift.constants import REMOTION_MODULE, REMOVABLE_REACT_IMPORTS
from frameshift.transform.emit import ImportDecl
from frameshift.transform.scheduling import statement_span

logger = logging.getLogger(__name__)


class ImportStatement:
    """One ``import ... from '...'`` statement, split into its clauses."""

    def __init__(self, node: Node) -> None:
        self.node = node
        source = node.child_by_field_name("source")
        self.module = string_value(source) or ""
        self.quote = text(source)[:1] if source is not None else "'"
        self.default: str | None = None
        self.namespace: str | None = None
        self.specifiers: list[Node] = []
        for clause in (c for c in named(node) if c.type == "import_clause"):
            for child in named(clause):
                if child.type == "identifier":
                    self.default = text(child)
                elif child.type == "namespace_import":
                    self.namespace = text(child)
                elif child.type == "named_imports":
                    self.specifiers.extend(
                        s for s in named(child) if s.type == "import_specifier"
                    )

    @property
    def type_only(self) -> bool:
        return text(self.node).startswith("import type")

    def local_names(self) -> dict[str, str]:
        """Imported name to local name for each named specifier."""
        names: dict[str, str] = {}
        for spec in self.specifiers:
            imported = spec.child_by_field_name("name")
            alias = spec.child_by_field_name("alias")
            if imported is None:
                continue
            names[text(imported)] = text(alias) if alias is not None else text(imported)
        return names

    def render(self, names: list[str]) -> str:
        return ImportDecl(
            self.module, self.default, tuple(names), quote=self.quote
        ).render()


def import_statements(root: Node) -> list[ImportStatement]:
    return [ImportStatement(n) for n in named(root) if n.type == "import_statement"]


def imported_from(root: Node, module: str) -> dict[str, str]:
    """Imported name to local name across every import of ``module``."""
    names: dict[str, str] = {}
    for stmt in import_statements(root):
        if stmt.module == module and not stmt.type_only:
            names.update(stmt.local_names())
    return names


def manage_imports(tree: SyntaxTree, remotion: Mapping[str, str]) -> SyntaxTree:
    """Ensure ``remotion`` specifiers (imported name to local) and prune React.

    Returns the tree unchanged when nothing needs editing.
    """
    statements = import_statements(tree.root)
    edits: list[Edit] = []

    existing = imported_from(tree.root, REMOTION_MODULE)
    missing = [
        _specifier(name, local)
        for name, local in remotion.items()
        if existing.get(name) != local
    ]
    if missing:
        target = next(
            (
                s for s in statements
                if s.module == REMOTION_MODULE and not s.type_only and s.namespace is None
            ),
            None,
        )
        if target is not None:
            names = [text(s) for s in target.specifiers] + missing
            edits.append(Edit(target.node.start_byte, target.node.end_byte, target.render(names)))
        else:
            quote = statements[0].quote if statements else "'"
            line = ImportDecl(REMOTION_MODULE, None, tuple(missing), quote=quote).render()
            anchor = statements[0].node.start_byte if statements else 0
            edits.append(Edit(anchor, anchor, line + "\n"))
        logger.debug("event=remotion_imports_added names=%s", ",".join(missing))

    for stmt in statements:
        if stmt.module != "react" or stmt.type_only:
            continue
        kept: list[str] = []
        dropped: list[str] = []
        for spec in stmt.specifiers:
            imported = text(spec.child_by_field_name("name"))
            alias = spec.child_by_field_name("alias")
            local = text(alias) if alias is not None else imported
            if imported in REMOVABLE_REACT_IMPORTS and not _referenced(tree.root, local, stmt.node):
                dropped.append(imported)
            else:
                kept.append(text(spec))
        if not dropped:
            continue
        if kept or stmt.default or stmt.namespace:
            if stmt.namespace:
                continue
            edits.append(Edit(stmt.node.start_byte, stmt.node.end_byte, stmt.render(kept)))
        else:
            start, end = statement_span(tree.source, stmt.node)
            edits.append(Edit(start, end, ""))
        logger.debug("event=react_imports_dropped names=%s", ",".join(dropped))

    return tree.apply(edits, stage="rewrite")


def _specifier(name: str, local: str) -> str:
    return name if name == local else f"{name} as {local}"


def _referenced(root: Node, name: str, declaration: Node) -> bool:
    return any(
        not (declaration.start_byte <= r.start_byte < declaration.end_byte)
        for r in identifier_references(root, name)
    )
