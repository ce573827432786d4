"""
Hierarchy builder: flat classification rows to a rooted tree.

Classification rows carry parent pointers. Codes that appear in the budget
data but not in the classification are attached under their nearest known
prefix ancestor, so no reported amount is ever left without a node.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .config import COMPOSITE_SEPARATORS
from .errors import NoRenderableHierarchyError
from .reconcile import split_composite
from .records import BudgetRow, ClassificationRow, TreeNode

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_ROOT_ID",
    "NameIndex",
    "build_hierarchy",
    "find_path",
    "nearest_prefix_ancestor",
    "observed_codes",
    "tree_depth",
    "tree_from_descriptor",
]

DEFAULT_ROOT_ID = "root"
DEFAULT_ROOT_NAME = "Celkem"


@dataclass(slots=True)
class NameIndex:
    """
    Display names for codes, built fresh for every tree build.

    Lookup order is descriptor name, then classification name, then a
    bracketed code placeholder.
    """

    descriptor_names: dict[str, str] = field(default_factory=dict)
    classification_names: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_sources(
        cls,
        descriptor: Any = None,
        classification: Iterable[ClassificationRow] = (),
        system: str | None = None,
    ) -> NameIndex:
        index = cls()
        if descriptor is not None:
            _collect_descriptor_names(descriptor, index.descriptor_names)
        for row in classification:
            if system is not None and row.system != system:
                continue
            if row.name and row.code not in index.classification_names:
                index.classification_names[row.code] = row.name
        return index

    @classmethod
    def from_descriptor(cls, descriptor: Any) -> NameIndex:
        return cls.from_sources(descriptor=descriptor)

    def resolve(self, code: str) -> str:
        return (
            self.descriptor_names.get(code)
            or self.classification_names.get(code)
            or f"[{code}]"
        )


def _collect_descriptor_names(item: Any, out: dict[str, str]) -> None:
    stack = [item]
    while stack:
        current = stack.pop()
        if isinstance(current, list):
            stack.extend(current)
            continue
        if not isinstance(current, Mapping):
            continue
        code = current.get("id")
        name = current.get("name")
        if code is not None and isinstance(name, str) and name.strip():
            out.setdefault(str(code), name.strip())
        children = current.get("children")
        if isinstance(children, list):
            stack.extend(children)


def observed_codes(
    rows: Iterable[BudgetRow], system: str, year: int | None = None
) -> list[str]:
    """Distinct class codes reported for a system, in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        if row.system != system or (year is not None and row.year != year):
            continue
        if row.class_code:
            seen.setdefault(row.class_code, None)
    return list(seen)


def nearest_prefix_ancestor(code: str, known: Mapping[str, Any] | set[str]) -> str | None:
    """Strip trailing characters from ``code`` until a known code remains."""
    candidate = code[:-1]
    while candidate:
        if candidate in known:
            return candidate
        candidate = candidate[:-1]
    return None


def _synthetic_parent(
    code: str, candidates: set[str], separators: Iterable[str]
) -> str | None:
    parts = split_composite(code, separators)
    if parts is None:
        return nearest_prefix_ancestor(code, candidates)
    # Composites hang under the common ancestor of their components.
    anchor = os.path.commonprefix(list(parts))
    if anchor in candidates:
        return anchor
    return nearest_prefix_ancestor(anchor, candidates)


def build_hierarchy(
    classification: Iterable[ClassificationRow],
    observed: Iterable[str],
    system: str,
    *,
    root_id: str = DEFAULT_ROOT_ID,
    root_name: str = DEFAULT_ROOT_NAME,
    names: NameIndex | None = None,
    separators: Iterable[str] = COMPOSITE_SEPARATORS,
) -> TreeNode:
    """
    Build the code tree for one classification system.

    **Args:**
        classification: Classification rows (any system; filtered here)
        observed: Class codes seen in the budget data for this system
        system: Classification system id
        root_id: Id of the synthetic root node
        root_name: Display name of the synthetic root
        names: Name index; defaults to classification names only
        separators: Composite separators; a composite code missing from the
            classification is placed beside its components

    **Returns:**
        Synthetic root node. Children keep encounter order; sorting by value
        happens in the layout stage.

    **Raises:**
        NoRenderableHierarchyError: Rows exist for the system but none is
            top-level and the data reports no codes.

    **Example:**
        ```python
        rows = read_classification("dim_classification.csv")
        codes = observed_codes(budget_rows, "exp_odvetvove")
        tree = build_hierarchy(rows, codes, "exp_odvetvove")
        ```
    """
    rows = [row for row in classification if row.system == system]
    observed = [code for code in dict.fromkeys(observed) if code]
    if not rows:
        logger.info("No classification rows for system %s; empty tree", system)
        return TreeNode(id=root_id, name=root_name)

    total_codes = {row.code for row in rows if row.is_total}
    known: dict[str, ClassificationRow] = {}
    for row in rows:
        if row.is_total or not row.code:
            continue
        if row.code in known:
            logger.warning("Duplicate classification code %s in %s", row.code, system)
            continue
        known[row.code] = row

    if not any(row.is_top_level for row in known.values()) and not observed:
        raise NoRenderableHierarchyError(system)

    if names is None:
        names = NameIndex.from_sources(classification=rows)

    children: dict[str, list[str]] = {root_id: []}
    parent_of: dict[str, str] = {}

    def attach(code: str, parent: str) -> None:
        children.setdefault(parent, []).append(code)
        parent_of[code] = parent

    for code, row in known.items():
        if row.is_top_level:
            attach(code, root_id)
        elif row.parent_code in known and row.parent_code != code:
            attach(code, row.parent_code)
        else:
            ancestor = nearest_prefix_ancestor(code, known) or root_id
            logger.warning(
                "Code %s in %s references unknown parent %s; attached under %s",
                code,
                system,
                row.parent_code,
                ancestor,
            )
            attach(code, ancestor)

    missing = [
        code for code in observed if code not in known and code not in total_codes
    ]
    candidates = set(known) | set(missing)
    for code in missing:
        ancestor = _synthetic_parent(code, candidates, separators) or root_id
        logger.debug("Synthesized node %s under %s in %s", code, ancestor, system)
        attach(code, ancestor)

    _break_cycles(children, parent_of, root_id, system)

    def make(code: str) -> TreeNode:
        kids = tuple(make(child) for child in children.get(code, ()))
        return TreeNode(id=code, name=names.resolve(code), children=kids)

    return TreeNode(
        id=root_id,
        name=root_name,
        children=tuple(make(code) for code in children[root_id]),
    )


def _break_cycles(
    children: dict[str, list[str]],
    parent_of: dict[str, str],
    root_id: str,
    system: str,
) -> None:
    # Parent pointers may loop (A -> B -> A); such nodes never reach the root.
    reachable = _reachable(children, root_id)
    for code in list(parent_of):
        if code in reachable:
            continue
        logger.warning("Parent cycle at %s in %s; attached under root", code, system)
        children[parent_of[code]].remove(code)
        children[root_id].append(code)
        parent_of[code] = root_id
        reachable |= _reachable(children, code)


def _reachable(children: Mapping[str, list[str]], start: str) -> set[str]:
    seen = {start}
    stack = [start]
    while stack:
        for child in children.get(stack.pop(), ()):
            if child not in seen:
                seen.add(child)
                stack.append(child)
    return seen


def tree_from_descriptor(
    descriptor: Any,
    *,
    root_id: str = DEFAULT_ROOT_ID,
    root_name: str = DEFAULT_ROOT_NAME,
) -> TreeNode:
    """
    Build a tree straight from a nested ``{id, name, children}`` descriptor.

    A mapping is treated as the descriptor's own root and replaced by the
    synthetic root; a list is taken as the top-level nodes.
    """
    if isinstance(descriptor, Mapping):
        top = descriptor.get("children") or []
    elif isinstance(descriptor, list):
        top = descriptor
    else:
        top = []

    def make(item: Mapping[str, Any]) -> TreeNode:
        code = str(item.get("id", ""))
        name = item.get("name")
        kids = item.get("children") or []
        return TreeNode(
            id=code,
            name=name.strip() if isinstance(name, str) and name.strip() else f"[{code}]",
            children=tuple(make(kid) for kid in kids if isinstance(kid, Mapping)),
        )

    return TreeNode(
        id=root_id,
        name=root_name,
        children=tuple(make(item) for item in top if isinstance(item, Mapping)),
    )


def tree_depth(tree: TreeNode) -> int:
    """Depth of the deepest node; a lone root has depth 0."""
    deepest = 0
    stack = [(tree, 0)]
    while stack:
        node, depth = stack.pop()
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in node.children)
    return deepest


def find_path(tree: TreeNode, node_id: str) -> list[TreeNode]:
    """Nodes from the root down to ``node_id`` inclusive; empty if absent."""
    stack: list[tuple[TreeNode, list[TreeNode]]] = [(tree, [tree])]
    while stack:
        node, path = stack.pop()
        if node.id == node_id:
            return path
        stack.extend((child, path + [child]) for child in node.children)
    return []
