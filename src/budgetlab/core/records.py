"""
Record types shared by every stage of the budget pipeline.

Input records (``BudgetRow``, ``ClassificationRow``) are immutable once
loaded. ``TreeNode`` is frozen as well: every rebuild allocates fresh nodes
keyed by stable string ids, so a presentation layer can diff two builds by
id instead of by object identity. ``RectNode`` is the only mutable record;
it carries the in-flight zoom target for the presentation layer.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum


class BudgetKind(str, Enum):
    """Revenue or expenditure side of the budget (wire values ``rev``/``exp``)."""

    REVENUE = "rev"
    EXPENDITURE = "exp"

    @classmethod
    def parse(cls, raw: str | BudgetKind | None) -> BudgetKind | None:
        """Map wire values and long names to a kind; unknown values give None."""
        if isinstance(raw, BudgetKind):
            return raw
        if raw is None:
            return None
        text = str(raw).strip().lower()
        if text in {"rev", "revenue", "revenues"}:
            return cls.REVENUE
        if text in {"exp", "expenditure", "expenditures"}:
            return cls.EXPENDITURE
        return None


@dataclass(frozen=True, slots=True)
class BudgetRow:
    """One reported amount for one classification code in one chapter."""

    year: int
    kind: BudgetKind | None
    system: str
    chapter_code: str
    chapter_name: str
    class_code: str
    amount: int
    page_number: int = 0


@dataclass(frozen=True, slots=True)
class ClassificationRow:
    """One entry of a classification system's code hierarchy."""

    system: str
    code: str
    name: str
    parent_code: str = ""
    level: int = 0
    is_leaf: bool = False
    is_total: bool = False
    kind: BudgetKind | None = None

    @property
    def is_top_level(self) -> bool:
        return self.parent_code in ("", "0")


@dataclass(frozen=True, slots=True)
class TreeNode:
    """
    Immutable hierarchy node.

    ``children`` is an ordered tuple (empty for leaves); ``value`` is None
    until the tree has been enriched with amounts.
    """

    id: str
    name: str
    children: tuple[TreeNode, ...] = ()
    value: int | None = None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def iter_nodes(self) -> Iterator[TreeNode]:
        """Pre-order traversal, self first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, node_id: str) -> TreeNode | None:
        for node in self.iter_nodes():
            if node.id == node_id:
                return node
        return None


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned rectangle; ``x`` is the value axis, ``y`` the depth axis."""

    x0: float
    x1: float
    y0: float
    y1: float

    @property
    def value_extent(self) -> float:
        return self.x1 - self.x0

    @property
    def depth_extent(self) -> float:
        return self.y1 - self.y0


@dataclass(slots=True)
class RectNode:
    """
    A tree node placed in the partition layout.

    ``x0..y1`` is the full-tree layout computed once per build. ``target``
    is the destination rectangle of the current zoom transition; the
    presentation layer animates toward it.
    """

    node: TreeNode
    depth: int
    parent_id: str | None
    child_ids: tuple[str, ...]
    x0: float
    x1: float
    y0: float
    y1: float
    target: Rect = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.target is None:
            self.target = self.rect

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def value(self) -> int:
        return self.node.value or 0

    @property
    def has_children(self) -> bool:
        return bool(self.child_ids)

    @property
    def rect(self) -> Rect:
        return Rect(self.x0, self.x1, self.y0, self.y1)


@dataclass(frozen=True, slots=True)
class Breadcrumb:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class FocusState:
    """Currently focused node and the root-exclusive path leading to it."""

    focus_id: str
    breadcrumbs: tuple[Breadcrumb, ...] = ()


@dataclass(frozen=True, slots=True)
class Label:
    """Label text and visibility measured against settled geometry."""

    text: str
    value: int
    show_name: bool
    show_value: bool
