"""
Partition (icicle) layout for enriched code trees.

The value axis ``x`` spans ``[0, height]`` and is divided recursively among
children in proportion to value, largest first. The depth axis ``y`` is cut
into fixed columns of ``width / visible_columns``; the axis spans the whole
tree depth so zooming only shifts columns and never resizes them.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from .errors import ConfigError, UnknownNodeError
from .records import Label, Rect, RectNode, TreeNode

__all__ = [
    "Layout",
    "LabelThresholds",
    "label_visibility",
    "measure_labels",
    "partition_layout",
    "resolve_label",
    "sort_children",
]

DEFAULT_VISIBLE_COLUMNS = 3


@dataclass(frozen=True, slots=True)
class LabelThresholds:
    """Minimum visible value-axis extent (px) for the name and value lines."""

    name_min_px: float = 14.0
    value_min_px: float = 28.0


@dataclass(slots=True)
class Layout:
    """Ordered ``id -> RectNode`` mapping (pre-order) for one tree build."""

    nodes: dict[str, RectNode] = field(default_factory=dict)
    root_id: str | None = None
    width: float = 0.0
    height: float = 0.0
    visible_columns: int = DEFAULT_VISIBLE_COLUMNS
    max_depth: int = 0

    @property
    def column_width(self) -> float:
        return self.width / self.visible_columns

    @property
    def depth_extent(self) -> float:
        """Length of the depth axis: ``(max_depth + 1) * column_width``."""
        return (self.max_depth + 1) * self.column_width if self.nodes else 0.0

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[RectNode]:
        return iter(self.nodes.values())

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __getitem__(self, node_id: str) -> RectNode:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def get(self, node_id: str) -> RectNode | None:
        return self.nodes.get(node_id)

    def ancestors(self, node_id: str) -> list[RectNode]:
        """Nodes from the root down to ``node_id`` inclusive."""
        chain = []
        current: str | None = node_id
        while current is not None:
            rect = self[current]
            chain.append(rect)
            current = rect.parent_id
        chain.reverse()
        return chain

    def to_records(self) -> list[dict[str, Any]]:
        """Plain dicts for JSON export or DataFrame construction."""
        return [
            {
                "id": rect.id,
                "name": rect.name,
                "value": rect.value,
                "depth": rect.depth,
                "parent_id": rect.parent_id,
                "x0": rect.x0,
                "x1": rect.x1,
                "y0": rect.y0,
                "y1": rect.y1,
                "target": {
                    "x0": rect.target.x0,
                    "x1": rect.target.x1,
                    "y0": rect.target.y0,
                    "y1": rect.target.y1,
                },
            }
            for rect in self
        ]


def sort_children(node: TreeNode) -> tuple[TreeNode, ...]:
    """Children by descending value; ties keep encounter order."""
    return tuple(sorted(node.children, key=lambda child: -(child.value or 0)))


def partition_layout(
    tree: TreeNode | None,
    width: float,
    height: float,
    visible_columns: int = DEFAULT_VISIBLE_COLUMNS,
) -> Layout:
    """
    Assign a rectangle to every node of an enriched tree.

    **Args:**
        tree: Enriched tree (node values set); None gives an empty layout
        width: Container width in px (depth axis)
        height: Container height in px (value axis)
        visible_columns: Depth columns visible at once

    **Returns:**
        Layout with ``x0, x1`` on the value axis and ``y0, y1`` on the depth
        axis; every node's ``target`` starts equal to its own rectangle

    **Raises:**
        ConfigError: Non-positive size or column count
    """
    if width <= 0 or height <= 0:
        raise ConfigError(f"Layout size must be positive, got {width}x{height}")
    if visible_columns < 1:
        raise ConfigError(f"visible_columns must be >= 1, got {visible_columns}")

    layout = Layout(width=float(width), height=float(height), visible_columns=visible_columns)
    if tree is None or not (tree.value or 0) > 0:
        return layout

    column = layout.column_width
    layout.root_id = tree.id
    stack: list[tuple[TreeNode, str | None, int, float, float]] = [
        (tree, None, 0, 0.0, float(height))
    ]
    while stack:
        node, parent_id, depth, x0, x1 = stack.pop()
        children = sort_children(node)
        layout.nodes[node.id] = RectNode(
            node=node,
            depth=depth,
            parent_id=parent_id,
            child_ids=tuple(child.id for child in children),
            x0=x0,
            x1=x1,
            y0=depth * column,
            y1=(depth + 1) * column,
        )
        layout.max_depth = max(layout.max_depth, depth)
        if not children:
            continue
        bounds = _split(x0, x1, [child.value or 0 for child in children])
        # Reversed so the largest child is laid out (and listed) first.
        for child, lo, hi in reversed(list(zip(children, bounds[:-1], bounds[1:]))):
            stack.append((child, node.id, depth + 1, lo, hi))
    return layout


def _split(x0: float, x1: float, values: list[int]) -> list[float]:
    weights = np.asarray(values, dtype=float)
    total = weights.sum()
    if total <= 0:
        return [x0] * len(values) + [x0]
    edges = x0 + (x1 - x0) * np.concatenate(([0.0], np.cumsum(weights))) / total
    edges[-1] = x1
    return edges.tolist()


def resolve_label(node: TreeNode | RectNode, max_length: int = 40) -> str:
    """Display name, or ``[id]`` when the name is empty, ellipsized to ``max_length``."""
    name = (node.name or "").strip() or f"[{node.id}]"
    if len(name) > max_length:
        return name[: max_length - 1] + "…"
    return name


def label_visibility(
    extent: float, thresholds: LabelThresholds = LabelThresholds()
) -> tuple[bool, bool]:
    """``(show_name, show_value)`` for a rectangle of ``extent`` px on the value axis."""
    show_name = extent >= thresholds.name_min_px
    show_value = show_name and extent >= thresholds.value_min_px
    return show_name, show_value


def measure_labels(
    layout: Layout,
    rects: Mapping[str, Rect] | None = None,
    *,
    thresholds: LabelThresholds = LabelThresholds(),
    max_length: int = 40,
) -> dict[str, Label]:
    """
    Decide which labels fit, measured against settled geometry.

    ``rects`` defaults to each node's ``target``. Only the part of a
    rectangle inside the viewport counts; nodes outside it show nothing.
    """
    labels: dict[str, Label] = {}
    for rect_node in layout:
        rect = rects[rect_node.id] if rects is not None else rect_node.target
        in_view = rect.y1 > 0 and rect.y0 < layout.width
        extent = min(rect.x1, layout.height) - max(rect.x0, 0.0)
        if in_view and extent > 0:
            show_name, show_value = label_visibility(extent, thresholds)
        else:
            show_name = show_value = False
        labels[rect_node.id] = Label(
            text=resolve_label(rect_node.node, max_length),
            value=rect_node.value,
            show_name=show_name,
            show_value=show_value,
        )
    return labels
