"""
Error classes for BudgetLab.

This module defines the exception classes used throughout BudgetLab. Data
anomalies (unknown codes, partial composites, zero branches, unparsable
amounts) are recoverable and never raise; only structural problems and
caller mistakes surface as exceptions.
"""

from __future__ import annotations


class BudgetLabError(Exception):
    """Base class for every error raised by BudgetLab."""


class ConfigError(BudgetLabError, ValueError):
    """
    Configuration error in a view catalog or a layout request.

    **Common Causes:**
    - A view catalog entry without a ``system`` or ``label``
    - Non-positive container width or height
    - Zero visible depth columns
    - Unknown view key passed to a session

    **Example Usage:**
        ```python
        from budgetlab.core.errors import ConfigError
        from budgetlab.core.layout import partition_layout

        try:
            partition_layout(tree, width=0, height=600)
        except ConfigError as e:
            print(f"Configuration error: {e}")
        ```
    """


class DataFormatError(BudgetLabError, ValueError):
    """Raised when an input table is missing required columns."""

    def __init__(self, source: str, missing: list[str]):
        self.source = source
        self.missing = list(missing)
        super().__init__(
            f"[{source}] missing required columns: {', '.join(self.missing)}"
        )


class NoRenderableHierarchyError(BudgetLabError):
    """
    Raised when a classification system yields no renderable hierarchy.

    This is only raised when classification rows exist for the system but
    none of them is top-level and the data contains no codes either. An
    empty classification set is a valid "no data" state and returns an
    empty tree instead.

    Attributes:
        system: The classification system that failed to produce a root
    """

    def __init__(self, system: str, message: str | None = None):
        self.system = system
        super().__init__(
            f"[System {system}] "
            + (message or "no top-level classification nodes and no data codes")
        )


class UnknownNodeError(BudgetLabError, KeyError):
    """Raised when a focus request names a node that is not in the layout."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(node_id)

    def __str__(self) -> str:
        return f"Node '{self.node_id}' is not part of the current layout"
