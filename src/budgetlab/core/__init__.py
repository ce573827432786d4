"""
Core module for BudgetLab.

This module contains the pipeline stages: hierarchy building, code
reconciliation, value aggregation, partition layout and zoom state.
"""

from .aggregate import direct_amount_id, enrich_tree, node_values, unattributed_amounts
from .config import (
    COMPOSITE_SEPARATORS,
    DEFAULT_VIEWS,
    LayoutSettings,
    ViewCatalog,
    ViewConfig,
    default_catalog,
    load_view_catalog,
)
from .errors import (
    BudgetLabError,
    ConfigError,
    DataFormatError,
    NoRenderableHierarchyError,
    UnknownNodeError,
)
from .hierarchy import (
    NameIndex,
    build_hierarchy,
    find_path,
    observed_codes,
    tree_depth,
    tree_from_descriptor,
)
from .layout import (
    LabelThresholds,
    Layout,
    label_visibility,
    measure_labels,
    partition_layout,
    resolve_label,
)
from .loader import (
    read_budget_rows,
    read_chapters,
    read_classification,
    read_descriptor,
)
from .reconcile import (
    ChapterResolution,
    ReconciliationResult,
    chapter_code_amounts,
    drop_restated_composites,
    effective_leaves,
    family_total,
    leaves_from_classification,
    resolve_amounts,
    resolve_amounts_from_classification,
    split_composite,
)
from .records import (
    Breadcrumb,
    BudgetKind,
    BudgetRow,
    ClassificationRow,
    FocusState,
    Label,
    Rect,
    RectNode,
    TreeNode,
)
from .session import BudgetDataset, BudgetSession, BudgetView, build_view
from .totals import (
    BreakdownItem,
    budget_deficit,
    expenditures_by_chapter,
    revenues_by_chapter,
    rows_to_frame,
    top_level_breakdown,
    total_expenditures,
    total_revenues,
)
from .zoom import (
    ImmediateScheduler,
    ScheduledTask,
    TimerScheduler,
    Transition,
    ZoomController,
    focus_targets,
)

__all__ = [
    # Errors
    "BudgetLabError",
    "ConfigError",
    "DataFormatError",
    "NoRenderableHierarchyError",
    "UnknownNodeError",
    # Records
    "BudgetKind",
    "BudgetRow",
    "ClassificationRow",
    "TreeNode",
    "Rect",
    "RectNode",
    "Breadcrumb",
    "FocusState",
    "Label",
    # Config
    "COMPOSITE_SEPARATORS",
    "DEFAULT_VIEWS",
    "LayoutSettings",
    "ViewCatalog",
    "ViewConfig",
    "default_catalog",
    "load_view_catalog",
    # Loading
    "read_budget_rows",
    "read_chapters",
    "read_classification",
    "read_descriptor",
    # Hierarchy
    "NameIndex",
    "build_hierarchy",
    "find_path",
    "observed_codes",
    "tree_depth",
    "tree_from_descriptor",
    # Reconciliation
    "ChapterResolution",
    "ReconciliationResult",
    "chapter_code_amounts",
    "drop_restated_composites",
    "effective_leaves",
    "family_total",
    "leaves_from_classification",
    "resolve_amounts",
    "resolve_amounts_from_classification",
    "split_composite",
    # Aggregation
    "direct_amount_id",
    "enrich_tree",
    "node_values",
    "unattributed_amounts",
    # Layout
    "LabelThresholds",
    "Layout",
    "label_visibility",
    "measure_labels",
    "partition_layout",
    "resolve_label",
    # Zoom
    "ImmediateScheduler",
    "ScheduledTask",
    "TimerScheduler",
    "Transition",
    "ZoomController",
    "focus_targets",
    # Session
    "BudgetDataset",
    "BudgetSession",
    "BudgetView",
    "build_view",
    # Totals
    "BreakdownItem",
    "budget_deficit",
    "expenditures_by_chapter",
    "revenues_by_chapter",
    "rows_to_frame",
    "top_level_breakdown",
    "total_expenditures",
    "total_revenues",
]
