"""
BudgetLab - Reconciled State Budget Hierarchies and Zoomable Partition Layouts

BudgetLab turns flat government-budget tables (one row per accounting code
per reporting chapter) and a classification table into a hierarchy with
non-double-counted amounts per node, and lays that hierarchy out as a
rectangular, zoomable icicle for interactive drill-down.

Key Features:
- **Chapter-aware reconciliation**: Composite codes that re-state sums are
  dropped only when every component is reported in the same chapter
- **Effective leaves**: Leaf status is resolved per chapter, so a code can
  terminate one chapter and have sub-codes in another without double counting
- **Robust hierarchy**: Codes missing from the classification are attached
  under their nearest prefix ancestor; no amount is dropped
- **Partition layout**: Value-proportional rectangles with fixed-width depth
  columns that never resize on zoom
- **Zoom state machine**: Focus, breadcrumbs and target geometry with
  generation-tagged deferred label updates

Architecture Overview:
- **loader**: CSV/JSON readers for budget rows, classification and descriptors
- **hierarchy**: Classification rows to a rooted tree
- **reconcile**: Composite handling and per-chapter effective leaves
- **aggregate**: Bottom-up values with zero-branch pruning
- **layout**: Partition (icicle) geometry and label fitting
- **zoom**: Focus transitions, targets and breadcrumbs
- **session**: Per-view pipeline and zoom state
- **totals**: Chapter and grand totals for tables

Quick Start:
    ```python
    from budgetlab import BudgetDataset, BudgetSession

    dataset = BudgetDataset.from_directory("public/data/budget")
    session = BudgetSession(dataset, view="exp_odvetvove", width=960, height=600)

    session.click("3")           # drill into a sector
    session.state.breadcrumbs    # (Breadcrumb(id="3", name=...),)
    for rect in session.layout:
        print(rect.id, rect.target)
    ```
"""

# Version information
__version__ = "0.1.0"
__author__ = "BudgetLab Team"
__description__ = "Reconciled state budget hierarchies and zoomable partition layouts"

from .core import (
    BreakdownItem,
    Breadcrumb,
    BudgetDataset,
    BudgetKind,
    BudgetLabError,
    BudgetRow,
    BudgetSession,
    BudgetView,
    ClassificationRow,
    ConfigError,
    DataFormatError,
    FocusState,
    ImmediateScheduler,
    Label,
    LabelThresholds,
    Layout,
    NameIndex,
    NoRenderableHierarchyError,
    ReconciliationResult,
    Rect,
    RectNode,
    TimerScheduler,
    Transition,
    TreeNode,
    UnknownNodeError,
    ViewCatalog,
    ViewConfig,
    ZoomController,
    budget_deficit,
    build_hierarchy,
    build_view,
    default_catalog,
    effective_leaves,
    enrich_tree,
    load_view_catalog,
    partition_layout,
    read_budget_rows,
    read_classification,
    read_descriptor,
    resolve_amounts,
    split_composite,
    top_level_breakdown,
    total_expenditures,
    total_revenues,
)

# Chart functions raise a helpful ImportError when plotly is missing
from .charts import PLOTLY_AVAILABLE as CHARTS_AVAILABLE
from .charts import budget_icicle, chapter_totals_bars, save_chart, view_icicle

# Define what gets imported with "from budgetlab import *"
__all__ = [
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
    # Errors
    "BudgetLabError",
    "ConfigError",
    "DataFormatError",
    "NoRenderableHierarchyError",
    "UnknownNodeError",
    # Config
    "ViewCatalog",
    "ViewConfig",
    "default_catalog",
    "load_view_catalog",
    # Loading
    "read_budget_rows",
    "read_classification",
    "read_descriptor",
    # Pipeline
    "NameIndex",
    "build_hierarchy",
    "split_composite",
    "effective_leaves",
    "resolve_amounts",
    "ReconciliationResult",
    "enrich_tree",
    "LabelThresholds",
    "Layout",
    "partition_layout",
    "ImmediateScheduler",
    "TimerScheduler",
    "Transition",
    "ZoomController",
    # Session
    "BudgetDataset",
    "BudgetSession",
    "BudgetView",
    "build_view",
    # Totals
    "BreakdownItem",
    "budget_deficit",
    "top_level_breakdown",
    "total_expenditures",
    "total_revenues",
    # Charts
    "CHARTS_AVAILABLE",
    "budget_icicle",
    "chapter_totals_bars",
    "save_chart",
    "view_icicle",
    # Version info
    "__version__",
    "__author__",
    "__description__",
]
