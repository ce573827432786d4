"""
Chart functions for budget views.

These charts are a static rendition of the pipeline output for reports and
notebooks; the interactive drill-down itself is painted by the presentation
layer from the layout geometry.

All chart functions return (figure, tidy_dataframe_used) for consistency.
"""

from __future__ import annotations

from collections.abc import Mapping

import pandas as pd

from .core.layout import Layout, resolve_label
from .core.session import BudgetView

# Plotly imports with graceful fallback
try:
    import plotly.express as px
    import plotly.graph_objects as go

    PLOTLY_AVAILABLE = True
except ImportError:
    PLOTLY_AVAILABLE = False


def _check_plotly() -> None:
    """Check if Plotly is available and raise helpful error if not."""
    if not PLOTLY_AVAILABLE:
        raise ImportError(
            "Plotly is required for chart functions. Install with:\n"
            "pip install plotly kaleido\n"
            "or\n"
            "poetry install --extras viz"
        )


def layout_frame(layout: Layout, label_max_length: int = 40) -> pd.DataFrame:
    """Tidy frame of a layout: one row per node with geometry and label."""
    columns = ["id", "parent_id", "label", "value", "depth", "x0", "x1", "y0", "y1"]
    records = [
        {
            "id": rect.id,
            "parent_id": rect.parent_id or "",
            "label": resolve_label(rect.node, label_max_length),
            "value": rect.value,
            "depth": rect.depth,
            "x0": rect.x0,
            "x1": rect.x1,
            "y0": rect.y0,
            "y1": rect.y1,
        }
        for rect in layout
    ]
    return pd.DataFrame.from_records(records, columns=columns)


def budget_icicle(
    layout: Layout,
    *,
    title: str | None = None,
    color: str = "#1565C0",
    max_depth: int | None = None,
) -> tuple[go.Figure, pd.DataFrame]:
    """
    Plot an enriched, laid-out tree as a horizontal icicle chart.

    Node values are the reconciled totals, so ``branchvalues="total"`` holds:
    every parent equals the sum of its children.

    **Args:**
        layout: Layout from :func:`budgetlab.core.layout.partition_layout`
        title: Figure title (defaults to the root label)
        color: Fill colour of the view
        max_depth: Depth levels shown at once (defaults to the layout's
            visible columns)

    **Returns:**
        Tuple of (plotly_figure, tidy_dataframe_used)

    **Example:**
        ```python
        view = build_view(dataset, DEFAULT_VIEWS["revenues"], year=2026,
                          width=960, height=600)
        fig, data = budget_icicle(view.layout)
        fig.show()
        ```
    """
    _check_plotly()

    data = layout_frame(layout)
    root_label = data["label"].iloc[0] if len(data) else ""
    fig = go.Figure(
        go.Icicle(
            ids=data["id"],
            labels=data["label"],
            parents=data["parent_id"],
            values=data["value"],
            branchvalues="total",
            marker={"colors": [color] * len(data)},
            tiling={"orientation": "h"},
            maxdepth=max_depth or layout.visible_columns,
        )
    )
    fig.update_layout(
        title=title or root_label,
        width=layout.width or None,
        height=layout.height or None,
        margin={"t": 40, "l": 0, "r": 0, "b": 0},
    )
    return fig, data


def view_icicle(
    view: BudgetView, *, max_depth: int | None = None
) -> tuple[go.Figure, pd.DataFrame]:
    """Icicle of a built view, titled and coloured as its catalog entry says."""
    return budget_icicle(
        view.layout, title=view.view.label, color=view.view.color, max_depth=max_depth
    )


def chapter_totals_bars(
    totals: Mapping[str, int],
    chapter_names: Mapping[str, str] | None = None,
    *,
    title: str = "Totals by Chapter",
) -> tuple[go.Figure, pd.DataFrame]:
    """
    Horizontal bars of per-chapter totals, largest first.

    Args:
        totals: ``chapter_code -> amount``, e.g. from ``revenues_by_chapter``
        chapter_names: Optional ``chapter_code -> name`` lookup

    Returns:
        Tuple of (plotly_figure, tidy_dataframe_used)
    """
    _check_plotly()

    names = chapter_names or {}
    data = pd.DataFrame(
        {
            "chapter_code": list(totals),
            "chapter_name": [names.get(code, code) for code in totals],
            "amount": list(totals.values()),
        }
    ).sort_values("amount", ascending=False, ignore_index=True)

    fig = px.bar(
        data,
        x="amount",
        y="chapter_name",
        orientation="h",
        title=title,
        labels={"amount": "Amount (CZK)", "chapter_name": "Chapter"},
    )
    fig.update_layout(yaxis={"autorange": "reversed"})
    return fig, data


def save_chart(fig: go.Figure, filename: str, format: str = "html") -> None:
    """
    Save chart to file.

    Args:
        fig: Plotly figure
        filename: Output filename
        format: Output format ('html', 'png', 'pdf', 'svg')
    """
    _check_plotly()

    if format == "html":
        fig.write_html(filename)
    elif format in ("png", "pdf", "svg"):
        fig.write_image(filename, format=format)
    else:
        raise ValueError(f"Unsupported format: {format}")
