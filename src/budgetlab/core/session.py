"""
View pipeline and per-view session state.

:func:`build_view` is a pure function of its inputs: it reconciles the rows,
builds and enriches the hierarchy and lays it out. :class:`BudgetSession`
keeps the single mutable piece, the zoom state of the active view, and
rebuilds everything from scratch whenever the data, the view or the
container size changes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .aggregate import enrich_tree
from .config import LayoutSettings, ViewCatalog, ViewConfig, default_catalog
from .hierarchy import NameIndex, build_hierarchy, observed_codes
from .layout import LabelThresholds, Layout, partition_layout
from .loader import read_budget_rows, read_chapters, read_classification, read_descriptor
from .reconcile import ReconciliationResult, resolve_amounts
from .records import BudgetRow, ClassificationRow, FocusState, TreeNode
from .zoom import Scheduler, Transition, ZoomController

logger = logging.getLogger(__name__)

__all__ = ["BudgetDataset", "BudgetSession", "BudgetView", "build_view"]

CLASSIFICATION_FILE = "dim_classification.csv"
CHAPTERS_FILE = "dim_chapter.csv"


@dataclass(slots=True)
class BudgetDataset:
    """Immutable-by-convention bundle of everything loaded for a selection."""

    rows: list[BudgetRow] = field(default_factory=list)
    classification: list[ClassificationRow] = field(default_factory=list)
    descriptors: dict[str, Any] = field(default_factory=dict)
    chapters: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_files(
        cls,
        rows: Iterable[str | Path],
        classification: str | Path,
        *,
        descriptors: dict[str, str | Path] | None = None,
        chapters: str | Path | None = None,
    ) -> BudgetDataset:
        """Load rows from one or more fact files plus the classification table."""
        loaded: list[BudgetRow] = []
        for path in dict.fromkeys(Path(p) for p in rows):
            loaded.extend(read_budget_rows(path))
        return cls(
            rows=loaded,
            classification=read_classification(classification),
            descriptors={
                system: read_descriptor(Path(path))
                for system, path in (descriptors or {}).items()
            },
            chapters=read_chapters(chapters) if chapters is not None else {},
        )

    @classmethod
    def from_directory(
        cls, data_dir: str | Path, catalog: ViewCatalog | None = None
    ) -> BudgetDataset:
        """
        Load the files a view catalog names from ``data_dir``.

        Fact files are read once even when several views share them; tree
        descriptors and the chapter table are optional.
        """
        data_dir = Path(data_dir)
        catalog = catalog or default_catalog()
        fact_files = [
            data_dir / view.data_file
            for view in catalog.views.values()
            if view.data_file
        ]
        descriptors = {
            view.system: data_dir / view.tree_file
            for view in catalog.views.values()
            if view.tree_file and (data_dir / view.tree_file).exists()
        }
        chapters = data_dir / CHAPTERS_FILE
        return cls.from_files(
            fact_files,
            data_dir / CLASSIFICATION_FILE,
            descriptors=descriptors,
            chapters=chapters if chapters.exists() else None,
        )


@dataclass(slots=True)
class BudgetView:
    """Everything derived for one view: reconciliation, trees and layout."""

    view: ViewConfig
    year: int
    hierarchy: TreeNode
    tree: TreeNode
    reconciliation: ReconciliationResult
    layout: Layout

    @property
    def is_empty(self) -> bool:
        return not self.tree.children


def build_view(
    dataset: BudgetDataset,
    view: ViewConfig,
    *,
    year: int,
    width: float,
    height: float,
    settings: LayoutSettings | None = None,
) -> BudgetView:
    """
    Run reconciliation, hierarchy, aggregation and layout for one view.

    Raises:
        NoRenderableHierarchyError: The classification has rows for the
            system but no top-level node, and the data reports no codes
    """
    settings = settings or LayoutSettings()
    reconciliation = resolve_amounts(
        dataset.rows,
        year,
        view.system,
        separators=view.composite_separators,
        total_codes=view.total_codes,
    )
    skip = set(view.total_codes)
    codes = [
        code
        for code in observed_codes(dataset.rows, view.system, year)
        if code not in skip
    ]
    names = NameIndex.from_sources(
        descriptor=dataset.descriptors.get(view.system),
        classification=dataset.classification,
        system=view.system,
    )
    hierarchy = build_hierarchy(
        dataset.classification,
        codes,
        view.system,
        root_name=view.label,
        names=names,
        separators=view.composite_separators,
    )
    enriched = enrich_tree(hierarchy, reconciliation.amounts)
    tree = enriched or TreeNode(id=hierarchy.id, name=hierarchy.name)
    layout = partition_layout(enriched, width, height, settings.visible_columns)
    logger.info(
        "View %s %d: %d nodes, total %d",
        view.key,
        year,
        len(layout),
        tree.value or 0,
    )
    return BudgetView(
        view=view,
        year=year,
        hierarchy=hierarchy,
        tree=tree,
        reconciliation=reconciliation,
        layout=layout,
    )


class BudgetSession:
    """
    Active view plus its zoom state.

    Selecting another view rebuilds and resets the focus to the root.
    Resizing or refreshing the data rebuilds too but keeps the focus when
    the focused node survives the rebuild.
    """

    def __init__(
        self,
        dataset: BudgetDataset,
        catalog: ViewCatalog | None = None,
        *,
        view: str | None = None,
        width: float = 960.0,
        height: float = 600.0,
        year: int | None = None,
        scheduler: Scheduler | None = None,
    ):
        self._dataset = dataset
        self._catalog = catalog or default_catalog()
        self._width = width
        self._height = height
        self._year = year if year is not None else self._catalog.year
        self._scheduler = scheduler
        config = self._catalog.get(view or next(iter(self._catalog.views)))
        self._view, self._zoom = self._open(config)

    @property
    def view(self) -> BudgetView:
        return self._view

    @property
    def zoom(self) -> ZoomController:
        return self._zoom

    @property
    def state(self) -> FocusState:
        return self.zoom.state

    @property
    def layout(self) -> Layout:
        return self.view.layout

    def select(self, view_key: str) -> BudgetView:
        """Switch to ``view_key``; the focus resets to the root."""
        config = self._catalog.get(view_key)
        return self._rebuild(config, keep_focus=False)

    def resize(self, width: float, height: float) -> BudgetView:
        self._width, self._height = width, height
        return self._rebuild(self.view.view, keep_focus=True)

    def refresh(self, dataset: BudgetDataset) -> BudgetView:
        """Replace the data set (same view); keeps the focus if it survives."""
        self._dataset = dataset
        return self._rebuild(self.view.view, keep_focus=True)

    def click(self, node_id: str) -> Transition | None:
        return self.zoom.click(node_id)

    def click_breadcrumb(self, index: int) -> Transition | None:
        return self.zoom.click_breadcrumb(index)

    def _rebuild(self, config: ViewConfig, *, keep_focus: bool) -> BudgetView:
        previous = self._zoom.focus_id if keep_focus else None
        self._zoom.cancel_pending()
        self._view, self._zoom = self._open(config)
        if previous and previous in self._view.layout:
            self._zoom.focus_on(previous)
        return self._view

    def _open(self, config: ViewConfig) -> tuple[BudgetView, ZoomController]:
        settings = self._catalog.layout
        view = build_view(
            self._dataset,
            config,
            year=self._year,
            width=self._width,
            height=self._height,
            settings=settings,
        )
        zoom = ZoomController(
            view.layout,
            scheduler=self._scheduler,
            duration=settings.transition_seconds,
            thresholds=LabelThresholds(settings.name_min_px, settings.value_min_px),
            label_max_length=settings.label_max_length,
        )
        return view, zoom
