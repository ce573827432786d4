"""
Command-line interface for BudgetLab.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from budgetlab import __version__
from budgetlab.core.config import ViewCatalog, ViewConfig, default_catalog, load_view_catalog
from budgetlab.core.errors import BudgetLabError
from budgetlab.core.loader import read_budget_rows
from budgetlab.core.records import TreeNode
from budgetlab.core.session import BudgetDataset, BudgetView, build_view
from budgetlab.core.totals import (
    budget_deficit,
    expenditures_by_chapter,
    revenues_by_chapter,
    total_expenditures,
    total_revenues,
)
from budgetlab.core.zoom import ImmediateScheduler, ZoomController


def _load_catalog(args) -> ViewCatalog:
    if getattr(args, "catalog", None):
        return load_view_catalog(args.catalog)
    return default_catalog()


def _load_dataset(args, catalog: ViewCatalog) -> BudgetDataset:
    data_dir = args.data_dir
    if not data_dir and catalog.data_dir and not args.data:
        # Relative catalog paths are taken from the catalog file's folder.
        base = Path(args.catalog).parent if getattr(args, "catalog", None) else Path()
        data_dir = base / catalog.data_dir
    if data_dir:
        return BudgetDataset.from_directory(data_dir, catalog)
    if not args.data or not args.classification:
        raise BudgetLabError("either --data-dir or --data with --classification is required")
    descriptors = {}
    if args.descriptor:
        descriptors[_resolve_view(args, catalog).system] = args.descriptor
    return BudgetDataset.from_files(
        args.data, args.classification, descriptors=descriptors
    )


def _resolve_view(args, catalog: ViewCatalog) -> ViewConfig:
    if args.view in catalog.views:
        return catalog.get(args.view)
    # Bare system ids work too; they get a view with default settings.
    return catalog.for_system(args.view)


def _build(args) -> tuple[BudgetView, ViewCatalog]:
    catalog = _load_catalog(args)
    dataset = _load_dataset(args, catalog)
    view = _resolve_view(args, catalog)
    year = args.year if args.year is not None else catalog.year
    built = build_view(
        dataset,
        view,
        year=year,
        width=getattr(args, "width", 960.0),
        height=getattr(args, "height", 600.0),
        settings=catalog.layout,
    )
    return built, catalog


def _tree_to_dict(node: TreeNode) -> dict:
    out = {"id": node.id, "name": node.name, "value": node.value}
    if node.children:
        out["children"] = [_tree_to_dict(child) for child in node.children]
    return out


def _print_tree(node: TreeNode, depth: int = 0, max_depth: int | None = None) -> None:
    print(f"{'  ' * depth}{node.id}  {node.name}  {node.value or 0:,}")
    if max_depth is not None and depth >= max_depth:
        return
    for child in sorted(node.children, key=lambda c: -(c.value or 0)):
        _print_tree(child, depth + 1, max_depth)


def cmd_tree(args) -> int:
    """Print the enriched tree of a view."""
    view, _ = _build(args)
    if view.is_empty:
        print(f"No data for {view.view.system} {view.year}", file=sys.stderr)
        return 1
    if args.json:
        json.dump(_tree_to_dict(view.tree), sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")
    else:
        _print_tree(view.tree, max_depth=args.depth)
    return 0


def cmd_reconcile(args) -> int:
    """Per-chapter reconciliation diagnostics."""
    view, _ = _build(args)
    result = view.reconciliation
    if args.json:
        output = {
            "system": result.system,
            "year": result.year,
            "total": result.total,
            "chapters": {
                code: {
                    "name": chapter.chapter_name,
                    "total": chapter.total,
                    "leaves": len(chapter.leaves),
                    "dropped_composites": list(chapter.dropped_composites),
                    "retained_composites": list(chapter.retained_composites),
                }
                for code, chapter in result.chapters.items()
            },
        }
        json.dump(output, sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")
    else:
        frame = result.to_frame()
        print(frame.to_string(index=False) if len(frame) else "No chapters")
        print(f"\nTotal ({result.system} {result.year}): {result.total:,}")
        print(f"Tree total: {view.tree.value or 0:,}")
    return 0


def cmd_layout(args) -> int:
    """Export the layout rectangles, optionally focused on a node."""
    view, catalog = _build(args)
    zoom = ZoomController(
        view.layout,
        scheduler=ImmediateScheduler(),
        duration=catalog.layout.transition_seconds,
        label_max_length=catalog.layout.label_max_length,
    )
    if args.focus:
        zoom.focus_on(args.focus)
    labels = zoom.labels
    records = view.layout.to_records()
    for record in records:
        label = labels[record["id"]]
        record["label"] = label.text
        record["show_name"] = label.show_name
        record["show_value"] = label.show_value
    output = {
        "view": view.view.key,
        "year": view.year,
        "width": view.layout.width,
        "height": view.layout.height,
        "column_width": view.layout.column_width,
        "focus": zoom.focus_id,
        "breadcrumbs": [{"id": b.id, "name": b.name} for b in zoom.breadcrumbs()],
        "nodes": records,
    }
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(output, f, indent=2, ensure_ascii=False)
    else:
        json.dump(output, sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")
    return 0


def cmd_totals(args) -> int:
    """Revenue and expenditure totals from the chapter grand-total rows."""
    revenues = read_budget_rows(args.revenues)
    expenditures = read_budget_rows(args.expenditures)
    output = {
        "year": args.year,
        "revenues": total_revenues(revenues, args.year),
        "expenditures": total_expenditures(expenditures, args.year),
        "deficit": budget_deficit(revenues, expenditures, args.year),
    }
    if args.by_chapter:
        output["revenues_by_chapter"] = revenues_by_chapter(revenues, args.year)
        output["expenditures_by_chapter"] = expenditures_by_chapter(
            expenditures, args.year
        )
    if args.json:
        json.dump(output, sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        print(f"Revenues:     {output['revenues']:>20,}")
        print(f"Expenditures: {output['expenditures']:>20,}")
        print(f"Deficit:      {output['deficit']:>20,}")
    return 0


def _add_data_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--view",
        default="exp_odvetvove",
        help="View key from the catalog or a classification system id",
    )
    parser.add_argument("--year", type=int, help="Budget year (default: catalog year)")
    parser.add_argument("--catalog", help="View catalog YAML/JSON file")
    parser.add_argument(
        "--data-dir", help="Directory with the fact, classification and tree files"
    )
    parser.add_argument("--data", nargs="*", help="Fact CSV file(s)")
    parser.add_argument("--classification", help="Classification CSV file")
    parser.add_argument("--descriptor", help="Hierarchy descriptor JSON for the view")


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="budgetlab",
        description="BudgetLab - State budget hierarchy reconciliation and layout",
    )
    parser.add_argument("--version", action="version", version=f"BudgetLab {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging")

    subparsers = parser.add_subparsers(
        dest="cmd", required=True, help="Available commands"
    )

    # Tree command
    tree_parser = subparsers.add_parser("tree", help="Print the enriched tree")
    _add_data_args(tree_parser)
    tree_parser.add_argument("--depth", type=int, help="Maximum depth to print")
    tree_parser.add_argument("--json", action="store_true", help="Output in JSON format")
    tree_parser.set_defaults(func=cmd_tree)

    # Reconcile command
    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Show per-chapter reconciliation diagnostics"
    )
    _add_data_args(reconcile_parser)
    reconcile_parser.add_argument(
        "--json", action="store_true", help="Output in JSON format"
    )
    reconcile_parser.set_defaults(func=cmd_reconcile)

    # Layout command
    layout_parser = subparsers.add_parser(
        "layout", help="Export partition layout rectangles as JSON"
    )
    _add_data_args(layout_parser)
    layout_parser.add_argument("--width", type=float, default=960.0)
    layout_parser.add_argument("--height", type=float, default=600.0)
    layout_parser.add_argument("--focus", help="Node id to focus before export")
    layout_parser.add_argument("-o", "--output", help="Output JSON file")
    layout_parser.set_defaults(func=cmd_layout)

    # Totals command
    totals_parser = subparsers.add_parser(
        "totals", help="Revenue/expenditure totals and deficit"
    )
    totals_parser.add_argument("--revenues", required=True, help="Revenue fact CSV")
    totals_parser.add_argument(
        "--expenditures", required=True, help="Expenditure fact CSV"
    )
    totals_parser.add_argument("--year", type=int, default=2026)
    totals_parser.add_argument(
        "--by-chapter", action="store_true", help="Include per-chapter totals"
    )
    totals_parser.add_argument("--json", action="store_true", help="Output in JSON format")
    totals_parser.set_defaults(func=cmd_totals)

    # Parse arguments and execute
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING - 10 * min(args.verbose, 2),
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (BudgetLabError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
