"""
Chapter and grand totals for the budget tables.

Each chapter reports its own total under the grand-total code ``"0"``;
summing those rows gives the state totals without touching the hierarchy.
All functions operate on the tidy frame from :func:`rows_to_frame`.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import pandas as pd

from .config import GRAND_TOTAL_CODE
from .records import BudgetKind, BudgetRow, ClassificationRow

__all__ = [
    "BreakdownItem",
    "budget_deficit",
    "expenditures_by_chapter",
    "revenues_by_chapter",
    "rows_to_frame",
    "top_level_breakdown",
    "total_expenditures",
    "total_revenues",
]

FRAME_COLUMNS = [
    "year",
    "kind",
    "system",
    "page_number",
    "chapter_code",
    "chapter_name",
    "class_code",
    "amount",
]

EXPENDITURE_TOTAL_SYSTEM = "exp_druhove"


@dataclass(frozen=True, slots=True)
class BreakdownItem:
    code: str
    name: str
    amount: int


def rows_to_frame(rows: Iterable[BudgetRow] | pd.DataFrame) -> pd.DataFrame:
    """Canonical tidy frame, one row per BudgetRow."""
    if isinstance(rows, pd.DataFrame):
        return rows
    records = [
        {
            "year": row.year,
            "kind": row.kind.value if row.kind is not None else "",
            "system": row.system,
            "page_number": row.page_number,
            "chapter_code": row.chapter_code,
            "chapter_name": row.chapter_name,
            "class_code": row.class_code,
            "amount": row.amount,
        }
        for row in rows
    ]
    frame = pd.DataFrame.from_records(records, columns=FRAME_COLUMNS)
    return frame.astype({"year": "int64", "page_number": "int64", "amount": "int64"})


def _grand_totals(
    rows: Iterable[BudgetRow] | pd.DataFrame,
    year: int,
    kind: BudgetKind,
    system: str | None = None,
) -> pd.DataFrame:
    frame = rows_to_frame(rows)
    mask = (
        (frame["year"] == year)
        & (frame["kind"] == kind.value)
        & (frame["class_code"] == GRAND_TOTAL_CODE)
    )
    if system is not None:
        mask &= frame["system"] == system
    return frame[mask]


def total_revenues(rows: Iterable[BudgetRow] | pd.DataFrame, year: int = 2026) -> int:
    """Sum of every chapter's revenue grand total for ``year``."""
    return int(_grand_totals(rows, year, BudgetKind.REVENUE)["amount"].sum())


def total_expenditures(
    rows: Iterable[BudgetRow] | pd.DataFrame,
    year: int = 2026,
    system: str = EXPENDITURE_TOTAL_SYSTEM,
) -> int:
    """
    Sum of every chapter's expenditure grand total for ``year``.

    Expenditure tables repeat the same totals once per classification
    system, so only ``system`` is counted.
    """
    return int(
        _grand_totals(rows, year, BudgetKind.EXPENDITURE, system)["amount"].sum()
    )


def budget_deficit(
    revenue_rows: Iterable[BudgetRow] | pd.DataFrame,
    expenditure_rows: Iterable[BudgetRow] | pd.DataFrame,
    year: int = 2026,
) -> int:
    """Expenditures minus revenues; negative means a surplus."""
    return total_expenditures(expenditure_rows, year) - total_revenues(
        revenue_rows, year
    )


def _by_chapter(frame: pd.DataFrame) -> dict[str, int]:
    grouped = frame.groupby("chapter_code", sort=False)["amount"].sum()
    return {str(code): int(amount) for code, amount in grouped.items()}


def revenues_by_chapter(
    rows: Iterable[BudgetRow] | pd.DataFrame, year: int = 2026
) -> dict[str, int]:
    return _by_chapter(_grand_totals(rows, year, BudgetKind.REVENUE))


def expenditures_by_chapter(
    rows: Iterable[BudgetRow] | pd.DataFrame,
    year: int = 2026,
    system: str = EXPENDITURE_TOTAL_SYSTEM,
) -> dict[str, int]:
    return _by_chapter(_grand_totals(rows, year, BudgetKind.EXPENDITURE, system))


def top_level_breakdown(
    rows: Iterable[BudgetRow] | pd.DataFrame,
    classification: Iterable[ClassificationRow],
    system: str,
    year: int = 2026,
) -> list[BreakdownItem]:
    """
    Amounts of the level-1 codes of ``system``, largest first.

    Uses the amounts reported directly against each top-level code; codes
    with no positive amount are left out.
    """
    top = {
        row.code: row.name
        for row in classification
        if row.system == system and row.level == 1 and not row.is_total
    }
    if not top:
        return []
    frame = rows_to_frame(rows)
    frame = frame[
        (frame["year"] == year)
        & (frame["system"] == system)
        & (frame["class_code"].isin(list(top)))
    ]
    sums = frame.groupby("class_code")["amount"].sum()
    items = [
        BreakdownItem(code=code, name=name, amount=int(sums.get(code, 0)))
        for code, name in top.items()
    ]
    items = [item for item in items if item.amount > 0]
    return sorted(items, key=lambda item: item.amount, reverse=True)
