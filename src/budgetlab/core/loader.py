"""
Readers for the budget tables and hierarchy descriptors.

The fetch itself (HTTP, file system) happens outside this module; every
reader accepts a path, an open text stream or the raw text already fetched.
Numeric fields that fail to parse become 0 and the row is kept, so the code
still takes part in chapter bookkeeping.
"""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import IO, Any

import numpy as np
import pandas as pd

from .errors import DataFormatError
from .records import BudgetKind, BudgetRow, ClassificationRow

logger = logging.getLogger(__name__)

__all__ = [
    "BUDGET_COLUMNS",
    "CLASSIFICATION_COLUMNS",
    "parse_bool",
    "read_budget_rows",
    "read_chapters",
    "read_classification",
    "read_descriptor",
]

BUDGET_COLUMNS = (
    "year",
    "kind",
    "system",
    "page_number",
    "chapter_code",
    "chapter_name",
    "class_code",
    "amount_czk",
)
CLASSIFICATION_COLUMNS = (
    "kind",
    "system",
    "code",
    "name",
    "parent_code",
    "level",
    "is_leaf",
    "is_total",
)

_REQUIRED_BUDGET = ("system", "chapter_code", "class_code", "amount_czk")
_REQUIRED_CLASSIFICATION = ("system", "code")

Source = str | Path | IO[str]


def parse_bool(value: Any) -> bool:
    """Literal ``"True"`` is true, anything else is false."""
    if isinstance(value, bool):
        return value
    return str(value).strip() == "True"


def read_budget_rows(source: Source, *, text: bool = False) -> list[BudgetRow]:
    """
    Read fact rows (``year, kind, system, page_number, chapter_code,
    chapter_name, class_code, amount_czk``).

    Args:
        source: Path, open text stream, or CSV text when ``text=True``
        text: Treat ``source`` as the CSV content itself

    Returns:
        List of BudgetRow in file order
    """
    frame = _read_frame(source, text=text)
    label = _label(source, text)
    _require(frame, _REQUIRED_BUDGET, label)
    frame = _ensure_columns(frame, BUDGET_COLUMNS)

    years = _to_int(frame["year"])
    pages = _to_int(frame["page_number"])
    amounts = _to_int(frame["amount_czk"])
    bad = int((_numeric(frame["amount_czk"]).isna() & (frame["amount_czk"] != "")).sum())
    if bad:
        logger.warning("%s: %d unparsable amounts read as 0", label, bad)

    rows = [
        BudgetRow(
            year=int(year),
            kind=BudgetKind.parse(kind),
            system=system.strip(),
            chapter_code=chapter_code.strip(),
            chapter_name=chapter_name.strip(),
            class_code=class_code.strip(),
            amount=int(amount),
            page_number=int(page),
        )
        for year, kind, system, page, chapter_code, chapter_name, class_code, amount in zip(
            years,
            frame["kind"],
            frame["system"],
            pages,
            frame["chapter_code"],
            frame["chapter_name"],
            frame["class_code"],
            amounts,
        )
    ]
    logger.debug("%s: read %d budget rows", label, len(rows))
    return rows


def read_classification(
    source: Source, *, text: bool = False
) -> list[ClassificationRow]:
    """Read a classification table (``kind, system, code, name, parent_code, level, is_leaf, is_total``)."""
    frame = _read_frame(source, text=text)
    label = _label(source, text)
    _require(frame, _REQUIRED_CLASSIFICATION, label)
    frame = _ensure_columns(frame, CLASSIFICATION_COLUMNS)

    levels = _to_int(frame["level"])
    rows = [
        ClassificationRow(
            system=system.strip(),
            code=code.strip(),
            name=name.strip(),
            parent_code=parent.strip(),
            level=int(level),
            is_leaf=parse_bool(is_leaf),
            is_total=parse_bool(is_total),
            kind=BudgetKind.parse(kind),
        )
        for kind, system, code, name, parent, level, is_leaf, is_total in zip(
            frame["kind"],
            frame["system"],
            frame["code"],
            frame["name"],
            frame["parent_code"],
            levels,
            frame["is_leaf"],
            frame["is_total"],
        )
    ]
    logger.debug("%s: read %d classification rows", label, len(rows))
    return rows


def read_chapters(source: Source, *, text: bool = False) -> dict[str, str]:
    """Read ``chapter_code, chapter_name`` into an ordered mapping."""
    frame = _read_frame(source, text=text)
    _require(frame, ("chapter_code", "chapter_name"), _label(source, text))
    return {
        str(code).strip(): str(name).strip()
        for code, name in zip(frame["chapter_code"], frame["chapter_name"])
    }


def read_descriptor(source: Source | dict | list, *, text: bool = False) -> Any:
    """
    Load a pre-built hierarchy descriptor (nested ``{id, name, children}``).

    Dicts and lists are returned unchanged so already-parsed JSON can be
    passed straight through.
    """
    if isinstance(source, (dict, list)):
        return source
    if text:
        return json.loads(str(source))
    if isinstance(source, (str, Path)):
        return json.loads(Path(source).read_text(encoding="utf-8"))
    return json.load(source)


def _read_frame(source: Source, *, text: bool) -> pd.DataFrame:
    handle: Any = io.StringIO(str(source)) if text else source
    frame = pd.read_csv(handle, dtype=str, keep_default_na=False)
    frame.columns = [str(col).strip() for col in frame.columns]
    return frame


def _label(source: Source, text: bool) -> str:
    if text:
        return "<text>"
    if isinstance(source, (str, Path)):
        return str(source)
    return getattr(source, "name", "<stream>")


def _require(frame: pd.DataFrame, columns: Iterable[str], label: str) -> None:
    missing = [col for col in columns if col not in frame.columns]
    if missing:
        raise DataFormatError(label, missing)


def _ensure_columns(frame: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    frame = frame.copy()
    for col in columns:
        if col not in frame.columns:
            frame[col] = ""
    return frame


def _numeric(series: pd.Series) -> pd.Series:
    return pd.to_numeric(series.str.strip(), errors="coerce")


def _to_int(series: pd.Series) -> pd.Series:
    values = _numeric(series).replace([np.inf, -np.inf], np.nan)
    return values.fillna(0).astype("int64")
