"""
Code reconciliation and effective-leaf resolution.

Budget tables re-state sums: a composite code such as ``"31_32"`` or
``"1111 a 1112"`` repeats the total of codes that may already be reported
separately, and a parent code repeats the total of its children. Amounts
are therefore only taken from *effective leaves*, resolved per chapter:

1. Drop a composite code when every component has its own entry in the
   same chapter. A composite with missing components is kept as an atomic
   code.
2. Within the surviving codes of a chapter, a code is an effective leaf iff
   no other surviving code is a strict string-prefix extension of it.
3. Sum effective-leaf magnitudes per code across chapters.

Leaf status is chapter relative: a code may close one chapter's hierarchy
and have reported sub-codes in another.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import pandas as pd

from .config import COMPOSITE_SEPARATORS, GRAND_TOTAL_CODE
from .records import BudgetRow, ClassificationRow

logger = logging.getLogger(__name__)

__all__ = [
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
]


def split_composite(
    code: str, separators: Iterable[str] = COMPOSITE_SEPARATORS
) -> tuple[str, ...] | None:
    """
    Split a composite code into its component codes.

    Returns None for ordinary codes. A code counts as composite when one of
    ``separators`` joins at least two non-empty parts.

    >>> split_composite("31_32")
    ('31', '32')
    >>> split_composite("1111 a 1112")
    ('1111', '1112')
    >>> split_composite("311") is None
    True
    """
    for sep in separators:
        if sep and sep in code:
            parts = tuple(part.strip() for part in code.split(sep))
            if len(parts) >= 2 and all(parts):
                return parts
    return None


def chapter_code_amounts(
    rows: Iterable[BudgetRow],
    year: int | None,
    system: str,
    *,
    total_codes: Iterable[str] = (GRAND_TOTAL_CODE,),
) -> dict[str, dict[str, int]]:
    """
    Per-chapter ``code -> amount`` bookkeeping for one (year, system).

    Rows sharing a chapter and code are summed as magnitudes. Rows whose
    amount parsed to 0 still register their code.
    """
    skip = set(total_codes)
    chapters: dict[str, dict[str, int]] = {}
    for row in rows:
        if row.system != system or (year is not None and row.year != year):
            continue
        if not row.class_code or row.class_code in skip:
            continue
        codes = chapters.setdefault(row.chapter_code, {})
        codes[row.class_code] = codes.get(row.class_code, 0) + abs(row.amount)
    return chapters


def drop_restated_composites(
    code_amounts: Mapping[str, int],
    separators: Iterable[str] = COMPOSITE_SEPARATORS,
) -> tuple[dict[str, int], list[str], list[str]]:
    """
    Remove composites whose components are all reported in the same chapter.

    Returns:
        ``(surviving, dropped, retained)`` where ``retained`` lists the
        composites kept as atomic codes because a component is missing
    """
    separators = tuple(separators)
    surviving: dict[str, int] = {}
    dropped: list[str] = []
    retained: list[str] = []
    for code, amount in code_amounts.items():
        parts = split_composite(code, separators)
        if parts is None:
            surviving[code] = amount
        elif all(part in code_amounts for part in parts):
            dropped.append(code)
        else:
            retained.append(code)
            surviving[code] = amount
    return surviving, dropped, retained


def effective_leaves(codes: Iterable[str]) -> list[str]:
    """
    Codes with no strict prefix extension among ``codes``, in input order.

    Every string starting with ``c`` sorts into one contiguous block right
    after ``c``, so checking the next distinct sorted code is enough.
    """
    ordered = list(dict.fromkeys(codes))
    ranked = sorted(ordered)
    inner: set[str] = set()
    for current, following in zip(ranked, ranked[1:]):
        if following.startswith(current):
            inner.add(current)
    return [code for code in ordered if code not in inner]


@dataclass(frozen=True, slots=True)
class ChapterResolution:
    """Reconciliation outcome for one chapter."""

    chapter_code: str
    surviving: dict[str, int]
    leaves: tuple[str, ...]
    dropped_composites: tuple[str, ...] = ()
    retained_composites: tuple[str, ...] = ()
    chapter_name: str = ""

    @property
    def leaf_amounts(self) -> dict[str, int]:
        return {code: self.surviving[code] for code in self.leaves}

    @property
    def total(self) -> int:
        return sum(self.surviving[code] for code in self.leaves)


@dataclass(slots=True)
class ReconciliationResult:
    """Effective-leaf resolution for one (year, system)."""

    system: str
    year: int | None
    chapters: dict[str, ChapterResolution] = field(default_factory=dict)
    amounts: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.amounts.values())

    def chapter_total(self, chapter_code: str) -> int:
        chapter = self.chapters.get(chapter_code)
        return chapter.total if chapter is not None else 0

    def to_frame(self) -> pd.DataFrame:
        """One row per chapter with leaf counts, composite decisions and totals."""
        records = [
            {
                "chapter_code": ch.chapter_code,
                "chapter_name": ch.chapter_name,
                "codes": len(ch.surviving) + len(ch.dropped_composites),
                "leaves": len(ch.leaves),
                "dropped_composites": len(ch.dropped_composites),
                "retained_composites": len(ch.retained_composites),
                "total": ch.total,
            }
            for ch in self.chapters.values()
        ]
        columns = [
            "chapter_code",
            "chapter_name",
            "codes",
            "leaves",
            "dropped_composites",
            "retained_composites",
            "total",
        ]
        return pd.DataFrame.from_records(records, columns=columns)


def resolve_amounts(
    rows: Iterable[BudgetRow],
    year: int | None,
    system: str,
    *,
    separators: Iterable[str] = COMPOSITE_SEPARATORS,
    total_codes: Iterable[str] = (GRAND_TOTAL_CODE,),
) -> ReconciliationResult:
    """
    Resolve non-double-counted amounts per code for one (year, system).

    **Args:**
        rows: Budget rows (any year/system; filtered here)
        year: Budget year, or None to accept every year
        system: Classification system id
        separators: Composite-code separators used by this system
        total_codes: Grand-total codes excluded from resolution

    **Returns:**
        ReconciliationResult with per-chapter decisions and the
        cross-chapter ``code -> amount`` map of effective leaves

    **Example:**
        ```python
        result = resolve_amounts(rows, 2026, "rev_druhove")
        result.amounts["1111"]
        result.chapter_total("312")
        ```
    """
    rows = list(rows)
    separators = tuple(separators)
    names: dict[str, str] = {}
    for row in rows:
        if row.system == system and row.chapter_name:
            names.setdefault(row.chapter_code, row.chapter_name)

    result = ReconciliationResult(system=system, year=year)
    per_chapter = chapter_code_amounts(rows, year, system, total_codes=total_codes)
    for chapter_code, code_amounts in per_chapter.items():
        surviving, dropped, retained = drop_restated_composites(
            code_amounts, separators
        )
        leaves = effective_leaves(surviving)
        if dropped:
            logger.debug(
                "Chapter %s (%s): dropped restated composites %s",
                chapter_code,
                system,
                dropped,
            )
        if retained:
            logger.debug(
                "Chapter %s (%s): kept incomplete composites %s",
                chapter_code,
                system,
                retained,
            )
        resolution = ChapterResolution(
            chapter_code=chapter_code,
            chapter_name=names.get(chapter_code, ""),
            surviving=surviving,
            leaves=tuple(leaves),
            dropped_composites=tuple(dropped),
            retained_composites=tuple(retained),
        )
        result.chapters[chapter_code] = resolution
        for code in leaves:
            result.amounts[code] = result.amounts.get(code, 0) + surviving[code]
    return result


def family_total(amounts: Mapping[str, int], prefixes: Iterable[str]) -> int:
    """Sum amounts of every code starting with one of ``prefixes``."""
    prefixes = tuple(prefixes)
    if not prefixes:
        return 0
    return sum(value for code, value in amounts.items() if code.startswith(prefixes))


def leaves_from_classification(
    classification: Iterable[ClassificationRow], system: str
) -> set[str]:
    """
    Leaf codes according to the classification table's ``is_leaf`` flag.

    Lower-fidelity fallback: the flag is global, so a stale classification
    table double counts or drops amounts that the data-driven resolver
    keeps correct. Use :func:`resolve_amounts` whenever rows are available.
    """
    warnings.warn(
        "Classification is_leaf flags ignore chapter-level reporting; "
        "prefer resolve_amounts() for reported rows",
        UserWarning,
        stacklevel=2,
    )
    return {
        row.code
        for row in classification
        if row.system == system and row.is_leaf and not row.is_total
    }


def resolve_amounts_from_classification(
    rows: Iterable[BudgetRow],
    classification: Iterable[ClassificationRow],
    year: int | None,
    system: str,
) -> dict[str, int]:
    """``code -> amount`` taking only codes flagged ``is_leaf`` (fallback strategy)."""
    leaves = leaves_from_classification(classification, system)
    amounts: dict[str, int] = {}
    for row in rows:
        if row.system != system or (year is not None and row.year != year):
            continue
        if row.class_code in leaves:
            amounts[row.class_code] = amounts.get(row.class_code, 0) + abs(row.amount)
    return amounts
