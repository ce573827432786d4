"""
Shared fixtures: a small two-system budget with the usual reporting quirks.

Expenditures (``exp_odvetvove``):
- chapter 333 reports 3 > 31 > {311, 312} and 32, plus the composite 31_32
  which restates 31 + 32 and must be dropped
- chapter 336 reports only 31_32 (incomplete composite, kept)
- chapter 314 reports 5 > 52
- chapter 306 reports code 6 with an unparsable amount (read as 0)

Revenues (``rev_druhove``):
- chapter 312 reports 111, 112 and the restating composite "111 a 112"
- chapter 398 reports only "111 a 112"
"""

from __future__ import annotations

import pytest
from budgetlab.core.records import BudgetKind, BudgetRow, ClassificationRow
from budgetlab.core.session import BudgetDataset

EXP = "exp_odvetvove"
REV = "rev_druhove"


def _row(chapter, code, amount, system=EXP, year=2026, kind=BudgetKind.EXPENDITURE):
    return BudgetRow(
        year=year,
        kind=kind,
        system=system,
        chapter_code=chapter,
        chapter_name=f"Kapitola {chapter}",
        class_code=code,
        amount=amount,
    )


def _cls(code, name, parent="", level=1, system=EXP, is_total=False):
    return ClassificationRow(
        system=system,
        code=code,
        name=name,
        parent_code=parent,
        level=level,
        is_total=is_total,
    )


@pytest.fixture
def make_row():
    return _row


@pytest.fixture
def make_class():
    return _cls


@pytest.fixture
def exp_classification():
    return [
        _cls("0", "Celkem", is_total=True, level=0),
        _cls("3", "Služby pro obyvatelstvo"),
        _cls("31", "Vzdělávání", parent="3", level=2),
        _cls("311", "Zájmové vzdělávání", parent="31", level=3),
        _cls("312", "Vysoké školy", parent="31", level=3),
        _cls("32", "Kultura", parent="3", level=2),
        _cls("5", "Bezpečnost státu"),
        _cls("52", "Civilní připravenost", parent="5", level=2),
        _cls("6", "Všeobecná veřejná správa"),
    ]


@pytest.fixture
def rev_classification():
    return [
        _cls("0", "Celkem", is_total=True, level=0, system=REV),
        _cls("1", "Daňové příjmy", system=REV),
        _cls("11", "Daně z příjmů", parent="1", level=2, system=REV),
        _cls("111", "Daně fyzických osob", parent="11", level=3, system=REV),
        _cls("112", "Daně právnických osob", parent="11", level=3, system=REV),
    ]


@pytest.fixture
def exp_rows():
    return [
        _row("333", "0", 1000),
        _row("333", "3", 700),
        _row("333", "31", 600),
        _row("333", "311", 400),
        _row("333", "312", 200),
        _row("333", "32", 100),
        _row("333", "31_32", 700),
        _row("336", "0", 80),
        _row("336", "31_32", 80),
        _row("314", "0", 300),
        _row("314", "5", 300),
        _row("314", "52", 300),
        _row("306", "6", 0),
    ]


@pytest.fixture
def rev_rows():
    rev = dict(system=REV, kind=BudgetKind.REVENUE)
    return [
        _row("312", "0", 800, **rev),
        _row("312", "111", 500, **rev),
        _row("312", "112", 300, **rev),
        _row("312", "111 a 112", 800, **rev),
        _row("398", "0", 200, **rev),
        _row("398", "111 a 112", 200, **rev),
    ]


@pytest.fixture
def dataset(exp_rows, rev_rows, exp_classification, rev_classification):
    return BudgetDataset(
        rows=exp_rows + rev_rows,
        classification=exp_classification + rev_classification,
    )


class ManualHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Collects deferred callbacks; the test decides when they fire."""

    def __init__(self):
        self.handles = []

    def schedule(self, delay, callback):
        handle = ManualHandle(delay, callback)
        self.handles.append(handle)
        return handle

    def fire_pending(self):
        for handle in list(self.handles):
            if not handle.cancelled:
                handle.callback()
        self.handles.clear()


@pytest.fixture
def scheduler():
    return ManualScheduler()
