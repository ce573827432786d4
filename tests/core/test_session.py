"""
Tests for the per-view pipeline and session state.
"""

import json

import pytest
from budgetlab.core.config import DEFAULT_VIEWS, default_catalog
from budgetlab.core.errors import ConfigError, NoRenderableHierarchyError
from budgetlab.core.records import ClassificationRow
from budgetlab.core.session import BudgetDataset, BudgetSession, build_view
from budgetlab.core.zoom import ImmediateScheduler


def _build(dataset, key="exp_odvetvove", **kwargs):
    return build_view(
        dataset, DEFAULT_VIEWS[key], year=2026, width=900, height=600, **kwargs
    )


class TestBuildView:
    def test_expenditure_totals(self, dataset):
        view = _build(dataset)

        assert view.tree.value == 1080
        assert view.reconciliation.total == 1080
        assert view.tree.name == "Výdaje (odvětvové)"
        assert view.tree.find("3").value == 780
        assert view.tree.find("31").value == 600
        assert view.tree.find("5").value == 300

    def test_incomplete_composite_is_rendered(self, dataset):
        view = _build(dataset)

        composite = view.tree.find("31_32")
        assert composite.value == 80
        assert composite.name == "[31_32]"
        assert view.layout["31_32"].parent_id == "3"

    def test_code_leaf_in_one_chapter_with_subcodes_in_another(
        self, make_row, exp_classification
    ):
        dataset = BudgetDataset(
            rows=[
                make_row("A", "31", 500),
                make_row("B", "31", 100),
                make_row("B", "311", 100),
            ],
            classification=exp_classification,
        )
        view = _build(dataset)

        assert view.reconciliation.total == 600
        assert view.tree.value == 600
        assert view.tree.find("31").value == 600
        assert view.layout["31/"].parent_id == "31"
        assert view.layout["31/"].value == 500

    def test_zero_branches_and_totals_are_not_rendered(self, dataset):
        view = _build(dataset)

        assert "6" not in view.layout
        assert "0" not in view.layout
        assert view.hierarchy.find("6") is not None

    def test_revenue_view(self, dataset):
        view = _build(dataset, "revenues")

        assert view.tree.value == 1000
        eleven = view.tree.find("11")
        assert {child.id: child.value for child in eleven.children} == {
            "111": 500,
            "112": 300,
            "111 a 112": 200,
        }
        assert view.reconciliation.chapters["312"].dropped_composites == ("111 a 112",)

    def test_root_is_laid_out_over_full_height(self, dataset):
        view = _build(dataset)
        root = view.layout[view.layout.root_id]

        assert (root.x0, root.x1) == (0.0, 600.0)
        assert view.layout.column_width == 300.0

    def test_no_data_for_year(self, dataset):
        view = build_view(
            dataset, DEFAULT_VIEWS["exp_odvetvove"], year=1999, width=900, height=600
        )
        assert view.is_empty
        assert view.layout.is_empty
        assert view.tree.value is None

    def test_no_classification_rows(self, exp_rows):
        view = _build(BudgetDataset(rows=exp_rows))
        assert view.is_empty

    def test_unrenderable_classification(self):
        dataset = BudgetDataset(
            classification=[
                ClassificationRow(
                    system="exp_odvetvove", code="31", name="", parent_code="3"
                )
            ]
        )
        with pytest.raises(NoRenderableHierarchyError):
            _build(dataset)

    def test_descriptor_names_win(self, dataset):
        dataset.descriptors["exp_odvetvove"] = [{"id": "5", "name": "Obrana"}]
        view = _build(dataset)
        assert view.tree.find("5").name == "Obrana"


class TestBudgetSession:
    @pytest.fixture
    def session(self, dataset):
        return BudgetSession(
            dataset,
            view="exp_odvetvove",
            width=900,
            height=600,
            scheduler=ImmediateScheduler(),
        )

    def test_defaults_to_first_catalog_view(self, dataset):
        session = BudgetSession(dataset, scheduler=ImmediateScheduler())
        assert session.view.view.key == "revenues"
        assert session.state.focus_id == "root"

    def test_click_and_breadcrumbs(self, session):
        session.click("3")
        session.click("31")

        assert session.state.focus_id == "31"
        assert [c.name for c in session.state.breadcrumbs] == [
            "Služby pro obyvatelstvo",
            "Vzdělávání",
        ]
        session.click_breadcrumb(0)
        assert session.state.focus_id == "3"

    def test_select_resets_focus(self, session):
        session.click("3")
        session.select("revenues")

        assert session.view.view.key == "revenues"
        assert session.state.focus_id == "root"
        assert session.state.breadcrumbs == ()

    def test_select_unknown_view(self, session):
        with pytest.raises(ConfigError):
            session.select("nope")
        assert session.view.view.key == "exp_odvetvove"
        assert session.state.focus_id == "root"

    def test_unknown_initial_view(self, dataset):
        with pytest.raises(ConfigError):
            BudgetSession(dataset, view="nope", scheduler=ImmediateScheduler())

    def test_resize_keeps_focus(self, session):
        session.click("3")
        session.resize(1200, 400)

        assert session.layout.width == 1200.0
        assert session.layout.column_width == 400.0
        assert session.state.focus_id == "3"
        assert session.layout["3"].target.x1 == pytest.approx(400.0)

    def test_refresh_drops_vanished_focus(self, session, dataset):
        session.click("5")
        trimmed = BudgetDataset(
            rows=[row for row in dataset.rows if row.chapter_code != "314"],
            classification=dataset.classification,
        )
        session.refresh(trimmed)

        assert "5" not in session.layout
        assert session.state.focus_id == "root"

    def test_rebuild_cancels_pending_labels(self, dataset, scheduler):
        session = BudgetSession(dataset, view="exp_odvetvove", scheduler=scheduler)
        session.click("3")
        pending = scheduler.handles[0]
        session.select("revenues")

        assert pending.cancelled


def test_dataset_from_directory(tmp_path):
    (tmp_path / "fact_expenditures_by_chapter.csv").write_text(
        "year,kind,system,page_number,chapter_code,chapter_name,class_code,amount_czk\n"
        "2026,exp,exp_odvetvove,1,333,MŠMT,31,100\n"
        "2026,exp,exp_druhove,1,333,MŠMT,5,100\n",
        encoding="utf-8",
    )
    (tmp_path / "fact_revenues_by_chapter.csv").write_text(
        "year,kind,system,page_number,chapter_code,chapter_name,class_code,amount_czk\n"
        "2026,rev,rev_druhove,1,312,MF,1,50\n",
        encoding="utf-8",
    )
    (tmp_path / "dim_classification.csv").write_text(
        "kind,system,code,name,parent_code,level,is_leaf,is_total\n"
        "exp,exp_odvetvove,3,Služby,,1,False,False\n"
        "exp,exp_odvetvove,31,Vzdělávání,3,2,True,False\n",
        encoding="utf-8",
    )
    (tmp_path / "dim_chapter.csv").write_text(
        "chapter_code,chapter_name\n333,MŠMT\n", encoding="utf-8"
    )
    (tmp_path / "tree_exp_odvetvove.json").write_text(
        json.dumps({"id": "0", "name": "Celkem", "children": [{"id": "3", "name": "Sektor 3"}]}),
        encoding="utf-8",
    )

    dataset = BudgetDataset.from_directory(tmp_path, default_catalog())

    # Two views share the expenditure file; it is read once.
    assert len(dataset.rows) == 3
    assert dataset.chapters == {"333": "MŠMT"}
    assert set(dataset.descriptors) == {"exp_odvetvove"}

    view = _build(dataset)
    assert view.tree.value == 100
    assert view.tree.find("3").name == "Sektor 3"
