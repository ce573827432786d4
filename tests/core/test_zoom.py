"""
Tests for the zoom/focus state machine.
"""

import threading

import pytest
from budgetlab.core.errors import UnknownNodeError
from budgetlab.core.layout import partition_layout
from budgetlab.core.records import Breadcrumb, Rect, TreeNode
from budgetlab.core.zoom import (
    ImmediateScheduler,
    ScheduledTask,
    ZoomController,
    focus_targets,
)

WIDTH, HEIGHT = 900.0, 500.0


@pytest.fixture
def layout():
    b2 = TreeNode(
        "B2",
        "Beta 2",
        (TreeNode("B2a", "Beta 2a", value=15), TreeNode("B2b", "Beta 2b", value=5)),
        value=20,
    )
    b = TreeNode("B", "Beta", (b2, TreeNode("B1", "Beta 1", value=10)), value=30)
    tree = TreeNode(
        "root",
        "Root",
        (TreeNode("A", "Alpha", value=60), b, TreeNode("C", "Gamma", value=10)),
        value=100,
    )
    return partition_layout(tree, WIDTH, HEIGHT, visible_columns=3)


@pytest.fixture
def zoom(layout, scheduler):
    return ZoomController(layout, scheduler=scheduler, duration=0.75)


class TestClicks:
    def test_initial_state(self, zoom):
        assert zoom.focus_id == "root"
        assert zoom.breadcrumbs() == ()
        assert zoom.generation == 0
        assert zoom.pending is None

    def test_click_node_with_children_focuses_it(self, zoom):
        transition = zoom.click("B")

        assert transition is not None
        assert zoom.focus_id == "B"
        assert transition.focus.focus_id == "B"
        assert transition.generation == 1
        assert transition.duration == 0.75
        assert zoom.breadcrumbs() == (Breadcrumb("B", "Beta"),)

    def test_click_focus_zooms_out(self, zoom):
        zoom.click("B")
        zoom.click("B")
        assert zoom.focus_id == "root"
        assert zoom.breadcrumbs() == ()

    def test_click_root_at_root_is_noop(self, zoom):
        assert zoom.click("root") is None
        assert zoom.generation == 0

    def test_click_leaf_focuses_parent(self, zoom):
        zoom.click("B1")
        assert zoom.focus_id == "B"

    def test_click_leaf_under_focus_is_noop(self, zoom):
        assert zoom.click("A") is None
        zoom.click("B")
        assert zoom.click("B1") is None
        assert zoom.focus_id == "B"
        assert zoom.generation == 1

    def test_unknown_node(self, zoom):
        with pytest.raises(UnknownNodeError):
            zoom.click("nope")
        with pytest.raises(KeyError):
            zoom.focus_on("nope")

    def test_breadcrumb_navigation(self, zoom):
        zoom.click("B")
        zoom.click("B2")
        assert [c.id for c in zoom.breadcrumbs()] == ["B", "B2"]

        zoom.click_breadcrumb(0)
        assert zoom.focus_id == "B"
        assert [c.id for c in zoom.state.breadcrumbs] == ["B"]

    def test_breadcrumb_out_of_range(self, zoom):
        zoom.click("B")
        with pytest.raises(IndexError):
            zoom.click_breadcrumb(1)

    def test_reset(self, zoom):
        zoom.click("B")
        zoom.click("B2")
        zoom.reset()
        assert zoom.focus_id == "root"
        assert zoom.reset() is None


class TestTargets:
    def test_focus_fills_value_axis(self, layout):
        targets = focus_targets(layout, "B")

        assert targets["B"].x0 == 0.0
        assert targets["B"].x1 == pytest.approx(HEIGHT)
        assert (targets["B"].y0, targets["B"].y1) == (0.0, 300.0)
        assert targets["B2"].x1 == pytest.approx(HEIGHT * 2 / 3)
        assert targets["A"].x1 == pytest.approx(0.0)

    def test_columns_never_resize(self, layout):
        for focus in ("root", "B", "B2"):
            for rect in focus_targets(layout, focus).values():
                assert rect.y1 - rect.y0 == pytest.approx(300.0)

    def test_depth_axis_is_translated(self, layout):
        targets = focus_targets(layout, "B2")
        assert targets["B2"].y0 == 0.0
        assert targets["B2a"].y0 == 300.0
        assert targets["root"].y0 == -600.0

    def test_root_targets_equal_layout(self, layout):
        targets = focus_targets(layout, "root")
        for rect in layout:
            assert targets[rect.id] == Rect(rect.x0, rect.x1, rect.y0, rect.y1)

    def test_click_updates_rect_targets(self, zoom, layout):
        transition = zoom.click("B")
        for rect in layout:
            assert rect.target == transition.targets[rect.id]


class TestDeferredLabels:
    def test_labels_wait_for_animation(self, zoom, scheduler):
        assert zoom.labels["A"].show_name

        zoom.click("B")
        assert zoom.labels["A"].show_name
        assert zoom.pending is not None
        assert scheduler.handles[0].delay == 0.75

        scheduler.fire_pending()
        assert not zoom.labels["A"].show_name
        assert zoom.labels["B2"].show_value
        assert zoom.pending is None

    def test_new_transition_cancels_pending(self, zoom, scheduler):
        zoom.click("B")
        first = scheduler.handles[0]
        zoom.click("B2")

        assert first.cancelled
        # A timer that fires anyway must not apply its labels.
        first.callback()
        assert zoom.labels["A"].show_name

        scheduler.handles[1].callback()
        assert not zoom.labels["A"].show_name
        assert zoom.labels["B2a"].show_value

    def test_stale_generation_is_discarded(self, zoom):
        zoom.click("B")
        zoom.click("B2")

        assert zoom.settle(1) is False
        assert zoom.labels["A"].show_name
        assert zoom.settle(2) is True
        assert not zoom.labels["A"].show_name

    def test_on_settled_callback(self, layout):
        seen = []
        zoom = ZoomController(
            layout,
            scheduler=ImmediateScheduler(),
            on_settled=lambda labels, generation: seen.append((generation, labels)),
        )
        zoom.click("B")

        assert [generation for generation, _ in seen] == [1]
        assert not seen[0][1]["A"].show_name
        assert zoom.pending is None

    def test_cancel_pending(self, zoom, scheduler):
        zoom.click("B")
        zoom.cancel_pending()

        assert zoom.pending is None
        assert scheduler.handles[0].cancelled

    def test_controllers_are_independent(self, layout, scheduler):
        other_layout = partition_layout(
            TreeNode(
                "root",
                "Other",
                (TreeNode("x", "X", (TreeNode("x1", "X1", value=1),), value=1),),
                value=1,
            ),
            WIDTH,
            HEIGHT,
        )
        first = ZoomController(layout, scheduler=scheduler)
        second = ZoomController(other_layout, scheduler=scheduler)

        first.click("B")
        first.click("B2")
        second.click("x")

        assert (first.generation, second.generation) == (2, 1)
        assert second.settle(1) is True
        assert first.settle(1) is False

    def test_timer_scheduler(self, layout):
        settled = threading.Event()
        zoom = ZoomController(
            layout,
            duration=0.01,
            on_settled=lambda labels, generation: settled.set(),
        )
        zoom.click("B")

        assert settled.wait(timeout=5)
        assert not zoom.labels["A"].show_name


def test_scheduled_task_runs_once():
    calls = []
    task = ScheduledTask(3, calls.append)
    task.start(ImmediateScheduler(), 0.0)
    task.run()

    assert calls == [3]
    assert task.done
    assert not task.cancelled
