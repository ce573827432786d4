"""
Zoom/focus state machine for the partition layout.

A click moves the focus; every transition produces target rectangles for
the presentation layer to animate toward and schedules label re-measurement
for when the animation ends. Transitions carry a generation number and a
deferred task only applies its labels if its generation is still current,
so overlapping clicks cannot let an abandoned transition overwrite labels.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from .errors import UnknownNodeError
from .layout import LabelThresholds, Layout, measure_labels
from .records import Breadcrumb, FocusState, Label, Rect

logger = logging.getLogger(__name__)

__all__ = [
    "Cancellable",
    "ImmediateScheduler",
    "ScheduledTask",
    "Scheduler",
    "TimerScheduler",
    "Transition",
    "ZoomController",
    "focus_targets",
]


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs ``callback`` after ``delay`` seconds and returns a cancellable handle."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class TimerScheduler:
    """Scheduler backed by daemon ``threading.Timer`` threads."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class _NoopHandle:
    def cancel(self) -> None:
        pass


class ImmediateScheduler:
    """Runs callbacks synchronously; for batch use where nothing animates."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        callback()
        return _NoopHandle()


class ScheduledTask:
    """Deferred label re-measurement tagged with its transition generation."""

    def __init__(self, generation: int, callback: Callable[[int], None]):
        self.generation = generation
        self._callback = callback
        self._handle: Cancellable | None = None
        self._cancelled = False
        self._done = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._done

    def start(self, scheduler: Scheduler, delay: float) -> ScheduledTask:
        self._handle = scheduler.schedule(delay, self.run)
        return self

    def run(self) -> None:
        if self._cancelled or self._done:
            return
        self._done = True
        self._callback(self.generation)

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()


@dataclass(frozen=True, slots=True)
class Transition:
    """Result of one focus change, handed to the presentation layer."""

    generation: int
    focus: FocusState
    targets: dict[str, Rect]
    duration: float


def focus_targets(layout: Layout, focus_id: str) -> dict[str, Rect]:
    """
    Target rectangle of every node when ``focus_id`` fills the view.

    The value axis is rescaled so the focus spans ``[0, height]``; the depth
    axis is only translated so the focus column starts at 0.
    """
    focus = layout[focus_id]
    span = focus.x1 - focus.x0
    scale = layout.height / span if span > 0 else 0.0
    return {
        rect.id: Rect(
            x0=(rect.x0 - focus.x0) * scale,
            x1=(rect.x1 - focus.x0) * scale,
            y0=rect.y0 - focus.y0,
            y1=rect.y1 - focus.y0,
        )
        for rect in layout
    }


class ZoomController:
    """
    Focus state, targets and labels for one view.

    Each view owns its controller; two charts on a page never share
    generations or focus.

    **Example:**
        ```python
        zoom = ZoomController(layout)
        transition = zoom.click("31")
        for node_id, rect in transition.targets.items():
            animate(node_id, rect, transition.duration)
        ```
    """

    def __init__(
        self,
        layout: Layout,
        *,
        scheduler: Scheduler | None = None,
        duration: float = 0.75,
        thresholds: LabelThresholds = LabelThresholds(),
        label_max_length: int = 40,
        on_settled: Callable[[dict[str, Label], int], None] | None = None,
    ):
        self._layout = layout
        self._scheduler = scheduler or TimerScheduler()
        self._duration = duration
        self._thresholds = thresholds
        self._label_max_length = label_max_length
        self._on_settled = on_settled
        self._lock = threading.RLock()
        self._generation = 0
        self._pending: ScheduledTask | None = None
        self._focus_id = layout.root_id or ""
        self._labels = self._measure()

    @property
    def layout(self) -> Layout:
        return self._layout

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def focus_id(self) -> str:
        return self._focus_id

    @property
    def pending(self) -> ScheduledTask | None:
        return self._pending

    @property
    def labels(self) -> dict[str, Label]:
        with self._lock:
            return dict(self._labels)

    @property
    def state(self) -> FocusState:
        return FocusState(focus_id=self._focus_id, breadcrumbs=self.breadcrumbs())

    def breadcrumbs(self) -> tuple[Breadcrumb, ...]:
        """Ancestors of the focus, root excluded, focus included."""
        if not self._focus_id:
            return ()
        chain = self._layout.ancestors(self._focus_id)[1:]
        return tuple(Breadcrumb(id=rect.id, name=rect.name) for rect in chain)

    def click(self, node_id: str) -> Transition | None:
        """
        Apply a click on ``node_id``.

        Clicking the focus zooms out one level, clicking a node with
        children focuses it, clicking a leaf focuses its parent. Returns
        None when the focus does not change (clicking the root at root).
        """
        rect = self._layout[node_id]
        if node_id == self._focus_id:
            target = rect.parent_id
        elif rect.has_children:
            target = node_id
        else:
            target = rect.parent_id
        if target is None or target == self._focus_id:
            return None
        return self._transition(target)

    def click_breadcrumb(self, index: int) -> Transition | None:
        """Focus the breadcrumb at ``index``, dropping the crumbs after it."""
        crumbs = self.breadcrumbs()
        if not -len(crumbs) <= index < len(crumbs):
            raise IndexError(f"Breadcrumb index {index} out of range ({len(crumbs)})")
        return self.focus_on(crumbs[index].id)

    def reset(self) -> Transition | None:
        """Return the focus to the root."""
        if self._layout.root_id is None:
            return None
        return self.focus_on(self._layout.root_id)

    def focus_on(self, node_id: str) -> Transition | None:
        """Focus ``node_id`` directly, whatever its kind."""
        if node_id not in self._layout:
            raise UnknownNodeError(node_id)
        if node_id == self._focus_id:
            return None
        return self._transition(node_id)

    def settle(self, generation: int) -> bool:
        """
        Re-measure labels for ``generation`` if it is still current.

        Called by the deferred task once the animation window ends. Returns
        False for stale generations, which are discarded untouched.
        """
        with self._lock:
            if generation != self._generation:
                logger.debug(
                    "Discarding stale label task %d (current %d)",
                    generation,
                    self._generation,
                )
                return False
            self._labels = self._measure()
            self._pending = None
            labels = dict(self._labels)
        if self._on_settled is not None:
            self._on_settled(labels, generation)
        return True

    def cancel_pending(self) -> None:
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None

    def _transition(self, focus_id: str) -> Transition:
        with self._lock:
            targets = focus_targets(self._layout, focus_id)
            for rect in self._layout:
                rect.target = targets[rect.id]
            self._focus_id = focus_id
            self._generation += 1
            generation = self._generation
            if self._pending is not None:
                self._pending.cancel()
            task = ScheduledTask(generation, self.settle)
            self._pending = task
            transition = Transition(
                generation=generation,
                focus=self.state,
                targets=targets,
                duration=self._duration,
            )
        logger.debug("Focus -> %s (generation %d)", focus_id, generation)
        task.start(self._scheduler, self._duration)
        return transition

    def _measure(self) -> dict[str, Label]:
        return measure_labels(
            self._layout,
            thresholds=self._thresholds,
            max_length=self._label_max_length,
        )
