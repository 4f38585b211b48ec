"""Gesture session state and the preview arithmetic shared by all flows.

A gesture session is the single mutable cursor into the grid's
interaction state. It carries its own preview copy of the interval; the
grid events themselves are never mutated.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from availability.grid import CoordinateMapper

log = logging.getLogger("availability.interaction.session")


class GestureKind(str, Enum):
    CREATE = "create"
    MOVE = "move"
    RESIZE_TOP = "resizeTop"
    RESIZE_BOTTOM = "resizeBottom"


class GesturePhase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"            # touch long-press armed, not yet fired
    DRAGGING = "dragging"          # drag-to-create
    MOVING = "moving"
    RESIZING_TOP = "resizingTop"
    RESIZING_BOTTOM = "resizingBottom"
    COMMITTING = "committing"


ACTIVE_PHASE = {
    GestureKind.CREATE: GesturePhase.DRAGGING,
    GestureKind.MOVE: GesturePhase.MOVING,
    GestureKind.RESIZE_TOP: GesturePhase.RESIZING_TOP,
    GestureKind.RESIZE_BOTTOM: GesturePhase.RESIZING_BOTTOM,
}


@dataclass
class DragSession:
    kind: GestureKind
    day_index: int
    original_start: int
    original_duration: int
    preview_start: int
    preview_duration: int
    origin_y: float
    current_y: float
    mapper: CoordinateMapper
    event_id: Optional[str] = None
    source: str = "pointer"  # pointer | touch

    @property
    def preview_end(self) -> int:
        return self.preview_start + self.preview_duration


class GridSurface(ABC):
    """The UI shell's side of the grid.

    All ``y`` values exchanged with the engine are pixel offsets from the
    top of the day column.
    """

    @abstractmethod
    def column_height(self, day_index: int) -> float:
        """Rendered height of a day column, in pixels."""

    @abstractmethod
    def add_global_listeners(
        self,
        on_move: Callable[[float], None],
        on_up: Callable[[], None],
    ) -> Callable[[], None]:
        """Attach document-level pointer move/up listeners; return the detach callable."""

    def set_scroll_locked(self, locked: bool) -> None:
        """Suppress (or restore) the platform's native touch scrolling."""

    def vibrate(self, milliseconds: int) -> None:
        """Haptic cue, where the device supports one."""


class ListenerScope:
    """Global pointer listeners tied to one session: acquired once, released once."""

    def __init__(self) -> None:
        self._detach: Optional[Callable[[], None]] = None

    @property
    def active(self) -> bool:
        return self._detach is not None

    def acquire(
        self,
        surface: GridSurface,
        on_move: Callable[[float], None],
        on_up: Callable[[], None],
    ) -> None:
        if self._detach is not None:
            raise RuntimeError("Global listeners are already attached")
        self._detach = surface.add_global_listeners(on_move, on_up)
        log.debug("Global pointer listeners attached")

    def release(self) -> None:
        detach, self._detach = self._detach, None
        if detach is not None:
            detach()
            log.debug("Global pointer listeners detached")


# ── Preview arithmetic ──────────────────────────────────────────────


def create_span(
    mapper: CoordinateMapper,
    origin_y: float,
    current_y: float,
    min_duration: int,
) -> tuple[int, int]:
    """Interval covered by an empty-space drag, as ``(start, duration)``.

    Spans shorter than ``min_duration`` fall back to the floor, anchored at
    the drag origin and kept inside the window.
    """
    top, bottom = sorted((origin_y, current_y))
    start = max(0, mapper.to_minutes(top))
    end = min(mapper.total_minutes, mapper.to_minutes(bottom))

    if end - start >= min_duration:
        return start, end - start

    start = mapper.minutes_at(origin_y)
    start = min(start, max(0, mapper.total_minutes - min_duration))
    return start, min_duration


def move_preview(
    original_start: int, duration: int, delta: int, total_minutes: int,
) -> tuple[int, int]:
    start = max(0, original_start + delta)
    start = min(start, total_minutes - duration)
    return start, duration


def resize_top_preview(
    original_start: int, original_duration: int, delta: int, min_duration: int,
) -> tuple[int, int]:
    """Move the start boundary; the end never moves."""
    end = original_start + original_duration
    start = min(original_start + delta, end - min_duration)
    start = max(0, start)
    return start, end - start


def resize_bottom_preview(
    original_start: int,
    original_duration: int,
    delta: int,
    min_duration: int,
    total_minutes: int,
) -> tuple[int, int]:
    """Move the end boundary; the start never moves."""
    duration = max(min_duration, original_duration + delta)
    duration = min(duration, total_minutes - original_start)
    return original_start, duration
