"""Pointer and touch gesture state machine for the availability grid.

One engine instance drives one grid. The UI shell forwards raw input
(pointer down/move/up on columns and events, touch start/move/end) and
receives zero or one request per completed gesture:

    idle ──pointer down on empty space──────────────▶ dragging
    idle ──touch start, held 500ms within 10px──────▶ dragging
    idle ──pointer/touch down on a focused event────▶ moving | resizingTop | resizingBottom
    dragging | moving | resizing* ──release─────────▶ committing ──▶ idle

Every active session is backed by exactly one set of global listeners (or,
for touch, one scroll lock), released on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Iterable, Optional, Sequence

from availability.calendar_providers.base import EventDraft, ProviderEvent
from availability.config import settings
from availability.converter import to_wall_clock
from availability.conflicts import has_overlap, is_past, validate_event_time
from availability.errors import (
    EventDataError,
    EventNotFoundError,
    IntervalValidationError,
)
from availability.feedback import FeedbackBroadcaster
from availability.grid import CoordinateMapper, event_at, materialize_events
from availability.interaction.payloads import (
    CreateRequest,
    DeleteRequest,
    EventRequest,
    Participant,
    UpdateRequest,
    build_attendees,
    default_title,
)
from availability.interaction.session import (
    ACTIVE_PHASE,
    DragSession,
    GestureKind,
    GesturePhase,
    GridSurface,
    ListenerScope,
    create_span,
    move_preview,
    resize_bottom_preview,
    resize_top_preview,
)
from availability.models.events import AvailabilityEvent
from availability.models.slots import DayAvailability

log = logging.getLogger("availability.interaction.engine")

RequestSink = Callable[[EventRequest], None]


class InteractionEngine:
    """Owns the single active gesture session of one grid.

    Pointer gestures are synchronous. Touch long-press needs a timer: pass
    ``scheduler`` (anything with ``call_later``), or call ``touch_start``
    from inside a running asyncio loop.
    """

    def __init__(
        self,
        surface: GridSurface,
        sink: Optional[RequestSink] = None,
        feedback: Optional[FeedbackBroadcaster] = None,
        tz: tzinfo = timezone.utc,
        clock: Optional[Callable[[], datetime]] = None,
        scheduler: Optional[asyncio.AbstractEventLoop] = None,
        viewer: Optional[Participant] = None,
        owner: Optional[Participant] = None,
        viewing_own: bool = True,
    ) -> None:
        self._surface = surface
        self._sink = sink
        self._feedback = feedback or FeedbackBroadcaster()
        self._tz = tz
        self._clock = clock or (lambda: datetime.now(tz))
        self._scheduler = scheduler
        self._viewer = viewer
        self._owner = owner
        self._viewing_own = viewing_own

        self._days: list[DayAvailability] = []
        self._events: list[AvailabilityEvent] = []
        self._provider_events: dict[str, ProviderEvent] = {}

        self._session: Optional[DragSession] = None
        self._phase = GesturePhase.IDLE
        self._listeners = ListenerScope()
        self._focused_id: Optional[str] = None

        # Touch long-press bookkeeping
        self._long_press = None
        self._touch_origin: Optional[tuple[float, float]] = None
        self._pending_create: Optional[tuple[int, float]] = None
        self._scroll_locked = False

    # ── Snapshot ────────────────────────────────────────────────────

    def update_snapshot(
        self,
        days: Sequence[DayAvailability],
        provider_events: Iterable[ProviderEvent] = (),
    ) -> list[AvailabilityEvent]:
        """Replace the day columns and provider events; re-place events on the grid."""
        provider_events = list(provider_events)
        self._days = list(days)
        self._provider_events = {e.id: e for e in provider_events}
        self._events = materialize_events(provider_events, self._days, self._tz)

        if self._focused_id and self._find_event(self._focused_id) is None:
            self._focused_id = None
        return list(self._events)

    @property
    def days(self) -> list[DayAvailability]:
        return list(self._days)

    @property
    def events(self) -> list[AvailabilityEvent]:
        return list(self._events)

    @property
    def feedback(self) -> FeedbackBroadcaster:
        return self._feedback

    @property
    def phase(self) -> GesturePhase:
        return self._phase

    @property
    def session(self) -> Optional[DragSession]:
        return self._session

    @property
    def preview(self) -> Optional[AvailabilityEvent]:
        """The interval currently being dragged, for rendering."""
        s = self._session
        if s is None:
            return None
        title = "New event"
        if s.event_id is not None:
            event = self._find_event(s.event_id)
            title = event.title if event else title
        return AvailabilityEvent(
            id=s.event_id or "preview",
            day_index=s.day_index,
            start_minutes=s.preview_start,
            duration_minutes=s.preview_duration,
            title=title,
            is_from_calendar=s.event_id is not None,
        )

    # ── Focus ───────────────────────────────────────────────────────

    @property
    def focused_event(self) -> Optional[AvailabilityEvent]:
        if self._focused_id is None:
            return None
        return self._find_event(self._focused_id)

    def focus_event(self, event_id: str) -> bool:
        if self._find_event(event_id) is None:
            return False
        self._focused_id = event_id
        return True

    def clear_focus(self) -> None:
        self._focused_id = None

    def delete_focused(self) -> Optional[DeleteRequest]:
        event = self.focused_event
        if event is None or not event.is_from_calendar:
            return None

        self._focused_id = None
        request = DeleteRequest(event_id=event.provider_id, title=event.title)
        self._emit(request)
        return request

    def edit_focused(self) -> Optional[UpdateRequest]:
        """Open the focused event for editing; the shell fills in the new fields."""
        event = self.focused_event
        if event is None or not event.is_from_calendar:
            return None

        if is_past(self._wall_clock(event.day_index, event.end_minutes), self._clock()):
            self._feedback.error("Cannot edit past events", reason="past_event")
            return None

        try:
            provider = self._provider_event(event)
            draft = provider.to_draft()
        except EventNotFoundError as exc:
            self._feedback.error(str(exc))
            return None
        except EventDataError as exc:
            log.warning("Cannot edit %s: %s", event.id, exc)
            self._feedback.error("Invalid event date/time")
            return None

        self._focused_id = None
        return UpdateRequest(event_id=provider.id, draft=draft)

    # ── Pointer ─────────────────────────────────────────────────────

    def pointer_down(self, day_index: int, y: float) -> bool:
        """Press on a day column. Starts drag-to-create on empty space."""
        if self._busy():
            return False

        mapper = self._mapper(day_index)
        if mapper is None:
            return False
        if event_at(day_index, y, self._events, mapper) is not None:
            return False

        self._begin_create(day_index, y, mapper, source="pointer")
        return True

    def event_pointer_down(self, event_id: str, kind: GestureKind, y: float) -> bool:
        """Press on an event body (MOVE) or one of its edge handles (RESIZE_*)."""
        return self._begin_reschedule(event_id, kind, y, source="pointer")

    def pointer_move(self, y: float) -> None:
        self._drag_to(y)

    def pointer_up(self) -> Optional[EventRequest]:
        return self._commit()

    def hover_minutes(self, day_index: int, y: float) -> Optional[int]:
        """Minutes under the cursor, for the hover indicator."""
        mapper = self._mapper(day_index)
        if mapper is None:
            return None
        return mapper.minutes_at(y)

    # ── Touch ───────────────────────────────────────────────────────

    def touch_start(self, day_index: int, x: float, y: float) -> bool:
        """Touch on a day column. Arms the long-press timer on empty space."""
        if self._busy():
            return False

        mapper = self._mapper(day_index)
        if mapper is None:
            return False
        if event_at(day_index, y, self._events, mapper) is not None:
            return False

        loop = self._loop()
        self._touch_origin = (x, y)
        self._pending_create = (day_index, y)
        self._phase = GesturePhase.PENDING
        self._lock_scroll(True)
        self._long_press = loop.call_later(
            settings.long_press_ms / 1000, self._fire_long_press
        )
        return True

    def event_touch_start(
        self, event_id: str, kind: GestureKind, x: float, y: float,
    ) -> bool:
        if not self._begin_reschedule(event_id, kind, y, source="touch"):
            return False
        self._touch_origin = (x, y)
        return True

    def touch_move(self, x: float, y: float) -> bool:
        """Returns True when the platform's native scroll should be suppressed."""
        if self._long_press is not None:
            ox, oy = self._touch_origin or (x, y)
            tolerance = settings.long_press_tolerance_px
            if abs(x - ox) > tolerance or abs(y - oy) > tolerance:
                log.debug("Touch moved before long-press fired; scrolling")
                self._cancel_long_press()
                return False
            return True

        if self._session is not None and self._session.source == "touch":
            self._drag_to(y)
            return True

        return False

    def touch_end(self) -> Optional[EventRequest]:
        if self._long_press is not None:
            self._cancel_long_press()
            return None

        self._touch_origin = None
        if self._session is not None and self._session.source == "touch":
            return self._commit()
        return None

    def cancel(self) -> None:
        """Tear down any pending or active gesture without committing."""
        if self._long_press is not None:
            self._cancel_long_press()
        if self._session is not None:
            log.info("Discarding %s gesture on day %d",
                     self._session.kind.value, self._session.day_index)
            self._end_session()

    # ── Session lifecycle ───────────────────────────────────────────

    def _busy(self) -> bool:
        return self._session is not None or self._long_press is not None

    def _begin_create(
        self, day_index: int, y: float, mapper: CoordinateMapper, source: str,
    ) -> None:
        start, duration = create_span(mapper, y, y, settings.min_duration_minutes)
        self._begin(
            DragSession(
                kind=GestureKind.CREATE,
                day_index=day_index,
                original_start=start,
                original_duration=duration,
                preview_start=start,
                preview_duration=duration,
                origin_y=y,
                current_y=y,
                mapper=mapper,
                source=source,
            )
        )

    def _begin_reschedule(
        self, event_id: str, kind: GestureKind, y: float, source: str,
    ) -> bool:
        if self._busy() or kind == GestureKind.CREATE:
            return False

        event = self._find_event(event_id)
        if event is None or not event.is_from_calendar:
            return False
        if self._focused_id != event_id:
            return False

        end = self._wall_clock(event.day_index, event.end_minutes)
        if is_past(end, self._clock()):
            self._feedback.error("Cannot reschedule past events", reason="past_event")
            return False

        mapper = self._mapper(event.day_index)
        if mapper is None:
            return False

        self._begin(
            DragSession(
                kind=kind,
                day_index=event.day_index,
                original_start=event.start_minutes,
                original_duration=event.duration_minutes,
                preview_start=event.start_minutes,
                preview_duration=event.duration_minutes,
                origin_y=y,
                current_y=y,
                mapper=mapper,
                event_id=event_id,
                source=source,
            )
        )
        if source == "touch":
            self._vibrate(settings.drag_vibration_ms)
        return True

    def _begin(self, session: DragSession) -> None:
        self._session = session
        self._phase = ACTIVE_PHASE[session.kind]
        if session.source == "pointer":
            self._listeners.acquire(self._surface, self.pointer_move, self.pointer_up)
        else:
            self._lock_scroll(True)
        log.info("Gesture %s started on day %d at %d+%d min (%s)",
                 session.kind.value, session.day_index,
                 session.preview_start, session.preview_duration, session.source)

    def _end_session(self) -> None:
        self._listeners.release()
        self._lock_scroll(False)
        self._session = None
        self._phase = GesturePhase.IDLE

    def _drag_to(self, y: float) -> None:
        s = self._session
        if s is None:
            return

        s.current_y = y
        min_duration = settings.min_duration_minutes
        total = s.mapper.total_minutes

        if s.kind == GestureKind.CREATE:
            s.preview_start, s.preview_duration = create_span(
                s.mapper, s.origin_y, y, min_duration
            )
            return

        delta = s.mapper.to_minutes(y - s.origin_y)
        if s.kind == GestureKind.MOVE:
            preview = move_preview(s.original_start, s.original_duration, delta, total)
        elif s.kind == GestureKind.RESIZE_TOP:
            preview = resize_top_preview(
                s.original_start, s.original_duration, delta, min_duration
            )
        else:
            preview = resize_bottom_preview(
                s.original_start, s.original_duration, delta, min_duration, total
            )
        s.preview_start, s.preview_duration = preview

    # ── Commit ──────────────────────────────────────────────────────

    def _commit(self) -> Optional[EventRequest]:
        s = self._session
        if s is None:
            return None

        self._phase = GesturePhase.COMMITTING
        request: Optional[EventRequest] = None
        try:
            if s.kind == GestureKind.CREATE:
                request = self._commit_create(s)
            else:
                request = self._commit_reschedule(s)
        except IntervalValidationError as exc:
            log.info("Gesture %s rejected (%s): %s", s.kind.value, exc.reason, exc.message)
            self._feedback.error(exc.message, reason=exc.reason)
        except EventNotFoundError as exc:
            log.warning("Gesture %s on %s: %s", s.kind.value, s.event_id, exc)
            self._feedback.error(str(exc))
        except EventDataError as exc:
            log.warning("Gesture %s on %s: %s", s.kind.value, s.event_id, exc)
            self._feedback.error("Invalid event date/time")
        finally:
            self._end_session()

        if request is not None:
            self._emit(request)
        return request

    def _commit_create(self, s: DragSession) -> CreateRequest:
        if has_overlap(s.day_index, s.preview_start, s.preview_duration, self._events):
            raise IntervalValidationError("Cannot create overlapping events", "overlap")

        start = self._wall_clock(s.day_index, s.preview_start)
        end = start + timedelta(minutes=s.preview_duration)
        validate_event_time(start, end, self._clock())

        draft_attendees = build_attendees(self._viewer, self._owner, self._viewing_own)
        return CreateRequest(
            draft=EventDraft(
                summary=default_title(start),
                start=start,
                end=end,
                attendees=draft_attendees,
                conference=True,
            )
        )

    def _commit_reschedule(self, s: DragSession) -> UpdateRequest:
        action = "reschedule" if s.kind == GestureKind.MOVE else "resize"

        if has_overlap(
            s.day_index, s.preview_start, s.preview_duration, self._events,
            exclude_id=s.event_id,
        ):
            raise IntervalValidationError(
                f"Cannot {action}: would overlap with another event", "overlap"
            )

        start = self._wall_clock(s.day_index, s.preview_start)
        end = start + timedelta(minutes=s.preview_duration)
        try:
            validate_event_time(start, end, self._clock())
        except IntervalValidationError as exc:
            if exc.reason == "past":
                raise IntervalValidationError(
                    f"Cannot {action} to past time", "past"
                ) from exc
            raise

        event = self._find_event(s.event_id)
        if event is None:
            raise EventNotFoundError("Event not found")
        provider = self._provider_event(event)
        return UpdateRequest(
            event_id=provider.id,
            draft=provider.to_draft().with_times(start, end),
        )

    # ── Helpers ─────────────────────────────────────────────────────

    def _emit(self, request: EventRequest) -> None:
        log.info("Emitting %s", type(request).__name__)
        if self._sink is not None:
            self._sink(request)

    def _find_event(self, event_id: Optional[str]) -> Optional[AvailabilityEvent]:
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    def _provider_event(self, event: AvailabilityEvent) -> ProviderEvent:
        provider = self._provider_events.get(event.provider_id)
        if provider is None:
            raise EventNotFoundError("Event not found")
        return provider

    def _day(self, day_index: int) -> Optional[DayAvailability]:
        if 0 <= day_index < len(self._days):
            return self._days[day_index]
        return None

    def _mapper(self, day_index: int) -> Optional[CoordinateMapper]:
        day = self._day(day_index)
        if day is None or day.total_minutes <= 0:
            return None
        height = self._surface.column_height(day_index)
        if height <= 0:
            return None
        return CoordinateMapper(height, day.total_minutes)

    def _wall_clock(self, day_index: int, offset_minutes: int) -> datetime:
        """Grid offset → aware datetime in the viewer's zone."""
        day = self._days[day_index]
        window = day.window
        base = window.start_minutes if window is not None else 0
        return to_wall_clock(day.date, base + offset_minutes, self._tz)

    def _loop(self) -> asyncio.AbstractEventLoop:
        if self._scheduler is None:
            try:
                self._scheduler = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise RuntimeError(
                    "Touch gestures need a running event loop or a scheduler"
                ) from exc
        return self._scheduler

    def _fire_long_press(self) -> None:
        self._long_press = None
        pending, self._pending_create = self._pending_create, None
        if pending is None or self._session is not None:
            return

        day_index, y = pending
        mapper = self._mapper(day_index)
        if mapper is None:
            self._phase = GesturePhase.IDLE
            self._lock_scroll(False)
            return

        self._vibrate(settings.long_press_vibration_ms)
        self._begin_create(day_index, y, mapper, source="touch")

    def _cancel_long_press(self) -> None:
        handle, self._long_press = self._long_press, None
        if handle is not None:
            handle.cancel()
        self._pending_create = None
        self._touch_origin = None
        self._phase = GesturePhase.IDLE
        self._lock_scroll(False)

    def _lock_scroll(self, locked: bool) -> None:
        if self._scroll_locked == locked:
            return
        self._scroll_locked = locked
        self._surface.set_scroll_locked(locked)
        self._feedback.emit("scroll_lock", data={"locked": locked})

    def _vibrate(self, milliseconds: int) -> None:
        self._surface.vibrate(milliseconds)
        self._feedback.emit("haptic", data={"ms": milliseconds})
