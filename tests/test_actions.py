"""Tests for event actions and confirmed-state polling."""

import os
import sys
from datetime import datetime, timedelta, timezone
from functools import partial
from unittest.mock import AsyncMock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from availability.actions import EventActions
from availability.calendar_providers.base import Attendee, EventDraft, ProviderEvent
from availability.errors import RemoteError
from availability.feedback import FeedbackBroadcaster
from availability.interaction import CreateRequest, DeleteRequest, UpdateRequest
from availability.refresh import poll_until

START = datetime(2025, 11, 10, 10, 0, tzinfo=timezone.utc)
END = START + timedelta(hours=1)


async def no_sleep(_delay):
    return None


def draft(**kwargs):
    return EventDraft(summary="Planning", start=START, end=END, **kwargs)


@pytest.fixture
def provider():
    p = AsyncMock()
    p.create_event.return_value = {"event_id": "evt_1", "html_link": ""}
    p.update_event.return_value = {"event_id": "evt_1"}
    p.delete_event.return_value = True
    p.respond_to_invitation.return_value = {"event_id": "evt_1"}
    p.list_events.return_value = []
    return p


@pytest.fixture
def feedback():
    return FeedbackBroadcaster("test")


@pytest.fixture
def actions(provider, feedback):
    poll = partial(poll_until, initial_delay=0, attempts=3, sleep=no_sleep)
    return EventActions(provider, calendar_id="primary", feedback=feedback, poll=poll)


# ── poll_until ──────────────────────────────────────────────────────


class TestPollUntil:
    async def test_backoff_sequence(self):
        delays = []

        async def sleep(delay):
            delays.append(delay)

        fetch = AsyncMock(return_value=[])
        result = await poll_until(
            fetch, lambda items: False,
            initial_delay=0.5, backoff=2.0, attempts=3, sleep=sleep,
        )

        assert delays == [0.5, 1.0, 2.0]
        assert fetch.await_count == 3
        assert not result.confirmed
        assert result.attempts == 3

    async def test_stops_once_confirmed(self):
        fetch = AsyncMock(side_effect=[[], ["x"], ["x", "y"]])
        result = await poll_until(
            fetch, lambda items: "x" in items,
            initial_delay=0, attempts=5, sleep=no_sleep,
        )

        assert result.confirmed
        assert result.items == ["x"]
        assert result.attempts == 2

    async def test_returns_last_fetch_when_unconfirmed(self):
        fetch = AsyncMock(side_effect=[["a"], ["b"]])
        result = await poll_until(
            fetch, lambda items: False, initial_delay=0, attempts=2, sleep=no_sleep,
        )
        assert result.items == ["b"]

    async def test_fetch_errors_propagate(self):
        fetch = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            await poll_until(fetch, lambda items: True, initial_delay=0, sleep=no_sleep)


# ── EventActions ────────────────────────────────────────────────────


class TestEventActions:
    async def test_create_confirms(self, actions, provider, feedback):
        provider.list_events.side_effect = [
            [],
            [ProviderEvent(id="evt_1", start=START, end=END)],
        ]

        outcome = await actions.create(draft())

        assert outcome.event_id == "evt_1"
        assert outcome.confirmed
        assert outcome.refresh.attempts == 2
        assert feedback.messages == ["Event created successfully!"]

        _, window_start, window_end = provider.list_events.call_args.args
        assert window_start == START - timedelta(days=1)
        assert window_end == END + timedelta(days=1)

    async def test_unconfirmed_write_is_flagged_stale(self, actions, feedback):
        outcome = await actions.create(draft())

        assert not outcome.confirmed
        assert [e["type"] for e in feedback.event_log] == ["success", "stale"]

    async def test_create_failure(self, actions, provider, feedback):
        provider.create_event.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(RemoteError, match="Failed to create event: quota exceeded"):
            await actions.create(draft())
        assert feedback.messages == ["Failed to create event: quota exceeded"]
        provider.list_events.assert_not_awaited()

    async def test_failure_without_message(self, actions, provider):
        provider.update_event.side_effect = RuntimeError()

        with pytest.raises(RemoteError, match="Failed to update event: Unknown error"):
            await actions.update("evt_1", draft())

    async def test_update_waits_for_new_times(self, actions, provider, feedback):
        provider.list_events.side_effect = [
            [ProviderEvent(id="evt_1", start=START - timedelta(hours=1), end=END)],
            [ProviderEvent(id="evt_1", start=START, end=END)],
        ]

        outcome = await actions.update("evt_1", draft())

        assert outcome.confirmed
        assert outcome.refresh.attempts == 2
        assert feedback.messages == ["Event updated successfully!"]

    async def test_delete(self, actions, provider, feedback):
        outcome = await actions.delete("evt_1", title="Planning", window=(START, END))

        provider.delete_event.assert_awaited_once_with("primary", "evt_1")
        assert outcome.confirmed
        assert feedback.messages == ['"Planning" deleted']

    async def test_delete_without_window_skips_poll(self, actions, provider):
        outcome = await actions.delete("evt_1")
        assert outcome.refresh is None
        provider.list_events.assert_not_awaited()

    async def test_refused_delete_fails(self, actions, provider):
        provider.delete_event.return_value = False

        with pytest.raises(RemoteError, match="Failed to delete event"):
            await actions.delete("evt_1", "Planning")

    async def test_respond(self, actions, provider, feedback):
        provider.list_events.return_value = [
            ProviderEvent(
                id="evt_1", start=START, end=END,
                attendees=[Attendee("me@example.com", response_status="declined")],
            )
        ]

        outcome = await actions.respond(
            "evt_1", "me@example.com", accepted=False, title="Planning", window=(START, END),
        )

        provider.respond_to_invitation.assert_awaited_once_with(
            "primary", "evt_1", "me@example.com", False
        )
        assert outcome.confirmed
        assert feedback.messages == ['Invitation declined: "Planning"']

    async def test_respond_failure(self, actions, provider):
        provider.respond_to_invitation.side_effect = ValueError("not invited")

        with pytest.raises(RemoteError, match="Failed to accept invitation: not invited"):
            await actions.respond("evt_1", "me@example.com", accepted=True)

    async def test_dispatch(self, actions, provider):
        await actions.dispatch(CreateRequest(draft=draft()))
        await actions.dispatch(UpdateRequest(event_id="evt_1", draft=draft()))
        await actions.dispatch(DeleteRequest(event_id="evt_1", title="Planning"))

        provider.create_event.assert_awaited_once()
        provider.update_event.assert_awaited_once()
        provider.delete_event.assert_awaited_once()

        with pytest.raises(TypeError):
            await actions.dispatch("nonsense")
