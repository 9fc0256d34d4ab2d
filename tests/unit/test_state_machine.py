from __future__ import annotations

import logging

import pytest

from stock_import.client.state import (
    ProgressStateMachine,
    StreamFatalError,
    StreamState,
    consume_events,
)
from stock_import.models.events import (
    CompleteEvent,
    ProgressUpdateEvent,
    RowErrorEvent,
    RowSuccessEvent,
    StartEvent,
    parse_event,
)


def _events(payloads):
    return [parse_event(p) for p in payloads]


def test_happy_path_transitions(happy_stream):
    machine = ProgressStateMachine()
    events = _events(happy_stream)
    assert machine.state is StreamState.IDLE

    machine.handle(events[0])
    assert machine.state is StreamState.AWAITING_START
    assert machine.progress.current == 0
    assert machine.progress.total == 3

    machine.handle(events[1])
    assert machine.state is StreamState.IN_PROGRESS
    assert machine.progress.barcode == "A1"

    for event in events[2:-1]:
        assert machine.handle(event) is None
    assert machine.progress.current == 3

    summary = machine.handle(events[-1])
    assert machine.state is StreamState.COMPLETED
    assert machine.progress is None
    assert summary.inserted == 2
    assert summary.failed == 1
    assert machine.finish() is summary


def test_progress_going_backwards_keeps_previous_snapshot(caplog):
    machine = ProgressStateMachine()
    machine.handle(StartEvent(total=5))
    machine.handle(ProgressUpdateEvent(current=3, total=5, percentage=60, barcode="C"))
    with caplog.at_level(logging.WARNING):
        machine.handle(ProgressUpdateEvent(current=2, total=5, percentage=40, barcode="B"))
    assert machine.progress.current == 3
    assert machine.progress.barcode == "C"
    assert any("went backwards" in m for m in caplog.messages)


def test_row_error_does_not_stop_the_stream():
    machine = ProgressStateMachine()
    machine.handle(StartEvent(total=2))
    machine.handle(RowErrorEvent(row=1, message="bad row"))
    assert machine.state is StreamState.AWAITING_START
    assert [o.row for o in machine.aggregator.row_errors] == [1]


def test_fatal_error_fails_the_stream():
    machine = ProgressStateMachine()
    machine.handle(StartEvent(total=2))
    with pytest.raises(StreamFatalError, match="Warehouse not found"):
        machine.handle(RowErrorEvent(row=None, message="Warehouse not found"))
    assert machine.state is StreamState.FAILED
    assert machine.progress is None


def test_fatal_error_without_message_has_fallback_text():
    machine = ProgressStateMachine()
    with pytest.raises(StreamFatalError, match="import failed"):
        machine.handle(RowErrorEvent(row=None))


def test_truncated_stream_raises_on_finish():
    machine = ProgressStateMachine()
    machine.handle(StartEvent(total=2))
    machine.handle(ProgressUpdateEvent(current=1, total=2, percentage=50))
    with pytest.raises(StreamFatalError, match="ended before the import completed"):
        machine.finish()
    assert machine.state is StreamState.FAILED


def test_events_after_terminal_state_are_ignored(caplog):
    machine = ProgressStateMachine()
    summary = machine.handle(CompleteEvent(inserted=1, failed=0))
    with caplog.at_level(logging.WARNING):
        assert machine.handle(RowErrorEvent(row=None, message="late")) is None
        assert machine.handle(ProgressUpdateEvent(current=9, total=9, percentage=100)) is None
    assert machine.state is StreamState.COMPLETED
    assert machine.summary is summary
    assert sum("ignoring" in m for m in caplog.messages) == 2


def test_success_event_is_counted_but_does_not_change_state():
    machine = ProgressStateMachine()
    machine.handle(StartEvent(total=1))
    machine.handle(RowSuccessEvent(row=1))
    assert machine.state is StreamState.AWAITING_START
    assert machine.aggregator.row_successes == 1


def test_consume_events_reference_stream():
    payloads = [
        {"type": "start", "total": 3},
        {"type": "progress", "current": 1, "total": 3, "percentage": 33},
        {"type": "progress", "current": 2, "total": 3, "percentage": 67},
        {"type": "error", "row": 2, "message": "Duplicate entry 'X' for key 'barcode'"},
        {"type": "progress", "current": 3, "total": 3, "percentage": 100},
        {"type": "complete", "inserted": 2, "failed": 1},
    ]
    summary = consume_events(_events(payloads))
    assert summary.success is True
    assert summary.inserted == 2
    assert summary.failed == 1
    assert [r.row for r in summary.failed_rows] == [2]
    assert summary.updated == 1


def test_consume_events_callback_sees_events_in_order(happy_stream):
    events = _events(happy_stream)
    seen = []
    consume_events(events, on_progress=seen.append)
    assert seen == events


def test_consume_events_stops_at_complete():
    def events():
        yield StartEvent(total=1)
        yield CompleteEvent(inserted=1, failed=0)
        raise AssertionError("read past the complete event")

    summary = consume_events(events())
    assert summary.inserted == 1


def test_consume_events_fatal_error_propagates():
    events = [StartEvent(total=1), RowErrorEvent(row=None, message="Invalid payload")]
    seen = []
    with pytest.raises(StreamFatalError, match="Invalid payload"):
        consume_events(events, on_progress=seen.append)
    # the callback was told about the fatal event before it was raised
    assert seen == events


def test_consume_events_without_complete_raises():
    with pytest.raises(StreamFatalError):
        consume_events([StartEvent(total=1), ProgressUpdateEvent(current=1, total=1, percentage=100)])
