from datetime import datetime, timedelta, timezone

import pytest

from notion_task_sync.models.operations import OperationKind, OperationStatus, ResourceType
from notion_task_sync.services.sync_state import OperationStateError, SyncState


class Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def state(clock):
    return SyncState(clock=clock)


def _start(state):
    return state.start_operation(OperationKind.UPDATE, ResourceType.PAGE, "page-1")


def test_ids_are_unique(state):
    assert len({_start(state) for _ in range(50)}) == 50


def test_completed_operation_is_evicted_after_one_second(state, clock):
    op_id = _start(state)
    state.mark_in_progress(op_id)
    state.complete_operation(op_id)
    assert state.get(op_id).status == OperationStatus.COMPLETED
    assert state.last_synced_at == clock.now

    clock.advance(0.5)
    assert state.get(op_id) is not None
    clock.advance(0.5)
    assert state.get(op_id) is None


def test_failed_operation_is_kept_for_five_seconds(state, clock):
    op_id = _start(state)
    state.mark_in_progress(op_id)
    state.fail_operation(op_id, "HTTP 500")

    descriptor = state.get(op_id)
    assert descriptor.status == OperationStatus.FAILED
    assert descriptor.error == "HTTP 500"
    clock.advance(4.9)
    assert state.snapshot() == [state.get(op_id)]
    clock.advance(0.1)
    assert state.snapshot() == []
    assert [entry.message for entry in state.errors] == ["HTTP 500"]


def test_transitions_are_strict(state):
    op_id = _start(state)
    with pytest.raises(OperationStateError):
        state.complete_operation(op_id)

    state.mark_in_progress(op_id)
    with pytest.raises(OperationStateError):
        state.mark_in_progress(op_id)

    state.complete_operation(op_id)
    with pytest.raises(OperationStateError):
        state.fail_operation(op_id, "late")
    assert state.get(op_id).status == OperationStatus.COMPLETED


def test_unknown_operation(state):
    with pytest.raises(OperationStateError):
        state.mark_in_progress("missing")


def test_errors_feed_keeps_last_ten(state):
    for index in range(12):
        op_id = _start(state)
        state.mark_in_progress(op_id)
        state.fail_operation(op_id, f"error {index}")
    assert [entry.message for entry in state.errors] == [f"error {index}" for index in range(2, 12)]

    state.clear_errors()
    assert not state.has_errors
