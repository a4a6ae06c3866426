"""Tests for the run state machine."""

from gateway.models import Run, RunStatus, ToolCall
from gateway.orchestration import PollAction, RunTracker, can_transition

CALLS = [ToolCall("call_1", "get_ncs_pricing", "{}"), ToolCall("call_2", "get_ncs_pricing", "{}")]


def run(status: RunStatus, calls=()) -> Run:
    return Run(id="run_1", status=status, tool_calls=list(calls))


class TestTransitions:

    def test_expected(self):
        assert can_transition(RunStatus.QUEUED, RunStatus.IN_PROGRESS)
        assert can_transition(RunStatus.REQUIRES_ACTION, RunStatus.QUEUED)
        assert can_transition(RunStatus.IN_PROGRESS, RunStatus.IN_PROGRESS)

    def test_terminal_states_are_final(self):
        assert not can_transition(RunStatus.COMPLETED, RunStatus.IN_PROGRESS)
        assert not can_transition(RunStatus.FAILED, RunStatus.QUEUED)


class TestRunTracker:

    def test_wait_while_running(self):
        tracker = RunTracker("run_1")

        assert tracker.observe(run(RunStatus.IN_PROGRESS)) is PollAction.WAIT
        assert tracker.polls == 1

    def test_dispatch_then_guard(self):
        tracker = RunTracker("run_1")

        assert tracker.observe(run(RunStatus.REQUIRES_ACTION, CALLS)) is PollAction.DISPATCH_TOOLS
        tracker.mark_submitted(("call_1", "call_2"))

        assert tracker.observe(run(RunStatus.REQUIRES_ACTION, CALLS)) is PollAction.AWAIT_SUBMITTED
        assert tracker.submissions == 1

    def test_guard_cleared_when_run_moves_on(self):
        tracker = RunTracker("run_1")
        tracker.observe(run(RunStatus.REQUIRES_ACTION, CALLS))
        tracker.mark_submitted(("call_1", "call_2"))

        tracker.observe(run(RunStatus.IN_PROGRESS))

        assert tracker.submitted is None
        assert tracker.observe(run(RunStatus.REQUIRES_ACTION, CALLS)) is PollAction.DISPATCH_TOOLS

    def test_different_batch_dispatched(self):
        tracker = RunTracker("run_1")
        tracker.mark_submitted(("call_1", "call_2"))

        action = tracker.observe(run(RunStatus.REQUIRES_ACTION, CALLS[:1]))

        assert action is PollAction.DISPATCH_TOOLS

    def test_completed_finishes(self):
        assert RunTracker("run_1").observe(run(RunStatus.COMPLETED)) is PollAction.FINISH

    def test_other_terminal_states_abandon(self):
        for status in (RunStatus.FAILED, RunStatus.CANCELLED, RunStatus.EXPIRED, RunStatus.INCOMPLETE):
            assert RunTracker("run_1").observe(run(status)) is PollAction.ABANDON
