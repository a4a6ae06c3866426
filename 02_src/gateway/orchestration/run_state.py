"""Run state machine: what to do after each poll of a remote run."""

from dataclasses import dataclass
from enum import Enum

from ..logging_config import get_logger
from ..models import Run, RunStatus, ToolCallSignature

logger = get_logger(__name__)

# Transitions the remote side is expected to make. Anything else is logged,
# not rejected: the remote is the source of truth.
VALID_TRANSITIONS = {
    RunStatus.QUEUED: {RunStatus.IN_PROGRESS, RunStatus.CANCELLING, RunStatus.CANCELLED,
                       RunStatus.FAILED, RunStatus.EXPIRED},
    RunStatus.IN_PROGRESS: {RunStatus.REQUIRES_ACTION, RunStatus.COMPLETED, RunStatus.FAILED,
                            RunStatus.CANCELLING, RunStatus.INCOMPLETE, RunStatus.EXPIRED},
    RunStatus.REQUIRES_ACTION: {RunStatus.IN_PROGRESS, RunStatus.QUEUED, RunStatus.CANCELLING,
                                RunStatus.FAILED, RunStatus.EXPIRED, RunStatus.COMPLETED},
    RunStatus.CANCELLING: {RunStatus.CANCELLED, RunStatus.COMPLETED, RunStatus.FAILED},
}


def can_transition(from_status: RunStatus, to_status: RunStatus) -> bool:
    """Check if a status change is one the remote protocol allows."""
    if from_status == to_status:
        return True
    return to_status in VALID_TRANSITIONS.get(from_status, set())


class PollAction(str, Enum):
    """Decision taken after one poll."""

    WAIT = "wait"
    DISPATCH_TOOLS = "dispatch_tools"
    AWAIT_SUBMITTED = "await_submitted"
    FINISH = "finish"
    ABANDON = "abandon"


@dataclass
class RunTracker:
    """Per-run poll state, including the resubmission guard.

    ``submitted`` holds the signature of the tool-call batch already answered
    and not yet processed by the remote side. It is cleared as soon as the run
    leaves ``requires_action``, so a later cycle is treated fresh.
    """

    run_id: str
    status: RunStatus = RunStatus.QUEUED
    submitted: ToolCallSignature | None = None
    polls: int = 0
    submissions: int = 0

    def observe(self, run: Run) -> PollAction:
        self.polls += 1
        previous, self.status = self.status, run.status

        if run.status is RunStatus.REQUIRES_ACTION and run.tool_calls:
            if self.submitted == run.signature:
                return PollAction.AWAIT_SUBMITTED
            return PollAction.DISPATCH_TOOLS

        if run.status is not RunStatus.REQUIRES_ACTION:
            self.submitted = None

        if run.status is RunStatus.COMPLETED:
            return PollAction.FINISH
        if run.status.is_terminal:
            return PollAction.ABANDON
        if not can_transition(previous, run.status):
            logger.warning(
                f"Unexpected run transition {previous.value} -> {run.status.value} "
                f"for run {self.run_id}"
            )
        return PollAction.WAIT

    def mark_submitted(self, signature: ToolCallSignature) -> None:
        self.submitted = signature
        self.submissions += 1
