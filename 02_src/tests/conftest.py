"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gateway.config import Settings  # noqa: E402
from gateway.errors import AssistantAPIError  # noqa: E402
from gateway.models import Run, RunStatus, ThreadMessage, ToolCall  # noqa: E402


def make_run(run_id: str, status: str, *calls: ToolCall) -> Run:
    """Build a Run snapshot for scripted polls."""
    return Run(id=run_id, status=RunStatus(status), tool_calls=list(calls))


class FakeAssistant:
    """Scripted stand-in for the assistant API.

    ``polls`` is consumed one snapshot per get_run; the last snapshot repeats.
    """

    def __init__(self):
        self.threads_created = 0
        self.added: list[tuple[str, object]] = []
        self.cancelled: list[tuple[str, str]] = []
        self.created_runs: list[str] = []
        self.submissions: list[tuple[str, list[dict]]] = []
        self.get_run_calls = 0

        self.active_runs: list[Run] = []
        self.create_run_errors: list[Exception] = []
        self.cancel_errors: dict[str, Exception] = {}
        self.submit_errors: list[Exception] = []
        self.polls: list[tuple[str, list[ToolCall]]] = [("completed", [])]
        self.messages: list[ThreadMessage] = []
        self.reply_text = "ราคาทำความสะอาดที่นอน 6 ฟุต 1,900 บาทค่ะ"

    async def create_thread(self) -> str:
        self.threads_created += 1
        return f"thread_{self.threads_created}"

    async def add_message(self, thread_id: str, content) -> None:
        self.added.append((thread_id, content))

    async def list_runs(self, thread_id: str) -> list[Run]:
        return list(self.active_runs)

    async def cancel_run(self, thread_id: str, run_id: str) -> None:
        if run_id in self.cancel_errors:
            raise self.cancel_errors[run_id]
        self.cancelled.append((thread_id, run_id))

    async def create_run(self, thread_id: str, assistant_id: str) -> Run:
        if self.create_run_errors:
            raise self.create_run_errors.pop(0)
        run_id = f"run_{len(self.created_runs) + 1}"
        self.created_runs.append(run_id)
        return Run(id=run_id, status=RunStatus.QUEUED)

    async def get_run(self, thread_id: str, run_id: str) -> Run:
        self.get_run_calls += 1
        status, calls = self.polls[0] if len(self.polls) == 1 else self.polls.pop(0)
        return make_run(run_id, status, *calls)

    async def submit_tool_outputs(self, thread_id: str, run_id: str, outputs: list[dict]) -> None:
        if self.submit_errors:
            raise self.submit_errors.pop(0)
        self.submissions.append((run_id, outputs))

    async def list_messages(self, thread_id: str) -> list[ThreadMessage]:
        if self.messages:
            return list(self.messages)
        run_id = self.created_runs[-1] if self.created_runs else None
        return [
            ThreadMessage(id="msg_2", role="assistant", text=self.reply_text, run_id=run_id),
            ThreadMessage(id="msg_1", role="user", text="question", run_id=None),
        ]


def conflict_error(run_id: str = "R7") -> AssistantAPIError:
    return AssistantAPIError(
        status_code=400,
        message=f"Thread thread_1 already has an active run (id={run_id}).",
        error_type="invalid_request_error",
    )


class SleepRecorder:
    """Sleep replacement that records delays and returns immediately."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def settings():
    """Settings with credentials filled in and production timings."""
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        assistant_id="asst_test",
        line_channel_access_token="line-token",
        scheduling_url="https://scheduling.example/slots",
    )


@pytest.fixture
def fake_assistant():
    return FakeAssistant()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def tools():
    """Dispatch table with recording handlers instead of real tools."""
    from gateway.tools import ToolDispatchTable

    table = ToolDispatchTable()
    table.register("get_ncs_pricing", Mock(return_value="ราคา 1,900 บาท"))
    table.register("get_available_slots_with_months", AsyncMock(return_value="ว่าง 5, 12"))
    return table


@pytest.fixture
def orchestrator(fake_assistant, settings, tools, sleeper):
    """RunOrchestrator wired to the scripted assistant."""
    from gateway.orchestration import AnswerCache, ReplyClassifier, RunOrchestrator
    from gateway.sessions import SessionRegistry

    classifier = ReplyClassifier(settings.min_reply_length)
    return RunOrchestrator(
        client=fake_assistant,
        sessions=SessionRegistry(fake_assistant),
        cache=AnswerCache(classifier),
        tools=tools,
        settings=settings,
        classifier=classifier,
        sleep=sleeper,
    )


@pytest.fixture
def event_bus():
    from gateway.event_bus import EventBus

    return EventBus()


@pytest_asyncio.fixture
async def tracker(event_bus):
    """Tracker subscribed to the bus."""
    from gateway.tracker import Tracker

    tr = Tracker(event_bus)
    await tr.start()
    yield tr
    await tr.stop()
