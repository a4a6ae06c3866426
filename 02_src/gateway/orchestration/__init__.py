"""Orchestration module: run-and-poll protocol, reply classification, answer cache."""

from .answer_cache import AnswerCache
from .classifier import ReplyClassifier
from .orchestrator import RunOrchestrator, extract_active_run_id, extract_pricing_arguments
from .result import Result
from .run_state import PollAction, RunTracker, can_transition

__all__ = [
    "AnswerCache",
    "PollAction",
    "ReplyClassifier",
    "Result",
    "RunOrchestrator",
    "RunTracker",
    "can_transition",
    "extract_active_run_id",
    "extract_pricing_arguments",
]
