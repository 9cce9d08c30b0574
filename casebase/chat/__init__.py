"""Chat conversation module for CaseBase."""

from .completion_engine import ChatGPTCompletionEngine
from .orchestrator import ChatOrchestrator, CompletionEngine, ERROR_REPLY

__all__ = [
    "ChatGPTCompletionEngine",
    "ChatOrchestrator",
    "CompletionEngine",
    "ERROR_REPLY",
]
