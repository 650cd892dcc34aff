"""Typing match engine and practice-session navigation."""

from .schema import CompareMode, KeyEvent, PracticeState, PracticeView, RunTicket, TypingState
from .service import PracticeSession, TypingEngine, char_statuses, is_complete, strip_comments

__all__ = [
    "CompareMode",
    "KeyEvent",
    "PracticeSession",
    "PracticeState",
    "PracticeView",
    "RunTicket",
    "TypingEngine",
    "TypingState",
    "char_statuses",
    "is_complete",
    "strip_comments",
]
