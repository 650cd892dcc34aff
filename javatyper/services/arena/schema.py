from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator

from javatyper.services.extractor.schema import Example

KeyKind = Literal["char", "backspace", "enter", "tab"]
CharStatus = Literal["pending", "correct", "incorrect"]
RunKind = Literal["typed", "original"]
NavigateAction = Literal["next", "prev", "restart"]


class CompareMode(str, Enum):
    STRICT = "strict"
    IGNORE_COMMENTS = "ignore_comments"
    IGNORE_LEADING_WHITESPACE = "ignore_leading_whitespace"


class KeyEvent(BaseModel):
    kind: KeyKind
    char: Optional[str] = None

    @model_validator(mode="after")
    def _check_char(self) -> "KeyEvent":
        if self.kind == "char" and (self.char is None or len(self.char) != 1):
            raise ValueError("char events carry exactly one character")
        return self


class TypingState(BaseModel):
    model_config = ConfigDict(frozen=True)

    target: str
    typed: str = ""
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    mode: CompareMode = CompareMode.STRICT

    @property
    def completed(self) -> bool:
        return self.finished_at is not None


class RunTicket(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: RunKind
    generation: int
    source: str


class PracticeState(BaseModel):
    model_config = ConfigDict(frozen=True)

    examples: List[Example]
    index: int = 0
    typing: Optional[TypingState] = None
    mode: CompareMode = CompareMode.STRICT
    advance_at: Optional[float] = None
    generation: int = 0
    runs_in_flight: Tuple[RunKind, ...] = ()


class PracticeView(BaseModel):
    index: int
    total: int
    example: Optional[Example] = None
    typed: str = ""
    statuses: List[CharStatus] = []
    elapsed_ms: int = 0
    started: bool = False
    completed: bool = False
    next_in_s: Optional[float] = None
    mode: CompareMode = CompareMode.STRICT
    runs_in_flight: List[RunKind] = []
    message: Optional[str] = None
