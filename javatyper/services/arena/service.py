from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from javatyper.services.extractor.schema import Example

from .schema import (
    CharStatus,
    CompareMode,
    KeyEvent,
    PracticeState,
    PracticeView,
    RunKind,
    RunTicket,
    TypingState,
)

DEFAULT_AUTO_ADVANCE_SECONDS = 3.0
NO_EXAMPLES_MESSAGE = "No examples available"

_BLOCK_COMMENT = re.compile(r"/\*[\s\S]*?\*/")
_LINE_COMMENT = re.compile(r"(^|\s)//[^\n]*", re.MULTILINE)


def char_statuses(target: str, typed: str) -> List[CharStatus]:
    statuses: List[CharStatus] = []
    for index, expected in enumerate(target):
        if index >= len(typed):
            statuses.append("pending")
        elif typed[index] == expected:
            statuses.append("correct")
        else:
            statuses.append("incorrect")
    return statuses


def strip_comments(source: str) -> str:
    without_blocks = _BLOCK_COMMENT.sub("", source)
    return _LINE_COMMENT.sub(lambda match: match.group(1), without_blocks)


def _comparable(text: str, mode: CompareMode) -> str:
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if mode is CompareMode.IGNORE_COMMENTS:
        lines = strip_comments("\n".join(lines)).split("\n")
        return "\n".join(line.rstrip() for line in lines if line.strip())
    return "\n".join(line.lstrip() for line in lines).strip()


def is_complete(typed: str, target: str, mode: CompareMode = CompareMode.STRICT) -> bool:
    if mode is CompareMode.STRICT:
        return typed == target
    if not typed:
        return False
    return _comparable(typed, mode) == _comparable(target, mode)


class TypingEngine:
    """Character-by-character matcher for one target snippet.

    Every transition returns a new ``TypingState``; callers pass the current
    wall-clock time in so the engine never schedules anything itself.
    """

    def __init__(self, *, tab_advances: bool = True) -> None:
        self.tab_advances = tab_advances

    def start(self, target: str, mode: CompareMode = CompareMode.STRICT) -> TypingState:
        return TypingState(target=target, mode=mode)

    def on_key(self, state: TypingState, event: KeyEvent, now: float) -> TypingState:
        if state.completed:
            return state
        if event.kind == "backspace":
            if not state.typed:
                return state
            return self._accept(state, state.typed[:-1], now)
        if event.kind == "enter":
            return self._append(state, "\n" + self._indent_after(state), now)
        if event.kind == "tab":
            if self.tab_advances:
                return state
            return self._append(state, "\t", now)
        return self._append(state, event.char or "", now)

    def restart(self, state: TypingState) -> TypingState:
        return self.start(state.target, state.mode)

    @staticmethod
    def elapsed_ms(state: TypingState, now: float) -> int:
        if state.started_at is None:
            return 0
        end = state.finished_at if state.finished_at is not None else now
        return max(0, int(round((end - state.started_at) * 1000)))

    def _append(self, state: TypingState, text: str, now: float) -> TypingState:
        room = len(state.target) - len(state.typed)
        if room <= 0 or not text:
            return state
        return self._accept(state, state.typed + text[:room], now)

    @staticmethod
    def _indent_after(state: TypingState) -> str:
        # Auto-indent only when the newline itself lands on a target newline.
        at = len(state.typed)
        if state.target[at : at + 1] != "\n":
            return ""
        end = at + 1
        while end < len(state.target) and state.target[end] in " \t":
            end += 1
        return state.target[at + 1 : end]

    @staticmethod
    def _accept(state: TypingState, typed: str, now: float) -> TypingState:
        started_at = state.started_at if state.started_at is not None else now
        finished_at = now if is_complete(typed, state.target, state.mode) else None
        return state.model_copy(update={"typed": typed, "started_at": started_at, "finished_at": finished_at})


class PracticeSession:
    """Walks a list of examples, one active typing target at a time."""

    def __init__(
        self,
        engine: Optional[TypingEngine] = None,
        *,
        auto_advance_seconds: float = DEFAULT_AUTO_ADVANCE_SECONDS,
    ) -> None:
        self.engine = engine or TypingEngine()
        self.auto_advance_seconds = auto_advance_seconds

    # ------------------------------------------------------------------
    # Lifecycle and navigation
    # ------------------------------------------------------------------
    def start(
        self,
        examples: Sequence[Example],
        *,
        index: int = 0,
        mode: CompareMode = CompareMode.STRICT,
    ) -> PracticeState:
        state = PracticeState(examples=list(examples), mode=mode)
        return self._activate(state, index)

    def current(self, state: PracticeState) -> Optional[Example]:
        if not state.examples:
            return None
        return state.examples[state.index]

    def next(self, state: PracticeState) -> PracticeState:
        return self._activate(state, state.index + 1)

    def prev(self, state: PracticeState) -> PracticeState:
        return self._activate(state, state.index - 1)

    def select(self, state: PracticeState, index: int) -> PracticeState:
        return self._activate(state, index)

    def restart(self, state: PracticeState) -> PracticeState:
        if state.typing is None:
            return state
        return state.model_copy(update={"typing": self.engine.restart(state.typing), "advance_at": None})

    def on_key(self, state: PracticeState, event: KeyEvent, now: float) -> PracticeState:
        if state.typing is None:
            return state
        if event.kind == "enter" and state.typing.completed:
            return self.next(state)
        if event.kind == "tab" and self.engine.tab_advances:
            return self.next(state)
        typing = self.engine.on_key(state.typing, event, now)
        advance_at = state.advance_at
        if typing.completed and not state.typing.completed:
            advance_at = now + self.auto_advance_seconds
        return state.model_copy(update={"typing": typing, "advance_at": advance_at})

    def tick(self, state: PracticeState, now: float) -> PracticeState:
        if state.advance_at is not None and now >= state.advance_at:
            return self.next(state)
        return state

    # ------------------------------------------------------------------
    # Compile/run bookkeeping
    # ------------------------------------------------------------------
    def begin_run(self, state: PracticeState, kind: RunKind) -> Tuple[PracticeState, Optional[RunTicket]]:
        example = self.current(state)
        if example is None or state.typing is None or kind in state.runs_in_flight:
            return state, None
        source = state.typing.typed if kind == "typed" else example.code
        ticket = RunTicket(kind=kind, generation=state.generation, source=source)
        return state.model_copy(update={"runs_in_flight": state.runs_in_flight + (kind,)}), ticket

    def finish_run(self, state: PracticeState, ticket: RunTicket) -> Tuple[PracticeState, bool]:
        """Release the ticket; the flag says whether its result still applies."""
        if ticket.generation != state.generation:
            return state, False
        remaining = tuple(kind for kind in state.runs_in_flight if kind != ticket.kind)
        return state.model_copy(update={"runs_in_flight": remaining}), True

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def view(self, state: PracticeState, now: float) -> PracticeView:
        example = self.current(state)
        if example is None or state.typing is None:
            return PracticeView(index=0, total=0, mode=state.mode, message=NO_EXAMPLES_MESSAGE)
        typing = state.typing
        next_in = None
        if state.advance_at is not None:
            next_in = max(0.0, round(state.advance_at - now, 3))
        return PracticeView(
            index=state.index,
            total=len(state.examples),
            example=example,
            typed=typing.typed,
            statuses=char_statuses(typing.target, typing.typed),
            elapsed_ms=self.engine.elapsed_ms(typing, now),
            started=typing.started_at is not None,
            completed=typing.completed,
            next_in_s=next_in,
            mode=state.mode,
            runs_in_flight=list(state.runs_in_flight),
        )

    def _activate(self, state: PracticeState, index: int) -> PracticeState:
        # Any change of snippet drops typed text, the timer, the countdown and
        # in-flight runs, and invalidates tickets issued for the old snippet.
        if not state.examples:
            return state.model_copy(
                update={"index": 0, "typing": None, "advance_at": None, "runs_in_flight": ()}
            )
        index %= len(state.examples)
        typing = self.engine.start(state.examples[index].code, state.mode)
        return state.model_copy(
            update={
                "index": index,
                "typing": typing,
                "advance_at": None,
                "generation": state.generation + 1,
                "runs_in_flight": (),
            }
        )
