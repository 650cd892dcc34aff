import pytest
from pydantic import ValidationError

from javatyper.services.arena import (
    CompareMode,
    KeyEvent,
    PracticeSession,
    TypingEngine,
    char_statuses,
    is_complete,
    strip_comments,
)
from javatyper.services.extractor import Example


def _key(char: str) -> KeyEvent:
    if char == "\n":
        return KeyEvent(kind="enter")
    return KeyEvent(kind="char", char=char)


BACKSPACE = KeyEvent(kind="backspace")
ENTER = KeyEvent(kind="enter")
TAB = KeyEvent(kind="tab")


def _type(engine, state, text, now=0.0):
    for char in text:
        state = engine.on_key(state, _key(char), now)
    return state


def _examples(count: int = 3):
    return [
        Example(id=f"ex-{n}", title=f"Example {n}", filename=f"E{n}.java", code=f"class E{n}{{}}\n")
        for n in range(1, count + 1)
    ]


def test_completion_requires_exact_equality() -> None:
    engine = TypingEngine()
    target = "class A{}\n"

    almost = _type(engine, engine.start(target), "class A{}")
    assert almost.typed == "class A{}"
    assert not almost.completed

    done = engine.on_key(almost, ENTER, 1.0)
    assert done.typed == target
    assert done.completed


def test_is_complete_matches_string_equality() -> None:
    pairs = [("", ""), ("a", "a"), ("a", "b"), ("class A{}", "class A{}\n"), ("x\n", "x\n")]
    for typed, target in pairs:
        assert is_complete(typed, target) is (typed == target)


def test_wrong_characters_are_kept_and_marked() -> None:
    engine = TypingEngine()
    state = _type(engine, engine.start("abc"), "axc")

    assert state.typed == "axc"
    assert char_statuses(state.target, state.typed) == ["correct", "incorrect", "correct"]
    assert not state.completed


def test_statuses_report_pending_tail() -> None:
    assert char_statuses("abcd", "ab") == ["correct", "correct", "pending", "pending"]
    assert char_statuses("", "") == []


def test_keystroke_at_boundary_is_rejected() -> None:
    engine = TypingEngine()
    full = _type(engine, engine.start("ab"), "xy")

    assert engine.on_key(full, _key("z"), 1.0) == full
    assert engine.on_key(full, ENTER, 1.0) == full
    assert len(full.typed) == len(full.target)


def test_backspace_shrinks_by_one_or_is_noop() -> None:
    engine = TypingEngine()
    empty = engine.start("abc")

    assert engine.on_key(empty, BACKSPACE, 0.0) == empty
    state = _type(engine, empty, "ax")
    assert engine.on_key(state, BACKSPACE, 0.0).typed == "a"


def test_enter_auto_fills_target_indentation() -> None:
    engine = TypingEngine()
    target = "a {\n    b;\n\t}\n"
    state = _type(engine, engine.start(target), "a {")

    state = engine.on_key(state, ENTER, 0.0)
    assert state.typed == "a {\n    "

    state = _type(engine, state, "b;")
    state = engine.on_key(state, ENTER, 0.0)
    assert state.typed == "a {\n    b;\n\t"


def test_enter_in_wrong_place_does_not_fill_indentation() -> None:
    engine = TypingEngine()
    state = engine.on_key(_type(engine, engine.start("ab\n  c"), "a"), ENTER, 0.0)

    assert state.typed == "a\n"
    assert char_statuses(state.target, state.typed)[:3] == ["correct", "incorrect", "pending"]


def test_auto_indent_is_clipped_to_target_length() -> None:
    engine = TypingEngine()
    state = engine.on_key(_type(engine, engine.start("x\n   "), "x"), ENTER, 0.0)

    assert state.typed == "x\n   "
    assert state.completed


def test_tab_inserts_literal_when_not_navigating() -> None:
    engine = TypingEngine(tab_advances=False)
    state = engine.on_key(engine.start("\tx"), TAB, 0.0)

    assert state.typed == "\t"
    assert TypingEngine().on_key(engine.start("\tx"), TAB, 0.0).typed == ""


def test_timer_starts_on_first_accepted_key_and_stops_on_completion() -> None:
    engine = TypingEngine()
    state = engine.start("ab")
    assert engine.elapsed_ms(state, 50.0) == 0

    state = engine.on_key(state, BACKSPACE, 99.0)
    assert state.started_at is None

    state = engine.on_key(state, _key("a"), 100.0)
    assert state.started_at == 100.0
    assert engine.elapsed_ms(state, 102.5) == 2500

    state = engine.on_key(state, _key("b"), 105.0)
    assert state.completed
    assert engine.elapsed_ms(state, 200.0) == 5000


def test_rejected_keystroke_does_not_start_timer() -> None:
    engine = TypingEngine()
    state = engine.on_key(engine.start(""), _key("a"), 10.0)

    assert state.started_at is None
    assert state.typed == ""


def test_keys_after_completion_are_ignored() -> None:
    engine = TypingEngine()
    done = _type(engine, engine.start("ok"), "ok", now=3.0)

    assert engine.on_key(done, BACKSPACE, 4.0) == done
    assert engine.on_key(done, _key("x"), 4.0) == done


def test_restart_clears_typing_and_timer() -> None:
    engine = TypingEngine()
    state = engine.restart(_type(engine, engine.start("abc", CompareMode.IGNORE_COMMENTS), "ab", now=7.0))

    assert state.typed == ""
    assert state.started_at is None
    assert state.mode is CompareMode.IGNORE_COMMENTS


def test_strip_comments_removes_block_and_line_comments() -> None:
    source = "int a; // one\n/* block\n comment */int b;\nString u = \"x\";\n"

    assert strip_comments(source) == "int a; \nint b;\nString u = \"x\";\n"


def test_ignore_comments_mode() -> None:
    target = "int a = 1; // one\n/* note */\nint b = 2;\n"

    assert is_complete("int a = 1;\nint b = 2;", target, CompareMode.IGNORE_COMMENTS)
    assert not is_complete("int a = 1;\n", target, CompareMode.IGNORE_COMMENTS)
    assert not is_complete("  int a = 1;\n  int b = 2;", target, CompareMode.IGNORE_COMMENTS)
    assert not is_complete("", "// only a comment\n", CompareMode.IGNORE_COMMENTS)


def test_ignore_leading_whitespace_mode() -> None:
    target = "class A {\n    int x;\n}\n"

    assert is_complete("class A {\nint x;\n}", target, CompareMode.IGNORE_LEADING_WHITESPACE)
    assert not is_complete("class A {\nint  x;\n}", target, CompareMode.IGNORE_LEADING_WHITESPACE)
    assert not is_complete("class A {\nint x;\n}", target, CompareMode.STRICT)


def test_relaxed_mode_completes_engine_session() -> None:
    engine = TypingEngine()
    state = engine.start("a {\n  b\n}", CompareMode.IGNORE_LEADING_WHITESPACE)
    state = _type(engine, state, "a {", now=1.0)
    state = engine.on_key(state, ENTER, 1.0)
    state = _type(engine, state, "b\n}", now=2.0)

    assert state.completed
    assert state.finished_at == 2.0


def test_char_key_requires_single_character() -> None:
    with pytest.raises(ValidationError):
        KeyEvent(kind="char")
    with pytest.raises(ValidationError):
        KeyEvent(kind="char", char="ab")


# Practice session ------------------------------------------------------------


def test_completion_schedules_auto_advance() -> None:
    session = PracticeSession()
    state = session.start(_examples())
    first_generation = state.generation

    for char in "class E1{}\n":
        state = session.on_key(state, _key(char), 10.0)

    assert state.typing.completed
    assert state.advance_at == 13.0
    assert session.view(state, 11.5).next_in_s == 1.5

    assert session.tick(state, 12.9).index == 0
    advanced = session.tick(state, 13.0)
    assert advanced.index == 1
    assert advanced.typing.typed == ""
    assert advanced.typing.started_at is None
    assert advanced.advance_at is None
    assert advanced.generation == first_generation + 1


def test_enter_skips_countdown_after_completion() -> None:
    session = PracticeSession()
    state = session.start(_examples())
    for char in "class E1{}\n":
        state = session.on_key(state, _key(char), 1.0)

    skipped = session.on_key(state, ENTER, 1.5)

    assert skipped.index == 1
    assert skipped.advance_at is None


def test_navigation_resets_and_wraps() -> None:
    session = PracticeSession()
    state = session.start(_examples())
    state = session.on_key(state, _key("c"), 1.0)

    back = session.prev(state)
    assert back.index == 2
    assert back.typing.typed == ""
    assert back.typing.target == "class E3{}\n"

    assert session.next(back).index == 0
    assert session.select(state, 4).index == 1


def test_navigation_cancels_pending_countdown() -> None:
    session = PracticeSession()
    state = session.start(_examples())
    for char in "class E1{}\n":
        state = session.on_key(state, _key(char), 1.0)

    moved = session.next(state)

    assert moved.advance_at is None
    assert session.tick(moved, 100.0) == moved


def test_tab_advances_to_next_example() -> None:
    session = PracticeSession()
    state = session.on_key(session.start(_examples()), _key("c"), 1.0)

    assert session.on_key(state, TAB, 2.0).index == 1


def test_restart_keeps_example_and_clears_progress() -> None:
    session = PracticeSession()
    state = session.start(_examples(), index=1)
    state = session.on_key(state, _key("c"), 1.0)

    restarted = session.restart(state)

    assert restarted.index == 1
    assert restarted.typing.typed == ""
    assert restarted.typing.started_at is None
    assert restarted.generation == state.generation


def test_view_reports_progress() -> None:
    session = PracticeSession()
    state = session.start(_examples(2), mode=CompareMode.STRICT)
    state = session.on_key(state, _key("c"), 5.0)
    state = session.on_key(state, _key("x"), 6.0)

    view = session.view(state, 7.0)

    assert view.index == 0
    assert view.total == 2
    assert view.example.filename == "E1.java"
    assert view.typed == "cx"
    assert view.statuses[:3] == ["correct", "incorrect", "pending"]
    assert view.elapsed_ms == 2000
    assert view.started
    assert not view.completed
    assert view.next_in_s is None


def test_empty_example_list_yields_placeholder() -> None:
    session = PracticeSession()
    state = session.start([])

    assert session.current(state) is None
    assert session.next(state).index == 0
    assert session.on_key(state, _key("a"), 1.0) == state
    view = session.view(state, 1.0)
    assert view.total == 0
    assert view.message == "No examples available"
    assert session.begin_run(state, "original") == (state, None)


def test_duplicate_runs_are_suppressed_per_kind() -> None:
    session = PracticeSession()
    state = session.on_key(session.start(_examples()), _key("c"), 1.0)

    state, typed_ticket = session.begin_run(state, "typed")
    assert typed_ticket is not None
    assert typed_ticket.source == "c"

    again, duplicate = session.begin_run(state, "typed")
    assert duplicate is None
    assert again == state

    state, original_ticket = session.begin_run(state, "original")
    assert original_ticket is not None
    assert original_ticket.source == "class E1{}\n"
    assert set(state.runs_in_flight) == {"typed", "original"}

    state, applied = session.finish_run(state, typed_ticket)
    assert applied
    assert state.runs_in_flight == ("original",)


def test_run_result_after_navigation_is_stale() -> None:
    session = PracticeSession()
    state = session.start(_examples())
    state, ticket = session.begin_run(state, "original")

    moved = session.next(state)
    assert moved.runs_in_flight == ()

    after, applied = session.finish_run(moved, ticket)
    assert not applied
    assert after == moved
