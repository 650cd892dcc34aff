from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from javatyper.services.arena import (
    CompareMode,
    KeyEvent,
    PracticeSession,
    PracticeState,
    PracticeView,
    TypingEngine,
)
from javatyper.services.arena.schema import NavigateAction, RunKind
from javatyper.services.extractor import CurationPolicy, curate, extract_all_examples, extract_examples
from javatyper.services.judge.schema import ExecRequest, RunResult
from javatyper.services.judge.service import JudgeService
from javatyper.services.notes.service import DEFAULT_NOTES_URL, NotesService, NotesUnavailable
from javatyper.services.topics import (
    TopicExample,
    TopicExamplesPayload,
    TopicSummary,
    filter_by_topic,
    group_by_topic,
    with_topics,
)


load_dotenv()
logger = logging.getLogger("javatyper.api")


class Settings(BaseSettings):
    NOTES_URL: str = DEFAULT_NOTES_URL
    JUDGE0_HOST: str | None = None
    JUDGE0_KEY: str | None = None
    JUDGE0_LANG_JAVA: int = 62
    USE_JUDGE0_MOCK: bool = False
    CURATE_MIN_LENGTH: int = 60
    CURATE_MAX_LENGTH: int = 2500
    CURATE_LIMIT: int = 100
    COMPARE_MODE: CompareMode = CompareMode.STRICT
    AUTO_ADVANCE_SECONDS: float = 3.0
    TAB_ADVANCES: bool = True
    SESSION_IDLE_SECONDS: float = 3600.0

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


settings = Settings()
app = FastAPI(title="Java Typer")
notes_service = NotesService(url=settings.NOTES_URL)
judge_service = JudgeService(
    host=settings.JUDGE0_HOST,
    api_key=settings.JUDGE0_KEY,
    language_id=settings.JUDGE0_LANG_JAVA,
    use_mock=settings.USE_JUDGE0_MOCK,
)
practice = PracticeSession(
    TypingEngine(tab_advances=settings.TAB_ADVANCES),
    auto_advance_seconds=settings.AUTO_ADVANCE_SECONDS,
)

PRACTICE_SESSIONS: Dict[str, PracticeState] = {}
PRACTICE_LAST_SEEN: Dict[str, float] = {}
_clock = time.time


class PracticeStartRequest(BaseModel):
    session_id: str
    topic: Optional[str] = None
    index: int = 0
    mode: Optional[CompareMode] = None


class PracticeKeyRequest(BaseModel):
    session_id: str
    key: KeyEvent


class PracticeNavigateRequest(BaseModel):
    session_id: str
    action: NavigateAction


class PracticeRunRequest(BaseModel):
    session_id: str
    kind: RunKind
    stdin: Optional[str] = None


class PracticeRunOut(BaseModel):
    kind: RunKind
    applied: bool
    result: RunResult
    view: PracticeView


def get_settings() -> Settings:
    return settings


def curation_policy(
    min_length: Optional[int] = Query(default=None, ge=0),
    max_length: Optional[int] = Query(default=None, ge=0),
    limit: Optional[int] = Query(default=None, ge=1),
    cfg: Settings = Depends(get_settings),
) -> CurationPolicy:
    return CurationPolicy(
        min_length=cfg.CURATE_MIN_LENGTH if min_length is None else min_length,
        max_length=cfg.CURATE_MAX_LENGTH if max_length is None else max_length,
        limit=cfg.CURATE_LIMIT if limit is None else limit,
    )


async def fetch_notes() -> str:
    try:
        return await notes_service.fetch()
    except NotesUnavailable as exc:
        raise HTTPException(status_code=502, detail="Failed to fetch notes") from exc


async def load_curated_examples(policy: CurationPolicy) -> List[TopicExample]:
    notes = await fetch_notes()
    extracted = extract_examples(notes)
    curated = curate(extracted, policy)
    logger.info("Extracted %d examples, %d after curation", len(extracted), len(curated))
    return with_topics(curated)


def expire_idle_sessions(now: float) -> None:
    for session_id, seen in list(PRACTICE_LAST_SEEN.items()):
        if now - seen > settings.SESSION_IDLE_SECONDS:
            PRACTICE_LAST_SEEN.pop(session_id, None)
            PRACTICE_SESSIONS.pop(session_id, None)
            logger.info("Expired idle practice session %s", session_id)


def get_practice_state(session_id: str, now: float) -> PracticeState:
    expire_idle_sessions(now)
    state = PRACTICE_SESSIONS.get(session_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"Practice session {session_id} not found")
    return state


def store_state(session_id: str, state: PracticeState, now: float) -> None:
    PRACTICE_SESSIONS[session_id] = state
    PRACTICE_LAST_SEEN[session_id] = now


def store_and_view(session_id: str, state: PracticeState, now: float) -> PracticeView:
    store_state(session_id, state, now)
    return practice.view(state, now)


@app.on_event("startup")
async def _startup() -> None:
    await notes_service.start()
    await judge_service.start()
    logger.info("Notes source %s, judge %s (mock=%s)", notes_service.url, judge_service.base_url, judge_service.use_mock)


@app.on_event("shutdown")
async def _shutdown() -> None:
    PRACTICE_SESSIONS.clear()
    PRACTICE_LAST_SEEN.clear()
    await notes_service.close()
    await judge_service.close()


@app.get("/healthz", response_class=JSONResponse)
async def healthz() -> Dict[str, str]:
    return {"status": "ok"}


# ------------------------ Examples Endpoints -------------------------


@app.get("/examples", response_model=TopicExamplesPayload)
async def list_examples(
    topic: Optional[str] = Query(default=None),
    policy: CurationPolicy = Depends(curation_policy),
) -> TopicExamplesPayload:
    examples = await load_curated_examples(policy)
    return TopicExamplesPayload(examples=filter_by_topic(examples, topic))


@app.get("/examples/all", response_model=TopicExamplesPayload)
async def list_all_examples() -> TopicExamplesPayload:
    notes = await fetch_notes()
    return TopicExamplesPayload(examples=with_topics(extract_all_examples(notes)))


@app.get("/topics", response_model=TopicSummary)
async def list_topics(policy: CurationPolicy = Depends(curation_policy)) -> TopicSummary:
    return group_by_topic(await load_curated_examples(policy))


@app.post("/compile", response_model=RunResult)
async def compile_and_run(request: ExecRequest) -> RunResult:
    code = request.code or ""
    if not code.strip():
        raise HTTPException(status_code=400, detail="Missing code")
    return await judge_service.run(code, request.stdin or "")


# ------------------------ Practice Endpoints -------------------------


@app.post("/practice/start", response_model=PracticeView)
async def practice_start(
    body: PracticeStartRequest,
    policy: CurationPolicy = Depends(curation_policy),
    cfg: Settings = Depends(get_settings),
) -> PracticeView:
    examples = filter_by_topic(await load_curated_examples(policy), body.topic)
    state = practice.start(examples, index=body.index, mode=body.mode or cfg.COMPARE_MODE)
    now = _clock()
    expire_idle_sessions(now)
    return store_and_view(body.session_id, state, now)


@app.get("/practice/{session_id}", response_model=PracticeView)
async def practice_view(session_id: str) -> PracticeView:
    now = _clock()
    state = practice.tick(get_practice_state(session_id, now), now)
    return store_and_view(session_id, state, now)


@app.post("/practice/key", response_model=PracticeView)
async def practice_key(body: PracticeKeyRequest) -> PracticeView:
    now = _clock()
    state = practice.tick(get_practice_state(body.session_id, now), now)
    state = practice.on_key(state, body.key, now)
    return store_and_view(body.session_id, state, now)


@app.post("/practice/navigate", response_model=PracticeView)
async def practice_navigate(body: PracticeNavigateRequest) -> PracticeView:
    now = _clock()
    state = get_practice_state(body.session_id, now)
    if body.action == "next":
        state = practice.next(state)
    elif body.action == "prev":
        state = practice.prev(state)
    else:
        state = practice.restart(state)
    return store_and_view(body.session_id, state, now)


@app.post("/practice/run", response_model=PracticeRunOut)
async def practice_run(body: PracticeRunRequest) -> PracticeRunOut:
    current = get_practice_state(body.session_id, _clock())
    state, ticket = practice.begin_run(current, body.kind)
    if ticket is None:
        if body.kind in current.runs_in_flight:
            raise HTTPException(status_code=409, detail=f"A {body.kind} run is already in progress")
        raise HTTPException(status_code=400, detail="No active example")
    store_state(body.session_id, state, _clock())
    latest: Optional[PracticeState] = None
    applied = False
    try:
        result = await judge_service.run(ticket.source, body.stdin or "")
    finally:
        # The in-flight flag is released even when the run raises. The session
        # may also have moved on or been closed while the run was in flight.
        latest = PRACTICE_SESSIONS.get(body.session_id)
        if latest is not None:
            latest, applied = practice.finish_run(latest, ticket)
            PRACTICE_SESSIONS[body.session_id] = latest
    if not applied:
        logger.info("Discarding stale %s run result for session %s", body.kind, body.session_id)
    view = practice.view(latest if latest is not None else state, _clock())
    return PracticeRunOut(kind=body.kind, applied=applied, result=result, view=view)


@app.delete("/practice/{session_id}")
async def practice_close(session_id: str) -> Dict[str, bool]:
    PRACTICE_LAST_SEEN.pop(session_id, None)
    return {"ok": PRACTICE_SESSIONS.pop(session_id, None) is not None}
