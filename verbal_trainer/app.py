"""FastAPI application with all routes."""
from __future__ import annotations

import logging

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request

from verbal_trainer.config import Settings, load_settings, save_settings
from verbal_trainer.corpus import Corpus, CorpusLoader, DataUnavailable
from verbal_trainer.db import Database, ProfileStore
from verbal_trainer.models import ALL, MIXED, SENTENCE, SYNONYM, format_level
from verbal_trainer.profiles import DuplicateProfileName, Profile, ProfileService
from verbal_trainer.quiz import assemble, assemble_from_review, build_flashcard_deck
from verbal_trainer.session import Session

app = FastAPI(title="Verbal Trainer")

_log = logging.getLogger("verbal_trainer.app")

# Global state (initialized in startup)
_store: ProfileStore | None = None
_settings: Settings | None = None
_loader: CorpusLoader | None = None
_active_sessions: dict[str, Session] = {}
MAX_ACTIVE_SESSIONS = 100

# Review quizzes accept a question type instead of a type mix
_REVIEW_TYPES = {"synonyms": SYNONYM, "sentences": SENTENCE, MIXED: ALL}


def get_store() -> ProfileStore:
    assert _store is not None
    return _store


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def get_profiles() -> ProfileService:
    s = get_settings()
    return ProfileService(
        get_store(),
        history_limit=s.quiz_history_limit,
        recent_window=s.recent_quiz_window,
    )


async def get_corpus() -> Corpus:
    assert _loader is not None
    try:
        return await _loader.load()
    except DataUnavailable as e:
        raise HTTPException(503, str(e))


@app.on_event("startup")
async def startup():
    global _store, _settings, _loader
    if _store is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _store = Database(_settings.db_full_path)
    _loader = CorpusLoader(
        _settings.resolved_source(_settings.synonyms_source),
        _settings.resolved_source(_settings.sentences_source),
    )
    try:
        await _loader.load()
    except DataUnavailable as e:
        _log.warning("Starting without corpus: %s", e)


@app.on_event("shutdown")
async def shutdown():
    for session in _active_sessions.values():
        session.close()
    _active_sessions.clear()
    if _store:
        _store.close()


def _profile_summary(p: Profile) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "created_at": p.created_at,
        "words_to_review": len(p.review_words),
        "known_words": len(p.known_words),
    }


# ── API: Corpus ───────────────────────────────────────────────────────────

@app.get("/api/corpus/stats")
async def api_corpus_stats(level: str = ALL):
    corpus = await get_corpus()
    counts = corpus.counts(level)
    counts["level"] = level
    counts["level_label"] = format_level(level)
    counts["levels"] = corpus.levels()
    return counts


# ── API: Quiz sessions ────────────────────────────────────────────────────

def _question_payload(session: Session) -> dict:
    q = session.current_question
    if q is None:
        return {"session_id": session.id, "session_complete": True}
    payload = {
        "session_id": session.id,
        "session_complete": False,
        "question": q.to_dict(),
        "question_number": session.index + 1,
        "total": len(session.quiz),
        "review_mode": session.review_mode,
    }
    if session.countdown is not None:
        payload["time_remaining"] = session.countdown.remaining
    return payload


def _int_param(body: dict, key: str, default: int) -> int:
    value = body.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(400, f"{key} must be a whole number, got {value!r}")


def _register_session(session: Session) -> None:
    """Track a new session, closing the oldest ones past the cap."""
    _active_sessions[session.id] = session
    while len(_active_sessions) > MAX_ACTIVE_SESSIONS:
        oldest_id = next(iter(_active_sessions))
        _active_sessions.pop(oldest_id).close()
        _log.info("Session %s evicted (abandoned)", oldest_id)


def _get_session(session_id: str) -> Session:
    session = _active_sessions.get(session_id)
    if session is None:
        raise HTTPException(404, "Session not found")
    return session


@app.post("/api/quiz/start")
async def api_quiz_start(request: Request):
    body = await request.json() if await request.body() else {}
    s = get_settings()
    level = body.get("level", ALL)
    type_mix = body.get("question_type", MIXED)
    count = _int_param(body, "count", s.default_question_count)
    mode = body.get("mode", "practice")
    timer_seconds = _int_param(body, "timer_seconds", s.timer_seconds)
    profiles = get_profiles()
    profile_id = body.get("profile_id") or get_store().get_active_profile_id()

    corpus = await get_corpus()
    try:
        if mode == "review":
            profile = profiles.get_profile(profile_id)
            quiz = assemble_from_review(
                corpus,
                profile.review_words if profile else None,
                level,
                _REVIEW_TYPES.get(type_mix, type_mix),
                count,
            )
        else:
            quiz = assemble(corpus, level, type_mix, count)
    except ValueError as e:
        raise HTTPException(400, str(e))

    if not quiz:
        if mode == "review":
            msg = "No review words available. Complete some practice quizzes first!"
        else:
            msg = "Not enough questions available for the selected options."
        return {"error": msg, "session_id": None}

    session = Session(
        quiz,
        profiles=profiles,
        profile_id=profile_id,
        review_mode=mode == "review",
        level=level,
        type_mix=type_mix,
        timer_seconds=timer_seconds,
    )
    _register_session(session)
    session.start()
    _log.info("Session %s: %d questions (%s, %s, %s)", session.id, len(quiz), mode, level, type_mix)
    result = _question_payload(session)
    result["requested"] = count
    return result


def _outcome_payload(session: Session, accepted: bool) -> dict:
    outcome = session.outcomes.get(session.index)
    return {
        "accepted": accepted,
        **(outcome.to_dict() if outcome else {}),
        "session_progress": {
            "answered": len(session.outcomes),
            "correct": session.score,
            "remaining": len(session.quiz) - session.index - 1,
        },
        "is_last": session.index == len(session.quiz) - 1,
    }


@app.post("/api/session/answer")
async def api_session_answer(request: Request):
    body = await request.json()
    session = _get_session(body.get("session_id", ""))
    if session.current_question is None:
        raise HTTPException(400, "No current question")
    if "answer" not in body:
        raise HTTPException(400, "No answer provided")
    time_seconds = body.get("time_seconds")
    if time_seconds is not None and (isinstance(time_seconds, bool) or not isinstance(time_seconds, (int, float))):
        raise HTTPException(400, f"time_seconds must be a number, got {time_seconds!r}")
    outcome = session.answer(body["answer"], time_seconds)
    return _outcome_payload(session, accepted=outcome is not None)


@app.post("/api/session/timeout")
async def api_session_timeout(request: Request):
    body = await request.json()
    session = _get_session(body.get("session_id", ""))
    if session.current_question is None:
        raise HTTPException(400, "No current question")
    outcome = session.time_out()
    return _outcome_payload(session, accepted=outcome is not None)


@app.post("/api/session/next")
async def api_session_next(request: Request):
    body = await request.json()
    session = _get_session(body.get("session_id", ""))
    if not session.complete and not session.resolved:
        raise HTTPException(400, "Current question has not been answered")
    session.advance()
    if session.complete:
        summary = session.finish()
        del _active_sessions[session.id]
        return {"session_id": session.id, "session_complete": True, "summary": summary.to_dict()}
    return _question_payload(session)


@app.post("/api/session/end")
async def api_session_end(request: Request):
    body = await request.json()
    session = _active_sessions.pop(body.get("session_id", ""), None)
    if session is None:
        raise HTTPException(404, "Session not found")
    session.close()
    return {"session_id": session.id, "ended": True}


@app.post("/api/session/retry")
async def api_session_retry(request: Request):
    body = await request.json()
    old_id = body.get("session_id", "")
    session = _active_sessions.pop(old_id, None)
    if session is None:
        raise HTTPException(404, "Session not found")
    retried = session.retry()
    _register_session(retried)
    retried.start()
    return _question_payload(retried)


# ── API: Profiles ─────────────────────────────────────────────────────────

@app.get("/api/profiles")
async def api_profiles():
    profiles = get_profiles()
    return {
        "profiles": [_profile_summary(p) for p in profiles.list_profiles()],
        "active_profile_id": get_store().get_active_profile_id(),
    }


@app.post("/api/profiles")
async def api_create_profile(request: Request):
    body = await request.json()
    try:
        profile = get_profiles().create_profile(body.get("name", ""))
    except DuplicateProfileName as e:
        raise HTTPException(409, str(e))
    except ValueError as e:
        raise HTTPException(400, str(e))
    return _profile_summary(profile)


@app.delete("/api/profiles/{profile_id}")
async def api_delete_profile(profile_id: str):
    if not get_profiles().delete_profile(profile_id):
        raise HTTPException(404, "Profile not found")
    return {"deleted": profile_id}


@app.post("/api/profiles/{profile_id}/activate")
async def api_activate_profile(profile_id: str):
    profile = get_profiles().set_active(profile_id)
    if profile is None:
        raise HTTPException(404, "Profile not found")
    return _profile_summary(profile)


@app.get("/api/profiles/{profile_id}/stats")
async def api_profile_stats(profile_id: str):
    return get_profiles().get_stats(profile_id)


@app.get("/api/profiles/{profile_id}/review")
async def api_profile_review(profile_id: str, level: str = ALL, type: str = ALL):
    entries = get_profiles().review_queue(profile_id, level, type)
    return {"review_words": [e.to_dict() for e in entries]}


@app.post("/api/profiles/{profile_id}/known")
async def api_profile_known(profile_id: str, request: Request):
    body = await request.json()
    word = body.get("word")
    if not word:
        raise HTTPException(400, "No word provided")
    profiles = get_profiles()
    if body.get("known", True):
        profile = profiles.mark_known(profile_id, word)
    else:
        profile = profiles.unmark_known(profile_id, word)
    if profile is None:
        return None
    return {"word": word, "known": word in profile.known_words, "known_count": len(profile.known_words)}


# ── API: Flashcards ───────────────────────────────────────────────────────

@app.post("/api/flashcards/deck")
async def api_flashcard_deck(request: Request):
    body = await request.json() if await request.body() else {}
    s = get_settings()
    corpus = await get_corpus()
    profiles = get_profiles()
    profile = profiles.get_profile(body.get("profile_id") or get_store().get_active_profile_id())
    level = body.get("level", ALL)

    known = review_words = None
    if profile is not None:
        known = set(profile.known_words)
        review_words = {e.word for e in profile.review_words.query(level, SYNONYM)}

    count = body.get("count", s.flashcard_count)
    if count != "all":
        count = _int_param(body, "count", s.flashcard_count)
    try:
        cards = build_flashcard_deck(
            corpus,
            level,
            mode=body.get("mode", "all"),
            count=None if count == "all" else count,
            shuffle_cards=body.get("shuffle", True),
            known=known,
            review_words=review_words,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {
        "cards": [
            {
                "word": c.word,
                "synonym": c.synonym,
                "level": c.level,
                "known": known is not None and c.word in known,
            }
            for c in cards
        ],
    }


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    global _settings
    body = await request.json()
    current = get_settings().to_dict()
    known = set(current.keys())
    for k, v in body.items():
        if k in known:
            current[k] = v
    _settings = Settings(**current)
    save_settings(_settings)
    return _settings.to_dict()
