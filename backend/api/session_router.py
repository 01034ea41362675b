"""API routes for study sessions."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import (
    AnswerRequest,
    AnswerResponse,
    QuestionResponse,
    SessionStartResponse,
    SessionStatsResponse,
)
from backend.config import settings, utcnow
from backend.database import get_session
from backend.deck.codec import CodecError
from backend.deck.library import load_from_library, safe_file_stem
from backend.srs.session import StudySession, start_session
from backend.srs.store import load_review_states, log_review, save_review_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["session"])

# In-memory session store; review state itself is persisted per answer
_active_sessions: dict[str, StudySession] = {}


def _get_active(session_id: str) -> StudySession:
    study_session = _active_sessions.get(session_id)
    if not study_session:
        raise HTTPException(status_code=404, detail="Session not found")
    return study_session


@router.post("/start", response_model=SessionStartResponse)
async def session_start(
    deck: str,
    db: AsyncSession = Depends(get_session),
) -> SessionStartResponse:
    """Start a new study session over a library deck."""
    try:
        loaded = load_from_library(deck, settings.decks_dir)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail=f"Deck '{deck}' not found")
    except CodecError as e:
        raise HTTPException(status_code=422, detail=str(e))

    now = utcnow()
    key = safe_file_stem(deck)
    store = await load_review_states(db, key, loaded, now)
    study_session = start_session(key, loaded, store, now)

    session_id = str(uuid.uuid4())
    _active_sessions[session_id] = study_session

    return SessionStartResponse(
        session_id=session_id,
        deck_key=key,
        total_cards=len(loaded.cards),
        due_cards=store.due_count(now),
        new_cards=store.new_count(),
    )


@router.get("/next/{session_id}", response_model=QuestionResponse)
async def session_next(session_id: str) -> QuestionResponse:
    """Get the next question in the session."""
    study_session = _get_active(session_id)
    now = utcnow()

    question = study_session.next_question(now)
    if question is None:
        raise HTTPException(status_code=410, detail="No more cards due in this session")

    state = study_session.store.get(question.card.id)
    return QuestionResponse(
        card_id=question.card.id,
        prompt=question.prompt,
        options=question.options,
        repetitions=state.repetitions if state else 0,
        remaining=study_session.store.due_count(now),
    )


@router.post("/answer/{session_id}", response_model=AnswerResponse)
async def session_answer(
    session_id: str,
    request: AnswerRequest,
    db: AsyncSession = Depends(get_session),
) -> AnswerResponse:
    """Submit an answer for the current question."""
    study_session = _get_active(session_id)
    now = utcnow()

    if study_session.next_question(now) is None:
        raise HTTPException(status_code=410, detail="Session is complete")

    try:
        outcome = study_session.answer(
            request.card_id, request.choice, now, self_rating=request.self_rating
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await save_review_state(db, study_session.deck_key, outcome.new_state)
    log_review(
        db, study_session.deck_key, outcome.previous_state, outcome.new_state, outcome.rating
    )
    await db.commit()

    return AnswerResponse(
        correct=outcome.correct,
        feedback=outcome.feedback,
        correct_answer=outcome.card.term,
        applied_rating=int(outcome.rating),
        interval_days=outcome.new_state.interval_days,
        ease_factor=outcome.new_state.ease_factor,
        next_review=outcome.new_state.next_review,
        remaining=study_session.store.due_count(now),
        session_complete=study_session.is_complete(now),
    )


@router.get("/stats/{session_id}", response_model=SessionStatsResponse)
async def session_stats(session_id: str) -> SessionStatsResponse:
    """Get stats for the current session."""
    s = _get_active(session_id).stats
    return SessionStatsResponse(
        cards_reviewed=s.cards_reviewed,
        correct=s.correct,
        incorrect=s.incorrect,
        new_cards_seen=s.new_cards_seen,
        accuracy=s.accuracy,
    )


@router.post("/end/{session_id}")
async def session_end(session_id: str) -> dict:
    """End a session and clean up."""
    study_session = _active_sessions.pop(session_id, None)
    if not study_session:
        raise HTTPException(status_code=404, detail="Session not found")

    s = study_session.stats
    return {
        "status": "ended",
        "cards_reviewed": s.cards_reviewed,
        "correct": s.correct,
        "incorrect": s.incorrect,
    }
