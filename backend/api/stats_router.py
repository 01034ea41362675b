"""API routes for per-deck scheduling statistics."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import DeckStatsResponse
from backend.config import settings, utcnow
from backend.database import get_session
from backend.deck.codec import CodecError
from backend.deck.library import load_from_library, safe_file_stem
from backend.srs.store import count_reviews, load_review_states

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/{deck}", response_model=DeckStatsResponse)
async def get_deck_stats(
    deck: str,
    db: AsyncSession = Depends(get_session),
) -> DeckStatsResponse:
    """Get card and review counts for a deck."""
    try:
        loaded = load_from_library(deck, settings.decks_dir)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail=f"Deck '{deck}' not found")
    except CodecError as e:
        raise HTTPException(status_code=422, detail=str(e))

    now = utcnow()
    key = safe_file_stem(deck)
    store = await load_review_states(db, key, loaded, now)

    return DeckStatsResponse(
        deck_key=key,
        total_cards=len(loaded.cards),
        cards_due=store.due_count(now),
        cards_new=store.new_count(),
        total_reviews=await count_reviews(db, key),
    )
