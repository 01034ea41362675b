"""API routes for the deck library and imports."""

import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException

from backend.api.schemas import CardResponse, DeckResponse, DeckSummaryResponse, ImportRequest
from backend.config import settings
from backend.deck.codec import CodecError, load_deck
from backend.deck.library import deck_key, list_decks, load_from_library
from backend.deck.model import Deck
from ingestion.pipeline import run_import, run_text_import

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/decks", tags=["decks"])


def _deck_response(key: str, deck: Deck) -> DeckResponse:
    return DeckResponse(
        key=key,
        name=deck.name,
        description=deck.description,
        card_count=len(deck.cards),
        cards=[CardResponse(id=c.id, term=c.term, definition=c.definition) for c in deck.cards],
    )


@router.get("", response_model=list[DeckSummaryResponse])
async def decks_list() -> list[DeckSummaryResponse]:
    """List the decks in the library. Unreadable files are skipped."""
    summaries = []
    for path in list_decks(settings.decks_dir):
        try:
            deck = load_deck(path)
        except (CodecError, OSError) as e:
            logger.warning("Skipping unreadable deck %s: %s", path.name, e)
            continue
        summaries.append(
            DeckSummaryResponse(
                key=deck_key(path),
                name=deck.name,
                description=deck.description,
                card_count=len(deck.cards),
            )
        )
    return summaries


@router.get("/{key}", response_model=DeckResponse)
async def decks_get(key: str) -> DeckResponse:
    """Get a deck with all of its cards."""
    try:
        deck = load_from_library(key, settings.decks_dir)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail=f"Deck '{key}' not found")
    except CodecError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _deck_response(key, deck)


@router.post("/import", response_model=DeckResponse, status_code=201)
async def decks_import(request: ImportRequest) -> DeckResponse:
    """Import a file or pasted text into the library."""
    if request.path is not None:
        result = run_import(Path(request.path).expanduser(), settings.decks_dir)
    else:
        result = run_text_import(
            request.text or "", request.extension, request.name, settings.decks_dir
        )

    if not result.ok or result.deck is None or result.saved_path is None:
        raise HTTPException(status_code=422, detail="; ".join(result.errors))
    return _deck_response(deck_key(result.saved_path), result.deck)
