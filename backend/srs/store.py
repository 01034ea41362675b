"""Review state storage for study sessions.

The in-memory store maps ``card_id`` to ``ReviewState`` for the active deck.
It can be filled fresh or from the ``review_states`` table, and individual
states are written back after every answer.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.deck.model import Card, Deck
from backend.models.review_log import ReviewLog
from backend.models.review_state import ReviewStateRecord
from backend.srs.scheduler import ReviewState, initial_state, is_due, select_next_card

logger = logging.getLogger(__name__)


@dataclass
class ReviewStateStore:
    """Session-scoped review states for one deck, keyed by card id."""

    states: dict[int, ReviewState] = field(default_factory=dict)

    @classmethod
    def for_deck(cls, deck: Deck, now: datetime) -> "ReviewStateStore":
        """Create a fresh store where every card is new and due at ``now``."""
        return cls(states={card.id: initial_state(card.id, now) for card in deck.cards})

    def get(self, card_id: int) -> ReviewState | None:
        return self.states.get(card_id)

    def replace(self, state: ReviewState) -> None:
        """Store the scheduler's output in place of the card's previous state."""
        self.states[state.card_id] = state

    def next_due(self, deck: Deck, now: datetime) -> Card | None:
        """Return the first due card of the deck, or None if nothing is due."""
        return select_next_card(deck.cards, self.states, now)

    def due_count(self, now: datetime) -> int:
        return sum(1 for state in self.states.values() if is_due(state, now))

    def new_count(self) -> int:
        return sum(1 for state in self.states.values() if state.is_new)


def _state_from_record(record: ReviewStateRecord) -> ReviewState:
    return ReviewState(
        card_id=record.card_id,
        interval_days=record.interval_days,
        ease_factor=record.ease_factor,
        repetitions=record.repetitions,
        next_review=record.next_review,
    )


async def load_review_states(
    session: AsyncSession,
    deck_key: str,
    deck: Deck,
    now: datetime,
) -> ReviewStateStore:
    """Build a store for a deck from persisted review state.

    Cards without a stored row start fresh. Rows for card ids that are no
    longer in the deck are ignored.

    Args:
        session: Database session.
        deck_key: The deck's library key (file stem).
        deck: The deck being studied.
        now: Due time for cards that have never been reviewed.

    Returns:
        A ReviewStateStore with one state per card in the deck.
    """
    store = ReviewStateStore.for_deck(deck, now)

    stmt = select(ReviewStateRecord).where(ReviewStateRecord.deck_key == deck_key)
    result = await session.execute(stmt)
    restored = 0
    for record in result.scalars().all():
        if record.card_id in store.states:
            store.replace(_state_from_record(record))
            restored += 1

    logger.info(
        "Loaded review state for deck '%s': %d restored, %d new",
        deck_key,
        restored,
        len(store.states) - restored,
    )
    return store


async def save_review_state(session: AsyncSession, deck_key: str, state: ReviewState) -> None:
    """Insert or update the stored row for one card. Does not commit."""
    stmt = select(ReviewStateRecord).where(
        and_(ReviewStateRecord.deck_key == deck_key, ReviewStateRecord.card_id == state.card_id)
    )
    record = (await session.execute(stmt)).scalar_one_or_none()
    if record is None:
        record = ReviewStateRecord(deck_key=deck_key, card_id=state.card_id)
        session.add(record)

    record.interval_days = state.interval_days
    record.ease_factor = state.ease_factor
    record.repetitions = state.repetitions
    record.next_review = state.next_review


def log_review(
    session: AsyncSession,
    deck_key: str,
    before: ReviewState,
    after: ReviewState,
    rating: int,
) -> None:
    """Add a review log entry for one answer. Does not commit."""
    session.add(
        ReviewLog(
            deck_key=deck_key,
            card_id=before.card_id,
            rating=int(rating),
            interval_before=before.interval_days,
            interval_after=after.interval_days,
            ease_before=before.ease_factor,
            ease_after=after.ease_factor,
        )
    )


async def count_reviews(session: AsyncSession, deck_key: str) -> int:
    """Return how many answers have been logged for a deck."""
    stmt = select(func.count(ReviewLog.id)).where(ReviewLog.deck_key == deck_key)
    return (await session.execute(stmt)).scalar() or 0
