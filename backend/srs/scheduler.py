"""SM-2 style spaced repetition scheduler.

Key concepts:
- Interval: days until the card is due again.
- Ease factor: multiplier applied to the interval once a card has graduated.
- Repetitions: consecutive reviews without a lapse.
- Rating: 0=Again, 1=Hard, 2=Good, 3=Easy

A card moves from new (0 repetitions) through two fixed learning steps
(1 day, then 6 days) into ease-scaled review intervals. Rating Again sends
it back to the first step but keeps its (reduced) ease factor.

All functions here are pure: they take ``now`` explicitly and return new
states instead of mutating their input.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import IntEnum

from backend.deck.model import Card

SECONDS_PER_DAY = 86400

INITIAL_EASE = 2.5
MIN_EASE = 1.3

# Fixed learning steps, indexed by repetition count
FIRST_INTERVAL_DAYS = 1.0
SECOND_INTERVAL_DAYS = 6.0
LAPSE_INTERVAL_DAYS = 1.0


class Rating(IntEnum):
    """How well the learner recalled a card."""

    AGAIN = 0
    HARD = 1
    GOOD = 2
    EASY = 3


# Ease factor adjustment per rating
EASE_DELTAS: dict[Rating, float] = {
    Rating.AGAIN: -0.20,
    Rating.HARD: -0.15,
    Rating.GOOD: 0.0,
    Rating.EASY: 0.15,
}


@dataclass(frozen=True)
class ReviewState:
    """The scheduling state of one card, referenced by ``card_id``."""

    card_id: int
    interval_days: float
    ease_factor: float
    repetitions: int  # consecutive non-lapsing reviews
    next_review: datetime

    @property
    def is_new(self) -> bool:
        return self.repetitions == 0 and self.interval_days == 0.0


def initial_state(card_id: int, now: datetime) -> ReviewState:
    """Create the state of a card that has never been reviewed (due immediately)."""
    return ReviewState(
        card_id=card_id,
        interval_days=0.0,
        ease_factor=INITIAL_EASE,
        repetitions=0,
        next_review=now,
    )


def to_rating(value: int) -> Rating:
    """Clamp an integer grade into the rating range.

    Grades above 3 become Easy and so also raise the ease factor. The API
    rejects such grades before they get here; the clamp keeps direct callers
    total.
    """
    return Rating(max(Rating.AGAIN, min(Rating.EASY, int(value))))


def is_due(state: ReviewState, now: datetime) -> bool:
    """Return True if the card should be presented at ``now``."""
    return state.next_review <= now


def update_review_state(state: ReviewState, rating: int, now: datetime) -> ReviewState:
    """Apply a review rating and return the card's next state.

    Args:
        state: Current card state. It is not modified.
        rating: Review rating (0=Again, 1=Hard, 2=Good, 3=Easy). Values
            outside that range are clamped.
        now: When the review happened.

    Returns:
        A new ReviewState with updated interval, ease and due time.
    """
    rating = to_rating(rating)

    if rating == Rating.AGAIN:
        # Lapse: restart the learning steps
        repetitions = 0
        interval = LAPSE_INTERVAL_DAYS
    else:
        repetitions = state.repetitions + 1
        if repetitions == 1:
            interval = FIRST_INTERVAL_DAYS
        elif repetitions == 2:
            interval = SECOND_INTERVAL_DAYS
        else:
            interval = state.interval_days * state.ease_factor

    ease = max(MIN_EASE, state.ease_factor + EASE_DELTAS[rating])

    seconds = int(interval * SECONDS_PER_DAY)
    return replace(
        state,
        interval_days=interval,
        ease_factor=ease,
        repetitions=repetitions,
        next_review=now + timedelta(seconds=seconds),
    )


def select_next_card(
    cards: Iterable[Card],
    states: Mapping[int, ReviewState],
    now: datetime,
) -> Card | None:
    """Return the first card, in deck order, that is due.

    Cards with no entry in ``states`` have never been reviewed and count as
    due. Returns None when nothing is due, which ends a study pass.
    """
    for card in cards:
        state = states.get(card.id)
        if state is None or is_due(state, now):
            return card
    return None
