"""Study session orchestrator.

Coordinates the deck, its review states and the scheduler into a
multiple-choice question/answer flow. Persistence is left to the caller:
``answer`` returns the before/after states so the API or CLI can write them.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime

from backend.config import settings
from backend.deck.model import Card, Deck
from backend.srs.scheduler import Rating, ReviewState, to_rating, update_review_state
from backend.srs.store import ReviewStateStore

logger = logging.getLogger(__name__)


@dataclass
class Question:
    """A multiple-choice question: pick the term that matches the definition."""

    card: Card
    prompt: str
    options: list[str]


@dataclass
class AnswerOutcome:
    """The result of answering one question."""

    card: Card
    correct: bool
    rating: Rating
    feedback: str
    previous_state: ReviewState
    new_state: ReviewState


@dataclass
class SessionStats:
    """Statistics for a study session."""

    cards_reviewed: int = 0
    correct: int = 0
    incorrect: int = 0
    new_cards_seen: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.cards_reviewed * 100 if self.cards_reviewed else 0.0


def build_options(
    card: Card,
    cards: list[Card],
    rng: random.Random,
    option_count: int = settings.mcq_option_count,
) -> list[str]:
    """Return the card's term plus randomly sampled distractor terms, shuffled."""
    # Distinct terms only, so a duplicate of the answer never shows up twice
    others = sorted({c.term for c in cards if c.term != card.term})
    distractors = rng.sample(others, min(len(others), max(0, option_count - 1)))
    options = [card.term, *distractors]
    rng.shuffle(options)
    return options


@dataclass
class StudySession:
    """Manages an active study session over one deck."""

    deck_key: str
    deck: Deck
    store: ReviewStateStore
    rng: random.Random = field(default_factory=random.Random)
    stats: SessionStats = field(default_factory=SessionStats)
    _current: Question | None = None

    def is_complete(self, now: datetime) -> bool:
        """Return True if no card in the deck is due."""
        return self.store.next_due(self.deck, now) is None

    def next_question(self, now: datetime) -> Question | None:
        """Return the question for the first due card.

        Asking again before answering returns the same question with the same
        option order. Returns None when nothing is due.
        """
        if self._current is not None:
            return self._current

        card = self.store.next_due(self.deck, now)
        if card is None:
            logger.info("Session for deck '%s' complete: no cards due", self.deck_key)
            return None

        self._current = Question(
            card=card,
            prompt=card.definition,
            options=build_options(card, self.deck.cards, self.rng),
        )
        return self._current

    def answer(
        self,
        card_id: int,
        chosen_term: str,
        now: datetime,
        self_rating: int | None = None,
    ) -> AnswerOutcome:
        """Answer the current question and reschedule its card.

        Args:
            card_id: The card the answer is for; must match the current question.
            chosen_term: The option the learner picked.
            now: When the answer was given.
            self_rating: Optional rating override (0-3). By default a correct
                answer rates Good and a wrong one rates Again.

        Returns:
            AnswerOutcome with the states before and after scheduling.

        Raises:
            ValueError: There is no current question, or it is for another card.
        """
        question = self._current
        if question is None or question.card.id != card_id:
            raise ValueError(f"Card {card_id} is not the current question")

        card = question.card
        correct = chosen_term.strip() == card.term
        if self_rating is not None:
            rating = to_rating(self_rating)
        else:
            rating = Rating.GOOD if correct else Rating.AGAIN

        previous = self.store.get(card.id)
        if previous is None:
            raise ValueError(f"Card {card_id} has no review state")
        new_state = update_review_state(previous, rating, now)
        self.store.replace(new_state)

        self.stats.cards_reviewed += 1
        if previous.is_new:
            self.stats.new_cards_seen += 1
        if correct:
            self.stats.correct += 1
            feedback = "Correct!"
        else:
            self.stats.incorrect += 1
            feedback = f"Wrong. Correct answer: {card.term}"

        self._current = None
        logger.debug(
            "Card %d rated %s: interval %.1f -> %.1f days",
            card.id,
            rating.name,
            previous.interval_days,
            new_state.interval_days,
        )
        return AnswerOutcome(
            card=card,
            correct=correct,
            rating=rating,
            feedback=feedback,
            previous_state=previous,
            new_state=new_state,
        )


def start_session(
    deck_key: str,
    deck: Deck,
    store: ReviewStateStore,
    now: datetime,
    rng: random.Random | None = None,
) -> StudySession:
    """Start a study session over a deck with already-loaded review states."""
    session = StudySession(deck_key=deck_key, deck=deck, store=store, rng=rng or random.Random())
    logger.info(
        "Started session for deck '%s': %d cards, %d due",
        deck_key,
        len(deck.cards),
        store.due_count(now),
    )
    return session
