"""Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

# --- Decks ---


class CardResponse(BaseModel):
    id: int
    term: str
    definition: str


class DeckSummaryResponse(BaseModel):
    """A deck in the library."""

    key: str
    name: str
    description: str | None = None
    card_count: int


class DeckResponse(DeckSummaryResponse):
    cards: list[CardResponse]


class ImportRequest(BaseModel):
    """Import a deck from a local file path, or from pasted text."""

    path: str | None = None
    text: str | None = None
    extension: str = ".txt"  # format hint for pasted text
    name: str = ""

    @model_validator(mode="after")
    def _one_source(self) -> "ImportRequest":
        if (self.path is None) == (self.text is None):
            raise ValueError("Provide exactly one of 'path' or 'text'")
        return self


# --- Session ---


class SessionStartResponse(BaseModel):
    """Response when starting a new study session."""

    session_id: str
    deck_key: str
    total_cards: int
    due_cards: int
    new_cards: int


class QuestionResponse(BaseModel):
    """The next multiple-choice question in a session."""

    card_id: int
    prompt: str  # the card's definition
    options: list[str]  # candidate terms
    repetitions: int
    remaining: int  # cards currently due, including this one


class AnswerRequest(BaseModel):
    """Submit the term picked for a question."""

    card_id: int
    choice: str
    self_rating: int | None = Field(default=None, ge=0, le=3)  # Optional override


class AnswerResponse(BaseModel):
    """Feedback and scheduling info after answering."""

    correct: bool
    feedback: str
    correct_answer: str
    applied_rating: int
    interval_days: float
    ease_factor: float
    next_review: datetime
    remaining: int
    session_complete: bool


class SessionStatsResponse(BaseModel):
    """Statistics for the current study session."""

    cards_reviewed: int
    correct: int
    incorrect: int
    new_cards_seen: int
    accuracy: float


# --- Stats ---


class DeckStatsResponse(BaseModel):
    """Overall scheduling statistics for a deck."""

    deck_key: str
    total_cards: int
    cards_due: int
    cards_new: int
    total_reviews: int
