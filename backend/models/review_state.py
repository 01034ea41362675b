"""Persisted SM-2 scheduling state for one card of one deck."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backend.config import utcnow
from backend.models.base import Base, TimestampMixin


class ReviewStateRecord(Base, TimestampMixin):
    """Review state row, keyed by deck file stem and positional card id."""

    __tablename__ = "review_states"
    __table_args__ = (UniqueConstraint("deck_key", "card_id", name="uq_review_state_card"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    deck_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    card_id: Mapped[int] = mapped_column(Integer, nullable=False)
    interval_days: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=2.5)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_review: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
