"""SQLAlchemy ORM models for the MorFlash database."""

from backend.models.base import Base
from backend.models.review_log import ReviewLog
from backend.models.review_state import ReviewStateRecord

__all__ = ["Base", "ReviewLog", "ReviewStateRecord"]
