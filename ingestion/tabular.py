"""CSV decks: one "term,definition" row per card, optional header row."""

import csv
import io
import logging

from backend.deck.model import Deck
from ingestion.errors import ParseError
from ingestion.utils import build_deck

logger = logging.getLogger(__name__)

# Header row vocabulary; both of the first two cells must match
TERM_HEADERS = frozenset({"term", "terms", "front", "question", "word", "prompt"})
DEFINITION_HEADERS = frozenset(
    {"definition", "definitions", "back", "answer", "meaning", "translation"}
)


def is_header_row(cells: list[str]) -> bool:
    """Return True if a row's first two cells are column names, not a card."""
    if len(cells) < 2:
        return False
    first, second = cells[0].strip().lower(), cells[1].strip().lower()
    return first in TERM_HEADERS and second in DEFINITION_HEADERS


def _pairs_from_rows(rows: list[list[str]]) -> list[tuple[str, str]]:
    if rows and is_header_row(rows[0]):
        logger.debug("Skipping CSV header row: %s", rows[0][:2])
        rows = rows[1:]
    # Extra columns are ignored; a single cell is a term without definition
    return [(row[0], row[1] if len(row) > 1 else "") for row in rows if row]


def _read_structured(text: str) -> list[tuple[str, str]]:
    """Read with the csv module: quoted fields, ragged rows."""
    reader = csv.reader(io.StringIO(text), skipinitialspace=True)
    return _pairs_from_rows([row for row in reader if any(cell.strip() for cell in row)])


def _read_naive(text: str) -> list[tuple[str, str]]:
    """Split each line on its first comma, ignoring quoting."""
    rows = [line.strip().split(",", 1) for line in text.splitlines() if line.strip()]
    return _pairs_from_rows(rows)


def parse_tabular(text: str, name: str = "", description: str | None = None) -> Deck:
    """Parse CSV text into a deck.

    The csv module is tried first. If it raises or yields no usable card,
    a plain split on the first comma of each line is used instead.

    Raises:
        ParseError: Neither reader produced a card.
    """
    try:
        return build_deck(_read_structured(text), name=name, description=description)
    except (csv.Error, ParseError) as e:
        logger.debug("Structured CSV read failed (%s), falling back to naive split", e)

    return build_deck(_read_naive(text), name=name, description=description)
