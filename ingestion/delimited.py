"""Plain "term - definition" text, the fallback format for unknown files.

Rows are separated by newlines or semicolons (mixed use is fine). Each row is
split once on the first separator from ``SEPARATORS`` that occurs in it.
The order is a preference order, not a position order: a tab beats a spaced
dash, which beats a comma, since commas are the most likely to appear inside
a definition. A bare hyphen is never a separator, so "mother-in-law" stays
one term.
"""

import logging
import re

from backend.deck.model import Deck
from ingestion.utils import build_deck

logger = logging.getLogger(__name__)

SEPARATORS = ("\t", " - ", " – ", " — ", ",")

_ROW_SPLIT = re.compile(r"\r?\n|;")
_LINE_SPLIT = re.compile(r"\r?\n")


def split_row(row: str) -> tuple[str, str]:
    """Split one row into (term, definition).

    A row with no recognized separator becomes a term with an empty
    definition, which ``build_deck`` later drops.
    """
    for sep in SEPARATORS:
        if sep in row:
            term, definition = row.split(sep, 1)
            return term.strip(), definition.strip()
    return row.strip(), ""


def parse_delimited(
    text: str,
    name: str = "",
    description: str | None = None,
    split_semicolons: bool = True,
) -> Deck:
    """Parse "term - definition" rows into a deck.

    Args:
        text: Raw text.
        name: Deck name, if the caller knows one.
        description: Optional deck description.
        split_semicolons: Treat ";" as a row separator as well as newlines.
            Disable for generated input whose fields may contain semicolons.

    Raises:
        ParseError: No row produced a term/definition pair.
    """
    splitter = _ROW_SPLIT if split_semicolons else _LINE_SPLIT
    # Trim sides only after splitting; an empty side must stay empty
    pairs = [split_row(row) for row in splitter.split(text) if row.strip()]
    logger.debug("Delimited text: %d non-empty rows", len(pairs))
    return build_deck(pairs, name=name, description=description)
