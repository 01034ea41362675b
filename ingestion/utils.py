"""Shared utilities for the deck parsers."""

import logging
import unicodedata
from collections.abc import Callable, Iterable, Sequence

from backend.deck.model import Card, Deck
from ingestion.errors import ParseError

logger = logging.getLogger(__name__)

# Zero-width characters that can cause false mismatches in terms
ZERO_WIDTH_CHARS = "\u200b\u200c\u200d\ufeff"

# Definition used when a source format has a term but no definition
PLACEHOLDER_DEFINITION = "(no definition)"

Parser = Callable[[str], Deck]


def normalize_text(text: str) -> str:
    """Normalize a term or definition.

    Applies:
    - Unicode NFC normalization (canonical decomposition + composition)
    - Strips leading/trailing whitespace
    - Removes zero-width characters that don't affect meaning
    """
    text = unicodedata.normalize("NFC", text.strip())
    return text.translate(str.maketrans("", "", ZERO_WIDTH_CHARS)).strip()


def build_deck(
    pairs: Iterable[tuple[str, str]],
    name: str = "",
    description: str | None = None,
) -> Deck:
    """Build a deck from raw term/definition pairs.

    Both sides are normalized, pairs with an empty side are dropped, and
    ids are assigned sequentially from 1. An empty ``name`` means the
    source declared no title; the dispatcher fills one in.

    Raises:
        ParseError: No usable pair remained.
    """
    cards: list[Card] = []
    dropped = 0
    for term, definition in pairs:
        term = normalize_text(term)
        definition = normalize_text(definition)
        if not term or not definition:
            dropped += 1
            continue
        cards.append(Card(id=len(cards) + 1, term=term, definition=definition))

    if dropped:
        logger.debug("Dropped %d empty pairs", dropped)
    if not cards:
        raise ParseError("no term/definition pairs found")
    return Deck(name=name.strip(), description=description, cards=cards)


def first_successful(text: str, parsers: Sequence[Parser]) -> Deck:
    """Run parsers in order and return the first deck with at least one card.

    Raises:
        ParseError: Every parser failed; the message lists each reason.
    """
    reasons: list[str] = []
    for parser in parsers:
        name = parser.__name__.removeprefix("_").removeprefix("try_")
        try:
            deck = parser(text)
        except ParseError as e:
            logger.debug("Parser %s failed: %s", name, e)
            reasons.append(f"{name}: {e}")
            continue
        if deck.cards:
            logger.debug("Parser %s produced %d cards", name, len(deck.cards))
            return deck
        reasons.append(f"{name}: no cards")
    raise ParseError("; ".join(reasons))
