"""JSON decks in any of several common shapes.

Shapes are tried in order, and the first one yielding at least one card wins:

1. A canonical ``.mflash`` deck object (or the plain ``{name, cards}`` dump
   of an in-memory deck).
2. ``[{"term": ..., "definition": ...}, ...]``
3. ``{"term": "definition", ...}``
4. ``["term", ...]``, where every card gets a placeholder definition.
5. ``[["term", "definition"], ...]``
6. ``{"category": [["term", "definition"], ...], ...}``, flattened, with
   categories discarded.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from backend.deck.codec import CodecError, deck_from_payload, parse_payload
from backend.deck.model import Deck
from ingestion.errors import ParseError
from ingestion.utils import PLACEHOLDER_DEFINITION, build_deck, first_successful

logger = logging.getLogger(__name__)


class _PlainCard(BaseModel):
    term: str
    definition: str


class _PlainDeck(BaseModel):
    """The JSON dump of an in-memory deck: ``{name, description, cards}``."""

    name: str
    description: str | None = None
    cards: list[_PlainCard]


def _load(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON: {e}") from e


def _pair(item: Any) -> tuple[str, str] | None:
    if (
        isinstance(item, list)
        and len(item) == 2
        and isinstance(item[0], str)
        and isinstance(item[1], str)
    ):
        return item[0], item[1]
    return None


def try_canonical_deck(text: str) -> Deck:
    data = _load(text)
    if isinstance(data, dict) and "format" in data:
        try:
            deck = deck_from_payload(parse_payload(text))
        except CodecError as e:
            raise ParseError(str(e)) from e
        pairs = ((c.term, c.definition) for c in deck.cards)
        return build_deck(pairs, deck.name, deck.description)

    try:
        plain = _PlainDeck.model_validate(data)
    except ValidationError as e:
        raise ParseError("not a deck object") from e
    pairs = ((c.term, c.definition) for c in plain.cards)
    return build_deck(pairs, plain.name, plain.description)


def try_term_definition_objects(text: str) -> Deck:
    data = _load(text)
    if not isinstance(data, list):
        raise ParseError("not an array")
    pairs = []
    for item in data:
        if not isinstance(item, dict):
            continue
        term, definition = item.get("term"), item.get("definition")
        if isinstance(term, str) and isinstance(definition, str):
            pairs.append((term, definition))
    return build_deck(pairs)


def try_term_map(text: str) -> Deck:
    data = _load(text)
    if not isinstance(data, dict):
        raise ParseError("not an object")
    if not all(isinstance(v, str) for v in data.values()):
        raise ParseError("object values are not all strings")
    return build_deck(data.items())


def try_term_list(text: str) -> Deck:
    data = _load(text)
    if not isinstance(data, list) or not all(isinstance(v, str) for v in data):
        raise ParseError("not an array of strings")
    return build_deck((term, PLACEHOLDER_DEFINITION) for term in data)


def try_pair_list(text: str) -> Deck:
    data = _load(text)
    if not isinstance(data, list):
        raise ParseError("not an array")
    pairs = [p for p in map(_pair, data) if p is not None]
    return build_deck(pairs)


def try_categorized_pairs(text: str) -> Deck:
    data = _load(text)
    if not isinstance(data, dict):
        raise ParseError("not an object")
    pairs = []
    for category, items in data.items():
        if not isinstance(items, list):
            raise ParseError(f"category {category!r} is not an array")
        pairs.extend(p for p in map(_pair, items) if p is not None)
    return build_deck(pairs)


JSON_SHAPES = [
    try_canonical_deck,
    try_term_definition_objects,
    try_term_map,
    try_term_list,
    try_pair_list,
    try_categorized_pairs,
]


def parse_structured(text: str) -> Deck:
    """Parse JSON text in the first matching shape.

    Raises:
        ParseError: The text is not JSON, or no shape produced a card.
    """
    _load(text)  # fail once, up front, on malformed JSON
    return first_successful(text, JSON_SHAPES)
