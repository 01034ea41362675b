"""Canonical ``.mflash`` deck format, version 1.

A ``.mflash`` file is a single UTF-8 JSON object::

    {
      "format": "mflash",
      "version": 1,
      "title": "...",
      "description": null, "snippet": null,
      "default_term_lang": null, "default_def_lang": null,
      "deck_tags": [], "cover_media": null,
      "cards": [{"term": "...", "definition": "...", "term_lang": null,
                 "def_lang": null, "hyperlink": null, "media": null,
                 "tags": [], "examples": []}]
    }

The in-memory ``Deck``/``Card`` model has no languages, tags, examples,
hyperlinks or media. Saving emits those fields empty, and loading discards
them, so they do not survive a load/save cycle.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from backend.deck.model import Card, Deck

logger = logging.getLogger(__name__)

FORMAT_TAG = "mflash"
FORMAT_VERSION = 1
SUPPORTED_VERSIONS = frozenset({FORMAT_VERSION})
FILE_EXTENSION = ".mflash"


class CodecError(Exception):
    """Base class for canonical deck file failures."""


class WrongFormatTagError(CodecError):
    """The file is not an .mflash deck (missing or different ``format`` tag)."""


class UnsupportedVersionError(CodecError):
    """The file is an .mflash deck of a version this build cannot read."""

    def __init__(self, version: Any) -> None:
        self.version = version
        super().__init__(
            f"Unsupported .mflash version {version!r} "
            f"(supported: {', '.join(str(v) for v in sorted(SUPPORTED_VERSIONS))})"
        )


class CorruptDeckError(CodecError):
    """The file claims to be an .mflash deck but cannot be decoded."""


class MflashCard(BaseModel):
    """A single card in a ``.mflash`` deck."""

    term: str
    definition: str
    term_lang: str | None = None  # overrides the deck default
    def_lang: str | None = None  # overrides the deck default
    hyperlink: str | None = None
    media: str | None = None  # relative media path
    tags: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)


class MflashDeck(BaseModel):
    """Top-level ``.mflash`` deck object."""

    format: str = FORMAT_TAG
    version: int = FORMAT_VERSION
    title: str
    description: str | None = None
    snippet: str | None = None  # short preview text for deck pickers
    default_term_lang: str | None = None
    default_def_lang: str | None = None
    deck_tags: list[str] = Field(default_factory=list)
    cover_media: str | None = None
    cards: list[MflashCard] = Field(default_factory=list)

    def effective_term_lang(self, card: MflashCard) -> str | None:
        """Return the card's term language, falling back to the deck default."""
        return card.term_lang if card.term_lang is not None else self.default_term_lang

    def effective_def_lang(self, card: MflashCard) -> str | None:
        """Return the card's definition language, falling back to the deck default."""
        return card.def_lang if card.def_lang is not None else self.default_def_lang


def payload_from_deck(deck: Deck) -> MflashDeck:
    """Wrap an in-memory deck in the versioned payload."""
    return MflashDeck(
        title=deck.name,
        description=deck.description,
        cards=[MflashCard(term=c.term, definition=c.definition) for c in deck.cards],
    )


def deck_from_payload(payload: MflashDeck) -> Deck:
    """Flatten a payload into a ``Deck``, numbering cards by position."""
    cards = [
        Card(id=i, term=c.term, definition=c.definition)
        for i, c in enumerate(payload.cards, start=1)
    ]
    return Deck(name=payload.title, description=payload.description, cards=cards)


def _is_supported_version(version: Any) -> bool:
    # bool is an int subclass; `true` is not a version
    if isinstance(version, bool) or not isinstance(version, int):
        return False
    return version in SUPPORTED_VERSIONS


def parse_payload(text: str) -> MflashDeck:
    """Decode and validate ``.mflash`` JSON text.

    Validation order matters: the ``format`` tag is checked before the
    version, and both before the remaining fields, so callers can tell
    "not a deck file" from "future version" from "damaged deck file".

    Raises:
        WrongFormatTagError: The JSON is not an object tagged ``"mflash"``.
        UnsupportedVersionError: The version is not supported.
        CorruptDeckError: The text is not JSON, or the fields are invalid.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CorruptDeckError(f"Invalid .mflash deck: not valid JSON ({e})") from e

    if not isinstance(data, dict):
        raise WrongFormatTagError("Invalid .mflash deck: expected a JSON object")

    tag = data.get("format")
    if tag != FORMAT_TAG:
        raise WrongFormatTagError(
            f'Invalid .mflash deck: expected format "{FORMAT_TAG}", got {tag!r}'
        )

    version = data.get("version")
    if not _is_supported_version(version):
        raise UnsupportedVersionError(version)

    try:
        return MflashDeck.model_validate(data)
    except ValidationError as e:
        raise CorruptDeckError(
            f"Invalid .mflash deck: {e.error_count()} invalid field(s)\n{e}"
        ) from e


def save_deck(path: Path, deck: Deck) -> None:
    """Save a deck as an ``.mflash`` file."""
    payload = payload_from_deck(deck)
    path.write_text(payload.model_dump_json(indent=2), encoding="utf-8")
    logger.info("Saved deck '%s' (%d cards) to %s", deck.name, len(deck.cards), path)


def load_deck(path: Path) -> Deck:
    """Load an ``.mflash`` file into a ``Deck``.

    Raises:
        OSError: The file cannot be read.
        CodecError: See ``parse_payload``.
    """
    try:
        text = path.read_bytes().decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CorruptDeckError(f"Invalid .mflash deck: not UTF-8 text ({e})") from e
    payload = parse_payload(text)
    deck = deck_from_payload(payload)
    logger.debug("Loaded deck '%s' (%d cards) from %s", deck.name, len(deck.cards), path)
    return deck
