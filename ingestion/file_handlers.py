"""Import dispatcher: pick a parser by file extension and normalize the result."""

import logging
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

from backend.deck.model import Deck
from ingestion.apkg import parse_apkg
from ingestion.delimited import parse_delimited
from ingestion.errors import DeckImportError, ParseError, UnsupportedFormatError
from ingestion.markdown import parse_markdown
from ingestion.structured import parse_structured
from ingestion.tabular import parse_tabular

logger = logging.getLogger(__name__)

DEFAULT_DECK_NAME = "Imported deck"


def _parse_xml(text: str) -> Deck:
    raise ParseError("XML import is not implemented yet")


# Map text file extensions to (format name, parser)
HANDLERS: dict[str, tuple[str, Callable[[str], Deck]]] = {
    ".json": ("json", parse_structured),
    ".mflash": ("json", parse_structured),
    ".csv": ("csv", parse_tabular),
    ".md": ("markdown", parse_markdown),
    ".markdown": ("markdown", parse_markdown),
    ".xml": ("xml", _parse_xml),
}

FALLBACK_HANDLER: tuple[str, Callable[[str], Deck]] = ("text", parse_delimited)

BINARY_EXTENSIONS = frozenset({".apkg"})


def _finalize(deck: Deck, fallback_name: str) -> Deck:
    """Apply the default deck name when the source declared none."""
    if deck.name:
        return deck
    return replace(deck, name=fallback_name or DEFAULT_DECK_NAME)


def import_deck_text(text: str, extension: str = "", name: str = "") -> Deck:
    """Import a deck from text that has already been read.

    Args:
        text: The deck's content.
        extension: Format hint such as ".csv" (case-insensitive). Unknown or
            empty hints use the plain "term - definition" parser.
        name: Deck name to use when the content declares no title.

    Returns:
        A deck with trimmed, non-empty cards numbered from 1.

    Raises:
        UnsupportedFormatError: No parser for the format produced a card.
    """
    ext = extension.lower()
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    if ext in BINARY_EXTENSIONS:
        raise DeckImportError(f"{ext} decks must be imported from a file", ext.lstrip("."))

    format_name, parser = HANDLERS.get(ext, FALLBACK_HANDLER)
    logger.debug("Parsing %s as %s", name or "<text>", format_name)
    try:
        deck = parser(text)
    except ParseError as e:
        raise UnsupportedFormatError(format_name, [str(e)]) from e

    return _finalize(deck, name)


def import_deck_file(source: Path) -> Deck:
    """Import a deck from a file, or from an unzipped ``.apkg`` directory.

    Raises:
        UnsupportedFormatError: No parser for the file's format produced a card.
        DeckImportError: The file is not UTF-8 text.
        OSError: The file cannot be read.
    """
    ext = source.suffix.lower()

    if source.is_dir() or ext in BINARY_EXTENSIONS:
        logger.info("Importing %s (apkg)", source.name)
        try:
            deck = parse_apkg(source)
        except ParseError as e:
            raise UnsupportedFormatError("apkg", [str(e)]) from e
        return _finalize(deck, source.stem)

    logger.info("Importing %s (%s)", source.name, ext or "no extension")
    try:
        text = source.read_bytes().decode("utf-8-sig")
    except UnicodeDecodeError as e:
        format_name = HANDLERS.get(ext, FALLBACK_HANDLER)[0]
        raise DeckImportError(f"{source.name} is not UTF-8 text: {e}", format_name) from e

    deck = import_deck_text(text, ext, name=source.stem)
    logger.info("Imported '%s': %d cards", deck.name, len(deck.cards))
    return deck
