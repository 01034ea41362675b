"""Import pipeline: external file -> canonical deck in the library."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from backend.deck.library import save_to_library
from backend.deck.model import Deck
from ingestion.errors import DeckImportError
from ingestion.file_handlers import import_deck_file, import_deck_text

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Result of importing one source into the deck library."""

    source: str
    deck: Deck | None = None
    saved_path: Path | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.deck is not None and self.saved_path is not None


def _store(result: ImportResult, deck: Deck, decks_dir: Path) -> ImportResult:
    result.deck = deck
    try:
        result.saved_path = save_to_library(deck, decks_dir)
    except OSError as e:
        msg = f"Failed to write deck '{deck.name}': {e}"
        logger.error(msg)
        result.errors.append(msg)
    return result


def run_import(source: Path, decks_dir: Path) -> ImportResult:
    """Import a file (or unzipped .apkg directory) and save it to the library.

    Steps:
    1. Detect the format and parse the source into a deck
    2. Write the deck as an .mflash file under ``decks_dir``

    Failures are collected in ``ImportResult.errors`` rather than raised.
    """
    result = ImportResult(source=str(source))

    if not source.exists():
        result.errors.append(f"Source path does not exist: {source}")
        return result

    logger.info("Step 1: Parsing %s", source)
    try:
        deck = import_deck_file(source)
    except (DeckImportError, OSError) as e:
        msg = f"Failed to import {source.name}: {e}"
        logger.error(msg)
        result.errors.append(msg)
        return result

    logger.info("Step 2: Saving '%s' (%d cards) to %s", deck.name, len(deck.cards), decks_dir)
    return _store(result, deck, decks_dir)


def run_text_import(text: str, extension: str, name: str, decks_dir: Path) -> ImportResult:
    """Import pasted text and save it to the library."""
    result = ImportResult(source=name or "<text>")
    try:
        deck = import_deck_text(text, extension, name=name)
    except DeckImportError as e:
        msg = f"Failed to import {result.source}: {e}"
        logger.error(msg)
        result.errors.append(msg)
        return result
    return _store(result, deck, decks_dir)
