"""The deck library: a directory of ``.mflash`` files."""

import logging
from pathlib import Path

from backend.deck.codec import FILE_EXTENSION, load_deck, save_deck
from backend.deck.model import Deck

logger = logging.getLogger(__name__)


def safe_file_stem(name: str) -> str:
    """Turn a deck name into a file stem that stays inside the library."""
    stem = name.replace("/", "_").replace("\\", "_").strip()
    return stem or "Imported deck"


def deck_key(path: Path) -> str:
    """Return the key that review state is stored under for a deck file."""
    return path.stem


def list_decks(decks_dir: Path) -> list[Path]:
    """Find all deck files in the library, sorted by name."""
    if not decks_dir.is_dir():
        return []
    return sorted(p for p in decks_dir.iterdir() if p.is_file() and p.suffix == FILE_EXTENSION)


def deck_path(name: str, decks_dir: Path) -> Path:
    return decks_dir / f"{safe_file_stem(name)}{FILE_EXTENSION}"


def save_to_library(deck: Deck, decks_dir: Path) -> Path:
    """Write a deck into the library, replacing any deck of the same name."""
    decks_dir.mkdir(parents=True, exist_ok=True)
    dest = deck_path(deck.name, decks_dir)
    if dest.exists():
        logger.warning("Overwriting existing deck file %s", dest)
    save_deck(dest, deck)
    return dest


def load_from_library(name: str, decks_dir: Path) -> Deck:
    """Load a deck by name (or file stem) from the library.

    Raises:
        FileNotFoundError: No such deck in the library.
        CodecError: The deck file is not a readable ``.mflash`` deck.
    """
    path = deck_path(name, decks_dir)
    if not path.is_file():
        raise FileNotFoundError(f"No deck named '{name}' in {decks_dir}")
    return load_deck(path)
