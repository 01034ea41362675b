"""Anki package (``.apkg``) decks.

An ``.apkg`` file is a ZIP archive around an SQLite collection. Users may
also hand over an already-unzipped package directory. Either way:

- Locate the collection database, newest schema first
  (``collection.anki21b``, ``collection.anki21``, ``collection.anki2``).
  A candidate that cannot be queried is skipped; ``anki21b`` collections are
  zstd-compressed and usually sit next to a readable legacy ``anki2`` file.
- Read ``notes.flds``: one string per note, fields separated by ``\\x1f``.
  Field 0 is the term, field 1 the definition.
- Strip ``[sound:...]`` tags and ``[anki:tts ...]...[/anki:tts]`` spans.
- Feed the pairs to the delimited-text parser as ``term<TAB>definition``
  lines.
"""

import logging
import shutil
import tempfile
import zipfile
from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from backend.deck.model import Deck
from ingestion.delimited import parse_delimited
from ingestion.errors import ParseError

logger = logging.getLogger(__name__)

# Preferred order: newest schema first
COLLECTION_NAMES = ("collection.anki21b", "collection.anki21", "collection.anki2")

FIELD_SEPARATOR = "\x1f"

SOUND_TAG = ("[sound:", "]")
TTS_SPAN = ("[anki:tts", "[/anki:tts]")


def _remove_spans(value: str, start: str, end: str) -> str:
    """Remove every ``start...end`` span. An unclosed span is kept as text."""
    out: list[str] = []
    rest = value
    while True:
        idx = rest.find(start)
        if idx == -1:
            out.append(rest)
            break
        close = rest.find(end, idx + len(start))
        if close == -1:
            out.append(rest)
            break
        out.append(rest[:idx])
        rest = rest[close + len(end) :]
    return "".join(out)


def strip_anki_markup(value: str) -> str:
    """Strip sound tags and text-to-speech spans from a note field."""
    value = _remove_spans(value, *SOUND_TAG)
    return _remove_spans(value, *TTS_SPAN)


def _clean_field(value: str) -> str:
    # Tabs and newlines would break the synthetic row format
    return " ".join(strip_anki_markup(value).split())


def read_note_fields(db_path: Path) -> list[str]:
    """Return the raw ``flds`` column of every note in a collection.

    Raises:
        ParseError: The file is not a queryable Anki collection.
    """
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        with engine.connect() as conn:
            return [row[0] or "" for row in conn.execute(text("SELECT flds FROM notes"))]
    except SQLAlchemyError as e:
        raise ParseError(f"{db_path.name} is not a readable Anki collection: {e}") from e
    finally:
        engine.dispose()


def synthetic_text_from_notes(fields: list[str]) -> str:
    """Convert note fields to ``term<TAB>definition`` lines.

    Raises:
        ParseError: No note had both a term and a definition.
    """
    lines = []
    for flds in fields:
        parts = flds.split(FIELD_SEPARATOR)
        term = _clean_field(parts[0])
        definition = _clean_field(parts[1]) if len(parts) > 1 else ""
        if not term or not definition:
            continue
        lines.append(f"{term}\t{definition}")

    if not lines:
        raise ParseError("APKG import produced no usable notes (no term/definition pairs found)")
    return "\n".join(lines) + "\n"


def _deck_from_collection(db_path: Path, name: str) -> Deck:
    fields = read_note_fields(db_path)
    logger.info("Read %d notes from %s", len(fields), db_path.name)
    synthetic = synthetic_text_from_notes(fields)
    return parse_delimited(synthetic, name=name, split_semicolons=False)


def _parse_directory(directory: Path, name: str) -> Deck:
    candidates = [directory / c for c in COLLECTION_NAMES if (directory / c).is_file()]
    if not candidates:
        raise ParseError(
            f"Unzipped APKG directory '{directory}' is missing a "
            "collection.anki21/collection.anki2 database"
        )

    reasons = []
    for db_path in candidates:
        try:
            return _deck_from_collection(db_path, name)
        except ParseError as e:
            logger.debug("Skipping %s: %s", db_path.name, e)
            reasons.append(str(e))
    raise ParseError("; ".join(reasons))


def _choose_members(names: list[str]) -> list[str]:
    """Order archive members by schema preference (substring match)."""
    chosen: list[str] = []
    for marker in COLLECTION_NAMES:
        for member in names:
            if marker in member and member not in chosen:
                chosen.append(member)
    return chosen


def _parse_archive(path: Path, name: str) -> Deck:
    try:
        archive = zipfile.ZipFile(path)
    except zipfile.BadZipFile as e:
        raise ParseError(f"{path.name} is not a valid .apkg (ZIP) file") from e

    with archive, tempfile.TemporaryDirectory(prefix="morflash-apkg-") as tmp:
        members = _choose_members(archive.namelist())
        if not members:
            raise ParseError(
                "APKG archive is missing a collection.anki21/collection.anki2 database file"
            )

        reasons = []
        for index, member in enumerate(members):
            db_path = Path(tmp) / f"collection-{index}.db"
            with archive.open(member) as src, db_path.open("wb") as dst:
                shutil.copyfileobj(src, dst)
            try:
                return _deck_from_collection(db_path, name)
            except ParseError as e:
                logger.debug("Skipping %s: %s", member, e)
                reasons.append(str(e))
        raise ParseError("; ".join(reasons))


def parse_apkg(path: Path) -> Deck:
    """Import an ``.apkg`` file or an unzipped package directory.

    The deck is named after the file or directory stem. The temporary copy of
    the collection is removed on every exit path.

    Raises:
        ParseError: No collection database yielded a term/definition pair.
        OSError: The file cannot be read or extracted.
    """
    name = path.stem or "Imported Anki deck"
    if path.is_dir():
        return _parse_directory(path, name)
    return _parse_archive(path, name)
