"""Markdown decks in several common note-taking styles.

Dialects are tried from strict to loose; the first with at least one card
wins:

1. Heading pairs::

       ## Photosynthesis
       The process by which plants make food.

2. Bullets: ``- Dog: A domesticated mammal`` (``*`` bullets too)
3. A two-column table::

       | Term | Definition |
       |------|------------|
       | Dog  | A mammal   |

4. Fenced card blocks::

       ```card
       Term: Dog
       Definition: A mammal
       ```

5. Glossary: ``**Dog** — A mammal``
6. Bare lines: ``Dog: A mammal``
"""

import logging
import re

from backend.deck.model import Deck
from ingestion.errors import ParseError
from ingestion.utils import PLACEHOLDER_DEFINITION, build_deck, first_successful

logger = logging.getLogger(__name__)

CARD_FENCE = "```card"
FENCE = "```"
GLOSSARY_SEPARATOR = "—"

_TABLE_SEPARATOR_ROW = re.compile(r"^\|?[\s:\-|]+\|?$")


def _lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines()]


def try_heading_pairs(text: str) -> Deck:
    pairs: list[tuple[str, str]] = []
    current_term: str | None = None

    for line in _lines(text):
        if line.startswith("#"):
            if current_term is not None:
                # Previous heading had no definition line
                pairs.append((current_term, PLACEHOLDER_DEFINITION))
            current_term = line.lstrip("#").strip()
        elif line and current_term is not None:
            pairs.append((current_term, line))
            current_term = None

    if current_term is not None:
        pairs.append((current_term, PLACEHOLDER_DEFINITION))
    if not pairs:
        raise ParseError("no headings")
    return build_deck(pairs)


def try_bullets(text: str) -> Deck:
    pairs = []
    for line in _lines(text):
        if not (line.startswith("- ") or line.startswith("* ")):
            continue
        term, sep, definition = line[2:].strip().partition(":")
        if sep:
            pairs.append((term, definition))
    if not pairs:
        raise ParseError("no '- term: definition' bullets")
    return build_deck(pairs)


def try_table(text: str) -> Deck:
    lines = [line for line in _lines(text) if line]
    if not lines or not lines[0].startswith("|"):
        raise ParseError("not a table")

    # Header row, then the |---|---| separator row
    rows = lines[1:]
    if rows and _TABLE_SEPARATOR_ROW.match(rows[0]):
        rows = rows[1:]

    pairs = []
    for row in rows:
        if not row.startswith("|"):
            continue
        cells = [cell.strip() for cell in row.split("|") if cell.strip()]
        if len(cells) >= 2:
            pairs.append((cells[0], cells[1]))
    return build_deck(pairs)


def try_card_blocks(text: str) -> Deck:
    pairs = []
    in_block = False
    term = definition = ""

    for line in _lines(text):
        if line == CARD_FENCE:
            in_block = True
            term = definition = ""
            continue
        if line == FENCE:
            if in_block and term:
                pairs.append((term, definition))
            in_block = False
            continue
        if in_block:
            key, sep, value = line.partition(":")
            if not sep:
                continue
            key = key.strip().lower()
            if key == "term":
                term = value.strip()
            elif key == "definition":
                definition = value.strip()

    if not pairs:
        raise ParseError(f"no {CARD_FENCE} blocks")
    return build_deck(pairs)


def try_glossary(text: str) -> Deck:
    pairs = []
    for line in _lines(text):
        if not line.startswith("**"):
            continue
        term, sep, definition = line.partition(GLOSSARY_SEPARATOR)
        if sep:
            pairs.append((term.strip().removeprefix("**").removesuffix("**"), definition))
    if not pairs:
        raise ParseError("no '**Term** — Definition' lines")
    return build_deck(pairs)


def try_colon_lines(text: str) -> Deck:
    pairs = []
    for line in _lines(text):
        term, sep, definition = line.partition(":")
        if sep:
            pairs.append((term, definition))
    return build_deck(pairs)


MARKDOWN_DIALECTS = [
    try_heading_pairs,
    try_bullets,
    try_table,
    try_card_blocks,
    try_glossary,
    try_colon_lines,
]


def parse_markdown(text: str) -> Deck:
    """Parse Markdown text in the first matching dialect.

    Raises:
        ParseError: No dialect produced a card.
    """
    return first_successful(text, MARKDOWN_DIALECTS)
