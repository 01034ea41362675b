"""In-memory representation of a deck and its cards."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Card:
    """A term/definition pair. ``id`` is unique within its deck."""

    id: int
    term: str
    definition: str


@dataclass
class Deck:
    """A named, ordered collection of cards."""

    name: str
    description: str | None = None
    cards: list[Card] = field(default_factory=list)
