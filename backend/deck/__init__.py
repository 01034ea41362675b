"""Deck model, canonical .mflash codec, and the on-disk deck library."""

from backend.deck.model import Card, Deck

__all__ = ["Card", "Deck"]
