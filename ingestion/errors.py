"""Exceptions raised while importing decks from external formats."""


class ParseError(ValueError):
    """Input does not match a parser's grammar, or yields no cards.

    Recoverable: the dispatcher moves on to the next candidate parser.
    """


class DeckImportError(Exception):
    """An import failed. ``format_name`` is the format that was attempted."""

    def __init__(self, message: str, format_name: str | None = None) -> None:
        super().__init__(message)
        self.format_name = format_name


class UnsupportedFormatError(DeckImportError):
    """No parser for the source's format produced a deck."""

    def __init__(self, format_name: str, reasons: list[str] | None = None) -> None:
        self.reasons = reasons or []
        message = f"Unsupported {format_name} deck format"
        if self.reasons:
            message += ": " + "; ".join(self.reasons)
        super().__init__(message, format_name)
