"""CLI interface for MorFlash.

Usage:
    python -m morflash import deck.csv       Import a deck into the library
    python -m morflash decks                 List library decks
    python -m morflash study "Spanish"       Start a multiple-choice study session
    python -m morflash due "Spanish"         Show how many cards are due
    python -m morflash stats "Spanish"       Show deck statistics
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from backend.config import settings, utcnow
from backend.database import async_session, ensure_db
from backend.deck.codec import CodecError, load_deck
from backend.deck.library import deck_key, list_decks, load_from_library, safe_file_stem
from backend.deck.model import Deck
from backend.srs.session import start_session
from backend.srs.store import count_reviews, load_review_states, log_review, save_review_state
from ingestion.pipeline import run_import


def _load_library_deck(name: str) -> Deck | None:
    try:
        return load_from_library(name, settings.decks_dir)
    except FileNotFoundError:
        print(f"  No deck named '{name}'. Run 'decks' to list the library.")
    except CodecError as e:
        print(f"  Deck '{name}' could not be read: {e}")
    return None


def cmd_import(args: argparse.Namespace) -> int:
    """Import a file into the deck library."""
    source = args.source.expanduser().resolve()
    result = run_import(source, settings.decks_dir)
    if not result.ok or result.deck is None:
        for err in result.errors:
            print(f"  {err}", file=sys.stderr)
        return 1

    print(f"  Imported '{result.deck.name}': {len(result.deck.cards)} cards")
    print(f"  Saved to {result.saved_path}")
    return 0


def cmd_decks(args: argparse.Namespace) -> int:
    """List decks in the library."""
    paths = list_decks(settings.decks_dir)
    if not paths:
        print(f"  No decks in {settings.decks_dir}")
        return 0

    for path in paths:
        try:
            deck = load_deck(path)
        except (CodecError, OSError) as e:
            print(f"  {deck_key(path):<30} (unreadable: {e})")
            continue
        print(f"  {deck_key(path):<30} {len(deck.cards):>5} cards")
    return 0


async def cmd_study(args: argparse.Namespace) -> int:
    """Run an interactive multiple-choice study session."""
    deck = _load_library_deck(args.deck)
    if deck is None:
        return 1

    await ensure_db()
    key = safe_file_stem(args.deck)
    now = utcnow()

    async with async_session() as db:
        store = await load_review_states(db, key, deck, now)
        session = start_session(key, deck, store, now)

        due = store.due_count(now)
        if not due:
            print("\n  No cards due for review. You're all caught up!")
            return 0

        print(f"\n  Study Session: {deck.name}")
        print(f"  {due} cards due\n")
        print("  Pick the term that matches each definition.")
        print("  Type 'q' to quit\n")

        while session.stats.cards_reviewed < args.max_cards:
            now = utcnow()
            question = session.next_question(now)
            if question is None:
                break

            print(f"  [{session.stats.cards_reviewed + 1}] {question.prompt}")
            for j, option in enumerate(question.options, 1):
                print(f"    {j}. {option}")

            response = input("\n  Your answer: ").strip()
            if response.lower() == "q":
                print("\n  Session ended early.")
                break

            # Numeric input picks an option
            if response.isdigit() and 1 <= int(response) <= len(question.options):
                response = question.options[int(response) - 1]

            outcome = session.answer(question.card.id, response, utcnow())
            await save_review_state(db, key, outcome.new_state)
            log_review(db, key, outcome.previous_state, outcome.new_state, outcome.rating)
            await db.commit()

            print(f"  {outcome.feedback}")
            print(f"  Next review in {outcome.new_state.interval_days:.1f} days\n")

    s = session.stats
    print("\n  Session Complete!")
    print(f"  Reviewed: {s.cards_reviewed}  Correct: {s.correct}  Accuracy: {s.accuracy:.0f}%\n")
    return 0


async def cmd_due(args: argparse.Namespace) -> int:
    """Show how many cards are due."""
    deck = _load_library_deck(args.deck)
    if deck is None:
        return 1

    await ensure_db()
    now = utcnow()
    async with async_session() as db:
        store = await load_review_states(db, safe_file_stem(args.deck), deck, now)

    print(f"  {store.due_count(now)} cards due, {store.new_count()} never reviewed")
    return 0


async def cmd_stats(args: argparse.Namespace) -> int:
    """Show deck statistics."""
    deck = _load_library_deck(args.deck)
    if deck is None:
        return 1

    await ensure_db()
    key = safe_file_stem(args.deck)
    now = utcnow()
    async with async_session() as db:
        store = await load_review_states(db, key, deck, now)
        reviews = await count_reviews(db, key)

    print(f"\n  {deck.name}")
    print(f"  {'Total cards:':<20} {len(deck.cards)}")
    print(f"  {'Due now:':<20} {store.due_count(now)}")
    print(f"  {'New (unseen):':<20} {store.new_count()}")
    print(f"  {'Total reviews:':<20} {reviews}")
    print()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="morflash",
        description="MorFlash flashcards with spaced repetition",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # import
    import_parser = subparsers.add_parser("import", help="Import a deck file into the library")
    import_parser.add_argument(
        "source",
        type=Path,
        help="Deck file (.txt, .csv, .json, .md, .apkg, ...) or unzipped .apkg directory",
    )

    # decks
    subparsers.add_parser("decks", help="List decks in the library")

    # study
    study_parser = subparsers.add_parser("study", help="Start a study session")
    study_parser.add_argument("deck", help="Deck name")
    study_parser.add_argument(
        "--max-cards",
        type=int,
        default=settings.max_cards_per_session,
        help="Max cards per session",
    )

    # due
    due_parser = subparsers.add_parser("due", help="Show cards due for review")
    due_parser.add_argument("deck", help="Deck name")

    # stats
    stats_parser = subparsers.add_parser("stats", help="Show deck statistics")
    stats_parser.add_argument("deck", help="Deck name")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the MorFlash CLI application."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if not args.command:
        parser.print_help()
        return 0

    # import and decks are synchronous, the rest touch the database
    sync_commands = {"import": cmd_import, "decks": cmd_decks}
    if args.command in sync_commands:
        return sync_commands[args.command](args)

    async_commands = {
        "study": cmd_study,
        "due": cmd_due,
        "stats": cmd_stats,
    }
    return asyncio.run(async_commands[args.command](args))


if __name__ == "__main__":
    sys.exit(main())
