"""Tests for deck import: parsers, format dispatch, and the import pipeline."""

import json
import tempfile
import zipfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text

from backend.deck.codec import load_deck
from ingestion.apkg import parse_apkg, strip_anki_markup, synthetic_text_from_notes
from ingestion.delimited import parse_delimited, split_row
from ingestion.errors import DeckImportError, ParseError, UnsupportedFormatError
from ingestion.file_handlers import import_deck_file, import_deck_text
from ingestion.markdown import parse_markdown
from ingestion.pipeline import run_import, run_text_import
from ingestion.structured import parse_structured
from ingestion.tabular import is_header_row, parse_tabular
from ingestion.utils import PLACEHOLDER_DEFINITION, build_deck, normalize_text


def _pairs(deck) -> list[tuple[str, str]]:
    return [(c.term, c.definition) for c in deck.cards]


# --- Utils ---


class TestUtils:
    def test_normalize_text(self) -> None:
        assert normalize_text("  café  ") == "café"
        assert normalize_text("\u200bword\u200d") == "word"

    def test_build_deck_drops_empty_sides(self) -> None:
        deck = build_deck([("a", "b"), ("", "x"), ("c", "  "), (" d ", " e ")])
        assert _pairs(deck) == [("a", "b"), ("d", "e")]
        assert [c.id for c in deck.cards] == [1, 2]

    def test_build_deck_empty(self) -> None:
        with pytest.raises(ParseError):
            build_deck([("", "")])


# --- Delimited text ---


class TestDelimited:
    def test_spaced_dash(self) -> None:
        deck = parse_delimited("apple - a fruit\nbanana - a fruit too")
        assert _pairs(deck) == [("apple", "a fruit"), ("banana", "a fruit too")]

    def test_bare_hyphen_is_not_a_separator(self) -> None:
        deck = parse_delimited("mother-in-law - relative")
        assert _pairs(deck) == [("mother-in-law", "relative")]

    def test_tab_preferred_over_dash(self) -> None:
        assert split_row("a - b\tc") == ("a - b", "c")

    def test_dash_preferred_over_comma(self) -> None:
        assert split_row("dog, hound - canine") == ("dog, hound", "canine")

    def test_comma_and_dash_variants(self) -> None:
        deck = parse_delimited("x, y\nuno – one\ndos — two")
        assert _pairs(deck) == [("x", "y"), ("uno", "one"), ("dos", "two")]

    def test_semicolon_rows(self) -> None:
        deck = parse_delimited("cat - feline; dog - canine\nfish - swims")
        assert _pairs(deck) == [("cat", "feline"), ("dog", "canine"), ("fish", "swims")]

    def test_semicolons_kept_when_disabled(self) -> None:
        deck = parse_delimited("a\tb; c", split_semicolons=False)
        assert _pairs(deck) == [("a", "b; c")]

    def test_empty_side_around_tab_dropped(self) -> None:
        deck = parse_delimited("red, green\t\n\tcats - felines\nsol\tsun", split_semicolons=False)
        assert _pairs(deck) == [("sol", "sun")]

    def test_rows_without_separator_dropped(self) -> None:
        deck = parse_delimited("lonely\n\napple - fruit\r\n")
        assert _pairs(deck) == [("apple", "fruit")]
        assert deck.cards[0].id == 1

    def test_no_pairs(self) -> None:
        with pytest.raises(ParseError):
            parse_delimited("just words\nmore words")


# --- CSV ---


class TestTabular:
    def test_header_row_skipped(self) -> None:
        deck = parse_tabular("term,definition\napple,fruit")
        assert _pairs(deck) == [("apple", "fruit")]

    def test_header_synonyms_case_insensitive(self) -> None:
        deck = parse_tabular("Front, Back\nhola,hello\n")
        assert _pairs(deck) == [("hola", "hello")]

    def test_no_header(self) -> None:
        deck = parse_tabular("apple,fruit\nbanana,yellow")
        assert len(deck.cards) == 2

    def test_partial_header_is_a_card(self) -> None:
        assert not is_header_row(["term", "fruit"])
        deck = parse_tabular("term,fruit")
        assert _pairs(deck) == [("term", "fruit")]

    def test_quoted_fields_and_extra_columns(self) -> None:
        deck = parse_tabular('"hello, world",greeting,ignored\nbye,farewell')
        assert _pairs(deck) == [("hello, world", "greeting"), ("bye", "farewell")]

    def test_header_only(self) -> None:
        with pytest.raises(ParseError):
            parse_tabular("term,definition\n")

    def test_naive_fallback(self) -> None:
        # The unbalanced quote swallows the whole file into one cell
        deck = parse_tabular('"apple,fruit\nbanana,yellow')
        assert len(deck.cards) == 2
        assert deck.cards[1].term == "banana"
        assert deck.cards[1].definition == "yellow"


# --- JSON ---


class TestStructured:
    def test_term_definition_objects(self) -> None:
        deck = parse_structured('[{"term": "a", "definition": "b"}, {"term": "c"}]')
        assert _pairs(deck) == [("a", "b")]

    def test_term_map(self) -> None:
        deck = parse_structured('{"a": "b", "c": "d"}')
        assert _pairs(deck) == [("a", "b"), ("c", "d")]

    def test_term_list_gets_placeholder(self) -> None:
        deck = parse_structured('["x", "y"]')
        assert _pairs(deck) == [("x", PLACEHOLDER_DEFINITION), ("y", PLACEHOLDER_DEFINITION)]

    def test_pair_list(self) -> None:
        deck = parse_structured('[["a", "b"], ["c", "d"], ["bad"]]')
        assert _pairs(deck) == [("a", "b"), ("c", "d")]

    def test_categorized_pairs(self) -> None:
        deck = parse_structured('{"animals": [["dog", "canine"]], "colors": [["red", "rojo"]]}')
        assert _pairs(deck) == [("dog", "canine"), ("red", "rojo")]

    def test_canonical_deck(self) -> None:
        payload = {
            "format": "mflash",
            "version": 1,
            "title": "Verbs",
            "cards": [{"term": "ir", "definition": "to go", "tags": ["motion"]}],
        }
        deck = parse_structured(json.dumps(payload))
        assert deck.name == "Verbs"
        assert _pairs(deck) == [("ir", "to go")]

    def test_plain_deck_dump(self) -> None:
        dump = {"name": "Nouns", "cards": [{"id": 4, "term": "casa", "definition": "house"}]}
        deck = parse_structured(json.dumps(dump))
        assert deck.name == "Nouns"
        assert deck.cards[0].id == 1

    def test_unsupported_version_matches_no_shape(self) -> None:
        payload = {"format": "mflash", "version": 2, "title": "x", "cards": []}
        with pytest.raises(ParseError):
            parse_structured(json.dumps(payload))

    def test_invalid_json(self) -> None:
        with pytest.raises(ParseError, match="invalid JSON"):
            parse_structured("{not json")

    def test_no_shape(self) -> None:
        with pytest.raises(ParseError):
            parse_structured('{"a": 1}')


# --- Markdown ---


class TestMarkdown:
    def test_heading_pairs(self) -> None:
        deck = parse_markdown("# Dog\nA mammal\n\n## Cat\n# Cow\nGives milk\n# Yak")
        assert _pairs(deck) == [
            ("Dog", "A mammal"),
            ("Cat", PLACEHOLDER_DEFINITION),
            ("Cow", "Gives milk"),
            ("Yak", PLACEHOLDER_DEFINITION),
        ]

    def test_bullets(self) -> None:
        deck = parse_markdown("- Dog: A mammal\n* Cat: A small carnivore\n- no colon")
        assert _pairs(deck) == [("Dog", "A mammal"), ("Cat", "A small carnivore")]

    def test_table(self) -> None:
        md = "| Term | Definition |\n|------|------------|\n| Dog | A mammal |\n| Cat | A feline |"
        deck = parse_markdown(md)
        assert _pairs(deck) == [("Dog", "A mammal"), ("Cat", "A feline")]

    def test_card_blocks(self) -> None:
        md = "```card\nTerm: Dog\nDefinition: A mammal\n```\n\n```card\nTerm: Cat\n```"
        deck = parse_markdown(md)
        assert _pairs(deck) == [("Dog", "A mammal")]

    def test_glossary(self) -> None:
        deck = parse_markdown("**Dog** — A mammal\n**Cat** — A feline")
        assert _pairs(deck) == [("Dog", "A mammal"), ("Cat", "A feline")]

    def test_colon_lines(self) -> None:
        deck = parse_markdown("Dog: A mammal\nCat: A feline")
        assert _pairs(deck) == [("Dog", "A mammal"), ("Cat", "A feline")]

    def test_no_dialect(self) -> None:
        with pytest.raises(ParseError):
            parse_markdown("just some words\nanother line")


# --- APKG ---


def _make_collection(path: Path, notes: list[str]) -> Path:
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE notes (id INTEGER PRIMARY KEY, flds TEXT)"))
        for flds in notes:
            conn.execute(text("INSERT INTO notes (flds) VALUES (:flds)"), {"flds": flds})
    engine.dispose()
    return path


def _make_apkg(tmp_path: Path, members: dict[str, Path | bytes], name: str = "Spanish") -> Path:
    apkg = tmp_path / f"{name}.apkg"
    with zipfile.ZipFile(apkg, "w") as archive:
        for member, content in members.items():
            if isinstance(content, Path):
                archive.write(content, member)
            else:
                archive.writestr(member, content)
    return apkg


class TestApkg:
    def test_strip_markup(self) -> None:
        assert strip_anki_markup("hola[sound:hola.mp3]") == "hola"
        assert strip_anki_markup("[anki:tts lang=es]hola[/anki:tts]hello") == "hello"
        assert strip_anki_markup("open [sound:x") == "open [sound:x"

    def test_synthetic_text(self) -> None:
        notes = ["hola\x1fhello", "only term", "\x1fonly definition", "\x1f"]
        lines = synthetic_text_from_notes(notes)
        assert lines == "hola\thello\n"

    def test_synthetic_text_empty(self) -> None:
        with pytest.raises(ParseError, match="no usable notes"):
            synthetic_text_from_notes(["[sound:a.mp3]\x1f"])

    def test_archive(self, tmp_path: Path) -> None:
        db = _make_collection(
            tmp_path / "c.db",
            ["hola[sound:hola.mp3]\x1fhello\x1fextra", "gato\x1fcat; feline", "solo"],
        )
        deck = parse_apkg(_make_apkg(tmp_path, {"collection.anki2": db}))
        assert deck.name == "Spanish"
        assert _pairs(deck) == [("hola", "hello"), ("gato", "cat; feline")]

    def test_one_sided_notes_dropped(self, tmp_path: Path) -> None:
        db = _make_collection(
            tmp_path / "c.db",
            ["hola\x1fhello", "red, green\x1f", "\x1fcats - felines", "uno - dos"],
        )
        deck = parse_apkg(_make_apkg(tmp_path, {"collection.anki2": db}))
        assert _pairs(deck) == [("hola", "hello")]

    def test_unreadable_candidate_falls_through(self, tmp_path: Path) -> None:
        db = _make_collection(tmp_path / "c.db", ["uno\x1fone"])
        apkg = _make_apkg(
            tmp_path,
            {"collection.anki21b": b"\x28\xb5\x2f\xfd compressed", "collection.anki2": db},
        )
        assert _pairs(parse_apkg(apkg)) == [("uno", "one")]

    def test_directory(self, tmp_path: Path) -> None:
        unpacked = tmp_path / "French"
        unpacked.mkdir()
        _make_collection(unpacked / "collection.anki21", ["chat\x1fcat"])
        deck = parse_apkg(unpacked)
        assert deck.name == "French"
        assert _pairs(deck) == [("chat", "cat")]

    def test_missing_collection(self, tmp_path: Path) -> None:
        apkg = _make_apkg(tmp_path, {"media": b"{}"})
        with pytest.raises(ParseError, match="missing"):
            parse_apkg(apkg)

    def test_not_a_zip(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.apkg"
        bad.write_bytes(b"not a zip")
        with pytest.raises(ParseError, match="ZIP"):
            parse_apkg(bad)

    def test_temporary_files_removed(self, tmp_path: Path, monkeypatch) -> None:
        scratch = tmp_path / "scratch"
        scratch.mkdir()
        monkeypatch.setattr(tempfile, "tempdir", str(scratch))

        db = _make_collection(tmp_path / "c.db", ["uno\x1fone"])
        parse_apkg(_make_apkg(tmp_path, {"collection.anki2": db}))
        empty = _make_collection(tmp_path / "empty.db", [])
        with pytest.raises(ParseError):
            parse_apkg(_make_apkg(tmp_path, {"collection.anki2": empty}, name="Empty"))

        assert list(scratch.iterdir()) == []


# --- Dispatch ---


class TestImportDeckFile:
    def test_text_named_after_stem(self, tmp_path: Path) -> None:
        src = tmp_path / "fruit.txt"
        src.write_text("  apple  -   fruit  \nbanana - yellow\n", encoding="utf-8")
        deck = import_deck_file(src)
        assert deck.name == "fruit"
        assert _pairs(deck) == [("apple", "fruit"), ("banana", "yellow")]
        assert [c.id for c in deck.cards] == [1, 2]

    def test_unknown_extension_uses_text(self, tmp_path: Path) -> None:
        src = tmp_path / "notes.vocab"
        src.write_text("a - b", encoding="utf-8")
        assert _pairs(import_deck_file(src)) == [("a", "b")]

    def test_no_extension(self, tmp_path: Path) -> None:
        src = tmp_path / "words"
        src.write_text("a\tb", encoding="utf-8")
        assert import_deck_file(src).name == "words"

    def test_utf8_bom_stripped(self, tmp_path: Path) -> None:
        src = tmp_path / "bom.csv"
        src.write_bytes("\ufeffterm,definition\nhola,hello".encode())
        assert _pairs(import_deck_file(src)) == [("hola", "hello")]

    def test_extension_case_insensitive(self, tmp_path: Path) -> None:
        src = tmp_path / "list.JSON"
        src.write_text('["x"]', encoding="utf-8")
        assert _pairs(import_deck_file(src)) == [("x", PLACEHOLDER_DEFINITION)]

    def test_declared_title_wins(self, tmp_path: Path) -> None:
        src = tmp_path / "file.mflash"
        payload = {
            "format": "mflash",
            "version": 1,
            "title": "Real",
            "cards": [{"term": "a", "definition": "b"}],
        }
        src.write_text(json.dumps(payload), encoding="utf-8")
        assert import_deck_file(src).name == "Real"

    def test_unsupported_markdown(self, tmp_path: Path) -> None:
        src = tmp_path / "prose.md"
        src.write_text("just some words\nanother line", encoding="utf-8")
        with pytest.raises(UnsupportedFormatError) as exc:
            import_deck_file(src)
        assert exc.value.format_name == "markdown"
        assert str(exc.value).startswith("Unsupported markdown deck format")

    def test_xml_not_supported(self, tmp_path: Path) -> None:
        src = tmp_path / "deck.xml"
        src.write_text("<deck><card term='a' definition='b'/></deck>", encoding="utf-8")
        with pytest.raises(UnsupportedFormatError) as exc:
            import_deck_file(src)
        assert exc.value.format_name == "xml"

    def test_not_utf8(self, tmp_path: Path) -> None:
        src = tmp_path / "latin.txt"
        src.write_bytes("café - coffee".encode("latin-1"))
        with pytest.raises(DeckImportError):
            import_deck_file(src)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            import_deck_file(tmp_path / "nope.txt")

    def test_apkg(self, tmp_path: Path) -> None:
        db = _make_collection(tmp_path / "c.db", ["uno\x1fone"])
        deck = import_deck_file(_make_apkg(tmp_path, {"collection.anki2": db}))
        assert deck.name == "Spanish"

    def test_empty_apkg(self, tmp_path: Path) -> None:
        db = _make_collection(tmp_path / "c.db", [])
        with pytest.raises(UnsupportedFormatError) as exc:
            import_deck_file(_make_apkg(tmp_path, {"collection.anki2": db}))
        assert exc.value.format_name == "apkg"


class TestImportDeckText:
    def test_extension_hint(self) -> None:
        deck = import_deck_text("word,meaning\nsol,sun", ".csv", name="Pasted")
        assert deck.name == "Pasted"
        assert _pairs(deck) == [("sol", "sun")]

    def test_hint_without_dot(self) -> None:
        assert _pairs(import_deck_text("- a: b", "md")) == [("a", "b")]

    def test_default_name(self) -> None:
        assert import_deck_text("a - b").name == "Imported deck"

    def test_binary_hint_rejected(self) -> None:
        with pytest.raises(DeckImportError):
            import_deck_text("", ".apkg")


# --- Pipeline ---


class TestPipeline:
    def test_run_import_saves_deck(self, tmp_path: Path) -> None:
        src = tmp_path / "Spanish.csv"
        src.write_text("hola,hello\nadios,goodbye", encoding="utf-8")
        decks_dir = tmp_path / "decks"

        result = run_import(src, decks_dir)
        assert result.ok
        assert result.errors == []
        assert result.saved_path == decks_dir / "Spanish.mflash"
        assert _pairs(load_deck(result.saved_path)) == _pairs(result.deck)

    def test_run_import_missing_source(self, tmp_path: Path) -> None:
        result = run_import(tmp_path / "missing.txt", tmp_path / "decks")
        assert not result.ok
        assert "does not exist" in result.errors[0]

    def test_run_import_unsupported(self, tmp_path: Path) -> None:
        src = tmp_path / "deck.xml"
        src.write_text("<deck/>", encoding="utf-8")
        result = run_import(src, tmp_path / "decks")
        assert not result.ok
        assert "Unsupported xml deck format" in result.errors[0]
        assert not (tmp_path / "decks").exists()

    def test_run_text_import(self, tmp_path: Path) -> None:
        result = run_text_import("a - b\nc - d", ".txt", "Letters/Mixed", tmp_path)
        assert result.ok
        assert result.saved_path == tmp_path / "Letters_Mixed.mflash"
        assert result.deck.name == "Letters/Mixed"
