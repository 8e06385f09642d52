"""Text processing tests — description compaction and keyword extraction."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from market_validator.schemas.market_validation_schema import IdeaContext
from market_validator.services.text_processing import (
    compact_idea_text,
    extract_key_sections,
    keywordize,
    process_idea_description,
)


class TestCompactIdeaText:
    def test_collapses_whitespace_and_blank_lines(self):
        assert compact_idea_text("a   b\n\n\n\nc") == "a b\n\nc"

    def test_strips_emoji(self):
        assert compact_idea_text("Dogs 🐶 and cats 🐱") == "Dogs and cats"

    def test_hard_cut_adds_ellipsis(self):
        result = compact_idea_text("x" * 50, max_chars=10)
        assert result == "x" * 10 + "…"

    def test_empty(self):
        assert compact_idea_text("") == ""


class TestExtractKeySections:
    def test_drops_listy_blocks(self):
        menu = "\n".join(f"- item {i}" for i in range(8))
        text = f"Short intro about the product.\n\n{menu}\n\nClosing remark."
        result = extract_key_sections(text)
        assert "Short intro" in result
        assert "Closing remark." in result
        assert "item 3" not in result

    def test_keeps_heading_blocks_even_if_listy(self):
        menu = "\n".join(f"- point {i}" for i in range(8))
        text = f"The Core Idea\n{menu}"
        assert "point 5" in extract_key_sections(text)

    def test_falls_back_to_first_two_blocks(self):
        long_block = "word " * 200
        text = f"{long_block}\n\n{long_block}\n\n{long_block}"
        result = extract_key_sections(text)
        assert result.count("word") == 400


class TestKeywordize:
    def test_orders_by_frequency_then_first_seen(self):
        text = "sitters sitters pets pets pets walking"
        assert keywordize(text) == ["pets", "sitters", "walking"]

    def test_filters_short_and_stop_words(self):
        assert keywordize("the dog with their owners from town") == ["owners", "town"]

    def test_caps_count(self):
        text = " ".join(f"word{i:02d}" for i in range(30))
        assert len(keywordize(text)) == 12


class TestProcessIdeaDescription:
    def test_compacts_and_joins_keywords(self):
        idea = IdeaContext(
            title="Pet-sitting marketplace",
            description="Marketplace for pet sitters. Sitters are vetted; owners book sitters.",
        )
        compact = process_idea_description(idea)
        assert compact.compact_description.startswith("Marketplace for pet sitters.")
        assert compact.keywords.split(", ")[0] == "sitters"

    def test_empty_description(self):
        compact = process_idea_description(IdeaContext(title="Pet-sitting marketplace"))
        assert compact.compact_description == ""
        assert compact.keywords == ""

    def test_long_description_is_capped(self):
        idea = IdeaContext(title="Long one", description="sentence. " * 40)
        compact = process_idea_description(idea)
        assert len(compact.compact_description) <= 1001
