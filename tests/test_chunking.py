"""Tests for sentence chunking."""

import pytest

from kb_core.exceptions import InvalidInputError
from kb_core.knowledge.chunking import Chunk, TextChunker, chunk_text, split_sentences


class TestChunkText:
    """Test chunk_text splitting rules."""

    def test_groups_sentences_under_limit(self):
        text = "Microdosing is popular. It may have benefits. Evidence is mixed."
        chunks = chunk_text(text, 30)

        assert chunks == [
            "Microdosing is popular.",
            "It may have benefits.",
            "Evidence is mixed.",
        ]
        assert all(len(c) <= 30 for c in chunks)

    def test_accumulates_until_limit_is_exceeded(self):
        text = "One. Two. Three. Four."
        assert chunk_text(text, 9) == ["One. Two.", "Three.", "Four."]
        assert chunk_text(text, 100) == ["One. Two. Three. Four."]

    def test_empty_and_whitespace_text(self):
        assert chunk_text("", 10) == []
        assert chunk_text("   ", 10) == []
        assert chunk_text("\n\t ", 10) == []

    def test_long_sentence_is_never_split(self):
        sentence = "This single sentence is much longer than the configured limit."
        chunks = chunk_text(f"Short. {sentence} Tail.", 10)

        assert sentence in chunks
        assert len(chunks) == 3
        assert chunks[1] == sentence
        assert len(chunks[1]) == len(sentence)

    def test_preserves_every_sentence_in_order(self):
        sentences = [f"Sentence number {i} ends here." for i in range(25)]
        text = "  ".join(sentences)

        chunks = chunk_text(text, 70)

        assert split_sentences(" ".join(chunks)) == sentences

    def test_question_and_exclamation_boundaries(self):
        assert chunk_text("Is it? Yes! Fine.", 5) == ["Is it?", "Yes!", "Fine."]

    def test_punctuation_without_whitespace_is_not_a_boundary(self):
        assert chunk_text("Pi is 3.14 roughly. Next one.", 12) == ["Pi is 3.14 roughly.", "Next one."]

    def test_text_without_terminal_punctuation(self):
        assert chunk_text("no punctuation at all", 5) == ["no punctuation at all"]

    def test_counts_characters_not_bytes(self):
        text = "Été très chaud. Ça va bien."
        # 15 + 1 + 11 = 27 characters, but more than 27 bytes in UTF-8
        assert chunk_text(text, 27) == ["Été très chaud. Ça va bien."]
        assert chunk_text(text, 26) == ["Été très chaud.", "Ça va bien."]

    def test_chunks_are_trimmed(self):
        chunks = chunk_text("  First one.   \n\n  Second one.  ", 11)
        assert chunks == ["First one.", "Second one."]

    def test_deterministic(self):
        text = "Alpha beta. Gamma delta! Epsilon zeta? Eta theta."
        assert chunk_text(text, 20) == chunk_text(text, 20)

    @pytest.mark.parametrize("max_length", [0, -5, 2.5, True, "10"])
    def test_invalid_max_length(self, max_length):
        with pytest.raises(InvalidInputError):
            chunk_text("Some text.", max_length)

    def test_non_string_text(self):
        with pytest.raises(InvalidInputError):
            chunk_text(None, 10)


class TestTextChunker:
    """Test the configured chunker."""

    def test_uses_configured_length(self):
        chunker = TextChunker(max_length=9)
        assert chunker.chunk("One. Two. Three.") == ["One. Two.", "Three."]

    def test_override_length(self):
        chunker = TextChunker(max_length=9)
        assert chunker.chunk("One. Two. Three.", max_length=100) == ["One. Two. Three."]

    def test_split_assigns_positions(self):
        chunker = TextChunker(max_length=2)
        assert chunker.split("A. B. C.") == [
            Chunk(index=0, text="A."),
            Chunk(index=1, text="B."),
            Chunk(index=2, text="C."),
        ]

    def test_from_settings(self):
        class Settings:
            DEFAULT_CHUNK_SIZE = 123

        assert TextChunker.from_settings(Settings()).max_length == 123

    def test_rejects_invalid_length(self):
        with pytest.raises(InvalidInputError):
            TextChunker(max_length=0)
