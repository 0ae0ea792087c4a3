"""
Unit tests for text cleaning and recursive chunking.
"""

import pytest

from app.services.text_processing import chunk_text, clean_text


class TestCleanText:
    @pytest.mark.parametrize("blank", ["", "   ", "\n\n", "\t \n"])
    def test_blank_input(self, blank: str) -> None:
        assert clean_text(blank) == ""

    def test_lines_are_stripped(self) -> None:
        assert clean_text("\n   leave policy   \n") == "leave policy"

    def test_repeated_lines_collapse(self) -> None:
        # page headers repeated by pdf extraction
        assert clean_text("ACME Corp\n ACME Corp \nSection 1") == "ACME Corp\nSection 1"

    def test_paragraph_break_survives_but_blank_runs_collapse(self) -> None:
        assert clean_text("Intro.\n\n\n\nBody.") == "Intro.\n\nBody."

    def test_compatibility_characters_are_normalized(self) -> None:
        assert clean_text("ｆｕｌｌｗｉｄｔｈ ﬁle") == "fullwidth file"


class TestChunkText:
    def test_blank_input_has_no_chunks(self) -> None:
        assert chunk_text("") == []
        assert chunk_text(" \n ") == []

    def test_text_that_fits_is_one_chunk(self) -> None:
        assert chunk_text("  Annual leave is 20 days.  ", chunk_size=100, overlap=10) == ["Annual leave is 20 days."]

    def test_defaults_are_1000_with_200_overlap(self) -> None:
        text = " ".join(f"token{i:04d}" for i in range(400))
        chunks = chunk_text(text)
        assert len(chunks) >= 4
        assert all(len(c) <= 1000 for c in chunks)

    def test_paragraphs_are_preferred_split_points(self) -> None:
        text = "\n\n".join(["a" * 30, "b" * 30, "c" * 30])
        assert chunk_text(text, chunk_size=70, overlap=0) == ["a" * 30 + "\n\n" + "b" * 30, "c" * 30]

    def test_neighbouring_chunks_share_overlap(self) -> None:
        text = " ".join(f"word{i}" for i in range(20))
        chunks = chunk_text(text, chunk_size=30, overlap=10)
        assert len(chunks) >= 3
        for prev, nxt in zip(chunks, chunks[1:]):
            assert prev.split()[-1] in nxt.split()

    def test_every_word_is_kept(self) -> None:
        words = [f"w{i}" for i in range(60)]
        chunks = chunk_text(" ".join(words), chunk_size=40, overlap=8)
        assert {w for c in chunks for w in c.split()} == set(words)

    def test_text_without_separators_falls_back_to_characters(self) -> None:
        chunks = chunk_text("x" * 250, chunk_size=100, overlap=20)
        assert [len(c) for c in chunks] == [100, 100, 90]

    @pytest.mark.parametrize("chunk_size", [50, 100])
    def test_oversized_word_is_split_further(self, chunk_size: int) -> None:
        chunks = chunk_text("short " + "y" * 150 + " tail", chunk_size=chunk_size, overlap=10)
        assert all(len(c) <= chunk_size for c in chunks)
        assert "".join(chunks).count("y") >= 150
