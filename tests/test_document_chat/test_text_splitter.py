"""Tests for the overlapping text splitter."""

import pytest

from shared.exceptions.errors import InvalidConfigError
from services.document_chat.TextSplitter import TextSplitter


def reconstruct(chunks: list[str], overlap: int) -> str:
    return chunks[0] + "".join(chunk[overlap:] for chunk in chunks[1:]) if chunks else ""


class TestTextSplitterConfig:

    @pytest.mark.parametrize("size,overlap", [(0, 0), (-5, 0), (100, -1), (100, 100), (100, 150)])
    def test_invalid_parameters_rejected(self, size, overlap):
        with pytest.raises(InvalidConfigError):
            TextSplitter(chunk_size=size, chunk_overlap=overlap)

    def test_zero_overlap_is_allowed(self):
        splitter = TextSplitter(chunk_size=5, chunk_overlap=0, snap_to_boundaries=False)
        assert splitter.split("abcdefghij") == ["abcde", "fghij"]


class TestTextSplitterSplit:

    def test_empty_text_gives_no_chunks(self):
        assert TextSplitter(chunk_size=1000, chunk_overlap=200).split("") == []

    def test_short_text_is_one_chunk(self):
        assert TextSplitter(chunk_size=1000, chunk_overlap=200).split("short text") == ["short text"]

    def test_text_of_exactly_chunk_size_is_one_chunk(self):
        text = "x" * 1000
        assert TextSplitter(chunk_size=1000, chunk_overlap=200).split(text) == [text]

    def test_exact_windows_without_snapping(self):
        splitter = TextSplitter(chunk_size=4, chunk_overlap=1, snap_to_boundaries=False)
        assert splitter.split("abcdefghij") == ["abcd", "defg", "ghij"]

    def test_snaps_to_sentence_ends(self):
        splitter = TextSplitter(chunk_size=10, chunk_overlap=2)
        assert splitter.split("Alpha. Beta. Gamma.") == ["Alpha. ", ". Beta. ", ". Gamma."]

    @pytest.mark.parametrize("snap", [True, False])
    def test_chunks_respect_size_and_overlap(self, sample_text, snap):
        splitter = TextSplitter(chunk_size=300, chunk_overlap=50, snap_to_boundaries=snap)
        chunks = splitter.split(sample_text)

        assert len(chunks) > 1
        assert all(0 < len(chunk) <= 300 for chunk in chunks)
        for previous, current in zip(chunks, chunks[1:]):
            assert previous[-50:] == current[:50]

    @pytest.mark.parametrize("snap", [True, False])
    def test_chunks_reconstruct_the_input(self, sample_text, snap):
        splitter = TextSplitter(chunk_size=1000, chunk_overlap=200, snap_to_boundaries=snap)
        chunks = splitter.split(sample_text)
        assert reconstruct(chunks, 200) == sample_text

    def test_text_without_separators_is_cut_at_chunk_size(self):
        text = "x" * 2500
        chunks = TextSplitter(chunk_size=1000, chunk_overlap=200).split(text)
        assert [len(chunk) for chunk in chunks] == [1000, 1000, 900]
        assert reconstruct(chunks, 200) == text

    def test_split_is_deterministic(self, sample_text):
        splitter = TextSplitter(chunk_size=400, chunk_overlap=80)
        assert splitter.split(sample_text) == splitter.split(sample_text)
