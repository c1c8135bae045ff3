"""
Name: Text Chunker Unit Tests

Responsibilities:
  - Sentence packing with overlap (exact slices of the normalized text)
  - Lossless reconstruction + length bounds
  - Section detection and titles
  - Adaptive chunk size + page estimation
  - Quality heuristics

Collaborators:
  - ragcore.infrastructure.text.chunker
  - ragcore.infrastructure.text.quality
"""

import pytest

from ragcore.infrastructure.text import (
    AdaptiveTextChunker,
    SectionAwareChunker,
    chunk_text,
    estimate_page_number,
    normalize_text,
    optimal_chunk_size,
    score_chunk_quality,
)
from ragcore.infrastructure.text.quality import (
    estimate_token_count,
    extract_section_title,
    is_acceptable_chunk,
)

# R: 25 oraciones de 99 chars separadas por un espacio => 2499 chars
SENTENCE = "A" + "a" * 97 + "."
LONG_TEXT = " ".join([SENTENCE] * 25)


def _reconstruct(fragments) -> str:
    text = fragments[0].content
    for prev, frag in zip(fragments, fragments[1:]):
        text += frag.content[prev.end - frag.start :]
    return text


@pytest.mark.unit
class TestSectionAwareChunker:
    def test_sentence_packing_with_overlap(self):
        """R: 2499 chars, max 1000, overlap 200 => 3 chunks con overlap exacto."""
        fragments = chunk_text(LONG_TEXT, max_chunk_size=1000, overlap_size=200)

        assert len(LONG_TEXT) == 2499
        assert len(fragments) == 3
        assert fragments[1].content[:200] == fragments[0].content[-200:]
        assert fragments[2].content[:200] == fragments[1].content[-200:]
        assert [f.index for f in fragments] == [0, 1, 2]

    def test_fragments_are_exact_slices_and_reconstruct_text(self):
        normalized = normalize_text(LONG_TEXT)
        fragments = chunk_text(LONG_TEXT, max_chunk_size=1000, overlap_size=200)

        for frag in fragments:
            assert frag.content == normalized[frag.start : frag.end]
        assert _reconstruct(fragments) == normalized

    def test_no_fragment_exceeds_max_size(self):
        fragments = chunk_text(LONG_TEXT, max_chunk_size=450, overlap_size=50)
        assert fragments
        assert all(len(f) <= 450 for f in fragments)

    def test_text_without_sentence_boundaries_is_split_by_length(self):
        text = "x" * 2500
        fragments = chunk_text(text, max_chunk_size=1000, overlap_size=0)

        assert [len(f) for f in fragments] == [1000, 1000, 500]
        assert _reconstruct(fragments) == text

    def test_empty_or_blank_text_yields_no_fragments(self):
        assert chunk_text("") == []
        assert chunk_text("   \n\n  ") == []

    def test_sections_split_on_headings_with_titles(self):
        text = (
            "1. Introduction\nPlants need light. They also need water.\n\n"
            "2. Methods\nWe measured growth weekly. Results were logged."
        )
        fragments = chunk_text(text, max_chunk_size=1000, overlap_size=0, min_chunk_size=10)

        assert len(fragments) == 2
        assert fragments[0].section_title == "1. Introduction"
        assert fragments[1].section_title == "2. Methods"
        assert fragments[1].content.startswith("2. Methods")

    def test_short_chunks_are_flagged_not_dropped(self):
        fragments = chunk_text("Tiny note.", max_chunk_size=1000, overlap_size=0)

        assert len(fragments) == 1
        assert fragments[0].low_confidence
        assert fragments[0].content == "Tiny note."

    def test_normalize_collapses_excess_newlines(self):
        assert normalize_text("a\r\n\r\n\r\n\r\nb  ") == "a\n\nb"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_chunk_size": 0},
            {"max_chunk_size": 100, "overlap_size": 100},
            {"max_chunk_size": 100, "overlap_size": -1},
            {"max_chunk_size": 100, "overlap_size": 10, "min_chunk_size": 200},
        ],
    )
    def test_invalid_parameters_raise(self, kwargs):
        with pytest.raises(ValueError):
            SectionAwareChunker(**kwargs)


@pytest.mark.unit
class TestAdaptiveTextChunker:
    def _chunker(self) -> AdaptiveTextChunker:
        return AdaptiveTextChunker(
            default_chunk_size=1000,
            chunk_overlap=200,
            min_chunk_size=100,
            max_chunk_size=2000,
        )

    def test_page_numbers_estimated_from_offsets(self):
        fragments = self._chunker().chunk(LONG_TEXT, chunk_size=1000, page_count=5)

        assert [f.start for f in fragments] == [0, 800, 1600]
        assert [f.page_number for f in fragments] == [1, 2, 4]

    def test_no_page_numbers_without_page_count(self):
        fragments = self._chunker().chunk(LONG_TEXT, chunk_size=1000)
        assert all(f.page_number is None for f in fragments)

    @pytest.mark.parametrize(
        "kwargs,expected",
        [
            ({"chunk_size": 640}, 640),
            ({"content_type": "code"}, 800),
            ({"page_count": 200}, 1500),
            ({"page_count": 5}, 700),
            ({"page_count": 50}, 1000),
        ],
    )
    def test_resolve_chunk_size(self, kwargs, expected):
        assert self._chunker().resolve_chunk_size("plain text", **kwargs) == expected

    def test_legal_markers_pick_legal_size(self):
        assert self._chunker().resolve_chunk_size("§ 12 Scope of the contract") == 1200

    def test_inconsistent_bounds_raise(self):
        with pytest.raises(ValueError):
            AdaptiveTextChunker(default_chunk_size=50, min_chunk_size=100)


@pytest.mark.unit
class TestPageEstimation:
    @pytest.mark.parametrize(
        "start,length,pages,expected",
        [
            (0, 100, 3, 1),
            (99, 100, 3, 3),
            (50, 100, 2, 2),
            (10, 100, None, None),
            (10, 0, 3, None),
        ],
    )
    def test_estimate_page_number(self, start, length, pages, expected):
        assert estimate_page_number(start, length, pages) == expected


@pytest.mark.unit
class TestQualityHeuristics:
    def test_short_single_word_loses_confidence(self):
        assert score_chunk_quality("Hi.", min_chunk_size=100) == 0.7

    def test_short_sentence_gets_sentence_bonus(self):
        assert score_chunk_quality("This is a sentence.", min_chunk_size=100) == 0.8

    def test_long_sentence_is_capped_at_one(self):
        assert score_chunk_quality(SENTENCE + " " + SENTENCE, min_chunk_size=100) == 1.0

    def test_mostly_whitespace_is_penalized(self):
        text = "a" + " " * 150 + "b"
        assert score_chunk_quality(text, min_chunk_size=100) == 0.8

    def test_acceptable_chunk_requires_letters(self):
        assert is_acceptable_chunk("Plain words here")
        assert not is_acceptable_chunk("1234 5678 !!!")
        assert not is_acceptable_chunk("   ")

    def test_token_estimate(self):
        assert estimate_token_count("") == 0
        assert estimate_token_count("ab") == 1
        assert estimate_token_count("abcd" * 10) == 10

    def test_section_title_from_first_lines(self):
        assert extract_section_title("\nCHAPTER 3 Results\nbody") == "CHAPTER 3 Results"
        assert extract_section_title("just a body line\nanother") is None

    def test_optimal_size_is_clamped_to_bounds(self):
        assert (
            optimal_chunk_size(
                default_size=1900, min_size=100, max_size=2000, page_count=500
            )
            == 2000
        )
