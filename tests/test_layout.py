"""Unit tests for line analysis, layout compatibility and block discovery."""

# pylint: disable=missing-class-docstring,missing-function-docstring

from termgrid.tables.config import TokenizationMode, TokenizationStrategy
from termgrid.tables.layout import (
    analyze_lines,
    column_boundaries,
    find_candidate_blocks,
    layouts_compatible,
    participating_regions,
)
from termgrid.tables.schema import LineData
from termgrid.tables.tokenizer import tokenize_basic

FINE = TokenizationMode.FINE_GRAINED
COMPOUND = TokenizationMode.COMPOUND_TOLERANT


def make_line(text: str, mode: TokenizationMode = FINE) -> LineData:
    """Build LineData from the naive split of *text*."""
    tokens = tuple(tokenize_basic(text, mode))
    return LineData(tokens, tuple(t.start for t in tokens), TokenizationStrategy.NAIVE)


def block_ranges(lines: list[str], min_lines: int = 2, mode: TokenizationMode = FINE) -> list[tuple[int, int]]:
    line_data = analyze_lines(lines, mode, 2)
    return [(b.start_line, b.end_line) for b in find_candidate_blocks(lines, line_data, min_lines, mode, 2)]


# ===========================================================================
# Layout analyzer tests
# ===========================================================================


class TestParticipatingRegions:

    def test_split_on_blank_and_prompt(self):
        lines = ["$ ls", "a  b", "c  d", "", "e  f"]
        assert participating_regions(lines) == [(1, 3), (4, 5)]

    def test_all_skipped(self):
        assert participating_regions(["", "   ", "$ pwd"]) == []

    def test_no_separators(self):
        assert participating_regions(["a", "b"]) == [(0, 2)]


class TestAnalyzeLines:

    def test_index_alignment_with_placeholders(self):
        lines = ["$ docker ps", "a   b", "", "c   d"]
        data = analyze_lines(lines, FINE, 2)
        assert len(data) == 4
        assert data[0].skipped and data[2].skipped
        assert data[0].tokens == ()
        assert data[1].layout == (0, 4)
        assert [t.text for t in data[3].tokens] == ["c", "d"]

    def test_idempotent(self, ls_output):
        assert analyze_lines(ls_output, FINE, 2) == analyze_lines(ls_output, FINE, 2)

    def test_records_strategy(self, file_listing):
        data = analyze_lines(file_listing, FINE, 2)
        assert all(line.strategy is TokenizationStrategy.PROJECTION for line in data)
        assert all(line.layout == (0, 15, 33) for line in data)


# ===========================================================================
# Alignment matcher tests
# ===========================================================================


class TestColumnBoundaries:

    def test_wide_gaps_only(self):
        tokens = tokenize_basic("alpha beta     gamma     delta", FINE)
        assert column_boundaries(tokens, 3) == [0, 15, 25]

    def test_compound_gap(self):
        tokens = tokenize_basic("alpha beta     gamma     delta", FINE)
        assert column_boundaries(tokens, 6) == [0]

    def test_empty(self):
        assert column_boundaries([], 3) == []


class TestLayoutsCompatible:

    def test_identical(self):
        assert layouts_compatible(make_line("aa   bb   cc"), make_line("dd   ee   ff"), FINE, 2) is True

    def test_one_mismatch_tolerated(self):
        assert layouts_compatible(make_line("aa   bb   cc"), make_line("aa   bb        cc"), FINE, 2) is True

    def test_two_mismatches_rejected(self):
        assert layouts_compatible(make_line("aa   bb   cc"), make_line("aa        bb        cc"), FINE, 2) is False

    def test_end_alignment_counts(self):
        # Right-aligned numbers: starts differ, ends match
        assert layouts_compatible(make_line("x      5   a"), make_line("x   1000   a"), FINE, 2) is True

    def test_header_vs_data_boundaries(self):
        header = make_line("alpha beta     gamma     delta")
        data = make_line("one            two       three")
        assert layouts_compatible(header, data, FINE, 2) is True

    def test_unrelated_rejected(self):
        assert layouts_compatible(make_line("alpha beta     gamma     delta"), make_line("x"), FINE, 2) is False

    def test_legacy_overlap_fallback(self, ls_output):
        header = make_line(ls_output[0], COMPOUND)
        data = make_line(ls_output[1], COMPOUND)
        assert len(header.tokens) == 3 and len(data.tokens) == 2
        assert layouts_compatible(header, data, COMPOUND, 3) is True


# ===========================================================================
# Block finder tests
# ===========================================================================


class TestFindCandidateBlocks:

    def test_blank_line_terminates(self):
        lines = ["a   b", "c   d", "", "e   f", "g   h"]
        assert block_ranges(lines) == [(0, 1), (3, 4)]

    def test_prompt_terminates(self):
        assert block_ranges(["a   b", "$ ls", "c   d"]) == []

    def test_min_lines_filter(self):
        lines = ["a   b", "c   d", "", "e   f", "g   h"]
        assert block_ranges(lines, min_lines=3) == []

    def test_anchored_to_first_line(self):
        lines = [
            "aa   bb   cc",
            "aa     bb   cc",
            "aa       bb   cc",
        ]
        # The third line matches the second but drifts too far from the first
        assert block_ranges(lines) == [(0, 1)]

    def test_block_lines_copied(self):
        lines = ["a   b", "c   d"]
        line_data = analyze_lines(lines, FINE, 2)
        blocks = find_candidate_blocks(lines, line_data, 2, FINE, 2)
        assert blocks[0].lines == ("a   b", "c   d")
