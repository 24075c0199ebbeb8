"""Unit tests for line tokenization: naive split, left-alignment merge, projection."""

# pylint: disable=missing-class-docstring,missing-function-docstring

from termgrid.tables.config import TokenizationMode, TokenizationStrategy
from termgrid.tables.schema import Token
from termgrid.tables.tokenizer import (
    compute_projection,
    count_single_space_gaps,
    find_boundaries,
    is_skipped_line,
    merge_tokens_to_columns,
    target_columns,
    tokenize_basic,
    tokenize_line,
    tokenize_with_boundaries,
)

FINE = TokenizationMode.FINE_GRAINED
COMPOUND = TokenizationMode.COMPOUND_TOLERANT


def texts(tokens: list[Token]) -> list[str]:
    return [token.text for token in tokens]


# ===========================================================================
# is_skipped_line tests
# ===========================================================================


class TestIsSkippedLine:

    def test_empty(self):
        assert is_skipped_line("") is True

    def test_whitespace_only(self):
        assert is_skipped_line(" \t  ") is True

    def test_shell_prompt(self):
        assert is_skipped_line("$ docker ps") is True

    def test_indented_prompt(self):
        assert is_skipped_line("   $ ls -alh") is True

    def test_table_row(self):
        assert is_skipped_line("John    25   NYC") is False

    def test_dollar_inside_line(self):
        assert is_skipped_line("price  $5") is False


# ===========================================================================
# tokenize_basic tests
# ===========================================================================


class TestTokenizeBasic:

    def test_fine_grained_positions(self):
        tokens = tokenize_basic("hello world d     e", FINE)
        assert tokens == [
            Token("hello", 0, 4),
            Token("world", 6, 10),
            Token("d", 12, 12),
            Token("e", 18, 18),
        ]

    def test_compound_keeps_single_spaces(self):
        tokens = tokenize_basic("hello world d     e", COMPOUND)
        assert tokens == [Token("hello world d", 0, 12), Token("e", 18, 18)]

    def test_compound_docker_row(self, docker_rows):
        tokens = tokenize_basic(docker_rows[0], COMPOUND)
        assert texts(tokens) == [
            "aa145ac35bbc",
            "mysql:latest",
            '"docker-entrypoint.s…"',
            "13 months ago",
            "Up 2 days",
        ]
        assert [t.start for t in tokens] == [0, 15, 33, 58, 74]

    def test_leading_indent(self):
        assert tokenize_basic("   abc", FINE) == [Token("abc", 3, 5)]

    def test_empty_line(self):
        assert tokenize_basic("", FINE) == []
        assert tokenize_basic("    ", COMPOUND) == []

    def test_token_width(self):
        assert Token("abc", 3, 5).width == 3


# ===========================================================================
# Left-alignment merge tests
# ===========================================================================

ALIGNED = [
    "a           b     c",
    "hello world d     e",
    "hello       world f",
    "x           y     z",
]


class TestLeftAlignmentMerge:

    def test_target_columns_order(self):
        naive = [tokenize_basic(line, FINE) for line in ALIGNED]
        assert target_columns(ALIGNED, 1, naive) == [0, 12, 18]

    def test_target_columns_frequency_first(self):
        lines = ["a   b", "a     c", "a   d", "zzz"]
        naive = [tokenize_basic(line, FINE) for line in lines]
        # 0 seen three times, 4 twice, 6 once
        assert target_columns(lines, 3, naive) == [0, 4, 6]

    def test_merge_tokens_to_columns(self):
        line = ALIGNED[1]
        merged = merge_tokens_to_columns(line, tokenize_basic(line, FINE), [0, 12, 18])
        assert merged == [Token("hello world", 0, 10), Token("d", 12, 12), Token("e", 18, 18)]

    def test_merge_keeps_original_spacing(self):
        line = "ab  cd    ef"
        merged = merge_tokens_to_columns(line, tokenize_basic(line, FINE), [0, 10])
        assert merged == [Token("ab  cd", 0, 5), Token("ef", 10, 11)]

    def test_merge_stops_when_target_missed(self):
        line = "aa bb cc dd"
        merged = merge_tokens_to_columns(line, tokenize_basic(line, FINE), [0, 4, 7])
        # No token starts at 4, so the walk stops and the remaining tokens join the pending one
        assert texts(merged) == ["aa bb cc dd"]

    def test_tokenize_line_uses_merge(self):
        strategy, tokens = tokenize_line(ALIGNED, 1, FINE, 2)
        assert strategy is TokenizationStrategy.LEFT_ALIGNMENT_MERGE
        assert texts(tokens) == ["hello world", "d", "e"]
        assert [t.start for t in tokens] == [0, 12, 18]

    def test_line_with_consensus_count_is_untouched(self):
        strategy, tokens = tokenize_line(ALIGNED, 2, FINE, 2)
        assert strategy is TokenizationStrategy.NAIVE
        assert texts(tokens) == ["hello", "world", "f"]

    def test_compound_mode_skips_merge(self):
        strategy, tokens = tokenize_line(ALIGNED, 1, COMPOUND, 2)
        assert strategy is TokenizationStrategy.NAIVE
        assert texts(tokens) == ["hello world d", "e"]


# ===========================================================================
# Projection analysis tests
# ===========================================================================


class TestProjection:

    def test_compute_projection_fine(self):
        assert compute_projection(["ab  c", "a   cd"], FINE) == [2, 1, 0, 0, 2, 1]

    def test_compute_projection_compound_counts_inner_space(self):
        assert compute_projection(["a b"], FINE) == [1, 0, 1]
        assert compute_projection(["a b"], COMPOUND) == [1, 1, 1]
        assert compute_projection(["a  b"], COMPOUND) == [1, 0, 0, 1]

    def test_find_boundaries(self):
        assert find_boundaries([2, 1, 0, 0, 2, 1], 2) == [0, 2, 6]

    def test_find_boundaries_narrow_runs_absorbed(self):
        assert find_boundaries([2, 1, 0, 0, 2, 1], 3) == [0, 6]

    def test_find_boundaries_keeps_trailing_text(self):
        assert find_boundaries([1, 1, 0, 1], 2) == [0, 2, 4]

    def test_tokenize_with_boundaries(self):
        assert tokenize_with_boundaries("ab  c", [0, 2, 6]) == [Token("ab", 0, 1), Token("c", 4, 4)]

    def test_tokenize_with_boundaries_trims(self):
        tokens = tokenize_with_boundaries("File Name      Last Modified     Size", [0, 12, 31, 39])
        assert tokens == [
            Token("File Name", 0, 8),
            Token("Last Modified", 15, 27),
            Token("Size", 33, 36),
        ]

    def test_count_single_space_gaps(self):
        line = "File Name      Last Modified     Size"
        assert count_single_space_gaps(line, tokenize_basic(line, FINE)) == 2

    def test_header_compound_cells(self, file_listing):
        strategy, tokens = tokenize_line(file_listing, 0, FINE, 2)
        assert strategy is TokenizationStrategy.PROJECTION
        assert texts(tokens) == ["File Name", "Last Modified", "Size"]

    def test_data_row_date_time_joined(self, file_listing):
        strategy, tokens = tokenize_line(file_listing, 1, FINE, 2)
        assert strategy is TokenizationStrategy.PROJECTION
        assert texts(tokens) == ["document.txt", "2023-01-15 10:30", "1.2KB"]
        assert [t.start for t in tokens] == [0, 15, 33]

    def test_ls_header(self, ls_output):
        strategy, tokens = tokenize_line(ls_output, 0, FINE, 2)
        assert strategy is TokenizationStrategy.PROJECTION
        assert texts(tokens) == ["Permissions", "Size", "User", "Date Modified", "Name"]

    def test_needs_three_lines(self, file_listing):
        strategy, tokens = tokenize_line(file_listing[:2], 1, FINE, 2)
        assert strategy is TokenizationStrategy.NAIVE
        assert len(tokens) == 4

    def test_no_single_space_gaps(self, simple_table):
        strategy, _ = tokenize_line(simple_table, 0, FINE, 2)
        assert strategy is TokenizationStrategy.NAIVE

    def test_checksums_have_no_projection(self, checksum_lines):
        strategy, tokens = tokenize_line(checksum_lines, 0, FINE, 2)
        assert strategy is TokenizationStrategy.NAIVE
        assert len(tokens) == 3

    def test_skipped_line(self):
        strategy, tokens = tokenize_line(["$ ls", "a  b"], 0, FINE, 2)
        assert strategy is TokenizationStrategy.SKIPPED
        assert tokens == []
