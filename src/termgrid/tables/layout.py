"""Line layout analysis, layout compatibility, and candidate block discovery.

The analyzer tokenizes every line of the buffer, using the surrounding run of
participating lines as tokenizer context.  Blocks are then grown greedily from
each participating line while later lines stay compatible with the block's
first line; a blank or prompt line always ends a block.
"""

import logging
from collections.abc import Sequence

from termgrid.tables.config import DEFAULT_POLICY, ScoringPolicy, TokenizationMode
from termgrid.tables.schema import SKIPPED_LINE, CandidateBlock, LineData, Token
from termgrid.tables.tokenizer import is_skipped_line, tokenize_basic, tokenize_line

logger = logging.getLogger(__name__)


# ─── Layout Analyzer ──────────────────────────────────────────────────────────


def participating_regions(lines: Sequence[str]) -> list[tuple[int, int]]:
    """Return (start, stop) ranges of consecutive non-skipped lines."""
    regions: list[tuple[int, int]] = []
    start: int | None = None
    for i, line in enumerate(lines):
        if is_skipped_line(line):
            if start is not None:
                regions.append((start, i))
                start = None
        elif start is None:
            start = i
    if start is not None:
        regions.append((start, len(lines)))
    return regions


def analyze_lines(
    lines: Sequence[str],
    mode: TokenizationMode,
    max_column_variance: int,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> list[LineData]:
    """Tokenize every line; skipped lines get an empty placeholder entry."""
    line_data = [SKIPPED_LINE] * len(lines)
    for start, stop in participating_regions(lines):
        region = list(lines[start:stop])
        naive = [tokenize_basic(line, mode) for line in region]
        for offset in range(len(region)):
            strategy, tokens = tokenize_line(region, offset, mode, max_column_variance, policy, naive)
            line_data[start + offset] = LineData(tuple(tokens), tuple(t.start for t in tokens), strategy)
    logger.debug("Analyzed %d lines in %s mode", len(lines), mode.value)
    return line_data


# ─── Alignment Matcher ────────────────────────────────────────────────────────


def column_boundaries(tokens: Sequence[Token], min_gap: int) -> list[int]:
    """First token start plus every token start preceded by at least *min_gap* whitespace."""
    if not tokens:
        return []
    boundaries = [tokens[0].start]
    boundaries.extend(cur.start for prev, cur in zip(tokens, tokens[1:]) if cur.start - prev.end - 1 >= min_gap)
    return boundaries


def _positions_match(first: Sequence[Token], other: Sequence[Token], max_column_variance: int, policy: ScoringPolicy) -> bool:
    mismatches = sum(
        1
        for a, b in zip(first, other)
        if abs(a.start - b.start) > max_column_variance and abs(a.end - b.end) > max_column_variance
    )
    return mismatches <= policy.max_layout_mismatches


def _boundaries_match(
    first: Sequence[Token],
    other: Sequence[Token],
    mode: TokenizationMode,
    max_column_variance: int,
    policy: ScoringPolicy,
) -> bool:
    gap = policy.boundary_gap(mode)
    smaller, larger = sorted((column_boundaries(first, gap), column_boundaries(other, gap)), key=len)
    if len(smaller) < policy.min_boundaries or len(larger) > policy.max_boundaries:
        return False
    if len(larger) > len(smaller) * policy.max_boundary_ratio:
        return False
    matched = sum(1 for pos in smaller if any(abs(pos - cand) <= max_column_variance for cand in larger))
    return matched >= len(smaller) * policy.boundary_match_ratio


def _legacy_overlap(
    first: Sequence[Token],
    other: Sequence[Token],
    mode: TokenizationMode,
    max_column_variance: int,
    policy: ScoringPolicy,
) -> bool:
    if not first or not other:
        return False
    shorter, longer = sorted((first, other), key=len)
    matched = sum(1 for a in shorter if any(abs(a.start - b.start) <= max_column_variance for b in longer))
    overlap = matched / len(longer)
    count_ratio = len(shorter) / len(longer)
    return overlap >= policy.legacy_overlap_ratio and count_ratio >= policy.legacy_count_ratio(mode)


def layouts_compatible(
    first: LineData,
    other: LineData,
    mode: TokenizationMode,
    max_column_variance: int,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> bool:
    """Decide whether *other* can join a block opened by *first*."""
    if len(first.tokens) == len(other.tokens):
        return _positions_match(first.tokens, other.tokens, max_column_variance, policy)
    if _boundaries_match(first.tokens, other.tokens, mode, max_column_variance, policy):
        return True
    return _legacy_overlap(first.tokens, other.tokens, mode, max_column_variance, policy)


# ─── Block Finder ─────────────────────────────────────────────────────────────


def find_candidate_blocks(
    lines: Sequence[str],
    line_data: Sequence[LineData],
    min_lines: int,
    mode: TokenizationMode,
    max_column_variance: int,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> list[CandidateBlock]:
    """Greedily collect maximal runs of lines compatible with each run's first line."""
    blocks: list[CandidateBlock] = []
    n = len(lines)
    i = 0
    while i < n:
        if line_data[i].skipped:
            i += 1
            continue
        end = i
        for j in range(i + 1, n):
            if line_data[j].skipped or not layouts_compatible(line_data[i], line_data[j], mode, max_column_variance, policy):
                break
            end = j
        if end - i + 1 >= min_lines:
            blocks.append(CandidateBlock(i, end, tuple(lines[i : end + 1])))
        else:
            logger.debug("Dropping %d-line run at line %d (min_lines=%d)", end - i + 1, i, min_lines)
        i = end + 1
    return blocks
