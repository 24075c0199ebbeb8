"""Column detection, confidence scoring, and the heuristic filter.

Column positions come from whichever token edge (start or end) is steadier
across the rows of a block, so both left- and right-aligned columns resolve
to a single canonical offset.  Confidence then measures how well every row
agrees with those offsets and how uniform the row shapes are.
"""

import logging
from collections import Counter
from collections.abc import Sequence
from statistics import fmean, pvariance

from termgrid.tables.config import DEFAULT_POLICY, ScoringPolicy
from termgrid.tables.schema import ColumnAlignment, Token

logger = logging.getLogger(__name__)

BlockTokens = Sequence[Sequence[Token]]


# ─── Column Detection ─────────────────────────────────────────────────────────


def position_score(positions: Sequence[int], max_column_variance: int) -> float:
    """Score how tightly *positions* cluster: 1.0 for identical, 0.0 beyond the tolerance."""
    variance = pvariance(positions)
    limit = max_column_variance**2
    if variance > limit:
        return 0.0
    if limit == 0:
        return 1.0
    return 1.0 - variance / (4 * limit)


def median_position(positions: Sequence[int]) -> int:
    """Upper median of *positions*."""
    ordered = sorted(positions)
    return ordered[len(ordered) // 2]


def detect_columns(
    block_tokens: BlockTokens,
    max_column_variance: int,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> tuple[list[int], list[ColumnAlignment]]:
    """Return canonical column positions for a block and how each was chosen.

    Column *k* collects the *k*-th token of every row that has one; columns
    with too few observations are dropped.  The left edge wins ties.
    """
    columns: list[int] = []
    alignment: list[ColumnAlignment] = []
    width = max((len(row) for row in block_tokens), default=0)
    for idx in range(width):
        starts = [row[idx].start for row in block_tokens if idx < len(row)]
        if len(starts) < policy.min_column_observations:
            continue
        ends = [row[idx].end for row in block_tokens if idx < len(row)]

        start_score = position_score(starts, max_column_variance)
        end_score = position_score(ends, max_column_variance)
        if start_score >= end_score:
            edge, positions, score = "start", starts, start_score
        else:
            edge, positions, score = "end", ends, end_score

        position = median_position(positions)
        columns.append(position)
        alignment.append(ColumnAlignment(position=position, edge=edge, score=score, variance=pvariance(positions)))
    return columns, alignment


def describe_columns(block_tokens: BlockTokens, columns: Sequence[int], max_column_variance: int) -> list[ColumnAlignment]:
    """Alignment data for externally chosen *columns* (e.g. after optimization)."""
    described: list[ColumnAlignment] = []
    for idx, expected in enumerate(columns):
        rows = [row[idx] for row in block_tokens if idx < len(row)]
        start_off = sum(abs(tok.start - expected) for tok in rows)
        end_off = sum(abs(tok.end - expected) for tok in rows)
        edge = "start" if start_off <= end_off else "end"
        described.append(
            ColumnAlignment(
                position=expected,
                edge=edge,
                score=column_alignment_score(block_tokens, idx, expected, max_column_variance),
                variance=column_variance(block_tokens, idx, expected),
            )
        )
    return described


# ─── Confidence Scoring ───────────────────────────────────────────────────────


def column_alignment_score(block_tokens: BlockTokens, idx: int, expected: int, max_column_variance: int) -> float:
    """Fraction of rows whose *idx*-th token starts or ends within tolerance of *expected*."""
    if not block_tokens:
        return 0.0
    aligned = sum(
        1
        for row in block_tokens
        if idx < len(row)
        and (abs(row[idx].start - expected) <= max_column_variance or abs(row[idx].end - expected) <= max_column_variance)
    )
    return aligned / len(block_tokens)


def column_variance(block_tokens: BlockTokens, idx: int, expected: int) -> float:
    """Variance of whichever token edge sits closer to *expected* in each row."""
    positions = []
    for row in block_tokens:
        if idx < len(row):
            token = row[idx]
            closer_start = abs(token.start - expected) <= abs(token.end - expected)
            positions.append(token.start if closer_start else token.end)
    if len(positions) < 2:
        return 0.0
    return float(pvariance(positions))


def row_consistency(block_tokens: BlockTokens, policy: ScoringPolicy = DEFAULT_POLICY) -> float:
    """Share of rows with the most common token count, discounted for ragged blocks."""
    if not block_tokens:
        return 0.0
    counts = Counter(len(row) for row in block_tokens)
    ratio = max(counts.values()) / len(block_tokens)
    if len(counts) > 2:
        ratio *= policy.mixed_row_penalty
    return ratio


def calculate_confidence(
    block_tokens: BlockTokens,
    columns: Sequence[int],
    max_column_variance: int,
    min_columns: int,
    min_lines: int,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> float:
    """Combine column alignment, variance, row consistency and size bonuses into [0, 1]."""
    if not block_tokens or not columns:
        return 0.0

    scores: list[float] = []
    variances: list[float] = []
    for idx, expected in enumerate(columns):
        score = column_alignment_score(block_tokens, idx, expected, max_column_variance)
        if score > 0:
            scores.append(score)
            variances.append(column_variance(block_tokens, idx, expected))
    if not scores:
        return 0.0

    confidence = fmean(scores)

    avg_variance = fmean(variances)
    if avg_variance > max_column_variance:
        if max_column_variance == 0:
            penalty = policy.max_variance_penalty
        else:
            penalty = min(policy.max_variance_penalty, (avg_variance - max_column_variance) / (max_column_variance * 2))
        confidence -= penalty

    confidence *= row_consistency(block_tokens, policy)

    if confidence > policy.bonus_confidence_floor:
        confidence += min(policy.max_column_bonus, max(0, len(columns) - min_columns) * policy.column_bonus_rate)
        confidence += min(policy.max_line_bonus, max(0, len(block_tokens) - min_lines) * policy.line_bonus_rate)

    return clamp(confidence)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


# ─── Heuristic Filter ─────────────────────────────────────────────────────────


def should_filter_out(lines: Sequence[str]) -> bool:  # pylint: disable=unused-argument
    """Final veto over an accepted block's raw lines.

    No rejection rule is defined yet, so every block passes.
    """
    return False
