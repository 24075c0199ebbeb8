"""Post-selection segment merging and column optimization.

Two passes over the selected segments:

  merge     -- directly adjacent segments of the same tokenization mode whose
               columns line up are fused and re-scored
  optimize  -- over-segmented or weak segments are collapsed onto a smaller
               set of "major columns" found by gap-frequency analysis, kept
               only if the collapsed version scores better
"""

import logging
from bisect import bisect_right
from collections import Counter
from collections.abc import Sequence

from termgrid.tables.config import DEFAULT_POLICY, DetectionConfig, ScoringPolicy
from termgrid.tables.schema import GridSegment, Token
from termgrid.tables.scoring import calculate_confidence, clamp, describe_columns, detect_columns

logger = logging.getLogger(__name__)


# ─── Segment Merging ──────────────────────────────────────────────────────────


def columns_compatible(first: Sequence[int], second: Sequence[int], tolerance: int, min_ratio: float, policy: ScoringPolicy) -> bool:
    """Check column-count ratio and the share of corresponding columns within *tolerance*."""
    if not first or not second:
        return False
    fewer, more = sorted((len(first), len(second)))
    if more > fewer * policy.max_merge_column_ratio:
        return False
    aligned = sum(1 for a, b in zip(first, second) if abs(a - b) <= tolerance)
    return aligned / fewer >= min_ratio


def can_merge(previous: GridSegment, segment: GridSegment, config: DetectionConfig, policy: ScoringPolicy = DEFAULT_POLICY) -> bool:
    """Return True if *segment* directly follows *previous* and shares its column structure."""
    if segment.start_line - previous.end_line != policy.merge_line_gap:
        return False
    if segment.tokenization_mode is not previous.tokenization_mode:
        return False
    tolerance = previous.metadata.max_column_variance * policy.merging_tolerance_multiplier
    return columns_compatible(previous.columns, segment.columns, tolerance, config.alignment_threshold, policy)


def merge_pair(
    previous: GridSegment,
    segment: GridSegment,
    config: DetectionConfig,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> GridSegment | None:
    """Fuse two adjacent segments, re-detecting columns over the combined rows."""
    tokens = previous.tokens + segment.tokens
    variance = previous.metadata.max_column_variance
    columns, alignment = detect_columns(tokens, variance, policy)
    if len(columns) < config.min_columns or any(right <= left for left, right in zip(columns, columns[1:])):
        return None

    recomputed = calculate_confidence(tokens, columns, variance, config.min_columns, config.min_lines, policy)
    averaged = (previous.confidence + segment.confidence) / 2 + policy.merging_bonus
    return GridSegment(
        start_line=previous.start_line,
        end_line=segment.end_line,
        lines=previous.lines + segment.lines,
        columns=tuple(columns),
        confidence=clamp(max(recomputed, averaged)),
        tokenization_mode=previous.tokenization_mode,
        metadata=previous.metadata.model_copy(
            update={"tokens": tokens, "alignment_data": tuple(alignment), "merged": True}
        ),
    )


def merge_adjacent_segments(
    segments: Sequence[GridSegment],
    config: DetectionConfig,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> list[GridSegment]:
    """Merge runs of directly adjacent, column-compatible segments (ordered by start line)."""
    ordered = sorted(segments, key=lambda s: (s.start_line, s.end_line))
    if len(ordered) < 2:
        return ordered

    merged = [ordered[0]]
    for segment in ordered[1:]:
        previous = merged[-1]
        if can_merge(previous, segment, config, policy):
            combined = merge_pair(previous, segment, config, policy)
            if combined is not None:
                logger.debug(
                    "Merged segments %d-%d and %d-%d",
                    previous.start_line,
                    previous.end_line,
                    segment.start_line,
                    segment.end_line,
                )
                merged[-1] = combined
                continue
        merged.append(segment)
    return merged


# ─── Column Optimization ──────────────────────────────────────────────────────


def needs_optimization(segment: GridSegment, policy: ScoringPolicy = DEFAULT_POLICY) -> bool:
    """Too many columns, or too little confidence in the ones found."""
    return (
        len(segment.columns) > policy.max_columns_for_optimization
        or segment.confidence < policy.optimization_confidence_trigger
    )


def find_major_columns(block_tokens: Sequence[Sequence[Token]], policy: ScoringPolicy = DEFAULT_POLICY) -> list[int]:
    """Pick the structurally significant column starts of a block.

    Every token start scores one point per row, and one more when the token is
    a row's first or follows a gap of at least ``min_gap_for_major_column``.
    Positions seen in fewer than ``min_frequency_ratio`` of the rows are
    ignored; the rest are taken by (weight desc, position asc) while keeping
    the minimum spacing, up to ``max_major_columns``.
    """
    frequency: Counter[int] = Counter()
    gap_frequency: Counter[int] = Counter()
    for row in block_tokens:
        for i, token in enumerate(row):
            frequency[token.start] += 1
            if i == 0 or token.start - row[i - 1].end - 1 >= policy.min_gap_for_major_column:
                gap_frequency[token.start] += 1

    min_occurrences = len(block_tokens) * policy.min_frequency_ratio
    weights = {pos: count + gap_frequency[pos] for pos, count in frequency.items() if count >= min_occurrences}

    major: list[int] = []
    for pos in sorted(weights, key=lambda p: (-weights[p], p)):
        if all(abs(pos - kept) >= policy.min_spacing_between_major_columns for kept in major):
            major.append(pos)
            if len(major) >= policy.max_major_columns:
                break
    return sorted(major)


def realign_row(line: str, row: Sequence[Token], columns: Sequence[int]) -> tuple[Token, ...]:
    """Merge a row's tokens so there is at most one token per column interval."""
    groups: list[list[Token]] = [[] for _ in columns]
    for token in row:
        idx = max(bisect_right(columns, token.start) - 1, 0)
        groups[idx].append(token)
    return tuple(
        Token(line[group[0].start : group[-1].end + 1], group[0].start, group[-1].end) for group in groups if group
    )


def optimize_segment(segment: GridSegment, config: DetectionConfig, policy: ScoringPolicy = DEFAULT_POLICY) -> GridSegment:
    """Collapse *segment* onto its major columns if that scores better; else return it unchanged."""
    original = len(segment.columns)
    major = find_major_columns(segment.tokens, policy)
    if len(major) >= original or len(major) < config.min_columns:
        return segment

    tokens = tuple(realign_row(line, row, major) for line, row in zip(segment.lines, segment.tokens))
    variance = segment.metadata.max_column_variance
    recomputed = calculate_confidence(tokens, major, variance, config.min_columns, config.min_lines, policy)

    reduction = (original - len(major)) / original
    adjusted = recomputed + reduction * policy.column_reduction_bonus_rate
    if policy.optimal_column_min <= len(major) <= policy.optimal_column_max:
        adjusted += policy.optimization_bonus
    if original >= policy.wide_table_min_columns and len(major) == policy.wide_table_target_columns:
        adjusted += policy.wide_table_bonus

    threshold = segment.confidence
    if reduction > policy.significant_reduction_threshold:
        threshold *= policy.reduction_acceptance_multiplier
    if adjusted <= threshold:
        logger.debug("Optimization of %d-%d rejected (%.3f <= %.3f)", segment.start_line, segment.end_line, adjusted, threshold)
        return segment

    logger.debug("Optimized %d-%d: %d -> %d columns", segment.start_line, segment.end_line, original, len(major))
    # Bonuses only gate acceptance; the stored confidence describes the realigned rows
    return segment.model_copy(
        update={
            "columns": tuple(major),
            "confidence": recomputed,
            "metadata": segment.metadata.model_copy(
                update={
                    "tokens": tokens,
                    "alignment_data": tuple(describe_columns(tokens, major, variance)),
                    "optimized": True,
                }
            ),
        }
    )


def optimize_segments(
    segments: Sequence[GridSegment],
    config: DetectionConfig,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> list[GridSegment]:
    return [optimize_segment(s, config, policy) if needs_optimization(s, policy) else s for s in segments]
