"""Dual-round detection with score-based segment selection.

The single-round pipeline runs twice over the same lines:

  compound round -- compound-tolerant tokens, lower confidence floor and a
                    wider column tolerance, so multi-word cells stay whole
  fine round     -- fine-grained tokens with the caller's floor and tolerance

Every segment from either round gets a selection score.  Segments are taken
greedily by score, skipping any whose lines overlap an accepted one, so each
region of text is described by whichever round explained it best.  The
selected set is then merged and column-optimized.
"""

import logging
from collections.abc import Sequence
from statistics import fmean, pstdev

from termgrid.tables.config import DEFAULT_POLICY, DetectionConfig, DetectionRound, ScoringPolicy, TokenizationMode
from termgrid.tables.detection import detect_grids
from termgrid.tables.optimize import merge_adjacent_segments, optimize_segments
from termgrid.tables.patterns import MEDIUM_WORD_MAX_LENGTH, SHORT_WORD_MAX_LENGTH
from termgrid.tables.schema import GridSegment
from termgrid.tables.scoring import clamp
from termgrid.tables.tokenizer import tokenize_basic

logger = logging.getLogger(__name__)


# ─── Round Configuration ──────────────────────────────────────────────────────


def round_config(config: DetectionConfig, detection_round: DetectionRound, policy: ScoringPolicy = DEFAULT_POLICY) -> DetectionConfig:
    """Derive the per-round config from the caller's config."""
    if detection_round is DetectionRound.COMPOUND:
        return config.with_overrides(
            tokenization_mode=TokenizationMode.COMPOUND_TOLERANT,
            confidence_threshold=policy.compound_round_confidence,
            max_column_variance=policy.compound_round_variance,
        )
    if detection_round is DetectionRound.FINE:
        return config.with_overrides(tokenization_mode=TokenizationMode.FINE_GRAINED)
    raise ValueError(f"Unknown detection round: {detection_round!r}")


# ─── Segment Characteristics ──────────────────────────────────────────────────


def has_compound_characteristics(segment: GridSegment, policy: ScoringPolicy = DEFAULT_POLICY) -> bool:
    """True when the segment's words look like multi-word cells.

    Looks for a mix of short, medium and long words, a high share of short
    words, and many single-space gaps between neighbouring words.
    """
    rows = [tokenize_basic(line, TokenizationMode.FINE_GRAINED) for line in segment.lines]
    lengths = [len(word.text) for row in rows for word in row]
    gaps = [cur.start - prev.end - 1 for row in rows for prev, cur in zip(row, row[1:])]
    if not lengths or not gaps:
        return False

    short = sum(1 for n in lengths if n <= SHORT_WORD_MAX_LENGTH)
    medium = sum(1 for n in lengths if SHORT_WORD_MAX_LENGTH < n <= MEDIUM_WORD_MAX_LENGTH)
    long = len(lengths) - short - medium
    if not (short and medium and long):
        return False

    single_ratio = sum(1 for gap in gaps if gap == 1) / len(gaps)
    return short / len(lengths) > policy.short_token_ratio_threshold and single_ratio > policy.single_space_ratio_threshold


def has_good_granularity(segment: GridSegment, policy: ScoringPolicy = DEFAULT_POLICY) -> bool:
    """True for 3-8 evenly spaced columns with no cramped spacing."""
    columns = segment.columns
    if not policy.optimal_column_min <= len(columns) <= policy.optimal_column_max:
        return False
    spacings = [right - left for left, right in zip(columns, columns[1:])]
    if min(spacings) < policy.min_column_spacing:
        return False
    return pstdev(spacings) / fmean(spacings) <= policy.max_spacing_variation


def score_segment(segment: GridSegment, detection_round: DetectionRound, policy: ScoringPolicy = DEFAULT_POLICY) -> float:
    """Selection score in [0, max_confidence_score]; higher wins the overlap contest."""
    n_columns = len(segment.columns)
    score = segment.confidence

    if policy.sweet_spot_columns_min <= n_columns <= policy.sweet_spot_columns_max:
        score += policy.optimal_column_bonus_weight
    elif policy.reasonable_columns_min <= n_columns <= policy.reasonable_columns_max:
        score += policy.column_bonus_weight

    score += min(policy.max_segment_line_bonus, segment.line_count * policy.segment_line_bonus_rate)

    if n_columns > policy.max_columns_allowed:
        excess = n_columns - policy.max_columns_allowed
        score -= min(policy.max_oversegmentation_penalty, excess * policy.oversegmentation_penalty_rate)

    if detection_round is DetectionRound.COMPOUND and has_compound_characteristics(segment, policy):
        score += policy.compound_round_bonus
    elif detection_round is DetectionRound.FINE and has_good_granularity(segment, policy):
        score += policy.fine_round_bonus

    return clamp(score, 0.0, policy.max_confidence_score)


# ─── Selection ────────────────────────────────────────────────────────────────


def select_segments(scored: Sequence[tuple[float, int, GridSegment]]) -> list[GridSegment]:
    """Greedily accept (score, round order, segment) candidates that overlap nothing accepted.

    Ties go to the earlier start line, then the earlier round.  The result is
    ordered by start line.
    """
    ranked = sorted(scored, key=lambda item: (-item[0], item[2].start_line, item[1], item[2].end_line))
    accepted: list[GridSegment] = []
    for score, _, segment in ranked:
        if any(segment.overlaps(other) for other in accepted):
            continue
        accepted.append(segment.model_copy(update={"metadata": segment.metadata.model_copy(update={"selection_score": score})}))
    return sorted(accepted, key=lambda s: s.start_line)


def detect_dual_round(
    lines: Sequence[str],
    config: DetectionConfig | None = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> list[GridSegment]:
    """Run both rounds, pick the best non-overlapping segments, then merge and optimize."""
    config = config or DetectionConfig()
    if len(lines) < config.min_lines:
        return []

    scored: list[tuple[float, int, GridSegment]] = []
    for order, detection_round in enumerate(DetectionRound):
        segments = detect_grids(lines, round_config(config, detection_round, policy), policy, detection_round)
        for segment in segments:
            scored.append((score_segment(segment, detection_round, policy), order, segment))
        logger.debug("%s: %d segments", detection_round.value, len(segments))

    selected = select_segments(scored)
    merged = merge_adjacent_segments(selected, config, policy)
    result = optimize_segments(merged, config, policy)
    logger.info("Dual-round detection: %d candidates -> %d segments", len(scored), len(result))
    return result
