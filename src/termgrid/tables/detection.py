"""Single-round grid detection.

One pass of the pipeline under a single tokenization mode: analyze lines,
find candidate blocks, pick columns for each block, score it, and keep the
blocks that clear the configured floors.
"""

import logging
from collections.abc import Sequence

from termgrid.tables.config import DEFAULT_POLICY, DetectionConfig, DetectionRound, ScoringPolicy
from termgrid.tables.layout import analyze_lines, find_candidate_blocks
from termgrid.tables.schema import CandidateBlock, GridSegment, LineData, SegmentMetadata
from termgrid.tables.scoring import calculate_confidence, detect_columns, should_filter_out

logger = logging.getLogger(__name__)


def process_block(
    block: CandidateBlock,
    line_data: Sequence[LineData],
    config: DetectionConfig,
    policy: ScoringPolicy = DEFAULT_POLICY,
    detection_round: DetectionRound | None = None,
) -> GridSegment | None:
    """Turn a candidate block into a GridSegment, or None if it is rejected."""
    block_tokens = tuple(line_data[i].tokens for i in range(block.start_line, block.end_line + 1))
    variance = config.max_column_variance

    columns, alignment = detect_columns(block_tokens, variance, policy)
    if len(columns) < config.min_columns:
        logger.debug("Block %d-%d: %d columns < %d", block.start_line, block.end_line, len(columns), config.min_columns)
        return None
    if any(right <= left for left, right in zip(columns, columns[1:])):
        logger.debug("Block %d-%d: columns not ascending %s", block.start_line, block.end_line, columns)
        return None

    confidence = calculate_confidence(block_tokens, columns, variance, config.min_columns, config.min_lines, policy)
    if confidence < config.confidence_threshold:
        logger.debug(
            "Block %d-%d: confidence %.3f < %.3f",
            block.start_line,
            block.end_line,
            confidence,
            config.confidence_threshold,
        )
        return None
    if should_filter_out(block.lines):
        return None

    return GridSegment(
        start_line=block.start_line,
        end_line=block.end_line,
        lines=block.lines,
        columns=tuple(columns),
        confidence=confidence,
        tokenization_mode=config.tokenization_mode,
        metadata=SegmentMetadata(
            tokens=block_tokens,
            alignment_data=tuple(alignment),
            max_column_variance=variance,
            detection_round=detection_round,
        ),
    )


def detect_grids(
    lines: Sequence[str],
    config: DetectionConfig | None = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
    detection_round: DetectionRound | None = None,
) -> list[GridSegment]:
    """Run one detection pass over *lines* with the config's tokenization mode."""
    config = config or DetectionConfig()
    if len(lines) < config.min_lines:
        return []

    mode = config.tokenization_mode
    line_data = analyze_lines(lines, mode, config.max_column_variance, policy)
    blocks = find_candidate_blocks(lines, line_data, config.min_lines, mode, config.max_column_variance, policy)

    segments = []
    for block in blocks:
        segment = process_block(block, line_data, config, policy, detection_round)
        if segment is not None:
            segments.append(segment)
    logger.debug("%s pass: %d blocks -> %d segments", mode.value, len(blocks), len(segments))
    return segments
