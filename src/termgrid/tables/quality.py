"""Quality metrics for detected segments and standalone candidate analysis."""

import logging
from collections import Counter
from collections.abc import Sequence
from statistics import fmean, pstdev

from pydantic import BaseModel, ConfigDict

from termgrid.tables.config import DEFAULT_POLICY, DetectionConfig, ScoringPolicy
from termgrid.tables.detection import detect_grids
from termgrid.tables.schema import ColumnAlignment, GridSegment, QualityMetrics, Token

logger = logging.getLogger(__name__)

# Average column gap regarded as ideal for a terminal table
IDEAL_MIN_GAP = 3.0
IDEAL_MAX_GAP = 8.0


class AnalysisResult(BaseModel):
    """Best segment found in a candidate line range, with its quality breakdown."""

    model_config = ConfigDict(frozen=True)

    confidence: float
    columns: tuple[int, ...] = ()
    quality_metrics: QualityMetrics | None = None
    alignment_data: tuple[ColumnAlignment, ...] = ()
    token_distribution: dict[int, int] = {}


def alignment_score(block_tokens: Sequence[Sequence[Token]], columns: Sequence[int], max_column_variance: int) -> float:
    """Mean per-column closeness of token starts to the column, ignoring rows outside tolerance."""
    column_scores = []
    for idx, expected in enumerate(columns):
        row_scores = []
        for row in block_tokens:
            if idx >= len(row):
                continue
            deviation = abs(row[idx].start - expected)
            if deviation <= max_column_variance:
                row_scores.append(1.0 if max_column_variance == 0 else 1.0 - deviation / max_column_variance)
        if row_scores:
            column_scores.append(fmean(row_scores))
    return fmean(column_scores) if column_scores else 0.0


def consistency_score(block_tokens: Sequence[Sequence[Token]]) -> float:
    if not block_tokens:
        return 0.0
    counts = Counter(len(row) for row in block_tokens)
    score = max(counts.values()) / len(block_tokens)
    if len(counts) > 2:
        score *= 0.9
    return score


def compactness_score(columns: Sequence[int]) -> float:
    """1.0 when the average column gap is in the ideal range, falling off outside it."""
    if len(columns) <= 1:
        return 1.0
    avg_gap = fmean(right - left for left, right in zip(columns, columns[1:]))
    if IDEAL_MIN_GAP <= avg_gap <= IDEAL_MAX_GAP:
        return 1.0
    if avg_gap < IDEAL_MIN_GAP:
        return max(0.0, avg_gap / IDEAL_MIN_GAP)
    return min(1.0, IDEAL_MAX_GAP / avg_gap)


def token_distribution(segment: GridSegment) -> dict[int, int]:
    """Map of token count -> number of rows with that many tokens."""
    return dict(sorted(Counter(len(row) for row in segment.tokens).items()))


def calculate_quality_metrics(segment: GridSegment) -> QualityMetrics:
    tokens = segment.tokens
    columns = segment.columns
    counts = [len(row) for row in tokens]
    spacings = [right - left for left, right in zip(columns, columns[1:])]
    return QualityMetrics(
        alignment_score=alignment_score(tokens, columns, segment.metadata.max_column_variance),
        consistency_score=consistency_score(tokens),
        compactness_score=compactness_score(columns),
        token_count_stddev=pstdev(counts) if counts else 0.0,
        avg_column_spacing=fmean(spacings) if spacings else 0.0,
    )


def analyze_candidate(
    lines: Sequence[str],
    start_line: int,
    end_line: int,
    config: DetectionConfig | None = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> AnalysisResult:
    """Run single-round detection over ``lines[start_line:end_line + 1]`` and report on the best segment."""
    if start_line < 0 or end_line >= len(lines) or start_line > end_line:
        raise ValueError(f"Invalid line range {start_line}-{end_line} for {len(lines)} lines")

    segments = detect_grids(lines[start_line : end_line + 1], config, policy)
    if not segments:
        logger.debug("No segment in candidate range %d-%d", start_line, end_line)
        return AnalysisResult(confidence=0.0)

    best = max(segments, key=lambda s: s.confidence)
    return AnalysisResult(
        confidence=best.confidence,
        columns=best.columns,
        quality_metrics=calculate_quality_metrics(best),
        alignment_data=best.metadata.alignment_data,
        token_distribution=token_distribution(best),
    )
