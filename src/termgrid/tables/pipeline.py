"""Public detection entry point and command-line runner.

The Detector runs each configured strategy over the same lines and keeps the
result set with the highest total confidence (earlier strategies win ties),
then projects the winning segments into Table objects.

Usage:
    python -m termgrid.tables.pipeline captured.txt
    tmux capture-pane -p | python -m termgrid.tables.pipeline -
"""

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from termgrid.tables.cells import extract_spans, segment_to_table
from termgrid.tables.config import DEFAULT_POLICY, DetectionConfig, DetectionStrategy, ScoringPolicy
from termgrid.tables.detection import detect_grids
from termgrid.tables.dual_round import detect_dual_round
from termgrid.tables.formatting import describe_table, render_markdown
from termgrid.tables.schema import GridSegment, Span, Table

logger = logging.getLogger(__name__)


class Detector:
    """Immutable configuration plus the strategy dispatch over a line buffer."""

    def __init__(self, config: DetectionConfig | None = None, policy: ScoringPolicy | None = None):
        self.config = config or DetectionConfig()
        self.policy = policy or DEFAULT_POLICY

    def _run_strategy(self, strategy: DetectionStrategy, lines: Sequence[str]) -> list[GridSegment]:
        if strategy is DetectionStrategy.DUAL_ROUND:
            return detect_dual_round(lines, self.config, self.policy)
        if strategy is DetectionStrategy.SINGLE_ROUND:
            return detect_grids(lines, self.config, self.policy)
        raise ValueError(f"Unknown detection strategy: {strategy!r}")

    def best_segments(self, lines: Sequence[str]) -> tuple[DetectionStrategy | None, list[GridSegment]]:
        """Return the winning strategy and its segments (None and [] for degenerate input)."""
        if len(lines) < self.config.min_lines:
            return None, []

        best_strategy: DetectionStrategy | None = None
        best: list[GridSegment] = []
        best_total = 0.0
        for strategy in self.config.strategies:
            segments = self._run_strategy(strategy, lines)
            total = sum(segment.confidence for segment in segments)
            logger.debug("%s: %d segments, total confidence %.3f", strategy.value, len(segments), total)
            if best_strategy is None or total > best_total:
                best_strategy, best, best_total = strategy, segments, total

        if not best:
            return None, []
        return best_strategy, best

    def detect_grids(self, lines: Sequence[str]) -> list[GridSegment]:
        return self.best_segments(lines)[1]

    def detect_tables(self, lines: Sequence[str]) -> list[Table]:
        """Detect tables in *lines*; an empty list when nothing table-like is found."""
        strategy, segments = self.best_segments(lines)
        if strategy is None:
            return []
        tables = [segment_to_table(segment, strategy) for segment in segments]
        logger.info("Detected %d tables in %d lines via %s", len(tables), len(lines), strategy.value)
        return tables


def detect_tables(lines: Sequence[str], config: DetectionConfig | None = None, policy: ScoringPolicy | None = None) -> list[Table]:
    """Convenience wrapper around Detector(config, policy).detect_tables(lines)."""
    return Detector(config, policy).detect_tables(lines)


def detect_spans(lines: Sequence[str], config: DetectionConfig | None = None, policy: ScoringPolicy | None = None) -> list[Span]:
    """Selectable spans for every cell of every detected table."""
    return extract_spans(detect_tables(lines, config, policy))


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Detect whitespace-aligned tables in captured terminal text")
    parser.add_argument("path", help="Text file to scan, or '-' to read stdin")
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in DetectionStrategy],
        default=None,
        help="Run a single detection strategy instead of the configured set",
    )
    parser.add_argument("--verbose", action="store_true", help="Log per-block decisions")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if args.path == "-":
        text = sys.stdin.read()
    else:
        text = Path(args.path).read_text(encoding="utf-8")

    config = DetectionConfig.from_env()
    if args.strategy:
        config = config.with_overrides(strategies=(args.strategy,))

    tables = detect_tables(text.splitlines(), config)
    for table in tables:
        print(describe_table(table))
        print(render_markdown(table))
        print()
    logger.info("Done: %d tables", len(tables))
    return 0


if __name__ == "__main__":
    sys.exit(main())
