"""Projection of detected segments onto the externally consumed table/cell grid."""

from collections.abc import Iterable

from termgrid.tables.config import DetectionStrategy
from termgrid.tables.quality import calculate_quality_metrics
from termgrid.tables.schema import Cell, GridSegment, Span, Table, TableMetadata


def segment_to_cells(segment: GridSegment) -> tuple[tuple[Cell, ...], ...]:
    """One cell per token per row; rows and columns are local, line indices global."""
    return tuple(
        tuple(
            Cell(
                text=token.text,
                row=row,
                column=column,
                line_index=segment.start_line + row,
                start_pos=token.start,
                end_pos=token.end,
            )
            for column, token in enumerate(tokens)
        )
        for row, tokens in enumerate(segment.tokens)
    )


def segment_to_table(segment: GridSegment, strategy: DetectionStrategy) -> Table:
    """Build the Table view of *segment*, attaching metadata and quality metrics."""
    return Table(
        start_line=segment.start_line,
        end_line=segment.end_line,
        confidence=segment.confidence,
        mode=segment.tokenization_mode,
        cells=segment_to_cells(segment),
        metadata=TableMetadata(
            detection_strategy=strategy,
            tokenization_mode=segment.tokenization_mode,
            column_positions=segment.columns,
            alignment_data=segment.metadata.alignment_data,
            quality_metrics=calculate_quality_metrics(segment),
        ),
    )


def extract_spans(tables: Iterable[Table]) -> list[Span]:
    """Flatten every cell of every table into selectable spans."""
    return [span for table in tables for span in table.spans()]
