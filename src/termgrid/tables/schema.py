"""Data models for tokens, detected grid segments, and the table/cell view.

Token, LineData and CandidateBlock are lightweight named tuples produced in
bulk during analysis.  GridSegment is the single internal result type; its
model_validator guarantees the shape invariants every later stage relies on
(contiguous line range, one token row per line, strictly ascending columns).
Table and Cell are the externally consumed projection of a segment.
"""

from typing import Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from termgrid.tables.config import DetectionRound, DetectionStrategy, TokenizationMode, TokenizationStrategy


class TableIndexError(IndexError):
    """Raised when a row or column index falls outside a table."""


# ─── Analysis Types ───────────────────────────────────────────────────────────


class Token(NamedTuple):
    """A contiguous run of line text; *start* and *end* are inclusive offsets."""

    text: str
    start: int
    end: int

    @property
    def width(self) -> int:
        return self.end - self.start + 1


class LineData(NamedTuple):
    """Tokens and column-start layout for one input line."""

    tokens: tuple[Token, ...]
    layout: tuple[int, ...]
    strategy: TokenizationStrategy

    @property
    def skipped(self) -> bool:
        return self.strategy is TokenizationStrategy.SKIPPED


SKIPPED_LINE = LineData((), (), TokenizationStrategy.SKIPPED)


class CandidateBlock(NamedTuple):
    """A maximal run of layout-compatible lines awaiting column detection."""

    start_line: int
    end_line: int
    lines: tuple[str, ...]


# ─── Grid Segment ─────────────────────────────────────────────────────────────


class ColumnAlignment(BaseModel):
    """How one detected column lines up across the rows of its segment."""

    model_config = ConfigDict(frozen=True)

    position: int
    edge: Literal["start", "end"]
    score: float
    variance: float


class SegmentMetadata(BaseModel):
    """Per-row tokens and bookkeeping carried alongside a GridSegment."""

    model_config = ConfigDict(frozen=True)

    tokens: tuple[tuple[Token, ...], ...]
    alignment_data: tuple[ColumnAlignment, ...] = ()
    max_column_variance: int
    detection_round: DetectionRound | None = None
    selection_score: float | None = None
    merged: bool = False
    optimized: bool = False


class GridSegment(BaseModel):
    """A detected table region: its lines, canonical column starts and confidence."""

    model_config = ConfigDict(frozen=True)

    start_line: int = Field(ge=0)
    end_line: int
    lines: tuple[str, ...]
    columns: tuple[int, ...]
    confidence: float = Field(ge=0.0, le=1.0)
    tokenization_mode: TokenizationMode
    metadata: SegmentMetadata

    @model_validator(mode="after")
    def validate_shape(self) -> "GridSegment":
        """Ensure the line range, token rows and column order are consistent."""
        if self.end_line < self.start_line:
            raise ValueError(f"end_line {self.end_line} precedes start_line {self.start_line}")
        expected = self.end_line - self.start_line + 1
        if len(self.lines) != expected:
            raise ValueError(f"Segment spans {expected} lines but holds {len(self.lines)}")
        if len(self.metadata.tokens) != len(self.lines):
            raise ValueError(f"Segment has {len(self.metadata.tokens)} token rows for {len(self.lines)} lines")
        for left, right in zip(self.columns, self.columns[1:]):
            if right <= left:
                raise ValueError(f"Columns must be strictly ascending, got {list(self.columns)}")
        return self

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def tokens(self) -> tuple[tuple[Token, ...], ...]:
        return self.metadata.tokens

    def overlaps(self, other: "GridSegment") -> bool:
        """Return True if the two segments share at least one line."""
        return self.start_line <= other.end_line and other.start_line <= self.end_line


# ─── Table / Cell View ────────────────────────────────────────────────────────


class Cell(BaseModel):
    """One selectable table cell; *row*/*column* are local, *line_index* is global."""

    model_config = ConfigDict(frozen=True)

    text: str
    row: int
    column: int
    line_index: int
    start_pos: int
    end_pos: int

    def __str__(self) -> str:
        return self.text

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    @property
    def length(self) -> int:
        return len(self.text)


class Span(BaseModel):
    """A positioned piece of text offered to the selection UI."""

    model_config = ConfigDict(frozen=True)

    text: str
    start_pos: int
    end_pos: int
    line_index: int


class QualityMetrics(BaseModel):
    """Structural quality measurements for a detected table."""

    model_config = ConfigDict(frozen=True)

    alignment_score: float
    consistency_score: float
    compactness_score: float
    token_count_stddev: float
    avg_column_spacing: float


class TableMetadata(BaseModel):
    """How a table was found and how well it is structured."""

    model_config = ConfigDict(frozen=True)

    detection_strategy: DetectionStrategy
    tokenization_mode: TokenizationMode
    column_positions: tuple[int, ...]
    alignment_data: tuple[ColumnAlignment, ...] = ()
    quality_metrics: QualityMetrics | None = None


class Table(BaseModel):
    """Row/column cell grid for one detected table.

    Rows may hold more or fewer cells than there are column positions (a header
    with an extra trailing word, a data row with an empty cell), so cell access
    is bounded by the row's own length and column access collects the cells of
    every row that reaches that column.
    """

    model_config = ConfigDict(frozen=True)

    start_line: int
    end_line: int
    confidence: float
    mode: TokenizationMode
    cells: tuple[tuple[Cell, ...], ...]
    metadata: TableMetadata

    @property
    def num_rows(self) -> int:
        return len(self.cells)

    @property
    def num_columns(self) -> int:
        return len(self.metadata.column_positions)

    @property
    def column_positions(self) -> list[int]:
        return list(self.metadata.column_positions)

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def is_valid(self) -> bool:
        """Return True if the table has rows, columns, and one cell row per line."""
        return self.num_rows > 0 and self.num_columns > 0 and self.num_rows == self.line_count

    def _check_row(self, row: int) -> None:
        if self.num_rows == 0:
            raise TableIndexError(f"row index {row} requested but the table has no rows")
        if not 0 <= row < self.num_rows:
            raise TableIndexError(f"row index {row} out of range [0-{self.num_rows - 1}]")

    def get_cell(self, row: int, column: int) -> Cell:
        """Return the cell at (*row*, *column*)."""
        self._check_row(row)
        width = len(self.cells[row])
        if not 0 <= column < width:
            raise TableIndexError(f"column index {column} out of range [0-{width - 1}] for row {row}")
        return self.cells[row][column]

    def get_row(self, row: int) -> list[Cell]:
        self._check_row(row)
        return list(self.cells[row])

    def get_column(self, column: int) -> list[Cell]:
        """Return the cells at *column* from every row long enough to have one."""
        if not 0 <= column < self.num_columns:
            raise TableIndexError(f"column index {column} out of range [0-{self.num_columns - 1}]")
        return [cells[column] for cells in self.cells if column < len(cells)]

    def get_header_row(self) -> list[Cell]:
        if self.num_rows == 0:
            raise TableIndexError("table has no rows")
        return self.get_row(0)

    def get_row_texts(self, row: int) -> list[str]:
        return [cell.text for cell in self.get_row(row)]

    def get_column_texts(self, column: int) -> list[str]:
        return [cell.text for cell in self.get_column(column)]

    def spans(self) -> list[Span]:
        """Return every cell as a selectable span, in row-major order."""
        return [
            Span(text=cell.text, start_pos=cell.start_pos, end_pos=cell.end_pos, line_index=cell.line_index)
            for row in self.cells
            for cell in row
        ]
