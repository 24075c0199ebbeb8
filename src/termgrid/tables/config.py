"""Detection configuration, scoring policy, and strategy enums.

DetectionConfig carries the caller-facing options and is validated eagerly:
out-of-range values raise pydantic's ValidationError naming the offending
field before any detection runs.  ScoringPolicy gathers every tunable weight
and threshold of the scoring pipeline so that an alternate policy can be
handed to one detector without touching any other.
"""

import logging
import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

ROOT = Path(__file__).parent.parent.parent.parent.resolve()


# ─── Strategy Enums ───────────────────────────────────────────────────────────


class TokenizationMode(str, Enum):
    """Whitespace sensitivity used to split a line into tokens."""

    FINE_GRAINED = "fine_grained"
    COMPOUND_TOLERANT = "compound_tolerant"


class TokenizationStrategy(str, Enum):
    """Which tokenizer rule produced a line's tokens."""

    LEFT_ALIGNMENT_MERGE = "left_alignment_merge"
    PROJECTION = "projection"
    NAIVE = "naive"
    SKIPPED = "skipped"


class DetectionStrategy(str, Enum):
    """Top-level detection strategies a Detector can run."""

    DUAL_ROUND = "dual_round"
    SINGLE_ROUND = "single_round"


class DetectionRound(str, Enum):
    """The two passes of dual-round detection, in selection tie-break order."""

    COMPOUND = "compound_round"
    FINE = "fine_round"


# ─── Scoring Policy ───────────────────────────────────────────────────────────


class ScoringPolicy(BaseModel):
    """Named weights and thresholds used throughout the detection pipeline."""

    model_config = ConfigDict(frozen=True)

    # Tokenizer
    min_token_width: int = 2
    compound_token_min_width: int = 3
    min_boundaries_for_analysis: int = 3
    header_token_ratio: float = 1.5

    # Layout compatibility
    max_layout_mismatches: int = 1
    fine_boundary_gap: int = 3
    compound_boundary_gap: int = 5
    min_boundaries: int = 2
    max_boundaries: int = 10
    max_boundary_ratio: float = 1.5
    boundary_match_ratio: float = 0.75
    legacy_overlap_ratio: float = 0.3
    fine_legacy_count_ratio: float = 0.2
    compound_legacy_count_ratio: float = 0.15

    # Confidence scoring
    min_column_observations: int = 2
    max_variance_penalty: float = 0.5
    mixed_row_penalty: float = 0.8
    bonus_confidence_floor: float = 0.4
    column_bonus_rate: float = 0.05
    max_column_bonus: float = 0.2
    line_bonus_rate: float = 0.02
    max_line_bonus: float = 0.1

    # Dual-round rounds
    compound_round_confidence: float = 0.4
    compound_round_variance: int = 3

    # Segment selection scoring
    column_bonus_weight: float = 0.2
    optimal_column_bonus_weight: float = 0.3
    reasonable_columns_min: int = 2
    reasonable_columns_max: int = 10
    sweet_spot_columns_min: int = 3
    sweet_spot_columns_max: int = 7
    segment_line_bonus_rate: float = 0.02
    max_segment_line_bonus: float = 0.2
    max_columns_allowed: int = 12
    oversegmentation_penalty_rate: float = 0.05
    max_oversegmentation_penalty: float = 0.3
    compound_round_bonus: float = 0.15
    fine_round_bonus: float = 0.1
    short_token_ratio_threshold: float = 0.3
    single_space_ratio_threshold: float = 0.2
    min_column_spacing: int = 2
    max_spacing_variation: float = 0.5
    max_confidence_score: float = 2.0

    # Segment merging
    merge_line_gap: int = 1
    max_merge_column_ratio: float = 1.5
    merging_tolerance_multiplier: int = 2
    merging_bonus: float = 0.1

    # Column optimization
    max_columns_for_optimization: int = 10
    optimization_confidence_trigger: float = 0.5
    min_gap_for_major_column: int = 3
    min_frequency_ratio: float = 0.33
    min_spacing_between_major_columns: int = 8
    max_major_columns: int = 8
    optimal_column_min: int = 3
    optimal_column_max: int = 8
    optimization_bonus: float = 0.2
    column_reduction_bonus_rate: float = 0.3
    wide_table_min_columns: int = 10
    wide_table_target_columns: int = 7
    wide_table_bonus: float = 0.15
    significant_reduction_threshold: float = 0.4
    reduction_acceptance_multiplier: float = 0.9

    def region_min_width(self, mode: TokenizationMode) -> int:
        """Minimum width of a projection density run that counts as a column region."""
        if mode is TokenizationMode.COMPOUND_TOLERANT:
            return self.compound_token_min_width
        return self.min_token_width

    def boundary_gap(self, mode: TokenizationMode) -> int:
        """Minimum whitespace gap before a token for it to open a column boundary."""
        if mode is TokenizationMode.COMPOUND_TOLERANT:
            return self.compound_boundary_gap
        return self.fine_boundary_gap

    def legacy_count_ratio(self, mode: TokenizationMode) -> float:
        """Minimum token-count ratio accepted by the legacy overlap comparison."""
        if mode is TokenizationMode.COMPOUND_TOLERANT:
            return self.compound_legacy_count_ratio
        return self.fine_legacy_count_ratio


DEFAULT_POLICY = ScoringPolicy()


# ─── Detection Config ─────────────────────────────────────────────────────────

# Environment variable -> DetectionConfig field
_ENV_FIELDS = {
    "TERMGRID_MIN_LINES": "min_lines",
    "TERMGRID_MIN_COLUMNS": "min_columns",
    "TERMGRID_ALIGNMENT_THRESHOLD": "alignment_threshold",
    "TERMGRID_CONFIDENCE_THRESHOLD": "confidence_threshold",
    "TERMGRID_MAX_COLUMN_VARIANCE": "max_column_variance",
    "TERMGRID_TOKENIZATION_MODE": "tokenization_mode",
    "TERMGRID_STRATEGIES": "strategies",
}


class DetectionConfig(BaseModel):
    """Immutable caller options for one detector instance.

    *alignment_threshold* is the minimum share of corresponding columns that
    must line up before two adjacent segments are merged.  *strategies* is the
    ordered set of detection strategies tried by the Detector; earlier entries
    win ties.
    """

    model_config = ConfigDict(frozen=True)

    min_lines: int = Field(default=2, ge=1)
    min_columns: int = Field(default=2, ge=1)
    alignment_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    confidence_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    max_column_variance: int = Field(default=2, ge=0)
    tokenization_mode: TokenizationMode = TokenizationMode.FINE_GRAINED
    strategies: tuple[DetectionStrategy, ...] = (DetectionStrategy.DUAL_ROUND, DetectionStrategy.SINGLE_ROUND)

    @model_validator(mode="after")
    def validate_strategies(self) -> "DetectionConfig":
        """Require at least one strategy and no repeats."""
        if not self.strategies:
            raise ValueError("strategies must name at least one detection strategy")
        if len(set(self.strategies)) != len(self.strategies):
            raise ValueError(f"strategies contains duplicates: {[s.value for s in self.strategies]}")
        return self

    def with_overrides(self, **changes) -> "DetectionConfig":
        """Return a validated copy with *changes* applied."""
        return DetectionConfig.model_validate({**self.model_dump(), **changes})

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> "DetectionConfig":
        """Build a config from TERMGRID_* environment variables (after loading *env_file*)."""
        load_dotenv(env_file or ROOT / ".env")
        values: dict[str, object] = {}
        for var, field in _ENV_FIELDS.items():
            raw = os.getenv(var)
            if raw is None or not raw.strip():
                continue
            if field == "strategies":
                values[field] = tuple(part.strip() for part in raw.split(",") if part.strip())
            else:
                values[field] = raw.strip()
        if values:
            logger.debug("Config overrides from environment: %s", sorted(values))
        return cls(**values)
