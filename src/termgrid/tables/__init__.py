"""Table detection over whitespace-aligned terminal output.

Submodules:
  patterns    -- compiled regex patterns and line classification constants
  config      -- DetectionConfig, ScoringPolicy, and the strategy enums
  schema      -- Token, GridSegment, Cell, and Table models
  tokenizer   -- naive, left-alignment, and projection-based line tokenization
  layout      -- line analysis, layout compatibility, candidate block discovery
  scoring     -- column detection, confidence scoring, heuristic filter
  detection   -- single-round detection pipeline
  dual_round  -- two-sensitivity detection and score-based segment selection
  optimize    -- adjacent-segment merging and major-column optimization
  quality     -- quality metrics and candidate analysis
  cells       -- segment-to-table projection and selectable span export
  formatting  -- markdown rendering of detected tables
  pipeline    -- Detector entry point and command-line runner
"""
