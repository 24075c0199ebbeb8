"""Line tokenization with sibling-line context.

A line is first split naively under the selected whitespace sensitivity.  In
fine-grained mode two repair rules may then replace the naive split, in
priority order:

  1. left-alignment merge -- when the sibling lines agree on fewer columns,
     runs of this line's tokens are merged onto the siblings' column starts
  2. projection analysis -- when single-space gaps suggest a compound cell was
     split, a character-density projection over the sibling lines supplies
     column boundaries

Compound-tolerant mode already keeps single-space words together and always
uses the naive split.
"""

import logging
from collections import Counter
from collections.abc import Sequence

from termgrid.tables.config import DEFAULT_POLICY, ScoringPolicy, TokenizationMode, TokenizationStrategy
from termgrid.tables.patterns import COMPOUND_TOKEN_RE, SHELL_PROMPT_MARKERS, WORD_RE
from termgrid.tables.schema import Token

logger = logging.getLogger(__name__)


# ─── Naive Split ──────────────────────────────────────────────────────────────


def is_skipped_line(line: str) -> bool:
    """Return True for lines that never join a table (blank or shell prompt)."""
    stripped = line.strip()
    return not stripped or stripped.startswith(SHELL_PROMPT_MARKERS)


def tokenize_basic(line: str, mode: TokenizationMode) -> list[Token]:
    """Split *line* on whitespace (runs of 2+ only, in compound-tolerant mode)."""
    pattern = COMPOUND_TOKEN_RE if mode is TokenizationMode.COMPOUND_TOLERANT else WORD_RE
    return [Token(match.group(), match.start(), match.end() - 1) for match in pattern.finditer(line)]


def _sibling_counts(lines: Sequence[str], index: int, naive: Sequence[list[Token]]) -> list[int]:
    """Naive token counts of every other participating, non-empty line."""
    return [
        len(naive[i]) for i, line in enumerate(lines) if i != index and not is_skipped_line(line) and naive[i]
    ]


# ─── Left-Alignment Merge ─────────────────────────────────────────────────────


def _most_common_count(counts: list[int]) -> int:
    """Most frequent value in *counts*, preferring the smaller value on ties."""
    frequency = Counter(counts)
    return min(frequency, key=lambda count: (-frequency[count], count))


def _should_merge_left(lines: Sequence[str], index: int, tokens: list[Token], naive: Sequence[list[Token]]) -> bool:
    if len(lines) < 2 or len(tokens) < 2:
        return False
    counts = _sibling_counts(lines, index, naive)
    if not counts:
        return False
    target = _most_common_count(counts)
    return len(tokens) > target >= 2


def target_columns(lines: Sequence[str], index: int, naive: Sequence[list[Token]]) -> list[int]:
    """Token start positions of the sibling lines, by (frequency desc, position asc)."""
    frequency = Counter(
        token.start
        for i, line in enumerate(lines)
        if i != index and not is_skipped_line(line)
        for token in naive[i]
    )
    return sorted(frequency, key=lambda pos: (-frequency[pos], pos))


def merge_tokens_to_columns(line: str, tokens: list[Token], targets: list[int]) -> list[Token]:
    """Merge runs of *tokens* so that each merged token opens at a target column.

    Tokens starting before the next target are absorbed into the pending
    merged token; a token starting exactly on the target closes it and opens
    the next one.  Whatever is left after the last target joins the final
    merged token.  Merged text is the exact substring of *line*.
    """
    merged: list[Token] = []
    pending: list[Token] = []
    i = 0
    for target in targets:
        found = False
        while i < len(tokens):
            token = tokens[i]
            if token.start == target:
                if pending:
                    merged.append(_join(line, pending))
                pending = [token]
                i += 1
                found = True
                break
            if token.start < target:
                pending.append(token)
                i += 1
            else:
                break
        if not found and pending:
            break
    pending.extend(tokens[i:])
    if pending:
        merged.append(_join(line, pending))
    return merged


def _join(line: str, run: list[Token]) -> Token:
    start, end = run[0].start, run[-1].end
    return Token(line[start : end + 1], start, end)


def _merge_is_aligned(merged: list[Token], targets: list[int], max_column_variance: int) -> bool:
    if len(merged) != len(targets):
        return False
    return all(abs(token.start - target) <= max_column_variance for token, target in zip(merged, targets))


# ─── Projection Analysis ──────────────────────────────────────────────────────


def compute_projection(lines: Sequence[str], mode: TokenizationMode) -> list[int]:
    """Count, per character offset, how many lines have content there.

    In compound-tolerant mode a single whitespace character sandwiched between
    two non-whitespace characters also counts as content.
    """
    density = [0] * max((len(line) for line in lines), default=0)
    compound = mode is TokenizationMode.COMPOUND_TOLERANT
    for line in lines:
        last = len(line) - 1
        for pos, char in enumerate(line):
            if not char.isspace():
                density[pos] += 1
            elif compound and 0 < pos < last and not line[pos - 1].isspace() and not line[pos + 1].isspace():
                density[pos] += 1
    return density


def find_boundaries(projection: list[int], min_width: int) -> list[int]:
    """Split offsets: 0, the end of every content run at least *min_width* wide, and the projection end."""
    boundaries = [0]
    run_start: int | None = None
    for pos, value in enumerate(projection):
        if value > 0:
            if run_start is None:
                run_start = pos
        elif run_start is not None:
            if pos - run_start >= min_width:
                boundaries.append(pos)
            run_start = None
    if boundaries[-1] < len(projection):
        boundaries.append(len(projection))
    return boundaries


def tokenize_with_boundaries(line: str, boundaries: list[int]) -> list[Token]:
    """Split *line* strictly at *boundaries*, trimming whitespace inside each span."""
    tokens: list[Token] = []
    for left, right in zip(boundaries, boundaries[1:]):
        if left >= len(line):
            break
        span = line[left : min(right, len(line))]
        text = span.strip()
        if text:
            start = left + span.index(text)
            tokens.append(Token(text, start, start + len(text) - 1))
    return tokens


def count_single_space_gaps(line: str, tokens: list[Token]) -> int:
    """Number of adjacent token pairs separated by exactly one space."""
    return sum(1 for prev, cur in zip(tokens, tokens[1:]) if cur.start - prev.end == 2 and line[prev.end + 1] == " ")


def _should_project(
    lines: Sequence[str],
    index: int,
    tokens: list[Token],
    naive: Sequence[list[Token]],
    policy: ScoringPolicy,
) -> bool:
    if len(lines) < policy.min_boundaries_for_analysis:
        return False
    if count_single_space_gaps(lines[index], tokens) == 0:
        return False
    # A header far wider than the data rows is a different structure, not a split cell
    counts = _sibling_counts(lines, index, naive)
    if counts and len(tokens) > (sum(counts) // len(counts)) * policy.header_token_ratio:
        return False
    return True


def _projection_tokens(
    lines: Sequence[str],
    index: int,
    tokens: list[Token],
    mode: TokenizationMode,
    policy: ScoringPolicy,
) -> list[Token] | None:
    projection = compute_projection(lines, mode)
    boundaries = find_boundaries(projection, policy.region_min_width(mode))
    if len(boundaries) < policy.min_boundaries_for_analysis:
        return None

    projected = tokenize_with_boundaries(lines[index], boundaries)
    reduction = len(tokens) - len(projected)
    if not projected or reduction <= 0 or reduction > policy.min_boundaries_for_analysis:
        return None
    if len(projected) < policy.min_boundaries_for_analysis:
        return None

    # Projection should be absorbing short fragments, not swallowing real columns
    short = sum(1 for token in tokens if len(token.text) <= policy.min_token_width)
    if reduction < short // 2:
        return None
    return projected


# ─── Entry Point ──────────────────────────────────────────────────────────────


def tokenize_line(
    lines: Sequence[str],
    index: int,
    mode: TokenizationMode,
    max_column_variance: int,
    policy: ScoringPolicy = DEFAULT_POLICY,
    naive: Sequence[list[Token]] | None = None,
) -> tuple[TokenizationStrategy, list[Token]]:
    """Tokenize ``lines[index]`` using the other *lines* as context.

    *naive* may carry the precomputed basic split of every line in *lines*.
    Returns the rule that produced the tokens alongside the tokens.
    """
    line = lines[index]
    if is_skipped_line(line):
        return TokenizationStrategy.SKIPPED, []

    if naive is None:
        naive = [tokenize_basic(other, mode) for other in lines]
    tokens = naive[index]
    if mode is TokenizationMode.COMPOUND_TOLERANT:
        return TokenizationStrategy.NAIVE, tokens

    if _should_merge_left(lines, index, tokens, naive):
        targets = target_columns(lines, index, naive)
        merged = merge_tokens_to_columns(line, tokens, targets)
        if len(merged) < len(tokens) and _merge_is_aligned(merged, targets, max_column_variance):
            logger.debug("Line %d: left-alignment merge %d -> %d tokens", index, len(tokens), len(merged))
            return TokenizationStrategy.LEFT_ALIGNMENT_MERGE, merged

    if _should_project(lines, index, tokens, naive, policy):
        projected = _projection_tokens(lines, index, tokens, mode, policy)
        if projected is not None:
            logger.debug("Line %d: projection %d -> %d tokens", index, len(tokens), len(projected))
            return TokenizationStrategy.PROJECTION, projected

    return TokenizationStrategy.NAIVE, tokens
