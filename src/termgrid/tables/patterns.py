"""Compiled regex patterns and constants for terminal table detection.

These patterns split captured terminal lines into positioned tokens and
recognise lines that never take part in a table (blank lines and shell
prompts).  Used by tokenizer.py and layout.py.
"""

import re

# ─── Token Patterns ───────────────────────────────────────────────────────────

# Fine-grained token: any run of non-whitespace characters
WORD_RE = re.compile(r"\S+")

# Compound token: words joined by single whitespace characters.  A run of two
# or more whitespace characters ends the token, so "13 months ago" stays whole.
COMPOUND_TOKEN_RE = re.compile(r"\S+(?:\s\S+)*")


# ─── Line Classification ──────────────────────────────────────────────────────

# Prefixes that mark a shell prompt line such as "$ docker ps"
SHELL_PROMPT_MARKERS = ("$",)


# ─── Token Length Buckets ─────────────────────────────────────────────────────

# Word lengths used when judging whether a block is made of compound cells
SHORT_WORD_MAX_LENGTH = 3
MEDIUM_WORD_MAX_LENGTH = 8
