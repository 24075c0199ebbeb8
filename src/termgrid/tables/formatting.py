"""Markdown and one-line text rendering of detected tables, for logs and debugging."""

from termgrid.tables.schema import Table


def _escape(text: str) -> str:
    return text.replace("|", "\\|")


def render_markdown(table: Table) -> str:
    """Render *table* as a markdown grid; the first row becomes the header."""
    width = max([table.num_columns, *(len(row) for row in table.cells)])
    rows = [[_escape(cell.text) for cell in row] + [""] * (width - len(row)) for row in table.cells]
    if not rows:
        return ""

    lines = ["| " + " | ".join(rows[0]) + " |", "| " + " | ".join(["---"] * width) + " |"]
    for row in rows[1:]:
        lines.append("| " + " | ".join(row) + " |")
    return "\n".join(lines)


def describe_table(table: Table) -> str:
    """One-line summary such as ``lines 1-2, 5 columns [0, 15, 33, 58, 74], confidence 1.00 (compound_tolerant)``."""
    return (
        f"lines {table.start_line}-{table.end_line}, {table.num_columns} columns {table.column_positions}, "
        f"confidence {table.confidence:.2f} ({table.mode.value})"
    )
