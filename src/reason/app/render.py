"""Turn command output into text for the terminal."""
from typing import List
from functools import singledispatch

from reason.command.core import CommandOutput, Message, NoOutput, PaperList
from reason.data.store import Paper, PaperStore
from reason.util.config import ShellConfig

HEADERS = ("#", "title", "authors", "venue", "year")


def truncate(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[:width - 3] + "..."


def format_authors(paper: Paper, max_count: int) -> str:
    if len(paper.authors) <= max_count:
        return ", ".join(paper.authors)
    return ", ".join(paper.authors[:max_count]) + " et al."


@singledispatch
def render(output: CommandOutput, store: PaperStore, config: ShellConfig) -> str:
    """Render the final output of a chain.

    Args:
        output: The output envelope of the last stage.
        store: The store, after every stage has run.
        config: Display settings.
    """
    raise TypeError(f"Cannot render {type(output).__name__}")


@render.register
def _(output: NoOutput, store, config) -> str:
    return ""


@render.register
def _(output: Message, store, config) -> str:
    return output.text


@render.register
def _(output: PaperList, store, config) -> str:
    rows: List[tuple] = []
    for index in output:
        if not 0 <= index < len(store):
            continue
        paper = store[index]
        rows.append((
            str(index),
            truncate(paper.title, config.max_title_width),
            format_authors(paper, config.max_author_count),
            paper.venue or "",
            "" if paper.year is None else str(paper.year),
        ))
    if not rows:
        return "No papers."

    widths = [max(len(row[col]) for row in [HEADERS] + rows) for col in range(len(HEADERS))]
    lines = ["  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip()
             for row in [HEADERS] + rows]
    lines.insert(1, "  ".join("-" * w for w in widths))
    return "\n".join(lines)
