"""Commands that list, show, add, tag and remove papers.

The filtering commands (ls, cat, rm) share one argument grammar:

    <command> [title-regex] [by author-regex] [at venue-regex] [in year]

Patterns are case-insensitive and match anywhere in the field.  When a
command follows another in a chain and receives a paper list, it filters
within that list instead of the whole store.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Sequence
import logging
import re

from reason.command.core import (
    AbstractCommand, CommandInput, CommandUsageError, Message, PaperList
)
from reason.command.registry import register_command
from reason.data.store import Paper, PaperStore

logger = logging.getLogger(__name__)

TITLE = "title"
KEYWORDS = {"by": "author", "at": "venue", "in": "year"}


def split_keyword_args(command: str, params: Sequence[str]) -> Dict[str, str]:
    """Group argument tokens by the keyword that precedes them.

    Tokens before the first keyword form the title.  Consecutive tokens
    belonging to the same field are joined with a space.

    Example:
        split_keyword_args("ls", ["shadow", "by", "Chung", "in", "2020"])
        # {"title": "shadow", "author": "Chung", "year": "2020"}

    Raises:
        CommandUsageError: If a keyword is repeated or has no value.
    """
    fields: Dict[str, List[str]] = {}
    current = TITLE
    for token in params:
        if token in KEYWORDS:
            current = KEYWORDS[token]
            if current in fields:
                raise CommandUsageError(f"'{command}': '{token}' given more than once.")
            fields[current] = []
        else:
            fields.setdefault(current, []).append(token)

    for name, words in fields.items():
        if not words:
            keyword = next(k for k, v in KEYWORDS.items() if v == name)
            raise CommandUsageError(f"'{command}': '{keyword}' needs a value.")
    return {name: " ".join(words) for name, words in fields.items()}


def parse_year(command: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise CommandUsageError(f"'{command}': '{value}' is not a year.") from None


def compile_pattern(command: str, pattern: str) -> Pattern:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise CommandUsageError(f"'{command}': invalid pattern '{pattern}': {e}") from None


@dataclass
class PaperFilter:
    """Conditions a paper must meet.  Unset conditions match everything."""

    title: Optional[Pattern] = None
    author: Optional[Pattern] = None
    venue: Optional[Pattern] = None
    year: Optional[int] = None

    @classmethod
    def from_args(cls, command: str, params: Sequence[str]) -> "PaperFilter":
        fields = split_keyword_args(command, params)
        return cls(
            title=compile_pattern(command, fields[TITLE]) if TITLE in fields else None,
            author=compile_pattern(command, fields["author"]) if "author" in fields else None,
            venue=compile_pattern(command, fields["venue"]) if "venue" in fields else None,
            year=parse_year(command, fields["year"]) if "year" in fields else None,
        )

    def matches(self, paper: Paper) -> bool:
        if self.title is not None and not self.title.search(paper.title):
            return False
        if self.author is not None and not any(self.author.search(a) for a in paper.authors):
            return False
        if self.venue is not None and not (paper.venue and self.venue.search(paper.venue)):
            return False
        if self.year is not None and paper.year != self.year:
            return False
        return True


def candidates(input: CommandInput, store: PaperStore) -> List[int]:
    """The indices a command works on: the prior paper list, or the whole store."""
    if isinstance(input.prior, PaperList):
        return [i for i in input.prior if 0 <= i < len(store)]
    return store.indices()


def select(input: CommandInput, store: PaperStore) -> List[int]:
    paper_filter = PaperFilter.from_args(input.name, input.params)
    return [i for i in candidates(input, store) if paper_filter.matches(store[i])]


def describe_paper(index: int, paper: Paper) -> str:
    """Multi-line description of a paper, as shown by cat."""
    lines = [f"[{index}] {paper.title}"]
    if paper.authors:
        lines.append(f"    by    {', '.join(paper.authors)}")
    if paper.venue:
        lines.append(f"    at    {paper.venue}")
    if paper.year is not None:
        lines.append(f"    in    {paper.year}")
    if paper.filepath:
        lines.append(f"    file  {paper.filepath}")
    if paper.tags:
        lines.append(f"    tags  {', '.join(paper.tags)}")
    return "\n".join(lines)


@register_command("ls")
class ListPapers(AbstractCommand):
    """List papers: ls [title] [by author] [at venue] [in year]"""

    accepts = (PaperList,)

    def execute(self, input, store, config):
        return PaperList(select(input, store))


@register_command("cat")
class ShowPapers(AbstractCommand):
    """Show every detail of papers: cat [title] [by author] [at venue] [in year]"""

    accepts = (PaperList,)

    def execute(self, input, store, config):
        selected = select(input, store)
        if not selected:
            return Message("No papers.")
        return Message("\n\n".join(describe_paper(i, store[i]) for i in selected))


@register_command("rm")
class RemovePapers(AbstractCommand):
    """Remove papers: rm [title] [by author] [at venue] [in year]"""

    accepts = (PaperList,)

    def execute(self, input, store, config):
        if input.is_first and not input.params:
            raise CommandUsageError("'rm' needs a filter or a paper list. Use 'ls | rm' to remove everything.")
        removed = store.remove(select(input, store))
        logger.info(f"Removed {len(removed)} papers")
        return Message(f"Removed {len(removed)} paper(s).")


@register_command("touch")
class AddPaper(AbstractCommand):
    """Add a paper: touch <title> [by author1,author2] [at venue] [in year]"""

    accepts = ()

    def execute(self, input, store, config):
        fields = split_keyword_args(input.name, input.params)
        if not fields.get(TITLE, "").strip():
            raise CommandUsageError("'touch' needs a title.")
        authors = [a.strip() for a in fields.get("author", "").split(",") if a.strip()]
        paper = Paper(
            title=fields[TITLE],
            authors=authors,
            venue=fields.get("venue"),
            year=parse_year(input.name, fields["year"]) if "year" in fields else None,
        )
        index = store.add(paper)
        logger.info(f"Added paper {index}: {paper.title}")
        return PaperList([index])


@register_command("tag")
class TagPapers(AbstractCommand):
    """Add tags to papers: ls ... | tag <tag> [<tag> ...]"""

    accepts = (PaperList,)

    def execute(self, input, store, config):
        if not input.params:
            raise CommandUsageError("'tag' needs at least one tag.")
        targets = candidates(input, store)
        for index in targets:
            paper = store[index]
            new_tags = [t for t in input.params if t not in paper.tags]
            if new_tags:
                store.replace(index, paper.model_copy(update={"tags": paper.tags + new_tags}))
        return PaperList(targets)
