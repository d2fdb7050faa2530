"""The tokenizer for the reason command line.

This module converts one raw input line into a chain: a list of segments,
each segment a list of string tokens for one command invocation.  Segments
are separated by unquoted pipe characters and tokens by unquoted whitespace.

Single quotes group characters into one token, so whitespace and pipes
inside them are literal.  A backslash directly before a single quote
produces a literal quote.  A quote that is never closed stays open until the
end of the line.

    ls shadowtutor    => [["ls", "shadowtutor"]]
    ls 'shadow tutor' => [["ls", "shadow tutor"]]
    ls shadow|tutor   => [["ls", "shadow"], ["tutor"]]
    ls 'shadow|tutor' => [["ls", "shadow|tutor"]]
"""

from typing import List
from parsy import string, regex, eof

Segment = List[str]
Chain = List[Segment]

PIPE = "|"
COMMENT_MARKER = "#"

escaped_quote = string("\\'").result("'")
"""A parser for an escaped single quote.  Yields a literal quote and does not open or close a quoted region."""
bare_text = regex(r"(?:[^\s|'\\]|\\(?!'))+")
"""A parser for unquoted characters up to the next whitespace, pipe or quote."""
quoted_text = regex(r"(?:[^'\\]|\\(?!'))+")
"""A parser for characters inside quotes.  Whitespace and pipes are literal here."""
quoted = string("'") >> (escaped_quote | quoted_text).many().concat() << (string("'") | eof)
"""A parser for a quoted region.  An unterminated region runs to the end of the line."""
token = (escaped_quote | quoted | bare_text).at_least(1).concat()
"""A parser for one token.  Adjacent quoted and unquoted pieces join into a single token."""
blank = regex(r"\s+")
"""A parser for a run of unquoted whitespace."""

segment = (blank.optional() >> token.sep_by(blank) << blank.optional()).map(lambda tokens: tokens or [""])
"""A parser for the tokens of one command.  A segment with no tokens holds a single empty placeholder."""
chain = segment.sep_by(string(PIPE), min=1)
"""A parser for a whole line.  Every character of any input is consumed, so parsing cannot fail."""


def tokenize(raw_line: str) -> Chain:
    """Split a raw input line into segments of tokens.

    Args:
        raw_line: The line entered by the user.

    Returns:
        A list with one list of tokens per pipe-separated command.  A line
        with no tokens yields [[""]].
    """
    return chain.parse(raw_line)


def is_empty_segment(tokens: Segment) -> bool:
    """Check whether a segment carries no command at all."""
    return not any(tokens)
