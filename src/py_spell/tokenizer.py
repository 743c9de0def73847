"""Shell-like splitting of a single command line.

``Spell.from_string("echo 'Hello World'")`` needs to turn one string into
a program name and its arguments.  The rules are deliberately small —
no variables, no globbing, no operators:

- Whitespace separates tokens.
- A backslash makes the next character literal, inside quotes too.
- ``'`` or ``"`` stops whitespace from splitting until the *same* quote
  character appears again.  The quotes themselves are dropped, so
  ``a'b c'd`` is the single token ``ab cd``.  Both quote characters mean
  the same thing and they do not nest.
- ``''`` produces an empty token.

Lenient edges: a trailing lone backslash is kept as a backslash, and an
unterminated quote simply runs to the end of the line.
"""

from __future__ import annotations

QUOTES = frozenset("'\"")


def split_command_line(line: str) -> list[str]:
    """Split *line* into tokens.

    Args:
        line: The command line, e.g. ``echo 'Hello World'``.

    Returns:
        The tokens in order; empty if *line* holds only whitespace.

    """
    tokens: list[str] = []
    current: list[str] = []
    # A token exists once any character or quote was seen, so '' counts.
    started = False
    quote: str | None = None
    chars = iter(line)
    for ch in chars:
        if ch == "\\":
            current.append(next(chars, "\\"))
            started = True
        elif quote is not None:
            if ch == quote:
                quote = None
            else:
                current.append(ch)
        elif ch in QUOTES:
            quote = ch
            started = True
        elif ch.isspace():
            if started:
                tokens.append("".join(current))
                current.clear()
                started = False
        else:
            current.append(ch)
            started = True
    if started:
        tokens.append("".join(current))
    return tokens
