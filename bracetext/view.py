"""Brace Text View - Render a token stream as a rich tree."""

from __future__ import annotations

from typing import IO

from rich.markup import escape
from rich.tree import Tree

from bracetext.errors import StructureError
from bracetext.grammar import CLOSE, CLOSE_HEADER, OPEN, OPEN_HEADER, quote_word
from bracetext.token import Tokenizer, TokenKind


def render_tree(source: str | bytes | IO, label: str = "document") -> Tree:
    """Build a tree with one branch per brace group and one leaf per word.

    No target type is involved, so any well-formed stream renders.
    """
    root = Tree(f"[bold]{escape(label)}[/bold]")
    stack = [root]
    header = None

    for token in Tokenizer(source):
        where = f"[dim]{token.line}:{token.column}[/dim]"
        if token.kind is TokenKind.OPEN_HEADER:
            if header is not None or len(stack) > 1 or root.children:
                raise StructureError("table header must start the stream", line=token.line, column=token.column)
            header = stack[-1].add(f"[magenta]{OPEN_HEADER} header {CLOSE_HEADER}[/magenta] {where}")
        elif token.kind is TokenKind.CLOSE_HEADER:
            if header is None:
                raise StructureError("unmatched ']'", line=token.line, column=token.column)
            header = None
        elif token.kind is TokenKind.WORD:
            parent = header if header is not None else stack[-1]
            parent.add(f"[green]{escape(quote_word(token.data))}[/green] {where}")
        elif header is not None:
            raise StructureError(
                f"invalid token {token.describe()} in table header",
                line=token.line, column=token.column,
            )
        elif token.kind is TokenKind.OPEN:
            stack.append(stack[-1].add(f"[cyan]{OPEN} {CLOSE}[/cyan] {where}"))
        else:
            if len(stack) == 1:
                raise StructureError("unmatched '}'", line=token.line, column=token.column)
            stack.pop()

    if header is not None:
        raise StructureError("unterminated table header")
    if len(stack) > 1:
        raise StructureError(f"{len(stack) - 1} unclosed '{{' at end of input")
    return root
