"""
Turns raw tlisp source text into s-expression trees.

Parentheses are standalone tokens and everything else is split on
whitespace; there is no operator precedence, no string syntax and no
comments. Each token remembers where it came from so later stages can
point at the offending text.
"""
import re
from typing import List, NamedTuple, Tuple

from tlisp.tlisp_datatypes import Atom, SList, SExpr, TlispSyntaxError, UnexpectedEOF

_TOKEN_RE = re.compile(r'[()]|[^\s()]+')


class Token(NamedTuple):
    text: str
    line: int
    col: int


def tokenize(text: str) -> List[Token]:
    """Split text into paren and atom tokens with 1-based line/col positions."""
    tokens = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        for m in _TOKEN_RE.finditer(line):
            tokens.append(Token(m.group(), lineno, m.start() + 1))
    return tokens


def _loc(tok: Token) -> dict:
    return {'line': tok.line, 'col': tok.col, 'text': tok.text}


class _Reader:
    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def read_form(self) -> SExpr:
        # Open lists as (opening token, items read so far), innermost last.
        stack: List[Tuple[Token, list]] = []
        while True:
            if self.at_end():
                if not stack:
                    raise UnexpectedEOF("unexpected end of input")
                err = UnexpectedEOF("unbalanced parentheses: '(' is never closed")
                err.loc = _loc(stack[-1][0])
                raise err
            tok = self.tokens[self.pos]
            self.pos += 1
            if tok.text == '(':
                stack.append((tok, []))
                continue
            if tok.text == ')':
                if not stack:
                    err = TlispSyntaxError("unexpected ')'")
                    err.loc = _loc(tok)
                    raise err
                open_tok, items = stack.pop()
                form = SList(items)
                form.loc = _loc(open_tok)
            else:
                form = Atom(tok.text)
                form.loc = _loc(tok)
            if not stack:
                return form
            stack[-1][1].append(form)


def read(text: str) -> SExpr:
    """Read exactly one top-level form from text."""
    reader = _Reader(tokenize(text))
    form = reader.read_form()
    if not reader.at_end():
        tok = reader.tokens[reader.pos]
        msg = "unexpected ')'" if tok.text == ')' else "unexpected trailing input after the first form"
        err = TlispSyntaxError(msg)
        err.loc = _loc(tok)
        raise err
    return form


def read_all(text: str) -> List[SExpr]:
    """Read consecutive top-level forms, e.g. the contents of a script file."""
    reader = _Reader(tokenize(text))
    forms = []
    while not reader.at_end():
        forms.append(reader.read_form())
    return forms


def dumps(node: SExpr) -> str:
    """Write an s-expression tree back out as parenthesized text."""
    if isinstance(node, Atom):
        return node.token
    if isinstance(node, SList):
        return "(" + " ".join(dumps(item) for item in node.items) + ")"
    raise TypeError(f"Cannot write {type(node).__name__} as an s-expression")
