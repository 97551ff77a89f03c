"""Tokenizer and precedence-climbing parser for placeholder expressions.

The parser never builds a tree; it hands every term and operator to a
*builder* as soon as it has seen it, and returns whatever the builder
returned for the whole expression. A builder provides:

    placeholder()          -> value for the next placeholder (left to right)
    constant(text)         -> value for a numeric literal
    combine(op, lhs, rhs)  -> value for `lhs op rhs`
"""
import math
import re
from typing import Callable, Literal, NamedTuple

import operations

PLACEHOLDER = "\ufffc"  # OBJECT REPLACEMENT CHARACTER
EOF = "<eof>"  # never produced by lex(); "<" always lexes on its own.


class ParseError(ValueError):
    pass


def canonicalize_num(num):
    return repr(integer if (integer := int(num)) == num else num)


def canonical_literal(text):
    """Literal text in a canonical spelling, for display and comparison.

    >>> canonical_literal("007"), canonical_literal("2.50"), canonical_literal("1e999")
    ('7', '2.5', '1e999')
    """
    if text.isascii() and text.isdecimal():
        return str(int(text))
    # Overflowing literals (1e999) keep their spelling.
    return canonicalize_num(num) if math.isfinite(num := float(text)) else text


NUMBER = r"(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
NUMBER_REX = re.compile(NUMBER)

TOKEN_REX = re.compile(
    rf"""
      \s+ | //[^\n]*
    | (?P<num>{NUMBER})
    | (?P<word>[^\W\d]\w*)
    | (?P<char>.)
    """,
    re.VERBOSE | re.DOTALL,
)


def lex(s):
    """Yield the tokens of `s`, followed by EOF.

    Numeric literals are yielded as written.

    >>> list(lex("￼ * 2.0 // twice"))
    ['￼', '*', '2.0', '<eof>']
    """
    for m in TOKEN_REX.finditer(s):
        if tok := m["num"] or m["word"] or m["char"]:
            yield tok
    yield EOF


def placeholder_count(s):
    return sum(tok == PLACEHOLDER for tok in lex(s))


def is_number(tok):
    # Only ASCII literals: words such as "²" are not numbers.
    return NUMBER_REX.fullmatch(tok) is not None


class Op(NamedTuple):
    op: str
    prec: int
    assoc: Literal["l", "r"]  # left-associative, right-associative
    fun: Callable

    def __call__(self, *args):
        return self.fun(*args)

    def __repr__(self):
        return f"op({self.op!r:})"

    def left_first(self, other):
        return self.prec > other.prec or self.prec == other.prec and other.assoc == "l"


OPS = {
    o.op: o
    for o in [
        Op("+", 100, "l", operations.add),
        Op("-", 100, "l", operations.subtract),
        Op("*", 200, "l", operations.multiply),
        Op("/", 200, "l", operations.divide),
    ]
}


class Parser:
    def __init__(self, source, builder, ops=OPS):
        self.tokens = lex(source)
        self.builder = builder
        self.ops = ops
        self.token = None
        self.next()

    def next(self):
        if self.token != EOF:
            self.token = next(self.tokens)

    def unexpected(self):
        what = "end of input" if self.token == EOF else repr(self.token)
        return ParseError(f"unexpected token: {what}")

    def operator(self):
        return self.ops.get(self.token)

    def parse(self):
        ans = self.expression(self.term(), 0)
        if self.token != EOF:
            raise self.unexpected()
        return ans

    def term(self):
        tok = self.token
        if tok == PLACEHOLDER:
            self.next()
            return self.builder.placeholder()
        if tok != EOF and is_number(tok):
            self.next()
            return self.builder.constant(tok)
        if tok == "(":
            self.next()
            ans = self.expression(self.term(), 0)
            if self.token != ")":
                raise self.unexpected()
            self.next()
            return ans
        raise self.unexpected()

    def expression(self, lhs, min_prec):
        o = self.operator()
        while o is not None and o.prec >= min_prec:
            self.next()
            rhs = self.term()
            following = self.operator()
            # Fold operators that bind tighter than `o` into its right operand.
            while following is not None and not o.left_first(following):
                rhs = self.expression(rhs, following.prec)
                following = self.operator()
            lhs = self.builder.combine(o, lhs, rhs)
            o = following
        return lhs


class TreeBuilder:
    """Build `(op, lhs, rhs)` tuples; placeholders become `PLACEHOLDER`.

    Only used for inspecting how an expression groups.

    >>> to_ast("￼ - 1 - 2 * ￼")
    (op('-'), (op('-'), '￼', '1'), (op('*'), '2', '￼'))
    """

    def placeholder(self):
        return PLACEHOLDER

    def constant(self, text):
        return canonical_literal(text)

    def combine(self, op, lhs, rhs):
        return (op, lhs, rhs)


def to_ast(s):
    return Parser(s, TreeBuilder()).parse()
