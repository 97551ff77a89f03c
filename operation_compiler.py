"""Compile placeholder expressions into composed Python functions.

Each placeholder (U+FFFC) in the source stands for one operand; the compiled
`Evaluator` takes the operands in the order their placeholders appear.

>>> f = compile_expression("￼ + ￼ * ￼")
>>> f(2, 3, 4)
14
>>> compile_expression("(￼ + ￼) * ￼")(2, 3, 4)
20
>>> evaluate("{} - {} - 1", 10, 4)
5
"""
import functools
import logging
import string
from typing import Callable, NamedTuple

from parser import PLACEHOLDER, ParseError, Parser

logger = logging.getLogger(__name__)

__all__ = [
    "PLACEHOLDER",
    "ParseError",
    "Evaluator",
    "ClosureBuilder",
    "OperationCompiler",
    "compile_expression",
    "compile_fragments",
    "interpolate",
    "evaluate",
    "number",
]


def number(text):
    """Default conversion of numeric literals: int if integral, else float."""
    return int(text) if text.isascii() and text.isdecimal() else float(text)


class Evaluator(NamedTuple):
    fun: Callable
    arity: int

    def __call__(self, *operands):
        if len(operands) != self.arity:
            raise TypeError(
                f"expression takes {self.arity} operand(s), got {len(operands)}"
            )
        return self.fun(*operands)


def _identity(x):
    return x


class Run(NamedTuple):
    """`first op1 rhs1 op2 rhs2 ...`, applied left to right.

    Combining onto a run extends it rather than wrapping it, so evaluation
    only nests as deep as parentheses and tighter-binding right operands do.
    """

    first: Callable
    split: int
    steps: tuple  # (fun, rhs, rhs arity) triples

    def __call__(self, *operands):
        acc = self.first(*operands[: self.split])
        start = self.split
        for fun, rhs, arity in self.steps:
            end = start + arity
            acc = fun(acc, rhs(*operands[start:end]))
            start = end
        return acc


class ClosureBuilder:
    def __init__(self, constant=number):
        self.convert = constant

    def placeholder(self):
        return Evaluator(_identity, 1)

    def constant(self, text):
        value = self.convert(text)
        return Evaluator(lambda: value, 0)

    def combine(self, op, lhs, rhs):
        step = (op.fun, rhs.fun, rhs.arity)
        if isinstance(lhs.fun, Run):
            run = lhs.fun._replace(steps=lhs.fun.steps + (step,))
        else:
            run = Run(lhs.fun, lhs.arity, (step,))
        return Evaluator(run, lhs.arity + rhs.arity)


class OperationCompiler:
    """One-shot compiler for a single source string."""

    def __init__(self, source, constant=number):
        self.source = source
        self.constant = constant
        self.consumed = False

    def compile(self):
        if self.consumed:
            raise RuntimeError("OperationCompiler.compile() can only be called once")
        self.consumed = True
        evaluator = Parser(self.source, ClosureBuilder(self.constant)).parse()
        logger.debug("compiled %r (%d operands)", self.source, evaluator.arity)
        return evaluator


def compile_expression(source, constant=number):
    """Return an `Evaluator` for `source`; raise `ParseError` if malformed."""
    return OperationCompiler(source, constant).compile()


@functools.lru_cache(maxsize=256)
def compile_fragments(fragments):
    return compile_expression(PLACEHOLDER.join(fragments))


def interpolate(fragments, *values):
    """Evaluate the expression formed by `fragments` with `values` between them.

    >>> interpolate(("", " * (", " + 1)"), 3, 4)
    15
    """
    fragments = tuple(fragments)
    if len(fragments) != len(values) + 1:
        raise ValueError(
            f"{len(fragments)} fragments need {len(fragments) - 1} values, "
            f"got {len(values)}"
        )
    return compile_fragments(fragments)(*values)


def template_fragments(template):
    fragments = [""]
    for literal, field, spec, conversion in string.Formatter().parse(template):
        fragments[-1] += literal
        if field is None:
            continue
        if field or spec or conversion:
            raise ValueError(f"only bare {{}} fields are allowed, got {field!r}")
        fragments.append("")
    return tuple(fragments)


def evaluate(template, *values):
    """Evaluate a `str.format`-style template whose `{}` fields are operands."""
    return interpolate(template_fragments(template), *values)
