"""JIT placeholder expressions over doubles to x64 machine code.

The same parser that drives `operation_compiler` drives a builder that emits
SSE instructions as it goes; the generated code is exposed as a
python-callable `Evaluator`.
"""
import os
import struct

from peachpy import *
from peachpy.x86_64 import *

from operation_compiler import Evaluator
from parser import Parser, TreeBuilder, placeholder_count

DEBUG = bool(os.getenv("DEBUG", False))


# Peachpy's Constant._parse_float64 is broken for denormals, let's fix it.
def float_bits(f):
    return struct.unpack("<Q", struct.pack("<d", f))[0]


Constant._parse_float64 = float_bits


ASM = {
    "+": ADDSD,
    "-": SUBSD,
    "*": MULSD,
    "/": DIVSD,
}


class JitBuilder:
    """Emit code for an expression; placeholder i is loaded from operands[i].

    Operands can be XMM registers or memory operands such as `[reg]`. Every
    term gets a fresh register, so operands are never clobbered.
    """

    def __init__(self, operands):
        self.operands = iter(operands)

    def placeholder(self):
        tmp = XMMRegister()
        MOVSD(tmp, next(self.operands))
        return tmp

    def constant(self, text):
        tmp = XMMRegister()
        MOVSD(tmp, Constant.float64(float(text)))
        return tmp

    def combine(self, op, lhs, rhs):
        ASM[op.op](lhs, rhs)
        return lhs


def check(source):
    """Raise ParseError for malformed `source` before any code is emitted."""
    Parser(source, TreeBuilder()).parse()


def jit_evaluator(source, name="f_jit"):
    """Return an `Evaluator` running native code for `source`.

    The evaluator takes one float per placeholder, in order of appearance.

    Examples:

    >>> jit_evaluator("￼ + ￼ * ￼")(2, 3, 4)
    14.0
    >>> jit_evaluator("(2 + 3) / 2")()
    2.5
    >>> jit_evaluator("30 * ￼ / 5 - (2 + 5 * 7)")(5)
    -7.0
    >>> jit_evaluator("￼ / 0")(-1)
    -inf
    """
    check(source)
    args = tuple(Argument(double_, f"x{i}") for i in range(placeholder_count(source)))
    with Function(name, args, double_) as asm_function:
        regs = tuple(XMMRegister() for _ in args)
        for reg, arg in zip(regs, args):
            LOAD.ARGUMENT(reg, arg)
        RETURN(Parser(source, JitBuilder(regs)).parse())

    encoded = asm_function.finalize(abi.detect()).encode()
    if DEBUG:
        print(f"{name} {source=} asm:", encoded.format())
    return Evaluator(encoded.load(), len(args))
