"""JIT placeholder expressions into reductions over numpy arrays."""
from contextlib import contextmanager
import ctypes

import numpy as np

from operation_jit import *
from parser import placeholder_count


# Loop emitter: the instructions emitted inside the `with` block form the body.
@contextmanager
def per_element(count):
    """Run the body `count` times (`count` is a GP register and is clobbered)."""
    loop = Loop()
    TEST(count, count)
    JZ(loop.end)
    with loop:
        yield
        SUB(count, 1)
        JNZ(loop.begin)


def float64_buffer(a):
    """Return `(a, size, data pointer)` with `a` as a contiguous float64 array.

    The returned array must stay referenced while the pointer is in use.
    """
    a = np.ascontiguousarray(a, dtype=np.float64)
    return a, a.size, a.ctypes.data_as(ctypes.POINTER(ctypes.c_double))


def array_reducer(name, source):
    """JIT a loop folding an array with `source`.

    The first placeholder of `source` is the accumulator, the second the
    current element. The result takes `(init, n, data_ptr)`.
    """
    if (count := placeholder_count(source)) != 2:
        raise ValueError(f"reducer needs exactly 2 placeholders, got {count}")
    check(source)
    n = Argument(int64_t)
    a = Argument(ptr(const_double_))
    init = Argument(double_)
    with Function(name, (init, n, a), double_, debug_level=10 * DEBUG) as asm_function:
        cnt = GeneralPurposeRegister64()
        reg_a = GeneralPurposeRegister64()
        reg_acc = XMMRegister()
        LOAD.ARGUMENT(cnt, n)
        LOAD.ARGUMENT(reg_a, a)
        LOAD.ARGUMENT(reg_acc, init)
        with per_element(cnt):
            last_reg = Parser(source, JitBuilder([reg_acc, [reg_a]])).parse()
            MOVSD(reg_acc, last_reg)
            ADD(reg_a, 8)
        RETURN(reg_acc)
    encoded = asm_function.finalize(abi.detect()).encode()
    if DEBUG:
        print(f"array_reducer {name=} {source=} asm", encoded.format())
    return encoded.load()


def make_array_aggregator(name, source, initial):
    """Return `f(a, initial=initial)` folding the float array `a` with `source`.

    >>> asum = make_array_aggregator("Asum", "￼ + ￼", 0.0)
    >>> asum(np.array([1.0, 2.0, 3.0]))
    6.0
    """
    raw_aggregator = array_reducer(name, source)

    def f(a, initial=initial):
        a, size, data = float64_buffer(a)
        return raw_aggregator(initial, size, data)

    f.__name__ = name
    return f
