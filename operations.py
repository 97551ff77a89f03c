"""The operand capability set used by compiled expressions.

A value can be an operand if it has `add`, `subtract`, `multiply` and
`divide` methods (see `Operations`). Values without them, such as ints,
floats, `Fraction`s or numpy arrays, fall back to the arithmetic operators.

>>> multiply(Complex(0.0, 1.0), Complex(0.0, 1.0))
Complex(real=-1.0, imaginary=0.0)
>>> divide(7, 2)
3.5
>>> 1 - Complex(0.0, 2.0)
Complex(real=1.0, imaginary=-2.0)
"""
from dataclasses import dataclass
import numbers
import operator
from typing import Protocol, runtime_checkable


@runtime_checkable
class Operations(Protocol):
    def add(self, other): ...

    def subtract(self, other): ...

    def multiply(self, other): ...

    def divide(self, other): ...


def _dispatch(name, fallback):
    def fun(x, y):
        method = getattr(x, name, None)
        return method(y) if method is not None else fallback(x, y)

    fun.__name__ = fun.__qualname__ = name
    return fun


add = _dispatch("add", operator.add)
subtract = _dispatch("subtract", operator.sub)
multiply = _dispatch("multiply", operator.mul)
divide = _dispatch("divide", operator.truediv)


def _lift(y):
    return Complex(float(y), 0.0) if isinstance(y, numbers.Real) else y


def _reflected(name):
    # `2 * z` lands here once int.__mul__ gives up.
    def method(self, x):
        if not isinstance(x, numbers.Real):
            return NotImplemented
        return getattr(_lift(x), name)(self)

    return method


@dataclass(frozen=True)
class Complex:
    real: float
    imaginary: float

    def __str__(self):
        sign = "" if self.imaginary < 0.0 else "+"
        return f"({self.real}{sign}{self.imaginary}i)"

    def add(self, y):
        y = _lift(y)
        return Complex(self.real + y.real, self.imaginary + y.imaginary)

    def subtract(self, y):
        y = _lift(y)
        return Complex(self.real - y.real, self.imaginary - y.imaginary)

    def multiply(self, y):
        y = _lift(y)
        return Complex(
            self.real * y.real - self.imaginary * y.imaginary,
            self.real * y.imaginary + self.imaginary * y.real,
        )

    def reciprocal(self):
        scale = self.real * self.real + self.imaginary * self.imaginary
        if scale == 0.0:
            raise ZeroDivisionError("complex division by zero")
        return Complex(self.real / scale, -self.imaginary / scale)

    def divide(self, y):
        return self.multiply(_lift(y).reciprocal())

    __add__, __sub__, __mul__, __truediv__ = add, subtract, multiply, divide
    __radd__ = _reflected("add")
    __rsub__ = _reflected("subtract")
    __rmul__ = _reflected("multiply")
    __rtruediv__ = _reflected("divide")
