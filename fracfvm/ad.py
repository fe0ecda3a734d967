"""
fracfvm/ad.py
-------------
Forward-mode automatic differentiation on scalar dual numbers.

A Dual carries a value and the gradient of that value with respect to the
local unknowns of one stencil. Every residual evaluation seeds its own
duals, so evaluations never share state and can run in parallel.

Functions below accept plain floats as well, so property correlations can
be written once and evaluated either way.
"""
import numpy as np


class Dual:
    __slots__ = ["val", "grad"]

    def __init__(self, val, grad):
        self.val = float(val)
        self.grad = grad

    def __add__(self, other):
        if isinstance(other, Dual):
            return Dual(self.val + other.val, self.grad + other.grad)
        return Dual(self.val + other, self.grad)

    def __radd__(self, other):
        return self.__add__(other)

    def __sub__(self, other):
        if isinstance(other, Dual):
            return Dual(self.val - other.val, self.grad - other.grad)
        return Dual(self.val - other, self.grad)

    def __rsub__(self, other):
        return Dual(other - self.val, -self.grad)

    def __mul__(self, other):
        if isinstance(other, Dual):
            return Dual(self.val * other.val, other.val * self.grad + self.val * other.grad)
        return Dual(self.val * other, self.grad * other)

    def __rmul__(self, other):
        return self.__mul__(other)

    def __truediv__(self, other):
        if isinstance(other, Dual):
            inv = 1.0 / other.val
            return Dual(self.val * inv, (self.grad - self.val * inv * other.grad) * inv)
        return Dual(self.val / other, self.grad / other)

    def __rtruediv__(self, other):
        inv = 1.0 / self.val
        return Dual(other * inv, -other * inv * inv * self.grad)

    def __pow__(self, other):
        if isinstance(other, Dual):
            val = self.val ** other.val
            return Dual(val, other.val * self.val ** (other.val - 1) * self.grad
                        + val * np.log(self.val) * other.grad)
        if other == 0:
            return Dual(1.0, np.zeros_like(self.grad))
        return Dual(self.val ** other, other * self.val ** (other - 1) * self.grad)

    def __rpow__(self, other):
        val = other ** self.val
        return Dual(val, val * np.log(other) * self.grad)

    def __neg__(self):
        return Dual(-self.val, -self.grad)

    def __pos__(self):
        return self

    def __abs__(self):
        return self if self.val >= 0 else -self

    # Comparisons act on the value only
    def __lt__(self, other): return self.val < value(other)
    def __le__(self, other): return self.val <= value(other)
    def __gt__(self, other): return self.val > value(other)
    def __ge__(self, other): return self.val >= value(other)

    def __eq__(self, other):
        return self.val == value(other)

    def __hash__(self):
        return hash(self.val)

    def __float__(self):
        return self.val

    def __repr__(self):
        return f"Dual(val={self.val:.6g}, grad={self.grad})"


def seed(values):
    """
    One Dual per entry of `values`, entry i having a unit gradient in slot i.

    Args:
        values (array-like): Flattened local unknowns of a stencil.
    """
    values = np.asarray(values, dtype=np.float64).ravel()
    eye = np.eye(len(values))
    return [Dual(v, eye[i]) for i, v in enumerate(values)]


def value(x):
    return x.val if isinstance(x, Dual) else x


def gradient(x, size):
    """ Gradient of x as a dense vector, zeros for constants. """
    if isinstance(x, Dual):
        return x.grad
    return np.zeros(size)


def exp(x):
    if isinstance(x, Dual):
        e = np.exp(x.val)
        return Dual(e, e * x.grad)
    return np.exp(x)


def log(x):
    if isinstance(x, Dual):
        return Dual(np.log(x.val), x.grad / x.val)
    return np.log(x)


def sqrt(x):
    if isinstance(x, Dual):
        r = np.sqrt(x.val)
        return Dual(r, 0.5 / r * x.grad)
    return np.sqrt(x)


def clip(x, lo, hi):
    """ Clips by value; the gradient vanishes where the bound is active. """
    v = value(x)
    if v < lo:
        return lo
    if v > hi:
        return hi
    return x
