"""
Convolution engine for products of spectral derivatives.

Every operation forms the pointwise real-space product of first or second
derivatives of potential grids and accumulates its Fourier transform into a
destination grid through a Combinator. Two strategies are available:

* NaiveConvolver multiplies at the base resolution; the product's modes
  above the base Nyquist frequency alias back onto the retained modes.
* OrszagConvolver zero-pads every factor to 3N/2 per axis, multiplies on
  the padded lattice and truncates the product back to N. Pair products
  are exact on the retained modes |n| < N/2.
"""
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Sequence, Tuple
import jax.numpy as jnp

from ..core.exceptions import GridError, ShapeMismatchError
from ..core.fft_ops import (
    rfft_with_normalization,
    irfft_with_normalization,
    extend_spectrum,
    reduce_spectrum,
)
from .spectral_grid import SpectralGrid, check_axis

logger = logging.getLogger(__name__)


class Combinator(Enum):
    """How a convolution result is written into its destination."""
    ASSIGN = 'assign'
    ADD = 'add'
    SUBTRACT = 'subtract'
    ADD_TWICE = 'add_twice'
    SUBTRACT_TWICE = 'subtract_twice'

    def apply(self, term, existing):
        if self is Combinator.ASSIGN:
            return term
        if self is Combinator.ADD:
            return existing + term
        if self is Combinator.SUBTRACT:
            return existing - term
        if self is Combinator.ADD_TWICE:
            return existing + 2 * term
        return existing - 2 * term


def _check_pair(pair) -> Tuple[int, int]:
    if not isinstance(pair, (tuple, list)) or len(pair) != 2:
        raise GridError(f"A Hessian selector needs two axis indices, got {pair!r}")
    return check_axis(pair[0]), check_axis(pair[1])


class Convolver(ABC):
    """Base class of the convolution strategies for grids of one lattice."""

    def __init__(self, N: int, boxlen: float):
        self.N = int(N)
        self.boxlen = float(boxlen)

    def _check_operand(self, grid: SpectralGrid):
        if grid.shape != (self.N, self.N, self.N) or grid.boxlen != self.boxlen:
            raise ShapeMismatchError(
                f"Grid {grid.shape} with L={grid.boxlen} does not match the convolver "
                f"lattice {(self.N,) * 3} with L={self.boxlen}"
            )

    @abstractmethod
    def _product(self, factors: Sequence[jnp.ndarray]) -> jnp.ndarray:
        """Half-spectrum coefficients of the pointwise product of real fields given by their coefficients."""

    def _accumulate(self, factors, dest: SpectralGrid, op: Combinator):
        self._check_operand(dest)
        existing = dest.fourier
        term = self._product(factors)
        dest.fourier = Combinator(op).apply(term, existing)
        return dest

    def convolve_hessian_pair(self, a: SpectralGrid, ij_a, b: SpectralGrid, ij_b,
                              dest: SpectralGrid, op: Combinator = Combinator.ASSIGN):
        """dest <- op(d_ij a * d_kl b, dest)"""
        for g in (a, b):
            self._check_operand(g)
        factors = [a.hessian_coefficients(*_check_pair(ij_a)),
                   b.hessian_coefficients(*_check_pair(ij_b))]
        return self._accumulate(factors, dest, op)

    def convolve_hessian_triple(self, a: SpectralGrid, ij_a, b: SpectralGrid, ij_b,
                                c: SpectralGrid, ij_c, dest: SpectralGrid,
                                op: Combinator = Combinator.ASSIGN):
        """dest <- op(d_ij a * d_kl b * d_mn c, dest)"""
        for g in (a, b, c):
            self._check_operand(g)
        factors = [a.hessian_coefficients(*_check_pair(ij_a)),
                   b.hessian_coefficients(*_check_pair(ij_b)),
                   c.hessian_coefficients(*_check_pair(ij_c))]
        return self._accumulate(factors, dest, op)

    def convolve_sum_of_hessians(self, a: SpectralGrid, ij_a, b: SpectralGrid, ij_b1, ij_b2,
                                 dest: SpectralGrid, op: Combinator = Combinator.ASSIGN):
        """dest <- op(d_ij a * (d_kl b + d_mn b), dest), sharing one padded product."""
        for g in (a, b):
            self._check_operand(g)
        factors = [a.hessian_coefficients(*_check_pair(ij_a)),
                   b.hessian_coefficients(*_check_pair(ij_b1)) + b.hessian_coefficients(*_check_pair(ij_b2))]
        return self._accumulate(factors, dest, op)

    def convolve_difference_of_hessians(self, a: SpectralGrid, ij_a, b: SpectralGrid, ij_b1, ij_b2,
                                        dest: SpectralGrid, op: Combinator = Combinator.ASSIGN):
        """dest <- op(d_ij a * (d_kl b - d_mn b), dest)"""
        for g in (a, b):
            self._check_operand(g)
        factors = [a.hessian_coefficients(*_check_pair(ij_a)),
                   b.hessian_coefficients(*_check_pair(ij_b1)) - b.hessian_coefficients(*_check_pair(ij_b2))]
        return self._accumulate(factors, dest, op)

    def convolve_gradient_and_hessian(self, a: SpectralGrid, i_a, b: SpectralGrid, ij_b,
                                      dest: SpectralGrid, op: Combinator = Combinator.ASSIGN):
        """dest <- op(d_i a * d_kl b, dest)"""
        for g in (a, b):
            self._check_operand(g)
        if isinstance(i_a, (tuple, list)):
            if len(i_a) != 1:
                raise GridError(f"A gradient selector needs one axis index, got {i_a!r}")
            i_a = i_a[0]
        factors = [a.gradient_coefficients(check_axis(i_a)),
                   b.hessian_coefficients(*_check_pair(ij_b))]
        return self._accumulate(factors, dest, op)


class NaiveConvolver(Convolver):
    """Products evaluated directly at the base resolution."""

    def _product(self, factors):
        shape = (self.N, self.N, self.N)
        prod = irfft_with_normalization(factors[0], shape=shape)
        for f in factors[1:]:
            prod = prod * irfft_with_normalization(f, shape=shape)
        return rfft_with_normalization(prod)


class OrszagConvolver(Convolver):
    """Products evaluated on a 3/2 zero-padded lattice and truncated back."""

    def __init__(self, N: int, boxlen: float):
        super().__init__(N, boxlen)
        if self.N % 2 != 0:
            raise GridError(f"3/2-rule dealiasing needs an even grid size, got {self.N}")
        self.M = 3 * self.N // 2
        logger.debug(f"Dealiased convolutions on a {self.M}^3 padded lattice")

    def _product(self, factors):
        shape = (self.M, self.M, self.M)
        prod = irfft_with_normalization(extend_spectrum(factors[0], self.M), shape=shape)
        for f in factors[1:]:
            prod = prod * irfft_with_normalization(extend_spectrum(f, self.M), shape=shape)
        # forward normalization keeps coefficients resolution independent
        return reduce_spectrum(rfft_with_normalization(prod), self.N)


def make_convolver(N: int, boxlen: float, dealiased: bool = True) -> Convolver:
    """Return the dealiased or the naive convolution strategy."""
    if dealiased:
        return OrszagConvolver(N, boxlen)
    return NaiveConvolver(N, boxlen)
