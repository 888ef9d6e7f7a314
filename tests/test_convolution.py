#!/usr/bin/env python3
"""
Unit tests for the convolution engine.

Uses L = 2 pi so that mode n has wavenumber n.
"""

import math
import unittest
import numpy as np
import jax.numpy as jnp

from lptkit.grid import (
    SpectralGrid,
    Combinator,
    NaiveConvolver,
    OrszagConvolver,
    make_convolver,
)
from lptkit.core.exceptions import GridError, RepresentationError, ShapeMismatchError
from lptkit.services import NoiseGenerator

N = 8
L = 2 * math.pi


def fourier_grid(fn, n=N):
    grid = SpectralGrid(n, L)
    grid.apply_function_of_position(lambda v, x, y, z: fn(x, y, z))
    return grid.transform_to_fourier()


def empty_dest(n=N):
    return SpectralGrid(n, L).transform_to_fourier(do_transform=False)


def band_limited_noise(seed, kmax):
    """White noise restricted to |n_i| < kmax along every axis."""
    grid = NoiseGenerator(seed=seed, nsub=1000).fill(SpectralGrid(N, L))
    grid.transform_to_fourier()
    grid.apply_function_of_coefficient(
        lambda v, kx, ky, kz: jnp.where((jnp.abs(kx) < kmax) & (jnp.abs(ky) < kmax) & (jnp.abs(kz) < kmax), v, 0.0)
    )
    return grid


def hessian_spectrum(grid, i, j):
    """Full-spectrum numpy coefficients of d_ij of a Fourier-space grid."""
    field = np.asarray(SpectralGrid(N, L).copy_from(grid).transform_to_real().real, dtype=np.float64)
    n = np.fft.fftfreq(N, d=1.0 / N)
    k = (n[:, None, None], n[None, :, None], n[None, None, :])
    return -k[i] * k[j] * np.fft.fftn(field, norm='forward')


def refined_product(fa, fb, refine=4):
    """
    Half-spectrum of the product of two fields without Nyquist content,
    formed on a refine*N lattice and truncated to the modes |n| < N/2.
    """
    M = refine * N
    n = np.fft.fftfreq(N, d=1.0 / N).astype(int)
    kept = np.where(np.abs(n) < N // 2)[0]
    refined = n[kept] % M

    def to_real(f):
        padded = np.zeros((M, M, M), dtype=complex)
        padded[np.ix_(refined, refined, refined)] = f[np.ix_(kept, kept, kept)]
        return np.fft.ifftn(padded, norm='forward').real

    product = np.fft.fftn(to_real(fa) * to_real(fb), norm='forward')
    out = np.zeros((N, N, N), dtype=complex)
    out[np.ix_(kept, kept, kept)] = product[np.ix_(refined, refined, refined)]
    return out[:, :, :N // 2 + 1]


class TestCombinator(unittest.TestCase):

    def test_apply(self):
        self.assertEqual(Combinator.ASSIGN.apply(2.0, 5.0), 2.0)
        self.assertEqual(Combinator.ADD.apply(2.0, 5.0), 7.0)
        self.assertEqual(Combinator.SUBTRACT.apply(2.0, 5.0), 3.0)
        self.assertEqual(Combinator.ADD_TWICE.apply(2.0, 5.0), 9.0)
        self.assertEqual(Combinator.SUBTRACT_TWICE.apply(2.0, 5.0), 1.0)

    def test_accumulation_into_destination(self):
        conv = NaiveConvolver(N, L)
        a = fourier_grid(lambda x, y, z: jnp.cos(x))
        dest = empty_dest()
        conv.convolve_hessian_pair(a, (0, 0), a, (0, 0), dest, Combinator.ASSIGN)
        single = np.asarray(dest.fourier)
        conv.convolve_hessian_pair(a, (0, 0), a, (0, 0), dest, Combinator.ADD_TWICE)
        np.testing.assert_allclose(np.asarray(dest.fourier), 3 * single, atol=1e-6)
        conv.convolve_hessian_pair(a, (0, 0), a, (0, 0), dest, Combinator.SUBTRACT)
        np.testing.assert_allclose(np.asarray(dest.fourier), 2 * single, atol=1e-6)
        conv.convolve_hessian_pair(a, (0, 0), a, (0, 0), dest, Combinator.SUBTRACT_TWICE)
        np.testing.assert_allclose(np.asarray(dest.fourier), 0.0, atol=1e-6)


class TestProducts(unittest.TestCase):
    """Products of low modes are exact for both strategies."""

    def setUp(self):
        self.convolvers = [NaiveConvolver(N, L), OrszagConvolver(N, L)]

    def assert_real_equal(self, dest, expected):
        out = SpectralGrid(N, L).copy_from(dest).transform_to_real()
        expected = np.broadcast_to(np.asarray(expected), (N, N, N))
        np.testing.assert_allclose(np.asarray(out.real), expected, atol=1e-5)

    def test_hessian_pair(self):
        a = fourier_grid(lambda x, y, z: jnp.cos(x))
        b = fourier_grid(lambda x, y, z: jnp.sin(y))
        x, y, _ = a.positions()
        for conv in self.convolvers:
            dest = empty_dest()
            conv.convolve_hessian_pair(a, (0, 0), b, (1, 1), dest)
            self.assert_real_equal(dest, jnp.cos(x) * jnp.sin(y))

    def test_hessian_triple(self):
        a = fourier_grid(lambda x, y, z: jnp.cos(x) + jnp.cos(y) + jnp.cos(z))
        x, y, z = a.positions()
        for conv in self.convolvers:
            dest = empty_dest()
            conv.convolve_hessian_triple(a, (0, 0), a, (1, 1), a, (2, 2), dest)
            self.assert_real_equal(dest, -jnp.cos(x) * jnp.cos(y) * jnp.cos(z))

    def test_sum_and_difference_of_hessians(self):
        a = fourier_grid(lambda x, y, z: jnp.cos(z))
        b = fourier_grid(lambda x, y, z: jnp.cos(x) + 2 * jnp.cos(y))
        x, y, z = a.positions()
        for conv in self.convolvers:
            dest = empty_dest()
            conv.convolve_sum_of_hessians(a, (2, 2), b, (0, 0), (1, 1), dest)
            self.assert_real_equal(dest, jnp.cos(z) * (jnp.cos(x) + 2 * jnp.cos(y)))
            conv.convolve_difference_of_hessians(a, (2, 2), b, (0, 0), (1, 1), dest)
            self.assert_real_equal(dest, jnp.cos(z) * (jnp.cos(x) - 2 * jnp.cos(y)))

    def test_gradient_and_hessian(self):
        a = fourier_grid(lambda x, y, z: jnp.sin(x))
        b = fourier_grid(lambda x, y, z: jnp.sin(y) * jnp.sin(z))
        x, y, z = a.positions()
        for conv in self.convolvers:
            dest = empty_dest()
            conv.convolve_gradient_and_hessian(a, 0, b, (1, 2), dest)
            self.assert_real_equal(dest, jnp.cos(x) * jnp.cos(y) * jnp.cos(z))
            conv.convolve_gradient_and_hessian(a, (0,), b, (1, 2), dest, Combinator.SUBTRACT)
            self.assert_real_equal(dest, 0.0)

    def test_strategies_agree_without_aliasing(self):
        a = band_limited_noise(1, N // 4)
        b = band_limited_noise(2, N // 4)
        dest_naive, dest_dealiased = empty_dest(), empty_dest()
        NaiveConvolver(N, L).convolve_hessian_pair(a, (0, 1), b, (2, 2), dest_naive)
        OrszagConvolver(N, L).convolve_hessian_pair(a, (0, 1), b, (2, 2), dest_dealiased)
        scale = float(jnp.abs(dest_naive.fourier).max())
        self.assertGreater(scale, 0.0)
        np.testing.assert_allclose(np.asarray(dest_dealiased.fourier),
                                   np.asarray(dest_naive.fourier), atol=1e-5 * scale)


class TestDealiasing(unittest.TestCase):
    """cos(3x) cos(2x) = (cos(5x) + cos(x)) / 2; on N=8 mode 5 aliases onto mode 3."""

    def setUp(self):
        self.a = fourier_grid(lambda x, y, z: jnp.cos(3 * x))
        self.b = fourier_grid(lambda x, y, z: jnp.cos(2 * x))
        # d_xx a * d_xx b = 36 cos(3x) cos(2x)
        self.amplitude = 36.0

    def test_naive_product_aliases(self):
        dest = empty_dest()
        NaiveConvolver(N, L).convolve_hessian_pair(self.a, (0, 0), self.b, (0, 0), dest)
        self.assertAlmostEqual(float(jnp.real(dest.get_coefficient((1, 0, 0)))), 0.25 * self.amplitude, places=3)
        self.assertAlmostEqual(float(jnp.real(dest.get_coefficient((3, 0, 0)))), 0.25 * self.amplitude, places=3)

    def test_dealiased_product_drops_high_mode(self):
        dest = empty_dest()
        OrszagConvolver(N, L).convolve_hessian_pair(self.a, (0, 0), self.b, (0, 0), dest)
        self.assertAlmostEqual(float(jnp.real(dest.get_coefficient((1, 0, 0)))), 0.25 * self.amplitude, places=3)
        self.assertLess(float(jnp.abs(dest.get_coefficient((3, 0, 0)))), 1e-4)
        self.assertLess(float(jnp.abs(dest.get_coefficient((N - 3, 0, 0)))), 1e-4)

    def test_random_fields_match_refined_product(self):
        a = band_limited_noise(4, N // 2)
        b = band_limited_noise(5, N // 2)
        expected = refined_product(hessian_spectrum(a, 0, 1), hessian_spectrum(b, 2, 2))
        scale = np.abs(expected).max()
        self.assertGreater(scale, 0.0)

        dealiased, naive = empty_dest(), empty_dest()
        OrszagConvolver(N, L).convolve_hessian_pair(a, (0, 1), b, (2, 2), dealiased)
        NaiveConvolver(N, L).convolve_hessian_pair(a, (0, 1), b, (2, 2), naive)
        np.testing.assert_allclose(np.asarray(dealiased.fourier), expected, atol=1e-4 * scale)
        self.assertGreater(np.abs(np.asarray(naive.fourier) - expected).max(), 0.1 * scale)

    def test_dealiased_output_has_no_nyquist_planes(self):
        a = band_limited_noise(3, N)
        dest = empty_dest()
        OrszagConvolver(N, L).convolve_hessian_pair(a, (0, 0), a, (1, 1), dest)
        coefficients = np.asarray(dest.fourier)
        self.assertEqual(np.abs(coefficients[N // 2]).max(), 0.0)
        self.assertEqual(np.abs(coefficients[:, N // 2]).max(), 0.0)
        self.assertEqual(np.abs(coefficients[:, :, -1]).max(), 0.0)


class TestErrors(unittest.TestCase):

    def test_odd_grid_rejected_for_dealiasing(self):
        with self.assertRaises(GridError):
            OrszagConvolver(7, L)
        self.assertIsInstance(make_convolver(7, L, dealiased=False), NaiveConvolver)
        self.assertIsInstance(make_convolver(8, L), OrszagConvolver)

    def test_shape_mismatch(self):
        conv = make_convolver(N, L)
        a = fourier_grid(lambda x, y, z: jnp.cos(x))
        small = fourier_grid(lambda x, y, z: jnp.cos(x), n=N // 2)
        with self.assertRaises(ShapeMismatchError):
            conv.convolve_hessian_pair(a, (0, 0), small, (0, 0), empty_dest())
        with self.assertRaises(ShapeMismatchError):
            conv.convolve_hessian_pair(a, (0, 0), a, (0, 0), empty_dest(N // 2))

    def test_real_space_operands_rejected(self):
        conv = make_convolver(N, L)
        a = fourier_grid(lambda x, y, z: jnp.cos(x))
        with self.assertRaises(RepresentationError):
            conv.convolve_hessian_pair(a, (0, 0), a, (0, 0), SpectralGrid(N, L))
        with self.assertRaises(RepresentationError):
            conv.convolve_hessian_pair(SpectralGrid(N, L), (0, 0), a, (0, 0), empty_dest())

    def test_bad_selectors(self):
        conv = make_convolver(N, L)
        a = fourier_grid(lambda x, y, z: jnp.cos(x))
        with self.assertRaises(GridError):
            conv.convolve_hessian_pair(a, (0,), a, (0, 0), empty_dest())
        with self.assertRaises(GridError):
            conv.convolve_hessian_pair(a, (0, 3), a, (0, 0), empty_dest())
        with self.assertRaises(GridError):
            conv.convolve_gradient_and_hessian(a, (0, 1), a, (0, 0), empty_dest())


if __name__ == '__main__':
    unittest.main(verbosity=2)
