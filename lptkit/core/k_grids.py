"""
Pure JAX implementation of k-space grid utilities.

Wavenumbers follow the periodic convention k_n = 2 pi n / L with n in the
signed range produced by numpy-style FFT frequency ordering.
"""
import jax.numpy as jnp
from typing import Tuple
from .fft_ops import fft_frequencies, apply_nyquist_treatment


def create_k_grids_rfft(
    N: int,
    box_size: float,
    apply_nyquist_zeroing: bool = False
) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    """
    Create k-space coordinate axes for real FFT.

    Parameters:
    -----------
    N : int
        Grid size (N^3 total points)
    box_size : float
        Physical box size
    apply_nyquist_zeroing : bool, optional
        If True, applies Nyquist frequency zeroing to the 1D k-vectors.
        Defaults to False, returning "raw" frequencies.

    Returns:
    --------
    kx, ky, kz : Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]
        1D k-space coordinate arrays of length N, N and N//2+1.
    """
    kx_1d = fft_frequencies(N, box_size, rfft_axis=False)
    ky_1d = fft_frequencies(N, box_size, rfft_axis=False)
    kz_1d = fft_frequencies(N, box_size, rfft_axis=True)

    if apply_nyquist_zeroing:
        kx_1d = apply_nyquist_treatment(kx_1d, N, 'complex')
        ky_1d = apply_nyquist_treatment(ky_1d, N, 'complex')
        kz_1d = apply_nyquist_treatment(kz_1d, N, 'real')

    return kx_1d, ky_1d, kz_1d


def create_k_grids_full(
    N: int,
    box_size: float,
    apply_nyquist_zeroing: bool = False
) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    """
    Create k-space coordinate axes for a full complex FFT.

    Parameters:
    -----------
    N : int
        Grid size
    box_size : float
        Physical box size
    apply_nyquist_zeroing : bool, optional
        If True, zero the Nyquist entry of every axis.

    Returns:
    --------
    kx, ky, kz : Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]
        1D k-space coordinate arrays, all of length N
    """
    axes = [fft_frequencies(N, box_size, rfft_axis=False) for _ in range(3)]

    if apply_nyquist_zeroing:
        axes = [apply_nyquist_treatment(k, N, 'complex') for k in axes]

    return tuple(axes)


def broadcast_k_axes(
    kx_1d: jnp.ndarray,
    ky_1d: jnp.ndarray,
    kz_1d: jnp.ndarray
) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    """Reshape 1D axes to (n,1,1), (1,n,1), (1,1,m) for broadcasting."""
    return kx_1d[:, None, None], ky_1d[None, :, None], kz_1d[None, None, :]


def compute_k_squared(
    kx_1d: jnp.ndarray,
    ky_1d: jnp.ndarray,
    kz_1d: jnp.ndarray
) -> jnp.ndarray:
    """
    Compute k^2 from 1D k-vectors.

    Parameters:
    -----------
    kx_1d, ky_1d, kz_1d : jnp.ndarray
        1D k-space frequency vectors

    Returns:
    --------
    k_squared : jnp.ndarray
        k^2 values with shape (len(kx_1d), len(ky_1d), len(kz_1d))
    """
    kxa, kya, kza = broadcast_k_axes(kx_1d, ky_1d, kz_1d)
    return kxa**2 + kya**2 + kza**2
