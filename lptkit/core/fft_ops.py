"""
Pure JAX implementation of FFT operations with proper normalization.

All transforms use the 'forward' normalization: the forward transform
carries the 1/N^3 factor and the inverse transform is a plain sum over
modes. Fourier coefficients are therefore independent of the grid
resolution, which is what makes zero-padding and truncation of spectra
amplitude preserving.
"""
import jax.numpy as jnp
from typing import Tuple, Optional

FFT_NORM = 'forward'


def rfft_with_normalization(
    field: jnp.ndarray,
    axes: Optional[Tuple[int, ...]] = None
) -> jnp.ndarray:
    """
    Perform real FFT with proper normalization.

    Parameters:
    -----------
    field : jnp.ndarray
        Real-valued input field
    axes : Optional[Tuple[int, ...]]
        Axes over which to compute FFT. If None, uses all axes.

    Returns:
    --------
    field_k : jnp.ndarray
        Complex FFT coefficients on the half-spectrum lattice
    """
    if axes is None:
        field_k = jnp.fft.rfftn(field, norm=FFT_NORM)
    else:
        field_k = jnp.fft.rfftn(field, axes=axes, norm=FFT_NORM)

    return field_k


def irfft_with_normalization(
    field_k: jnp.ndarray,
    shape: Optional[Tuple[int, ...]] = None,
    axes: Optional[Tuple[int, ...]] = None
) -> jnp.ndarray:
    """
    Perform inverse real FFT with proper normalization.

    Parameters:
    -----------
    field_k : jnp.ndarray
        Complex FFT coefficients
    shape : Optional[Tuple[int, ...]]
        Shape of the output real field
    axes : Optional[Tuple[int, ...]]
        Axes over which to compute inverse FFT

    Returns:
    --------
    field : jnp.ndarray
        Real-valued field
    """
    if axes is None:
        field = jnp.fft.irfftn(field_k, s=shape, norm=FFT_NORM)
    else:
        field = jnp.fft.irfftn(field_k, s=shape, axes=axes, norm=FFT_NORM)

    return field


def fft_with_normalization(field: jnp.ndarray) -> jnp.ndarray:
    """Full complex forward FFT, same normalization as the real transforms."""
    return jnp.fft.fftn(field, norm=FFT_NORM)


def ifft_with_normalization(field_k: jnp.ndarray) -> jnp.ndarray:
    """Full complex inverse FFT."""
    return jnp.fft.ifftn(field_k, norm=FFT_NORM)


def fft_frequencies(N: int, box_size: float, rfft_axis: bool = False) -> jnp.ndarray:
    """
    Generate FFT frequency arrays.

    Parameters:
    -----------
    N : int
        Grid size
    box_size : float
        Physical box size
    rfft_axis : bool
        If True, use rfftfreq (for the last axis in real FFT)

    Returns:
    --------
    freqs : jnp.ndarray
        Wavenumbers k_n = 2 pi n / box_size
    """
    if rfft_axis:
        # For real FFT last axis: [0, 1, 2, ..., N//2]
        freqs = jnp.fft.rfftfreq(N, d=1.0/N)
    else:
        # For complex FFT: [0, 1, ..., N//2-1, -N//2, ..., -1]
        freqs = jnp.fft.fftfreq(N, d=1.0/N)

    dk = 2 * jnp.pi / box_size
    return freqs * dk


def apply_nyquist_treatment(
    k_array: jnp.ndarray,
    N: int,
    axis_type: str = 'complex'
) -> jnp.ndarray:
    """
    Set the Nyquist entry of a 1D wavenumber array to zero.

    Odd derivatives of a real field are undefined at the Nyquist frequency,
    so first-derivative operators use the treated array.

    Parameters:
    -----------
    k_array : jnp.ndarray
        Frequency array
    N : int
        Grid size
    axis_type : str
        'complex' for standard FFT axis, 'real' for real FFT axis

    Returns:
    --------
    k_treated : jnp.ndarray
        Frequency array with Nyquist modes set to zero
    """
    k_treated = k_array.copy()

    if axis_type == 'complex':
        if N % 2 == 0:
            k_treated = k_treated.at[N//2].set(0.0)
    elif axis_type == 'real':
        if N % 2 == 0:
            k_treated = k_treated.at[-1].set(0.0)
    else:
        raise ValueError(f"Unknown axis type: {axis_type}")

    return k_treated


def _band_indices(n_src: int, n_dst: int, n_band: int) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Index arrays of the shared low-k band on two complex FFT axes."""
    half = n_band // 2
    src = jnp.concatenate([jnp.arange(half), jnp.arange(n_src - half + 1, n_src)])
    dst = jnp.concatenate([jnp.arange(half), jnp.arange(n_dst - half + 1, n_dst)])
    return src, dst


def extend_spectrum(field_k: jnp.ndarray, n_ext: int) -> jnp.ndarray:
    """
    Zero-pad a half-spectrum (rfftn layout) array to a larger grid.

    Only the modes |n| < N/2 are copied; the base Nyquist planes are left
    at zero in the padded array since they have no unambiguous position
    on the larger grid.

    Parameters:
    -----------
    field_k : jnp.ndarray
        Coefficients of shape (N, N, N//2+1)
    n_ext : int
        Padded grid size

    Returns:
    --------
    field_k_ext : jnp.ndarray
        Coefficients of shape (n_ext, n_ext, n_ext//2+1)
    """
    n = field_k.shape[0]
    src, dst = _band_indices(n, n_ext, n)
    idx_z = jnp.arange(n // 2)

    out = jnp.zeros((n_ext, n_ext, n_ext // 2 + 1), dtype=field_k.dtype)
    block = field_k[jnp.ix_(src, src, idx_z)]
    return out.at[jnp.ix_(dst, dst, idx_z)].set(block)


def reduce_spectrum(field_k: jnp.ndarray, n_red: int) -> jnp.ndarray:
    """
    Truncate a half-spectrum array to a smaller grid.

    Keeps the same low-k band that extend_spectrum fills; the Nyquist
    planes of the reduced grid are zero.
    """
    n = field_k.shape[0]
    src, dst = _band_indices(n, n_red, n_red)
    idx_z = jnp.arange(n_red // 2)

    out = jnp.zeros((n_red, n_red, n_red // 2 + 1), dtype=field_k.dtype)
    block = field_k[jnp.ix_(src, src, idx_z)]
    return out.at[jnp.ix_(dst, dst, idx_z)].set(block)
