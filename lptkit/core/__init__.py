"""
Pure JAX implementations of the core numerical building blocks.

FFT helpers with a single normalization convention, k-space grids and the
reproducible white-noise stream.
"""

from .noise import generate_white_noise, generate_distributed_noise
from .fft_ops import rfft_with_normalization, irfft_with_normalization, extend_spectrum, reduce_spectrum
from .k_grids import create_k_grids_rfft, create_k_grids_full, compute_k_squared

__all__ = [
    'generate_white_noise',
    'generate_distributed_noise',
    'rfft_with_normalization',
    'irfft_with_normalization',
    'extend_spectrum',
    'reduce_spectrum',
    'create_k_grids_rfft',
    'create_k_grids_full',
    'compute_k_squared'
]
