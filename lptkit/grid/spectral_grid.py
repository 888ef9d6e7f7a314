"""
Periodic spectral grids with an explicit real/Fourier representation tag.

A grid holds either real-space samples on an N^3 lattice or Fourier
coefficients, never both. Every accessor checks the tag and raises
RepresentationError instead of reinterpreting the buffer. Transforms use
the package-wide 'forward' FFT normalization (see core.fft_ops).
"""
import logging
from enum import Enum
from typing import Callable, Optional, Tuple, Union
import numpy as np
import jax.numpy as jnp

from ..core.exceptions import GridError, RepresentationError, ShapeMismatchError
from ..core.fft_ops import (
    rfft_with_normalization,
    irfft_with_normalization,
    fft_with_normalization,
    ifft_with_normalization,
)
from ..core.k_grids import (
    create_k_grids_rfft,
    create_k_grids_full,
    broadcast_k_axes,
    compute_k_squared,
)

logger = logging.getLogger(__name__)


class Representation(Enum):
    REAL = 'real'
    FOURIER = 'fourier'


def check_axis(index) -> int:
    """Validate a derivative axis index."""
    if isinstance(index, (bool, np.bool_)) or not isinstance(index, (int, np.integer)) or not 0 <= index <= 2:
        raise GridError(f"Derivative axis index must be 0, 1 or 2, got {index!r}")
    return int(index)


class _PeriodicGrid:
    """Shared state and operators of the real and complex spectral grids."""

    def __init__(self, N: int, boxlen: float, dtype):
        if int(N) <= 0:
            raise GridError(f"Grid size must be positive, got {N}")
        if boxlen <= 0:
            raise GridError(f"Box length must be positive, got {boxlen}")
        self.N = int(N)
        self.boxlen = float(boxlen)
        self.dtype = jnp.dtype(dtype)
        self.complex_dtype = jnp.result_type(self.dtype, jnp.complex64)

        kx, ky, kz = self._k_axes(apply_nyquist_zeroing=False)
        self._k = broadcast_k_axes(kx, ky, kz)
        self._k2 = compute_k_squared(kx, ky, kz)
        self._k_odd = broadcast_k_axes(*self._k_axes(apply_nyquist_zeroing=True))

        self.representation = Representation.REAL
        self._data = jnp.zeros(self.real_shape, dtype=self.dtype)

    # ------------------------------------------------------------------
    # layout
    # ------------------------------------------------------------------
    @property
    def shape(self) -> Tuple[int, int, int]:
        return (self.N, self.N, self.N)

    @property
    def real_shape(self) -> Tuple[int, int, int]:
        return self.shape

    @property
    def is_real(self) -> bool:
        return self.representation is Representation.REAL

    @property
    def is_fourier(self) -> bool:
        return self.representation is Representation.FOURIER

    @property
    def cell_size(self) -> float:
        return self.boxlen / self.N

    @property
    def volume(self) -> float:
        return self.boxlen**3

    def check_compatible(self, other: '_PeriodicGrid'):
        """Raise ShapeMismatchError unless `other` has the same lattice and box."""
        if other.shape != self.shape or other.boxlen != self.boxlen:
            raise ShapeMismatchError(
                f"Grid {other.shape} with L={other.boxlen} is incompatible with "
                f"grid {self.shape} with L={self.boxlen}"
            )

    def _require(self, representation: Representation, operation: str):
        if self.representation is not representation:
            raise RepresentationError(
                f"{operation} needs the grid in {representation.value} space, "
                f"but it is in {self.representation.value} space"
            )

    # ------------------------------------------------------------------
    # data access
    # ------------------------------------------------------------------
    @property
    def real(self) -> jnp.ndarray:
        """Real-space samples."""
        self._require(Representation.REAL, "Reading samples")
        return self._data

    @real.setter
    def real(self, values):
        self._require(Representation.REAL, "Writing samples")
        values = jnp.asarray(values)
        if values.shape != self.real_shape:
            raise ShapeMismatchError(f"Expected samples of shape {self.real_shape}, got {values.shape}")
        self._data = values.astype(self.dtype)

    @property
    def fourier(self) -> jnp.ndarray:
        """Fourier coefficients."""
        self._require(Representation.FOURIER, "Reading coefficients")
        return self._data

    @fourier.setter
    def fourier(self, values):
        self._require(Representation.FOURIER, "Writing coefficients")
        values = jnp.asarray(values)
        if values.shape != self.fourier_shape:
            raise ShapeMismatchError(f"Expected coefficients of shape {self.fourier_shape}, got {values.shape}")
        self._data = values.astype(self.complex_dtype)

    def get_sample(self, i: int, j: int, k: int):
        self._require(Representation.REAL, "get_sample")
        return self._data[i, j, k]

    def get_coefficient(self, idx: Tuple[int, int, int]):
        self._require(Representation.FOURIER, "get_coefficient")
        return self._data[tuple(idx)]

    def get_wavevector(self, i: int, j: int, k: int) -> Tuple[float, float, float]:
        """Wavevector (kx, ky, kz) of the coefficient at index (i, j, k)."""
        for index, extent in zip((i, j, k), self.fourier_shape):
            if not 0 <= index < extent:
                raise GridError(f"Index {(i, j, k)} outside the coefficient array {self.fourier_shape}")
        kx, ky, kz = self._k
        return (float(kx[i, 0, 0]), float(ky[0, j, 0]), float(kz[0, 0, k]))

    def wavevectors(self, nyquist_zeroed: bool = False):
        """Broadcastable kx, ky, kz arrays; `nyquist_zeroed` for odd derivatives."""
        return self._k_odd if nyquist_zeroed else self._k

    # ------------------------------------------------------------------
    # transforms
    # ------------------------------------------------------------------
    def transform_to_fourier(self, do_transform: bool = True):
        """
        Switch to Fourier space.

        With do_transform=False the grid is retagged without transforming
        and its coefficients are zeroed; use this to prepare a destination
        whose previous content is irrelevant.
        """
        if not do_transform:
            self._data = jnp.zeros(self.fourier_shape, dtype=self.complex_dtype)
            self.representation = Representation.FOURIER
            return self
        self._require(Representation.REAL, "transform_to_fourier")
        self._data = self._forward(self._data)
        self.representation = Representation.FOURIER
        return self

    def transform_to_real(self, do_transform: bool = True):
        """Switch to real space; see transform_to_fourier for do_transform."""
        if not do_transform:
            self._data = jnp.zeros(self.real_shape, dtype=self.dtype)
            self.representation = Representation.REAL
            return self
        self._require(Representation.FOURIER, "transform_to_real")
        self._data = self._backward(self._data)
        self.representation = Representation.REAL
        return self

    # ------------------------------------------------------------------
    # elementwise operations
    # ------------------------------------------------------------------
    def apply_function_of_coefficient(self, fn: Callable, dc_value: Optional[complex] = 0.0):
        """
        Replace every coefficient by fn(value, kx, ky, kz).

        The k=0 coefficient is forced to `dc_value` afterwards, so fn may
        divide by |k|. Pass dc_value=None to keep fn's result at k=0.
        """
        self._require(Representation.FOURIER, "apply_function_of_coefficient")
        kx, ky, kz = self._k
        result = jnp.asarray(fn(self._data, kx, ky, kz), dtype=self.complex_dtype)
        result = jnp.broadcast_to(result, self.fourier_shape)
        if dc_value is not None:
            result = result.at[0, 0, 0].set(dc_value)
        self._data = result
        return self

    def apply_function_of_position(self, fn: Callable):
        """Replace every sample by fn(value, x, y, z) with x, y, z physical lattice positions."""
        self._require(Representation.REAL, "apply_function_of_position")
        x, y, z = self.positions()
        result = jnp.broadcast_to(jnp.asarray(fn(self._data, x, y, z)), self.real_shape)
        self._data = result.astype(self.dtype)
        return self

    def assign_function_of_grids(self, fn: Callable, *grids: '_PeriodicGrid'):
        """Set the samples to fn(g1, g2, ...) of the real-space samples of `grids`."""
        if not grids:
            raise GridError("assign_function_of_grids needs at least one grid")
        for g in grids:
            self.check_compatible(g)
            g._require(Representation.REAL, "assign_function_of_grids")
        result = jnp.asarray(fn(*[g._data for g in grids]))
        self.representation = Representation.REAL
        self._data = jnp.broadcast_to(result, self.real_shape).astype(self.dtype)
        return self

    def apply_inverse_laplacian(self):
        """Multiply every non-zero mode by -1/|k|^2; the k=0 mode is left untouched."""
        self._require(Representation.FOURIER, "apply_inverse_laplacian")
        k2 = self._k2
        nonzero = k2 > 0
        self._data = jnp.where(nonzero, -self._data / jnp.where(nonzero, k2, 1.0), self._data)
        return self

    def apply_negative_laplacian(self):
        """Multiply by |k|^2."""
        self._require(Representation.FOURIER, "apply_negative_laplacian")
        self._data = self._data * self._k2
        return self

    def apply_laplacian(self):
        """Multiply by -|k|^2, the inverse of apply_inverse_laplacian at non-zero modes."""
        self._require(Representation.FOURIER, "apply_laplacian")
        self._data = self._data * (-self._k2)
        return self

    def zero_dc_mode(self):
        """Set the mean to zero (the k=0 coefficient in Fourier space)."""
        if self.is_fourier:
            self._data = self._data.at[0, 0, 0].set(0.0)
        else:
            self._data = self._data - jnp.mean(self._data)
        return self

    def gradient_coefficients(self, i: int) -> jnp.ndarray:
        """Coefficients of d/dx_i, i k_i f(k), with the Nyquist wavenumber zeroed."""
        self._require(Representation.FOURIER, "gradient_coefficients")
        i = check_axis(i)
        return 1j * self._k_odd[i] * self._data

    def hessian_coefficients(self, i: int, j: int) -> jnp.ndarray:
        """
        Coefficients of d^2/dx_i dx_j, -k_i k_j f(k).

        Diagonal components use the full wavenumber; mixed components are
        products of two first derivatives and use the Nyquist-zeroed one.
        """
        self._require(Representation.FOURIER, "hessian_coefficients")
        i, j = check_axis(i), check_axis(j)
        if i == j:
            return -(self._k[i] ** 2) * self._data
        return -(self._k_odd[i] * self._k_odd[j]) * self._data

    def __imul__(self, other: Union[float, complex, '_PeriodicGrid']):
        if isinstance(other, _PeriodicGrid):
            self.check_compatible(other)
            other._require(self.representation, "Grid multiplication")
            self._data = self._data * other._data
        else:
            self._data = self._data * other
        return self

    def __iadd__(self, other: Union[float, complex, '_PeriodicGrid']):
        if isinstance(other, _PeriodicGrid):
            self.check_compatible(other)
            other._require(self.representation, "Grid addition")
            self._data = self._data + other._data
        else:
            self._data = self._data + other
        return self

    def copy_from(self, other: '_PeriodicGrid'):
        """Copy data and representation of a compatible grid."""
        self.check_compatible(other)
        self.representation = other.representation
        if other.is_real:
            self._data = jnp.asarray(other._data).astype(self.dtype)
        else:
            self._data = jnp.asarray(other._data).astype(self.complex_dtype)
        return self

    # ------------------------------------------------------------------
    # statistics and lattice
    # ------------------------------------------------------------------
    def mean(self) -> float:
        self._require(Representation.REAL, "mean")
        return float(jnp.real(jnp.mean(self._data)))

    def std(self) -> float:
        self._require(Representation.REAL, "std")
        return float(jnp.std(self._data))

    def unit_positions(self):
        """Lattice coordinates (i/N, j/N, k/N) in box units, as broadcastable arrays."""
        q = jnp.arange(self.N, dtype=self.dtype if self.dtype.kind == 'f' else jnp.float32) / self.N
        return q[:, None, None], q[None, :, None], q[None, None, :]

    def staggered_unit_positions(self):
        """Lattice coordinates shifted by half a cell along every axis."""
        half = 0.5 / self.N
        return tuple(q + half for q in self.unit_positions())

    def positions(self):
        """Physical lattice positions."""
        return tuple(q * self.boxlen for q in self.unit_positions())

    def stagger(self):
        """Shift the field by half a cell along every axis, sampling it at the staggered lattice."""
        was_real = self.is_real
        if was_real:
            self.transform_to_fourier()
        kx, ky, kz = self._k_odd
        shift = 0.5 * self.cell_size
        self._data = self._data * jnp.exp(1j * (kx + ky + kz) * shift)
        if was_real:
            self.transform_to_real()
        return self

    def power_spectrum(self, nbins: Optional[int] = None):
        """
        Spherically averaged power spectrum in integer shells of the
        fundamental mode kf = 2 pi / L.

        Returns (k, P(k), nmodes) for shells 1..nbins (default N//2).
        P is normalized so that a field with <|f_k|^2> = P/V recovers P.
        """
        coefficients = self._data if self.is_fourier else self._forward(self._data)
        nbins = self.N // 2 if nbins is None else int(nbins)
        kf = 2.0 * jnp.pi / self.boxlen

        kmag = jnp.sqrt(self._k2).ravel()
        power = (self.volume * jnp.abs(coefficients)**2).ravel()
        weights = jnp.broadcast_to(self._mode_weights(), self.fourier_shape).ravel()

        shell = jnp.floor(kmag / kf + 0.5).astype(jnp.int32)
        weights = jnp.where(shell <= nbins, weights, 0.0)
        shell = jnp.minimum(shell, nbins)

        nmodes = jnp.bincount(shell, weights=weights, length=nbins + 1)
        psum = jnp.bincount(shell, weights=weights * power, length=nbins + 1)
        ksum = jnp.bincount(shell, weights=weights * kmag, length=nbins + 1)

        filled = nmodes > 0
        safe = jnp.where(filled, nmodes, 1.0)
        k_mean = jnp.where(filled, ksum / safe, 0.0)
        p_mean = jnp.where(filled, psum / safe, 0.0)
        return k_mean[1:], p_mean[1:], nmodes[1:]

    def write_power_spectrum(self, path: str, nbins: Optional[int] = None):
        """Write the binned power spectrum (k, P, nmodes) of the grid to a text file."""
        k, pk, nmodes = self.power_spectrum(nbins)
        table = np.column_stack([np.asarray(k), np.asarray(pk), np.asarray(nmodes)])
        np.savetxt(path, table[np.asarray(nmodes) > 0], header="k [h/Mpc]   P(k)   nmodes")
        logger.info(f"Wrote sampled power spectrum to {path}")


class SpectralGrid(_PeriodicGrid):
    """
    Real-valued periodic field on an N^3 lattice.

    Fourier space holds the rfftn half spectrum of shape (N, N, N//2+1).
    """

    def __init__(self, N: int, boxlen: float, dtype=jnp.float32):
        super().__init__(N, boxlen, dtype)

    @property
    def fourier_shape(self) -> Tuple[int, int, int]:
        return (self.N, self.N, self.N // 2 + 1)

    def _k_axes(self, apply_nyquist_zeroing: bool):
        return create_k_grids_rfft(self.N, self.boxlen, apply_nyquist_zeroing=apply_nyquist_zeroing)

    def _forward(self, data):
        return rfft_with_normalization(data).astype(self.complex_dtype)

    def _backward(self, data):
        return irfft_with_normalization(data, shape=self.real_shape).astype(self.dtype)

    def _mode_weights(self):
        # modes with 0 < kz < N/2 stand for themselves and their conjugate
        nz = self.fourier_shape[2]
        w = jnp.full((nz,), 2.0)
        w = w.at[0].set(1.0)
        if self.N % 2 == 0:
            w = w.at[-1].set(1.0)
        return w[None, None, :]

    def __repr__(self):
        return f"SpectralGrid(N={self.N}, boxlen={self.boxlen}, {self.representation.value})"


class ComplexSpectralGrid(_PeriodicGrid):
    """
    Complex-valued periodic field on an N^3 lattice, transformed with the
    full fftn. Used for wavefunctions.
    """

    def __init__(self, N: int, boxlen: float, dtype=jnp.complex64):
        super().__init__(N, boxlen, dtype)

    @property
    def fourier_shape(self) -> Tuple[int, int, int]:
        return self.shape

    def _k_axes(self, apply_nyquist_zeroing: bool):
        return create_k_grids_full(self.N, self.boxlen, apply_nyquist_zeroing=apply_nyquist_zeroing)

    def _forward(self, data):
        return fft_with_normalization(data).astype(self.complex_dtype)

    def _backward(self, data):
        return ifft_with_normalization(data).astype(self.dtype)

    def _mode_weights(self):
        return jnp.ones((1, 1, 1))

    def gradient_coefficients(self, i: int) -> jnp.ndarray:
        """Coefficients of d/dx_i. A complex field has no Hermitian constraint, so the full k is used."""
        self._require(Representation.FOURIER, "gradient_coefficients")
        i = check_axis(i)
        return 1j * self._k[i] * self._data

    def __repr__(self):
        return f"ComplexSpectralGrid(N={self.N}, boxlen={self.boxlen}, {self.representation.value})"
