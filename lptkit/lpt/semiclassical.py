"""
Semiclassical (wavefunction) density and velocity fields.

The growth-scaled potential defines psi = exp(i Phi / (hbar D)). One
free-streaming drift step psi(k) <- psi(k) exp(-i hbar k^2 D / 2) moves the
fluid to the starting time; density and velocity follow from psi.
"""
import logging
import math
from typing import List, Optional, Tuple
import jax.numpy as jnp

from ..core.data_models import LPTCoefficients
from ..grid.spectral_grid import SpectralGrid, ComplexSpectralGrid

logger = logging.getLogger(__name__)


def choose_hbar(std_phi1: float, N: int, Dplus0: float) -> float:
    """Numerical hbar from the spread of phi(1): 2 pi / N * 2 sigma / D."""
    return 2.0 * math.pi / N * (2.0 * std_phi1 / Dplus0)


def semiclassical_fields(phi: SpectralGrid, phi2: Optional[SpectralGrid],
                         coeffs: LPTCoefficients, vunit: float = 1.0
                         ) -> Tuple[SpectralGrid, List[SpectralGrid], float]:
    """
    Evolve the wavefunction of the growth-scaled potentials.

    `phi` and `phi2` are read in Fourier space and left untouched; pass
    phi2=None at first order. Returns the real-space density |psi|^2 - 1,
    the three velocity components and the hbar used. Velocities
    hbar Im(psi* grad psi) / (1 + rho) are displacements per unit growth
    and are converted with vfac1 D vunit / L like the Lagrangian velocities.
    """
    N, L = phi.N, phi.boxlen
    D = coeffs.Dplus0

    phi_r = SpectralGrid(N, L, phi.dtype).copy_from(phi).transform_to_real()
    std_phi1 = phi_r.std()
    hbar = choose_hbar(std_phi1, N, D)
    logger.info(f"Semiclassical PT: hbar = {hbar:.6g} from sigma(phi1) = {std_phi1:.6g}")

    psi = ComplexSpectralGrid(N, L)
    if phi2 is None:
        psi.assign_function_of_grids(lambda p: jnp.exp(1j * p / (hbar * D)), phi_r)
    else:
        phi2_r = SpectralGrid(N, L, phi2.dtype).copy_from(phi2).transform_to_real()
        psi.assign_function_of_grids(lambda p, p2: jnp.exp(1j * (p + p2) / (hbar * D)), phi_r, phi2_r)

    # one drift step
    psi.transform_to_fourier()
    psi.apply_function_of_coefficient(
        lambda x, kx, ky, kz: x * jnp.exp(-0.5j * hbar * (kx**2 + ky**2 + kz**2) * D),
        dc_value=None
    )
    psi.transform_to_real()

    if phi2 is not None:
        psi.assign_function_of_grids(lambda p, p2: p * jnp.exp(1j * p2 / (hbar * D)), psi, phi2_r)

    rho = SpectralGrid(N, L, phi.dtype)
    rho.assign_function_of_grids(lambda p: jnp.real(p)**2 + jnp.imag(p)**2 - 1.0, psi)

    vscale = coeffs.vfac1 * D * vunit / L
    velocities = []
    for idim in range(3):
        grad_psi = ComplexSpectralGrid(N, L).copy_from(psi).transform_to_fourier()
        grad_psi.fourier = grad_psi.gradient_coefficients(idim)
        grad_psi.transform_to_real()

        v = SpectralGrid(N, L, phi.dtype)
        v.assign_function_of_grids(
            lambda p, g, r: vscale * hbar * jnp.imag(jnp.conj(p) * g) / (1.0 + r),
            psi, grad_psi, rho
        )
        velocities.append(v)

    return rho, velocities, hbar
