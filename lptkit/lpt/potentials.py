"""
Construction of the LPT displacement potentials.

phi(1) is the linear potential -delta/k^2. The higher orders are built
from Hessian products of phi(1) and phi(2) through a Convolver:

    phi(2)  =  lap^-1 [ phi,00 (phi,11 + phi,22) + phi,11 phi,22
                        - phi,01^2 - phi,02^2 - phi,12^2 ]
    phi(3a) =  lap^-1 det(phi,ij)
    phi(3b) =  lap^-1 of the mixed phi(1)/phi(2) second invariant, times 1/2
    A(3)_i  =  lap^-1 of the transverse phi(1)/phi(2) cross term

with lap^-1 the operator applied by SpectralGrid.apply_inverse_laplacian.
All results are left in Fourier space.
"""
import logging
from typing import Callable, List
import jax.numpy as jnp

from ..core.data_models import LPTCoefficients, LPTPotentials
from ..grid.convolution import Combinator, Convolver
from ..grid.spectral_grid import SpectralGrid

logger = logging.getLogger(__name__)

# (d, d+1, d+2) modulo 3
AXIS_CYCLES = ((0, 1, 2), (1, 2, 0), (2, 0, 1))


def lpt_coefficients(Dplus0: float, vfac: float, order: int) -> LPTCoefficients:
    """
    Growth coefficients of the potentials for growth factor Dplus0.

    Terms above the requested order get a zero coefficient.
    """
    D = float(Dplus0)
    vfac1 = float(vfac)
    return LPTCoefficients(
        Dplus0=D,
        g1=-D,
        g2=-3.0 / 7.0 * D**2 if order > 1 else 0.0,
        g3a=-1.0 / 3.0 * D**3 if order > 2 else 0.0,
        g3b=10.0 / 21.0 * D**3 if order > 2 else 0.0,
        g3c=-1.0 / 7.0 * D**3 if order > 2 else 0.0,
        vfac1=vfac1,
        vfac2=2 * vfac1,
        vfac3=3 * vfac1,
    )


def volume_factor(N: int, boxlen: float) -> float:
    """(L/N)^1.5: maps unit white noise times sqrt(P) to coefficients with <|delta_k|^2> = P/V."""
    return (boxlen / N) ** 1.5


def allocate_potentials(N: int, boxlen: float, dtype=jnp.float32) -> LPTPotentials:
    """Allocate the potential set; every grid except phi starts as zeros in Fourier space."""
    def zero_fourier():
        return SpectralGrid(N, boxlen, dtype).transform_to_fourier(do_transform=False)

    return LPTPotentials(
        phi=SpectralGrid(N, boxlen, dtype),
        phi2=zero_fourier(),
        phi3a=zero_fourier(),
        phi3b=zero_fourier(),
        A3=[zero_fourier() for _ in range(3)],
    )


def first_order_potential(phi: SpectralGrid, noise_source, amplitude: Callable,
                          do_fixing: bool = False) -> SpectralGrid:
    """
    phi(1) from white noise: phi(k) = -noise(k) A(|k|) / k^2 / volume_factor.

    With do_fixing each noise coefficient keeps its phase and gets the rms
    modulus N^-1.5 of unit white noise under the forward normalization.
    """
    noise_source.fill(phi)
    phi.transform_to_fourier()

    volfac = volume_factor(phi.N, phi.boxlen)
    rms = phi.N ** -1.5

    def potential(x, kx, ky, kz):
        k2 = kx**2 + ky**2 + kz**2
        if do_fixing:
            modulus = jnp.abs(x)
            x = jnp.where(modulus != 0, rms * x / jnp.where(modulus != 0, modulus, 1.0), x)
        delta = x * amplitude(jnp.sqrt(k2))
        return -delta / jnp.where(k2 > 0, k2, 1.0) / volfac

    phi.apply_function_of_coefficient(potential, dc_value=0.0)
    phi.zero_dc_mode()
    return phi


def potential_from_function(phi: SpectralGrid, fn: Callable) -> SpectralGrid:
    """phi(1) given directly as fn(x, y, z) of the physical lattice positions."""
    phi.transform_to_real(do_transform=False)
    phi.apply_function_of_position(lambda v, x, y, z: fn(x, y, z))
    phi.transform_to_fourier()
    phi.zero_dc_mode()
    return phi


def second_order_potential(conv: Convolver, phi: SpectralGrid, phi2: SpectralGrid) -> SpectralGrid:
    phi2.transform_to_fourier(do_transform=False)
    conv.convolve_sum_of_hessians(phi, (0, 0), phi, (1, 1), (2, 2), phi2, Combinator.ASSIGN)
    conv.convolve_hessian_pair(phi, (1, 1), phi, (2, 2), phi2, Combinator.ADD)
    conv.convolve_hessian_pair(phi, (0, 1), phi, (0, 1), phi2, Combinator.SUBTRACT)
    conv.convolve_hessian_pair(phi, (0, 2), phi, (0, 2), phi2, Combinator.SUBTRACT)
    conv.convolve_hessian_pair(phi, (1, 2), phi, (1, 2), phi2, Combinator.SUBTRACT)
    return phi2.apply_inverse_laplacian()


def third_order_potential_a(conv: Convolver, phi: SpectralGrid, phi3a: SpectralGrid) -> SpectralGrid:
    phi3a.transform_to_fourier(do_transform=False)
    conv.convolve_hessian_triple(phi, (0, 0), phi, (1, 1), phi, (2, 2), phi3a, Combinator.ASSIGN)
    conv.convolve_hessian_triple(phi, (0, 1), phi, (0, 2), phi, (1, 2), phi3a, Combinator.ADD_TWICE)
    conv.convolve_hessian_triple(phi, (1, 2), phi, (1, 2), phi, (0, 0), phi3a, Combinator.SUBTRACT)
    conv.convolve_hessian_triple(phi, (0, 2), phi, (0, 2), phi, (1, 1), phi3a, Combinator.SUBTRACT)
    conv.convolve_hessian_triple(phi, (0, 1), phi, (0, 1), phi, (2, 2), phi3a, Combinator.SUBTRACT)
    return phi3a.apply_inverse_laplacian()


def third_order_potential_b(conv: Convolver, phi: SpectralGrid, phi2: SpectralGrid,
                            phi3b: SpectralGrid) -> SpectralGrid:
    phi3b.transform_to_fourier(do_transform=False)
    conv.convolve_sum_of_hessians(phi, (0, 0), phi2, (1, 1), (2, 2), phi3b, Combinator.ASSIGN)
    conv.convolve_sum_of_hessians(phi, (1, 1), phi2, (2, 2), (0, 0), phi3b, Combinator.ADD)
    conv.convolve_sum_of_hessians(phi, (2, 2), phi2, (0, 0), (1, 1), phi3b, Combinator.ADD)
    conv.convolve_hessian_pair(phi, (0, 1), phi2, (0, 1), phi3b, Combinator.SUBTRACT_TWICE)
    conv.convolve_hessian_pair(phi, (0, 2), phi2, (0, 2), phi3b, Combinator.SUBTRACT_TWICE)
    conv.convolve_hessian_pair(phi, (1, 2), phi2, (1, 2), phi3b, Combinator.SUBTRACT_TWICE)
    phi3b.apply_inverse_laplacian()
    phi3b *= 0.5
    return phi3b


def transverse_potential(conv: Convolver, phi: SpectralGrid, phi2: SpectralGrid,
                         A3: List[SpectralGrid]) -> List[SpectralGrid]:
    for d, dp, dpp in AXIS_CYCLES:
        A3[d].transform_to_fourier(do_transform=False)
        conv.convolve_hessian_pair(phi2, (d, dp), phi, (d, dpp), A3[d], Combinator.ASSIGN)
        conv.convolve_hessian_pair(phi2, (d, dpp), phi, (d, dp), A3[d], Combinator.SUBTRACT)
        conv.convolve_difference_of_hessians(phi, (dp, dpp), phi2, (dp, dp), (dpp, dpp), A3[d], Combinator.ADD)
        conv.convolve_difference_of_hessians(phi2, (dp, dpp), phi, (dp, dp), (dpp, dpp), A3[d], Combinator.SUBTRACT)
        A3[d].apply_inverse_laplacian()
    return A3


def symplectic_velocity_correction(conv: Convolver, phi: SpectralGrid, phi2: SpectralGrid,
                                   A3: List[SpectralGrid]) -> List[SpectralGrid]:
    """Next-to-leading-order velocity term sum_m phi,m phi2,dm stored in A3[d]."""
    for d in range(3):
        A3[d].transform_to_fourier(do_transform=False)
        conv.convolve_gradient_and_hessian(phi, 0, phi2, (d, 0), A3[d], Combinator.ASSIGN)
        conv.convolve_gradient_and_hessian(phi, 1, phi2, (d, 1), A3[d], Combinator.ADD)
        conv.convolve_gradient_and_hessian(phi, 2, phi2, (d, 2), A3[d], Combinator.ADD)
    return A3


def scale_potentials(potentials: LPTPotentials, coeffs: LPTCoefficients) -> LPTPotentials:
    """Multiply every potential by its growth coefficient."""
    potentials.phi *= coeffs.g1
    potentials.phi2 *= coeffs.g2
    potentials.phi3a *= coeffs.g3a
    potentials.phi3b *= coeffs.g3b
    for A in potentials.A3:
        A *= coeffs.g3c
    return potentials
