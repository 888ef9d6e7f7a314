"""
Displacement and velocity fields from the scaled LPT potentials.
"""

from ..core.data_models import LPTCoefficients, LPTPotentials
from ..grid.spectral_grid import SpectralGrid
from .potentials import AXIS_CYCLES


def displacement_field(potentials: LPTPotentials, idim: int, lunit: float,
                       dest: SpectralGrid) -> SpectralGrid:
    """
    Real-space displacement along `idim`:

        lunit * IFFT[ i (k_d Phi + k_d+1 A3_d+2 - k_d+2 A3_d+1) / L ]

    with Phi = phi + phi2 + phi3a + phi3b.
    """
    d, dp, dpp = AXIS_CYCLES[idim]
    p = potentials
    k = p.phi.wavevectors(nyquist_zeroed=True)
    phitot = p.phi.fourier + p.phi2.fourier + p.phi3a.fourier + p.phi3b.fourier

    dest.transform_to_fourier(do_transform=False)
    dest.fourier = lunit * 1j * (k[d] * phitot
                                 + k[dp] * p.A3[dpp].fourier
                                 - k[dpp] * p.A3[dp].fourier) / p.phi.boxlen
    return dest.transform_to_real()


def velocity_field(potentials: LPTPotentials, coeffs: LPTCoefficients, idim: int,
                   vunit: float, dest: SpectralGrid, symplectic: bool = False) -> SpectralGrid:
    """
    Real-space velocity along `idim`.

    The standard form weights the orders with vfac1, vfac2 and vfac3 and
    scales the transverse term with vfac3. The symplectic form has no
    third-order potentials and adds vfac1 A3_d, which then holds the
    next-to-leading-order velocity term.
    """
    d, dp, dpp = AXIS_CYCLES[idim]
    p = potentials
    c = coeffs
    k = p.phi.wavevectors(nyquist_zeroed=True)
    L = p.phi.boxlen

    dest.transform_to_fourier(do_transform=False)
    if not symplectic:
        phitot_v = (c.vfac1 * p.phi.fourier + c.vfac2 * p.phi2.fourier
                    + c.vfac3 * (p.phi3a.fourier + p.phi3b.fourier))
        dest.fourier = vunit * 1j * (k[d] * phitot_v
                                     + c.vfac3 * (k[dp] * p.A3[dpp].fourier
                                                  - k[dpp] * p.A3[dp].fourier)) / L
    else:
        phitot_v = c.vfac1 * p.phi.fourier + c.vfac2 * p.phi2.fourier
        dest.fourier = vunit * (1j * k[d] * phitot_v + c.vfac1 * p.A3[d].fourier) / L
    return dest.transform_to_real()


def linear_density(phi: SpectralGrid, dest: SpectralGrid) -> SpectralGrid:
    """Density |k|^2 phi of the growth-scaled first-order potential, left in Fourier space."""
    dest.copy_from(phi)
    return dest.apply_negative_laplacian()
