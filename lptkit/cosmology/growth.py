"""
Growth factors, power spectrum amplitudes and the cosmology service.
"""
import logging
from typing import Optional
import numpy as np
import jax
import jax.numpy as jnp

from ..core.exceptions import ConfigurationError
from .parameters import CosmologicalParameters, PowerSpectrum

logger = logging.getLogger(__name__)


class CosmologyService:
    """
    Service for cosmological calculations.

    Provides the linear amplitude sqrt(P(k)) per species, the linear growth
    factor and the velocity growth factor used to scale LPT potentials.
    """

    def __init__(self, parameters: CosmologicalParameters, power_spectrum: Optional[PowerSpectrum] = None):
        self.parameters = parameters
        if power_spectrum is None:
            raise ConfigurationError(
                "A power spectrum table is required: pass arrays, a file, or CAMB results"
            )
        self.power_spectrum = power_spectrum

    def hubble_function(self, a):
        """Dimensionless E(a) = H(a)/H0."""
        p = self.parameters
        return jnp.sqrt(p.Omega_m / a**3 + p.omega_k / a**2 + p.Omega_lambda)

    def hubble(self, a):
        """H(a) in km/s/(Mpc/h)."""
        return 100.0 * self.hubble_function(a)

    def _growth_unnormalized(self, a):
        # Carroll, Press & Turner (1992) fitting formula, w=-1
        p = self.parameters
        x3 = 1.0 / a**3
        x2 = 1.0 / a**2
        denom = p.Omega_m * x3 + p.omega_k * x2 + p.Omega_lambda
        omega = p.Omega_m * x3 / denom
        Lambda = p.Omega_lambda / denom

        g = 2.5 * omega / (omega**(4./7.) - Lambda + (1 + omega/2) * (1 + Lambda/70))
        return a * g

    def growth_factor(self, a):
        """Linear growth factor D+(a), normalized to D+(1) = 1."""
        return self._growth_unnormalized(a) / self._growth_unnormalized(1.0)

    def growth_rate(self, a):
        """Logarithmic growth rate f = dlnD/dlna, using JAX autodiff."""
        a = jnp.asarray(a, dtype=jnp.float32)
        dDda = jax.grad(self.growth_factor)(a)
        return a * dDda / self.growth_factor(a)

    def velocity_growth_factor(self, a) -> float:
        """a H(a) f(a): converts a displacement in Mpc/h to a peculiar velocity in km/s."""
        return float(a * self.hubble(a) * self.growth_rate(a))

    def get_amplitude(self, k, species: str = 'total'):
        """
        sqrt(P(k)) of the z=0 linear power spectrum of a species.

        Log-log interpolation of the tabulated spectrum; zero outside the
        table and at k=0.
        """
        k = jnp.asarray(k)
        k_table = self.power_spectrum.k
        p_table = self.power_spectrum.table(species)

        inside = (k >= k_table[0]) & (k <= k_table[-1])
        k_safe = jnp.where(inside, k, k_table[0])
        tiny = jnp.finfo(p_table.dtype).tiny
        log_p = jnp.interp(jnp.log(k_safe), jnp.log(k_table), jnp.log(jnp.maximum(p_table, tiny)))
        return jnp.where(inside, jnp.sqrt(jnp.exp(log_p)), 0.0)

    def write_power_spectrum(self, a: float, path: str):
        """Write k, (A(k) D+(a))^2 and A(k)^2 of the input spectrum."""
        Dplus = float(self.growth_factor(a))
        k = np.asarray(self.power_spectrum.k)
        amplitude = np.asarray(self.get_amplitude(k, 'total'))
        table = np.column_stack([k, (amplitude * Dplus)**2, amplitude**2])
        np.savetxt(path, table, header=f"k [h/Mpc]   P(k,a={a:.6g})   P(k,a=1)")
        logger.info(f"Wrote input power spectrum to {path}")
