"""
Cosmological parameters and tabulated power spectra.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional
import numpy as np
import jax.numpy as jnp

from ..core.exceptions import ConfigurationError

@dataclass
class CosmologicalParameters:
    """Cosmological parameters with validation."""

    # Primary parameters
    H0: float = 67.0          # Hubble constant [km/s/Mpc]
    Omega_m: float = 0.3      # Matter density parameter
    Omega_b: float = 0.049    # Baryon density parameter
    Omega_lambda: float = 0.7 # Dark energy density parameter
    n_s: float = 0.965        # Scalar spectral index
    sigma_8: float = 0.81     # RMS matter fluctuation at 8 Mpc/h
    Omega_nu: float = 0.0     # Massive neutrino density parameter

    # Derived parameters
    h: Optional[float] = None         # Dimensionless Hubble parameter
    omega_k: Optional[float] = None   # Curvature density parameter

    def __post_init__(self):
        """Compute derived parameters and validate."""

        # If h is explicitly provided, use it; otherwise derive from H0
        if self.h is None:
            self.h = self.H0 / 100.0
        else:
            self.H0 = self.h * 100.0

        self.omega_k = 1.0 - self.Omega_m - self.Omega_lambda

        if self.H0 <= 0:
            raise ConfigurationError("H0 must be positive")
        if self.Omega_m <= 0:
            raise ConfigurationError("Omega_m must be positive")
        if self.Omega_b < 0:
            raise ConfigurationError("Omega_b must be non-negative")
        if self.Omega_b > self.Omega_m:
            raise ConfigurationError("Omega_b cannot be larger than Omega_m")
        if self.sigma_8 <= 0:
            raise ConfigurationError("sigma_8 must be positive")

    def density_parameter(self, species: str, with_baryons: bool = True) -> float:
        """
        Density parameter of a matter species.

        Dark matter carries Omega_m - Omega_b when baryons are generated as
        a separate species and the full Omega_m otherwise.
        """
        if species == 'baryon':
            return self.Omega_b
        if species == 'neutrino':
            return self.Omega_nu
        if species == 'dm':
            return self.Omega_m - self.Omega_b - self.Omega_nu if with_baryons else self.Omega_m - self.Omega_nu
        return self.Omega_m


@dataclass
class PowerSpectrum:
    """
    Linear power spectrum tables at z=0.

    `pofk` is the total matter spectrum; `species_pofk` optionally holds
    per-species tables sampled at the same k. k is in h/Mpc, P(k) in (Mpc/h)^3.
    """

    k: jnp.ndarray
    pofk: jnp.ndarray
    species_pofk: Dict[str, jnp.ndarray] = field(default_factory=dict)

    def __post_init__(self):
        """Validate power spectrum tables."""
        self.k = jnp.asarray(self.k)
        self.pofk = jnp.asarray(self.pofk)
        self.species_pofk = {name: jnp.asarray(p) for name, p in self.species_pofk.items()}

        if self.k.ndim != 1 or self.k.shape[0] < 2:
            raise ConfigurationError("Power spectrum needs at least two k samples")
        if self.k.shape != self.pofk.shape:
            raise ConfigurationError("k and pofk arrays must have same length")
        if jnp.any(self.k <= 0):
            raise ConfigurationError("All k values must be positive")
        if jnp.any(jnp.diff(self.k) <= 0):
            raise ConfigurationError("k values must be strictly increasing")
        if jnp.any(self.pofk < 0):
            raise ConfigurationError("All P(k) values must be non-negative")
        for name, p in self.species_pofk.items():
            if p.shape != self.k.shape:
                raise ConfigurationError(f"Table for species '{name}' does not match the k samples")

    def table(self, species: str = 'total') -> jnp.ndarray:
        """P(k) table of a species, falling back to the total matter table."""
        return self.species_pofk.get(species, self.pofk)

    @classmethod
    def from_file(cls, path: str, species_columns: Optional[Dict[str, int]] = None) -> 'PowerSpectrum':
        """
        Load a whitespace-separated table: column 0 is k, column 1 the total
        P(k); `species_columns` maps species names to further columns.
        """
        data = np.loadtxt(path, ndmin=2)
        if data.shape[1] < 2:
            raise ConfigurationError(f"Power spectrum file '{path}' needs at least two columns")
        species_pofk = {}
        for name, column in (species_columns or {}).items():
            species_pofk[name] = data[:, column]
        return cls(k=data[:, 0], pofk=data[:, 1], species_pofk=species_pofk)

    @classmethod
    def from_camb(cls, camb_results, minkh: float = 1e-4, maxkh: float = 1e2,
                  npoints: int = 2000) -> 'PowerSpectrum':
        """Create from a CAMB results object computed with a z=0 matter power request."""
        k, z_list, pk = camb_results.get_matter_power_spectrum(
            minkh=minkh, maxkh=maxkh, npoints=npoints
        )

        # Find the z=0 entry
        z_idx = 0
        if len(z_list) > 1:
            z_idx = int(np.argmin(np.abs(np.asarray(z_list))))

        species_pofk = {}
        for name, var in (('dm', 'delta_cdm'), ('baryon', 'delta_baryon')):
            _, _, pk_s = camb_results.get_matter_power_spectrum(
                minkh=minkh, maxkh=maxkh, npoints=npoints, var1=var, var2=var
            )
            species_pofk[name] = np.asarray(pk_s[z_idx, :])

        return cls(k=np.asarray(k), pofk=np.asarray(pk[z_idx, :]), species_pofk=species_pofk)
