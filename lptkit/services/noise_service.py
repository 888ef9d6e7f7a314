"""
White-noise source for the initial potential.
"""
import logging
from typing import List
import jax.numpy as jnp

from ..core.noise import generate_distributed_noise, DEFAULT_NSUB
from ..grid.spectral_grid import SpectralGrid

logger = logging.getLogger(__name__)


def slab_bounds(N: int, nslabs: int) -> List[slice]:
    """Split the first grid axis into `nslabs` contiguous slabs of near-equal size."""
    nslabs = max(1, min(int(nslabs), N))
    edges = [(N * i) // nslabs for i in range(nslabs + 1)]
    return [slice(edges[i], edges[i + 1]) for i in range(nslabs)]


class NoiseGenerator:
    """
    Fills real-space grids with reproducible unit-variance Gaussian noise.

    The field only depends on the seed and the grid size: generating it in
    `nslabs` slabs gives the same numbers as generating it at once.
    """

    def __init__(self, seed: int = 13579, nsub: int = DEFAULT_NSUB, nslabs: int = 1):
        self.seed = seed
        self.nsub = nsub
        self.nslabs = nslabs

    def fill(self, grid: SpectralGrid) -> SpectralGrid:
        """Overwrite `grid` with white noise; the grid ends in real space."""
        N = grid.N
        slabs = [
            generate_distributed_noise((N, N, N), s, seed=self.seed, dtype=grid.dtype, nsub=self.nsub)
            for s in slab_bounds(N, self.nslabs)
        ]
        grid.transform_to_real(do_transform=False)
        grid.real = jnp.concatenate(slabs, axis=0)
        logger.debug(f"Filled {N}^3 grid with white noise (seed={self.seed}, {len(slabs)} slab(s))")
        return grid
