"""
Data models for simulation results and intermediate data.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, List
import jax.numpy as jnp


class OutputType(Enum):
    """How an output sink wants a species written."""
    PARTICLES = 'particles'
    FIELD_LAGRANGIAN = 'field_lagrangian'
    FIELD_EULERIAN = 'field_eulerian'


class FluidComponent(Enum):
    """Kind of a grid handed to an output sink."""
    DENSITY = 'density'
    DX = 'dx'
    DY = 'dy'
    DZ = 'dz'
    VX = 'vx'
    VY = 'vy'
    VZ = 'vz'

    @classmethod
    def displacement(cls, idim: int) -> 'FluidComponent':
        return (cls.DX, cls.DY, cls.DZ)[idim]

    @classmethod
    def velocity(cls, idim: int) -> 'FluidComponent':
        return (cls.VX, cls.VY, cls.VZ)[idim]


@dataclass
class LPTCoefficients:
    """Growth coefficients for the LPT potentials and their velocities."""
    Dplus0: float
    g1: float
    g2: float
    g3a: float
    g3b: float
    g3c: float
    vfac1: float
    vfac2: float
    vfac3: float


@dataclass
class LPTPotentials:
    """
    The potential set of one species.

    All grids stay in Fourier space between construction and field synthesis.
    """
    phi: 'SpectralGrid'
    phi2: 'SpectralGrid'
    phi3a: 'SpectralGrid'
    phi3b: 'SpectralGrid'
    A3: List['SpectralGrid']


@dataclass
class ParticleData:
    """Container for particle data; positions and velocities have shape (3, npart)."""
    positions: jnp.ndarray
    velocities: jnp.ndarray
    masses: jnp.ndarray
    ids: Optional[jnp.ndarray] = None

    @property
    def npart(self) -> int:
        return int(self.positions.shape[1])


@dataclass
class SimulationResult:
    """Result of a complete run."""
    success: bool
    effective_lpt_order: int
    coefficients: Optional[LPTCoefficients] = None
    species: List[str] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)
    message: str = ""
