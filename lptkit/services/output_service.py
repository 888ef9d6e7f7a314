"""
Output sinks for grids and particles.
"""
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Optional
import numpy as np

from ..core.config import SimulationConfig
from ..core.data_models import ParticleData, OutputType, FluidComponent
from ..core.exceptions import ConfigurationError
from ..grid.spectral_grid import SpectralGrid

logger = logging.getLogger(__name__)


class OutputPlugin(ABC):
    """
    Interface between the LPT assembler and a storage format.

    `write_species_as` decides which synthesis branch runs for a species.
    Displacements are computed in box units and multiplied by
    `position_unit()`; velocities likewise by `velocity_unit()`.
    """

    @abstractmethod
    def write_species_as(self, species: str) -> OutputType:
        ...

    @abstractmethod
    def write_grid_data(self, grid: SpectralGrid, species: str, component: FluidComponent):
        ...

    @abstractmethod
    def write_particle_data(self, particles: ParticleData, species: str):
        ...

    def position_unit(self) -> float:
        return 1.0

    def velocity_unit(self) -> float:
        return 1.0

    def finalize(self):
        """Flush buffered output."""


class MemoryOutput(OutputPlugin):
    """Keeps all output in dictionaries keyed by species."""

    def __init__(self, output_type: OutputType = OutputType.PARTICLES,
                 species_types: Optional[Dict[str, OutputType]] = None,
                 lunit: float = 1.0, vunit: float = 1.0):
        self.output_type = OutputType(output_type)
        self.species_types = {k: OutputType(v) for k, v in (species_types or {}).items()}
        self.lunit = lunit
        self.vunit = vunit
        self.grids: Dict[str, Dict[FluidComponent, np.ndarray]] = {}
        self.particles: Dict[str, ParticleData] = {}

    def write_species_as(self, species: str) -> OutputType:
        return self.species_types.get(species, self.output_type)

    def write_grid_data(self, grid: SpectralGrid, species: str, component: FluidComponent):
        self.grids.setdefault(species, {})[component] = np.asarray(grid.real)

    def write_particle_data(self, particles: ParticleData, species: str):
        self.particles[species] = particles

    def position_unit(self) -> float:
        return self.lunit

    def velocity_unit(self) -> float:
        return self.vunit


class GridOutput(OutputPlugin):
    """
    Writes the grids of each species into `<output_dir>/<base_filename>_<species>.npz`.

    Positions in Mpc/h, velocities in km/s.
    """

    def __init__(self, output_dir: str, base_filename: str, boxlen: float,
                 output_type: OutputType = OutputType.FIELD_LAGRANGIAN):
        output_type = OutputType(output_type)
        if output_type is OutputType.PARTICLES:
            raise ConfigurationError("GridOutput cannot store particles")
        self.output_dir = output_dir
        self.base_filename = base_filename
        self.boxlen = boxlen
        self.output_type = output_type
        self._buffer: Dict[str, Dict[str, np.ndarray]] = {}
        os.makedirs(output_dir, exist_ok=True)

    def write_species_as(self, species: str) -> OutputType:
        return self.output_type

    def write_grid_data(self, grid: SpectralGrid, species: str, component: FluidComponent):
        self._buffer.setdefault(species, {})[component.value] = np.asarray(grid.real)

    def write_particle_data(self, particles: ParticleData, species: str):
        raise ConfigurationError("GridOutput cannot store particles")

    def position_unit(self) -> float:
        return self.boxlen

    def velocity_unit(self) -> float:
        return self.boxlen

    def filename(self, species: str) -> str:
        return os.path.join(self.output_dir, f"{self.base_filename}_{species}.npz")

    def finalize(self):
        for species, grids in self._buffer.items():
            np.savez(self.filename(species), **grids)
            logger.info(f"Wrote {len(grids)} grids for species '{species}' to {self.filename(species)}")
        self._buffer = {}


class NyxOutput(OutputPlugin):
    """
    Particle output in the Nyx binary format.

    Header: npart (int64), ndim=3 (int32), nx=4 (int32); then one float32
    row x y z mass vx vy vz per particle. Positions in Mpc/h, velocities in km/s.
    """

    def __init__(self, output_dir: str, base_filename: str, boxlen: float):
        self.output_dir = output_dir
        self.base_filename = base_filename
        self.boxlen = boxlen
        os.makedirs(output_dir, exist_ok=True)

    def write_species_as(self, species: str) -> OutputType:
        return OutputType.PARTICLES

    def write_grid_data(self, grid: SpectralGrid, species: str, component: FluidComponent):
        raise ConfigurationError("NyxOutput only stores particles")

    def position_unit(self) -> float:
        return self.boxlen

    def velocity_unit(self) -> float:
        return self.boxlen

    def filename(self, species: str) -> str:
        return os.path.join(self.output_dir, f"{self.base_filename}_{species}")

    def write_particle_data(self, particles: ParticleData, species: str):
        x, y, z = (np.asarray(particles.positions[d]) for d in range(3))
        vx, vy, vz = (np.asarray(particles.velocities[d]) for d in range(3))
        npart = x.size
        mass = np.asarray(particles.masses)
        mass_array = np.repeat(mass, npart) if mass.ndim == 0 else mass

        with open(self.filename(species), 'wb') as fid:
            np.asarray([npart], dtype='int64').tofile(fid)
            np.asarray([3], dtype='int32').tofile(fid)
            np.asarray([4], dtype='int32').tofile(fid)
            (np.asarray([x, y, z, mass_array, vx, vy, vz], dtype='float32').T).tofile(fid)

        logger.info(f"Wrote {npart} '{species}' particles to {self.filename(species)}")


def read_nyx(filename: str):
    """Read a Nyx particle file back into (npart, rows) with rows of shape (npart, 7)."""
    with open(filename, 'rb') as fid:
        npart = int(np.fromfile(fid, dtype='int64', count=1)[0])
        ndim = int(np.fromfile(fid, dtype='int32', count=1)[0])
        nx = int(np.fromfile(fid, dtype='int32', count=1)[0])
        rows = np.fromfile(fid, dtype='float32', count=npart * (ndim + nx)).reshape(npart, ndim + nx)
    return npart, rows


def get_output_plugin(name: str, config: SimulationConfig) -> OutputPlugin:
    """Create the output plugin named by the configuration's output format."""
    out = config.output
    if name == 'memory':
        return MemoryOutput()
    if name == 'grid':
        return GridOutput(out.output_dir, out.base_filename, config.grid.Lbox)
    if name == 'grid_eulerian':
        return GridOutput(out.output_dir, out.base_filename, config.grid.Lbox,
                          output_type=OutputType.FIELD_EULERIAN)
    if name == 'nyx':
        return NyxOutput(out.output_dir, out.base_filename, config.grid.Lbox)
    raise ConfigurationError(f"Unknown output format: {name}")
