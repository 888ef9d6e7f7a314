"""
High-level simulation classes providing clean interfaces.
"""
import argparse
import logging
import os
from typing import Callable, Optional, Tuple
import numpy as np

import lptkit.util.log_util as lklogutil
from ..core.config import SimulationConfig
from ..core.data_models import SimulationResult, FluidComponent
from ..core.exceptions import LPTKitError
from ..cosmology import CosmologyService
from ..lpt.assembler import LPTAssembler
from ..services.noise_service import NoiseGenerator
from ..services.output_service import OutputPlugin, MemoryOutput, get_output_plugin

logger = logging.getLogger(__name__)


class LPTSimulation:
    """High-level interface for LPT initial condition runs."""

    def __init__(self, config: SimulationConfig,
                 noise_source=None,
                 cosmology: Optional[CosmologyService] = None,
                 output: Optional[OutputPlugin] = None,
                 phi_function: Optional[Callable] = None,
                 write_input_spectrum: bool = False):
        """Initialize simulation with configuration; collaborators default to the configured ones."""
        self.config = config
        self.noise_source = noise_source
        self.cosmology = cosmology
        self.output = output
        self.phi_function = phi_function
        self.write_input_spectrum = write_input_spectrum
        self._results = None

    def _initialize_services(self):
        """Initialize all required services."""
        self.comm, self.mpiproc, self.nproc = lklogutil.get_mpi_rank()

        if self.noise_source is None:
            self.noise_source = NoiseGenerator(seed=self.config.simulation.seed)
        if self.cosmology is None:
            self.cosmology = CosmologyService(self.config.cosmology, self.config.power_spectrum)
        if self.output is None:
            self.output = get_output_plugin(self.config.output.format, self.config)

    def run(self) -> SimulationResult:
        """Run the complete simulation; failures are logged and re-raised."""
        try:
            self.config.validate()
            self._initialize_services()

            spectrum_path = None
            if self.write_input_spectrum and self.mpiproc == 0:
                os.makedirs(self.config.output.output_dir, exist_ok=True)
                spectrum_path = os.path.join(self.config.output.output_dir, 'input_powerspec.txt')

            assembler = LPTAssembler(
                self.config.grid,
                self.config.simulation,
                self.noise_source,
                self.cosmology,
                self.output,
                phi_function=self.phi_function,
                power_spectrum_path=spectrum_path,
                comm=self.comm,
                mpiproc=self.mpiproc,
            )
            self._results = assembler.run()
            return self._results
        except Exception as e:
            lklogutil.log_wrapper(logger, f"Simulation failed: {e}", level='error')
            raise

    def get_results(self) -> Optional[SimulationResult]:
        """Get simulation results if available."""
        return self._results

    def get_grid_data(self, species: str = 'dm',
                      component: FluidComponent = FluidComponent.DENSITY) -> Optional[np.ndarray]:
        """Get a grid written to an in-memory output, if available."""
        if isinstance(self.output, MemoryOutput):
            return self.output.grids.get(species, {}).get(component)
        return None

    def get_particle_data(self, species: str = 'dm') -> Tuple[Optional[np.ndarray], Optional[np.ndarray]]:
        """Get particle positions and velocities written to an in-memory output, if available."""
        if isinstance(self.output, MemoryOutput) and species in self.output.particles:
            particles = self.output.particles[species]
            return np.asarray(particles.positions), np.asarray(particles.velocities)
        return None, None


def generate_initial_conditions(GridRes: int, BoxLength: float, zstart: float,
                                LPTorder: int = 3, SymplecticPT: bool = False,
                                DoFixing: bool = False, **kwargs) -> LPTSimulation:
    """
    Run entry point: build the configuration from parameter-file keys, run
    it and return the finished simulation.
    """
    config = SimulationConfig.from_kwargs(
        GridRes=GridRes, BoxLength=BoxLength, zstart=zstart, LPTorder=LPTorder,
        SymplecticPT=SymplecticPT, DoFixing=DoFixing, **kwargs
    )
    simulation = LPTSimulation(config)
    simulation.run()
    return simulation


def main(argv=None):
    """Command-line entry point: lptkit <parameter file>."""
    parser = argparse.ArgumentParser(description="Generate LPT cosmological initial conditions.")
    parser.add_argument('parameter_file', help="INI file with [setup], [cosmology], [random] and [output] sections")
    parser.add_argument('--log-level', default='LPTKIT_INFO')
    args = parser.parse_args(argv)

    _, mpiproc, _ = lklogutil.get_mpi_rank()
    lklogutil.setup_logging(args.log_level, mpiproc)

    try:
        config = SimulationConfig.from_ini(args.parameter_file)
        LPTSimulation(config, write_input_spectrum=True).run()
    except LPTKitError as e:
        lklogutil.log_wrapper(logger, f"lptkit failed: {e}", level='error')
        return 1
    return 0
