"""
Factory for creating simulations with clean interfaces.
"""
from ..core.config import (
    SimulationConfig,
    SimulationParameters,
    OutputConfig,
    GridConfiguration
)
from ..cosmology.parameters import CosmologicalParameters, PowerSpectrum
from .simulation import LPTSimulation

class SimulationFactory:
    """Factory for creating simulations."""

    @staticmethod
    def from_config(config: SimulationConfig, **services) -> LPTSimulation:
        """Create simulation from configuration object."""
        return LPTSimulation(config, **services)

    @staticmethod
    def create_lpt_simulation(
        cosmology_params: CosmologicalParameters,
        power_spectrum: PowerSpectrum,
        grid_config: GridConfiguration,
        **kwargs
    ) -> LPTSimulation:
        """Create an LPT simulation; remaining kwargs fill SimulationParameters and OutputConfig."""
        sim_params = SimulationParameters(**{k: v for k, v in kwargs.items()
                                           if k in SimulationParameters.__dataclass_fields__})
        output_config = OutputConfig(**{k: v for k, v in kwargs.items()
                                      if k in OutputConfig.__dataclass_fields__})

        config = SimulationConfig(
            cosmology=cosmology_params,
            grid=grid_config,
            simulation=sim_params,
            output=output_config,
            power_spectrum=power_spectrum
        )

        return LPTSimulation(config)

    @staticmethod
    def from_kwargs(**kwargs) -> LPTSimulation:
        """Create simulation from parameter-file style kwargs."""
        return LPTSimulation(SimulationConfig.from_kwargs(**kwargs))

    @staticmethod
    def from_ini(path: str) -> LPTSimulation:
        """Create simulation from an INI parameter file."""
        return LPTSimulation(SimulationConfig.from_ini(path))

    @staticmethod
    def from_camb_results(camb_results, **kwargs) -> LPTSimulation:
        """Create simulation with the power spectrum of CAMB results."""
        config = SimulationConfig.from_kwargs(**kwargs)
        config.power_spectrum = PowerSpectrum.from_camb(camb_results)
        return LPTSimulation(config)
