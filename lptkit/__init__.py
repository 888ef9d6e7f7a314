"""
LPTKit: a JAX-accelerated toolkit for generating cosmological initial
conditions with Lagrangian perturbation theory up to third order.

Modules:
- lptkit.api: Simulation entry points (LPTSimulation, SimulationFactory)
- lptkit.grid: Spectral grids and Hessian-product convolutions
- lptkit.lpt: LPT potentials, field synthesis and the per-species assembler
- lptkit.cosmology: Cosmological parameters, power spectra and growth functions
- lptkit.services: Noise generation and output sinks
- lptkit.util: Logging and timing utilities
"""
from .api import LPTSimulation, SimulationFactory, generate_initial_conditions
from .core.config import SimulationConfig
from .cosmology import CosmologyService, CosmologicalParameters, PowerSpectrum
from .grid import SpectralGrid, make_convolver
from .lpt import LPTAssembler

__version__ = "1.0.0"

__all__ = [
    'LPTSimulation',
    'SimulationFactory',
    'generate_initial_conditions',
    'SimulationConfig',
    'CosmologyService',
    'CosmologicalParameters',
    'PowerSpectrum',
    'SpectralGrid',
    'make_convolver',
    'LPTAssembler'
]
