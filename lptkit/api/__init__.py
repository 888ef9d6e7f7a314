"""
High-level API module providing clean interfaces for simulation creation and execution.
"""
from .factory import SimulationFactory
from .simulation import LPTSimulation, generate_initial_conditions, main

__all__ = [
    'SimulationFactory',
    'LPTSimulation',
    'generate_initial_conditions',
    'main'
]
