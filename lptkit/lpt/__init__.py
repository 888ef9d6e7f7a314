"""
Lagrangian perturbation theory: potentials, field synthesis and the assembler.
"""

from .potentials import lpt_coefficients, allocate_potentials, AXIS_CYCLES
from .synthesis import displacement_field, velocity_field
from .semiclassical import semiclassical_fields
from .assembler import LPTAssembler

__all__ = [
    'lpt_coefficients',
    'allocate_potentials',
    'AXIS_CYCLES',
    'displacement_field',
    'velocity_field',
    'semiclassical_fields',
    'LPTAssembler'
]
