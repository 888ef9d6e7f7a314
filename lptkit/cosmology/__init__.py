"""
Cosmology module for cosmological parameters, power spectra, and growth factors.
"""

from .parameters import CosmologicalParameters, PowerSpectrum
from .growth import CosmologyService

__all__ = [
    'CosmologicalParameters',
    'PowerSpectrum',
    'CosmologyService'
]
