"""
Spectral grids and the convolution engine.
"""

from .spectral_grid import SpectralGrid, ComplexSpectralGrid, Representation
from .convolution import Combinator, Convolver, NaiveConvolver, OrszagConvolver, make_convolver

__all__ = [
    'SpectralGrid',
    'ComplexSpectralGrid',
    'Representation',
    'Combinator',
    'Convolver',
    'NaiveConvolver',
    'OrszagConvolver',
    'make_convolver'
]
