"""
Exception classes for lptkit.
"""

class LPTKitError(Exception):
    """Base exception for lptkit."""
    pass

class ConfigurationError(LPTKitError):
    """Configuration validation errors."""
    pass

class SimulationError(LPTKitError):
    """Simulation execution errors."""
    pass

class GridError(LPTKitError):
    """Grid operation errors."""
    pass

class RepresentationError(GridError):
    """Grid accessed or transformed in the wrong (real/Fourier) representation."""
    pass

class ShapeMismatchError(GridError):
    """Grids combined with different shapes or box lengths."""
    pass
