"""
Collaborator services: noise source and output sinks.
"""
from .noise_service import NoiseGenerator
from .output_service import OutputPlugin, MemoryOutput, GridOutput, NyxOutput, get_output_plugin

__all__ = [
    'NoiseGenerator',
    'OutputPlugin',
    'MemoryOutput',
    'GridOutput',
    'NyxOutput',
    'get_output_plugin'
]
