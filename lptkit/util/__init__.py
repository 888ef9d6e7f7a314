"""
Logging, timing and MPI helpers.
"""
