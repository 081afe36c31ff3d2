"""Batch chemistry over the points of a spatial field: equilibrium and kinetic
computations per point, and fields of porosity, saturations and densities with
derivatives for the coupling with transport."""

__all__ = []

from . import chemical_solver
from .chemical_solver import *

__all__.extend(chemical_solver.__all__)
