"""Kinetics: time integration of reactions with rate laws, coupled to the equilibrium
of the remaining species."""

__all__ = []

from . import kinetic_solver
from .kinetic_solver import *

__all__.extend(kinetic_solver.__all__)
