"""Constrained minimization with a primal-dual interior point method, used for the
minimization of the Gibbs energy of chemical systems."""

__all__ = []

from . import interior_point, optimum_state
from .interior_point import *
from .optimum_state import *

__all__.extend(optimum_state.__all__)
__all__.extend(interior_point.__all__)
