"""Chemical equilibrium: direct problems (temperature, pressure and element amounts),
inverse problems with titrants and the solver minimizing the Gibbs energy."""

__all__ = []

from . import equilibrium_problem, equilibrium_solver, inverse_problem
from .equilibrium_problem import *
from .equilibrium_solver import *
from .inverse_problem import *

__all__.extend(equilibrium_problem.__all__)
__all__.extend(inverse_problem.__all__)
__all__.extend(equilibrium_solver.__all__)
