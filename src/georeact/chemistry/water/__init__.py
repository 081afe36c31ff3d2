"""Equations of state of pure water.

The thermodynamic state of water is derived from its specific Helmholtz free energy
as a function of temperature and density. See :mod:`.thermo_state` for the available
models and the derived properties.

"""

__all__ = []

from . import density, helmholtz, thermo_state
from .density import *
from .helmholtz import *
from .thermo_state import *

__all__.extend(density.__all__)
__all__.extend(helmholtz.__all__)
__all__.extend(thermo_state.__all__)
