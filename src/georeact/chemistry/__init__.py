"""The chemistry subpackage provides the thermodynamic building blocks of chemical
systems: species with standard thermodynamic models, phases with mixture and activity
models, chemical systems and their partitions, and reactions with rate laws.

Quantities depending on temperature, pressure and species amounts carry their partial
derivatives (see :mod:`~georeact.chemistry.states`), which are consumed by the
equilibrium and kinetic solvers.

.. rubric:: Some additional information.

    1. Units are SI units, with amounts in mol. Exceptions are documented, such as
       molalities in mol/kg of water, activation energies in kJ/mol and the
       Debye-Hueckel ion size parameter in Angstrom.
    2. The reference state is 298.15 K and 1e5 Pa
       (:mod:`~georeact.chemistry._core`).
    3. Standard data of species are provided by a database, see
       :class:`~georeact.chemistry.database.Database`.

"""

__all__ = []

from . import (
    _core,
    database,
    elements,
    mixtures,
    partition,
    properties,
    reactions,
    species,
    states,
    system,
    thermo_models,
    utils,
    water,
)
from ._core import *
from .database import *
from .elements import *
from .mixtures import *
from .partition import *
from .properties import *
from .reactions import *
from .species import *
from .states import *
from .system import *
from .thermo_models import *
from .utils import *
from .water import *

__all__.extend(_core.__all__)
__all__.extend(utils.__all__)
__all__.extend(states.__all__)
__all__.extend(elements.__all__)
__all__.extend(thermo_models.__all__)
__all__.extend(species.__all__)
__all__.extend(water.__all__)
__all__.extend(mixtures.__all__)
__all__.extend(properties.__all__)
__all__.extend(system.__all__)
__all__.extend(partition.__all__)
__all__.extend(database.__all__)
__all__.extend(reactions.__all__)
