"""Mixtures of species in a phase and their activity models.

Mixtures classify their species and compute concentration measures (molar fractions,
molalities, ionic strengths) as derivative-carrying quantities. Activity models map
the state of a mixture to the logarithms of the activities of its species.

"""

__all__ = []

from . import activity, aqueous, gaseous, general, mineral
from .activity import *
from .aqueous import *
from .gaseous import *
from .general import *
from .mineral import *

__all__.extend(general.__all__)
__all__.extend(aqueous.__all__)
__all__.extend(gaseous.__all__)
__all__.extend(mineral.__all__)
__all__.extend(activity.__all__)
