"""Reactions: equilibrium constants, reaction quotients, rate laws and mineral
mechanisms."""

__all__ = []

from . import mechanism, mineral_reaction, reaction, reaction_system, reaction_utils
from .mechanism import *
from .mineral_reaction import *
from .reaction import *
from .reaction_system import *
from .reaction_utils import *

__all__.extend(reaction_utils.__all__)
__all__.extend(reaction.__all__)
__all__.extend(reaction_system.__all__)
__all__.extend(mechanism.__all__)
__all__.extend(mineral_reaction.__all__)
