"""   GeoReact.

Root directory for the GeoReact package. Contains the following sub-packages:

chemistry: Species, phases, chemical systems, thermodynamic models of water, mixtures
    and reactions.

optimization: Primal-dual interior point solver for bound and equality constrained
    minimization problems.

equilibrium: Chemical equilibrium by Gibbs energy minimization, including inverse
    problems with titrants.

kinetics: Time integration of kinetically controlled reactions.

field: Batch chemistry over many points of a spatial field.

utils: Constants, types and logging.


isort:skip_file

"""

import os
from pathlib import Path
import configparser


__version__ = "0.3.0"

# Try to read the config file from the directory where python process was launched
try:
    cwd = Path(os.getcwd())
    pth = cwd / Path("georeact.cfg")
    cfg = configparser.ConfigParser()
    cfg.read(pth)
    config = dict(cfg)
except (OSError, configparser.Error):
    # the assumption is that no configurations are given
    config = {}

# ------------------------------------
# Simplified namespaces. Classes and functions a user is commonly exposed to have a
# shortcut here.

from georeact.utils.common_constants import *
from georeact.utils.georeact_types import *
from georeact.utils.logging import time_logger

from georeact import chemistry
from georeact.chemistry import *

from georeact import optimization
from georeact.optimization import (
    OptimumOptions,
    OptimumProblem,
    OptimumResult,
    OptimumState,
    OptimumStatus,
)

from georeact import equilibrium
from georeact.equilibrium import (
    EquilibriumProblem,
    EquilibriumInverseProblem,
    EquilibriumOptions,
    EquilibriumSolver,
    EquilibriumResult,
    EquilibriumSensitivity,
    equilibrate,
)

from georeact import kinetics
from georeact.kinetics import KineticOptions, KineticResult, KineticSolver

from georeact import field
from georeact.field import ChemicalField, ChemicalSolver
