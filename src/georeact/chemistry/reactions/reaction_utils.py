"""Utility functions evaluating equilibrium constants, reaction quotients and rates of
reactions.

The functions accept any reaction-like object with attributes ``indices`` and
``stoichiometries`` (see :class:`~georeact.chemistry.reactions.reaction.Reaction`).

"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from ...utils.georeact_types import ThermoFunction
from .._core import LN10, R_IDEAL_MOL
from ..states import ChemicalScalar, ChemicalVector, ThermoScalar, exp, log
from ..system import ChemicalSystem

if TYPE_CHECKING:
    from .reaction import Reaction

__all__ = [
    "equilibrium_constant",
    "reaction_quotient",
    "rate",
    "saturation_ratio",
    "saturation_index",
]


def equilibrium_constant(system: ChemicalSystem, reaction: Reaction) -> ThermoFunction:
    r"""Returns the equilibrium constant of a reaction as a function of temperature and
    pressure:

    .. math::

        K(T, P) = \exp\left(-\frac{\sum_i \nu_i \mu^0_i(T, P)}{R T}\right).

    The returned function captures the standard models of the reacting species only.

    """
    models = [system.species[i].thermo for i in reaction.indices]
    nu = np.array(reaction.stoichiometries, dtype=float)

    def K(T: float, P: float) -> ThermoScalar:
        dG = ThermoScalar()
        for nu_i, model in zip(nu, models):
            dG = dG + nu_i * model.gibbs_energy(T, P)
        return exp(-dG / (R_IDEAL_MOL * ThermoScalar.temperature(T)))

    return K


def reaction_quotient(reaction: Reaction, a: ChemicalVector) -> ChemicalScalar:
    r"""Reaction quotient :math:`Q = \prod_i a_i^{\nu_i}` over the reacting species.

    The derivatives are accumulated over the rows of the reacting species only:
    ``dQ = sum_i (dQ / da_i) da_i`` with ``dQ / da_i = nu_i a_i^(nu_i - 1)
    prod_(k != i) a_k^nu_k``, which is finite also for species with zero activity.

    Parameters:
        reaction: The reaction.
        a: Activities of all species of the system, with derivatives.

    """
    idx = np.asarray(reaction.indices, dtype=int)
    nu = np.asarray(reaction.stoichiometries, dtype=float)
    ai = a.val[idx]

    with np.errstate(divide="ignore", invalid="ignore"):
        factors = ai**nu
        Q = float(np.prod(factors))
        dQ_da = np.empty_like(ai)
        for k in range(ai.size):
            others = np.prod(np.delete(factors, k))
            dQ_da[k] = nu[k] * ai[k] ** (nu[k] - 1.0) * others

    return ChemicalScalar(
        Q,
        float(dQ_da @ a.ddT[idx]),
        float(dQ_da @ a.ddP[idx]),
        dQ_da @ a.ddn[idx],
    )


def rate(
    reaction: Reaction, T: float, P: float, n: np.ndarray, a: ChemicalVector
) -> ChemicalScalar:
    """Rate of a reaction in ``[mol / s]``, delegated to its rate law."""
    return reaction.rate(T, P, n, a)


def saturation_ratio(
    reaction: Reaction, T: float, P: float, a: ChemicalVector
) -> ChemicalScalar:
    """Saturation ratio ``Omega = Q / K`` of a reaction."""
    return reaction_quotient(reaction, a) / reaction.equilibrium_constant(T, P)


def saturation_index(
    reaction: Reaction, T: float, P: float, a: ChemicalVector
) -> ChemicalScalar:
    """Saturation index ``log10(Q / K)``, zero at equilibrium."""
    return log(saturation_ratio(reaction, T, P, a)) / LN10
