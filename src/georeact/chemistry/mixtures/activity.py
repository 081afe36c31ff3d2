"""Activity models of mixtures.

An activity model is created for a mixture and returns a callable, which maps the
state of the mixture to the natural logarithms of the activities of its species, as a
:class:`~georeact.chemistry.states.ChemicalVector` with derivatives with respect to the
amounts of the species in the mixture.

Standard states:

- aqueous solutes: ideal one molal solution, i.e. ``a_i = gamma_i m_i``,
- water: pure water, ``a_w = x_w`` (ideal) or by the osmotic relation,
- gases: pure ideal gas at :data:`~georeact.chemistry._core.P_REF`,
  i.e. ``a_i = x_i P / P_REF``,
- minerals: pure mineral, i.e. ``a_i = x_i``.

"""

from __future__ import annotations

from typing import Callable

import numpy as np

from .._core import LN10, P_REF, WATER_MOLAR_MASS
from ..states import ChemicalVector, ThermoScalar, log, sqrt
from .aqueous import AqueousMixture, AqueousMixtureState
from .gaseous import GaseousMixture, GaseousMixtureState
from .general import GeneralMixture, MixtureState

__all__ = [
    "aqueous_activity_ideal",
    "aqueous_activity_debye_huckel",
    "gaseous_activity_ideal",
    "mineral_activity_ideal",
    "ACTIVITY_MODELS",
]

DEBYE_HUCKEL_A: float = 0.5114
"""Debye-Hueckel parameter ``A`` of water at 25 C in ``[(kg / mol)^0.5]``."""

DEBYE_HUCKEL_B: float = 0.3288
"""Debye-Hueckel parameter ``B`` of water at 25 C in ``[(kg / mol)^0.5 / Angstrom]``."""


def aqueous_activity_ideal(
    mixture: AqueousMixture,
) -> Callable[[AqueousMixtureState], ChemicalVector]:
    """Ideal aqueous solution: ``ln a_i = ln m_i`` for solutes and ``ln a_w = ln x_w``
    for water."""
    iw = mixture.index_water()

    def activity(state: AqueousMixtureState) -> ChemicalVector:
        ln_a = log(state.m)
        ln_a.set_row(iw, log(state.x[iw]))
        return ln_a

    return activity


def aqueous_activity_debye_huckel(
    mixture: AqueousMixture,
    ion_size: float = 4.0,
    bdot: float = 0.041,
    A: float = DEBYE_HUCKEL_A,
    B: float = DEBYE_HUCKEL_B,
) -> Callable[[AqueousMixtureState], ChemicalVector]:
    r"""Extended Debye-Hueckel model (B-dot form) for ions:

    .. math::

        \log_{10}\gamma_i = -\frac{A z_i^2 \sqrt{I}}{1 + B \mathring{a} \sqrt{I}}
        + \dot{b} I,

    with the effective ionic strength ``I``. Neutral solutes are ideal
    (``gamma = 1``). The activity of water follows from the osmotic relation
    ``ln a_w = -M_w sum_i m_i`` over all solutes.

    The parameters ``A`` and ``B`` are those of water at 25 C and are not corrected
    for temperature.

    Parameters:
        mixture: The aqueous mixture.
        ion_size: Ion size parameter in ``[Angstrom]``, the same for all ions.
        bdot: The B-dot parameter in ``[kg / mol]``.
        A: Debye-Hueckel parameter ``A``.
        B: Debye-Hueckel parameter ``B``.

    """
    iw = mixture.index_water()
    ic = mixture.indices_charged_species
    z2 = mixture.charges_charged_species() ** 2
    solutes = np.ones(mixture.num_species)
    solutes[iw] = 0.0

    def activity(state: AqueousMixtureState) -> ChemicalVector:
        ln_a = log(state.m)
        I = state.Ie
        if ic.size > 0 and I.val > 0.0:
            sqrtI = sqrt(I)
            f = sqrtI / (1.0 + B * ion_size * sqrtI)
            ln_g = (-LN10 * A * z2) * f + LN10 * bdot * I
            ln_a.set_rows(ic, ln_a[ic] + ln_g)
        ln_a.set_row(iw, -WATER_MOLAR_MASS * state.m.dot(solutes))
        return ln_a

    return activity


def gaseous_activity_ideal(
    mixture: GaseousMixture,
) -> Callable[[GaseousMixtureState], ChemicalVector]:
    """Ideal gas mixture: ``ln a_i = ln x_i + ln(P / P_REF)``."""

    def activity(state: GaseousMixtureState) -> ChemicalVector:
        ln_p = log(ThermoScalar.pressure(state.P) / P_REF)
        return log(state.x) + ln_p

    return activity


def mineral_activity_ideal(
    mixture: GeneralMixture,
) -> Callable[[MixtureState], ChemicalVector]:
    """Ideal solid solution: ``ln a_i = ln x_i``, zero for pure minerals."""

    def activity(state: MixtureState) -> ChemicalVector:
        return log(state.x)

    return activity


ACTIVITY_MODELS: dict[str, Callable] = {
    "ideal": aqueous_activity_ideal,
    "debye-huckel": aqueous_activity_debye_huckel,
}
"""Aqueous activity models available by name."""
