"""Tests of the mixtures and activity models of phases."""

from __future__ import annotations

import numpy as np
import pytest

import georeact as gr
from georeact.chemistry.mixtures import (
    AqueousMixture,
    GaseousMixture,
    aqueous_activity_debye_huckel,
    aqueous_activity_ideal,
    molar_fractions,
)

AQUEOUS = ["H2O(l)", "H+", "OH-", "Na+", "Cl-", "NaCl(aq)"]


@pytest.fixture
def mixture() -> AqueousMixture:
    return AqueousMixture(gr.load_species(AQUEOUS))


@pytest.fixture
def amounts() -> np.ndarray:
    return np.array([55.508, 1e-3, 1e-3, 0.1, 0.1, 0.01])


def _fd_jacobian(f, n: np.ndarray, h: float = 1e-5) -> np.ndarray:
    """Central finite differences of a vector function, relative step."""
    cols = []
    for j in range(n.size):
        dn = np.zeros_like(n)
        dn[j] = h * abs(n[j])
        cols.append((f(n + dn) - f(n - dn)) / (2 * dn[j]))
    return np.column_stack(cols)


def test_classification(mixture: AqueousMixture):
    assert mixture.index_water() == 0
    assert mixture.num_neutral_species == 2
    assert mixture.num_charged_species == 4
    assert mixture.num_cations == 2
    assert mixture.num_anions == 2
    assert (
        mixture.num_neutral_species + mixture.num_charged_species
        == mixture.num_species
    )
    assert mixture.num_charged_species == mixture.num_cations + mixture.num_anions
    assert mixture.names_cations() == ["H+", "Na+"]
    assert mixture.names_anions() == ["OH-", "Cl-"]

    # lookups of unknown names return the size of the category
    assert mixture.index_cation("Ca+2") == mixture.num_cations
    assert mixture.index_neutral_species_any(["CO2(aq)", "NaCl(aq)"]) == 1


def test_inferred_dissociation(mixture: AqueousMixture):
    D = mixture.dissociation_matrix()
    assert D.shape == (2, 4)
    # water does not dissociate, NaCl(aq) gives Na+ and Cl-
    assert np.allclose(D[0], 0.0)
    assert np.allclose(D[1], [0.0, 0.0, 1.0, 1.0])


def test_mixture_requires_water():
    with pytest.raises(gr.ChemicalModellingError):
        AqueousMixture(gr.load_species(["Na+", "Cl-"]))


def test_molalities(mixture: AqueousMixture, amounts: np.ndarray):
    m = mixture.molalities(amounts)
    kgw = gr.WATER_MOLAR_MASS * amounts[0]
    assert np.allclose(m.val, amounts / kgw)
    expected = _fd_jacobian(lambda n: n / (gr.WATER_MOLAR_MASS * n[0]), amounts)
    assert np.allclose(m.ddn, expected)

    # no water, no molalities
    n = amounts.copy()
    n[0] = 0.0
    assert np.allclose(mixture.molalities(n).val, 0.0)


def test_state_and_ionic_strengths(mixture: AqueousMixture, amounts: np.ndarray):
    state = mixture.state(298.15, 1e5, amounts)
    again = mixture.state(298.15, 1e5, amounts)
    # repeated evaluations are bit-identical
    for name in ("x", "m", "ms", "Ie", "Is"):
        first, second = getattr(state, name), getattr(again, name)
        for attr in ("val", "ddT", "ddP", "ddn"):
            assert np.array_equal(getattr(first, attr), getattr(second, attr))

    m = state.m.val
    assert np.isclose(state.Ie.val, 0.5 * (m[1] + m[2] + m[3] + m[4]))
    # the complex NaCl(aq) adds to the stoichiometric molalities of Na+ and Cl-
    assert np.allclose(state.ms.val, [m[1], m[2], m[3] + m[5], m[4] + m[5]])
    assert state.Is.val > state.Ie.val
    assert np.isclose(state.x.val.sum(), 1.0)


def test_molar_fractions():
    x = molar_fractions(np.array([1.0, 3.0]))
    assert np.allclose(x.val, [0.25, 0.75])
    assert np.allclose(x.ddn, [[0.75 / 4, -0.25 / 4], [-0.75 / 4, 0.25 / 4]])

    # a single species is pure, independently of its amount
    x = molar_fractions(np.array([0.0]))
    assert np.allclose(x.val, 1.0)
    assert np.allclose(x.ddn, 0.0)


def test_ideal_aqueous_activities(mixture: AqueousMixture, amounts: np.ndarray):
    ln_a = aqueous_activity_ideal(mixture)(mixture.state(298.15, 1e5, amounts))
    m = mixture.molalities(amounts).val
    assert np.allclose(ln_a.val[1:], np.log(m[1:]))
    assert np.isclose(ln_a.val[0], np.log(amounts[0] / amounts.sum()))


def test_debye_huckel_activities(mixture: AqueousMixture, amounts: np.ndarray):
    model = aqueous_activity_debye_huckel(mixture)
    ln_a = model(mixture.state(298.15, 1e5, amounts))

    m = mixture.molalities(amounts).val
    I = 0.5 * (m[1] + m[2] + m[3] + m[4])
    sqrtI = np.sqrt(I)
    log10_g = -0.5114 * sqrtI / (1.0 + 0.3288 * 4.0 * sqrtI) + 0.041 * I
    ln_g = np.log(10.0) * log10_g

    # monovalent ions share the activity coefficient, neutral solutes are ideal
    assert np.allclose(ln_a.val[1:5], np.log(m[1:5]) + ln_g)
    assert np.isclose(ln_a.val[5], np.log(m[5]))
    assert np.isclose(ln_a.val[0], -gr.WATER_MOLAR_MASS * m[1:].sum())

    def ln_a_of(n: np.ndarray) -> np.ndarray:
        return model(mixture.state(298.15, 1e5, n)).val

    assert np.allclose(ln_a.ddn, _fd_jacobian(ln_a_of, amounts), rtol=1e-5, atol=1e-6)


def test_ideal_gas_activities():
    species = gr.load_species(["CO2(g)", "H2O(g)"])
    phase = gr.Phase.gaseous(species)
    n = np.array([1.0, 3.0])
    ln_a = phase.ln_activities(298.15, 2e5, n)
    assert np.allclose(ln_a.val, np.log([0.25 * 2.0, 0.75 * 2.0]))
    assert np.allclose(ln_a.ddP, 1.0 / 2e5)
    assert isinstance(phase.mixture, GaseousMixture)


def test_pure_mineral_activity():
    phase = gr.Phase.mineral(gr.Database().species("Calcite"))
    assert phase.name == "Calcite"
    ln_a = phase.ln_activities(298.15, 1e5, np.array([2.5]))
    assert np.allclose(ln_a.val, 0.0)
    assert np.allclose(ln_a.ddn, 0.0)


def test_unknown_activity_model():
    with pytest.raises(gr.ChemicalModellingError):
        gr.Phase.aqueous(gr.load_species(AQUEOUS), activity_model="pitzer")
