"""Tests of reactions, reaction quotients, mineral mechanisms and mineral rate laws."""

from __future__ import annotations

import logging

import numpy as np
import pytest

import georeact as gr
from georeact.chemistry.reactions import (
    MineralCatalyst,
    MineralMechanism,
    MineralReaction,
    MissingUnitError,
    Reaction,
    ReactionSystem,
    UnitConversionError,
    UnknownMechanismOptionError,
    parse_reaction_equation,
    reaction_quotient,
    saturation_index,
)

AQUEOUS = ["H2O(l)", "H+", "OH-", "Ca+2", "CO3-2", "HCO3-", "CO2(aq)"]


@pytest.fixture(scope="module")
def system() -> gr.ChemicalSystem:
    db = gr.Database()
    return gr.ChemicalSystem(
        [
            gr.Phase.aqueous(db.species_list(AQUEOUS)),
            gr.Phase.mineral(db.species("Calcite")),
            gr.Phase.mineral(db.species("Aragonite")),
        ]
    )


def test_parse_reaction_equation():
    nu = parse_reaction_equation("CO2(g) + H2O(l) = H+ + HCO3-")
    assert nu == {"CO2(g)": -1.0, "H2O(l)": -1.0, "H+": 1.0, "HCO3-": 1.0}

    nu = parse_reaction_equation("2*H+ + CO3-2 = CO2(aq) + H2O(l)")
    assert nu["H+"] == -2.0
    assert nu["CO3-2"] == -1.0

    for equation in ["A = B = C", "A + A = B", "A B"]:
        with pytest.raises(gr.ChemicalModellingError):
            parse_reaction_equation(equation)


def test_reaction_from_equation(system: gr.ChemicalSystem):
    reaction = Reaction.from_equation(system, "2*H+ + CO3-2 = CO2(aq) + H2O(l)")
    assert reaction.name == "2*H+ + CO3-2 = CO2(aq) + H2O(l)"
    assert reaction.num_species == 4
    assert reaction.stoichiometry("H+") == -2.0
    assert reaction.stoichiometry("Calcite") == 0.0
    assert reaction.contains_species("CO2(aq)")
    assert np.array_equal(reaction.indices, [1, 4, 6, 0])

    with pytest.raises(gr.SpeciesNotFoundError):
        Reaction.from_equation(system, "Halite = Na+ + Cl-")
    with pytest.raises(gr.ChemicalModellingError):
        reaction.rate(298.15, 1e5, np.ones(9), gr.ChemicalVector.zeros(9, 9))


def test_unbalanced_reaction_warns(system: gr.ChemicalSystem, caplog):
    with caplog.at_level(logging.WARNING):
        Reaction.from_equation(system, "Calcite = Ca+2")
    assert "not balanced" in caplog.text


def test_equilibrium_constant(system: gr.ChemicalSystem):
    reaction = Reaction.from_equation(system, "Calcite = Aragonite")
    T = 298.15
    K = reaction.equilibrium_constant(T, 1e5)
    assert np.isclose(K.val, np.exp(-1007.0 / (gr.R_IDEAL_MOL * T)))

    h = 1e-3
    dK = (
        reaction.equilibrium_constant(T + h, 1e5).val
        - reaction.equilibrium_constant(T - h, 1e5).val
    ) / (2 * h)
    assert np.isclose(K.ddT, dK, rtol=1e-6)

    # calcite dissolution, log10 K of about -8.3
    dissolution = Reaction.from_equation(system, "Calcite = Ca+2 + CO3-2")
    logK = np.log10(dissolution.equilibrium_constant(T, 1e5).val)
    assert -8.5 < logK < -8.1


def test_reaction_quotient(system: gr.ChemicalSystem):
    reaction = Reaction.from_equation(system, "2*H+ + CO3-2 = CO2(aq) + H2O(l)")
    values = np.ones(9)
    values[1] = 2.0  # H+
    values[4] = 3.0  # CO3-2
    values[6] = 2.0  # CO2(aq)
    a = gr.ChemicalVector.variables(values)

    Q = reaction_quotient(reaction, a)
    assert np.isclose(Q.val, 1.0 / 6.0)
    expected = np.zeros(9)
    expected[0] = 1.0 / 6.0
    expected[1] = -2.0 * Q.val / 2.0
    expected[4] = -Q.val / 3.0
    expected[6] = Q.val / 2.0
    assert np.allclose(Q.ddn, expected)

    # zero activity of a product gives a finite derivative
    dissolution = Reaction.from_equation(system, "Calcite = Ca+2 + CO3-2")
    values = np.ones(9)
    values[4] = 0.0
    Q = reaction_quotient(dissolution, gr.ChemicalVector.variables(values))
    assert Q.val == 0.0
    assert np.isclose(Q.ddn[4], 1.0)
    assert np.all(np.isfinite(Q.ddn))

    # saturation index is zero at equilibrium
    K = dissolution.equilibrium_constant(298.15, 1e5).val
    values = np.ones(9)
    values[3] = K
    idx = saturation_index(
        dissolution, 298.15, 1e5, gr.ChemicalVector.variables(values)
    )
    assert np.isclose(idx.val, 0.0, atol=1e-12)


def test_reaction_quotient_of_abstract_species():
    """``A + B = C`` with activities 2, 3 and 1."""
    reaction = Reaction(("A", "B", "C"), [-1.0, -1.0, 1.0], [0, 1, 2])
    a = gr.ChemicalVector.variables(np.array([2.0, 3.0, 1.0]))

    Q = reaction_quotient(reaction, a)

    assert np.isclose(Q.val, 1.0 / 6.0)
    # reactants decrease the quotient, products increase it
    assert np.allclose(Q.ddn, [-Q.val / 2.0, -Q.val / 3.0, Q.val])
    assert Q.ddT == 0.0
    assert Q.ddP == 0.0


def test_reaction_system(
system: gr.ChemicalSystem):
    reactions = ReactionSystem(
        system,
        [
            Reaction.from_equation(system, "Calcite = Ca+2 + CO3-2"),
            Reaction.from_equation(system, "Calcite = Aragonite"),
        ],
    )
    assert reactions.num_reactions == 2
    nu = reactions.stoichiometric_matrix
    assert nu.shape == (2, 9)
    assert np.allclose(nu[0], [0, 0, 0, 1, 1, 0, 0, -1, 0])
    assert np.allclose(nu[1], [0, 0, 0, 0, 0, 0, 0, -1, 1])
    assert reactions.equilibrium_constants(298.15, 1e5).val.shape == (2,)


def test_parse_mechanism():
    m = MineralMechanism.from_string("logk=-6 Ea=50 kJ/mol p=1 q=2")
    assert np.isclose(m.kappa, 1e-6)
    assert np.isclose(m.Ea, 50.0)
    assert m.p == 1.0
    assert m.q == 2.0
    assert m.catalysts == []

    m = MineralMechanism.from_string(
        "logk=-5.81 mol/(m2*s), Ea=23.5 kJ/mol, p=1, q=1"
    )
    assert np.isclose(m.kappa, 10.0**-5.81)
    assert np.isclose(m.Ea, 23.5)

    # unit conversions
    m = MineralMechanism.from_string("logk=-5 mol/(cm2*s) Ea=23500 J/mol")
    assert np.isclose(m.kappa, 0.1)
    assert np.isclose(m.Ea, 23.5)


def test_parse_mechanism_catalysts():
    m = MineralMechanism.from_string("logk=-0.30 Ea=14.4 kJ/mol a[H+]=1.0 p[CO2]=0.5")
    assert m.catalysts == [
        MineralCatalyst("H+", "activity", 1.0),
        MineralCatalyst("CO2", "pressure", 0.5),
    ]
    assert MineralCatalyst.from_string("activity[Ca+2]=-0.2") == MineralCatalyst(
        "Ca+2", "activity", -0.2
    )
    with pytest.raises(UnknownMechanismOptionError):
        MineralCatalyst.from_string("b[H+]=1")


@pytest.mark.parametrize(
    "mechanism, error",
    [
        ("logk=-6 Ea=50", MissingUnitError),
        ("logk=-6 Ea=50 m", UnitConversionError),
        ("logk=-6 kJ/mol Ea=50 kJ/mol", UnitConversionError),
        ("logk=-6 Ea=50 kJ/mol foo=1", UnknownMechanismOptionError),
        ("logk=-6 Ea=50 kJ/mol p=1 m", UnknownMechanismOptionError),
        ("logk -6", UnknownMechanismOptionError),
    ],
)
def test_invalid_mechanism(mechanism: str, error: type):
    with pytest.raises(error):
        MineralMechanism.from_string(mechanism)
    # all parsing errors are value errors
    with pytest.raises(ValueError):
        MineralMechanism.from_string(mechanism)


def test_mechanism_setters():
    m = MineralMechanism().set_rate_constant(1e-6).set_activation_energy(45.0)
    m.set_power_p(2.0).set_power_q(0.5).set_catalysts("a[H+]=1")
    assert np.isclose(m.kappa, 1e-6)
    assert np.isclose(m.Ea, 45.0)
    assert (m.p, m.q) == (2.0, 0.5)
    assert m.catalysts == [MineralCatalyst("H+", "activity", 1.0)]


def _calcite_rate(system: gr.ChemicalSystem, **kwargs) -> Reaction:
    calcite = MineralReaction("Calcite", "Calcite = Ca+2 + CO3-2", **kwargs)
    calcite.add_mechanism("logk=-5.81 mol/(m2*s), Ea=23.5 kJ/mol")
    calcite.add_mechanism("logk=-0.30 mol/(m2*s), Ea=14.4 kJ/mol, a[H+]=1.0")
    return calcite.reaction(system)


@pytest.fixture
def amounts() -> np.ndarray:
    # undersaturated with respect to calcite
    return np.array([55.508, 1e-4, 1e-4, 1e-3, 1e-6, 1e-3, 1e-3, 1.0, 0.5])


def test_mineral_rate_derivatives(system: gr.ChemicalSystem, amounts: np.ndarray):
    reaction = _calcite_rate(system, specific_surface_area=10.0)

    def rate(T: float, n: np.ndarray) -> gr.ChemicalScalar:
        a = system.properties(T, 1e5, n).activities
        return reaction.rate(T, 1e5, n, a)

    T = 310.0
    r = rate(T, amounts)
    # dissolution is positive
    assert r.val > 0.0

    fd = np.zeros(amounts.size)
    for j in range(amounts.size):
        dn = np.zeros(amounts.size)
        dn[j] = 1e-6 * amounts[j]
        fd[j] = (rate(T, amounts + dn).val - rate(T, amounts - dn).val) / (2 * dn[j])
    assert np.allclose(r.ddn, fd, rtol=1e-4, atol=1e-9)

    h = 1e-3
    fd_T = (rate(T + h, amounts).val - rate(T - h, amounts).val) / (2 * h)
    assert np.isclose(r.ddT, fd_T, rtol=1e-5)

    # the surface area is proportional to the mass of calcite
    assert np.isclose(r.ddn[7], r.val / amounts[7], rtol=1e-4)


def test_mineral_rate_signs(system: gr.ChemicalSystem, amounts: np.ndarray):
    reaction = _calcite_rate(system, surface_area=2.0)

    a = system.properties(298.15, 1e5, amounts).activities
    r = reaction.rate(298.15, 1e5, amounts, a)
    assert r.val > 0.0
    # a fixed surface area does not depend on the amount of calcite
    assert np.isclose(r.ddn[7], 0.0)

    # supersaturated, precipitation
    n = amounts.copy()
    n[4] = 1e-2
    a = system.properties(298.15, 1e5, n).activities
    assert reaction.rate(298.15, 1e5, n, a).val < 0.0


def test_invalid_mineral_reactions(system: gr.ChemicalSystem):
    with pytest.raises(gr.ChemicalModellingError):
        MineralReaction("Calcite").reaction(system)
    with pytest.raises(gr.ChemicalModellingError):
        MineralReaction("Calcite", "Aragonite = Ca+2 + CO3-2").reaction(system)
    with pytest.raises(gr.SpeciesNotFoundError):
        MineralReaction("Calcite", "Calcite = Ca+2 + CO3-2").add_mechanism(
            "logk=-5 Ea=10 kJ/mol a[Mg+2]=1"
        ).reaction(system)
