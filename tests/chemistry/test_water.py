"""Tests of the equations of state of pure water."""

from __future__ import annotations

import numpy as np
import pytest

from georeact.chemistry.water import (
    WaterModel,
    compute_water_thermo_state,
    water_density,
)

CONDITIONS = [(298.15, 1.0e5), (350.0, 1.0e6), (450.0, 5.0e6)]


def test_iapws_density_at_ambient_conditions():
    """Reference value of IAPWS-95 at 25 degrees Celsius and 1 bar."""
    rho = water_density(298.15, 1.0e5, WaterModel.WAGNER_PRUSS)
    assert np.isclose(rho, 997.05, atol=0.05)


def test_unknown_water_model():
    with pytest.raises(ValueError):
        water_density(298.15, 1.0e5, "ideal")


@pytest.mark.parametrize("model", ["wagner-pruss", "peng-robinson"])
@pytest.mark.parametrize("T, P", CONDITIONS)
def test_density_is_root_of_pressure(model: str, T: float, P: float):
    """The state is evaluated at the density matching the given pressure, on a
    mechanically stable branch."""
    state = compute_water_thermo_state(T, P, model)
    assert state.temperature == T
    assert state.pressure == P
    assert state.pressure_D > 0.0
    assert np.isclose(state.volume * state.density, 1.0)
    assert np.isclose(state.density, water_density(T, P, model), rtol=1e-12)


@pytest.mark.parametrize("model", ["wagner-pruss", "peng-robinson"])
@pytest.mark.parametrize("T, P", CONDITIONS)
def test_density_derivatives(model: str, T: float, P: float):
    """Compares the analytical derivatives of the density with central finite
    differences of the density."""
    hT = 1e-2
    hP = 1e4
    state = compute_water_thermo_state(T, P, model)

    rho_T = (water_density(T + hT, P, model) - water_density(T - hT, P, model)) / (
        2 * hT
    )
    rho_P = (water_density(T, P + hP, model) - water_density(T, P - hP, model)) / (
        2 * hP
    )
    assert np.isclose(state.density_T, rho_T, rtol=1e-4)
    assert np.isclose(state.density_P, rho_P, rtol=1e-4)

    # liquid water at these conditions expands when heated and is compressible
    assert state.density_T < 0.0
    assert state.density_P > 0.0


@pytest.mark.parametrize("model", ["wagner-pruss", "peng-robinson"])
@pytest.mark.parametrize("T, P", CONDITIONS)
def test_second_density_derivatives(model: str, T: float, P: float):
    """Second derivatives against finite differences of the first derivatives."""
    hT = 1e-2
    hP = 1e4
    state = compute_water_thermo_state(T, P, model)
    plus_T = compute_water_thermo_state(T + hT, P, model)
    minus_T = compute_water_thermo_state(T - hT, P, model)
    plus_P = compute_water_thermo_state(T, P + hP, model)
    minus_P = compute_water_thermo_state(T, P - hP, model)

    rho_TT = (plus_T.density_T - minus_T.density_T) / (2 * hT)
    rho_TP = (plus_P.density_T - minus_P.density_T) / (2 * hP)
    rho_PP = (plus_P.density_P - minus_P.density_P) / (2 * hP)

    assert np.isclose(state.density_TT, rho_TT, rtol=1e-3)
    assert np.isclose(state.density_TP, rho_TP, rtol=1e-3)
    assert np.isclose(state.density_PP, rho_PP, rtol=1e-3, atol=1e-20)


@pytest.mark.parametrize("model", ["wagner-pruss", "peng-robinson"])
def test_thermodynamic_identities(model: str):
    T, P = 320.0, 2.0e6
    state = compute_water_thermo_state(T, P, model)
    assert np.isclose(state.enthalpy, state.internal_energy + P / state.density)
    assert np.isclose(state.gibbs, state.enthalpy - T * state.entropy)
    assert state.cp > state.cv > 0.0
