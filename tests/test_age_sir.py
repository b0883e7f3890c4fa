import numpy as np
import pytest

from agesir.age_sir import AgeSIRModel
from agesir.errors import InterventionError, InvalidParameterError, ModelConstructionError


@pytest.fixture
def model():
    N = [1000.0, 2000.0]
    C = [[2.0, 1.0], [1.0, 3.0]]
    gamma = [0.1, 0.2]
    return AgeSIRModel(N, C, gamma, 0.4, 2.0)


def test_state_layout(model):
    assert model.num_age_classes == 2
    assert model.state_size == 6
    assert model.state_names == ["S0", "S1", "I0", "I1", "R0", "R1"]


def test_current_matrix_is_scaled_baseline(model):
    np.testing.assert_allclose(model.current_contact_matrix, 2.0 * model.baseline_contact_matrix)


def test_derivatives_conserve_population(model):
    state = [900.0, 1900.0, 100.0, 50.0, 0.0, 50.0]
    d = model.compute_derivatives(state, 0.0)
    assert d.shape == (6,)
    assert d.sum() == pytest.approx(0.0, abs=1e-9)
    assert (d[:2] < 0).all()


def test_call_matches_compute(model):
    state = [900.0, 1900.0, 100.0, 50.0, 0.0, 50.0]
    np.testing.assert_allclose(model(state, 1.0), model.compute_derivatives(state, 1.0))


def test_no_infection_means_no_change(model):
    d = model.compute_derivatives([1000.0, 2000.0, 0.0, 0.0, 0.0, 0.0], 0.0)
    np.testing.assert_allclose(d, np.zeros(6))


def test_pure_recovery(model):
    d = model.compute_derivatives([0.0, 0.0, 10.0, 20.0, 0.0, 0.0], 0.0)
    np.testing.assert_allclose(d[:2], 0.0)
    np.testing.assert_allclose(d[4:], -d[2:4])
    assert (d[4:] > 0).all()


def test_wrong_state_size(model):
    with pytest.raises(InvalidParameterError):
        model.compute_derivatives([1.0, 2.0, 3.0], 0.0)


def test_contact_reduction(model):
    model.apply_intervention("contact_reduction", 5.0, [0.5])
    assert model.contact_scale_factor == pytest.approx(2.0 * 0.5)
    np.testing.assert_allclose(model.current_contact_matrix, model.baseline_contact_matrix)


def test_lockdown_zero_stops_infection(model):
    model.apply_intervention("lockdown", 0.0, [0.0])
    d = model.compute_derivatives([900.0, 1900.0, 100.0, 50.0, 0.0, 50.0], 0.0)
    np.testing.assert_allclose(d[:2], 0.0)


def test_mask_mandate(model):
    model.apply_intervention("mask_mandate", 1.0, [0.25])
    assert model.transmissibility == pytest.approx(0.4 * 0.75)


def test_transmission_reduction_full(model):
    model.apply_intervention("transmission_reduction", 1.0, [1.0])
    assert model.transmissibility == 0.0


@pytest.mark.parametrize(
    "name, params",
    [
        ("contact_reduction", [0.5, 0.5]),
        ("social_distancing", [-0.1]),
        ("mask_mandate", [1.5]),
        ("transmission_reduction", [-0.2]),
        ("vaccination", [0.5]),
    ],
)
def test_invalid_interventions(model, name, params):
    with pytest.raises(InterventionError):
        model.apply_intervention(name, 0.0, params)


def test_reset_restores_baseline(model):
    model.apply_intervention("lockdown", 0.0, [0.3])
    model.apply_intervention("mask_mandate", 0.0, [0.5])
    model.reset()
    assert model.transmissibility == 0.4
    assert model.contact_scale_factor == 2.0
    np.testing.assert_allclose(model.current_contact_matrix, 2.0 * model.baseline_contact_matrix)


def test_setters(model):
    model.recovery_rate = [0.3, 0.4]
    np.testing.assert_allclose(model.recovery_rate, [0.3, 0.4])
    model.transmissibility = 0.9
    assert model.transmissibility == 0.9
    model.contact_scale_factor = 3.0
    np.testing.assert_allclose(model.current_contact_matrix, 3.0 * model.baseline_contact_matrix)


def test_setter_errors_leave_model_unchanged(model):
    with pytest.raises(InvalidParameterError):
        model.recovery_rate = [0.1]
    with pytest.raises(InvalidParameterError):
        model.recovery_rate = [0.1, -0.1]
    np.testing.assert_allclose(model.recovery_rate, [0.1, 0.2])
    with pytest.raises(InvalidParameterError):
        model.transmissibility = -1.0
    assert model.transmissibility == 0.4
    with pytest.raises(InvalidParameterError):
        model.contact_scale_factor = -1.0
    assert model.contact_scale_factor == 2.0
    np.testing.assert_allclose(model.current_contact_matrix, 2.0 * model.baseline_contact_matrix)


def test_returned_arrays_are_copies(model):
    pops = model.population_sizes
    pops[0] = -5.0
    assert model.population_sizes[0] == 1000.0


@pytest.mark.parametrize(
    "N, C, gamma, q, scale",
    [
        ([], [], [], 0.1, 1.0),
        ([1.0, 2.0], [[1.0]], [0.1, 0.1], 0.1, 1.0),
        ([1.0, 2.0], [[1.0, 0.0], [0.0, 1.0]], [0.1], 0.1, 1.0),
        ([-1.0, 2.0], [[1.0, 0.0], [0.0, 1.0]], [0.1, 0.1], 0.1, 1.0),
        ([1.0, 2.0], [[1.0, 0.0], [0.0, 1.0]], [0.1, 0.1], -0.1, 1.0),
        ([1.0, 2.0], [[1.0, 0.0], [0.0, 1.0]], [0.1, 0.1], 0.1, -1.0),
        ([1.0, 2.0], [[1.0, -1.0], [0.0, 1.0]], [0.1, 0.1], 0.1, 1.0),
    ],
)
def test_construction_errors(N, C, gamma, q, scale):
    with pytest.raises(ModelConstructionError):
        AgeSIRModel(N, C, gamma, q, scale)