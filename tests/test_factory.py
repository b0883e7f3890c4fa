import numpy as np
import pytest

from agesir.errors import InvalidParameterError, ModelConstructionError
from agesir.factory import (
    create_age_sir_model,
    create_initial_sepaihrd_state,
    create_initial_sir_state,
)


def test_create_model():
    model = create_age_sir_model([100.0, 200.0, 300.0], np.eye(3), [0.1, 0.2, 0.3], 0.5, 1.5)
    assert model.num_age_classes == 3
    assert model.transmissibility == 0.5
    assert model.contact_scale_factor == 1.5
    np.testing.assert_allclose(model.population_sizes, [100.0, 200.0, 300.0])
    np.testing.assert_allclose(model.recovery_rate, [0.1, 0.2, 0.3])


def test_create_model_rejects_bad_dimensions():
    with pytest.raises(ModelConstructionError):
        create_age_sir_model([100.0, 200.0], np.eye(3), [0.1, 0.2], 0.5, 1.0)


def test_create_model_wraps_conversion_errors():
    with pytest.raises(ModelConstructionError):
        create_age_sir_model(["abc"], [[1.0]], [0.1], 0.5, 1.0)


def test_create_model_negative_q():
    with pytest.raises(ModelConstructionError):
        create_age_sir_model([100.0], [[1.0]], [0.1], -0.5, 1.0)


def test_sir_state_layout():
    S0, I0, R0 = [10.0, 20.0], [1.0, 2.0], [0.0, 3.0]
    state = create_initial_sir_state(S0, I0, R0)
    assert state.shape == (6,)
    np.testing.assert_allclose(state[:2], S0)
    np.testing.assert_allclose(state[2:4], I0)
    np.testing.assert_allclose(state[4:], R0)


def test_sir_state_size_mismatch():
    with pytest.raises(InvalidParameterError):
        create_initial_sir_state([1.0, 2.0], [1.0], [0.0, 0.0])


def test_sir_state_empty():
    with pytest.raises(InvalidParameterError):
        create_initial_sir_state([], [], [])


def test_sir_state_negative():
    with pytest.raises(InvalidParameterError):
        create_initial_sir_state([1.0], [-1.0], [0.0])


def test_sepaihrd_state_layout():
    parts = [[float(k), float(k) + 0.5] for k in range(9)]
    state = create_initial_sepaihrd_state(*parts)
    assert state.shape == (18,)
    for k, part in enumerate(parts):
        np.testing.assert_allclose(state[2 * k:2 * k + 2], part)


def test_sepaihrd_state_mismatch():
    parts = [[1.0, 2.0]] * 8 + [[1.0]]
    with pytest.raises(InvalidParameterError):
        create_initial_sepaihrd_state(*parts)


def test_sepaihrd_state_negative():
    parts = [[1.0]] * 9
    parts[5] = [-2.0]
    with pytest.raises(InvalidParameterError):
        create_initial_sepaihrd_state(*parts)


def test_model_accepts_factory_state():
    model = create_age_sir_model([100.0, 100.0], np.ones((2, 2)), [0.1, 0.1], 0.3, 1.0)
    state = create_initial_sir_state([90.0, 95.0], [10.0, 5.0], [0.0, 0.0])
    d = model(state, 0.0)
    assert d.sum() == pytest.approx(0.0, abs=1e-9)