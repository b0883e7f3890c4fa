import numpy as np
import pytest

from agesir.pso import ParticleSwarmOptimizer


class BoxManager:
    def __init__(self, lower, upper):
        self.lower = list(lower)
        self.upper = list(upper)

    @property
    def parameter_count(self):
        return len(self.lower)

    def lower_bound_for_index(self, k):
        return self.lower[k]

    def upper_bound_for_index(self, k):
        return self.upper[k]


class Quadratic:
    def __init__(self, target):
        self.target = np.asarray(target, dtype=float)
        self.calls = 0

    def calculate(self, params):
        self.calls += 1
        diff = np.asarray(params, dtype=float) - self.target
        return -float(diff @ diff)


def _run(settings, target=(0.3, -0.2), lower=(-1.0, -1.0), upper=(1.0, 1.0),
         initial=None, seed=1):
    pso = ParticleSwarmOptimizer(seed=seed)
    pso.configure(settings)
    objective = Quadratic(target)
    result = pso.optimize(initial if initial is not None else np.empty(0),
                          objective, BoxManager(lower, upper))
    return result, objective


def test_converges_near_optimum():
    result, _ = _run({"iterations": 60, "swarm_size": 20})
    assert np.allclose(result.best_parameters, [0.3, -0.2], atol=1e-2)


def test_best_value_matches_best_parameters():
    result, objective = _run({"iterations": 20, "swarm_size": 10})
    assert result.best_objective_value == pytest.approx(objective.calculate(result.best_parameters))


def test_result_stays_within_bounds():
    result, _ = _run({"iterations": 30, "swarm_size": 10}, target=(5.0, 5.0))
    assert np.all(result.best_parameters <= 1.0)
    assert np.all(result.best_parameters >= -1.0)
    assert np.allclose(result.best_parameters, [1.0, 1.0], atol=1e-2)


def test_number_of_evaluations():
    _, objective = _run({"iterations": 7, "swarm_size": 5})
    assert objective.calls == 5 + 7 * 5


def test_initial_parameters_are_clipped_and_never_worse():
    initial = np.array([3.0, -0.2])
    result, objective = _run({"iterations": 3, "swarm_size": 4}, initial=initial)
    clipped_value = objective.calculate(np.array([1.0, -0.2]))
    assert result.best_objective_value >= clipped_value


def test_fixed_parameter_does_not_move():
    result, _ = _run({"iterations": 20, "swarm_size": 8},
                     lower=(-1.0, 0.5), upper=(1.0, 0.5))
    assert result.best_parameters[1] == 0.5


def test_lbest_topology_improves():
    result, _ = _run({"iterations": 60, "swarm_size": 15, "use_lbest_topology": 1.0,
                      "lbest_neighborhood_k": 1})
    assert np.allclose(result.best_parameters, [0.3, -0.2], atol=5e-2)


def test_constriction_factor_path():
    result, objective = _run({"iterations": 40, "swarm_size": 15,
                              "use_constriction_factor": 1.0})
    assert result.best_objective_value == pytest.approx(objective.calculate(result.best_parameters))
    assert np.allclose(result.best_parameters, [0.3, -0.2], atol=5e-2)


def test_same_seed_is_reproducible():
    first, _ = _run({"iterations": 10, "swarm_size": 6}, seed=42)
    second, _ = _run({"iterations": 10, "swarm_size": 6}, seed=42)
    assert np.array_equal(first.best_parameters, second.best_parameters)
    assert first.best_objective_value == second.best_objective_value


def test_configure_applies_values():
    pso = ParticleSwarmOptimizer(seed=0)
    pso.configure({"iterations": 12.0, "swarm_size": 7.0, "omega_start": 0.8,
                   "use_lbest_topology": 1.0, "lbest_neighborhood_k": 3.0})
    assert pso.iterations == 12
    assert pso.swarm_size == 7
    assert pso.omega_start == 0.8
    assert pso.use_lbest_topology is True
    assert pso.lbest_neighborhood_k == 3


def test_unknown_and_deprecated_settings_are_ignored():
    pso = ParticleSwarmOptimizer(seed=0)
    before = pso.iterations
    pso.configure({"omega": 0.5, "no_such_setting": 3.0})
    assert pso.iterations == before


@pytest.mark.parametrize("key,value", [
    ("iterations", 0.0),
    ("swarm_size", -1.0),
    ("omega_start", -0.1),
    ("c2_final", -1.0),
    ("report_interval", 0.0),
    ("lbest_neighborhood_k", -1.0),
    ("particle_log_interval", 0.0),
    ("particles_to_log_count", -2.0),
])
def test_invalid_settings_raise(key, value):
    pso = ParticleSwarmOptimizer(seed=0)
    with pytest.raises(ValueError):
        pso.configure({key: value})