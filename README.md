# agesir

An age-structured SIR epidemic model for Python, built on NumPy. The package also provides helpers to map calibration vectors onto model parameters and three stochastic maximisers for fitting them.

## Contents

| Module | What it holds |
| --- | --- |
| `agesir.age_sir` | `AgeSIRModel`, an SIR model whose age classes are coupled through a contact matrix |
| `agesir.factory` | `create_age_sir_model`, `create_initial_sir_state`, `create_initial_sepaihrd_state` |
| `agesir.intervention` | `validate_intervention` and `InterventionCallback`, a time-ordered intervention schedule |
| `agesir.parameters` | `SIRParameterManager`, which maps between a parameter vector and the model's `q`, `scale_C_total` and `gamma_<i>` |
| `agesir.hill_climbing` | `HillClimbingOptimizer` and the `OptimizationResult` dataclass |
| `agesir.metropolis` | `MetropolisHastingsSampler` and `save_samples_to_csv` |
| `agesir.pso` | `ParticleSwarmOptimizer` |
| `agesir.errors` | `ModelError` and its subclasses |

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install ".[test]"
```

## The model

The state vector is laid out as `[S_0..S_{n-1}, I_0..I_{n-1}, R_0..R_{n-1}]`. The force of infection on class `i` is `q * sum_j C[i, j] * I_j / N_j`. Here `C` is the baseline contact matrix multiplied by the contact scale factor.

```python
import numpy as np

from agesir.factory import create_age_sir_model, create_initial_sir_state

N = np.array([1000.0, 2000.0])
C = np.array([[2.0, 0.5], [0.5, 1.5]])
gamma = np.array([0.1, 0.1])

model = create_age_sir_model(N, C, gamma, 0.05, 1.0)
state = create_initial_sir_state(N - [10.0, 0.0], [10.0, 0.0], [0.0, 0.0])

dxdt = model.compute_derivatives(state, 0.0)   # the model can also be called: model(state, 0.0)
print(model.state_names)                       # ['S0', 'S1', 'I0', 'I1', 'R0', 'R1']
```

The derivative function has the form `f(state, t)`, so it can be handed to any ODE integrator.

Within an age class with zero population, `I/N` is taken as zero. The force of infection is clipped at zero. A derivative that is negative is set to zero when its compartment is already below `1e-9`.

### Properties

The model has these read-only properties:

- `state_size`
- `state_names`
- `num_age_classes`
- `population_sizes`
- `baseline_contact_matrix`
- `current_contact_matrix`

Three properties can also be assigned:

- `recovery_rate`
- `transmissibility`
- `contact_scale_factor`

Assigned values are validated. Negative values, or a recovery vector of the wrong length, raise `InvalidParameterError`. The model guards its state with a lock, so it can be shared between threads.

### Interventions

```python
model.apply_intervention("contact_reduction", 20.0, [0.7])   # contact scale *= 0.7
model.apply_intervention("mask_mandate", 30.0, [0.2])        # q *= (1 - 0.2)
model.reset()                                                # back to the construction q and scale
```

The recognised interventions are:

- `contact_reduction`, `social_distancing` and `lockdown` take one non-negative factor, which multiplies the contact scale.
- `mask_mandate` and `transmission_reduction` take one factor in `[0, 1]`, which reduces `q` by that fraction.

Anything else raises `InterventionError`.

`InterventionCallback(model)` keeps a schedule sorted by time:

- `add_intervention(time, name, params)` validates the entry with `validate_intervention`. A negative time or bad parameters raise `InvalidParameterError`. Adding an entry moves the applied-time marker to that entry's time.
- `apply_scheduled_interventions(t)` applies every entry whose time lies after the marker and at or before `t`, then sets the marker to `t`. Errors raised by the model are logged and not propagated.
- `reset()` clears the schedule.

The `schedule` and `last_applied_time` properties expose the callback's state.

### Initial states

- `create_initial_sir_state(S0, I0, R0)` concatenates the per-age S, I and R vectors.
- `create_initial_sepaihrd_state(S0, E0, P0, A0, I0, H0, ICU0, R0, D0)` does the same for the nine SEPAIHRD compartments.

Both raise `InvalidParameterError` when the vectors differ in length, are empty, or contain negative values.

## Calibration building blocks

### The parameter manager

`SIRParameterManager(model, names, sigmas)` accepts the names `q`, `scale_C_total` and `gamma_<i>`, where `i` is a valid age index. An unknown name raises `ModelError`.

A missing proposal sigma falls back to a default:

- 0.05 for `q`
- 0.05 for `scale_C_total`
- 0.01 for each `gamma_<i>`

The manager's members are:

- `parameter_names`
- `parameter_count`
- `current_parameters()`
- `update_model_parameters(vec)`
- `apply_constraints(vec)`, which keeps `q ≥ 1e-12` and every other parameter `≥ 0`
- `sigma_for_index(i)`
- `default_sigma(name)`

### The optimisers

All three optimisers maximise `objective.calculate(params)`. The objective is any object with that method; you supply it. Each optimiser takes a `seed` for reproducibility, is set up with `configure(settings)` from a `dict` of floats, and returns an `OptimizationResult` with these fields:

- `best_parameters`
- `best_objective_value`
- `samples`
- `sample_objective_values`

```python
from agesir.hill_climbing import HillClimbingOptimizer
from agesir.metropolis import MetropolisHastingsSampler
from agesir.parameters import SIRParameterManager

manager = SIRParameterManager(model, ["q", "scale_C_total"], {"q": 0.01})


class Objective:
    """Toy objective: prefer q near 0.08 and scale near 0.9."""

    def calculate(self, params):
        target = np.array([0.08, 0.9])
        return -float(np.sum((np.asarray(params) - target) ** 2))


objective = Objective()
start = manager.current_parameters()

hill = HillClimbingOptimizer(seed=1)
hill.configure({"iterations": 500, "refinement_steps": 5})
fit = hill.optimize(start, objective, manager)

mcmc = MetropolisHastingsSampler(seed=2)
mcmc.configure({"burn_in": 200, "mcmc_iterations": 2000, "thinning": 5})
posterior = mcmc.optimize(fit.best_parameters, objective, manager)
manager.update_model_parameters(posterior.best_parameters)
```

**`HillClimbingOptimizer`** accepts a random step only if it improves the objective. It first tries the step in both directions, then extends a successful step while that keeps improving, then refines it by halving.

Its settings are:

- `iterations`
- `initial_step`
- `cooling_rate`
- `refinement_steps`
- `burnin_factor`
- `burnin_step_increase`
- `post_burnin_step_coef`
- `one_param_step_coef`
- `min_step_coef`
- `report_interval`
- `restart_interval`
- `restart_resets_step`
- `enable_bidirectional`
- `enable_elongation`

**`MetropolisHastingsSampler`** is a random-walk sampler. After burn-in its step size adapts towards a target acceptance rate.

Its settings are:

- `burn_in`
- `mcmc_iterations`
- `thinning`
- `mcmc_step_size`
- `calculate_posterior_mean`
- `report_interval`
- `mcmc_enable_refinement`
- `mcmc_refinement_steps`
- `mcmc_enable_vectorization`
- `mcmc_adaptive_step`
- `mcmc_target_acceptance`
- `mcmc_adaptation_rate`

A non-positive `thinning` or `report_interval` raises `InvalidParameterError`.

When `samples_path` is given, the samples are written there as `mcmc_samples_<YYYYmmdd_HHMMSS>.csv`. The file is written by `save_samples_to_csv` and has the columns `sample_id,objective_value,<parameter names>`.

**`ParticleSwarmOptimizer`** searches inside box bounds. Its inertia weight and its cognitive and social coefficients change linearly over the iterations. It can use a ring (lbest) topology or a constriction factor instead.

Its parameter manager must also provide `lower_bound_for_index(k)` and `upper_bound_for_index(k)`. `SIRParameterManager` does not provide these, so pass a manager of your own:

```python
from agesir.pso import ParticleSwarmOptimizer


class BoxManager:
    parameter_count = 2

    def lower_bound_for_index(self, k):
        return [0.0, 0.1][k]

    def upper_bound_for_index(self, k):
        return [0.5, 2.0][k]


pso = ParticleSwarmOptimizer(seed=3)
pso.configure({"iterations": 50, "swarm_size": 20, "use_lbest_topology": 1})
best = pso.optimize(None, objective, BoxManager())
```

Unknown settings are logged and ignored. Invalid values raise `ValueError`.

## What the package does not do

The package gives you the model's derivatives, but it does not include:

- an ODE integrator, a simulation runner or any result type;
- ready-made objective functions such as a likelihood against observed case counts;
- a cache of objective values;
- a driver that chains optimisation and sampling phases.

You write the objective, usually by integrating `AgeSIRModel` over your time points and comparing the result with data, and you call the optimisers yourself. The package has no command-line program. Apart from the optional MCMC sample CSV, it reads and writes no files.

## Errors and logging

Every error derives from `agesir.errors.ModelError`, which carries `source` and `message`. The subclasses are:

- `ModelConstructionError`
- `InvalidParameterError`, which is also a `ValueError`
- `InterventionError`
- `SimulationError`
- `InvalidResultError`

Progress messages go through the standard `logging` module, under logger names such as `agesir.hill_climbing`.