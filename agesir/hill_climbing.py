"""Stochastic hill-climbing maximiser with elongation and binary refinement."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class OptimizationResult:
    """Outcome of an optimisation or sampling run."""

    best_parameters: np.ndarray = field(default_factory=lambda: np.empty(0))
    best_objective_value: float = -math.inf
    samples: list[np.ndarray] = field(default_factory=list)
    sample_objective_values: list[float] = field(default_factory=list)


@dataclass
class _Evaluation:
    parameters: np.ndarray
    objective: float
    valid: bool


class HillClimbingOptimizer:
    """Maximises an objective by random steps that are accepted only if they improve it.

    A successful step is extended in the same direction while that keeps
    improving, then refined by halving steps in both directions.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = np.random.default_rng(seed)
        self.iterations = 1000
        self.initial_step = 1.0
        self.cooling_rate = 0.995
        self.refinement_steps = 5
        self.burnin_factor = 0.1
        self.burnin_step_increase = 1.5
        self.post_burnin_step_coef = 1.0
        self.one_param_step_coef = 1.0
        self.min_step_coef = 0.01
        self.report_interval = 100
        self.restart_interval = 0
        self.restart_resets_step = True
        self.enable_bidirectional = True
        self.enable_elongation = True

    def configure(self, settings) -> None:
        """Read settings by name; missing numeric settings keep their values."""
        get = settings.get
        self.iterations = int(get("iterations", self.iterations))
        self.initial_step = float(get("initial_step", self.initial_step))
        self.cooling_rate = float(get("cooling_rate", self.cooling_rate))
        self.refinement_steps = int(get("refinement_steps", self.refinement_steps))
        self.burnin_factor = float(get("burnin_factor", self.burnin_factor))
        self.burnin_step_increase = float(get("burnin_step_increase", self.burnin_step_increase))
        self.post_burnin_step_coef = float(get("post_burnin_step_coef", self.post_burnin_step_coef))
        self.one_param_step_coef = float(get("one_param_step_coef", self.one_param_step_coef))
        self.min_step_coef = float(get("min_step_coef", self.min_step_coef))
        self.report_interval = int(get("report_interval", self.report_interval))
        self.restart_interval = int(get("restart_interval", self.restart_interval))
        self.restart_resets_step = get("restart_resets_step", 1.0) != 0.0
        self.enable_bidirectional = get("enable_bidirectional", 1.0) != 0.0
        self.enable_elongation = get("enable_elongation", 1.0) != 0.0

        self.iterations = max(self.iterations, 1)
        self.initial_step = max(self.initial_step, 1e-6)
        self.cooling_rate = min(max(self.cooling_rate, 0.001), 0.999)
        self.refinement_steps = max(self.refinement_steps, 0)
        self.burnin_factor = min(max(self.burnin_factor, 0.0), 1.0)
        self.min_step_coef = max(self.min_step_coef, 1e-12)
        self.report_interval = max(self.report_interval, 1)

        logger.info("Configured with bidirectional=%s, elongation=%s, refinement_steps=%d",
                    self.enable_bidirectional, self.enable_elongation, self.refinement_steps)

    @property
    def _burnin_iterations(self) -> int:
        return int(self.iterations * self.burnin_factor)

    def optimize(self, initial_parameters, objective, parameter_manager) -> OptimizationResult:
        """Maximise ``objective.calculate`` starting from ``initial_parameters``."""
        logger.info("Starting optimization with %d iterations", self.iterations)
        start = np.asarray(initial_parameters, dtype=float).copy()
        best_value = objective.calculate(start)
        if not math.isfinite(best_value):
            logger.warning("Invalid initial objective value")
            best_value = -math.inf
        result = OptimizationResult(best_parameters=start.copy(), best_objective_value=best_value)

        current = start
        current_value = best_value
        step_coef = self.initial_step
        burnin = self._burnin_iterations
        accepted = 0
        improved = 0

        for it in range(1, self.iterations + 1):
            if self.restart_interval > 0 and it % self.restart_interval == 0:
                logger.info("Restarting from best parameters at iteration %d", it)
                current = result.best_parameters.copy()
                current_value = result.best_objective_value
                if self.restart_resets_step:
                    step_coef = self.initial_step

            step = self._optimized_step(current, current_value, it, objective, parameter_manager)
            if step.valid and step.objective > current_value:
                current = step.parameters
                current_value = step.objective
                accepted += 1
                if current_value > result.best_objective_value:
                    result.best_objective_value = current_value
                    result.best_parameters = current.copy()
                    improved += 1
                    logger.info("New best at iteration %d: %s", it, current_value)

            if it > burnin:
                step_coef = max(step_coef * self.cooling_rate, self.min_step_coef)

            if it % self.report_interval == 0 or it == self.iterations:
                logger.info(
                    "Iteration %d/%d, Current: %s, Best: %s, Accept rate: %.2f%%, Step coef: %s",
                    it, self.iterations, current_value, result.best_objective_value,
                    100.0 * accepted / it, step_coef,
                )

        logger.info("Optimization complete. Accepted: %d/%d, Improved: %d",
                    accepted, self.iterations, improved)
        return result

    def _optimized_step(self, params, value, iteration, objective, manager) -> _Evaluation:
        in_burnin = iteration <= self._burnin_iterations
        if iteration == 1:
            coef = self.burnin_step_increase
            direction = self._step_all(1.0, manager)
        elif in_burnin or iteration % 2 == 0:
            coef = self.burnin_step_increase if in_burnin else self.post_burnin_step_coef
            direction = self._step_all(1.0, manager)
        else:
            coef = self.one_param_step_coef
            direction = self._step_one(1.0, manager)

        best = self._evaluate(params + coef * direction, objective, manager)
        improved = best.valid and best.objective > value

        if self.enable_bidirectional and not improved:
            reverse = self._evaluate(params - coef * direction, objective, manager)
            if reverse.valid and reverse.objective > value:
                best = reverse
                direction = -direction
                improved = True

        if improved:
            if self.enable_elongation:
                longer = self._elongate(best, direction, coef, objective, manager)
                if longer.valid and longer.objective > best.objective:
                    best = longer
            if self.refinement_steps > 0:
                refined = self._refine(best, direction, coef, self.refinement_steps,
                                       objective, manager)
                if refined.valid and refined.objective > best.objective:
                    best = refined
        return best

    def _elongate(self, base: _Evaluation, direction, coef, objective, manager) -> _Evaluation:
        result = _Evaluation(base.parameters, base.objective, True)
        while True:
            extended = self._evaluate(result.parameters + coef * direction, objective, manager)
            if not (extended.valid and extended.objective > result.objective):
                return result
            result = extended

    def _refine(self, base: _Evaluation, direction, coef, steps, objective, manager) -> _Evaluation:
        result = _Evaluation(base.parameters, base.objective, True)
        alpha = coef
        for _ in range(steps):
            alpha *= 0.5
            for sign in (-1.0, 1.0):
                candidate = self._evaluate(result.parameters + sign * alpha * direction,
                                           objective, manager)
                if candidate.valid and candidate.objective > result.objective:
                    result = candidate
        return result

    @staticmethod
    def _evaluate(params, objective, manager) -> _Evaluation:
        constrained = np.asarray(manager.apply_constraints(params), dtype=float)
        value = objective.calculate(constrained)
        valid = math.isfinite(value)
        return _Evaluation(constrained, value if valid else -math.inf, valid)

    def _step_all(self, coef, manager) -> np.ndarray:
        count = manager.parameter_count
        sigmas = np.array([manager.sigma_for_index(i) for i in range(count)], dtype=float)
        return self._rng.normal(0.0, sigmas * coef) if count else np.empty(0)

    def _step_one(self, coef, manager) -> np.ndarray:
        count = manager.parameter_count
        steps = np.zeros(count)
        if count > 0:
            idx = int(self._rng.integers(0, count))
            steps[idx] = self._rng.normal(0.0, manager.sigma_for_index(idx) * coef)
        return steps