"""Metropolis-Hastings sampler with optional directional refinement of proposals."""

from __future__ import annotations

import csv
import logging
import math
import os
from datetime import datetime
from typing import Optional, Sequence

import numpy as np

from .errors import InvalidParameterError
from .hill_climbing import OptimizationResult

logger = logging.getLogger(__name__)

_ACCEPTANCE_WINDOW = 100
_ELONGATION_FACTORS = (1.0, 2.0, 4.0, 8.0)
_MIN_STEP_SIZE = 1e-6
_MAX_STEP_SIZE = 10.0


def save_samples_to_csv(samples, objective_values, parameter_names, filepath) -> None:
    """Write samples as CSV: ``sample_id,objective_value`` then one column per parameter.

    A file that cannot be opened is reported in the log and nothing is written.
    """
    try:
        handle = open(filepath, "w", newline="")
    except OSError as exc:
        logger.error("Failed to open CSV: %s (%s)", filepath, exc)
        return
    with handle:
        writer = csv.writer(handle, lineterminator="\n")
        writer.writerow(["sample_id", "objective_value", *parameter_names])
        for index, (sample, value) in enumerate(zip(samples, objective_values)):
            values = np.atleast_1d(np.asarray(sample, dtype=float))
            writer.writerow([index, f"{float(value):.10e}", *(f"{v:.10e}" for v in values)])
    logger.info("Saved %d samples to: %s", len(samples), filepath)


class MetropolisHastingsSampler:
    """Random-walk Metropolis-Hastings sampler over a maximised log-likelihood.

    Even iterations and all burn-in iterations perturb every parameter; the
    others perturb one parameter with twice the step. After burn-in the step
    size adapts towards a target acceptance rate. When ``samples_path`` names a
    directory, the collected samples are saved there as a timestamped CSV file.
    """

    def __init__(self, seed: Optional[int] = None, samples_path=None) -> None:
        self._rng = np.random.default_rng(seed)
        self.samples_path = samples_path
        self.burn_in = 5000
        self.mcmc_iterations = 10000
        self.thinning = 10
        self.step_size = 0.1
        self.calculate_posterior_mean = True
        self.report_interval = 1000
        self.enable_refinement = False
        self.refinement_steps = 0
        self.enable_vectorized_proposals = True
        self.enable_adaptive_step = True
        self.target_acceptance_rate = 0.234
        self.adaptation_rate = 0.05
        self.accepted_count = 0
        self.total_evaluations = 0

    def configure(self, settings) -> None:
        """Read settings by name; missing settings fall back to their defaults."""
        get = settings.get
        self.burn_in = int(get("burn_in", self.burn_in))
        self.mcmc_iterations = int(get("mcmc_iterations", self.mcmc_iterations))
        self.thinning = int(get("thinning", self.thinning))
        self.step_size = float(get("mcmc_step_size", self.step_size))
        self.calculate_posterior_mean = get("calculate_posterior_mean", 1.0) != 0.0
        self.report_interval = int(get("report_interval", self.report_interval))
        self.enable_refinement = get("mcmc_enable_refinement", 0.0) != 0.0
        self.refinement_steps = int(get("mcmc_refinement_steps", 0.0))
        self.enable_vectorized_proposals = get("mcmc_enable_vectorization", 1.0) != 0.0
        self.enable_adaptive_step = get("mcmc_adaptive_step", 1.0) != 0.0
        self.target_acceptance_rate = float(get("mcmc_target_acceptance", 0.234))
        self.adaptation_rate = float(get("mcmc_adaptation_rate", 0.05))

        source = "MetropolisHastingsSampler.configure"
        if self.thinning <= 0:
            raise InvalidParameterError(source, f"thinning must be positive. Got {self.thinning}.")
        if self.report_interval <= 0:
            raise InvalidParameterError(
                source, f"report_interval must be positive. Got {self.report_interval}."
            )

    def _evaluate(self, objective, params) -> float:
        self.total_evaluations += 1
        return objective.calculate(params)

    def _propose_all(self, current, step, manager) -> np.ndarray:
        sigmas = np.array(
            [manager.sigma_for_index(i) * step for i in range(current.size)], dtype=float
        )
        sigmas = np.where(sigmas <= 0, 0.01 * step, sigmas)
        perturbation = self._rng.normal(0.0, sigmas)
        return np.asarray(manager.apply_constraints(current + perturbation), dtype=float)

    def _propose_one(self, current, step, manager) -> np.ndarray:
        proposal = current.copy()
        idx = int(self._rng.integers(0, manager.parameter_count))
        proposal[idx] += self._rng.normal(0.0, manager.sigma_for_index(idx) * step)
        return np.asarray(manager.apply_constraints(proposal), dtype=float)

    def _refine(self, initial, initial_value, direction, steps, objective, manager):
        if not math.isfinite(initial_value) or float(direction @ direction) < 1e-18:
            return initial, initial_value
        best, best_value = initial, initial_value

        points = [np.asarray(manager.apply_constraints(initial + f * direction), dtype=float)
                  for f in _ELONGATION_FACTORS]
        values = [self._evaluate(objective, p) for p in points]
        for point, value in zip(points, values):
            if not (math.isfinite(value) and value > best_value):
                break
            best, best_value = point, value

        alpha = 1.0
        base = best
        for _ in range(steps):
            alpha *= 0.5
            candidates = [
                np.asarray(manager.apply_constraints(base - alpha * direction), dtype=float),
                np.asarray(manager.apply_constraints(base + alpha * direction), dtype=float),
            ]
            scores = [self._evaluate(objective, c) for c in candidates]
            for candidate, score in zip(candidates, scores):
                if math.isfinite(score) and score > best_value:
                    best, best_value = candidate, score
                    base = best
        return best, best_value

    def _update_step_size(self, acceptance_rate: float) -> None:
        if acceptance_rate <= 0.0:
            self.step_size = 0.0
        else:
            log_ratio = math.log(acceptance_rate / self.target_acceptance_rate)
            self.step_size *= math.exp(self.adaptation_rate * log_ratio)
        self.step_size = max(_MIN_STEP_SIZE, min(_MAX_STEP_SIZE, self.step_size))

    def optimize(self, initial_parameters, objective, parameter_manager) -> OptimizationResult:
        """Sample from the posterior starting at ``initial_parameters``.

        The result holds the thinned samples, their objective values and the
        best point seen (possibly the posterior mean).
        """
        start = np.atleast_1d(np.asarray(initial_parameters, dtype=float)).copy()
        initial_value = objective.calculate(start)
        result = OptimizationResult(best_parameters=start.copy(), best_objective_value=initial_value)

        current = start
        current_value = initial_value if math.isfinite(initial_value) else -math.inf
        total = self.burn_in + self.mcmc_iterations
        self.accepted_count = 0
        self.total_evaluations = 0
        adaptive_step = self.step_size
        recent: list[bool] = []

        for it in range(total):
            use_all = it % 2 == 0 or it < self.burn_in
            step = adaptive_step if use_all else adaptive_step * 2.0

            if self.enable_vectorized_proposals and use_all:
                proposal = self._propose_all(current, step, parameter_manager)
            else:
                proposal = self._propose_one(current, step, parameter_manager)
            proposal_value = self._evaluate(objective, proposal)

            if self.enable_refinement and math.isfinite(proposal_value):
                direction = proposal - current
                reverse = np.asarray(parameter_manager.apply_constraints(current - direction),
                                     dtype=float)
                reverse_value = self._evaluate(objective, reverse)
                best_prop, best_value = proposal, proposal_value
                if math.isfinite(reverse_value) and reverse_value > proposal_value:
                    best_prop, best_value = reverse, reverse_value
                    direction = -direction
                if self.refinement_steps > 0 and float(direction @ direction) > 1e-12:
                    refined, refined_value = self._refine(
                        best_prop, best_value, direction, self.refinement_steps,
                        objective, parameter_manager,
                    )
                    if math.isfinite(refined_value) and refined_value > best_value:
                        proposal, proposal_value = refined, refined_value

            accepted = False
            if math.isfinite(proposal_value):
                log_ratio = proposal_value - current_value
                u = self._rng.random()
                if log_ratio >= 0.0 or u == 0.0 or math.log(u) < log_ratio:
                    current = proposal
                    current_value = proposal_value
                    accepted = True
                    self.accepted_count += 1

            if self.enable_adaptive_step and it >= self.burn_in:
                recent.append(accepted)
                if len(recent) > _ACCEPTANCE_WINDOW:
                    recent.pop(0)
                if it % _ACCEPTANCE_WINDOW == 0 and recent:
                    self._update_step_size(sum(recent) / len(recent))
                    adaptive_step = self.step_size

            if it >= self.burn_in and (it - self.burn_in) % self.thinning == 0:
                result.samples.append(current.copy())
                result.sample_objective_values.append(current_value)
                if current_value > result.best_objective_value:
                    result.best_objective_value = current_value
                    result.best_parameters = current.copy()

            if (it + 1) % self.report_interval == 0 or it == total - 1:
                rate = (100.0 * self.accepted_count / (it - self.burn_in + 1)
                        if it >= self.burn_in else 0.0)
                logger.info(
                    "Iter: %7d/%d | Current Obj: %.4f | Accept Rate: %.2f%% | "
                    "Step Size: %.3e | Evaluations: %d",
                    it + 1, total, current_value, rate, adaptive_step, self.total_evaluations,
                )

        if self.calculate_posterior_mean and result.samples:
            mean = np.mean(np.stack(result.samples), axis=0)
            mean = np.asarray(parameter_manager.apply_constraints(mean), dtype=float)
            mean_value = objective.calculate(mean)
            if math.isfinite(mean_value) and mean_value > result.best_objective_value:
                result.best_objective_value = mean_value
                result.best_parameters = mean

        logger.info("MCMC Finished. Samples: %d, Total evaluations: %d",
                    len(result.samples), self.total_evaluations)

        if result.samples and self.samples_path is not None:
            os.makedirs(self.samples_path, exist_ok=True)
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            path = os.path.join(self.samples_path, f"mcmc_samples_{stamp}.csv")
            save_samples_to_csv(result.samples, result.sample_objective_values,
                                list(parameter_manager.parameter_names), path)
        return result