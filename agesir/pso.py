"""Particle swarm maximiser with time-varying coefficients and optional local topology."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .hill_climbing import OptimizationResult

logger = logging.getLogger(__name__)

_DEFAULT_CONSTRICTION = 0.729


@dataclass
class _Particle:
    position: np.ndarray
    velocity: np.ndarray
    pbest_position: np.ndarray
    pbest_value: float


def _format_vector(vec) -> str:
    return "[" + ", ".join(f"{v:g}" for v in np.atleast_1d(vec)) + "]"


class ParticleSwarmOptimizer:
    """Maximises an objective with a swarm of particles inside box bounds.

    The parameter manager must provide ``parameter_count`` and
    ``lower_bound_for_index(k)`` / ``upper_bound_for_index(k)``. The inertia
    weight and the cognitive and social coefficients vary linearly from their
    start to their end values over the iterations.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = np.random.default_rng(seed)
        self.iterations = 100
        self.swarm_size = 30
        self.omega_start = 0.9
        self.omega_end = 0.4
        self.c1_initial = 2.5
        self.c1_final = 0.5
        self.c2_initial = 0.5
        self.c2_final = 2.5
        self.report_interval = 10
        self.use_lbest_topology = False
        self.lbest_neighborhood_k = 2
        self.use_constriction_factor = False
        self.log_new_gbest = True
        self.log_particle_details = False
        self.particle_log_interval = 10
        self.particles_to_log_count = 3

    def configure(self, settings) -> None:
        """Apply settings by name; invalid values raise ``ValueError``."""

        def positive_int(name, value):
            if value <= 0:
                raise ValueError(f"{name} must be positive integer.")
            return int(value)

        def non_negative(name, value):
            if value < 0:
                raise ValueError(f"{name} must be non-negative.")
            return float(value)

        def non_negative_int(name, value):
            if value < 0:
                raise ValueError(f"{name} must be non-negative integer.")
            return int(value)

        handlers = {
            "iterations": ("iterations", positive_int),
            "swarm_size": ("swarm_size", positive_int),
            "omega_start": ("omega_start", non_negative),
            "omega_end": ("omega_end", non_negative),
            "c1_initial": ("c1_initial", non_negative),
            "c1_final": ("c1_final", non_negative),
            "c2_initial": ("c2_initial", non_negative),
            "c2_final": ("c2_final", non_negative),
            "report_interval": ("report_interval", positive_int),
            "use_lbest_topology": ("use_lbest_topology", lambda n, v: v != 0.0),
            "lbest_neighborhood_k": ("lbest_neighborhood_k", non_negative_int),
            "use_constriction_factor": ("use_constriction_factor", lambda n, v: v != 0.0),
            "log_new_gbest": ("log_new_gbest", lambda n, v: v != 0.0),
            "log_particle_details": ("log_particle_details", lambda n, v: v != 0.0),
            "particle_log_interval": ("particle_log_interval", positive_int),
            "particles_to_log_count": ("particles_to_log_count", non_negative_int),
        }

        for key, value in settings.items():
            if key == "omega":
                logger.warning("'omega' setting is deprecated. Use 'omega_start' and "
                               "'omega_end'. This setting will be ignored.")
                continue
            handler = handlers.get(key)
            if handler is None:
                logger.warning("Unknown PSO setting: '%s'. This setting will be ignored.", key)
                continue
            attribute, convert = handler
            try:
                setattr(self, attribute, convert(key, float(value)))
            except ValueError as exc:
                logger.error("Invalid configuration for '%s': %s", key, exc)
                raise

        if self.omega_start < self.omega_end and not self.use_constriction_factor:
            logger.warning("omega_end (%s) is greater than omega_start (%s). Omega will increase "
                           "over iterations.", self.omega_end, self.omega_start)
        if self.c1_initial < self.c1_final:
            logger.warning("c1_final (%s) is greater than c1_initial (%s). Cognitive component c1 "
                           "will increase (typically decreases).", self.c1_final, self.c1_initial)
        if self.c2_initial > self.c2_final:
            logger.warning("c2_final (%s) is less than c2_initial (%s). Social component c2 will "
                           "decrease (typically increases).", self.c2_final, self.c2_initial)

    @staticmethod
    def _bounds(manager, n):
        lb = np.array([manager.lower_bound_for_index(k) for k in range(n)], dtype=float)
        ub = np.array([manager.upper_bound_for_index(k) for k in range(n)], dtype=float)
        vmax = np.abs(ub - lb)
        vmax[vmax < 1e-9] = 1.0
        return lb, ub, vmax

    def _initialize_swarm(self, objective, manager, initial):
        n = manager.parameter_count
        lb, ub, vmax = self._bounds(manager, n)
        fixed = lb == ub
        swarm: list[_Particle] = []
        gbest_value = -math.inf
        gbest_position: Optional[np.ndarray] = None

        for i in range(self.swarm_size):
            if i == 0 and initial is not None:
                logger.info("Initializing first particle with provided initial parameters")
                position = np.clip(initial, lb, ub)
                logger.debug("First particle position: %s", _format_vector(position))
            else:
                position = self._rng.uniform(lb, ub)
            velocity = np.where(fixed, 0.0, self._rng.uniform(-0.5 * vmax, 0.5 * vmax))
            value = objective.calculate(position)
            particle = _Particle(position, velocity, position.copy(), value)
            swarm.append(particle)
            if gbest_position is None:
                gbest_position = position.copy()
            if value > gbest_value:
                gbest_value = value
                gbest_position = position.copy()

        if initial is not None:
            logger.info("Initialized swarm with initial guess. First particle fitness: %s",
                        swarm[0].pbest_value)
        logger.info("Initialized swarm of %d particles. Initial gbest value = %s",
                    self.swarm_size, gbest_value)
        return swarm, gbest_position, gbest_value

    def _lbest_position(self, swarm, index, k) -> np.ndarray:
        size = len(swarm)
        best_pos = swarm[index].pbest_position
        best_val = swarm[index].pbest_value
        for j in range(1, k + 1):
            for neighbour in ((index + j) % size, (index - j) % size):
                if swarm[neighbour].pbest_value > best_val:
                    best_val = swarm[neighbour].pbest_value
                    best_pos = swarm[neighbour].pbest_position
        return best_pos

    def optimize(self, initial_parameters, objective, parameter_manager) -> OptimizationResult:
        """Maximise ``objective.calculate`` within the manager's bounds."""
        logger.info("--- Starting PSO (maximization) ---")
        logger.info("Iterations: %d, Swarm Size: %d", self.iterations, self.swarm_size)
        if self.use_lbest_topology:
            logger.info("Using LBest topology with neighborhood k=%d", self.lbest_neighborhood_k)
        else:
            logger.info("Using GBest topology.")

        n = parameter_manager.parameter_count
        initial = None
        if initial_parameters is not None:
            given = np.atleast_1d(np.asarray(initial_parameters, dtype=float))
            if given.size == n:
                initial = given.copy()
                logger.info("Using provided initial parameters for first particle")
            elif given.size > 0:
                logger.warning("Initial parameters size (%d) doesn't match parameter count (%d). "
                               "Ignoring initial parameters.", given.size, n)

        swarm, gbest_position, gbest_value = self._initialize_swarm(
            objective, parameter_manager, initial)
        to_log = min(self.particles_to_log_count, self.swarm_size)
        lb, ub, vmax = self._bounds(parameter_manager, n)
        fixed = lb == ub
        omega_lo = min(self.omega_start, self.omega_end)
        omega_hi = max(self.omega_start, self.omega_end)

        for it in range(self.iterations):
            ratio = it / (self.iterations - 1) if self.iterations > 1 else 0.0
            omega = self.omega_start - (self.omega_start - self.omega_end) * ratio
            omega = min(omega_hi, max(omega_lo, omega))
            c1 = self.c1_initial - (self.c1_initial - self.c1_final) * ratio
            c2 = self.c2_initial + (self.c2_final - self.c2_initial) * ratio
            detailed = self.log_particle_details and (
                (it + 1) % self.particle_log_interval == 0 or it == self.iterations - 1)

            for i, particle in enumerate(swarm):
                attractor = (self._lbest_position(swarm, i, self.lbest_neighborhood_k)
                             if self.use_lbest_topology else gbest_position)
                r1 = self._rng.random(n)
                r2 = self._rng.random(n)
                cognitive = c1 * r1 * (particle.pbest_position - particle.position)
                social = c2 * r2 * (attractor - particle.position)

                if self.use_constriction_factor:
                    phi = c1 + c2
                    k_val = _DEFAULT_CONSTRICTION
                    if phi > 4.0:
                        k_val = 2.0 / abs(2.0 - phi - math.sqrt(phi * phi - 4.0 * phi))
                    elif it == 0 and i == 0:
                        logger.warning("phi (c1_current + c2_current = %s) is <= 4.0. Constriction "
                                       "factor formula typically requires phi > 4.0. Defaulting "
                                       "to K=%s", phi, k_val)
                    velocity = k_val * (particle.velocity + cognitive + social)
                else:
                    velocity = omega * particle.velocity + cognitive + social

                particle.velocity = np.where(fixed, 0.0, np.clip(velocity, -vmax, vmax))
                particle.position = np.clip(particle.position + particle.velocity, lb, ub)

                value = objective.calculate(particle.position)
                if value > particle.pbest_value:
                    particle.pbest_value = value
                    particle.pbest_position = particle.position.copy()
                    if value > gbest_value:
                        old = gbest_value
                        gbest_value = value
                        gbest_position = particle.position.copy()
                        if self.log_new_gbest:
                            logger.info("[Iter %d, Particle %d] New gbest: %s (Improvement: %s)",
                                        it + 1, i, gbest_value, gbest_value - old)
                            logger.debug("[Iter %d] New gbest position: %s",
                                         it + 1, _format_vector(gbest_position))
                if detailed and i < to_log:
                    logger.debug("Iter %d, P%d: Pos=%s, Vel=%s, Fit=%s, PBestFit=%s",
                                 it + 1, i, _format_vector(particle.position),
                                 _format_vector(particle.velocity), value, particle.pbest_value)

            if (it + 1) % self.report_interval == 0 or it == self.iterations - 1:
                msg = f"Iter {it + 1}/{self.iterations} | gbest = {gbest_value}"
                if not self.use_constriction_factor:
                    msg += f" | omega = {omega}"
                msg += f" | c1 = {c1} | c2 = {c2}"
                logger.info(msg)

        logger.info("--- PSO Completed ---")
        logger.info("Final gbest value: %s", gbest_value)
        logger.info("Final gbest position: %s", _format_vector(gbest_position))
        return OptimizationResult(best_parameters=np.asarray(gbest_position, dtype=float).copy(),
                                  best_objective_value=gbest_value)