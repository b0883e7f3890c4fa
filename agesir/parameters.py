"""Mapping between calibration vectors and the parameters of an age-structured SIR model."""

from __future__ import annotations

import logging
import re

import numpy as np

from .errors import InvalidParameterError, ModelError

logger = logging.getLogger(__name__)

DEFAULT_Q_SIGMA = 0.05
DEFAULT_SCALE_C_SIGMA = 0.05
DEFAULT_GAMMA_SIGMA = 0.01

_GAMMA_PREFIX = "gamma_"
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _gamma_index(name: str) -> int:
    match = _LEADING_INT.match(name[len(_GAMMA_PREFIX):])
    if match is None:
        raise ModelError(
            "SIRParameterManager",
            f"Could not parse age index from parameter name '{name}': Invalid argument",
        )
    return int(match.group(1))


class SIRParameterManager:
    """Reads and writes the calibrated parameters ``q``, ``scale_C_total`` and ``gamma_<i>``."""

    def __init__(self, model, params_to_calibrate, proposal_sigmas=None) -> None:
        source = "SIRParameterManager"
        if model is None:
            raise InvalidParameterError(source, "Model pointer is null.")
        names = list(params_to_calibrate)
        if not names:
            raise InvalidParameterError(source, "Parameter names list cannot be empty.")

        self._model = model
        self._names = names
        self._sigmas = dict(proposal_sigmas or {})
        n_ages = model.num_age_classes

        for name in names:
            if name in ("q", "scale_C_total"):
                default = DEFAULT_Q_SIGMA if name == "q" else DEFAULT_SCALE_C_SIGMA
            elif name.startswith(_GAMMA_PREFIX):
                age = _gamma_index(name)
                if not 0 <= age < n_ages:
                    raise ModelError(
                        source,
                        f"Invalid age index in parameter name '{name}'. Max index: {n_ages - 1}",
                    )
                default = DEFAULT_GAMMA_SIGMA
            else:
                raise ModelError(
                    source, f"Parameter name '{name}' not recognized for AgeSIRModel calibration."
                )
            if name not in self._sigmas:
                self._sigmas[name] = default
                logger.warning("No proposal sigma provided for '%s', using default.", name)

    @property
    def parameter_names(self) -> list[str]:
        return list(self._names)

    @property
    def parameter_count(self) -> int:
        return len(self._names)

    def current_parameters(self) -> np.ndarray:
        """Return the model's current values of the calibrated parameters."""
        q = self._model.transmissibility
        scale = self._model.contact_scale_factor
        gamma = self._model.recovery_rate
        values = np.empty(len(self._names))
        for i, name in enumerate(self._names):
            if name == "q":
                values[i] = q
            elif name == "scale_C_total":
                values[i] = scale
            else:
                age = _gamma_index(name)
                if not 0 <= age < gamma.size:
                    raise ModelError(
                        "SIRParameterManager.current_parameters",
                        f"Internal Error: Invalid age index encountered for '{name}'.",
                    )
                values[i] = gamma[age]
        return values

    def _check_size(self, source: str, parameters) -> np.ndarray:
        values = np.atleast_1d(np.asarray(parameters, dtype=float))
        if values.size != len(self._names):
            raise InvalidParameterError(
                source,
                f"Parameter vector size mismatch: expected {len(self._names)}, got {values.size}",
            )
        return values

    def update_model_parameters(self, parameters) -> None:
        """Write the constrained ``parameters`` into the model."""
        constrained = self.apply_constraints(
            self._check_size("SIRParameterManager.update_model_parameters", parameters)
        )
        gamma = self._model.recovery_rate
        gamma_changed = False
        for name, value in zip(self._names, constrained):
            if name == "q":
                self._model.transmissibility = value
            elif name == "scale_C_total":
                self._model.contact_scale_factor = value
            else:
                age = _gamma_index(name)
                if not 0 <= age < gamma.size:
                    raise ModelError(
                        "SIRParameterManager.update_model_parameters",
                        f"Internal Error: Invalid age index encountered for '{name}'.",
                    )
                if gamma[age] != value:
                    gamma[age] = value
                    gamma_changed = True
        if gamma_changed:
            self._model.recovery_rate = gamma

    def apply_constraints(self, parameters) -> np.ndarray:
        """Return a copy with ``q`` kept positive and the other parameters non-negative."""
        values = self._check_size("SIRParameterManager.apply_constraints", parameters).copy()
        for i, name in enumerate(self._names):
            if name == "q":
                values[i] = max(1e-12, values[i])
            else:
                values[i] = max(0.0, values[i])
        return values

    def sigma_for_index(self, index: int) -> float:
        """Return the proposal sigma of the parameter at ``index``."""
        if not 0 <= index < len(self._names):
            raise IndexError(f"Index out of bounds in sigma_for_index: {index}")
        name = self._names[index]
        try:
            return self._sigmas[name]
        except KeyError:
            raise InvalidParameterError(
                "SIRParameterManager.sigma_for_index",
                f"Internal Error: Sigma not found for parameter: {name}",
            ) from None

    def default_sigma(self, name: str) -> float:
        """Return the proposal sigma registered for ``name``."""
        try:
            return self._sigmas[name]
        except KeyError:
            raise InvalidParameterError(
                "SIRParameterManager.default_sigma",
                f"Default sigma not found for parameter: {name}",
            ) from None