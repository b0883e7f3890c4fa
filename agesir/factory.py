"""Construction helpers for models and initial states."""

from __future__ import annotations

import numpy as np

from .age_sir import AgeSIRModel
from .errors import InvalidParameterError, ModelConstructionError


def create_age_sir_model(N, C, gamma, q, scale_C=1.0) -> AgeSIRModel:
    """Build an :class:`AgeSIRModel`, reporting any failure as a construction error."""
    try:
        return AgeSIRModel(N, C, gamma, q, scale_C)
    except ModelConstructionError:
        raise
    except Exception as exc:
        raise ModelConstructionError(
            "create_age_sir_model",
            f"Unexpected error during AgeSIRModel creation: {exc}",
        ) from exc


def _stack_state(source: str, components) -> np.ndarray:
    arrays = [np.atleast_1d(np.asarray(c, dtype=float)) for c in components]
    n = arrays[0].size
    if any(a.ndim != 1 or a.size != n for a in arrays):
        sizes = ", ".join(str(a.size) for a in arrays)
        raise InvalidParameterError(
            source,
            f"Initial state vectors must all have the same length. Got sizes: {sizes}.",
        )
    if n == 0:
        raise InvalidParameterError(source, "Initial state vectors cannot be empty.")
    if any((a < 0).any() for a in arrays):
        raise InvalidParameterError(source, "Initial state components cannot be negative.")
    return np.concatenate(arrays)


def create_initial_sir_state(S0, I0, R0) -> np.ndarray:
    """Concatenate per-age S, I and R vectors into one state vector."""
    return _stack_state("create_initial_sir_state", (S0, I0, R0))


def create_initial_sepaihrd_state(S0, E0, P0, A0, I0, H0, ICU0, R0, D0) -> np.ndarray:
    """Concatenate the nine per-age SEPAIHRD compartments into one state vector."""
    return _stack_state(
        "create_initial_sepaihrd_state",
        (S0, E0, P0, A0, I0, H0, ICU0, R0, D0),
    )