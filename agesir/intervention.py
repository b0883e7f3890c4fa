"""Scheduling of interventions applied to a model over time."""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass

import numpy as np

from .errors import InterventionError, InvalidParameterError, ModelError

logger = logging.getLogger(__name__)

_CONTACT_INTERVENTIONS = frozenset({"contact_reduction", "social_distancing", "lockdown"})
_TRANSMISSION_INTERVENTIONS = frozenset({"mask_mandate", "transmission_reduction"})


def validate_intervention(name: str, params) -> None:
    """Check the parameters of a known intervention; unknown names are left to the model."""
    source = "validate_intervention"
    values = np.atleast_1d(np.asarray(params, dtype=float))
    if name in _CONTACT_INTERVENTIONS:
        if values.size != 1:
            raise InvalidParameterError(
                source,
                f"Intervention '{name}' requires exactly 1 parameter (scale factor). Got {values.size}.",
            )
        if values[0] < 0.0:
            raise InvalidParameterError(
                source,
                f"Contact scale factor for '{name}' cannot be negative. Got {values[0]}.",
            )
    elif name in _TRANSMISSION_INTERVENTIONS:
        if values.size != 1:
            raise InvalidParameterError(
                source,
                f"Intervention '{name}' requires exactly 1 parameter (reduction factor [0,1]). "
                f"Got {values.size}.",
            )
        if values[0] < 0.0 or values[0] > 1.0:
            raise InvalidParameterError(
                source,
                f"Transmission reduction factor for '{name}' must be between 0 and 1. "
                f"Got {values[0]}.",
            )
    else:
        logger.warning(
            "Unknown intervention type '%s'. Skipping callback-level validation; model will validate.",
            name,
        )


@dataclass(frozen=True)
class _Scheduled:
    time: float
    name: str
    params: np.ndarray


def _time_of(entry: _Scheduled) -> float:
    return entry.time


class InterventionCallback:
    """Holds a time-ordered schedule of interventions and applies them to a model.

    Interventions are applied when their time lies in ``(last, t]``, where
    ``last`` is the marker left by the previous application. Adding an
    intervention moves that marker to the intervention's time.
    """

    def __init__(self, model) -> None:
        if model is None:
            raise InvalidParameterError("InterventionCallback", "Model pointer cannot be null.")
        self._model = model
        self._schedule: list[_Scheduled] = []
        self._last_applied_time = -1.0

    @property
    def schedule(self) -> list[tuple[float, str, np.ndarray]]:
        """The scheduled interventions as ``(time, name, params)`` in time order."""
        return [(e.time, e.name, e.params.copy()) for e in self._schedule]

    @property
    def last_applied_time(self) -> float:
        return self._last_applied_time

    def add_intervention(self, time, name: str, params) -> None:
        """Schedule intervention ``name`` with ``params`` at ``time``."""
        source = "InterventionCallback.add_intervention"
        try:
            if time < 0:
                raise InvalidParameterError(
                    source, f"Intervention time cannot be negative. Got: {time}"
                )
            validate_intervention(name, params)
            entry = _Scheduled(float(time), name, np.atleast_1d(np.asarray(params, dtype=float)).copy())
            bisect.insort_right(self._schedule, entry, key=_time_of)
            self._last_applied_time = float(time)
        except InvalidParameterError:
            raise
        except Exception as exc:
            raise InterventionError(
                source, f"Failed to add intervention '{name}' due to unexpected error: {exc}"
            ) from exc
        logger.info("Added intervention '%s' scheduled for time %s", name, time)

    def apply_scheduled_interventions(self, t) -> None:
        """Apply every intervention scheduled after the last marker and up to ``t``.

        Errors raised by the model are logged, not propagated.
        """
        t = float(t)
        lo = bisect.bisect_right(self._schedule, self._last_applied_time, key=_time_of)
        hi = bisect.bisect_right(self._schedule, t, key=_time_of)
        for entry in self._schedule[lo:hi]:
            logger.info("Applying intervention '%s' scheduled for t=%s (current t=%s)",
                        entry.name, entry.time, t)
            try:
                self._model.apply_intervention(entry.name, entry.time, entry.params)
            except ModelError as exc:
                logger.error("Model rejected intervention '%s' at time %s: %s",
                             entry.name, entry.time, exc)
            except Exception as exc:
                logger.error("Unexpected error applying intervention '%s' at time %s: %s",
                             entry.name, entry.time, exc)
        self._last_applied_time = t

    def reset(self) -> None:
        """Clear the schedule and the applied-time marker."""
        self._schedule.clear()
        self._last_applied_time = -1.0
        logger.info("Intervention schedule cleared and callback state reset.")