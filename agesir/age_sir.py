"""Age-structured SIR compartmental model."""

from __future__ import annotations

import logging
import threading

import numpy as np

from .errors import InterventionError, InvalidParameterError, ModelConstructionError

logger = logging.getLogger(__name__)

_EPS = 1e-9
_CONTACT_INTERVENTIONS = frozenset({"contact_reduction", "social_distancing", "lockdown"})
_TRANSMISSION_INTERVENTIONS = frozenset({"mask_mandate", "transmission_reduction"})


class AgeSIRModel:
    """SIR model with age classes coupled through a contact matrix.

    The state vector is laid out as ``[S_0..S_{n-1}, I_0..I_{n-1}, R_0..R_{n-1}]``.
    The force of infection for class ``i`` is ``q * sum_j C[i, j] * I_j / N_j``
    where ``C`` is the baseline contact matrix scaled by ``scale_C``.
    """

    def __init__(self, N, C, gamma, q, scale_C=1.0) -> None:
        source = "AgeSIRModel"
        N = np.asarray(N, dtype=float)
        C = np.asarray(C, dtype=float)
        gamma = np.asarray(gamma, dtype=float)
        q = float(q)
        scale_C = float(scale_C)

        if N.ndim != 1 or N.size == 0:
            raise ModelConstructionError(source, "Number of age classes must be positive.")
        n = N.size
        if C.shape != (n, n):
            raise ModelConstructionError(
                source,
                f"Contact matrix dimensions {C.shape} must match number of age classes ({n}).",
            )
        if gamma.shape != (n,):
            raise ModelConstructionError(
                source,
                f"Gamma vector size ({gamma.size}) must match number of age classes ({n}).",
            )
        if (N < 0).any() or (gamma < 0).any() or q < 0 or scale_C < 0:
            raise ModelConstructionError(
                source,
                "Initial rates (gamma), transmissibility (q), scaling (scale_C), "
                "or populations (N) cannot be negative.",
            )
        if (C < 0).any():
            raise ModelConstructionError(source, "Baseline contact matrix cannot contain negative values.")

        self._n = n
        self._N = N.copy()
        self._C_baseline = C.copy()
        self._gamma = gamma.copy()
        self._q = q
        self._scale_C = scale_C
        self._baseline_q = q
        self._baseline_scale_C = scale_C
        self._lock = threading.Lock()
        self._update_current_contacts()

    # --- internal helpers (caller holds the lock) ---

    def _update_current_contacts(self) -> None:
        self._C_current = self._scale_C * self._C_baseline

    def _set_recovery_rate(self, value) -> None:
        gamma = np.asarray(value, dtype=float)
        if gamma.shape != (self._n,):
            raise InvalidParameterError(
                "AgeSIRModel.recovery_rate",
                f"Recovery rate vector size ({gamma.size}) must match the number "
                f"of age classes ({self._n}).",
            )
        if (gamma < 0).any():
            raise InvalidParameterError("AgeSIRModel.recovery_rate", "Recovery rates cannot be negative.")
        self._gamma = gamma.copy()

    def _set_transmissibility(self, value: float) -> None:
        value = float(value)
        if value < 0:
            raise InvalidParameterError(
                "AgeSIRModel.transmissibility",
                f"Transmissibility (q) cannot be negative. Got: {value}",
            )
        self._q = value

    def _set_contact_scale(self, value: float) -> None:
        value = float(value)
        if value < 0:
            raise InvalidParameterError(
                "AgeSIRModel.contact_scale_factor",
                f"Contact matrix scaling factor cannot be negative. Got: {value}",
            )
        self._scale_C = value
        self._update_current_contacts()

    # --- dynamics ---

    def compute_derivatives(self, state, time=None) -> np.ndarray:
        """Return the time derivative of ``state``; ``time`` is unused."""
        with self._lock:
            n = self._n
            x = np.asarray(state, dtype=float)
            if x.shape != (3 * n,):
                raise InvalidParameterError(
                    "AgeSIRModel.compute_derivatives",
                    f"State vector size mismatch. Expected {3 * n}, got {x.size}.",
                )
            S, I, R = x[:n], x[n:2 * n], x[2 * n:]

            I_over_N = np.zeros(n)
            populated = self._N > _EPS
            I_over_N[populated] = I[populated] / self._N[populated]
            lam = np.maximum(self._q * (self._C_current @ I_over_N), 0.0)

            dS = -lam * S
            dI = lam * S - self._gamma * I
            dR = self._gamma * I

            dS = np.where((S < _EPS) & (dS < 0), 0.0, dS)
            dI = np.where((I < _EPS) & (dI < 0), 0.0, dI)
            dR = np.where((R < _EPS) & (dR < 0), 0.0, dR)
            return np.concatenate((dS, dI, dR))

    def __call__(self, state, time=None) -> np.ndarray:
        return self.compute_derivatives(state, time)

    def apply_intervention(self, name: str, time, params) -> None:
        """Apply a named intervention to the current parameters.

        Contact interventions multiply the contact scale by ``params[0]``;
        transmission interventions reduce ``q`` by the fraction ``params[0]``.
        """
        source = "AgeSIRModel.apply_intervention"
        values = np.atleast_1d(np.asarray(params, dtype=float))
        with self._lock:
            if name in _CONTACT_INTERVENTIONS:
                if values.size != 1:
                    raise InterventionError(
                        source,
                        f"Intervention '{name}' requires exactly 1 parameter "
                        f"(overall contact scaling factor). Got {values.size}.",
                    )
                factor = float(values[0])
                if factor < 0.0:
                    raise InterventionError(
                        source,
                        f"Contact scaling factor for intervention '{name}' cannot be negative. Got {factor}.",
                    )
                self._set_contact_scale(self._scale_C * factor)
                logger.info("Applied intervention '%s' setting overall contact scale to: %s",
                            name, self._scale_C)
            elif name in _TRANSMISSION_INTERVENTIONS:
                if values.size != 1:
                    raise InterventionError(
                        source,
                        f"Intervention '{name}' requires exactly 1 parameter "
                        f"(transmission reduction factor [0,1]). Got {values.size}.",
                    )
                reduction = float(values[0])
                if reduction < 0.0 or reduction > 1.0:
                    raise InterventionError(
                        source,
                        f"Transmission reduction factor for intervention '{name}' "
                        f"must be between 0 and 1. Got {reduction}.",
                    )
                self._set_transmissibility(self._q * (1.0 - reduction))
                logger.info("Applied intervention '%s' reducing current q by %s%% (new q = %s)",
                            name, reduction * 100, self._q)
            else:
                raise InterventionError(source, f"Unknown intervention type: '{name}'.")

    def reset(self) -> None:
        """Restore ``q`` and the contact scale to their construction values."""
        with self._lock:
            self._q = self._baseline_q
            self._scale_C = self._baseline_scale_C
            self._update_current_contacts()
            logger.info("SIR model parameters reset to baseline (q=%s, scale_C_total=%s).",
                        self._q, self._scale_C)

    # --- properties ---

    @property
    def state_size(self) -> int:
        return 3 * self._n

    @property
    def state_names(self) -> list[str]:
        return [f"{prefix}{i}" for prefix in "SIR" for i in range(self._n)]

    @property
    def num_age_classes(self) -> int:
        return self._n

    @property
    def population_sizes(self) -> np.ndarray:
        with self._lock:
            return self._N.copy()

    @property
    def current_contact_matrix(self) -> np.ndarray:
        with self._lock:
            return self._C_current.copy()

    @property
    def baseline_contact_matrix(self) -> np.ndarray:
        with self._lock:
            return self._C_baseline.copy()

    @property
    def recovery_rate(self) -> np.ndarray:
        with self._lock:
            return self._gamma.copy()

    @recovery_rate.setter
    def recovery_rate(self, value) -> None:
        with self._lock:
            self._set_recovery_rate(value)

    @property
    def transmissibility(self) -> float:
        with self._lock:
            return self._q

    @transmissibility.setter
    def transmissibility(self, value) -> None:
        with self._lock:
            self._set_transmissibility(value)

    @property
    def contact_scale_factor(self) -> float:
        with self._lock:
            return self._scale_C

    @contact_scale_factor.setter
    def contact_scale_factor(self, value) -> None:
        with self._lock:
            self._set_contact_scale(value)