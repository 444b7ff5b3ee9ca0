"""Containers for proposed LNA paths and for path bundles scored by the density evaluator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy.stats import multivariate_normal


@dataclass
class LNAPathBundle:
    """Latent LNA path together with the processes needed to score it.

    Attributes
    ----------
    lna_path : np.ndarray, shape (n_times, n_events+1)
        Time column followed by cumulative incidence per event.
    res_path : np.ndarray, shape (n_times, n_events+1)
        Time column followed by the observed residual values.
    drift : np.ndarray, shape (n_times, n_events)
        Drift process.
    residual : np.ndarray, shape (n_times, n_events)
        Residual process (conditional means of res_path).
    diffusion : np.ndarray, shape (n_times, n_events, n_events)
        Diffusion process. Slice j is the covariance over the interval ending at t[j].
    data_log_lik : float
        Log-likelihood of the data given the path, passed through unchanged.
    lna_log_lik : float, optional
        Log density of res_path, set by lna_density().
    """
    lna_path: np.ndarray
    res_path: np.ndarray
    drift: np.ndarray
    residual: np.ndarray
    diffusion: np.ndarray
    data_log_lik: float = 0.0
    lna_log_lik: Optional[float] = None


@dataclass
class LNAPath:
    """Output of propose_lna().

    Attributes
    ----------
    draws : np.ndarray, shape (n_events, n_times-1)
        Standard-normal perturbations, one column per interval.
    lna_path : np.ndarray, shape (n_times, n_events+1)
        Time column followed by cumulative incidence per event.
    drift : np.ndarray, shape (n_times, n_events), optional
        Drift of the log increments per interval (row 0 is zero).
    diffusion : np.ndarray, shape (n_times, n_events, n_events), optional
        Symmetrised diffusion per interval (slice 0 is zero).
    log_increments : np.ndarray, shape (n_times, n_events), optional
        drift + chol(diffusion) @ draws per interval (row 0 is zero).

    The last three are only filled when the path was proposed with
    ``record_processes=True``.
    """
    draws: np.ndarray
    lna_path: np.ndarray
    drift: Optional[np.ndarray] = None
    diffusion: Optional[np.ndarray] = None
    log_increments: Optional[np.ndarray] = None

    @property
    def times(self) -> np.ndarray:
        return self.lna_path[:, 0]

    @property
    def incidence(self) -> np.ndarray:
        """Cumulative incidence, shape (n_times, n_events)."""
        return self.lna_path[:, 1:]

    @property
    def n_events(self) -> int:
        return self.lna_path.shape[1] - 1

    @property
    def has_processes(self) -> bool:
        return self.drift is not None and self.diffusion is not None and self.log_increments is not None

    def _require_processes(self) -> None:
        if not self.has_processes:
            raise ValueError("Path was proposed without record_processes=True")

    def compartment_volumes(self, init_volumes: Sequence[float], stoich_matrix: np.ndarray) -> np.ndarray:
        """Compartment volumes implied by the path, clamped at zero.

        Returns
        -------
        np.ndarray, shape (n_times, n_comps)
        """
        init_volumes = np.asarray(init_volumes, dtype=float)
        volumes = init_volumes[np.newaxis, :] + self.incidence @ np.asarray(stoich_matrix, dtype=float).T
        return np.maximum(volumes, 0.0)

    def to_frame(self, event_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """Path as a DataFrame with a ``time`` column and one column per event."""
        if event_names is None:
            event_names = [f"event_{i}" for i in range(self.n_events)]
        if len(event_names) != self.n_events:
            raise ValueError(f"Expected {self.n_events} event names, got {len(event_names)}")
        return pd.DataFrame(self.lna_path, columns=['time', *event_names])

    def log_density(self) -> float:
        """Sum of the per-interval MVN log densities of the log increments."""
        self._require_processes()
        total = 0.0
        for j in range(1, len(self.times)):
            total += multivariate_normal.logpdf(
                self.log_increments[j], self.drift[j], self.diffusion[j], allow_singular=True,
            )
        return float(total)

    def to_bundle(self, data_log_lik: float = 0.0) -> LNAPathBundle:
        """Bundle for lna_density(), with the log increments as the residual path."""
        self._require_processes()
        res_path = np.column_stack([self.times, self.log_increments])
        return LNAPathBundle(
            lna_path=self.lna_path.copy(),
            res_path=res_path,
            drift=self.drift.copy(),
            residual=np.zeros_like(self.drift),
            diffusion=self.diffusion.copy(),
            data_log_lik=data_log_lik,
        )
