"""Proposal of LNA paths under the non-centered parameterization.

Each interval's log-scale increment is drift + L z, where L is the lower Cholesky
factor of the interval's diffusion and z a standard-normal draw. The increments are
mapped to the natural scale, clamped at zero and accumulated into cumulative
incidence. Compartment volumes implied by the incidence are fed back into the
integrator's parameters before the next interval is integrated.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from scipy.linalg import LinAlgError, cholesky

from lna.config import PROPOSAL_STEP_SIZE
from lna.exceptions import DimensionMismatchError, LNANumericalError
from lna.lna_integrator import LNAIntegrator
from lna.parameters import check_lna_inputs
from lna.path_history import LNAPath

logger = logging.getLogger(__name__)


def symmetrize_upper(matrix: np.ndarray) -> np.ndarray:
    """Symmetric matrix built from the upper triangle of ``matrix``."""
    upper = np.triu(matrix)
    return upper + np.triu(matrix, 1).T


def cholesky_lower(cov: np.ndarray, interval: Optional[int] = None) -> np.ndarray:
    """Lower Cholesky factor of a positive semi-definite covariance.

    Events with exactly zero variance must have zero covariance with every other
    event; their rows and columns of the factor are zero. The remaining block must
    be positive definite.

    Raises
    ------
    LNANumericalError
        If ``cov`` is not finite, has a negative variance, or cannot be factorised.
    """
    where = f" at interval {interval}" if interval is not None else ""

    if not np.all(np.isfinite(cov)):
        raise LNANumericalError(f"Diffusion matrix is not finite{where}", interval)

    variances = np.diag(cov)
    if np.any(variances < 0):
        raise LNANumericalError(
            f"Diffusion matrix has negative variances {variances[variances < 0]}{where}", interval
        )

    active = variances > 0
    chol = np.zeros_like(cov, dtype=float)
    if np.any(cov[~active, :] != 0) or np.any(cov[:, ~active] != 0):
        raise LNANumericalError(
            f"Diffusion matrix has zero variances with non-zero covariances{where}", interval
        )
    if not np.any(active):
        return chol

    block = np.ix_(active, active)
    try:
        chol[block] = cholesky(cov[block], lower=True)
    except LinAlgError as err:
        raise LNANumericalError(
            f"Diffusion matrix is not positive semi-definite{where}: {err}", interval
        ) from err
    return chol


def propose_lna(
    lna_times: np.ndarray,
    lna_pars: np.ndarray,
    init_start: int,
    param_update_inds: np.ndarray,
    stoich_matrix: np.ndarray,
    integrator: LNAIntegrator,
    draws: Optional[np.ndarray] = None,
    rng: Optional[np.random.Generator] = None,
    step_size: float = PROPOSAL_STEP_SIZE,
    record_processes: bool = False,
) -> LNAPath:
    """Simulate an LNA path from standard-normal perturbations.

    Parameters
    ----------
    lna_times : np.ndarray, shape (n_times,)
        Interval endpoints, strictly increasing.
    lna_pars : np.ndarray, shape (n_times, n_cols)
        Parameters, constants, time-varying covariates and compartment volumes at
        each time. Not modified.
    init_start : int
        Column of ``lna_pars`` where the compartment volumes start.
    param_update_inds : np.ndarray of bool, shape (n_times,)
        Times at which the parameters are reloaded from ``lna_pars``.
    stoich_matrix : np.ndarray, shape (n_comps, n_events)
        Net change of each compartment when each event fires.
    integrator : LNAIntegrator
        Integrates the drift and diffusion ODEs (n_odes = n_events + n_events^2).
        Its parameters are left set to the values of the final interval.
    draws : np.ndarray, shape (n_events, n_times-1), optional
        Perturbations to reuse. Drawn from ``rng`` when omitted.
    rng : np.random.Generator, optional
    step_size : float
        Largest step of the adaptive integrator.
    record_processes : bool
        If True, keep the per-interval drift, diffusion and log increments.

    Returns
    -------
    LNAPath

    Raises
    ------
    DimensionMismatchError
        On inconsistent input shapes.
    LNANumericalError
        If an interval's diffusion cannot be factorised.
    """
    lna_times, lna_pars, param_update_inds = check_lna_inputs(lna_times, lna_pars, param_update_inds)
    stoich_matrix = np.asarray(stoich_matrix, dtype=float)
    if stoich_matrix.ndim != 2:
        raise DimensionMismatchError(
            f"stoich_matrix must be 2-D (compartments x events), got {stoich_matrix.ndim} dimension(s)"
        )

    n_comps, n_events = stoich_matrix.shape
    n_odes = n_events + n_events * n_events
    n_times = len(lna_times)
    init_end = init_start + n_comps

    if init_start < 0 or init_end > lna_pars.shape[1]:
        raise DimensionMismatchError(
            f"Compartment volumes at columns [{init_start}, {init_end}) do not fit "
            f"in a parameter table with {lna_pars.shape[1]} columns"
        )
    if integrator.n_odes != n_odes:
        raise DimensionMismatchError(
            f"Integrator has {integrator.n_odes} ODEs, expected {n_odes} for {n_events} events"
        )

    if draws is None:
        if rng is None:
            rng = np.random.default_rng()
        draws = rng.standard_normal((n_events, n_times - 1))
    else:
        draws = np.asarray(draws, dtype=float)
        if draws.shape != (n_events, n_times - 1):
            raise DimensionMismatchError(
                f"draws must have shape {(n_events, n_times - 1)}, got {draws.shape}"
            )

    logger.debug(
        "Proposing LNA path: %d times, %d compartments, %d events, step_size=%g",
        n_times, n_comps, n_events, step_size,
    )

    current_params = lna_pars[0].copy()
    integrator.set_parameters(current_params)

    init_state = current_params[init_start:init_end].copy()
    init_volumes = init_state.copy()

    lna_state_vec = np.zeros(n_odes)
    c_incid = np.zeros(n_events)

    lna_path = np.zeros((n_times, n_events + 1))
    lna_path[:, 0] = lna_times

    if record_processes:
        drift_process = np.zeros((n_times, n_events))
        diffusion_process = np.zeros((n_times, n_events, n_events))
        log_increments = np.zeros((n_times, n_events))

    for j in range(n_times - 1):
        # the buffer carries nothing over between intervals
        lna_state_vec[:] = 0.0
        integrator.integrate(lna_state_vec, lna_times[j], lna_times[j + 1], step_size)

        lna_drift = lna_state_vec[:n_events].copy()
        # column-major, as laid out by the integrator
        lna_diffusion = symmetrize_upper(
            lna_state_vec[n_events:].reshape((n_events, n_events), order='F')
        )

        try:
            log_lna = lna_drift + cholesky_lower(lna_diffusion, interval=j) @ draws[:, j]
        except LNANumericalError:
            logger.error("Cholesky factorisation failed on [%g, %g]", lna_times[j], lna_times[j + 1])
            raise
        if not np.all(np.isfinite(log_lna)):
            raise LNANumericalError(f"Non-finite LNA increment at interval {j}", j)

        nat_lna = np.exp(log_lna) - 1.0
        nat_lna[nat_lna < 0] = 0.0

        c_incid += nat_lna
        lna_path[j + 1, 1:] = c_incid

        init_volumes = init_state + stoich_matrix @ c_incid
        if np.any(init_volumes < 0):
            logger.debug("Clamping negative compartment volumes at t=%g", lna_times[j + 1])
            init_volumes[init_volumes < 0] = 0.0

        if record_processes:
            drift_process[j + 1] = lna_drift
            diffusion_process[j + 1] = lna_diffusion
            log_increments[j + 1] = log_lna

        if param_update_inds[j + 1]:
            current_params = lna_pars[j + 1].copy()

        current_params[init_start:init_end] = init_volumes
        integrator.set_parameters(current_params)

    if record_processes:
        return LNAPath(
            draws=draws,
            lna_path=lna_path,
            drift=drift_process,
            diffusion=diffusion_process,
            log_increments=log_increments,
        )
    return LNAPath(draws=draws, lna_path=lna_path)
