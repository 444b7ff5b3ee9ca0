"""Density of an LNA path after an elliptical slice sampling update.

Only the drift and residual ODEs are reintegrated. The diffusion process stored in
the path bundle is reused as is: the caller guarantees that the perturbation being
scored leaves it valid, so it is never recomputed here.
"""

from __future__ import annotations

import dataclasses
import logging

import numpy as np
from scipy.stats import multivariate_normal

from lna.config import DENSITY_STEP_SIZE
from lna.exceptions import DimensionMismatchError, LNANumericalError
from lna.lna_integrator import LNAIntegrator
from lna.parameters import check_lna_inputs
from lna.path_history import LNAPathBundle

logger = logging.getLogger(__name__)


def _check_bundle(path: LNAPathBundle, n_times: int, n_rates: int) -> None:
    expected = {
        'lna_path': (n_times, n_rates + 1),
        'res_path': (n_times, n_rates + 1),
        'drift': (n_times, n_rates),
        'residual': (n_times, n_rates),
        'diffusion': (n_times, n_rates, n_rates),
    }
    for name, shape in expected.items():
        actual = np.shape(getattr(path, name))
        if actual != shape:
            raise DimensionMismatchError(f"path.{name} must have shape {shape}, got {actual}")


def lna_density(
    path: LNAPathBundle,
    lna_times: np.ndarray,
    lna_pars: np.ndarray,
    param_update_inds: np.ndarray,
    flow_matrix: np.ndarray,
    integrator: LNAIntegrator,
    step_size: float = DENSITY_STEP_SIZE,
) -> LNAPathBundle:
    """Recompute the residual process of ``path`` and the log density of its residual path.

    For each interval [t[j-1], t[j]] the residual process row j is the integrated
    conditional mean, and res_path row j is scored against it under diffusion
    slice j. The observed residual is then copied back into the ODE state so the
    next interval is integrated from the path, not from the prediction.

    Parameters
    ----------
    path : LNAPathBundle
        Path whose res_path has already been perturbed. Not modified.
    lna_times : np.ndarray, shape (n_times,)
    lna_pars : np.ndarray, shape (n_times, n_cols)
    param_update_inds : np.ndarray of bool, shape (n_times,)
    flow_matrix : np.ndarray, shape (n_rates, n_comps)
        One row per event. Only its row count is used.
    integrator : LNAIntegrator
        Integrates the drift and residual ODEs (n_odes = 2 * n_rates); the second
        half of its state is the residual.
    step_size : float
        Largest step of the adaptive integrator.

    Returns
    -------
    LNAPathBundle
        Copy of ``path`` with the updated residual process and ``lna_log_lik``.
    """
    lna_times, lna_pars, param_update_inds = check_lna_inputs(lna_times, lna_pars, param_update_inds)
    flow_matrix = np.asarray(flow_matrix, dtype=float)
    if flow_matrix.ndim != 2:
        raise DimensionMismatchError(
            f"flow_matrix must be 2-D (events x compartments), got {flow_matrix.ndim} dimension(s)"
        )

    n_rates = flow_matrix.shape[0]
    n_odes = 2 * n_rates
    n_times = len(lna_times)

    if integrator.n_odes != n_odes:
        raise DimensionMismatchError(
            f"Integrator has {integrator.n_odes} ODEs, expected {n_odes} for {n_rates} rates"
        )
    _check_bundle(path, n_times, n_rates)

    logger.debug("Evaluating LNA density: %d times, %d rates, step_size=%g", n_times, n_rates, step_size)

    current_params = lna_pars[0].copy()
    integrator.set_parameters(current_params)

    lna_state_vec = np.zeros(n_odes)
    residual_path = np.asarray(path.res_path, dtype=float)
    diffusion_process = np.asarray(path.diffusion, dtype=float)
    residual_process = np.array(path.residual, dtype=float, copy=True)

    resid_start = n_rates
    resid_end = 2 * n_rates

    lna_log_lik = 0.0
    for j in range(1, n_times):
        if param_update_inds[j - 1]:
            current_params = lna_pars[j - 1].copy()
            integrator.set_parameters(current_params)

        integrator.integrate(lna_state_vec, lna_times[j - 1], lna_times[j], step_size)

        residual_process[j] = lna_state_vec[resid_start:resid_end]

        observed = residual_path[j, 1:n_rates + 1]
        log_dens = multivariate_normal.logpdf(
            observed, residual_process[j], diffusion_process[j], allow_singular=True,
        )
        if np.isnan(log_dens):
            logger.error("Log density is NaN on [%g, %g]", lna_times[j - 1], lna_times[j])
            raise LNANumericalError(f"Log density is NaN at interval {j}", j)
        lna_log_lik += log_dens

        # condition the next interval on the observed residual
        lna_state_vec[resid_start:resid_end] = observed

    return dataclasses.replace(path, residual=residual_process, lna_log_lik=float(lna_log_lik))
