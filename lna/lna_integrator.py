"""CasADi symbolic integrators for the LNA of the log-transformed counting process.

For an interval starting from compartment volumes X_start, let N be the vector of
event counts over the interval and Z = log(N + 1). With event rates h(X, theta)
evaluated at X = X_start + S N, the LNA moment equations are

    dZ/dt   = f(Z)  = (exp(-Z) - exp(-2Z) / 2) * h
    dPhi/dt = F Phi + Phi F^T + diag(exp(-2Z) * h),   F = df/dZ

The drift Z and diffusion Phi both start from zero at the left endpoint.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import casadi as ca
import numpy as np
from scipy.integrate import solve_ivp

from lna.config import INTEGRATION_ATOL, INTEGRATION_RTOL
from lna.exceptions import DimensionMismatchError, IntegrationError
from lna.models import LNAModel

logger = logging.getLogger(__name__)


class LNAIntegrator(ABC):
    """Integrator context: the ODE system plus its current parameter state.

    ``set_parameters`` replaces the parameter vector used by every subsequent
    ``integrate`` call. ``integrate`` advances ``state`` (length ``n_odes``) in place.
    """

    n_odes: int

    def __init__(self) -> None:
        self.params: np.ndarray | None = None

    def set_parameters(self, params: np.ndarray) -> None:
        self.params = np.array(params, dtype=float, copy=True)

    @abstractmethod
    def integrate(self, state: np.ndarray, t_start: float, t_end: float, step_size: float) -> None:
        """Advance ``state`` from ``t_start`` to ``t_end`` with steps no larger than ``step_size``."""


class _CasadiLNAIntegrator(LNAIntegrator):
    """Error-controlled integration of a compiled CasADi right-hand side.

    ``solve_ivp`` adapts its steps to ``rtol``/``atol``; ``step_size`` is both the
    first trial step and the largest step it may take.
    """

    def __init__(self, model: LNAModel, rtol: float = INTEGRATION_RTOL,
                 atol: float = INTEGRATION_ATOL) -> None:
        super().__init__()
        if not (rtol > 0 and atol > 0):
            raise ValueError(f"rtol and atol must be positive, got rtol={rtol}, atol={atol}")
        self.model = model
        self.n_events = model.n_events
        self.n_pars = model.layout.n_cols
        self.rtol = rtol
        self.atol = atol
        self._F_rhs = self._build_rhs_function()
        logger.debug("Built %s RHS with %d ODEs", type(self).__name__, self.n_odes)

    # -------------------------------------------------------------------------
    # Symbolic builders (called once at construction)
    # -------------------------------------------------------------------------

    def _event_rates(self, x: ca.SX, p: ca.SX) -> ca.SX:
        rates = self.model.rates(x, p, self.model.layout)
        if len(rates) != self.n_events:
            raise DimensionMismatchError(
                f"Rate function returned {len(rates)} rates for {self.n_events} events"
            )
        return ca.vertcat(*rates)

    def _drift(self, Z: ca.SX, x_start: ca.SX, p: ca.SX) -> tuple[ca.SX, ca.SX]:
        """Log-scale drift f(Z) and the diffusion source term diag(exp(-2Z) * h)."""
        S = ca.DM(self.model.stoich_matrix)
        x = x_start + ca.mtimes(S, ca.exp(Z) - 1)
        h = self._event_rates(x, p)
        f = (ca.exp(-Z) - 0.5 * ca.exp(-2 * Z)) * h
        return f, ca.diag(ca.exp(-2 * Z) * h)

    @abstractmethod
    def _build_rhs(self, z: ca.SX, p: ca.SX) -> ca.SX:
        """Right-hand side of the augmented system in terms of z and p."""

    def _build_rhs_function(self) -> ca.Function:
        """Compiled right-hand side of the augmented system.

        Returns
        -------
        ca.Function
            Signature: (z[n_odes], p[n_pars]) -> dz[n_odes]
        """
        z = ca.SX.sym('z', self.n_odes)
        p = ca.SX.sym('p', self.n_pars)

        return ca.Function(
            'lna_rhs',
            [z, p], [self._build_rhs(z, p)],
            ['z', 'p'], ['dz'],
        )

    # -------------------------------------------------------------------------
    # Integration
    # -------------------------------------------------------------------------

    def _initial_state(self, state: np.ndarray) -> np.ndarray:
        return np.array(state, dtype=float)

    def integrate(self, state: np.ndarray, t_start: float, t_end: float, step_size: float) -> None:
        if self.params is None:
            raise IntegrationError("set_parameters() must be called before integrate()")
        if len(state) != self.n_odes:
            raise DimensionMismatchError(
                f"State buffer has length {len(state)}, expected {self.n_odes}"
            )
        if step_size <= 0:
            raise ValueError(f"step_size must be positive, got {step_size}")

        params = self.params

        def rhs(t, z):
            return self._F_rhs(z, params).full().flatten()

        z0 = self._initial_state(state)
        if t_end == t_start:
            z_end = z0
        else:
            max_step = min(step_size, t_end - t_start)
            sol = solve_ivp(
                rhs, (t_start, t_end), z0,
                first_step=max_step, max_step=max_step, rtol=self.rtol, atol=self.atol,
            )
            if not sol.success:
                raise IntegrationError(
                    f"LNA integration from t={t_start} to t={t_end} failed: {sol.message}"
                )
            z_end = sol.y[:, -1]

        if not np.all(np.isfinite(z_end)):
            raise IntegrationError(
                f"Non-finite LNA state after integrating from t={t_start} to t={t_end}"
            )
        state[:] = z_end


class ProposalIntegrator(_CasadiLNAIntegrator):
    """Drift and diffusion of the log-scale increments over one interval.

    State z = [Z (n_events); vec(Phi) (n_events^2, column-major)]. The starting
    volumes are the compartment-volume columns of the current parameter row, so the
    caller must write updated volumes into the parameters between intervals and
    zero the state before each call.
    """

    def __init__(self, model: LNAModel, rtol: float = INTEGRATION_RTOL,
                 atol: float = INTEGRATION_ATOL) -> None:
        self.n_odes = model.n_events + model.n_events ** 2
        super().__init__(model, rtol=rtol, atol=atol)

    def _build_rhs(self, z: ca.SX, p: ca.SX) -> ca.SX:
        n = self.n_events
        layout = self.model.layout
        Z = z[:n]
        Phi = ca.reshape(z[n:], n, n)  # column-major

        x_start = p[layout.init_start:layout.init_end]
        f, source = self._drift(Z, x_start, p)
        F = ca.jacobian(f, Z)

        dPhidt = F @ Phi + Phi @ F.T + source
        return ca.vertcat(f, ca.vec(dPhidt))


class DensityIntegrator(_CasadiLNAIntegrator):
    """Drift of the log-scale increments, conditioned on the observed path.

    State z = [incidence (n_events); Z (n_events)]. The second half is the residual
    slot: after each call it holds the mean log increment over the interval, and
    the caller overwrites it with the observed log increment. On entry the observed
    increment is folded into the cumulative incidence, which sets the starting
    volumes max(X0 + S incidence, 0) of the next interval; X0 are the
    compartment-volume columns of the parameter row.
    """

    def __init__(self, model: LNAModel, rtol: float = INTEGRATION_RTOL,
                 atol: float = INTEGRATION_ATOL) -> None:
        self.n_odes = 2 * model.n_events
        super().__init__(model, rtol=rtol, atol=atol)

    def _build_rhs(self, z: ca.SX, p: ca.SX) -> ca.SX:
        n = self.n_events
        layout = self.model.layout
        incidence = z[:n]
        Z = z[n:]

        S = ca.DM(self.model.stoich_matrix)
        x0 = p[layout.init_start:layout.init_end]
        x_start = ca.fmax(x0 + ca.mtimes(S, incidence), 0)
        f, _ = self._drift(Z, x_start, p)

        return ca.vertcat(ca.SX.zeros(n), f)

    def _initial_state(self, state: np.ndarray) -> np.ndarray:
        n = self.n_events
        z0 = np.zeros(self.n_odes)
        z0[:n] = state[:n] + np.maximum(np.exp(state[n:]) - 1.0, 0.0)
        return z0
