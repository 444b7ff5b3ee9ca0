"""
Pytest configuration and shared fixtures for the LNA tests.

The scripted integrators stand in for the ODE integration service: they return
prescribed drift/diffusion (or residual means) per interval and record every call,
so the proposer and evaluator recurrences can be checked exactly.
"""
import numpy as np
import pytest

from lna.lna_integrator import LNAIntegrator


class ScriptedProposalIntegrator(LNAIntegrator):
    """Writes drift and column-major diffusion computed by ``script(j, t_start, t_end, params)``."""

    def __init__(self, n_events, script):
        super().__init__()
        self.n_events = n_events
        self.n_odes = n_events + n_events ** 2
        self.script = script
        self.set_calls = []
        self.calls = []

    def set_parameters(self, params):
        super().set_parameters(params)
        self.set_calls.append(self.params.copy())

    def integrate(self, state, t_start, t_end, step_size):
        j = len(self.calls)
        self.calls.append({
            't_start': t_start,
            't_end': t_end,
            'step_size': step_size,
            'entry_state': np.array(state, copy=True),
            'params': self.params.copy(),
        })
        drift, diffusion = self.script(j, t_start, t_end, self.params)
        # accumulate rather than overwrite, so a stale buffer would show up
        state[:self.n_events] += np.asarray(drift, dtype=float)
        state[self.n_events:] += np.asarray(diffusion, dtype=float).flatten(order='F')


class ScriptedDensityIntegrator(LNAIntegrator):
    """Writes ``script(j, t_start, t_end, params)`` into the residual half of the state."""

    def __init__(self, n_rates, script):
        super().__init__()
        self.n_rates = n_rates
        self.n_odes = 2 * n_rates
        self.script = script
        self.set_calls = []
        self.calls = []

    def set_parameters(self, params):
        super().set_parameters(params)
        self.set_calls.append(self.params.copy())

    def integrate(self, state, t_start, t_end, step_size):
        j = len(self.calls)
        self.calls.append({
            't_start': t_start,
            't_end': t_end,
            'step_size': step_size,
            'entry_state': np.array(state, copy=True),
            'params': self.params.copy(),
        })
        state[self.n_rates:] = np.asarray(self.script(j, t_start, t_end, self.params), dtype=float)


class FailingIntegrator(LNAIntegrator):
    """Raises on the first integrate() call."""

    def __init__(self, n_odes, exc):
        super().__init__()
        self.n_odes = n_odes
        self.exc = exc

    def integrate(self, state, t_start, t_end, step_size):
        raise self.exc


# ==============================================================================
# SIR fixtures (3 compartments, 2 events)
# ==============================================================================

SIR_STOICH = np.array([
    [-1.0, 0.0],
    [1.0, -1.0],
    [0.0, 1.0],
])
SIR_INIT = np.array([990.0, 10.0, 0.0])


@pytest.fixture
def sir_stoich():
    return SIR_STOICH.copy()


@pytest.fixture
def lna_times():
    return np.array([0.0, 1.0, 2.0, 3.0])


@pytest.fixture
def sir_pars(lna_times):
    """Parameter table [beta, mu, S, I, R]; beta differs on every row."""
    n_times = len(lna_times)
    lna_pars = np.zeros((n_times, 5))
    lna_pars[:, 0] = 0.0005 * (1 + np.arange(n_times))
    lna_pars[:, 1] = 0.2
    lna_pars[:, 2:] = SIR_INIT
    return lna_pars


@pytest.fixture
def first_flag_only(lna_times):
    flags = np.zeros(len(lna_times), dtype=bool)
    flags[0] = True
    return flags


@pytest.fixture
def constant_script():
    """Same drift and a positive-definite diffusion on every interval."""
    drift = np.array([0.5, 0.2])
    diffusion = np.array([[0.3, 0.05], [0.05, 0.2]])

    def script(j, t_start, t_end, params):
        return drift, diffusion

    return script


@pytest.fixture
def scripted_proposal():
    return ScriptedProposalIntegrator


@pytest.fixture
def scripted_density():
    return ScriptedDensityIntegrator


@pytest.fixture
def failing_integrator():
    return FailingIntegrator
