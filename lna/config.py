"""Configuration for LNA path proposal and density evaluation."""

from dataclasses import dataclass
from typing import Optional

import numpy as np

# Largest integration steps used by the proposer and the density evaluator.
PROPOSAL_STEP_SIZE = 1e-3
DENSITY_STEP_SIZE = 1.0

# Error control of the adaptive integrator
INTEGRATION_RTOL = 1e-7
INTEGRATION_ATOL = 1e-9


@dataclass
class LNAConfig:
    """Settings for an LNA run.

    Attributes:
        proposal_step_size: Largest integration step when proposing a path. Path
            construction needs a fine step since the diffusion is factorised.
        density_step_size: Largest integration step when re-scoring a path. Coarser,
            since only the drift and residual ODEs are reintegrated.
        rtol: Relative tolerance of the adaptive integrator.
        atol: Absolute tolerance of the adaptive integrator.
        seed: Seed for the draws generator. None = fresh entropy.
        t_end: Final time of the observation grid. Must be a multiple of dt.
        dt: Spacing of the observation grid.
        results_dir: Directory where the runner writes figures and CSV files.
    """

    # Integration settings
    proposal_step_size: float = PROPOSAL_STEP_SIZE
    density_step_size: float = DENSITY_STEP_SIZE
    rtol: float = INTEGRATION_RTOL
    atol: float = INTEGRATION_ATOL

    # Random draws
    seed: Optional[int] = None

    # Time grid
    t_end: float = 50.0
    dt: float = 1.0

    # Paths
    results_dir: str = 'results/lna'

    def __post_init__(self):
        """Validate step sizes, tolerances and grid settings."""
        for name in ('proposal_step_size', 'density_step_size', 'rtol', 'atol', 'dt', 't_end'):
            value = getattr(self, name)
            if not value > 0:
                raise ValueError(f"{name} must be positive, got {value!r}")
        if self.dt > self.t_end:
            raise ValueError(
                f"dt must not exceed t_end, got dt={self.dt} and t_end={self.t_end}"
            )
        n_intervals = self.t_end / self.dt
        if not np.isclose(n_intervals, round(n_intervals), rtol=0.0, atol=1e-9):
            raise ValueError(
                f"t_end must be a multiple of dt, got t_end={self.t_end} and dt={self.dt}"
            )

    def time_grid(self) -> np.ndarray:
        """Observation grid 0, dt, ..., t_end."""
        n_intervals = int(round(self.t_end / self.dt))
        return np.linspace(0.0, self.t_end, n_intervals + 1)

    def make_rng(self) -> np.random.Generator:
        """Generator used for the standard-normal perturbations."""
        return np.random.default_rng(self.seed)
