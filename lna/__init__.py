"""Linear noise approximation: path proposal and density evaluation."""

from .config import LNAConfig, PROPOSAL_STEP_SIZE, DENSITY_STEP_SIZE
from .exceptions import (
    LNAError,
    DimensionMismatchError,
    LNANumericalError,
    IntegrationError,
)
from .parameters import ParameterLayout, write_parameters, check_lna_inputs
from .models import LNAModel, sir_model, seir_model
from .lna_integrator import LNAIntegrator, ProposalIntegrator, DensityIntegrator
from .path_history import LNAPath, LNAPathBundle
from .propose import propose_lna, cholesky_lower, symmetrize_upper
from .density import lna_density

__all__ = [
    'LNAConfig',
    'PROPOSAL_STEP_SIZE',
    'DENSITY_STEP_SIZE',
    'LNAError',
    'DimensionMismatchError',
    'LNANumericalError',
    'IntegrationError',
    'ParameterLayout',
    'write_parameters',
    'check_lna_inputs',
    'LNAModel',
    'sir_model',
    'seir_model',
    'LNAIntegrator',
    'ProposalIntegrator',
    'DensityIntegrator',
    'LNAPath',
    'LNAPathBundle',
    'propose_lna',
    'cholesky_lower',
    'symmetrize_upper',
    'lna_density',
]
