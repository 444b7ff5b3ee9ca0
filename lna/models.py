"""Compartmental model definitions consumed by the LNA integrators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Tuple

import casadi as ca
import numpy as np

from lna.exceptions import DimensionMismatchError
from lna.parameters import ParameterLayout

# rates(x, p, layout) -> one CasADi expression per event
RateFunction = Callable[[ca.SX, ca.SX, ParameterLayout], List[ca.SX]]


@dataclass
class LNAModel:
    """Stochastic compartmental model described by its events.

    Attributes
    ----------
    compartment_names : tuple of str
    event_names : tuple of str
    stoich_matrix : np.ndarray, shape (n_comps, n_events)
        Column e is the net change to each compartment when event e fires.
    layout : ParameterLayout
        Column layout of the parameter table. Its compartment names must match.
    rates : RateFunction
        Event rates as symbolic functions of the volumes x and parameter row p.
    """
    compartment_names: Tuple[str, ...]
    event_names: Tuple[str, ...]
    stoich_matrix: np.ndarray
    layout: ParameterLayout
    rates: RateFunction

    def __post_init__(self) -> None:
        self.compartment_names = tuple(self.compartment_names)
        self.event_names = tuple(self.event_names)
        self.stoich_matrix = np.asarray(self.stoich_matrix, dtype=float)

        expected = (len(self.compartment_names), len(self.event_names))
        if self.stoich_matrix.shape != expected:
            raise DimensionMismatchError(
                f"stoich_matrix must have shape {expected} (compartments x events), "
                f"got {self.stoich_matrix.shape}"
            )
        if self.layout.compartment_names != self.compartment_names:
            raise DimensionMismatchError(
                f"Layout compartments {self.layout.compartment_names} do not match "
                f"model compartments {self.compartment_names}"
            )

    @property
    def n_comps(self) -> int:
        return len(self.compartment_names)

    @property
    def n_events(self) -> int:
        return len(self.event_names)

    @property
    def flow_matrix(self) -> np.ndarray:
        """Events x compartments view of the stoichiometry."""
        return self.stoich_matrix.T

    @property
    def init_start(self) -> int:
        return self.layout.init_start


# =============================================================================
# MODELS
# =============================================================================

def _sir_rates(x: ca.SX, p: ca.SX, layout: ParameterLayout) -> List[ca.SX]:
    S, I = x[0], x[1]
    beta = p[layout.index('beta')]
    mu = p[layout.index('mu')]
    return [beta * S * I, mu * I]


def sir_model() -> LNAModel:
    """SIR model with mass-action infection.

    Events: S2I (rate beta*S*I), I2R (rate mu*I).
    """
    compartments = ('S', 'I', 'R')
    layout = ParameterLayout(param_names=('beta', 'mu'), compartment_names=compartments)
    stoich = np.array([
        [-1.0, 0.0],
        [1.0, -1.0],
        [0.0, 1.0],
    ])
    return LNAModel(
        compartment_names=compartments,
        event_names=('S2I', 'I2R'),
        stoich_matrix=stoich,
        layout=layout,
        rates=_sir_rates,
    )


def _seir_rates(x: ca.SX, p: ca.SX, layout: ParameterLayout) -> List[ca.SX]:
    S, E, I = x[0], x[1], x[2]
    beta = p[layout.index('beta')]
    omega = p[layout.index('omega')]
    mu = p[layout.index('mu')]
    return [beta * S * I, omega * E, mu * I]


def seir_model() -> LNAModel:
    """SEIR model: S2E (beta*S*I), E2I (omega*E), I2R (mu*I)."""
    compartments = ('S', 'E', 'I', 'R')
    layout = ParameterLayout(param_names=('beta', 'omega', 'mu'), compartment_names=compartments)
    stoich = np.array([
        [-1.0, 0.0, 0.0],
        [1.0, -1.0, 0.0],
        [0.0, 1.0, -1.0],
        [0.0, 0.0, 1.0],
    ])
    return LNAModel(
        compartment_names=compartments,
        event_names=('S2E', 'E2I', 'I2R'),
        stoich_matrix=stoich,
        layout=layout,
        rates=_seir_rates,
    )
