"""Parameter tables for the LNA: column layout and in-place parameter updates."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from lna.exceptions import DimensionMismatchError

logger = logging.getLogger(__name__)


def write_parameters(lna_pars: np.ndarray, parameters: Sequence[float]) -> None:
    """Overwrite the leading columns of every row of ``lna_pars`` with ``parameters``.

    Parameters
    ----------
    lna_pars : np.ndarray, shape (n_rows, n_cols)
        Parameter table, modified in place.
    parameters : array-like, shape (n_pars,)
        New parameter values, broadcast across all rows. n_pars <= n_cols.
    """
    parameters = np.asarray(parameters, dtype=float).ravel()
    if lna_pars.ndim != 2:
        raise DimensionMismatchError(
            f"lna_pars must be a 2-D table, got {lna_pars.ndim} dimension(s)"
        )
    n_pars = parameters.size
    if n_pars > lna_pars.shape[1]:
        raise DimensionMismatchError(
            f"Cannot write {n_pars} parameters into a table with {lna_pars.shape[1]} columns"
        )
    lna_pars[:, :n_pars] = parameters


def check_lna_inputs(
    lna_times: np.ndarray,
    lna_pars: np.ndarray,
    param_update_inds: Sequence[bool],
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Validate the time grid, parameter table and update flags against each other.

    Returns
    -------
    tuple of np.ndarray
        ``(lna_times, lna_pars, param_update_inds)`` as float, float and bool arrays.
    """
    lna_times = np.asarray(lna_times, dtype=float).ravel()
    lna_pars = np.asarray(lna_pars, dtype=float)
    param_update_inds = np.asarray(param_update_inds, dtype=bool).ravel()

    n_times = lna_times.size
    if n_times < 2:
        raise DimensionMismatchError(f"At least two time points are required, got {n_times}")
    if np.any(np.diff(lna_times) <= 0):
        raise DimensionMismatchError("lna_times must be strictly increasing")
    if lna_pars.ndim != 2 or lna_pars.shape[0] != n_times:
        raise DimensionMismatchError(
            f"lna_pars must have one row per time point ({n_times}), got shape {lna_pars.shape}"
        )
    if param_update_inds.size != n_times:
        raise DimensionMismatchError(
            f"param_update_inds must have length {n_times}, got {param_update_inds.size}"
        )
    return lna_times, lna_pars, param_update_inds


@dataclass
class ParameterLayout:
    """Column layout of an LNA parameter table.

    A row holds, in order: model parameters, constants, time-varying covariates
    and compartment volumes.

    Attributes
    ----------
    param_names : tuple of str
    const_names : tuple of str
    tcovar_names : tuple of str
    compartment_names : tuple of str
    """

    param_names: Tuple[str, ...]
    compartment_names: Tuple[str, ...]
    const_names: Tuple[str, ...] = ()
    tcovar_names: Tuple[str, ...] = ()
    _index: Dict[str, int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.param_names = tuple(self.param_names)
        self.compartment_names = tuple(self.compartment_names)
        self.const_names = tuple(self.const_names)
        self.tcovar_names = tuple(self.tcovar_names)

        names = self.column_names
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate column names in layout: {names}")
        self._index = {name: i for i, name in enumerate(names)}

    @property
    def column_names(self) -> Tuple[str, ...]:
        return self.param_names + self.const_names + self.tcovar_names + self.compartment_names

    @property
    def n_cols(self) -> int:
        return len(self.column_names)

    @property
    def n_comps(self) -> int:
        return len(self.compartment_names)

    @property
    def tcovar_start(self) -> int:
        return len(self.param_names) + len(self.const_names)

    @property
    def init_start(self) -> int:
        """Column where the compartment volumes begin."""
        return self.tcovar_start + len(self.tcovar_names)

    @property
    def init_end(self) -> int:
        return self.init_start + self.n_comps

    def index(self, name: str) -> int:
        """Column index of ``name``."""
        try:
            return self._index[name]
        except KeyError:
            raise KeyError(f"Unknown column '{name}', expected one of {list(self._index)}") from None

    def build_table(
        self,
        lna_times: np.ndarray,
        parameters: Sequence[float],
        init_volumes: Sequence[float],
        constants: Optional[Sequence[float]] = None,
        tcovar: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """Allocate a parameter table with one row per time point.

        Parameters
        ----------
        lna_times : np.ndarray, shape (n_times,)
        parameters : array-like, shape (n_params,)
        init_volumes : array-like, shape (n_comps,)
            Initial compartment volumes, repeated on every row.
        constants : array-like, shape (n_consts,), optional
        tcovar : np.ndarray, shape (n_times, n_tcovar), optional
            Covariate values at each time point.

        Returns
        -------
        np.ndarray, shape (n_times, n_cols)
        """
        n_times = len(lna_times)
        parameters = np.asarray(parameters, dtype=float).ravel()
        init_volumes = np.asarray(init_volumes, dtype=float).ravel()

        if parameters.size != len(self.param_names):
            raise DimensionMismatchError(
                f"Expected {len(self.param_names)} parameters, got {parameters.size}"
            )
        if init_volumes.size != self.n_comps:
            raise DimensionMismatchError(
                f"Expected {self.n_comps} initial volumes, got {init_volumes.size}"
            )

        lna_pars = np.zeros((n_times, self.n_cols))
        write_parameters(lna_pars, parameters)

        if self.const_names:
            constants = np.asarray(constants if constants is not None else [], dtype=float).ravel()
            if constants.size != len(self.const_names):
                raise DimensionMismatchError(
                    f"Expected {len(self.const_names)} constants, got {constants.size}"
                )
            lna_pars[:, len(self.param_names):self.tcovar_start] = constants

        if self.tcovar_names:
            if tcovar is None:
                raise DimensionMismatchError(
                    f"Layout declares covariates {self.tcovar_names} but none were given"
                )
            tcovar = np.asarray(tcovar, dtype=float).reshape(n_times, -1)
            if tcovar.shape[1] != len(self.tcovar_names):
                raise DimensionMismatchError(
                    f"Expected {len(self.tcovar_names)} covariate columns, got {tcovar.shape[1]}"
                )
            lna_pars[:, self.tcovar_start:self.init_start] = tcovar

        lna_pars[:, self.init_start:self.init_end] = init_volumes
        logger.debug("Built parameter table with shape %s", lna_pars.shape)
        return lna_pars
