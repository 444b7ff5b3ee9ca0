"""Typed failures raised by the LNA core."""

from __future__ import annotations

from typing import Optional


class LNAError(Exception):
    """Base class for all LNA core errors."""
    pass


class DimensionMismatchError(LNAError, ValueError):
    """Raised when input shapes or lengths are inconsistent."""
    pass


class LNANumericalError(LNAError, ArithmeticError):
    """Raised when a diffusion matrix cannot be factorised or a density is not finite.

    Attributes
    ----------
    interval : int | None
        Index of the time interval at which the failure occurred.
    """

    def __init__(self, message: str, interval: Optional[int] = None) -> None:
        super().__init__(message)
        self.interval = interval


class IntegrationError(LNAError, RuntimeError):
    """Raised by the bundled CasADi integrators when the ODE state becomes non-finite."""
    pass
