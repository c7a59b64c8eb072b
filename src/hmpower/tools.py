"""
Numerical utilities for the halo-model mass integrals.

Defines the fixed integration configuration used by every mass integral, a
:class:`QuadratureWorkspace` which scopes the adaptive quadrature of a single
integral, and the :class:`IntegrationResult` record it produces.
"""
import logging
from typing import Callable, NamedTuple

import numpy as np
from scipy.integrate import quad

logger = logging.getLogger("hmpower")


class IntegrationConfig(NamedTuple):
    """Bounds and tolerances of the mass integrals.

    Masses are in Msun. ``limit`` is the maximum number of subintervals the
    adaptive quadrature may create.
    """

    m_min: float = 1e7
    m_max: float = 1e17
    epsabs: float = 0.0
    epsrel: float = 1e-4
    limit: int = 1000

    @property
    def log10m_min(self):
        return np.log10(self.m_min)

    @property
    def log10m_max(self):
        return np.log10(self.m_max)


DEFAULT_CONFIG = IntegrationConfig()


class IntegrationResult(NamedTuple):
    """Outcome of one adaptive integral."""

    value: float
    abserr: float
    neval: int
    nintervals: int
    converged: bool
    message: str = ""


class QuadratureWorkspace:
    """
    Scratch space for a single globally-adaptive quadrature.

    The workspace bounds the number of subintervals and must be entered (as a
    context manager) before integrating. It is released on leaving the ``with``
    block, whatever the exit path, and cannot be shared by two integrals at once.

    Parameters
    ----------
    limit : int
        Maximum number of subintervals.

    Examples
    --------
    >>> with QuadratureWorkspace(1000) as w:
    >>>     res = w.integrate(np.sin, 0, np.pi, epsabs=0, epsrel=1e-4)
    """

    def __init__(self, limit: int = DEFAULT_CONFIG.limit):
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self.limit = int(limit)
        self.active = False
        self.nintervals = 0

    def __enter__(self):
        if self.active:
            raise RuntimeError("QuadratureWorkspace is already in use")
        self.active = True
        self.nintervals = 0
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.active = False
        return False

    def integrate(
        self, f: Callable[[float], float], a: float, b: float, epsabs: float, epsrel: float
    ) -> IntegrationResult:
        """
        Integrate ``f`` from ``a`` to ``b``.

        Exceptions raised by ``f`` propagate. Non-convergence does not raise: it
        is reported through :attr:`IntegrationResult.converged` and the message.
        """
        if not self.active:
            raise RuntimeError("QuadratureWorkspace must be entered before integrating")

        out = quad(
            f, a, b, epsabs=epsabs, epsrel=epsrel, limit=self.limit, full_output=1
        )
        value, abserr, info = out[:3]
        # quad only appends a message when QUADPACK flags a problem.
        message = out[3] if len(out) > 3 else ""
        self.nintervals = int(info["last"])

        res = IntegrationResult(
            value=value,
            abserr=abserr,
            neval=int(info["neval"]),
            nintervals=self.nintervals,
            converged=not message and bool(np.isfinite(value)),
            message=message,
        )
        logger.debug(
            "quad [%g, %g]: value=%g abserr=%g neval=%d intervals=%d converged=%s",
            a,
            b,
            res.value,
            res.abserr,
            res.neval,
            res.nintervals,
            res.converged,
        )
        return res
