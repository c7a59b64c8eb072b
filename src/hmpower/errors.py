"""
Exceptions, status codes and result records used throughout ``hmpower``.

Internally every failure is an exception deriving from :class:`HaloModelError`.
Each exception class carries a :class:`Status` code, so that the public
operations (eg. :func:`~hmpower.halo_model.halomodel_matter_power`) can return a
:class:`HaloModelResult` holding the value, the status and a human-readable
message instead of raising.

Examples
--------
Check a result and fall back to exceptions if preferred::

    >>> res = halomodel_matter_power(context, k=1.0, a=1.0)
    >>> if not res.ok:
    >>>     print(res.status.name, res.message)
    >>> res.raise_for_status()
"""
import functools
from enum import IntEnum
from typing import NamedTuple

import numpy as np


class Status(IntEnum):
    """Status codes attached to results of the public operations."""

    SUCCESS = 0
    CONCENTRATION_DEFINITION_MISMATCH = 1
    UNKNOWN_CONCENTRATION_RELATION = 2
    UNKNOWN_WINDOW_PROFILE = 3
    ONE_HALO_INTEGRATION_FAILURE = 4
    TWO_HALO_INTEGRATION_FAILURE = 5
    EXTERNAL_SERVICE_FAILURE = 6


class HaloModelWarning(UserWarning):
    """Warning raised for recoverable problems, eg. quadrature non-convergence."""


class HaloModelError(Exception):
    """Base class of all errors raised by ``hmpower`` computations."""

    status = None


class ConcentrationDefinitionMismatch(HaloModelError):
    """A concentration relation was used with an overdensity it was not calibrated for."""

    status = Status.CONCENTRATION_DEFINITION_MISMATCH


class UnknownConcentrationRelation(HaloModelError):
    status = Status.UNKNOWN_CONCENTRATION_RELATION


class UnknownWindowProfile(HaloModelError):
    status = Status.UNKNOWN_WINDOW_PROFILE


class OneHaloIntegrationFailure(HaloModelError):
    status = Status.ONE_HALO_INTEGRATION_FAILURE


class TwoHaloIntegrationFailure(HaloModelError):
    status = Status.TWO_HALO_INTEGRATION_FAILURE


class ExternalServiceError(HaloModelError):
    """A consumed cosmology service (mass function, bias, ...) failed."""

    status = Status.EXTERNAL_SERVICE_FAILURE


_EXCEPTIONS = {
    exc.status: exc
    for exc in (
        ConcentrationDefinitionMismatch,
        UnknownConcentrationRelation,
        UnknownWindowProfile,
        OneHaloIntegrationFailure,
        TwoHaloIntegrationFailure,
        ExternalServiceError,
    )
}


class HaloModelResult(NamedTuple):
    """The value of a public operation together with its status."""

    value: float
    status: Status = Status.SUCCESS
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == Status.SUCCESS

    def raise_for_status(self):
        """Raise the exception matching :attr:`status`, if it is a failure."""
        if not self.ok:
            raise _EXCEPTIONS[self.status](self.message)


def returns_result(fnc):
    """
    Decorate a raising computation so that it returns a :class:`HaloModelResult`.

    Only :class:`HaloModelError` is converted: the first one raised becomes a
    result with a NaN value. Anything else is a bug and propagates untouched.
    """

    @functools.wraps(fnc)
    def wrapper(*args, **kwargs):
        try:
            value = fnc(*args, **kwargs)
        except HaloModelError as err:
            return HaloModelResult(np.nan, err.status, str(err))
        return HaloModelResult(value)

    return wrapper
