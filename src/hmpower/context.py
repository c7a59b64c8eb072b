r"""
Cosmology contexts: the background, power-spectrum and halo services the halo model consumes.

The halo-model engine never computes cosmology itself. Instead, it asks a
:class:`CosmologyContext` for the handful of quantities it needs (growth factor,
mass variance, mass function, bias, linear power, mean density and halo radius).
Any object providing these methods can be used -- subclass :class:`CosmologyContext`
and implement the services you need.

A ready-made implementation, :class:`ColossusContext`, transparently uses the
``colossus`` code for every service. It is constructed from an ``astropy``
cosmology, converted with ``colossus``' own ``fromAstropy``.

Units are those of the halo model engine: masses in :math:`M_\odot`, comoving
distances in Mpc and wavenumbers in 1/Mpc -- no factors of :math:`h`.

Examples
--------
A toy context with a flat mass function::

    >>> class Flat(CosmologyContext):
    >>>     h = 0.7
    >>>     def dndlog10m(self, m, a, delta_v):
    >>>         return 1e-5
    >>>     ...

Using colossus with the Planck 2015 cosmology::

    >>> from hmpower.context import ColossusContext
    >>> ctx = ColossusContext()
    >>> ctx.linear_power(0.1, 1.0)
"""
import contextlib
import threading

import numpy as np
from astropy.cosmology import FLRW, Planck15
from colossus.cosmology import cosmology as ccosmo
from colossus.lss import bias as cbias
from colossus.lss import mass_function, peaks

from .errors import ExternalServiceError, HaloModelError

_COLOSSUS_LOCK = threading.RLock()


class CosmologyContext:
    """
    Base-class for cosmology contexts.

    Subclasses must implement :meth:`growth_factor`, :meth:`sigma`,
    :meth:`dndlog10m`, :meth:`bias`, :meth:`linear_power`, :meth:`mean_density`
    and :meth:`omega_m`, and provide the dimensionless Hubble parameter ``h``.
    The virial overdensity and halo radius have default implementations in terms
    of those.
    """

    h = None

    def growth_factor(self, a):
        """Linear growth factor at scale factor ``a``."""
        raise NotImplementedError

    def sigma(self, m, a):
        """Mass variance of the linear density field smoothed on mass ``m`` [Msun]."""
        raise NotImplementedError

    def dndlog10m(self, m, a, delta_v):
        """Halo mass function, number density per unit log10 mass [Mpc^-3]."""
        raise NotImplementedError

    def bias(self, m, a, delta_v):
        """Linear halo bias."""
        raise NotImplementedError

    def linear_power(self, k, a):
        """Linear matter power spectrum [Mpc^3] at wavenumber ``k`` [1/Mpc]."""
        raise NotImplementedError

    def mean_density(self, a):
        """Physical mean matter density at ``a`` [Msun/Mpc^3]."""
        raise NotImplementedError

    def omega_m(self, a):
        """Matter density parameter at ``a``."""
        raise NotImplementedError

    def virial_overdensity(self, a):
        r"""
        Virial overdensity relative to the mean matter density.

        Uses the fit of Bryan & Norman (1998):

        .. math:: \Delta_v = (18\pi^2 + 82x - 39x^2)/\Omega_m(a), \quad x = \Omega_m(a) - 1
        """
        om = self.omega_m(a)
        x = om - 1.0
        return (18 * np.pi ** 2 + 82 * x - 39 * x ** 2) / om

    def radius_at_overdensity(self, m, a, delta_v):
        """Comoving radius [Mpc] enclosing ``delta_v`` times the mean matter density."""
        # The comoving mean density is the present-day one.
        return (3 * m / (4 * np.pi * self.mean_density(1.0) * delta_v)) ** (1.0 / 3.0)


def call_service(context, service, *args):
    """
    Call ``context.<service>(*args)``, converting foreign failures.

    Errors raised by ``hmpower`` itself are propagated as they are; any other
    exception becomes an :class:`~hmpower.errors.ExternalServiceError` chained
    to the original.
    """
    try:
        return getattr(context, service)(*args)
    except HaloModelError:
        raise
    except Exception as err:
        raise ExternalServiceError(
            f"{type(context).__name__}.{service}{args}: {err}"
        ) from err


class ColossusContext(CosmologyContext):
    """
    A cosmology context using ``colossus`` for every service.

    Parameters
    ----------
    cosmo : :class:`astropy.cosmology.FLRW` instance, optional
        The background cosmology. Default Planck15.
    sigma_8, n : float, optional
        Normalisation and spectral index of the primordial power, which astropy
        does not carry.
    mf_model : str, optional
        A ``colossus`` mass function model name.
    bias_model : str, optional
        A ``colossus`` halo bias model name.
    mdef : str, optional
        The ``colossus`` mass definition used for the mass function and bias.
    colossus_params : dict, optional
        Further parameters for the ``colossus`` cosmology.

    Notes
    -----
    ``colossus`` works in :math:`M_\odot/h` and Mpc/h. Conversions to the
    h-free units of this package are done here, so callers never see them.

    The mass variance, mass function and bias of ``colossus`` act on its global
    current cosmology. Each of these calls selects this context's cosmology and
    evaluates under a module-wide lock, so contexts may be shared between threads,
    but such calls are serialised.
    """

    def __init__(
        self,
        cosmo: FLRW = Planck15,
        sigma_8: float = 0.8159,
        n: float = 0.9667,
        mf_model: str = "tinker08",
        bias_model: str = "tinker10",
        mdef: str = "vir",
        colossus_params=None,
    ):
        self.cosmo = cosmo
        self.mf_model = mf_model
        self.bias_model = bias_model
        self.mdef = mdef
        # fromAstropy also sets the new cosmology as colossus' current one.
        with _COLOSSUS_LOCK:
            self.colossus_cosmo = ccosmo.fromAstropy(
                cosmo,
                sigma8=sigma_8,
                ns=n,
                cosmo_name="custom",
                **(colossus_params or {}),
            )
        self.h = self.colossus_cosmo.h

    @contextlib.contextmanager
    def _activated(self):
        # colossus module-level functions act on its global "current" cosmology.
        with _COLOSSUS_LOCK:
            if ccosmo.getCurrent() is not self.colossus_cosmo:
                ccosmo.setCurrent(self.colossus_cosmo)
            yield

    @staticmethod
    def _z(a):
        return 1.0 / a - 1.0

    def growth_factor(self, a):
        # colossus normalises to unity today.
        return self.colossus_cosmo.growthFactor(self._z(a))

    def sigma(self, m, a):
        with self._activated():
            r = peaks.lagrangianR(m * self.h)
            return self.colossus_cosmo.sigma(r, self._z(a))

    def dndlog10m(self, m, a, delta_v):
        # dn/dlnM in (h/Mpc)^3. The halo definition is fixed by mdef.
        with self._activated():
            dndlnm = mass_function.massFunction(
                m * self.h,
                self._z(a),
                q_in="M",
                q_out="dndlnM",
                mdef=self.mdef,
                model=self.mf_model,
            )
        return dndlnm * self.h ** 3 * np.log(10)

    def bias(self, m, a, delta_v):
        with self._activated():
            return cbias.haloBias(
                m * self.h, self._z(a), mdef=self.mdef, model=self.bias_model
            )

    def linear_power(self, k, a):
        return (
            self.colossus_cosmo.matterPowerSpectrum(k / self.h, self._z(a))
            / self.h ** 3
        )

    def mean_density(self, a):
        # rho_m is in Msun h^2 / kpc^3, physical.
        return self.colossus_cosmo.rho_m(self._z(a)) * 1e9 * self.h ** 2

    def omega_m(self, a):
        return self.colossus_cosmo.Om(self._z(a))
