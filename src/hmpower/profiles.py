r"""
Module defining halo density profiles and the window functions built from them.

The halo density profile describes the distribution of dark matter within a halo,
usually as

``rho(r|rho_s,r_s) = rho_s f(x=r/r_s)``

where ``r_s = r_vir/c`` is set by the concentration and the virial radius of the halo.
The halo model uses the Fourier transform of the profile, normalised to unity at
zero wavenumber, which is a function of ``K = k r_s`` and ``c`` only:

``U(k) = p(K, c) / h(c)``

where ``h(c)`` is the integral of ``f(x) x^2`` out to ``c`` and ``p`` the
un-normalised transform of the profile truncated at ``x=c``.

Profile models are defined as :class:`~hmf.Component` instances, registered by class
name. Only the NFW profile is provided; a new shape needs only ``_h`` and ``_p``.

The window function is the profile transform weighted by the halo mass and divided by
the mean matter density, ``W(M, k) = M U(k) / rho_m``. It is what enters the halo model
mass integrals (see :mod:`~hmpower.halo_model`).

Examples
--------
The normalised transform of a 1e13 Msun halo::

    >>> from hmpower.profiles import NFW
    >>> nfw = NFW(context)
    >>> nfw.u(k=1.0, m=1e13, a=1.0)

The window function, selecting the profile by label::

    >>> window_function(context, m=1e13, k=1.0, a=1.0,
    >>>                 delta_v=context.virial_overdensity(1.0), profile="NFW")
"""
import numpy as np
import scipy.special as sp
from hmf import Component, get_mdl
from hmf._internals import pluggable

from .concentration import CMRelation, Duffy08
from .context import CosmologyContext, call_service
from .errors import UnknownWindowProfile


@pluggable
class Profile(Component):
    """
    Halo radial density profiles.

    Parameters
    ----------
    context : :class:`~hmpower.context.CosmologyContext` instance
        Provides the halo radius and virial overdensity.
    cm_relation : :class:`~hmpower.concentration.CMRelation` instance, optional
        Concentration-mass relation used when no concentration is passed.
        Default is :class:`~hmpower.concentration.Duffy08`.
    """

    _defaults = {}

    def __init__(
        self,
        context: CosmologyContext,
        cm_relation: CMRelation = None,
        **model_parameters,
    ):
        self.context = context
        self.cm_relation = Duffy08(context) if cm_relation is None else cm_relation
        super(Profile, self).__init__(**model_parameters)

    def _h(self, c):
        """The integral of f(x)*x^2 out to c."""
        raise NotImplementedError

    def _p(self, K, c):
        """The un-normalised Fourier transform, for ``K = k r_s > 0``."""
        raise NotImplementedError

    def scale_radius(self, m, a, c, delta_v):
        """
        Return the comoving scale radius [Mpc] of a halo of mass ``m``.

        The scale radius is defined as :math:`r_s = r_{\\Delta}(m) / c`.
        """
        return call_service(self.context, "radius_at_overdensity", m, a, delta_v) / c

    def u(self, k, m, a, c=None, delta_v=None):
        """
        The Fourier transform of the density profile, normalised to 1 at ``k=0``.

        Parameters
        ----------
        k : float
            Comoving wavenumber [1/Mpc].
        m : float or array of floats
            The mass(es) of the halo(s) [Msun].
        a : float
            Scale factor.
        c : float or array of floats, optional
            Concentration(s) of the halo(s). Determined from :attr:`cm_relation` if
            not given.
        delta_v : float, optional
            Overdensity defining the halo radius. Default is the virial overdensity.
        """
        # Exactly one at k=0 by normalisation; K=0 is singular in _p.
        if k == 0:
            return self._reduce(np.ones_like(np.asarray(m, dtype=float)))

        if delta_v is None:
            delta_v = call_service(self.context, "virial_overdensity", a)
        if c is None:
            c = self.cm_relation.concentration(m, a, delta_v)

        K = k * self.scale_radius(m, a, c, delta_v)
        return self._reduce(self._p(K, c) / self._h(c))

    def _reduce(self, x):
        x = np.squeeze(np.atleast_1d(x))
        if x.size == 1:
            try:
                return x[0]
            except IndexError:
                return x.dtype.type(x)
        else:
            return x


class NFW(Profile):
    r"""
    Canonical Density Profile of Navarro, Frenk & White(1997).

    See documentation for :class:`Profile` for information on input parameters. This
    model has no free parameters.

    Notes
    -----
    This is an empirical form proposed in [1]_ and [2]_, with the formula

    .. math:: \rho(r) = \frac{\rho_s}{r/R_s\big(1+r/R_s\big)^2}

    The Fourier transform of the profile truncated at the virial radius is analytic
    (eg. Cooray & Sheth 2002, section 3):

    .. math:: U(K) = \frac{\sin K\,[{\rm Si}((1+c)K) - {\rm Si}(K)] + \cos K\,[{\rm Ci}((1+c)K) - {\rm Ci}(K)] - \sin(cK)/((1+c)K)}{\ln(1+c) - c/(1+c)}

    References
    ----------
    .. [1] Navarro, Julio F., Frenk, Carlos S. and White, Simon D. M., "The Structure of Cold Dark
           Matter Halos", https://ui.adsabs.harvard.edu/abs/1996ApJ...462..563N.
    .. [2] Navarro, Julio F., Frenk, Carlos S. and White, Simon D. M., "A Universal Density Profile
           from Hierarchical Clustering",
           https://ui.adsabs.harvard.edu/abs/1997ApJ...490..493N.
    """

    def _f(self, x):
        return 1.0 / (x * (1 + x) ** 2)

    def _h(self, c):
        return np.log(1.0 + c) - c / (1.0 + c)

    def _p(self, K, c):
        bs, bc = sp.sici(K)
        asi, ac = sp.sici((1 + c) * K)
        return (
            np.sin(K) * (asi - bs)
            - np.sin(c * K) / ((1 + c) * K)
            + np.cos(K) * (ac - bc)
        )


def get_profile(label) -> type:
    """Return the :class:`Profile` subclass registered under ``label``."""
    if isinstance(label, type) and not issubclass(label, Profile):
        raise UnknownWindowProfile(f"{label.__name__} is not a halo profile")
    try:
        return get_mdl(label, Profile)
    except (KeyError, ValueError, TypeError) as err:
        raise UnknownWindowProfile(
            f"Window function specified incorrectly: {label!r}"
        ) from err


def make_window(context: CosmologyContext, profile="NFW"):
    """
    Build the window function ``W(m, k, a, delta_v)`` for one profile family.

    The profile and the mean density are resolved once, so the returned callable is
    suitable as part of an integrand. The concentration is always taken from
    :class:`~hmpower.concentration.Duffy08`, whichever relation is used elsewhere.

    Parameters
    ----------
    context : :class:`~hmpower.context.CosmologyContext`
        The cosmology.
    profile : str or :class:`Profile` subclass
        Profile family, only ``"NFW"`` is built in.

    Returns
    -------
    callable
        ``window(m, k, a, delta_v)``, in units of volume [Mpc^3].
    """
    prof = get_profile(profile)(context, cm_relation=Duffy08(context))

    # Comoving mean density, i.e. today's.
    rho_m = call_service(context, "mean_density", 1.0)

    def window(m, k, a, delta_v):
        c = prof.cm_relation.concentration(m, a, delta_v)
        return m * prof.u(k, m, a, c=c, delta_v=delta_v) / rho_m

    return window


def window_function(context: CosmologyContext, m, k, a, delta_v, profile="NFW"):
    """
    Mass-weighted, density-normalised profile transform ``m U(k) / rho_m``.

    See :func:`make_window` for parameters.
    """
    return make_window(context, profile)(m, k, a, delta_v)
