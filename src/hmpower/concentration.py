"""
Module defining concentration-mass relations.

This module defines a base :class:`CMRelation` component class, and a small number of
specific concentration-mass relations. Each relation is calibrated for one halo
definition, and refuses (with a :class:`~hmpower.errors.ConcentrationDefinitionMismatch`)
to be evaluated for an overdensity other than the one it was calibrated for. The
check happens before anything is computed.

Relations are registered by class name, so they can be selected by a label with
:func:`get_cm_relation` or the public operation :func:`halo_concentration`.

Examples
--------
A simple example of using a native concentration-mass relation::

>>> from hmpower.concentration import Duffy08
>>> duffy = Duffy08(context)
>>> m = np.logspace(10, 15, 100)
>>> plt.plot(m, duffy.concentration(m, a=1, delta_v=context.virial_overdensity(1)))

Selecting a relation by label, and getting a result rather than an exception::

>>> res = halo_concentration(context, 1e12, 1.0, 200.0, "Bhattacharya11")
>>> res.value, res.status
"""
from hmf import Component, get_mdl
from hmf._internals import pluggable

from .context import CosmologyContext, call_service
from .errors import (
    ConcentrationDefinitionMismatch,
    UnknownConcentrationRelation,
    returns_result,
)


@pluggable
class CMRelation(Component):
    r"""
    Base-class for Concentration-Mass relations.

    Parameters
    ----------
    context : :class:`~hmpower.context.CosmologyContext` instance
        Provides the growth factor, mass variance and Hubble parameter.
    \*\*model_parameters : unpacked-dictionary
        These parameters are model-specific. For any model, list the available
        parameters (and their defaults) using ``<model>._defaults``
    """

    _defaults = {}

    def __init__(self, context: CosmologyContext, **model_parameters):
        self.context = context
        super(CMRelation, self).__init__(**model_parameters)

    def check_overdensity(self, delta_v, a):
        """
        Raise :class:`ConcentrationDefinitionMismatch` if the relation is not valid
        for overdensity ``delta_v`` at scale factor ``a``.

        Accepts everything by default.
        """

    def concentration(self, m, a, delta_v):
        """
        Return the concentration of halos of mass ``m`` [Msun] at scale factor ``a``.

        ``delta_v`` is the overdensity (relative to mean matter density) defining the
        halos, and is validated before anything else is computed.
        """
        self.check_overdensity(delta_v, a)
        return self.cm(m, a)

    def cm(self, m, a):
        """Return the concentration, without checking the halo definition."""
        raise NotImplementedError


class Bhattacharya11(CMRelation):
    r"""
    Concentration-mass relation of Bhattacharya et al.(2013) [1]_, for
    :math:`\Delta = 200` times the mean matter density.

    Notes
    -----
    The form of the concentration is

    .. math:: c = A \nu^{B} \big(g(a)/g(1)\big)^{C}, \quad \nu = \delta_c/\sigma(M, a)

    with the parameters of Table 2 of [1]_.

    Other Parameters
    ----------------
    A, B, C : float
        Default ``A=9.0``, ``B=-0.29``, ``C=1.15``.
    delta_c : float
        Critical overdensity for collapse, default ``1.686``.

    References
    ----------
    .. [1] Bhattacharya, S. et al., "Dark Matter Halo Profiles of Massive Clusters:
           Theory versus Observations", https://ui.adsabs.harvard.edu/abs/2013ApJ...766...32B.
    """

    _defaults = {"A": 9.0, "B": -0.29, "C": 1.15, "delta_c": 1.686}
    native_overdensity = 200.0

    def check_overdensity(self, delta_v, a):
        if delta_v != self.native_overdensity:
            raise ConcentrationDefinitionMismatch(
                f"Bhattacharya (2011) concentration relation only valid for "
                f"Delta_v = {self.native_overdensity:g}, got {delta_v}"
            )

    def cm(self, m, a):
        gz = call_service(self.context, "growth_factor", a)
        g0 = call_service(self.context, "growth_factor", 1.0)
        nu = self.params["delta_c"] / call_service(self.context, "sigma", m, a)
        return self.params["A"] * nu ** self.params["B"] * (gz / g0) ** self.params["C"]


class Duffy08(CMRelation):
    r"""
    Concentration-mass relation from Duffy et al.(2008) [1]_, for virial halos.

    Only valid for halos defined by the virial overdensity of the context at the
    given scale factor.

    Notes
    -----
    The form of the concentration is

    .. math:: c = A (M/M_{\rm piv})^B a^C

    with :math:`M_{\rm piv} = m_s/h`. This is the "full" sample, virial mass
    definition of Table 1 of [1]_, where the pivot is given in :math:`M_\odot/h`.

    Other Parameters
    ----------------
    A, B, C : float
        Default ``A=7.85``, ``B=-0.081``, ``C=0.71``.
    ms : float
        Pivot mass in :math:`M_\odot/h`, default ``2e12``.

    References
    ----------
    .. [1] Duffy, A. R. et al., "Dark matter halo concentrations in the
           Wilkinson Microwave Anisotropy Probe year 5 cosmology ",
           https://ui.adsabs.harvard.edu/abs/2008MNRAS.390L..64D.
    """

    _defaults = {"A": 7.85, "B": -0.081, "C": 0.71, "ms": 2e12}

    def check_overdensity(self, delta_v, a):
        dv = call_service(self.context, "virial_overdensity", a)
        if delta_v != dv:
            raise ConcentrationDefinitionMismatch(
                f"Duffy (2008) virial concentration called with non-virial "
                f"Delta_v = {delta_v} (virial is {dv} at a={a})"
            )

    def cm(self, m, a):
        mpiv = self.params["ms"] / self.context.h
        return self.params["A"] * (m / mpiv) ** self.params["B"] * a ** self.params["C"]


class Constant(CMRelation):
    """
    A constant concentration, independent of mass, time and halo definition.

    Good for tests.

    Other Parameters
    ----------------
    c : float
        Default ``4.0``.
    """

    _defaults = {"c": 4.0}

    def cm(self, m, a):
        return self.params["c"]


def get_cm_relation(label) -> type:
    """
    Return the :class:`CMRelation` subclass registered under ``label``.

    ``label`` may also be a :class:`CMRelation` subclass, which is returned as is.
    """
    if isinstance(label, type) and not issubclass(label, CMRelation):
        raise UnknownConcentrationRelation(
            f"{label.__name__} is not a concentration-mass relation"
        )
    try:
        return get_mdl(label, CMRelation)
    except (KeyError, ValueError, TypeError) as err:
        raise UnknownConcentrationRelation(
            f"Concentration-mass relation specified incorrectly: {label!r}"
        ) from err


@returns_result
def halo_concentration(
    context: CosmologyContext, m: float, a: float, delta_v: float, label: str
):
    """
    Compute the concentration of halos of mass ``m`` [Msun] at scale factor ``a``.

    Parameters
    ----------
    context : :class:`~hmpower.context.CosmologyContext`
        The cosmology.
    m : float
        Halo mass.
    a : float
        Scale factor.
    delta_v : float
        Halo overdensity relative to mean matter density.
    label : str
        Name of the relation, eg. ``"Bhattacharya11"``, ``"Duffy08"`` or ``"Constant"``.

    Returns
    -------
    :class:`~hmpower.errors.HaloModelResult`
        NaN with a failure status if the relation is unknown or not valid for ``delta_v``.
    """
    return get_cm_relation(label)(context).concentration(m, a, delta_v)
