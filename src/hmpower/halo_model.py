"""
Main halo model module.

Computes the nonlinear matter power spectrum as the sum of a one-halo and a
two-halo term, each an integral over log10 halo mass of the halo mass function
and the window function of NFW halos (see :mod:`~hmpower.profiles`):

``P_1h(k) = int dn/dlog10M W(M, k)^2 dlog10M``

``P_2h(k) = P_lin(k) [int b(M) dn/dlog10M W(M, k) dlog10M + A(k)]^2``

where ``A(k)`` corrects the two-halo integral for the mass missing below the
lower integration bound.

Two layers are provided. The functions :func:`one_halo_matter_power`,
:func:`two_halo_matter_power`, :func:`halomodel_matter_power` evaluate a single
wavenumber and scale factor without any caching, returning a
:class:`~hmpower.errors.HaloModelResult`. The raising building blocks
(:func:`one_halo_integral`, :func:`two_halo_integral`, :func:`two_halo_correction`)
are also available.

:class:`HaloModel` is an ``hmf`` Framework evaluating the spectra over a grid of
wavenumbers, with quantities cached until a parameter is updated.
"""
import warnings

import numpy as np
from hmf import Framework, cached_quantity, parameter

from .context import ColossusContext, CosmologyContext, call_service
from .errors import (
    HaloModelError,
    HaloModelWarning,
    OneHaloIntegrationFailure,
    TwoHaloIntegrationFailure,
    returns_result,
)
from .profiles import make_window
from .tools import DEFAULT_CONFIG, IntegrationConfig, QuadratureWorkspace


def _mass_integral(integrand, config: IntegrationConfig, failure, name):
    """Integrate ``integrand`` over log10 mass, raising ``failure`` on any problem."""
    with QuadratureWorkspace(config.limit) as workspace:
        try:
            res = workspace.integrate(
                integrand,
                config.log10m_min,
                config.log10m_max,
                epsabs=config.epsabs,
                epsrel=config.epsrel,
            )
        except HaloModelError as err:
            raise failure(f"{name}: integration failure: {err}") from err

    if not res.converged:
        warnings.warn(f"{name}: {res.message or 'non-finite result'}", HaloModelWarning)
        raise failure(f"{name}: integration failure")

    return res.value


def one_halo_integral(
    context: CosmologyContext, k: float, a: float, config: IntegrationConfig = None
) -> float:
    """
    The one-halo integral, ``int dn/dlog10M W(M, k, a)^2 dlog10M``.

    Parameters
    ----------
    context : :class:`~hmpower.context.CosmologyContext`
        The cosmology.
    k : float
        Wavenumber [1/Mpc].
    a : float
        Scale factor.
    config : :class:`~hmpower.tools.IntegrationConfig`, optional
        Bounds and tolerances. Default is :data:`~hmpower.tools.DEFAULT_CONFIG`.

    Raises
    ------
    OneHaloIntegrationFailure
        If the quadrature does not converge, or a service fails in the integrand.
    """
    config = config or DEFAULT_CONFIG
    delta_v = call_service(context, "virial_overdensity", a)
    window = make_window(context, "NFW")

    def integrand(log10m):
        m = 10 ** log10m
        wk = window(m, k, a, delta_v)
        # The mass function is per unit log10 mass, so there is no ln(10) here.
        dndlog10m = call_service(context, "dndlog10m", m, a, delta_v)
        return dndlog10m * wk ** 2

    return _mass_integral(integrand, config, OneHaloIntegrationFailure, "one_halo_integral")


def two_halo_integral(
    context: CosmologyContext, k: float, a: float, config: IntegrationConfig = None
) -> float:
    """
    The uncorrected two-halo integral, ``int b dn/dlog10M W(M, k, a) dlog10M``.

    See :func:`one_halo_integral` for parameters.

    Raises
    ------
    TwoHaloIntegrationFailure
        If the quadrature does not converge, or a service fails in the integrand.
    """
    config = config or DEFAULT_CONFIG
    delta_v = call_service(context, "virial_overdensity", a)
    window = make_window(context, "NFW")

    def integrand(log10m):
        m = 10 ** log10m
        wk = window(m, k, a, delta_v)
        dndlog10m = call_service(context, "dndlog10m", m, a, delta_v)
        b = call_service(context, "bias", m, a, delta_v)
        return b * dndlog10m * wk

    return _mass_integral(integrand, config, TwoHaloIntegrationFailure, "two_halo_integral")


def two_halo_correction(
    context: CosmologyContext, k: float, a: float, config: IntegrationConfig = None
) -> float:
    """
    Additive correction to the two-halo integral for halos below the lower mass bound.

    Over all masses the bias-weighted mass integral is exactly one at ``k=0``. The
    part missing from the truncated integral, ``1 - I_2h(k=0)``, is assigned to halos
    at the lower bound and scaled by their window function at ``k`` relative to ``k=0``.

    See :func:`one_halo_integral` for parameters.
    """
    config = config or DEFAULT_CONFIG
    missing = 1.0 - two_halo_integral(context, 0.0, a, config)

    delta_v = call_service(context, "virial_overdensity", a)
    window = make_window(context, "NFW")
    w1 = window(config.m_min, k, a, delta_v)
    w2 = window(config.m_min, 0.0, a, delta_v)

    return missing * w1 / w2


def _one_halo_power(context, k, a, config=None):
    return one_halo_integral(context, k, a, config)


def _two_halo_power(context, k, a, config=None):
    i2h = two_halo_integral(context, k, a, config)
    i2h += two_halo_correction(context, k, a, config)
    return call_service(context, "linear_power", k, a) * i2h ** 2


@returns_result
def one_halo_matter_power(
    context: CosmologyContext, k: float, a: float, config: IntegrationConfig = None
):
    """
    The one-halo term of the halo-model matter power spectrum [Mpc^3].

    Returns
    -------
    :class:`~hmpower.errors.HaloModelResult`
    """
    return _one_halo_power(context, k, a, config)


@returns_result
def two_halo_matter_power(
    context: CosmologyContext, k: float, a: float, config: IntegrationConfig = None
):
    """
    The two-halo term of the halo-model matter power spectrum [Mpc^3].

    The linear power is multiplied by the square of the corrected two-halo
    integral (see :func:`two_halo_correction`).

    Returns
    -------
    :class:`~hmpower.errors.HaloModelResult`
    """
    return _two_halo_power(context, k, a, config)


@returns_result
def halomodel_matter_power(
    context: CosmologyContext, k: float, a: float, config: IntegrationConfig = None
):
    """
    The halo-model matter power spectrum [Mpc^3], sum of the two- and one-halo terms.

    Returns
    -------
    :class:`~hmpower.errors.HaloModelResult`
        Carries the status of the first term that failed, if any.
    """
    return _two_halo_power(context, k, a, config) + _one_halo_power(
        context, k, a, config
    )


class HaloModel(Framework):
    """
    Halo-model matter power spectra over a grid of wavenumbers.

    Quantities are computed lazily and cached; updating any parameter (with
    :meth:`update` or by setting the attribute) invalidates the quantities that
    depend on it. Failures raise the matching :class:`~hmpower.errors.HaloModelError`.

    Parameters
    ----------
    context : :class:`~hmpower.context.CosmologyContext`, optional
        The cosmology. Default is a :class:`~hmpower.context.ColossusContext` with
        the Planck15 cosmology.
    z : float, optional
        Redshift.
    hm_logk_min, hm_logk_max, hm_dlog10k : float, optional
        The log10 wavenumber grid [1/Mpc], from ``hm_logk_min`` (inclusive) to
        ``hm_logk_max`` (exclusive) in steps of ``hm_dlog10k``.
    integration_config : :class:`~hmpower.tools.IntegrationConfig`, optional
        Bounds and tolerances of the mass integrals.

    Examples
    --------
    >>> hm = HaloModel(z=0.5)
    >>> plt.plot(hm.k_hm, hm.power_auto_matter)
    >>> hm.update(z=0)
    """

    def __init__(
        self,
        context: CosmologyContext = None,
        z=0.0,
        hm_logk_min=-2,
        hm_logk_max=1,
        hm_dlog10k=0.1,
        integration_config: IntegrationConfig = None,
    ):
        super().__init__()
        self.context = context if context is not None else ColossusContext()
        self.z = z
        self.hm_logk_min = hm_logk_min
        self.hm_logk_max = hm_logk_max
        self.hm_dlog10k = hm_dlog10k
        self.integration_config = integration_config or DEFAULT_CONFIG

    # ===============================================================================
    # Parameters
    # ===============================================================================
    def validate(self):
        super().validate()
        assert (
            self.hm_logk_min < self.hm_logk_max
        ), f"hm_logk_min >= hm_logk_max: {self.hm_logk_min}, {self.hm_logk_max}"
        assert len(self.k_hm) > 0, "k_hm has length zero!"

    @parameter("param")
    def context(self, val):
        """The cosmology context providing all external services."""
        return val

    @parameter("param")
    def z(self, val):
        """Redshift."""
        val = float(val)
        if val < 0:
            raise ValueError(f"z must be >= 0, got {val}")
        return val

    @parameter("res")
    def hm_dlog10k(self, val):
        """The width of k bin in log10."""
        return float(val)

    @parameter("res")
    def hm_logk_min(self, val):
        """The minimum k bin in log10."""
        return float(val)

    @parameter("res")
    def hm_logk_max(self, val):
        """The maximum k bin in log10."""
        return float(val)

    @parameter("res")
    def integration_config(self, val):
        """Bounds and tolerances of the mass integrals."""
        if not isinstance(val, IntegrationConfig):
            val = IntegrationConfig(**val)
        return val

    # ===========================================================================
    # Basic Quantities
    # ===========================================================================
    @cached_quantity
    def a(self):
        """Scale factor."""
        return 1.0 / (1.0 + self.z)

    @cached_quantity
    def k_hm(self):
        """The wave-numbers at which halo-model power spectra are calculated [1/Mpc]."""
        return 10 ** np.arange(self.hm_logk_min, self.hm_logk_max, self.hm_dlog10k)

    @cached_quantity
    def virial_overdensity(self):
        """The virial overdensity, relative to the mean matter density."""
        return call_service(self.context, "virial_overdensity", self.a)

    @cached_quantity
    def power_linear(self):
        """The linear matter power spectrum at :attr:`k_hm`."""
        return np.array(
            [call_service(self.context, "linear_power", k, self.a) for k in self.k_hm]
        )

    # ===========================================================================
    # 2-point DM statistics
    # ===========================================================================
    @cached_quantity
    def power_1h_auto_matter(self):
        """The halo model-derived nonlinear 1-halo dark matter auto-power spectrum."""
        return np.array(
            [
                one_halo_integral(self.context, k, self.a, self.integration_config)
                for k in self.k_hm
            ]
        )

    @cached_quantity
    def two_halo_integral_corrected(self):
        """The two-halo mass integral at :attr:`k_hm`, corrected for low masses."""
        # The k=0 integral is the same for all k, so do it once.
        cfg = self.integration_config
        missing = 1.0 - two_halo_integral(self.context, 0.0, self.a, cfg)
        window = make_window(self.context, "NFW")
        w0 = window(cfg.m_min, 0.0, self.a, self.virial_overdensity)

        out = np.zeros_like(self.k_hm)
        for i, k in enumerate(self.k_hm):
            wk = window(cfg.m_min, k, self.a, self.virial_overdensity)
            out[i] = two_halo_integral(self.context, k, self.a, cfg) + missing * wk / w0
        return out

    @cached_quantity
    def power_2h_auto_matter(self):
        """The halo model-derived nonlinear 2-halo dark matter auto-power spectrum."""
        return self.power_linear * self.two_halo_integral_corrected ** 2

    @cached_quantity
    def power_auto_matter(self):
        """The halo-model-derived nonlinear dark matter auto-power spectrum."""
        return self.power_1h_auto_matter + self.power_2h_auto_matter
