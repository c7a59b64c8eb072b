import numpy as np
import pytest

from hmpower.context import CosmologyContext
from hmpower.tools import IntegrationConfig


class FlatContext(CosmologyContext):
    """Analytic services: a flat mass function and unit bias."""

    h = 0.7

    def __init__(self, dndlog10m=1e-5, bias=1.0, rho_m=3e10, om=0.3):
        self._dndlog10m = dndlog10m
        self._bias = bias
        self.rho_m = rho_m
        self.om = om

    def growth_factor(self, a):
        return a

    def sigma(self, m, a):
        return a * (m / 1e12) ** -0.2

    def dndlog10m(self, m, a, delta_v):
        return self._dndlog10m

    def bias(self, m, a, delta_v):
        return self._bias

    def linear_power(self, k, a):
        return 100.0 / (1 + k ** 2)

    def mean_density(self, a):
        return self.rho_m

    def omega_m(self, a):
        return self.om


class NormalisedContext(FlatContext):
    """
    Mass function and bias for which ``b dn/dlog10M M/rho_m`` is a unit Gaussian in
    log10 M, so the two-halo integral over all masses is exactly one at k=0.
    """

    def __init__(self, mean=12.0, width=1.0, **kwargs):
        super().__init__(**kwargs)
        self.mean = mean
        self.width = width

    def dndlog10m(self, m, a, delta_v):
        x = (np.log10(m) - self.mean) / self.width
        gauss = np.exp(-(x ** 2) / 2) / (np.sqrt(2 * np.pi) * self.width)
        return gauss * self.rho_m / m


@pytest.fixture()
def flat_context():
    return FlatContext()


@pytest.fixture()
def normalised_context():
    return NormalisedContext()


@pytest.fixture(scope="session")
def narrow_config():
    """The mass range [1e10, 1e16] Msun with default tolerances."""
    return IntegrationConfig(m_min=1e10, m_max=1e16)


@pytest.fixture(scope="session")
def flat_context_cls():
    """The class of :func:`flat_context`, for tests that override a service."""
    return FlatContext
