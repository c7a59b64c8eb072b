"""
Test various halo profile properties.
"""
import mpmath
import numpy as np
import pytest

from hmpower import profiles as pf
from hmpower.concentration import Constant
from hmpower.errors import ConcentrationDefinitionMismatch, UnknownWindowProfile

m = np.logspace(10, 15, 20)


@pytest.fixture()
def nfw(flat_context):
    return pf.NFW(flat_context)


@pytest.mark.parametrize("c", [0.5, 1.0, 4.0, 10.0, 30.0])
@pytest.mark.parametrize("mass", [1e8, 1e12, 1e16])
@pytest.mark.parametrize("a", [0.3, 1.0])
def test_u_zero_k(nfw, c, mass, a):
    assert nfw.u(0.0, mass, a, c=c) == 1


def test_u_zero_k_array(nfw):
    assert np.all(nfw.u(0, m, 1.0) == 1)


@pytest.mark.parametrize("K", [0.01, 0.3, 1.0, 7.0, 40.0])
@pytest.mark.parametrize("c", [2.0, 4.0, 15.0])
def test_nfw_analytic_vs_numerical(nfw, K, c):
    """The closed form agrees with direct quadrature of the truncated profile."""
    mpmath.mp.dps = 30
    # Split into many pieces so the oscillating integrand is resolved.
    integral = mpmath.quad(
        lambda x: x * nfw._f(x) * mpmath.sin(K * x) / K, mpmath.linspace(0, c, 80)
    )
    assert nfw._p(K, c) == pytest.approx(float(integral), rel=1e-8, abs=1e-12)


def test_ukm_low_k(nfw):
    """The fourier transforms are 1 at low k."""
    assert np.allclose(nfw.u(1e-6, m, 1.0), 1, rtol=1e-6)


def test_u_high_k(nfw):
    assert abs(nfw.u(1e3, 1e15, 1.0)) < 1e-2


def test_u_decreasing_low_k(nfw):
    k = np.logspace(-3, 0, 30)
    u = np.array([nfw.u(kk, 1e14, 1.0) for kk in k])
    assert np.all(np.diff(u) < 0)
    assert np.all((u > 0) & (u < 1))


def test_u_uses_given_cm(flat_context):
    const = pf.NFW(flat_context, cm_relation=Constant(flat_context))
    assert const.u(1.0, 1e13, 1.0) == const.u(1.0, 1e13, 1.0, c=4.0)


def test_scale_radius(nfw, flat_context):
    dv = flat_context.virial_overdensity(1.0)
    rv = (3 * 1e13 / (4 * np.pi * flat_context.rho_m * dv)) ** (1 / 3)
    assert nfw.scale_radius(1e13, 1.0, 5.0, dv) == pytest.approx(rv / 5.0)


@pytest.mark.parametrize("a", [0.5, 1.0])
def test_window_zero_k(flat_context, a):
    dv = flat_context.virial_overdensity(a)
    w = pf.window_function(flat_context, 1e7, 0.0, a, dv)
    assert w == 1e7 / flat_context.rho_m


def test_window_units(flat_context):
    dv = flat_context.virial_overdensity(1.0)
    w = pf.window_function(flat_context, 1e13, 0.5, 1.0, dv)
    assert w == pytest.approx(1e13 * pf.NFW(flat_context).u(0.5, 1e13, 1.0) / 3e10)


def test_window_fixed_to_virial_duffy(flat_context):
    """The window always uses the virial relation, so other overdensities fail."""
    with pytest.raises(ConcentrationDefinitionMismatch):
        pf.window_function(flat_context, 1e13, 0.5, 1.0, 200.0)


def test_unknown_profile(flat_context):
    with pytest.raises(UnknownWindowProfile):
        pf.window_function(flat_context, 1e13, 0.5, 1.0, 337.0, profile="Einasto")


@pytest.mark.parametrize("label", [Constant, dict])
def test_wrong_class_profile(flat_context, label):
    """A class that is not a profile is an unknown window."""
    with pytest.raises(UnknownWindowProfile, match=label.__name__):
        pf.window_function(flat_context, 1e13, 0.5, 1.0, 337.0, profile=label)

    with pytest.raises(UnknownWindowProfile):
        pf.get_profile(label)
