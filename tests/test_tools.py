import logging

import numpy as np
import pytest

from hmpower.errors import (
    ExternalServiceError,
    HaloModelResult,
    OneHaloIntegrationFailure,
    Status,
    returns_result,
)
from hmpower.context import call_service
from hmpower.halo_model import one_halo_integral
from hmpower.tools import DEFAULT_CONFIG, IntegrationConfig, QuadratureWorkspace


def test_default_config():
    assert DEFAULT_CONFIG.m_min == 1e7
    assert DEFAULT_CONFIG.m_max == 1e17
    assert DEFAULT_CONFIG.epsabs == 0
    assert DEFAULT_CONFIG.epsrel == 1e-4
    assert DEFAULT_CONFIG.limit == 1000
    assert DEFAULT_CONFIG.log10m_min == pytest.approx(7)
    assert DEFAULT_CONFIG.log10m_max == pytest.approx(17)


def test_integrate_sin():
    with QuadratureWorkspace(100) as w:
        res = w.integrate(np.sin, 0, np.pi, epsabs=0, epsrel=1e-8)

    assert res.converged
    assert res.value == pytest.approx(2.0, rel=1e-8)
    assert 1 <= res.nintervals <= 100
    assert not w.active


def test_not_entered():
    w = QuadratureWorkspace(10)
    with pytest.raises(RuntimeError):
        w.integrate(np.sin, 0, 1, epsabs=0, epsrel=1e-4)


def test_no_reentry():
    w = QuadratureWorkspace(10)
    with w:
        with pytest.raises(RuntimeError):
            with w:
                pass
    assert not w.active


def test_released_on_error():
    def bad(x):
        raise ZeroDivisionError

    w = QuadratureWorkspace(10)
    with pytest.raises(ZeroDivisionError):
        with w:
            w.integrate(bad, 0, 1, epsabs=0, epsrel=1e-4)
    assert not w.active


@pytest.mark.parametrize("limit", [0, -5])
def test_bad_limit(limit):
    with pytest.raises(ValueError):
        QuadratureWorkspace(limit)


def test_not_converged():
    """An oscillating integrand cannot be resolved with a single interval."""
    with QuadratureWorkspace(1) as w:
        res = w.integrate(lambda x: np.sin(200 * x), 0, 10, epsabs=0, epsrel=1e-10)

    assert not res.converged
    assert res.message


def test_config_override():
    cfg = IntegrationConfig(m_min=1e9)
    assert cfg.m_max == DEFAULT_CONFIG.m_max
    assert cfg.log10m_min == pytest.approx(9)


def test_returns_result():
    @returns_result
    def fails():
        raise OneHaloIntegrationFailure("boom")

    res = fails()
    assert isinstance(res, HaloModelResult)
    assert res.status == Status.ONE_HALO_INTEGRATION_FAILURE
    assert res.message == "boom"
    assert np.isnan(res.value)
    assert not res.ok


def test_returns_result_bug_propagates():
    @returns_result
    def buggy():
        raise TypeError("not a halo model error")

    with pytest.raises(TypeError):
        buggy()


def test_success_result():
    res = HaloModelResult(3.0)
    assert res.ok
    assert res.status == Status.SUCCESS
    res.raise_for_status()


def test_call_service_wraps(flat_context_cls):
    class Broken(flat_context_cls):
        def bias(self, m, a, delta_v):
            raise KeyError("tinker10")

    with pytest.raises(ExternalServiceError) as exc:
        call_service(Broken(), "bias", 1e12, 1.0, 200.0)
    assert isinstance(exc.value.__cause__, KeyError)


def test_call_service_passthrough(flat_context):
    assert call_service(flat_context, "bias", 1e12, 1.0, 200.0) == 1.0


def test_debug_record(caplog):
    with caplog.at_level(logging.DEBUG, logger="hmpower"):
        with QuadratureWorkspace(100) as w:
            w.integrate(np.sin, 0, np.pi, epsabs=0, epsrel=1e-8)

    records = [r for r in caplog.records if r.name == "hmpower"]
    assert len(records) == 1
    assert "converged=True" in records[0].getMessage()


def test_mass_integral_logged(caplog, flat_context, narrow_config):
    with caplog.at_level(logging.DEBUG, logger="hmpower"):
        one_halo_integral(flat_context, 1.0, 1.0, narrow_config)

    assert [r for r in caplog.records if r.name == "hmpower"]
