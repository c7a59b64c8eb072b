"""The hmpower package.

This package computes the halo-model nonlinear matter power spectrum.
"""

from __future__ import annotations

import contextlib
from importlib.metadata import PackageNotFoundError, version

with contextlib.suppress(PackageNotFoundError):
    __version__ = version(__name__)

__all__ = [
    "concentration",
    "context",
    "errors",
    "halo_model",
    "profiles",
    "tools",
    "ColossusContext",
    "CosmologyContext",
    "HaloModel",
    "HaloModelResult",
    "Status",
    "halo_concentration",
    "halomodel_matter_power",
    "one_halo_matter_power",
    "two_halo_matter_power",
]

from . import concentration, context, errors, halo_model, profiles, tools
from .concentration import halo_concentration
from .context import ColossusContext, CosmologyContext
from .errors import HaloModelResult, Status
from .halo_model import (
    HaloModel,
    halomodel_matter_power,
    one_halo_matter_power,
    two_halo_matter_power,
)
