"""Module that contains the command line app."""
from pathlib import Path

import click
import numpy as np
from astropy import cosmology
from astropy.cosmology import realizations

from .context import ColossusContext
from .halo_model import HaloModel

main = click.Group()


def _build_context(cosmo_name):
    """Build the cosmology context for an astropy realization name, eg. Planck15."""
    return ColossusContext(cosmo=getattr(cosmology, cosmo_name))


@main.command()
@click.option(
    "-c",
    "--cosmo",
    type=click.Choice(list(realizations.available)),
    default="Planck15",
)
@click.option("-z", "--z", type=float, default=0.0)
@click.option("--logk-min", type=float, default=-2.0)
@click.option("--logk-max", type=float, default=1.0)
@click.option("--dlog10k", type=float, default=0.1)
@click.option(
    "-o",
    "--outdir",
    type=click.Path(exists=True, dir_okay=True, file_okay=False),
    default=".",
)
@click.option(
    "-l",
    "--label",
    type=str,
    default="hmpower",
)
def run(cosmo, z, logk_min, logk_max, dlog10k, outdir, label):
    """Compute the halo-model matter power spectrum and write it to a table."""
    hm = HaloModel(
        context=_build_context(cosmo),
        z=z,
        hm_logk_min=logk_min,
        hm_logk_max=logk_max,
        hm_dlog10k=dlog10k,
    )

    out = Path(outdir) / f"{label}_power.txt"
    np.savetxt(
        out,
        np.array(
            [
                hm.k_hm,
                hm.power_linear,
                hm.power_1h_auto_matter,
                hm.power_2h_auto_matter,
                hm.power_auto_matter,
            ]
        ).T,
        header=f"{cosmo} z={z}\nk [1/Mpc], P_lin, P_1h, P_2h, P_tot [Mpc^3]",
    )
    click.echo(f"Wrote {len(hm.k_hm)} wavenumbers to {out}")
