import numpy as np
from click.testing import CliRunner

import hmpower._cli as cli
from hmpower._cli import run


def test_cli(tmp_path_factory, flat_context, monkeypatch):
    tmp = tmp_path_factory.mktemp("tmp")
    monkeypatch.setattr(cli, "_build_context", lambda name: flat_context)

    runner = CliRunner()
    result = runner.invoke(
        run,
        [
            "--outdir",
            str(tmp),
            "--logk-min",
            "-1",
            "--logk-max",
            "0",
            "--dlog10k",
            "0.25",
            "--label",
            "flat",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "Wrote 4 wavenumbers" in result.output

    data = np.loadtxt(tmp / "flat_power.txt")
    assert data.shape == (4, 5)
    assert np.allclose(data[:, 4], data[:, 2] + data[:, 3])
    assert np.all(data[:, 2:] > 0)


def test_cli_bad_outdir(tmp_path):
    runner = CliRunner()
    result = runner.invoke(run, ["--outdir", str(tmp_path / "missing")])
    assert result.exit_code != 0


def test_cli_bad_cosmo(tmp_path):
    runner = CliRunner()
    result = runner.invoke(run, ["--outdir", str(tmp_path), "--cosmo", "Nonsense"])
    assert result.exit_code != 0
