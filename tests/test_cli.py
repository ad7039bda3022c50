"""CLI commands against a throwaway config + database."""

import pytest
from typer.testing import CliRunner

from ticketrules.cli.app import app

runner = CliRunner()


@pytest.fixture
def config_dir(tmp_path):
    db = (tmp_path / "rules.duckdb").as_posix()
    (tmp_path / "default.toml").write_text(f'[storage]\ndb_path = "{db}"\n\n[logging]\nlevel = "WARNING"\n')
    return tmp_path


def _run(config_dir, *args):
    return runner.invoke(app, ["--config-dir", str(config_dir), *args])


def test_set_then_resolve(config_dir):
    r = _run(config_dir, "rules", "set", "--sport", "football", "--event", "e1", "--type", "percentage", "--amount", "7.5")
    assert r.exit_code == 0, r.output
    assert "event level" in r.output

    r = _run(config_dir, "rules", "resolve", "--sport", "football", "--event", "e1", "--ticket", "t1")
    assert r.exit_code == 0, r.output
    assert "Markup resolved at 'event' level" in r.output
    assert "percentage 7.50" in r.output

    r = _run(config_dir, "rules", "clear", "--sport", "football", "--event", "e1")
    assert "Removed 1 rule(s)" in r.output
    r = _run(config_dir, "rules", "resolve", "--sport", "football", "--event", "e1")
    assert "No markup rule found" in r.output


def test_invalid_scope_exits_nonzero(config_dir):
    r = _run(config_dir, "rules", "set", "--sport", "football", "--team", "ars", "--amount", "1")
    assert r.exit_code == 1
    assert "invalid_scope" in r.output


def test_hospitality_add_assign_resolve(config_dir):
    r = _run(config_dir, "hospitality", "add", "--name", "Lounge")
    assert r.exit_code == 0, r.output
    assert "Created hospitality #1" in r.output

    r = _run(config_dir, "hospitality", "assign", "--id", "1", "--sport", "football")
    assert "Assigned 1 (1 new) at sport level." in r.output

    r = _run(config_dir, "hospitality", "resolve", "--sport", "football", "--event", "e1")
    assert "Lounge" in r.output
    assert "from sport (hierarchical)" in r.output

    r = _run(config_dir, "hospitality", "assign", "--id", "99", "--sport", "football")
    assert r.exit_code == 1
    assert "batch_failed" in r.output


def test_api_command_uses_the_loaded_config(config_dir, monkeypatch):
    seen = {}

    def fake_run_api(settings, *, host, port):
        seen.update(settings=settings, host=host, port=port)

    monkeypatch.setattr("ticketrules.cli.api_cmd.run_api", fake_run_api)
    r = _run(config_dir, "api", "--port", "9001")
    assert r.exit_code == 0, r.output
    assert seen["settings"].db_path == (config_dir / "rules.duckdb").as_posix()
    assert seen["port"] == 9001
    assert seen["host"] == "127.0.0.1"
