# tests/test_cli.py
"""Tests for the command-line interface."""

import json
import tempfile
from pathlib import Path

import pytest

from collabart.cli import main
from collabart.engine import Engine


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def state(temp_dir):
    return str(temp_dir / "state.json")


def last_json(capsys):
    out = capsys.readouterr().out.strip().splitlines()
    return json.loads(out[-1])


class TestCommands:
    """Registry commands against a state file."""

    def test_register_and_create(self, state, capsys):
        assert main(["--state", state, "register-artist", "artist1", "John Doe"]) == 0
        assert last_json(capsys) == {"type": "ok", "value": True}

        assert main(["--state", state, "create-artwork", "artist1", "T", "D"]) == 0
        assert last_json(capsys) == {"type": "ok", "value": 1}

        engine = Engine.load(state)
        assert engine.get_artwork(1).creator == "artist1"

    def test_error_result(self, state, capsys):
        main(["--state", state, "register-artist", "artist1", "John Doe"])
        capsys.readouterr()

        assert main(["--state", state, "register-artist", "artist1", "John Doe"]) == 1
        captured = capsys.readouterr()
        assert json.loads(captured.out) == {"type": "err", "value": 103}
        assert "AlreadyExists" in captured.err

    def test_bad_integer(self, state, capsys):
        assert main(["--state", state, "buy-nft", "a", "one"]) == 2
        assert "must be an integer" in capsys.readouterr().err

    def test_full_flow(self, state, capsys):
        main(["--state", state, "register-artist", "artist1", "John Doe"])
        main(["--state", state, "create-artwork", "artist1", "T", "D"])
        main(["--state", state, "add-contribution", "artist1", "1", "50"])
        main(["--state", state, "finalize-artwork", "artist1", "1"])
        main(["--state", state, "mint-nft", "artist1", "1", "1000"])
        assert main(["--state", state, "buy-nft", "collector", "1"]) == 0

        engine = Engine.load(state)
        assert engine.get_artwork(1).total_contributions == 150
        assert engine.get_nft(1).owner == "collector"


class TestShow:
    """The show command."""

    def test_show_state(self, state, capsys):
        main(["--state", state, "register-artist", "a", "A"])
        capsys.readouterr()

        assert main(["--state", state, "show"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["artists"][0]["caller_id"] == "a"

    def test_show_object(self, state, capsys):
        main(["--state", state, "register-artist", "a", "A"])
        main(["--state", state, "create-artwork", "a", "T", "D"])
        capsys.readouterr()

        assert main(["--state", state, "show", "artwork", "1"]) == 0
        assert json.loads(capsys.readouterr().out)["title"] == "T"
        assert main(["--state", state, "show", "nft", "1"]) == 1
        assert main(["--state", state, "show", "artwork"]) == 2

    def test_corrupt_state_file(self, state, capsys):
        main(["--state", state, "register-artist", "a", "A"])
        main(["--state", state, "create-artwork", "a", "T", "D"])
        data = json.loads(Path(state).read_text())
        data["artworks"][0]["artwork_id"] = "1"
        Path(state).write_text(json.dumps(data))
        capsys.readouterr()

        assert main(["--state", state, "show"]) == 2
        assert "Invalid snapshot" in capsys.readouterr().err


class TestRun:
    """The run command."""

    def test_run_scenario(self, temp_dir, state, capsys):
        scenario = temp_dir / "flow.yaml"
        scenario.write_text(
            "name: flow\n"
            "steps:\n"
            "  - command: register-artist\n"
            "    args: {caller: a, name: A}\n"
            "    expect: ok\n"
            "  - command: create-artwork\n"
            "    args: {caller: b, title: T, description: D}\n"
            "    expect: Unauthorized\n"
        )

        assert main(["--state", state, "run", str(scenario), "--save"]) == 0
        assert "All expectations met" in capsys.readouterr().out
        assert Engine.load(state).is_registered("a")

    def test_run_mismatch(self, temp_dir, state, capsys):
        scenario = temp_dir / "flow.yaml"
        scenario.write_text("- command: buy-nft\n  args: {caller: a, nft_id: 1}\n  expect: ok\n")

        assert main(["--state", state, "run", str(scenario)]) == 1
        assert "did not match" in capsys.readouterr().out
        assert not Path(state).exists()

    def test_missing_scenario(self, temp_dir, state):
        assert main(["--state", state, "run", str(temp_dir / "missing.yaml")]) == 2


class TestConfig:
    """Configuration handling."""

    def test_config_file(self, temp_dir, capsys):
        state = temp_dir / "from-config.json"
        config = temp_dir / "config.yaml"
        config.write_text(f"state_path: {state}\ninitial_contribution: 7\n")

        main(["--config", str(config), "register-artist", "a", "A"])
        main(["--config", str(config), "create-artwork", "a", "T", "D"])

        assert Engine.load(state).get_artwork(1).contributions == [7]

    def test_bad_config(self, temp_dir, capsys):
        config = temp_dir / "config.yaml"
        config.write_text("colour: blue\n")

        assert main(["--config", str(config), "show"]) == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_no_command(self, capsys):
        assert main([]) == 1
