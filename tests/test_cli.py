"""Tests for the ``python -m universegen`` command line."""

from __future__ import annotations

import json
import logging

import pytest

from universegen.__main__ import main


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSystemCommand:
    def test_stats_output(self, capsys):
        assert main(["system", "--seed", "42"]) == 0
        out = capsys.readouterr().out
        assert "Seed: 42" in out
        assert "Valid: True" in out

    def test_json_output(self, capsys):
        assert main(["system", "--seed", "42", "--preset", "compact", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["seed"] == 42
        assert data["preset"] == "compact"

    def test_config_file(self, tmp_path, capsys):
        cfg = tmp_path / "cfg.json"
        cfg.write_text(json.dumps({"starProbabilities": [1, 0, 0], "planetGeometricP": 1.0}))
        assert main(["system", "--seed", "1", "--config", str(cfg), "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert len(data["bodies"]) == 1

    def test_bad_preset_exit_code(self):
        assert main(["system", "--seed", "1", "--preset", "nebula"]) == 2

    def test_body_cap_exit_code(self):
        assert main(["system", "--seed", "1", "--preset", "moon_rich", "--max-bodies", "2"]) == 2


class TestGalaxyAndBatch:
    def test_galaxy_writes_snapshot(self, tmp_path, capsys):
        out = tmp_path / "galaxy.json"
        assert main(["galaxy", "--seed", "3", "--systems", "6", "--layout", "scattered", "--out", str(out)]) == 0
        data = json.loads(out.read_text())
        assert len(data["rootIds"]) == 6
        assert "Systems:       6" in capsys.readouterr().out

    def test_batch_table(self, capsys):
        assert main(["batch", "--seed", "3", "--count", "4", "--workers", "2"]) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 5


class TestValidateCommand:
    def test_valid_snapshot(self, tmp_path, capsys):
        path = tmp_path / "u.json"
        assert main(["galaxy", "--seed", "5", "--systems", "3", "--out", str(path)]) == 0
        capsys.readouterr()
        assert main(["validate", str(path)]) == 0
        assert "Valid: True" in capsys.readouterr().out

    def test_broken_snapshot(self, tmp_path, capsys):
        path = tmp_path / "u.json"
        assert main(["system", "--seed", "5", "--out", str(path)]) == 0
        data = json.loads(path.read_text())
        root = data["rootIds"][0]
        data["bodies"][root]["childIds"].append("ghost")
        path.write_text(json.dumps(data))
        capsys.readouterr()
        assert main(["validate", str(path)]) == 1
        assert "missing_reference" in capsys.readouterr().out

    def test_malformed_snapshot_reported(self, tmp_path, capsys):
        path = tmp_path / "u.json"
        assert main(["system", "--seed", "5", "--out", str(path)]) == 0
        data = json.loads(path.read_text())
        root = data["rootIds"][0]
        data["bodies"][root]["type"] = "comet"
        path.write_text(json.dumps(data))
        capsys.readouterr()
        assert main(["validate", str(path)]) == 1
        out = capsys.readouterr().out
        assert "Valid: False" in out
        assert f"[malformed] bodies.{root}.type" in out

    def test_unparseable_file_reported(self, tmp_path, capsys):
        path = tmp_path / "u.json"
        path.write_text("{not json")
        assert main(["validate", str(path)]) == 1
        assert "[malformed] line 1" in capsys.readouterr().out

    def test_preset_child_bounds_checked(self, tmp_path, capsys):
        path = tmp_path / "u.json"
        assert main(["system", "--seed", "5", "--preset", "sparse_outpost", "--out", str(path)]) == 0
        data = json.loads(path.read_text())
        root = data["rootIds"][0]
        for n in range(3):
            pid = f"extra-{n}"
            data["bodies"][pid] = {
                "id": pid, "type": "planet", "mass": 1.0, "orbitRadius": 100.0 + n, "parentId": root,
            }
            data["bodies"][root]["childIds"].append(pid)
        path.write_text(json.dumps(data))
        capsys.readouterr()
        assert main(["validate", str(path)]) == 1
        assert "child_count" in capsys.readouterr().out
