import subprocess
import sys
from pathlib import Path

from engine import RealmEngine
from laws import LawSlot, TaxationLevel

ROOT = Path(__file__).resolve().parents[1]


def _cli(*args):
    cmd = [sys.executable, "cli.py", *args]
    return subprocess.run(cmd, cwd=ROOT, capture_output=True, text=True)


def _load(path):
    eng = RealmEngine()
    eng.load_json(str(path))
    return eng


def test_cli_new_law_effect_and_step(tmp_path):
    world_path = tmp_path / "world.json"
    res = _cli("new", "--seed", "3", "--realm", "Avalon:40:2", "--out", str(world_path))
    assert res.returncode == 0, res.stderr
    assert world_path.exists()

    res = _cli("law", str(world_path), "0", "taxation", "High")
    assert res.returncode == 0, res.stderr
    assert _load(world_path).ledgers[0].laws[LawSlot.TAXATION] is TaxationLevel.HIGH

    res = _cli("effect", str(world_path), "0", "econ_boom")
    assert res.returncode == 0, res.stderr
    assert [e.effect_id for e in _load(world_path).ledgers[0].effects] == ["econ_boom"]

    res = _cli("step", str(world_path), "--seconds", "6")
    assert res.returncode == 0, res.stderr
    assert "Avalon" in res.stdout
    assert _load(world_path).sim_time == 6.0


def test_cli_enact_without_funds_fails(tmp_path):
    world_path = tmp_path / "world.json"
    _cli("new", "--realm", "Poor:20:1", "--out", str(world_path))
    res = _cli("enact", str(world_path), "0", "royal_guard")
    assert res.returncode == 1
    assert "Could not enact" in res.stdout
    assert _load(world_path).ledgers[0].policies == set()


def test_cli_bad_law_level(tmp_path):
    world_path = tmp_path / "world.json"
    _cli("new", "--out", str(world_path))
    res = _cli("law", str(world_path), "0", "taxation", "Ludicrous")
    assert res.returncode == 1
