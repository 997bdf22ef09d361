"""Tests for the glickorank command line."""

import io
import sys

import pytest

from glickorank.__main__ import main

SAMPLE = """\
100 chess 1500 A rd=200 v=0.06
100 chess 1400 B rd=30 v=0.06
101 chess A B 1-0
7 go X Y 0.5-0.5
"""


def _run(monkeypatch, *argv, stdin=SAMPLE):
    monkeypatch.setattr(sys, "argv", ["glickorank", *argv])
    monkeypatch.setattr(sys, "stdin", io.StringIO(stdin))
    main()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("GLICKORANK_TAU", "GLICKORANK_DEFAULT_RATING",
                "GLICKORANK_DEFAULT_DEVIATION", "GLICKORANK_DEFAULT_VOLATILITY"):
        monkeypatch.delenv(var, raising=False)


# ── rate ─────────────────────────────────────────────────────────────

def test_rate_from_stdin(monkeypatch, capsys):
    _run(monkeypatch, "rate")
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 4
    assert lines[0].startswith("101 chess 1563.5")
    assert lines[0].split()[3] == "A"
    assert lines[1].startswith("101 chess 1398.1")
    assert lines[2].startswith("7 go 1500.0000 X ")
    assert lines[3].startswith("7 go 1500.0000 Y ")


def test_rate_from_file(monkeypatch, capsys, tmp_path):
    path = tmp_path / "club.txt"
    path.write_text(SAMPLE, encoding="utf-8")
    _run(monkeypatch, "rate", "-i", str(path), stdin="")
    assert len(capsys.readouterr().out.splitlines()) == 4


def test_output_can_be_fed_back(monkeypatch, capsys):
    _run(monkeypatch, "rate")
    first = capsys.readouterr().out
    _run(monkeypatch, "rate", stdin=first)
    second = capsys.readouterr().out.splitlines()
    assert len(second) == 4
    # no matches on the second run: only deviations move
    assert [l.split()[2] for l in second] == [l.split()[2] for l in first.splitlines()]


def test_env_tau_is_used(monkeypatch, capsys):
    monkeypatch.setenv("GLICKORANK_TAU", "0")
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, "rate")
    assert exc.value.code == 1
    assert "invalid value for tau" in capsys.readouterr().err


def test_flag_overrides_env(monkeypatch, capsys):
    monkeypatch.setenv("GLICKORANK_TAU", "0")
    _run(monkeypatch, "rate", "--tau", "0.5")
    assert len(capsys.readouterr().out.splitlines()) == 4


def test_bad_file_is_fatal(monkeypatch, capsys):
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, "rate", stdin="1 ns alice bob 3-0\n")
    assert exc.value.code == 1
    assert capsys.readouterr().err.startswith("fatal: line 1")


def test_batch_and_repetition_flags(monkeypatch, capsys):
    _run(monkeypatch, "rate", "--batch", "1", "--repetitions", "1")
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 4


# ── chart ────────────────────────────────────────────────────────────

def test_chart_needs_namespace_when_ambiguous(monkeypatch, capsys, tmp_path):
    with pytest.raises(SystemExit):
        _run(monkeypatch, "chart", "-o", str(tmp_path / "x.png"))
    assert "--namespace" in capsys.readouterr().err


def test_chart_for_namespace(monkeypatch, capsys, tmp_path):
    out = tmp_path / "chess.png"
    _run(monkeypatch, "chart", "-n", "chess", "-o", str(out))
    assert out.exists()
    assert "Chart saved" in capsys.readouterr().out


def test_chart_unknown_namespace(monkeypatch, capsys, tmp_path):
    with pytest.raises(SystemExit):
        _run(monkeypatch, "chart", "-n", "poker", "-o", str(tmp_path / "x.png"))
    assert "not found" in capsys.readouterr().err


def test_no_command_prints_help(monkeypatch, capsys):
    _run(monkeypatch)
    assert "usage" in capsys.readouterr().out


def test_missing_input_file_is_fatal(monkeypatch, capsys, tmp_path):
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, "rate", "-i", str(tmp_path / "absent.txt"), stdin="")
    assert exc.value.code == 1
    assert capsys.readouterr().err.startswith("fatal: ")
