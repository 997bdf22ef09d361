"""Tests for glickorank.config."""

import pytest

from glickorank.config import System, SystemConfig
from glickorank.glicko2 import InvalidParameter, InvalidRating, Match, Rating


def test_unset_fields_resolve_to_defaults():
    system = SystemConfig().resolve()
    assert system.tau == 0.5
    assert system.default_rating == Rating(1500, 350, 0.06)


def test_explicit_zero_is_kept():
    system = SystemConfig(volatility=0.0).resolve()
    assert system.default_rating.volatility == 0.0


def test_zero_tau_reaches_validation():
    system = SystemConfig(tau=0.0).resolve()
    assert system.tau == 0.0
    with pytest.raises(InvalidParameter):
        system.update({}, [Match("A", "B")])


def test_negative_default_rejected():
    with pytest.raises(InvalidRating):
        SystemConfig(deviation=-5).resolve()


def test_merged_overrides_only_set_fields():
    base = SystemConfig(tau=0.3, rating=1200)
    merged = base.merged(SystemConfig(tau=0.9, deviation=100))
    assert merged == SystemConfig(tau=0.9, rating=1200, deviation=100)


# ── environment ──────────────────────────────────────────────────────

def test_from_env_reads_variables():
    cfg = SystemConfig.from_env({
        "GLICKORANK_TAU": "0.75",
        "GLICKORANK_DEFAULT_RATING": "1000",
        "GLICKORANK_DEFAULT_DEVIATION": "",
    })
    assert cfg == SystemConfig(tau=0.75, rating=1000.0)


def test_from_env_rejects_garbage():
    with pytest.raises(InvalidParameter, match="GLICKORANK_TAU"):
        SystemConfig.from_env({"GLICKORANK_TAU": "fast"})


def test_from_env_defaults_to_process_environment(monkeypatch):
    monkeypatch.setenv("GLICKORANK_DEFAULT_VOLATILITY", "0.09")
    assert SystemConfig.from_env().volatility == 0.09


# ── System ───────────────────────────────────────────────────────────

def test_system_update_uses_default_rating():
    system = System(tau=0.5, default_rating=Rating(1200, 50, 0.06))
    new = system.update(None, [Match("A", "B")])
    assert new["A"].rating == pytest.approx(1200)
    assert new["B"].rating == pytest.approx(1200)
