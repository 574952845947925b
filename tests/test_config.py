"""Tests for configuration loading and clamping."""

import json

import pytest

from prize_wheel.config import DEFAULT_CONFIG, apply_config_update, load_config, save_config


def test_missing_file_gives_defaults(tmp_path):
    assert load_config(str(tmp_path / "config.json")) == DEFAULT_CONFIG


def test_values_are_clamped():
    updated = apply_config_update(DEFAULT_CONFIG, {
        "spin_duration_ms": 10,
        "full_spins": 0,
        "pointer_angle": 630,
        "volume": 250,
    })
    assert updated["spin_duration_ms"] == 500
    assert updated["full_spins"] == 1
    assert updated["pointer_angle"] == 270
    assert updated["volume"] == 100


def test_unknown_keys_are_ignored():
    updated = apply_config_update(DEFAULT_CONFIG, {"button_pin": 17})
    assert "button_pin" not in updated


def test_partial_confetti_update_keeps_other_fields():
    updated = apply_config_update(DEFAULT_CONFIG, {"confetti": {"spread": 45}})
    assert updated["confetti"]["spread"] == 45
    assert updated["confetti"]["particle_count"] == 200
    assert DEFAULT_CONFIG["confetti"]["spread"] == 90


def test_non_numeric_value_raises():
    with pytest.raises(ValueError):
        apply_config_update(DEFAULT_CONFIG, {"volume": "loud"})


def test_save_and_load(tmp_path):
    filename = str(tmp_path / "config.json")
    save_config(filename, apply_config_update(DEFAULT_CONFIG, {"full_spins": 3}))
    assert load_config(filename)["full_spins"] == 3


def test_corrupt_file_gives_defaults(tmp_path):
    filename = tmp_path / "config.json"
    filename.write_text(json.dumps(["nope"]), encoding="utf-8")
    assert load_config(str(filename)) == DEFAULT_CONFIG
