"""
tests/test_config.py — YAML Configuration Loader Tests
========================================================
"""

from __future__ import annotations

import pytest

from skillbridge.config import load_config


def test_load_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "organization_name: Acme Corp\n"
        "dashboard_port: 8501\n"
        "meetup_scheme: acme\n",
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.organization_name == "Acme Corp"
    assert cfg.dashboard_port == 8501
    assert cfg.meetup_scheme == "acme"
    assert cfg.tagline == ""


def test_default_meetup_scheme(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("organization_name: X\ndashboard_port: '80'\n", encoding="utf-8")
    assert load_config(path).meetup_scheme == "skillbridge"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_missing_required_key(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("tagline: hi\n", encoding="utf-8")
    with pytest.raises(KeyError):
        load_config(path)
