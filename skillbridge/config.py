"""
skillbridge.config — YAML Configuration Loader
===============================================

**Why this file exists:**
This module reads ``config.yaml`` for **infrastructure-only** settings
(organization identity, dashboard port, meetup code scheme).  All gameplay
tuning values (point values, streak window, match threshold) live in the
``settings`` database table.

Usage::

    from skillbridge.config import load_config

    cfg = load_config()            # reads ./config.yaml by default
    print(cfg.organization_name)   # "Acme Corp"
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object: infrastructure/identity only.
# Gameplay tuning lives in the DB ``settings`` table.
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class SkillBridgeConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    organization_name: str
    tagline: str

    # Dashboard
    dashboard_port: int

    # Prefix of QR meetup codes (``<scheme>://meet/<user_id>/<millis>``)
    meetup_scheme: str = "skillbridge"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> SkillBridgeConfig:
    """Read *path* and return a :class:`SkillBridgeConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return SkillBridgeConfig(
        organization_name=raw["organization_name"],
        tagline=raw.get("tagline", ""),
        dashboard_port=int(raw["dashboard_port"]),
        meetup_scheme=raw.get("meetup_scheme") or "skillbridge",
    )
