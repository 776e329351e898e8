"""
sanctum.config — YAML Configuration Loader
===========================================

Reads ``config.yaml`` for **infrastructure-only** settings (community
identity, API port, background job cadence).  Mechanic tuning values
(allotments, windows, multipliers, prices) live in
:mod:`sanctum.constants`; secrets and ``DATABASE_URL`` come from the
environment.

Usage::

    from sanctum.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.community_name)    # "Sanctum"
    print(cfg.api_port)          # 8000
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class SanctumConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # API
    api_port: int

    # Startup
    seed_demo_data: bool = False

    # Background jobs
    scheduler_enabled: bool = True
    token_drop_interval_minutes: int = 60
    ritual_sweep_minutes: int = 5


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> SanctumConfig:
    """Read *path* and return a :class:`SanctumConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

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

    return SanctumConfig(
        community_name=raw["community_name"],
        api_port=int(raw["api_port"]),
        seed_demo_data=bool(raw.get("seed_demo_data", False)),
        scheduler_enabled=bool(raw.get("scheduler_enabled", True)),
        token_drop_interval_minutes=int(raw.get("token_drop_interval_minutes", 60)),
        ritual_sweep_minutes=int(raw.get("ritual_sweep_minutes", 5)),
    )
