"""
Idle Upgrade Optimizer - Configuration
=======================================
Settings come from an optional YAML file, then IDLE_OPT_* environment
variables, then command-line flags (applied by the caller).
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data" / "state"
DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "sync.db"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# env var -> (field, type)
_ENV_OVERRIDES = {
    "IDLE_OPT_DATA_DIR": ("data_dir", str),
    "IDLE_OPT_DB_PATH": ("db_path", str),
    "IDLE_OPT_SYNC_URL": ("sync_url", str),
    "IDLE_OPT_SYNC_TIMEOUT": ("sync_timeout", float),
    "IDLE_OPT_LOG_LEVEL": ("log_level", str),
    "IDLE_OPT_POLICY": ("policy", str),
    "IDLE_OPT_COST_VALUATION": ("cost_valuation", str),
}


@dataclass
class OptimizerConfig:
    data_dir: str = str(DEFAULT_DATA_DIR)
    db_path: str = str(DEFAULT_DB_PATH)
    sync_url: Optional[str] = None
    sync_timeout: float = 10.0
    log_level: str = "WARNING"
    policy: str = "balanced"
    cost_valuation: str = "valued"

    @classmethod
    def from_file(cls, path: Optional[str] = None) -> "OptimizerConfig":
        """Load YAML settings (unknown keys ignored), then apply env overrides."""
        config = cls()
        if path and Path(path).exists():
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            known = {f.name for f in fields(cls)}
            for key, value in data.items():
                if key in known:
                    setattr(config, key, value)
        config.apply_env()
        return config

    def apply_env(self, environ=None):
        environ = os.environ if environ is None else environ
        for var, (name, cast) in _ENV_OVERRIDES.items():
            value = environ.get(var)
            if value:
                setattr(self, name, cast(value))


def setup_logging(level: str = "WARNING"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.WARNING),
        format=LOG_FORMAT,
    )
