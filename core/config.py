"""
    Audit configuration loader.

    Defaults live in DEFAULTS. A JSON file (the -c argument, or the path in
    USER_AUDIT_CONFIG) is merged over them; the merged values become an
    immutable AuditConfig shared read-only by every stage of a run.

    Example file:
      {
        "privileged_groups": ["sudo", "wheel", "admin", "adm"],
        "command_timeout": 5
      }
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.errors import ConfigError

log = logging.getLogger(__name__)

CONFIG_ENV_VAR = "USER_AUDIT_CONFIG"

DEFAULTS: dict[str, Any] = {
    "privileged_groups": ["sudo", "wheel", "admin"],
    "sudoers_path": "/etc/sudoers",
    "btmp_path": "/var/log/btmp",
    "authorized_keys": ".ssh/authorized_keys",
    "min_uid": 1000,
    "command_timeout": 10,
    "max_processes": 5,
    "max_failed_logins": 20,
    "workers": 1,
}


@dataclass(frozen=True)
class AuditConfig:
    privileged_groups: tuple[str, ...] = tuple(DEFAULTS["privileged_groups"])
    sudoers_path: str = DEFAULTS["sudoers_path"]
    btmp_path: str = DEFAULTS["btmp_path"]
    authorized_keys: str = DEFAULTS["authorized_keys"]
    min_uid: int = DEFAULTS["min_uid"]
    command_timeout: int = DEFAULTS["command_timeout"]
    max_processes: int = DEFAULTS["max_processes"]
    max_failed_logins: int = DEFAULTS["max_failed_logins"]
    workers: int = DEFAULTS["workers"]

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> "AuditConfig":
        unknown = sorted(set(values) - set(DEFAULTS))
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        merged = dict(DEFAULTS)
        merged.update(values)
        try:
            return cls(
                privileged_groups=tuple(str(g) for g in merged["privileged_groups"]),
                sudoers_path=str(merged["sudoers_path"]),
                btmp_path=str(merged["btmp_path"]),
                authorized_keys=str(merged["authorized_keys"]),
                min_uid=int(merged["min_uid"]),
                command_timeout=int(merged["command_timeout"]),
                max_processes=int(merged["max_processes"]),
                max_failed_logins=int(merged["max_failed_logins"]),
                workers=max(1, int(merged["workers"])),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e


def load_audit_config(path: str | Path | None = None) -> AuditConfig:
    """Load configuration with defaults, overridden by the config file if any."""
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    if path is None:
        return AuditConfig()

    config_path = Path(path)
    try:
        cfg = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot load config {config_path}: {e}") from e

    if not isinstance(cfg, dict):
        raise ConfigError(f"Config {config_path} must contain a JSON object")

    log.debug("Loaded configuration from %s", config_path)
    return AuditConfig.from_mapping(cfg)
