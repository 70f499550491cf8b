"""
    Capability detection.

    Checks once per run which optional data sources exist on this host.
    Collectors only read the resulting Capabilities; they never re-check
    tool presence themselves.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields

import psutil

from core.config import AuditConfig
from helpers.unix import has_cmd

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capabilities:
    lastlog: bool = False        # login-history store (lastlog)
    last: bool = False           # last successful login (wtmp via last)
    passwd: bool = False         # passwd -S (status / lock)
    chage: bool = False          # password aging tool
    sudoers: bool = False        # authorization file readable
    failed_log: bool = False     # lastb present and btmp readable
    process_table: bool = False
    session_table: bool = False

    def missing(self) -> list[str]:
        return [f.name for f in fields(self) if not getattr(self, f.name)]


def _psutil_works(call) -> bool:
    try:
        call()
    except (OSError, psutil.Error) as e:
        log.debug("psutil check failed: %s", e)
        return False
    return True


def detect_capabilities(config: AuditConfig) -> Capabilities:
    caps = Capabilities(
        lastlog=has_cmd("lastlog"),
        last=has_cmd("last"),
        passwd=has_cmd("passwd"),
        chage=has_cmd("chage"),
        sudoers=os.access(config.sudoers_path, os.R_OK),
        failed_log=has_cmd("lastb") and os.access(config.btmp_path, os.R_OK),
        process_table=_psutil_works(psutil.pids),
        session_table=_psutil_works(psutil.users),
    )

    for name in caps.missing():
        log.info("Source not available, related fields will be unavailable: %s", name)

    return caps
