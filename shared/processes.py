from __future__ import annotations

import time
from typing import Any

import psutil

from core.capabilities import Capabilities
from core.config import AuditConfig
from core.models import ProcessEntry, ProcessSnapshot, Unavailable, UserIdentity

# Attributes fetched in one pass per process. Anything we are not allowed to
# read comes back as None (ad_value) instead of raising AccessDenied.
PROC_ATTRS = ["pid", "ppid", "name", "uids", "cmdline", "memory_info", "memory_percent",
              "cpu_times", "create_time"]


def _lifetime_cpu_percent(info: dict[str, Any], now: float) -> float:
    """
    CPU time over wall time since start, the way `ps %cpu` reports it.

    psutil's cpu_percent() needs two samples; a single snapshot cannot use it.
    """
    cpu_times = info.get("cpu_times")
    created = info.get("create_time")
    if cpu_times is None or created is None:
        return 0.0
    elapsed = now - created
    if elapsed <= 0:
        return 0.0
    return round((cpu_times.user + cpu_times.system) / elapsed * 100, 1)


def _command(info: dict[str, Any]) -> str:
    cmdline = info.get("cmdline")
    if cmdline:
        return " ".join(cmdline)
    # Kernel threads and zombies have no argv; ps shows them as [name].
    return f"[{info.get('name') or '?'}]"


def get_user_processes(
    user: UserIdentity, caps: Capabilities, config: AuditConfig
) -> ProcessSnapshot | Unavailable:
    """
    Top processes owned (effective uid) by the user, largest resident
    memory first, capped at config.max_processes.

    Output:
      ProcessSnapshot(processes=(
        ProcessEntry(pid=812, ppid=1, cpu_percent=0.4, mem_percent=2.1,
                     rss=174063616, command="/usr/bin/python3 app.py"),
        ...
      ))
    """
    if not caps.process_table:
        return Unavailable("process table not available")

    now = time.time()
    entries: list[ProcessEntry] = []

    try:
        for proc in psutil.process_iter(PROC_ATTRS, ad_value=None):
            info = proc.info
            uids = info.get("uids")
            if uids is None or uids.effective != user.uid:
                continue

            mem = info.get("memory_info")
            entries.append(ProcessEntry(
                pid=info["pid"],
                ppid=info.get("ppid") or 0,
                cpu_percent=_lifetime_cpu_percent(info, now),
                mem_percent=round(info.get("memory_percent") or 0.0, 1),
                rss=mem.rss if mem is not None else 0,
                command=_command(info),
            ))
    except (OSError, psutil.Error) as e:
        return Unavailable(f"{type(e).__name__}: {e}")

    # pid breaks ties so equal-RSS processes keep a stable order.
    entries.sort(key=lambda p: (-p.rss, p.pid))
    return ProcessSnapshot(processes=tuple(entries[: config.max_processes]))
