from __future__ import annotations

from datetime import datetime

import psutil

from core.capabilities import Capabilities
from core.config import AuditConfig
from core.models import SessionInfo, Unavailable, UserIdentity


def format_session(entry) -> str:
    """
    Render one psutil.users() entry like a `who` line:

      alice    pts/0        2026-10-18 09:41 (10.0.0.5)

    The start time is local time, as `who` prints it.
    """
    started = datetime.fromtimestamp(entry.started).strftime("%Y-%m-%d %H:%M")
    line = f"{entry.name:<8} {entry.terminal or '?':<12} {started}"
    if entry.host:
        line += f" ({entry.host})"
    return line


def get_active_sessions(
    user: UserIdentity, caps: Capabilities, config: AuditConfig
) -> SessionInfo | Unavailable:
    """
    Currently active sessions of the user, from the utmp session table.

    An empty SessionInfo is "no active sessions"; Unavailable only when the
    session table itself cannot be read.
    """
    if not caps.session_table:
        return Unavailable("session table not available")

    try:
        entries = psutil.users()
    except (OSError, psutil.Error) as e:
        return Unavailable(f"{type(e).__name__}: {e}")

    return SessionInfo(
        sessions=tuple(format_session(e) for e in entries if e.name == user.username)
    )
