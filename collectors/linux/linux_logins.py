from __future__ import annotations

from core.capabilities import Capabilities
from core.config import AuditConfig
from core.models import FailedLoginSnapshot, LoginHistory, Unavailable, UserIdentity
from helpers.unix import run_tool


def _meaningful_lines(text: str) -> list[str]:
    """Drop blank lines and the "wtmp begins ..." / "btmp begins ..." trailer."""
    lines = []
    for line in text.splitlines():
        s = line.rstrip()
        if not s.strip():
            continue
        if s.startswith(("wtmp begins", "btmp begins")):
            continue
        lines.append(s)
    return lines


# -----------------------------
# 1) Login history
# -----------------------------
def get_linux_login_history(
    user: UserIdentity, caps: Capabilities, config: AuditConfig
) -> LoginHistory:
    """
    Linux: last recorded login (lastlog) and last successful login (last).

    Commands:
      - lastlog -u <user>
      - last -n 1 <user>

    lastlog output is a header line plus one row:
      Username   Port     From          Latest
      alice      pts/0    10.0.0.5      Mon Oct 12 10:00:00 +0000 2026
    The row is kept as text with runs of whitespace collapsed.

    Either field is Unavailable on its own when its tool is missing or fails;
    a user who never logged in gets "" for last_success.
    """
    if caps.lastlog:
        out = run_tool(["lastlog", "-u", user.username], config.command_timeout)
        if isinstance(out, Unavailable):
            last_login = out
        else:
            rows = out.splitlines()[1:2]
            last_login = " ".join(rows[0].split()) if rows else ""
    else:
        last_login = Unavailable("lastlog not available")

    if caps.last:
        out = run_tool(["last", "-n", "1", user.username], config.command_timeout)
        if isinstance(out, Unavailable):
            last_success = out
        else:
            lines = _meaningful_lines(out)
            last_success = lines[0] if lines else ""
    else:
        last_success = Unavailable("last not available")

    return LoginHistory(last_login=last_login, last_success=last_success)


# -----------------------------
# 2) Failed logins
# -----------------------------
def get_linux_failed_logins(
    user: UserIdentity, caps: Capabilities, config: AuditConfig
) -> FailedLoginSnapshot | Unavailable:
    """
    Linux: most recent failed logins for the user (lastb -F <user>).

    Reading btmp normally requires root, so this is Unavailable for most
    non-root runs. Output is capped at config.max_failed_logins raw lines.
    """
    if not caps.failed_log:
        return Unavailable("lastb not available or failure log not readable")

    out = run_tool(["lastb", "-F", user.username], config.command_timeout)
    if isinstance(out, Unavailable):
        return out

    entries = _meaningful_lines(out)[: config.max_failed_logins]
    return FailedLoginSnapshot(entries=tuple(entries))
