from __future__ import annotations

import grp
import re

from core.capabilities import Capabilities
from core.config import AuditConfig
from core.models import PasswordStatus, PrivilegeInfo, Unavailable, UserIdentity
from helpers.unix import run_tool

LOCKED_CODES = {"L", "LK"}
UNLOCKED_CODES = {"P", "PS", "NP"}


# -----------------------------
# 1) Password status / aging
# -----------------------------
def parse_lock_state(status: str) -> bool | Unavailable:
    """
    passwd -S prints "<user> <code> <date> <min> <max> <warn> <inactive> ...".

    Codes differ per distribution:
      - L / LK       locked
      - P / PS       usable password
      - NP           no password
    """
    parts = status.split()
    if len(parts) < 2:
        return Unavailable(f"unexpected passwd -S output: {status!r}")
    code = parts[1]
    if code in LOCKED_CODES:
        return True
    if code in UNLOCKED_CODES:
        return False
    return Unavailable(f"unknown password status code {code!r}")


def get_linux_password_status(
    user: UserIdentity, caps: Capabilities, config: AuditConfig
) -> PasswordStatus:
    """
    Linux: password status (passwd -S) and aging (chage -l).

    Both are kept as raw text. Non-root callers usually get a permission
    error from both tools, which makes the fields Unavailable.
    """
    if caps.passwd:
        status = run_tool(["passwd", "-S", user.username], config.command_timeout)
    else:
        status = Unavailable("passwd not available")

    if caps.chage:
        expiry = run_tool(["chage", "-l", user.username], config.command_timeout)
    else:
        expiry = Unavailable("chage not available")

    locked = status if isinstance(status, Unavailable) else parse_lock_state(status)
    return PasswordStatus(status=status, expiry=expiry, locked=locked)


# -----------------------------
# 2) Privileges (best-effort)
# -----------------------------
def sudoers_mentions(text: str, username: str) -> bool:
    """
    True when a non-comment line of the authorization file contains the
    username as a whole word.

    This is a text heuristic. It does not resolve %group grants, includes,
    aliases or negated rules.
    """
    # "-" and "." are valid in usernames, so "alice-admin" is not "alice".
    pattern = re.compile(rf"(?<![\w.-]){re.escape(username)}(?![\w.-])")
    for line in text.splitlines():
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        if pattern.search(s):
            return True
    return False


def get_privileged_groups(user: UserIdentity, group_names) -> list[str]:
    """Configured privileged groups that exist and contain the user (incl. primary gid)."""
    found = []
    for name in group_names:
        try:
            group = grp.getgrnam(name)
        except KeyError:
            continue
        if user.username in group.gr_mem or group.gr_gid == user.gid:
            found.append(name)
    return found


def get_linux_privileges(
    user: UserIdentity, caps: Capabilities, config: AuditConfig
) -> PrivilegeInfo:
    groups = get_privileged_groups(user, config.privileged_groups)

    if caps.sudoers:
        try:
            with open(config.sudoers_path, "r", encoding="utf-8", errors="replace") as f:
                sudoers_match = sudoers_mentions(f.read(), user.username)
        except OSError as e:
            sudoers_match = Unavailable(f"{type(e).__name__}: {e}")
    else:
        sudoers_match = Unavailable(f"{config.sudoers_path} not readable")

    return PrivilegeInfo(
        is_privileged_group_member=bool(groups),
        has_sudoers_text_match=sudoers_match,
        groups=tuple(groups),
    )
