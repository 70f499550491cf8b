from __future__ import annotations

import os
import pwd
import stat
from datetime import datetime, timezone

from core.capabilities import Capabilities
from core.config import AuditConfig
from core.models import HomeDirAudit, SshKeyInfo, Unavailable, UserIdentity
from shared.system import ISO_FORMAT


def _iso_utc(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime(ISO_FORMAT)


# -----------------------------
# 1) SSH authorized_keys
# -----------------------------
def get_linux_ssh_keys(
    user: UserIdentity, caps: Capabilities, config: AuditConfig
) -> SshKeyInfo | Unavailable:
    """
    Count non-blank lines of ~/.ssh/authorized_keys and record its mtime.

    Output:
      SshKeyInfo(key_count=3, last_modified="2026-03-01T09:12:44Z")

    No file is a legitimate "no keys" (count 0, empty mtime). A file that
    exists but cannot be read is Unavailable.
    """
    path = os.path.join(user.home, config.authorized_keys)
    try:
        st = os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return SshKeyInfo()
    except OSError as e:
        # Typically another user's 0700 ~/.ssh on a non-root run.
        return Unavailable(f"{type(e).__name__}: {e}")

    if not stat.S_ISREG(st.st_mode):
        return SshKeyInfo()

    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            count = sum(1 for line in f if line.strip())
    except OSError as e:
        return Unavailable(f"{type(e).__name__}: {e}")

    return SshKeyInfo(key_count=count, last_modified=_iso_utc(st.st_mtime))


# -----------------------------
# 2) Home directory
# -----------------------------
def is_world_writable(mode: str) -> bool:
    """
    Last octal digit has the write bit (2, 3, 6 or 7).

    Approximation: sticky bit and ACLs are ignored.
    """
    return bool(mode) and mode[-1] in "2367"


def get_linux_home_dir(
    user: UserIdentity, caps: Capabilities, config: AuditConfig
) -> HomeDirAudit | Unavailable:
    """
    Owner, permission mode (as stat %a, e.g. "750") and risk flags of the
    home directory. A home that is not a directory yields all-empty/false.
    """
    if not user.home:
        return HomeDirAudit()

    try:
        st = os.stat(user.home)
    except (FileNotFoundError, NotADirectoryError):
        return HomeDirAudit()
    except OSError as e:
        return Unavailable(f"{type(e).__name__}: {e}")

    if not stat.S_ISDIR(st.st_mode):
        return HomeDirAudit()

    try:
        owner = pwd.getpwuid(st.st_uid).pw_name
    except KeyError:
        # Orphaned uid, no passwd entry.
        owner = str(st.st_uid)

    mode = format(stat.S_IMODE(st.st_mode), "o")
    return HomeDirAudit(
        exists=True,
        owner=owner,
        mode=mode,
        world_writable=is_world_writable(mode),
        owner_is_root=owner == "root",
    )
