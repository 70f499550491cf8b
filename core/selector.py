"""
    Resolve which accounts to audit.
"""
from __future__ import annotations

import logging
import pwd

from core.config import AuditConfig
from core.errors import UserNotFound
from core.models import UserIdentity

log = logging.getLogger(__name__)


def identity_from_pwd(entry: pwd.struct_passwd) -> UserIdentity:
    return UserIdentity(
        username=entry.pw_name,
        uid=entry.pw_uid,
        gid=entry.pw_gid,
        home=entry.pw_dir,
        shell=entry.pw_shell,
        comment=entry.pw_gecos,
    )


def select_users(config: AuditConfig, username: str | None = None) -> list[UserIdentity]:
    """
    Explicit username: that single account, or UserNotFound.

    Otherwise every account with uid 0 or uid >= config.min_uid, first
    entry wins for duplicate names, sorted by username.
    """
    if username:
        try:
            entry = pwd.getpwnam(username)
        except KeyError:
            raise UserNotFound(username) from None
        return [identity_from_pwd(entry)]

    selected: dict[str, pwd.struct_passwd] = {}
    for entry in pwd.getpwall():
        if entry.pw_uid == 0 or entry.pw_uid >= config.min_uid:
            selected.setdefault(entry.pw_name, entry)

    log.debug("Selected %d account(s)", len(selected))
    return [identity_from_pwd(selected[name]) for name in sorted(selected)]
