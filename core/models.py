# core/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Unavailable:
    """
    Marker for "the source could not be read".

    Never used for a legitimate empty value: zero sessions, a missing
    authorized_keys file or a missing home directory are facts, not failures.
    """
    reason: str


Maybe = Union[T, Unavailable]


def is_unavailable(value: object) -> bool:
    return isinstance(value, Unavailable)


@dataclass(frozen=True)
class UserIdentity:
    username: str
    uid: int
    gid: int
    home: str
    shell: str
    comment: str = ""


@dataclass(frozen=True)
class LoginHistory:
    last_login: Maybe[str]
    last_success: Maybe[str]


@dataclass(frozen=True)
class PasswordStatus:
    status: Maybe[str]
    expiry: Maybe[str]
    locked: Maybe[bool]


@dataclass(frozen=True)
class PrivilegeInfo:
    # Heuristic only: group grants, includes and negated rules are not resolved.
    is_privileged_group_member: bool
    has_sudoers_text_match: Maybe[bool]
    groups: tuple[str, ...] = ()


@dataclass(frozen=True)
class SshKeyInfo:
    key_count: int = 0
    last_modified: str = ""


@dataclass(frozen=True)
class HomeDirAudit:
    exists: bool = False
    owner: str = ""
    mode: str = ""
    world_writable: bool = False
    owner_is_root: bool = False


@dataclass(frozen=True)
class SessionInfo:
    # Empty tuple means "no active sessions".
    sessions: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProcessEntry:
    pid: int
    cpu_percent: float
    mem_percent: float
    rss: int
    command: str
    ppid: int = 0


@dataclass(frozen=True)
class ProcessSnapshot:
    processes: tuple[ProcessEntry, ...] = ()


@dataclass(frozen=True)
class FailedLoginSnapshot:
    entries: tuple[str, ...] = ()


@dataclass(frozen=True)
class AuditRecord:
    identity: UserIdentity
    login_history: Maybe[LoginHistory]
    password: Maybe[PasswordStatus]
    privileges: Maybe[PrivilegeInfo]
    ssh_keys: Maybe[SshKeyInfo]
    home_dir: Maybe[HomeDirAudit]
    sessions: Maybe[SessionInfo]
    processes: Maybe[ProcessSnapshot]
    failed_logins: Maybe[FailedLoginSnapshot]
    generated: str
    host: str


@dataclass(frozen=True)
class AuditReport:
    generated: str
    host: str
    records: tuple[AuditRecord, ...] = field(default_factory=tuple)
