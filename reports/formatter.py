"""
    Report formatting functions.

    Both layouts are built from the same AuditReport. The JSON layout goes
    through to_document() -> json.dumps, so escaping of quotes, backslashes
    and line breaks is done by the serializer, never per field.

    Unavailable values render as null in JSON and as "(unavailable: ...)"
    in the text layout.
"""
from __future__ import annotations

import json
from typing import Any

from core.models import AuditRecord, AuditReport, Unavailable

RULE = "=" * 40
END_RULE = "-" * 40


def _get(group: Any, attr: str) -> Any:
    """Attribute of a field group, None when the group or the value is Unavailable."""
    if isinstance(group, Unavailable):
        return None
    value = getattr(group, attr)
    return None if isinstance(value, Unavailable) else value


def _list(group: Any, attr: str) -> list | None:
    value = _get(group, attr)
    return None if value is None else list(value)


def _processes(group: Any) -> list[dict[str, Any]] | None:
    procs = _get(group, "processes")
    if procs is None:
        return None
    return [
        {
            "pid": p.pid,
            "ppid": p.ppid,
            "cpu_percent": p.cpu_percent,
            "mem_percent": p.mem_percent,
            "rss": p.rss,
            "command": p.command,
        }
        for p in procs
    ]


def record_to_dict(record: AuditRecord) -> dict[str, Any]:
    """Flatten one record into the fixed key order of the JSON document."""
    ident = record.identity
    return {
        "user": ident.username,
        "uid": ident.uid,
        "gid": ident.gid,
        "comment": ident.comment,
        "home": ident.home,
        "shell": ident.shell,
        "generated": record.generated,
        "host": record.host,
        "last_login": _get(record.login_history, "last_login"),
        "last_success": _get(record.login_history, "last_success"),
        "password_status": _get(record.password, "status"),
        "password_expiry": _get(record.password, "expiry"),
        "account_locked": _get(record.password, "locked"),
        "is_privileged_group_member": _get(record.privileges, "is_privileged_group_member"),
        "privileged_groups": _list(record.privileges, "groups"),
        "has_sudoers_text_match": _get(record.privileges, "has_sudoers_text_match"),
        "ssh_key_count": _get(record.ssh_keys, "key_count"),
        "ssh_keys_mtime": _get(record.ssh_keys, "last_modified"),
        "home_exists": _get(record.home_dir, "exists"),
        "home_owner": _get(record.home_dir, "owner"),
        "home_mode": _get(record.home_dir, "mode"),
        "home_world_writable": _get(record.home_dir, "world_writable"),
        "home_owner_is_root": _get(record.home_dir, "owner_is_root"),
        "active_sessions": _list(record.sessions, "sessions"),
        "processes": _processes(record.processes),
        "failed_logins": _list(record.failed_logins, "entries"),
    }


def to_document(report: AuditReport) -> dict[str, Any]:
    return {
        "generated": report.generated,
        "host": report.host,
        "users": [record_to_dict(r) for r in report.records],
    }


def format_json(report: AuditReport) -> str:
    return json.dumps(to_document(report), indent=2, ensure_ascii=False) + "\n"


# -----------------------------
# Human readable layout
# -----------------------------
def _text(value: Any) -> str:
    if isinstance(value, Unavailable):
        return f"(unavailable: {value.reason})"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _field(group: Any, attr: str) -> str:
    if isinstance(group, Unavailable):
        return _text(group)
    return _text(getattr(group, attr))


def _indent(text: str, prefix: str = "  ") -> str:
    return "\n".join(prefix + line for line in text.splitlines()) if text else prefix.rstrip()


def _block(group: Any, attr: str, empty: str) -> str:
    """Multi-line section body: one indented line per entry."""
    if isinstance(group, Unavailable):
        return _indent(_text(group))
    value = getattr(group, attr)
    if isinstance(value, Unavailable):
        return _indent(_text(value))
    if not value:
        return _indent(empty)
    return "\n".join(_indent(str(v)) for v in value)


def _process_lines(group: Any) -> str:
    if isinstance(group, Unavailable):
        return _indent(_text(group))
    if not group.processes:
        return _indent("(no processes)")
    lines = [f"{'PID':>7} {'PPID':>7} {'%CPU':>5} {'%MEM':>5} {'RSS':>12}  COMMAND"]
    for p in group.processes:
        lines.append(f"{p.pid:>7} {p.ppid:>7} {p.cpu_percent:>5.1f} {p.mem_percent:>5.1f} {p.rss:>12}  {p.command}")
    return _indent("\n".join(lines))


def format_record_text(record: AuditRecord) -> str:
    ident = record.identity
    priv = record.privileges
    keys = record.ssh_keys
    home = record.home_dir

    groups = _get(priv, "groups")
    group_text = ",".join(groups) if groups else "-"

    lines = [
        RULE,
        f"User:       {ident.username}",
        f"UID:GID:    {ident.uid}:{ident.gid}",
        f"Comment:    {ident.comment}",
        f"Home:       {ident.home}",
        f"Shell:      {ident.shell}",
        f"Lastlog:    {_field(record.login_history, 'last_login')}",
        f"Last login: {_field(record.login_history, 'last_success')}",
        f"Password:   {_field(record.password, 'status')}",
        "Chage:",
        _indent(_field(record.password, "expiry")),
        f"Locked:     {_field(record.password, 'locked')}",
        f"Sudo:       group_member={_field(priv, 'is_privileged_group_member')}"
        f" groups={group_text}"
        f" sudoers_entry={_field(priv, 'has_sudoers_text_match')}",
        f"SSH keys:   count={_field(keys, 'key_count')} mtime={_field(keys, 'last_modified')}",
        f"Home dir:   exists={_field(home, 'exists')} owner={_field(home, 'owner')}"
        f" mode={_field(home, 'mode')} world_writable={_field(home, 'world_writable')}"
        f" owner_root={_field(home, 'owner_is_root')}",
        "Active:",
        _block(record.sessions, "sessions", "(no active sessions)"),
        "Processes:",
        _process_lines(record.processes),
        "Failed logins:",
        _block(record.failed_logins, "entries", "(none)"),
        END_RULE,
    ]
    return "\n".join(lines)


def format_text(report: AuditReport) -> str:
    parts = [
        f"User audit generated: {report.generated}",
        f"Host: {report.host}",
        "",
    ]
    parts.extend(format_record_text(r) for r in report.records)
    return "\n".join(parts) + "\n"
