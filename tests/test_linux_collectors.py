"""Tests for the Linux account, login and filesystem collectors."""

from __future__ import annotations

import os

import pytest

from collectors.linux.linux_accounts import (
    get_linux_password_status,
    get_linux_privileges,
    parse_lock_state,
    sudoers_mentions,
)
from collectors.linux.linux_files import get_linux_home_dir, get_linux_ssh_keys, is_world_writable
from collectors.linux.linux_logins import get_linux_failed_logins, get_linux_login_history
from core.models import HomeDirAudit, SshKeyInfo, Unavailable, UserIdentity


def deny_stat(monkeypatch, denied_path):
    """Make os.stat in the file collectors fail with EACCES for one path."""
    real_stat = os.stat

    def stat(path, *args, **kwargs):
        if os.fspath(path) == os.fspath(denied_path):
            raise PermissionError(13, "Permission denied", os.fspath(path))
        return real_stat(path, *args, **kwargs)

    monkeypatch.setattr("collectors.linux.linux_files.os.stat", stat)


LASTLOG_OUT = (
    "Username         Port     From             Latest\n"
    "alice            pts/0    10.0.0.5         Mon Oct 12 10:00:00 +0000 2026"
)
LAST_OUT = (
    "alice    pts/0        10.0.0.5         Mon Oct 12 10:00   still logged in\n"
    "\n"
    "wtmp begins Thu Oct  1 00:00:01 2026"
)
CHAGE_OUT = (
    "Last password change\t\t\t\t\t: Oct 01, 2026\n"
    "Password expires\t\t\t\t\t: never"
)


def fake_tools(monkeypatch, module, outputs):
    """Patch run_tool in a collector module with canned outputs keyed by argv[0]."""
    calls = []

    def run_tool(cmd, timeout_s=10):
        calls.append(cmd)
        return outputs[cmd[0]]

    monkeypatch.setattr(f"collectors.linux.{module}.run_tool", run_tool)
    return calls


class TestLoginHistory:
    def test_both_sources(self, alice, all_caps, config, monkeypatch):
        calls = fake_tools(monkeypatch, "linux_logins", {"lastlog": LASTLOG_OUT, "last": LAST_OUT})

        hist = get_linux_login_history(alice, all_caps, config)
        assert hist.last_login == "alice pts/0 10.0.0.5 Mon Oct 12 10:00:00 +0000 2026"
        assert hist.last_success.startswith("alice    pts/0")
        assert ["lastlog", "-u", "alice"] in calls
        assert ["last", "-n", "1", "alice"] in calls

    def test_never_logged_in(self, alice, all_caps, config, monkeypatch):
        fake_tools(monkeypatch, "linux_logins", {
            "lastlog": "Username Port From Latest\nalice **Never logged in**",
            "last": "\nwtmp begins Thu Oct  1 00:00:01 2026",
        })
        hist = get_linux_login_history(alice, all_caps, config)
        assert hist.last_login == "alice **Never logged in**"
        assert hist.last_success == ""

    def test_missing_tools(self, alice, no_caps, config):
        hist = get_linux_login_history(alice, no_caps, config)
        assert isinstance(hist.last_login, Unavailable)
        assert isinstance(hist.last_success, Unavailable)

    def test_one_tool_failing_keeps_the_other(self, alice, all_caps, config, monkeypatch):
        fake_tools(monkeypatch, "linux_logins", {
            "lastlog": Unavailable("lastlog: Permission denied"),
            "last": LAST_OUT,
        })
        hist = get_linux_login_history(alice, all_caps, config)
        assert hist.last_login == Unavailable("lastlog: Permission denied")
        assert hist.last_success != ""


class TestFailedLogins:
    def test_capped_and_cleaned(self, alice, all_caps, config, monkeypatch):
        lines = [f"alice    ssh:notty    10.0.0.{i}   Mon Oct 12 10:{i:02d}:00 2026" for i in range(30)]
        out = "\n".join(lines) + "\n\nbtmp begins Thu Oct  1 00:00:01 2026"
        fake_tools(monkeypatch, "linux_logins", {"lastb": out})

        snap = get_linux_failed_logins(alice, all_caps, config)
        assert len(snap.entries) == 20
        assert snap.entries[0] == lines[0]
        assert not any(e.startswith("btmp begins") for e in snap.entries)

    def test_no_failures(self, alice, all_caps, config, monkeypatch):
        fake_tools(monkeypatch, "linux_logins", {"lastb": "\nbtmp begins Thu Oct  1 00:00:01 2026"})
        assert get_linux_failed_logins(alice, all_caps, config).entries == ()

    def test_unreadable_log(self, alice, no_caps, config):
        assert isinstance(get_linux_failed_logins(alice, no_caps, config), Unavailable)


class TestPasswordStatus:
    def test_raw_text_and_lock_state(self, alice, all_caps, config, monkeypatch):
        fake_tools(monkeypatch, "linux_accounts", {
            "passwd": "alice P 2026-10-01 0 99999 7 -1",
            "chage": CHAGE_OUT,
        })
        status = get_linux_password_status(alice, all_caps, config)
        assert status.status == "alice P 2026-10-01 0 99999 7 -1"
        assert status.expiry == CHAGE_OUT
        assert status.locked is False

    def test_permission_denied(self, alice, all_caps, config, monkeypatch):
        denied = Unavailable("passwd: Permission denied.")
        fake_tools(monkeypatch, "linux_accounts", {"passwd": denied, "chage": CHAGE_OUT})
        status = get_linux_password_status(alice, all_caps, config)
        assert status.status == denied
        assert status.locked == denied
        assert status.expiry == CHAGE_OUT

    def test_tools_missing(self, alice, no_caps, config):
        status = get_linux_password_status(alice, no_caps, config)
        assert isinstance(status.status, Unavailable)
        assert isinstance(status.expiry, Unavailable)
        assert isinstance(status.locked, Unavailable)

    @pytest.mark.parametrize("line, expected", [
        ("alice L 2026-10-01 0 99999 7 -1", True),
        ("alice LK 2026-10-01 0 99999 7 -1 (Password locked.)", True),
        ("alice PS 2026-10-01 0 99999 7 -1 (Password set, SHA512 crypt.)", False),
        ("alice NP 2026-10-01 0 99999 7 -1", False),
    ])
    def test_lock_codes(self, line, expected):
        assert parse_lock_state(line) is expected

    def test_unparseable_lock_state(self):
        assert isinstance(parse_lock_state("garbage"), Unavailable)
        assert isinstance(parse_lock_state("alice ?? 2026"), Unavailable)


class TestPrivileges:
    def test_whole_word_match_only(self):
        text = "malice ALL=(ALL) ALL\nalice-admin ALL=(ALL) ALL\n"
        assert sudoers_mentions(text, "alice") is False
        assert sudoers_mentions("alice ALL=(ALL) ALL", "alice") is True
        assert sudoers_mentions("Defaults:alice !requiretty", "alice") is True

    def test_comments_ignored(self):
        assert sudoers_mentions("  # alice ALL=(ALL) ALL\n", "alice") is False

    def test_not_privileged(self, alice, all_caps, config, groups):
        info = get_linux_privileges(alice, all_caps, config)
        assert info.is_privileged_group_member is False
        assert info.has_sudoers_text_match is False
        assert info.groups == ()

    def test_secondary_group_member(self, alice, all_caps, config, groups):
        groups["sudo"].gr_mem.append("alice")
        info = get_linux_privileges(alice, all_caps, config)
        assert info.is_privileged_group_member is True
        assert info.groups == ("sudo",)

    def test_primary_group_counts(self, all_caps, config, groups):
        carol = UserIdentity("carol", 1002, 1002, "/home/carol", "/bin/sh")
        info = get_linux_privileges(carol, all_caps, config)
        assert info.groups == ("admin",)

    def test_sudoers_entry(self, alice, all_caps, config, groups, sudoers_file):
        with open(sudoers_file, "a") as f:
            f.write("alice ALL=(ALL) NOPASSWD: ALL\n")
        assert get_linux_privileges(alice, all_caps, config).has_sudoers_text_match is True

    def test_sudoers_unreadable(self, alice, no_caps, config, groups):
        info = get_linux_privileges(alice, no_caps, config)
        assert isinstance(info.has_sudoers_text_match, Unavailable)
        assert info.is_privileged_group_member is False


class TestSshKeys:
    def test_counts_non_blank_lines(self, alice, alice_home, no_caps, config):
        ssh = alice_home / ".ssh"
        ssh.mkdir()
        keys = ssh / "authorized_keys"
        keys.write_text("ssh-ed25519 AAAA1 a@x\n\n   \nssh-rsa AAAA2 b@y\nssh-ed25519 AAAA3 c@z\n")
        os.utime(keys, (1_700_000_000, 1_700_000_000))

        info = get_linux_ssh_keys(alice, no_caps, config)
        assert info == SshKeyInfo(key_count=3, last_modified="2023-11-14T22:13:20Z")

    def test_missing_file_is_zero(self, alice, no_caps, config):
        assert get_linux_ssh_keys(alice, no_caps, config) == SshKeyInfo(key_count=0, last_modified="")

    def test_unreadable_ssh_dir_is_unavailable(self, alice, alice_home, no_caps, config, monkeypatch):
        ssh = alice_home / ".ssh"
        ssh.mkdir()
        keys = ssh / "authorized_keys"
        keys.write_text("ssh-ed25519 A1 x\nssh-ed25519 A2 y\nssh-rsa A3 z\n")
        deny_stat(monkeypatch, keys)

        result = get_linux_ssh_keys(alice, no_caps, config)
        assert isinstance(result, Unavailable)
        assert "PermissionError" in result.reason

    def test_unreadable_file_is_unavailable(self, alice, alice_home, no_caps, config, monkeypatch):
        ssh = alice_home / ".ssh"
        ssh.mkdir()
        (ssh / "authorized_keys").write_text("ssh-ed25519 A1 x\n")

        def denied_open(path, *args, **kwargs):
            raise PermissionError(13, "Permission denied", path)

        monkeypatch.setattr("collectors.linux.linux_files.open", denied_open, raising=False)
        assert isinstance(get_linux_ssh_keys(alice, no_caps, config), Unavailable)

    def test_keys_path_not_a_file_is_zero(self, alice, alice_home, no_caps, config):
        (alice_home / ".ssh" / "authorized_keys").mkdir(parents=True)
        assert get_linux_ssh_keys(alice, no_caps, config) == SshKeyInfo()


class TestHomeDir:
    @pytest.mark.parametrize("mode, expected", [
        ("0777", True),
        ("0750", False),
        ("0772", True),
        ("755", False),
        ("1777", True),
        ("703", True),
        ("", False),
    ])
    def test_world_writable(self, mode, expected):
        assert is_world_writable(mode) is expected

    def test_existing_home(self, alice, no_caps, config, owners):
        audit = get_linux_home_dir(alice, no_caps, config)
        assert audit == HomeDirAudit(
            exists=True, owner="alice", mode="750", world_writable=False, owner_is_root=False,
        )

    def test_world_writable_home(self, alice, alice_home, no_caps, config, owners):
        alice_home.chmod(0o777)
        audit = get_linux_home_dir(alice, no_caps, config)
        assert audit.mode == "777"
        assert audit.world_writable is True

    def test_root_owned_home(self, alice, no_caps, config, monkeypatch):
        from conftest import make_passwd

        monkeypatch.setattr(
            "collectors.linux.linux_files.pwd.getpwuid", lambda uid: make_passwd("root", 0)
        )
        assert get_linux_home_dir(alice, no_caps, config).owner_is_root is True

    def test_orphaned_owner_uid(self, alice, no_caps, config, monkeypatch):
        def getpwuid(uid):
            raise KeyError(uid)

        monkeypatch.setattr("collectors.linux.linux_files.pwd.getpwuid", getpwuid)
        audit = get_linux_home_dir(alice, no_caps, config)
        assert audit.owner == str(os.stat(alice.home).st_uid)

    def test_missing_home(self, tmp_path, no_caps, config):
        ghost = UserIdentity("ghost", 1010, 1010, str(tmp_path / "nope"), "/bin/sh")
        assert get_linux_home_dir(ghost, no_caps, config) == HomeDirAudit()

    def test_unreadable_home_is_unavailable(self, alice, alice_home, no_caps, config, monkeypatch):
        deny_stat(monkeypatch, alice_home)
        result = get_linux_home_dir(alice, no_caps, config)
        assert isinstance(result, Unavailable)
        assert "PermissionError" in result.reason

    def test_home_is_a_file(self, tmp_path, no_caps, config):
        path = tmp_path / "plainfile"
        path.write_text("")
        odd = UserIdentity("odd", 1011, 1011, str(path), "/bin/sh")
        assert get_linux_home_dir(odd, no_caps, config) == HomeDirAudit()
