"""Shared fixtures for the user audit tests."""

from __future__ import annotations

import grp
import pwd

import pytest

from core.capabilities import Capabilities
from core.config import AuditConfig
from core.models import UserIdentity


def make_passwd(name, uid, gid=None, home=None, shell="/bin/bash", gecos=""):
    return pwd.struct_passwd(
        (name, "x", uid, uid if gid is None else gid, gecos, home or f"/home/{name}", shell)
    )


def make_group(name, gid, members=()):
    return grp.struct_group((name, "x", gid, list(members)))


@pytest.fixture
def sudoers_file(tmp_path):
    path = tmp_path / "sudoers"
    path.write_text(
        "# User privilege specification\n"
        "root    ALL=(ALL:ALL) ALL\n"
        "%sudo   ALL=(ALL:ALL) ALL\n"
        "# alice ALL=(ALL) ALL\n"
        "malice  ALL=(ALL) NOPASSWD: /usr/bin/true\n"
    )
    return path


@pytest.fixture
def config(tmp_path, sudoers_file):
    return AuditConfig(
        sudoers_path=str(sudoers_file),
        btmp_path=str(tmp_path / "btmp"),
        command_timeout=2,
    )


@pytest.fixture
def all_caps():
    return Capabilities(
        lastlog=True,
        last=True,
        passwd=True,
        chage=True,
        sudoers=True,
        failed_log=True,
        process_table=True,
        session_table=True,
    )


@pytest.fixture
def no_caps():
    return Capabilities()


@pytest.fixture
def alice_home(tmp_path):
    home = tmp_path / "home" / "alice"
    home.mkdir(parents=True)
    home.chmod(0o750)
    return home


@pytest.fixture
def alice(alice_home):
    return UserIdentity(
        username="alice",
        uid=1001,
        gid=1001,
        home=str(alice_home),
        shell="/bin/bash",
        comment="Alice Example,,,",
    )


@pytest.fixture
def groups(monkeypatch):
    """Group database with sudo (bob) and admin (gid 1002); no wheel."""
    table = {
        "sudo": make_group("sudo", 27, ["bob"]),
        "admin": make_group("admin", 1002, []),
    }

    def getgrnam(name):
        try:
            return table[name]
        except KeyError:
            raise KeyError(f"getgrnam(): name not found: {name!r}") from None

    monkeypatch.setattr("collectors.linux.linux_accounts.grp.getgrnam", getgrnam)
    return table


@pytest.fixture
def owners(monkeypatch):
    """pwd.getpwuid as seen by the home-dir collector: every uid maps to alice."""
    monkeypatch.setattr(
        "collectors.linux.linux_files.pwd.getpwuid",
        lambda uid: make_passwd("alice", 1001),
    )
