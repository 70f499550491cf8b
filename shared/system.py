"""
    Shared utility functions for system information retrieval.
"""
import platform
import socket
from datetime import datetime, timezone

ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def get_system_info():
    """Retrieve the host facts used in the report header."""
    system_info = {
        "hostname": socket.gethostname(),
        "os": platform.system(),
        "os_version": platform.version(),
    }
    return system_info


def is_linux() -> bool:
    """
        The account collectors rely on Linux tools and file locations
        (lastlog, chage, /etc/sudoers, btmp).
    """
    return platform.system() == "Linux"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime(ISO_FORMAT)
