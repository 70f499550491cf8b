# core/errors.py
from __future__ import annotations


class AuditError(Exception):
    """Base class for failures that abort the whole run."""


class UserNotFound(AuditError):
    def __init__(self, username: str):
        super().__init__(f"user '{username}' not found")
        self.username = username


class ConfigError(AuditError):
    pass
