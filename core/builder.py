"""
    Build one AuditRecord per account and assemble the AuditReport.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from collectors.linux.linux_accounts import get_linux_password_status, get_linux_privileges
from collectors.linux.linux_files import get_linux_home_dir, get_linux_ssh_keys
from collectors.linux.linux_logins import get_linux_failed_logins, get_linux_login_history
from core.capabilities import Capabilities
from core.config import AuditConfig
from core.models import AuditRecord, AuditReport, Unavailable, UserIdentity
from shared.processes import get_user_processes
from shared.sessions import get_active_sessions
from shared.system import get_system_info, utc_timestamp

log = logging.getLogger(__name__)

Collector = Callable[[UserIdentity, Capabilities, AuditConfig], object]

# AuditRecord field -> collector, in rendering order.
COLLECTORS: tuple[tuple[str, Collector], ...] = (
    ("login_history", get_linux_login_history),
    ("password", get_linux_password_status),
    ("privileges", get_linux_privileges),
    ("ssh_keys", get_linux_ssh_keys),
    ("home_dir", get_linux_home_dir),
    ("sessions", get_active_sessions),
    ("processes", get_user_processes),
    ("failed_logins", get_linux_failed_logins),
)


def run_collector(name: str, collector: Collector, user: UserIdentity,
                  caps: Capabilities, config: AuditConfig):
    """Run one collector; any failure degrades only its own field group."""
    try:
        result = collector(user, caps, config)
    except Exception as e:
        log.warning("Collector %s failed for %s: %s", name, user.username, e)
        return Unavailable(f"{type(e).__name__}: {e}")

    if isinstance(result, Unavailable):
        log.debug("%s unavailable for %s: %s", name, user.username, result.reason)
    return result


def build_record(user: UserIdentity, caps: Capabilities, config: AuditConfig,
                 generated: str, host: str) -> AuditRecord:
    groups = {name: run_collector(name, collector, user, caps, config)
              for name, collector in COLLECTORS}
    return AuditRecord(identity=user, generated=generated, host=host, **groups)


def build_report(users: list[UserIdentity], caps: Capabilities, config: AuditConfig,
                 workers: int | None = None) -> AuditReport:
    """
        Audit every selected user and keep selector order.

        With more than one worker, users are audited concurrently on a bounded
        thread pool; Executor.map yields results in input order, so the report
        is identical to a sequential run.
    """
    generated = utc_timestamp()
    host = get_system_info()["hostname"]
    workers = workers or config.workers

    log.info("Auditing %d account(s) on %s", len(users), host)

    def audit(user: UserIdentity) -> AuditRecord:
        return build_record(user, caps, config, generated, host)

    if workers > 1 and len(users) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            records = tuple(pool.map(audit, users))
    else:
        records = tuple(audit(user) for user in users)

    return AuditReport(generated=generated, host=host, records=records)
