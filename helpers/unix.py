import logging
import shutil
import subprocess

from core.models import Unavailable

log = logging.getLogger(__name__)


def run_cmd(cmd: list[str], timeout_s: int = 10) -> tuple[int, str, str]:
    """
    Run a command and return:
      - return code (rc)
      - stdout (string)
      - stderr (string)

    Raises FileNotFoundError / subprocess.TimeoutExpired like subprocess.run;
    use run_tool() when a failure should degrade instead of propagate.
    """

    p = subprocess.run(
        cmd,
        text=True,              # decode output to str instead of bytes
        capture_output=True,    # capture stdout/stderr
        timeout=timeout_s
    )

    # Normalise None → "" and strip whitespace
    return p.returncode, (p.stdout or "").strip(), (p.stderr or "").strip()


def has_cmd(name: str) -> bool:
    return shutil.which(name) is not None


def run_tool(cmd: list[str], timeout_s: int = 10) -> str | Unavailable:
    """
    Run a read-only tool and return its stdout, or Unavailable(reason) when
    it is missing, times out or exits non-zero (typically permission denied).
    """
    try:
        rc, stdout, stderr = run_cmd(cmd, timeout_s)
    except subprocess.TimeoutExpired:
        return Unavailable(f"{cmd[0]} timed out after {timeout_s}s")
    except OSError as e:
        return Unavailable(f"{type(e).__name__}: {e}")

    if rc != 0:
        log.debug("%s exited %s: %s", " ".join(cmd), rc, stderr)
        return Unavailable(stderr or stdout or f"{cmd[0]} exited with status {rc}")

    return stdout
