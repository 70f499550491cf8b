import logging
import os
import stat
import sys
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

log = logging.getLogger(__name__)


def _target_mode(out_path: Path) -> int:
    """
    Permission bits the published file should carry: those of the file being
    replaced, or what open(path, "w") would create (0666 minus umask).
    Ownership of a replaced file is not carried over.
    """
    try:
        return stat.S_IMODE(out_path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


@contextmanager
def open_sink(out_path: str | Path | None = None) -> Iterator[IO[str]]:
    """
    Destination stream for the report.

    No path: stdout, flushed on exit but never closed.
    With a path: a temp file next to the destination, renamed over it only
    when the block completes; on any exception the temp file is removed and
    the destination is left untouched.
    """
    if out_path is None:
        try:
            yield sys.stdout
        finally:
            sys.stdout.flush()
        return

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    mode = _target_mode(out_path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{out_path.name}.", dir=out_path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, out_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    log.info("Report written to %s", out_path)


def write_report(text: str, out_path: str | Path | None = None) -> None:
    with open_sink(out_path) as f:
        f.write(text)
