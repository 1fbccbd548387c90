"""Filesystem helpers shared by the thumbnail and render stages.

Several workers may write into the same output directory at once, so
directory creation treats "already exists" as success and every file is
written to a temporary sibling and renamed into place.
"""

import logging
import os
import shutil
import uuid
from pathlib import Path

from albumen.errors import OutputError

logger = logging.getLogger(__name__)


def ensure_directory(path: Path):
    """Create `path` and its parents; concurrent creation is fine."""
    path.mkdir(parents=True, exist_ok=True)


def is_up_to_date(destination: Path, source_mtime: float) -> bool:
    """True if `destination` exists and is not older than the source."""
    try:
        return destination.stat().st_mtime >= source_mtime
    except FileNotFoundError:
        return False


def _write_once(destination: Path, write):
    tmp = destination.parent / f".{destination.name}.{uuid.uuid4().hex}.tmp"
    # Created with 0o666 so the process umask decides the final mode.
    os.close(os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o666))
    try:
        write(tmp)
        os.replace(tmp, destination)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def write_atomic(destination: Path, write):
    """Call `write(tmp_path)` and rename the result onto `destination`.

    A failed attempt is retried once after re-creating the parent directory;
    a second failure raises OutputError.
    """
    try:
        ensure_directory(destination.parent)
        _write_once(destination, write)
        return
    except OSError as err:
        logger.debug("Retrying write of %s after: %s", destination, err)

    try:
        ensure_directory(destination.parent)
        _write_once(destination, write)
    except OSError as err:
        raise OutputError(f"cannot write file: {err.strerror or err}", destination) from err


def write_bytes_if_changed(destination: Path, data: bytes) -> bool:
    """Atomically write `data` unless the file already holds exactly that.

    Returns True when the file was (re)written.
    """
    try:
        if destination.read_bytes() == data:
            return False
    except OSError:
        pass
    write_atomic(destination, lambda tmp: tmp.write_bytes(data))
    return True


def copy_file(source: Path, destination: Path, force: bool = False) -> bool:
    """Copy `source` with its metadata unless the copy is already current.

    Returns True when a copy was made.
    """
    try:
        source_mtime = source.stat().st_mtime
    except OSError as err:
        raise OutputError(f"cannot read source: {err.strerror or err}", source) from err
    if not force and is_up_to_date(destination, source_mtime):
        return False
    write_atomic(destination, lambda tmp: shutil.copy2(source, tmp))
    return True


def copy_tree(source: Path, destination: Path) -> int:
    """Mirror the files under `source` into `destination`; returns files copied."""
    copied = 0
    for path in sorted(source.rglob("*")):
        if path.is_file():
            if copy_file(path, destination / path.relative_to(source)):
                copied += 1
    return copied
