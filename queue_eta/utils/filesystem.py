#!filepath: queue_eta/utils/filesystem.py
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from queue_eta import logs

try:
    import fcntl
except ImportError:  # not available on Windows
    fcntl = None


class FileSystem:
    """
    Filesystem helpers
    - create directories
    - atomic write (temp file -> fsync -> os.replace)
    - advisory lock around writers
    - directory scan
    """

    @staticmethod
    def ensure_dir(path: str | Path) -> Path:
        """
        Create the directory if missing.
        """
        p = Path(path)
        if not p.exists():
            p.mkdir(parents=True, exist_ok=True)
            logs.debug(f"[FS] created dir: {p}")
        return p

    @staticmethod
    def safe_write(path: str | Path, data: bytes) -> None:
        """
        Atomic write. A reader sees either the previous file or the new one,
        never a partial file:
            1) write a unique temp file in the same directory
            2) flush + fsync
            3) os.replace -> target
        On any failure the temp file is removed and the target is untouched.
        """
        path = Path(path)
        FileSystem.ensure_dir(path.parent)

        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            logs.debug(f"[FS] wrote temp file: {tmp_path}")

            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logs.debug(f"[FS] atomic write done: {path}")

    @staticmethod
    @contextmanager
    def locked(path: str | Path) -> Iterator[None]:
        """
        Advisory exclusive lock on ``<path>.lock`` (POSIX flock).
        Serialises writers of the same target across processes.
        """
        path = Path(path)
        if fcntl is None:
            yield
            return

        FileSystem.ensure_dir(path.parent)
        lock_path = path.with_name(path.name + ".lock")
        with open(lock_path, "a+b") as fh:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)

    @staticmethod
    def scan_dir(path: str | Path, pattern: Optional[str] = None) -> List[Path]:
        """
        Regular files directly under ``path`` (optionally glob-filtered),
        sorted by file name.
        """
        p = Path(path)
        if not p.exists():
            return []

        if pattern is None:
            files = [f for f in p.iterdir() if f.is_file()]
        else:
            files = [f for f in p.glob(pattern) if f.is_file()]

        return sorted(files, key=lambda f: f.name)

