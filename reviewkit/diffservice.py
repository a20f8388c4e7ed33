"""Sources of the diff that results are filtered against."""

from __future__ import annotations

import abc
import subprocess
import threading
from collections.abc import Sequence

__all__ = ["DiffService", "DiffString", "DiffCmd", "EmptyDiff"]


class DiffService(abc.ABC):
    """Provides a unified diff and the number of path components to strip."""

    strip: int = 0

    @abc.abstractmethod
    def diff(self) -> bytes:
        """Return the diff text."""


class DiffString(DiffService):
    """A diff held in memory."""

    def __init__(self, diff: str | bytes, strip: int) -> None:
        self._data = diff.encode("utf-8") if isinstance(diff, str) else bytes(diff)
        self.strip = strip

    def diff(self) -> bytes:
        return self._data


class DiffCmd(DiffService):
    """A diff produced by a command; the output is cached after the first run."""

    def __init__(self, cmd: Sequence[str], strip: int) -> None:
        self._cmd = list(cmd)
        self.strip = strip
        self._out: bytes | None = None
        self._lock = threading.Lock()

    def diff(self) -> bytes:
        with self._lock:
            if self._out is not None:
                return self._out
            proc = subprocess.run(self._cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=False)
            # `git diff` exits with 1 when there are differences, so a failing
            # status only counts as an error when nothing was printed.
            if proc.returncode != 0 and not proc.stdout:
                raise subprocess.CalledProcessError(proc.returncode, self._cmd, proc.stdout, proc.stderr)
            self._out = proc.stdout
            return self._out


class EmptyDiff(DiffService):
    """A diff with no content."""

    strip = 0

    def diff(self) -> bytes:
        return b""