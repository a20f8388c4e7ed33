"""Parsing of unified diffs, including git's extended headers."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import IO, Union

__all__ = [
    "LineType",
    "Line",
    "Hunk",
    "FileDiff",
    "DiffParseError",
    "NoNewFileError",
    "NoHunksError",
    "InvalidHunkRangeError",
    "parse_multi_file",
    "parse_file",
    "unquote_c_style",
]

_TOKEN_DIFF = b"diff"
_TOKEN_OLD_FILE = b"---"
_TOKEN_NEW_FILE = b"+++"
_TOKEN_START_HUNK = b"@@"
_TOKEN_UNCHANGED = b" "
_TOKEN_ADDED = b"+"
_TOKEN_DELETED = b"-"
_TOKEN_NO_NEWLINE_AT_EOF = b"\\"

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"

_INT_RE = re.compile(r"[+-]?[0-9]+")

_SIMPLE_ESCAPES = {
    ord("a"): 0x07,
    ord("b"): 0x08,
    ord("t"): 0x09,
    ord("n"): 0x0A,
    ord("v"): 0x0B,
    ord("f"): 0x0C,
    ord("r"): 0x0D,
    ord('"'): ord('"'),
    ord("\\"): ord("\\"),
}
_OCTAL_DIGITS = frozenset(b"01234567")

Source = Union[str, bytes, bytearray, IO[str], IO[bytes]]


class LineType(enum.IntEnum):
    """Kind of a line in a hunk body."""

    UNCHANGED = 0
    ADDED = 1
    DELETED = 2


@dataclass
class Line:
    """One body line of a hunk.

    ``lnum_diff`` is the position of the line counted from the first hunk
    header of the file; ``lnum_old`` is 0 for added lines and ``lnum_new`` is
    0 for deleted lines.
    """

    type: LineType
    content: str
    lnum_diff: int = 0
    lnum_old: int = 0
    lnum_new: int = 0


@dataclass
class Hunk:
    """A change hunk introduced by an ``@@ -l,s +l,s @@`` header."""

    start_line_old: int
    line_length_old: int
    start_line_new: int
    line_length_new: int
    section: str = ""
    lines: list[Line] = field(default_factory=list)


@dataclass
class FileDiff:
    """The unified diff of a single file."""

    path_old: str = ""
    path_new: str = ""
    time_old: str = ""
    time_new: str = ""
    hunks: list[Hunk] = field(default_factory=list)
    extended: list[str] = field(default_factory=list)


class DiffParseError(ValueError):
    """Base class for errors raised while parsing a diff."""


class NoNewFileError(DiffParseError):
    """The ``+++`` line expected after a ``---`` line is missing."""

    def __init__(self) -> None:
        super().__init__("no expected new file line")


class NoHunksError(DiffParseError):
    """No hunk was found where one was expected."""

    def __init__(self) -> None:
        super().__init__("no expected hunks")


class InvalidHunkRangeError(DiffParseError):
    """A hunk header line could not be parsed."""

    def __init__(self, line: str) -> None:
        self.line = line
        super().__init__(f"invalid hunk range: {line}")


class _Reader:
    """Byte cursor with peeking and line reading."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def peek(self, n: int) -> bytes | None:
        chunk = self._data[self._pos:self._pos + n]
        return chunk if len(chunk) == n else None

    def readline(self) -> bytes:
        data = self._data
        if self._pos >= len(data):
            return b""
        end = data.find(b"\n", self._pos)
        if end == -1:
            line = data[self._pos:]
            self._pos = len(data)
            return line
        line = data[self._pos:end]
        self._pos = end + 1
        if line.endswith(b"\r"):
            line = line[:-1]
        return line


def _decode(raw: bytes) -> str:
    return raw.decode(_ENCODING, _ERRORS)


def _to_bytes(source: Source) -> bytes:
    if hasattr(source, "read"):
        source = source.read()
    if isinstance(source, str):
        return source.encode(_ENCODING, _ERRORS)
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    raise TypeError(f"cannot read a diff from {type(source).__name__}")


def parse_multi_file(source: Source) -> list[FileDiff]:
    """Parse a diff that may hold several files.

    Parsing stops quietly at the first file that cannot be parsed; the files
    read before it are returned.
    """
    reader = _Reader(_to_bytes(source))
    files = []
    while True:
        try:
            fd = _parse_file(reader)
        except DiffParseError:
            break
        if fd is None:
            break
        files.append(fd)
    return files


def parse_file(source: Source) -> FileDiff | None:
    """Parse the diff of a single file; None if there is nothing to parse."""
    return _parse_file(_Reader(_to_bytes(source)))


def _parse_file(reader: _Reader) -> FileDiff | None:
    fd = FileDiff(extended=_parse_extended_header(reader))
    head = reader.peek(len(_TOKEN_OLD_FILE))
    if head is None:
        return fd if fd.extended else None
    if head.startswith(_TOKEN_OLD_FILE):
        fd.path_old, fd.time_old = _parse_file_header(reader.readline())
        head = reader.peek(len(_TOKEN_NEW_FILE))
        if head is None or not head.startswith(_TOKEN_NEW_FILE):
            raise NoNewFileError()
        fd.path_new, fd.time_new = _parse_file_header(reader.readline())
    fd.hunks = _parse_hunks(reader)
    return fd


def _parse_extended_header(reader: _Reader) -> list[str]:
    head = reader.peek(len(_TOKEN_DIFF))
    if head is None or not head.startswith(_TOKEN_DIFF):
        return []
    lines = [_decode(reader.readline())]
    while True:
        head = reader.peek(len(_TOKEN_DIFF))
        if head is None or head.startswith(_TOKEN_OLD_FILE) or head.startswith(_TOKEN_DIFF):
            break
        lines.append(_decode(reader.readline()))
    return lines


def _parse_file_header(line: bytes) -> tuple[str, str]:
    """Split a ``---``/``+++`` line into file name and optional timestamp."""
    rest = line[len(_TOKEN_OLD_FILE) + 1:]
    tab = rest.rfind(b"\t")
    if tab == -1:
        return _decode(_unquote_bytes(rest)), ""
    return _decode(_unquote_bytes(rest[:tab])), _decode(rest[tab + 1:])


def _parse_hunks(reader: _Reader) -> list[Hunk]:
    head = reader.peek(len(_TOKEN_OLD_FILE))
    if head is None:
        raise NoHunksError()
    if not head.startswith(_TOKEN_START_HUNK):
        head = reader.peek(len(_TOKEN_DIFF))
        if head is not None and head.startswith(_TOKEN_DIFF):
            # git emits file diffs without hunks, e.g. for a deleted empty file.
            return []
        raise NoHunksError()
    parser = _HunkParser(reader)
    hunks = []
    while (hunk := parser.parse()) is not None:
        hunks.append(hunk)
    return hunks


@dataclass
class _HunkRange:
    lold: int
    sold: int
    lnew: int
    snew: int
    section: str = ""


class _HunkParser:
    def __init__(self, reader: _Reader) -> None:
        self._reader = reader
        self._lnum_diff = 0

    def parse(self) -> Hunk | None:
        reader = self._reader
        head = reader.peek(len(_TOKEN_START_HUNK))
        if head is None or not head.startswith(_TOKEN_START_HUNK):
            return None
        hr = _parse_hunk_range(_decode(reader.readline()))
        hunk = Hunk(hr.lold, hr.sold, hr.lnew, hr.snew, hr.section)
        lold, lnew = hr.lold, hr.lnew
        while not self._done(lold, lnew, hr):
            token = reader.peek(1)
            if token is None:
                break
            if token in (_TOKEN_UNCHANGED, _TOKEN_ADDED, _TOKEN_DELETED):
                self._lnum_diff += 1
                content = _decode(reader.readline()[1:])
                if token == _TOKEN_UNCHANGED:
                    line = Line(LineType.UNCHANGED, content, self._lnum_diff, lold, lnew)
                    lold += 1
                    lnew += 1
                elif token == _TOKEN_ADDED:
                    line = Line(LineType.ADDED, content, self._lnum_diff, lnum_new=lnew)
                    lnew += 1
                else:
                    line = Line(LineType.DELETED, content, self._lnum_diff, lnum_old=lold)
                    lold += 1
                hunk.lines.append(line)
            elif token == _TOKEN_NO_NEWLINE_AT_EOF:
                reader.readline()
            else:
                break
        # The next hunk header takes up a position of its own.
        self._lnum_diff += 1
        return hunk

    def _done(self, lold: int, lnew: int, hr: _HunkRange) -> bool:
        end = lold >= hr.lold + hr.sold and lnew >= hr.lnew + hr.snew
        token = self._reader.peek(1)
        return token is None or (token != _TOKEN_NO_NEWLINE_AT_EOF and end)


def _parse_hunk_range(line: str) -> _HunkRange:
    """Parse ``@@ -lold[,sold] +lnew[,snew] @@[ section]``."""
    parts = line.split(" ", 4)
    if len(parts) < 4 or parts[0] != "@@" or parts[3] != "@@":
        raise InvalidHunkRangeError(line)
    old, new = parts[1], parts[2]
    if not old.startswith("-") or not new.startswith("+"):
        raise InvalidHunkRangeError(line)
    try:
        lold, sold = _parse_ls(old[1:])
        lnew, snew = _parse_ls(new[1:])
    except ValueError:
        raise InvalidHunkRangeError(line) from None
    section = parts[4] if len(parts) == 5 else ""
    return _HunkRange(lold, sold, lnew, snew, section)


def _parse_int(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    return int(text)


def _parse_ls(text: str) -> tuple[int, int]:
    start, sep, length = text.partition(",")
    return _parse_int(start), _parse_int(length) if sep else 1


def unquote_c_style(text: str) -> str:
    """Undo git's C-style quoting of a path; unquoted text is returned as is."""
    return _decode(_unquote_bytes(text.encode(_ENCODING, _ERRORS)))


def _unquote_bytes(raw: bytes) -> bytes:
    if not raw.startswith(b'"'):
        return raw
    if raw.endswith(b'"'):
        raw = raw[:-1]
    if raw.startswith(b'"'):
        raw = raw[1:]

    out = bytearray()
    pos, size = 0, len(raw)
    while pos < size:
        ch = raw[pos]
        pos += 1
        if ch != ord("\\"):
            out.append(ch)
            continue
        if pos >= size:
            break
        ch = raw[pos]
        if ch in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[ch])
            pos += 1
        elif ord("0") <= ch <= ord("9"):
            octal = raw[pos:pos + 3]
            pos += len(octal)
            if len(octal) < 3:
                out += octal
                break
            if all(b in _OCTAL_DIGITS for b in octal) and int(octal, 8) <= 0xFF:
                out.append(int(octal, 8))
            else:
                out += octal
        else:
            out.append(ch)
            pos += 1
    return bytes(out)