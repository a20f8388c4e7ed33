"""Comment services that receive reported diagnostics."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import TextIO

__all__ = [
    "Diagnostic",
    "Comment",
    "CommentService",
    "BulkCommentService",
    "MultiCommentService",
    "RawCommentWriter",
    "UnifiedCommentWriter",
]


@dataclass
class Diagnostic:
    """A single finding of a tool; line and column are 0 when unknown."""

    message: str = ""
    path: str = ""
    line: int = 0
    column: int = 0
    original_output: str = ""


@dataclass
class Comment:
    """A diagnostic to be posted, with the name of the tool that produced it."""

    diagnostic: Diagnostic
    tool_name: str = ""


class CommentService(abc.ABC):
    """Receives comments one at a time."""

    @abc.abstractmethod
    def post(self, comment: Comment) -> None:
        """Post one comment."""


class BulkCommentService(CommentService):
    """A comment service that collects comments and sends them on flush."""

    @abc.abstractmethod
    def flush(self) -> None:
        """Send the collected comments."""


class MultiCommentService(BulkCommentService):
    """Duplicates every comment to all of the given services."""

    def __init__(self, *services: CommentService) -> None:
        self.services = list(services)

    def post(self, comment: Comment) -> None:
        for service in self.services:
            service.post(comment)

    def flush(self) -> None:
        for service in self.services:
            if isinstance(service, BulkCommentService):
                service.flush()


class RawCommentWriter(CommentService):
    """Writes the tool's original output unchanged."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream

    def post(self, comment: Comment) -> None:
        self.stream.write(comment.diagnostic.original_output + "\n")


class UnifiedCommentWriter(CommentService):
    """Writes ``<file>[:<lnum>[:<col>]]: [<tool name>] <message>`` lines."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream

    def post(self, comment: Comment) -> None:
        d = comment.diagnostic
        location = d.path
        if d.line > 0:
            location += f":{d.line}"
            if d.column > 0:
                location += f":{d.column}"
        self.stream.write(f"{location}: [{comment.tool_name}] {d.message}\n")