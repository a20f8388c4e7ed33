import io

import pytest

from reviewkit.comments import (
    BulkCommentService,
    Comment,
    CommentService,
    Diagnostic,
    MultiCommentService,
    RawCommentWriter,
    UnifiedCommentWriter,
)


class FakeBulk(BulkCommentService):
    def __init__(self):
        self.posted = []
        self.flushed = False

    def post(self, comment):
        self.posted.append(comment)

    def flush(self):
        self.flushed = True


class FailingService(CommentService):
    def post(self, comment):
        raise RuntimeError("post failed")


@pytest.mark.parametrize(
    ("diagnostic", "want"),
    [
        (Diagnostic(path="/path/to/file", message="message"), "/path/to/file: [tool name] message"),
        (Diagnostic(path="/path/to/file", column=14, message="message"), "/path/to/file: [tool name] message"),
        (Diagnostic(path="/path/to/file", line=14, message="message"), "/path/to/file:14: [tool name] message"),
        (
            Diagnostic(path="/path/to/file", line=14, column=7, message="line1\nline2"),
            "/path/to/file:14:7: [tool name] line1\nline2",
        ),
    ],
)
def test_unified_comment_writer(diagnostic, want):
    buf = io.StringIO()
    UnifiedCommentWriter(buf).post(Comment(diagnostic, tool_name="tool name"))
    assert buf.getvalue().strip("\n") == want


def test_raw_comment_writer():
    buf = io.StringIO()
    RawCommentWriter(buf).post(Comment(Diagnostic(original_output="a:1: x")))
    assert buf.getvalue() == "a:1: x\n"


def test_multi_comment_service_post():
    buf1, buf2 = io.StringIO(), io.StringIO()
    w = MultiCommentService(RawCommentWriter(buf1), RawCommentWriter(buf2))
    want = "line1\nline2"
    w.post(Comment(Diagnostic(original_output=want)))
    assert buf1.getvalue().strip("\n") == want
    assert buf2.getvalue().strip("\n") == want
    w.flush()
    assert buf1.getvalue() == want + "\n"


def test_multi_comment_service_flush():
    f1, f2 = FakeBulk(), FakeBulk()
    w = MultiCommentService(f1, f2, RawCommentWriter(io.StringIO()))
    w.flush()
    assert f1.flushed and f2.flushed


def test_multi_comment_service_stops_on_error():
    after = FakeBulk()
    w = MultiCommentService(FailingService(), after)
    with pytest.raises(RuntimeError, match="post failed"):
        w.post(Comment(Diagnostic(message="m")))
    assert after.posted == []


def test_multi_comment_service_copies_services():
    services = [FakeBulk()]
    w = MultiCommentService(*services)
    services.append(FakeBulk())
    w.flush()
    assert services[0].flushed
    assert not services[1].flushed