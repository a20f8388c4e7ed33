import subprocess
import sys
import threading

import pytest

from reviewkit.diffservice import DiffCmd, DiffString, EmptyDiff

DIFF_TEXT = """diff --git a/golint.old.go b/golint.new.go
index 34cacb9..a727dd3 100644
--- a/golint.old.go
+++ b/golint.new.go
@@ -2,6 +2,12 @@ package test
 
 var V int
 
+var NewError1 int
+
 // invalid func comment
 func F() {
 }
+
+// invalid func comment2
+func F2() {
+}
"""


def test_diff_string():
    d = DiffString(DIFF_TEXT, 1)
    assert d.diff().decode("utf-8") == DIFF_TEXT
    assert d.strip == 1


def test_diff_string_bytes():
    assert DiffString(b"abc", 0).diff() == b"abc"


def test_diff_cmd_runs_once(tmp_path):
    counter = tmp_path / "count"
    script = "import sys; open(sys.argv[1], 'a').write('x'); sys.stdout.write('out')"
    d = DiffCmd([sys.executable, "-c", script, str(counter)], 1)
    results = []

    def worker():
        results.append(d.diff())

    threads = [threading.Thread(target=worker) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == [b"out", b"out", b"out"]
    assert counter.read_text() == "x"
    assert d.strip == 1


def test_diff_cmd_nonzero_exit_with_output():
    script = "import sys; sys.stdout.write('diff'); sys.exit(1)"
    d = DiffCmd([sys.executable, "-c", script], 0)
    assert d.diff() == b"diff"


def test_diff_cmd_nonzero_exit_without_output():
    d = DiffCmd([sys.executable, "-c", "import sys; sys.exit(2)"], 0)
    with pytest.raises(subprocess.CalledProcessError) as excinfo:
        d.diff()
    assert excinfo.value.returncode == 2


def test_empty_diff():
    d = EmptyDiff()
    assert d.diff() == b""
    assert d.strip == 0