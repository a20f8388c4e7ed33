# reviewkit

Building blocks for tools that check linter and compiler output against a
change set. The package has no dependencies outside the standard library.

- `reviewkit.unified_diff` parses unified diffs, including git extended
  headers and C-style quoted file names, into `FileDiff`, `Hunk` and `Line`
  objects. Each line carries its position in the diff (`lnum_diff`) and its
  old and new line numbers (`lnum_old`, `lnum_new`).
- `reviewkit.cienv` reads build information (owner, repository, commit SHA,
  branch and pull request number) from the environment variables of common
  CI services, from GitHub Actions event files, and Gerrit change details.
- `reviewkit.diffservice` supplies a diff from a string (`DiffString`), from
  a command such as `git diff` (`DiffCmd`, run once and then cached), or an
  empty one (`EmptyDiff`).
- `reviewkit.comments` writes review comments to a text stream, either as
  the tool's original output (`RawCommentWriter`) or as
  `path:line:col: [tool] message` (`UnifiedCommentWriter`), and passes each
  comment on to several services at once (`MultiCommentService`).

## Installation

```
pip install reviewkit
```

## Parsing a diff

```python
from reviewkit.unified_diff import parse_multi_file, LineType

with open("change.diff") as fh:
    for file_diff in parse_multi_file(fh.read()):
        for hunk in file_diff.hunks:
            for line in hunk.lines:
                if line.type is LineType.ADDED:
                    print(file_diff.path_new, line.lnum_new, line.content)
```

`parse_multi_file` and `parse_file` accept a `str`, `bytes` or an open text
or binary file. `parse_multi_file` returns the files it could read and stops
quietly at the first one it cannot parse. `parse_file` parses a single
file's diff, returns `None` when there is nothing to parse, and raises
`NoNewFileError`, `NoHunksError` or `InvalidHunkRangeError` (all subclasses
of `DiffParseError`, itself a `ValueError`) on malformed input.

`unquote_c_style` undoes git's quoting of a path such as `"a\tb.txt"`; text
that does not start with a double quote is returned unchanged.

## Reading CI build information

```python
from reviewkit.cienv import get_build_info, CIEnvError

try:
    info, is_pull_request = get_build_info()
except CIEnvError as exc:
    print(f"not enough information: {exc}")
else:
    print(info.owner, info.repo, info.sha, info.branch, info.pull_request)
```

Inside GitHub Actions (`GITHUB_ACTIONS` set) the information comes from the
event file named by `GITHUB_EVENT_PATH`; reading that file may also raise
`OSError` or `ValueError`. Elsewhere, set `CI_REPO_OWNER`, `CI_REPO_NAME`,
`CI_COMMIT` and optionally `CI_PULL_REQUEST` and `CI_BRANCH`.

Other helpers:

- `get_gerrit_build_info()` reads `GERRIT_CHANGE_ID`, `GERRIT_REVISION_ID`
  and `GERRIT_BRANCH`, raising `CIEnvError` when one is missing.
- `load_github_event()` and `load_github_event_from_path(path)` return a
  `GitHubEvent`; `build_info_from_github_event_path(path)` returns
  `(BuildInfo, is_pull_request)` from an event file.
- `is_in_github_action()`, `is_in_bitbucket_pipeline()`,
  `is_in_bitbucket_pipe()` and `has_read_only_permission_github_token()`
  report on the running environment.

## Getting a diff

```python
from reviewkit.diffservice import DiffCmd

diff = DiffCmd(["git", "diff"], strip=1)
text = diff.diff()  # bytes; the command runs only once
print(diff.strip)
```

`DiffCmd` treats a non-zero exit status as an error only when the command
printed nothing, since `git diff` exits with 1 when differences exist; the
error raised is `subprocess.CalledProcessError`.

## Writing comments

```python
import sys
from reviewkit.comments import (
    Comment, Diagnostic, MultiCommentService, RawCommentWriter, UnifiedCommentWriter,
)

service = MultiCommentService(UnifiedCommentWriter(sys.stdout), RawCommentWriter(sys.stderr))
service.post(Comment(
    diagnostic=Diagnostic(path="main.py", line=3, column=1, message="unused import",
                          original_output="main.py:3:1: unused import"),
    tool_name="lint",
))
service.flush()
```

`UnifiedCommentWriter` leaves out the line number when it is 0, and the
column when either is 0. `MultiCommentService.flush` calls `flush` on those
of its services that are `BulkCommentService` instances.

## What the package does not do

There is no command-line program. The package does not run linters, parse
their output into diagnostics, or decide which diagnostics fall inside a
diff; it does not post comments to GitHub, GitLab, Bitbucket or Gerrit. It
supplies the diff parsing, build information, diff sources and comment
writers that such a tool is built from.

## Running the tests

```
pip install -e .[test]
pytest
```