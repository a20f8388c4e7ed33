"""Build information gathered from the environment of CI services."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "CIEnvError",
    "BuildInfo",
    "GitHubRepo",
    "GitHubPullRequest",
    "GitHubEvent",
    "get_build_info",
    "get_gerrit_build_info",
    "load_github_event",
    "load_github_event_from_path",
    "build_info_from_github_event_path",
    "is_in_github_action",
    "has_read_only_permission_github_token",
    "is_in_bitbucket_pipeline",
    "is_in_bitbucket_pipe",
]

_SLUG_ENVS = (
    "TRAVIS_REPO_SLUG",
    "DRONE_REPO",  # drone <= 0.4
    "BITBUCKET_REPO_FULL_NAME",
)
_OWNER_ENVS = (
    "CI_REPO_OWNER",
    "CIRCLE_PROJECT_USERNAME",
    "DRONE_REPO_OWNER",
    "CI_PROJECT_NAMESPACE",
)
_REPO_ENVS = (
    "CI_REPO_NAME",
    "CIRCLE_PROJECT_REPONAME",
    "DRONE_REPO_NAME",
    "CI_PROJECT_NAME",
)
_SHA_ENVS = (
    "CI_COMMIT",
    "TRAVIS_PULL_REQUEST_SHA",
    "TRAVIS_COMMIT",
    "CIRCLE_SHA1",
    "DRONE_COMMIT",
    "CI_COMMIT_SHA",
    "BITBUCKET_COMMIT",
)
_BRANCH_ENVS = (
    "CI_BRANCH",
    "TRAVIS_PULL_REQUEST_BRANCH",
    "CIRCLE_BRANCH",
    "DRONE_COMMIT_BRANCH",
    "BITBUCKET_PR_DESTINATION_BRANCH",  # only set for pull request pipelines
    "BITBUCKET_BRANCH",
)
_PULL_REQUEST_ENVS = (
    "CI_PULL_REQUEST",
    "TRAVIS_PULL_REQUEST",
    "CIRCLE_PULL_REQUEST",
    "CIRCLE_PR_NUMBER",  # pull requests from forks
    "DRONE_PULL_REQUEST",
    "CI_MERGE_REQUEST_IID",
    "BITBUCKET_PR_ID",
)

_PR_NUMBER_RE = re.compile(r"[1-9][0-9]*\Z")


class CIEnvError(Exception):
    """Required build information is missing from the environment."""


@dataclass
class BuildInfo:
    """Build information about a GitHub, GitLab, Bitbucket or Gerrit project."""

    owner: str = ""
    repo: str = ""
    sha: str = ""
    pull_request: int = 0  # merge request for GitLab
    branch: str = ""
    gerrit_change_id: str = ""
    gerrit_revision_id: str = ""


def _env(name: str) -> str:
    return os.environ.get(name, "")


def _first_env(names: tuple[str, ...]) -> str:
    return next((value for value in map(_env, names) if value), "")


def _owner_and_repo_from_slug(names: tuple[str, ...]) -> tuple[str, str]:
    owner, sep, repo = _first_env(names).partition("/")
    return (owner, repo) if sep else ("", "")


def _pull_request_number() -> int:
    for name in _PULL_REQUEST_ENVS:
        match = _PR_NUMBER_RE.search(_env(name))
        if match:
            return int(match.group())
    return 0


def get_build_info() -> tuple[BuildInfo, bool]:
    """Return the build information and whether it is a pull request build."""
    if is_in_github_action():
        event_path = _env("GITHUB_EVENT_PATH")
        if not event_path:
            raise CIEnvError("GITHUB_EVENT_PATH not found")
        return build_info_from_github_event_path(event_path)

    owner, repo = _owner_and_repo_from_slug(_SLUG_ENVS)
    owner = owner or _first_env(_OWNER_ENVS)
    if not owner:
        raise CIEnvError("cannot get repo owner from environment variable. Set CI_REPO_OWNER?")
    repo = repo or _first_env(_REPO_ENVS)
    if not repo:
        raise CIEnvError("cannot get repo name from environment variable. Set CI_REPO_NAME?")
    sha = _first_env(_SHA_ENVS)
    if not sha:
        raise CIEnvError("cannot get commit SHA from environment variable. Set CI_COMMIT?")

    pr = _pull_request_number()
    info = BuildInfo(owner=owner, repo=repo, sha=sha, pull_request=pr, branch=_first_env(_BRANCH_ENVS))
    return info, pr != 0


def get_gerrit_build_info() -> BuildInfo:
    """Return the Gerrit change, revision and branch from the environment."""
    change_id = _env("GERRIT_CHANGE_ID")
    if not change_id:
        raise CIEnvError("cannot get change id from environment variable. Set GERRIT_CHANGE_ID ?")
    revision_id = _env("GERRIT_REVISION_ID")
    if not revision_id:
        raise CIEnvError("cannot get revision id from environment variable. Set GERRIT_REVISION_ID ?")
    branch = _env("GERRIT_BRANCH")
    if not branch:
        raise CIEnvError("cannot get branch from environment variable. Set GERRIT_BRANCH ?")
    return BuildInfo(gerrit_change_id=change_id, gerrit_revision_id=revision_id, branch=branch)


def _obj(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _int(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    return int(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else 0


@dataclass
class GitHubRepo:
    """Repository referenced by a pull request head or base."""

    owner_id: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> GitHubRepo:
        return cls(owner_id=_int(_obj(data, "owner"), "id"))


@dataclass
class GitHubPullRequest:
    """The parts of a GitHub pull request payload that are used."""

    number: int = 0
    head_sha: str = ""
    head_ref: str = ""
    head_repo: GitHubRepo = field(default_factory=GitHubRepo)
    base_repo: GitHubRepo = field(default_factory=GitHubRepo)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> GitHubPullRequest:
        head = _obj(data, "head")
        return cls(
            number=_int(data, "number"),
            head_sha=_str(head, "sha"),
            head_ref=_str(head, "ref"),
            head_repo=GitHubRepo.from_json(_obj(head, "repo")),
            base_repo=GitHubRepo.from_json(_obj(_obj(data, "base"), "repo")),
        )


@dataclass
class GitHubEvent:
    """The parts of a GitHub Actions event payload that are used."""

    pull_request: GitHubPullRequest = field(default_factory=GitHubPullRequest)
    repository_owner: str = ""
    repository_name: str = ""
    check_suite_after: str = ""
    check_suite_pull_requests: list[GitHubPullRequest] = field(default_factory=list)
    head_commit_id: str = ""
    action_name: str = ""  # from GITHUB_EVENT_NAME

    @classmethod
    def from_json(cls, data: Any, action_name: str = "") -> GitHubEvent:
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("GitHub event payload is not a JSON object")
        repository = _obj(data, "repository")
        check_suite = _obj(data, "check_suite")
        prs = check_suite.get("pull_requests")
        return cls(
            pull_request=GitHubPullRequest.from_json(_obj(data, "pull_request")),
            repository_owner=_str(_obj(repository, "owner"), "login"),
            repository_name=_str(repository, "name"),
            check_suite_after=_str(check_suite, "after"),
            check_suite_pull_requests=[
                GitHubPullRequest.from_json(pr if isinstance(pr, dict) else {})
                for pr in (prs if isinstance(prs, list) else [])
            ],
            head_commit_id=_str(_obj(data, "head_commit"), "id"),
            action_name=action_name,
        )


def load_github_event() -> GitHubEvent:
    """Load the event of the running GitHub Actions workflow."""
    event_path = _env("GITHUB_EVENT_PATH")
    if not event_path:
        raise CIEnvError("GITHUB_EVENT_PATH not found")
    return load_github_event_from_path(event_path)


def load_github_event_from_path(path: str | os.PathLike[str]) -> GitHubEvent:
    """Load a GitHub event payload from a JSON file."""
    with open(path, encoding="utf-8") as fp:
        data = json.load(fp)
    return GitHubEvent.from_json(data, action_name=_env("GITHUB_EVENT_NAME"))


def build_info_from_github_event_path(path: str | os.PathLike[str]) -> tuple[BuildInfo, bool]:
    """Build information from a GitHub event file and whether it is for a pull request."""
    event = load_github_event_from_path(path)
    pr = event.pull_request
    info = BuildInfo(
        owner=event.repository_owner,
        repo=event.repository_name,
        pull_request=pr.number,
        branch=pr.head_ref,
        sha=pr.head_sha,
    )
    # A re-run check_suite event carries its pull requests elsewhere.
    if info.pull_request == 0 and event.check_suite_pull_requests:
        first = event.check_suite_pull_requests[0]
        info.pull_request = first.number
        info.branch = first.head_ref
        info.sha = first.head_sha
    info.sha = info.sha or event.head_commit_id or _env("GITHUB_SHA")
    return info, info.pull_request != 0


def is_in_github_action() -> bool:
    """Whether the process runs inside GitHub Actions."""
    return _env("GITHUB_ACTIONS") != ""


def has_read_only_permission_github_token() -> bool:
    """Whether this is a GitHub Actions run for a fork's pull request with a read-only token."""
    try:
        event = load_github_event()
    except (CIEnvError, OSError, ValueError):
        return False
    pr = event.pull_request
    is_forked = pr.head_repo.owner_id != pr.base_repo.owner_id
    return is_forked and event.action_name != "pull_request_target"


def is_in_bitbucket_pipeline() -> bool:
    """Whether the process runs inside Bitbucket Pipelines."""
    return _env("BITBUCKET_PIPELINE_UUID") != ""


def is_in_bitbucket_pipe() -> bool:
    """Whether the process runs inside a Bitbucket Pipe."""
    return _env("BITBUCKET_PIPE_STORAGE_DIR") != "" or _env("BITBUCKET_PIPE_SHARED_STORAGE_DIR") != ""