from __future__ import annotations

import json
import shutil
from pathlib import Path
from time import sleep

from handpick.core.result import Err, Ok, Result
from handpick.core.structured import as_obj_list, as_str_dict, get_str, get_table
from handpick.platform.process import ProcessError
from handpick.platform.process import run as run_process
from handpick.services.release.errors import ReleaseError, ReleaseErrorKind
from handpick.services.release.model import MergedPullRequest, PullRequestInfo, UnreleasedCommit
from handpick.services.release.timeouts import (
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_TIMEOUT_SECONDS,
)


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "tls handshake timeout",
        "network is unreachable",
        "http 429",
        "http 500",
        "http 502",
        "http 503",
        "http 504",
    )
    if error.returncode == -1 and "timed out" in text:
        return True
    return any(marker in text for marker in markers)


def _is_not_found(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    return "http 404" in text or "not found" in text or "could not resolve" in text


def run_gh_read(
    *,
    workspace_root: Path,
    cmd: list[str],
    kind: ReleaseErrorKind,
    message: str,
    hint: str | None = None,
    timeout: float = GH_TIMEOUT_SECONDS,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, ReleaseError]:
    """Run an idempotent gh read, retrying transient failures with linear backoff."""
    attempts = max(1, retry_attempts)
    for attempt in range(attempts):
        result = run_process(cmd, cwd=workspace_root, timeout=timeout)
        if isinstance(result, Ok):
            return result

        error = result.error
        if attempt < attempts - 1 and _is_transient_gh_error(error):
            sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
            continue

        return Err(
            ReleaseError(
                kind=kind,
                message=message,
                hint=error.stderr.strip() or hint,
            )
        )

    return Err(ReleaseError(kind=kind, message=message, hint=hint))


def _parse_json(text: str, *, what: str) -> Result[object, ReleaseError]:
    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(ReleaseError(kind="invalid_input", message=f"invalid JSON from {what}: {e}"))
    return Ok(obj)


def ensure_gh_available() -> Result[None, ReleaseError]:
    if shutil.which("gh") is None:
        return Err(
            ReleaseError(
                kind="gh_missing",
                message="GitHub CLI (gh) is not installed",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def ensure_gh_auth(*, workspace_root: Path) -> Result[None, ReleaseError]:
    result = run_process(["gh", "auth", "status"], cwd=workspace_root, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="gh_auth_required",
                message="not authenticated with GitHub CLI",
                hint="Run: gh auth login",
            )
        )
    return Ok(None)


def gh_api_json(*, workspace_root: Path, endpoint: str) -> Result[object, ReleaseError]:
    result = run_gh_read(
        workspace_root=workspace_root,
        cmd=["gh", "api", endpoint],
        kind="invalid_input",
        message=f"gh api failed: {endpoint}",
        hint=endpoint,
    )
    if isinstance(result, Err):
        return result
    return _parse_json(result.value, what=f"gh api {endpoint}")


def detect_repo(*, workspace_root: Path) -> Result[str, ReleaseError]:
    """Return ``owner/name`` of the GitHub repository behind the local checkout."""
    result = run_gh_read(
        workspace_root=workspace_root,
        cmd=["gh", "repo", "view", "--json", "nameWithOwner"],
        kind="repo_unknown",
        message="could not detect repository",
        hint="Run from a git repository with a GitHub remote.",
    )
    if isinstance(result, Err):
        return result

    obj = _parse_json(result.value, what="gh repo view")
    if isinstance(obj, Err):
        return obj

    data = as_str_dict(obj.value)
    name = get_str(data, "nameWithOwner") if data is not None else None
    if name is None:
        return Err(ReleaseError(kind="repo_unknown", message="missing nameWithOwner"))
    return Ok(name)


def branch_exists(*, workspace_root: Path, repo: str, branch: str) -> Result[bool, ReleaseError]:
    """Ok(False) only on a definite 404; other failures are Err."""
    result = run_process(
        ["gh", "api", f"repos/{repo}/branches/{branch}", "--jq", ".name"],
        cwd=workspace_root,
        timeout=GH_TIMEOUT_SECONDS,
    )
    if isinstance(result, Ok):
        return Ok(True)
    if _is_not_found(result.error):
        return Ok(False)
    return Err(
        ReleaseError(
            kind="invalid_input",
            message=f"failed to check branch: {branch}",
            hint=result.error.stderr.strip() or None,
        )
    )


def compare_commits(
    *,
    workspace_root: Path,
    repo: str,
    base: str,
    head: str,
) -> Result[list[UnreleasedCommit], ReleaseError]:
    """Commits on ``head`` that are not on ``base``, oldest first.

    The compare endpoint caps the commit list; a truncated answer is an Err
    so callers fall back to local history instead of missing changes.
    """
    endpoint = f"repos/{repo}/compare/{base}...{head}"
    obj = gh_api_json(workspace_root=workspace_root, endpoint=endpoint)
    if isinstance(obj, Err):
        return obj

    data = as_str_dict(obj.value)
    raw = as_obj_list(data.get("commits")) if data is not None else None
    if data is None or raw is None:
        return Err(
            ReleaseError(kind="invalid_input", message=f"unexpected compare payload: {repo}")
        )

    total = data.get("total_commits")
    if isinstance(total, int) and total > len(raw):
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"compare truncated ({len(raw)} of {total} commits)",
                hint=endpoint,
            )
        )

    out: list[UnreleasedCommit] = []
    for item in raw:
        d = as_str_dict(item)
        if d is None:
            continue

        sha = get_str(d, "sha")
        commit_tbl = get_table(d, "commit")
        if sha is None or commit_tbl is None:
            continue

        parents = as_obj_list(d.get("parents")) or []
        msg = get_str(commit_tbl, "message") or ""
        # Keep only the first line for UI.
        subject = msg.splitlines()[0].strip() if msg else ""

        author = ""
        date = ""
        author_tbl = get_table(commit_tbl, "author")
        if author_tbl is not None:
            author = get_str(author_tbl, "name") or ""
            date = (get_str(author_tbl, "date") or "").split("T", 1)[0]

        out.append(
            UnreleasedCommit(
                sha=sha,
                parent_count=len(parents),
                subject=subject,
                author=author,
                date=date,
            )
        )

    return Ok(out)


def list_merged_prs(
    *,
    workspace_root: Path,
    repo: str,
    base: str,
    limit: int,
) -> Result[list[MergedPullRequest], ReleaseError]:
    """Merged PRs targeting ``base``, most recently merged first."""
    result = run_gh_read(
        workspace_root=workspace_root,
        cmd=[
            "gh",
            "pr",
            "list",
            "--repo",
            repo,
            "--base",
            base,
            "--state",
            "merged",
            "--limit",
            str(limit),
            "--json",
            "number,title,mergedAt,author,mergeCommit",
        ],
        kind="invalid_input",
        message=f"failed to list merged PRs for {base}",
    )
    if isinstance(result, Err):
        return result

    obj = _parse_json(result.value, what="gh pr list")
    if isinstance(obj, Err):
        return obj

    raw = as_obj_list(obj.value)
    if raw is None:
        return Err(ReleaseError(kind="invalid_input", message="unexpected gh pr list payload"))

    out: list[MergedPullRequest] = []
    for item in raw:
        d = as_str_dict(item)
        if d is None:
            continue

        number = d.get("number")
        if not isinstance(number, int):
            continue

        author_tbl = get_table(d, "author")
        merge_tbl = get_table(d, "mergeCommit")
        out.append(
            MergedPullRequest(
                number=number,
                title=get_str(d, "title") or "",
                author=(get_str(author_tbl, "login") if author_tbl else None) or "",
                merged_at=get_str(d, "mergedAt") or "",
                merge_commit_sha=get_str(merge_tbl, "oid") if merge_tbl else None,
            )
        )

    return Ok(out)


def view_pr(
    *, workspace_root: Path, repo: str, number: int
) -> Result[PullRequestInfo, ReleaseError]:
    result = run_gh_read(
        workspace_root=workspace_root,
        cmd=[
            "gh",
            "pr",
            "view",
            str(number),
            "--repo",
            repo,
            "--json",
            "number,title,state,baseRefName,mergedAt,mergeCommit",
        ],
        kind="invalid_input",
        message=f"PR #{number} not found",
    )
    if isinstance(result, Err):
        return result

    obj = _parse_json(result.value, what="gh pr view")
    if isinstance(obj, Err):
        return obj

    data = as_str_dict(obj.value)
    if data is None:
        return Err(ReleaseError(kind="invalid_input", message="unexpected gh pr view payload"))

    merge_tbl = get_table(data, "mergeCommit")
    return Ok(
        PullRequestInfo(
            number=number,
            title=get_str(data, "title") or "",
            state=get_str(data, "state") or "UNKNOWN",
            base=get_str(data, "baseRefName") or "",
            merged_at=get_str(data, "mergedAt"),
            merge_commit_sha=get_str(merge_tbl, "oid") if merge_tbl else None,
        )
    )


def prs_for_commit(*, workspace_root: Path, repo: str, sha: str) -> Result[list[int], ReleaseError]:
    """PR numbers whose history contains ``sha`` (reverse lookup)."""
    obj = gh_api_json(workspace_root=workspace_root, endpoint=f"repos/{repo}/commits/{sha}/pulls")
    if isinstance(obj, Err):
        return obj

    raw = as_obj_list(obj.value)
    if raw is None:
        return Err(ReleaseError(kind="invalid_input", message=f"unexpected pulls payload: {sha}"))

    numbers: list[int] = []
    for item in raw:
        d = as_str_dict(item)
        if d is None:
            continue
        number = d.get("number")
        if isinstance(number, int):
            numbers.append(number)
    return Ok(numbers)
