"""Atomic multi-file publish through the Git Data API.

A publish runs six stages in order:

    get_branch_ref -> get_commit -> create_blob (fan-out) -> create_tree
        -> create_commit -> update_ref

The branch ref is written once, by the last stage. A failure in any earlier
stage leaves the branch untouched; blobs, trees and commits created before
the failure stay on the remote as unreachable objects.
"""

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from .client import ApiClient, encode_segment, repo_path
from .config import DEFAULT_BLOB_CONCURRENCY
from .errors import PublishStepError, RemoteApiError
from .models import FileToCommit, PushResult, RepositoryCoordinates

logger = logging.getLogger(__name__)

FILE_MODE = "100644"


class PublishStep(str, Enum):
    """Stages of the commit protocol."""

    GET_BRANCH_REF = "get_branch_ref"
    GET_COMMIT = "get_commit"
    CREATE_BLOB = "create_blob"
    CREATE_TREE = "create_tree"
    CREATE_COMMIT = "create_commit"
    UPDATE_REF = "update_ref"


STEP_LABELS = {
    PublishStep.GET_BRANCH_REF: "get branch ref",
    PublishStep.GET_COMMIT: "get commit",
    PublishStep.CREATE_BLOB: "create blob",
    PublishStep.CREATE_TREE: "create tree",
    PublishStep.CREATE_COMMIT: "create commit",
    PublishStep.UPDATE_REF: "update ref",
}


@dataclass
class CommitState:
    """Identifiers produced while building one commit."""

    head_sha: str | None = None
    base_tree_sha: str | None = None
    blob_shas: dict[str, str] = field(default_factory=dict)  # path -> blob sha
    tree_sha: str | None = None
    commit_sha: str | None = None
    commit_url: str | None = None


def _step_error(step: PublishStep, err: RemoteApiError, path: str | None = None) -> PublishStepError:
    target = f" for {path}" if path else ""
    return PublishStepError(
        step.value,
        f"Failed to {STEP_LABELS[step]}{target} ({err.status_code})",
        status_code=err.status_code,
        remote_message=err.remote_message,
        path=path,
    )


def _field(step: PublishStep, data: Any, *keys: str) -> str:
    """Dig a string identifier out of a response body."""
    value = data
    for key in keys:
        value = value.get(key) if isinstance(value, dict) else None
    if not isinstance(value, str) or not value:
        raise PublishStepError(
            step.value,
            f"Failed to {STEP_LABELS[step]}: response has no {'.'.join(keys)}",
        )
    return value


class CommitPublisher:
    """Publishes a set of files onto an existing branch as exactly one commit."""

    def __init__(self, client: ApiClient, max_workers: int = DEFAULT_BLOB_CONCURRENCY):
        """
        Initialize publisher.

        Args:
            client: Authenticated API client
            max_workers: Upper bound on concurrent blob uploads
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.client = client
        self.max_workers = max_workers

    def publish(
        self,
        coords: RepositoryCoordinates,
        files: Sequence[FileToCommit],
        message: str,
    ) -> PushResult:
        """
        Publish files as one commit on ``coords.branch``.

        The branch must already exist.

        Args:
            coords: Target repository and branch
            files: Files to overlay on the branch's current tree
            message: Commit message

        Returns:
            PushResult for the new commit, after the branch points at it

        Raises:
            PublishStepError: A stage failed; ``step`` names which one
            httpx.TransportError: Network failure, propagated unchanged
        """
        logger.info(
            "Publishing %d file(s) to %s/%s@%s",
            len(files), coords.owner, coords.repo, coords.branch,
        )
        state = CommitState()
        self._resolve_head(coords, state)
        self._resolve_base_tree(coords, state)
        self._create_blobs(coords, files, state)
        self._create_tree(coords, state)
        self._create_commit(coords, message, state)
        self._update_ref(coords, state)

        logger.info("Published commit %s to %s/%s@%s", state.commit_sha, coords.owner, coords.repo, coords.branch)
        return PushResult(commit_sha=state.commit_sha, html_url=state.commit_url)

    # ============ Stages ============

    def _git_path(self, coords: RepositoryCoordinates, *rest: str) -> str:
        return repo_path(coords.owner, coords.repo, "git", *rest)

    def _resolve_head(self, coords: RepositoryCoordinates, state: CommitState) -> None:
        step = PublishStep.GET_BRANCH_REF
        try:
            data = self.client.request(
                "GET", self._git_path(coords, "ref", "heads", encode_segment(coords.branch))
            )
        except RemoteApiError as err:
            raise _step_error(step, err) from err
        state.head_sha = _field(step, data, "object", "sha")
        logger.debug("[%s] head=%s", step.value, state.head_sha)

    def _resolve_base_tree(self, coords: RepositoryCoordinates, state: CommitState) -> None:
        step = PublishStep.GET_COMMIT
        try:
            data = self.client.request(
                "GET", self._git_path(coords, "commits", encode_segment(state.head_sha))
            )
        except RemoteApiError as err:
            raise _step_error(step, err) from err
        state.base_tree_sha = _field(step, data, "tree", "sha")
        logger.debug("[%s] base_tree=%s", step.value, state.base_tree_sha)

    def _create_blob(self, coords: RepositoryCoordinates, file: FileToCommit) -> str:
        step = PublishStep.CREATE_BLOB
        try:
            data = self.client.request(
                "POST",
                self._git_path(coords, "blobs"),
                json={"content": file.encoded_content(), "encoding": "base64"},
            )
        except RemoteApiError as err:
            raise _step_error(step, err, path=file.path) from err
        return _field(step, data, "sha")

    def _create_blobs(
        self,
        coords: RepositoryCoordinates,
        files: Sequence[FileToCommit],
        state: CommitState,
    ) -> None:
        if not files:
            logger.debug("[%s] no files, skipping", PublishStep.CREATE_BLOB.value)
            return

        workers = min(self.max_workers, len(files))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(self._create_blob, coords, f): f for f in files}
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            failed = [fut for fut in done if fut.exception() is not None]
            if failed:
                for fut in pending:
                    fut.cancel()
                logger.error(
                    "[%s] failed for %s, %d upload(s) cancelled",
                    PublishStep.CREATE_BLOB.value, futures[failed[0]].path, len(pending),
                )
                raise failed[0].exception()

        for fut, file in futures.items():
            state.blob_shas[file.path] = fut.result()
        logger.debug("[%s] created %d blob(s)", PublishStep.CREATE_BLOB.value, len(state.blob_shas))

    def _create_tree(self, coords: RepositoryCoordinates, state: CommitState) -> None:
        step = PublishStep.CREATE_TREE
        # A path listed twice keeps its last content
        entries = [
            {"path": path, "mode": FILE_MODE, "type": "blob", "sha": sha}
            for path, sha in state.blob_shas.items()
        ]
        try:
            data = self.client.request(
                "POST",
                self._git_path(coords, "trees"),
                json={"base_tree": state.base_tree_sha, "tree": entries},
            )
        except RemoteApiError as err:
            raise _step_error(step, err) from err
        state.tree_sha = _field(step, data, "sha")
        logger.debug("[%s] tree=%s (%d entries)", step.value, state.tree_sha, len(entries))

    def _create_commit(self, coords: RepositoryCoordinates, message: str, state: CommitState) -> None:
        step = PublishStep.CREATE_COMMIT
        try:
            data = self.client.request(
                "POST",
                self._git_path(coords, "commits"),
                json={"message": message, "tree": state.tree_sha, "parents": [state.head_sha]},
            )
        except RemoteApiError as err:
            raise _step_error(step, err) from err
        state.commit_sha = _field(step, data, "sha")
        state.commit_url = data.get("html_url") or ""
        logger.debug("[%s] commit=%s", step.value, state.commit_sha)

    def _update_ref(self, coords: RepositoryCoordinates, state: CommitState) -> None:
        step = PublishStep.UPDATE_REF
        try:
            # force=False: GitHub rejects the move if the branch no longer
            # descends from head_sha
            self.client.request(
                "PATCH",
                self._git_path(coords, "refs", "heads", encode_segment(coords.branch)),
                json={"sha": state.commit_sha, "force": False},
            )
        except RemoteApiError as err:
            raise _step_error(step, err) from err
        logger.debug("[%s] %s -> %s", step.value, coords.branch, state.commit_sha)


def publish_files(
    client: ApiClient,
    coords: RepositoryCoordinates,
    files: Sequence[FileToCommit],
    message: str,
    max_workers: int = DEFAULT_BLOB_CONCURRENCY,
) -> PushResult:
    """Publish files as one commit. See ``CommitPublisher.publish``."""
    return CommitPublisher(client, max_workers=max_workers).publish(coords, files, message)
