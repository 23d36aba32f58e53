"""Collect every blob of a repository's history as additions to scan."""

from __future__ import annotations

import logging
import subprocess
import sys
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

from talisman.gitrepo import Addition, GitCommandError, new_scanner_addition
from talisman.progress_bar import get_progress_bar

log = logging.getLogger(__name__)


class BatchReader(Protocol):
    def start(self) -> None: ...

    def read(self, expr: str) -> bytes: ...

    def shutdown(self) -> None: ...


@dataclass(frozen=True)
class BlobDetails:
    """A blob identified by its hash and the path it is stored under."""

    hash: str
    file_path: str


BlobsInCommits = dict[BlobDetails, list[str]]


def collect_blobs(
    blob_entries: Iterable[str], commit: str, blobs_in_commits: BlobsInCommits
) -> None:
    """Record the commit against every blob listed in 'git ls-tree -r' output lines."""
    for entry in blob_entries:
        if not entry:
            continue
        object_hash, file_path = entry.split(" ", 2)[2].split("\t", 1)
        blob = BlobDetails(hash=object_hash, file_path=file_path)
        blobs_in_commits.setdefault(blob, []).append(commit)


def get_all_commits(ignore_history: bool) -> list[str]:
    """List commit hashes of the whole history, or only the latest one."""
    commit_range = "--max-count=1" if ignore_history else "--all"
    completed = subprocess.run(
        ["git", "log", commit_range, "--pretty=%H"],
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        check=False,
    )
    output = completed.stdout.decode("utf-8", errors="replace")
    if completed.returncode != 0:
        raise GitCommandError(f"git log failed: {output.strip()}", completed.stdout)
    return [commit for commit in output.split("\n") if commit]


def _ls_tree(commit: str) -> list[str]:
    completed = subprocess.run(
        ["git", "ls-tree", "-r", commit],
        capture_output=True,
        check=False,
    )
    return completed.stdout.decode("utf-8", errors="surrogateescape").split("\n")


def get_blobs_in_commits(ignore_history: bool) -> BlobsInCommits:
    """Map every blob of the selected commits to the commits holding it."""
    progress = get_progress_bar(sys.stdout, "Talisman Fetch Blobs")
    commits = get_all_commits(ignore_history)
    progress.start(len(commits))
    blobs_in_commits: BlobsInCommits = {}
    with ThreadPoolExecutor() as executor:
        for commit, entries in zip(commits, executor.map(_ls_tree, commits)):
            progress.increment()
            collect_blobs(entries, commit, blobs_in_commits)
    progress.finish()
    return blobs_in_commits


def get_additions(ignore_history: bool, batch_reader: BatchReader) -> list[Addition]:
    """Return every blob in the history as an addition with its contents."""
    blobs_in_commits = get_blobs_in_commits(ignore_history)
    additions: list[Addition] = []
    batch_reader.start()
    try:
        for blob, commits in blobs_in_commits.items():
            try:
                contents = batch_reader.read(blob.hash)
            except OSError as exc:
                log.error("error reading blob %s: %s", blob.hash, exc)
                contents = b""
            additions.append(new_scanner_addition(blob.file_path, commits, contents))
    finally:
        batch_reader.shutdown()
    return additions