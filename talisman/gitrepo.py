"""Additions, staged changes and outgoing changes of a git repository."""

from __future__ import annotations

import logging
import os
import posixpath
import re
import subprocess
from dataclasses import dataclass, field
from functools import lru_cache

log = logging.getLogger(__name__)

GIT_STAGED_PREFIX = ""
"""Object-expression prefix that reads a file from the index."""

GIT_HEAD_PREFIX = "HEAD"
"""Object-expression prefix that reads a file from the last commit."""

_DIFF_HEADER_MARKER = "diff --git"
_EMPTY_DIFF_HEADER = "diff --git a/ b/"


class GitCommandError(RuntimeError):
    """A git (or other) command run inside a repository failed."""

    def __init__(self, message: str, output: bytes = b"") -> None:
        super().__init__(message)
        self.output = output


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="surrogateescape")


def _encode(text: str) -> bytes:
    return text.encode("utf-8", errors="surrogateescape")


def _bad_pattern(pattern: str) -> ValueError:
    return ValueError(f"malformed glob pattern {pattern!r}")


def _class_char(pattern: str, pos: int) -> tuple[str, int]:
    if pos >= len(pattern) or pattern[pos] in "-]":
        raise _bad_pattern(pattern)
    if pattern[pos] == "\\":
        pos += 1
        if pos >= len(pattern):
            raise _bad_pattern(pattern)
    return pattern[pos], pos + 1


def _translate_class(pattern: str, pos: int) -> tuple[str, int]:
    negate = pos < len(pattern) and pattern[pos] == "^"
    if negate:
        pos += 1
    ranges: list[tuple[str, str]] = []
    while True:
        if pos < len(pattern) and pattern[pos] == "]" and ranges:
            pos += 1
            break
        low, pos = _class_char(pattern, pos)
        high = low
        if pos < len(pattern) and pattern[pos] == "-":
            high, pos = _class_char(pattern, pos + 1)
        ranges.append((low, high))
    body = "".join(
        f"{re.escape(low)}-{re.escape(high)}" for low, high in ranges if low <= high
    )
    if not body:
        return ("(?s:.)" if negate else "(?!)"), pos
    return f"[{'^' if negate else ''}{body}]", pos


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    pos = 0
    while pos < len(pattern):
        char = pattern[pos]
        pos += 1
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "\\":
            if pos >= len(pattern):
                raise _bad_pattern(pattern)
            parts.append(re.escape(pattern[pos]))
            pos += 1
        elif char == "[":
            translated, pos = _translate_class(pattern, pos)
            parts.append(translated)
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


def _path_match(pattern: str, name: str) -> bool:
    """Shell-style match where wildcards never cross a '/'; bad patterns match nothing."""
    try:
        return _compile_glob(pattern).fullmatch(name) is not None
    except ValueError:
        return False


@dataclass
class Addition:
    """The end state of an added or modified file."""

    path: str
    name: str
    commits: list[str] = field(default_factory=list)
    data: bytes = b""

    def matches(self, pattern: str) -> bool:
        """Tell whether this addition matches an ignore pattern.

        A pattern ending in '/' matches everything below that directory; a
        pattern holding '/' elsewhere is matched against the whole path; any
        other pattern is matched against the base name.
        """
        if not pattern:
            raise ValueError("empty pattern")
        if pattern.endswith("/"):
            result = self.path.startswith(pattern)
        elif "/" in pattern:
            result = _path_match(pattern, self.path)
        else:
            result = _path_match(pattern, self.name)
        log.debug("Checking addition for match: pattern=%s path=%s match=%s", pattern, self.path, result)
        return result


def new_addition(file_path: str, content: bytes) -> Addition:
    """Create an addition for a file with the given contents."""
    return Addition(path=file_path, name=posixpath.basename(file_path), data=content)


def new_scanner_addition(file_path: str, commits: list[str], content: bytes) -> Addition:
    """Create an addition that also records the commits holding the file."""
    return Addition(
        path=file_path,
        name=posixpath.basename(file_path),
        commits=list(commits),
        data=content,
    )


def match_git_diff_line(git_diff_string: str) -> tuple[bool, str]:
    """Recognise a 'diff --git a/X b/X' header and return the file name."""
    if _DIFF_HEADER_MARKER not in git_diff_string:
        return False, ""
    length = (len(git_diff_string) - len(_EMPTY_DIFF_HEADER)) // 2
    if length < 0:
        return False, ""
    header = re.fullmatch(rf"diff --git a/(.{{{length}}}) b/(.{{{length}}})", git_diff_string)
    if header and header.group(1) == header.group(2):
        return True, header.group(1)
    return False, ""


def _extract_additions(diff_content: str) -> bytes | None:
    """Collect the added lines of one file's diff, or None if there are none."""
    added = [
        line[1:] + "\n"
        for line in diff_content.split("\n")
        if line.startswith("+") and not line.startswith(("+++", "---"))
    ]
    if not added:
        return None
    return _encode("".join(added))


@dataclass(frozen=True)
class GitRepo:
    """A git repository rooted at an absolute path."""

    root: str

    def get_diff_for_staged_files(self) -> list[Addition]:
        """Return the added lines of every staged file, one addition per file."""
        staged = self._execute("git", "diff", "--staged", "--src-prefix=a/", "--dst-prefix=b/")
        lines = _decode(staged).strip().split("\n")
        result: list[Addition] = []
        current_file: str | None = None
        buffer: list[str] = []

        def flush() -> None:
            if current_file is None:
                return
            changes = _extract_additions("".join(buffer))
            if changes is not None:
                result.append(new_addition(current_file, changes))

        for line in lines:
            is_header, file_name = match_git_diff_line(line)
            if is_header:
                flush()
                current_file = file_name
                buffer.clear()
            elif current_file is not None:
                buffer.append(line + "\n")
        flush()

        log.debug("Generating staged additions: %s", result)
        return result

    def staged_additions(self) -> list[Addition]:
        """Return the files staged for commit with their staged contents."""
        result = [
            new_addition(file, self._read_repo_file(file, GIT_STAGED_PREFIX))
            for file in self._staged_files()
        ]
        log.info("Generating staged additions: %s", result)
        return result

    def all_additions(self) -> list[Addition]:
        """Return outgoing additions and modifications against the remote default branch."""
        result = _decode(self._execute("git", "rev-parse", "--abbrev-ref", "origin/HEAD"))
        log.debug("Result of getting default branch %s", result)
        old_commit = result.replace("\n", "")
        parts = old_commit.split("/")
        if len(parts) < 2:
            raise GitCommandError(f"unexpected default branch reference {old_commit!r}")
        return self.additions_within_range(old_commit, parts[1])

    def additions_within_range(self, old_commit: str, new_commit: str) -> list[Addition]:
        """Return non-deleted files changed between two commits, read from HEAD."""
        result = [
            new_addition(file, self._read_repo_file(file, GIT_HEAD_PREFIX))
            for file in self._outgoing_non_deleted_files(old_commit, new_commit)
        ]
        log.info(
            "Generating all additions in range %s..%s: %s", old_commit, new_commit, result
        )
        return result

    def check_if_file_exists(self, file_name: str) -> bool:
        """Tell whether a file exists on disk inside the repository."""
        try:
            os.stat(os.path.join(self.root, file_name))
        except FileNotFoundError:
            return False
        except OSError:
            return True
        return True

    def tracked_files_as_additions(self) -> list[Addition]:
        """Return every tracked file of the current branch as an empty addition."""
        return [new_addition(path, b"") for path in self._tracked_file_paths()]

    def _tracked_file_paths(self) -> list[str]:
        branch = self._current_branch()
        if not branch:
            return []
        output = self._execute("git", "ls-tree", branch, "--name-only", "-r")
        return _decode(output).splitlines()

    def _current_branch(self) -> str:
        if not self._execute("git", "branch"):
            return ""
        return _decode(self._execute("git", "rev-parse", "--abbrev-ref", "HEAD")).strip()

    def _staged_files(self) -> list[str]:
        changes = _decode(
            self._execute("git", "diff", "--cached", "--name-status", "--diff-filter=ACM")
        )
        return [line.split("\t")[1] for line in changes.split("\n") if line]

    def _outgoing_non_deleted_files(self, old_commit: str, new_commit: str) -> list[str]:
        changes = _decode(
            self._execute(
                "git", "diff", f"{old_commit}..{new_commit}", "--name-only", "--diff-filter=ACM"
            )
        )
        return [line for line in changes.split("\n") if line]

    def _read_repo_file(self, file_name: str, prefix: str) -> bytes:
        log.debug("reading file %s", os.path.join(self.root, file_name))
        output, _ = self._raw_execute("git", "cat-file", "-p", f"{prefix}:{file_name}")
        return output

    def _raw_execute(self, *command: str) -> tuple[bytes, str | None]:
        try:
            completed = subprocess.run(
                command,
                cwd=self.root,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as exc:
            return b"", str(exc)
        if completed.returncode != 0:
            return completed.stdout, f"exit status {completed.returncode}"
        return completed.stdout, None

    def _execute(self, *command: str) -> bytes:
        log.debug("Building repo command: %s", command)
        output, error = self._raw_execute(*command)
        if error is not None:
            message = f"{' '.join(command)} failed in {self.root}: {error}"
            log.error("Git command execution failed: %s output=%r", message, output)
            raise GitCommandError(message, output)
        log.debug("Git command executed successfully: %s", " ".join(command))
        return output


def repo_located_at(path: str) -> GitRepo:
    """Return a repository rooted at the absolute form of the given path."""
    return GitRepo(os.path.abspath(path))