"""Disposable git repositories for exercising repository code."""

from __future__ import annotations

import contextlib
import logging
import os
import random
import shutil
import subprocess

from talisman.gitrepo import GitCommandError

log = logging.getLogger(__name__)

_LOREM_WORDS = (
    "lorem", "ipsum", "dolor", "sit", "amet", "consectetur", "adipiscing",
    "elit", "sed", "do", "eiusmod", "tempor", "incididunt", "ut", "labore",
    "et", "dolore", "magna", "aliqua", "enim", "ad", "minim", "veniam",
    "quis", "nostrud", "exercitation", "ullamco", "laboris", "nisi",
)

_USER_EMAIL = "talisman-test-user@example.com"
_USER_NAME = "Talisman Test User"


def _sentence(min_words: int = 8, max_words: int = 10) -> str:
    words = random.choices(_LOREM_WORDS, k=random.randint(min_words, max_words))
    return " ".join(words).capitalize() + "."


class GitTesting:
    """A git working tree on disk that tests can edit and commit to."""

    def __init__(self, git_root: str) -> None:
        self.root = os.path.abspath(git_root)

    def _path(self, file_path: str) -> str:
        return os.path.join(self.root, file_path)

    def _configure_user(self) -> None:
        self.exec_command("git", "config", "user.email", _USER_EMAIL)
        self.exec_command("git", "config", "user.name", _USER_NAME)
        self.exec_command("git", "config", "commit.gpgsign", "false")

    def git_clone(self, clone_name: str) -> GitTesting:
        """Clone this repository to clone_name and return the clone."""
        clone_root = os.path.abspath(clone_name)
        result = self.exec_command("git", "clone", self.root, clone_root)
        log.debug("Clone result: %s; root %s, clone %s", result, self.root, clone_root)
        clone = GitTesting(clone_root)
        clone._configure_user()
        return clone

    def setup_baseline_files(self, *args: str) -> None:
        """Create files with filler text and commit them all."""
        log.debug("Creating %s in %s", args, self.root)
        for filename in args:
            self.create_file_with_contents(filename, _sentence(), _sentence())
        self.add_and_commit("*", "initial commit")

    def earliest_commit(self) -> str:
        return self.exec_command("git", "rev-list", "--max-parents=0", "HEAD")

    def latest_commit(self) -> str:
        return self.exec_command("git", "rev-parse", "HEAD")

    def _write(self, file_path: str, mode: str, contents: tuple[str, ...]) -> None:
        target = self._path(file_path)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        with open(target, mode, encoding="utf-8", newline="") as handle:
            handle.seek(0, os.SEEK_END)
            handle.write("".join(contents))

    def create_file_with_contents(self, file_path: str, *args: str) -> str:
        """Create (or truncate) a file holding the given pieces of text."""
        self._write(file_path, "w", args)
        return file_path

    def overwrite_file_content(self, file_path: str, *args: str) -> None:
        self._write(file_path, "w", args)

    def append_file_content(self, file_path: str, *args: str) -> None:
        """Append text to an existing file."""
        self._write(file_path, "r+", args)

    def remove_file(self, filename: str) -> None:
        with contextlib.suppress(OSError):
            os.remove(self._path(filename))

    def file_contents(self, file_path: str) -> bytes:
        with open(self._path(file_path), "rb") as handle:
            return handle.read()

    def add_and_commit(self, file_name: str, message: str) -> None:
        self.add(file_name)
        self.commit(file_name, message)

    def add(self, file_name: str) -> None:
        self.exec_command("git", "add", file_name)

    def commit(self, file_name: str, message: str) -> None:
        self.exec_command("git", "commit", "-m", message)

    def get_blob_details(self, file_name: str) -> str:
        """Return the '<hash> <path>' line of rev-list for a file, or ''."""
        completed = subprocess.run(
            ["git", "rev-list", "--objects", "--all"],
            cwd=self.root,
            capture_output=True,
            check=False,
        )
        for entry in completed.stdout.decode("utf-8", errors="replace").split("\n"):
            details = entry.split(" ")
            if len(details) == 2 and details[1] == file_name:
                return entry
        return ""

    def exec_command(self, command_name: str, *args: str) -> str:
        """Run a command in the repository and return its trimmed standard output."""
        try:
            completed = subprocess.run(
                [command_name, *args],
                cwd=self.root,
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise GitCommandError(f"Command: {command_name} {list(args)} failed: {exc}") from exc
        output = completed.stdout.decode("utf-8", errors="replace")
        summary = (
            f"Command: {command_name} {list(args)}\nWorkingDirectory: {self.root}\n"
            f"Output {output}\nExit status: {completed.returncode}"
        )
        if completed.returncode != 0:
            log.debug(summary)
            raise GitCommandError(summary, completed.stdout)
        log.debug(summary)
        return output.strip("\n")

    def remove_hooks(self) -> None:
        """Remove every hook installed in the repository."""
        shutil.rmtree(self._path(os.path.join(".git", "hooks")), ignore_errors=True)


def init(git_root: str) -> GitTesting:
    """Create a fresh repository at git_root with a test identity configured."""
    os.makedirs(git_root, exist_ok=True)
    repo = GitTesting(git_root)
    output = repo.exec_command("git", "init", ".")
    log.debug("Git init result %s", output)
    repo._configure_user()
    return repo