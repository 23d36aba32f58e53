"""Long-running 'git cat-file --batch' readers for file and object contents."""

from __future__ import annotations

import logging
import re
import subprocess
import threading

from talisman.gitrepo import GIT_HEAD_PREFIX, GIT_STAGED_PREFIX

log = logging.getLogger(__name__)

_SIZE_LINE = re.compile(rb"\d+")


class BatchGitObjectReader:
    """Reads objects through one 'git cat-file' process kept open between reads.

    With a prefix, every read expression is a path and is looked up as
    '<prefix>:<path>'; without one it is used as given (an object hash).
    """

    def __init__(self, root: str, prefix: str | None = None) -> None:
        self.root = root
        self._prefix = prefix
        self._process: subprocess.Popen[bytes] | None = None
        self._lock = threading.Lock()

    def __enter__(self) -> BatchGitObjectReader:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def start(self) -> None:
        """Start the git subprocess."""
        if self._process is not None:
            raise RuntimeError("batch reader already started")
        self._process = subprocess.Popen(
            ["git", "cat-file", "--batch=%(objectsize)"],
            cwd=self.root,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
        )

    def shutdown(self) -> None:
        """Stop the git subprocess."""
        process = self._require_process()
        self._process = None
        process.kill()
        process.wait()
        for stream in (process.stdin, process.stdout):
            if stream is not None:
                stream.close()

    def read(self, expr: str) -> bytes:
        """Return the contents of the object named by expr."""
        process = self._require_process()
        query = expr if self._prefix is None else f"{self._prefix}:{expr}"
        assert process.stdin is not None and process.stdout is not None
        with self._lock:
            process.stdin.write(query.encode("utf-8", errors="surrogateescape") + b"\n")
            process.stdin.flush()

            size_line = process.stdout.readline()
            if not size_line.endswith(b"\n"):
                log.error("error reading filesize for %s", query)
                raise OSError(f"unexpected end of output while reading size of {query!r}")
            size_text = size_line[:-1]
            if not _SIZE_LINE.fullmatch(size_text):
                log.error("error parsing filesize %r for %s", size_text, query)
                raise OSError(f"cannot read {query!r}: {size_text.decode(errors='replace')}")
            size = int(size_text)
            log.debug("Git Batch Reader: FilePath: %s, Size:%d", query, size)

            contents = process.stdout.read(size)
            if len(contents) != size:
                log.error("read %d of %d bytes of %s", len(contents), size, query)
                raise OSError(f"expected {size} bytes of {query!r}, got {len(contents)}")

            trailing = process.stdout.read(1)
            if trailing != b"\n":
                raise OSError(f"error discarding trailing newline: trailing byte {trailing!r}")
        return contents

    def _require_process(self) -> subprocess.Popen[bytes]:
        if self._process is None:
            raise RuntimeError("batch reader is not started")
        return self._process


def new_batch_git_head_path_reader(root: str) -> BatchGitObjectReader:
    """Reader of file paths as committed in HEAD."""
    return BatchGitObjectReader(root, GIT_HEAD_PREFIX)


def new_batch_git_staged_path_reader(root: str) -> BatchGitObjectReader:
    """Reader of file paths as staged in the index."""
    return BatchGitObjectReader(root, GIT_STAGED_PREFIX)


def new_batch_git_object_hash_reader(root: str) -> BatchGitObjectReader:
    """Reader of objects by hash."""
    return BatchGitObjectReader(root)