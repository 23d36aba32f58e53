"""Collective SHA-256 checksums over sets of files or git objects."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable, Iterable
from typing import Protocol

from talisman.git_readers import (
    new_batch_git_head_path_reader,
    new_batch_git_object_hash_reader,
    new_batch_git_staged_path_reader,
)
from talisman.utility import safe_read_file

log = logging.getLogger(__name__)


class BatchReader(Protocol):
    def start(self) -> None: ...

    def read(self, expr: str) -> bytes: ...

    def shutdown(self) -> None: ...


class SHA256Hasher(Protocol):
    def collective_sha256_hash(self, paths: Iterable[str]) -> str: ...

    def start(self) -> None: ...

    def shutdown(self) -> None: ...


def _hash_bytes(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def collective_sha256_hash(paths: Iterable[str], file_reader: Callable[[str], bytes]) -> str:
    """Chain the hashes of each path's name and contents into one checksum.

    A path that cannot be read counts as empty.
    """
    combined = ""
    for path in paths:
        previous = _hash_bytes(combined.encode("utf-8"))
        name_hash = _hash_bytes(path.encode("utf-8"))
        try:
            contents = file_reader(path)
        except OSError:
            contents = b""
        combined = previous + _hash_bytes(contents) + name_hash
    return _hash_bytes(combined.encode("utf-8"))


class DefaultSHA256Hasher:
    """Hashes files as they are on disk."""

    def __init__(self) -> None:
        self.started = False

    def collective_sha256_hash(self, paths: Iterable[str]) -> str:
        return collective_sha256_hash(paths, safe_read_file)

    def start(self) -> None:
        self.started = True

    def shutdown(self) -> None:
        self.started = False


class GitBatchSHA256Hasher:
    """Hashes contents read through a batch git reader."""

    def __init__(self, batch_reader: BatchReader) -> None:
        self.batch_reader = batch_reader

    def collective_sha256_hash(self, paths: Iterable[str]) -> str:
        return collective_sha256_hash(paths, self.batch_reader.read)

    def start(self) -> None:
        self.batch_reader.start()

    def shutdown(self) -> None:
        self.batch_reader.shutdown()


_FACTORIES: dict[str, Callable[[str], SHA256Hasher]] = {
    "pre-push": lambda root: GitBatchSHA256Hasher(new_batch_git_head_path_reader(root)),
    "pre-commit": lambda root: GitBatchSHA256Hasher(new_batch_git_staged_path_reader(root)),
    "scan": lambda root: GitBatchSHA256Hasher(new_batch_git_object_hash_reader(root)),
    "pattern": lambda root: DefaultSHA256Hasher(),
    "checksum": lambda root: GitBatchSHA256Hasher(new_batch_git_staged_path_reader(root)),
    "default": lambda root: DefaultSHA256Hasher(),
}

_hashers: dict[str, SHA256Hasher] = {}


def make_hasher(mode: str, root: str) -> SHA256Hasher:
    """Return the started hasher for a mode, creating it on first use."""
    if mode in _hashers:
        return _hashers[mode]
    try:
        factory = _FACTORIES[mode]
    except KeyError:
        raise ValueError(f"unknown hasher mode {mode!r}") from None
    hasher = factory(root)
    try:
        hasher.start()
    except OSError:
        log.error("unable to start hasher for mode %s", mode)
        raise
    _hashers[mode] = hasher
    return hasher


def destroy_hashers() -> None:
    """Shut down and forget every hasher made so far."""
    for hasher in _hashers.values():
        try:
            hasher.shutdown()
        except (OSError, RuntimeError) as exc:
            log.error("error shutting down hasher: %s", exc)
    _hashers.clear()