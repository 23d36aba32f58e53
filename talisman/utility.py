"""Small file-system helpers: de-duplication, copying and symlink-safe reads."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from collections.abc import Iterable

log = logging.getLogger(__name__)


def unique_items(items: Iterable[str]) -> list[str]:
    """Return the items with duplicates removed, keeping first occurrences in order."""
    return list(dict.fromkeys(items))


def copy_file(src: str, dst: str) -> None:
    """Copy a file's contents to dst and give dst the permission bits of src."""
    shutil.copyfile(src, dst)
    shutil.copymode(src, dst)


def copy_dir(src: str, dst: str) -> None:
    """Copy a directory tree; failures on individual entries are reported and skipped."""
    mode = stat.S_IMODE(os.stat(src).st_mode)
    os.makedirs(dst, mode=mode, exist_ok=True)
    with os.scandir(src) as entries:
        children = sorted(entries, key=lambda entry: entry.name)
    for entry in children:
        source = os.path.join(src, entry.name)
        target = os.path.join(dst, entry.name)
        try:
            if entry.is_dir(follow_symlinks=False):
                copy_dir(source, target)
            else:
                copy_file(source, target)
        except OSError as exc:
            print(exc)


def is_file_symlink(path: str) -> bool:
    """Tell whether path is a symbolic link; missing paths are not."""
    return os.path.islink(path)


def safe_read_file(path: str) -> bytes:
    """Read a file, returning no data for symbolic links instead of following them."""
    if is_file_symlink(path):
        log.debug("Symlink was detected! Not following symlink %s", path)
        return b""
    with open(path, "rb") as handle:
        return handle.read()