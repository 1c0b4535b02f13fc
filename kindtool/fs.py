"""Host filesystem helpers that produce container-mountable paths."""

from __future__ import annotations

import os
import shutil
import stat
import sys
import tempfile

__all__ = ["temp_dir", "copy", "copy_file"]


def temp_dir(dir: str | None = None, prefix: str = "") -> str:
    """Create a new temporary directory and return its path.

    On macOS the default temporary location lives under /var, which cannot
    be mounted into containers; the equivalent /private/var path is returned.
    """
    name = tempfile.mkdtemp(prefix=prefix or None, dir=dir or None)
    if sys.platform == "darwin" and name.startswith("/var/"):
        name = os.path.join("/private", name.lstrip("/"))
    return name


def copy(src: str, dst: str) -> None:
    """Recursively copy src to dst, keeping file modes.

    Parent directories of dst are created as needed and symlinks are
    dereferenced, as ``cp -r src dst`` would.
    """
    info = os.lstat(src)
    os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
    _copy(src, dst, info)


def _copy(src: str, dst: str, info: os.stat_result) -> None:
    if stat.S_ISLNK(info.st_mode):
        _copy_symlink(src, dst)
    elif stat.S_ISDIR(info.st_mode):
        _copy_dir(src, dst, info)
    else:
        _copy_file(src, dst, info)


def copy_file(src: str, dst: str) -> None:
    """Copy the file src to dst, creating dst with src's mode."""
    _copy_file(src, dst, os.stat(src))


def _copy_file(src: str, dst: str, info: os.stat_result) -> None:
    flags = os.O_RDWR | os.O_CREAT | os.O_TRUNC | getattr(os, "O_BINARY", 0)
    with open(src, "rb") as reader:
        fd = os.open(dst, flags, stat.S_IMODE(info.st_mode))
        with os.fdopen(fd, "wb") as writer:
            shutil.copyfileobj(reader, writer)
            writer.flush()
            os.fsync(writer.fileno())


def _copy_symlink(src: str, dst: str) -> None:
    real_src = os.path.realpath(src, strict=True)
    _copy(real_src, dst, os.lstat(real_src))


def _copy_dir(src: str, dst: str, info: os.stat_result) -> None:
    os.makedirs(dst, mode=stat.S_IMODE(info.st_mode), exist_ok=True)
    for name in sorted(os.listdir(src)):
        entry_src = os.path.join(src, name)
        entry_dst = os.path.join(dst, name)
        _copy(entry_src, entry_dst, os.lstat(entry_src))