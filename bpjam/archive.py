"""Unpacking image archives into a directory, refusing unsafe entries."""

from __future__ import annotations

import os
import shutil
import tarfile

__all__ = ["UnsafeArchiveError", "extract_tar"]


class UnsafeArchiveError(ValueError):
    """Raised for archive entries that would escape the destination."""


def extract_tar(input_path: str | os.PathLike, destination: str | os.PathLike) -> None:
    """Extract directories, regular files and hard links of a tar archive.

    Hard links are recreated as symbolic links. Other entry types are skipped.
    Parent directories are only created by the archive's own directory entries.
    """
    with open(input_path, "rb") as source:
        try:
            archive = tarfile.open(fileobj=source, mode="r:")
        except tarfile.ReadError as exc:
            if str(exc) == "empty file":
                return
            raise

        with archive:
            for member in archive:
                if ".." in member.name:
                    raise UnsafeArchiveError("entry contains unsafe relative link")
                target = os.path.join(destination, member.name)

                if member.isdir():
                    os.makedirs(target, mode=0o755, exist_ok=True)
                elif member.islnk():
                    link = member.linkname
                    if not os.path.isabs(link):
                        real = os.path.realpath(os.path.join(target, link), strict=True)
                        relative = os.path.relpath(real, target)
                        if os.path.normpath(relative).startswith(".."):
                            raise UnsafeArchiveError("unsafe relative symlink")
                    os.symlink(link, target)
                elif member.isreg():
                    fd = os.open(target, os.O_CREAT | os.O_RDWR, member.mode & 0o7777)
                    with os.fdopen(fd, "r+b") as out:
                        content = archive.extractfile(member)
                        if content is not None:
                            with content:
                                shutil.copyfileobj(content, out)