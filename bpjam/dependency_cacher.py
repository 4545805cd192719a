"""Downloading buildpack dependencies into a local dependencies directory."""

from __future__ import annotations

import os
import shutil
import urllib.request
from dataclasses import replace
from typing import BinaryIO, Sequence, TypeVar
from urllib.parse import urlparse

from bpjam.cargo import (
    ConfigExtensionMetadataDependency,
    ConfigMetadataDependency,
    ValidatedReader,
    ValidationError,
)
from bpjam.scribe import Logger

__all__ = ["CacheError", "Downloader", "DependencyCacher"]

_Dep = TypeVar("_Dep", bound=ConfigMetadataDependency)


class CacheError(Exception):
    """Raised when a dependency cannot be cached."""


class Downloader:
    """Opens dependency URIs over HTTP(S) or from the file system."""

    def drop(self, root: str, uri: str) -> BinaryIO:
        """Open the content at uri; file:// paths are taken relative to root when given."""
        parsed = urlparse(uri)
        if parsed.scheme == "file":
            location = parsed.netloc + parsed.path
            if root:
                location = os.path.join(root, location.lstrip("/"))
            return open(location, "rb")
        return urllib.request.urlopen(uri)


class DependencyCacher:
    """Downloads dependencies, checks their checksums and stores them by hash."""

    def __init__(self, downloader: Downloader, logger: Logger) -> None:
        self.downloader = downloader
        self.logger = logger

    def _caching(self, root: str, deps: Sequence[ConfigMetadataDependency]) -> list[str]:
        self.logger.process("Downloading dependencies...")
        directory = os.path.join(root, "dependencies")
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as exc:
            raise CacheError(f"failed to create dependencies directory: {exc}") from exc

        uris = []
        for dep in deps:
            self.logger.subprocess("%s (%s) [%s]", dep.id, dep.version, ", ".join(dep.stacks))
            try:
                source = self.downloader.drop("", dep.uri)
            except Exception as exc:
                raise CacheError(f"failed to download dependency: {exc}") from exc
            try:
                digest = self._store(directory, dep, source)
            finally:
                close = getattr(source, "close", None)
                if close is not None:
                    try:
                        close()
                    except OSError as exc:
                        raise CacheError(f"failed to close dependency source: {exc}") from exc
            uris.append(f"file:///dependencies/{digest}")

        self.logger.break_line()
        return uris

    def _store(self, directory: str, dep: ConfigMetadataDependency, source: BinaryIO) -> str:
        checksum = dep.checksum
        _, _, digest = checksum.partition(":")
        if not checksum:
            checksum = f"sha256:{dep.sha256}"
            digest = dep.sha256
        if checksum == "sha256:":
            raise CacheError(f"failed to create file for {dep.id}: no sha256 or checksum provided")

        self.logger.action("↳  dependencies/%s", digest)

        try:
            validated = ValidatedReader(source, checksum)
        except ValidationError as exc:
            raise CacheError(f"failed to copy dependency: {exc}") from exc

        try:
            destination = open(os.path.join(directory, digest), "wb")
        except OSError as exc:
            raise CacheError(f"failed to create destination file: {exc}") from exc
        with destination:
            try:
                shutil.copyfileobj(validated, destination)
            except (OSError, ValueError) as exc:
                raise CacheError(f"failed to copy dependency: {exc}") from exc
        return digest

    def cache(
        self, root: str, deps: Sequence[ConfigMetadataDependency]
    ) -> list[ConfigMetadataDependency]:
        """Cache buildpack dependencies under root and return them with local URIs."""
        return self._cache(root, deps)

    def cache_extension(
        self, root: str, deps: Sequence[ConfigExtensionMetadataDependency]
    ) -> list[ConfigExtensionMetadataDependency]:
        """Cache extension dependencies under root and return them with local URIs."""
        return self._cache(root, deps)

    def _cache(self, root: str, deps: Sequence[_Dep]) -> list[_Dep]:
        deps = list(deps or [])
        uris = self._caching(root, deps)
        return [replace(dep, uri=uri) for dep, uri in zip(deps, uris)]