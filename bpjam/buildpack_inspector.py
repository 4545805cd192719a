"""Reading the buildpack configurations packed inside a buildpackage OCI archive."""

from __future__ import annotations

import gzip
import io
import json
import posixpath
import tarfile
import tomllib
import zlib
from dataclasses import dataclass
from typing import Any, BinaryIO

from bpjam.cargo import Config, decode_config

__all__ = ["InspectError", "BuildpackMetadata", "BuildpackInspector"]


class InspectError(Exception):
    """Raised when a buildpackage archive cannot be inspected."""


@dataclass
class BuildpackMetadata:
    """A buildpack configuration and, where it applies, the buildpackage digest."""

    config: Config
    sha256: str = ""


def _fetch(stream: BinaryIO, filename: str, first_only: bool) -> list[bytes]:
    """Return the contents of archive entries whose names end with filename."""
    found: list[bytes] = []
    try:
        archive = tarfile.open(fileobj=stream, mode="r|")
    except tarfile.ReadError as exc:
        if str(exc) != "empty file":
            raise InspectError(str(exc)) from exc
        archive = None

    if archive is not None:
        with archive:
            try:
                for member in archive:
                    if not member.name.endswith(filename):
                        continue
                    extracted = archive.extractfile(member)
                    found.append(extracted.read() if extracted is not None else b"")
                    if first_only:
                        break
            except tarfile.TarError as exc:
                raise InspectError(str(exc)) from exc

    if not found:
        raise InspectError(f"failed to fetch archived file {filename}")
    return found


def _load_json(data: bytes) -> Any:
    try:
        return json.loads(data)
    except json.JSONDecodeError as exc:
        if exc.pos < len(exc.doc):
            raise InspectError(
                f"invalid character {exc.doc[exc.pos]!r} looking for beginning of value"
            ) from exc
        raise InspectError("unexpected end of JSON input") from exc
    except ValueError as exc:
        raise InspectError(str(exc)) from exc


def _digests(document: Any, key: str) -> list[str]:
    if not isinstance(document, dict):
        raise InspectError(f"malformed document: expected an object with {key!r}")
    entries = document.get(key) or []
    if not isinstance(entries, list):
        raise InspectError(f"malformed document: {key!r} is not a list")
    digests = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise InspectError(f"malformed document: entry of {key!r} is not an object")
        digest = entry.get("digest", "")
        digests.append(digest if isinstance(digest, str) else "")
    return digests


def _blob_path(digest: str) -> str:
    return posixpath.join("blobs", "sha256", digest.removeprefix("sha256:"))


class BuildpackInspector:
    """Lists the buildpacks found in a buildpackage archive."""

    def dependencies(self, path: str) -> list[BuildpackMetadata]:
        """Return the configuration of every buildpack in the archive at path."""
        try:
            handle = open(path, "rb")
        except OSError as exc:
            raise InspectError(str(exc)) from exc

        collection: list[BuildpackMetadata] = []
        with handle:
            index = _load_json(_fetch(handle, "index.json", True)[0])
            manifests = _digests(index, "manifests")
            if not manifests:
                raise InspectError("image index holds no manifests")
            buildpackage_digest = manifests[0]

            handle.seek(0)
            manifest = _load_json(_fetch(handle, _blob_path(buildpackage_digest), True)[0])

            for layer_digest in _digests(manifest, "layers"):
                handle.seek(0)
                blob = _fetch(handle, _blob_path(layer_digest), True)[0]
                try:
                    content = gzip.decompress(blob)
                except (OSError, EOFError, zlib.error) as exc:
                    raise InspectError(f"failed to read layer blob: {exc}") from exc

                # A flattened layer may hold several buildpacks.
                for toml_content in _fetch(io.BytesIO(content), "buildpack.toml", False):
                    try:
                        config = decode_config(io.BytesIO(toml_content))
                    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
                        raise InspectError(f"failed to decode buildpack.toml: {exc}") from exc
                    collection.append(
                        BuildpackMetadata(config, buildpackage_digest if config.order else "")
                    )

        if len(collection) == 1:
            collection[0].sha256 = buildpackage_digest
        return collection