"""Buildpack configuration model, TOML coding and checksum-validated reading."""

from __future__ import annotations

import hashlib
import tomllib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO, TextIO

import tomli_w

__all__ = [
    "ValidationError",
    "ConfigStack",
    "ConfigOrderGroup",
    "ConfigOrder",
    "ConfigMetadataDependency",
    "ConfigExtensionMetadataDependency",
    "ConfigMetadataDependencyConstraint",
    "ConfigMetadata",
    "ConfigBuildpack",
    "Config",
    "ValidatedReader",
    "decode_config",
    "encode_config",
    "parse_config",
]


class ValidationError(ValueError):
    """Raised when streamed content does not match its checksum."""


def _prune(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v not in (None, "", [], {}, 0, False)}


def _supports_stack(stacks: list[str], stack: str) -> bool:
    return any(s == stack or s == "*" for s in stacks)


@dataclass
class ConfigStack:
    id: str = ""
    mixins: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigStack:
        return cls(id=data.get("id", ""), mixins=list(data.get("mixins", [])))

    def to_dict(self) -> dict[str, Any]:
        return _prune({"id": self.id, "mixins": self.mixins})


@dataclass
class ConfigOrderGroup:
    id: str = ""
    version: str = ""
    optional: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigOrderGroup:
        return cls(data.get("id", ""), data.get("version", ""), bool(data.get("optional", False)))

    def to_dict(self) -> dict[str, Any]:
        return _prune({"id": self.id, "version": self.version, "optional": self.optional})


@dataclass
class ConfigOrder:
    group: list[ConfigOrderGroup] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigOrder:
        return cls([ConfigOrderGroup.from_dict(g) for g in data.get("group", [])])

    def to_dict(self) -> dict[str, Any]:
        return {"group": [g.to_dict() for g in self.group]}


_DEP_KEYS = {
    "arch": "arch", "checksum": "checksum", "cpe": "cpe", "cpes": "cpes",
    "deprecation_date": "deprecation_date", "id": "id", "licenses": "licenses",
    "name": "name", "os": "os", "purl": "purl", "sha256": "sha256", "source": "source",
    "source-checksum": "source_checksum", "source_sha256": "source_sha256",
    "stacks": "stacks", "strip-components": "strip_components", "uri": "uri",
    "version": "version",
}


@dataclass
class ConfigMetadataDependency:
    """A dependency entry under [[metadata.dependencies]]."""

    arch: str = ""
    checksum: str = ""
    cpe: str = ""
    cpes: list[str] = field(default_factory=list)
    deprecation_date: datetime | None = None
    id: str = ""
    licenses: list[Any] = field(default_factory=list)
    name: str = ""
    os: str = ""
    purl: str = ""
    sha256: str = ""
    source: str = ""
    source_checksum: str = ""
    source_sha256: str = ""
    stacks: list[str] = field(default_factory=list)
    strip_components: int = 0
    uri: str = ""
    version: str = ""

    def has_stack(self, stack: str) -> bool:
        """Report whether the dependency supports the stack."""
        return _supports_stack(self.stacks, stack)

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        kwargs = {attr: data[key] for key, attr in _DEP_KEYS.items() if key in data}
        for key in ("cpes", "licenses", "stacks"):
            if key in kwargs:
                kwargs[key] = list(kwargs[key])
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return _prune({key: getattr(self, attr) for key, attr in _DEP_KEYS.items()})


@dataclass
class ConfigExtensionMetadataDependency(ConfigMetadataDependency):
    """A dependency entry of an extension configuration."""

    def has_stack(self, stack: str) -> bool:
        """Report whether the extension dependency supports the stack."""
        return _supports_stack(self.stacks, stack)


@dataclass
class ConfigMetadataDependencyConstraint:
    constraint: str = ""
    id: str = ""
    patches: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigMetadataDependencyConstraint:
        return cls(data.get("constraint", ""), data.get("id", ""), int(data.get("patches", 0)))

    def to_dict(self) -> dict[str, Any]:
        return _prune({"constraint": self.constraint, "id": self.id, "patches": self.patches})


@dataclass
class ConfigMetadata:
    include_files: list[str] = field(default_factory=list)
    pre_package: str = ""
    dependencies: list[ConfigMetadataDependency] = field(default_factory=list)
    dependency_constraints: list[ConfigMetadataDependencyConstraint] = field(default_factory=list)
    default_versions: dict[str, str] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigMetadata:
        known = {"include-files", "pre-package", "dependencies",
                 "dependency-constraints", "default-versions"}
        return cls(
            include_files=list(data.get("include-files", [])),
            pre_package=data.get("pre-package", ""),
            dependencies=[ConfigMetadataDependency.from_dict(d) for d in data.get("dependencies", [])],
            dependency_constraints=[
                ConfigMetadataDependencyConstraint.from_dict(c)
                for c in data.get("dependency-constraints", [])
            ],
            default_versions=dict(data.get("default-versions", {})),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        data = _prune({
            "include-files": self.include_files,
            "pre-package": self.pre_package,
            "default-versions": self.default_versions,
            "dependencies": [d.to_dict() for d in self.dependencies],
            "dependency-constraints": [c.to_dict() for c in self.dependency_constraints],
        })
        data.update(self.extra)
        return data


@dataclass
class ConfigBuildpack:
    id: str = ""
    name: str = ""
    version: str = ""
    homepage: str = ""
    description: str = ""
    keywords: list[str] = field(default_factory=list)
    licenses: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigBuildpack:
        return cls(
            id=data.get("id", ""), name=data.get("name", ""), version=data.get("version", ""),
            homepage=data.get("homepage", ""), description=data.get("description", ""),
            keywords=list(data.get("keywords", [])),
            licenses=[dict(lic) for lic in data.get("licenses", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return _prune({
            "id": self.id, "name": self.name, "version": self.version,
            "homepage": self.homepage, "description": self.description,
            "keywords": self.keywords, "licenses": self.licenses,
        })


@dataclass
class Config:
    """The contents of a buildpack.toml file."""

    api: str = ""
    buildpack: ConfigBuildpack = field(default_factory=ConfigBuildpack)
    metadata: ConfigMetadata = field(default_factory=ConfigMetadata)
    order: list[ConfigOrder] = field(default_factory=list)
    stacks: list[ConfigStack] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        return cls(
            api=data.get("api", ""),
            buildpack=ConfigBuildpack.from_dict(data.get("buildpack", {})),
            metadata=ConfigMetadata.from_dict(data.get("metadata", {})),
            order=[ConfigOrder.from_dict(o) for o in data.get("order", [])],
            stacks=[ConfigStack.from_dict(s) for s in data.get("stacks", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return _prune({
            "api": self.api,
            "buildpack": self.buildpack.to_dict(),
            "metadata": self.metadata.to_dict(),
            "order": [o.to_dict() for o in self.order],
            "stacks": [s.to_dict() for s in self.stacks],
        })


def decode_config(stream: BinaryIO | TextIO) -> Config:
    """Read a configuration from a text or binary stream; raises tomllib.TOMLDecodeError."""
    content = stream.read()
    if isinstance(content, bytes):
        content = content.decode("utf-8")
    return Config.from_dict(tomllib.loads(content))


def encode_config(stream: TextIO, config: Config) -> None:
    """Write a configuration as TOML to a text stream."""
    stream.write(tomli_w.dumps(config.to_dict()))


def parse_config(path: str) -> Config:
    """Read a configuration from a file."""
    with open(path, "rb") as handle:
        return decode_config(handle)


class ValidatedReader:
    """Reads a stream and checks its digest against "algorithm:hex" once exhausted."""

    def __init__(self, source: BinaryIO, checksum: str) -> None:
        algorithm, sep, expected = checksum.partition(":")
        if not sep:
            algorithm, expected = "sha256", checksum
        try:
            self._hash = hashlib.new(algorithm)
        except ValueError as exc:
            raise ValidationError(f"validation error: unsupported algorithm {algorithm!r}") from exc
        self._source = source
        self._expected = expected.lower()
        self._checked = False

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes, raising ValidationError at the end on a mismatch."""
        chunk = self._source.read(size)
        if chunk:
            self._hash.update(chunk)
        if (not chunk or size is None or size < 0) and not self._checked:
            self._checked = True
            if self._hash.hexdigest() != self._expected:
                raise ValidationError("validation error: checksum does not match")
        return chunk