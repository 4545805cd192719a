"""Dependency records and selection of the newest versions within a constraint."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from bpjam.cargo import (
    Config,
    ConfigMetadataDependency,
    ConfigMetadataDependencyConstraint,
)
from bpjam.versions import parse_constraint, parse_version

__all__ = [
    "Stack",
    "Distro",
    "Dependency",
    "get_dependencies_within_constraint",
    "get_cargo_dependencies_within_constraint",
    "find_dependency_name",
]

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


@dataclass
class Stack:
    id: str = ""


@dataclass
class Distro:
    name: str = ""
    version: str = ""


@dataclass
class Dependency:
    """A single dependency entry as published by a dependency server."""

    arch: str = ""
    checksum: str = ""
    cpe: str = ""
    cpes: list[str] = field(default_factory=list)
    created_at: str = ""
    deprecation_date: str = ""
    distros: list[Distro] = field(default_factory=list)
    id: str = ""
    licenses: list[str] = field(default_factory=list)
    modified_at: str = ""
    os: str = ""
    purl: str = ""
    sha256: str = ""
    source: str = ""
    source_checksum: str = ""
    source_sha256: str = ""
    stacks: list[Stack] = field(default_factory=list)
    uri: str = ""
    version: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Dependency:
        """Build a dependency from its JSON form, where the ID is under "name"."""
        return cls(
            arch=data.get("arch", ""),
            checksum=data.get("checksum", ""),
            cpe=data.get("cpe", ""),
            cpes=list(data.get("cpes") or []),
            created_at=data.get("created_at", ""),
            deprecation_date=data.get("deprecation_date", ""),
            distros=[Distro(d.get("name", ""), d.get("version", "")) for d in data.get("distros") or []],
            id=data.get("name", ""),
            licenses=list(data.get("licenses") or []),
            modified_at=data.get("modified_at", ""),
            os=data.get("os", ""),
            purl=data.get("purl", ""),
            sha256=data.get("sha256", ""),
            source=data.get("source", ""),
            source_checksum=data.get("source-checksum", ""),
            source_sha256=data.get("source_sha256", ""),
            stacks=[Stack(s.get("id", "")) for s in data.get("stacks") or []],
            uri=data.get("uri", ""),
            version=data.get("version", ""),
        )


def _parse_deprecation_date(text: str) -> datetime:
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return _ZERO_TIME


def _to_cargo_dependency(dependency: Dependency, dependency_name: str) -> ConfigMetadataDependency:
    return ConfigMetadataDependency(
        deprecation_date=(
            _parse_deprecation_date(dependency.deprecation_date)
            if dependency.deprecation_date
            else None
        ),
        cpe=dependency.cpe,
        purl=dependency.purl,
        id=dependency.id,
        name=dependency_name,
        sha256=dependency.sha256,
        source=dependency.source,
        source_sha256=dependency.source_sha256,
        uri=dependency.uri,
        version=dependency.version.replace("v", ""),
        checksum=dependency.checksum,
        source_checksum=dependency.source_checksum,
        stacks=[stack.id for stack in dependency.stacks],
        licenses=list(dependency.licenses),
    )


def _highest(items: list, patches: int) -> list:
    if patches > len(items):
        return items
    return items[len(items) - patches:]


def get_dependencies_within_constraint(
    dependencies: Iterable[Dependency],
    constraint: ConfigMetadataDependencyConstraint,
    dependency_name: str,
) -> list[ConfigMetadataDependency]:
    """Return the highest `patches` dependencies matching the constraint, lowest version first."""
    matching = []
    for dependency in dependencies:
        checker = parse_constraint(constraint.constraint)
        version = parse_version(dependency.version)
        if not checker.check(version) or dependency.id != constraint.id:
            continue
        matching.append(_to_cargo_dependency(dependency, dependency_name))

    matching.sort(key=lambda dep: parse_version(dep.version))
    return _highest(matching, constraint.patches)


def _contains_variant(
    deps: list[ConfigMetadataDependency], os: str, arch: str, stacks: list[str]
) -> bool:
    return any(
        (not os or dep.os == os) and (not arch or dep.arch == arch) and dep.stacks == stacks
        for dep in deps
    )


def get_cargo_dependencies_within_constraint(
    dependencies: Iterable[ConfigMetadataDependency],
    constraint: ConfigMetadataDependencyConstraint,
) -> list[ConfigMetadataDependency]:
    """Select the highest `patches` versions matching the constraint.

    Entries of the same version are all kept when their OS, architecture or
    stacks differ; such variants do not count towards the number of patches.
    """
    checker = parse_constraint(constraint.constraint)
    by_version: dict[str, list[ConfigMetadataDependency]] = {}

    for dependency in dependencies:
        version = parse_version(dependency.version)
        if dependency.id != constraint.id or not checker.check(version):
            continue
        variants = by_version.setdefault(dependency.version, [])
        if not variants or not _contains_variant(
            variants, dependency.os, dependency.arch, dependency.stacks
        ):
            variants.append(dependency)

    versions = sorted(by_version, key=parse_version)
    return [dep for version in _highest(versions, constraint.patches) for dep in by_version[version]]


def find_dependency_name(dependency_id: str, config: Config) -> str:
    """Return the name of the last dependency in the config with the given ID, or ""."""
    name = ""
    for dependency in config.metadata.dependencies:
        if dependency.id == dependency_id:
            name = dependency.name
    return name