"""Reading and writing buildpack.toml files of composite buildpacks."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from typing import Any

import tomli_w

__all__ = [
    "BuildpackConfigError",
    "BuildpackConfigOrderGroup",
    "BuildpackConfigOrder",
    "BuildpackConfigStack",
    "BuildpackConfigTarget",
    "BuildpackConfig",
    "parse_buildpack_config",
    "overwrite_buildpack_config",
]


class BuildpackConfigError(Exception):
    """Raised when a buildpack configuration cannot be read or written."""


@dataclass
class BuildpackConfigOrderGroup:
    id: str = ""
    version: str = ""
    optional: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id}
        if self.version:
            data["version"] = self.version
        if self.optional:
            data["optional"] = True
        return data


@dataclass
class BuildpackConfigOrder:
    group: list[BuildpackConfigOrderGroup] = field(default_factory=list)


@dataclass
class BuildpackConfigStack:
    id: str = ""
    mixins: list[str] = field(default_factory=list)


@dataclass
class BuildpackConfigTarget:
    os: str = ""
    arch: str = ""


@dataclass
class BuildpackConfig:
    """A buildpack.toml whose api, buildpack and metadata sections are kept as-is."""

    api: Any = None
    buildpack: Any = None
    metadata: Any = None
    order: list[BuildpackConfigOrder] = field(default_factory=list)
    stacks: list[BuildpackConfigStack] = field(default_factory=list)
    targets: list[BuildpackConfigTarget] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuildpackConfig:
        return cls(
            api=data.get("api"),
            buildpack=data.get("buildpack"),
            metadata=data.get("metadata"),
            order=[
                BuildpackConfigOrder([
                    BuildpackConfigOrderGroup(g.get("id", ""), g.get("version", ""),
                                              bool(g.get("optional", False)))
                    for g in o.get("group", [])
                ])
                for o in data.get("order", [])
            ],
            stacks=[BuildpackConfigStack(s.get("id", ""), list(s.get("mixins", [])))
                    for s in data.get("stacks", [])],
            targets=[BuildpackConfigTarget(t.get("os", ""), t.get("arch", ""))
                     for t in data.get("targets", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for key, value in (("api", self.api), ("buildpack", self.buildpack),
                           ("metadata", self.metadata)):
            if value is not None:
                data[key] = value
        if self.order:
            data["order"] = [{"group": [g.to_dict() for g in o.group]} for o in self.order]
        if self.stacks:
            data["stacks"] = [
                {"id": s.id, **({"mixins": list(s.mixins)} if s.mixins else {})}
                for s in self.stacks
            ]
        if self.targets:
            data["targets"] = [
                {k: v for k, v in (("os", t.os), ("arch", t.arch)) if v} for t in self.targets
            ]
        return data


def parse_buildpack_config(path: str) -> BuildpackConfig:
    """Read a buildpack.toml file."""
    try:
        with open(path, "rb") as handle:
            content = handle.read()
    except OSError as exc:
        raise BuildpackConfigError(f"failed to open buildpack config file: {exc}") from exc
    try:
        return BuildpackConfig.from_dict(tomllib.loads(content.decode("utf-8")))
    except (ValueError, AttributeError, TypeError) as exc:
        raise BuildpackConfigError(f"failed to parse buildpack config: {exc}") from exc


def overwrite_buildpack_config(path: str, config: BuildpackConfig) -> None:
    """Replace the contents of an existing buildpack.toml with the configuration."""
    try:
        handle = open(path, "r+", encoding="utf-8")
    except OSError as exc:
        raise BuildpackConfigError(f"failed to open buildpack config file: {exc}") from exc
    with handle:
        handle.truncate(0)
        try:
            handle.write(tomli_w.dumps(config.to_dict()))
        except (TypeError, ValueError) as exc:
            raise BuildpackConfigError(f"failed to write buildpack config: {exc}") from exc