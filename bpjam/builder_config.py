"""Reading and writing builder.toml files."""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass, field, replace
from typing import Any

import tomli_w

__all__ = [
    "BuilderConfigError",
    "BuilderConfigBuildpack",
    "ImageRegistry",
    "Run",
    "Build",
    "BuilderConfigExtension",
    "BuilderConfigLifecycle",
    "BuilderConfigOrderGroup",
    "BuilderConfigOrder",
    "BuilderExtensionConfigOrderGroup",
    "BuilderExtensionConfigOrder",
    "BuilderConfigStack",
    "BuilderConfigTarget",
    "BuilderConfig",
    "parse_builder_config",
    "overwrite_builder_config",
]


class BuilderConfigError(Exception):
    """Raised when a builder configuration cannot be read or written."""


_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _strip_scheme(uri: str) -> str:
    if not uri:
        return uri
    bad = _BAD_ESCAPE.search(uri)
    if bad:
        escape = uri[bad.start():bad.start() + 3]
        raise ValueError(f'parse "{uri}": invalid URL escape "{escape}"')
    return _SCHEME.sub("", uri, count=1).removeprefix("//")


def _image_or_uri(data: dict[str, Any]) -> str:
    uri = ""
    if isinstance(data.get("image"), str):
        uri = data["image"]
    if isinstance(data.get("uri"), str):
        uri = data["uri"]
    return _strip_scheme(uri)


@dataclass
class BuilderConfigBuildpack:
    """A buildpack reference; the location may be given as `uri` or `image`."""

    uri: str = ""
    version: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuilderConfigBuildpack:
        version = data.get("version")
        return cls(_image_or_uri(data), version if isinstance(version, str) else "")

    def to_dict(self) -> dict[str, Any]:
        return {"uri": self.uri, "version": self.version}


@dataclass
class ImageRegistry:
    image: str = ""


@dataclass
class Run:
    images: list[ImageRegistry] = field(default_factory=list)


@dataclass
class Build:
    image: str = ""


@dataclass
class BuilderConfigExtension:
    id: str = ""
    uri: str = ""
    version: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuilderConfigExtension:
        version = data.get("version")
        ext_id = data.get("id")
        return cls(
            id=ext_id if isinstance(ext_id, str) else "",
            uri=_image_or_uri(data),
            version=version if isinstance(version, str) else "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "uri": self.uri, "version": self.version}


@dataclass
class BuilderConfigLifecycle:
    version: str = ""


@dataclass
class BuilderConfigOrderGroup:
    id: str = ""
    version: str = ""
    optional: bool = False


@dataclass
class BuilderConfigOrder:
    group: list[BuilderConfigOrderGroup] = field(default_factory=list)


@dataclass
class BuilderExtensionConfigOrderGroup:
    id: str = ""
    version: str = ""
    optional: bool = False


@dataclass
class BuilderExtensionConfigOrder:
    group: list[BuilderExtensionConfigOrderGroup] = field(default_factory=list)


@dataclass
class BuilderConfigStack:
    id: str = ""
    build_image: str = ""
    run_image: str = ""
    run_image_mirrors: list[str] = field(default_factory=list)


@dataclass
class BuilderConfigTarget:
    os: str = ""
    arch: str = ""


def _group_to_dict(group: BuilderConfigOrderGroup | BuilderExtensionConfigOrderGroup) -> dict[str, Any]:
    data: dict[str, Any] = {"id": group.id}
    if group.version:
        data["version"] = group.version
    if group.optional:
        data["optional"] = True
    return data


@dataclass
class BuilderConfig:
    """The contents of a builder.toml file."""

    description: str = ""
    buildpacks: list[BuilderConfigBuildpack] = field(default_factory=list)
    lifecycle: BuilderConfigLifecycle = field(default_factory=BuilderConfigLifecycle)
    order: list[BuilderConfigOrder] = field(default_factory=list)
    extensions: list[BuilderConfigExtension] = field(default_factory=list)
    order_extension: list[BuilderExtensionConfigOrder] = field(default_factory=list)
    build: Build = field(default_factory=Build)
    run: Run = field(default_factory=Run)
    stack: BuilderConfigStack = field(default_factory=BuilderConfigStack)
    targets: list[BuilderConfigTarget] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuilderConfig:
        stack = data.get("stack", {})
        return cls(
            description=data.get("description", ""),
            buildpacks=[BuilderConfigBuildpack.from_dict(b) for b in data.get("buildpacks", [])],
            lifecycle=BuilderConfigLifecycle(data.get("lifecycle", {}).get("version", "")),
            order=[
                BuilderConfigOrder([
                    BuilderConfigOrderGroup(g.get("id", ""), g.get("version", ""),
                                            bool(g.get("optional", False)))
                    for g in o.get("group", [])
                ])
                for o in data.get("order", [])
            ],
            extensions=[BuilderConfigExtension.from_dict(e) for e in data.get("extensions", [])],
            order_extension=[
                BuilderExtensionConfigOrder([
                    BuilderExtensionConfigOrderGroup(g.get("id", ""), g.get("version", ""),
                                                     bool(g.get("optional", False)))
                    for g in o.get("group", [])
                ])
                for o in data.get("order-extensions", [])
            ],
            build=Build(data.get("build", {}).get("image", "")),
            run=Run([ImageRegistry(i.get("image", "")) for i in data.get("run", {}).get("images", [])]),
            stack=BuilderConfigStack(
                id=stack.get("id", ""),
                build_image=stack.get("build-image", ""),
                run_image=stack.get("run-image", ""),
                run_image_mirrors=list(stack.get("run-image-mirrors", [])),
            ),
            targets=[BuilderConfigTarget(t.get("os", ""), t.get("arch", ""))
                     for t in data.get("targets", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"description": self.description}
        if self.buildpacks:
            data["buildpacks"] = [b.to_dict() for b in self.buildpacks]
        data["lifecycle"] = {"version": self.lifecycle.version}
        if self.order:
            data["order"] = [{"group": [_group_to_dict(g) for g in o.group]} for o in self.order]
        if self.extensions:
            data["extensions"] = [e.to_dict() for e in self.extensions]
        if self.order_extension:
            data["order-extensions"] = [
                {"group": [_group_to_dict(g) for g in o.group]} for o in self.order_extension
            ]
        if self.build.image:
            data["build"] = {"image": self.build.image}
        if self.run.images:
            data["run"] = {"images": [{"image": i.image} for i in self.run.images]}
        if self.stack != BuilderConfigStack():
            stack: dict[str, Any] = {"id": self.stack.id}
            if self.stack.build_image:
                stack["build-image"] = self.stack.build_image
            if self.stack.run_image:
                stack["run-image"] = self.stack.run_image
            if self.stack.run_image_mirrors:
                stack["run-image-mirrors"] = list(self.stack.run_image_mirrors)
            data["stack"] = stack
        if self.targets:
            data["targets"] = [{"os": t.os, "arch": t.arch} for t in self.targets]
        return data


def parse_builder_config(path: str) -> BuilderConfig:
    """Read a builder.toml file; buildpack and extension URIs lose their scheme."""
    try:
        with open(path, "rb") as handle:
            content = handle.read()
    except OSError as exc:
        raise BuilderConfigError(f"failed to open builder config file: {exc}") from exc
    try:
        return BuilderConfig.from_dict(tomllib.loads(content.decode("utf-8")))
    except (ValueError, AttributeError, TypeError) as exc:
        raise BuilderConfigError(f"failed to parse builder config: {exc}") from exc


def _with_docker_scheme(uri: str) -> str:
    return uri if uri.startswith("docker://") else f"docker://{uri}"


def overwrite_builder_config(path: str, config: BuilderConfig) -> None:
    """Replace the contents of an existing builder.toml, giving URIs a docker:// scheme."""
    config = replace(
        config,
        buildpacks=[replace(b, uri=_with_docker_scheme(b.uri)) for b in config.buildpacks],
        extensions=[replace(e, uri=_with_docker_scheme(e.uri)) for e in config.extensions],
    )
    try:
        handle = open(path, "r+", encoding="utf-8")
    except OSError as exc:
        raise BuilderConfigError(f"failed to open builder config file: {exc}") from exc
    with handle:
        handle.truncate(0)
        try:
            handle.write(tomli_w.dumps(config.to_dict()))
        except (TypeError, ValueError) as exc:
            raise BuilderConfigError(f"failed to write builder config: {exc}") from exc