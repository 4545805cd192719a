"""Command line entry point for the buildpack maintenance tool."""

from __future__ import annotations

import argparse
import json
import sys
import tomllib
from dataclasses import replace
from datetime import datetime
from importlib.metadata import PackageNotFoundError, version as _package_version
from typing import Any, Sequence

from bpjam.cargo import ConfigMetadataDependency, encode_config, parse_config
from bpjam.dependency import get_cargo_dependencies_within_constraint
from bpjam.versions import SemverError

__all__ = ["update_dependencies", "main"]


def _tool_version() -> str:
    try:
        return _package_version("bpjam")
    except PackageNotFoundError:
        return ""


def _dependency_from_json(entry: dict[str, Any]) -> ConfigMetadataDependency:
    dependency = ConfigMetadataDependency.from_dict(entry)
    date = dependency.deprecation_date
    if isinstance(date, str):
        if date:
            try:
                parsed = datetime.fromisoformat(date.replace("Z", "+00:00"))
            except ValueError as exc:
                raise ValueError(f"invalid deprecation_date {date!r}") from exc
        else:
            parsed = None
        dependency = replace(dependency, deprecation_date=parsed)
    return dependency


def update_dependencies(buildpack_file: str, metadata_file: str) -> list[str]:
    """Merge the dependencies listed in a metadata JSON file into buildpack.toml.

    Only dependencies within the buildpack's dependency constraints are kept.
    Returns the versions that were not in buildpack.toml before.
    """
    try:
        config = parse_config(buildpack_file)
    except (OSError, tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise RuntimeError(f"failed to parse buildpack.toml: {exc}") from exc

    original_versions = {d.version for d in config.metadata.dependencies}

    try:
        handle = open(metadata_file, encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"failed to open metadata.json file: {exc}") from exc
    with handle:
        try:
            entries = json.load(handle)
            if not isinstance(entries, list):
                raise ValueError("expected a list of dependencies")
            new_dependencies = [_dependency_from_json(e) for e in entries]
        except (ValueError, TypeError, AttributeError) as exc:
            raise RuntimeError(f"failed decode metadata.json: {exc}") from exc

    all_dependencies = list(config.metadata.dependencies) + new_dependencies

    matching: list[ConfigMetadataDependency] = []
    for constraint in config.metadata.dependency_constraints:
        try:
            matching.extend(get_cargo_dependencies_within_constraint(all_dependencies, constraint))
        except SemverError as exc:
            raise RuntimeError(str(exc)) from exc
        if matching:
            config.metadata.dependencies = list(matching)

    new_versions = list(dict.fromkeys(
        d.version for d in config.metadata.dependencies if d.version not in original_versions
    ))

    try:
        out = open(buildpack_file, "r+", encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"failed to open buildpack config file: {exc}") from exc
    with out:
        out.truncate(0)
        try:
            encode_config(out, config)
        except (TypeError, ValueError) as exc:
            raise RuntimeError(f"failed to write buildpack config: {exc}") from exc

    print(f"Updating buildpack.toml with new versions:  [{' '.join(new_versions)}]")
    return new_versions


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jam")
    commands = parser.add_subparsers(dest="command")

    update = commands.add_parser(
        "update-dependencies",
        help="updates all dependencies in a buildpack.toml from a metadata JSON file.",
    )
    update.add_argument("--buildpack-file", required=True,
                        help="path to the buildpack.toml file (required)")
    update.add_argument("--metadata-file", required=True,
                        help="metadata.json file with all entries to be added to the buildpack.toml (required)")

    commands.add_parser("version", help="version of jam")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line tool and return its exit status."""
    parser = _parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0
    if args.command == "version":
        print(f"jam {_tool_version()}")
        return 0

    try:
        update_dependencies(args.buildpack_file, args.metadata_file)
    except RuntimeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())