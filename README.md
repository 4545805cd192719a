# bpjam

Helpers for people who write and maintain buildpacks. `bpjam` reads and
rewrites `buildpack.toml` and `builder.toml` files, keeps a buildpack's
dependency list within its declared version constraints, caches dependencies
for offline use, and inspects packaged buildpack archives.

## Installation

```
pip install bpjam
```

Python 3.11 or later is required. The only runtime dependency is `tomli-w`.

## Command line

Update the dependencies in a `buildpack.toml` from a JSON file holding a list
of dependency entries. The file's `dependency-constraints` decide which
versions are kept: for each constraint, the newest `patches` versions that
match it, with variants of one version that differ by OS, architecture or
stacks all kept. The versions that are new to the file are printed.

```
bpjam update-dependencies --buildpack-file buildpack.toml --metadata-file metadata.json
```

Print the version of the tool:

```
bpjam version
```

Errors are printed to standard error and the command exits with status 1.

## Library

### Versions

`bpjam.versions` parses semantic versions (`parse_version`, lenient;
`parse_strict_version`, strict) and constraints (`parse_constraint`, giving a
`Constraint` with a `check` method), and classifies version bumps:

```python
from bpjam.versions import parse_constraint, parse_version, semver_bump

parse_constraint("1.*").check(parse_version("1.2.3"))   # True
semver_bump("1.2.3", "1.3.0")                            # "minor"
```

Constraints accept `||` alternatives, comma or space separated terms,
hyphen ranges, wildcards and the operators `=`, `!=`, `>`, `>=`, `<`, `<=`,
`~` and `^`. `highest_semver_bump` returns the larger of two bump names
(`"major"`, `"minor"`, `"patch"` or `"<none>"`). Malformed input raises
`SemverError`.

### Buildpack configuration

`bpjam.cargo` holds the `buildpack.toml` model (`Config`,
`ConfigBuildpack`, `ConfigMetadata`, `ConfigMetadataDependency`,
`ConfigMetadataDependencyConstraint` and others) with `parse_config`,
`decode_config` and `encode_config`. `ValidatedReader` wraps a binary stream
and raises `ValidationError` at the end of the stream when its digest does not
match an `"algorithm:hex"` checksum.

`bpjam.dependency` filters dependencies against a
`ConfigMetadataDependencyConstraint`:

- `get_dependencies_within_constraint` for `Dependency` entries as published
  by a dependency server, converted to `ConfigMetadataDependency`,
- `get_cargo_dependencies_within_constraint` for entries already in a
  `buildpack.toml`, keeping variants of the same version that differ by
  OS, architecture or stacks,
- `find_dependency_name` to look up a dependency's display name by ID.

Both filters return the matches lowest version first.

### Builder and buildpack files

`bpjam.builder_config` provides `parse_builder_config` and
`overwrite_builder_config` for `builder.toml`. Buildpack and extension
locations are read from either `uri` or `image` with their scheme removed,
and written back with a `docker://` prefix. Failures raise
`BuilderConfigError`.

`bpjam.buildpack_config` provides `parse_buildpack_config` and
`overwrite_buildpack_config` for composite `buildpack.toml` files. The `api`,
`buildpack` and `metadata` sections are kept as they were read; `order`,
`stacks` and `targets` are modelled. Failures raise `BuildpackConfigError`.
Both overwrite functions require the file to exist already.

### Offline caching

`bpjam.dependency_cacher.DependencyCacher` downloads each dependency through a
`Downloader` (HTTP(S) or `file://` URIs), checks it against its `checksum` or
`sha256`, stores it under `dependencies/<hash>` below the given root and
returns the dependencies with their URI set to `file:///dependencies/<hash>`.
`cache` handles buildpack dependencies and `cache_extension` extension
dependencies. Progress is written through a `bpjam.scribe.Logger`. Failures
raise `CacheError`.

### Inspecting buildpackages

`bpjam.buildpack_inspector.BuildpackInspector().dependencies(path)` opens an
OCI-layout buildpackage tar archive and returns a `BuildpackMetadata` for
every `buildpack.toml` found in its layers, flattened layers included. The
image digest is attached to buildpacks that have an `order`, and to the only
buildpack when there is just one. Failures raise `InspectError`.

### Archives and image checks

`bpjam.archive.extract_tar` unpacks a tar archive into a directory, handling
directories, regular files and hard links (recreated as symbolic links), and
raises `UnsafeArchiveError` for entries that would escape it.

`bpjam.matchers` offers `HaveDirectory`, `HaveFile`, `HaveFileWithContent` and
`MatchTomlContent`, each with `match`, `failure_message` and
`negated_failure_message`. The first three search layers, newest first, for
an entry whose path matches a regular expression. A layer may be given as
bytes of a tar archive, a path to one, or an object with an `uncompressed()`
method; an image as a list of layers or an object with a `layers()` method.
`HaveFileWithContent` takes a string to compare with, an object with a
`match` method, or a callable. `MatchTomlContent` compares the parsed contents
of two TOML files. Failures raise `MatcherError`.

## What it does not do

The command line offers only `update-dependencies` and `version`. `bpjam` does
not package buildpacks or extensions into tarballs, build, export or publish
stack images, look up newer buildpack, lifecycle or stack images in registries,
or print summaries of a buildpackage; the library pieces above are what it
provides for such work.