import pytest

from bpjam.cargo import (
    Config,
    ConfigBuildpack,
    ConfigMetadata,
    ConfigMetadataDependency,
    ConfigMetadataDependencyConstraint,
)
from bpjam.dependency import (
    Dependency,
    Stack,
    find_dependency_name,
    get_cargo_dependencies_within_constraint,
    get_dependencies_within_constraint,
)
from bpjam.versions import SemverError

LICENSES = ["fancy-license", "fancy-license-2"]


def _dep(**kwargs):
    base = dict(created_at="sometime", modified_at="another-time", cpe="cpe-notation",
                purl="some-purl", licenses=list(LICENSES))
    base.update(kwargs)
    return Dependency(**base)


@pytest.fixture
def all_dependencies():
    return [
        _dep(id="some-dep", sha256="some-sha", source="some-source", source_sha256="some-source-sha",
             stacks=[Stack("some-stack")], uri="some-dep-uri", version="v1.0.0"),
        _dep(id="some-dep", sha256="some-sha-two", source="some-source-two",
             source_sha256="some-source-sha-two", stacks=[Stack("some-stack-two")],
             uri="some-dep-uri-two", version="v1.1.2"),
        _dep(id="some-dep", sha256="some-sha-three", source="some-source-three",
             source_sha256="some-source-sha-three", stacks=[Stack("some-stack-three")],
             uri="some-dep-uri-three", version="v1.5.6"),
        _dep(id="some-dep", sha256="some-sha-four", source="some-source-four",
             source_sha256="some-source-sha-four", stacks=[Stack("some-stack-four")],
             uri="some-dep-uri-four", version="v2.3.2"),
        _dep(id="different-dep", sha256="different-dep-sha", source="different-dep-source",
             source_sha256="different-dep-source-sha", stacks=[Stack("different-dep-stack")],
             uri="different-dep-uri", version="v1.9.8"),
        _dep(id="some-dep", checksum="sha512:some-sha", source="some-512-source",
             source_checksum="sha512:some-source-sha", stacks=[Stack("some-stack")],
             uri="some-512-dep-uri", version="v1.6.7", purl="some-512-purl"),
    ]


def _cargo(**kwargs):
    base = dict(cpe="cpe-notation", purl="some-purl", id="some-dep", licenses=list(LICENSES))
    base.update(kwargs)
    return ConfigMetadataDependency(**base)


def test_get_dependencies_within_constraint_sorted(all_dependencies):
    constraint = ConfigMetadataDependencyConstraint(constraint="1.*", id="some-dep", patches=4)
    result = get_dependencies_within_constraint(all_dependencies, constraint, "")
    assert result == [
        _cargo(version="1.0.0", stacks=["some-stack"], uri="some-dep-uri", sha256="some-sha",
               source="some-source", source_sha256="some-source-sha"),
        _cargo(version="1.1.2", stacks=["some-stack-two"], uri="some-dep-uri-two",
               sha256="some-sha-two", source="some-source-two", source_sha256="some-source-sha-two"),
        _cargo(version="1.5.6", stacks=["some-stack-three"], uri="some-dep-uri-three",
               sha256="some-sha-three", source="some-source-three",
               source_sha256="some-source-sha-three"),
        _cargo(version="1.6.7", purl="some-512-purl", stacks=["some-stack"], uri="some-512-dep-uri",
               checksum="sha512:some-sha", source="some-512-source",
               source_checksum="sha512:some-source-sha"),
    ]


def test_get_dependencies_within_constraint_limits_patches(all_dependencies):
    constraint = ConfigMetadataDependencyConstraint(constraint="1.*", id="some-dep", patches=2)
    result = get_dependencies_within_constraint(all_dependencies, constraint, "Some Name")
    assert [d.version for d in result] == ["1.5.6", "1.6.7"]
    assert {d.name for d in result} == {"Some Name"}


def test_get_dependencies_invalid_constraint(all_dependencies):
    constraint = ConfigMetadataDependencyConstraint(constraint="abc", id="some-dep", patches=3)
    with pytest.raises(SemverError, match="improper constraint: abc"):
        get_dependencies_within_constraint(all_dependencies, constraint, "")


def test_get_dependencies_malformed_version():
    constraint = ConfigMetadataDependencyConstraint(constraint="1.*", id="some-dep", patches=3)
    deps = [_dep(id="some-dep", sha256="some-sha", stacks=[Stack("some-stack")],
                 uri="some-dep-uri", version="v1.xx")]
    with pytest.raises(SemverError, match="invalid semantic version"):
        get_dependencies_within_constraint(deps, constraint, "")


@pytest.fixture
def all_cargo_dependencies():
    two = dict(sha256="some-sha-two", source="some-source-two", source_sha256="some-source-sha-two",
               version="1.1.2")
    sixes = dict(checksum="sha512:some-sha", source="some-source",
                 source_checksum="sha512:some-source-sha", stacks=["some-stack"],
                 uri="some-dep-uri", version="1.6.7", os="some-os")
    return [
        _cargo(sha256="some-sha", source="some-source", source_sha256="some-source-sha",
               stacks=["some-stack"], uri="some-dep-uri", version="1.0.0"),
        _cargo(stacks=["some-stack", "some-stack-two"], uri="some-dep-uri-two-noarch", **two),
        _cargo(stacks=["some-stack-two"], uri="some-dep-uri-two", os="some-os",
               arch="some-arch", **two),
        _cargo(stacks=["some-stack-two"], uri="some-dep-uri-two", os="some-os",
               arch="some-other-arch", **two),
        _cargo(sha256="some-sha-three", source="some-source-three",
               source_sha256="some-source-sha-three", stacks=["some-stack-three"],
               uri="some-dep-uri-three", version="1.5.6", os="some-os"),
        _cargo(sha256="some-sha-four", source="some-source-four",
               source_sha256="some-source-sha-four", stacks=["some-stack-four"],
               uri="some-dep-uri-four", version="2.3.2"),
        _cargo(id="different-dep", sha256="different-dep-sha", source="different-dep-source",
               source_sha256="different-dep-source-sha", stacks=["different-dep-stack"],
               uri="different-dep-uri", version="1.9.8"),
        _cargo(arch="some-arch", **sixes),
        _cargo(arch="some-other-arch", **sixes),
    ]


def test_cargo_dependencies_include_variants(all_cargo_dependencies):
    constraint = ConfigMetadataDependencyConstraint(constraint="1.*", id="some-dep", patches=4)
    result = get_cargo_dependencies_within_constraint(all_cargo_dependencies, constraint)
    assert [(d.version, d.uri, d.os, d.arch, d.stacks) for d in result] == [
        ("1.0.0", "some-dep-uri", "", "", ["some-stack"]),
        ("1.1.2", "some-dep-uri-two-noarch", "", "", ["some-stack", "some-stack-two"]),
        ("1.1.2", "some-dep-uri-two", "some-os", "some-arch", ["some-stack-two"]),
        ("1.1.2", "some-dep-uri-two", "some-os", "some-other-arch", ["some-stack-two"]),
        ("1.5.6", "some-dep-uri-three", "some-os", "", ["some-stack-three"]),
        ("1.6.7", "some-dep-uri", "some-os", "some-arch", ["some-stack"]),
        ("1.6.7", "some-dep-uri", "some-os", "some-other-arch", ["some-stack"]),
    ]
    assert result[5].checksum == "sha512:some-sha"
    assert result[5].source_checksum == "sha512:some-source-sha"


def test_cargo_dependencies_exclude_duplicate_variants():
    common = dict(sha256="some-sha", source="some-source", source_sha256="some-source-sha",
                  uri="some-dep-uri", version="1.0.0")
    deps = [
        _cargo(stacks=["some-stack"], **common),
        _cargo(stacks=["some-stack"], **common),
        _cargo(stacks=["different-stack"], **common),
    ]
    constraint = ConfigMetadataDependencyConstraint(constraint="1.*", id="some-dep", patches=1)
    result = get_cargo_dependencies_within_constraint(deps, constraint)
    assert result == [
        _cargo(stacks=["some-stack"], **common),
        _cargo(stacks=["different-stack"], **common),
    ]


def test_cargo_dependencies_zero_patches(all_cargo_dependencies):
    constraint = ConfigMetadataDependencyConstraint(constraint="1.*", id="some-dep", patches=0)
    assert get_cargo_dependencies_within_constraint(all_cargo_dependencies, constraint) == []


def test_cargo_dependencies_invalid_constraint(all_cargo_dependencies):
    constraint = ConfigMetadataDependencyConstraint(constraint="abc", id="some-dep", patches=3)
    with pytest.raises(SemverError, match="improper constraint: abc"):
        get_cargo_dependencies_within_constraint(all_cargo_dependencies, constraint)


def test_cargo_dependencies_malformed_version():
    constraint = ConfigMetadataDependencyConstraint(constraint="1.*", id="some-dep", patches=3)
    deps = [_cargo(sha256="some-sha", stacks=["some-stack"], uri="some-dep-uri", version="v1.xx")]
    with pytest.raises(SemverError, match="invalid semantic version"):
        get_cargo_dependencies_within_constraint(deps, constraint)


@pytest.fixture
def cargo_config():
    return Config(
        api="0.2",
        buildpack=ConfigBuildpack(id="some-buildpack-id", name="some-buildpack-name",
                                  version="some-buildpack-version", homepage="some-homepage-link"),
        metadata=ConfigMetadata(dependencies=[
            ConfigMetadataDependency(id="some-dependency", name="Some Dependency Name",
                                     uri="http://some-url", version="1.2.3"),
        ]),
    )


def test_find_dependency_name(cargo_config):
    assert find_dependency_name("some-dependency", cargo_config) == "Some Dependency Name"


def test_find_dependency_name_missing(cargo_config):
    assert find_dependency_name("unmatched-dependency", cargo_config) == ""