import pytest

from bpjam.versions import (
    SemverError,
    Version,
    highest_semver_bump,
    parse_constraint,
    parse_strict_version,
    parse_version,
    semver_bump,
)


def test_parse_loose_with_prefix():
    assert parse_version("v1.1.2") == Version(1, 1, 2)


def test_parse_loose_missing_parts():
    assert parse_version("2") == Version(2, 0, 0)


def test_invalid_version():
    with pytest.raises(SemverError, match="invalid semantic version"):
        parse_version("v1.xx")


def test_strict_rejects_prefix():
    with pytest.raises(SemverError):
        parse_strict_version("v1.2.3")


def test_prerelease_orders_before_release():
    assert parse_version("1.0.0-alpha") < parse_version("1.0.0")


def test_improper_constraint():
    with pytest.raises(SemverError, match="improper constraint: abc"):
        parse_constraint("abc")


@pytest.mark.parametrize("version,expected", [
    ("1.0.0", True), ("1.6.7", True), ("2.3.2", False), ("0.9.0", False),
])
def test_wildcard_constraint(version, expected):
    assert parse_constraint("1.*").check(parse_version(version)) is expected


def test_compound_constraint():
    c = parse_constraint(">=1.2, <2")
    assert c.check(parse_version("1.5.0")) and not c.check(parse_version("2.0.0"))


def test_or_constraint():
    c = parse_constraint("~1.2 || ^3.0")
    assert c.check(parse_version("3.9.1"))
    assert not c.check(parse_version("1.3.0"))


def test_prerelease_excluded_without_prerelease_constraint():
    assert not parse_constraint(">=1.0.0").check(parse_version("1.5.0-rc.1"))


@pytest.mark.parametrize("old,new,bump", [
    ("1.2.3", "2.0.0", "major"),
    ("1.2.3", "1.3.0", "minor"),
    ("1.2.3", "1.2.4", "patch"),
    ("1.2.3", "1.2.3", "<none>"),
])
def test_semver_bump(old, new, bump):
    assert semver_bump(old, new) == bump


def test_semver_bump_invalid():
    with pytest.raises(SemverError):
        semver_bump("1.2", "1.2.3")


@pytest.mark.parametrize("highest,current,result", [
    ("major", "patch", "major"),
    ("minor", "major", "major"),
    ("minor", "patch", "minor"),
    ("patch", "minor", "minor"),
    ("<none>", "patch", "patch"),
])
def test_highest_semver_bump(highest, current, result):
    assert highest_semver_bump(highest, current) == result