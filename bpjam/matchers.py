"""Matchers that look for paths inside image layers and compare TOML files."""

from __future__ import annotations

import io
import os
import re
import tarfile
import tomllib
from typing import Any, BinaryIO, Callable, Iterable

__all__ = [
    "MatcherError",
    "HaveDirectory",
    "HaveFile",
    "HaveFileWithContent",
    "MatchTomlContent",
]


class MatcherError(Exception):
    """Raised when a matcher cannot evaluate what it was given."""


def _is_layer(obj: Any) -> bool:
    if isinstance(obj, (bytes, bytearray, str, os.PathLike)):
        return True
    return callable(getattr(obj, "uncompressed", None))


def _layers(actual: Any) -> list[Any]:
    """Return the layers of an image, or the single layer given, oldest first."""
    layers_of = getattr(actual, "layers", None)
    if callable(layers_of):
        return list(layers_of())
    if isinstance(actual, (list, tuple)):
        return list(actual)
    if _is_layer(actual):
        return [actual]
    return []


def _layer_stream(layer: Any) -> BinaryIO:
    if isinstance(layer, (bytes, bytearray)):
        return io.BytesIO(bytes(layer))
    if isinstance(layer, (str, os.PathLike)):
        return open(layer, "rb")
    return layer.uncompressed()


def _match_image(
    expected: Any,
    actual: Any,
    check: Callable[[tarfile.TarInfo, BinaryIO], bool],
) -> bool:
    """Search the layers, newest first, for an entry matching the path pattern."""
    if not isinstance(expected, str):
        raise MatcherError(f"expected must be a <string>, received {expected!r}")
    try:
        pattern = re.compile(f"^{expected.removeprefix('/')}$")
    except re.error as exc:
        raise MatcherError(str(exc)) from exc

    for layer in reversed(_layers(actual)):
        try:
            stream = _layer_stream(layer)
        except OSError as exc:
            raise MatcherError(str(exc)) from exc

        found = False
        try:
            try:
                archive = tarfile.open(fileobj=stream, mode="r|*")
            except tarfile.ReadError as exc:
                if str(exc) != "empty file":
                    raise MatcherError(str(exc)) from exc
                archive = None
            if archive is not None:
                with archive:
                    for member in archive:
                        name = member.name.removeprefix("/").removesuffix("/")
                        if not pattern.search(name):
                            continue
                        content = archive.extractfile(member) if member.isreg() else None
                        if check(member, content if content is not None else io.BytesIO()):
                            found = True
                            break
        except tarfile.TarError as exc:
            raise MatcherError(str(exc)) from exc
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                close()

        if found:
            return True
    return False


class HaveDirectory:
    """Matches an image or layer that holds a directory at the path pattern."""

    def __init__(self, path: Any) -> None:
        self.path = path

    def match(self, actual: Any) -> bool:
        return _match_image(self.path, actual, lambda member, _: member.isdir())

    def failure_message(self, actual: Any) -> str:
        return f"Expected\n\t{actual!r}\nto have directory with path\n\t{self.path!r}"

    def negated_failure_message(self, actual: Any) -> str:
        return f"Expected\n\t{actual!r}\nnot to have directory with path\n\t{self.path!r}"


class HaveFile:
    """Matches an image or layer that holds a regular file at the path pattern."""

    def __init__(self, path: Any) -> None:
        self.path = path

    def match(self, actual: Any) -> bool:
        return _match_image(self.path, actual, lambda member, _: member.isreg())

    def failure_message(self, actual: Any) -> str:
        return f"Expected\n\t{actual!r}\nto have file with path\n\t{self.path!r}"

    def negated_failure_message(self, actual: Any) -> str:
        return f"Expected\n\t{actual!r}\nnot to have file with path\n\t{self.path!r}"


class _Equal:
    def __init__(self, expected: str) -> None:
        self.expected = expected

    def match(self, actual: str) -> bool:
        return actual == self.expected

    def failure_message(self, actual: str) -> str:
        return f"Expected\n\t{actual!r}\nto equal\n\t{self.expected!r}"

    def negated_failure_message(self, actual: str) -> str:
        return f"Expected\n\t{actual!r}\nnot to equal\n\t{self.expected!r}"


class _Predicate:
    def __init__(self, predicate: Callable[[str], Any]) -> None:
        self.predicate = predicate

    def match(self, actual: str) -> bool:
        return bool(self.predicate(actual))

    def failure_message(self, actual: str) -> str:
        return f"Expected\n\t{actual!r}\nto satisfy\n\t{self.predicate!r}"

    def negated_failure_message(self, actual: str) -> str:
        return f"Expected\n\t{actual!r}\nnot to satisfy\n\t{self.predicate!r}"


def _content_matcher(matcher: Any) -> Any:
    if callable(getattr(matcher, "match", None)):
        return matcher
    if isinstance(matcher, str):
        return _Equal(matcher)
    if callable(matcher):
        return _Predicate(matcher)
    raise MatcherError(f"expected must be a <string> or matcher, received {matcher!r}")


def _describe(actual: Any) -> str:
    if callable(getattr(actual, "layers", None)) or isinstance(actual, (list, tuple)):
        return f"image {actual!r}"
    if _is_layer(actual):
        return f"layer {actual!r}"
    return ""


class HaveFileWithContent:
    """Matches an image or layer holding a file whose content satisfies a matcher.

    The content matcher is a string compared for equality, an object with a
    ``match`` method, or a callable taking the content and returning a truth value.
    """

    def __init__(self, path: Any, matcher: Any) -> None:
        self.path = path
        self.matcher = matcher
        self.found_content = ""
        self._failed: Any = None

    def match(self, actual: Any) -> bool:
        inner = _content_matcher(self.matcher)
        self._failed = self

        def check(member: tarfile.TarInfo, reader: BinaryIO) -> bool:
            if not member.isreg():
                self._failed = self
                return False
            self.found_content = reader.read().decode("utf-8", errors="replace")
            result = inner.match(self.found_content)
            self._failed = inner
            return bool(result)

        return _match_image(self.path, actual, check)

    def _own_failure(self) -> bool:
        return self._failed is None or self._failed is self

    def failure_message(self, actual: Any) -> str:
        if self._own_failure():
            return f"Expected\n\t{_describe(actual)}\nto have file\n\t{self.path!r}"
        return self._failed.failure_message(self.found_content)

    def negated_failure_message(self, actual: Any) -> str:
        if self._own_failure():
            return f"Expected\n\t{_describe(actual)}\nnot to have file\n\t{self.path!r}"
        return self._failed.negated_failure_message(self.found_content)


def _read_toml(path: str | os.PathLike) -> dict[str, Any]:
    try:
        with open(path, "rb") as handle:
            content = handle.read()
    except OSError as exc:
        raise MatcherError(str(exc)) from exc
    try:
        return tomllib.loads(content.decode("utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise MatcherError(str(exc)) from exc


class MatchTomlContent:
    """Matches a TOML file path whose parsed content equals that of the expected file."""

    def __init__(self, expected_file_path: str | os.PathLike) -> None:
        self.expected_file_path = expected_file_path

    def match(self, actual: Any) -> bool:
        if not isinstance(actual, (str, os.PathLike)):
            raise MatcherError("MatchTomlContent matcher expects a file path")
        actual_contents = _read_toml(actual)
        expected_contents = _read_toml(self.expected_file_path)
        return actual_contents == expected_contents

    def failure_message(self, actual: Any) -> str:
        return (
            f"Expected\n{actual} contents\nto match the contents of \n"
            f"{self.expected_file_path}"
        )

    def negated_failure_message(self, actual: Any) -> str:
        return (
            f"Expected\n{actual} contents\n not to match the contents of \n"
            f"{self.expected_file_path}"
        )


def _iter_names(actual: Any) -> Iterable[str]:
    """List entry names of every layer; useful when diagnosing a failed match."""
    names: list[str] = []
    _match_image(".*", actual, lambda member, _: names.append(member.name) and False)
    return names