import io
import os
import tarfile

import pytest

from bpjam.archive import UnsafeArchiveError, extract_tar


def write_tar(path, members):
    """members: list of (TarInfo, bytes or None)."""
    with tarfile.open(path, mode="w") as archive:
        for info, data in members:
            if data is not None:
                info.size = len(data)
                archive.addfile(info, io.BytesIO(data))
            else:
                archive.addfile(info)


def dir_entry(name):
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = 0o755
    return info, None


def file_entry(name, data, mode=0o644):
    info = tarfile.TarInfo(name)
    info.mode = mode
    return info, data


def link_entry(name, linkname, kind=tarfile.LNKTYPE):
    info = tarfile.TarInfo(name)
    info.type = kind
    info.linkname = linkname
    return info, None


def test_extracts_directories_and_files(tmp_path):
    archive = tmp_path / "image.tar"
    write_tar(archive, [
        dir_entry("."),
        dir_entry("blobs"),
        dir_entry("blobs/sha256"),
        file_entry("index.json", b'{"manifests": []}'),
        file_entry("blobs/sha256/abc", b"layer-data"),
    ])
    destination = tmp_path / "out"

    extract_tar(str(archive), str(destination))

    assert (destination / "blobs" / "sha256").is_dir()
    assert (destination / "index.json").read_bytes() == b'{"manifests": []}'
    assert (destination / "blobs" / "sha256" / "abc").read_bytes() == b"layer-data"


def test_file_mode_is_kept(tmp_path):
    archive = tmp_path / "image.tar"
    write_tar(archive, [dir_entry("."), file_entry("run", b"#!/bin/sh", mode=0o644)])
    destination = tmp_path / "out"

    extract_tar(str(archive), str(destination))

    assert os.stat(destination / "run").st_mode & 0o777 == 0o644


def test_rejects_parent_references(tmp_path):
    archive = tmp_path / "image.tar"
    write_tar(archive, [file_entry("../escape", b"x")])

    with pytest.raises(UnsafeArchiveError, match="entry contains unsafe relative link"):
        extract_tar(str(archive), str(tmp_path / "out"))
    assert not (tmp_path / "escape").exists()


def test_absolute_hard_link_becomes_symlink(tmp_path):
    archive = tmp_path / "image.tar"
    write_tar(archive, [dir_entry("."), link_entry("current", "/opt/target")])
    destination = tmp_path / "out"

    extract_tar(str(archive), str(destination))

    assert os.path.islink(destination / "current")
    assert os.readlink(destination / "current") == "/opt/target"


def test_relative_hard_link_with_missing_target_raises(tmp_path):
    archive = tmp_path / "image.tar"
    write_tar(archive, [dir_entry("."), file_entry("real", b"x"), link_entry("alias", "real")])

    with pytest.raises(FileNotFoundError):
        extract_tar(str(archive), str(tmp_path / "out"))


def test_relative_hard_link_leaving_destination_is_unsafe(tmp_path):
    archive = tmp_path / "image.tar"
    write_tar(archive, [dir_entry("."), dir_entry("lnk"), link_entry("lnk", "../..")])

    with pytest.raises(UnsafeArchiveError, match="unsafe relative symlink"):
        extract_tar(str(archive), str(tmp_path / "out"))


def test_symbolic_link_entries_are_skipped(tmp_path):
    archive = tmp_path / "image.tar"
    write_tar(archive, [dir_entry("."), link_entry("sym", "/etc", kind=tarfile.SYMTYPE)])
    destination = tmp_path / "out"

    extract_tar(str(archive), str(destination))

    assert destination.is_dir()
    assert not os.path.lexists(destination / "sym")


def test_empty_input_extracts_nothing(tmp_path):
    archive = tmp_path / "empty.tar"
    archive.write_bytes(b"")
    destination = tmp_path / "out"

    extract_tar(str(archive), str(destination))

    assert not destination.exists()


def test_file_without_parent_directory_raises(tmp_path):
    archive = tmp_path / "image.tar"
    write_tar(archive, [file_entry("nested/file", b"x")])

    with pytest.raises(FileNotFoundError):
        extract_tar(str(archive), str(tmp_path / "out"))


def test_missing_input_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        extract_tar(str(tmp_path / "missing.tar"), str(tmp_path / "out"))


def test_round_trip_preserves_all_file_contents(tmp_path):
    contents = {"a.txt": b"alpha", "b.bin": bytes(range(256)), "c": b""}
    archive = tmp_path / "image.tar"
    write_tar(archive, [dir_entry(".")] + [file_entry(n, d) for n, d in contents.items()])
    destination = tmp_path / "out"

    extract_tar(str(archive), str(destination))

    assert {p.name: p.read_bytes() for p in destination.iterdir()} == contents