import os

import pytest

from selfenv.errors import UnpackError
from selfenv.utils.archives import detect_archive_format, strip_path, unpack_archive


def test_detect_format(tar_gz, zip_bytes):
    assert detect_archive_format(tar_gz({"a": b"1"})) == "tar.gz"
    assert detect_archive_format(zip_bytes({"a": b"1"})) == "zip"
    assert detect_archive_format(b"not an archive at all") is None


@pytest.mark.parametrize(
    "name,strip,expected",
    [
        ("python/bin/python3", 1, "bin/python3"),
        ("./python/bin/python3", 1, "bin/python3"),
        ("python/", 1, None),
        ("uv-x86_64-unknown-linux-gnu/uv", 1, "uv"),
        ("a/b/c", 0, "a/b/c"),
        ("a/b/c", 2, "c"),
    ],
)
def test_strip_path(name, strip, expected):
    result = strip_path(name, strip)
    assert (str(result).replace(os.sep, "/") if result else None) == expected


def test_strip_path_rejects_parent_refs():
    with pytest.raises(UnpackError):
        strip_path("python/../../etc/passwd", 1)


def test_unpack_tar_gz_strips_prefix(tmp_path, tar_gz):
    buffer = tar_gz({"bin/python3": b"#!fake", "lib/os.py": b"pass"}, prefix="python")
    target = tmp_path / "py" / "cpython@3.12.1"

    unpack_archive(buffer, target, 1)

    assert (target / "bin" / "python3").read_bytes() == b"#!fake"
    assert (target / "lib" / "os.py").read_bytes() == b"pass"
    assert not (target / "python").exists()
    if os.name != "nt":
        assert os.access(target / "bin" / "python3", os.X_OK)


def test_unpack_zip(tmp_path, zip_bytes):
    target = tmp_path / "uv"

    unpack_archive(zip_bytes({"uv.exe": b"MZ"}, prefix="uv-x86_64-pc-windows-msvc"), target, 1)

    assert (target / "uv.exe").read_bytes() == b"MZ"


@pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on windows")
def test_unpack_symlinks(tmp_path, tar_gz):
    buffer = tar_gz(
        {"bin/python3.12": b"#!fake"},
        prefix="python",
        symlinks={"bin/python3": "python3.12"},
    )

    unpack_archive(buffer, tmp_path / "out", 1)

    link = tmp_path / "out" / "bin" / "python3"
    assert link.is_symlink()
    assert link.read_bytes() == b"#!fake"


def test_unpack_rejects_escaping_symlink(tmp_path, tar_gz):
    buffer = tar_gz({}, prefix="python", symlinks={"evil": "../../outside"})

    with pytest.raises(UnpackError):
        unpack_archive(buffer, tmp_path / "out", 1)


def test_unpack_unknown_format(tmp_path):
    with pytest.raises(UnpackError):
        unpack_archive(b"garbage", tmp_path / "out", 1)


def test_unpack_truncated_archive(tmp_path, tar_gz):
    buffer = tar_gz({"bin/python3": os.urandom(4096)}, prefix="python")

    with pytest.raises(UnpackError):
        unpack_archive(buffer[: len(buffer) // 2], tmp_path / "out", 1)

    # partial output is left for the caller to deal with
    assert (tmp_path / "out").is_dir()
