from pathlib import Path

import pytest
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS

from selfenv.errors import (
    DOCS_MISSING_SHARED_LIBRARIES,
    ChecksumMismatchError,
    IoError,
    MissingSharedLibrariesError,
    SelfEnvError,
    ShimInstallError,
    UnsupportedToolchainError,
    error_context,
)


def test_context_chain_renders_outermost_first():
    err = SelfEnvError("inner failure")
    err.add_context("middle step").add_context("outer step")

    assert str(err) == "outer step\n  caused by: middle step\n  caused by: inner failure"


def test_error_context_annotates_selfenv_errors():
    with pytest.raises(ChecksumMismatchError) as exc:
        with error_context("Checksum check of https://example.com/x.tar.gz failed"):
            raise ChecksumMismatchError("aa", "bb")

    assert str(exc.value).startswith("Checksum check of https://example.com/x.tar.gz failed")
    assert "hash mismatch: expected aa got bb" in str(exc.value)


def test_error_context_converts_os_errors(tmp_path):
    missing = tmp_path / "nope" / "file.txt"

    with pytest.raises(IoError) as exc:
        with error_context("could not write tool version", missing):
            missing.write_text("5")

    assert "could not write tool version" in str(exc.value)
    assert str(missing) in str(exc.value)
    assert isinstance(exc.value.__cause__, OSError)


def test_error_context_leaves_other_errors():
    with pytest.raises(KeyError):
        with error_context("lookup"):
            raise KeyError("x")


def test_missing_libraries_sorted_unique():
    err = MissingSharedLibrariesError(["libz.so.1", "libcrypt.so.1", "libz.so.1"])

    assert err.libraries == ["libcrypt.so.1", "libz.so.1"]
    assert DOCS_MISSING_SHARED_LIBRARIES in str(err)


def test_shim_error_names_operation():
    err = ShimInstallError(Path("/shims/python3"), "hardlink", "Operation not permitted")

    assert "hardlink" in str(err)
    assert err.details == {"path": "/shims/python3", "operation": "hardlink"}


def test_to_error_data():
    err = UnsupportedToolchainError("cpython@3.13")
    data = err.to_error_data()

    assert data.code == INVALID_PARAMS
    assert "cpython@3.13" in data.message
    assert SelfEnvError("x").code == INTERNAL_ERROR
