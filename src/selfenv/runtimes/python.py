"""Interpreter distribution provisioning."""

import platform
from pathlib import Path
from typing import List, Optional

from selfenv.config import Config
from selfenv.errors import (
    ChecksumUnavailableError,
    MissingSharedLibrariesError,
    UnknownVersionError,
    error_context,
)
from selfenv.logging import ColorCodes, get_logger
from selfenv.sources.py import (
    get_canonical_py_path,
    get_download_url,
    get_toolchain_python_bin,
)
from selfenv.tui import echo, style
from selfenv.types import CommandOutput, PythonVersion, PythonVersionRequest
from selfenv.utils.archives import unpack_archive
from selfenv.utils.checksums import check_checksum, fetch_published_checksum
from selfenv.utils.fetching import download_url
from selfenv.utils.fs import async_subprocess_run

logger = get_logger(__name__)


def parse_missing_libraries(ldd_output: str) -> List[str]:
    """Libraries ``ldd`` reports as ``NAME => not found``, sorted and unique."""
    missing = set()
    for line in ldd_output.splitlines():
        before, sep, after = line.strip().partition(" => ")
        if sep and after.strip() == "not found":
            missing.add(before.strip())
    return sorted(missing)


async def validate_shared_libraries(py_bin: Path) -> None:
    """Fail if the dynamic linker cannot satisfy the interpreter's libraries."""
    with error_context("unable to invoke ldd on downloaded python binary", py_bin):
        _, stdout, _ = await async_subprocess_run("ldd", py_bin)

    missing = parse_missing_libraries(stdout)
    if not missing:
        return

    logger.error({"event": "missing_shared_libraries", "binary": str(py_bin), "libs": missing})
    echo(
        f"{style('error', ColorCodes.RED)}: detected missing shared "
        f"librar{'y' if len(missing) == 1 else 'ies'} required by Python:"
    )
    for lib in missing:
        echo(f"  - {style(lib, ColorCodes.YELLOW)}")
    raise MissingSharedLibrariesError(missing)


def _installed(version: PythonVersion) -> bool:
    return get_canonical_py_path(version).is_dir() and get_toolchain_python_bin(version).is_file()


async def fetch(
    request: PythonVersionRequest,
    output: CommandOutput,
    config: Optional[Config] = None,
) -> PythonVersion:
    """Fetches an interpreter if missing and returns the concrete version."""
    if request.is_concrete:
        version = request.to_version()
        if get_toolchain_python_bin(version).is_file():
            if output is CommandOutput.VERBOSE:
                echo("Python version already downloaded. Skipping.")
            return version

    download = get_download_url(request)
    if download is None:
        raise UnknownVersionError(request)
    version, url = download.version, download.url

    target_dir = get_canonical_py_path(version)
    target_py_bin = get_toolchain_python_bin(version)
    if output is CommandOutput.VERBOSE:
        echo(f"target dir: {target_dir}")
    if _installed(version):
        if output is CommandOutput.VERBOSE:
            echo("Python version already downloaded. Skipping.")
        return version

    config = config or Config.load()
    sha256 = download.sha256 or config.pinned_sha256(url)
    if sha256 is None and config.require_pinned_checksums():
        raise ChecksumUnavailableError(url)

    if output is CommandOutput.VERBOSE:
        echo(f"download url: {url}")
    if output is not CommandOutput.QUIET:
        echo(f"{style('Downloading', ColorCodes.CYAN)} {version}")
    archive_buffer = await download_url(url, output, config)

    if sha256 is None:
        sha256 = await fetch_published_checksum(url, config)
    if sha256:
        if output is not CommandOutput.QUIET:
            echo(f"{style('Checking', ColorCodes.CYAN)} checksum")
        with error_context(f"Checksum check of {url} failed"):
            check_checksum(archive_buffer, sha256)
    elif output is not CommandOutput.QUIET:
        echo("Checksum check skipped (no hash available)")

    # the target only appears once the bytes are known to be good
    with error_context("failed to create target folder", target_dir):
        target_dir.mkdir(parents=True, exist_ok=True)

    if output is not CommandOutput.QUIET:
        echo(style("Unpacking", ColorCodes.CYAN))
    with error_context(
        f"unpacking of downloaded tarball {url} to '{target_dir}' failed"
    ):
        unpack_archive(archive_buffer, target_dir, 1)

    if platform.system() == "Linux":
        await validate_shared_libraries(target_py_bin)

    if output is not CommandOutput.QUIET:
        echo(f"{style('Downloaded', ColorCodes.GREEN)} {version}")

    logger.info({"event": "python_installed", "version": str(version), "path": str(target_dir)})
    return version
