"""Bootstrapping of the tool's private environment.

The private environment lives in ``<app_dir>/self``. It is built once with a
pinned uv and a python-build-standalone interpreter, and rebuilt whenever its
``tool-version.txt`` does not match ``SELF_VERSION``. That file is written
last, so any interrupted bootstrap is simply redone on the next run.
"""

import platform
import shutil
from pathlib import Path
from typing import Optional

from selfenv.config import get_app_dir
from selfenv.environments.environment import SELF_VERSION, build_env, read_tool_version
from selfenv.environments.shims import install_shims
from selfenv.errors import (
    IoError,
    UnknownVersionError,
    UnsupportedToolchainError,
    error_context,
)
from selfenv.logging import ColorCodes, get_logger
from selfenv.runtimes.python import fetch, validate_shared_libraries
from selfenv.runtimes.uv import ensure_uv
from selfenv.sources.py import (
    SELF_COMPATIBLE_NAME,
    SELF_COMPATIBLE_RANGE,
    get_toolchain_python_bin,
    is_self_compatible_toolchain,
    latest_available_python_version,
    list_known_toolchains,
)
from selfenv.tui import echo, style
from selfenv.types import CommandOutput, PythonVersion, PythonVersionRequest

logger = get_logger(__name__)

# the interpreter fetched when nothing compatible is installed yet
SELF_PYTHON_TARGET_VERSION = PythonVersionRequest(name="cpython", major=3, minor=12)

# Both flags only ever go from False to True within a process.
_UP_TO_DATE: Optional[bool] = None
_FORCED_TO_UPDATE = False


def get_self_venv_dir() -> Path:
    return get_app_dir() / "self"


def get_shims_dir() -> Path:
    return get_app_dir() / "shims"


def is_up_to_date() -> bool:
    """Whether the private environment matches ``SELF_VERSION``.

    The marker is read once per process; an unreadable marker counts as stale.
    """
    global _UP_TO_DATE
    if _UP_TO_DATE is None:
        _UP_TO_DATE = read_tool_version(get_self_venv_dir()) == SELF_VERSION
    return _UP_TO_DATE or _FORCED_TO_UPDATE


def _found_compatible(version: PythonVersion, output: CommandOutput) -> None:
    if output is not CommandOutput.QUIET:
        echo(f"Found a compatible Python version: {style(version, ColorCodes.CYAN)}")


async def ensure_latest_self_toolchain(output: CommandOutput) -> PythonVersion:
    """Use the newest compatible installed interpreter, else fetch the default."""
    compatible = [v for v in list_known_toolchains() if is_self_compatible_toolchain(v)]
    if compatible:
        version = max(compatible)
        _found_compatible(version, output)
        return version
    return await fetch(SELF_PYTHON_TARGET_VERSION, output)


def resolve_self_toolchain(request: PythonVersionRequest) -> PythonVersion:
    """Resolve an explicit toolchain request and enforce the support window."""
    name = request.name or SELF_COMPATIBLE_NAME
    low, high = SELF_COMPATIBLE_RANGE
    if name != SELF_COMPATIBLE_NAME or (
        request.minor is not None and not low <= (request.major, request.minor) <= high
    ):
        raise UnsupportedToolchainError(request)

    version = latest_available_python_version(request)
    if version is None:
        raise UnknownVersionError(request).add_context(
            "requested toolchain version is not available"
        )
    if not is_self_compatible_toolchain(version):
        raise UnsupportedToolchainError(version)
    return version


async def ensure_specific_self_toolchain(
    output: CommandOutput, request: PythonVersionRequest
) -> PythonVersion:
    version = resolve_self_toolchain(request)
    if get_toolchain_python_bin(version).is_file():
        _found_compatible(version, output)
        return version
    if output is not CommandOutput.QUIET:
        echo(f"Fetching requested internal toolchain '{version}'")
    return await fetch(version.to_request(), output)


async def ensure_self_venv(
    output: CommandOutput,
    toolchain_request: Optional[PythonVersionRequest] = None,
) -> Path:
    """Bootstrap the private environment if needed and return its path."""
    global _FORCED_TO_UPDATE

    app_dir = get_app_dir()
    venv_dir = get_self_venv_dir()

    if venv_dir.is_dir() and is_up_to_date():
        return venv_dir

    # reject out-of-policy requests before anything on disk changes
    if toolchain_request is not None:
        resolve_self_toolchain(toolchain_request)

    if venv_dir.is_dir():
        if output is not CommandOutput.QUIET:
            echo("Detected outdated selfenv internals. Refreshing")
        logger.info({"event": "self_venv_outdated", "path": str(venv_dir)})
        with error_context("could not remove self-venv for update", venv_dir):
            shutil.rmtree(venv_dir)

    if output is not CommandOutput.QUIET:
        echo("Bootstrapping selfenv internals")
    logger.info({"event": "bootstrap_started", "app_dir": str(app_dir)})

    with error_context("failed to provision the uv helper"):
        uv = await ensure_uv(output)

    # fresh downloads are checked for missing libraries as they are unpacked
    installed_before = list_known_toolchains()

    if toolchain_request is not None:
        with error_context(
            f"failed to provision internal cpython toolchain {toolchain_request}"
        ):
            version = await ensure_specific_self_toolchain(output, toolchain_request)
    else:
        with error_context(
            f"failed to fetch internal cpython toolchain {SELF_PYTHON_TARGET_VERSION}"
        ):
            version = await ensure_latest_self_toolchain(output)

    py_bin = get_toolchain_python_bin(version)

    if platform.system() == "Linux" and version in installed_before:
        await validate_shared_libraries(py_bin)

    shims = get_shims_dir()
    await build_env(uv, py_bin, version, venv_dir, before_stamp=lambda: install_shims(shims))

    _FORCED_TO_UPDATE = True
    logger.info({"event": "bootstrap_complete", "path": str(venv_dir), "python": str(version)})
    return venv_dir


def get_pip_module(venv: Path) -> Path:
    """Location of the pip package inside the private environment."""
    lib = venv / "lib"
    if platform.system() == "Windows":
        site_packages = venv / "Lib" / "site-packages"
    else:
        # first pythonX.Y/site-packages wins
        site_packages = None
        if lib.is_dir():
            for entry in sorted(lib.iterdir()):
                candidate = entry / "site-packages"
                if entry.name.startswith("python") and candidate.is_dir():
                    site_packages = candidate
                    break
        if site_packages is None:
            raise IoError("no site-packages in venv", venv)
    pip = site_packages / "pip"
    if not pip.is_dir():
        raise IoError("pip is not installed in venv", pip)
    return pip


def get_pip_runner(venv: Path) -> Path:
    """Returns the pip runner script for the private environment."""
    return get_pip_module(venv) / "__pip-runner__.py"
