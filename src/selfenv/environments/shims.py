"""Interpreter-named shims that dispatch into the tool."""

import platform
import shutil
import sys
from pathlib import Path
from typing import Callable, List, NamedTuple, Optional, Tuple

from selfenv.errors import IoError, ShimInstallError, error_context
from selfenv.logging import get_logger
from selfenv.platforms import exe_name
from selfenv.utils.fs import copy_file, hardlink_file, symlink_file

logger = get_logger(__name__)

TOOL_NAME = "selfenv"

Strategy = Tuple[str, Callable[[Path, Path], None]]


class ShimLayout(NamedTuple):
    names: List[str]
    strategies: List[Strategy]


def get_shim_layout(system: Optional[str] = None) -> ShimLayout:
    """Which shims to install and how, for an OS family."""
    system = system or platform.system()
    match system:
        case "Linux":
            # symlinks make the interpreter misreport its executable on linux;
            # copy covers shims on a different volume than the tool
            return ShimLayout(
                ["python", "python3"],
                [("hardlink", hardlink_file), ("copy", copy_file)],
            )
        case "Windows":
            # symlinking needs privileges not everyone has
            return ShimLayout(
                ["python.exe", "python3.exe", "pythonw.exe"],
                [("symlink", symlink_file), ("hardlink", hardlink_file)],
            )
        case _:
            return ShimLayout(["python", "python3"], [("symlink", symlink_file)])


def install_shim(shim: Path, this: Path, strategies: List[Strategy]) -> str:
    """Install one shim with the first strategy that works; returns its name."""
    try:
        shim.unlink()
    except OSError:
        pass

    failure = None
    for operation, install in strategies:
        try:
            install(this, shim)
        except OSError as e:
            logger.debug(
                {"event": "shim_strategy_failed", "shim": str(shim), "operation": operation, "error": str(e)}
            )
            failure = (operation, e)
            continue
        logger.debug({"event": "shim_installed", "shim": str(shim), "operation": operation})
        return operation

    operation, e = failure if failure else ("install", OSError("no strategy available"))
    raise ShimInstallError(shim, operation, str(e))


def update_core_shims(shims: Path, this: Path, system: Optional[str] = None) -> None:
    """Point the interpreter shims in ``shims`` at ``this``."""
    layout = get_shim_layout(system)
    for name in layout.names:
        install_shim(shims / name, this, layout.strategies)


def current_exe() -> Path:
    """Path of the running tool executable."""
    argv0 = Path(sys.argv[0]) if sys.argv and sys.argv[0] else None
    if argv0 is not None and argv0.stem == TOOL_NAME and argv0.is_file():
        return argv0.resolve()
    found = shutil.which(TOOL_NAME)
    if found:
        return Path(found).resolve()
    # launched as selfenv-mcp or python -m selfenv from an environment not on PATH
    beside_interpreter = Path(sys.executable).parent / exe_name(TOOL_NAME)
    if sys.executable and beside_interpreter.is_file():
        return beside_interpreter.resolve()
    raise IoError("could not determine the current executable", argv0)


def find_self_exe(shims: Path, self_exe: Optional[Path] = None) -> Path:
    """Prefer a copy of the tool installed into the shims folder."""
    this = shims / exe_name(TOOL_NAME)
    if this.is_file():
        return this
    return self_exe or current_exe()


def install_shims(shims: Path, self_exe: Optional[Path] = None) -> Path:
    """Create the shim folder if needed and refresh the core shims."""
    if not shims.is_dir():
        with error_context("tried to create shim folder", shims):
            shims.mkdir(parents=True, exist_ok=True)

    this = find_self_exe(shims, self_exe)
    update_core_shims(shims, this)
    logger.info({"event": "shims_updated", "shims": str(shims), "target": str(this)})
    return this
