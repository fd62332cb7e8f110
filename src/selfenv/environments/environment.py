"""Private environment creation and population."""
import json
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional

from selfenv.errors import DOCS_INSTALLATION, error_context
from selfenv.logging import get_logger
from selfenv.runtimes.uv import Uv
from selfenv.types import PythonVersion
from selfenv.utils.fs import atomic_write_text

logger = get_logger(__name__)

# Bump whenever SELF_REQUIREMENTS or the environment layout changes; a
# mismatch with tool-version.txt forces a rebuild.
SELF_VERSION = 5

TOOL_VERSION_FILENAME = "tool-version.txt"
VENV_MARKER_FILENAME = "selfenv-venv.json"

LATEST_PIP = "pip==24.0"

SELF_REQUIREMENTS = """
build==1.0.3
certifi==2023.11.17
charset-normalizer==3.3.2
click==8.1.7
distlib==0.3.8
filelock==3.12.2
idna==3.4
packaging==23.1
platformdirs==4.0.0
pyproject_hooks==1.0.0
requests==2.31.0
tomli==2.0.1
twine==4.0.2
unearth==0.14.0
urllib3==2.0.7
virtualenv==20.25.0
ruff==0.2.2
uv==0.1.9
"""


def write_venv_marker(venv_dir: Path, version: PythonVersion) -> None:
    """Record which interpreter the environment was built from."""
    marker = venv_dir / VENV_MARKER_FILENAME
    data = {
        "python": str(version),
        "name": version.name,
        "major": version.major,
        "minor": version.minor,
        "patch": version.patch,
        "suffix": version.suffix,
    }
    with error_context("failed writing venv marker file", marker):
        marker.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def read_venv_marker(venv_dir: Path) -> Optional[dict]:
    marker = venv_dir / VENV_MARKER_FILENAME
    try:
        return json.loads(marker.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None


def write_tool_version(venv_dir: Path, version: int = SELF_VERSION) -> None:
    path = venv_dir / TOOL_VERSION_FILENAME
    with error_context("could not write tool version", path):
        atomic_write_text(path, str(version))


def read_tool_version(venv_dir: Path) -> Optional[int]:
    try:
        return int((venv_dir / TOOL_VERSION_FILENAME).read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        return None


class SelfVenv:
    """uv driven operations on the private environment."""

    def __init__(self, uv: Uv, venv_dir: Path, version: PythonVersion):
        self.uv = uv
        self.venv_dir = venv_dir
        self.version = version

    @property
    def venv_env(self) -> dict:
        return {"VIRTUAL_ENV": str(self.venv_dir)}

    async def create(self, py_bin: Path) -> None:
        await self.uv.run(
            "venv",
            "--python",
            py_bin,
            self.venv_dir,
            error=(
                f"unable to create self venv using {py_bin}. It might be that "
                "the used Python build is incompatible with this machine. "
                f"For more information see {DOCS_INSTALLATION}"
            ),
        )
        logger.info({"event": "self_venv_created", "path": str(self.venv_dir)})

    def write_marker(self) -> None:
        write_venv_marker(self.venv_dir, self.version)

    async def update_pip(self, pip_version: str = LATEST_PIP) -> None:
        await self.uv.run(
            "pip",
            "install",
            "--upgrade",
            pip_version,
            env=self.venv_env,
            error=f"unable to update pip in venv at {self.venv_dir}",
        )

    async def update_requirements(self, requirements: str = SELF_REQUIREMENTS) -> None:
        fd, req_file = tempfile.mkstemp(prefix="selfenv-requirements-", suffix=".txt")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(requirements.strip() + "\n")
            await self.uv.run(
                "pip",
                "install",
                "--upgrade",
                "-r",
                req_file,
                env=self.venv_env,
                error=f"unable to update requirements in venv at {self.venv_dir}",
            )
        finally:
            try:
                os.unlink(req_file)
            except FileNotFoundError:
                pass

    def write_tool_version(self, version: int = SELF_VERSION) -> None:
        write_tool_version(self.venv_dir, version)


async def build_env(
    uv: Uv,
    py_bin: Path,
    version: PythonVersion,
    venv_dir: Path,
    before_stamp: Optional[Callable[[], None]] = None,
) -> SelfVenv:
    """Create and populate the private environment, stamping it last.

    ``before_stamp`` runs after the environment is populated but before
    ``tool-version.txt`` is written, so anything it sets up is also redone
    when a bootstrap is interrupted.
    """
    venv = SelfVenv(uv, venv_dir, version)

    with error_context("failed to create the private environment"):
        await venv.create(py_bin)
    venv.write_marker()
    with error_context("failed to install pip into the private environment"):
        await venv.update_pip()
    with error_context("failed to install the pinned requirements"):
        await venv.update_requirements()

    if before_stamp is not None:
        before_stamp()

    venv.write_tool_version()
    logger.info({"event": "self_venv_ready", "path": str(venv_dir), "python": str(version)})
    return venv
