"""Self-bootstrap of a private interpreter environment."""

from selfenv.bootstrap import (
    SELF_PYTHON_TARGET_VERSION,
    ensure_self_venv,
    get_pip_module,
    get_pip_runner,
    get_self_venv_dir,
    is_up_to_date,
)
from selfenv.environments.environment import SELF_REQUIREMENTS, SELF_VERSION
from selfenv.errors import (
    ChecksumMismatchError,
    MissingSharedLibrariesError,
    SelfEnvError,
    UnsupportedToolchainError,
)
from selfenv.types import CommandOutput, PythonVersion, PythonVersionRequest

__version__ = "0.1.0"

__all__ = [
    # Bootstrap
    "ensure_self_venv",
    "is_up_to_date",
    "get_self_venv_dir",
    "get_pip_module",
    "get_pip_runner",
    "SELF_PYTHON_TARGET_VERSION",
    "SELF_VERSION",
    "SELF_REQUIREMENTS",

    # Types
    "CommandOutput",
    "PythonVersion",
    "PythonVersionRequest",

    # Errors
    "SelfEnvError",
    "ChecksumMismatchError",
    "MissingSharedLibrariesError",
    "UnsupportedToolchainError",
]
